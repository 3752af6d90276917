"""
Chain Command Handlers.

Implements the commands that operate on a single chain:

- ``expand``: print the emitted block.
- ``eval``: evaluate the chain and print the receiver's ``repr``.
- ``explain``: tabulate how each directive was classified.
"""

import sys
from pathlib import Path
from typing import Optional

from rich.markup import escape
from rich.table import Table

from with_chain.config import RewriteConfig
from with_chain.core.engine import ChainEngine
from with_chain.core.errors import ChainError
from with_chain.core.nodes import AssignCall, BareCall, Directive, LetCall, PassThrough
from with_chain.enums import ScopeKind
from with_chain.utils.console import console, log_error


def read_chain_source(source: Optional[str], file: Optional[Path]) -> Optional[str]:
  """
  Resolves the chain text from the CLI inputs.

  Args:
      source: Chain text given on the command line, or ``-`` for stdin.
      file: Path to a file holding the chain text.

  Returns:
      Optional[str]: The chain text, or None if it could not be obtained.
  """
  if file is not None:
    if not file.is_file():
      log_error(f"Input not found: [path]{escape(str(file))}[/path]")
      return None
    return file.read_text(encoding="utf-8")
  if source == "-":
    return sys.stdin.read()
  if source is None:
    log_error("No chain given. Pass it as an argument, '-' for stdin, or use --file.")
    return None
  return source


def handle_expand(source: str, config: RewriteConfig, scope: ScopeKind = ScopeKind.GLOBAL) -> int:
  """
  Handles the 'expand' command.

  Args:
      source: Chain text.
      config: Rewrite settings.
      scope: Scope kind to emit declarations for.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  try:
    code = ChainEngine(config).expand(source, scope=scope)
  except ChainError as e:
    log_error(escape(str(e)))
    return 1
  print(code, end="")
  return 0


def handle_eval(source: str, config: RewriteConfig) -> int:
  """
  Handles the 'eval' command.

  The chain runs against a fresh namespace. Exceptions raised by the chain's
  own statements are reported with their type and message.

  Args:
      source: Chain text.
      config: Rewrite settings.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  try:
    value = ChainEngine(config).evaluate(source, {"__name__": "__with_chain__"})
  except ChainError as e:
    log_error(escape(str(e)))
    return 1
  except Exception as e:
    log_error(escape(f"Chain raised {type(e).__name__}: {e}"))
    return 1
  print(repr(value))
  return 0


def _describe(directive: Directive) -> tuple:
  if isinstance(directive, BareCall):
    return directive.method_name, directive.arguments.text, ""
  if isinstance(directive, LetCall):
    return directive.method_name, directive.arguments.text, directive.pattern.text
  if isinstance(directive, AssignCall):
    return directive.method_name, directive.arguments.text, directive.target.text
  if isinstance(directive, PassThrough):
    return "", "", directive.fragment.text
  return "", "", ""


def handle_explain(source: str, config: RewriteConfig) -> int:
  """
  Handles the 'explain' command: one table row per directive.

  Args:
      source: Chain text.
      config: Rewrite settings.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  engine = ChainEngine(config)
  try:
    chain = engine.parse(source)
  except ChainError as e:
    log_error(escape(str(e)))
    return 1

  binding = chain.binding
  mode = "mut" if binding.mutable else "immutable"
  table = Table(title=f"Receiver ({mode}): {escape(binding.initializer.text)}")
  table.add_column("#", justify="right")
  table.add_column("Kind", style="cyan")
  table.add_column("Method", style="code")
  table.add_column("Arguments")
  table.add_column("Pattern / Target / Fragment")
  table.add_column("Location", style="dim")

  for idx, directive in enumerate(chain.directives, start=1):
    method, args, other = _describe(directive)
    table.add_row(
      str(idx),
      directive.kind.value,
      escape(method),
      escape(args),
      escape(other),
      directive.span.describe(),
    )

  console.print(table)
  return 0
