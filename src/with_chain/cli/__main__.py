"""
Main Entry Point for the with-chain CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `with_chain.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.markup import escape

from with_chain import __version__
from with_chain.cli import commands
from with_chain.config import RewriteConfig, parse_cli_key_values
from with_chain.enums import ScopeKind
from with_chain.utils.console import log_error


def _add_config_option(cmd: argparse.ArgumentParser) -> None:
  cmd.add_argument(
    "--config",
    nargs="*",
    help="Rewrite settings in key=value format (e.g. block_name=_blk annotate_immutable=false)",
  )


def _add_chain_input(cmd: argparse.ArgumentParser) -> None:
  cmd.add_argument("source", nargs="?", default=None, help="Chain text, or '-' to read it from stdin")
  cmd.add_argument("--file", type=Path, default=None, help="Read the chain text from a file")
  _add_config_option(cmd)


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="with-chain: call methods on a value without naming it")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: EXPAND ---
  cmd_exp = subparsers.add_parser("expand", help="Print the Python block a chain expands to")
  _add_chain_input(cmd_exp)
  cmd_exp.add_argument(
    "--scope",
    choices=[s.value for s in ScopeKind],
    default=ScopeKind.GLOBAL.value,
    help="Scope the block is emitted into (default: global)",
  )

  # --- Command: EVAL ---
  cmd_eval = subparsers.add_parser("eval", help="Evaluate a chain and print the receiver")
  _add_chain_input(cmd_eval)

  # --- Command: EXPLAIN ---
  cmd_expl = subparsers.add_parser("explain", help="Show how each directive is classified")
  _add_chain_input(cmd_expl)

  # --- Command: TRANSFORM ---
  cmd_tr = subparsers.add_parser("transform", help="Expand with_chain(...) sites in a Python file or directory")
  cmd_tr.add_argument("path", type=Path, help="Input source file or directory")
  cmd_tr.add_argument("--out", type=Path, default=None, help="Output destination (file or dir)")
  _add_config_option(cmd_tr)

  args = parser.parse_args(argv)

  search_path = None
  if args.command == "transform":
    search_path = args.path if args.path.is_dir() else args.path.parent
  try:
    config = RewriteConfig.load(overrides=parse_cli_key_values(args.config), search_path=search_path)
  except ValidationError as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 1

  if args.command == "transform":
    return commands.handle_transform(args.path, args.out, config)

  source = commands.read_chain_source(args.source, args.file)
  if source is None:
    return 1

  if args.command == "expand":
    return commands.handle_expand(source, config, ScopeKind(args.scope))

  elif args.command == "eval":
    return commands.handle_eval(source, config)

  elif args.command == "explain":
    return commands.handle_explain(source, config)

  return 0


if __name__ == "__main__":
  sys.exit(main())
