"""
Transform Command Handler.

Implements ``with-chain transform``: expands every ``with_chain("...")`` site
in a Python file, or in every ``.py`` file under a directory.
"""

from pathlib import Path
from typing import Dict, Optional

from rich.markup import escape
from rich.table import Table

from with_chain.config import RewriteConfig
from with_chain.core.engine import ChainEngine
from with_chain.core.expansion_result import ExpansionResult
from with_chain.utils.console import (
  console,
  log_error,
  log_info,
  log_success,
  log_warning,
)


def handle_transform(input_path: Path, output_path: Optional[Path], config: RewriteConfig) -> int:
  """
  Handles the 'transform' command execution.

  Args:
      input_path: Source file or directory.
      output_path: Destination file or directory. Files print to stdout without one.
      config: Rewrite settings.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: [path]{escape(str(input_path))}[/path]")
    return 1

  engine = ChainEngine(config)
  batch_results: Dict[str, ExpansionResult] = {}

  if input_path.is_file():
    result = _transform_single_file(input_path, output_path, engine)
    batch_results[input_path.name] = result
    if not result.success:
      _print_batch_summary(batch_results)
      return 1
    return 0

  if not output_path:
    log_error("Directory transformation requires --out destination directory.")
    return 1

  py_files = sorted(input_path.rglob("*.py"))
  if not py_files:
    log_warning(f"No .py files found in {escape(str(input_path))}")
    return 0

  log_info(f"Processing {len(py_files)} files from [path]{escape(str(input_path))}[/path]...")
  for src_file in py_files:
    rel_path = src_file.relative_to(input_path)
    result = _transform_single_file(src_file, output_path / rel_path, engine)
    batch_results[str(rel_path)] = result

  _print_batch_summary(batch_results)
  return 0 if all(r.success for r in batch_results.values()) else 1


def _transform_single_file(input_path: Path, output_path: Optional[Path], engine: ChainEngine) -> ExpansionResult:
  """
  Expands the macro sites of one file.

  Args:
      input_path: Source file path.
      output_path: Destination file path, or None to print to stdout.
      engine: The configured engine.

  Returns:
      ExpansionResult: Result object containing status and code.
  """
  try:
    code = input_path.read_text(encoding="utf-8")
  except (OSError, UnicodeDecodeError) as e:
    log_error(f"Failed to read {escape(str(input_path))}: {escape(str(e))}")
    return ExpansionResult(success=False, errors=[str(e)])

  result = engine.transform(code)
  for warning in result.warnings:
    log_warning(f"{escape(str(input_path))}: {escape(warning)}")

  if output_path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.code, encoding="utf-8")
    log_success(
      f"Expanded {result.expanded_sites} site(s): [path]{escape(str(input_path))}[/path]"
      f" -> [path]{escape(str(output_path))}[/path]"
    )
  else:
    print(result.code, end="")

  return result


def _print_batch_summary(results: Dict[str, ExpansionResult]) -> None:
  """
  Renders a summary table of transformation results to the console.

  Args:
      results: Dictionary mapping filenames to results.
  """
  total = len(results)
  failures = {name: res for name, res in results.items() if not res.success}

  if not failures:
    log_success(f"Batch Complete: {total}/{total} files transformed.")
    return

  table = Table(title="Expansion Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in failures.items():
    issues = "; ".join(res.errors) if res.errors else "Unknown Error"
    table.add_row(escape(filename), "❌ Failed", escape(issues))

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {total - len(failures)} Passed, {len(failures)} with Issues.")
