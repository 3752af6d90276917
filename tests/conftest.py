"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- A recording console so CLI output can be asserted on.
"""

import sys
from pathlib import Path

import pytest
from rich.console import Console

# Add src to path so we can import 'with_chain' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from with_chain.utils.console import reset_console, set_console  # noqa: E402


@pytest.fixture
def recorded_console():
  """
  Routes console output and logging into an in-memory console.

  Yields:
      Console: The recording console. Read it with ``export_text()``.
  """
  rec = Console(record=True, width=200, force_terminal=False)
  set_console(rec)
  yield rec
  reset_console()
