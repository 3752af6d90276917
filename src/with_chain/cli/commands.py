"""
CLI Command Handlers Facade.

Re-exports handlers from `with_chain.cli.handlers` so the dispatcher (and
test patches) have a single module to target.
"""

from with_chain.cli.handlers.chain import (
  handle_eval,
  handle_expand,
  handle_explain,
  read_chain_source,
)
from with_chain.cli.handlers.transform import (
  handle_transform,
  _transform_single_file,
  _print_batch_summary,
)

__all__ = [
  "_print_batch_summary",
  "_transform_single_file",
  "handle_eval",
  "handle_expand",
  "handle_explain",
  "handle_transform",
  "read_chain_source",
]
