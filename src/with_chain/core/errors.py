"""
Error Types.

The rewrite stage itself never fails: unrecognised directives fall through
to pass-through. Errors exist only at the edges of the pipeline:

- `ChainSyntaxError`: the binding header cannot be recognised.
- `BlockCompileError`: the host compiler rejected the emitted block, usually
  because a pass-through fragment is not valid Python.
"""

from typing import Optional

from with_chain.core.nodes import SourceSpan


class ChainError(Exception):
  """Base class for with-chain errors."""

  def __init__(self, message: str, span: Optional[SourceSpan] = None):
    self.message = message
    self.span = span
    super().__init__(self._format())

  def _format(self) -> str:
    if self.span is None:
      return self.message
    return f"{self.message} ({self.span.describe()})"


class ChainSyntaxError(ChainError):
  """The chain has no usable binding header."""


class BlockCompileError(ChainError):
  """
  The emitted block failed to compile.

  Attributes:
      source: The emitted block source.
      cause: The `SyntaxError` raised by the compiler.
  """

  def __init__(
    self,
    message: str,
    span: Optional[SourceSpan] = None,
    source: str = "",
    cause: Optional[SyntaxError] = None,
  ):
    self.source = source
    self.cause = cause
    super().__init__(message, span)
