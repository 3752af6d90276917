"""
Chain Data Structures.

This module defines the object model produced by the parser and consumed by
the rewriter: the receiver `Binding`, the four `Directive` variants and the
`Chain` that ties them together.

All fragments of the wrapped language (initializers, argument lists, patterns,
targets, pass-through statements) are kept as opaque `Fragment` text together
with the span they were read from, so that diagnostics can point back at the
original chain source.
"""

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Tuple, Union

from with_chain.enums import DirectiveKind

# The single synthetic identifier every expansion binds its receiver to.
RECEIVER_NAME = "_receiver"


@dataclass(frozen=True)
class SourceSpan:
  """
  A region of the chain source.

  Attributes:
      start: Offset of the first character.
      end: Offset one past the last character.
      line: 1-based line of `start`.
      column: 1-based column of `start`.
  """

  start: int
  end: int
  line: int = 1
  column: int = 1

  def describe(self) -> str:
    return f"line {self.line}, column {self.column}"


@dataclass(frozen=True)
class Fragment:
  """
  An opaque piece of host-language source.

  Attributes:
      text: The source text exactly as written (trimmed at both ends).
      span: Where the text was read from.
      literal_lines: Indices of continuation lines (1 = second line) that
          start inside a string literal. Those lines must never be re-indented.
  """

  text: str
  span: SourceSpan
  literal_lines: Tuple[int, ...] = ()

  def reindent(self, prefix: str) -> str:
    """
    Prefixes every continuation line with `prefix`.

    The first line is returned unchanged; the caller places it. Lines that
    start inside a string literal are left alone so literal contents survive.

    Args:
        prefix: Indentation to prepend.

    Returns:
        str: The re-indented text.
    """
    lines = self.text.split("\n")
    out = [lines[0]]
    for idx, line in enumerate(lines[1:], start=1):
      if idx in self.literal_lines or not line:
        out.append(line)
      else:
        out.append(prefix + line)
    return "\n".join(out)

  def __str__(self) -> str:
    return self.text


@dataclass(frozen=True)
class Binding:
  """
  The receiver declaration heading a chain.

  Attributes:
      initializer: Expression evaluated exactly once to produce the receiver.
      mutable: True when the initializer carried the ``mut`` marker.
  """

  initializer: Fragment
  mutable: bool = False

  @property
  def name(self) -> str:
    """The receiver identifier. Fixed; never supplied by the caller."""
    return RECEIVER_NAME


@dataclass(frozen=True)
class BareCall:
  """``.method(args)``: invoke a method on the receiver, discarding the result."""

  kind: ClassVar[DirectiveKind] = DirectiveKind.BARE_CALL

  method_name: str
  arguments: Fragment
  span: SourceSpan


@dataclass(frozen=True)
class LetCall:
  """
  ``let pattern = .method(args);``

  Attributes:
      pattern: Binding pattern (a name, a tuple of names, an annotated name...).
      method_name: Method invoked on the receiver.
      arguments: Argument list text, without the parentheses.
      span: Span of the whole directive.
      bound_names: Plain identifiers bound by a simple pattern.
  """

  kind: ClassVar[DirectiveKind] = DirectiveKind.LET_CALL

  pattern: Fragment
  method_name: str
  arguments: Fragment
  span: SourceSpan
  bound_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AssignCall:
  """
  ``target = .method(args);``

  Attributes:
      target: Assignment target (identifier, attribute, subscript, tuple).
      method_name: Method invoked on the receiver.
      arguments: Argument list text, without the parentheses.
      span: Span of the whole directive.
      target_names: Plain identifiers assigned when the target is a name or
          a tuple of names. Empty for attribute and subscript targets.
  """

  kind: ClassVar[DirectiveKind] = DirectiveKind.ASSIGN_CALL

  target: Fragment
  method_name: str
  arguments: Fragment
  span: SourceSpan
  target_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PassThrough:
  """Any fragment that is not a receiver directive. Emitted verbatim."""

  kind: ClassVar[DirectiveKind] = DirectiveKind.PASS_THROUGH

  fragment: Fragment

  @property
  def span(self) -> SourceSpan:
    return self.fragment.span


Directive = Union[BareCall, LetCall, AssignCall, PassThrough]


@dataclass(frozen=True)
class Chain:
  """
  A complete parsed chain: one binding followed by its ordered directives.

  Attributes:
      binding: The receiver declaration.
      directives: Steps in effect order.
      source: The chain text the structure was parsed from, if any.
  """

  binding: Binding
  directives: Tuple[Directive, ...] = field(default_factory=tuple)
  source: Optional[str] = None
