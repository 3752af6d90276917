"""
Directive Classifier.

Tags raw token fragments with their `Directive` variant. Recognition is
ordered, first match wins:

1.  ``.name(args)``                         -> `BareCall`
2.  ``let <pattern> = .name(args)``         -> `LetCall`
3.  ``<lvalue> = .name(args)``              -> `AssignCall`
4.  anything else                           -> `PassThrough`

A call shape only counts when the receiver-elision call spans the entire
remainder of the fragment. ``let n = .len() + 1`` is therefore a pass-through,
as is any fragment the rules do not understand. Classification never fails.
"""

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from with_chain.core.nodes import (
  AssignCall,
  BareCall,
  Directive,
  Fragment,
  LetCall,
  PassThrough,
  SourceSpan,
)
from with_chain.core.tokens import (
  CLOSERS,
  LET_KEYWORD,
  OPENERS,
  Symbol,
  Token,
  TokenKind,
)

logger = logging.getLogger(__name__)

# Tokens allowed in a target made only of plain names: `a`, `a, b`, `(a, *rest)`.
_SIMPLE_TARGET_OPS = {
  Symbol.COMMA.value,
  Symbol.LPAREN.value,
  Symbol.RPAREN.value,
  Symbol.LBRACKET.value,
  Symbol.RBRACKET.value,
  Symbol.STAR.value,
}


def _peek(tokens: Sequence[Token], idx: int) -> Optional[Token]:
  if 0 <= idx < len(tokens):
    return tokens[idx]
  return None


def find_closing(tokens: Sequence[Token], open_idx: int) -> Optional[int]:
  """
  Finds the bracket closing the one at `open_idx`.

  Bracket kinds are not cross-checked; only nesting depth is tracked.

  Args:
      tokens: Significant tokens.
      open_idx: Index of an opening bracket.

  Returns:
      Optional[int]: Index of the matching closer, or None if input ends first.
  """
  depth = 0
  for idx in range(open_idx, len(tokens)):
    tk = tokens[idx]
    if tk.kind != TokenKind.OP:
      continue
    if tk.text in OPENERS:
      depth += 1
    elif tk.text in CLOSERS:
      depth -= 1
      if depth == 0:
        return idx
  return None


def match_receiver_call(tokens: Sequence[Token], idx: int) -> Optional[int]:
  """
  Matches a receiver-elision call ``. name ( ... )`` starting at `idx`.

  Args:
      tokens: Significant tokens.
      idx: Candidate position of the leading dot.

  Returns:
      Optional[int]: Index just past the closing parenthesis, or None.
  """
  dot, name, paren = _peek(tokens, idx), _peek(tokens, idx + 1), _peek(tokens, idx + 2)
  if dot is None or name is None or paren is None:
    return None
  if not (dot.is_op(Symbol.DOT) and name.kind == TokenKind.NAME and paren.is_op(Symbol.LPAREN)):
    return None
  close = find_closing(tokens, idx + 2)
  if close is None:
    return None
  return close + 1


def find_assignment(tokens: Sequence[Token], start: int = 0) -> Optional[int]:
  """
  Locates the first ``=`` at bracket depth zero.

  Comparison and augmented operators lex as distinct tokens and never match.

  Args:
      tokens: Significant tokens of one fragment.
      start: Index to begin scanning at.

  Returns:
      Optional[int]: Index of the ``=`` token, or None.
  """
  depth = 0
  for idx in range(start, len(tokens)):
    tk = tokens[idx]
    if tk.kind != TokenKind.OP:
      continue
    if tk.text in OPENERS:
      depth += 1
    elif tk.text in CLOSERS:
      depth = max(depth - 1, 0)
    elif tk.text == Symbol.EQUAL and depth == 0:
      return idx
  return None


def simple_names(tokens: Sequence[Token]) -> Tuple[str, ...]:
  """
  Returns the identifiers of a target built only from names and tuple syntax.

  Args:
      tokens: Tokens of a pattern or assignment target.

  Returns:
      Tuple[str, ...]: The names, or an empty tuple when the target contains
      anything else (attributes, subscripts, annotations).
  """
  names = []
  for tk in tokens:
    if tk.kind == TokenKind.NAME:
      names.append(tk.text)
    elif tk.kind == TokenKind.OP and tk.text in _SIMPLE_TARGET_OPS:
      continue
    else:
      return ()
  return tuple(dict.fromkeys(names))


class FragmentBuilder:
  """
  Slices `Fragment` objects out of the chain source.

  Attributes:
      text: The full chain source the tokens index into.
  """

  def __init__(self, text: str):
    self.text = text

  def span(self, tokens: Sequence[Token]) -> SourceSpan:
    first, last = tokens[0], tokens[-1]
    return SourceSpan(first.start, last.end, first.line, first.col)

  def fragment(self, tokens: Sequence[Token], anchor: Optional[Token] = None) -> Fragment:
    """
    Builds a fragment covering `tokens`.

    Args:
        tokens: Contiguous significant tokens. May be empty.
        anchor: Token the fragment follows; positions an empty fragment.

    Returns:
        Fragment: Text from the first token's start to the last token's end.
    """
    if not tokens:
      offset = anchor.end if anchor else 0
      line = anchor.line if anchor else 1
      col = anchor.col + len(anchor.text) if anchor else 1
      return Fragment("", SourceSpan(offset, offset, line, col))

    start, end = tokens[0].start, tokens[-1].end
    text = self.text[start:end]
    literal_lines: List[int] = []
    for tk in tokens:
      if tk.kind != TokenKind.STRING or "\n" not in tk.text:
        continue
      for mo in re.finditer("\n", tk.text):
        literal_lines.append(text.count("\n", 0, tk.start - start + mo.end()))
    return Fragment(text, self.span(tokens), tuple(literal_lines))


class DirectiveClassifier:
  """
  Tags raw fragments into the `Directive` variant set.

  Rules run in declaration order; the first one returning a directive wins,
  and `PassThrough` is the fallback.
  """

  def __init__(self, builder: FragmentBuilder):
    self.builder = builder
    self._rules: List[Callable[[Sequence[Token]], Optional[Directive]]] = [
      self._bare_call,
      self._let_call,
      self._assign_call,
    ]

  def classify(self, tokens: Sequence[Token]) -> Directive:
    """
    Classifies a single fragment.

    Args:
        tokens: Significant tokens of the fragment, terminator excluded.

    Returns:
        Directive: The tagged directive. Never raises.
    """
    for rule in self._rules:
      directive = rule(tokens)
      if directive is not None:
        logger.debug("Classified %r as %s", self.builder.span(tokens), directive.kind.value)
        return directive
    return PassThrough(self.builder.fragment(tokens))

  def _call_parts(self, tokens: Sequence[Token], dot_idx: int) -> Tuple[str, Fragment]:
    """Extracts method name and argument fragment of a call at `dot_idx`."""
    method = tokens[dot_idx + 1].text
    open_idx = dot_idx + 2
    close_idx = find_closing(tokens, open_idx)
    args = self.builder.fragment(tokens[open_idx + 1 : close_idx], anchor=tokens[open_idx])
    return method, args

  def _bare_call(self, tokens: Sequence[Token]) -> Optional[Directive]:
    if match_receiver_call(tokens, 0) != len(tokens):
      return None
    method, args = self._call_parts(tokens, 0)
    return BareCall(method, args, self.builder.span(tokens))

  def _let_call(self, tokens: Sequence[Token]) -> Optional[Directive]:
    if not tokens or not tokens[0].is_name(LET_KEYWORD):
      return None
    eq_idx = find_assignment(tokens, 1)
    if eq_idx is None or eq_idx < 2:
      return None
    if match_receiver_call(tokens, eq_idx + 1) != len(tokens):
      return None
    pattern_tokens = tokens[1:eq_idx]
    method, args = self._call_parts(tokens, eq_idx + 1)
    return LetCall(
      self.builder.fragment(pattern_tokens),
      method,
      args,
      self.builder.span(tokens),
      bound_names=simple_names(pattern_tokens),
    )

  def _assign_call(self, tokens: Sequence[Token]) -> Optional[Directive]:
    eq_idx = find_assignment(tokens)
    if eq_idx is None or eq_idx < 1:
      return None
    if match_receiver_call(tokens, eq_idx + 1) != len(tokens):
      return None
    target_tokens = tokens[:eq_idx]
    method, args = self._call_parts(tokens, eq_idx + 1)
    return AssignCall(
      self.builder.fragment(target_tokens),
      method,
      args,
      self.builder.span(tokens),
      target_names=simple_names(target_tokens),
    )
