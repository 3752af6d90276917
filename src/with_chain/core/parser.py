"""
Chain Parser.

Turns chain text into a `Chain` in two stages:

1.  **Header**: everything before the first top-level ``=>`` is the receiver
    initializer, optionally preceded by the ``mut`` marker.
2.  **Splitting**: the remaining tokens are cut into raw fragments. A
    receiver-elision call ``.name(...)`` is a fragment on its own (a following
    ``;`` is absorbed); any other fragment runs to the next top-level ``;`` or
    to the end of input.

Each raw fragment is then handed to the `DirectiveClassifier`.

Only the header can fail to parse. Directive text is never rejected.
"""

import logging
from typing import Iterator, List, Sequence

from with_chain.core.classifier import DirectiveClassifier, FragmentBuilder, match_receiver_call
from with_chain.core.errors import ChainSyntaxError
from with_chain.core.lexer import Tokenizer
from with_chain.core.nodes import Binding, Chain, SourceSpan
from with_chain.core.tokens import (
  CLOSERS,
  MUT_MARKER,
  OPENERS,
  TRIVIA,
  Symbol,
  Token,
  TokenKind,
)

logger = logging.getLogger(__name__)

# Tokens that may begin the initializer after a `mut` marker.
_EXPRESSION_STARTERS = {"(", "[", "{", "-", "+", "~"}
# Names that continue an expression rather than start one: `mut and x` uses `mut` as a value.
_INFIX_KEYWORDS = {"and", "or", "if", "else", "in", "is", "for", "not"}


class ChainParser:
  """
  Parser for the chain grammar.

  Attributes:
      text: The chain source.
      tokens: Significant tokens (trivia removed), terminated by `EOF`.
  """

  def __init__(self, text: str):
    self.text = text
    self.tokenizer = Tokenizer(text)
    self.tokens: List[Token] = [tk for tk in self.tokenizer.tokenize() if tk.kind not in TRIVIA]
    self.builder = FragmentBuilder(text)
    self.classifier = DirectiveClassifier(self.builder)

  def parse(self) -> Chain:
    """
    Parses the whole chain.

    Returns:
        Chain: The binding and its classified directives.

    Raises:
        ChainSyntaxError: If the header is missing its ``=>`` or initializer.
    """
    binding, body_start = self.parse_header()
    directives = tuple(self.classifier.classify(raw) for raw in self.split(body_start))
    logger.debug("Parsed chain with %d directive(s)", len(directives))
    return Chain(binding=binding, directives=directives, source=self.text)

  def parse_header(self) -> tuple:
    """
    Parses ``["mut"] initializer "=>"``.

    Returns:
        tuple: The `Binding` and the index of the first body token.

    Raises:
        ChainSyntaxError: If there is no top-level ``=>`` or no initializer.
    """
    arrow_idx = self._find_arrow()
    if arrow_idx is None:
      eof = self.tokens[-1]
      raise ChainSyntaxError(
        f"expected '{Symbol.ARROW.value}' after the receiver initializer",
        SourceSpan(eof.start, eof.end, eof.line, eof.col),
      )

    header = self.tokens[:arrow_idx]
    mutable = self._has_mut_marker(header)
    if mutable:
      header = header[1:]

    if not header:
      arrow = self.tokens[arrow_idx]
      raise ChainSyntaxError(
        "missing receiver initializer",
        SourceSpan(arrow.start, arrow.end, arrow.line, arrow.col),
      )

    return Binding(initializer=self.builder.fragment(header), mutable=mutable), arrow_idx + 1

  def split(self, start: int) -> Iterator[Sequence[Token]]:
    """
    Cuts body tokens into raw fragments, terminators excluded.

    Args:
        start: Index of the first body token.

    Yields:
        Sequence[Token]: One non-empty fragment at a time, in source order.
    """
    tokens = self.tokens
    idx = start
    while tokens[idx].kind != TokenKind.EOF:
      if tokens[idx].is_op(Symbol.SEMI):
        logger.debug("Dropping empty fragment at %d:%d", tokens[idx].line, tokens[idx].col)
        idx += 1
        continue

      call_end = match_receiver_call(tokens, idx)
      if call_end is not None:
        yield tokens[idx:call_end]
        idx = call_end + 1 if tokens[call_end].is_op(Symbol.SEMI) else call_end
        continue

      end = self._find_terminator(idx)
      yield tokens[idx:end]
      idx = end + 1 if tokens[end].is_op(Symbol.SEMI) else end

  def _find_terminator(self, start: int) -> int:
    """Index of the next top-level ``;``, or of `EOF`."""
    depth = 0
    idx = start
    while self.tokens[idx].kind != TokenKind.EOF:
      tk = self.tokens[idx]
      if tk.kind == TokenKind.OP:
        if tk.text in OPENERS:
          depth += 1
        elif tk.text in CLOSERS:
          depth = max(depth - 1, 0)
        elif tk.text == Symbol.SEMI and depth == 0:
          return idx
      idx += 1
    return idx

  def _find_arrow(self):
    depth = 0
    for idx, tk in enumerate(self.tokens):
      if tk.kind == TokenKind.ARROW and depth == 0:
        return idx
      if tk.kind == TokenKind.OP:
        if tk.text in OPENERS:
          depth += 1
        elif tk.text in CLOSERS:
          depth = max(depth - 1, 0)
    return None

  def _has_mut_marker(self, header: Sequence[Token]) -> bool:
    """
    Decides whether a leading ``mut`` is the mutability marker.

    ``mut`` is a marker only when whitespace separates it from a token that
    can start an expression; ``mut(x)``, ``mut.copy()`` and a lone ``mut``
    are ordinary expressions.
    """
    if len(header) < 2 or not header[0].is_name(MUT_MARKER):
      return False
    first, nxt = header[0], header[1]
    if nxt.start == first.end:
      return False
    if nxt.kind == TokenKind.NAME:
      return nxt.text not in _INFIX_KEYWORDS
    if nxt.kind in (TokenKind.NUMBER, TokenKind.STRING):
      return True
    return nxt.kind == TokenKind.OP and nxt.text in _EXPRESSION_STARTERS


def parse_chain(text: str) -> Chain:
  """
  Parses chain text.

  Args:
      text: Chain source, e.g. ``"mut [] => .append(1) .append(2)"``.

  Returns:
      Chain: The parsed chain.

  Raises:
      ChainSyntaxError: If the binding header cannot be recognised.
  """
  return ChainParser(text).parse()
