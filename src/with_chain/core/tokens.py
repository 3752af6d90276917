"""
Chain Token Definitions.

Defines the token kinds produced by the lexer and the punctuation the parser
and classifier dispatch on.
"""

from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
  """Enumeration of Lexer Token Types."""

  COMMENT = "COMMENT"
  STRING = "STRING"
  NUMBER = "NUMBER"
  NAME = "NAME"
  ARROW = "ARROW"
  OP = "OP"
  NEWLINE = "NEWLINE"
  WHITESPACE = "WHITESPACE"
  ERROR = "ERROR"
  EOF = "EOF"


class Symbol(str, Enum):
  """Punctuation with a grammatical role in a chain."""

  DOT = "."
  LPAREN = "("
  RPAREN = ")"
  LBRACKET = "["
  RBRACKET = "]"
  LBRACE = "{"
  RBRACE = "}"
  COMMA = ","
  STAR = "*"
  EQUAL = "="
  SEMI = ";"
  ARROW = "=>"


OPENERS = {Symbol.LPAREN.value, Symbol.LBRACKET.value, Symbol.LBRACE.value}
CLOSERS = {Symbol.RPAREN.value, Symbol.RBRACKET.value, Symbol.RBRACE.value}

# Trivia is dropped before splitting; its text survives inside fragment slices.
TRIVIA = {TokenKind.COMMENT, TokenKind.NEWLINE, TokenKind.WHITESPACE}

MUT_MARKER = "mut"
LET_KEYWORD = "let"


@dataclass(frozen=True)
class Token:
  """
  A lexical unit of chain text.

  Attributes:
      kind: Token type.
      text: Raw text.
      start: Offset of the first character in the source.
      end: Offset one past the last character.
      line: 1-based line number.
      col: 1-based column number.
  """

  kind: TokenKind
  text: str
  start: int
  end: int
  line: int
  col: int

  def is_op(self, symbol: str) -> bool:
    return self.kind == TokenKind.OP and self.text == symbol

  def is_name(self, value: str) -> bool:
    return self.kind == TokenKind.NAME and self.text == value
