"""
Chain Lexer.

Regex-based tokenizer for Python-flavoured chain text. It recognises just
enough of Python's lexical grammar (names, numbers, string literals including
triple-quoted and prefixed forms, operators, comments) to find fragment
boundaries reliably; it never interprets what the tokens mean.

The lexer is total: characters it cannot place (a stray ``$``, an unterminated
quote) become `ERROR` tokens and are carried along inside whatever fragment
contains them.
"""

import bisect
import re
from typing import Generator, List

from with_chain.core.tokens import Token, TokenKind

_STRING_BODY = (
  r"'''[\s\S]*?(?<!\\)(?:\\\\)*'''"
  r'|"""[\s\S]*?(?<!\\)(?:\\\\)*"""'
  r"|'(?:[^'\\\n]|\\[\s\S])*'"
  r'|"(?:[^"\\\n]|\\[\s\S])*"'
)

_OPERATORS = [
  r"\*\*=",
  r"//=",
  r">>=",
  r"<<=",
  r"->",
  r":=",
  r"==",
  r"!=",
  r"<=",
  r">=",
  r"\+=",
  r"-=",
  r"\*=",
  r"/=",
  r"%=",
  r"&=",
  r"\|=",
  r"\^=",
  r"@=",
  r"\*\*",
  r"//",
  r"<<",
  r">>",
  r"[-+*/%@&|^~<>=.,:;()\[\]{}!]",
]


class Tokenizer:
  PATTERN_DEFS = [
    (TokenKind.COMMENT, r"#[^\r\n]*"),
    (TokenKind.STRING, rf"(?:[rRbBuUfF]{{1,2}})?(?:{_STRING_BODY})"),
    (TokenKind.NAME, r"[^\W\d]\w*"),
    (
      TokenKind.NUMBER,
      r"0[xXoObB][0-9a-fA-F_]+|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?[jJ]?",
    ),
    (TokenKind.ARROW, r"=>"),
    (TokenKind.OP, "|".join(_OPERATORS)),
    (TokenKind.NEWLINE, r"\r?\n"),
    (TokenKind.WHITESPACE, r"[ \t\f]+|\\\r?\n"),
    (TokenKind.ERROR, r"."),
  ]

  _REGEX = re.compile("|".join(f"(?P<{kind.value}>{pattern})" for kind, pattern in PATTERN_DEFS))

  def __init__(self, text: str):
    self.text = text
    self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]

  def position(self, offset: int) -> tuple:
    """
    Converts a character offset into a 1-based (line, column) pair.

    Args:
        offset: Index into the source text.

    Returns:
        tuple: (line, column).
    """
    line_idx = bisect.bisect_right(self._line_starts, offset) - 1
    return line_idx + 1, offset - self._line_starts[line_idx] + 1

  def tokenize(self) -> Generator[Token, None, None]:
    for mo in self._REGEX.finditer(self.text):
      kind = TokenKind(mo.lastgroup)
      line, col = self.position(mo.start())
      yield Token(kind, mo.group(), mo.start(), mo.end(), line, col)
    line, col = self.position(len(self.text))
    yield Token(TokenKind.EOF, "", len(self.text), len(self.text), line, col)


def tokenize(text: str) -> List[Token]:
  """
  Lexes chain text into a token list terminated by an `EOF` token.

  Args:
      text: Raw chain source.

  Returns:
      List[Token]: All tokens, trivia included.
  """
  return list(Tokenizer(text).tokenize())
