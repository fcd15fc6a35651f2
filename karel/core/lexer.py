"""Tokenizer for Karel source text."""

from __future__ import annotations

import re
from dataclasses import dataclass

from karel.core.exceptions import CompileError, CompileErrorKind

KEYWORDS = {
    "function",
    "void",
    "if",
    "else",
    "while",
    "do",
    "repeat",
}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    line: int
    col: int


TOKEN_RE = re.compile(
    r"""
    (?P<COMMENT>//[^\n]*)
  | (?P<BLOCK_COMMENT>/\*.*?\*/)
  | (?P<UNTERMINATED>/\*)
  | (?P<NUMBER>\d+)
  | (?P<OP>&&|\|\||[!(){};,])
  | (?P<ID>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<NEWLINE>\n)
  | (?P<SKIP>[ \t\r\f]+)
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE | re.DOTALL,
)


def tokenize(source: str) -> list[Token]:
    """Split source into tokens, ending with a single EOF token.

    Raises:
        CompileError: SYNTAX_ERROR on characters outside the language or an
            unterminated block comment
    """
    line = 1
    col = 1
    pos = 0
    tokens: list[Token] = []
    while pos < len(source):
        m = TOKEN_RE.match(source, pos)
        kind = m.lastgroup or "MISMATCH"
        value = m.group(0)
        if kind in {"SKIP", "COMMENT"}:
            col += len(value)
        elif kind == "BLOCK_COMMENT":
            newlines = value.count("\n")
            if newlines:
                line += newlines
                col = len(value) - value.rfind("\n")
            else:
                col += len(value)
        elif kind == "NEWLINE":
            line += 1
            col = 1
        elif kind == "UNTERMINATED":
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR, "unterminated comment", line, col
            )
        elif kind == "MISMATCH":
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR, f"unexpected character {value!r}", line, col
            )
        else:
            if kind == "ID" and value in KEYWORDS:
                kind = "KW"
            tokens.append(Token(kind, value, line, col))
            col += len(value)
        pos = m.end()
    tokens.append(Token("EOF", "", line, col))
    return tokens
