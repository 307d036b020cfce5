#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from psmb_errors import structural_error


# ==========================
# Tokens and scanner
# ==========================

class TokenKind(Enum):
    # Special
    EOF = auto()
    NEWLINE = auto()
    COMMENT = auto()  # "# ..." or "<# ... #>"

    WORD = auto()  # bareword: command, type or member name, e.g. Get-Item, System.IO
    VARIABLE = auto()  # $name, $script:name, ${any name}, $_
    SPLAT = auto()  # @name
    PARAMETER = auto()  # -Name
    NUMBER = auto()  # 42, -7, 0x1F, 1.5, 10kb
    STRING = auto()  # '...', "...", here-strings

    # Keywords (case-insensitive)
    FUNCTION = auto()  # function, filter, workflow
    CLASS = auto()
    ENUM = auto()
    PARAM = auto()
    USING = auto()

    # Punctuation / operators
    LBRACE = auto()  # {
    RBRACE = auto()  # }
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    AT_PAREN = auto()  # @(
    AT_BRACE = auto()  # @{
    DOLLAR_PAREN = auto()  # $(
    COMMA = auto()  # ,
    SEMI = auto()  # ;
    EQ = auto()  # =
    COLON = auto()  # :
    DOUBLE_COLON = auto()  # ::
    DOT = auto()  # .
    PIPE = auto()  # |
    OPERATOR = auto()  # anything else


KEYWORDS = {
    "function": TokenKind.FUNCTION,
    "filter": TokenKind.FUNCTION,
    "workflow": TokenKind.FUNCTION,
    "class": TokenKind.CLASS,
    "enum": TokenKind.ENUM,
    "param": TokenKind.PARAM,
    "using": TokenKind.USING,
}

OPENERS = {
    TokenKind.LBRACE, TokenKind.LPAREN, TokenKind.LBRACKET,
    TokenKind.AT_PAREN, TokenKind.AT_BRACE, TokenKind.DOLLAR_PAREN,
}
CLOSERS = {TokenKind.RBRACE, TokenKind.RPAREN, TokenKind.RBRACKET}

# After these, a '-' followed by a digit starts a negative number literal.
_UNARY_CONTEXT = {
    None, TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.EQ, TokenKind.COMMA,
    TokenKind.LPAREN, TokenKind.AT_PAREN, TokenKind.LBRACE, TokenKind.AT_BRACE,
    TokenKind.OPERATOR, TokenKind.PIPE,
}


@dataclass
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int
    start: int  # offset of the first character
    end: int  # offset one past the last character
    value: Optional[str] = None  # unquoted content of string literals

    def __repr__(self) -> str:
        return f"{self.text!r}" if self.kind != TokenKind.EOF else "end-of-file"

    def is_word(self, text: str) -> bool:
        return self.kind is TokenKind.WORD and self.text.casefold() == text.casefold()


def is_requires_comment(tok: Token) -> bool:
    return tok.kind is TokenKind.COMMENT and tok.text[:9].casefold() == "#requires" and (
        len(tok.text) == 9 or tok.text[9].isspace()
    )


class Scanner:
    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.length = len(source)
        self.index = 0
        self.line = 1
        self.column = 1
        self._prev_kind: Optional[TokenKind] = None

    # --- low-level char utilities ---

    def _at_end(self) -> bool:
        return self.index >= self.length

    def _peek(self) -> str:
        if self._at_end():
            return "\0"
        return self.source[self.index]

    def _peek_next(self) -> str:
        if self.index + 1 >= self.length:
            return "\0"
        return self.source[self.index + 1]

    def _advance(self) -> str:
        c = self._peek()
        if not self._at_end():
            self.index += 1
            if c == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return c

    def _error(self, message: str, line: int, column: int, start: int):
        return structural_error(
            message,
            filename=self.filename,
            line=line,
            column=column,
            text=self.source[start:start + 80],
        )

    # --- main API ---

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            tok = self._next_token()
            tokens.append(tok)
            if tok.kind not in (TokenKind.COMMENT,):
                self._prev_kind = tok.kind
            if tok.kind is TokenKind.EOF:
                break
        return tokens

    def _make(self, kind: TokenKind, start: int, line: int, col: int, value: Optional[str] = None) -> Token:
        return Token(kind, self.source[start:self.index], line, col, start, self.index, value)

    def _next_token(self) -> Token:
        self._skip_ws()
        start, line, col = self.index, self.line, self.column

        if self._at_end():
            return Token(TokenKind.EOF, "", line, col, start, start)

        c = self._advance()

        if c == "\n":
            return self._make(TokenKind.NEWLINE, start, line, col)

        # comments
        if c == "#":
            while self._peek() not in ("\n", "\0"):
                self._advance()
            return Token(TokenKind.COMMENT, self.source[start:self.index].rstrip("\r"), line, col, start, self.index)
        if c == "<" and self._peek() == "#":
            self._advance()
            while True:
                if self._at_end():
                    raise self._error("[SCN-0030] unterminated block comment", line, col, start)
                if self._peek() == "#" and self._peek_next() == ">":
                    self._advance()
                    self._advance()
                    break
                self._advance()
            return self._make(TokenKind.COMMENT, start, line, col)

        if c == "$":
            return self._read_dollar(start, line, col)

        if c == "@":
            nxt = self._peek()
            if nxt == "(":
                self._advance()
                return self._make(TokenKind.AT_PAREN, start, line, col)
            if nxt == "{":
                self._advance()
                return self._make(TokenKind.AT_BRACE, start, line, col)
            if nxt in ("'", '"') and self._here_string_opens():
                return self._read_here_string(start, line, col)
            if nxt.isalnum() or nxt == "_":
                while self._peek().isalnum() or self._peek() == "_":
                    self._advance()
                return self._make(TokenKind.SPLAT, start, line, col)
            return self._make(TokenKind.OPERATOR, start, line, col)

        if c == "'":
            value = self._read_single_quoted(start, line, col)
            return self._make(TokenKind.STRING, start, line, col, value)
        if c == '"':
            value = self._read_double_quoted(start, line, col)
            return self._make(TokenKind.STRING, start, line, col, value)

        if c.isdigit():
            self._read_number(c)
            return self._make(TokenKind.NUMBER, start, line, col)

        if c == "-":
            nxt = self._peek()
            if nxt.isdigit() and self._prev_kind in _UNARY_CONTEXT:
                self._read_number(self._advance())
                return self._make(TokenKind.NUMBER, start, line, col)
            if nxt.isalpha() or nxt == "_":
                while self._peek().isalnum() or self._peek() in ("_", "-"):
                    self._advance()
                return self._make(TokenKind.PARAMETER, start, line, col)
            if nxt in ("=", "-"):
                self._advance()
            return self._make(TokenKind.OPERATOR, start, line, col)

        # barewords / keywords
        if c.isalpha() or c == "_":
            while self._peek().isalnum() or self._peek() in ("_", "-", ".", "\\"):
                self._advance()
            tok = self._make(TokenKind.WORD, start, line, col)
            tok.kind = KEYWORDS.get(tok.text.casefold(), TokenKind.WORD)
            return tok

        simple = {
            "{": TokenKind.LBRACE,
            "}": TokenKind.RBRACE,
            "(": TokenKind.LPAREN,
            ")": TokenKind.RPAREN,
            "[": TokenKind.LBRACKET,
            "]": TokenKind.RBRACKET,
            ",": TokenKind.COMMA,
            ";": TokenKind.SEMI,
            ".": TokenKind.DOT,
            "|": TokenKind.PIPE,
        }
        if c in simple:
            return self._make(simple[c], start, line, col)

        if c == ":":
            if self._peek() == ":":
                self._advance()
                return self._make(TokenKind.DOUBLE_COLON, start, line, col)
            return self._make(TokenKind.COLON, start, line, col)

        if c == "=":
            return self._make(TokenKind.EQ, start, line, col)

        if c in "+*/%" and self._peek() == "=":
            self._advance()
        return self._make(TokenKind.OPERATOR, start, line, col)

    def _read_dollar(self, start: int, line: int, col: int) -> Token:
        nxt = self._peek()
        if nxt == "(":
            self._advance()
            return self._make(TokenKind.DOLLAR_PAREN, start, line, col)
        if nxt == "{":
            self._advance()
            while self._peek() != "}":
                if self._at_end():
                    raise self._error("[SCN-0040] unterminated braced variable name", line, col, start)
                if self._peek() == "`":
                    self._advance()
                self._advance()
            self._advance()
            return self._make(TokenKind.VARIABLE, start, line, col)
        if nxt in ("_", "$", "?", "^") and not (nxt == "_" and (self._peek_next().isalnum() or self._peek_next() == "_")):
            self._advance()
            return self._make(TokenKind.VARIABLE, start, line, col)
        if nxt.isalnum() or nxt == "_":
            while True:
                ch = self._peek()
                if ch.isalnum() or ch == "_":
                    self._advance()
                elif ch == ":" and (self._peek_next().isalnum() or self._peek_next() == "_"):
                    self._advance()
                else:
                    break
            return self._make(TokenKind.VARIABLE, start, line, col)
        return self._make(TokenKind.OPERATOR, start, line, col)

    def _read_single_quoted(self, start: int, line: int, col: int) -> str:
        chars: List[str] = []
        while True:
            if self._at_end():
                raise self._error("[SCN-0010] unterminated string literal", line, col, start)
            ch = self._advance()
            if ch == "'":
                if self._peek() == "'":
                    chars.append(self._advance())
                    continue
                break
            chars.append(ch)
        return "".join(chars)

    def _read_double_quoted(self, start: int, line: int, col: int) -> str:
        chars: List[str] = []
        while True:
            if self._at_end():
                raise self._error("[SCN-0010] unterminated string literal", line, col, start)
            ch = self._advance()
            if ch == "`":
                chars.append(ch)
                if not self._at_end():
                    chars.append(self._advance())
                continue
            if ch == '"':
                if self._peek() == '"':
                    chars.append(self._advance())
                    continue
                break
            if ch == "$" and self._peek() == "(":
                sub_start = self.index - 1
                self._advance()
                self._skip_subexpression(start, line, col)
                chars.append(self.source[sub_start:self.index])
                continue
            chars.append(ch)
        return "".join(chars)

    def _skip_subexpression(self, start: int, line: int, col: int) -> None:
        depth = 1
        while depth > 0:
            if self._at_end():
                raise self._error("[SCN-0010] unterminated string literal", line, col, start)
            ch = self._advance()
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            elif ch == "'":
                self._read_single_quoted(start, line, col)
            elif ch == '"':
                self._read_double_quoted(start, line, col)
            elif ch == "`":
                self._advance()

    def _here_string_opens(self) -> bool:
        # @' or @" must be followed by the end of the line
        i = self.index + 1
        while i < self.length and self.source[i] in (" ", "\t"):
            i += 1
        return i >= self.length or self.source[i] in ("\r", "\n")

    def _read_here_string(self, start: int, line: int, col: int) -> Token:
        quote = self._advance()
        while self._peek() != "\n":
            if self._at_end():
                raise self._error("[SCN-0020] unterminated here-string", line, col, start)
            self._advance()
        self._advance()
        body_start = self.index
        while True:
            if self._at_end():
                raise self._error("[SCN-0020] unterminated here-string", line, col, start)
            if self.column == 1 and self._peek() == quote and self._peek_next() == "@":
                body = self.source[body_start:self.index]
                self._advance()
                self._advance()
                break
            self._advance()
        body = body[:-1] if body.endswith("\n") else body
        return self._make(TokenKind.STRING, start, line, col, body.rstrip("\r"))

    def _read_number(self, first: str) -> None:
        if first == "0" and self._peek() in ("x", "X"):
            self._advance()
            while self._peek() in "0123456789abcdefABCDEF":
                self._advance()
        else:
            while self._peek().isdigit():
                self._advance()
            if self._peek() == "." and self._peek_next().isdigit():
                self._advance()
                while self._peek().isdigit():
                    self._advance()
        # type / multiplier suffixes: 1l, 10kb, 2.5d
        while self._peek().isalpha():
            self._advance()

    def _skip_ws(self) -> None:
        while True:
            c = self._peek()
            if c in (" ", "\t", "\r", "\f", "\v", "\ufeff", "\u00a0"):
                self._advance()
                continue
            if c == "`" and self._peek_next() in ("\n", "\r"):
                # line continuation
                self._advance()
                if self._peek() == "\r":
                    self._advance()
                if self._peek() == "\n":
                    self._advance()
                continue
            break
