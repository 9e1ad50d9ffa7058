from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional


class TinyError(Exception):
    """Base class for expression language errors."""


class TinyTokenizeError(TinyError):
    """Raised when the input contains a character that cannot start or extend a token."""

    def __init__(self, character: str, position: int, reason: str = "") -> None:
        message = f"tokenization failure at character '{character}' (position {position})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.character = character
        self.position = position


# Token kinds. CONSUMABLE, WS, HEX, BIN and UNDEF only exist while scanning;
# they never appear in the token list returned by the lexer.
SYMBOL = "SYMBOL"
NUMBER = "NUMBER"
STRING = "STRING"
EQUAL = "EQUAL"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
MUL = "MUL"
PLUS = "PLUS"
MINUS = "MINUS"
DIV = "DIV"
CONCAT = "CONCAT"
COMMA = "COMMA"
HEX = "HEX"
BIN = "BIN"
CONSUMABLE = "CONSUMABLE"
WS = "WS"
UNDEF = "UNDEF"

SYMBOLS = {
    "=": EQUAL,
    "(": LPAREN,
    ")": RPAREN,
    "*": MUL,
    "+": PLUS,
    "-": MINUS,
    "/": DIV,
    ",": COMMA,
}

WHITESPACE = " \t\r\n"
DIGITS = "0123456789"
HEX_LETTERS = "abcdefABCDEF"
SYMBOL_CHARS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_"

# Digit alphabet accepted while a radix restriction is active.
RADIX_DIGITS = {
    HEX: DIGITS + HEX_LETTERS,
    BIN: "01",
}


@dataclass
class Token:
    kind: str
    text: str
    position: int
    restriction: Optional[str] = None


class Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.index = 0
        self.tokens: List[Token] = []
        # The run being accumulated. Its text is only sliced out of the
        # source once the run closes.
        self._run_kind: Optional[str] = None
        self._run_start = 0
        self._restriction: Optional[str] = None
        self._pending_pipe: Optional[int] = None

    def tokenize(self) -> List[Token]:
        text = self.text
        n = len(text)
        _classify = self._classify

        while self.index < n:
            ch = text[self.index]
            kind = _classify(ch)
            if self._pending_pipe is not None and kind != CONCAT:
                raise TinyTokenizeError("|", self._pending_pipe, "unmatched '|'")
            if kind == UNDEF:
                raise TinyTokenizeError(ch, self.index)
            if kind == CONCAT:
                self._emit(CONCAT, "||", self._pending_pipe)
                self._pending_pipe = None
            elif kind == CONSUMABLE:
                self._close_run()
                self._pending_pipe = self.index
            elif kind == WS:
                self._close_run()
            elif kind == HEX or kind == BIN:
                # 0x / 0b: the digits read so far were only the marker's zero
                self._restriction = kind
                self._run_kind = NUMBER
                self._run_start = self.index + 1
            elif kind == STRING:
                self._close_run()
                self._consume_string()
                continue
            elif kind == SYMBOL or kind == NUMBER:
                if kind != self._run_kind:
                    self._close_run()
                    self._run_kind = kind
                    self._run_start = self.index
            else:
                self._close_run()
                self._emit(kind, ch, self.index)
            self.index += 1

        if self._pending_pipe is not None:
            raise TinyTokenizeError("|", self._pending_pipe, "unmatched '|'")
        self._close_run()
        return self.tokens

    def _classify(self, ch: str) -> str:
        if ch == "|":
            return CONCAT if self._pending_pipe is not None else CONSUMABLE
        if ch in SYMBOLS:
            return SYMBOLS[ch]
        if ch in WHITESPACE:
            return WS
        if self._restriction is not None:
            return NUMBER if ch in RADIX_DIGITS[self._restriction] else UNDEF
        run = self._run_kind
        if ch == '"':
            return STRING
        if run == NUMBER and ch in "xb" and self.text[self.index - 1] == "0":
            return HEX if ch == "x" else BIN
        if ch in DIGITS:
            return SYMBOL if run == SYMBOL else NUMBER
        if run == NUMBER and ch in HEX_LETTERS:
            # lenient: 1f is a number, the backend decides what it means
            return NUMBER
        if ch in SYMBOL_CHARS:
            return SYMBOL
        return UNDEF

    def _close_run(self) -> None:
        if self._run_kind is None:
            return
        value = self.text[self._run_start:self.index]
        restriction = self._restriction
        if restriction == BIN and value == "":
            raise TinyTokenizeError("b", self._run_start - 1, "'0b' requires binary digits")
        self._emit(self._run_kind, value, self._run_start, restriction)
        self._run_kind = None
        self._restriction = None

    def _consume_string(self) -> None:
        start = self.index
        end = self.text.find('"', start + 1)
        if end < 0:
            raise TinyTokenizeError('"', start, "unterminated string literal")
        self._emit(STRING, self.text[start:end + 1], start)
        self.index = end + 1

    def _emit(self, kind: str, value: str, position: int, restriction: Optional[str] = None) -> None:
        self.tokens.append(Token(kind, value, position, restriction))


def tokenize(text: str) -> List[Token]:
    return Lexer(text).tokenize()


def format_tokens(tokens: List[Token]) -> str:
    lines: List[str] = []
    for token in tokens:
        kind = token.kind.lower()
        if token.restriction is not None:
            kind = f"{token.restriction.lower()}:{kind}"
        lines.append(f"[{kind} {token.text}]")
    return "\n".join(lines)
