from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from lexer import (
    BIN,
    COMMA,
    CONCAT,
    DIV,
    EQUAL,
    HEX,
    LPAREN,
    MINUS,
    MUL,
    NUMBER,
    PLUS,
    RPAREN,
    STRING,
    SYMBOL,
    TinyError,
    Token,
    tokenize,
)


class TinySyntaxError(TinyError):
    """Raised when no grammar alternative matches, or tokens remain after the expression."""

    def __init__(self, message: str, token: Optional[Token] = None) -> None:
        super().__init__(message)
        self.message = message
        self.token = token


BINARY_OPERATORS = (PLUS, MINUS, MUL, DIV, CONCAT)
LITERAL_KINDS = (SYMBOL, NUMBER, STRING)


@dataclass
class Node:
    pass


@dataclass
class Variable(Node):
    name: str


@dataclass
class Literal(Node):
    kind: str
    restriction: Optional[str]
    text: str

    @classmethod
    def from_token(cls, token: Token, restriction: Optional[str] = None) -> "Literal":
        text = token.text
        if token.kind == STRING:
            text = text[1:-1]
        return cls(kind=token.kind, restriction=restriction, text=text)


@dataclass
class Assignment(Node):
    name: str
    value: Node


@dataclass
class ArgumentList(Node):
    items: List[Node]
    # Filled in by evaluate_all(); meaningless before that.
    results: List[Any] = field(default_factory=list, compare=False, repr=False)


@dataclass
class Call(Node):
    name: str
    args: ArgumentList


@dataclass
class BinaryOp(Node):
    op: str
    lhs: Node
    rhs: Node


# A successful alternative yields the node and the index of the first
# unconsumed token; a failed one yields None and consumes nothing.
Match = Optional[Tuple[Node, int]]


class Parser:
    """Backtracking recursive-descent parser over a token list.

    Every ``_parse_*`` method takes the index to start from and returns a
    ``Match``. Alternatives never move a shared cursor, so a failed attempt
    leaves nothing behind: the partial nodes it built are simply dropped.

    Binary chains have no precedence and associate to the right, so
    ``2*3+4`` parses as ``2*(3+4)``.
    """

    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens

    def parse(self) -> Node:
        if not self.tokens:
            raise TinySyntaxError("empty expression")
        try:
            match = self._parse_expression(0, allow_binary=True, allow_assignment=True)
        except RecursionError:
            raise TinySyntaxError(
                f"expression nested too deeply (starting at position {self.tokens[0].position})",
                token=self.tokens[0],
            ) from None
        if match is None:
            raise self._error_at(0)
        node, index = match
        if index < len(self.tokens):
            raise self._error_at(index)
        return node

    def _parse_expression(self, index: int, *, allow_binary: bool = True, allow_assignment: bool = False) -> Match:
        # The binary form starts with the same non-binary operand the
        # remaining alternatives would produce, so it is parsed only once.
        operand = self._parse_operand(index)
        if allow_binary and operand is not None:
            match = self._parse_binary(operand)
            if match is not None:
                return match
        if allow_assignment:
            match = self._parse_assignment(index)
            if match is not None:
                return match
        return operand

    def _parse_operand(self, index: int) -> Match:
        for alternative in (
            self._parse_call,
            self._parse_parenthesized,
            self._parse_variable,
            self._parse_restricted,
            self._parse_value,
        ):
            match = alternative(index)
            if match is not None:
                return match
        return None

    def _parse_variable(self, index: int) -> Match:
        token = self._peek(index)
        if token is None or token.kind != SYMBOL:
            return None
        return Variable(name=token.text), index + 1

    def _parse_value(self, index: int) -> Match:
        token = self._peek(index)
        if token is None or token.kind not in LITERAL_KINDS or token.restriction is not None:
            return None
        return Literal.from_token(token), index + 1

    def _parse_restricted(self, index: int) -> Match:
        token = self._peek(index)
        if token is None or token.kind != NUMBER or token.restriction not in (HEX, BIN):
            return None
        # The lexer already rejects an empty 0b run; an empty 0x run is a
        # legal empty hex value.
        return Literal.from_token(token, token.restriction), index + 1

    def _parse_assignment(self, index: int) -> Match:
        # SYMBOL '=' expression
        if not self._kind_at(index, SYMBOL) or not self._kind_at(index + 1, EQUAL):
            return None
        match = self._parse_expression(index + 2)
        if match is None:
            return None
        value, end = match
        return Assignment(name=self.tokens[index].text, value=value), end

    def _parse_parenthesized(self, index: int) -> Match:
        # '(' expression ')'
        if not self._kind_at(index, LPAREN):
            return None
        match = self._parse_expression(index + 1)
        if match is None:
            return None
        inner, end = match
        if not self._kind_at(end, RPAREN):
            return None
        return inner, end + 1

    def _parse_call(self, index: int) -> Match:
        # SYMBOL '(' [argument-list] ')'
        if not self._kind_at(index, SYMBOL) or not self._kind_at(index + 1, LPAREN):
            return None
        end = index + 2
        args = ArgumentList(items=[])
        match = self._parse_argument_list(end)
        if match is not None:
            args, end = match
        if not self._kind_at(end, RPAREN):
            return None
        return Call(name=self.tokens[index].text, args=args), end + 1

    def _parse_argument_list(self, index: int) -> Optional[Tuple[ArgumentList, int]]:
        # expression (',' expression)*; a trailing ',' just ends the list
        items: List[Node] = []
        while True:
            match = self._parse_expression(index)
            if match is None:
                break
            item, index = match
            items.append(item)
            if not self._kind_at(index, COMMA):
                break
            index += 1
        if not items:
            return None
        return ArgumentList(items=items), index

    def _parse_binary(self, operand: Tuple[Node, int]) -> Match:
        # non-binary-expression OPERATOR expression
        lhs, end = operand
        token = self._peek(end)
        if token is None or token.kind not in BINARY_OPERATORS:
            return None
        match = self._parse_expression(end + 1)
        if match is None:
            return None
        rhs, end = match
        return BinaryOp(op=token.kind, lhs=lhs, rhs=rhs), end

    def _peek(self, index: int) -> Optional[Token]:
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def _kind_at(self, index: int, kind: str) -> bool:
        token = self._peek(index)
        return token is not None and token.kind == kind

    def _error_at(self, index: int) -> TinySyntaxError:
        token = self.tokens[index]
        return TinySyntaxError(
            f"failed to treeify tokens around token '{token.text}' (position {token.position})",
            token=token,
        )


def treeify(tokens: List[Token]) -> Node:
    return Parser(tokens).parse()


def parse(text: str) -> Node:
    return treeify(tokenize(text))
