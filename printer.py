from __future__ import annotations
from typing import Dict

from lexer import BIN, CONCAT, DIV, HEX, MINUS, MUL, PLUS, STRING
from parser import ArgumentList, Assignment, BinaryOp, Call, Literal, Node, Variable

OPERATOR_TEXT: Dict[str, str] = {
    PLUS: "+",
    MINUS: "-",
    MUL: "*",
    DIV: "/",
    CONCAT: "||",
}

RADIX_PREFIX: Dict[str, str] = {
    HEX: "0x",
    BIN: "0b",
}


def dump(node: Node) -> str:
    """Debug rendering, e.g. ``x = (bin plus number:1 f([a, string:s]))``."""
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, Literal):
        text = f"{node.kind.lower()}:{node.text}"
        if node.restriction is not None:
            text = f"{node.restriction.lower()}:{text}"
        return text
    if isinstance(node, Assignment):
        return f"{node.name} = {dump(node.value)}"
    if isinstance(node, ArgumentList):
        return "[" + ", ".join(dump(item) for item in node.items) + "]"
    if isinstance(node, Call):
        return f"{node.name}({dump(node.args)})"
    if isinstance(node, BinaryOp):
        return f"(bin {node.op.lower()} {dump(node.lhs)} {dump(node.rhs)})"
    return "????"


def unparse(node: Node) -> str:
    """Source text that parses back into an equal tree."""
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, Literal):
        if node.restriction is not None:
            return RADIX_PREFIX[node.restriction] + node.text
        if node.kind == STRING:
            return f'"{node.text}"'
        return node.text
    if isinstance(node, Assignment):
        return f"{node.name} = {unparse(node.value)}"
    if isinstance(node, ArgumentList):
        return ", ".join(unparse(item) for item in node.items)
    if isinstance(node, Call):
        return f"{node.name}({unparse(node.args)})"
    if isinstance(node, BinaryOp):
        return f"({unparse(node.lhs)} {OPERATOR_TEXT[node.op]} {unparse(node.rhs)})"
    raise TypeError(f"cannot unparse {type(node).__name__}")
