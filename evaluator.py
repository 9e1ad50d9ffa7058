"""Evaluation dispatch: walks an AST and hands every semantic decision to a backend."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from lexer import TinyError
from parser import ArgumentList, Assignment, BinaryOp, Call, Literal, Node, Variable

# Result handles are opaque to the tree; None is reserved for "no value".
Ref = Any
NULL_REF: Ref = None


class TinyUsageError(TinyError):
    """Raised when the evaluation protocol itself is misused by the caller."""


class TinyNestingError(TinyError):
    """Raised when a tree is too deep to walk within the interpreter recursion limit."""


class Backend(ABC):
    """What a value is, and what the operators and functions do with it."""

    @abstractmethod
    def load(self, name: str) -> Ref:
        ...

    @abstractmethod
    def save(self, name: str, value: Ref) -> None:
        ...

    @abstractmethod
    def bin(self, op: str, lhs: Ref, rhs: Ref) -> Ref:
        ...

    @abstractmethod
    def unary(self, op: str, operand: Ref) -> Ref:
        """Reserved: the grammar does not produce unary nodes yet."""

    @abstractmethod
    def fcall(self, name: str, argc: int, argv: List[Ref]) -> Ref:
        ...

    @abstractmethod
    def convert(self, text: str, kind: str, restriction: Optional[str]) -> Ref:
        ...


def evaluate(node: Node, backend: Backend) -> Ref:
    try:
        return _evaluate(node, backend)
    except RecursionError:
        raise TinyNestingError(f"{type(node).__name__} nested too deeply to evaluate") from None


def evaluate_all(args: ArgumentList, backend: Backend) -> List[Ref]:
    try:
        return _evaluate_all(args, backend)
    except RecursionError:
        raise TinyNestingError("argument list nested too deeply to evaluate") from None


def _evaluate(node: Node, backend: Backend) -> Ref:
    if isinstance(node, Variable):
        return backend.load(node.name)
    if isinstance(node, Literal):
        return backend.convert(node.text, node.kind, node.restriction)
    if isinstance(node, Assignment):
        backend.save(node.name, _evaluate(node.value, backend))
        return NULL_REF
    if isinstance(node, Call):
        results = _evaluate_all(node.args, backend)
        return backend.fcall(node.name, len(node.args.items), results)
    if isinstance(node, BinaryOp):
        # left strictly before right: backends may have side effects
        lhs = _evaluate(node.lhs, backend)
        rhs = _evaluate(node.rhs, backend)
        return backend.bin(node.op, lhs, rhs)
    if isinstance(node, ArgumentList):
        raise TinyUsageError("an argument list cannot be evaluated directly; use evaluate_all()")
    raise TinyUsageError(f"cannot evaluate {type(node).__name__}")


def _evaluate_all(args: ArgumentList, backend: Backend) -> List[Ref]:
    args.results = [_evaluate(item, backend) for item in args.items]
    return args.results
