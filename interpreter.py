from __future__ import annotations
import hashlib
import json
import numpy as np
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from evaluator import Backend, evaluate
from lexer import BIN, CONCAT, DIV, HEX, MINUS, MUL, NUMBER, PLUS, STRING, SYMBOL, HEX_LETTERS, TinyError
from parser import Node, parse


TYPE_INT = "INT"
TYPE_STR = "STR"
TYPE_BYTES = "BYTES"


@dataclass
class Value:
    type: str
    value: Any


class TinyRuntimeError(TinyError):
    """Raised by the reference backend for evaluation faults."""

    def __init__(self, message: str, *, rule: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.rule = rule
        self.step_index: Optional[int] = None


@dataclass
class Environment:
    values: Dict[str, Value] = field(default_factory=dict)

    def set(self, name: str, value: Value) -> None:
        self.values[name] = value

    def get(self, name: str) -> Value:
        try:
            return self.values[name]
        except KeyError:
            raise TinyRuntimeError(f"Undefined variable '{name}'", rule="LOAD")

    def has(self, name: str) -> bool:
        return name in self.values

    def snapshot(self) -> Dict[str, str]:
        def _render(val: Value) -> str:
            rendered = format_value(val)
            if len(rendered) > 80:
                rendered = rendered[:77] + "..."
            return f"{val.type}:{rendered}"

        return {k: _render(v) for k, v in self.values.items()}


def format_value(value: Value) -> str:
    if value.type == TYPE_BYTES:
        return "0x" + value.value.hex()
    if value.type == TYPE_STR:
        return f'"{value.value}"'
    return str(value.value)


@dataclass
class StepEntry:
    step_index: int
    state_id: str
    rule: str
    detail: Dict[str, Any]


class StepLogger:
    """Records every backend operation in call order."""

    def __init__(self) -> None:
        self.entries: List[StepEntry] = []
        self.next_state_index = 0

    def record(self, rule: str, **detail: Any) -> StepEntry:
        step_index = self.next_state_index
        entry = StepEntry(step_index=step_index, state_id=f"s_{step_index:06d}", rule=rule, detail=detail)
        self.entries.append(entry)
        self.next_state_index += 1
        return entry

    def tail(self, count: int) -> List[StepEntry]:
        return self.entries[-count:] if count > 0 else []

    def format_text(self) -> str:
        lines = []
        for entry in self.entries:
            detail = ", ".join(f"{k}={v}" for k, v in entry.detail.items())
            lines.append(f"{entry.state_id} {entry.rule} {detail}".rstrip())
        return "\n".join(lines)


BuiltinImpl = Callable[[List[Value]], Value]


@dataclass
class BuiltinFunction:
    name: str
    min_args: int
    max_args: Optional[int]
    impl: BuiltinImpl

    def validate(self, supplied: int) -> None:
        if supplied < self.min_args:
            raise TinyRuntimeError(f"{self.name} expects at least {self.min_args} arguments", rule=self.name)
        if self.max_args is not None and supplied > self.max_args:
            raise TinyRuntimeError(f"{self.name} expects at most {self.max_args} arguments", rule=self.name)


class Builtins:
    def __init__(self) -> None:
        self.table: Dict[str, BuiltinFunction] = {}
        self._register("len", 1, 1, self._len)
        self._register("hex", 1, 1, self._hex)
        self._register("int", 1, 1, self._int)
        self._register("str", 1, 1, self._str)
        self._register("bytes", 1, 1, self._bytes)
        self._register("reverse", 1, 1, self._reverse)
        self._register_digest("sha256", lambda data: hashlib.sha256(data).digest())
        self._register_digest("sha1", lambda data: hashlib.sha1(data).digest())
        self._register_digest("hash256", lambda data: hashlib.sha256(hashlib.sha256(data).digest()).digest())
        self._register_reduction("sum", lambda arr: arr.sum())
        self._register_reduction("min", lambda arr: arr.min())
        self._register_reduction("max", lambda arr: arr.max())

    def _register(self, name: str, min_args: int, max_args: Optional[int], impl: BuiltinImpl) -> None:
        self.table[name] = BuiltinFunction(name=name, min_args=min_args, max_args=max_args, impl=impl)

    def register(self, name: str, min_args: int, max_args: Optional[int], impl: BuiltinImpl) -> None:
        if name in self.table:
            raise TinyRuntimeError(f"Cannot override existing function '{name}'", rule=name)
        self._register(name, min_args, max_args, impl)

    def _register_digest(self, name: str, digest: Callable[[bytes], bytes]) -> None:
        def impl(args: List[Value]) -> Value:
            return Value(TYPE_BYTES, digest(self._as_bytes(args[0], name)))

        self._register(name, 1, 1, impl)

    def _register_reduction(self, name: str, reduce: Callable[[Any], Any]) -> None:
        def impl(args: List[Value]) -> Value:
            # object dtype keeps Python's arbitrary-precision ints
            data = np.array([self._expect_int(arg, name) for arg in args], dtype=object)
            return Value(TYPE_INT, int(reduce(data)))

        self._register(name, 1, None, impl)

    def invoke(self, name: str, args: List[Value]) -> Value:
        builtin = self.table.get(name)
        if builtin is None:
            raise TinyRuntimeError(f"Unknown function '{name}'", rule="FCALL")
        builtin.validate(len(args))
        return builtin.impl(args)

    # Helpers
    def _expect_int(self, value: Value, rule: str) -> int:
        if value.type != TYPE_INT:
            raise TinyRuntimeError(f"{rule} expects integer arguments", rule=rule)
        return value.value

    def _as_bytes(self, value: Value, rule: str) -> bytes:
        if value.type == TYPE_BYTES:
            return value.value
        if value.type == TYPE_STR:
            return value.value.encode("utf-8")
        if value.type == TYPE_INT:
            return _int_to_bytes(value.value, rule)
        raise TinyRuntimeError(f"{rule} cannot convert {value.type} to bytes", rule=rule)

    def _len(self, args: List[Value]) -> Value:
        value = args[0]
        if value.type not in (TYPE_STR, TYPE_BYTES):
            raise TinyRuntimeError("len accepts only STR or BYTES arguments", rule="len")
        return Value(TYPE_INT, len(value.value))

    def _hex(self, args: List[Value]) -> Value:
        value = args[0]
        if value.type == TYPE_INT:
            return Value(TYPE_STR, format(value.value, "x"))
        return Value(TYPE_STR, self._as_bytes(value, "hex").hex())

    def _int(self, args: List[Value]) -> Value:
        value = args[0]
        if value.type == TYPE_INT:
            return value
        if value.type == TYPE_BYTES:
            return Value(TYPE_INT, int.from_bytes(value.value, "big"))
        try:
            return Value(TYPE_INT, int(value.value, 10))
        except ValueError:
            raise TinyRuntimeError(f"int cannot parse '{value.value}'", rule="int")

    def _str(self, args: List[Value]) -> Value:
        value = args[0]
        if value.type == TYPE_STR:
            return value
        if value.type == TYPE_BYTES:
            try:
                return Value(TYPE_STR, value.value.decode("utf-8"))
            except UnicodeDecodeError:
                raise TinyRuntimeError("str cannot decode bytes as UTF-8", rule="str")
        return Value(TYPE_STR, str(value.value))

    def _bytes(self, args: List[Value]) -> Value:
        return Value(TYPE_BYTES, self._as_bytes(args[0], "bytes"))

    def _reverse(self, args: List[Value]) -> Value:
        value = args[0]
        if value.type not in (TYPE_STR, TYPE_BYTES):
            raise TinyRuntimeError("reverse accepts only STR or BYTES arguments", rule="reverse")
        return Value(value.type, value.value[::-1])


def _int_to_bytes(number: int, rule: str) -> bytes:
    if number < 0:
        raise TinyRuntimeError(f"{rule} cannot convert a negative integer to bytes", rule=rule)
    return number.to_bytes((number.bit_length() + 7) // 8, "big")


class Interpreter(Backend):
    """Reference backend: INT, STR and BYTES values over a flat variable table."""

    def __init__(self, *, verbose: bool = False, builtins: Optional[Builtins] = None) -> None:
        self.verbose = verbose
        self.env = Environment()
        self.builtins = builtins or Builtins()
        self.logger = StepLogger()

    def run(self, text: str) -> Optional[Value]:
        return self.evaluate(parse(text))

    def evaluate(self, node: Node) -> Optional[Value]:
        try:
            return evaluate(node, self)
        except TinyRuntimeError as error:
            if error.step_index is None and self.logger.entries:
                error.step_index = self.logger.entries[-1].step_index
            raise

    def load(self, name: str) -> Value:
        self.logger.record("LOAD", name=name)
        return self.env.get(name)

    def save(self, name: str, value: Value) -> None:
        self.logger.record("SAVE", name=name, value=format_value(value))
        self.env.set(name, value)

    def convert(self, text: str, kind: str, restriction: Optional[str]) -> Value:
        self.logger.record("CONVERT", text=text, kind=kind, restriction=restriction)
        if restriction == HEX:
            digits = text if len(text) % 2 == 0 else "0" + text
            return Value(TYPE_BYTES, bytes.fromhex(digits))
        if restriction == BIN:
            return Value(TYPE_INT, int(text, 2))
        if kind == NUMBER:
            base = 16 if any(ch in HEX_LETTERS for ch in text) else 10
            return Value(TYPE_INT, int(text, base))
        if kind in (STRING, SYMBOL):
            return Value(TYPE_STR, text)
        raise TinyRuntimeError(f"Cannot convert literal of kind {kind}", rule="CONVERT")

    def bin(self, op: str, lhs: Value, rhs: Value) -> Value:
        self.logger.record("BIN", op=op, lhs=format_value(lhs), rhs=format_value(rhs))
        if op == CONCAT:
            return self._concat(lhs, rhs)
        if op == PLUS and lhs.type == TYPE_STR and rhs.type == TYPE_STR:
            return Value(TYPE_STR, lhs.value + rhs.value)
        if lhs.type != TYPE_INT or rhs.type != TYPE_INT:
            raise TinyRuntimeError(f"Operator {op} cannot combine {lhs.type} and {rhs.type}", rule="BIN")
        a, b = lhs.value, rhs.value
        if op == PLUS:
            return Value(TYPE_INT, a + b)
        if op == MINUS:
            return Value(TYPE_INT, a - b)
        if op == MUL:
            return Value(TYPE_INT, a * b)
        if op == DIV:
            if b == 0:
                raise TinyRuntimeError("Division by zero", rule="BIN")
            return Value(TYPE_INT, a // b)
        raise TinyRuntimeError(f"Unknown binary operator {op}", rule="BIN")

    def _concat(self, lhs: Value, rhs: Value) -> Value:
        if lhs.type == TYPE_BYTES and rhs.type == TYPE_BYTES:
            return Value(TYPE_BYTES, lhs.value + rhs.value)
        if TYPE_STR in (lhs.type, rhs.type) and TYPE_BYTES not in (lhs.type, rhs.type):
            return Value(TYPE_STR, str(lhs.value) + str(rhs.value))
        raise TinyRuntimeError(f"Cannot concatenate {lhs.type} and {rhs.type}", rule="BIN")

    def unary(self, op: str, operand: Value) -> Value:
        self.logger.record("UNARY", op=op, operand=format_value(operand))
        if op == MINUS and operand.type == TYPE_INT:
            return Value(TYPE_INT, -operand.value)
        raise TinyRuntimeError(f"Unary operator {op} cannot apply to {operand.type}", rule="UNARY")

    def fcall(self, name: str, argc: int, argv: List[Value]) -> Value:
        self.logger.record("FCALL", name=name, argc=argc)
        if argc != len(argv):
            raise TinyRuntimeError(f"{name} called with argc={argc} but {len(argv)} arguments", rule="FCALL")
        return self.builtins.invoke(name, argv)


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter, *, context: int = 5) -> None:
        self.interpreter = interpreter
        self.context = context

    def format_text(self, error: TinyRuntimeError, verbose: bool) -> str:
        lines = ["Traceback (most recent step last):"]
        for entry in self.interpreter.logger.tail(self.context):
            detail = ", ".join(f"{k}={v}" for k, v in entry.detail.items())
            lines.append(f"  {entry.state_id} {entry.rule} {detail}".rstrip())
        if verbose:
            snapshot = ", ".join(f"{k}={v}" for k, v in self.interpreter.env.snapshot().items())
            lines.append(f"  Env snapshot: {snapshot}")
        rule = error.rule or "runtime"
        lines.append(f"{error.__class__.__name__}: {error.message} (rule: {rule})")
        return "\n".join(lines)

    def to_json(self, error: TinyRuntimeError) -> str:
        steps = [
            {"step_index": entry.step_index, "state_id": entry.state_id, "rule": entry.rule, "detail": entry.detail}
            for entry in self.interpreter.logger.tail(self.context)
        ]
        data = {
            "error": {
                "type": error.__class__.__name__,
                "message": error.message,
                "rule": error.rule,
                "failing_step_index": error.step_index,
            },
            "steps": steps,
            "env_snapshot": self.interpreter.env.snapshot(),
        }
        return json.dumps(data, indent=2)
