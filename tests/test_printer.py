import pytest

from interpreter import Interpreter
from lexer import BIN, NUMBER, PLUS
from parser import BinaryOp, Literal, Variable, parse
from printer import dump, unparse


DUMP_CASES = [
    ("variable", "abc", "abc"),
    ("number", "42", "number:42"),
    ("string", '"hi"', "string:hi"),
    ("hex", "0x1f", "hex:number:1f"),
    ("empty_hex", "0x", "hex:number:"),
    ("bin", "0b101", "bin:number:101"),
    ("call", "f(a, 1)", "f([a, number:1])"),
    ("empty_call", "f()", "f([])"),
    ("binary", "a * b", "(bin mul a b)"),
    ("concat", "a || b", "(bin concat a b)"),
    ("assignment", 'x = 1 + f(a, "s")', "x = (bin plus number:1 f([a, string:s]))"),
    ("right_nested", "1 - 2 / 3", "(bin minus number:1 (bin div number:2 number:3))"),
]


@pytest.mark.parametrize("source, expected", [case[1:] for case in DUMP_CASES], ids=[case[0] for case in DUMP_CASES])
def test_dump(source, expected):
    assert dump(parse(source)) == expected


def test_dump_does_not_mutate_the_tree():
    tree = parse("x = f(a, b + c)")
    copy = parse("x = f(a, b + c)")
    dump(tree)
    assert tree == copy
    assert tree.value.args.results == []


ROUND_TRIP_SOURCES = [
    "a",
    "42",
    "1f",
    '"some text"',
    "0x",
    "0xdeadbeef",
    "0b1101",
    "f()",
    "f(1,)",
    "x = 1",
    "x = f(a, g(b), 0x01 || 0x02)",
    "2+3*4",
    "2*3+4",
    "(2*3)+4",
    "((a - b) - c) / d",
    '"a" || f(x) || "b"',
]


@pytest.mark.parametrize("source", ROUND_TRIP_SOURCES)
def test_unparse_round_trips(source):
    tree = parse(source)
    assert parse(unparse(tree)) == tree


def test_unparse_parenthesizes_binary_operations():
    assert unparse(parse("2*3+4")) == "(2 * (3 + 4))"
    assert unparse(parse('a || "b"')) == '(a || "b")'


def test_unparse_of_a_hand_built_left_nested_tree():
    tree = BinaryOp(PLUS, BinaryOp(PLUS, Variable("a"), Variable("b")), Literal(NUMBER, BIN, "1"))
    assert unparse(tree) == "((a + b) + 0b1)"
    assert parse(unparse(tree)) == tree


@pytest.mark.parametrize("source", ["x = 7", "x * 3 - 1", 'x || "!"', "sum(x, 0b11, 1f)"])
def test_independent_parses_evaluate_identically(source):
    first, second = Interpreter(), Interpreter()
    for interpreter in (first, second):
        interpreter.run("x = 5")
    assert first.evaluate(parse(source)) == second.evaluate(parse(source))
    assert first.env.values == second.env.values
