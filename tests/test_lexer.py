import pytest

from lexer import (
    BIN,
    COMMA,
    CONCAT,
    EQUAL,
    HEX,
    LPAREN,
    NUMBER,
    PLUS,
    RPAREN,
    STRING,
    SYMBOL,
    TinyTokenizeError,
    format_tokens,
    tokenize,
)


def kinds(text):
    return [token.kind for token in tokenize(text)]


def texts(text):
    return [token.text for token in tokenize(text)]


def test_simple_binary_expression():
    assert kinds("a+b") == [SYMBOL, PLUS, SYMBOL]
    assert texts("a+b") == ["a", "+", "b"]


def test_empty_input_yields_no_tokens():
    assert tokenize("") == []
    assert tokenize("  \t\n") == []


def test_positions_are_character_offsets():
    assert [token.position for token in tokenize("ab + cd")] == [0, 3, 5]


def test_structural_characters():
    assert kinds("x=(1,2)") == [SYMBOL, EQUAL, LPAREN, NUMBER, COMMA, NUMBER, RPAREN]


@pytest.mark.parametrize(
    "source, text, restriction",
    [
        ("0x1f", "1f", HEX),
        ("0xDEADbeef", "DEADbeef", HEX),
        ("0b10", "10", BIN),
        ("0x", "", HEX),
    ],
)
def test_radix_restricted_number_is_a_single_token(source, text, restriction):
    tokens = tokenize(source)
    assert len(tokens) == 1
    assert tokens[0].kind == NUMBER
    assert tokens[0].text == text
    assert tokens[0].restriction == restriction


def test_bare_bin_marker_fails():
    with pytest.raises(TinyTokenizeError) as excinfo:
        tokenize("0b")
    assert excinfo.value.character == "b"


@pytest.mark.parametrize("source, bad", [("0x1g", "g"), ("0b12", "2"), ('0x1"a"', '"')])
def test_restricted_run_rejects_foreign_digits(source, bad):
    with pytest.raises(TinyTokenizeError) as excinfo:
        tokenize(source)
    assert excinfo.value.character == bad


def test_restriction_ends_with_the_run():
    tokens = tokenize("0x1f+a")
    assert [(t.kind, t.text, t.restriction) for t in tokens] == [
        (NUMBER, "1f", HEX),
        (PLUS, "+", None),
        (SYMBOL, "a", None),
    ]
    tokens = tokenize("0x1f 2")
    assert tokens[1].restriction is None


def test_empty_hex_inside_call():
    assert kinds("f(0x, 1)") == [SYMBOL, LPAREN, NUMBER, COMMA, NUMBER, RPAREN]
    assert tokenize("f(0x, 1)")[2].restriction == HEX


def test_unrestricted_number_absorbs_hex_letters():
    tokens = tokenize("1f")
    assert [(t.kind, t.text, t.restriction) for t in tokens] == [(NUMBER, "1f", None)]


def test_non_hex_letter_starts_a_new_symbol():
    assert kinds("1g") == [NUMBER, SYMBOL]
    assert texts("1g") == ["1", "g"]


def test_digits_continue_a_symbol():
    assert texts("a1 b_2") == ["a1", "b_2"]
    assert kinds("a1 b_2") == [SYMBOL, SYMBOL]


def test_whitespace_separates_runs():
    assert kinds("1 a") == [NUMBER, SYMBOL]


def test_concatenate_needs_two_pipes():
    assert kinds("a||b") == [SYMBOL, CONCAT, SYMBOL]
    assert texts("a||b") == ["a", "||", "b"]
    assert kinds("a||||b") == [SYMBOL, CONCAT, CONCAT, SYMBOL]


@pytest.mark.parametrize("source", ["a|b", "a|", "| |", "a|||b"])
def test_unmatched_pipe_fails(source):
    with pytest.raises(TinyTokenizeError) as excinfo:
        tokenize(source)
    assert excinfo.value.character == "|"


def test_unmatched_pipe_reports_its_position():
    with pytest.raises(TinyTokenizeError) as excinfo:
        tokenize("a|b")
    assert excinfo.value.position == 1
    assert "'|'" in str(excinfo.value)


def test_string_is_read_verbatim():
    tokens = tokenize('f("a, (b) || c")')
    assert [t.kind for t in tokens] == [SYMBOL, LPAREN, STRING, RPAREN]
    assert tokens[2].text == '"a, (b) || c"'


def test_adjacent_strings_are_separate_tokens():
    assert texts('"a""b"') == ['"a"', '"b"']


def test_unterminated_string_fails():
    with pytest.raises(TinyTokenizeError) as excinfo:
        tokenize('"abc')
    assert excinfo.value.position == 0


@pytest.mark.parametrize("source, bad", [("a # b", "#"), ("1.5", "."), ("a;b", ";")])
def test_undefined_characters_fail(source, bad):
    with pytest.raises(TinyTokenizeError) as excinfo:
        tokenize(source)
    assert excinfo.value.character == bad


def test_format_tokens():
    assert format_tokens(tokenize("0x1f+a")) == "[hex:number 1f]\n[plus +]\n[symbol a]"
