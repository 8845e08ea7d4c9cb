import pytest

from jacques import jacques_tokens as tk
from jacques.jacques_tokens import tokenize
from jacques.jacques_errors import JacquesSyntaxError


def kinds(src):
    return [t.kind for t in tokenize(src)]


def test_constant_assignment_tokens():
    toks = tokenize("x := 1.5")
    assert [t.kind for t in toks] == [tk.IDENTIFIER, tk.CONST_ASSIGN, tk.NUMBER, tk.EOF]
    assert toks[0].value == "x"
    assert toks[2].value == 1.5


def test_stream_always_ends_with_single_eof():
    assert kinds("") == [tk.EOF]
    assert kinds("   \n\t ") == [tk.EOF]


def test_keywords_and_booleans():
    toks = tokenize("class Dog extends Animal end true false Result self")
    assert [t.kind for t in toks] == [
        tk.CLASS, tk.IDENTIFIER, tk.EXTENDS, tk.IDENTIFIER, tk.END,
        tk.BOOLEAN, tk.BOOLEAN, tk.RESULT, tk.SELF, tk.EOF,
    ]
    assert toks[5].value is True
    assert toks[6].value is False


def test_two_char_operators_win_over_single():
    assert kinds("a == b != c <= d >= e && f || g") == [
        tk.IDENTIFIER, tk.EQUAL, tk.IDENTIFIER, tk.NOT_EQUAL, tk.IDENTIFIER,
        tk.LESS_EQUAL, tk.IDENTIFIER, tk.GREATER_EQUAL, tk.IDENTIFIER,
        tk.AND, tk.IDENTIFIER, tk.OR, tk.IDENTIFIER, tk.EOF,
    ]
    assert kinds("i++") == [tk.IDENTIFIER, tk.INCREMENT, tk.EOF]


def test_thin_arrow_is_an_arrow_alias():
    assert kinds("x -> x") == [tk.IDENTIFIER, tk.ARROW, tk.IDENTIFIER, tk.EOF]
    assert kinds("x => x") == [tk.IDENTIFIER, tk.ARROW, tk.IDENTIFIER, tk.EOF]


def test_string_escapes_and_quotes():
    toks = tokenize('"a\\nb" \'it\\\'s\' "q\\"x"')
    assert [t.value for t in toks[:3]] == ["a\nb", "it's", 'q"x']
    assert all(t.kind == tk.STRING for t in toks[:3])


def test_unknown_escape_keeps_character():
    assert tokenize('"a\\qb"')[0].value == "aqb"


def test_leading_dot_number():
    toks = tokenize(".5 + 2")
    assert toks[0].kind == tk.NUMBER
    assert toks[0].value == 0.5


def test_member_access_on_number_is_not_a_fraction():
    # `1.Foo` keeps the dot as member access
    assert kinds("1.Foo") == [tk.NUMBER, tk.DOT, tk.IDENTIFIER, tk.EOF]


def test_comments_are_skipped():
    src = """
    // a line comment
    x /* inline */ = 1
    /* outer /* nested */ still comment */
    """
    assert kinds(src) == [tk.IDENTIFIER, tk.ASSIGN, tk.NUMBER, tk.EOF]


def test_positions_are_one_based():
    toks = tokenize("x\n  yy = 3")
    assert (toks[0].line, toks[0].col) == (1, 1)
    assert (toks[1].line, toks[1].col) == (2, 3)
    assert (toks[2].line, toks[2].col) == (2, 6)


def test_unterminated_string_reports_start():
    with pytest.raises(JacquesSyntaxError) as exc:
        tokenize('x = "abc')
    assert exc.value.line == 1
    assert exc.value.col == 5
    assert "Unterminated string" in exc.value.message


def test_unterminated_block_comment():
    with pytest.raises(JacquesSyntaxError) as exc:
        tokenize("/* never closed")
    assert "Unterminated block comment" in exc.value.message


def test_unknown_character_is_syntax_error():
    with pytest.raises(JacquesSyntaxError) as exc:
        tokenize("x = 1 # 2")
    assert "'#'" in exc.value.message
    assert (exc.value.line, exc.value.col) == (1, 7)


@pytest.mark.parametrize("src,col", [("x := ²", 6), ("x := 1²", 7), ("①", 1)])
def test_non_ascii_digits_are_not_numbers(src, col):
    with pytest.raises(JacquesSyntaxError) as exc:
        tokenize(src)
    assert (exc.value.line, exc.value.col) == (1, col)


def test_non_ascii_digit_is_reported_not_raised():
    from jacques.jacques_runtime import ScriptRunner
    res = ScriptRunner().handle_script("x := ²")
    assert res.status == 'error'
    assert res.error_message.startswith("SyntaxError: Unexpected character '²'")
