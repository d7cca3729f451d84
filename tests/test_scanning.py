from export_templates import find_function_calls, split_by_comma, split_comparison
from export_templates.scanning import is_quoted, match_function_call

# ---- find_function_calls -----------------------------------------------------


def test_finds_calls_left_to_right_without_overlap():
    assert find_function_calls("{or(a, b)} and {or(c)}", "or") == ["{or(a, b)}", "{or(c)}"]


def test_nested_calls_stay_inside_the_outer_match():
    template = "x {or(a, concat(b, if(c==d, e, f)))} y"
    assert find_function_calls(template, "or") == ["{or(a, concat(b, if(c==d, e, f)))}"]
    # The nested concat is not wrapped in braces, so it is not a call of its own.
    assert find_function_calls(template, "concat") == []


def test_unbalanced_call_is_not_reported():
    assert find_function_calls("{or(a, b}", "or") == []
    assert find_function_calls("{or(a, (b)}", "or") == []


def test_close_paren_must_be_followed_by_brace():
    assert find_function_calls("{or(a)x} {or(b)}", "or") == ["{or(b)}"]


def test_name_must_match_exactly():
    assert find_function_calls("{order(x)} {or(y)}", "or") == ["{or(y)}"]


def test_quotes_do_not_protect_parentheses_from_depth_tracking():
    # Known limitation: the "(" inside the literal keeps the depth above zero.
    assert find_function_calls('{if(txn.x=="A(B", "y", "z")}', "if") == []
    # A balanced pair inside quotes happens to work.
    assert find_function_calls('{if(txn.x=="(B)", "y", "z")}', "if") == [
        '{if(txn.x=="(B)", "y", "z")}'
    ]


def test_match_function_call_anchors_at_position():
    template = "pre {concat(a, b)} post"
    assert match_function_call(template, 4, "concat") == "{concat(a, b)}"
    assert match_function_call(template, 0, "concat") is None


# ---- split_by_comma ----------------------------------------------------------


def test_split_respects_quotes_and_parentheses():
    assert split_by_comma('a, "b, c", d(e, f)') == ["a", ' "b, c"', " d(e, f)"]


def test_split_keeps_segments_untrimmed():
    assert split_by_comma(" a ,b ") == [" a ", "b "]


def test_single_quotes_and_mixed_quotes():
    assert split_by_comma("'x, y', \"it's\", z") == ["'x, y'", ' "it\'s"', " z"]


def test_backslash_escaped_quote_does_not_toggle():
    assert split_by_comma(r'"a\", b", c') == [r'"a\", b"', " c"]


def test_parentheses_inside_quotes_do_not_change_depth():
    assert split_by_comma('"(", b') == ['"("', " b"]


def test_trailing_and_empty_segments():
    assert split_by_comma("") == []
    assert split_by_comma("a,") == ["a"]
    assert split_by_comma("a,,b") == ["a", "", "b"]


# ---- split_comparison --------------------------------------------------------


def test_comparison_split_ignores_operator_inside_quotes():
    assert split_comparison('txn.name=="Test, Inc"', "==") == ["txn.name", '"Test, Inc"']
    assert split_comparison("a=='x==y'", "==") == ["a", "'x==y'"]


def test_comparison_split_on_every_occurrence():
    assert split_comparison("a==b==c", "==") == ["a", "b", "c"]
    assert split_comparison("a!=b", "!=") == ["a", "b"]


def test_is_quoted():
    assert is_quoted('"x"')
    assert is_quoted("''")
    assert not is_quoted("\"x'")
    assert not is_quoted('"')
    assert not is_quoted("x")
