import pytest

from stylefmt.formatter import FormatOptions, format_text


def fmt(raw: str, **kwargs: object) -> str:
    return format_text(raw, options=FormatOptions(**kwargs)).out_text


MESSY = (
    "function  f(a,b){\r\n"
    "let x=1;// one\r\n"
    "\tlet longname   =  'hi';   // two\r\n"
    "if(a==b){\r\n"
    "return {k:a};\r\n"
    "} else {\r\n"
    "\r\n\r\n\r\n\r\n\r\n"
    "  }\r\n"
    "}\r\n\r\n\r\n"
)

MESSY_FORMATTED = (
    "function f(a, b) {\n"
    "  let x" + " " * 8 + "= 1;" + " " * 4 + "// one\n"
    "  let longname = 'hi'; // two\n"
    "  if(a == b) {\n"
    "    return {k: a};\n"
    "  } else {\n"
    "\n"
    "\n"
    "  }\n"
    "}\n"
)


def test_full_pipeline_on_messy_input() -> None:
    fr = format_text(MESSY, options=FormatOptions())
    assert fr.changed
    assert fr.out_text == MESSY_FORMATTED


def test_output_is_a_fixed_point() -> None:
    first = format_text(MESSY, options=FormatOptions())
    second = format_text(first.out_text, options=FormatOptions())
    assert second.changed is False
    assert second.out_text == first.out_text


def test_repeated_calls_are_identical() -> None:
    a = format_text(MESSY, options=FormatOptions(normalize_eol="crlf", brace_style="break"))
    b = format_text(MESSY, options=FormatOptions(normalize_eol="crlf", brace_style="break"))
    assert a == b


@pytest.mark.parametrize(
    "options",
    [
        FormatOptions(),
        FormatOptions(brace_style="break", newline_before_else=True),
        FormatOptions(ensure_space_around_operators=False, space_after_comma=False),
        FormatOptions(insert_spaces=False, tab_size=4, space_around_colon="both"),
        FormatOptions(normalize_quotes="double", wrap_comments_at=30),
        FormatOptions(trim_trailing_whitespace=False, normalize_eol="crlf"),
    ],
)
def test_idempotent_across_option_sets(options: FormatOptions) -> None:
    raw = MESSY + "// " + "wrap me please " * 6 + "\nvalue = compute(a,b);  // trailing\nv=2\n"
    once = format_text(raw, options=options).out_text
    twice = format_text(once, options=options)
    assert twice.changed is False
    assert twice.out_text == once


def test_canonical_text_needs_no_change() -> None:
    raw = "function f(a, b) {\n  return a + b;\n}\n"
    fr = format_text(raw, options=FormatOptions())
    assert fr.changed is False
    assert fr.out_text == raw


def test_eol_only_difference_is_not_a_change() -> None:
    fr = format_text("a();\r\n", options=FormatOptions())
    assert fr.out_text == "a();\n"
    assert fr.changed is False


def test_crlf_output() -> None:
    assert fmt("if (a) {\nb();\n}\n", normalize_eol="crlf") == "if (a) {\r\n  b();\r\n}\r\n"


# --- string / comment safety -------------------------------------------------


def test_string_contents_are_preserved() -> None:
    raw = 'let s = "a,b:c{d}";\nfoo(s);\n'
    assert fmt(raw) == raw


def test_string_brackets_do_not_move_indentation() -> None:
    raw = "call(\"x=1, y:2\" ,'(' )\nnext();\n"
    assert fmt(raw) == "call(\"x=1, y:2\", '(' )\nnext();\n"


def test_comment_contents_are_preserved() -> None:
    assert fmt("x=1; // a=b,c:d\n") == "x = 1; // a=b,c:d\n"


def test_inline_block_comment_is_opaque() -> None:
    assert fmt("f(/* a,b */ x,y);\n") == "f(/* a,b */ x, y);\n"


def test_block_comment_lines_are_left_alone() -> None:
    raw = "/**\n * a,b = c\n */\nx=1\n"
    assert fmt(raw) == "/**\n* a,b = c\n*/\nx = 1\n"


# --- indentation ---------------------------------------------------------------


def test_indentation_follows_bracket_depth() -> None:
    raw = "if (a) {\nfoo();\nif (b) {\nbar();\n}\n}\n"
    assert fmt(raw) == "if (a) {\n  foo();\n  if (b) {\n    bar();\n  }\n}\n"


def test_indentation_with_tabs() -> None:
    assert fmt("if (a) {\n    foo();\n}\n", insert_spaces=False) == "if (a) {\n\tfoo();\n}\n"


def test_negative_depth_is_clamped_per_line_but_kept_in_the_counter() -> None:
    raw = "}\n{\n{\nz();\n}\n}\n"
    assert fmt(raw) == "}\n{\n{\n  z();\n}\n}\n"


def test_brackets_in_strings_and_comments_are_not_counted() -> None:
    raw = 'foo("("); // {\nbar();\n'
    assert fmt(raw) == raw


# --- spacing ---------------------------------------------------------------------


def test_operator_spacing() -> None:
    assert fmt("f=(a)=>a+1;\n") == "f = (a) => a + 1;\n"
    assert fmt("if (x===y) {}\n") == "if (x === y) {}\n"
    assert fmt("a<<=2;\n") == "a <<= 2;\n"


def test_operator_tokens_are_not_split() -> None:
    raw = "i++;\np->x = 1;\n\nx = 1e-5 + y;\n"
    assert fmt(raw) == raw


def test_exponent_sign_needs_a_digit_after_it() -> None:
    out = fmt("a = 1e-*b;\n")
    assert out == "a = 1e - * b;\n"
    assert fmt(out) == out


def test_leading_dereference_stays_attached() -> None:
    raw = "void f() {\n*p = g(\na,\nb);\n}\n"
    out = fmt(raw)
    assert out == "void f() {\n  *p = g(\n    a,\n    b);\n}\n"
    assert format_text(out, options=FormatOptions()).changed is False


def test_operator_spacing_keeps_indentation() -> None:
    assert fmt("if (a) {\nx  =  - 1;\n}\n") == "if (a) {\n  x = - 1;\n}\n"


def test_comma_spacing() -> None:
    assert fmt("f(a ,b,  c);\n") == "f(a, b, c);\n"
    assert fmt("x = [1,2,];\n") == "x = [1, 2,];\n"


@pytest.mark.parametrize(
    "mode, expected",
    [
        ("none", "a:b\n"),
        ("left", "a :b\n"),
        ("right", "a: b\n"),
        ("both", "a : b\n"),
    ],
)
def test_colon_modes(mode: str, expected: str) -> None:
    assert fmt("a:b\n", space_around_colon=mode) == expected


def test_double_colon_is_one_token() -> None:
    assert fmt("ns::call(x);\n") == "ns::call(x);\n"


# --- quotes ----------------------------------------------------------------------


def test_quotes_to_double() -> None:
    assert fmt("a = 'hi';\n", normalize_quotes="double") == 'a = "hi";\n'


def test_quotes_never_need_new_escapes() -> None:
    raw = "b = 'she said \"hi\"';\n"
    assert fmt(raw, normalize_quotes="double") == raw


def test_quotes_keep_existing_escapes() -> None:
    raw = r"c = 'it\'s';" + "\n"
    assert fmt(raw, normalize_quotes="double") == r'c = "it\'s";' + "\n"


def test_quotes_to_single() -> None:
    assert fmt('d = "x";\n', normalize_quotes="single") == "d = 'x';\n"


def test_unterminated_string_is_not_touched() -> None:
    raw = "e = 'oops\n"
    assert fmt(raw, normalize_quotes="double") == raw


# --- braces / else ---------------------------------------------------------------


def test_brace_attach() -> None:
    assert fmt("if (a)\t{\n}\n") == "if (a) {\n}\n"


def test_brace_attach_ignores_strings() -> None:
    raw = 's = "f() {"\n'
    assert fmt(raw) == raw


def test_brace_break() -> None:
    out = fmt("if (a) {\nb();\n}\n", brace_style="break")
    assert out == "if (a)\n{\n  b();\n}\n"
    assert format_text(out, options=FormatOptions(brace_style="break")).changed is False


def test_newline_before_else() -> None:
    raw = "if (a) {\nb();\n} else {\nc();\n}\n"
    assert fmt(raw, newline_before_else=True) == "if (a) {\n  b();\n}\nelse {\n  c();\n}\n"


def test_brace_break_inside_open_call() -> None:
    opts = FormatOptions(brace_style="break")
    out = format_text("run(function (x) {\ny();\n});\n", options=opts).out_text
    assert out == "run(function (x)\n  {\n    y();\n  });\n"
    assert format_text(out, options=opts).changed is False


def test_else_split_after_code_takes_the_depth_of_the_closer() -> None:
    opts = FormatOptions(newline_before_else=True)
    out = format_text("if (a) {\nb();\nc(); } else {\nd();\n}\n", options=opts).out_text
    assert out == "if (a) {\n  b();\n  c(); }\nelse {\n  d();\n}\n"
    assert format_text(out, options=opts).changed is False


def test_line_starting_with_else_is_not_split() -> None:
    raw = "else { a(); } else {\n}\n"
    fr = format_text(raw, options=FormatOptions(newline_before_else=True))
    assert fr.out_text == raw
    assert fr.changed is False


def test_newline_before_else_mid_line() -> None:
    raw = "if (a) { b(); } else { c(); }\n"
    assert fmt(raw, newline_before_else=True) == "if (a) { b(); }\nelse { c(); }\n"


# --- blank lines / final newline -------------------------------------------------


def test_blank_run_cap() -> None:
    assert fmt("a\n\n\n\n\n\nb\n") == "a\n\n\nb\n"


def test_blank_run_cap_zero() -> None:
    assert fmt("a\n\nb\n", max_consecutive_blank_lines=0) == "a\nb\n"


def test_final_newlines_are_collapsed() -> None:
    assert fmt("a();\n\n\n") == "a();\n"
    assert fmt("a();\r\n\r\n\r\n", normalize_eol="crlf") == "a();\r\n"


def test_final_newline_policies() -> None:
    assert fmt("a();", insert_final_newline=False) == "a();"
    assert fmt("a();\n\n\n", trim_final_newlines=False) == "a();\n\n"


def test_empty_document_gets_a_newline() -> None:
    fr = format_text("", options=FormatOptions())
    assert fr.out_text == "\n"
    assert fr.changed


def test_trailing_whitespace() -> None:
    assert fmt("a();   \n") == "a();\n"
    raw = "a();   \n"
    assert fmt(raw, trim_trailing_whitespace=False, ensure_space_around_operators=False) == raw


# --- alignment -------------------------------------------------------------------


def test_equals_alignment() -> None:
    assert fmt("x = 1\nlongname = 2\n") == "x        = 1\nlongname = 2\n"


def test_blank_line_breaks_equals_block() -> None:
    raw = "x = 1\n\nlongname = 2\n"
    fr = format_text(raw, options=FormatOptions())
    assert fr.out_text == raw
    assert fr.changed is False


def test_equals_alignment_only_splits_first_assignment() -> None:
    assert fmt("a = b = 1\nlong = 2\n") == "a    = b = 1\nlong = 2\n"


def test_equals_alignment_leaves_compound_operators() -> None:
    raw = "a += 1\nbb = 2\nif (a == bb) {}\n"
    assert fmt(raw) == raw


def test_comment_line_breaks_equals_block() -> None:
    raw = "x = 1\n// note\nyy = 2\n"
    assert fmt(raw) == raw


def test_equals_alignment_disabled() -> None:
    raw = "x = 1\nlongname = 2\n"
    assert fmt(raw, align_equals=False) == raw


def test_trailing_comments_share_one_column() -> None:
    assert fmt("a();  // x\nlonger();   // y\n") == "a();      // x\nlonger(); // y\n"


def test_whole_line_comments_are_not_aligned() -> None:
    raw = "// top\nfoo(); // c\n"
    assert fmt(raw) == raw


# --- comment wrapping ------------------------------------------------------------


SENTENCE = " ".join(["lorem", "ipsum", "dolor", "sit", "amet"] * 10)


def test_long_comment_is_wrapped() -> None:
    out = fmt("// " + SENTENCE + "\n", wrap_comments_at=40)
    lines = out.split("\n")[:-1]
    assert len(lines) > 1
    assert all(line.startswith("// ") and len(line) <= 40 for line in lines)
    assert " ".join(line[3:] for line in lines) == SENTENCE


def test_comment_wrapping_disabled_at_small_widths() -> None:
    raw = "// " + SENTENCE + "\n"
    assert fmt(raw, wrap_comments_at=10) == raw


def test_comment_that_fits_gets_a_trimmed_body() -> None:
    out = fmt("//    keep   spacing   \n", trim_trailing_whitespace=False)
    assert out == "// keep   spacing\n"
    assert fmt("///x\n") == "///x\n"
    assert fmt(out) == out


# --- options / stats -------------------------------------------------------------


def test_options_from_mapping() -> None:
    opts = FormatOptions.from_mapping(
        {"tabSize": 4, "normalizeEOL": "crlf", "braceStyle": None, "somethingElse": 1}
    )
    assert opts.tab_size == 4
    assert opts.normalize_eol == "crlf"
    assert opts.brace_style == "attach"
    assert opts.indent_unit == "    "


def test_options_from_mapping_over_base() -> None:
    base = FormatOptions(insert_spaces=False)
    opts = FormatOptions.from_mapping({"max_consecutive_blank_lines": 1}, base=base)
    assert opts.insert_spaces is False
    assert opts.max_consecutive_blank_lines == 1
    assert opts.indent_unit == "\t"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"space_around_colon": "middle"},
        {"normalize_eol": "cr"},
        {"normalize_quotes": "smart"},
        {"brace_style": "sideways"},
        {"tab_size": 0},
        {"max_consecutive_blank_lines": -1},
    ],
)
def test_invalid_options_raise(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        FormatOptions(**kwargs)


def test_invalid_mapping_value_raises() -> None:
    with pytest.raises(ValueError):
        FormatOptions.from_mapping({"braceStyle": "sideways"})


def test_stats_are_collected() -> None:
    fr = format_text("x = 1\nlongname = 2\n\n\n\n", options=FormatOptions())
    assert fr.stats["total_lines"] == 6
    assert fr.stats["equals_blocks_aligned"] == 1
    assert fr.stats["blank_lines_dropped"] == 2
