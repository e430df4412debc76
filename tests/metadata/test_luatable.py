from __future__ import annotations

import pytest

from korsync.errors import MALFORMED_ROOT, SYNTAX, ParseError
from korsync.metadata.luatable import LuaTable, parse_lua_table, unquote


def test_parse_keyed_positional_and_nested_fields() -> None:
    root = parse_lua_table(
        """
        -- we can read Lua syntax here!
        return {
            ["doc_props"] = {
                ["title"] = "Dune",
                ["pages"] = 412,
            },
            ["annotations"] = {
                [1] = {
                    ["text"] = "Fear is the mind-killer.",
                    ["pos0"] = "/body/DocFragment[3]",
                },
            },
            percent_finished = 0.25,
            "loose",
            ["hidden"] = false,
            ["nothing"] = nil,
        }
        """
    )

    doc_props = root.get("doc_props")
    assert isinstance(doc_props, LuaTable)
    assert doc_props.get("title") == "Dune"
    assert doc_props.get("pages") == 412

    annotations = root.get("annotations")
    assert isinstance(annotations, LuaTable)
    first = annotations.get(1)
    assert isinstance(first, LuaTable)
    assert first.get("text") == "Fear is the mind-killer."

    assert root.get("percent_finished") == 0.25
    assert root.get(1) == "loose"
    assert root.get("hidden") is False
    assert root.get("nothing") is None


def test_string_escapes_are_decoded() -> None:
    root = parse_lua_table(r'return { ["a"] = "line\nbreak \"quoted\" tab\there \65", ["b"] = ' + "'it\\'s' }")

    assert root.get("a") == 'line\nbreak "quoted" tab\there A'
    assert root.get("b") == "it's"


def test_backslash_newline_continuation_becomes_newline() -> None:
    root = parse_lua_table('return { ["authors"] = "Terry Pratchett\\\nNeil Gaiman" }')

    assert root.get("authors") == "Terry Pratchett\nNeil Gaiman"


def test_negative_numbers_and_hex_literals() -> None:
    root = parse_lua_table("return { ['x'] = -3, ['y'] = 0x1F, ['z'] = 1e3 }")

    assert root.get("x") == -3
    assert root.get("y") == 31
    assert root.get("z") == 1000.0


def test_long_strings_and_long_comments() -> None:
    root = parse_lua_table("--[[ header\ncomment ]]\nreturn { ['note'] = [[\nfirst\nsecond]] }")

    assert root.get("note") == "first\nsecond"


def test_unquote_strips_matching_quotes() -> None:
    assert unquote('"hello"') == "hello"
    assert unquote("'hello'") == "hello"
    assert unquote("[==[a]]b]==]") == "a]]b"


def test_missing_return_is_malformed_root() -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_lua_table("{ ['title'] = 'x' }")

    assert exc_info.value.reason == MALFORMED_ROOT


def test_return_without_table_is_malformed_root() -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_lua_table("return 42")

    assert exc_info.value.reason == MALFORMED_ROOT


@pytest.mark.parametrize(
    "text",
    [
        "return { ['a'] = }",
        "return { ['a'] = 1 ['b'] = 2 }",
        "return { ['a'] = 1 } extra",
        "return { ['a'] = 'unterminated }",
        "return { ['a'] = 1",
    ],
)
def test_syntax_errors_raise_parse_error(text: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_lua_table(text)

    assert exc_info.value.reason == SYNTAX


@pytest.mark.parametrize(
    "text",
    [
        'return { ["text"] = "bad \\u{110000}" }',
        'return { ["text"] = "bad \\u{FFFFFFFFFFFFFFFFFFFF}" }',
    ],
)
def test_out_of_range_unicode_escape_is_syntax_error(text: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_lua_table(text)

    assert exc_info.value.reason == SYNTAX


def test_unicode_escape_at_range_limit_is_decoded() -> None:
    table = parse_lua_table('return { ["text"] = "\\u{10FFFF}" }')

    assert table.get("text") == "\U0010ffff"


def test_deeply_nested_tables_are_syntax_error() -> None:
    depth = 100_000
    text = "return " + "{" * depth + "}" * depth

    with pytest.raises(ParseError) as exc_info:
        parse_lua_table(text)

    assert exc_info.value.reason == SYNTAX
