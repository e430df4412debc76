"""Lexer and parser for the Lua table literals KOReader writes to metadata files."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
import sys
from typing import Iterator, Union

from korsync.errors import MALFORMED_ROOT, SYNTAX, ParseError

_TOKEN_RE = re.compile(
    "|".join(
        (
            r"(?P<ws>\s+)",
            r"(?P<long_comment>--\[(?P<lc_eq>=*)\[.*?\](?P=lc_eq)\])",
            r"(?P<comment>--[^\n]*)",
            r"(?P<long_string>\[(?P<ls_eq>=*)\[.*?\](?P=ls_eq)\])",
            r'(?P<dq_string>"(?:[^"\\\n]|\\.)*")',
            r"(?P<sq_string>'(?:[^'\\\n]|\\.)*')",
            r"(?P<number>0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
            r"(?P<name>[A-Za-z_][A-Za-z0-9_]*)",
            r"(?P<punct>[{}\[\]=,;\-])",
        )
    ),
    re.DOTALL,
)

_ESCAPE_RE = re.compile(
    r"\\(?:(?P<dec>\d{1,3})|x(?P<hex>[0-9a-fA-F]{2})|u\{(?P<uni>[0-9a-fA-F]+)\}|(?P<skip>z\s*)"
    r"|(?P<newline>\r\n|\n\r|\n|\r)|(?P<char>.))",
    re.DOTALL,
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

_KEYWORDS = {"return", "true", "false", "nil"}


LuaValue = Union[str, int, float, bool, None, "LuaTable"]


@dataclass(slots=True)
class LuaField:
    """One table field; positional fields carry their implicit 1-based index."""

    key: str | int | float | bool
    value: LuaValue
    positional: bool = False


@dataclass(slots=True)
class LuaTable:
    """Ordered table constructor exactly as written in the source."""

    fields: list[LuaField] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, key: str | int) -> LuaValue:
        for item in self.fields:
            if item.key == key:
                return item.value
        return None


@dataclass(slots=True)
class _Token:
    kind: str
    text: str
    offset: int


def _decode_escape(match: re.Match[str]) -> str:
    if match.group("dec") is not None:
        return chr(int(match.group("dec")))
    if match.group("hex") is not None:
        return chr(int(match.group("hex"), 16))
    if match.group("uni") is not None:
        code_point = int(match.group("uni"), 16)
        if code_point > sys.maxunicode:
            raise ParseError(SYNTAX, f"Escape {match.group()!r} is outside the Unicode range")
        return chr(code_point)
    if match.group("skip") is not None:
        return ""
    if match.group("newline") is not None:
        return "\n"
    char = match.group("char")
    return _SIMPLE_ESCAPES.get(char, char)


def unquote(literal: str) -> str:
    """Strip the enclosing quotes of a string literal and decode its escapes."""

    if literal.startswith("["):
        opening = literal.index("[", 1) + 1
        body = literal[opening : len(literal) - opening]
        if body.startswith("\r\n"):
            return body[2:]
        if body.startswith("\n"):
            return body[1:]
        return body
    return _ESCAPE_RE.sub(_decode_escape, literal[1:-1])


def _parse_number(text: str) -> int | float:
    if text[:2] in {"0x", "0X"}:
        return int(text, 16)
    if any(char in text for char in ".eE"):
        return float(text)
    return int(text)


def _tokenize(text: str) -> Iterator[_Token]:
    offset = 0
    length = len(text)
    while offset < length:
        match = _TOKEN_RE.match(text, offset)
        if match is None:
            raise ParseError(SYNTAX, f"Unexpected character {text[offset]!r} at offset {offset}")
        kind = match.lastgroup or ""
        if kind not in {"ws", "comment", "long_comment"}:
            if kind in {"dq_string", "sq_string", "long_string"}:
                kind = "string"
            elif kind == "name" and match.group() in _KEYWORDS:
                kind = match.group()
            yield _Token(kind=kind, text=match.group(), offset=offset)
        offset = match.end()
    yield _Token(kind="eof", text="", offset=length)


class _Parser:
    def __init__(self, text: str) -> None:
        self._tokens = list(_tokenize(text))
        self._index = 0

    def _peek(self, ahead: int = 0) -> _Token:
        index = min(self._index + ahead, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> _Token:
        token = self._tokens[self._index]
        if token.kind != "eof":
            self._index += 1
        return token

    def _expect(self, kind: str, text: str | None = None) -> _Token:
        token = self._advance()
        if token.kind != kind or (text is not None and token.text != text):
            wanted = text or kind
            raise ParseError(SYNTAX, f"Expected {wanted!r} at offset {token.offset}, got {token.text or token.kind!r}")
        return token

    def _is_punct(self, text: str, ahead: int = 0) -> bool:
        token = self._peek(ahead)
        return token.kind == "punct" and token.text == text

    def parse_chunk(self) -> LuaTable:
        if self._peek().kind != "return":
            raise ParseError(MALFORMED_ROOT, "Metadata chunk does not start with a return statement")
        self._advance()
        if not self._is_punct("{"):
            raise ParseError(MALFORMED_ROOT, "Metadata chunk does not return a table")
        root = self._parse_table()
        if self._is_punct(";"):
            self._advance()
        trailing = self._peek()
        if trailing.kind != "eof":
            raise ParseError(SYNTAX, f"Unexpected trailing content at offset {trailing.offset}")
        return root

    def _parse_table(self) -> LuaTable:
        self._expect("punct", "{")
        table = LuaTable()
        position = 0
        while not self._is_punct("}"):
            if self._is_punct("["):
                self._advance()
                key = self._parse_value()
                if isinstance(key, LuaTable) or key is None:
                    raise ParseError(SYNTAX, "Table keys must be strings, numbers or booleans")
                self._expect("punct", "]")
                self._expect("punct", "=")
                table.fields.append(LuaField(key=key, value=self._parse_value()))
            elif self._peek().kind == "name" and self._is_punct("=", ahead=1):
                key_token = self._advance()
                self._advance()
                table.fields.append(LuaField(key=key_token.text, value=self._parse_value()))
            else:
                position += 1
                table.fields.append(LuaField(key=position, value=self._parse_value(), positional=True))

            if self._is_punct(",") or self._is_punct(";"):
                self._advance()
            elif not self._is_punct("}"):
                token = self._peek()
                raise ParseError(SYNTAX, f"Expected ',' or '}}' at offset {token.offset}")
        self._expect("punct", "}")
        return table

    def _parse_value(self) -> LuaValue:
        token = self._peek()
        if token.kind == "string":
            self._advance()
            return unquote(token.text)
        if token.kind == "number":
            self._advance()
            return _parse_number(token.text)
        if token.kind == "true":
            self._advance()
            return True
        if token.kind == "false":
            self._advance()
            return False
        if token.kind == "nil":
            self._advance()
            return None
        if token.kind == "punct" and token.text == "{":
            return self._parse_table()
        if token.kind == "punct" and token.text == "-":
            self._advance()
            number = self._expect("number")
            return -_parse_number(number.text)
        raise ParseError(SYNTAX, f"Unexpected token {token.text or token.kind!r} at offset {token.offset}")


def parse_lua_table(text: str) -> LuaTable:
    """Parse a ``return { ... }`` chunk into its raw table tree."""

    try:
        return _Parser(text).parse_chunk()
    except RecursionError as exc:
        raise ParseError(SYNTAX, "Tables are nested too deeply") from exc
