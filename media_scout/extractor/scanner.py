"""
Streaming JSON token scanner for discovery tool output.

The tool can print megabytes of format descriptions for a single page, and the
stream may be cut off at any byte. :class:`JsonTokenScanner` therefore never
builds a document tree: it yields one structural token at a time and keeps
only the current nesting location (``$.entries[3].webpage_url``) so callers
can pick out the few values they care about.
"""
from __future__ import annotations

import codecs
import re
from enum import Enum
from typing import Any, BinaryIO, Iterator, List, Optional, Protocol, Tuple


class TruncatedOutputError(EOFError):
    """Input ended before the top-level value was complete."""


class MalformedOutputError(ValueError):
    """Input is not the kind of JSON document the scanner accepts."""


class TokenKind(Enum):
    BEGIN_ARRAY = "BEGIN_ARRAY"
    END_ARRAY = "END_ARRAY"
    BEGIN_OBJECT = "BEGIN_OBJECT"
    END_OBJECT = "END_OBJECT"
    NAME = "NAME"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"
    END_DOCUMENT = "END_DOCUMENT"


Token = Tuple[TokenKind, Any]

# nesting contexts
_EMPTY_DOCUMENT = 0
_NONEMPTY_DOCUMENT = 1
_EMPTY_ARRAY = 2
_NONEMPTY_ARRAY = 3
_EMPTY_OBJECT = 4
_DANGLING_NAME = 5
_NONEMPTY_OBJECT = 6

_ARRAY_CONTEXTS = (_EMPTY_ARRAY, _NONEMPTY_ARRAY)

_WHITESPACE = frozenset(" \t\r\n")
_NUMBER_CHARS = frozenset("+-0123456789.eE")
_STRING_SPECIAL = re.compile(r'["\\]')
_LITERALS = {"t": ("true", TokenKind.BOOLEAN, True),
             "f": ("false", TokenKind.BOOLEAN, False),
             "n": ("null", TokenKind.NULL, None)}
_ESCAPES = {'"': '"', "\\": "\\", "/": "/", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t"}


class JsonTokenScanner:
    """Iterator of ``(TokenKind, value)`` pairs over a UTF-8 byte stream.

    Numbers are returned as their literal text. :attr:`path` describes where
    the most recent token sits, e.g. ``$.entries[0].url`` for a member value or
    ``$.entries[2]`` for an array element.
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = 8192) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buf = ""
        self._pos = 0
        self._eof = False
        self._done = False
        self._stack: List[int] = [_EMPTY_DOCUMENT]
        self._names: List[Optional[str]] = [None]
        self._indices: List[int] = [0]

    # ------------------------------------------------------------------ #
    # public                                                             #
    # ------------------------------------------------------------------ #

    @property
    def path(self) -> str:
        parts = ["$"]
        for depth in range(1, len(self._stack)):
            if self._stack[depth] in _ARRAY_CONTEXTS:
                parts.append(f"[{max(self._indices[depth], 0)}]")
            elif self._names[depth] is not None:
                parts.append(f".{self._names[depth]}")
        return "".join(parts)

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        if self._done:
            raise StopIteration
        token = self._next_token()
        if token[0] is TokenKind.END_DOCUMENT:
            self._done = True
        return token

    # ------------------------------------------------------------------ #
    # grammar                                                            #
    # ------------------------------------------------------------------ #

    def _next_token(self) -> Token:
        ctx = self._stack[-1]

        if ctx in _ARRAY_CONTEXTS:
            c = self._next_non_ws()
            if c == "]":
                self._pop()
                return TokenKind.END_ARRAY, None
            if ctx == _NONEMPTY_ARRAY:
                if c != ",":
                    raise self._error(f"expected ',' or ']' but found {c!r}")
                c = self._next_non_ws()
            else:
                self._stack[-1] = _NONEMPTY_ARRAY
            self._indices[-1] += 1
            return self._read_value(c)

        if ctx in (_EMPTY_OBJECT, _NONEMPTY_OBJECT):
            c = self._next_non_ws()
            if c == "}":
                self._pop()
                return TokenKind.END_OBJECT, None
            if ctx == _NONEMPTY_OBJECT:
                if c != ",":
                    raise self._error(f"expected ',' or '}}' but found {c!r}")
                c = self._next_non_ws()
            if c != '"':
                raise self._error(f"expected a member name but found {c!r}")
            name = self._read_string()
            self._names[-1] = name
            self._stack[-1] = _DANGLING_NAME
            return TokenKind.NAME, name

        if ctx == _DANGLING_NAME:
            c = self._next_non_ws()
            if c != ":":
                raise self._error(f"expected ':' but found {c!r}")
            self._stack[-1] = _NONEMPTY_OBJECT
            return self._read_value(self._next_non_ws())

        if ctx == _EMPTY_DOCUMENT:
            self._stack[-1] = _NONEMPTY_DOCUMENT
            return self._read_value(self._next_non_ws())

        c = self._next_non_ws(eof_ok=True)
        if c is None:
            return TokenKind.END_DOCUMENT, None
        raise self._error(f"unexpected {c!r} after the top-level value")

    def _read_value(self, c: str) -> Token:
        if c == "{":
            self._push(_EMPTY_OBJECT)
            return TokenKind.BEGIN_OBJECT, None
        if c == "[":
            self._push(_EMPTY_ARRAY)
            return TokenKind.BEGIN_ARRAY, None
        if c == '"':
            return TokenKind.STRING, self._read_string()
        if c in _LITERALS:
            word, kind, value = _LITERALS[c]
            rest = self._take(len(word) - 1)
            if c + rest != word:
                raise self._error(f"unexpected literal {c + rest!r}")
            return kind, value
        if c == "-" or c.isdigit():
            return TokenKind.NUMBER, self._read_number(c)
        raise self._error(f"unexpected character {c!r}")

    def _push(self, ctx: int) -> None:
        self._stack.append(ctx)
        self._names.append(None)
        self._indices.append(-1)

    def _pop(self) -> None:
        self._stack.pop()
        self._names.pop()
        self._indices.pop()

    def _error(self, message: str) -> MalformedOutputError:
        return MalformedOutputError(f"{message} at path {self.path}")

    # ------------------------------------------------------------------ #
    # lexing                                                             #
    # ------------------------------------------------------------------ #

    def _fill(self) -> bool:
        """Append decoded input to the buffer; False once the stream is exhausted."""
        while not self._eof:
            data = self._stream.read(self._chunk_size)
            if not data:
                self._eof = True
                text = self._decoder.decode(b"", final=True)
            else:
                text = self._decoder.decode(data)
            if text:
                self._buf = self._buf[self._pos:] + text
                self._pos = 0
                return True
        return False

    def _truncated(self) -> TruncatedOutputError:
        return TruncatedOutputError(f"end of input at path {self.path}")

    def _next_non_ws(self, eof_ok: bool = False) -> Optional[str]:
        while True:
            buf, pos = self._buf, self._pos
            while pos < len(buf):
                ch = buf[pos]
                pos += 1
                if ch not in _WHITESPACE:
                    self._pos = pos
                    return ch
            self._pos = pos
            if not self._fill():
                if eof_ok:
                    return None
                raise self._truncated()

    def _peek(self) -> Optional[str]:
        if self._pos >= len(self._buf) and not self._fill():
            return None
        return self._buf[self._pos]

    def _take(self, n: int) -> str:
        while len(self._buf) - self._pos < n:
            if not self._fill():
                raise self._truncated()
        text = self._buf[self._pos:self._pos + n]
        self._pos += n
        return text

    def _read_number(self, first: str) -> str:
        chars = [first]
        while True:
            ch = self._peek()
            if ch is None or ch not in _NUMBER_CHARS:
                return "".join(chars)
            chars.append(ch)
            self._pos += 1

    def _read_string(self) -> str:
        parts: List[str] = []
        surrogates = False
        while True:
            if self._pos >= len(self._buf) and not self._fill():
                raise self._truncated()
            match = _STRING_SPECIAL.search(self._buf, self._pos)
            if match is None:
                parts.append(self._buf[self._pos:])
                self._pos = len(self._buf)
                continue
            parts.append(self._buf[self._pos:match.start()])
            self._pos = match.end()
            if match.group() == '"':
                text = "".join(parts)
                if surrogates:
                    text = text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")
                return text
            escaped = self._take(1)
            if escaped == "u":
                digits = self._take(4)
                try:
                    code = int(digits, 16)
                except ValueError:
                    raise self._error(f"bad unicode escape \\u{digits}") from None
                surrogates = surrogates or 0xD800 <= code <= 0xDFFF
                parts.append(chr(code))
            elif escaped in _ESCAPES:
                parts.append(_ESCAPES[escaped])
            else:
                raise self._error(f"bad escape \\{escaped}")


# --------------------------------------------------------------------------- #
# discovery output                                                            #
# --------------------------------------------------------------------------- #

_VIDEO_URL_PATH = re.compile(r"^\$(?:\.entries\[\d+\])?\.url$")
_PAGE_URL_PATH = re.compile(r"^\$(?:\.entries\[\d+\])?\.webpage_url$")


class UrlSink(Protocol):
    video_urls: List[str]
    page_urls: List[str]


def scan_discovery_output(stream: BinaryIO, results: UrlSink) -> None:
    """Collect media and page URLs from one discovery tool JSON document.

    Strings at ``$.url`` / ``$.entries[n].url`` go to ``results.video_urls``,
    strings at ``$.webpage_url`` / ``$.entries[n].webpage_url`` to
    ``results.page_urls``; everything else is dropped as soon as it is read.
    URLs seen before a :class:`TruncatedOutputError` stay in *results*.
    """
    scanner = JsonTokenScanner(stream)
    kind, _ = next(scanner)
    if kind is not TokenKind.BEGIN_OBJECT:
        raise MalformedOutputError(f"unexpected top-level json token {kind.value}")
    for kind, value in scanner:
        if kind is not TokenKind.STRING:
            continue
        path = scanner.path
        if _VIDEO_URL_PATH.match(path):
            results.video_urls.append(value)
        elif _PAGE_URL_PATH.match(path):
            results.page_urls.append(value)


__all__ = [
    "JsonTokenScanner",
    "MalformedOutputError",
    "TokenKind",
    "TruncatedOutputError",
    "UrlSink",
    "scan_discovery_output",
]
