# File: tests/test_scanner.py
import io
import json

import pytest

from media_scout.extractor.runner import DiscoveryResult
from media_scout.extractor.scanner import (
    JsonTokenScanner,
    MalformedOutputError,
    TokenKind,
    TruncatedOutputError,
    scan_discovery_output,
)
from media_scout.extractor.streams import TeedReader

SINGLE = '{"url":"http://x/v.mp4","webpage_url":"http://x/watch"}'
PLAYLIST = json.dumps(
    {
        "_type": "playlist",
        "title": "two épisodes",
        "entries": [
            {"id": 1, "url": "http://x/1.mp4", "webpage_url": "http://x/p1", "formats": [{"url": "http://x/f1"}]},
            {"id": 2, "url": "http://x/2.mp4", "webpage_url": "http://x/p2", "duration": 12.5, "live": False},
        ],
        "webpage_url": "http://x/playlist",
        "uploader": None,
    }
)


def scan(text):
    sink = DiscoveryResult(payload=io.BytesIO())
    data = text.encode("utf-8") if isinstance(text, str) else text
    scan_discovery_output(io.BytesIO(data), sink)
    return sink


def test_single_object():
    sink = scan('{"url": "http://x/v.mp4", "ext": "mp4"}')
    assert sink.video_urls == ["http://x/v.mp4"]
    assert sink.page_urls == []


def test_single_object_with_page():
    sink = scan(SINGLE)
    assert sink.video_urls == ["http://x/v.mp4"]
    assert sink.page_urls == ["http://x/watch"]


def test_playlist_entries_keep_order():
    sink = scan(PLAYLIST)
    assert sink.video_urls == ["http://x/1.mp4", "http://x/2.mp4"]
    assert sink.page_urls == ["http://x/p1", "http://x/p2", "http://x/playlist"]


def test_nested_urls_are_ignored():
    doc = {
        "formats": [{"url": "http://x/format"}],
        "thumbnails": {"url": "http://x/thumb"},
        "entries": [{"requested_formats": [{"url": "http://x/deep"}], "url": "http://x/a"}],
    }
    sink = scan(json.dumps(doc))
    assert sink.video_urls == ["http://x/a"]


def test_duplicates_are_kept():
    sink = scan('{"entries":[{"url":"http://x/a"},{"url":"http://x/a"}]}')
    assert sink.video_urls == ["http://x/a", "http://x/a"]


def test_non_string_url_is_dropped():
    sink = scan('{"url": null, "webpage_url": 5}')
    assert sink.video_urls == []
    assert sink.page_urls == []


def test_empty_input_is_truncated():
    with pytest.raises(TruncatedOutputError):
        scan("")


def test_whitespace_only_is_truncated():
    with pytest.raises(TruncatedOutputError):
        scan("\n  \n")


def test_every_truncation_is_tolerated_and_keeps_scanned_values():
    full = scan(PLAYLIST)
    data = PLAYLIST.encode("utf-8")
    for cut in range(len(data)):
        sink = DiscoveryResult(payload=io.BytesIO())
        with pytest.raises(TruncatedOutputError):
            scan_discovery_output(io.BytesIO(data[:cut]), sink)
        assert sink.video_urls == full.video_urls[: len(sink.video_urls)]
        assert sink.page_urls == full.page_urls[: len(sink.page_urls)]


def test_truncation_after_first_value_keeps_it():
    cut = SINGLE.index(',"webpage_url"')
    sink = DiscoveryResult(payload=io.BytesIO())
    with pytest.raises(TruncatedOutputError):
        scan_discovery_output(io.BytesIO(SINGLE[:cut].encode()), sink)
    assert sink.video_urls == ["http://x/v.mp4"]


@pytest.mark.parametrize(
    "text",
    [
        '[{"url": "http://x/v.mp4"}]',
        '"http://x/v.mp4"',
        "42",
        "true",
        '{"url" "http://x"}',
        '{"url": "http://x",}',
        '{"entries": [1 2]}',
        '{"url": tru}',
        "<html>not json</html>",
        '{"url": "bad \\q escape"}',
        '{"url": "\\u12G4"}',
    ],
)
def test_malformed_output(text):
    with pytest.raises(MalformedOutputError):
        scan(text)


def test_trailing_data_is_malformed_after_values_were_seen():
    sink = DiscoveryResult(payload=io.BytesIO())
    with pytest.raises(MalformedOutputError):
        scan_discovery_output(io.BytesIO(b'{"url":"http://x/v.mp4"} trailing'), sink)
    assert sink.video_urls == ["http://x/v.mp4"]


def test_token_stream_and_paths():
    scanner = JsonTokenScanner(io.BytesIO(b'{"a": [1, {"b": true}], "c": null}'))
    seen = [(kind, value, scanner.path) for kind, value in scanner]
    assert seen == [
        (TokenKind.BEGIN_OBJECT, None, "$"),
        (TokenKind.NAME, "a", "$.a"),
        (TokenKind.BEGIN_ARRAY, None, "$.a[0]"),
        (TokenKind.NUMBER, "1", "$.a[0]"),
        (TokenKind.BEGIN_OBJECT, None, "$.a[1]"),
        (TokenKind.NAME, "b", "$.a[1].b"),
        (TokenKind.BOOLEAN, True, "$.a[1].b"),
        (TokenKind.END_OBJECT, None, "$.a[1]"),
        (TokenKind.END_ARRAY, None, "$.a"),
        (TokenKind.NAME, "c", "$.c"),
        (TokenKind.NULL, None, "$.c"),
        (TokenKind.END_OBJECT, None, "$"),
        (TokenKind.END_DOCUMENT, None, "$"),
    ]


def test_numbers_are_opaque_strings():
    scanner = JsonTokenScanner(io.BytesIO(b"[-1.5e+3, 0, 12345678901234567890]"))
    numbers = [value for kind, value in scanner if kind is TokenKind.NUMBER]
    assert numbers == ["-1.5e+3", "0", "12345678901234567890"]


def test_string_escapes():
    raw = b'{"url": "http://x/\\u00e9\\"q\\/\\n", "title": "\\ud83d\\ude00"}'
    scanner = JsonTokenScanner(io.BytesIO(raw))
    strings = [value for kind, value in scanner if kind is TokenKind.STRING]
    assert strings == ['http://x/é"q/\n', "\U0001F600"]


def test_one_byte_chunks_with_multibyte_text():
    doc = '{"title": "日本語 \U0001F3A5", "url": "http://x/é.mp4"}'.encode("utf-8")
    scanner = JsonTokenScanner(io.BytesIO(doc), chunk_size=1)
    strings = [value for kind, value in scanner if kind is TokenKind.STRING]
    assert strings == ["日本語 \U0001F3A5", "http://x/é.mp4"]


def test_scanner_stops_after_end_document():
    scanner = JsonTokenScanner(io.BytesIO(b"{}"))
    assert [kind for kind, _ in scanner] == [
        TokenKind.BEGIN_OBJECT,
        TokenKind.END_OBJECT,
        TokenKind.END_DOCUMENT,
    ]
    with pytest.raises(StopIteration):
        next(scanner)


def test_teed_reader_keeps_every_byte_the_parser_read():
    data = b'{"url":"http://x/v.mp4"} garbage after the document'
    sink = io.BytesIO()
    results = DiscoveryResult(payload=sink)
    with pytest.raises(MalformedOutputError):
        scan_discovery_output(TeedReader(io.BytesIO(data), sink), results)
    assert sink.getvalue() == data


def test_teed_reader_readinto():
    sink = io.BytesIO()
    reader = TeedReader(io.BytesIO(b"abcdef"), sink)
    buf = bytearray(4)
    assert reader.readinto(buf) == 4
    assert bytes(buf) == b"abcd"
    assert reader.read() == b"ef"
    assert sink.getvalue() == b"abcdef"
