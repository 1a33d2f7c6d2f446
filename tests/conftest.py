from __future__ import annotations

import pytest

_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<tt xmlns="http://www.w3.org/ns/ttml"
    xmlns:ttm="http://www.w3.org/ns/ttml#metadata"
    xmlns:itunes="http://music.apple.com/lyric-ttml-internal"
    xmlns:amll="http://www.example.com/ns/amll">
<head><metadata>{head}</metadata></head>
<body><div>{body}</div></body>
</tt>
"""

_ITUNES = '<iTunesMetadata xmlns="http://music.apple.com/lyric-ttml-internal">{}</iTunesMetadata>'


def build_ttml(body: str, head: str = "", itunes: str = "") -> str:
    if itunes:
        head += _ITUNES.format(itunes)
    return _DOC.format(head=head, body=body)


@pytest.fixture
def make_ttml():
    return build_ttml
