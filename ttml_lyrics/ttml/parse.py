from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from lxml import etree

from .errors import TTMLParseError
from .metadata import LyricMetadataMaps, RomanWord, extract_metadata
from .model import LyricLine, LyricWord, LyricWordBase, TTMLLyric
from .spans import (
    ANNOTATION_ROLES,
    BG_ROLE,
    ROMAN_ROLE,
    TRANSLATION_ROLE,
    AttrTable,
    collect_ruby_text_spans,
    flatten_span_inner_text,
    inner_markup,
    is_element,
    parse_span,
    tag_name,
)
from .timespan import parse_timespan

logger = logging.getLogger(__name__)

_OPEN_PARENS = ("(", "（")
_CLOSE_PARENS = (")", "）")


@dataclass(frozen=True, slots=True)
class TTMLParseStats:
    lines_total: int
    main_lines: int
    bg_lines: int
    duet_lines: int
    words_total: int
    ruby_words: int
    words_dropped: int
    translated_lines: int
    romanized_lines: int


def compute_word_timing(words: Iterable[LyricWordBase | LyricWord]) -> tuple[int, int]:
    """Min start / max end over words with visible text, (0, 0) if there are none."""
    timed = [w for w in words if w.word.strip()]
    if not timed:
        return 0, 0
    return min(w.start_time for w in timed), max(w.end_time for w in timed)


def _empty_beat(raw: str | None) -> int:
    if not raw:
        return 0
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return 0


def build_word(word_el: etree._Element, attrs: AttrTable | None = None) -> LyricWord | None:
    """
    One word-bearing span to a LyricWord. Returns None for a plain word span
    without begin/end; ruby containers are always built.
    """
    attrs = attrs or AttrTable(word_el)
    begin = attrs.get("begin")
    end = attrs.get("end")
    node = parse_span(word_el, attrs)
    obscene = attrs.get("obscene") == "true"
    empty_beat = _empty_beat(attrs.get("empty-beat"))

    if node.ruby == "container":
        base = next((child for child in node.children if child.ruby == "base"), None)
        if base is not None:
            text = flatten_span_inner_text(base, ANNOTATION_ROLES)
        else:
            text = flatten_span_inner_text(node, ANNOTATION_ROLES)

        container_start = parse_timespan(begin) if begin else None
        container_end = parse_timespan(end) if end else None
        ruby = tuple(
            LyricWordBase(
                word=flatten_span_inner_text(rt, ANNOTATION_ROLES),
                start_time=parse_timespan(rt.begin) if rt.begin else (container_start or 0),
                end_time=parse_timespan(rt.end) if rt.end else (container_end or 0),
            )
            for rt in collect_ruby_text_spans(node)
        )
        ruby_start, ruby_end = compute_word_timing(ruby)
        return LyricWord(
            word=text,
            start_time=container_start if container_start is not None else ruby_start,
            end_time=container_end if container_end is not None else ruby_end,
            obscene=obscene,
            empty_beat=empty_beat,
            ruby=ruby or None,
        )

    if not begin or not end:
        return None
    return LyricWord(
        word=flatten_span_inner_text(node, ANNOTATION_ROLES),
        start_time=parse_timespan(begin),
        end_time=parse_timespan(end),
        obscene=obscene,
        empty_beat=empty_beat,
    )


def match_roman_word(word: LyricWord, pool: list[RomanWord]) -> LyricWord:
    """Assign the first pool entry timed exactly like `word`, consuming it."""
    for i, rw in enumerate(pool):
        if rw.start_time == word.start_time and rw.end_time == word.end_time:
            del pool[i]
            return replace(word, roman_word=rw.text)
    return word


def _strip_bg_parens(words: list[LyricWord]) -> list[LyricWord]:
    if words and words[0].word.startswith(_OPEN_PARENS):
        first = replace(words[0], word=words[0].word[1:])
        words = [first, *words[1:]] if first.word else words[1:]
    if words and words[-1].word.endswith(_CLOSE_PARENS):
        last = replace(words[-1], word=words[-1].word[:-1])
        words = [*words[:-1], last] if last.word else words[:-1]
    return words


class _LineBuilder:
    """Builds lines for one document against its metadata maps."""

    def __init__(self, maps: LyricMetadataMaps):
        self.maps = maps
        self.words_dropped = 0

    def build(
        self,
        line_el: etree._Element,
        is_bg: bool = False,
        is_duet: bool = False,
        parent_key: str | None = None,
        attrs: AttrTable | None = None,
    ) -> list[LyricLine]:
        """
        Returns the line built from `line_el` followed by the lines of its
        background part, if any. Nothing is appended to shared state, so the
        caller decides the final ordering.
        """
        attrs = attrs or AttrTable(line_el)
        begin = attrs.get("begin")
        end = attrs.get("end")
        explicit_timing = bool(begin and end)
        start_time = parse_timespan(begin) if explicit_timing else 0
        end_time = parse_timespan(end) if explicit_timing else 0

        if is_bg:
            duet = is_duet
            key = parent_key
        else:
            agent = attrs.get("agent")
            duet = bool(agent) and agent != self.maps.main_agent_id
            key = attrs.get("key")

        translated = ""
        roman = ""
        pool: list[RomanWord] = []
        if key:
            translated = self.maps.translation_for(key, is_bg)
            roman = self.maps.romanization_for(key, is_bg)
            pool = self.maps.roman_pool(key, is_bg)

        words: list[LyricWord] = []
        bg_lines: list[LyricLine] = []

        def add_text(text: str | None) -> None:
            if not text:
                return
            visible = bool(text.strip())
            words.append(
                LyricWord(
                    word=text,
                    start_time=start_time if visible else 0,
                    end_time=end_time if visible else 0,
                )
            )

        add_text(line_el.text)
        for child in line_el:
            if is_element(child):
                child_attrs = AttrTable(child)
                role = child_attrs.get("role") if tag_name(child) == "span" else None
                if role:
                    if role == BG_ROLE:
                        if bg_lines:
                            logger.debug("multiple background parts in one line, keeping the last one")
                        bg_lines = self.build(child, True, duet, key, child_attrs)
                    elif role == TRANSLATION_ROLE:
                        if not translated:
                            translated = inner_markup(child)
                    elif role == ROMAN_ROLE:
                        if not roman:
                            roman = inner_markup(child)
                else:
                    word = build_word(child, child_attrs)
                    if word is None:
                        self.words_dropped += 1
                    else:
                        words.append(match_roman_word(word, pool) if pool else word)
            add_text(child.tail)

        if not explicit_timing:
            start_time, end_time = compute_word_timing(words)

        if is_bg:
            words = _strip_bg_parens(words)

        line = LyricLine(
            words=tuple(words),
            start_time=start_time,
            end_time=end_time,
            translated_lyric=translated,
            roman_lyric=roman,
            is_bg=is_bg,
            is_duet=duet,
        )
        return [line, *bg_lines]


def _parse_document(ttml_text: str) -> etree._Element:
    if not ttml_text or not ttml_text.strip():
        raise TTMLParseError("Empty TTML document")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=False)
    try:
        return etree.fromstring(ttml_text.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as e:
        raise TTMLParseError(f"Malformed TTML document: {e}") from e


def _line_elements(root: etree._Element) -> list[tuple[etree._Element, AttrTable]]:
    # body p[begin][end], document order
    out: list[tuple[etree._Element, AttrTable]] = []
    for body in (el for el in root.iter() if tag_name(el) == "body"):
        for el in body.iterdescendants():
            if tag_name(el) == "p":
                attrs = AttrTable(el)
                if attrs.has("begin") and attrs.has("end"):
                    out.append((el, attrs))
    return out


def _parse(ttml_text: str) -> tuple[TTMLLyric, int]:
    root = _parse_document(ttml_text)
    logger.debug("ttml document parsed: root <%s>", tag_name(root))

    maps = extract_metadata(root)
    builder = _LineBuilder(maps)
    lines: list[LyricLine] = []
    for line_el, attrs in _line_elements(root):
        lines.extend(builder.build(line_el, attrs=attrs))

    doc = TTMLLyric(metadata=tuple(maps.entries), lyric_lines=tuple(lines))
    logger.debug("finished ttml load: %d lines, %d metadata entries", len(doc.lyric_lines), len(doc.metadata))
    return doc, builder.words_dropped


def parse_ttml(ttml_text: str) -> TTMLLyric:
    """
    Parse an Apple Music / AMLL flavoured TTML document.

    - explicit line timing wins; otherwise it is derived from the words
    - background (x-bg) lines directly follow their main line
    - translations and romanizations come from iTunesMetadata, falling back to
      inline x-translation / x-roman spans
    - duet lines are those sung by an agent other than the first person agent

    Raises TTMLParseError for malformed XML or undecodable times.
    """
    doc, _dropped = _parse(ttml_text)
    return doc


def compute_stats(doc: TTMLLyric, words_dropped: int = 0) -> TTMLParseStats:
    lines: Sequence[LyricLine] = doc.lyric_lines
    return TTMLParseStats(
        lines_total=len(lines),
        main_lines=sum(1 for ln in lines if not ln.is_bg),
        bg_lines=sum(1 for ln in lines if ln.is_bg),
        duet_lines=sum(1 for ln in lines if ln.is_duet),
        words_total=sum(len(ln.words) for ln in lines),
        ruby_words=sum(1 for ln in lines for w in ln.words if w.ruby),
        words_dropped=words_dropped,
        translated_lines=sum(1 for ln in lines if ln.translated_lyric),
        romanized_lines=sum(1 for ln in lines if ln.roman_lyric),
    )


def parse_ttml_with_stats(ttml_text: str) -> tuple[TTMLLyric, TTMLParseStats]:
    # thin wrapper for CLI diagnostics
    doc, dropped = _parse(ttml_text)
    return doc, compute_stats(doc, dropped)
