"""
Out-of-band metadata carried by Apple Music / AMLL flavoured TTML:

- iTunesMetadata > translations > translation > text[for]
- iTunesMetadata > transliterations > transliteration > text[for]
- iTunesMetadata > songwriters > songwriter
- amll:meta[key][value]
- ttm:agent[type=person][xml:id]

Everything here is read once per document, before any line is built.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from lxml import etree

from .model import MetadataEntry
from .spans import BG_ROLE, AttrTable, is_element, tag_name
from .timespan import parse_timespan

logger = logging.getLogger(__name__)

DEFAULT_AGENT_ID = "v1"

_OPEN_PAREN_RE = re.compile(r"^[（(]")
_CLOSE_PAREN_RE = re.compile(r"[)）]$")


@dataclass(frozen=True, slots=True)
class LineText:
    main: str
    bg: str

    def pick(self, is_bg: bool) -> str:
        return self.bg if is_bg else self.main


@dataclass(frozen=True, slots=True)
class RomanWord:
    start_time: int
    end_time: int
    text: str


@dataclass(frozen=True, slots=True)
class WordRoman:
    main: tuple[RomanWord, ...]
    bg: tuple[RomanWord, ...]

    def pick(self, is_bg: bool) -> tuple[RomanWord, ...]:
        return self.bg if is_bg else self.main


@dataclass(slots=True)
class LyricMetadataMaps:
    translations: dict[str, LineText] = field(default_factory=dict)
    timed_translations: dict[str, LineText] = field(default_factory=dict)
    line_romanizations: dict[str, LineText] = field(default_factory=dict)
    word_romanizations: dict[str, WordRoman] = field(default_factory=dict)
    entries: list[MetadataEntry] = field(default_factory=list)
    main_agent_id: str = DEFAULT_AGENT_ID

    def translation_for(self, key: str, is_bg: bool) -> str:
        # the timed variant always wins over the plain one
        found = self.timed_translations.get(key) or self.translations.get(key)
        return found.pick(is_bg) if found else ""

    def romanization_for(self, key: str, is_bg: bool) -> str:
        found = self.line_romanizations.get(key)
        return found.pick(is_bg) if found else ""

    def roman_pool(self, key: str, is_bg: bool) -> list[RomanWord]:
        # a fresh copy per line; entries are consumed as words match
        found = self.word_romanizations.get(key)
        return list(found.pick(is_bg)) if found else []


def strip_parens(text: str) -> str:
    text = text.strip()
    text = _OPEN_PAREN_RE.sub("", text, count=1)
    text = _CLOSE_PAREN_RE.sub("", text, count=1)
    return text.strip()


def text_content(el: etree._Element) -> str:
    return str(el.xpath("string()"))


def select(root: etree._Element, *path: str) -> list[etree._Element]:
    """Elements reached by a chain of local names, first step anywhere in the tree."""
    first, *rest = path
    current = [el for el in root.iter() if tag_name(el) == first]
    for step in rest:
        current = [child for el in current for child in el if tag_name(child) == step]
    return current


def _keyed_texts(root: etree._Element, *path: str) -> list[tuple[str, etree._Element]]:
    out: list[tuple[str, etree._Element]] = []
    for el in select(root, *path):
        key = AttrTable(el).get("for")
        if key:
            out.append((key, el))
    return out


def _split_main_bg(text_el: etree._Element) -> LineText:
    main_parts = [text_el.text or ""]
    bg_parts: list[str] = []
    for child in text_el:
        if is_element(child) and AttrTable(child).get("role") == BG_ROLE:
            bg_parts.append(text_content(child))
        main_parts.append(child.tail or "")
    return LineText(main="".join(main_parts).strip(), bg=strip_parens("".join(bg_parts)))


def _has_span_descendant(el: etree._Element) -> bool:
    return any(tag_name(d) == "span" for d in el.iterdescendants())


def extract_translations(root: etree._Element) -> tuple[dict[str, LineText], dict[str, LineText]]:
    """
    Returns (plain, timed). An entry lands in `timed` when its source element
    holds nested spans; such a key is then removed from `plain`.
    """
    plain: dict[str, LineText] = {}
    timed: dict[str, LineText] = {}
    texts = _keyed_texts(root, "iTunesMetadata", "translations", "translation", "text")

    for key, el in texts:
        lt = _split_main_bg(el)
        if lt.main or lt.bg:
            plain[key] = lt

    for key, el in texts:
        lt = _split_main_bg(el)
        if (lt.main or lt.bg) and _has_span_descendant(el):
            timed[key] = lt
            plain.pop(key, None)

    return plain, timed


def _timed_span(attrs: AttrTable, text: str) -> RomanWord:
    return RomanWord(
        start_time=parse_timespan(attrs.get("begin") or ""),
        end_time=parse_timespan(attrs.get("end") or ""),
        text=text,
    )


def extract_romanizations(root: etree._Element) -> tuple[dict[str, LineText], dict[str, WordRoman]]:
    """
    Returns (line level, word level). Word level entries only exist for keys
    whose transliteration carries timed spans.
    """
    line_level: dict[str, LineText] = {}
    word_level: dict[str, WordRoman] = {}

    for key, el in _keyed_texts(root, "iTunesMetadata", "transliterations", "transliteration", "text"):
        main_words: list[RomanWord] = []
        bg_words: list[RomanWord] = []
        main_parts = [el.text or ""]
        bg_parts: list[str] = []
        word_by_word = False

        for child in el:
            if is_element(child):
                attrs = AttrTable(child)
                if attrs.get("role") == BG_ROLE:
                    nested = [
                        (d, d_attrs)
                        for d in child.iterdescendants()
                        if tag_name(d) == "span"
                        for d_attrs in (AttrTable(d),)
                        if d_attrs.has("begin") and d_attrs.has("end")
                    ]
                    if nested:
                        word_by_word = True
                        bg_words.extend(_timed_span(d_attrs, strip_parens(text_content(d))) for d, d_attrs in nested)
                    else:
                        bg_parts.append(text_content(child))
                elif attrs.has("begin") and attrs.has("end"):
                    word_by_word = True
                    main_words.append(_timed_span(attrs, text_content(child)))
            main_parts.append(child.tail or "")

        if word_by_word:
            word_level[key] = WordRoman(main=tuple(main_words), bg=tuple(bg_words))

        lt = LineText(main="".join(main_parts).strip(), bg=strip_parens("".join(bg_parts)))
        if lt.main or lt.bg:
            line_level[key] = lt

    return line_level, word_level


def _is_amll_meta(el: etree._Element) -> bool:
    if tag_name(el) != "meta":
        return False
    return el.prefix == "amll"


def extract_document_metadata(root: etree._Element) -> list[MetadataEntry]:
    values: dict[str, list[str]] = {}
    for el in root.iter():
        if not _is_amll_meta(el):
            continue
        attrs = AttrTable(el)
        key = attrs.get("key")
        value = attrs.get("value")
        if key and value:
            values.setdefault(key, []).append(value)

    entries = [MetadataEntry(key=k, value=tuple(v)) for k, v in values.items()]

    songwriters = [
        name
        for name in (text_content(el).strip() for el in select(root, "iTunesMetadata", "songwriters", "songwriter"))
        if name
    ]
    if songwriters:
        entries.append(MetadataEntry(key="songwriter", value=tuple(songwriters)))
    return entries


def extract_main_agent(root: etree._Element) -> str:
    for el in root.iter():
        if tag_name(el) != "agent":
            continue
        attrs = AttrTable(el)
        if attrs.get("type") != "person":
            continue
        agent_id = attrs.get("xml:id")
        if agent_id:
            return agent_id
    return DEFAULT_AGENT_ID


def extract_metadata(root: etree._Element) -> LyricMetadataMaps:
    translations, timed = extract_translations(root)
    line_roman, word_roman = extract_romanizations(root)
    maps = LyricMetadataMaps(
        translations=translations,
        timed_translations=timed,
        line_romanizations=line_roman,
        word_romanizations=word_roman,
        entries=extract_document_metadata(root),
        main_agent_id=extract_main_agent(root),
    )
    logger.debug(
        "metadata: %d translations (%d timed), %d romanizations (%d word level), %d entries, main agent %s",
        len(translations) + len(timed),
        len(timed),
        len(line_roman),
        len(word_roman),
        len(maps.entries),
        maps.main_agent_id,
    )
    return maps
