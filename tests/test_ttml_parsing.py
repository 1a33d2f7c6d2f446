from __future__ import annotations

import pytest

from ttml_lyrics.ttml import parse as parse_module
from ttml_lyrics.ttml.errors import TTMLParseError
from ttml_lyrics.ttml.metadata import RomanWord
from ttml_lyrics.ttml.model import LyricWord, LyricWordBase
from ttml_lyrics.ttml.parse import match_roman_word, parse_ttml, parse_ttml_with_stats

AGENTS = '<ttm:agent type="person" xml:id="v1"/><ttm:agent type="person" xml:id="v2"/>'


def _words(line):
    return [w.word for w in line.words]


class TestLineTiming:
    def test_explicit_timing_independent_of_words(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="10s" end="20s"><span begin="1s" end="2s">a</span></p>'))
        (line,) = doc.lyric_lines
        assert (line.start_time, line.end_time) == (10_000, 20_000)
        assert (line.words[0].start_time, line.words[0].end_time) == (1000, 2000)

    def test_derived_timing_ignores_whitespace_words(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="4s"><span begin="1s" end="1.5s">x</span>'
                '<span ttm:role="x-bg"> <span begin="2s" end="2.5s">a</span> '
                '<span begin="3s" end="3.5s">b</span></span></p>'
            )
        )
        bg = doc.lyric_lines[1]
        assert bg.is_bg
        assert (bg.start_time, bg.end_time) == (2000, 3500)
        assert _words(bg) == [" ", "a", " ", "b"]
        assert (bg.words[0].start_time, bg.words[0].end_time) == (0, 0)

    def test_whitespace_only_line_has_zero_timing(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">x</span><span ttm:role="x-bg"> </span></p>'))
        bg = doc.lyric_lines[1]
        assert (bg.start_time, bg.end_time) == (0, 0)

    def test_bare_text_takes_line_timing(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s">plain text</p>'))
        (line,) = doc.lyric_lines
        (word,) = line.words
        assert word.word == "plain text"
        assert (word.start_time, word.end_time) == (1000, 2000)

    def test_only_timed_paragraphs_are_lines(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s">untimed</p><p begin="2s" end="3s">timed</p>'))
        assert [line.text for line in doc.lyric_lines] == ["timed"]


class TestBackgroundLines:
    BODY = (
        '<p begin="1s" end="3s" itunes:key="L1" ttm:agent="v2">'
        '<span begin="1s" end="2s">Hello</span>'
        '<span ttm:role="x-bg" begin="2s" end="3s">'
        '<span begin="2s" end="2.5s">(你好</span><span begin="2.5s" end="3s">世界)</span>'
        "</span></p>"
        '<p begin="4s" end="5s"><span begin="4s" end="5s">Next</span></p>'
    )

    def test_background_follows_main_line(self, make_ttml):
        doc = parse_ttml(make_ttml(self.BODY, head=AGENTS))
        assert [ln.is_bg for ln in doc.lyric_lines] == [False, True, False]
        main, bg, nxt = doc.lyric_lines
        assert _words(main) == ["Hello"]
        assert _words(nxt) == ["Next"]
        assert (bg.start_time, bg.end_time) == (2000, 3000)

    def test_parens_stripped(self, make_ttml):
        doc = parse_ttml(make_ttml(self.BODY, head=AGENTS))
        assert _words(doc.lyric_lines[1]) == ["你好", "世界"]

    def test_background_inherits_duet(self, make_ttml):
        doc = parse_ttml(make_ttml(self.BODY, head=AGENTS))
        main, bg, nxt = doc.lyric_lines
        assert main.is_duet and bg.is_duet
        assert not nxt.is_duet

    def test_lone_paren_word_removed(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="3s"><span begin="1s" end="2s">x</span>'
                '<span ttm:role="x-bg"><span begin="2s" end="2.1s">(</span>'
                '<span begin="2.1s" end="2.5s">oh</span><span begin="2.5s" end="2.6s">）</span></span></p>'
            )
        )
        bg = doc.lyric_lines[1]
        assert _words(bg) == ["oh"]
        # timing is derived before the parens are dropped
        assert (bg.start_time, bg.end_time) == (2000, 2600)

    def test_main_line_parens_kept(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">(x)</span></p>'))
        assert _words(doc.lyric_lines[0]) == ["(x)"]

    def test_last_background_part_wins(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="3s"><span begin="1s" end="2s">x</span>'
                '<span ttm:role="x-bg"><span begin="2s" end="2.5s">first</span></span>'
                '<span ttm:role="x-bg"><span begin="2.5s" end="3s">second</span></span></p>'
            )
        )
        assert [ln.text for ln in doc.lyric_lines] == ["x", "second"]


class TestDuet:
    def test_agent_other_than_primary(self, make_ttml):
        body = (
            '<p begin="1s" end="2s" ttm:agent="v1">a</p>'
            '<p begin="2s" end="3s" ttm:agent="v2">b</p>'
            '<p begin="3s" end="4s">c</p>'
        )
        doc = parse_ttml(make_ttml(body, head=AGENTS))
        assert [ln.is_duet for ln in doc.lyric_lines] == [False, True, False]

    def test_default_primary_agent(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s" ttm:agent="v1">a</p><p begin="2s" end="3s" ttm:agent="v9">b</p>'))
        assert [ln.is_duet for ln in doc.lyric_lines] == [False, True]


class TestTranslationsOnLines:
    ITUNES = (
        "<translations>"
        '<translation><text for="L1">timed<span begin="0s" end="1s"></span></text></translation>'
        '<translation><text for="L1">plain</text></translation>'
        '<translation><text for="L2">only plain</text></translation>'
        "</translations>"
        "<transliterations><transliteration>"
        '<text for="L1">ro ma<span ttm:role="x-bg">(bg ro)</span></text>'
        "</transliteration></transliterations>"
    )

    def test_timed_translation_wins(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="2s" itunes:key="L1">a</p><p begin="2s" end="3s" itunes:key="L2">b</p>',
                itunes=self.ITUNES,
            )
        )
        l1, l2 = doc.lyric_lines
        assert l1.translated_lyric == "timed"
        assert l1.roman_lyric == "ro ma"
        assert l2.translated_lyric == "only plain"
        assert l2.roman_lyric == ""

    def test_background_uses_parent_key(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="3s" itunes:key="L2"><span begin="1s" end="2s">a</span>'
                '<span ttm:role="x-bg"><span begin="2s" end="3s">b</span></span></p>',
                itunes=(
                    '<translations><translation><text for="L2">main<span ttm:role="x-bg">(背景)</span></text>'
                    "</translation></translations>"
                ),
            )
        )
        main, bg = doc.lyric_lines
        assert main.translated_lyric == "main"
        assert bg.translated_lyric == "背景"

    def test_unknown_key_yields_empty(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s" itunes:key="L9">a</p>', itunes=self.ITUNES))
        line = doc.lyric_lines[0]
        assert line.translated_lyric == "" and line.roman_lyric == ""

    def test_inline_annotations_as_fallback(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="2s"><span begin="1s" end="2s">a</span>'
                '<span ttm:role="x-translation" xml:lang="zh">甲</span>'
                '<span ttm:role="x-roman">ei</span></p>'
            )
        )
        line = doc.lyric_lines[0]
        assert line.translated_lyric == "甲"
        assert line.roman_lyric == "ei"
        assert _words(line) == ["a"]

    def test_metadata_wins_over_inline(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="2s" itunes:key="L2"><span begin="1s" end="2s">a</span>'
                '<span ttm:role="x-translation">inline</span></p>',
                itunes=self.ITUNES,
            )
        )
        assert doc.lyric_lines[0].translated_lyric == "only plain"


class TestWordRomanization:
    def test_match_consumes_pool(self):
        pool = [RomanWord(0, 500, "a"), RomanWord(500, 900, "b")]
        w1 = match_roman_word(LyricWord("x", 0, 500), pool)
        w2 = match_roman_word(LyricWord("y", 500, 900), pool)
        w3 = match_roman_word(LyricWord("z", 0, 500), pool)
        assert (w1.roman_word, w2.roman_word, w3.roman_word) == ("a", "b", "")
        assert pool == []

    def test_match_keeps_id(self):
        word = LyricWord("x", 0, 500)
        assert match_roman_word(word, [RomanWord(0, 500, "a")]).id == word.id

    def test_word_by_word_in_document(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="0s" end="2s" itunes:key="L1">'
                '<span begin="0s" end="0.5s">甲</span><span begin="0.5s" end="0.9s">乙</span>'
                '<span begin="0s" end="0.5s">丙</span>'
                '<span ttm:role="x-bg"><span begin="1s" end="2s">(丁)</span></span></p>'
                '<p begin="3s" end="4s" itunes:key="L1"><span begin="0s" end="0.5s">戊</span></p>',
                itunes=(
                    "<transliterations><transliteration><text for=\"L1\">"
                    '<span begin="0s" end="0.5s">a</span><span begin="0.5s" end="0.9s">b</span>'
                    '<span ttm:role="x-bg"><span begin="1s" end="2s">(d)</span></span>'
                    "</text></transliteration></transliterations>"
                ),
            )
        )
        main, bg, other = doc.lyric_lines
        assert [w.roman_word for w in main.words] == ["a", "b", ""]
        assert [w.roman_word for w in bg.words] == ["d"]
        assert _words(bg) == ["丁"]
        # the pool is per line: another line with the same key matches again
        assert other.words[0].roman_word == "a"


class TestWords:
    def test_untimed_word_dropped(self, make_ttml):
        doc, stats = parse_ttml_with_stats(
            make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">a</span><span>nope</span></p>')
        )
        assert _words(doc.lyric_lines[0]) == ["a"]
        assert stats.words_dropped == 1

    def test_obscene_and_empty_beat(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="2s"><span begin="1s" end="2s" obscene="true" amll:empty-beat="2">a</span>'
                '<span begin="1s" end="2s" obscene="yes" amll:empty-beat="oops">b</span></p>'
            )
        )
        a, b = doc.lyric_lines[0].words
        assert a.obscene and a.empty_beat == 2
        assert not b.obscene and b.empty_beat == 0

    def test_nested_annotations_excluded_from_word(self, make_ttml):
        doc = parse_ttml(
            make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">Hel<span ttm:role="x-roman">ro</span>lo</span></p>')
        )
        assert _words(doc.lyric_lines[0]) == ["Hello"]

    def test_unknown_role_span_ignored(self, make_ttml):
        doc = parse_ttml(
            make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">a</span><span ttm:role="x-other" begin="1s" end="2s">b</span></p>')
        )
        assert _words(doc.lyric_lines[0]) == ["a"]

    def test_ids_are_unique(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">a</span> b</p>' * 3))
        ids = [ln.id for ln in doc.lyric_lines] + [w.id for ln in doc.lyric_lines for w in ln.words]
        assert len(ids) == len(set(ids))


class TestRuby:
    def test_container_timing_applies_to_segments(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="0s" end="3s"><span ruby="container" begin="1.0s" end="2.0s">'
                '<span ruby="base">漢字</span><span ruby="text">かん</span><span ruby="text">じ</span>'
                "</span></p>"
            )
        )
        (word,) = doc.lyric_lines[0].words
        assert word.word == "漢字"
        assert (word.start_time, word.end_time) == (1000, 2000)
        assert word.ruby == (LyricWordBase("かん", 1000, 2000), LyricWordBase("じ", 1000, 2000))

    def test_word_timing_from_segments(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="0s" end="3s"><span ruby="container" obscene="true">'
                '<span ruby="base">漢字</span><span ruby="text" begin="1s" end="1.5s">かん</span>'
                '<span ruby="text" begin="1.5s" end="2.2s">じ</span></span></p>'
            )
        )
        (word,) = doc.lyric_lines[0].words
        assert (word.start_time, word.end_time) == (1000, 2200)
        assert word.obscene

    def test_fallback_text_without_base(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="0s" end="3s"><span ruby="container" begin="1s" end="2s">'
                '字<span ruby="text">じ</span></span></p>'
            )
        )
        (word,) = doc.lyric_lines[0].words
        assert word.word == "字じ"
        assert word.ruby == (LyricWordBase("じ", 1000, 2000),)

    def test_container_without_ruby_text(self, make_ttml):
        doc = parse_ttml(
            make_ttml('<p begin="0s" end="3s"><span ruby="container"><span ruby="base">字</span></span></p>')
        )
        (word,) = doc.lyric_lines[0].words
        assert word.ruby is None
        assert (word.start_time, word.end_time) == (0, 0)


class TestDocument:
    def test_metadata_and_lines(self, make_ttml):
        doc = parse_ttml(
            make_ttml(
                '<p begin="1s" end="2s">a</p>',
                head='<amll:meta key="musicName" value="Song"/>',
                itunes="<songwriters><songwriter>Alice</songwriter></songwriters>",
            )
        )
        assert [m.key for m in doc.metadata] == ["musicName", "songwriter"]
        assert doc.metadata_values("songwriter") == ("Alice",)
        assert doc.metadata_values("missing") == ()

    def test_stats(self, make_ttml):
        _doc, stats = parse_ttml_with_stats(
            make_ttml(
                '<p begin="1s" end="3s" ttm:agent="v2"><span begin="1s" end="2s">a</span>'
                '<span ttm:role="x-bg"><span begin="2s" end="3s">b</span></span></p>'
                '<p begin="3s" end="4s"><span ruby="container" begin="3s" end="4s">c<span ruby="text">d</span></span>'
                '<span ttm:role="x-translation">t</span></p>',
                head=AGENTS,
            )
        )
        assert stats.lines_total == 3
        assert stats.main_lines == 2
        assert stats.bg_lines == 1
        assert stats.duet_lines == 2
        assert stats.words_total == 3
        assert stats.ruby_words == 1
        assert stats.translated_lines == 1
        assert stats.romanized_lines == 0

    def test_comments_are_ignored(self, make_ttml):
        doc = parse_ttml(make_ttml('<p begin="1s" end="2s"><span begin="1s" end="2s">a</span><!-- note -->b</p>'))
        assert _words(doc.lyric_lines[0]) == ["a", "b"]


def test_one_attr_table_per_line_and_child(make_ttml, monkeypatch):
    built = []

    class CountingTable(parse_module.AttrTable):
        def __init__(self, el):
            built.append(el)
            super().__init__(el)

    monkeypatch.setattr(parse_module, "AttrTable", CountingTable)
    doc = parse_ttml(
        make_ttml(
            '<p begin="1s" end="3s"><span begin="1s" end="2s">a</span>'
            '<span ttm:role="x-bg"><span begin="2s" end="3s">b</span></span></p>'
        )
    )
    assert [ln.text for ln in doc.lyric_lines] == ["a", "b"]
    # the p, its two children and the word inside the background part
    assert [el.get("begin") for el in built] == ["1s", "1s", None, "2s"]


class TestErrors:
    def test_malformed_xml(self):
        with pytest.raises(TTMLParseError):
            parse_ttml("<tt><body><p begin='1s' end='2s'>oops</body></tt>")

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_document(self, text):
        with pytest.raises(TTMLParseError):
            parse_ttml(text)

    def test_undeclared_amll_prefix(self):
        with pytest.raises(TTMLParseError):
            parse_ttml(
                '<tt xmlns="http://www.w3.org/ns/ttml"><head><metadata>'
                '<amll:meta key="a" value="b"/></metadata></head><body/></tt>'
            )

    def test_bad_time_fails_whole_parse(self, make_ttml):
        with pytest.raises(TTMLParseError):
            parse_ttml(make_ttml('<p begin="soon" end="later">a</p>'))
