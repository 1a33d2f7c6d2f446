from __future__ import annotations

import json
from typing import Any

from .model import LyricLine, LyricWord, LyricWordBase, TTMLLyric


def _ruby_to_dict(rw: LyricWordBase) -> dict[str, Any]:
    return {"word": rw.word, "startTime": rw.start_time, "endTime": rw.end_time}


def _word_to_dict(w: LyricWord) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": w.id,
        "word": w.word,
        "startTime": w.start_time,
        "endTime": w.end_time,
        "obscene": w.obscene,
        "emptyBeat": w.empty_beat,
        "romanWord": w.roman_word,
    }
    if w.ruby:
        out["ruby"] = [_ruby_to_dict(r) for r in w.ruby]
    return out


def _line_to_dict(ln: LyricLine) -> dict[str, Any]:
    return {
        "id": ln.id,
        "words": [_word_to_dict(w) for w in ln.words],
        "translatedLyric": ln.translated_lyric,
        "romanLyric": ln.roman_lyric,
        "isBG": ln.is_bg,
        "isDuet": ln.is_duet,
        "startTime": ln.start_time,
        "endTime": ln.end_time,
        "ignoreSync": ln.ignore_sync,
    }


def export_json(doc: TTMLLyric) -> str:
    return json.dumps(
        {
            "metadata": [{"key": m.key, "value": list(m.value)} for m in doc.metadata],
            "lyricLines": [_line_to_dict(ln) for ln in doc.lyric_lines],
        },
        ensure_ascii=False,
        indent=2,
    )


def _fmt_lrc_time(ms: int) -> str:
    m, rem = divmod(ms, 60_000)
    s, ms2 = divmod(rem, 1_000)
    # keep 2 decimals for compatibility
    return f"{m:02d}:{s:02d}.{ms2 // 10:02d}"


def _selected(doc: TTMLLyric, include_bg: bool) -> list[LyricLine]:
    return [ln for ln in doc.lyric_lines if include_bg or not ln.is_bg]


def export_lrc(doc: TTMLLyric, include_bg: bool = True, include_tags: bool = True) -> str:
    out: list[str] = []
    if include_tags:
        for m in doc.metadata:
            out.append(f"[{m.key}:{'/'.join(m.value)}]")

    for ln in _selected(doc, include_bg):
        out.append(f"[{_fmt_lrc_time(ln.start_time)}]{ln.text.strip()}")
    return "\n".join(out) + ("\n" if out else "")


def _fmt_srt_time(ms: int) -> str:
    # HH:MM:SS,mmm
    h, rem = divmod(ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms2 = divmod(rem, 1_000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms2:03d}"


def export_srt(doc: TTMLLyric, include_bg: bool = True) -> str:
    """
    Each line keeps its own start/end. Lines with no timing at all (0, 0) are
    skipped; a non-positive duration is widened to 1ms.
    """
    out: list[str] = []
    n = 0
    for ln in _selected(doc, include_bg):
        if ln.start_time == 0 and ln.end_time == 0:
            continue
        n += 1
        end = max(ln.end_time, ln.start_time + 1)
        out.append(str(n))
        out.append(f"{_fmt_srt_time(ln.start_time)} --> {_fmt_srt_time(end)}")
        out.append(ln.text.strip())
        if ln.translated_lyric:
            out.append(ln.translated_lyric)
        out.append("")
    return "\n".join(out)
