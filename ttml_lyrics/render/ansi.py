from __future__ import annotations

from dataclasses import dataclass

from ttml_lyrics.ttml.model import LyricLine, TTMLLyric
from ttml_lyrics.ttml.timespan import format_timespan

CSI = "\x1b["


def _sgr(*codes: int) -> str:
    return CSI + ";".join(str(c) for c in codes) + "m"


@dataclass(frozen=True, slots=True)
class Theme:
    title: str = _sgr(36, 1)  # cyan bold
    main: str = _sgr(32, 1)  # green bold
    duet: str = _sgr(35, 1)  # magenta bold
    dim: str = _sgr(90)  # bright black
    annotation: str = _sgr(33)  # yellow
    reset: str = _sgr(0)

    @classmethod
    def plain(cls) -> Theme:
        return cls(title="", main="", duet="", dim="", annotation="", reset="")


def _line_text(ln: LyricLine) -> str:
    parts: list[str] = []
    for w in ln.words:
        if w.ruby:
            parts.append(f"{w.word}({''.join(r.word for r in w.ruby)})")
        else:
            parts.append(w.word)
    return "".join(parts).strip()


def render_document(doc: TTMLLyric, theme: Theme | None = None) -> list[str]:
    """
    Text preview of a parsed document:
    main lines highlighted, background lines dimmed and indented, duet lines
    marked, translation and romanization underneath.
    """
    th = theme or Theme()
    out: list[str] = []
    for m in doc.metadata:
        out.append(f"{th.title}{m.key}: {', '.join(m.value)}{th.reset}")
    if doc.metadata:
        out.append("")

    for ln in doc.lyric_lines:
        stamp = f"[{format_timespan(ln.start_time)} - {format_timespan(ln.end_time)}]"
        indent = "    " if ln.is_bg else ""
        marker = "» " if ln.is_duet else ""
        color = th.dim if ln.is_bg else (th.duet if ln.is_duet else th.main)
        out.append(f"{indent}{stamp} {color}{marker}{_line_text(ln)}{th.reset}")
        if ln.roman_lyric:
            out.append(f"{indent}    {th.annotation}{ln.roman_lyric}{th.reset}")
        if ln.translated_lyric:
            out.append(f"{indent}    {th.annotation}{ln.translated_lyric}{th.reset}")
    return out
