from __future__ import annotations

from dataclasses import dataclass, field

from ttml_lyrics.ids import new_id


@dataclass(frozen=True, slots=True)
class LyricWordBase:
    word: str
    start_time: int
    end_time: int


@dataclass(frozen=True, slots=True)
class LyricWord:
    word: str
    start_time: int
    end_time: int
    obscene: bool = False
    empty_beat: int = 0
    roman_word: str = ""
    # None when the word has no ruby annotation, never an empty tuple
    ruby: tuple[LyricWordBase, ...] | None = None
    id: str = field(default_factory=new_id)


@dataclass(frozen=True, slots=True)
class LyricLine:
    words: tuple[LyricWord, ...]
    start_time: int
    end_time: int
    translated_lyric: str = ""
    roman_lyric: str = ""
    is_bg: bool = False
    is_duet: bool = False
    ignore_sync: bool = False
    id: str = field(default_factory=new_id)

    @property
    def text(self) -> str:
        return "".join(w.word for w in self.words)


@dataclass(frozen=True, slots=True)
class MetadataEntry:
    key: str
    value: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TTMLLyric:
    metadata: tuple[MetadataEntry, ...]
    lyric_lines: tuple[LyricLine, ...]

    def metadata_values(self, key: str) -> tuple[str, ...]:
        for entry in self.metadata:
            if entry.key == key:
                return entry.value
        return ()
