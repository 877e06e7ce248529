"""
Data structures shared by the reader, parser, search and formatter layers
"""

from dataclasses import dataclass
from typing import Union

from .errors import MalformedBlock

# Stored in Song.authors when the document leaves the authors row empty
AUTHORS_UNKNOWN = 'неизвестны'


@dataclass(frozen=True)
class TableBlock:
    """A table whose rows carry meaning by position"""
    rows: tuple
    index: int = 0  # 0-based index among the document's tables

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def row(self, i: int) -> str:
        """Text of row i; out-of-range access is a malformed block"""
        if i < 0 or i >= len(self.rows):
            raise MalformedBlock(f"row {i} out of range ({len(self.rows)} rows)", self.index)
        return self.rows[i]


@dataclass(frozen=True)
class ParagraphBlock:
    """A paragraph of free text (may contain soft line breaks)"""
    text: str

    def lines(self) -> list[str]:
        return self.text.split('\n')


Block = Union[TableBlock, ParagraphBlock]


@dataclass
class Song:
    """A song with chords, as stored in the songbook document"""
    title: str
    authors: str = AUTHORS_UNKNOWN
    rhythm: str = ''
    group: str = ''
    features: str = ''
    voice: str = ''  # Telegram file_id of a voice recording
    telegram_video: str = ''  # Telegram file_id
    web_video: str = ''  # URL
    body: str = ''  # lyrics with chords
    position: int = 0

    @property
    def has_known_authors(self) -> bool:
        return bool(self.authors) and self.authors != AUTHORS_UNKNOWN


@dataclass
class StrummingPattern:
    """A strumming or picking pattern illustrated by media"""
    title: str
    features: str = ''
    photo: str = ''
    voice: str = ''
    telegram_video: str = ''
    web_video: str = ''
    position: int = 0

    # Patterns have no authors or lyrics; kept so search modes apply uniformly
    authors: str = ''
    body: str = ''


@dataclass
class Snippet:
    """A single text record: joke, canned reply, watched word or preamble"""
    text: str
    position: int = 0
