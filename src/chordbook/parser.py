"""
Entity parser - builds Songs, StrummingPatterns and Snippets from document blocks

Two strategies, picked by the shape of the source document:

- Positional: every entity is one table and each row has a fixed meaning.
  A TableSchema lists the rows as named fields and validates the table once
  before any field is read.
- Marker: a free-text songbook where a marker glyph (♭) opens each song,
  followed by metadata lines, then chords and lyrics. MarkerParser is an
  explicit state machine; line kinds come from a rule table (LineClassifier)
  so notation-specific tokens can change without touching the machine.

A block that does not fit raises MalformedBlock internally; it is logged and
skipped so the rest of the document still parses.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

from .errors import MalformedBlock
from .models import (
    AUTHORS_UNKNOWN,
    Block,
    ParagraphBlock,
    Snippet,
    Song,
    StrummingPattern,
    TableBlock,
)

logger = logging.getLogger(__name__)

TITLE_MARKER = '♭'

# Titles at or below this length are leftovers (stray glyphs, page numbers)
MIN_TITLE_LENGTH = 3


# ---------------------------------------------------------------------------
# Positional strategy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """One named field read from a fixed table row"""
    name: str
    row: int
    default: str = ''
    required: bool = False
    multiline: bool = False  # keep leading spaces (chord alignment)


class TableSchema:
    """Ordered field extractors applied to a fixed-shape table"""

    def __init__(self, factory: Callable, fields: Iterable[FieldSpec],
                 row_count: Optional[int] = None, exact: bool = True):
        self.factory = factory
        self.fields = list(fields)
        self.row_count = row_count if row_count is not None else max(f.row for f in self.fields) + 1
        self.exact = exact

    def validate(self, block: Block) -> None:
        """Fail fast if the block cannot satisfy this schema"""
        if not isinstance(block, TableBlock):
            raise MalformedBlock(f"expected a table, got {type(block).__name__}")
        if self.exact and block.row_count != self.row_count:
            raise MalformedBlock(
                f"expected {self.row_count} rows, got {block.row_count}", block.index)
        if not self.exact and block.row_count < self.row_count:
            raise MalformedBlock(
                f"expected at least {self.row_count} rows, got {block.row_count}", block.index)

    def build(self, block: TableBlock):
        self.validate(block)
        values = {}
        for spec in self.fields:
            text = block.row(spec.row)
            text = text.strip('\n') if spec.multiline else text.strip()
            if not text.strip():
                if spec.required:
                    raise MalformedBlock(f"empty {spec.name} (row {spec.row})", block.index)
                text = spec.default
            values[spec.name] = text
        return self.factory(position=block.index, **values)


SONG_SCHEMA = TableSchema(Song, [
    FieldSpec('title', 0, required=True),
    FieldSpec('rhythm', 1),
    FieldSpec('group', 2),
    FieldSpec('authors', 3, default=AUTHORS_UNKNOWN),
    FieldSpec('features', 4),
    FieldSpec('voice', 5),
    FieldSpec('telegram_video', 6),
    FieldSpec('web_video', 7),
    FieldSpec('body', 8, multiline=True),
])

STRUMMING_SCHEMA = TableSchema(StrummingPattern, [
    FieldSpec('title', 0, required=True),
    FieldSpec('features', 1),
    FieldSpec('photo', 2),
    FieldSpec('voice', 3),
    FieldSpec('telegram_video', 4),
    FieldSpec('web_video', 5),
])

# Jokes, canned replies and watched words: one text per table, extra rows ignored
SNIPPET_SCHEMA = TableSchema(Snippet, [
    FieldSpec('text', 0, required=True, multiline=True),
], exact=False)


def parse_tables(blocks: Iterable[Block], schema: TableSchema) -> list:
    """Build one entity per table; paragraphs between tables are ignored"""
    entities = []
    for block in blocks:
        if not isinstance(block, TableBlock):
            continue
        try:
            entities.append(schema.build(block))
        except MalformedBlock as e:
            logger.warning("Skipping table %d: %s", block.index, e.reason)
    return entities


def parse_song_tables(blocks: Iterable[Block]) -> list[Song]:
    return parse_tables(blocks, SONG_SCHEMA)


def parse_strumming_tables(blocks: Iterable[Block]) -> list[StrummingPattern]:
    return parse_tables(blocks, STRUMMING_SCHEMA)


def parse_snippets(blocks: Iterable[Block]) -> list[Snippet]:
    return parse_tables(blocks, SNIPPET_SCHEMA)


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------

CHORD_TOKEN = r'[A-H](?:#|b|♯|♭)?(?:maj|min|m|dim|aug|sus|add|M)?\d*(?:/[A-H](?:#|b|♯|♭)?)?'
CHORD_LINE = rf'^\s*\(?{CHORD_TOKEN}\)?(?:[\s|-]+\(?{CHORD_TOKEN}\)?)*\s*$'

SECTION_WORDS = (
    'припев', 'куплет', 'бридж', 'вступление', 'кода', 'проигрыш', 'финал',
    'chorus', 'verse', 'bridge', 'intro', 'coda', 'interlude', 'outro',
)


def default_rules(marker: str = TITLE_MARKER) -> list[tuple[str, str]]:
    """(pattern, label) rules in priority order; the first match wins"""
    return [
        (rf'^\s*{re.escape(marker)}\s*(?P<value>.*?)\s*$', 'title'),
        (r'^\s*$', 'blank'),
        (r'(?i)^\s*(?:автор[ыа]?|слова и музыка|authors?)\s*:\s*(?P<value>.*?)\s*$', 'author'),
        (r'(?i)^\s*(?:ритм(?:ика)?|бой|rhythm)\s*:\s*(?P<value>.*?)\s*$', 'rhythm'),
        (r'(?i)^\s*(?:группа|group)\s*:\s*(?P<value>.*?)\s*$', 'group'),
        (r'(?i)^\s*(?:особенност[ьи]|примечание|notes?)\s*:\s*(?P<value>.*?)\s*$', 'features'),
        (r'(?i)^\s*\[?(?:' + '|'.join(SECTION_WORDS) + r')\b', 'section'),
        (r'^\s*\d+\s*[.)]', 'verse'),
        (CHORD_LINE, 'chord'),
    ]


@dataclass(frozen=True)
class LineClass:
    label: str
    value: str


class LineClassifier:
    """Evaluates an ordered rule table once per line"""

    FALLBACK = 'text'

    def __init__(self, rules: Optional[list[tuple[str, str]]] = None):
        rules = default_rules() if rules is None else rules
        self.rules = [(re.compile(pattern), label) for pattern, label in rules]

    def classify(self, line: str) -> LineClass:
        for pattern, label in self.rules:
            match = pattern.match(line)
            if match:
                value = match.groupdict().get('value')
                return LineClass(label, line if value is None else value)
        return LineClass(self.FALLBACK, line)


def is_chord_line(line: str) -> bool:
    return re.match(CHORD_LINE, line) is not None


# ---------------------------------------------------------------------------
# Marker strategy
# ---------------------------------------------------------------------------

class ParserState(Enum):
    SEEKING_TITLE = 'seeking_title'
    READING_METADATA = 'reading_metadata'
    READING_BODY = 'reading_body'


# Classifier label -> Song attribute
METADATA_FIELDS = {
    'author': 'authors',
    'rhythm': 'rhythm',
    'group': 'group',
    'features': 'features',
}

BODY_START_LABELS = {'chord', 'section', 'verse'}


@dataclass
class _OpenSong:
    title: str
    fields: dict = field(default_factory=dict)
    lines: list = field(default_factory=list)


def iter_lines(blocks: Iterable[Block]) -> Iterator[str]:
    """Flatten blocks into lines; table rows are read as lines too"""
    for block in blocks:
        if isinstance(block, ParagraphBlock):
            yield from block.lines()
        elif isinstance(block, TableBlock):
            for row in block.rows:
                yield from row.split('\n')
        else:
            logger.warning("Skipping block of unknown type %s", type(block).__name__)


class MarkerParser:
    """
    State machine over the lines of a marker-delimited songbook

    SEEKING_TITLE     title -> READING_METADATA
    READING_METADATA  title -> finalize + READING_METADATA
                      metadata prefix -> set field
                      bare text, no author yet -> author
                      chord / section / verse / other text -> READING_BODY
    READING_BODY      title -> finalize + READING_METADATA
                      anything else -> body (blank runs collapsed)
    """

    def __init__(self, classifier: Optional[LineClassifier] = None,
                 min_title_length: int = MIN_TITLE_LENGTH):
        self.classifier = classifier or LineClassifier()
        self.min_title_length = min_title_length
        self._reset()

    def _reset(self):
        self.state = ParserState.SEEKING_TITLE
        self.songs = []
        self._current = None

    def parse(self, blocks: Iterable[Block]) -> list[Song]:
        self._reset()
        for line in iter_lines(blocks):
            self.feed(line)
        return self.finish()

    def feed(self, line: str) -> None:
        line_class = self.classifier.classify(line)
        if line_class.label == 'title':
            self._open(line_class.value)
        elif self.state is ParserState.READING_METADATA:
            self._read_metadata(line, line_class)
        elif self.state is ParserState.READING_BODY:
            self._append_body(line, line_class)

    def finish(self) -> list[Song]:
        if self._current is not None:
            self._finalize()
        self.state = ParserState.SEEKING_TITLE
        return self.songs

    def _open(self, title: str) -> None:
        if self._current is not None:
            self._finalize()
        self._current = _OpenSong(title=title)
        self.state = ParserState.READING_METADATA

    def _read_metadata(self, line: str, line_class: LineClass) -> None:
        song = self._current
        label = line_class.label
        if label == 'blank':
            return
        if label in METADATA_FIELDS:
            song.fields[METADATA_FIELDS[label]] = line_class.value
            return
        if label == LineClassifier.FALLBACK and 'authors' not in song.fields:
            # Bare line right under the title is the author by convention
            song.fields['authors'] = line.strip()
            return
        self.state = ParserState.READING_BODY
        self._append_body(line, line_class)

    def _append_body(self, line: str, line_class: LineClass) -> None:
        lines = self._current.lines
        if line_class.label == 'blank':
            if lines and lines[-1] != '':
                lines.append('')
            return
        lines.append(line.rstrip())

    def _finalize(self) -> None:
        song = self._current
        self._current = None
        title = song.title.strip()
        if len(title) < self.min_title_length:
            logger.debug("Discarding short title %r", title)
            return

        lines = song.lines
        while lines and lines[-1] == '':
            lines.pop()

        self.songs.append(Song(
            title=title,
            authors=song.fields.get('authors') or AUTHORS_UNKNOWN,
            rhythm=song.fields.get('rhythm', ''),
            group=song.fields.get('group', ''),
            features=song.fields.get('features', ''),
            body='\n'.join(lines),
            position=len(self.songs),
        ))


def parse_marker_songs(blocks: Iterable[Block], marker: str = TITLE_MARKER) -> list[Song]:
    parser = MarkerParser(LineClassifier(default_rules(marker)))
    return parser.parse(blocks)


def extract_preamble(blocks: Iterable[Block], marker: str = TITLE_MARKER) -> list[Snippet]:
    """Text before the first song title (the circle rules in the songbook)"""
    classifier = LineClassifier(default_rules(marker))
    lines = []
    for line in iter_lines(blocks):
        label = classifier.classify(line).label
        if label == 'title':
            break
        if label != 'blank':
            lines.append(line.strip())
    if not lines:
        return []
    return [Snippet(text='\n'.join(lines), position=0)]


# Parsing strategies for the songbook document, by configured format
SONG_STRATEGIES = {
    'table': parse_song_tables,
    'marker': parse_marker_songs,
}
