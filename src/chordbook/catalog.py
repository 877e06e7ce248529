"""
Catalog - the configured documents, each read, parsed and cached on demand

Every document kind (songs, strumming patterns, jokes...) is a DocumentSource:
an ID plus the parsing strategy for that document. The cache is keyed by the
source name, so two kinds backed by the same document are cached separately.
"""

import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from .cache import DEFAULT_TTL, EntityCache
from .config import Settings
from .parser import (
    SONG_STRATEGIES,
    extract_preamble,
    parse_marker_songs,
    parse_snippets,
    parse_strumming_tables,
)
from .reader import DirectoryReader, DocumentReader, GoogleDocsReader, extract_document_id

logger = logging.getLogger(__name__)

SONGS = 'songs'
STRUMMING = 'strumming'
ANECDOTES = 'anecdotes'
RESPONSES = 'responses'
WATCHED_WORDS = 'watched_words'
RULES = 'rules'


@dataclass(frozen=True)
class DocumentSource:
    name: str
    document_id: str
    parse: Callable[[list], list]


def make_reader(settings: Settings) -> DocumentReader:
    if settings.export_dir:
        return DirectoryReader(settings.export_dir)
    return GoogleDocsReader(
        access_token=settings.google_access_token or None,
        api_key=settings.google_api_key or None,
        timeout=settings.fetch_timeout,
    )


class Catalog:
    """Read-only access to every configured document's entities"""

    def __init__(self, reader: DocumentReader, sources: dict[str, DocumentSource],
                 ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.reader = reader
        self.sources = sources
        self.cache = EntityCache(self._load, ttl=ttl, clock=clock)

    @classmethod
    def from_settings(cls, settings: Settings, reader: Optional[DocumentReader] = None) -> 'Catalog':
        docs = settings.documents
        marker = settings.title_marker

        if docs.songs_format == 'marker':
            parse_songs = partial(parse_marker_songs, marker=marker)
        else:
            parse_songs = SONG_STRATEGIES[docs.songs_format]

        # The circle rules live above the first song of a free-text songbook
        rules = docs.rules or (docs.songs if docs.songs_format == 'marker' else '')

        sources = {}
        for name, ref, parse in [
            (SONGS, docs.songs, parse_songs),
            (STRUMMING, docs.strumming, parse_strumming_tables),
            (ANECDOTES, docs.anecdotes, parse_snippets),
            (RESPONSES, docs.responses, parse_snippets),
            (WATCHED_WORDS, docs.watched_words, parse_snippets),
            (RULES, rules, partial(extract_preamble, marker=marker)),
        ]:
            if ref:
                sources[name] = DocumentSource(name, extract_document_id(ref), parse)

        return cls(reader or make_reader(settings), sources, ttl=settings.cache_ttl)

    def has(self, name: str) -> bool:
        return name in self.sources

    async def _load(self, name: str) -> list:
        source = self.sources[name]
        blocks = await self.reader.read(source.document_id)
        entities = source.parse(blocks)
        logger.info("Parsed %d %s from %d blocks", len(entities), name, len(blocks))
        return entities

    async def entities(self, name: str) -> list:
        """Entities of one document kind; unconfigured kinds are empty"""
        if name not in self.sources:
            return []
        return await self.cache.get(name)

    async def songs(self) -> list:
        return await self.entities(SONGS)

    async def patterns(self) -> list:
        return await self.entities(STRUMMING)
