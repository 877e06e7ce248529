"""
Query engine - substring search over parsed entities

Both the query and the compared field go through the Normalizer, so case,
punctuation and ё/е differences never matter. The engine returns every match;
how many to show is up to the caller.
"""

from enum import Enum
from typing import Iterable, Optional

from .normalize import DEFAULT_NORMALIZER, Normalizer


class SearchMode(str, Enum):
    AUTHOR = 'author'
    TITLE = 'title'
    LYRIC = 'lyric'
    TEXT = 'text'  # plain messages: title or body


# Explicit mode tags accepted from users and callbacks
MODE_ALIASES = {
    'author': SearchMode.AUTHOR,
    'a': SearchMode.AUTHOR,
    'title': SearchMode.TITLE,
    't': SearchMode.TITLE,
    'lyric': SearchMode.LYRIC,
    'lyrics': SearchMode.LYRIC,
    'line': SearchMode.LYRIC,
    'l': SearchMode.LYRIC,
    'text': SearchMode.TEXT,
}

MODE_FIELDS = {
    SearchMode.AUTHOR: 'authors',
    SearchMode.TITLE: 'title',
    SearchMode.LYRIC: 'body',
}


def parse_mode(tag: Optional[str]) -> SearchMode:
    """Map an explicit mode tag to a SearchMode (unknown/empty -> TEXT)"""
    if not tag:
        return SearchMode.TEXT
    return MODE_ALIASES.get(tag.strip().lower(), SearchMode.TEXT)


def split_mode_prefix(query: str) -> tuple[SearchMode, str]:
    """Split 'author: визбор' style queries into (mode, text)"""
    head, sep, rest = query.partition(':')
    if sep and head.strip().lower() in MODE_ALIASES:
        return MODE_ALIASES[head.strip().lower()], rest.strip()
    return SearchMode.TEXT, query


def _field(entity, name: str) -> str:
    return getattr(entity, name, '') or ''


def search(entities: Iterable, query: str, mode: SearchMode = SearchMode.TEXT,
           normalizer: Normalizer = DEFAULT_NORMALIZER) -> list:
    """
    Find entities whose field (chosen by mode) contains the query

    TEXT mode unions title and body matches: title matches come first, then
    body-only matches, each group in ascending source position.
    """
    needle = normalizer.normalize(query).strip()
    if not needle:
        return []

    ordered = sorted(entities, key=lambda e: e.position)

    if mode is not SearchMode.TEXT:
        field_name = MODE_FIELDS[mode]
        return [e for e in ordered if needle in normalizer.normalize(_field(e, field_name))]

    title_matches = []
    body_matches = []
    seen = set()
    for entity in ordered:
        if entity.position in seen:
            continue
        if needle in normalizer.normalize(_field(entity, 'title')):
            title_matches.append(entity)
            seen.add(entity.position)
        elif needle in normalizer.normalize(_field(entity, 'body')):
            body_matches.append(entity)
            seen.add(entity.position)

    return title_matches + body_matches


def select(entities: Iterable, position: int):
    """Re-select an entity by its source position (None if absent)"""
    for entity in entities:
        if entity.position == position:
            return entity
    return None


def find_word(word: str, text: str, normalizer: Normalizer = DEFAULT_NORMALIZER) -> bool:
    """True if the normalized word appears as a whole word in text"""
    needle = normalizer.normalize(word).strip()
    if not needle:
        return False
    if ' ' in needle:
        # Multi-word phrase: match on padded word boundaries
        haystack = ' ' + ' '.join(normalizer.normalize(text).split()) + ' '
        return f" {' '.join(needle.split())} " in haystack
    return needle in normalizer.normalize(text).split()
