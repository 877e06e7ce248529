"""
Chordbook - search and serve a chord songbook kept in Google Docs

Modules:
- reader: Google Docs / export files to blocks
- parser: blocks to songs, strumming patterns and snippets
- search: normalized author / title / lyric search
- cache: per-document snapshots with stale fallback
- formatter, assistant, telegram: the chat bot
"""

from .models import (
    # Data structures
    TableBlock,
    ParagraphBlock,
    Song,
    StrummingPattern,
    Snippet,
    AUTHORS_UNKNOWN,
)
from .errors import (
    ChordbookError,
    ConfigError,
    DocumentError,
    FetchFailed,
    EmptyDocument,
    DocumentUnavailable,
    MalformedBlock,
    TelegramError,
)
from .normalize import Normalizer, normalize
from .reader import (
    GoogleDocsReader,
    JsonExportReader,
    HtmlExportReader,
    DirectoryReader,
    extract_document_id,
)
from .parser import (
    TableSchema,
    LineClassifier,
    MarkerParser,
    parse_song_tables,
    parse_strumming_tables,
    parse_snippets,
    parse_marker_songs,
)
from .search import SearchMode, search, select
from .cache import EntityCache
from .catalog import Catalog
from .config import Settings, load_settings
from .assistant import ChatAssistant

__version__ = "0.1.0"

__all__ = [
    # Data structures
    'TableBlock',
    'ParagraphBlock',
    'Song',
    'StrummingPattern',
    'Snippet',
    'AUTHORS_UNKNOWN',
    # Errors
    'ChordbookError',
    'ConfigError',
    'DocumentError',
    'FetchFailed',
    'EmptyDocument',
    'DocumentUnavailable',
    'MalformedBlock',
    'TelegramError',
    # Reading and parsing
    'Normalizer',
    'normalize',
    'GoogleDocsReader',
    'JsonExportReader',
    'HtmlExportReader',
    'DirectoryReader',
    'extract_document_id',
    'TableSchema',
    'LineClassifier',
    'MarkerParser',
    'parse_song_tables',
    'parse_strumming_tables',
    'parse_snippets',
    'parse_marker_songs',
    # Search and serving
    'SearchMode',
    'search',
    'select',
    'EntityCache',
    'Catalog',
    'Settings',
    'load_settings',
    'ChatAssistant',
]
