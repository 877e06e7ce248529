"""
Response formatter - renders entities into ordered message parts

A song becomes:
    header (title / authors / rhythm / group / features)
    photo, voice, video (when present)
    web video link (when present)
    body, split at line boundaries, the last part carrying the songbook link
        (chord lines in <code>, section headers in <b>)

Text parts are HTML-escaped for Telegram's HTML parse mode. The transport
must deliver parts in list order.
"""

import html
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from . import messages
from .models import Snippet, Song, StrummingPattern
from .parser import LineClassifier, is_chord_line

# Telegram caps messages at 4096 characters; leave room for markup
DEFAULT_BUDGET = 3700

# Inline keyboard labels get cut by clients anyway
MAX_BUTTON_LABEL = 60


class PartKind(str, Enum):
    TEXT = 'text'
    PHOTO = 'photo'
    VOICE = 'voice'
    VIDEO = 'video'


@dataclass(frozen=True)
class Part:
    """One outgoing message"""
    kind: PartKind
    content: str
    buttons: tuple = ()  # rows of ((label, callback_data), ...)
    force_reply: bool = False  # ask the client to open a reply to this message


def escape(text: str) -> str:
    return html.escape(text or '', quote=False)


def text_part(content: str, buttons: tuple = ()) -> Part:
    return Part(PartKind.TEXT, content, buttons)


def _labelled(label: str, value: str) -> str:
    return f"{label}: {escape(value)}"


def song_header(song: Song) -> str:
    lines = [
        _labelled(messages.LABEL_TITLE, song.title),
        _labelled(messages.LABEL_AUTHORS, song.authors),
    ]
    if song.rhythm:
        lines.append(_labelled(messages.LABEL_RHYTHM, song.rhythm))
    if song.group:
        lines.append(_labelled(messages.LABEL_GROUP, song.group))
    if song.features:
        lines.append(_labelled(messages.LABEL_FEATURES, song.features))
    return '\n'.join(lines)


def pattern_header(pattern: StrummingPattern) -> str:
    lines = [_labelled(messages.LABEL_TITLE, pattern.title)]
    if pattern.features:
        lines.append(_labelled(messages.LABEL_FEATURES, pattern.features))
    return '\n'.join(lines)


def media_parts(entity) -> list[Part]:
    """Photo, voice, video and web link parts, in that order"""
    parts = []
    photo = getattr(entity, 'photo', '')
    if photo:
        parts.append(Part(PartKind.PHOTO, photo))
    if entity.voice:
        parts.append(Part(PartKind.VOICE, entity.voice))
    if entity.telegram_video:
        parts.append(Part(PartKind.VIDEO, entity.telegram_video))
    if entity.web_video:
        parts.append(text_part(escape(entity.web_video)))
    return parts


def source_link(url: str) -> str:
    if not url:
        return ''
    return f'<a href="{html.escape(url)}">{messages.OPEN_SONGBOOK}</a>'


def _fit(line: str, budget: int) -> int:
    """Length of the longest prefix whose escaped form fits the budget"""
    size = 0
    for i, char in enumerate(line):
        size += len(escape(char))
        if size > budget:
            return i
    return len(line)


def _wrap_line(line: str, budget: int) -> list[str]:
    """Cut a raw line whose escaped form is longer than the budget

    Cuts prefer the last space and never split an HTML entity, since
    pieces are escaped only after cutting.
    """
    budget = max(budget, 1)
    pieces = []
    while len(escape(line)) > budget:
        limit = _fit(line, budget)
        cut = line.rfind(' ', 0, limit + 1)
        if cut <= 0:
            cut = max(limit, 1)
        pieces.append(line[:cut].rstrip())
        line = line[cut:].lstrip()
    pieces.append(line)
    return pieces


_BODY_LINES = LineClassifier()


def body_markup(line: str) -> tuple[str, str]:
    """Tags around a body line: monospace chords, bold section headers"""
    if is_chord_line(line):
        return '<code>', '</code>'
    if _BODY_LINES.classify(line).label in ('section', 'verse'):
        return '<b>', '</b>'
    return '', ''


def split_text(text: str, budget: int = DEFAULT_BUDGET,
               markup: Optional[Callable[[str], tuple[str, str]]] = None) -> list[str]:
    """Escape raw text and split it into chunks of at most budget characters

    Chunks break at line boundaries. markup(line) may return tags to put
    around a line; the tags count against the budget.
    """
    chunks = []
    current = []
    size = 0
    for raw_line in text.split('\n'):
        opening, closing = markup(raw_line) if markup else ('', '')
        room = budget - len(opening) - len(closing)
        for piece in _wrap_line(raw_line, room):
            line = f"{opening}{escape(piece)}{closing}" if piece.strip() else escape(piece)
            added = len(line) + (1 if current else 0)
            if current and size + added > budget:
                chunks.append('\n'.join(current))
                current, size = [], 0
                added = len(line)
            current.append(line)
            size += added
    if current:
        chunks.append('\n'.join(current))
    return [c for c in chunks if c.strip()]


def body_parts(body: str, budget: int = DEFAULT_BUDGET, footer: str = '') -> list[Part]:
    chunks = split_text(body, budget, markup=body_markup)
    if footer:
        if chunks and len(chunks[-1]) + 2 + len(footer) <= budget:
            chunks[-1] = f"{chunks[-1]}\n\n{footer}"
        else:
            chunks.append(footer)
    return [text_part(chunk) for chunk in chunks]


def format_song(song: Song, source_url: str = '', budget: int = DEFAULT_BUDGET) -> list[Part]:
    parts = [text_part(song_header(song))]
    parts.extend(media_parts(song))
    parts.extend(body_parts(song.body, budget, footer=source_link(source_url)))
    return parts


def format_pattern(pattern: StrummingPattern) -> list[Part]:
    return [text_part(pattern_header(pattern))] + media_parts(pattern)


def format_entity(entity, source_url: str = '', budget: int = DEFAULT_BUDGET) -> list[Part]:
    if isinstance(entity, StrummingPattern):
        return format_pattern(entity)
    if isinstance(entity, Snippet):
        return [text_part(chunk) for chunk in split_text(entity.text, budget)]
    return format_song(entity, source_url, budget)


def button_label(entity) -> str:
    label = entity.title
    if getattr(entity, 'has_known_authors', False):
        label = f"{label} ({entity.authors})"
    label = ' '.join(label.split())
    if len(label) > MAX_BUTTON_LABEL:
        label = label[:MAX_BUTTON_LABEL - 1] + '…'
    return label


def format_choices(entities: Iterable, prompt: str, callback_prefix: str) -> Part:
    """A prompt with one button per entity, keyed by source position"""
    buttons = tuple(
        ((button_label(entity), f"{callback_prefix}:{entity.position}"),)
        for entity in entities
    )
    return text_part(prompt, buttons)


def format_numbered_list(titles: Iterable[str], header: str,
                         continued_header: Optional[str] = None,
                         budget: int = DEFAULT_BUDGET,
                         footer: str = '') -> list[Part]:
    """Numbered list split into budget-sized parts, each with a header"""
    continued_header = continued_header or header
    parts = []
    current = header
    for number, title in enumerate(titles, 1):
        line = f"{number}. {escape(title)}"
        if len(current) + 1 + len(line) > budget:
            parts.append(text_part(current))
            current = continued_header
        current = f"{current}\n{line}"
    if footer:
        if len(current) + 2 + len(footer) > budget:
            parts.append(text_part(current))
            current = footer
        else:
            current = f"{current}\n\n{footer}"
    parts.append(text_part(current))
    return parts
