"""
Chat assistant - turns incoming messages and button presses into reply parts

The assistant never talks to a transport: it returns formatter Parts and the
caller delivers them in order. Search flow:

    /chords            -> keyboard: by author / by title / by text
    button             -> prompt; the user's reply to it carries the query
                          and gets a "searching..." note before the results
    /chords <query>    -> unscoped search
    plain text         -> unscoped search (private chats only)

Result policy: nothing -> hint to shorten the query, one -> the song,
a few -> choice keyboard keyed by source position, too many -> ask to refine.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from . import messages
from .catalog import ANECDOTES, RESPONSES, RULES, WATCHED_WORDS, Catalog
from .config import Settings
from .formatter import (
    Part,
    PartKind,
    escape,
    format_choices,
    format_entity,
    format_numbered_list,
    format_pattern,
    format_song,
    source_link,
    text_part,
)
from .normalize import Normalizer
from .search import SearchMode, find_word, parse_mode, search, select, split_mode_prefix

logger = logging.getLogger(__name__)

MODE_PROMPTS = {
    SearchMode.AUTHOR: messages.PROMPT_AUTHOR,
    SearchMode.TITLE: messages.PROMPT_TITLE,
    SearchMode.LYRIC: messages.PROMPT_LYRIC,
}
PROMPT_MODES = {prompt: mode for mode, prompt in MODE_PROMPTS.items()}
SEARCHING = {
    SearchMode.AUTHOR: messages.SEARCHING_AUTHOR,
    SearchMode.TITLE: messages.SEARCHING_TITLE,
    SearchMode.LYRIC: messages.SEARCHING_LYRIC,
}

MODE_KEYBOARD = (
    ((messages.MODE_BUTTON_AUTHOR, 'mode:author'), (messages.MODE_BUTTON_TITLE, 'mode:title')),
    ((messages.MODE_BUTTON_LYRIC, 'mode:lyric'),),
)

TOP_REQUESTS = 5


@dataclass(frozen=True)
class Incoming:
    """A message as seen by the assistant, independent of the transport"""
    text: str = ''
    reply_to: str = ''  # text of the bot message this one replies to
    private: bool = True
    media_kind: str = ''  # 'photo' / 'voice' / 'video' for media without text
    file_id: str = ''
    chat_id: int = 0


class ChatAssistant:
    def __init__(self, catalog: Catalog, settings: Optional[Settings] = None,
                 normalizer: Optional[Normalizer] = None, rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.settings = settings or Settings()
        self.normalizer = normalizer or Normalizer(self.settings.letter_table)
        self.rng = rng or random.Random()
        self.requests = Counter()  # song title -> times shown

        self.commands = {
            '/start': self.cmd_start,
            '/help': self.cmd_help,
            '/chords': self.cmd_chords,
            '/search': self.cmd_chords,
            '/list': self.cmd_list,
            '/random': self.cmd_random,
            '/strumming': self.cmd_strumming,
            '/anecdote': self.cmd_anecdote,
            '/talk': self.cmd_talk,
            '/status': self.cmd_status,
            '/circlerules': self.cmd_circle_rules,
            '/cancel': self.cmd_cancel,
            '/source': self.cmd_source,
            '/ping': self.cmd_ping,
            '/ping_gosha': self.cmd_ping,
        }

    # -- entry points -----------------------------------------------------

    async def handle(self, incoming: Incoming) -> list[Part]:
        try:
            return await self._dispatch(incoming)
        except Exception:
            logger.exception("Failed to handle message %r", incoming.text[:80])
            return [text_part(messages.GENERIC_FAILURE)]

    async def handle_text(self, text: str, reply_to: Optional[str] = None, private: bool = True) -> list[Part]:
        return await self.handle(Incoming(text=text, reply_to=reply_to or '', private=private))

    async def handle_callback(self, data: str) -> list[Part]:
        try:
            return await self._dispatch_callback(data)
        except Exception:
            logger.exception("Failed to handle callback %r", data)
            return [text_part(messages.GENERIC_FAILURE)]

    async def _dispatch(self, incoming: Incoming) -> list[Part]:
        if incoming.file_id:
            # Lets editors collect file IDs for the documents' media rows
            if incoming.private:
                return [text_part(f"{incoming.media_kind} file_id: <code>{incoming.file_id}</code>")]
            return []

        text = incoming.text.strip()
        if not text:
            return []
        if text.startswith('/'):
            return await self.handle_command(text, incoming)

        mode = PROMPT_MODES.get(incoming.reply_to.strip())
        if mode is not None:
            searching = text_part(SEARCHING[mode])
            return [searching] + await self.search_songs(text, mode)

        if not incoming.private:
            return []
        return await self.handle_plain_text(text)

    async def handle_command(self, text: str, incoming: Optional[Incoming] = None) -> list[Part]:
        head, _, args = text.partition(' ')
        command, _, addressee = head.partition('@')
        if addressee and self.settings.bot_name and addressee != self.settings.bot_name:
            return []
        handler = self.commands.get(command.lower())
        if handler is None:
            logger.debug("Ignoring unknown command %s", command)
            return []
        return await handler(args.strip(), incoming or Incoming(text=text))

    async def _dispatch_callback(self, data: str) -> list[Part]:
        kind, _, value = data.partition(':')
        if kind == 'mode':
            mode = parse_mode(value)
            if mode not in MODE_PROMPTS:
                return []
            return [Part(PartKind.TEXT, MODE_PROMPTS[mode], force_reply=True)]
        if kind in ('song', 'strumming') and value.isdigit():
            entities = await (self.catalog.songs() if kind == 'song' else self.catalog.patterns())
            entity = select(entities, int(value))
            if entity is None:
                return [text_part(messages.SONG_GONE)]
            if kind == 'strumming':
                return format_pattern(entity)
            return self.render_song(entity)
        logger.debug("Ignoring unknown callback %r", data)
        return []

    # -- search -----------------------------------------------------------

    async def search_songs(self, query: str, mode: SearchMode = SearchMode.TEXT) -> list[Part]:
        songs = await self.catalog.songs()
        matches = search(songs, query, mode, self.normalizer)
        logger.info("Search %s %r: %d matches", mode.value, query, len(matches))
        return self.render_matches(matches)

    def render_matches(self, matches: list) -> list[Part]:
        if not matches:
            return [text_part(messages.NOTHING_FOUND)]
        if len(matches) == 1:
            return self.render_song(matches[0])
        if len(matches) <= self.settings.max_inline_results:
            prompt = messages.CHOOSE_SONG.format(count=len(matches))
            return [format_choices(matches, prompt, 'song')]
        return [text_part(messages.TOO_MANY.format(count=len(matches)))]

    def render_song(self, song) -> list[Part]:
        self.requests[song.title] += 1
        return format_song(song, self.settings.songbook_url, self.settings.message_budget)

    async def handle_plain_text(self, text: str) -> list[Part]:
        words = await self.catalog.entities(WATCHED_WORDS)
        if any(find_word(w.text, text, self.normalizer) for w in words):
            return [text_part(messages.WATCH_YOUR_LANGUAGE)]
        return await self.search_songs(text, SearchMode.TEXT)

    # -- commands ---------------------------------------------------------

    async def cmd_start(self, args: str, incoming: Incoming) -> list[Part]:
        return [text_part(messages.START)]

    async def cmd_help(self, args: str, incoming: Incoming) -> list[Part]:
        return [text_part(messages.HELP)]

    async def cmd_chords(self, args: str, incoming: Incoming) -> list[Part]:
        if not args:
            return [text_part(messages.CHOOSE_MODE, MODE_KEYBOARD)]
        mode, query = split_mode_prefix(args)
        return await self.search_songs(query, mode)

    async def cmd_list(self, args: str, incoming: Incoming) -> list[Part]:
        songs = await self.catalog.songs()
        if not songs:
            return [text_part(messages.EMPTY_SONGBOOK)]
        return format_numbered_list(
            [song.title for song in songs],
            header=messages.LIST_HEADER.format(count=len(songs)),
            continued_header=messages.LIST_CONTINUED,
            budget=self.settings.message_budget,
            footer=source_link(self.settings.songbook_url),
        )

    async def cmd_random(self, args: str, incoming: Incoming) -> list[Part]:
        songs = await self.catalog.songs()
        if not songs:
            return [text_part(messages.EMPTY_SONGBOOK)]
        return self.render_song(self.rng.choice(songs))

    async def cmd_strumming(self, args: str, incoming: Incoming) -> list[Part]:
        patterns = await self.catalog.patterns()
        if not patterns:
            return [text_part(messages.NO_PATTERNS)]
        return [format_choices(patterns, messages.CHOOSE_PATTERN, 'strumming')]

    async def _random_snippet(self, name: str) -> list[Part]:
        snippets = await self.catalog.entities(name)
        if not snippets:
            return [text_part(messages.NOTHING_TO_SAY)]
        return format_entity(self.rng.choice(snippets), budget=self.settings.message_budget)

    async def cmd_anecdote(self, args: str, incoming: Incoming) -> list[Part]:
        return await self._random_snippet(ANECDOTES)

    async def cmd_talk(self, args: str, incoming: Incoming) -> list[Part]:
        return await self._random_snippet(RESPONSES)

    async def cmd_status(self, args: str, incoming: Incoming) -> list[Part]:
        text = messages.STATUS.format(
            songs=len(await self.catalog.songs()),
            anecdotes=len(await self.catalog.entities(ANECDOTES)),
            responses=len(await self.catalog.entities(RESPONSES)),
            patterns=len(await self.catalog.patterns()),
        )
        top = self.requests.most_common(TOP_REQUESTS)
        if top:
            lines = [f"{i}. {escape(title)}: {count}" for i, (title, count) in enumerate(top, 1)]
            text += messages.STATUS_TOP + '\n' + '\n'.join(lines)
        return [text_part(text)]

    async def cmd_circle_rules(self, args: str, incoming: Incoming) -> list[Part]:
        parts = []
        if self.settings.circle_rules_photo:
            parts.append(Part(PartKind.PHOTO, self.settings.circle_rules_photo))
        rules = await self.catalog.entities(RULES)
        if rules:
            parts.append(text_part(messages.CIRCLE_RULES_TITLE))
            parts.extend(format_entity(rules[0], budget=self.settings.message_budget))
        return parts or [text_part(messages.NO_CIRCLE_RULES)]

    async def cmd_cancel(self, args: str, incoming: Incoming) -> list[Part]:
        return [text_part(messages.CANCELLED)]

    async def cmd_source(self, args: str, incoming: Incoming) -> list[Part]:
        link = source_link(self.settings.songbook_url)
        if not link:
            return [text_part(messages.NO_SOURCE)]
        return [text_part(f"{messages.SOURCE}\n{link}")]

    async def cmd_ping(self, args: str, incoming: Incoming) -> list[Part]:
        return [text_part(messages.PONG.format(chat_id=incoming.chat_id))]
