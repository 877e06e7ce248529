"""
Telegram Bot API delivery

Thin httpx client: sends formatter parts in order, turns raw updates into
assistant input and runs a getUpdates long-polling loop.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .assistant import ChatAssistant, Incoming
from .errors import TelegramError
from .formatter import Part, PartKind

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"
POLL_TIMEOUT = 30  # seconds getUpdates may hang waiting for updates
RETRY_DELAY = 5.0

# Part kind -> (Bot API method, payload field)
MEDIA_METHODS = {
    PartKind.PHOTO: ('sendPhoto', 'photo'),
    PartKind.VOICE: ('sendVoice', 'voice'),
    PartKind.VIDEO: ('sendVideo', 'video'),
}

MEDIA_FIELDS = ('photo', 'voice', 'video', 'audio', 'document')


@dataclass(frozen=True)
class Update:
    """One incoming update, reduced to what the assistant needs"""
    update_id: int
    chat_id: int
    incoming: Optional[Incoming] = None
    callback_id: str = ''
    callback_data: str = ''


def reply_markup(part: Part) -> Optional[dict]:
    if part.buttons:
        return {
            'inline_keyboard': [
                [{'text': label, 'callback_data': data} for label, data in row]
                for row in part.buttons
            ]
        }
    if part.force_reply:
        return {'force_reply': True}
    return None


class TelegramClient:
    def __init__(self, token: str, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = POLL_TIMEOUT + 10):
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self.client.aclose()

    async def call(self, method: str, payload: Optional[dict] = None):
        """Invoke a Bot API method and return its result field"""
        url = API_URL.format(token=self.token, method=method)
        try:
            response = await self.client.post(url, json=payload or {})
            data = response.json()
        except httpx.HTTPError as e:
            raise TelegramError(f"{method}: {e.__class__.__name__}: {e}") from e
        except json.JSONDecodeError as e:
            raise TelegramError(f"{method}: invalid response body") from e

        if not data.get('ok'):
            raise TelegramError(f"{method}: {data.get('description', response.status_code)}")
        return data.get('result')

    async def send_part(self, chat_id: int, part: Part):
        markup = reply_markup(part)
        if part.kind is PartKind.TEXT:
            payload = {
                'chat_id': chat_id,
                'text': part.content,
                'parse_mode': 'HTML',
                'disable_web_page_preview': True,
            }
            method = 'sendMessage'
        else:
            method, field_name = MEDIA_METHODS[part.kind]
            payload = {'chat_id': chat_id, field_name: part.content}
        if markup:
            payload['reply_markup'] = markup
        return await self.call(method, payload)

    async def send_parts(self, chat_id: int, parts: list[Part]) -> None:
        """Deliver parts one by one, in order"""
        for part in parts:
            await self.send_part(chat_id, part)

    async def answer_callback(self, callback_id: str) -> None:
        await self.call('answerCallbackQuery', {'callback_query_id': callback_id})

    async def get_updates(self, offset: Optional[int] = None, timeout: int = POLL_TIMEOUT) -> list[dict]:
        payload = {'timeout': timeout, 'allowed_updates': ['message', 'callback_query']}
        if offset is not None:
            payload['offset'] = offset
        return await self.call('getUpdates', payload) or []


def _file_id(message: dict) -> tuple[str, str]:
    for kind in MEDIA_FIELDS:
        media = message.get(kind)
        if not media:
            continue
        if kind == 'photo':
            media = media[-1]  # largest size last
        return kind, media.get('file_id', '')
    return '', ''


def parse_update(update: dict) -> Optional[Update]:
    """Reduce a raw Bot API update; None for updates the bot does not handle"""
    update_id = update.get('update_id', 0)

    callback = update.get('callback_query')
    if callback:
        message = callback.get('message') or {}
        chat_id = message.get('chat', {}).get('id')
        if chat_id is None:
            return None
        return Update(update_id, chat_id,
                      callback_id=callback.get('id', ''),
                      callback_data=callback.get('data', ''))

    message = update.get('message')
    if not message:
        return None
    chat = message.get('chat', {})
    if chat.get('id') is None:
        return None
    media_kind, file_id = _file_id(message)
    reply = message.get('reply_to_message') or {}
    incoming = Incoming(
        text=message.get('text', ''),
        reply_to=reply.get('text', ''),
        private=chat.get('type') == 'private',
        media_kind=media_kind,
        file_id=file_id,
        chat_id=chat['id'],
    )
    return Update(update_id, chat['id'], incoming=incoming)


async def process_update(assistant: ChatAssistant, telegram: TelegramClient, update: Update) -> None:
    if update.callback_id:
        await telegram.answer_callback(update.callback_id)
        parts = await assistant.handle_callback(update.callback_data)
    else:
        parts = await assistant.handle(update.incoming)
    await telegram.send_parts(update.chat_id, parts)


async def run_polling(assistant: ChatAssistant, telegram: TelegramClient,
                      poll_timeout: int = POLL_TIMEOUT, max_rounds: Optional[int] = None) -> None:
    """Long-poll getUpdates and answer each update in arrival order"""
    offset = None
    rounds = 0
    logger.info("Polling for updates")
    while max_rounds is None or rounds < max_rounds:
        rounds += 1
        try:
            raw_updates = await telegram.get_updates(offset, poll_timeout)
        except TelegramError as e:
            logger.warning("getUpdates failed: %s; retrying in %.0fs", e, RETRY_DELAY)
            await asyncio.sleep(RETRY_DELAY)
            continue

        for raw in raw_updates:
            offset = raw.get('update_id', 0) + 1
            update = parse_update(raw)
            if update is None:
                continue
            try:
                await process_update(assistant, telegram, update)
            except Exception:
                # One bad update must not stop the bot
                logger.exception("Failed to answer update %s", update.update_id)
