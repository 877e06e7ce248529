"""
Document readers - turn a rich-text document into an ordered list of blocks

Supported sources:
- Google Docs REST API (documents.get JSON), fetched with aiohttp
- documents.get JSON saved to disk (see `chordbook export`)
- "Download as HTML" exports, parsed with BeautifulSoup

Every reader returns TableBlock / ParagraphBlock objects in document order.
"""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Optional, Protocol

import aiohttp
from bs4 import BeautifulSoup

from .errors import ConfigError, EmptyDocument, FetchFailed
from .models import Block, ParagraphBlock, TableBlock

logger = logging.getLogger(__name__)

DOCS_API_URL = "https://docs.googleapis.com/v1/documents/{document_id}"
DEFAULT_TIMEOUT = 30.0

# URL shapes a songbook link can take, most specific first
DOCUMENT_ID_PATTERNS = [
    re.compile(r'/document/d/([a-zA-Z0-9_-]+)'),
    re.compile(r'[?&]id=([a-zA-Z0-9_-]+)'),
    re.compile(r'^([a-zA-Z0-9_-]+)$'),
]


class DocumentReader(Protocol):
    async def read(self, document_id: str) -> list[Block]:
        ...


def extract_document_id(url_or_id: str) -> str:
    """Extract the document ID from a Google Docs URL (or return a bare ID)"""
    value = (url_or_id or '').strip()
    for pattern in DOCUMENT_ID_PATTERNS:
        match = pattern.search(value)
        if match:
            return match.group(1)
    raise ConfigError(f"Could not extract document ID from {url_or_id!r}")


# ---------------------------------------------------------------------------
# Google Docs JSON
# ---------------------------------------------------------------------------

def paragraph_text(paragraph: dict) -> str:
    """Join the text runs of a Docs paragraph"""
    text = ''.join(
        element.get('textRun', {}).get('content', '')
        for element in paragraph.get('elements', [])
    )
    # Shift+Enter inside a paragraph is stored as a vertical tab
    text = text.replace('\v', '\n')
    return text.rstrip('\n')


def cell_text(cell: dict) -> str:
    parts = [
        paragraph_text(item['paragraph'])
        for item in cell.get('content', [])
        if 'paragraph' in item
    ]
    return '\n'.join(parts).strip('\n')


def row_text(row: dict) -> str:
    cells = [cell_text(cell) for cell in row.get('tableCells', [])]
    return '\n'.join(c for c in cells if c.strip())


def blocks_from_docs_json(data: dict, document_id: str = '') -> list[Block]:
    """Convert a documents.get response into blocks"""
    body = data.get('body') if isinstance(data, dict) else None
    if not body or not isinstance(body.get('content'), list):
        raise EmptyDocument(document_id, 'document has no body content')

    blocks = []
    table_index = 0
    for element in body['content']:
        if 'paragraph' in element:
            blocks.append(ParagraphBlock(paragraph_text(element['paragraph'])))
        elif 'table' in element:
            rows = tuple(row_text(r) for r in element['table'].get('tableRows', []))
            blocks.append(TableBlock(rows=rows, index=table_index))
            table_index += 1
        # sectionBreak / tableOfContents carry no song content

    return blocks


class GoogleDocsReader:
    """Reads documents through the Google Docs REST API"""

    def __init__(self, access_token: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, session: Optional[aiohttp.ClientSession] = None):
        self.access_token = access_token
        self.api_key = api_key
        self.timeout = timeout
        self._session = session

    def _request_args(self) -> tuple[dict, dict]:
        headers = {}
        params = {}
        if self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        if self.api_key:
            params['key'] = self.api_key
        return headers, params

    async def fetch_json(self, document_id: str) -> dict:
        """Raw documents.get response"""
        url = DOCS_API_URL.format(document_id=document_id)
        try:
            if self._session is not None:
                data = await self._fetch(self._session, url, document_id)
            else:
                async with aiohttp.ClientSession() as session:
                    data = await self._fetch(session, url, document_id)
        except asyncio.TimeoutError as e:
            raise FetchFailed(document_id, f"timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FetchFailed(document_id, str(e) or e.__class__.__name__) from e
        return data

    async def read(self, document_id: str) -> list[Block]:
        data = await self.fetch_json(document_id)
        blocks = blocks_from_docs_json(data, document_id)
        logger.debug("Fetched %s: %d blocks", document_id, len(blocks))
        return blocks

    async def _fetch(self, session: aiohttp.ClientSession, url: str, document_id: str) -> dict:
        headers, params = self._request_args()
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with session.get(url, headers=headers, params=params, timeout=timeout) as resp:
            if resp.status != 200:
                raise FetchFailed(document_id, f"HTTP {resp.status}")
            try:
                return await resp.json(content_type=None)
            except ValueError as e:
                raise EmptyDocument(document_id, f"invalid JSON body: {e}") from e


# ---------------------------------------------------------------------------
# Local exports
# ---------------------------------------------------------------------------

def _html_text(element) -> str:
    return element.get_text().replace('\xa0', ' ').strip('\n')


def _html_row_text(tr) -> str:
    cells = []
    for cell in tr.find_all(['td', 'th']):
        paragraphs = cell.find_all('p')
        if paragraphs:
            text = '\n'.join(_html_text(p) for p in paragraphs).strip('\n')
        else:
            text = _html_text(cell)
        if text.strip():
            cells.append(text)
    return '\n'.join(cells)


def blocks_from_html(html_content: str, document_id: str = '') -> list[Block]:
    """Convert a Google Docs HTML export into blocks"""
    soup = BeautifulSoup(html_content, 'html.parser')
    root = soup.body or soup
    if not root.find(True):
        raise EmptyDocument(document_id, 'HTML export has no elements')

    # <br> is a soft line break inside a paragraph
    for br in soup.find_all('br'):
        br.replace_with('\n')

    blocks = []
    table_index = 0
    for element in root.find_all(['table', 'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li']):
        if element.find_parent('table') is not None:
            continue
        if element.name == 'table':
            rows = tuple(
                _html_row_text(tr) for tr in element.find_all('tr')
                if tr.find_parent('table') is element
            )
            blocks.append(TableBlock(rows=rows, index=table_index))
            table_index += 1
        else:
            blocks.append(ParagraphBlock(_html_text(element)))

    return blocks


class _ExportReader:
    suffix = ''

    def __init__(self, directory):
        self.directory = Path(directory)

    def path_for(self, document_id: str) -> Path:
        candidate = Path(document_id)
        if candidate.suffix == self.suffix and candidate.exists():
            return candidate
        return self.directory / f"{document_id}{self.suffix}"

    async def read(self, document_id: str) -> list[Block]:
        path = self.path_for(document_id)
        try:
            content = await asyncio.to_thread(path.read_text, encoding='utf-8')
        except OSError as e:
            raise FetchFailed(document_id, f"cannot read {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise EmptyDocument(document_id, f"{path} is not UTF-8: {e}") from e
        return self.parse(content, document_id)

    def parse(self, content: str, document_id: str) -> list[Block]:
        raise NotImplementedError


class JsonExportReader(_ExportReader):
    """Reads documents.get JSON files named <document_id>.json"""
    suffix = '.json'

    def parse(self, content: str, document_id: str) -> list[Block]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise EmptyDocument(document_id, f"invalid JSON: {e}") from e
        return blocks_from_docs_json(data, document_id)


class HtmlExportReader(_ExportReader):
    """Reads HTML exports named <document_id>.html"""
    suffix = '.html'

    def parse(self, content: str, document_id: str) -> list[Block]:
        return blocks_from_html(content, document_id)


class DirectoryReader:
    """Reads whichever export (JSON first, then HTML) exists for a document"""

    def __init__(self, directory):
        self.directory = Path(directory)
        self.readers = [JsonExportReader(directory), HtmlExportReader(directory)]

    async def read(self, document_id: str) -> list[Block]:
        for reader in self.readers:
            if reader.path_for(document_id).exists():
                return await reader.read(document_id)
        raise FetchFailed(document_id, f"no export found in {self.directory}")


def reader_for_path(path) -> DocumentReader:
    """Pick an export reader from a file extension"""
    path = Path(path)
    if path.suffix == '.html':
        return HtmlExportReader(path.parent)
    if path.suffix == '.json':
        return JsonExportReader(path.parent)
    raise ConfigError(f"Unsupported export format: {path}")
