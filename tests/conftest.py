"""
Pytest configuration and shared fixtures
"""

import sys
from pathlib import Path

import pytest

# Add source directory to Python path for imports
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))

from chordbook.models import ParagraphBlock, TableBlock  # noqa: E402


def song_rows(title, rhythm='', group='', authors='', features='', voice='',
              telegram_video='', web_video='', body=''):
    """Rows of a songbook table in document order"""
    return (title, rhythm, group, authors, features, voice, telegram_video, web_video, body)


class FakeReader:
    """DocumentReader returning canned blocks, or raising a canned error"""

    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.calls = []

    async def read(self, document_id):
        self.calls.append(document_id)
        result = self.documents[document_id]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def song_blocks():
    """Three song tables with a heading paragraph in between"""
    return [
        ParagraphBlock('Аккордник'),
        TableBlock(rows=song_rows(
            'Милая моя',
            rhythm='вальс',
            authors='Юрий Визбор',
            features='каподастр на 2 лад',
            web_video='https://youtu.be/abc',
            body='Am          Dm\nМилая моя, солнышко лесное',
        ), index=0),
        TableBlock(rows=song_rows(
            'Ёлка',
            body='C\nВ лесу родилась ёлочка',
        ), index=1),
        TableBlock(rows=song_rows(
            'Перевал',
            authors='Юрий Визбор',
            group='горные',
            body='G\nПросто нечего нам больше терять, милая',
        ), index=2),
    ]


@pytest.fixture
def marker_text():
    return (
        "Правила круга: поём по очереди\n"
        "♭ Song One\n"
        "Author Name\n"
        "Am\n"
        "line one\n"
        "\n"
        "\n"
        "\n"
        "line two\n"
        "♭ Вторая песня\n"
        "Автор: Булат Окуджава\n"
        "Ритмика: бой шестёрка\n"
        "Припев:\n"
        "Возьмёмся за руки, друзья\n"
    )


@pytest.fixture
def docs_json():
    """Trimmed documents.get response: a paragraph and one 9-row song table"""
    def cell(text):
        return {'content': [{'paragraph': {'elements': [{'textRun': {'content': text + '\n'}}]}}]}

    rows = song_rows('Перевал', authors='Визбор', body='G\x0bПросто нечего нам больше терять')
    return {
        'documentId': 'doc123',
        'body': {
            'content': [
                {'sectionBreak': {}},
                {'paragraph': {'elements': [{'textRun': {'content': 'Аккордник\n'}}]}},
                {'table': {'tableRows': [{'tableCells': [cell(r)]} for r in rows]}},
            ]
        },
    }


@pytest.fixture
def export_html():
    return """
    <html>
    <body>
    <p>Аккордник</p>
    <table>
      <tr><td><p>Перевал</p></td></tr>
      <tr><td></td></tr>
      <tr><td></td></tr>
      <tr><td><p>Визбор</p></td></tr>
      <tr><td></td></tr>
      <tr><td></td></tr>
      <tr><td></td></tr>
      <tr><td></td></tr>
      <tr><td><p>G</p><p>Просто нечего нам<br>больше терять</p></td></tr>
    </table>
    <h2>Бои</h2>
    </body>
    </html>
    """
