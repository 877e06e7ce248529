"""Tests for the marker (free-text songbook) strategy in parser.py."""

from chordbook.models import AUTHORS_UNKNOWN, ParagraphBlock, Snippet, TableBlock
from chordbook.parser import (
    LineClassifier,
    MarkerParser,
    ParserState,
    default_rules,
    extract_preamble,
    is_chord_line,
    parse_marker_songs,
)


def paragraphs(text):
    return [ParagraphBlock(line) for line in text.split('\n')]


class TestLineClassifier:
    """Test the ordered rule table."""

    def setup_method(self):
        self.classifier = LineClassifier()

    def test_title(self):
        line_class = self.classifier.classify('♭ Перевал ')
        assert line_class.label == 'title'
        assert line_class.value == 'Перевал'

    def test_metadata_prefixes(self):
        assert self.classifier.classify('Автор: Визбор').value == 'Визбор'
        assert self.classifier.classify('Ритмика: вальс').label == 'rhythm'
        assert self.classifier.classify('Группа: горные').label == 'group'
        assert self.classifier.classify('Особенности: каподастр').label == 'features'

    def test_blank(self):
        assert self.classifier.classify('   ').label == 'blank'

    def test_chords(self):
        for line in ['Am', 'Am  Dm  E7', 'C/G  F#m  Bbmaj7', '(Am) - Dm | E']:
            assert self.classifier.classify(line).label == 'chord', line

    def test_lyrics_are_text(self):
        for line in ['Милая моя, солнышко лесное', 'A где-то там', 'Author Name']:
            assert self.classifier.classify(line).label == 'text', line

    def test_section_and_verse(self):
        assert self.classifier.classify('Припев:').label == 'section'
        assert self.classifier.classify('[Chorus]').label == 'section'
        assert self.classifier.classify('2. Куплет').label == 'verse'

    def test_first_rule_wins(self):
        # A title line that also looks like a chord line stays a title
        classifier = LineClassifier(default_rules(marker='E'))
        assert classifier.classify('E Am').label == 'title'

    def test_custom_rules(self):
        classifier = LineClassifier([(r'^#\s*(?P<value>.*)$', 'title')])
        assert classifier.classify('# Перевал').value == 'Перевал'
        assert classifier.classify('Am').label == LineClassifier.FALLBACK

    def test_is_chord_line(self):
        assert is_chord_line('G  D  Em')
        assert not is_chord_line('Где-то')


class TestMarkerParser:
    """Test the marker state machine."""

    def test_single_song(self):
        songs = parse_marker_songs([ParagraphBlock("♭ Song One\nAuthor Name\nAm\nline one\n\nline two")])
        assert len(songs) == 1
        song = songs[0]
        assert song.title == 'Song One'
        assert song.authors == 'Author Name'
        assert song.body == 'Am\nline one\n\nline two'

    def test_blank_runs_collapse(self):
        text = "♭ Song One\nAuthor Name\nAm\nline one\n\n\n\nline two"
        song = parse_marker_songs([ParagraphBlock(text)])[0]
        assert 'line one\n\nline two' in song.body
        assert '\n\n\n' not in song.body

    def test_text_split_across_blocks(self, marker_text):
        songs = parse_marker_songs(paragraphs(marker_text))
        assert [s.title for s in songs] == ['Song One', 'Вторая песня']
        assert songs[0].body.count('\n\n') == 1

    def test_title_while_open_finalizes(self, marker_text):
        songs = parse_marker_songs(paragraphs(marker_text))
        assert songs[0].body.endswith('line two')
        second = songs[1]
        assert second.authors == 'Булат Окуджава'
        assert second.rhythm == 'бой шестёрка'
        assert second.body == 'Припев:\nВозьмёмся за руки, друзья'

    def test_positions_in_order(self, marker_text):
        assert [s.position for s in parse_marker_songs(paragraphs(marker_text))] == [0, 1]

    def test_text_before_first_title_ignored(self, marker_text):
        songs = parse_marker_songs(paragraphs(marker_text))
        assert all('Правила' not in s.body for s in songs)

    def test_short_title_discarded(self):
        text = "♭ 12\nстрочка\n♭ Перевал\nG\nПросто нечего нам больше терять"
        songs = parse_marker_songs([ParagraphBlock(text)])
        assert [s.title for s in songs] == ['Перевал']
        assert songs[0].position == 0

    def test_missing_author_is_unknown(self):
        song = parse_marker_songs([ParagraphBlock("♭ Перевал\nG\nтекст")])[0]
        assert song.authors == AUTHORS_UNKNOWN
        assert song.body == 'G\nтекст'

    def test_text_after_author_starts_body(self):
        song = parse_marker_songs([ParagraphBlock("♭ Перевал\nВизбор\nПросто нечего нам")])[0]
        assert song.authors == 'Визбор'
        assert song.body == 'Просто нечего нам'

    def test_trailing_blanks_dropped(self):
        song = parse_marker_songs([ParagraphBlock("♭ Перевал\nG\nтекст\n\n\n")])[0]
        assert song.body == 'G\nтекст'

    def test_table_rows_read_as_lines(self):
        blocks = [TableBlock(rows=('♭ Перевал', 'Визбор\nG', 'текст'))]
        song = parse_marker_songs(blocks)[0]
        assert song.authors == 'Визбор'
        assert song.body == 'G\nтекст'

    def test_custom_marker(self):
        songs = parse_marker_songs([ParagraphBlock("* Перевал\nG\nтекст")], marker='*')
        assert songs[0].title == 'Перевал'

    def test_states(self):
        parser = MarkerParser()
        assert parser.state is ParserState.SEEKING_TITLE
        parser.feed('не песня')
        assert parser.state is ParserState.SEEKING_TITLE
        parser.feed('♭ Перевал')
        assert parser.state is ParserState.READING_METADATA
        parser.feed('Am')
        assert parser.state is ParserState.READING_BODY
        parser.feed('♭ Милая моя')
        assert parser.state is ParserState.READING_METADATA
        assert [s.title for s in parser.songs] == ['Перевал']
        songs = parser.finish()
        assert [s.title for s in songs] == ['Перевал', 'Милая моя']
        assert parser.state is ParserState.SEEKING_TITLE

    def test_no_titles(self):
        assert parse_marker_songs([ParagraphBlock("просто текст\nи ещё")]) == []


class TestPreamble:
    """Test extraction of the text before the first song."""

    def test_preamble(self, marker_text):
        assert extract_preamble(paragraphs(marker_text)) == [
            Snippet('Правила круга: поём по очереди', 0)
        ]

    def test_no_preamble(self):
        assert extract_preamble([ParagraphBlock("♭ Перевал\nG")]) == []
