"""Tests for search.py - normalized search modes and position re-selection."""

from chordbook.models import Song, StrummingPattern
from chordbook.normalize import Normalizer
from chordbook.parser import parse_song_tables
from chordbook.search import (
    SearchMode,
    find_word,
    parse_mode,
    search,
    select,
    split_mode_prefix,
)


class TestSearchModes:
    """Test author / title / lyric search."""

    def test_author(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        assert [s.title for s in search(songs, 'визбор', SearchMode.AUTHOR)] == ['Милая моя', 'Перевал']

    def test_title_ignores_yo(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        assert [s.title for s in search(songs, 'елка', SearchMode.TITLE)] == ['Ёлка']

    def test_lyric_ignores_punctuation(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        matches = search(songs, 'Милая, моя!', SearchMode.LYRIC)
        assert [s.title for s in matches] == ['Милая моя']

    def test_lyric_matches_body_only(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        assert search(songs, 'перевал', SearchMode.LYRIC) == []

    def test_no_match(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        for mode in SearchMode:
            assert search(songs, 'окуджава', mode) == []

    def test_blank_query(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        assert search(songs, '  ?! ') == []

    def test_results_in_position_order(self):
        songs = [Song('Б песня', position=2), Song('А песня', position=0), Song('В песня', position=1)]
        assert [s.position for s in search(songs, 'песня', SearchMode.TITLE)] == [0, 1, 2]

    def test_patterns_searchable_by_title(self):
        patterns = [StrummingPattern('Шестёрка', position=0), StrummingPattern('Восьмёрка', position=1)]
        assert search(patterns, 'шестерка', SearchMode.TITLE) == [patterns[0]]
        assert search(patterns, 'шестерка', SearchMode.AUTHOR) == []

    def test_custom_normalizer(self):
        songs = [Song('Мой край', position=0)]
        assert search(songs, 'мои', SearchMode.TITLE, Normalizer({'й': 'и'})) == songs


class TestUnscopedSearch:
    """Test TEXT mode: title matches first, then body-only matches."""

    def test_title_match_before_lower_position_body_match(self):
        songs = [
            Song('Вальс', body='припев про перевал', position=0),
            Song('Перевал', body='просто нечего нам', position=5),
        ]
        assert [s.position for s in search(songs, 'перевал')] == [5, 0]

    def test_each_group_by_position(self):
        songs = [
            Song('Река', body='текст', position=3),
            Song('Песня', body='про реку', position=1),
            Song('Река-река', body='текст', position=2),
            Song('Дорога', body='и река', position=0),
        ]
        assert [s.position for s in search(songs, 'река')] == [2, 3, 0]

    def test_title_and_body_match_listed_once(self):
        songs = [Song('Перевал', body='перевал, перевал', position=0)]
        assert len(search(songs, 'перевал')) == 1

    def test_duplicate_positions_collapse(self):
        songs = [Song('Перевал', position=0), Song('Перевал (копия)', position=0)]
        assert len(search(songs, 'перевал')) == 1


class TestSelect:
    """Test re-selection by source position."""

    def test_select(self, song_blocks):
        songs = parse_song_tables(song_blocks)
        assert select(songs, 2).title == 'Перевал'

    def test_select_missing(self, song_blocks):
        assert select(parse_song_tables(song_blocks), 42) is None


class TestModeParsing:
    """Test mode tags and prefixes."""

    def test_parse_mode(self):
        assert parse_mode('author') is SearchMode.AUTHOR
        assert parse_mode(' T ') is SearchMode.TITLE
        assert parse_mode('lyrics') is SearchMode.LYRIC
        assert parse_mode(None) is SearchMode.TEXT
        assert parse_mode('nonsense') is SearchMode.TEXT

    def test_split_prefix(self):
        assert split_mode_prefix('author: визбор') == (SearchMode.AUTHOR, 'визбор')
        assert split_mode_prefix('line:солнышко лесное') == (SearchMode.LYRIC, 'солнышко лесное')

    def test_colon_in_plain_query(self):
        assert split_mode_prefix('Припев: ой') == (SearchMode.TEXT, 'Припев: ой')


class TestFindWord:
    """Test whole-word matching used for watched words."""

    def test_whole_word(self):
        assert find_word('дурак', 'Ну ты и ДУРАК!')

    def test_not_inside_other_word(self):
        assert not find_word('рак', 'Ну ты и дурак')

    def test_phrase(self):
        assert find_word('ну ты', 'Ну,  ты и дурак')
        assert not find_word('ты ну', 'Ну ты и дурак')

    def test_yo_in_watched_word(self):
        assert find_word('ёж', 'какой еж')

    def test_empty_word(self):
        assert not find_word(' ', 'что угодно')
