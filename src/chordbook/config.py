"""
Configuration

Settings come from an optional YAML file, then environment variables
(CHORDBOOK_<FIELD>, plus the historical BOT_TOKEN / SONGBOOK_URL names),
then a .env file for anything still unset. Example chordbook.yaml:

    songbook_url: https://docs.google.com/document/d/<id>/edit
    documents:
      songs: <id or url>
      songs_format: table        # or "marker" for a free-text songbook
      strumming: <id>
      anecdotes: <id>
      responses: <id>
      watched_words: <id>
    cache_ttl: 300
    max_inline_results: 5
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .errors import ConfigError
from .normalize import DEFAULT_LETTER_TABLE
from .parser import SONG_STRATEGIES, TITLE_MARKER

ENV_PREFIX = 'CHORDBOOK_'

# Names the bot used before it had a config file
LEGACY_ENV = {
    'BOT_TOKEN': 'bot_token',
    'BOT_NAME': 'bot_name',
    'SONGBOOK_URL': 'songbook_url',
    'GOOGLE_API_KEY': 'google_api_key',
    'GOOGLE_ACCESS_TOKEN': 'google_access_token',
}


@dataclass
class DocumentSettings:
    """Document IDs (or URLs) for each kind of content"""
    songs: str = ''
    songs_format: str = 'table'
    strumming: str = ''
    anecdotes: str = ''
    responses: str = ''
    watched_words: str = ''
    rules: str = ''  # free-text document whose preamble holds the circle rules


@dataclass
class Settings:
    documents: DocumentSettings = field(default_factory=DocumentSettings)
    songbook_url: str = ''
    cache_ttl: float = 300.0
    max_inline_results: int = 5
    message_budget: int = 3700
    fetch_timeout: float = 30.0
    title_marker: str = TITLE_MARKER
    letter_table: dict = field(default_factory=lambda: dict(DEFAULT_LETTER_TABLE))
    circle_rules_photo: str = ''
    export_dir: str = ''  # read local exports instead of the Docs API
    bot_token: str = ''
    bot_name: str = ''
    google_access_token: str = ''
    google_api_key: str = ''

    def validate(self) -> 'Settings':
        if self.documents.songs_format not in SONG_STRATEGIES:
            raise ConfigError(
                f"documents.songs_format must be one of {sorted(SONG_STRATEGIES)}, "
                f"got {self.documents.songs_format!r}")
        if self.cache_ttl < 0:
            raise ConfigError("cache_ttl must not be negative")
        if self.max_inline_results < 1:
            raise ConfigError("max_inline_results must be at least 1")
        if self.message_budget < 100:
            raise ConfigError("message_budget is too small to hold a message")
        if self.fetch_timeout <= 0:
            raise ConfigError("fetch_timeout must be positive")
        if not self.title_marker:
            raise ConfigError("title_marker must not be empty")
        return self


def load_env_file(path: Path) -> dict:
    """Read KEY=value lines from a .env file"""
    values = {}
    if not path.exists():
        return values
    with open(path, encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            values[key.strip()] = value.strip().strip('"\'')
    return values


def _coerce(name: str, value, current):
    """Convert a raw value to the type of the field's current value"""
    try:
        if isinstance(current, bool):
            return str(value).lower() in ('1', 'true', 'yes')
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name}: expected a number, got {value!r}")
    if isinstance(current, dict):
        if not isinstance(value, dict):
            raise ConfigError(f"{name}: expected a mapping")
        return {str(k): str(v) for k, v in value.items()}
    return '' if value is None else str(value)


def _apply(target, data: Mapping, prefix: str = '') -> None:
    known = {f.name for f in fields(target)}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {prefix}{key}")
        current = getattr(target, key)
        if isinstance(current, DocumentSettings):
            if not isinstance(value, dict):
                raise ConfigError(f"{prefix}{key}: expected a mapping")
            _apply(current, value, prefix=f"{key}.")
        else:
            setattr(target, key, _coerce(prefix + key, value, current))


def _env_overrides(environ: Mapping) -> tuple[dict, dict]:
    top, documents = {}, {}
    doc_fields = {f.name for f in fields(DocumentSettings)}
    for key, value in environ.items():
        if key in LEGACY_ENV:
            top[LEGACY_ENV[key]] = value
        elif key.startswith(ENV_PREFIX):
            name = key[len(ENV_PREFIX):].lower()
            if name.startswith('doc_') and name[4:] in doc_fields:
                documents[name[4:]] = value
            elif name in {f.name for f in fields(Settings)} and name not in ('documents', 'letter_table'):
                top[name] = value
    return top, documents


def load_settings(path: Optional[str] = None, environ: Optional[Mapping] = None,
                  env_file: Optional[str] = '.env') -> Settings:
    """Build Settings from YAML, then .env, then the process environment; later wins"""
    settings = Settings()

    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        with open(config_path, encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")
        _apply(settings, data)

    env = dict(load_env_file(Path(env_file))) if env_file else {}
    env.update(os.environ if environ is None else environ)

    top, documents = _env_overrides(env)
    _apply(settings, top)
    _apply(settings.documents, documents, prefix='documents.')

    return settings.validate()
