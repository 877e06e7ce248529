#!/usr/bin/env python3
"""
chordbook command line

    chordbook search "author: визбор"      # mode prefixes: author/title/lyric/text
    chordbook show 12                       # song by source position
    chordbook list
    chordbook --format marker parse export.html
    chordbook export <doc id or url> -o exports/
    chordbook bot                           # Telegram long polling

Settings come from --config (YAML), CHORDBOOK_* environment variables and .env.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .assistant import ChatAssistant
from .catalog import Catalog
from .config import Settings, load_settings
from .errors import ChordbookError, ConfigError
from .formatter import Part, PartKind
from .normalize import Normalizer
from .parser import SONG_STRATEGIES, parse_marker_songs, parse_snippets, parse_strumming_tables
from .reader import GoogleDocsReader, extract_document_id, reader_for_path
from .search import SearchMode, parse_mode, search, select, split_mode_prefix


def print_parts(parts: list[Part]) -> None:
    for part in parts:
        if part.kind is PartKind.TEXT:
            print(part.content)
        else:
            print(f"[{part.kind.value}: {part.content}]")
        for row in part.buttons:
            for label, data in row:
                print(f"  [{data}] {label}")
        print()


async def cmd_search(catalog: Catalog, settings: Settings, args) -> int:
    query = ' '.join(args.query)
    if args.mode:
        mode = parse_mode(args.mode)
    else:
        mode, query = split_mode_prefix(query)
    songs = await catalog.songs()
    matches = search(songs, query, mode, Normalizer(settings.letter_table))
    if not matches:
        print("No songs found")
        return 1
    for song in matches:
        print(f"{song.position:4d}  {song.title} ({song.authors})")
    print(f"\n{len(matches)} of {len(songs)} songs match")
    return 0


async def cmd_show(catalog: Catalog, settings: Settings, args) -> int:
    assistant = ChatAssistant(catalog, settings)
    songs = await catalog.songs()
    if select(songs, args.position) is None:
        print(f"No song at position {args.position}")
        return 1
    print_parts(await assistant.handle_callback(f"song:{args.position}"))
    return 0


async def cmd_list(catalog: Catalog, settings: Settings, args) -> int:
    assistant = ChatAssistant(catalog, settings)
    print_parts(await assistant.handle_text('/list'))
    return 0


async def cmd_parse(catalog: Catalog, settings: Settings, args) -> int:
    path = Path(args.file)
    reader = reader_for_path(path)
    blocks = await reader.read(path.stem)
    if args.kind == 'strumming':
        entities = parse_strumming_tables(blocks)
    elif args.kind == 'snippets':
        entities = parse_snippets(blocks)
    elif args.format == 'marker':
        entities = parse_marker_songs(blocks, settings.title_marker)
    else:
        entities = SONG_STRATEGIES[args.format](blocks)

    for entity in entities:
        label = getattr(entity, 'title', None) or entity.text.split('\n', 1)[0]
        print(f"{entity.position:4d}  {label}")
    print(f"\n{len(entities)} {args.kind} from {len(blocks)} blocks")
    return 0


async def cmd_export(catalog: Catalog, settings: Settings, args) -> int:
    document_id = extract_document_id(args.document)
    reader = GoogleDocsReader(
        access_token=settings.google_access_token or None,
        api_key=settings.google_api_key or None,
        timeout=settings.fetch_timeout,
    )
    data = await reader.fetch_json(document_id)
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / f"{document_id}.json"
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    print(f"Saved {output_file}")
    return 0


async def cmd_bot(catalog: Catalog, settings: Settings, args) -> int:
    # Imported here so the other commands work without bot credentials
    from .telegram import TelegramClient, run_polling

    if not settings.bot_token:
        raise ConfigError("bot_token is not set (BOT_TOKEN or CHORDBOOK_BOT_TOKEN)")
    assistant = ChatAssistant(catalog, settings)
    telegram = TelegramClient(settings.bot_token)
    try:
        await run_polling(assistant, telegram)
    finally:
        await telegram.close()
    return 0


COMMANDS = {
    'search': cmd_search,
    'show': cmd_show,
    'list': cmd_list,
    'parse': cmd_parse,
    'export': cmd_export,
    'bot': cmd_bot,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chordbook',
        description='Search and serve a chord songbook kept in Google Docs'
    )
    parser.add_argument(
        '-c', '--config',
        help='YAML settings file'
    )
    parser.add_argument(
        '-e', '--export-dir',
        help='Read documents from local exports in this directory instead of the Docs API'
    )
    parser.add_argument(
        '-f', '--format',
        choices=sorted(SONG_STRATEGIES),
        help='Songbook layout (default: from settings)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    search_parser = sub.add_parser('search', help='Search songs')
    search_parser.add_argument('query', nargs='+')
    search_parser.add_argument(
        '-m', '--mode',
        choices=[m.value for m in SearchMode],
        help='Search field (default: text, or a "mode:" prefix in the query)'
    )

    show_parser = sub.add_parser('show', help='Render one song as the bot would')
    show_parser.add_argument('position', type=int)

    sub.add_parser('list', help='Numbered list of all songs')

    parse_parser = sub.add_parser('parse', help='Parse a local export and list its entities')
    parse_parser.add_argument('file', help='.json or .html export')
    parse_parser.add_argument(
        '-k', '--kind',
        choices=['songs', 'strumming', 'snippets'],
        default='songs'
    )

    export_parser = sub.add_parser('export', help='Save a document as documents.get JSON')
    export_parser.add_argument('document', help='Document ID or URL')
    export_parser.add_argument('-o', '--output-dir', default='exports')

    sub.add_parser('bot', help='Run the Telegram bot (long polling)')
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        settings = load_settings(args.config)
        if args.export_dir:
            settings.export_dir = args.export_dir
        if args.format:
            settings.documents.songs_format = args.format
        else:
            args.format = settings.documents.songs_format
        catalog = Catalog.from_settings(settings)
        return asyncio.run(COMMANDS[args.command](catalog, settings, args))
    except ChordbookError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
