"""
Aura TUI - Entry point

Starts the interactive player by default; a few one-shot subcommands
(search, playlists, doctor) run without starting mpv.
"""

import argparse
import sys
from typing import Optional

from aura_tui.core import config
from aura_tui.core.output import log


def run_search(query: str, limit: Optional[int]) -> int:
    """Print search results and exit.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    from aura_tui.commands.playback import print_tracks
    from aura_tui.domain import catalog

    cfg = config.load_config()
    try:
        tracks = catalog.search(
            query,
            limit=limit or cfg.catalog.search_limit,
            timeout=cfg.catalog.search_timeout,
        )
    except catalog.CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not tracks:
        print("No results")
        return 0
    print_tracks(f"Results for '{query}'", tracks)
    return 0


def run_list_playlists() -> int:
    from aura_tui.core.store import Store
    from aura_tui.domain import playlists

    store = Store()
    store.init()
    all_playlists = playlists.get_all_playlists(store)
    if not all_playlists:
        print("No playlists")
        return 0
    for playlist in all_playlists:
        print(f"{playlist.name} ({len(playlist.tracks)} tracks)")
    return 0


def run_doctor() -> int:
    from aura_tui.commands.admin import run_dependency_checks

    ok = run_dependency_checks()
    log(f"Config: {config.get_config_path()}")
    log(f"Data:   {config.get_data_dir()}")
    return 0 if ok else 1


def main() -> None:
    """Main entry point for the aura-tui command."""
    parser = argparse.ArgumentParser(
        description="Aura TUI - terminal music player",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Override the configured log level'
    )

    subparsers = parser.add_subparsers(dest='subcommand', help='Available commands')

    search_parser = subparsers.add_parser('search', help='Search the catalog and exit')
    search_parser.add_argument('query', nargs='+', help='Search terms')
    search_parser.add_argument('-n', '--limit', type=int, help='Maximum results')

    subparsers.add_parser('playlists', help='List saved playlists')
    subparsers.add_parser('doctor', help='Check mpv and yt-dlp availability')

    args = parser.parse_args()

    if args.subcommand:
        # Keep loguru off stderr for one-shot commands too
        from .main import setup_logging
        setup_logging(config.load_config(), args.log_level)

    if args.subcommand == 'search':
        sys.exit(run_search(' '.join(args.query), args.limit))
    elif args.subcommand == 'playlists':
        sys.exit(run_list_playlists())
    elif args.subcommand == 'doctor':
        sys.exit(run_doctor())

    # No subcommand - start interactive mode
    from .main import interactive_mode
    interactive_mode(args.log_level)


if __name__ == "__main__":
    main()
