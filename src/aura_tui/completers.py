"""
prompt_toolkit completers for Aura TUI
Provides autocomplete for commands, subcommands and playlist names
"""

from typing import Callable, Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from aura_tui.core.store import Store
from aura_tui.domain import playlists as playlist_module


class AuraCompleter(Completer):
    """
    Command completer with descriptions.

    Completes the command word, then subcommands for ``queue``/``playlist``,
    then playlist names for playlist subcommands that take one.
    """

    # Format: 'command': ('icon', 'description')
    COMMANDS = {
        # Playback
        'search': ('🔍', 'Search for tracks'),
        'play': ('▶', 'Play a result, search and play, or toggle'),
        'pause': ('⏸', 'Pause playback'),
        'resume': ('▸', 'Resume playback'),
        'stop': ('■', 'Stop playback'),
        'next': ('⏭', 'Skip to next track'),
        'prev': ('⏮', 'Previous track'),
        'seek': ('⏩', 'Seek by seconds'),
        'volume': ('🔊', 'Show or change volume'),
        'mute': ('🔇', 'Toggle mute'),
        'shuffle': ('🔀', 'Toggle shuffle'),
        'repeat': ('🔁', 'Cycle repeat mode'),
        'autoplay': ('📻', 'Toggle radio autoplay'),
        'adblock': ('🛡', 'Toggle ad skipping'),
        'status': ('ℹ', 'Show playback status'),

        # Queue
        'queue': ('📃', 'Show or edit the queue'),
        'history': ('🕘', 'Recently played'),

        # Playlists
        'playlist': ('📋', 'Manage playlists'),

        # System
        'doctor': ('🩺', 'Check dependencies'),
        'cache': ('💾', 'Prefetch cache stats'),
        'config': ('⚙', 'Show configuration file'),
        'help': ('❓', 'Show help'),
        'quit': ('👋', 'Exit Aura TUI'),
        'exit': ('👋', 'Exit Aura TUI'),
    }

    SUBCOMMANDS = {
        'queue': ['add', 'rm', 'mv', 'play', 'clear'],
        'playlist': ['new', 'delete', 'rename', 'show', 'play', 'add', 'remove', 'import'],
        'cache': ['clear'],
    }

    # Playlist subcommands whose argument is an existing playlist name
    PLAYLIST_NAME_SUBCOMMANDS = {'delete', 'rename', 'show', 'play', 'add', 'remove'}

    def __init__(self, store_provider: Callable[[], Store]):
        self._store_provider = store_provider

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        text = document.text_before_cursor.lstrip('/')
        parts = text.split(' ')

        if len(parts) == 1:
            yield from self._complete_commands(parts[0])
        elif len(parts) == 2:
            yield from self._complete_subcommands(parts[0].lower(), parts[1])
        elif parts[0].lower() == 'playlist' and parts[1] in self.PLAYLIST_NAME_SUBCOMMANDS:
            yield from self._complete_playlists(' '.join(parts[2:]))

    def _complete_commands(self, word: str) -> Iterable[Completion]:
        word = word.lower()
        matches = sorted(
            (command, icon, description)
            for command, (icon, description) in self.COMMANDS.items()
            if command.startswith(word)
        )
        for command, icon, description in matches[:10]:
            yield Completion(
                command,
                start_position=-len(word),
                display=command,
                display_meta=f"{icon}\t{description}",
            )

    def _complete_subcommands(self, command: str, word: str) -> Iterable[Completion]:
        for subcommand in self.SUBCOMMANDS.get(command, []):
            if subcommand.startswith(word.lower()):
                yield Completion(subcommand, start_position=-len(word))

    def _complete_playlists(self, word: str) -> Iterable[Completion]:
        needle = word.strip('"').lower()
        try:
            all_playlists = playlist_module.get_all_playlists(self._store_provider())
        except Exception as e:
            # Graceful degradation - don't break autocomplete
            yield Completion(
                "",
                start_position=0,
                display="[Error]",
                display_meta=f"Could not load playlists: {e}",
            )
            return

        for playlist in all_playlists:
            if needle in playlist.name.lower():
                name = playlist.name
                insert = f'"{name}"' if ' ' in name else name
                yield Completion(
                    insert,
                    start_position=-len(word),
                    display=name,
                    display_meta=f"{len(playlist.tracks)} tracks",
                )
