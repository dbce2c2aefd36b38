"""
Command routing for Aura TUI.

Routes user commands to appropriate handler functions.
"""

from typing import List, Tuple

from aura_tui.context import AppContext

# Import command handlers
from aura_tui.commands import admin
from aura_tui.commands import playback
from aura_tui.commands import playlist
from aura_tui.commands import queue


def print_help() -> None:
    """Display help information for available commands."""
    help_text = """
Aura TUI - Terminal music player

Playback:
  search <query>            Search for tracks (results are numbered)
  play <n>                  Play search result n
  play <query>              Search and play the best match
  play / p                  Toggle play/pause
  pause / resume            Pause or resume playback
  stop                      Stop playback
  next / skip               Skip to next queued track
  prev                      Go back to the previous track
  seek <+/-seconds>         Seek relative to the current position
  volume [n|+n|-n]          Show or change volume (0-100)
  mute                      Toggle mute
  shuffle                   Toggle shuffle (reshuffles the queue)
  repeat                    Cycle repeat mode: off → all → one
  autoplay                  Toggle radio autoplay when the queue runs out
  adblock                   Toggle skipping of ad-like tracks
  status                    Show what is playing and mode flags

Queue:
  queue                     Show the queue
  queue add <n>...          Queue search results
  queue rm <pos>            Remove a queued track
  queue mv <from> <to>      Move a queued track
  queue play <pos>          Jump to a queued track
  queue clear               Clear the queue
  history                   Show recently played tracks

Playlists:
  playlist                          List playlists
  playlist new <name>               Create playlist
  playlist delete <name>            Delete playlist
  playlist rename "old" "new"       Rename playlist (use quotes)
  playlist show <name>              Show playlist tracks
  playlist play <name> [start]      Play a playlist
  playlist add <name>               Add current track to playlist
  playlist remove <name> <pos>      Remove a track from playlist
  playlist import <url> [name]      Import a YouTube playlist

System:
  doctor                    Check mpv and yt-dlp
  cache [clear]             Show prefetch cache stats / cancel downloads
  config                    Show (or create) the configuration file
  help                      Show this help message
  quit, exit                Exit the program
"""
    print(help_text.strip())


def handle_command(ctx: AppContext, command: str, args: List[str]) -> Tuple[AppContext, bool]:
    """
    Handle a single command with explicit state passing.

    Args:
        ctx: Application context
        command: Command name
        args: Command arguments

    Returns:
        (updated_context, should_continue) - Updated context and whether to continue
    """
    if command in ['quit', 'exit']:
        print("Goodbye!")
        return ctx, False

    elif command == 'help':
        print_help()
        return ctx, True

    elif command == 'search':
        return playback.handle_search_command(ctx, args)

    elif command == 'play':
        return playback.handle_play_command(ctx, args)

    elif command == 'p':
        return playback.handle_toggle_command(ctx)

    elif command == 'pause':
        return playback.handle_pause_command(ctx)

    elif command == 'resume':
        return playback.handle_resume_command(ctx)

    elif command == 'stop':
        return playback.handle_stop_command(ctx)

    elif command in ['next', 'skip']:
        return playback.handle_next_command(ctx)

    elif command in ['prev', 'previous', 'back']:
        return playback.handle_prev_command(ctx)

    elif command == 'seek':
        return playback.handle_seek_command(ctx, args)

    elif command in ['volume', 'vol']:
        return playback.handle_volume_command(ctx, args)

    elif command == 'mute':
        return playback.handle_mute_command(ctx)

    elif command == 'shuffle':
        return playback.handle_shuffle_command(ctx)

    elif command == 'repeat':
        return playback.handle_repeat_command(ctx)

    elif command == 'autoplay':
        return playback.handle_autoplay_command(ctx)

    elif command == 'adblock':
        return playback.handle_adblock_command(ctx)

    elif command == 'status':
        return playback.handle_status_command(ctx)

    elif command == 'queue':
        if not args:
            return queue.handle_queue_show_command(ctx)
        elif args[0] == 'add':
            return queue.handle_queue_add_command(ctx, args[1:])
        elif args[0] in ['rm', 'remove']:
            return queue.handle_queue_remove_command(ctx, args[1:])
        elif args[0] in ['mv', 'move']:
            return queue.handle_queue_move_command(ctx, args[1:])
        elif args[0] == 'play':
            return queue.handle_queue_play_command(ctx, args[1:])
        elif args[0] == 'clear':
            return queue.handle_queue_clear_command(ctx)
        else:
            print(f"Unknown queue subcommand: '{args[0]}'. Available: add, rm, mv, play, clear")
            return ctx, True

    elif command == 'history':
        return queue.handle_history_command(ctx)

    elif command == 'playlist':
        if not args:
            return playlist.handle_playlist_list_command(ctx)
        elif args[0] == 'new':
            return playlist.handle_playlist_new_command(ctx, args[1:])
        elif args[0] == 'delete':
            return playlist.handle_playlist_delete_command(ctx, args[1:])
        elif args[0] == 'rename':
            return playlist.handle_playlist_rename_command(ctx, args[1:])
        elif args[0] == 'show':
            return playlist.handle_playlist_show_command(ctx, args[1:])
        elif args[0] == 'play':
            return playlist.handle_playlist_play_command(ctx, args[1:])
        elif args[0] == 'add':
            return playlist.handle_playlist_add_command(ctx, args[1:])
        elif args[0] == 'remove':
            return playlist.handle_playlist_remove_command(ctx, args[1:])
        elif args[0] == 'import':
            return playlist.handle_playlist_import_command(ctx, args[1:])
        else:
            print(f"Unknown playlist subcommand: '{args[0]}'. Available: new, delete, rename, show, play, add, remove, import")
            return ctx, True

    elif command == 'doctor':
        return admin.handle_doctor_command(ctx)

    elif command == 'cache':
        return admin.handle_cache_command(ctx, args)

    elif command == 'config':
        return admin.handle_config_command(ctx)

    elif command == '':
        # Empty command, do nothing
        return ctx, True

    else:
        print(f"Unknown command: '{command}'. Type 'help' for available commands.")
        return ctx, True
