"""
Main entry point for the FontManager sync command.

This module handles:
- Command line argument parsing
- Logging configuration
- Settings loading
- Running and joining the sync
- Exception handling
"""

from __future__ import annotations

import argparse
import faulthandler
import logging
import signal
import threading
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, List, TextIO

from PyQt6.QtCore import QCoreApplication

from fontmanager import __version__
from fontmanager.core.folder.sync import SyncOptions, SyncOrchestrator, SyncSession
from fontmanager.core.models import FontFormat, SyncError
from fontmanager.services.settings import ApplicationSettings, SettingsManager, default_settings_path


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "FontManager"
APP_VERSION = __version__
APP_ORGANIZATION = "FontManager"

# Debug logs go next to the default settings file
LOGS_DIR = default_settings_path().parent / "logs"

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2

WAIT_POLL_MS = 200


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    source_path: Optional[str] = None
    destination_path: Optional[str] = None
    fonts_root: Optional[str] = None
    namespace: Optional[str] = None
    watched: bool = False
    dry_run: bool = False
    allow_formats: list[str] = field(default_factory=list)
    config_file: Optional[str] = None
    log_level: str = "INFO"
    debug: bool = False


# =============================================================================
# Logging Setup
# =============================================================================

CONSOLE_FORMAT = '%(levelname)-8s %(message)s'
DETAILED_FORMAT = '%(asctime)s | %(levelname)-8s | %(threadName)s | %(message)s'


class LogFormatter(logging.Formatter):
    """Log formatter that colors records by level when writing to a terminal."""

    COLORS = {
        logging.DEBUG: '\033[2m',      # Dim
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[1;31m',  # Bold red
    }
    RESET = '\033[0m'

    def __init__(
        self,
        fmt: str = DETAILED_FORMAT,
        use_colors: bool = False,
        stream: Optional[TextIO] = None
    ):
        super().__init__(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')
        isatty = getattr(stream, 'isatty', None)
        self.use_colors = use_colors and isatty is not None and isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        color = self.COLORS.get(record.levelno) if self.use_colors else None
        if color:
            return f"{color}{formatted}{self.RESET}"
        return formatted


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Route log records to the console and, optionally, a file.

    Levels run on pool threads, so the detailed format names the thread.
    The console uses it only at DEBUG; the file always does and always
    records DEBUG.

    Args:
        level: Console log level name
        log_file: Optional log file path

    Returns:
        Root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_format = DETAILED_FORMAT if numeric_level <= logging.DEBUG else CONSOLE_FORMAT
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(console_format, use_colors=True, stream=sys.stderr))
    root_logger.addHandler(console_handler)

    root_level = numeric_level
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(LogFormatter(DETAILED_FORMAT))
        root_logger.addHandler(file_handler)
        root_level = logging.DEBUG

    root_logger.setLevel(root_level)
    return root_logger


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """Sends uncaught exceptions to the log instead of bare stderr."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._previous_hook = None

    def install(self) -> None:
        self._previous_hook = sys.excepthook
        sys.excepthook = self.handle_exception

    def uninstall(self) -> None:
        if self._previous_hook is not None:
            sys.excepthook = self._previous_hook
            self._previous_hook = None

    def handle_exception(self, exc_type: type, exc_value: BaseException, exc_tb) -> None:
        # Ctrl+C outside the signal handler keeps the default traceback
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical(
            f"Uncaught {exc_type.__name__}, aborting",
            exc_info=(exc_type, exc_value, exc_tb)
        )


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="fontmanager-sync",
        description="Mirror a font folder onto a destination folder tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ~/Fonts/Inter ~/Library/Fonts/Sync/Inter   Mirror one folder
  %(prog)s ~/Fonts/Inter                             Mirror into <fonts>/Sync/Inter
  %(prog)s --watched                                 Sync all watched folders
  %(prog)s --dry-run ~/Fonts/Inter                   Show what would change
        """
    )

    # Positional arguments
    parser.add_argument(
        'source',
        nargs='?',
        help='Font folder to mirror (authoritative)'
    )
    parser.add_argument(
        'destination',
        nargs='?',
        help='Folder made to match the source'
    )

    # Destination layout
    parser.add_argument(
        '--into',
        dest='fonts_root',
        help='Fonts folder used when no destination is given'
    )
    parser.add_argument(
        '--namespace',
        help='Subfolder of the fonts folder that receives synced folders'
    )
    parser.add_argument(
        '-w', '--watched',
        action='store_true',
        help='Sync every watched folder from the settings'
    )

    # Execution
    parser.add_argument(
        '-n', '--dry-run',
        action='store_true',
        help='Log planned operations without changing anything'
    )
    parser.add_argument(
        '--allow',
        dest='allow_formats',
        action='append',
        default=[],
        choices=[fmt.name.lower() for fmt in FontFormat],
        help='Also mirror this font format (repeatable), e.g. --allow woff2'
    )

    # Configuration
    parser.add_argument(
        '-c', '--config',
        help='Configuration file path'
    )

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode (also writes a log file)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Log level'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    parsed = parser.parse_args(args)

    if not parsed.watched and not parsed.source:
        parser.error("a source folder is required unless --watched is given")

    result = CommandLineArgs()
    result.source_path = parsed.source
    result.destination_path = parsed.destination
    result.fonts_root = parsed.fonts_root
    result.namespace = parsed.namespace
    result.watched = parsed.watched
    result.dry_run = parsed.dry_run
    result.allow_formats = parsed.allow_formats
    result.config_file = parsed.config
    result.debug = parsed.debug

    # Log level
    if parsed.debug or parsed.verbose:
        result.log_level = 'DEBUG'
    else:
        result.log_level = parsed.log_level

    return result


# =============================================================================
# Sync Setup
# =============================================================================

def build_sync_options(settings: ApplicationSettings, args: CommandLineArgs) -> SyncOptions:
    """Combine stored sync settings with command line overrides."""
    sync = settings.sync

    formats = set(sync.accepted_formats())
    for name in args.allow_formats:
        formats.add(FontFormat.from_string(name))

    return SyncOptions(
        accepted_formats=frozenset(formats),
        hash_algorithm=sync.hash_algorithm,
        chunk_size=sync.chunk_size,
        preview_only=sync.preview_only or args.dry_run,
        require_source=sync.require_source,
        max_workers=sync.max_workers,
        session_callback=_register_session,
    )


def run_sync(
    orchestrator: SyncOrchestrator,
    settings: ApplicationSettings,
    args: CommandLineArgs
) -> tuple[list[SyncSession], int]:
    """
    Run the requested syncs to completion.

    Background levels would be killed when the process exits, so every
    session is joined before returning.

    Returns:
        (finished sessions, number of watched folders that could not start)

    Raises:
        SyncError: if a single requested sync cannot start
    """
    fonts_root = args.fonts_root or settings.sync.fonts_root
    namespace = args.namespace if args.namespace is not None else settings.sync.namespace
    not_started = 0

    if args.watched:
        if not settings.watched_folders:
            logging.warning("No watched folders configured")

        started, failures = orchestrator.run_watched(
            settings.watched_folders,
            fonts_root,
            namespace,
            wait=False,
        )
        if failures:
            logging.error(f"{len(failures)} watched folder(s) could not be synced")
        sessions = list(started.values())
        not_started = len(failures)
    elif args.destination_path:
        sessions = [orchestrator.run(args.source_path, args.destination_path)]
    else:
        sessions = [orchestrator.run_into(args.source_path, fonts_root, namespace)]

    for session in sessions:
        # Short waits let the signal handlers run between them
        while not session.wait(WAIT_POLL_MS):
            pass

    return sessions, not_started


# =============================================================================
# Signal Handlers
# =============================================================================

_active_sessions: list[SyncSession] = []
_cancel_requested = threading.Event()


def _register_session(session: SyncSession) -> None:
    """Track a session before its root level runs so signals can reach it."""
    _active_sessions.append(session)
    if _cancel_requested.is_set():
        session.cancel()


def setup_signal_handlers() -> None:
    """Cancel running syncs on SIGINT/SIGTERM."""
    signal.signal(signal.SIGINT, _signal_handler)
    if sys.platform != 'win32':
        signal.signal(signal.SIGTERM, _signal_handler)


def _signal_handler(signum, frame) -> None:
    """Handle Unix signals."""
    logging.info(f"Received signal {signum}, cancelling sync...")
    _cancel_requested.set()
    for session in list(_active_sessions):
        session.cancel()


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Command line entry point.

    Returns:
        Exit code: 0 success, 1 finished with errors, 2 fatal error
    """
    # Enable faulthandler for debugging crashes
    faulthandler.enable()

    args = parse_arguments(argv)

    log_file = LOGS_DIR / f"{APP_NAME}_{datetime.now():%Y%m%d}.log" if args.debug else None
    logger = setup_logging(args.log_level, log_file)
    logger.info(f"Starting {APP_NAME} v{APP_VERSION}")

    ExceptionHandler(logger).install()

    # The worker pool is a Qt object; keep a core application around for it
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    app.setApplicationVersion(APP_VERSION)

    settings_manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    settings = settings_manager.settings

    _cancel_requested.clear()
    setup_signal_handlers()

    try:
        orchestrator = SyncOrchestrator(build_sync_options(settings, args))
        sessions, not_started = run_sync(orchestrator, settings, args)
    except SyncError as e:
        logger.critical(f"Sync aborted: {e}")
        return EXIT_FATAL
    except (ValueError, TypeError) as e:
        logger.critical(f"Invalid arguments or settings: {e}")
        return EXIT_FATAL

    failed = not_started > 0
    for session in sessions:
        report = session.report
        logger.info(f"{session.source_root} -> {session.destination_root}: {report.summary()}")
        for path, error in report.errors:
            logger.warning(f"  {path}: {error}")
        if session.is_cancelled:
            logger.warning(f"  Sync of {session.source_root} was cancelled")
        failed = failed or report.has_errors or session.is_cancelled

        if not orchestrator.options.preview_only:
            settings_manager.add_recent_sync(str(session.source_root), str(session.destination_root))

    exit_code = EXIT_PARTIAL if failed else EXIT_OK
    logger.info(f"{APP_NAME} exiting with code {exit_code}")
    return exit_code


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
