import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

install_rich_traceback()

DATE_DIR_FORMAT = "%Y_%m_%d"


def _dated_log_dir(root: str, logger_name: str, current_date: str, is_error: bool) -> str:
    """errors/<date>/ for the shared error stream, <logger>/<date>/ otherwise."""
    if is_error:
        return os.path.join(root, "errors", current_date)
    return os.path.join(root, logger_name, current_date)


class DailyRotatingFileHandler(TimedRotatingFileHandler):
    """File handler that moves to a new dated directory when the day changes."""

    def __init__(self, filename, log_dir, log_filename_prefix, logger_name, is_error_handler=False, *args, **kwargs):
        self.log_dir = log_dir
        self.log_filename_prefix = log_filename_prefix
        self.logger_name = logger_name
        self.is_error_handler = is_error_handler
        super().__init__(filename, *args, **kwargs)

    def _current_filename(self) -> str:
        current_date = datetime.now().strftime(DATE_DIR_FORMAT)
        current_dir = _dated_log_dir(self.log_dir, self.logger_name, current_date, self.is_error_handler)
        return os.path.normpath(
            os.path.join(current_dir, f"{self.log_filename_prefix}{self.logger_name}.log")
        )

    def emit(self, record):
        current_filename = self._current_filename()
        base_filename = os.path.normpath(self.baseFilename) if getattr(self, 'baseFilename', None) else None

        if base_filename != current_filename:
            stream = getattr(self, 'stream', None)
            if stream:
                try:
                    stream.close()
                except OSError:
                    pass
            self.baseFilename = current_filename
            os.makedirs(os.path.dirname(current_filename), exist_ok=True)
            self.stream = self._open()

        super().emit(record)


class Logger(logging.Logger):
    """Component logger: Rich console output plus per-day plain-text files.

    Every record goes to ``<log_dir>/<name>/<date>/<prefix><name>.log``; ERROR and
    above are also copied to ``<log_dir>/errors/<date>/``.
    """

    def __init__(self, logger_name: str = '', log_filename_prefix: str = '', log_dir: Optional[str] = None,
                 logger_debug: bool = False, console: bool = True) -> None:
        sanitized_name = logger_name.replace('/', '_').replace('\\', '_') or "coinfeed"

        level = logging.DEBUG if logger_debug else logging.INFO
        super().__init__(sanitized_name, level)

        self.log_filename_prefix = log_filename_prefix

        if log_dir is None:
            # Import config here to avoid circular imports
            from coinfeed.config.loader import config
            self.log_dir = config.LOG_DIR
        else:
            self.log_dir = log_dir

        self.date_format = "%d.%m.%Y %H:%M:%S"

        self._setup_logger(console)
        self.debug(f"Logger {sanitized_name} initialized with log directory: {self.log_dir}")

    def _get_log_dir(self, current_date: str, is_error: bool = False) -> str:
        log_dir = _dated_log_dir(self.log_dir, self.name, current_date, is_error)
        os.makedirs(log_dir, exist_ok=True)
        return log_dir

    def _get_log_filename(self, log_dir: str) -> str:
        return os.path.join(log_dir, f"{self.log_filename_prefix}{self.name}.log")

    def _plain_formatter(self) -> logging.Formatter:
        if self.level == logging.DEBUG:
            format_string = "[{asctime}] {levelname} {filename}.{funcName} - {message}"
        else:
            format_string = "[{asctime}] {levelname} - {message}"
        return logging.Formatter(format_string, datefmt=self.date_format, style="{")

    def _setup_logger(self, console: bool) -> None:
        if self.handlers:
            return
        current_date = datetime.now().strftime(DATE_DIR_FORMAT)
        if console:
            self._add_console_handler()
        self._add_file_handler(self._get_log_dir(current_date), is_error=False)
        self._add_file_handler(self._get_log_dir(current_date, is_error=True), is_error=True)

    def _add_console_handler(self):
        rich_console = Console(color_system="auto", width=160, stderr=True)
        rich_handler = RichHandler(console=rich_console, rich_tracebacks=False, show_path=False)
        rich_handler.setLevel(self.level)
        self.addHandler(rich_handler)

    def _add_file_handler(self, log_dir: str, is_error: bool) -> None:
        handler = DailyRotatingFileHandler(
            self._get_log_filename(log_dir),
            self.log_dir,
            self.log_filename_prefix,
            self.name,
            is_error_handler=is_error,
            when='midnight',
            interval=1,
            backupCount=30,
            encoding='utf-8',
            delay=True
        )
        handler.setLevel(logging.ERROR if is_error else self.level)
        handler.setFormatter(self._plain_formatter())
        handler.namer = lambda name: name.replace(".log", "") + ".log"
        handler.rotator = lambda source, _dest: self._log_rotator(source, is_error=is_error)
        self.addHandler(handler)

    def _log_rotator(self, source, is_error=False):
        new_date = datetime.now().strftime(DATE_DIR_FORMAT)
        new_dir = self._get_log_dir(new_date, is_error=is_error)
        new_file = os.path.join(new_dir, os.path.basename(source))
        open(new_file, 'a').close()
