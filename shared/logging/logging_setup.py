"""Logging configuration for the search API and the reindex runner.

Settings (environment):
    LOG_LEVEL   - any stdlib level name, default "info"
    LOG_TO_FILE - also write <ROOT_DIR>/logs/search.log, default true
    TIMEZONE    - pytz zone used for timestamps, default "Europe/Berlin"
"""

from datetime import datetime
import logging
import logging.config
import os

from pytz import timezone

LOGGER_NAME = "doclib_search"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RESET = "\033[0m"
_COLORS = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
}
_LEVEL_MARKERS = {logging.WARNING: "⚠️ ", logging.ERROR: "⛔ ", logging.CRITICAL: "⛔ "}

# driver loggers that chatter once per request or per pooled connection
_NOISY_LOGGERS = ("httpcore", "asyncpg")


def _resolve_level() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "info").upper())
    return level if isinstance(level, int) else logging.INFO


class TransportNoiseFilter(logging.Filter):
    """Keep only warnings and above from the HTTP and database drivers."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name.startswith(_NOISY_LOGGERS) and record.levelno < logging.WARNING)


class CustomFormatter(logging.Formatter):
    """Timezone-aware formatter that prefixes warnings and errors with a marker."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = _LEVEL_MARKERS.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console variant: wraps the line in the ANSI color named by ``record.color``."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_RESET}" if ansi and line else line


class ColorLogger:
    """Logger proxy whose log methods accept an extra ``color=`` keyword.

        logger.info("Index doclib_search ready", color="green")

    The color only reaches the console handler, the log file stays plain.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        # point findCaller at the code that called the proxy, not at this method
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def setup_logging() -> ColorLogger:
    """Configure the root logger once per process and return the service logger."""
    level = _resolve_level()
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    formatter_args = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "filters": ["transport_noise"],
            "stream": "ext://sys.stdout",
        },
    }
    if os.getenv("LOG_TO_FILE", "true").lower() in ("true", "1", "yes"):
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "filters": ["transport_noise"],
            "filename": os.path.join(log_dir, "search.log"),
            "encoding": "utf-8",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"transport_noise": {"()": TransportNoiseFilter}},
        "formatters": {
            "standard": {"()": CustomFormatter, **formatter_args},
            "colored": {"()": ColoredFormatter, **formatter_args},
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
        "loggers": {
            # request lines from httpx and SQL echo only in debug mode
            "httpx": {"level": logging.DEBUG if level <= logging.DEBUG else logging.WARNING},
            "sqlalchemy.engine": {"level": logging.INFO if level <= logging.DEBUG else logging.WARNING},
        },
    })

    return ColorLogger(logging.getLogger(LOGGER_NAME))
