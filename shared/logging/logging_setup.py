from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}

# Third-party loggers that are only interesting while debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "pypdf")


class CustomFormatter(logging.Formatter):
    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            original_msg = record.getMessage()
        except (TypeError, ValueError):
            # malformed %-args from a library; log the raw template instead of failing
            original_msg = str(record.msg)

        if record.levelno >= logging.ERROR:
            record.msg = "⛔ " + original_msg
        elif record.levelno == logging.WARNING:
            record.msg = "⚠️ " + original_msg
        else:
            record.msg = original_msg

        # args are already merged into msg
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter with optional per-message ANSI color support.

    Colors are applied only when the log record carries a ``color`` attribute,
    which is set by passing ``color=<name>`` to :class:`ColorLogger` methods.
    """

    def format(self, record) -> str:
        line = super().format(record)
        if not line:
            return line
        color_name = getattr(record, "color", None)
        ansi = _COLOR_MAP.get(color_name, "") if color_name else ""
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Thin wrapper around :class:`logging.Logger` that adds an optional
    ``color=`` keyword argument to all log methods.

    Usage::

        logger.info("plain message")
        logger.info("Ingested %d chunks", 12, color="green")

    Colors are only applied in the console handler; the file handler always
    writes plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _with_color(self, kwargs: dict, color: str | None) -> dict:
        if color is not None:
            extra = dict(kwargs.get("extra") or {})
            extra["color"] = color
            return {**kwargs, "extra": extra}
        return kwargs

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.debug(msg, *args, **self._with_color(kwargs, color))

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.info(msg, *args, **self._with_color(kwargs, color))

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.warning(msg, *args, **self._with_color(kwargs, color))

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.error(msg, *args, **self._with_color(kwargs, color))

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.critical(msg, *args, **self._with_color(kwargs, color))

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.exception(msg, *args, **self._with_color(kwargs, color))

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._logger.log(level, msg, *args, **self._with_color(kwargs, color))

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def setup_logging(log_to_file: bool = True) -> ColorLogger:
    """Configure root logging (console + optional file) and return the app logger.

    Args:
        log_to_file (bool): Also write plain-text logs to <ROOT_DIR>/logs/app.log.

    Returns:
        ColorLogger: The application logger.
    """
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": loglevel,
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": CustomFormatter,
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers.keys()),
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("docchat"))
