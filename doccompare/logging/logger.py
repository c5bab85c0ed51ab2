import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class Log:
    """Process-wide logging facade.

    Keyword fields are appended to the message as ``key=value`` pairs so
    they survive the plain-text formatter, and are also passed as ``extra``.
    """

    _logger: logging.Logger = logging.getLogger("doccompare")

    @classmethod
    def configure(cls, log_level: str, stream: TextIO | None = None) -> None:
        """Set the level and attach a single stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(stream or sys.stdout)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **fields: object) -> None:
        cls._emit(logging.INFO, message, fields)

    @classmethod
    def error(cls, message: str, **fields: object) -> None:
        cls._emit(logging.ERROR, message, fields)

    @classmethod
    def warning(cls, message: str, **fields: object) -> None:
        cls._emit(logging.WARNING, message, fields)

    @classmethod
    def debug(cls, message: str, **fields: object) -> None:
        cls._emit(logging.DEBUG, message, fields)

    @classmethod
    def exception(cls, message: str, **fields: object) -> None:
        """Log at ERROR with the active exception's traceback."""
        cls._emit(logging.ERROR, message, fields, exc_info=True)

    @classmethod
    def _emit(
        cls,
        level: int,
        message: str,
        fields: dict[str, object],
        exc_info: bool = False,
    ) -> None:
        if not cls._logger.isEnabledFor(level):
            return
        cls._logger.log(
            level, render(message, fields), exc_info=exc_info, extra={"fields": fields}
        )


def render(message: str, fields: dict[str, object]) -> str:
    if not fields:
        return message
    pairs = " ".join(f"{key}={value}" for key, value in fields.items())
    return f"{message} [{pairs}]"
