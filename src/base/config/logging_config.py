import logging
import os

from src.base.middleware.correlation_middleware import CorrelationFilter


class ColoredFormatter(logging.Formatter):
    """Formatter with coloured level names and short logger names."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record):
        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            record.colored_levelname = (
                f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
            )
        else:
            record.colored_levelname = levelname

        # Last component of the logger name, "app" for __main__
        short_name = record.name.split(".")[-1] if record.name else "unknown"
        record.filename_only = "app" if short_name == "__main__" else short_name

        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"

        return super().format(record)


class LoggingConfig:
    """Configuration class for application logging setup."""

    FORMAT = (
        "%(asctime)s | %(colored_levelname)s | %(correlation_id)s | "
        "%(filename_only)s | %(message)s"
    )

    @staticmethod
    def resolve_level() -> int:
        """Read LOG_LEVEL from the environment, defaulting to INFO."""
        name = os.getenv("LOG_LEVEL", "INFO").upper()
        level = logging.getLevelName(name)
        return level if isinstance(level, int) else logging.INFO

    @staticmethod
    def setup_logging(log_level: int | None = None) -> None:
        """
        Configure root logging with correlation ID support.

        Args:
            log_level: The logging level (default: LOG_LEVEL env var or INFO)
        """
        logger = logging.getLogger()
        logger.setLevel(log_level if log_level is not None else LoggingConfig.resolve_level())

        # Only add handlers if none exist to avoid duplicates
        if not logger.hasHandlers():
            handler = logging.StreamHandler()
            use_colors = os.getenv("LOG_COLORS", "true").lower() != "false"
            handler.setFormatter(
                ColoredFormatter(
                    LoggingConfig.FORMAT, datefmt="%Y-%m-%d %H:%M:%S", use_colors=use_colors
                )
            )
            handler.addFilter(CorrelationFilter())
            logger.addHandler(handler)
