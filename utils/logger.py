"""
Logger Configuration
Console (Rich) and file handlers for the resolver packages
"""
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from rich.console import Console
from rich.logging import RichHandler


# stdout stays free for JSON output
console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DIR = Path(__file__).parent.parent / "logs"

# modules log under their own dotted names
PACKAGE_LOGGERS = (
    "aggregator",
    "config",
    "core",
    "orchestrator",
    "processing",
    "sources",
    "storage",
    "utils",
)


def _handlers(level: int, log_file: Optional[str], use_rich: bool) -> List[logging.Handler]:
    if use_rich:
        stream: logging.Handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        stream.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter(LOG_FORMAT))
    stream.setLevel(level)
    handlers = [stream]

    if log_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        handlers.append(file_handler)
    return handlers


def setup_logger(
    name: str = "stream_resolver",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Configure one logger. Handlers are attached only once; later calls
    just adjust the level.

    Args:
        name: logger name
        level: log level
        log_file: optional file name under ``logs/``
        use_rich: render console output through Rich
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        for handler in _handlers(level, log_file, use_rich):
            logger.addHandler(handler)
        logger.propagate = False
    return logger


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
    packages: Iterable[str] = PACKAGE_LOGGERS,
) -> List[logging.Logger]:
    """Configure every resolver package logger the same way."""
    return [setup_logger(name, level=level, log_file=log_file, use_rich=use_rich) for name in packages]
