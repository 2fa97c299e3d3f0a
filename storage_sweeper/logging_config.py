import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import Settings

DELETION_AUDIT_LOGGER = "storage_sweeper.deletions"

FILE_FORMAT = (
    "%(asctime)s - %(levelname)s - "
    "%(filename)s:%(lineno)d in %(funcName)s() - "
    "%(message)s"
)


def _rotating_file_handler(path: str, settings: Settings, fmt: str) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=path,
        when="midnight",
        interval=1,
        backupCount=settings.log_retention_days,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(settings: Settings) -> None:
    """
    Root logging: Rich console plus a daily rotating file.

    Every removed path is additionally written to a separate deletion audit
    file, kept for the same retention period.
    """
    rich_handler = RichHandler(
        console=Console(width=120),
        show_time=True,
        show_level=True,
        show_path=True,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    rich_handler.setLevel(settings.log_level)

    file_handler = _rotating_file_handler(settings.log_file_path, settings, FILE_FORMAT)
    file_handler.setLevel(settings.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(rich_handler)
    root_logger.addHandler(file_handler)

    audit_logger = logging.getLogger(DELETION_AUDIT_LOGGER)
    audit_logger.handlers.clear()
    audit_logger.setLevel(logging.INFO)
    audit_logger.addHandler(
        _rotating_file_handler(settings.deletion_log_path, settings, "%(asctime)s %(message)s")
    )

    # Scans touch thousands of files; keep the library chatter out
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiofiles").setLevel(logging.WARNING)

    logging.info(
        f"[bold green]Logging initialized[/] - "
        f"File: [cyan]{settings.log_file_path}[/], "
        f"Deletions: [cyan]{settings.deletion_log_path}[/], "
        f"Level: [yellow]{settings.log_level}[/], "
        f"Retention: [blue]{settings.log_retention_days}[/] days"
    )
