import logging
import logging.handlers

from core.config import LOG_DIR, LOG_LEVEL


def setup_logging(app_name: str = "timesheet-ingest") -> None:
    """Configure application logging

    Args:
        app_name: Name to use for log files

    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)

    # Already configured (e.g. uvicorn reload or a second script entry)
    if any(getattr(h, "_timesheet_handler", False) for h in root_logger.handlers):
        return

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(formatter)

    # File handler with rotation
    file_handler = logging.handlers.RotatingFileHandler(
        filename=LOG_DIR / f"{app_name}.log",
        maxBytes=10_000_000,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(LOG_LEVEL)
    file_handler.setFormatter(formatter)

    error_handler = logging.handlers.RotatingFileHandler(
        filename=LOG_DIR / f"{app_name}-error.log",
        maxBytes=10_000_000,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    for handler in (console_handler, file_handler, error_handler):
        handler._timesheet_handler = True
        root_logger.addHandler(handler)
