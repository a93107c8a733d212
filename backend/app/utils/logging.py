from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Setup basic logging for the application."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info("Logging configured successfully", extra={"level": level})


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def mask_secret(value: str | None) -> str:
    """Show only the last four characters of a credential."""
    if not value:
        return "<unset>"
    if len(value) <= 4:
        return "***"
    return "***" + value[-4:]
