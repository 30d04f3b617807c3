from __future__ import annotations

import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or settings.log_level or "INFO").upper()
    root = logging.getLogger()
    if not any(getattr(h, "_toki_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._toki_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(resolved)

    # uvicorn installs its own handlers; route them through the root logger instead.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
