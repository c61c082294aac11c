from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Optional

from .config import Settings, load_settings, ensure_dirs


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; ``extra={"ctx": {...}}`` fields are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        ctx = getattr(record, "ctx", None)
        if isinstance(ctx, dict):
            for k, v in ctx.items():
                payload.setdefault(k, v)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(
    name: str = "distinct_stream",
    settings: Optional[Settings] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Attach JSON-line console and file handlers to the named logger.

    Console records go to stderr by default so that command results own stdout.
    Library modules log under ``distinct_stream.*`` and reach these handlers
    when the package root is configured.
    """
    s = settings or load_settings()
    ensure_dirs(s)
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, s.log_level, logging.INFO))
    for h in logger.handlers[:]:
        h.close()
    logger.handlers[:] = []

    formatter = JsonLineFormatter()
    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    fh = logging.FileHandler(Path(s.log_dir) / f"{name}.log", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger.propagate = False
    return logger
