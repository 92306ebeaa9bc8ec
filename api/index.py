"""Serverless entrypoint: exposes the dashboard API as ``app``."""

import sys
from pathlib import Path

_SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.append(str(_SRC_DIR))

from spa_operations.api.asgi import app  # noqa: E402

__all__ = ["app"]
