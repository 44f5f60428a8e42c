# clubwheel/database/__init__.py
from __future__ import annotations

from .base import Base
from .session import Database
from .tx import commit_checkpoint, transactional

__all__ = ["Base", "Database", "commit_checkpoint", "transactional"]
