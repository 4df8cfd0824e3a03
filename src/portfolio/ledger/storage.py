"""Byte-level storage backends for the transaction ledger.

The ledger only needs ``load() -> bytes | None`` and ``save(bytes)``, so it
can be tested without touching the filesystem.
"""

import os
import tempfile
from pathlib import Path
from typing import Protocol

from portfolio.exceptions import PersistenceError
from portfolio.logging import get_logger

logger = get_logger(__name__)


class LedgerStorage(Protocol):
    """Durable key-value slot holding the serialized ledger."""

    def load(self) -> bytes | None:
        """Return the stored bytes, or None if nothing was ever saved."""
        ...

    def save(self, data: bytes) -> None:
        """Durably replace the stored bytes."""
        ...


class FileStorage:
    """Stores the ledger in a single file, replaced atomically on every save.

    Writes go to a temp file in the same directory, are fsynced, then renamed
    over the target with os.replace. A crash or error at any point leaves the
    previous file untouched.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Could not read ledger file {self._path}: {e}") from e

    def save(self, data: bytes) -> None:
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            logger.error("ledger_write_failed", path=str(self._path), error=str(e))
            raise PersistenceError(f"Could not write ledger file {self._path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)


class MemoryStorage:
    """In-process storage, used by tests and as a throwaway default."""

    def __init__(self, initial: bytes | None = None) -> None:
        self.data = initial
        self.save_count = 0

    def load(self) -> bytes | None:
        return self.data

    def save(self, data: bytes) -> None:
        self.data = data
        self.save_count += 1
