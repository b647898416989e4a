"""Record Storage - File-per-record persistence

Each record is a pydantic model stored as JSON at
``{DATA_DIR}/{dir}/{key}.json``. A ``Req`` names exactly one such file.

Writes are full overwrites. Callers that read, modify and write a record
hold the record's lock (see ``locked``) for the whole sequence.
"""
import asyncio
import os
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .config import DATA_DIR, logger
from .errors import RecordNotFound, StoreError

# ============================================================================
# STORAGE LOCATION
# ============================================================================

DATA_ROOT = DATA_DIR
FILE_EXT = ".json"

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class Req(Generic[T]):
    """Typed handle on one stored record."""

    model: Type[T]
    dir: str
    key: str

    @property
    def directory(self) -> Path:
        return Path(DATA_ROOT) / self.dir

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}{FILE_EXT}"

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> T:
        """Load and validate the record.

        Raises:
            RecordNotFound: if the file does not exist
            StoreError: if the file cannot be read or does not validate

        """
        path = self.path
        if not path.is_file():
            raise RecordNotFound(path)

        try:
            with open(path, encoding="utf-8") as f:
                return self.model.model_validate_json(f.read())
        except ValidationError as e:
            logger.error(f"Error decoding {path}: {e}")
            raise StoreError(f"The stored record at {path} is corrupt") from e
        except OSError as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    def write(self, value: T):
        """Overwrite the record with ``value``."""
        path = self.path
        tmp_path = path.with_name(path.name + ".tmp")

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value.model_dump_json())
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error saving {path}: {e}")
            raise StoreError(f"Could not write {path}: {e}") from e

    def remove(self):
        """Delete the record."""
        path = self.path
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise RecordNotFound(path) from e
        except OSError as e:
            logger.error(f"Error removing {path}: {e}")
            raise StoreError(f"Could not remove {path}: {e}") from e

# ============================================================================
# PER-RECORD LOCKS
# ============================================================================

# A lock lives only while some task holds or waits on it
_locks: "weakref.WeakValueDictionary[Path, asyncio.Lock]" = weakref.WeakValueDictionary()


def lock_for(req: Req) -> asyncio.Lock:
    """Return the process-wide lock guarding ``req``'s file."""
    lock = _locks.get(req.path)
    if lock is None:
        lock = _locks[req.path] = asyncio.Lock()
    return lock


@asynccontextmanager
async def locked(req: Req):
    """Hold ``req``'s lock for a read-modify-write sequence."""
    async with lock_for(req):
        yield req

# ============================================================================
# RECORD BASE CLASS
# ============================================================================

class Record(BaseModel):
    """A model stored one file per instance.

    Subclasses map their domain arguments (guild, user, ...) onto a storage
    key in ``key_for`` and map an instance back onto its key in ``as_req``.
    Both mappings must be injective.
    """

    @classmethod
    def key_for(cls, *args) -> Req:
        raise NotImplementedError

    def as_req(self) -> Req:
        raise NotImplementedError

    @classmethod
    def read(cls, *args):
        return cls.key_for(*args).read()

    @classmethod
    def exists(cls, *args) -> bool:
        return cls.key_for(*args).exists()

    @classmethod
    def lock(cls, *args):
        """Lock the record stored under ``args`` (``async with Model.lock(...)``)."""
        return locked(cls.key_for(*args))

    def write(self):
        self.as_req().write(self)

    def remove(self):
        self.as_req().remove()
