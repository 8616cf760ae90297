import fcntl
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from incident_mirror.errors import AlreadyRunning, StoreError

log = logging.getLogger(__name__)


@runtime_checkable
class MappingStore(Protocol):
    """incident id → message id. The single source of truth for what was posted."""

    def get(self, incident_id: str) -> str | None: ...
    def put(self, incident_id: str, message_id: str) -> None: ...


class JsonMappingStore:
    """
    Remembers which message belongs to which incident, in one JSON file.

    Why reload the whole file on every call?

    The file is tiny (one line per incident ever posted) and is the only
    thing standing between a restart and a duplicate message. Reading it
    fresh before each decision and writing it atomically after each send
    means a crash can lose at most the entry for the incident in flight,
    never corrupt the ones already recorded.

    An unreadable or malformed file raises StoreError: guessing an empty
    mapping would repost every incident in the feed.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def ensure(self) -> None:
        """Create an empty mapping on first run."""
        if self.path.exists():
            return
        log.info("Creating empty message map at %s", self.path)
        self._write({})

    def load(self) -> dict[str, str]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreError(f"cannot read {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreError(f"{self.path} is not valid JSON: {exc}") from exc

        if not isinstance(raw, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
        ):
            raise StoreError(f"{self.path} must be an object of string → string")
        return raw

    def get(self, incident_id: str) -> str | None:
        return self.load().get(incident_id)

    def put(self, incident_id: str, message_id: str) -> None:
        data = self.load()
        data[incident_id] = message_id
        self._write(data)

    def _write(self, data: dict[str, str]) -> None:
        content = json.dumps(data, ensure_ascii=False, indent=4)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Atomic write
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        except OSError as exc:
            raise StoreError(f"cannot write {self.path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, str(self.path))
        except BaseException as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(exc, OSError):
                raise StoreError(f"cannot write {self.path}: {exc}") from exc
            raise


class RunLock:
    """
    Exclusive, non-blocking flock held for the duration of a run.

    Two overlapping runs would both see "no mapping" for a new incident and
    both post it. The second one raises AlreadyRunning instead.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fd = None

    def acquire(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = open(self.path, "w")
        except OSError as exc:
            raise StoreError(f"cannot open lock file {self.path}: {exc}") from exc
        try:
            fcntl.flock(fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            fd.close()
            raise AlreadyRunning(f"another run holds {self.path}") from None
        fd.write(str(os.getpid()))
        fd.flush()
        self._fd = fd

    def release(self) -> None:
        if self._fd is None:
            return
        fcntl.flock(self._fd.fileno(), fcntl.LOCK_UN)
        self._fd.close()
        self._fd = None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
