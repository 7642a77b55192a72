"""Advisory lock serialising writers of one state file."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import IO, TYPE_CHECKING

from foreman_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

try:
    import fcntl
except ImportError:  # pragma: no cover
    fcntl = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 30.0
_POLL_INTERVAL = 0.2


class StateLock:
    """``flock`` on ``<state>.lock``, held for the duration of a ``with`` block.

    Waits up to ``timeout`` seconds for another process to let go, then
    raises :class:`StateLockError`. The holder's pid is written into the lock
    file so the error can name it.
    """

    def __init__(self, state_path: Path, *, timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self.lock_path = Path(f"{state_path}.lock")
        self.timeout = timeout
        self._file: IO[str] | None = None

    def _try_lock(self, f: IO[str]) -> bool:
        try:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        return True

    def _holder(self) -> str:
        try:
            pid = self.lock_path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""
        return f" (held by pid {pid})" if pid else ""

    def __enter__(self) -> StateLock:
        if fcntl is None:  # pragma: no cover
            raise StateLockError("State locking is not supported on this platform")

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        f = self.lock_path.open("a+", encoding="utf-8")
        deadline = time.monotonic() + self.timeout
        try:
            while not self._try_lock(f):
                if time.monotonic() >= deadline:
                    raise StateLockError(
                        f"Timed out after {self.timeout:g}s waiting for {self.lock_path}"
                        f"{self._holder()}"
                    )
                logger.debug("Waiting for %s", self.lock_path)
                time.sleep(_POLL_INTERVAL)
            f.seek(0)
            f.truncate()
            f.write(str(os.getpid()))
            f.flush()
        except OSError as e:
            f.close()
            raise StateLockError(f"Cannot lock {self.lock_path}: {e}") from e
        except StateLockError:
            f.close()
            raise
        self._file = f
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._file is None:
            return
        try:
            self._file.truncate(0)
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None
