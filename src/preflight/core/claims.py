"""Exclusive resource claims.

A claim is acquire-or-fail: ``acquire()`` never blocks and returns whether
the caller now holds the resource. ``FileClaim`` implements it with atomic
file creation (O_CREAT | O_EXCL), so two processes can never both succeed.
Any other backend with a conditional create (e.g. a key-value store's
put-if-absent) can be dropped in through a ``ClaimFactory``.
"""

import contextlib
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import NamedTuple, Protocol

from ..errors import LockTimeoutError
from ..models import ClaimRecord

logger = logging.getLogger(__name__)


class ExclusiveClaim(Protocol):
    """Acquire-or-fail claim on a named resource."""

    @property
    def name(self) -> str: ...

    def acquire(self) -> bool: ...

    def release(self) -> None: ...


ClaimFactory = Callable[[Path, str], ExclusiveClaim]


class ClaimIdentity(NamedTuple):
    """Identifies one specific lock file, as observed by ``stat``."""

    inode: int
    mtime_ns: int
    token: str | None

    @property
    def age(self) -> float:
        return max(0.0, time.time() - self.mtime_ns / 1e9)


def _identity(path: Path) -> ClaimIdentity:
    st = path.stat()
    try:
        token: str | None = ClaimRecord.model_validate_json(path.read_text()).token
    except (FileNotFoundError, ValueError):
        token = None
    return ClaimIdentity(st.st_ino, st.st_mtime_ns, token)


class FileClaim:
    """Claim backed by exclusive creation of a lock file.

    Each acquisition writes a fresh token into the file. ``release()`` only
    removes the file while it still carries that token, so a claim whose file
    was broken and re-created by another holder leaves the new file alone.
    """

    def __init__(self, path: Path, run_id: str) -> None:
        self.path = path
        self.run_id = run_id
        self._held = False
        self._token: str | None = None

    @property
    def name(self) -> str:
        return str(self.path)

    @property
    def held(self) -> bool:
        return self._held

    @property
    def token(self) -> str | None:
        """Token written by the current acquisition, if held."""
        return self._token if self._held else None

    def acquire(self) -> bool:
        """Attempt atomic lock file creation.

        Returns:
            True if the lock file was created, False if it already exists

        Raises:
            OSError: Any filesystem error other than the file existing. A lock
                file created before the error is removed again.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        record = ClaimRecord(pid=os.getpid(), run_id=self.run_id)
        try:
            fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        try:
            try:
                os.write(fd, record.model_dump_json(indent=2).encode())
            finally:
                os.close(fd)
        except OSError:
            self.path.unlink(missing_ok=True)
            raise
        self._held = True
        self._token = record.token
        logger.debug(f"Acquired claim {self.path} (PID {record.pid})")
        return True

    def release(self) -> None:
        """Remove the lock file if this instance holds it and the file is still ours."""
        if not self._held:
            return
        self._held = False
        record = self.read_record()
        if record is None or record.token != self._token:
            logger.warning(f"Claim {self.path} is no longer ours; leaving it in place")
            return
        self.path.unlink(missing_ok=True)
        logger.debug(f"Released claim {self.path}")

    def read_record(self) -> ClaimRecord | None:
        """Return the holder record, or None if absent or corrupted."""
        try:
            return ClaimRecord.model_validate_json(self.path.read_text())
        except (FileNotFoundError, ValueError):
            return None

    def age(self) -> float | None:
        """Seconds since the lock file was written, or None if absent."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, time.time() - mtime)

    def stale_identity(self, max_age: float) -> ClaimIdentity | None:
        """Identity of the current lock file if it is older than ``max_age`` seconds."""
        try:
            identity = _identity(self.path)
        except FileNotFoundError:
            return None
        return identity if identity.age > max_age else None

    def break_claim(self, expected: ClaimIdentity | None = None) -> bool:
        """Remove the lock file.

        Without ``expected`` the file is removed regardless of holder. With it,
        breakers first exclusively create a marker named after that file, so
        only one of them gets to remove it, and only while it is still the same
        file. A lock re-created since ``expected`` was taken is left alone.

        Returns:
            True if a lock file was removed
        """
        if expected is None:
            with contextlib.suppress(FileNotFoundError):
                self.path.unlink()
                return True
            return False

        marker = self.path.with_name(
            f"{self.path.name}.{expected.inode}-{expected.mtime_ns}.break"
        )
        try:
            os.close(os.open(str(marker), os.O_CREAT | os.O_EXCL | os.O_WRONLY))
        except FileExistsError:
            return False
        try:
            try:
                current = _identity(self.path)
            except FileNotFoundError:
                return False
            if current != expected:
                return False
            self.path.unlink(missing_ok=True)
            return True
        finally:
            marker.unlink(missing_ok=True)


def wait_for_claim(
    claim: ExclusiveClaim,
    poll_interval: float,
    timeout: float,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> None:
    """Acquire a claim, polling until it becomes free.

    Args:
        claim: Claim to acquire
        poll_interval: Seconds between attempts
        timeout: Seconds before giving up

    Raises:
        LockTimeoutError: If the claim is still held by someone else at the deadline
    """
    deadline = monotonic() + timeout
    while not claim.acquire():
        if monotonic() >= deadline:
            raise LockTimeoutError(Path(claim.name), timeout)
        sleep(poll_interval)
