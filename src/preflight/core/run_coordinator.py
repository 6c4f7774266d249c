"""Once-per-run coordination of a shared setup action.

Many isolated worker processes may ask for the same seed action at the
same time. Exactly one of them wins the exclusive claim on
``{lock_dir}/{run_id}.lock`` and runs the action; the rest poll for the
``{run_id}.done`` marker the winner writes on success.

A holder that crashes leaves its lock file behind with no marker. Unless
``stale_after`` is set, such an orphaned lock is never cleared
automatically: waiters fail with LockTimeoutError and the lock must be
removed by hand (``preflight seed-clear``).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path

from ..config import SeedConfig
from ..errors import LockTimeoutError
from .claims import ClaimFactory, ExclusiveClaim, FileClaim

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
DONE_SUFFIX = ".done"


class RunCoordinator:
    """Runs an action at most once per run identity across processes."""

    def __init__(
        self,
        lock_dir: Path,
        poll_interval: float,
        timeout: float,
        stale_after: float | None = None,
        claim_factory: ClaimFactory = FileClaim,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.lock_dir = lock_dir
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.stale_after = stale_after
        self._claim_factory = claim_factory
        self._monotonic = monotonic

    @classmethod
    def from_config(cls, config: SeedConfig, **kwargs) -> "RunCoordinator":
        """Build a coordinator from seed configuration."""
        return cls(
            lock_dir=config.effective_lock_dir,
            poll_interval=config.poll_interval,
            timeout=config.timeout,
            stale_after=config.stale_after,
            **kwargs,
        )

    def lock_path(self, run_id: str) -> Path:
        return self.lock_dir / f"{_check_run_id(run_id)}{LOCK_SUFFIX}"

    def done_path(self, run_id: str) -> Path:
        return self.lock_dir / f"{_check_run_id(run_id)}{DONE_SUFFIX}"

    def is_complete(self, run_id: str) -> bool:
        """Return True if the action already completed for this run."""
        return self.done_path(run_id).exists()

    def ensure_once(self, run_id: str, action: Callable[[], None]) -> bool:
        """Run ``action`` unless it already ran for ``run_id``.

        Args:
            run_id: Run identity scoping the action
            action: Setup action to protect

        Returns:
            True if this call ran the action, False if it was already done

        Raises:
            LockTimeoutError: If the marker never appeared before the deadline
            Exception: Whatever ``action`` raised, after the lock is released
        """
        deadline = self._start(run_id)
        while True:
            if self.is_complete(run_id):
                return False
            claim = self._try_claim(run_id)
            if claim is not None:
                try:
                    # Another holder may have finished between our check and acquire
                    if self.is_complete(run_id):
                        return False
                    action()
                    self._mark_complete(run_id)
                    return True
                finally:
                    claim.release()
            self._check_deadline(run_id, deadline)
            time.sleep(self.poll_interval)

    async def ensure_once_async(self, run_id: str, action: Callable[[], Awaitable[None]]) -> bool:
        """Async variant of ensure_once for coroutine seed actions."""
        deadline = self._start(run_id)
        while True:
            if self.is_complete(run_id):
                return False
            claim = self._try_claim(run_id)
            if claim is not None:
                try:
                    if self.is_complete(run_id):
                        return False
                    await action()
                    self._mark_complete(run_id)
                    return True
                finally:
                    claim.release()
            self._check_deadline(run_id, deadline)
            await asyncio.sleep(self.poll_interval)

    def clear(self, run_id: str, include_marker: bool = False) -> list[Path]:
        """Remove an orphaned lock (and optionally the completion marker).

        Only meant for manual cleanup: removing a live holder's lock lets a
        second process run the action concurrently.

        Returns:
            Paths that were removed
        """
        removed = []
        paths = [self.lock_path(run_id)]
        if include_marker:
            paths.append(self.done_path(run_id))
        for path in paths:
            if path.exists():
                path.unlink(missing_ok=True)
                removed.append(path)
        return removed

    def _start(self, run_id: str) -> float:
        _check_run_id(run_id)
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        return self._monotonic() + self.timeout

    def _try_claim(self, run_id: str) -> ExclusiveClaim | None:
        claim = self._claim_factory(self.lock_path(run_id), run_id)
        if claim.acquire():
            return claim
        if self.stale_after is not None and isinstance(claim, FileClaim):
            stale = claim.stale_identity(self.stale_after)
            if stale is not None:
                logger.warning(
                    f"Breaking stale lock {claim.path} ({stale.age:.0f}s old, "
                    f"limit {self.stale_after:g}s)"
                )
                # Only the worker whose break removed this exact file may re-acquire
                if claim.break_claim(stale) and claim.acquire():
                    return claim
        return None

    def _check_deadline(self, run_id: str, deadline: float) -> None:
        if self._monotonic() >= deadline:
            raise LockTimeoutError(self.lock_path(run_id), self.timeout)

    def _mark_complete(self, run_id: str) -> None:
        self.done_path(run_id).write_text(datetime.now().isoformat())
        logger.info(f"Seed completed for run {run_id}")


def _check_run_id(run_id: str) -> str:
    if not run_id or not run_id.strip():
        raise ValueError("run_id must not be empty")
    if "/" in run_id or "\\" in run_id or run_id in {".", ".."}:
        raise ValueError(f"run_id must not contain path separators: {run_id!r}")
    return run_id
