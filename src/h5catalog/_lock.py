"""Process-wide serialization of calls into the HDF5 library.

The HDF5 library keeps global internal state, so two catalogs backed by
different files still must not call into it concurrently.  Every catalog holds
its own lock *and* one `LibraryLock` shared by the whole process.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Callable, Literal

    LockEvent = Literal["acquire", "release"]
    LockListener = Callable[[LockEvent, str], Any]


class LibraryLock:
    """Re-entrant lock guarding the (non thread-safe) container library.

    Parameters
    ----------
    name : str
        Name used in the repr.
    listener : Callable[[str, str], Any], optional
        Called with `("acquire" | "release", thread_name)` whenever the lock is
        taken or given up by its outermost holder.  Nested acquisitions by the
        holding thread are not reported.
    """

    def __init__(self, name: str = "hdf5", listener: LockListener | None = None):
        self.name = name
        self.listener = listener
        self._lock = threading.RLock()
        self._depth = 0

    def acquire(self) -> None:
        self._lock.acquire()
        self._depth += 1
        if self._depth == 1 and self.listener is not None:
            self.listener("acquire", threading.current_thread().name)

    def release(self) -> None:
        if self._depth == 1 and self.listener is not None:
            self.listener("release", threading.current_thread().name)
        self._depth -= 1
        self._lock.release()

    @property
    def locked(self) -> bool:
        """Whether any thread currently holds the lock."""
        return self._depth > 0

    def __enter__(self) -> LibraryLock:
        self.acquire()
        return self

    def __exit__(self, *_: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "locked" if self.locked else "unlocked"
        return f"<LibraryLock {self.name!r} ({state})>"


# shared by every catalog unless one is given explicitly
HDF5_LOCK = LibraryLock()
