from contextlib import contextmanager
from threading import Lock
from fastapi import HTTPException, status

# Keys of mutating actions currently being written, e.g. "start:<session id>".

_lock = Lock()
_pending = set()


@contextmanager
def claim(key: str, detail: str = "This action is already in progress"):
    """Hold `key` for the duration of a write; a second claim gets 409."""
    with _lock:
        if key in _pending:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
        _pending.add(key)
    try:
        yield
    finally:
        with _lock:
            _pending.discard(key)


def is_pending(key: str) -> bool:
    with _lock:
        return key in _pending
