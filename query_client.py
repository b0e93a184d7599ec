# query_client.py
"""Keyed read cache and mutation lifecycle for the dashboard views.

A :class:`QueryClient` is created once per app and handed to the views. It
runs each read on a worker thread, keeps the last settled result per key,
and makes concurrent readers of a loading key share one request.
"""
import logging
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryState:
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: Optional[BaseException] = None
    updated_at: Optional[float] = None

    @property
    def is_loading(self) -> bool:
        return self.status in (QueryStatus.IDLE, QueryStatus.LOADING)

    @property
    def is_settled(self) -> bool:
        return self.status in (QueryStatus.SUCCESS, QueryStatus.ERROR)


RETRY_STATUSES = (QueryStatus.IDLE, QueryStatus.ERROR)


class _Entry:
    __slots__ = ("state", "generation")

    def __init__(self):
        self.state = QueryState()
        self.generation = 0


class QueryClient:
    def __init__(self, executor: Optional[Executor] = None, max_workers: int = 4):
        self._own_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="query")
        self._entries: Dict[str, _Entry] = {}
        self._cond = threading.Condition()

    # ---------------------- READS ----------------------
    def get_state(self, key: str) -> QueryState:
        with self._cond:
            entry = self._entries.get(key)
            return entry.state if entry else QueryState()

    def keys(self) -> List[str]:
        with self._cond:
            return list(self._entries)

    def query(self, key: str, fn: Callable[[], T]) -> QueryState:
        """Return the current snapshot for ``key``.

        Starts a request when the entry has never loaded or its last request
        failed, so a reader after a failure retries instead of seeing the
        stale error forever.
        """
        with self._cond:
            entry = self._entries.setdefault(key, _Entry())
            if entry.state.status in RETRY_STATUSES:
                self._start(key, entry, fn)
            return entry.state

    def refetch(self, key: str, fn: Callable[[], T]) -> QueryState:
        """Start a new request for ``key`` even if one is in flight."""
        with self._cond:
            entry = self._entries.setdefault(key, _Entry())
            self._start(key, entry, fn)
            return entry.state

    def fetch(self, key: str, fn: Callable[[], T], timeout: Optional[float] = None) -> T:
        """Blocking read: wait for the entry to settle, then return or raise."""
        with self._cond:
            entry = self._entries.setdefault(key, _Entry())
            if entry.state.status in RETRY_STATUSES:
                self._start(key, entry, fn)
            if not self._cond.wait_for(lambda: entry.state.is_settled, timeout=timeout):
                raise TimeoutError(f"query {key!r} still loading after {timeout}s")
            state = entry.state
        if state.status is QueryStatus.ERROR:
            raise state.error
        return state.data

    def clear(self) -> None:
        with self._cond:
            self._entries.clear()

    def shutdown(self, wait: bool = True) -> None:
        if self._own_executor:
            self._executor.shutdown(wait=wait)

    # ---------------------- INTERNALS ----------------------
    def _start(self, key: str, entry: _Entry, fn: Callable[[], Any]) -> None:
        # caller holds self._cond
        entry.generation += 1
        generation = entry.generation
        entry.state = replace(entry.state, status=QueryStatus.LOADING)
        logger.debug("query %s: loading (generation %d)", key, generation)
        self._executor.submit(self._run, key, entry, generation, fn)

    def _run(self, key: str, entry: _Entry, generation: int, fn: Callable[[], Any]) -> None:
        try:
            data = fn()
        except Exception as exc:
            logger.warning("query %s failed: %s", key, exc)
            self._settle(key, entry, generation, error=exc)
        else:
            self._settle(key, entry, generation, data=data)

    def _settle(self, key: str, entry: _Entry, generation: int,
                data: Any = None, error: Optional[BaseException] = None) -> None:
        with self._cond:
            if generation != entry.generation:
                logger.debug("query %s: dropping stale result (generation %d < %d)",
                             key, generation, entry.generation)
                return
            if error is not None:
                # last good data stays readable next to the error
                entry.state = replace(entry.state, status=QueryStatus.ERROR, error=error, updated_at=time.time())
            else:
                entry.state = QueryState(status=QueryStatus.SUCCESS, data=data, updated_at=time.time())
            logger.debug("query %s: %s", key, entry.state.status.value)
            self._cond.notify_all()


# ---------------------- MUTATIONS ----------------------
class MutationPendingError(RuntimeError):
    pass


class Mutation(Generic[V, T]):
    """One write-like operation with a pending/success/error lifecycle.

    ``mutate`` runs in the caller's thread. Callbacks receive the result (or
    the exception) followed by the variables that were submitted.
    """

    def __init__(self, fn: Callable[[V], T],
                 on_success: Optional[Callable[[T, V], None]] = None,
                 on_error: Optional[Callable[[BaseException, V], None]] = None):
        self._fn = fn
        self._on_success = on_success
        self._on_error = on_error
        self._lock = threading.Lock()
        self.status = QueryStatus.IDLE
        self.data: Optional[T] = None
        self.error: Optional[BaseException] = None

    @property
    def is_pending(self) -> bool:
        return self.status is QueryStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status is QueryStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.ERROR

    def reset(self) -> None:
        with self._lock:
            if self.is_pending:
                raise MutationPendingError("cannot reset a pending mutation")
            self.status = QueryStatus.IDLE
            self.data = None
            self.error = None

    def mutate(self, variables: V) -> Optional[T]:
        with self._lock:
            if self.is_pending:
                raise MutationPendingError("mutation already pending")
            self.status = QueryStatus.LOADING
            self.data = None
            self.error = None

        try:
            result = self._fn(variables)
        except Exception as exc:
            logger.warning("mutation failed: %s", exc)
            self.error = exc
            self.status = QueryStatus.ERROR
            if self._on_error:
                self._on_error(exc, variables)
            return None
        except BaseException as exc:
            # KeyboardInterrupt and friends still settle the mutation
            self.error = exc
            self.status = QueryStatus.ERROR
            raise

        self.data = result
        self.status = QueryStatus.SUCCESS
        if self._on_success:
            self._on_success(result, variables)
        return result
