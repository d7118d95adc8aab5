# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Generic, Iterator, TypeVar, cast

from arangopy.constants import BindVarsType
from arangopy.exceptions import (
    CursorException,
    CursorStateException,
    UnexpectedArangoResponseException,
    _TimeoutContext,
)
from arangopy.results import ResponseOk, classify_response
from arangopy.settings.defaults import CURSOR_SUCCESS_STATUSES
from arangopy.utils.api_commander import APICommander, APIResponse
from arangopy.utils.request_tools import HttpMethod

# A cursor reads TRAW from the server and maps them to T if any mapping.
# A new cursor returned by .map will map to TNEW
TRAW = TypeVar("TRAW")
T = TypeVar("T")
TNEW = TypeVar("TNEW")


logger = logging.getLogger(__name__)


class CursorState(Enum):
    """
    This enum expresses the possible states for a query cursor.

    Values:
        IDLE: No batch has been requested yet (no server-side cursor exists).
        STARTED: At least a batch was retrieved, more results *can* follow.
        CLOSED: Exhausted, failed or forcibly stopped. Won't return more results.
    """

    IDLE = "idle"
    STARTED = "started"
    CLOSED = "closed"


@dataclass(frozen=True)
class CursorOptions:
    """
    The immutable settings a query cursor is opened with.

    Attributes:
        batch_size: a hint for the server about how many results to return
            in each batch. If omitted, the server default applies.
        count: whether the server should compute the total number of results
            (then available as the `count` property of the cursor).
        bind_vars: values for the bind parameters in the query text, if any.
    """

    batch_size: int | None = None
    count: bool | None = None
    bind_vars: BindVarsType | None = None

    def to_payload(self, query: str) -> dict[str, Any]:
        """Build the body of the cursor-opening request (unset settings omitted)."""
        return {
            k: v
            for k, v in {
                "query": query,
                "count": self.count,
                "batchSize": self.batch_size,
                "bindVars": self.bind_vars,
            }.items()
            if v is not None
        }


class _BaseQueryCursor(Generic[TRAW, T]):
    """
    The bookkeeping shared by the sync and async query cursors: the pagination
    state, the local buffer of not-yet-consumed results and the decoding of
    the cursor API responses.

    The pagination state (`cursor_id`, `has_more`, `count`) is only written once
    a complete and valid response has been received: an interrupted request
    (e.g. a transport error or a cancelled task) leaves it untouched.
    """

    _commander: APICommander
    _query: str
    _options: CursorOptions
    _mapper: Callable[[TRAW], T] | None
    _request_timeout_ms: int | None
    _state: CursorState
    _buffer: list[T]
    _cursor_id: str | None
    _has_more: bool
    _count: int | None
    _batches_retrieved: int
    _consumed: int

    def __init__(
        self,
        *,
        commander: APICommander,
        query: str,
        options: CursorOptions | None = None,
        mapper: Callable[[TRAW], T] | None = None,
        request_timeout_ms: int | None = None,
    ) -> None:
        self._commander = commander
        self._query = query
        self._options = options or CursorOptions()
        self._mapper = mapper
        self._request_timeout_ms = request_timeout_ms
        self._state = CursorState.IDLE
        self._buffer = []
        self._cursor_id = None
        self._has_more = False
        self._count = None
        self._batches_retrieved = 0
        self._consumed = 0

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"{self._state.value}, "
            f"batches retrieved: {self._batches_retrieved}, "
            f"consumed so far: {self._consumed})"
        )

    def _ensure_alive(self) -> None:
        if self._state == CursorState.CLOSED:
            raise CursorStateException(
                text="Cursor is closed.",
                cursor_state=self._state.value,
            )

    def _ensure_idle(self) -> None:
        if self._state != CursorState.IDLE:
            raise CursorStateException(
                text="Cursor is not idle anymore.",
                cursor_state=self._state.value,
            )

    def _can_fetch(self) -> bool:
        """Whether the server may still have results for this cursor."""
        return self._state != CursorState.CLOSED and (
            self._batches_retrieved == 0 or self._has_more
        )

    def _settle_state(self) -> None:
        if self._buffer or self._can_fetch():
            if self._batches_retrieved > 0:
                self._state = CursorState.STARTED
        else:
            self._state = CursorState.CLOSED

    def _fetch_request_kwargs(self) -> dict[str, Any]:
        if self._cursor_id is None:
            return {
                "http_method": HttpMethod.POST,
                "additional_path": "cursor",
                "payload": self._options.to_payload(self._query),
            }
        else:
            return {
                "http_method": HttpMethod.POST,
                "additional_path": f"cursor/{self._cursor_id}",
                "payload": None,
            }

    def _timeout_context(self) -> _TimeoutContext:
        return _TimeoutContext(
            request_ms=self._request_timeout_ms,
            label="request_timeout_ms",
        )

    def _ingest_response(self, response: APIResponse) -> list[T]:
        outcome = classify_response(response, ok_statuses=CURSOR_SUCCESS_STATUSES)
        if not isinstance(outcome, ResponseOk):
            self.close()
            raise outcome.to_exception("fetch cursor batch", CursorException)
        body = outcome.body
        if (
            not isinstance(body, dict)
            or not isinstance(body.get("result"), list)
            or not isinstance(body.get("hasMore"), bool)
        ):
            self.close()
            raise UnexpectedArangoResponseException(
                text="Faulty response from cursor API (no 'result'/'hasMore').",
                raw_response=body,
            )
        # null placeholders stand for documents deleted while iterating
        raw_batch = cast(
            "list[TRAW]", [item for item in body["result"] if item is not None]
        )
        batch: list[T]
        if self._mapper is not None:
            try:
                batch = [self._mapper(item) for item in raw_batch]
            except Exception:
                # a batch that cannot be mapped must not be skipped over
                self.close()
                raise
        else:
            batch = cast("list[T]", raw_batch)
        _cursor_id = body.get("id")
        self._cursor_id = str(_cursor_id) if _cursor_id is not None else None
        self._has_more = body["hasMore"] and self._cursor_id is not None
        if isinstance(body.get("count"), int):
            self._count = body["count"]
        self._batches_retrieved += 1
        return batch

    def _log_fetch(self, *, finished: bool, is_async: bool) -> None:
        _cursor_str = self._cursor_id if self._cursor_id else "(new cursor)"
        _verb = "finished fetching" if finished else "fetching"
        _async_str = ", async" if is_async else ""
        logger.info(f"cursor {_verb} a batch: {_cursor_str}{_async_str}")

    @property
    def state(self) -> CursorState:
        """
        The current state of this cursor.

        Returns:
            a value in `arangopy.cursors.CursorState`.
        """

        return self._state

    @property
    def query(self) -> str:
        """The query text this cursor runs (passed to the server verbatim)."""

        return self._query

    @property
    def options(self) -> CursorOptions:
        """The settings this cursor was created with."""

        return self._options

    @property
    def cursor_id(self) -> str | None:
        """
        The identifier of the server-side cursor, as last returned by the server.
        This is None before the first batch is fetched, and also once the server
        signals that no further batches exist.
        """

        return self._cursor_id

    @property
    def has_more(self) -> bool:
        """
        Whether, according to the last server response, more batches are
        available on the server. False for a cursor that has not started yet.
        """

        return self._has_more

    @property
    def count(self) -> int | None:
        """
        The total number of results, if the cursor was opened with `count=True`
        and at least a batch was fetched; None otherwise.
        """

        return self._count

    @property
    def batches_retrieved(self) -> int:
        """The number of batches successfully fetched from the server so far."""

        return self._batches_retrieved

    @property
    def consumed(self) -> int:
        """
        The number of items the cursor has yielded so far, either one by one
        or as part of whole batches.
        """

        return self._consumed

    @property
    def buffered_count(self) -> int:
        """
        The number of items fetched from the server but not consumed yet.
        Reading this property never triggers requests to the server.
        """

        return len(self._buffer)

    def close(self) -> None:
        """
        Close the cursor, regardless of its state, discarding any buffered results.
        No request is issued: the server-side cursor, if any, is left to expire.

        This is an in-place modification of the cursor.
        """

        self._state = CursorState.CLOSED
        self._buffer = []

    def consume_buffer(self, n: int | None = None) -> list[T]:
        """
        Consume (return) up to the requested number of buffered items.
        This never triggers fetching of new batches from the server.

        Args:
            n: amount of items to return. If omitted, the whole buffer is returned.

        Returns:
            a list of items. If there are fewer items than requested, the whole
                buffer is returned without errors (possibly an empty list).
        """
        _n = n if n is not None else len(self._buffer)
        if _n < 0:
            raise ValueError("A negative amount of items was requested.")
        returned, remaining = self._buffer[:_n], self._buffer[_n:]
        self._buffer = remaining
        self._consumed += len(returned)
        return returned


class QueryCursor(_BaseQueryCursor[TRAW, T]):
    """
    A forward-only cursor over the results of a query, driving the server-side
    pagination lazily: no request is issued until results are first asked for.
    This class has a synchronous interface.

    The cursor can be consumed batch by batch (`next_batch`, `iter_batches`),
    item by item (plain iteration), or drained at once (`to_list`). Batches
    follow the server pagination: the first one comes from opening the
    server-side cursor, each further one from asking for its continuation,
    until the server reports that no more results exist.

    A cursor is not meant to be instantiated directly: it is obtained from the
    `query` method of a Database or a Collection.

    A cursor instance is not safe for concurrent use: each request depends on
    the outcome of the previous one. Distinct cursors are fully independent.

    Example:
        >>> cursor = database.query("FOR u IN users RETURN u", batch_size=2)
        >>> cursor.next_batch()
        [{'_key': '1', ...}, {'_key': '2', ...}]
        >>> cursor.has_more
        True
        >>> [u["name"] for u in cursor]
        ['Carla', 'Dave', 'Ezra']
    """

    def __iter__(self: QueryCursor[TRAW, T]) -> QueryCursor[TRAW, T]:
        return self

    def __next__(self) -> T:
        if self._state == CursorState.CLOSED:
            raise StopIteration
        self._try_ensure_fill_buffer()
        if not self._buffer:
            self._state = CursorState.CLOSED
            raise StopIteration
        self._state = CursorState.STARTED
        item0, rest_buffer = self._buffer[0], self._buffer[1:]
        self._buffer = rest_buffer
        self._consumed += 1
        return item0

    def _fetch_batch(self) -> list[T]:
        self._log_fetch(finished=False, is_async=False)
        response = self._commander.request(
            **self._fetch_request_kwargs(),
            timeout_context=self._timeout_context(),
        )
        batch = self._ingest_response(response)
        self._log_fetch(finished=True, is_async=False)
        return batch

    def _try_ensure_fill_buffer(self) -> None:
        """
        If the buffer is empty, fetch batches until something is found or the
        server-side results are exhausted.
        """

        while not self._buffer and self._can_fetch():
            self._buffer = self._fetch_batch()
            self._settle_state()

    def next_batch(self) -> list[T]:
        """
        Return the next batch of results.

        The first call opens the server-side cursor, subsequent calls retrieve
        its continuation. The batch that signals the end of the results is
        returned as any other: afterwards the cursor is CLOSED and a further
        call raises an error. If items were already read into the local buffer
        (e.g. by `has_next`), these are returned without issuing requests.

        Returns:
            a list of items (documents, or other values depending on the query
                and on the mapping function, if one is set). Null results
                are never included. A batch can be empty.

        Raises:
            CursorStateException: if the cursor is closed or exhausted.
            CursorException: if the server refuses to return the batch. The
                cursor is then closed.
        """

        self._ensure_alive()
        if self._buffer:
            batch = self.consume_buffer()
        elif self._can_fetch():
            batch = self._fetch_batch()
            self._consumed += len(batch)
        else:
            self._state = CursorState.CLOSED
            raise CursorStateException(
                text="Cursor is exhausted.",
                cursor_state=self._state.value,
            )
        self._settle_state()
        return batch

    def iter_batches(self) -> Iterator[list[T]]:
        """
        Iterate over the batches of results, as they come from the server,
        until the results are exhausted.

        Yields:
            the batches, as lists of items, the last one included.
        """

        while self._buffer or self._can_fetch():
            yield self.next_batch()

    def has_next(self) -> bool:
        """
        Whether the cursor actually has more items to return.

        This method can trigger the fetch of a new batch, if the local buffer
        is empty. On a CLOSED cursor it always returns False.
        """

        if self._state == CursorState.CLOSED:
            return False
        self._try_ensure_fill_buffer()
        return len(self._buffer) > 0

    def to_list(self) -> list[T]:
        """
        Materialize all items that remain to be consumed from the cursor into
        a list, preserving the server order across batches.

        Either the whole remainder of the results is returned, or an exception
        is raised: no partial list is ever returned.

        Calling this method on a CLOSED cursor results in an error.

        Returns:
            a list of items. An empty result set gives an empty list.
        """

        self._ensure_alive()
        return list(self)

    def map(self, mapper: Callable[[T], TNEW]) -> QueryCursor[TRAW, TNEW]:
        """
        Return a copy of this cursor with a mapping function to transform
        the returned items. Calling this method on a cursor that is not IDLE
        results in an error.

        Args:
            mapper: a function transforming the items returned by this cursor.
                If the cursor has a mapping already, the two are composed.

        Returns:
            a new, IDLE QueryCursor over the same query.
        """

        self._ensure_idle()
        composite_mapper: Callable[[TRAW], TNEW]
        if self._mapper is not None:
            _old_mapper = self._mapper

            def _composite(item: TRAW) -> TNEW:
                return mapper(_old_mapper(item))

            composite_mapper = _composite
        else:
            composite_mapper = cast("Callable[[TRAW], TNEW]", mapper)

        return QueryCursor(
            commander=self._commander,
            query=self._query,
            options=self._options,
            mapper=composite_mapper,
            request_timeout_ms=self._request_timeout_ms,
        )


class AsyncQueryCursor(_BaseQueryCursor[TRAW, T]):
    """
    An asynchronous cursor over the results of a query, driving the server-side
    pagination lazily.

    This class is the async counterpart of QueryCursor, for use with asyncio.
    Other than the async interface, its behavior is identical: please refer
    to the documentation for `QueryCursor` for details.

    Example:
        >>> cursor = async_database.query("FOR u IN users RETURN u", batch_size=2)
        >>> await cursor.next_batch()
        [{'_key': '1', ...}, {'_key': '2', ...}]
        >>> [u["name"] async for u in cursor]
        ['Carla', 'Dave', 'Ezra']
    """

    def __aiter__(self: AsyncQueryCursor[TRAW, T]) -> AsyncQueryCursor[TRAW, T]:
        return self

    async def __anext__(self) -> T:
        if self._state == CursorState.CLOSED:
            raise StopAsyncIteration
        await self._try_ensure_fill_buffer()
        if not self._buffer:
            self._state = CursorState.CLOSED
            raise StopAsyncIteration
        self._state = CursorState.STARTED
        item0, rest_buffer = self._buffer[0], self._buffer[1:]
        self._buffer = rest_buffer
        self._consumed += 1
        return item0

    async def _fetch_batch(self) -> list[T]:
        self._log_fetch(finished=False, is_async=True)
        response = await self._commander.async_request(
            **self._fetch_request_kwargs(),
            timeout_context=self._timeout_context(),
        )
        batch = self._ingest_response(response)
        self._log_fetch(finished=True, is_async=True)
        return batch

    async def _try_ensure_fill_buffer(self) -> None:
        while not self._buffer and self._can_fetch():
            self._buffer = await self._fetch_batch()
            self._settle_state()

    async def next_batch(self) -> list[T]:
        """
        Return the next batch of results. See `QueryCursor.next_batch`.
        """

        self._ensure_alive()
        if self._buffer:
            batch = self.consume_buffer()
        elif self._can_fetch():
            batch = await self._fetch_batch()
            self._consumed += len(batch)
        else:
            self._state = CursorState.CLOSED
            raise CursorStateException(
                text="Cursor is exhausted.",
                cursor_state=self._state.value,
            )
        self._settle_state()
        return batch

    async def iter_batches(self) -> AsyncIterator[list[T]]:
        """
        Iterate over the batches of results until the results are exhausted.
        See `QueryCursor.iter_batches`.
        """

        while self._buffer or self._can_fetch():
            yield await self.next_batch()

    async def has_next(self) -> bool:
        """
        Whether the cursor actually has more items to return.
        See `QueryCursor.has_next`.
        """

        if self._state == CursorState.CLOSED:
            return False
        await self._try_ensure_fill_buffer()
        return len(self._buffer) > 0

    async def to_list(self) -> list[T]:
        """
        Materialize all items that remain to be consumed from the cursor into
        a list. See `QueryCursor.to_list`.
        """

        self._ensure_alive()
        return [item async for item in self]

    def map(self, mapper: Callable[[T], TNEW]) -> AsyncQueryCursor[TRAW, TNEW]:
        """
        Return a copy of this cursor with a mapping function to transform
        the returned items. See `QueryCursor.map`.
        """

        self._ensure_idle()
        composite_mapper: Callable[[TRAW], TNEW]
        if self._mapper is not None:
            _old_mapper = self._mapper

            def _composite(item: TRAW) -> TNEW:
                return mapper(_old_mapper(item))

            composite_mapper = _composite
        else:
            composite_mapper = cast("Callable[[TRAW], TNEW]", mapper)

        return AsyncQueryCursor(
            commander=self._commander,
            query=self._query,
            options=self._options,
            mapper=composite_mapper,
            request_timeout_ms=self._request_timeout_ms,
        )
