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

"""
Unit tests for the query cursor pagination, async version
"""

from __future__ import annotations

from typing import Any

import pytest
from pytest_httpserver import HTTPServer

from arangopy import AsyncDatabase, CursorState
from arangopy.exceptions import (
    CursorException,
    CursorStateException,
    UnexpectedArangoResponseException,
)
from arangopy.utils.request_tools import HttpMethod

CURSOR_PATH = "/_db/test_db/_api/cursor"
CURSOR_ID = "2002"
QUERY = "FOR u IN users RETURN u"


def _doc(i: int) -> dict[str, Any]:
    return {"_id": f"users/{i}", "_key": str(i), "_rev": f"_rev{i}", "seq": i}


def _expect_batches(
    httpserver: HTTPServer,
    batches: list[list[Any]],
    *,
    open_payload: dict[str, Any] | None = None,
) -> None:
    for b_i, batch in enumerate(batches):
        has_more = b_i < len(batches) - 1
        response: dict[str, Any] = {"result": batch, "hasMore": has_more}
        if has_more:
            response["id"] = CURSOR_ID
        if b_i == 0:
            httpserver.expect_ordered_request(
                CURSOR_PATH,
                method=HttpMethod.POST,
                json=open_payload or {"query": QUERY},
            ).respond_with_json(response, status=201)
        else:
            httpserver.expect_ordered_request(
                f"{CURSOR_PATH}/{CURSOR_ID}",
                method=HttpMethod.POST,
            ).respond_with_json(response, status=200)


class TestCursorsAsync:
    @pytest.mark.describe("test of cursor laziness, async")
    async def test_cursor_lazy_creation_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        cursor = async_database.query(QUERY, batch_size=2)
        assert cursor.state == CursorState.IDLE
        assert cursor.cursor_id is None
        assert cursor.has_more is False
        assert len(httpserver.log) == 0

    @pytest.mark.describe("test of cursor batch-by-batch pagination, async")
    async def test_cursor_batches_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        docs = [_doc(i) for i in range(5)]
        _expect_batches(
            httpserver,
            [docs[0:2], docs[2:4], docs[4:5]],
            open_payload={"query": QUERY, "batchSize": 2},
        )
        cursor = async_database.query(QUERY, batch_size=2)

        batch_sizes = []
        has_mores = []
        async for batch in cursor.iter_batches():
            batch_sizes.append(len(batch))
            has_mores.append(cursor.has_more)

        assert batch_sizes == [2, 2, 1]
        assert has_mores == [True, True, False]
        assert cursor.state == CursorState.CLOSED
        assert len(httpserver.log) == 3
        with pytest.raises(CursorStateException):
            await cursor.next_batch()

    @pytest.mark.describe("test of cursor to_list over several batches, async")
    async def test_cursor_to_list_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        docs = [_doc(i) for i in range(5)]
        _expect_batches(httpserver, [docs[0:2], docs[2:4], docs[4:5]])

        assert await async_database.query(QUERY).to_list() == docs
        assert len(httpserver.log) == 3

    @pytest.mark.describe("test of cursor on single-batch and empty results, async")
    async def test_cursor_single_and_empty_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        docs = [_doc(i) for i in range(3)]
        _expect_batches(httpserver, [docs])
        cursor = async_database.query(QUERY)
        assert [batch async for batch in cursor.iter_batches()] == [docs]
        assert len(httpserver.log) == 1

        _expect_batches(httpserver, [[]])
        assert await async_database.query(QUERY).to_list() == []
        assert len(httpserver.log) == 2

    @pytest.mark.describe("test of cursor dropping null results, async")
    async def test_cursor_null_filtering_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        doc_a, doc_b = _doc(0), _doc(1)
        _expect_batches(httpserver, [[doc_a, None], [None, None], [doc_b, None]])
        cursor = async_database.query(QUERY)

        assert await cursor.next_batch() == [doc_a]
        assert await cursor.next_batch() == []
        assert await cursor.next_batch() == [doc_b]
        assert cursor.state == CursorState.CLOSED

    @pytest.mark.describe("test of cursor item iteration and mapping, async")
    async def test_cursor_item_iteration_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        docs = [_doc(i) for i in range(3)]
        _expect_batches(httpserver, [docs[0:2], docs[2:3]])
        cursor = async_database.query(QUERY).map(lambda doc: doc["_key"])

        assert await cursor.has_next() is True
        assert [key async for key in cursor] == ["0", "1", "2"]
        assert cursor.consumed == 3
        assert cursor.state == CursorState.CLOSED
        assert await cursor.has_next() is False
        with pytest.raises(CursorStateException):
            cursor.map(str)

    @pytest.mark.describe("test of cursor closing when mapping fails, async")
    async def test_cursor_map_failure_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        def _seq(doc: Any) -> int:
            if not isinstance(doc, dict):
                raise ValueError("not a document")
            return int(doc["seq"])

        httpserver.expect_oneshot_request(
            CURSOR_PATH,
            method=HttpMethod.POST,
        ).respond_with_json(
            {"id": CURSOR_ID, "result": ["not-a-doc", _doc(0)], "hasMore": True},
            status=201,
        )
        cursor = async_database.query(QUERY).map(_seq)

        with pytest.raises(ValueError):
            await cursor.to_list()
        assert cursor.state == CursorState.CLOSED
        assert cursor.batches_retrieved == 0
        assert cursor.has_more is False
        with pytest.raises(CursorStateException):
            await cursor.next_batch()
        assert len(httpserver.log) == 1

    @pytest.mark.describe("test of cursor failures, async")
    async def test_cursor_failures_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        httpserver.expect_ordered_request(
            CURSOR_PATH,
            method=HttpMethod.POST,
        ).respond_with_json(
            {"id": CURSOR_ID, "result": [_doc(0)], "hasMore": True},
            status=201,
        )
        httpserver.expect_ordered_request(
            f"{CURSOR_PATH}/{CURSOR_ID}",
            method=HttpMethod.POST,
        ).respond_with_json(
            {"error": True, "errorNum": 1600, "errorMessage": "cursor not found"},
            status=404,
        )
        cursor = async_database.query(QUERY)
        with pytest.raises(CursorException) as exc:
            await cursor.to_list()
        assert exc.value.error_num == 1600
        assert cursor.state == CursorState.CLOSED

        httpserver.expect_ordered_request(
            CURSOR_PATH,
            method=HttpMethod.POST,
        ).respond_with_json({"result": "not a list", "hasMore": False}, status=201)
        cursor2 = async_database.query(QUERY)
        with pytest.raises(UnexpectedArangoResponseException):
            await cursor2.next_batch()
        assert cursor2.state == CursorState.CLOSED
