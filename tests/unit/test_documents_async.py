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
Unit tests for the document handles and collections, async version
"""

from __future__ import annotations

from typing import Any

import pytest
from pytest_httpserver import HTTPServer

from arangopy import AsyncCollection, AsyncDocumentHandle
from arangopy.constants import DefaultDocumentType
from arangopy.exceptions import (
    ArangoServerException,
    DocumentNotFoundException,
    DocumentRevisionConflictException,
)
from arangopy.utils.request_tools import HttpMethod

DOCUMENT_PATH = "/_db/test_db/_api/document/users"
CURSOR_PATH = "/_db/test_db/_api/cursor"


def _carla(rev: str = "_revC1", **fields: Any) -> dict[str, Any]:
    return {
        "_id": "users/carla",
        "_key": "carla",
        "_rev": rev,
        "name": "Carla",
        "address": {"city": "Turin"},
        **fields,
    }


class TestDocumentsAsync:
    @pytest.mark.describe("test of collection get, async")
    async def test_collection_get_async(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        httpserver.expect_oneshot_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.GET,
        ).respond_with_json(_carla())
        handle = await async_collection.get("carla")
        assert isinstance(handle, AsyncDocumentHandle)
        assert handle.to_dict() == _carla()

        httpserver.expect_oneshot_request(
            f"{DOCUMENT_PATH}/ghost",
            method=HttpMethod.GET,
        ).respond_with_json(
            {"error": True, "errorNum": 1202, "errorMessage": "document not found"},
            status=404,
        )
        with pytest.raises(DocumentNotFoundException):
            await async_collection.get("ghost")

    @pytest.mark.describe("test of document update, async")
    async def test_document_update_async(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        handle = AsyncDocumentHandle(collection=async_collection, record=_carla())
        handle["address"]["city"] = "Milan"

        httpserver.expect_oneshot_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.PATCH,
            query_string={"ignoreRevs": "false"},
            json=_carla(address={"city": "Milan"}),
        ).respond_with_json(
            {"_id": "users/carla", "_key": "carla", "_rev": "_revC2"},
            status=201,
        )
        await handle.update()
        assert handle.revision == "_revC2"
        assert handle.data == {"name": "Carla", "address": {"city": "Milan"}}

        httpserver.expect_oneshot_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.PATCH,
        ).respond_with_json(
            {"error": True, "errorNum": 1200, "errorMessage": "conflict"},
            status=412,
        )
        with pytest.raises(DocumentRevisionConflictException):
            await handle.update()
        assert handle.revision == "_revC2"

    @pytest.mark.parametrize(
        ("status_code", "expected"),
        [(200, True), (202, True), (204, True), (404, False), (412, False)],
    )
    @pytest.mark.describe("test of document delete outcomes, async")
    async def test_document_delete_async(
        self,
        status_code: int,
        expected: bool,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        handle = AsyncDocumentHandle(collection=async_collection, record=_carla())
        httpserver.expect_oneshot_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.DELETE,
            headers={"If-Match": "_revC1"},
        ).respond_with_data("", status=status_code)

        assert await handle.delete() is expected

    @pytest.mark.describe("test of document delete failure, async")
    async def test_document_delete_failure_async(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        handle = AsyncDocumentHandle(collection=async_collection, record=_carla())
        httpserver.expect_oneshot_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.DELETE,
        ).respond_with_json({"error": True, "errorMessage": "forbidden"}, status=403)

        with pytest.raises(ArangoServerException) as exc:
            await handle.delete()
        assert exc.value.status_code == 403

    @pytest.mark.describe("test of collection create and reload, async")
    async def test_collection_create_async(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        payload = {"name": "Carla", "address": {"city": "Turin"}}
        httpserver.expect_ordered_request(
            DOCUMENT_PATH,
            method=HttpMethod.POST,
            json=payload,
        ).respond_with_json(
            {"_id": "users/carla", "_key": "carla", "_rev": "_revC1"},
            status=201,
        )
        httpserver.expect_ordered_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.GET,
        ).respond_with_json(_carla())
        httpserver.expect_ordered_request(
            f"{DOCUMENT_PATH}/carla",
            method=HttpMethod.GET,
        ).respond_with_json(_carla(rev="_revC9", name="Carla B."))

        handle = await async_collection.create(payload)
        assert handle.key == "carla"
        assert handle.data == payload

        await handle.reload()
        assert handle.revision == "_revC9"
        assert handle["name"] == "Carla B."
        assert len(httpserver.log) == 3

    @pytest.mark.describe("test of collection query yielding handles, async")
    async def test_collection_query_async(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        query = "FOR u IN users RETURN u"
        httpserver.expect_oneshot_request(
            CURSOR_PATH,
            method=HttpMethod.POST,
            json={"query": query},
        ).respond_with_json({"result": [_carla(), None], "hasMore": False}, status=201)

        handles = [handle async for handle in async_collection.query(query)]
        assert [handle.id for handle in handles] == ["users/carla"]
        assert handles[0].collection is async_collection

    @pytest.mark.describe("test of collection conversions, async")
    async def test_collection_conversions_async(
        self,
        async_collection: AsyncCollection[DefaultDocumentType],
    ) -> None:
        assert async_collection.name == "users"
        assert async_collection.database.name == "test_db"
        assert async_collection.to_sync().to_async() == async_collection
