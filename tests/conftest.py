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
Main conftest for shared fixtures.
"""

from __future__ import annotations

from collections.abc import Iterator
from ssl import SSLContext

import pytest
from blockbuster import BlockBuster, blockbuster_ctx
from pytest_httpserver import HTTPServer

from arangopy import (
    ArangoClient,
    AsyncCollection,
    AsyncDatabase,
    Collection,
    Database,
)
from arangopy.constants import DefaultDocumentType

TEST_DATABASE_NAME = "test_db"
TEST_COLLECTION_NAME = "users"
TEST_TOKEN = "eyJhbGciOiJIUzI1NiJ9.test"


@pytest.fixture(autouse=True)
def blockbuster() -> Iterator[BlockBuster]:
    with blockbuster_ctx("arangopy") as bb:
        # TODO: follow discussion in https://github.com/encode/httpx/discussions/3456
        bb.functions["os.stat"].can_block_in("httpx/_client.py", "_init_transport")
        yield bb


@pytest.fixture
def make_httpserver(
    httpserver_listen_address: tuple[str | None, int | None],
    httpserver_ssl_context: SSLContext | None,
) -> Iterator[HTTPServer]:
    # a fresh test server per test, so that a slow request left over from a
    # timeout test cannot consume handlers or log entries of later tests
    host, port = httpserver_listen_address
    server = HTTPServer(
        host=host or HTTPServer.DEFAULT_LISTEN_HOST,
        port=port or HTTPServer.DEFAULT_LISTEN_PORT,
        ssl_context=httpserver_ssl_context,
    )
    server.start()
    yield server
    server.clear()
    if server.is_running():
        server.stop()


@pytest.fixture
def client(httpserver: HTTPServer) -> ArangoClient:
    return ArangoClient(httpserver.url_for("/"), token=TEST_TOKEN)


@pytest.fixture
def database(client: ArangoClient) -> Database:
    return client.get_database(TEST_DATABASE_NAME)


@pytest.fixture
def async_database(client: ArangoClient) -> AsyncDatabase:
    return client.get_async_database(TEST_DATABASE_NAME)


@pytest.fixture
def collection(database: Database) -> Collection[DefaultDocumentType]:
    return database.get_collection(TEST_COLLECTION_NAME)


@pytest.fixture
def async_collection(
    async_database: AsyncDatabase,
) -> AsyncCollection[DefaultDocumentType]:
    return async_database.get_collection(TEST_COLLECTION_NAME)
