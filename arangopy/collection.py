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
from typing import TYPE_CHECKING, Any, Generic
from urllib.parse import quote

from arangopy.authentication import TokenProvider
from arangopy.constants import DOC, BindVarsType, DefaultDocumentType
from arangopy.cursors import AsyncQueryCursor, QueryCursor
from arangopy.database import _commander_headers, _database_base_path
from arangopy.document import (
    AsyncDocumentHandle,
    DocumentHandle,
    _key_path,
    _parse_create_response,
    _parse_fetch_response,
)
from arangopy.exceptions import _select_request_timeout, _TimeoutContext
from arangopy.utils.api_commander import APICommander
from arangopy.utils.api_options import APIOptions, FullAPIOptions
from arangopy.utils.request_tools import HttpMethod
from arangopy.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from arangopy.database import AsyncDatabase, Database


logger = logging.getLogger(__name__)


class Collection(Generic[DOC]):
    """
    A document collection on an ArangoDB database: the object to read, create
    and query documents, obtaining DocumentHandle objects bound to it.
    This class has a synchronous interface.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_collection` of Database,
    wherefrom the Collection inherits its API options such as authentication
    token and API endpoint.

    Args:
        database: a Database object, instantiated earlier. This represents
            the database the collection belongs to.
        name: the collection name. This parameter should match an existing
            collection on the database.
        api_options: the complete set of API Options for this instance.

    Example:
        >>> users = my_db.get_collection("users")
        >>> alice = users.create({"name": "Alice", "age": 30})
        >>> alice.id
        'users/1043'
        >>> [user["name"] for user in users.query("FOR u IN users RETURN u")]
        ['Alice', 'Bob']

    Note:
        creating an instance of Collection does not trigger actual creation
        of the collection on the database, which should exist beforehand.
    """

    def __init__(
        self,
        *,
        database: Database,
        name: str,
        api_options: FullAPIOptions,
    ) -> None:
        self.api_options = api_options
        self._name = name
        self._database = database._copy(api_options=self.api_options)
        self._commander_headers = _commander_headers(self.api_options)
        self._api_commander = self._get_api_commander()

    def __repr__(self) -> str:
        _db_desc = f'database.name="{self._database.name}"'
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f"{_db_desc}, api_options={self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Collection):
            return all(
                [
                    self._name == other._name,
                    self._database == other._database,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def _get_api_commander(self) -> APICommander:
        """Instantiate a new APICommander based on the properties of this class."""

        database_path = _database_base_path(
            self._database.name, self.api_options.api_path
        )
        return APICommander(
            api_endpoint=self._database.api_endpoint,
            path=f"{database_path}/document/{quote(self._name, safe='')}",
            headers=self._commander_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
        )

    def _make_handle(self, record: dict[str, Any]) -> DocumentHandle[DOC]:
        return DocumentHandle(collection=self, record=record)

    def _timeout_context(
        self, request_timeout_ms: int | None, timeout_ms: int | None
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_request_timeout(
            default_request_timeout_ms=self.api_options.timeout_options.request_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    def to_async(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DOC]:
        """
        Create an AsyncCollection from this one. Save for the arguments
        explicitly provided as overrides, everything else is kept identical
        to this collection in the copy (the database is converted into
        an async object).

        Args:
            token: the credentials for the database. This can be either a literal
                JWT string or a subclass of `arangopy.authentication.TokenProvider`.
            api_options: any additional options to set for the result, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            the new copy, an AsyncCollection instance.

        Example:
            >>> asyncio.run(my_coll.to_async().get("alice")).key
            'alice'
        """

        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return AsyncCollection(
            database=self._database.to_async(),
            name=self._name,
            api_options=final_api_options,
        )

    @property
    def name(self) -> str:
        """
        The name of this collection.

        Example:
            >>> my_coll.name
            'users'
        """

        return self._name

    @property
    def database(self) -> Database:
        """
        A Database object, the database this collection belongs to.

        Example:
            >>> my_coll.database.name
            'my_db'
        """

        return self._database

    def get(
        self,
        key: str,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DocumentHandle[DOC]:
        """
        Read a document from the collection by its key.

        Args:
            key: the key of the document.
            request_timeout_ms: a timeout, in milliseconds, for the HTTP request.
                If not provided, this object's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            a DocumentHandle for the document, as currently stored on the server.

        Raises:
            DocumentNotFoundException: if there is no such document.
            ArangoServerException: for any other failure status.

        Example:
            >>> alice = my_coll.get("alice")
            >>> alice.to_dict()
            {'name': 'Alice', '_id': 'users/alice', '_key': 'alice', '_rev': '_hW...'}
        """

        logger.info(f"getting document '{key}' from '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.GET,
            additional_path=_key_path(key),
            timeout_context=self._timeout_context(request_timeout_ms, timeout_ms),
        )
        handle = self._make_handle(_parse_fetch_response(response))
        logger.info(f"finished getting document '{key}' from '{self.name}'")
        return handle

    def create(
        self,
        document: DOC,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DocumentHandle[DOC]:
        """
        Store a new document in the collection and return a handle to it.

        The server acknowledges the creation by returning the identity fields
        only: the stored document is then read back with a second request, so
        that the returned handle reflects exactly what the server stores.

        Args:
            document: the payload of the document. If it has no `_key` field,
                the server assigns one.
            request_timeout_ms: a timeout, in milliseconds, for each of the two
                HTTP requests. If not provided, this object's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            a DocumentHandle for the newly created document.

        Raises:
            ArangoServerException: if the server refuses to store the document
                (e.g. a duplicate key or an invalid payload).
            UnexpectedArangoResponseException: if the server response lacks
                the key of the new document.

        Example:
            >>> bob = my_coll.create({"name": "Bob", "age": 25})
            >>> bob.key
            '1052'
            >>> bob["age"]
            25
        """

        logger.info(f"creating document in '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.POST,
            payload=document,
            timeout_context=self._timeout_context(request_timeout_ms, timeout_ms),
        )
        new_key = _parse_create_response(response)
        logger.info(f"finished creating document '{new_key}' in '{self.name}'")
        return self.get(
            new_key,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )

    def query(
        self,
        query: str,
        *,
        bind_vars: BindVarsType | None = None,
        batch_size: int | None = None,
        count: bool | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> QueryCursor[DefaultDocumentType, DocumentHandle[DOC]]:
        """
        Run a query returning documents of this collection and get a cursor
        yielding them as DocumentHandle objects.

        The query must return whole stored documents (e.g. `RETURN doc`), since
        each result is turned into a handle: results lacking the identity fields
        make the cursor raise an UnexpectedArangoResponseException.

        Args:
            query: the text of the query. It is sent to the server verbatim.
            bind_vars: values for the bind parameters (`@name`) in the query.
            batch_size: a hint for the server about the number of results
                in each batch.
            count: if True, the server computes the total number of results.
            request_timeout_ms: a timeout, in milliseconds, imposed on each of
                the HTTP requests issued while reading the cursor.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            an IDLE QueryCursor whose items are DocumentHandle objects.

        Example:
            >>> cursor = my_coll.query(
            ...     "FOR u IN users FILTER u.age < @age RETURN u",
            ...     bind_vars={"age": 30},
            ... )
            >>> for user in cursor:
            ...     user["junior"] = True
            ...     user.update()
            ...
        """

        return self._database.query(
            query,
            bind_vars=bind_vars,
            batch_size=batch_size,
            count=count,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        ).map(self._make_handle)


class AsyncCollection(Generic[DOC]):
    """
    A document collection on an ArangoDB database: the object to read, create
    and query documents, obtaining AsyncDocumentHandle objects bound to it.
    This class has an asynchronous interface for use with asyncio.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_collection` of AsyncDatabase.

    Args:
        database: an AsyncDatabase object, instantiated earlier. This represents
            the database the collection belongs to.
        name: the collection name. This parameter should match an existing
            collection on the database.
        api_options: the complete set of API Options for this instance.

    Example:
        >>> users = my_async_db.get_collection("users")
        >>> alice = await users.create({"name": "Alice", "age": 30})
        >>> [user["name"] async for user in users.query("FOR u IN users RETURN u")]
        ['Alice', 'Bob']
    """

    def __init__(
        self,
        *,
        database: AsyncDatabase,
        name: str,
        api_options: FullAPIOptions,
    ) -> None:
        self.api_options = api_options
        self._name = name
        self._database = database._copy(api_options=self.api_options)
        self._commander_headers = _commander_headers(self.api_options)
        self._api_commander = self._get_api_commander()

    def __repr__(self) -> str:
        _db_desc = f'database.name="{self._database.name}"'
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f"{_db_desc}, api_options={self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncCollection):
            return all(
                [
                    self._name == other._name,
                    self._database == other._database,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    async def __aenter__(self) -> AsyncCollection[DOC]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: Any = None,
    ) -> None:
        await self._api_commander.__aexit__(exc_type, exc_value, traceback)
        await self._database.__aexit__(exc_type, exc_value, traceback)

    def _get_api_commander(self) -> APICommander:
        """Instantiate a new APICommander based on the properties of this class."""

        database_path = _database_base_path(
            self._database.name, self.api_options.api_path
        )
        return APICommander(
            api_endpoint=self._database.api_endpoint,
            path=f"{database_path}/document/{quote(self._name, safe='')}",
            headers=self._commander_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
        )

    def _make_handle(self, record: dict[str, Any]) -> AsyncDocumentHandle[DOC]:
        return AsyncDocumentHandle(collection=self, record=record)

    def _timeout_context(
        self, request_timeout_ms: int | None, timeout_ms: int | None
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_request_timeout(
            default_request_timeout_ms=self.api_options.timeout_options.request_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    def to_sync(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> Collection[DOC]:
        """
        Create a Collection from this one. Save for the arguments
        explicitly provided as overrides, everything else is kept identical
        to this collection in the copy (the database is converted into
        a sync object).

        Args:
            token: the credentials for the database. This can be either a literal
                JWT string or a subclass of `arangopy.authentication.TokenProvider`.
            api_options: any additional options to set for the result, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            the new copy, a Collection instance.

        Example:
            >>> my_async_coll.to_sync().get("alice").key
            'alice'
        """

        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return Collection(
            database=self._database.to_sync(),
            name=self._name,
            api_options=final_api_options,
        )

    @property
    def name(self) -> str:
        """The name of this collection."""

        return self._name

    @property
    def database(self) -> AsyncDatabase:
        """An AsyncDatabase object, the database this collection belongs to."""

        return self._database

    async def get(
        self,
        key: str,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncDocumentHandle[DOC]:
        """
        Read a document from the collection by its key.
        See `Collection.get`.
        """

        logger.info(f"getting document '{key}' from '{self.name}', async")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=_key_path(key),
            timeout_context=self._timeout_context(request_timeout_ms, timeout_ms),
        )
        handle = self._make_handle(_parse_fetch_response(response))
        logger.info(f"finished getting document '{key}' from '{self.name}', async")
        return handle

    async def create(
        self,
        document: DOC,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncDocumentHandle[DOC]:
        """
        Store a new document in the collection and return a handle to it,
        read back from the server with a second request.
        See `Collection.create`.
        """

        logger.info(f"creating document in '{self.name}', async")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.POST,
            payload=document,
            timeout_context=self._timeout_context(request_timeout_ms, timeout_ms),
        )
        new_key = _parse_create_response(response)
        logger.info(
            f"finished creating document '{new_key}' in '{self.name}', async"
        )
        return await self.get(
            new_key,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )

    def query(
        self,
        query: str,
        *,
        bind_vars: BindVarsType | None = None,
        batch_size: int | None = None,
        count: bool | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncQueryCursor[DefaultDocumentType, AsyncDocumentHandle[DOC]]:
        """
        Run a query returning documents of this collection and get an async
        cursor yielding them as AsyncDocumentHandle objects. No requests are
        issued until the cursor is first read from.
        See `Collection.query`.
        """

        return self._database.query(
            query,
            bind_vars=bind_vars,
            batch_size=batch_size,
            count=count,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        ).map(self._make_handle)
