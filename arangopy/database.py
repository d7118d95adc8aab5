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
from typing import TYPE_CHECKING, Any, overload
from urllib.parse import quote

from arangopy.authentication import TokenProvider
from arangopy.constants import DOC, BindVarsType, DefaultDocumentType
from arangopy.cursors import AsyncQueryCursor, CursorOptions, QueryCursor
from arangopy.exceptions import _select_request_timeout
from arangopy.settings.defaults import DATABASE_PATH_TEMPLATE, DEFAULT_AUTH_HEADER
from arangopy.utils.api_commander import APICommander
from arangopy.utils.api_options import APIOptions, FullAPIOptions
from arangopy.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from arangopy.collection import AsyncCollection, Collection


logger = logging.getLogger(__name__)


def _database_base_path(database_name: str, api_path: str) -> str:
    """The path, below the server URL, of the HTTP API of a database."""
    base_path_components = [
        comp
        for comp in (
            ncomp.strip("/")
            for ncomp in (
                DATABASE_PATH_TEMPLATE.format(database_name=quote(database_name)),
                api_path,
            )
        )
        if comp != ""
    ]
    return f"/{'/'.join(base_path_components)}"


def _commander_headers(api_options: FullAPIOptions) -> dict[str, str | None]:
    return {
        DEFAULT_AUTH_HEADER: api_options.token.get_header_value(),
        **api_options.database_additional_headers,
    }


class Database:
    """
    A database on an ArangoDB server. This is the object for running queries
    and for obtaining Collection objects.
    This class has a synchronous interface.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_database` of ArangoClient.

    Args:
        api_endpoint: the base URL of the server, e.g. "http://localhost:8529".
        name: the name of the database.
        api_options: the complete set of API Options for this instance.

    Example:
        >>> from arangopy import ArangoClient
        >>> my_client = ArangoClient("http://localhost:8529")
        >>> my_db = my_client.get_database("my_db", token="eyJhbGci...")

    Note:
        creating an instance of Database does not trigger actual creation
        of the database itself, which should exist beforehand.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        name: str,
        api_options: FullAPIOptions,
    ) -> None:
        self.api_options = api_options
        self.api_endpoint = api_endpoint.strip("/")
        self._name = name
        self._commander_headers = _commander_headers(self.api_options)
        self._api_commander = self._get_api_commander()

    def __getitem__(self, collection_name: str) -> Collection[DefaultDocumentType]:
        return self.get_collection(name=collection_name)

    def __repr__(self) -> str:
        ep_desc = f'api_endpoint="{self.api_endpoint}"'
        name_desc = f'name="{self._name}"'
        api_options_desc = f"api_options={self.api_options}"
        return f"{self.__class__.__name__}({ep_desc}, {name_desc}, {api_options_desc})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Database):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self._name == other._name,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def _get_api_commander(self) -> APICommander:
        """Instantiate a new APICommander based on the properties of this class."""

        return APICommander(
            api_endpoint=self.api_endpoint,
            path=_database_base_path(self._name, self.api_options.api_path),
            headers=self._commander_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
        )

    def _copy(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> Database:
        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return Database(
            api_endpoint=self.api_endpoint,
            name=self._name,
            api_options=final_api_options,
        )

    def with_options(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> Database:
        """
        Create a clone of this database with some changed attributes.

        Args:
            token: the credentials for the database. This can be either a literal
                JWT string or a subclass of `arangopy.authentication.TokenProvider`.
            api_options: any additional options to set for the clone, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            a new `Database` instance.

        Example:
            >>> my_db_2 = my_db.with_options(token="eyJhbGci...")
        """

        return self._copy(
            token=token,
            api_options=api_options,
        )

    def to_async(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        """
        Create an AsyncDatabase from this one. Save for the arguments
        explicitly provided as overrides, everything else is kept identical
        to this database in the copy.

        Args:
            token: the credentials for the database. This can be either a literal
                JWT string or a subclass of `arangopy.authentication.TokenProvider`.
            api_options: any additional options to set for the result, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            the new copy, an `AsyncDatabase` instance.

        Example:
            >>> async_database = my_db.to_async()
            >>> asyncio.run(async_database.query("RETURN 1").to_list())
            [1]
        """

        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return AsyncDatabase(
            api_endpoint=self.api_endpoint,
            name=self._name,
            api_options=final_api_options,
        )

    @property
    def name(self) -> str:
        """
        The name of this database.

        Example:
            >>> my_db.name
            'my_db'
        """

        return self._name

    @overload
    def get_collection(
        self,
        name: str,
        *,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> Collection[DefaultDocumentType]: ...

    @overload
    def get_collection(
        self,
        name: str,
        *,
        document_type: type[DOC],
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> Collection[DOC]: ...

    def get_collection(
        self,
        name: str,
        *,
        document_type: type[Any] = DefaultDocumentType,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> Collection[DOC]:
        """
        Spawn a `Collection` object instance representing a collection
        on this database.

        Creating a `Collection` instance does not have any effect on the
        actual state of the database, and issues no requests: the collection
        must exist already for the instance to be used meaningfully.

        Args:
            name: the name of the collection.
            document_type: this parameter acts a formal specifier for the type checker.
                If omitted, the resulting Collection is implicitly
                a `Collection[dict[str, Any]]`. If provided, it must match the
                type hint specified in the assignment.
            spawn_api_options: a set - complete or partial - of the
                API Options to override the defaults inherited from the Database.

        Returns:
            a `Collection` instance, representing the desired collection
                (but without any form of validation).

        Example:
            >>> my_col = my_db.get_collection("users")
            >>> my_col.get("alice")["name"]
            'Alice'

        Note:
            The indexing syntax achieves the same effect as this method:
            `my_db["users"]` is equivalent to `my_db.get_collection("users")`.
        """

        # lazy importing here against circular-import error
        from arangopy.collection import Collection

        resulting_api_options = self.api_options.with_override(spawn_api_options)
        return Collection(
            database=self,
            name=name,
            api_options=resulting_api_options,
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
    ) -> QueryCursor[Any, Any]:
        """
        Prepare a query on this database and return a cursor over its results.

        No request is issued until the cursor is first read from. Results come
        in batches as the server returns them: see QueryCursor for the ways
        to consume them.

        Args:
            query: the text of the query. It is sent to the server verbatim.
            bind_vars: values for the bind parameters (`@name`) in the query.
            batch_size: a hint for the server about the number of results
                in each batch.
            count: if True, the server computes the total number of results,
                then available as the `count` property of the cursor.
            request_timeout_ms: a timeout, in milliseconds, imposed on each of
                the HTTP requests issued while reading the cursor.
                If not provided, this object's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            an IDLE QueryCursor. The items are the values returned by the query,
            as decoded JSON.

        Example:
            >>> cursor = my_db.query(
            ...     "FOR u IN users FILTER u.age > @age RETURN u.name",
            ...     bind_vars={"age": 30},
            ...     batch_size=100,
            ... )
            >>> cursor.to_list()
            ['Carla', 'Ezra']
        """

        _request_timeout_ms, _ = _select_request_timeout(
            default_request_timeout_ms=self.api_options.timeout_options.request_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"preparing query cursor on '{self._name}'")
        return QueryCursor(
            commander=self._api_commander,
            query=query,
            options=CursorOptions(
                batch_size=batch_size,
                count=count,
                bind_vars=bind_vars,
            ),
            request_timeout_ms=_request_timeout_ms,
        )


class AsyncDatabase:
    """
    A database on an ArangoDB server. This is the object for running queries
    and for obtaining AsyncCollection objects.
    This class has an asynchronous interface for use with asyncio.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_async_database`
    of ArangoClient.

    Args:
        api_endpoint: the base URL of the server, e.g. "http://localhost:8529".
        name: the name of the database.
        api_options: the complete set of API Options for this instance.

    Example:
        >>> from arangopy import ArangoClient
        >>> my_client = ArangoClient("http://localhost:8529")
        >>> my_async_db = my_client.get_async_database("my_db", token="eyJhbGci...")

    Note:
        creating an instance of AsyncDatabase does not trigger actual creation
        of the database itself, which should exist beforehand.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        name: str,
        api_options: FullAPIOptions,
    ) -> None:
        self.api_options = api_options
        self.api_endpoint = api_endpoint.strip("/")
        self._name = name
        self._commander_headers = _commander_headers(self.api_options)
        self._api_commander = self._get_api_commander()

    def __getitem__(
        self, collection_name: str
    ) -> AsyncCollection[DefaultDocumentType]:
        return self.get_collection(name=collection_name)

    def __repr__(self) -> str:
        ep_desc = f'api_endpoint="{self.api_endpoint}"'
        name_desc = f'name="{self._name}"'
        api_options_desc = f"api_options={self.api_options}"
        return f"{self.__class__.__name__}({ep_desc}, {name_desc}, {api_options_desc})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncDatabase):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self._name == other._name,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    async def __aenter__(self) -> AsyncDatabase:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: Any = None,
    ) -> None:
        await self._api_commander.__aexit__(exc_type, exc_value, traceback)

    def _get_api_commander(self) -> APICommander:
        """Instantiate a new APICommander based on the properties of this class."""

        return APICommander(
            api_endpoint=self.api_endpoint,
            path=_database_base_path(self._name, self.api_options.api_path),
            headers=self._commander_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
        )

    def _copy(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return AsyncDatabase(
            api_endpoint=self.api_endpoint,
            name=self._name,
            api_options=final_api_options,
        )

    def with_options(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        """
        Create a clone of this database with some changed attributes.
        See `Database.with_options`.
        """

        return self._copy(
            token=token,
            api_options=api_options,
        )

    def to_sync(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> Database:
        """
        Create a (synchronous) Database from this one. Save for the arguments
        explicitly provided as overrides, everything else is kept identical
        to this database in the copy.

        Args:
            token: the credentials for the database. This can be either a literal
                JWT string or a subclass of `arangopy.authentication.TokenProvider`.
            api_options: any additional options to set for the result, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            the new copy, a `Database` instance.

        Example:
            >>> my_sync_db = my_async_db.to_sync()
            >>> my_sync_db.query("RETURN 1").to_list()
            [1]
        """

        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return Database(
            api_endpoint=self.api_endpoint,
            name=self._name,
            api_options=final_api_options,
        )

    @property
    def name(self) -> str:
        """The name of this database."""

        return self._name

    @overload
    def get_collection(
        self,
        name: str,
        *,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DefaultDocumentType]: ...

    @overload
    def get_collection(
        self,
        name: str,
        *,
        document_type: type[DOC],
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DOC]: ...

    def get_collection(
        self,
        name: str,
        *,
        document_type: type[Any] = DefaultDocumentType,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DOC]:
        """
        Spawn an `AsyncCollection` object instance representing a collection
        on this database. No requests are issued.
        See `Database.get_collection` for details.

        Example:
            >>> my_async_col = my_async_db.get_collection("users")
            >>> (await my_async_col.get("alice"))["name"]
            'Alice'
        """

        # lazy importing here against circular-import error
        from arangopy.collection import AsyncCollection

        resulting_api_options = self.api_options.with_override(spawn_api_options)
        return AsyncCollection(
            database=self,
            name=name,
            api_options=resulting_api_options,
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
    ) -> AsyncQueryCursor[Any, Any]:
        """
        Prepare a query on this database and return an async cursor over
        its results. This method issues no requests (hence it is not a
        coroutine): requests start when the cursor is first read from.
        See `Database.query` for details on the parameters.

        Example:
            >>> cursor = my_async_db.query("FOR u IN users RETURN u.name")
            >>> [name async for name in cursor]
            ['Alice', 'Bob', 'Carla']
        """

        _request_timeout_ms, _ = _select_request_timeout(
            default_request_timeout_ms=self.api_options.timeout_options.request_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"preparing query cursor on '{self._name}', async")
        return AsyncQueryCursor(
            commander=self._api_commander,
            query=query,
            options=CursorOptions(
                batch_size=batch_size,
                count=count,
                bind_vars=bind_vars,
            ),
            request_timeout_ms=_request_timeout_ms,
        )
