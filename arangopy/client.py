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
from typing import TYPE_CHECKING, Any, Sequence

from arangopy.authentication import TokenProvider
from arangopy.constants import CallerType
from arangopy.settings.defaults import DEFAULT_DATABASE_NAME
from arangopy.utils.api_options import APIOptions, defaultAPIOptions
from arangopy.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from arangopy.database import AsyncDatabase, Database


logger = logging.getLogger(__name__)


class ArangoClient:
    """
    A client for an ArangoDB server. This is the entry point, sitting
    at the top of the conceptual "client -> database -> collection" hierarchy.

    A client is created first, for a given server URL and optionally with
    credentials. Starting from the client, databases (Database and
    AsyncDatabase) are obtained for working with data.

    Args:
        api_endpoint: the base URL of the server, e.g. "http://localhost:8529".
        token: the credentials for the server. This can be either a literal JWT
            string (sent as bearer token) or a subclass of
            `arangopy.authentication.TokenProvider`, such as
            `UsernamePasswordTokenProvider` for HTTP basic authentication.
            It can also be passed later, when spawning databases.
        callers: a list of caller identities, i.e. applications, or frameworks,
            on behalf of which requests are performed. These end up in the
            request user-agent.
            Each caller identity is a ("caller_name", "caller_version") pair.
        api_options: a set - complete or partial - of the API Options
            to override the system defaults. This allows for a deeper configuration
            than what the named parameters (token, callers) offer.
            If this is passed alongside these named parameters, those will take
            precedence.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import UsernamePasswordTokenProvider
        >>> my_client = ArangoClient(
        ...     "http://localhost:8529",
        ...     token=UsernamePasswordTokenProvider("root", "openSesame"),
        ... )
        >>> my_db = my_client.get_database("my_db")
        >>> my_db.query("FOR u IN users RETURN u.name").to_list()
        ['Alice', 'Bob']
    """

    def __init__(
        self,
        api_endpoint: str,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> None:
        self.api_endpoint = api_endpoint.strip("/")
        arg_api_options = APIOptions(
            callers=callers,
            token=token,
        )
        self.api_options = (
            defaultAPIOptions().with_override(api_options).with_override(arg_api_options)
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(api_endpoint="{self.api_endpoint}", '
            f"{self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ArangoClient):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.api_options.token == other.api_options.token,
                    self.api_options.callers == other.api_options.callers,
                ]
            )
        else:
            return False

    def __getitem__(self, database_name: str) -> Database:
        return self.get_database(database_name)

    def _copy(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> ArangoClient:
        arg_api_options = APIOptions(token=token)
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return ArangoClient(
            self.api_endpoint,
            api_options=final_api_options,
        )

    def with_options(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> ArangoClient:
        """
        Create a clone of this ArangoClient with some changed attributes.

        Args:
            token: the credentials for the server. This can be either a literal JWT
                string or a subclass of `arangopy.authentication.TokenProvider`.
            api_options: any additional options to set for the clone, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            a new ArangoClient instance.

        Example:
            >>> other_client = my_client.with_options(token="eyJhbGci...")
        """

        return self._copy(
            token=token,
            api_options=api_options,
        )

    def get_database(
        self,
        name: str = DEFAULT_DATABASE_NAME,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> Database:
        """
        Get a Database object from this client, for doing data-related work.
        No requests are issued: the database must exist already for the
        resulting object to be effectively used.

        Args:
            name: the name of the database. Defaults to "_system".
            token: if supplied, is passed to the Database instead of the client token.
                This can be either a literal JWT string or a subclass of
                `arangopy.authentication.TokenProvider`.
            spawn_api_options: a set - complete or partial - of the
                API Options to override the defaults.
                This allows for a deeper configuration of the database, e.g.
                concerning timeouts; if this is passed together with
                the equivalent named parameters, the latter will take precedence
                in their respective settings.

        Returns:
            a Database object with which to run queries and reach collections.

        Example:
            >>> my_db = my_client.get_database("my_db", token="eyJhbGci...")
            >>> my_db.query("RETURN 1").to_list()
            [1]
        """

        # lazy importing here to avoid circular dependency
        from arangopy.database import Database

        arg_api_options = APIOptions(token=token)
        resulting_api_options = self.api_options.with_override(
            spawn_api_options
        ).with_override(arg_api_options)
        logger.info(f"spawning database '{name}' at '{self.api_endpoint}'")
        return Database(
            api_endpoint=self.api_endpoint,
            name=name,
            api_options=resulting_api_options,
        )

    def get_async_database(
        self,
        name: str = DEFAULT_DATABASE_NAME,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        """
        Get an AsyncDatabase object from this client, for doing data-related work.
        See `get_database` for details on the parameters.

        Returns:
            an AsyncDatabase object with which to run queries and reach collections.

        Example:
            >>> async def count_users(client: ArangoClient) -> int:
            ...     async_db = client.get_async_database("my_db")
            ...     cursor = async_db.query("RETURN LENGTH(users)")
            ...     return (await cursor.to_list())[0]
            ...
            >>> asyncio.run(count_users(my_client))
            2
        """

        return self.get_database(
            name,
            token=token,
            spawn_api_options=spawn_api_options,
        ).to_async()
