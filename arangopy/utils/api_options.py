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

from dataclasses import dataclass
from typing import Iterable, Sequence

from arangopy.authentication import (
    StaticTokenProvider,
    TokenProvider,
    coerce_possible_token_provider,
)
from arangopy.constants import CallerType
from arangopy.settings.defaults import (
    DEFAULT_API_PATH,
    DEFAULT_REQUEST_TIMEOUT_MS,
    FIXED_SECRET_PLACEHOLDER,
)
from arangopy.utils.unset import _UNSET, UnsetType


@dataclass
class TimeoutOptions:
    """
    The group of settings for the API Options concerning the configured timeouts.

    All timeout values are integers expressed in milliseconds. A timeout of zero
    signifies that no timeout is imposed at all.

    All methods that issue HTTP requests allow for a per-invocation override
    of the timeout (see the method docstring and signature for details).

    Values that are left unspecified keep the values inherited from the parent
    "spawner" object (ArangoClient, Database, Collection).

    Attributes:
        request_timeout_ms: the timeout imposed on a single HTTP request,
            including each of the page requests issued while reading a cursor.
            Defaults to 10 s.
    """

    request_timeout_ms: int | UnsetType = _UNSET


@dataclass
class FullTimeoutOptions(TimeoutOptions):
    """
    The "full" version of `TimeoutOptions`, with the guarantee that all of its
    members have defined values. This is what the objects in the hierarchy hold
    in their `.api_options.timeout_options` attribute.

    Attributes:
        request_timeout_ms: the timeout imposed on a single HTTP request.
    """

    request_timeout_ms: int

    def __init__(
        self,
        *,
        request_timeout_ms: int,
    ) -> None:
        TimeoutOptions.__init__(
            self,
            request_timeout_ms=request_timeout_ms,
        )

    def with_override(self, other: TimeoutOptions) -> FullTimeoutOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence.
        """

        return FullTimeoutOptions(
            request_timeout_ms=(
                other.request_timeout_ms
                if not isinstance(other.request_timeout_ms, UnsetType)
                else self.request_timeout_ms
            ),
        )


@dataclass
class APIOptions:
    """
    This class represents all settings that can be configured for how arangopy
    interacts with the database server. Each object in the abstraction hierarchy
    (ArangoClient, Database, Collection and their async counterparts) has a full
    set of these options that determine how it behaves when issuing requests.

    The object passed to spawning methods (`get_database`, `get_collection`, ...)
    or to `to_async`/`to_sync` can define zero, some or all of its members:
    unspecified settings keep the value inherited from the spawning object.

    With the exception of the "database additional headers" and the
    "redacted header names", which are merged with the inherited ones,
    a provided override (even if it is None) completely replaces the
    inherited value.

    Attributes:
        callers: an iterable of "caller identities" to be used in identifying the
            caller, through the User-Agent header, when issuing requests.
            Each caller identity is a `(name, version)` 2-item tuple whose
            elements can be strings or None.
        database_additional_headers: free-form dictionary of additional headers to
            employ when issuing requests. Passing a key with a value of None means
            that a certain header is suppressed when issuing the request.
        redacted_header_names: A set of (case-insensitive) strings denoting the headers
            that contain secrets, thus are to be masked when logging request details.
        token: an instance of TokenProvider to provide authentication to requests.
            Passing a string, or None, to this constructor parameter will get it
            automatically converted into a StaticTokenProvider (bearer JWT).
        timeout_options: an instance of `TimeoutOptions` (see).
        api_path: the path segment, below the database path, where the HTTP API
            lives (normally "_api"; customizing it is rarely needed).

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.utils.api_options import APIOptions, TimeoutOptions
        >>>
        >>> slow_options = APIOptions(
        ...     timeout_options=TimeoutOptions(request_timeout_ms=60000),
        ... )
        >>> client = ArangoClient("http://localhost:8529", api_options=slow_options)
        >>> database = client.get_database("my_db", token="eyJhbGci...")
    """

    callers: Sequence[CallerType] | UnsetType = _UNSET
    database_additional_headers: dict[str, str | None] | UnsetType = _UNSET
    redacted_header_names: set[str] | UnsetType = _UNSET
    token: TokenProvider | UnsetType = _UNSET
    timeout_options: TimeoutOptions | UnsetType = _UNSET
    api_path: str | UnsetType = _UNSET

    def __init__(
        self,
        *,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        database_additional_headers: dict[str, str | None] | UnsetType = _UNSET,
        redacted_header_names: Iterable[str] | UnsetType = _UNSET,
        token: str | TokenProvider | None | UnsetType = _UNSET,
        timeout_options: TimeoutOptions | UnsetType = _UNSET,
        api_path: str | UnsetType = _UNSET,
    ) -> None:
        self.callers = callers
        self.database_additional_headers = database_additional_headers
        self.redacted_header_names = (
            _UNSET
            if isinstance(redacted_header_names, UnsetType)
            else set(redacted_header_names)
        )
        self.token = coerce_possible_token_provider(token)
        self.timeout_options = timeout_options
        self.api_path = api_path

    def __repr__(self) -> str:
        _redacted_header_names = (
            set()
            if isinstance(self.redacted_header_names, UnsetType)
            else self.redacted_header_names
        )
        _database_additional_headers: dict[str, str | None] | UnsetType
        if not isinstance(self.database_additional_headers, UnsetType):
            _database_additional_headers = {
                k: v if k not in _redacted_header_names else FIXED_SECRET_PLACEHOLDER
                for k, v in self.database_additional_headers.items()
            }
        else:
            _database_additional_headers = _UNSET
        _token_desc: str | None
        if not isinstance(self.token, UnsetType) and self.token:
            _token_desc = f"token={self.token}"
        else:
            _token_desc = None

        non_unset_pieces = [
            pc
            for pc in (
                None
                if isinstance(self.callers, UnsetType)
                else f"callers={self.callers}",
                None
                if isinstance(_database_additional_headers, UnsetType)
                else f"database_additional_headers={_database_additional_headers}",
                None
                if isinstance(self.redacted_header_names, UnsetType)
                else f"redacted_header_names={self.redacted_header_names}",
                _token_desc,
                None
                if isinstance(self.timeout_options, UnsetType)
                else f"timeout_options={self.timeout_options}",
                None
                if isinstance(self.api_path, UnsetType)
                else f"api_path={self.api_path}",
            )
            if pc is not None
        ]
        inner_desc = ", ".join(non_unset_pieces)
        return f"{self.__class__.__name__}({inner_desc})"


@dataclass
class FullAPIOptions(APIOptions):
    """
    The "full" version of `APIOptions` (see), where every setting is defined.
    This is what ArangoClient, Database and Collection objects hold in their
    `.api_options` attribute.
    """

    callers: Sequence[CallerType]
    database_additional_headers: dict[str, str | None]
    redacted_header_names: set[str]
    token: TokenProvider
    timeout_options: FullTimeoutOptions
    api_path: str

    def __init__(
        self,
        *,
        callers: Sequence[CallerType],
        database_additional_headers: dict[str, str | None],
        redacted_header_names: set[str],
        token: str | TokenProvider | None,
        timeout_options: FullTimeoutOptions,
        api_path: str,
    ) -> None:
        APIOptions.__init__(
            self,
            callers=callers,
            database_additional_headers=database_additional_headers,
            redacted_header_names=redacted_header_names,
            token=token,
            timeout_options=timeout_options,
            api_path=api_path,
        )

    def __repr__(self) -> str:
        _token_desc: str | None
        if self.token:
            _token_desc = f"token={self.token}"
        else:
            _token_desc = None

        non_unset_pieces = [
            pc
            for pc in (
                _token_desc,
                f"callers={self.callers}" if self.callers else None,
                "...",
            )
            if pc is not None
        ]
        inner_desc = ", ".join(non_unset_pieces)
        return f"{self.__class__.__name__}({inner_desc})"

    def with_override(self, other: APIOptions | None | UnsetType) -> FullAPIOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Defined attributes completely replace the pre-existing ones, except for
        `database_additional_headers` and `redacted_header_names`, which are merged.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence.
        """

        if isinstance(other, UnsetType) or other is None:
            return self

        database_additional_headers: dict[str, str | None]
        redacted_header_names: set[str]
        timeout_options: FullTimeoutOptions

        if isinstance(other.database_additional_headers, UnsetType):
            database_additional_headers = self.database_additional_headers
        else:
            database_additional_headers = {
                **self.database_additional_headers,
                **other.database_additional_headers,
            }
        if isinstance(other.redacted_header_names, UnsetType):
            redacted_header_names = self.redacted_header_names
        else:
            redacted_header_names = (
                self.redacted_header_names | other.redacted_header_names
            )
        if isinstance(other.timeout_options, TimeoutOptions):
            timeout_options = self.timeout_options.with_override(other.timeout_options)
        else:
            timeout_options = self.timeout_options

        return FullAPIOptions(
            callers=(
                other.callers
                if not isinstance(other.callers, UnsetType)
                else self.callers
            ),
            database_additional_headers=database_additional_headers,
            redacted_header_names=redacted_header_names,
            token=other.token if not isinstance(other.token, UnsetType) else self.token,
            timeout_options=timeout_options,
            api_path=(
                other.api_path
                if not isinstance(other.api_path, UnsetType)
                else self.api_path
            ),
        )


defaultTimeoutOptions = FullTimeoutOptions(
    request_timeout_ms=DEFAULT_REQUEST_TIMEOUT_MS,
)


def defaultAPIOptions() -> FullAPIOptions:
    """
    Return the default APIOptions object, based on 'grand defaults'
    hardcoded in arangopy.
    """

    return FullAPIOptions(
        callers=[],
        database_additional_headers={},
        redacted_header_names=set(),
        token=StaticTokenProvider(None),
        timeout_options=defaultTimeoutOptions,
        api_path=DEFAULT_API_PATH,
    )
