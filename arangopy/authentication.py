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

import base64
from abc import ABC, abstractmethod
from typing import Any

from typing_extensions import override

from arangopy.settings.defaults import (
    BASIC_AUTH_SCHEME,
    BEARER_AUTH_SCHEME,
    FIXED_SECRET_PLACEHOLDER,
    SECRETS_REDACT_CHAR,
    SECRETS_REDACT_ENDING,
    SECRETS_REDACT_ENDING_LENGTH,
)
from arangopy.utils.unset import _UNSET, UnsetType


def coerce_token_provider(
    token: str | TokenProvider | None,
) -> TokenProvider:
    if isinstance(token, TokenProvider):
        return token
    else:
        return StaticTokenProvider(token)


def coerce_possible_token_provider(
    token: str | TokenProvider | None | UnsetType,
) -> TokenProvider | UnsetType:
    if isinstance(token, UnsetType):
        return _UNSET
    else:
        return coerce_token_provider(token)


def _redact_secret(secret: str, max_length: int, hide_if_short: bool = True) -> str:
    """
    Return a shortened-if-necessary version of a 'secret' string (with ellipsis).

    Args:
        secret: a secret string to redact
        max_length: if the secret and the fixed ending exceed this size,
            shortening takes place.
        hide_if_short: this controls what to do when the input secret is
            shorter, i.e. when no shortening takes place.
            if False, the secret is returned as-is;
            If True, a masked string is returned of the same length as secret.

    Returns:
        a 'redacted' form of the secret string as per the rules outlined above.
    """
    secret_len = len(secret)
    if secret_len + SECRETS_REDACT_ENDING_LENGTH > max_length:
        return (
            secret[: max_length - SECRETS_REDACT_ENDING_LENGTH] + SECRETS_REDACT_ENDING
        )
    else:
        if hide_if_short:
            return SECRETS_REDACT_CHAR * len(secret)
        else:
            return secret


class TokenProvider(ABC):
    """
    Abstract base class for a token provider.
    A token provider yields the credential string and the authentication scheme
    that together make up the `Authorization` header of each request.

    The __str__ / __repr__ methods are NOT to be used as source of tokens:
    use get_token (or get_header_value) instead.

    Note that equality (__eq__) checks if the generated header values match
    under all circumstances (e.g. a literal passthrough matches a
    different-encoding token provider that yields the same header).
    """

    SCHEME: str

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, TokenProvider):
            return self.get_header_value() == other.get_header_value()
        else:
            return False

    @abstractmethod
    def __repr__(self) -> str: ...

    def __or__(self, other: TokenProvider) -> TokenProvider:
        """
        Implement the logic as for "token_str_a or token_str_b" for the TokenProvider,
        with the None token being the 'falsey' case.
        """
        if self.get_token() is not None:
            return self
        else:
            return other

    def __bool__(self) -> bool:
        return self.get_token() is not None

    @abstractmethod
    def get_token(self) -> str | None:
        """
        Produce the credential string for use in subsequent requests,
        or None for no authentication.
        """
        ...

    def get_header_value(self) -> str | None:
        """
        Produce the full value of the `Authorization` header, scheme included,
        or None if there is no token (in which case no header is sent).
        """
        token = self.get_token()
        if token is None:
            return None
        return f"{self.SCHEME} {token}"


class StaticTokenProvider(TokenProvider):
    """
    A "pass-through" provider that wraps a supplied, previously obtained
    JWT, sent as a bearer token.

    Args:
        token: a JSON Web Token for subsequent use in the client.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import StaticTokenProvider
        >>> token_provider = StaticTokenProvider("eyJhbGciOiJIUzI1NiIs...")
        >>> database = ArangoClient("http://localhost:8529").get_database(
        ...     "my_db",
        ...     token=token_provider,
        ... )
    """

    SCHEME = BEARER_AUTH_SCHEME

    def __init__(self, token: str | None) -> None:
        self.token = token

    @override
    def __repr__(self) -> str:
        if self.token is None:
            return "(none)"
        else:
            return f"{self.__class__.__name__}({_redact_secret(self.token, 15)})"

    @override
    def get_token(self) -> str | None:
        return self.token


class UsernamePasswordTokenProvider(TokenProvider):
    """
    A token provider encoding username/password-based (HTTP Basic)
    authentication: the credentials are joined by a colon and base64-encoded.

    Args:
        username: the username for accessing the database.
        password: the corresponding password.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import UsernamePasswordTokenProvider
        >>> token_provider = UsernamePasswordTokenProvider("root", "openSesame")
        >>> database = ArangoClient("http://localhost:8529").get_database(
        ...     "_system",
        ...     token=token_provider,
        ... )
    """

    SCHEME = BASIC_AUTH_SCHEME

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password
        self.token = base64.b64encode(
            f"{self.username}:{self.password}".encode()
        ).decode()

    @override
    def __repr__(self) -> str:
        _r_username = _redact_secret(self.username, 6)
        _r_password = FIXED_SECRET_PLACEHOLDER
        return f'{self.__class__.__name__}("username={_r_username}, password={_r_password}")'

    @override
    def get_token(self) -> str:
        return self.token
