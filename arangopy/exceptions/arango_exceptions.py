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
from typing import Any

import httpx


class ArangoException(Exception):
    """
    Any exception occurred while talking to the database server and specific
    to this client, such as:
      - the server responding with an error status to a document request,
      - a cursor being used after it is exhausted,
      - a response that lacks the fields the protocol requires,
    as well as the transport failures wrapped by ArangoTransportException.
    """

    pass


@dataclass
class ArangoTransportException(ArangoException):
    """
    An HTTP request could not be completed at the transport level (connection
    refused, DNS failure, broken connection, ...). No response from the
    server is available.

    Attributes:
        text: a text message about the exception.
        endpoint: the URL that the request was targeting, if known.
        transport_error: the underlying httpx exception.
    """

    text: str
    endpoint: str | None
    transport_error: httpx.TransportError | None

    def __init__(
        self,
        text: str,
        *,
        endpoint: str | None = None,
        transport_error: httpx.TransportError | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.endpoint = endpoint
        self.transport_error = transport_error

    @classmethod
    def from_httpx_error(
        cls,
        transport_error: httpx.TransportError,
    ) -> ArangoTransportException:
        """Wrap a httpx transport error into this exception."""

        endpoint: str | None
        try:
            endpoint = str(transport_error.request.url)
        except RuntimeError:
            # httpx raises if the error is not bound to a request
            endpoint = None
        text = str(transport_error) or transport_error.__class__.__name__
        return cls(text, endpoint=endpoint, transport_error=transport_error)


@dataclass
class ArangoTimeoutException(ArangoTransportException):
    """
    A request to the server timed out.

    Attributes:
        text: a textual description of the error
        timeout_type: this denotes the phase of the HTTP request when the event
            occurred ("connect", "read", "write", "pool") or "generic".
        endpoint: the URL that the request was targeting.
        raw_payload: the associated request payload (as a string), if any.
    """

    timeout_type: str
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text, endpoint=endpoint)
        self.timeout_type = timeout_type
        self.raw_payload = raw_payload


@dataclass
class ArangoServerException(ArangoException):
    """
    The server answered with a non-success HTTP status. The server-supplied
    error information (if the response body carries it) is exposed in
    structured form.

    Attributes:
        text: a text message about the exception.
        status_code: the HTTP status code of the response.
        error_num: the server-specific error number ("errorNum"), if any.
        error_message: the server-supplied message ("errorMessage"), if any.
        raw_response: the decoded response body, if any.
    """

    text: str
    status_code: int
    error_num: int | None
    error_message: str | None
    raw_response: Any

    def __init__(
        self,
        text: str,
        *,
        status_code: int,
        error_num: int | None = None,
        error_message: str | None = None,
        raw_response: Any = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.status_code = status_code
        self.error_num = error_num
        self.error_message = error_message
        self.raw_response = raw_response

    def __str__(self) -> str:
        return self.text

    @classmethod
    def from_response(
        cls,
        *,
        operation: str,
        status_code: int,
        raw_response: Any,
    ) -> ArangoServerException:
        """
        Parse an error response into this exception (or the subclass on which
        this method is invoked).

        Args:
            operation: a short description of the attempted operation, used
                to compose the message, e.g. "get document".
            status_code: the HTTP status code returned by the server.
            raw_response: the decoded response body.
        """

        error_num: int | None = None
        error_message: str | None = None
        if isinstance(raw_response, dict):
            _error_num = raw_response.get("errorNum")
            error_num = _error_num if isinstance(_error_num, int) else None
            _error_message = raw_response.get("errorMessage")
            error_message = _error_message if isinstance(_error_message, str) else None
        if error_message:
            text = f"Unable to {operation} (HTTP {status_code}): {error_message}"
        else:
            text = f"Unable to {operation} (HTTP {status_code})."
        return cls(
            text,
            status_code=status_code,
            error_num=error_num,
            error_message=error_message,
            raw_response=raw_response,
        )


class CursorException(ArangoServerException):
    """
    The server refused to open a cursor, or to return its next batch. The cursor
    involved in the failure is closed and cannot be resumed.
    """

    pass


class DocumentNotFoundException(ArangoServerException):
    """
    The requested document (or its collection) does not exist on the server.
    """

    pass


class DocumentRevisionConflictException(ArangoServerException):
    """
    A document mutation was rejected since the revision supplied by the client
    does not match the current one on the server (HTTP 412). The local state of
    the document handle is unchanged: the caller can reload it and retry.
    """

    pass


@dataclass
class UnexpectedArangoResponseException(ArangoException):
    """
    The server response is malformed in that it does not have
    expected field(s), or they are of the wrong type.

    Attributes:
        text: a text message about the exception.
        raw_response: the response returned by the server, if available.
    """

    text: str
    raw_response: Any

    def __init__(
        self,
        text: str,
        raw_response: Any,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response


@dataclass
class CursorStateException(ArangoException):
    """
    The cursor operation cannot be invoked in the current state of the cursor
    (e.g. asking for the next batch of an exhausted or closed cursor).

    Attributes:
        text: a text message about the exception.
        cursor_state: a string description of the current state
            of the cursor. See the documentation for QueryCursor.
    """

    text: str
    cursor_state: str

    def __init__(
        self,
        text: str,
        *,
        cursor_state: str,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.cursor_state = cursor_state
