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

import httpx

from arangopy.exceptions.arango_exceptions import (
    ArangoException,
    ArangoServerException,
    ArangoTimeoutException,
    ArangoTransportException,
    CursorException,
    CursorStateException,
    DocumentNotFoundException,
    DocumentRevisionConflictException,
    UnexpectedArangoResponseException,
)


def _select_request_timeout(
    *,
    default_request_timeout_ms: int,
    request_timeout_ms: int | None = None,
    timeout_ms: int | None = None,
) -> tuple[int, str | None]:
    """
    Apply the logic for determining and labeling the timeout for
    single-request methods.

    A per-call value, if passed, wins over the configured default; `timeout_ms`
    is an alias for `request_timeout_ms` and the smaller of the two is used if
    both are given.
    """
    _non_null: list[tuple[int, str]] = [
        (t_ms, t_label)
        for t_ms, t_label in (
            (request_timeout_ms, "request_timeout_ms"),
            (timeout_ms, "timeout_ms"),
        )
        if t_ms is not None
    ]
    if _non_null:
        return min(_non_null, key=lambda p: p[0])
    else:
        return (default_request_timeout_ms, "request_timeout_ms")


def to_arango_timeout_exception(
    httpx_timeout: httpx.TimeoutException,
    timeout_context: _TimeoutContext,
) -> ArangoTimeoutException:
    text: str
    text_0 = str(httpx_timeout) or "timed out"
    timeout_ms = timeout_context.request_ms
    timeout_label = timeout_context.label
    if timeout_ms:
        if timeout_label:
            text = f"{text_0} (timeout honoured: {timeout_label} = {timeout_ms} ms)"
        else:
            text = f"{text_0} (timeout honoured: {timeout_ms} ms)"
    else:
        text = text_0
    if isinstance(httpx_timeout, httpx.ConnectTimeout):
        timeout_type = "connect"
    elif isinstance(httpx_timeout, httpx.ReadTimeout):
        timeout_type = "read"
    elif isinstance(httpx_timeout, httpx.WriteTimeout):
        timeout_type = "write"
    elif isinstance(httpx_timeout, httpx.PoolTimeout):
        timeout_type = "pool"
    else:
        timeout_type = "generic"
    endpoint: str | None = None
    raw_payload: str | None = None
    try:
        request = httpx_timeout.request
        endpoint = str(request.url)
        if isinstance(request.content, bytes) and request.content:
            raw_payload = request.content.decode()
    except RuntimeError:
        # the error is not bound to a request
        pass
    return ArangoTimeoutException(
        text=text,
        timeout_type=timeout_type,
        endpoint=endpoint,
        raw_payload=raw_payload,
    )


@dataclass
class _TimeoutContext:
    """
    This class encodes standardized "enriched information" attached to a timeout
    value to obey. This makes it possible, in case the timeout is raised, to present
    the user with a better error message detailing the name of the setting responsible
    for the timeout.

    Args:
        request_ms: the number of milliseconds a given HTTP request is allowed
            to last. Zero or None mean no timeout.
        label: a string, providing the name of the timeout setting as known by the user.
    """

    request_ms: int | None
    label: str | None

    def __init__(
        self,
        *,
        request_ms: int | None,
        label: str | None = None,
    ) -> None:
        self.request_ms = request_ms
        self.label = label

    def __bool__(self) -> bool:
        return self.request_ms is not None


__all__ = [
    "ArangoException",
    "ArangoServerException",
    "ArangoTimeoutException",
    "ArangoTransportException",
    "CursorException",
    "CursorStateException",
    "DocumentNotFoundException",
    "DocumentRevisionConflictException",
    "UnexpectedArangoResponseException",
]
