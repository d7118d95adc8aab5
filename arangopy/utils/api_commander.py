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

import json
import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Iterable, Mapping, Sequence

import httpx

from arangopy import __version__
from arangopy.constants import CallerType
from arangopy.exceptions import (
    ArangoTransportException,
    UnexpectedArangoResponseException,
    _TimeoutContext,
    to_arango_timeout_exception,
)
from arangopy.settings.defaults import (
    DEFAULT_REDACTED_HEADER_NAMES,
    FIXED_SECRET_PLACEHOLDER,
)
from arangopy.utils.request_tools import (
    HttpMethod,
    compose_full_user_agent,
    log_httpx_request,
    log_httpx_response,
    to_httpx_timeout,
)

user_agent_arangopy: CallerType = ("arangopy", __version__)

logger = logging.getLogger(__name__)


@dataclass
class APIResponse:
    """
    The outcome of a completed HTTP exchange with the server.

    Error statuses (4xx, 5xx) are normal outcomes at this level: it is up to
    the caller to interpret the status code.

    Attributes:
        status_code: the HTTP status code of the response.
        body: the JSON-decoded response body, None if the body is empty.
        headers: the response headers.
    """

    status_code: int
    body: Any
    headers: Mapping[str, str]


class APICommander:
    """
    The request executor for all calls to the HTTP API of a database.

    An APICommander is bound to a base URL (endpoint plus path) and to a fixed
    set of headers, authentication included, established at construction time
    and never mutated afterwards. Hence a single instance can be shared by any
    number of cursors and document handles, also concurrently.

    Requests return an `APIResponse` for any HTTP status: only transport-level
    failures raise (`ArangoTransportException`, `ArangoTimeoutException`), as
    well as bodies that cannot be decoded (`UnexpectedArangoResponseException`).
    """

    client = httpx.Client()

    def __init__(
        self,
        *,
        api_endpoint: str,
        path: str,
        headers: dict[str, str | None] = {},
        callers: Sequence[CallerType] = [],
        redacted_header_names: Iterable[str] | None = None,
    ) -> None:
        self.async_client = httpx.AsyncClient()
        self.api_endpoint = api_endpoint.rstrip("/")
        self.path = path.strip("/")
        self.headers = headers
        self.callers = callers
        self.redacted_header_names = set(redacted_header_names or [])
        self.upper_full_redacted_header_names = {
            header_name.upper()
            for header_name in (
                self.redacted_header_names | DEFAULT_REDACTED_HEADER_NAMES
            )
        }

        full_user_agent_string = compose_full_user_agent(
            list(self.callers) + [user_agent_arangopy]
        )
        self.caller_header: dict[str, str] = (
            {"User-Agent": full_user_agent_string} if full_user_agent_string else {}
        )
        self.full_headers: dict[str, str] = {
            k: v
            for k, v in {
                **{
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                **self.caller_header,
                **self.headers,
            }.items()
            if v is not None
        }
        self._loggable_headers = self._redact_headers(self.full_headers)
        self.full_path = ("/".join([self.api_endpoint, self.path])).rstrip("/")

    def __repr__(self) -> str:
        inner_desc = ", ".join(
            [
                f"api_endpoint={self.api_endpoint}",
                f"path={self.path}",
                f"callers={self.callers}",
            ]
        )
        return f"{self.__class__.__name__}({inner_desc})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, APICommander):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.path == other.path,
                    self.headers == other.headers,
                    self.callers == other.callers,
                    self.redacted_header_names == other.redacted_header_names,
                ]
            )
        else:
            return False

    async def __aenter__(self) -> APICommander:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.async_client.aclose()

    def _copy(
        self,
        api_endpoint: str | None = None,
        path: str | None = None,
        headers: dict[str, str | None] | None = None,
        callers: Sequence[CallerType] | None = None,
        redacted_header_names: Iterable[str] | None = None,
    ) -> APICommander:
        # some care in allowing e.g. {} to override (but not None):
        return APICommander(
            api_endpoint=(
                api_endpoint if api_endpoint is not None else self.api_endpoint
            ),
            path=path if path is not None else self.path,
            headers=headers if headers is not None else self.headers,
            callers=callers if callers is not None else self.callers,
            redacted_header_names=(
                redacted_header_names
                if redacted_header_names is not None
                else self.redacted_header_names
            ),
        )

    def _redact_headers(self, headers: Mapping[str, str]) -> dict[str, str]:
        return {
            k: v
            if k.upper() not in self.upper_full_redacted_header_names
            else FIXED_SECRET_PLACEHOLDER
            for k, v in headers.items()
        }

    def _compose_request_url(self, additional_path: str | None) -> str:
        if additional_path:
            return "/".join([self.full_path.rstrip("/"), additional_path.lstrip("/")])
        else:
            return self.full_path

    @staticmethod
    def _encode_payload(payload: Any) -> str | None:
        if payload is not None:
            return json.dumps(
                payload,
                allow_nan=False,
                separators=(",", ":"),
                ensure_ascii=False,
            )
        else:
            return None

    @staticmethod
    def _raw_response_to_api_response(raw_response: httpx.Response) -> APIResponse:
        # an empty body is legitimate (e.g. some DELETE responses), anything
        # else must be valid JSON.
        body: Any
        if raw_response.content:
            try:
                body = json.loads(raw_response.text)
            except ValueError:
                raise UnexpectedArangoResponseException(
                    text=(
                        "Unparseable response from server "
                        f"(HTTP {raw_response.status_code})."
                    ),
                    raw_response={"raw_response": raw_response.text},
                )
        else:
            body = None
        return APIResponse(
            status_code=raw_response.status_code,
            body=body,
            headers=raw_response.headers,
        )

    def _prepare_request(
        self,
        *,
        http_method: str,
        payload: Any,
        additional_path: str | None,
        request_params: dict[str, Any],
        headers: dict[str, str],
        timeout_context: _TimeoutContext | None,
    ) -> tuple[str, str | None, dict[str, str], _TimeoutContext]:
        request_url = self._compose_request_url(additional_path)
        _timeout_context = timeout_context or _TimeoutContext(request_ms=None)
        encoded_payload = self._encode_payload(payload)
        request_headers = {**self.full_headers, **headers}
        log_httpx_request(
            http_method=http_method,
            full_url=request_url,
            request_params=request_params,
            redacted_request_headers=self._redact_headers(request_headers),
            encoded_payload=encoded_payload,
            timeout_context=_timeout_context,
        )
        return request_url, encoded_payload, request_headers, _timeout_context

    def raw_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: Any = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        headers: dict[str, str] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> httpx.Response:
        (
            request_url,
            encoded_payload,
            request_headers,
            _timeout_context,
        ) = self._prepare_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            headers=headers,
            timeout_context=timeout_context,
        )
        httpx_timeout_s = to_httpx_timeout(_timeout_context)

        try:
            raw_response = self.client.request(
                method=http_method,
                url=request_url,
                content=encoded_payload.encode()
                if encoded_payload is not None
                else None,
                params=request_params,
                timeout=httpx_timeout_s,
                headers=request_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            raise to_arango_timeout_exception(
                timeout_exc, timeout_context=_timeout_context
            )
        except httpx.TransportError as transport_exc:
            raise ArangoTransportException.from_httpx_error(transport_exc)

        log_httpx_response(response=raw_response)
        return raw_response

    async def async_raw_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: Any = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        headers: dict[str, str] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> httpx.Response:
        (
            request_url,
            encoded_payload,
            request_headers,
            _timeout_context,
        ) = self._prepare_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            headers=headers,
            timeout_context=timeout_context,
        )
        httpx_timeout_s = to_httpx_timeout(_timeout_context)

        try:
            raw_response = await self.async_client.request(
                method=http_method,
                url=request_url,
                content=encoded_payload.encode()
                if encoded_payload is not None
                else None,
                params=request_params,
                timeout=httpx_timeout_s,
                headers=request_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            raise to_arango_timeout_exception(
                timeout_exc, timeout_context=_timeout_context
            )
        except httpx.TransportError as transport_exc:
            raise ArangoTransportException.from_httpx_error(transport_exc)

        log_httpx_response(response=raw_response)
        return raw_response

    def request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: Any = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        headers: dict[str, str] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> APIResponse:
        raw_response = self.raw_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            headers=headers,
            timeout_context=timeout_context,
        )
        return self._raw_response_to_api_response(raw_response)

    async def async_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: Any = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        headers: dict[str, str] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> APIResponse:
        raw_response = await self.async_raw_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            headers=headers,
            timeout_context=timeout_context,
        )
        return self._raw_response_to_api_response(raw_response)
