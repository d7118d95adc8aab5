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

import httpx
import pytest

from arangopy.exceptions import (
    ArangoException,
    ArangoServerException,
    ArangoTimeoutException,
    ArangoTransportException,
    CursorException,
    CursorStateException,
    DocumentRevisionConflictException,
    _select_request_timeout,
    _TimeoutContext,
    to_arango_timeout_exception,
)
from arangopy.results import (
    ResponseError,
    ResponseNotFound,
    ResponseOk,
    ResponsePreconditionFailed,
    classify_response,
)
from arangopy.utils.api_commander import APIResponse

SAMPLE_ERROR_BODY = {
    "error": True,
    "code": 412,
    "errorNum": 1200,
    "errorMessage": "conflict, _rev values do not match",
}


@pytest.mark.describe("test of ArangoServerException parsing")
def test_arangoserverexception_parsing() -> None:
    exc = DocumentRevisionConflictException.from_response(
        operation="update document",
        status_code=412,
        raw_response=SAMPLE_ERROR_BODY,
    )
    assert isinstance(exc, DocumentRevisionConflictException)
    assert isinstance(exc, ArangoServerException)
    assert isinstance(exc, ArangoException)
    assert exc.status_code == 412
    assert exc.error_num == 1200
    assert exc.error_message == "conflict, _rev values do not match"
    assert exc.raw_response == SAMPLE_ERROR_BODY
    assert str(exc) == (
        "Unable to update document (HTTP 412): conflict, _rev values do not match"
    )


@pytest.mark.describe("test of ArangoServerException with odd bodies")
def test_arangoserverexception_odd_bodies() -> None:
    """Regardless of how incorrect the error body, nothing breaks."""
    for odd_body in [None, "", "blah", [1, 2], {"errorNum": "x", "errorMessage": 3}]:
        exc = CursorException.from_response(
            operation="fetch cursor batch",
            status_code=500,
            raw_response=odd_body,
        )
        assert exc.error_num is None
        assert exc.error_message is None
        assert str(exc) == "Unable to fetch cursor batch (HTTP 500)."


@pytest.mark.describe("test of transport exceptions")
def test_transport_exceptions() -> None:
    request = httpx.Request("POST", "http://localhost:8529/_db/x/_api/cursor")
    conn_error = httpx.ConnectError("Connection refused", request=request)
    t_exc = ArangoTransportException.from_httpx_error(conn_error)
    assert t_exc.endpoint == "http://localhost:8529/_db/x/_api/cursor"
    assert t_exc.transport_error is conn_error
    assert "Connection refused" in t_exc.text

    unbound_error = httpx.ConnectError("No route")
    assert ArangoTransportException.from_httpx_error(unbound_error).endpoint is None

    read_timeout = httpx.ReadTimeout("timed out", request=request)
    to_exc = to_arango_timeout_exception(
        read_timeout,
        timeout_context=_TimeoutContext(request_ms=1500, label="timeout_ms"),
    )
    assert isinstance(to_exc, ArangoTimeoutException)
    assert isinstance(to_exc, ArangoTransportException)
    assert to_exc.timeout_type == "read"
    assert to_exc.text == "timed out (timeout honoured: timeout_ms = 1500 ms)"


@pytest.mark.describe("test of CursorStateException")
def test_cursorstateexception() -> None:
    exc = CursorStateException(text="Cursor is closed.", cursor_state="closed")
    assert str(exc) == "Cursor is closed."
    assert exc.cursor_state == "closed"


@pytest.mark.describe("test of request timeout selection")
def test_select_request_timeout() -> None:
    assert _select_request_timeout(default_request_timeout_ms=10) == (
        10,
        "request_timeout_ms",
    )
    assert _select_request_timeout(
        default_request_timeout_ms=10, request_timeout_ms=5
    ) == (5, "request_timeout_ms")
    assert _select_request_timeout(default_request_timeout_ms=10, timeout_ms=50) == (
        50,
        "timeout_ms",
    )
    assert _select_request_timeout(
        default_request_timeout_ms=10, request_timeout_ms=80, timeout_ms=20
    ) == (20, "timeout_ms")


@pytest.mark.describe("test of response classification")
def test_classify_response() -> None:
    ok_statuses = {201, 202}

    def _response(status_code: int) -> APIResponse:
        return APIResponse(status_code=status_code, body=SAMPLE_ERROR_BODY, headers={})

    assert isinstance(classify_response(_response(201), ok_statuses=ok_statuses), ResponseOk)
    assert isinstance(classify_response(_response(202), ok_statuses=ok_statuses), ResponseOk)
    assert isinstance(
        classify_response(_response(404), ok_statuses=ok_statuses), ResponseNotFound
    )
    assert isinstance(
        classify_response(_response(412), ok_statuses=ok_statuses),
        ResponsePreconditionFailed,
    )
    # only the listed statuses count as success
    for status_code in [200, 204, 400, 409, 500, 503]:
        assert isinstance(
            classify_response(_response(status_code), ok_statuses=ok_statuses),
            ResponseError,
        )

    failure = classify_response(_response(412), ok_statuses=ok_statuses)
    assert not isinstance(failure, ResponseOk)
    exc = failure.to_exception("update document", DocumentRevisionConflictException)
    assert isinstance(exc, DocumentRevisionConflictException)
    assert exc.status_code == 412
