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
Classification of server responses into a small set of tagged outcomes.

Each operation of the core states which statuses count as success for its
endpoint; `classify_response` then maps any `APIResponse` to exactly one of
`ResponseOk`, `ResponseNotFound`, `ResponsePreconditionFailed` or
`ResponseError`, and call sites dispatch on the outcome type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Collection, Union

from arangopy.exceptions import ArangoServerException
from arangopy.utils.api_commander import APIResponse

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_PRECONDITION_FAILED = 412


@dataclass(frozen=True)
class ResponseOk:
    """A response with one of the success statuses of the endpoint."""

    status_code: int
    body: Any


@dataclass(frozen=True)
class _ResponseFailure:
    status_code: int
    raw_response: Any

    def to_exception(
        self,
        operation: str,
        exception_class: type[ArangoServerException] = ArangoServerException,
    ) -> ArangoServerException:
        """
        Build the exception describing this failed outcome.

        Args:
            operation: a short description of the attempted operation,
                e.g. "update document".
            exception_class: the ArangoServerException subclass to instantiate.
        """
        logger.warning(
            f"Server refused to {operation}: HTTP {self.status_code}, "
            f"{self.raw_response}"
        )
        return exception_class.from_response(
            operation=operation,
            status_code=self.status_code,
            raw_response=self.raw_response,
        )


@dataclass(frozen=True)
class ResponseNotFound(_ResponseFailure):
    """The target resource (document, collection, cursor) does not exist."""


@dataclass(frozen=True)
class ResponsePreconditionFailed(_ResponseFailure):
    """The revision supplied with the request does not match the server's."""


@dataclass(frozen=True)
class ResponseError(_ResponseFailure):
    """Any other non-success status."""


ClassifiedResponse = Union[
    ResponseOk,
    ResponseNotFound,
    ResponsePreconditionFailed,
    ResponseError,
]


def classify_response(
    response: APIResponse,
    *,
    ok_statuses: Collection[int],
) -> ClassifiedResponse:
    """
    Turn an APIResponse into the matching tagged outcome.

    Only the statuses listed in `ok_statuses` are successes: any other status,
    including other 2xx codes and all 5xx codes, is a failure.

    Args:
        response: the response as returned by the APICommander.
        ok_statuses: the success statuses documented for the endpoint.

    Returns:
        one of ResponseOk, ResponseNotFound, ResponsePreconditionFailed,
        ResponseError.
    """

    if response.status_code in ok_statuses:
        return ResponseOk(status_code=response.status_code, body=response.body)
    elif response.status_code == HTTP_NOT_FOUND:
        return ResponseNotFound(
            status_code=response.status_code, raw_response=response.body
        )
    elif response.status_code == HTTP_PRECONDITION_FAILED:
        return ResponsePreconditionFailed(
            status_code=response.status_code, raw_response=response.body
        )
    else:
        return ResponseError(
            status_code=response.status_code, raw_response=response.body
        )
