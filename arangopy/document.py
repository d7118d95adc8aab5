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

import copy
import logging
from typing import TYPE_CHECKING, Any, Generic
from urllib.parse import quote

from arangopy.constants import (
    DOC,
    DOCUMENT_ID_FIELD,
    DOCUMENT_IDENTITY_FIELDS,
    DOCUMENT_KEY_FIELD,
    DOCUMENT_REVISION_FIELD,
)
from arangopy.exceptions import (
    ArangoServerException,
    DocumentNotFoundException,
    DocumentRevisionConflictException,
    UnexpectedArangoResponseException,
    _select_request_timeout,
    _TimeoutContext,
)
from arangopy.results import (
    ResponseNotFound,
    ResponseOk,
    ResponsePreconditionFailed,
    classify_response,
)
from arangopy.settings.defaults import (
    DOCUMENT_DELETE_SUCCESS_STATUSES,
    DOCUMENT_READ_SUCCESS_STATUSES,
    DOCUMENT_WRITE_SUCCESS_STATUSES,
    REVISION_MATCH_HEADER,
)
from arangopy.utils.api_commander import APIResponse
from arangopy.utils.request_tools import HttpMethod

if TYPE_CHECKING:
    from arangopy.collection import AsyncCollection, Collection


logger = logging.getLogger(__name__)


def _key_path(key: str) -> str:
    return quote(key, safe="")


def _validate_record(record: Any, *, operation: str) -> dict[str, Any]:
    """
    Make sure a server response is a full stored document, i.e. a dictionary
    with the identity fields set.
    """
    if not isinstance(record, dict) or not all(
        isinstance(record.get(field), str) for field in DOCUMENT_IDENTITY_FIELDS
    ):
        raise UnexpectedArangoResponseException(
            text=f"Faulty response from {operation} (identity fields missing).",
            raw_response=record,
        )
    return record


def _parse_fetch_response(response: APIResponse) -> dict[str, Any]:
    outcome = classify_response(response, ok_statuses=DOCUMENT_READ_SUCCESS_STATUSES)
    if isinstance(outcome, ResponseOk):
        return _validate_record(outcome.body, operation="get document")
    elif isinstance(outcome, ResponseNotFound):
        raise outcome.to_exception("get document", DocumentNotFoundException)
    else:
        raise outcome.to_exception("get document")


def _parse_create_response(response: APIResponse) -> str:
    """Return the key of the newly created document."""
    outcome = classify_response(response, ok_statuses=DOCUMENT_WRITE_SUCCESS_STATUSES)
    if isinstance(outcome, ResponseOk):
        body = outcome.body
        if not isinstance(body, dict) or not isinstance(
            body.get(DOCUMENT_KEY_FIELD), str
        ):
            raise UnexpectedArangoResponseException(
                text="Faulty response from create document (no '_key').",
                raw_response=body,
            )
        return body[DOCUMENT_KEY_FIELD]  # type: ignore[no-any-return]
    elif isinstance(outcome, ResponseNotFound):
        raise outcome.to_exception("create document", DocumentNotFoundException)
    else:
        raise outcome.to_exception("create document")


def _parse_update_response(response: APIResponse) -> str:
    """Return the new revision of the updated document."""
    outcome = classify_response(response, ok_statuses=DOCUMENT_WRITE_SUCCESS_STATUSES)
    if isinstance(outcome, ResponseOk):
        body = outcome.body
        if not isinstance(body, dict) or not isinstance(
            body.get(DOCUMENT_REVISION_FIELD), str
        ):
            raise UnexpectedArangoResponseException(
                text="Faulty response from update document (no '_rev').",
                raw_response=body,
            )
        return body[DOCUMENT_REVISION_FIELD]  # type: ignore[no-any-return]
    elif isinstance(outcome, ResponseNotFound):
        raise outcome.to_exception("update document", DocumentNotFoundException)
    elif isinstance(outcome, ResponsePreconditionFailed):
        raise outcome.to_exception(
            "update document", DocumentRevisionConflictException
        )
    else:
        raise outcome.to_exception("update document")


def _parse_delete_response(response: APIResponse) -> bool:
    outcome = classify_response(
        response, ok_statuses=DOCUMENT_DELETE_SUCCESS_STATUSES
    )
    if isinstance(outcome, ResponseOk):
        return True
    elif isinstance(outcome, (ResponseNotFound, ResponsePreconditionFailed)):
        # already gone, or changed on the server since it was read
        return False
    else:
        raise outcome.to_exception("delete document")


class _BaseDocumentHandle(Generic[DOC]):
    """
    The state and local accessors shared by sync and async document handles.
    """

    _id: str
    _key: str
    _revision: str
    _data: DOC

    def __init__(self, *, record: dict[str, Any]) -> None:
        self._set_record(record)

    def _set_record(self, record: dict[str, Any]) -> None:
        _record = copy.deepcopy(
            _validate_record(record, operation="document record")
        )
        self._id = _record.pop(DOCUMENT_ID_FIELD)
        self._key = _record.pop(DOCUMENT_KEY_FIELD)
        self._revision = _record.pop(DOCUMENT_REVISION_FIELD)
        self._data = _record  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(id="{self._id}", '
            f'revision="{self._revision}", data={self._data})'
        )

    def __getitem__(self, field: str) -> Any:
        if field == DOCUMENT_ID_FIELD:
            return self._id
        elif field == DOCUMENT_KEY_FIELD:
            return self._key
        elif field == DOCUMENT_REVISION_FIELD:
            return self._revision
        return self._data[field]

    def __setitem__(self, field: str, value: Any) -> None:
        if field in DOCUMENT_IDENTITY_FIELDS:
            raise ValueError(f"Field '{field}' is assigned by the server.")
        self._data[field] = value  # type: ignore[index]

    def __delitem__(self, field: str) -> None:
        if field in DOCUMENT_IDENTITY_FIELDS:
            raise ValueError(f"Field '{field}' is assigned by the server.")
        del self._data[field]  # type: ignore[attr-defined]

    def __contains__(self, field: object) -> bool:
        return field in DOCUMENT_IDENTITY_FIELDS or field in self._data

    @property
    def id(self) -> str:
        """
        The full document identifier, "<collection name>/<key>",
        as assigned by the server.
        """

        return self._id

    @property
    def key(self) -> str:
        """The document key, unique within the collection."""

        return self._key

    @property
    def revision(self) -> str:
        """
        The revision token of the document as last known to this handle.
        It is refreshed by a successful `update` or `reload`.
        """

        return self._revision

    @property
    def data(self) -> DOC:
        """
        The payload of the document, i.e. all fields except `_id`, `_key`, `_rev`.
        This dictionary is owned by the handle and can be modified in place;
        changes are sent to the server by `update`.
        """

        return self._data

    def to_dict(self) -> dict[str, Any]:
        """
        Return the whole record as a new dictionary: a deep copy of the payload
        plus the identity fields.
        """

        return {
            **copy.deepcopy(self._data),
            DOCUMENT_ID_FIELD: self._id,
            DOCUMENT_KEY_FIELD: self._key,
            DOCUMENT_REVISION_FIELD: self._revision,
        }

    def _timeout_context(
        self,
        default_request_timeout_ms: int,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_request_timeout(
            default_request_timeout_ms=default_request_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)


class DocumentHandle(_BaseDocumentHandle[DOC]):
    """
    A document stored in a collection, bound to the collection it belongs to.
    This class has a synchronous interface.

    A handle carries the document payload together with its identity fields
    (`id`, `key`) and its current `revision`: it can therefore be updated or
    deleted directly, with optimistic concurrency control based on the revision.
    Mutations act in place on the same handle instance.

    A handle is not meant to be instantiated directly: it is obtained from
    the `get`, `create` and `query` methods of a Collection.

    Args:
        collection: the Collection the document belongs to.
        record: the full document as returned by the server, identity fields
            included. The handle keeps a private copy of it.

    Example:
        >>> handle = my_collection.get("alice")
        >>> handle["age"]
        30
        >>> handle["age"] = 31
        >>> handle.update()
        >>> handle.revision
        '_hWz1b3K---'
        >>> handle.delete()
        True
    """

    def __init__(
        self,
        *,
        collection: Collection[DOC],
        record: dict[str, Any],
    ) -> None:
        self._collection = collection
        super().__init__(record=record)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, DocumentHandle):
            return all(
                [
                    self._collection == other._collection,
                    self.to_dict() == other.to_dict(),
                ]
            )
        else:
            return False

    @property
    def collection(self) -> Collection[DOC]:
        """The Collection this document belongs to."""

        return self._collection

    def _timeout_ctx(
        self, request_timeout_ms: int | None, timeout_ms: int | None
    ) -> _TimeoutContext:
        return self._timeout_context(
            self._collection.api_options.timeout_options.request_timeout_ms,
            request_timeout_ms,
            timeout_ms,
        )

    def update(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Write the current contents of this handle to the server.

        The whole record is sent (identity fields included) and the server is
        asked to check the revision: if the document was modified on the server
        since this handle last read it, the update is rejected.
        On success the new revision returned by the server replaces the one
        in this handle, everything else is left as is.
        On failure the handle is left untouched.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the HTTP request.
                If not provided, the collection defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Raises:
            DocumentRevisionConflictException: the document revision on the
                server differs from this handle's (HTTP 412).
            DocumentNotFoundException: the document does not exist anymore.
            ArangoServerException: for any other failure status.
        """

        logger.info(f"updating document '{self._id}'")
        response = self._collection._api_commander.request(
            http_method=HttpMethod.PATCH,
            additional_path=_key_path(self._key),
            payload=self.to_dict(),
            request_params={"ignoreRevs": "false"},
            timeout_context=self._timeout_ctx(request_timeout_ms, timeout_ms),
        )
        new_revision = _parse_update_response(response)
        self._revision = new_revision
        logger.info(f"finished updating document '{self._id}'")

    def delete(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> bool:
        """
        Delete this document from the server, provided its revision there still
        matches the one in this handle.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the HTTP request.
                If not provided, the collection defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            True if the document was deleted; False if there was nothing to
                delete, either because the document does not exist anymore or
                because its revision changed on the server.

        Raises:
            ArangoServerException: for any other failure status.
        """

        logger.info(f"deleting document '{self._id}'")
        response = self._collection._api_commander.request(
            http_method=HttpMethod.DELETE,
            additional_path=_key_path(self._key),
            headers={REVISION_MATCH_HEADER: self._revision},
            timeout_context=self._timeout_ctx(request_timeout_ms, timeout_ms),
        )
        deleted = _parse_delete_response(response)
        logger.info(f"finished deleting document '{self._id}'")
        return deleted

    def reload(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Read the document anew from the server, replacing the payload and the
        revision of this handle (local unsaved changes are discarded).

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the HTTP request.
                If not provided, the collection defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Raises:
            DocumentNotFoundException: the document does not exist anymore.
            ArangoServerException: for any other failure status.
        """

        logger.info(f"reloading document '{self._id}'")
        response = self._collection._api_commander.request(
            http_method=HttpMethod.GET,
            additional_path=_key_path(self._key),
            timeout_context=self._timeout_ctx(request_timeout_ms, timeout_ms),
        )
        self._set_record(_parse_fetch_response(response))
        logger.info(f"finished reloading document '{self._id}'")


class AsyncDocumentHandle(_BaseDocumentHandle[DOC]):
    """
    A document stored in a collection, bound to the collection it belongs to.
    This class has an asynchronous interface.

    Other than the async methods, this class behaves exactly like
    DocumentHandle: please refer to its documentation for details.

    Example:
        >>> handle = await my_async_collection.get("alice")
        >>> handle["age"] = 31
        >>> await handle.update()
        >>> await handle.delete()
        True
    """

    def __init__(
        self,
        *,
        collection: AsyncCollection[DOC],
        record: dict[str, Any],
    ) -> None:
        self._collection = collection
        super().__init__(record=record)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncDocumentHandle):
            return all(
                [
                    self._collection == other._collection,
                    self.to_dict() == other.to_dict(),
                ]
            )
        else:
            return False

    @property
    def collection(self) -> AsyncCollection[DOC]:
        """The AsyncCollection this document belongs to."""

        return self._collection

    def _timeout_ctx(
        self, request_timeout_ms: int | None, timeout_ms: int | None
    ) -> _TimeoutContext:
        return self._timeout_context(
            self._collection.api_options.timeout_options.request_timeout_ms,
            request_timeout_ms,
            timeout_ms,
        )

    async def update(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Write the current contents of this handle to the server.
        See `DocumentHandle.update`.
        """

        logger.info(f"updating document '{self._id}', async")
        response = await self._collection._api_commander.async_request(
            http_method=HttpMethod.PATCH,
            additional_path=_key_path(self._key),
            payload=self.to_dict(),
            request_params={"ignoreRevs": "false"},
            timeout_context=self._timeout_ctx(request_timeout_ms, timeout_ms),
        )
        new_revision = _parse_update_response(response)
        self._revision = new_revision
        logger.info(f"finished updating document '{self._id}', async")

    async def delete(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> bool:
        """
        Delete this document from the server if its revision still matches.
        See `DocumentHandle.delete`.
        """

        logger.info(f"deleting document '{self._id}', async")
        response = await self._collection._api_commander.async_request(
            http_method=HttpMethod.DELETE,
            additional_path=_key_path(self._key),
            headers={REVISION_MATCH_HEADER: self._revision},
            timeout_context=self._timeout_ctx(request_timeout_ms, timeout_ms),
        )
        deleted = _parse_delete_response(response)
        logger.info(f"finished deleting document '{self._id}', async")
        return deleted

    async def reload(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Read the document anew from the server. See `DocumentHandle.reload`.
        """

        logger.info(f"reloading document '{self._id}', async")
        response = await self._collection._api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=_key_path(self._key),
            timeout_context=self._timeout_ctx(request_timeout_ms, timeout_ms),
        )
        self._set_record(_parse_fetch_response(response))
        logger.info(f"finished reloading document '{self._id}', async")
