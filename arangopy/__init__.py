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

import importlib.metadata


def get_version() -> str:
    try:
        return importlib.metadata.version(__package__ or "arangopy")

    # not installed, e.g. running from a source checkout
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


__version__: str = get_version()


import arangopy.constants  # noqa: E402
import arangopy.cursors  # noqa: E402
from arangopy.client import ArangoClient  # noqa: E402
from arangopy.cursors import (  # noqa: E402
    AsyncQueryCursor,
    CursorOptions,
    CursorState,
    QueryCursor,
)
from arangopy.document import AsyncDocumentHandle, DocumentHandle  # noqa: E402

# A circular-import issue requires this to happen at the end of this module:
from arangopy.collection import AsyncCollection, Collection  # noqa: E402
from arangopy.database import AsyncDatabase, Database  # noqa: E402

__all__ = [
    "ArangoClient",
    "AsyncCollection",
    "AsyncDatabase",
    "AsyncDocumentHandle",
    "AsyncQueryCursor",
    "Collection",
    "CursorOptions",
    "CursorState",
    "Database",
    "DocumentHandle",
    "QueryCursor",
    "__version__",
]
