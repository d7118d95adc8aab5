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

from typing import Any, Dict, Optional, Tuple, TypeVar

DefaultDocumentType = Dict[str, Any]
BindVarsType = Dict[str, Any]
CallerType = Tuple[Optional[str], Optional[str]]

# Names of the server-assigned identity fields of every stored document
DOCUMENT_ID_FIELD = "_id"
DOCUMENT_KEY_FIELD = "_key"
DOCUMENT_REVISION_FIELD = "_rev"
DOCUMENT_IDENTITY_FIELDS = (
    DOCUMENT_ID_FIELD,
    DOCUMENT_KEY_FIELD,
    DOCUMENT_REVISION_FIELD,
)

DOC = TypeVar("DOC", bound=Dict[str, Any])
T = TypeVar("T")
TNEW = TypeVar("TNEW")
