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

# Defaults/settings for database access
DEFAULT_DATABASE_NAME = "_system"
DEFAULT_API_PATH = "_api"
DATABASE_PATH_TEMPLATE = "_db/{database_name}"

# Defaults/settings for HTTP API requests
DEFAULT_REQUEST_TIMEOUT_MS = 10000
DEFAULT_AUTH_HEADER = "Authorization"
BEARER_AUTH_SCHEME = "bearer"
BASIC_AUTH_SCHEME = "Basic"
REVISION_MATCH_HEADER = "If-Match"

# Success statuses of the HTTP endpoints wrapped by the core
CURSOR_SUCCESS_STATUSES = frozenset({200, 201})
DOCUMENT_READ_SUCCESS_STATUSES = frozenset({200})
DOCUMENT_WRITE_SUCCESS_STATUSES = frozenset({201, 202})
DOCUMENT_DELETE_SUCCESS_STATUSES = frozenset(range(200, 300))

# Settings for redacting secrets in string representations and logging
SECRETS_REDACT_ENDING = "..."
SECRETS_REDACT_CHAR = "*"
SECRETS_REDACT_ENDING_LENGTH = 3
FIXED_SECRET_PLACEHOLDER = "***"
DEFAULT_REDACTED_HEADER_NAMES = {
    DEFAULT_AUTH_HEADER,
}
