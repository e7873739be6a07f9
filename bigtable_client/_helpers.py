# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
from __future__ import annotations

import datetime
from typing import Any

from google.api_core import exceptions as core_exceptions
from google.api_core.retry import Retry

"""
Helper functions used in various places in the library.
"""

# INTERNAL errors carrying one of these messages come from a connection that
# was torn down mid-request and are safe to retry.
_RETRYABLE_INTERNAL_ERROR_MESSAGES = (
    "rst_stream",
    "rst stream",
    "received unexpected eos on data frame from server",
)

_RETRYABLE_ADMIN_ERRORS = (
    core_exceptions.DeadlineExceeded,
    core_exceptions.ServiceUnavailable,
    core_exceptions.Aborted,
)


def _is_retryable_internal_error(exc: Exception) -> bool:
    """
    Returns True for INTERNAL errors caused by a reset HTTP/2 stream.
    """
    if not isinstance(exc, core_exceptions.InternalServerError):
        return False
    message = str(exc.message or exc).lower()
    return any(text in message for text in _RETRYABLE_INTERNAL_ERROR_MESSAGES)


def _is_retryable_admin_error(exc: Exception) -> bool:
    """
    Predicate for retrying idempotent admin calls.
    """
    if isinstance(exc, _RETRYABLE_ADMIN_ERRORS):
        return True
    return _is_retryable_internal_error(exc)


DEFAULT_ADMIN_RETRY = Retry(
    predicate=_is_retryable_admin_error,
    initial=0.1,
    maximum=2.0,
    multiplier=1.2,
    deadline=60.0,
)
"""The retry strategy applied to idempotent admin reads and lists."""


def _last_segment(name: str) -> str:
    """
    Returns the final path component of a resource name.

    ``projects/p/instances/i/clusters/c`` -> ``c``
    """
    return name[name.rfind("/") + 1 :]


def _field_mask(paths: list[str]) -> dict[str, Any]:
    """
    Builds the dict form of a ``google.protobuf.FieldMask``.
    """
    return {"paths": list(paths)}


def _is_zero_duration(value: datetime.timedelta | None) -> bool:
    return value is None or value == datetime.timedelta(0)


def _wait_for_operation(operation, timeout=None):
    """
    Blocks on a long-running operation and returns its result.

    ``timeout`` is forwarded to :meth:`google.api_core.operation.Operation.result`;
    ``None`` waits without a limit.
    """
    return operation.result(timeout=timeout)
