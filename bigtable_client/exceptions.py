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
"""Exceptions raised by the handwritten client layer.

RPC failures are surfaced unchanged as
:class:`google.api_core.exceptions.GoogleAPICallError` subclasses; the
classes here cover conditions detected on the client side.
"""
from __future__ import annotations

from typing import Any, Sequence


class PartiallyUnavailableError(Exception):
    """A list request succeeded, but some locations could not be reached.

    The results that were returned are available on ``partial_results``, so
    callers that can tolerate missing locations can still use them.
    """

    def __init__(self, locations: Sequence[str], partial_results: Any = None):
        self.locations = list(locations)
        self.partial_results = partial_results
        super().__init__(
            f"Unavailable locations: {', '.join(self.locations)}"
        )


class TableMismatchError(ValueError):
    """A row bound to one table was sent through another."""


class TooManyMutationsError(ValueError):
    """A row or a bulk request carries more mutations than the server accepts."""


class InvalidChunk(RuntimeError):
    """A ``ReadRows`` chunk breaks the merge rules."""


class InvalidReadRowsResponse(RuntimeError):
    """A ``ReadRows`` response is out of order or otherwise malformed."""


class InvalidRetryRequest(RuntimeError):
    """Nothing is left to request when resuming a read stream."""


class MutationsBatchError(Exception):
    """One or more rows of a batcher flush failed.

    ``exc`` lists the per-row errors.
    """

    def __init__(self, message, exc):
        self.exc = exc
        self.message = message
        super().__init__(self.message)


class ClusterSyncError(RuntimeError):
    """A step of :meth:`Instance.sync_clusters` failed.

    ``results`` holds the :class:`UpdateInstanceResults` describing the
    changes that were applied before the failure; ``__cause__`` is the
    underlying error.
    """

    def __init__(self, message: str, results: Any):
        self.results = results
        super().__init__(message)
