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

"""Streaming ``ReadRows`` consumption with resumption after transient errors."""

import logging
import warnings

from google.api_core import exceptions
from google.api_core import retry

from bigtable_client._helpers import _is_retryable_internal_error
from bigtable_client.exceptions import InvalidChunk
from bigtable_client.exceptions import InvalidRetryRequest
from bigtable_client.row_merger import _RowMerger
from bigtable_client.row_merger import Cell
from bigtable_client.row_merger import PartialRowData
from google.cloud.bigtable_v2.types import bigtable as data_messages_v2_pb2
from google.cloud.bigtable_v2.types import data as data_v2_pb2

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "Cell",
    "InvalidChunk",
    "PartialRowData",
    "PartialRowsData",
    "DEFAULT_RETRY_READ_ROWS",
]

_RETRYABLE_READ_ERRORS = (
    exceptions.DeadlineExceeded,
    exceptions.ServiceUnavailable,
    exceptions.Aborted,
)


def _retry_read_rows_exception(exc):
    if isinstance(exc, _RETRYABLE_READ_ERRORS):
        return True
    return _is_retryable_internal_error(exc)


DEFAULT_RETRY_READ_ROWS = retry.Retry(
    predicate=_retry_read_rows_exception,
    initial=1.0,
    maximum=15.0,
    multiplier=2.0,
    deadline=60.0,
)
"""Policy for reopening a broken ``ReadRows`` stream: 60 seconds overall,
backing off from 1 to 15 seconds."""


class PartialRowsData(object):
    """Iterable over the rows of a ``ReadRows`` stream.

    When the stream breaks with a retryable error, the request is rewritten
    to skip everything up to ``last_scanned_row_key`` and the rows already
    returned, then reissued under ``retry``.

    :type read_method: callable
    :param read_method: The generated client's ``read_rows``.

    :type request: :class:`data_messages_v2_pb2.ReadRowsRequest`
    :param request: The original request.

    :type retry: :class:`~google.api_core.retry.Retry`
    :param retry: (Optional) Policy for reopening the stream.
    """

    def __init__(self, read_method, request, retry=DEFAULT_RETRY_READ_ROWS):
        self._counter = 0
        self._row_merger = _RowMerger(reversed=request.reversed)
        self.last_scanned_row_key = None
        self.read_method = read_method
        self.request = request
        self.retry = retry
        self.rows = {}
        self._cancelled = False
        self.response_iterator = read_method(request=request, retry=None)

    @property
    def state(self):
        """Name of the state the chunk merger is in."""
        return self._row_merger.state.name

    def cancel(self):
        """Stop iterating and close the stream."""
        self._cancelled = True
        cancel = getattr(self.response_iterator, "cancel", None)
        if cancel is not None:
            cancel()

    def consume_all(self, max_loops=None):
        """Deprecated: collect every row into ``self.rows`` keyed by row key.

        ``max_loops`` is ignored.
        """
        warnings.warn(
            "PartialRowsData.consume_all is deprecated; iterate instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        for row in self:
            self.rows[row.row_key] = row

    def _read_next(self):
        return next(self.response_iterator)

    def _read_next_response(self):
        """Helper for :meth:`__iter__`."""
        if self.retry is None:
            return self._read_next()
        return self.retry(self._read_next, on_error=self._on_error)()

    def _on_error(self, exc):
        """Helper for :meth:`__iter__`.

        Rebuilds the stream so that it resumes after the last row seen.
        """
        retry_request = self.request
        if self.last_scanned_row_key:
            retry_request = self._create_retry_request()
        _LOGGER.debug(
            "Resuming ReadRows after %r (%d rows read): %s",
            self.last_scanned_row_key,
            self._counter,
            exc,
        )

        self._row_merger = _RowMerger(
            self._row_merger.last_seen_row_key, reversed=self.request.reversed
        )
        self.response_iterator = self.read_method(request=retry_request, retry=None)

    def _create_retry_request(self):
        """Helper for :meth:`_on_error`."""
        manager = _ReadRowsRequestManager(
            self.request, self.last_scanned_row_key, self._counter
        )
        return manager.build_updated_request()

    def __iter__(self):
        """Yield rows in key order, reopening the stream on retryable errors."""
        while not self._cancelled:
            try:
                response = self._read_next_response()
            except StopIteration:
                self._row_merger.finalize()
                break
            except InvalidRetryRequest:
                self._cancelled = True
                break

            for row in self._row_merger.process_chunks(response):
                self.last_scanned_row_key = self._row_merger.last_seen_row_key
                self._counter += 1

                yield row

                if self._cancelled:
                    break
            # A response with no rows can still advance the scanned key.
            self.last_scanned_row_key = self._row_merger.last_seen_row_key


class _ReadRowsRequestManager(object):
    """Builds the request that resumes an interrupted ``ReadRows`` call.

    :type message: :class:`data_messages_v2_pb2.ReadRowsRequest`
    :param message: The request that was interrupted.

    :type last_scanned_key: bytes
    :param last_scanned_key: Largest key the server has reported.

    :type rows_read_so_far: int
    :param rows_read_so_far: Rows already returned, subtracted from
                             ``rows_limit``.
    """

    def __init__(self, message, last_scanned_key, rows_read_so_far):
        self.message = message
        self.last_scanned_key = last_scanned_key
        self.rows_read_so_far = rows_read_so_far

    def build_updated_request(self):
        """Copy the request without the keys and ranges already read."""
        resume_request = data_messages_v2_pb2.ReadRowsRequest()
        data_messages_v2_pb2.ReadRowsRequest.copy_from(resume_request, self.message)

        if self.message.rows_limit != 0:
            row_limit_remaining = self.message.rows_limit - self.rows_read_so_far
            if row_limit_remaining > 0:
                resume_request.rows_limit = row_limit_remaining
            else:
                raise InvalidRetryRequest

        # An empty row set means the whole table: resume just past the last key.
        if not self.message.rows.row_keys and not self.message.rows.row_ranges:
            if self.message.reversed:
                row_range = data_v2_pb2.RowRange(end_key_open=self.last_scanned_key)
            else:
                row_range = data_v2_pb2.RowRange(start_key_open=self.last_scanned_key)
            resume_request.rows = data_v2_pb2.RowSet(row_ranges=[row_range])
        else:
            row_keys = self._filter_rows_keys()
            row_ranges = self._filter_row_ranges()

            if len(row_keys) == 0 and len(row_ranges) == 0:
                # Everything requested has been read already.
                raise InvalidRetryRequest

            resume_request.rows = data_v2_pb2.RowSet(
                row_keys=row_keys, row_ranges=row_ranges
            )
        return resume_request

    def _filter_rows_keys(self):
        """Helper for :meth:`build_updated_request`"""
        if self.message.reversed:
            return [
                row_key
                for row_key in self.message.rows.row_keys
                if row_key < self.last_scanned_key
            ]
        return [
            row_key
            for row_key in self.message.rows.row_keys
            if row_key > self.last_scanned_key
        ]

    def _filter_row_ranges(self):
        """Helper for :meth:`build_updated_request`"""
        if self.message.reversed:
            return self._filter_row_ranges_reversed()
        new_row_ranges = []

        for row_range in self.message.rows.row_ranges:
            # An empty end key means "end of table".
            end_key = self._end_key_set(row_range)
            if end_key and self._key_already_read(end_key):
                continue

            # An empty start key means "beginning of table".
            start_key = self._start_key_set(row_range)
            retry_row_range = row_range
            if self._key_already_read(start_key):
                range_kwargs = {"start_key_open": self.last_scanned_key}
                if row_range.end_key_open:
                    range_kwargs["end_key_open"] = row_range.end_key_open
                elif row_range.end_key_closed:
                    range_kwargs["end_key_closed"] = row_range.end_key_closed
                retry_row_range = data_v2_pb2.RowRange(**range_kwargs)
            new_row_ranges.append(retry_row_range)

        return new_row_ranges

    def _filter_row_ranges_reversed(self):
        """Helper for :meth:`_filter_row_ranges`

        A reversed scan has read every key at or above the last one.
        """
        new_row_ranges = []

        for row_range in self.message.rows.row_ranges:
            start_key = self._start_key_set(row_range)
            if start_key and start_key >= self.last_scanned_key:
                continue

            end_key = self._end_key_set(row_range)
            retry_row_range = row_range
            if not end_key or end_key >= self.last_scanned_key:
                range_kwargs = {"end_key_open": self.last_scanned_key}
                if row_range.start_key_open:
                    range_kwargs["start_key_open"] = row_range.start_key_open
                elif row_range.start_key_closed:
                    range_kwargs["start_key_closed"] = row_range.start_key_closed
                retry_row_range = data_v2_pb2.RowRange(**range_kwargs)
            new_row_ranges.append(retry_row_range)

        return new_row_ranges

    def _key_already_read(self, key):
        """Helper for :meth:`_filter_row_ranges`"""
        return key <= self.last_scanned_key

    @staticmethod
    def _start_key_set(row_range):
        """Helper for :meth:`_filter_row_ranges`"""
        return row_range.start_key_open or row_range.start_key_closed or b""

    @staticmethod
    def _end_key_set(row_range):
        """Helper for :meth:`_filter_row_ranges`"""
        return row_range.end_key_open or row_range.end_key_closed or b""

