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

"""Client-side batching of row mutations with flow control.

Rows are buffered until ``flush_count`` rows or ``max_row_bytes`` bytes
are waiting, or until the flush timer fires. Batches are then sent through
:meth:`Table.mutate_rows` on a thread pool, with the total in-flight
mutations and bytes capped by :class:`_FlowControl`.
"""
import atexit
import concurrent.futures
import logging
import queue
import threading
from dataclasses import dataclass

from google.api_core.exceptions import from_grpc_status
from google.rpc import code_pb2

from bigtable_client.exceptions import MutationsBatchError

_LOGGER = logging.getLogger(__name__)

FLUSH_COUNT = 100

MAX_MUTATION_SIZE = 20 * 1024 * 1024

MAX_OUTSTANDING_BYTES = 100 * 1024 * 1024

MAX_OUTSTANDING_ELEMENTS = 100000


class _MutationsBatchQueue(object):
    """Thread-safe FIFO of rows that tracks their mutation count and size."""

    def __init__(self, max_mutation_bytes=MAX_MUTATION_SIZE, flush_count=FLUSH_COUNT):
        self._queue = queue.Queue()
        self._lock = threading.Lock()
        self.total_mutation_count = 0
        self.total_size = 0
        self.max_mutation_bytes = max_mutation_bytes
        self.flush_count = flush_count

    def _account(self, row, sign):
        with self._lock:
            self.total_mutation_count += sign * len(row._get_mutations())
            self.total_size += sign * row.get_mutations_size()

    def put(self, row):
        self._account(row, 1)
        self._queue.put(row)

    def get(self):
        """Pop the oldest row, or return ``None`` when empty."""
        try:
            row = self._queue.get_nowait()
        except queue.Empty:
            return None
        self._account(row, -1)
        return row

    def full(self):
        """True once a flush threshold is reached."""
        return (
            self._queue.qsize() >= self.flush_count
            or self.total_size >= self.max_mutation_bytes
        )

    def empty(self):
        return self._queue.empty()


@dataclass
class _BatchInfo:
    mutations_count: int = 0
    rows_count: int = 0
    mutations_size: int = 0

    def add(self, row):
        self.rows_count += 1
        self.mutations_count += len(row._get_mutations())
        self.mutations_size += row.get_mutations_size()


class _FlowControl(object):
    """Caps the mutations and bytes of all batches in flight.

    ``event`` is cleared while a cap is reached and set again once enough
    batches have been released.
    """

    def __init__(
        self,
        max_mutations=MAX_OUTSTANDING_ELEMENTS,
        max_mutation_bytes=MAX_OUTSTANDING_BYTES,
    ):
        self.max_mutations = max_mutations
        self.max_mutation_bytes = max_mutation_bytes
        self.inflight_mutations = 0
        self.inflight_size = 0
        self.event = threading.Event()
        self.event.set()
        self._lock = threading.Lock()

    def is_blocked(self):
        return (
            self.inflight_mutations >= self.max_mutations
            or self.inflight_size >= self.max_mutation_bytes
        )

    def _adjust(self, batch_info, sign):
        with self._lock:
            self.inflight_mutations += sign * batch_info.mutations_count
            self.inflight_size += sign * batch_info.mutations_size
            if self.is_blocked():
                self.event.clear()
            else:
                self.event.set()

    def control_flow(self, batch_info):
        """Count ``batch_info`` as in flight."""
        self._adjust(batch_info, 1)

    def release(self, batch_info):
        """Count ``batch_info`` as finished."""
        self._adjust(batch_info, -1)

    def wait(self):
        self.event.wait()


class MutationsBatcher(object):
    """Buffers :class:`~bigtable_client.row.DirectRow` objects and writes
    them in bulk.

    A row handed to :meth:`mutate` may only live in memory until the next
    flush, so a crash can lose it. Use one batcher per thread.

    Per-row failures are collected and raised together by :meth:`close` as
    :exc:`~bigtable_client.exceptions.MutationsBatchError`.

    :type table: :class:`~bigtable_client.table.Table`
    :param table: Table the rows are written to.

    :type flush_count: int
    :param flush_count: (Optional) Rows per batch.

    :type max_row_bytes: int
    :param max_row_bytes: (Optional) Mutation bytes per batch.

    :type flush_interval: float
    :param flush_interval: (Optional) Seconds between background flushes.
                           ``None`` or ``0`` turns the timer off.

    :type batch_completed_callback: callable
    :param batch_completed_callback: (Optional) Called with the list of
                                     ``google.rpc.Status`` of every batch.
    """

    def __init__(
        self,
        table,
        flush_count=FLUSH_COUNT,
        max_row_bytes=MAX_MUTATION_SIZE,
        flush_interval=1,
        batch_completed_callback=None,
    ):
        self.table = table
        self._rows = _MutationsBatchQueue(
            max_mutation_bytes=max_row_bytes, flush_count=flush_count
        )
        self.flow_control = _FlowControl()
        self.exceptions = queue.Queue()
        self._user_batch_completed_callback = batch_completed_callback
        self._closed = False

        self._executor = concurrent.futures.ThreadPoolExecutor()
        self._in_flight = {}
        self._in_flight_lock = threading.Lock()
        atexit.register(self.close)

        self._stop_timer = threading.Event()
        self._timer = None
        if flush_interval:
            self._timer = threading.Thread(
                target=self._flush_periodically, args=(flush_interval,), daemon=True
            )
            self._timer.start()

    @property
    def flush_count(self):
        return self._rows.flush_count

    @property
    def max_row_bytes(self):
        return self._rows.max_mutation_bytes

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.close()

    def mutate(self, row):
        """Buffer ``row``; a full buffer is sent in the background.

        :raises: :exc:`RuntimeError` once the batcher is closed.
        """
        if self._closed:
            raise RuntimeError("MutationsBatcher is closed")
        self._rows.put(row)
        if self._rows.full():
            self._flush_async()

    def mutate_rows(self, rows):
        for row in rows:
            self.mutate(row)

    def flush(self):
        """Send the buffered rows now and wait for background batches.

        :rtype: list
        :returns: Statuses of the rows sent by this call.
        """
        rows = list(iter(self._rows.get, None))
        statuses = self._flush_rows(rows)
        with self._in_flight_lock:
            pending = list(self._in_flight)
        concurrent.futures.wait(pending)
        return statuses

    def _flush_periodically(self, interval):
        while not self._stop_timer.wait(interval):
            if not self._rows.empty():
                self._flush_async()

    def _flush_async(self):
        row = self._rows.get()
        while row is not None:
            batch = [row]
            batch_info = _BatchInfo()
            batch_info.add(row)
            row = self._rows.get()
            while row is not None and self._row_fits_in_batch(row, batch_info):
                batch.append(row)
                batch_info.add(row)
                row = self._rows.get()

            self.flow_control.wait()
            self.flow_control.control_flow(batch_info)
            future = self._executor.submit(self._flush_rows, batch)
            with self._in_flight_lock:
                self._in_flight[future] = batch_info
            future.add_done_callback(self._batch_completed_callback)

    def _batch_completed_callback(self, future):
        with self._in_flight_lock:
            batch_info = self._in_flight.pop(future)
        self.flow_control.release(batch_info)

        exc = future.exception()
        if exc is not None:
            _LOGGER.warning("Batch of %d rows failed: %s", batch_info.rows_count, exc)
            self.exceptions.put(exc)

    def _row_fits_in_batch(self, row, batch_info):
        rows = batch_info.rows_count + 1
        mutations = batch_info.mutations_count + len(row._get_mutations())
        size = batch_info.mutations_size + row.get_mutations_size()
        return (
            rows <= self.flush_count
            and size <= min(self.max_row_bytes, self.flow_control.max_mutation_bytes)
            and mutations <= self.flow_control.max_mutations
        )

    def _flush_rows(self, rows):
        if not rows:
            return []
        statuses = self.table.mutate_rows(rows)
        if self._user_batch_completed_callback:
            self._user_batch_completed_callback(statuses)
        for status in statuses:
            if status.code != code_pb2.OK:
                exc = from_grpc_status(status.code, status.message)
                _LOGGER.warning("Row mutation failed in batch: %s", exc)
                self.exceptions.put(exc)
        return list(statuses)

    def close(self):
        """Stop the timer, flush and shut the thread pool down.

        :raises: :exc:`~bigtable_client.exceptions.MutationsBatchError`
                 when any row failed during the batcher's lifetime
                 or the final flush failed.
        """
        if self._closed:
            return
        self._closed = True
        self._stop_timer.set()
        if self._timer is not None:
            self._timer.join()
        try:
            self.flush()
        except Exception as exc:
            _LOGGER.warning("Final flush failed: %s", exc)
            self.exceptions.put(exc)
        finally:
            self._executor.shutdown(wait=True)
            atexit.unregister(self.close)
        if not self.exceptions.empty():
            raise MutationsBatchError(
                "Errors in batch mutations.", exc=list(self.exceptions.queue)
            )
