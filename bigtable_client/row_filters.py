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

"""Row filters for reads and conditional mutations.

Filters form a tree: leaves select or transform cells, and
:class:`RowFilterChain`, :class:`RowFilterUnion` and
:class:`ConditionalRowFilter` combine them. ``to_pb`` turns a tree into a
``google.bigtable.v2.RowFilter`` message.

Regular expressions use `RE2 syntax`_ and are matched against raw bytes,
so ``\\C`` is the true wildcard and ``.`` does not match ``\\n``.

.. _RE2 syntax: https://github.com/google/re2/wiki/Syntax
"""

import struct

from google.cloud._helpers import _microseconds_from_datetime  # type: ignore
from google.cloud._helpers import _to_bytes  # type: ignore
from google.cloud.bigtable_v2.types import data as data_v2_pb2

_PACK_I64 = struct.Struct(">q").pack


def _encode_value(value):
    """Integers are stored as 8-byte big-endian, like ``set_cell`` does."""
    if isinstance(value, int):
        return _PACK_I64(value)
    return value


class RowFilter(object):
    """Base of all row filters.

    Subclasses provide ``to_pb`` and ``_key``; filters compare equal when
    they have the same type and key.
    """

    def to_pb(self):
        raise NotImplementedError

    def _key(self):
        raise NotImplementedError

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not self == other


class _FieldFilter(RowFilter):
    """Filter that sets a single scalar field of ``RowFilter``."""

    _field = None

    def _value(self):
        raise NotImplementedError

    def _key(self):
        return self._value()

    def to_pb(self):
        return data_v2_pb2.RowFilter(**{self._field: self._value()})


class _BoolFilter(_FieldFilter):
    def __init__(self, flag):
        self.flag = flag

    def _value(self):
        return self.flag


class SinkFilter(_BoolFilter):
    """Send matching cells straight to the output, skipping parent filters.

    Not allowed inside a :class:`ConditionalRowFilter`.
    """

    _field = "sink"


class PassAllFilter(_BoolFilter):
    """Match every cell."""

    _field = "pass_all_filter"


class BlockAllFilter(_BoolFilter):
    """Match no cell; handy for switching off one branch of a tree."""

    _field = "block_all_filter"


class StripValueTransformerFilter(_BoolFilter):
    """Replace every cell value with the empty string."""

    _field = "strip_value_transformer"


class _RegexFilter(_FieldFilter):
    """Filter on an RE2 pattern; ``str`` patterns are ASCII encoded."""

    def __init__(self, regex):
        self.regex = _to_bytes(regex)

    def _value(self):
        return self.regex


class RowKeyRegexFilter(_RegexFilter):
    """Keep rows whose key matches ``regex``."""

    _field = "row_key_regex_filter"


class FamilyNameRegexFilter(_RegexFilter):
    """Keep cells of families matching ``regex``, which cannot contain ``:``."""

    _field = "family_name_regex_filter"


class ColumnQualifierRegexFilter(_RegexFilter):
    """Keep cells whose qualifier matches ``regex``, in any family."""

    _field = "column_qualifier_regex_filter"


class ValueRegexFilter(_RegexFilter):
    """Keep cells whose value matches ``regex``."""

    _field = "value_regex_filter"


class ExactValueFilter(ValueRegexFilter):
    """Keep cells whose value equals ``value``.

    :type value: bytes or str or int
    :param value: Integers are matched in their 8-byte big-endian form.
    """

    def __init__(self, value):
        super(ExactValueFilter, self).__init__(_encode_value(value))


class RowSampleFilter(_FieldFilter):
    """Keep each row with probability ``sample``, strictly between 0 and 1."""

    _field = "row_sample_filter"

    def __init__(self, sample):
        self.sample = sample

    def _value(self):
        return self.sample


class _CellCountFilter(_FieldFilter):
    def __init__(self, num_cells):
        self.num_cells = num_cells

    def _value(self):
        return self.num_cells


class CellsRowOffsetFilter(_CellCountFilter):
    """Skip the first ``num_cells`` cells of each row."""

    _field = "cells_per_row_offset_filter"


class CellsRowLimitFilter(_CellCountFilter):
    """Keep the first ``num_cells`` cells of each row."""

    _field = "cells_per_row_limit_filter"


class CellsColumnLimitFilter(_CellCountFilter):
    """Keep the newest ``num_cells`` versions in each column."""

    _field = "cells_per_column_limit_filter"


class ApplyLabelFilter(_FieldFilter):
    """Tag output cells with ``label`` so union branches can be told apart.

    A cell carries at most one label. Labels are up to 15 characters of
    ``[a-z0-9\\-]``.
    """

    _field = "apply_label_transformer"

    def __init__(self, label):
        self.label = label

    def _value(self):
        return self.label


class TimestampRange(object):
    """Half-open time interval ``[start, end)``; either end may be omitted.

    Bigtable keeps millisecond timestamps, so ``to_pb`` rounds ``start``
    down and ``end`` up to whole milliseconds.
    """

    def __init__(self, start=None, end=None):
        self.start = start
        self.end = end

    def __eq__(self, other):
        if not isinstance(other, TimestampRange):
            return NotImplemented
        return (self.start, self.end) == (other.start, other.end)

    def __ne__(self, other):
        return not self == other

    def to_pb(self):
        """:rtype: :class:`.data_v2_pb2.TimestampRange`"""
        bounds = {}
        if self.start is not None:
            start_micros = _microseconds_from_datetime(self.start)
            bounds["start_timestamp_micros"] = start_micros - start_micros % 1000
        if self.end is not None:
            end_micros = _microseconds_from_datetime(self.end)
            bounds["end_timestamp_micros"] = -(-end_micros // 1000) * 1000
        return data_v2_pb2.TimestampRange(**bounds)


class TimestampRangeFilter(RowFilter):
    """Keep cells whose timestamp falls in a :class:`TimestampRange`."""

    def __init__(self, range_):
        self.range_ = range_

    def _key(self):
        return self.range_

    def to_pb(self):
        return data_v2_pb2.RowFilter(timestamp_range_filter=self.range_.to_pb())


def _range_bounds(prefix, start, end, inclusive_start, inclusive_end):
    """Range message fields, e.g. ``start_qualifier_closed``."""
    bounds = {}
    if start is not None:
        kind = "closed" if inclusive_start else "open"
        bounds["start_{}_{}".format(prefix, kind)] = _to_bytes(start)
    if end is not None:
        kind = "closed" if inclusive_end else "open"
        bounds["end_{}_{}".format(prefix, kind)] = _to_bytes(end)
    return bounds


def _check_inclusive(inclusive, bound, which):
    if inclusive is None:
        return True
    if bound is None:
        raise ValueError("inclusive_{0} given without a {0} bound".format(which))
    return inclusive


class ColumnRangeFilter(RowFilter):
    """Keep cells of one family whose qualifier lies in a range.

    Both bounds are optional and inclusive unless told otherwise.

    :raises: :class:`ValueError` when an ``inclusive_*`` flag is passed
             without its bound.
    """

    def __init__(
        self,
        column_family_id,
        start_column=None,
        end_column=None,
        inclusive_start=None,
        inclusive_end=None,
    ):
        self.column_family_id = column_family_id
        self.start_column = start_column
        self.end_column = end_column
        self.inclusive_start = _check_inclusive(inclusive_start, start_column, "start")
        self.inclusive_end = _check_inclusive(inclusive_end, end_column, "end")

    def _key(self):
        return (
            self.column_family_id,
            self.start_column,
            self.end_column,
            self.inclusive_start,
            self.inclusive_end,
        )

    def to_pb(self):
        column_range = data_v2_pb2.ColumnRange(
            family_name=self.column_family_id,
            **_range_bounds(
                "qualifier",
                self.start_column,
                self.end_column,
                self.inclusive_start,
                self.inclusive_end,
            )
        )
        return data_v2_pb2.RowFilter(column_range_filter=column_range)


class ValueRangeFilter(RowFilter):
    """Keep cells whose value lies in a range.

    Both bounds are optional and inclusive unless told otherwise. Integer
    bounds are compared in their 8-byte big-endian form.

    :raises: :class:`ValueError` when an ``inclusive_*`` flag is passed
             without its bound.
    """

    def __init__(
        self, start_value=None, end_value=None, inclusive_start=None, inclusive_end=None
    ):
        self.inclusive_start = _check_inclusive(inclusive_start, start_value, "start")
        self.inclusive_end = _check_inclusive(inclusive_end, end_value, "end")
        self.start_value = _encode_value(start_value)
        self.end_value = _encode_value(end_value)

    def _key(self):
        return (
            self.start_value,
            self.end_value,
            self.inclusive_start,
            self.inclusive_end,
        )

    def to_pb(self):
        value_range = data_v2_pb2.ValueRange(
            **_range_bounds(
                "value",
                self.start_value,
                self.end_value,
                self.inclusive_start,
                self.inclusive_end,
            )
        )
        return data_v2_pb2.RowFilter(value_range_filter=value_range)


class _FilterCombination(RowFilter):
    def __init__(self, filters=None):
        self.filters = [] if filters is None else filters

    def _key(self):
        return list(self.filters)

    def _children_pb(self):
        return [row_filter.to_pb() for row_filter in self.filters]


class RowFilterChain(_FilterCombination):
    """Apply ``filters`` one after another, each to the previous output."""

    def to_pb(self):
        return data_v2_pb2.RowFilter(
            chain=data_v2_pb2.RowFilter.Chain(filters=self._children_pb())
        )


class RowFilterUnion(_FilterCombination):
    """Apply every filter to the input and interleave their outputs.

    Cells with the same column and timestamp from different branches all
    appear, in no particular order.
    """

    def to_pb(self):
        return data_v2_pb2.RowFilter(
            interleave=data_v2_pb2.RowFilter.Interleave(filters=self._children_pb())
        )


class ConditionalRowFilter(RowFilter):
    """Apply ``true_filter`` to rows where ``base_filter`` matches a cell,
    ``false_filter`` to the others.

    A missing branch yields no cells. The predicate is not evaluated
    atomically with the branches, and the filter is slow on the server.
    """

    def __init__(self, base_filter, true_filter=None, false_filter=None):
        self.base_filter = base_filter
        self.true_filter = true_filter
        self.false_filter = false_filter

    def _key(self):
        return (self.base_filter, self.true_filter, self.false_filter)

    def to_pb(self):
        condition = {"predicate_filter": self.base_filter.to_pb()}
        if self.true_filter is not None:
            condition["true_filter"] = self.true_filter.to_pb()
        if self.false_filter is not None:
            condition["false_filter"] = self.false_filter.to_pb()
        return data_v2_pb2.RowFilter(
            condition=data_v2_pb2.RowFilter.Condition(**condition)
        )
