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

import datetime

import pytest


def _RowFilterPB(*args, **kw):
    from google.cloud.bigtable_v2.types import data as data_v2_pb2

    return data_v2_pb2.RowFilter(*args, **kw)


def test_bool_filter_eq_and_ne():
    from bigtable_client.row_filters import PassAllFilter
    from bigtable_client.row_filters import BlockAllFilter

    assert PassAllFilter(True) == PassAllFilter(True)
    assert PassAllFilter(True) != PassAllFilter(False)
    assert PassAllFilter(True) != BlockAllFilter(True)


@pytest.mark.parametrize(
    "class_name,field",
    [
        ("SinkFilter", "sink"),
        ("PassAllFilter", "pass_all_filter"),
        ("BlockAllFilter", "block_all_filter"),
        ("StripValueTransformerFilter", "strip_value_transformer"),
    ],
)
def test_bool_filter_to_pb(class_name, field):
    from bigtable_client import row_filters

    row_filter = getattr(row_filters, class_name)(True)
    assert row_filter.to_pb() == _RowFilterPB(**{field: True})


@pytest.mark.parametrize(
    "class_name,field",
    [
        ("RowKeyRegexFilter", "row_key_regex_filter"),
        ("FamilyNameRegexFilter", "family_name_regex_filter"),
        ("ColumnQualifierRegexFilter", "column_qualifier_regex_filter"),
        ("ValueRegexFilter", "value_regex_filter"),
    ],
)
def test_regex_filter_to_pb_encodes_str(class_name, field):
    from bigtable_client import row_filters

    row_filter = getattr(row_filters, class_name)("abc.*")
    assert row_filter.regex == b"abc.*"
    assert row_filter.to_pb() == _RowFilterPB(**{field: b"abc.*"})


def test_exact_value_filter_packs_int():
    from bigtable_client.row_filters import ExactValueFilter

    row_filter = ExactValueFilter(1)
    assert row_filter.regex == b"\x00\x00\x00\x00\x00\x00\x00\x01"
    assert row_filter.to_pb() == _RowFilterPB(value_regex_filter=row_filter.regex)


def test_row_sample_filter_to_pb():
    from bigtable_client.row_filters import RowSampleFilter

    assert RowSampleFilter(0.25).to_pb() == _RowFilterPB(row_sample_filter=0.25)


def test_timestamp_range_to_pb_rounds_to_millis():
    from google.cloud._helpers import _EPOCH
    from bigtable_client.row_filters import TimestampRange

    start = _EPOCH + datetime.timedelta(microseconds=1999)
    end = _EPOCH + datetime.timedelta(microseconds=5001)
    pb = TimestampRange(start=start, end=end).to_pb()

    assert pb.start_timestamp_micros == 1000
    assert pb.end_timestamp_micros == 6000


def test_timestamp_range_to_pb_open_ended():
    from google.cloud._helpers import _EPOCH
    from bigtable_client.row_filters import TimestampRange

    start = _EPOCH + datetime.timedelta(milliseconds=3)
    pb = TimestampRange(start=start).to_pb()

    assert pb.start_timestamp_micros == 3000
    assert pb.end_timestamp_micros == 0


def test_timestamp_range_filter_to_pb():
    from google.cloud._helpers import _EPOCH
    from google.cloud.bigtable_v2.types import data as data_v2_pb2
    from bigtable_client.row_filters import TimestampRange
    from bigtable_client.row_filters import TimestampRangeFilter

    end = _EPOCH + datetime.timedelta(milliseconds=2)
    row_filter = TimestampRangeFilter(TimestampRange(end=end))

    assert row_filter.to_pb() == _RowFilterPB(
        timestamp_range_filter=data_v2_pb2.TimestampRange(end_timestamp_micros=2000)
    )


def test_column_range_filter_inclusive_without_column():
    from bigtable_client.row_filters import ColumnRangeFilter

    with pytest.raises(ValueError):
        ColumnRangeFilter("fam", inclusive_start=True)
    with pytest.raises(ValueError):
        ColumnRangeFilter("fam", inclusive_end=False)


def test_column_range_filter_to_pb():
    from google.cloud.bigtable_v2.types import data as data_v2_pb2
    from bigtable_client.row_filters import ColumnRangeFilter

    row_filter = ColumnRangeFilter(
        "fam", start_column=b"a", end_column="z", inclusive_end=False
    )
    expected = data_v2_pb2.ColumnRange(
        family_name="fam", start_qualifier_closed=b"a", end_qualifier_open=b"z"
    )
    assert row_filter.to_pb() == _RowFilterPB(column_range_filter=expected)


def test_value_range_filter_packs_ints():
    from google.cloud.bigtable_v2.types import data as data_v2_pb2
    from bigtable_client.row_filters import ValueRangeFilter

    row_filter = ValueRangeFilter(start_value=1, end_value=2, inclusive_start=False)
    expected = data_v2_pb2.ValueRange(
        start_value_open=b"\x00" * 7 + b"\x01",
        end_value_closed=b"\x00" * 7 + b"\x02",
    )
    assert row_filter.to_pb() == _RowFilterPB(value_range_filter=expected)


def test_value_range_filter_inclusive_without_value():
    from bigtable_client.row_filters import ValueRangeFilter

    with pytest.raises(ValueError):
        ValueRangeFilter(inclusive_start=False)


@pytest.mark.parametrize(
    "class_name,field",
    [
        ("CellsRowOffsetFilter", "cells_per_row_offset_filter"),
        ("CellsRowLimitFilter", "cells_per_row_limit_filter"),
        ("CellsColumnLimitFilter", "cells_per_column_limit_filter"),
    ],
)
def test_cell_count_filter_to_pb(class_name, field):
    from bigtable_client import row_filters

    assert getattr(row_filters, class_name)(7).to_pb() == _RowFilterPB(**{field: 7})


def test_apply_label_filter_to_pb():
    from bigtable_client.row_filters import ApplyLabelFilter

    assert ApplyLabelFilter("label").to_pb() == _RowFilterPB(
        apply_label_transformer="label"
    )


def test_row_filter_chain_to_pb():
    from google.cloud.bigtable_v2.types import data as data_v2_pb2
    from bigtable_client.row_filters import CellsColumnLimitFilter
    from bigtable_client.row_filters import RowFilterChain
    from bigtable_client.row_filters import StripValueTransformerFilter

    first = StripValueTransformerFilter(True)
    second = CellsColumnLimitFilter(1)
    chain = RowFilterChain(filters=[first, second])

    assert chain.to_pb() == _RowFilterPB(
        chain=data_v2_pb2.RowFilter.Chain(filters=[first.to_pb(), second.to_pb()])
    )
    assert chain == RowFilterChain(filters=[first, second])


def test_row_filter_union_to_pb():
    from google.cloud.bigtable_v2.types import data as data_v2_pb2
    from bigtable_client.row_filters import RowFilterUnion
    from bigtable_client.row_filters import RowSampleFilter

    first = RowSampleFilter(0.5)
    union = RowFilterUnion(filters=[first])

    assert union.to_pb() == _RowFilterPB(
        interleave=data_v2_pb2.RowFilter.Interleave(filters=[first.to_pb()])
    )


def test_conditional_row_filter_to_pb_without_false_filter():
    from google.cloud.bigtable_v2.types import data as data_v2_pb2
    from bigtable_client.row_filters import ConditionalRowFilter
    from bigtable_client.row_filters import RowKeyRegexFilter
    from bigtable_client.row_filters import StripValueTransformerFilter

    base = RowKeyRegexFilter(b"key.*")
    true_filter = StripValueTransformerFilter(True)
    row_filter = ConditionalRowFilter(base, true_filter=true_filter)

    assert row_filter.to_pb() == _RowFilterPB(
        condition=data_v2_pb2.RowFilter.Condition(
            predicate_filter=base.to_pb(), true_filter=true_filter.to_pb()
        )
    )
    assert row_filter != ConditionalRowFilter(base)
