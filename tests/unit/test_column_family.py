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

import mock
import pytest

from tests.unit._testing import TABLE_NAME


def _GcRulePB(*args, **kw):
    from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

    return table_v2_pb2.GcRule(*args, **kw)


def _make_table():
    from tests.unit._testing import _make_table_admin_api

    table = mock.Mock(spec=["name", "_instance"])
    table.name = TABLE_NAME
    table._instance._client.table_admin_client = _make_table_admin_api()
    return table


def test_max_versions_gc_rule():
    from bigtable_client.column_family import MaxVersionsGCRule

    rule = MaxVersionsGCRule(2)
    assert rule.to_pb() == _GcRulePB(max_num_versions=2)
    assert str(rule) == "versions() > 2"
    assert rule == MaxVersionsGCRule(2)
    assert rule != MaxVersionsGCRule(3)


@pytest.mark.parametrize(
    "max_age,expected",
    [
        (datetime.timedelta(days=2), "age() > 2d"),
        (datetime.timedelta(hours=36), "age() > 36h"),
        (datetime.timedelta(seconds=90), "age() > 90s"),
        (datetime.timedelta(milliseconds=1500), "age() > 1500ms"),
        (datetime.timedelta(microseconds=7), "age() > 7us"),
    ],
)
def test_max_age_gc_rule_str(max_age, expected):
    from bigtable_client.column_family import MaxAgeGCRule

    assert str(MaxAgeGCRule(max_age)) == expected


def test_max_age_gc_rule_to_pb():
    from bigtable_client.column_family import MaxAgeGCRule

    max_age = datetime.timedelta(seconds=5)
    assert MaxAgeGCRule(max_age).to_pb() == _GcRulePB(max_age=max_age)


def test_nested_rules_round_trip():
    from bigtable_client.column_family import _gc_rule_from_pb
    from bigtable_client.column_family import GCRuleIntersection
    from bigtable_client.column_family import GCRuleUnion
    from bigtable_client.column_family import MaxAgeGCRule
    from bigtable_client.column_family import MaxVersionsGCRule

    rule = GCRuleUnion(
        [
            MaxVersionsGCRule(1),
            GCRuleIntersection(
                [
                    MaxAgeGCRule(datetime.timedelta(days=1)),
                    MaxVersionsGCRule(5),
                ]
            ),
        ]
    )

    assert _gc_rule_from_pb(rule.to_pb()) == rule
    assert str(rule) == "(versions() > 1 || (age() > 1d && versions() > 5))"


def test_gc_rule_from_empty_pb():
    from bigtable_client.column_family import _gc_rule_from_pb

    assert _gc_rule_from_pb(_GcRulePB()) is None


def test_default_gc_rule():
    from bigtable_client.column_family import DefaultGCRule

    assert DefaultGCRule().to_pb() == _GcRulePB()
    assert DefaultGCRule() == DefaultGCRule()
    assert str(DefaultGCRule()) == ""


def test_column_family_name_and_to_pb():
    from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2
    from bigtable_client.column_family import ColumnFamily
    from bigtable_client.column_family import MaxVersionsGCRule

    table = _make_table()
    family = ColumnFamily("cf", table, gc_rule=MaxVersionsGCRule(1))

    assert family.name == TABLE_NAME + "/columnFamilies/cf"
    assert family.to_pb() == table_v2_pb2.ColumnFamily(
        gc_rule=_GcRulePB(max_num_versions=1)
    )
    assert ColumnFamily("cf", table).to_pb() == table_v2_pb2.ColumnFamily()


@pytest.mark.parametrize("method", ["create", "delete"])
def test_column_family_modify(method):
    from google.cloud.bigtable_admin_v2.types import (
        bigtable_table_admin as table_admin_v2_pb2,
    )
    from bigtable_client.column_family import ColumnFamily
    from bigtable_client.column_family import MaxVersionsGCRule

    table = _make_table()
    family = ColumnFamily("cf", table, gc_rule=MaxVersionsGCRule(1))

    getattr(family, method)()

    if method == "delete":
        expected = table_admin_v2_pb2.ModifyColumnFamiliesRequest.Modification(
            id="cf", drop=True
        )
    else:
        expected = table_admin_v2_pb2.ModifyColumnFamiliesRequest.Modification(
            id="cf", **{method: family.to_pb()}
        )
    api = table._instance._client.table_admin_client
    api.modify_column_families.assert_called_once_with(
        request={
            "name": TABLE_NAME,
            "modifications": [expected],
            "ignore_warnings": False,
        }
    )


def _modification(**kw):
    from google.cloud.bigtable_admin_v2.types import (
        bigtable_table_admin as table_admin_v2_pb2,
    )

    return table_admin_v2_pb2.ModifyColumnFamiliesRequest.Modification(**kw)


def test_column_family_update_gc_rule():
    from bigtable_client.column_family import ColumnFamily
    from bigtable_client.column_family import MaxVersionsGCRule

    table = _make_table()
    family = ColumnFamily("cf", table, gc_rule=MaxVersionsGCRule(1))

    family.update(ignore_warnings=True)

    api = table._instance._client.table_admin_client
    api.modify_column_families.assert_called_once_with(
        request={
            "name": TABLE_NAME,
            "modifications": [
                _modification(
                    id="cf", update=family.to_pb(), update_mask={"paths": ["gc_rule"]}
                )
            ],
            "ignore_warnings": True,
        }
    )


def test_column_family_update_value_type():
    from google.cloud.bigtable_admin_v2 import types as admin_types
    from bigtable_client.column_family import ColumnFamily

    table = _make_table()
    string_type = admin_types.Type(string_type={"encoding": {"utf8_bytes": {}}})
    family = ColumnFamily("cf", table, value_type=string_type)

    family.update()

    api = table._instance._client.table_admin_client
    request = api.modify_column_families.call_args.kwargs["request"]
    (modification,) = request["modifications"]
    assert modification == _modification(
        id="cf", update=family.to_pb(), update_mask={"paths": ["value_type"]}
    )
    assert modification.update.value_type == string_type


def test_column_family_update_without_fields_sends_nothing():
    from bigtable_client.column_family import ColumnFamily

    table = _make_table()

    ColumnFamily("cf", table).update()

    table._instance._client.table_admin_client.modify_column_families.assert_not_called()


def test_int64_sum_type_family():
    from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2
    from bigtable_client.column_family import ColumnFamily
    from bigtable_client.column_family import int64_sum_type

    table = _make_table()
    family = ColumnFamily("sum", table, value_type=int64_sum_type())

    family_pb = table_v2_pb2.ColumnFamily.pb(family.to_pb())

    aggregate = family_pb.value_type.aggregate_type
    assert aggregate.HasField("sum")
    assert aggregate.input_type.int64_type.encoding.HasField("big_endian_bytes")
    assert family == ColumnFamily("sum", table, value_type=int64_sum_type())
    assert family != ColumnFamily("sum", table)
