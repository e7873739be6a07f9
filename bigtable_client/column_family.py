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

"""Column families, their value types and the garbage collection rules
attached to them.

Every rule renders itself with ``str()`` in the notation the Bigtable tools
use, e.g. ``(versions() > 1 || age() > 7d)``.
"""

import datetime

from google.cloud.bigtable_admin_v2 import types as admin_types
from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2
from google.cloud.bigtable_admin_v2.types import (
    bigtable_table_admin as table_admin_v2_pb2,
)

from bigtable_client._helpers import _field_mask

_Modification = table_admin_v2_pb2.ModifyColumnFamiliesRequest.Modification


class GarbageCollectionRule(object):
    """Base of all GC rules.

    Subclasses implement ``to_pb`` and ``_key``. Two rules are equal when
    they have the same type and the same key.
    """

    def _key(self):
        raise NotImplementedError

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not self == other


class DefaultGCRule(GarbageCollectionRule):
    """Keep cells forever; the server-side default."""

    def _key(self):
        return ()

    def __str__(self):
        return ""

    def to_pb(self):
        return table_v2_pb2.GcRule()


class MaxVersionsGCRule(GarbageCollectionRule):
    """Keep at most ``max_num_versions`` cells per column.

    .. code:: python

        >>> str(MaxVersionsGCRule(2))
        'versions() > 2'
    """

    def __init__(self, max_num_versions):
        self.max_num_versions = max_num_versions

    def _key(self):
        return self.max_num_versions

    def __str__(self):
        return "versions() > {}".format(self.max_num_versions)

    def to_pb(self):
        return table_v2_pb2.GcRule(max_num_versions=self.max_num_versions)


class MaxAgeGCRule(GarbageCollectionRule):
    """Drop cells older than ``max_age``.

    :type max_age: :class:`datetime.timedelta`
    :param max_age: Age measured from the cell timestamp.
    """

    def __init__(self, max_age):
        self.max_age = max_age

    def _key(self):
        return self.max_age

    def __str__(self):
        return "age() > {}".format(_duration_string(self.max_age))

    def to_pb(self):
        return table_v2_pb2.GcRule(max_age=self.max_age)


class _CompositeGCRule(GarbageCollectionRule):
    _operator = None
    _field = None

    def __init__(self, rules):
        self.rules = rules

    def _key(self):
        return list(self.rules)

    def __str__(self):
        joiner = " {} ".format(self._operator)
        return "({})".format(joiner.join(str(rule) for rule in self.rules))

    def to_pb(self):
        nested = {"rules": [rule.to_pb() for rule in self.rules]}
        return table_v2_pb2.GcRule(**{self._field: nested})


class GCRuleUnion(_CompositeGCRule):
    """Collect a cell when any of ``rules`` matches it."""

    _operator = "||"
    _field = "union"


class GCRuleIntersection(_CompositeGCRule):
    """Collect a cell only when all of ``rules`` match it."""

    _operator = "&&"
    _field = "intersection"


# Largest first; the first unit dividing the duration evenly wins.
_DURATION_UNITS = (
    ("d", datetime.timedelta(days=1)),
    ("h", datetime.timedelta(hours=1)),
    ("m", datetime.timedelta(minutes=1)),
    ("s", datetime.timedelta(seconds=1)),
    ("ms", datetime.timedelta(milliseconds=1)),
)


def _duration_string(value):
    if not value:
        return "0s"
    for suffix, unit in _DURATION_UNITS:
        if value % unit == datetime.timedelta(0):
            return "{}{}".format(value // unit, suffix)
    return "{}us".format(value // datetime.timedelta(microseconds=1))


def int64_sum_type():
    """Value type of a family whose cells sum big-endian 64-bit integers.

    :rtype: :class:`google.cloud.bigtable_admin_v2.types.Type`
    """
    return admin_types.Type(
        aggregate_type=admin_types.Type.Aggregate(
            input_type=admin_types.Type(
                int64_type={"encoding": {"big_endian_bytes": {}}}
            ),
            sum={},
        )
    )


class ColumnFamily(object):
    """A column family of a table, with its GC rule and value type.

    A different ``column_family_id`` simply names another family.

    :type column_family_id: str
    :param column_family_id: Family ID, matching ``[_a-zA-Z0-9][-_.a-zA-Z0-9]*``.

    :type table: :class:`~bigtable_client.table.Table`
    :param table: Table holding the family.

    :type gc_rule: :class:`GarbageCollectionRule`
    :param gc_rule: (Optional) Rule sent on ``create`` and ``update``.

    :type value_type: :class:`google.cloud.bigtable_admin_v2.types.Type`
    :param value_type: (Optional) Type of the cells, e.g.
                       :func:`int64_sum_type` for a counter family written
                       with :meth:`~bigtable_client.row.DirectRow.add_to_cell`.
                       The aggregate part cannot change after creation.
    """

    def __init__(self, column_family_id, table, gc_rule=None, value_type=None):
        self.column_family_id = column_family_id
        self._table = table
        self.gc_rule = gc_rule
        self.value_type = value_type

    @property
    def name(self):
        """``<table name>/columnFamilies/<id>``"""
        return "{}/columnFamilies/{}".format(self._table.name, self.column_family_id)

    def _key(self):
        return (self.column_family_id, self._table, self.gc_rule, self.value_type)

    def __eq__(self, other):
        if not isinstance(other, ColumnFamily):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not self == other

    def to_pb(self):
        """:rtype: :class:`.table_v2_pb2.ColumnFamily`"""
        family_pb = table_v2_pb2.ColumnFamily()
        if self.gc_rule is not None:
            family_pb.gc_rule = self.gc_rule.to_pb()
        if self.value_type is not None:
            family_pb.value_type = self.value_type
        return family_pb

    def create(self):
        self._modify(_Modification(id=self.column_family_id, create=self.to_pb()))

    def update(self, ignore_warnings=False):
        """Write the GC rule and the value type, whichever are set.

        Nothing is sent when neither is set.

        :type ignore_warnings: bool
        :param ignore_warnings: (Optional) Skip the server's safety checks.
        """
        paths = []
        if self.gc_rule is not None:
            paths.append("gc_rule")
        if self.value_type is not None:
            paths.append("value_type")
        if not paths:
            return
        self._modify(
            _Modification(
                id=self.column_family_id,
                update=self.to_pb(),
                update_mask=_field_mask(paths),
            ),
            ignore_warnings=ignore_warnings,
        )

    def delete(self):
        """Drop the family and every cell stored in it."""
        self._modify(_Modification(id=self.column_family_id, drop=True))

    def _modify(self, modification, ignore_warnings=False):
        api = self._table._instance._client.table_admin_client
        api.modify_column_families(
            request={
                "name": self._table.name,
                "modifications": [modification],
                "ignore_warnings": ignore_warnings,
            }
        )


_RULE_DECODERS = {
    "max_num_versions": lambda pb: MaxVersionsGCRule(pb.max_num_versions),
    "max_age": lambda pb: MaxAgeGCRule(pb.max_age),
    "union": lambda pb: GCRuleUnion([_gc_rule_from_pb(r) for r in pb.union.rules]),
    "intersection": lambda pb: GCRuleIntersection(
        [_gc_rule_from_pb(r) for r in pb.intersection.rules]
    ),
}


def _gc_rule_from_pb(gc_rule_pb):
    """Decode a ``GcRule`` message.

    :rtype: :class:`GarbageCollectionRule`
    :returns: The matching rule, or ``None`` for an empty message.
    :raises: :class:`ValueError` for a rule kind this module does not know.
    """
    kind = table_v2_pb2.GcRule.pb(gc_rule_pb).WhichOneof("rule")
    if kind is None:
        return None
    try:
        decode = _RULE_DECODERS[kind]
    except KeyError:
        raise ValueError("Unknown GC rule kind: {}".format(kind))
    return decode(gc_rule_pb)
