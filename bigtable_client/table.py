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

"""Tables: schema administration plus the row-level data API."""

import logging
import warnings

from google.api_core import timeout as timeouts
from google.api_core.exceptions import Aborted
from google.api_core.exceptions import DeadlineExceeded
from google.api_core.exceptions import InternalServerError
from google.api_core.exceptions import NotFound
from google.api_core.exceptions import RetryError
from google.api_core.exceptions import ServiceUnavailable
from google.api_core.gapic_v1.method import DEFAULT
from google.api_core.retry import if_exception_type
from google.api_core.retry import Retry
from google.cloud._helpers import _to_bytes  # type: ignore
from google.cloud.bigtable_admin_v2.types import table as admin_messages_v2_pb2
from google.cloud.bigtable_v2.types import bigtable as data_messages_v2_pb2
from google.iam.v1 import options_pb2
from google.rpc import code_pb2
from google.rpc import status_pb2
from grpc import StatusCode

from bigtable_client import enums
from bigtable_client._consistency import _ConsistencyFuture
from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import _is_retryable_internal_error
from bigtable_client._helpers import _is_zero_duration
from bigtable_client._helpers import _wait_for_operation
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY
from bigtable_client.authorized_view import AuthorizedView
from bigtable_client.backup import Backup
from bigtable_client.batcher import FLUSH_COUNT
from bigtable_client.batcher import MAX_MUTATION_SIZE
from bigtable_client.batcher import MutationsBatcher
from bigtable_client.column_family import _gc_rule_from_pb
from bigtable_client.column_family import ColumnFamily
from bigtable_client.encryption_info import EncryptionInfo
from bigtable_client.exceptions import TableMismatchError
from bigtable_client.exceptions import TooManyMutationsError
from bigtable_client.policy import Policy
from bigtable_client.row import AppendRow
from bigtable_client.row import ConditionalRow
from bigtable_client.row import DirectRow
from bigtable_client.row_data import DEFAULT_RETRY_READ_ROWS
from bigtable_client.row_data import PartialRowsData
from bigtable_client.row_set import RowRange
from bigtable_client.row_set import RowSet
from bigtable_client.schema_bundle import SchemaBundle

_LOGGER = logging.getLogger(__name__)

# Server-side cap on the entries of one MutateRowsRequest.
_MAX_BULK_MUTATIONS = 100000

_CHANGE_STREAM_CONFIG = "change_stream_config"
_AUTOMATED_BACKUP_POLICY = "automated_backup_policy"
_DELETION_PROTECTION = "deletion_protection"

_RETRYABLE_RPC_ERRORS = (
    ServiceUnavailable,
    DeadlineExceeded,
    Aborted,
    InternalServerError,
)


class _BigtableRetryableError(Exception):
    """Signals :data:`DEFAULT_RETRY` that some rows should be sent again."""


DEFAULT_RETRY = Retry(
    predicate=if_exception_type(_BigtableRetryableError),
    initial=1.0,
    maximum=15.0,
    multiplier=2.0,
    deadline=120.0,
)
"""Backoff used by :meth:`Table.mutate_rows` for rows with transient failures.

Tune it with :meth:`~google.api_core.retry.Retry.with_delay` or
:meth:`~google.api_core.retry.Retry.with_deadline`.
"""


class AutomatedBackupPolicy(object):
    """Schedule on which the service backs a table up by itself.

    :type retention_period: :class:`datetime.timedelta`
    :param retention_period: (Optional) How long each automated backup is
                             kept.

    :type frequency: :class:`datetime.timedelta`
    :param frequency: (Optional) How often automated backups are taken.
    """

    def __init__(self, retention_period=None, frequency=None):
        self.retention_period = retention_period
        self.frequency = frequency

    @classmethod
    def from_pb(cls, policy_pb):
        return cls(
            retention_period=policy_pb.retention_period,
            frequency=policy_pb.frequency,
        )

    def _to_pb(self):
        return admin_messages_v2_pb2.Table.AutomatedBackupPolicy(
            retention_period=self.retention_period,
            frequency=self.frequency,
        )

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.retention_period == self.retention_period
            and other.frequency == self.frequency
        )

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "AutomatedBackupPolicy(retention_period={!r}, frequency={!r})".format(
            self.retention_period, self.frequency
        )


class TableInfo(object):
    """Schema-level description of a table, see :meth:`Table.get_table_info`.

    :type column_families: dict
    :param column_families: Column family IDs mapped to :class:`ColumnFamily`,
                            with their GC rules and value types.

    :type deletion_protection: bool
    :param deletion_protection: Whether the table is protected from deletion.

    :type change_stream_retention: :class:`datetime.timedelta`
    :param change_stream_retention: Change stream retention, or ``None`` when
                                    change streams are disabled.

    :type automated_backup_policy: :class:`AutomatedBackupPolicy`
    :param automated_backup_policy: The automated backup policy, or ``None``.
    """

    def __init__(
        self,
        column_families,
        deletion_protection=False,
        change_stream_retention=None,
        automated_backup_policy=None,
    ):
        self.column_families = column_families
        self.deletion_protection = deletion_protection
        self.change_stream_retention = change_stream_retention
        self.automated_backup_policy = automated_backup_policy

    @property
    def families(self):
        """list: sorted column family IDs."""
        return sorted(self.column_families)

    @property
    def value_types(self):
        """dict: family ID to its value type, ``None`` for plain bytes."""
        return {
            family_id: family.value_type
            for family_id, family in self.column_families.items()
        }

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.column_families == self.column_families
            and other.deletion_protection == self.deletion_protection
            and other.change_stream_retention == self.change_stream_retention
            and other.automated_backup_policy == self.automated_backup_policy
        )

    def __ne__(self, other):
        return not self == other


class Table(object):
    """A table inside a Bigtable instance.

    The handle is cheap: nothing is fetched until a method calls the server.
    Schema changes go through the table admin API. Row reads and writes go
    through the data API, addressed to the table itself or, when
    ``authorized_view_id`` is given, to one of its authorized views.

    :type table_id: str
    :param table_id: The ID of the table.

    :type instance: :class:`~bigtable_client.instance.Instance`
    :param instance: The instance that owns the table.

    :type mutation_timeout: int
    :param mutation_timeout: (Optional) Seconds allowed for each
                             ``MutateRows`` attempt.

    :type app_profile_id: str
    :param app_profile_id: (Optional) App profile sent with data requests.

    :type authorized_view_id: str
    :param authorized_view_id: (Optional) Send data requests to this
                               authorized view instead of the table.
    """

    def __init__(
        self,
        table_id,
        instance,
        mutation_timeout=None,
        app_profile_id=None,
        authorized_view_id=None,
    ):
        self.table_id = table_id
        self._instance = instance
        self._app_profile_id = app_profile_id
        self._authorized_view_id = authorized_view_id
        self.mutation_timeout = mutation_timeout

    @property
    def name(self):
        """``projects/{project}/instances/{instance}/tables/{table_id}``"""
        return "{}/tables/{}".format(self._instance.name, self.table_id)

    @property
    def authorized_view_name(self):
        """Full name of the authorized view used for data requests, or ``None``."""
        if self._authorized_view_id is None:
            return None
        return "{}/authorizedViews/{}".format(self.name, self._authorized_view_id)

    def _data_request(self, **kwargs):
        view_name = self.authorized_view_name
        if view_name is not None:
            request = {"authorized_view_name": view_name}
        else:
            request = {"table_name": self.name}
        if self._app_profile_id is not None:
            request["app_profile_id"] = self._app_profile_id
        request.update(kwargs)
        return request

    @property
    def _admin_api(self):
        return self._instance._client.table_admin_client

    @property
    def _data_api(self):
        return self._instance._client.table_data_client

    def get_iam_policy(self, requested_policy_version=None):
        """Fetch the IAM policy of the table.

        :type requested_policy_version: int
        :param requested_policy_version: (Optional) Policy format version to
                                         ask for. Version 3 is needed to see
                                         conditional bindings.

        :rtype: :class:`bigtable_client.policy.Policy`
        """
        request = {"resource": self.name}
        if requested_policy_version is not None:
            request["options"] = options_pb2.GetPolicyOptions(
                requested_policy_version=requested_policy_version
            )
        return Policy.from_pb(self._admin_api.get_iam_policy(request=request))

    def set_iam_policy(self, policy):
        """Replace the IAM policy of the table.

        :type policy: :class:`bigtable_client.policy.Policy`
        :param policy: The complete new policy. Use the ``etag`` from
                       :meth:`get_iam_policy` to avoid lost updates.

        :rtype: :class:`bigtable_client.policy.Policy`
        :returns: The policy as stored by the server.
        """
        response = self._admin_api.set_iam_policy(
            request={"resource": self.name, "policy": policy.to_pb()}
        )
        return Policy.from_pb(response)

    def test_iam_permissions(self, permissions):
        """Return the subset of ``permissions`` the caller holds on the table.

        :type permissions: list
        :param permissions: Permission names such as
                            ``bigtable.tables.readRows``. Wildcards are
                            rejected by the server.

        :rtype: list
        """
        response = self._admin_api.test_iam_permissions(
            request={"resource": self.name, "permissions": permissions}
        )
        return list(response.permissions)

    def column_family(self, column_family_id, gc_rule=None, value_type=None):
        """Factory for a :class:`.ColumnFamily` of this table.

        :type gc_rule: :class:`.GarbageCollectionRule`
        :param gc_rule: (Optional) ``None`` keeps the server default.

        :type value_type: :class:`google.cloud.bigtable_admin_v2.types.Type`
        :param value_type: (Optional) Cell type, e.g. an aggregate.
        """
        return ColumnFamily(
            column_family_id, self, gc_rule=gc_rule, value_type=value_type
        )

    def append_row(self, row_key):
        """Factory for a read-modify-write :class:`~bigtable_client.row.AppendRow`."""
        return AppendRow(row_key, self)

    def direct_row(self, row_key):
        """Factory for an unconditional :class:`~bigtable_client.row.DirectRow`."""
        return DirectRow(row_key, self)

    def conditional_row(self, row_key, filter_):
        """Factory for a :class:`~bigtable_client.row.ConditionalRow`.

        :type filter_: :class:`.RowFilter`
        :param filter_: Predicate choosing between the row's true and false
                        mutations.
        """
        return ConditionalRow(row_key, self, filter_=filter_)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.table_id == self.table_id
            and other._instance == self._instance
            and other._app_profile_id == self._app_profile_id
            and other._authorized_view_id == self._authorized_view_id
        )

    def __ne__(self, other):
        return not self == other

    def create(
        self,
        initial_split_keys=(),
        column_families=None,
        deletion_protection=None,
        change_stream_retention=None,
        automated_backup_policy=None,
    ):
        """Creates the table on the server.

        :type initial_split_keys: list
        :param initial_split_keys: (Optional) Row keys at which the new table
                                   is pre-split into tablets.

        :type column_families: dict
        :param column_families: (Optional) Family IDs mapped to a
                                :class:`GarbageCollectionRule`, to ``None``
                                for the default rule, or to a
                                :class:`.ColumnFamily` carrying a value type.

        :type deletion_protection: bool
        :param deletion_protection: (Optional) ``True``/``False``, or one of
                                    :class:`bigtable_client.enums.DeletionProtection`.
                                    Unset leaves the server default.

        :type change_stream_retention: :class:`datetime.timedelta`
        :param change_stream_retention: (Optional) Enables change streams with
                                        this retention period.

        :type automated_backup_policy: :class:`AutomatedBackupPolicy`
        :param automated_backup_policy: (Optional) Enables automated backups.
        """
        table_pb = admin_messages_v2_pb2.Table(
            column_families={
                family_id: self._family_pb(family_id, family)
                for family_id, family in (column_families or {}).items()
            }
        )
        protected = _deletion_protection_value(deletion_protection)
        if protected is not None:
            table_pb.deletion_protection = protected
        if not _is_zero_duration(change_stream_retention):
            table_pb.change_stream_config = admin_messages_v2_pb2.ChangeStreamConfig(
                retention_period=change_stream_retention
            )
        if automated_backup_policy is not None:
            table_pb.automated_backup_policy = automated_backup_policy._to_pb()

        self._admin_api.create_table(
            request={
                "parent": self._instance.name,
                "table_id": self.table_id,
                "table": table_pb,
                "initial_splits": [
                    {"key": _to_bytes(key)} for key in initial_split_keys
                ],
            }
        )

    def exists(self):
        """Check whether the table exists.

        :rtype: bool
        :returns: True if the table exists, else False.
        """
        try:
            self._admin_api.get_table(
                request={"name": self.name, "view": enums.Table.View.NAME_ONLY},
                retry=DEFAULT_ADMIN_RETRY,
            )
            return True
        except NotFound:
            return False

    def delete(self):
        """Delete this table."""
        self._admin_api.delete_table(request={"name": self.name})

    def _get_table(self, view):
        return self._admin_api.get_table(
            request={"name": self.name, "view": view}, retry=DEFAULT_ADMIN_RETRY
        )

    def _family_pb(self, family_id, family):
        if not isinstance(family, ColumnFamily):
            family = self.column_family(family_id, gc_rule=family)
        return family.to_pb()

    def _column_families_from_pb(self, table_pb):
        result = {}
        for column_family_id, value_pb in table_pb.column_families.items():
            value_type = None
            if "value_type" in value_pb:
                value_type = value_pb.value_type
            column_family = self.column_family(
                column_family_id,
                gc_rule=_gc_rule_from_pb(value_pb.gc_rule),
                value_type=value_type,
            )
            result[column_family_id] = column_family
        return result

    def list_column_families(self):
        """Fetch the column families and their GC rules.

        :rtype: dict
        :returns: Family IDs mapped to :class:`.ColumnFamily`.
        """
        table_pb = self._get_table(enums.Table.View.SCHEMA_VIEW)
        return self._column_families_from_pb(table_pb)

    def get_cluster_states(self):
        """Fetch how far each cluster has replicated the table.

        :rtype: dict
        :returns: Cluster IDs mapped to :class:`ClusterState`.
        """
        table_pb = self._get_table(enums.Table.View.REPLICATION_VIEW)
        return {
            cluster_id: ClusterState(value_pb.replication_state)
            for cluster_id, value_pb in table_pb.cluster_states.items()
        }

    def get_encryption_info(self):
        """Fetch the encryption state of the table in every cluster.

        A cluster lists one entry per key version still protecting data.

        :rtype: dict
        :returns: Cluster IDs mapped to lists of
                  :class:`bigtable_client.encryption_info.EncryptionInfo`.
        """
        table_pb = self._get_table(enums.Table.View.ENCRYPTION_VIEW)
        return {
            cluster_id: [
                EncryptionInfo._from_pb(info_pb)
                for info_pb in value_pb.encryption_info
            ]
            for cluster_id, value_pb in table_pb.cluster_states.items()
        }

    def get_table_info(self):
        """Fetch the schema-level settings of this table.

        :rtype: :class:`TableInfo`
        """
        table_pb = self._get_table(enums.Table.View.SCHEMA_VIEW)

        change_stream_retention = None
        if _CHANGE_STREAM_CONFIG in table_pb:
            retention = table_pb.change_stream_config.retention_period
            if not _is_zero_duration(retention):
                change_stream_retention = retention

        automated_backup_policy = None
        if _AUTOMATED_BACKUP_POLICY in table_pb:
            automated_backup_policy = AutomatedBackupPolicy.from_pb(
                table_pb.automated_backup_policy
            )

        return TableInfo(
            self._column_families_from_pb(table_pb),
            deletion_protection=table_pb.deletion_protection,
            change_stream_retention=change_stream_retention,
            automated_backup_policy=automated_backup_policy,
        )

    def _update_table(self, paths, timeout=None, **fields):
        table_pb = admin_messages_v2_pb2.Table(name=self.name, **fields)
        operation = self._admin_api.update_table(
            request={"table": table_pb, "update_mask": _field_mask(paths)}
        )
        return _wait_for_operation(operation, timeout=timeout)

    def update_deletion_protection(self, deletion_protection, timeout=None):
        """Turn deletion protection on or off.

        :type deletion_protection: bool
        :param deletion_protection: The new setting.

        :type timeout: float
        :param timeout: (Optional) Seconds to wait for the update to finish.

        :rtype: :class:`.admin_messages_v2_pb2.Table`
        :returns: The updated table.
        """
        return self._update_table(
            [_DELETION_PROTECTION],
            timeout=timeout,
            deletion_protection=bool(deletion_protection),
        )

    def update_change_stream_retention(self, retention, timeout=None):
        """Enable change streams or change their retention.

        :type retention: :class:`datetime.timedelta`
        :param retention: The new retention period. ``None`` (or zero)
                          disables change streams.

        :type timeout: float
        :param timeout: (Optional) Seconds to wait for the update to finish.

        :rtype: :class:`.admin_messages_v2_pb2.Table`
        :returns: The updated table.
        """
        if _is_zero_duration(retention):
            return self._update_table([_CHANGE_STREAM_CONFIG], timeout=timeout)

        return self._update_table(
            [_CHANGE_STREAM_CONFIG + ".retention_period"],
            timeout=timeout,
            change_stream_config=admin_messages_v2_pb2.ChangeStreamConfig(
                retention_period=retention
            ),
        )

    def update_automated_backup_policy(self, policy, timeout=None):
        """Set or disable the automated backup policy.

        :type policy: :class:`AutomatedBackupPolicy`
        :param policy: The new policy. Only its non-zero fields are updated.
                       ``None`` disables automated backups.

        :type timeout: float
        :param timeout: (Optional) Seconds to wait for the update to finish.

        :rtype: :class:`.admin_messages_v2_pb2.Table`
        :returns: The updated table.
        :raises: :class:`ValueError <exceptions.ValueError>` if both fields
                 of ``policy`` are unset or zero.
        """
        if policy is None:
            return self._update_table([_AUTOMATED_BACKUP_POLICY], timeout=timeout)

        paths = []
        if not _is_zero_duration(policy.retention_period):
            paths.append(_AUTOMATED_BACKUP_POLICY + ".retention_period")
        if not _is_zero_duration(policy.frequency):
            paths.append(_AUTOMATED_BACKUP_POLICY + ".frequency")
        if not paths:
            raise ValueError(
                "Invalid automated backup policy. To disable automated "
                "backups, pass None instead."
            )

        return self._update_table(
            paths, timeout=timeout, automated_backup_policy=policy._to_pb()
        )

    def generate_consistency_token(self):
        """Generates a token which tracks the writes made so far.

        :rtype: str
        :returns: The consistency token.
        """
        resp = self._admin_api.generate_consistency_token(request={"name": self.name})
        return resp.consistency_token

    def check_consistency(self, consistency_token):
        """Checks whether writes before ``consistency_token`` are replicated.

        :type consistency_token: str
        :param consistency_token: A token from
                                  :meth:`generate_consistency_token`.

        :rtype: bool
        :returns: True when replication has caught up.
        """
        resp = self._admin_api.check_consistency(
            request={"name": self.name, "consistency_token": consistency_token},
            retry=DEFAULT_ADMIN_RETRY,
        )
        return resp.consistent

    def wait_for_replication(self, timeout=None):
        """Blocks until writes made before the call are replicated to every
        cluster of the instance.

        :type timeout: float
        :param timeout: (Optional) Maximum seconds to wait. ``None`` waits
                        indefinitely.

        :rtype: bool
        :returns: True once replication has caught up.
        :raises: :class:`concurrent.futures.TimeoutError` if ``timeout``
                 elapses first.
        """
        future = _ConsistencyFuture(self, self.generate_consistency_token())
        return future.result(timeout=timeout)

    def read_row(self, row_key, filter_=None):
        """Fetch one row by key.

        :type row_key: bytes
        :param row_key: Key to look up.

        :type filter_: :class:`.RowFilter`
        :param filter_: (Optional) Restricts the cells returned.

        :rtype: :class:`.PartialRowData`
        :returns: The row, or :data:`None` when no cell survives.
        :raises: :class:`ValueError` if the stream yields a second row.
        """
        row_set = RowSet()
        row_set.add_row_key(row_key)
        result_iter = iter(self.read_rows(filter_=filter_, row_set=row_set))
        row = next(result_iter, None)
        if next(result_iter, None) is not None:
            raise ValueError("More than one row was returned.")
        return row

    def read_rows(
        self,
        start_key=None,
        end_key=None,
        limit=None,
        filter_=None,
        end_inclusive=False,
        row_set=None,
        retry=DEFAULT_RETRY_READ_ROWS,
        reversed=False,
    ):
        """Stream rows in key order, or in descending key order when
        ``reversed`` is set.

        Either pass a single key range through ``start_key`` / ``end_key``
        or a :class:`.RowSet`, not both.

        :type start_key: bytes
        :param start_key: (Optional) First key of the range, inclusive.

        :type end_key: bytes
        :param end_key: (Optional) Last key of the range, exclusive unless
                        ``end_inclusive`` is set. Unbounded when omitted.

        :type limit: int
        :param limit: (Optional) Maximum number of rows. Zero or ``None``
                      reads everything.

        :type filter_: :class:`.RowFilter`
        :param filter_: (Optional) Restricts the cells returned.

        :type end_inclusive: bool
        :param end_inclusive: (Optional) Close the range at ``end_key``.

        :type row_set: :class:`.RowSet`
        :param row_set: (Optional) Keys and ranges to read.

        :type retry: :class:`~google.api_core.retry.Retry`
        :param retry: (Optional) Policy used to resume a broken stream.

        :type reversed: bool
        :param reversed: (Optional) Scan from the last key to the first.

        :rtype: :class:`.PartialRowsData`
        :returns: An iterable of :class:`.PartialRowData`.
        """
        request_pb = _create_row_request(
            self.name,
            start_key=start_key,
            end_key=end_key,
            filter_=filter_,
            limit=limit,
            end_inclusive=end_inclusive,
            app_profile_id=self._app_profile_id,
            row_set=row_set,
            authorized_view_name=self.authorized_view_name,
            reversed=reversed,
        )
        return PartialRowsData(self._data_api.read_rows, request_pb, retry)

    def yield_rows(self, **kwargs):
        """Deprecated alias of :meth:`read_rows`."""
        warnings.warn(
            "`yield_rows()` is deprecated; use `read_rows()` instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.read_rows(**kwargs)

    def mutate_rows(self, rows, retry=DEFAULT_RETRY, timeout=DEFAULT):
        """Apply the pending mutations of many rows in one bulk call.

        Rows failing with a transient code are resent under ``retry`` until
        they succeed or the retry deadline runs out. Rows that succeeded have
        their mutations cleared. Failed rows keep theirs.

        :type rows: list
        :param rows: :class:`.DirectRow` instances.

        :type retry: :class:`~google.api_core.retry.Retry`
        :param retry: (Optional) Policy for resending failed rows. ``None``
                      sends once.

        :type timeout: float
        :param timeout: (Optional) Per-attempt timeout in seconds. Defaults
                        to the table's ``mutation_timeout``.

        :rtype: list
        :returns: One ``google.rpc.status_pb2.Status`` per row, in order.
        """
        if timeout is DEFAULT:
            timeout = self.mutation_timeout

        retryable_mutate_rows = _RetryableMutateRowsWorker(
            self._instance._client,
            self.name,
            rows,
            app_profile_id=self._app_profile_id,
            timeout=timeout,
            authorized_view_name=self.authorized_view_name,
        )
        return retryable_mutate_rows(retry=retry)

    def sample_row_keys(self):
        """Stream keys that split the table into chunks of similar size.

        Each response carries ``row_key`` and ``offset_bytes`` in key order.
        An empty ``row_key`` marks the end of the table.

        :returns: A cancellable stream of ``SampleRowKeysResponse``.
        """
        return self._data_api.sample_row_keys(request=self._data_request())

    def _drop_row_range(self, timeout, **kwargs):
        request = {"name": self.name}
        request.update(kwargs)
        if timeout:
            self._admin_api.drop_row_range(request=request, timeout=timeout)
        else:
            self._admin_api.drop_row_range(request=request)

    def truncate(self, timeout=None):
        """Delete every row, keeping the schema."""
        self._drop_row_range(timeout, delete_all_data_from_table=True)

    def drop_by_prefix(self, row_key_prefix, timeout=None):
        """Delete the rows whose keys begin with ``row_key_prefix``.

        :type row_key_prefix: bytes
        :param row_key_prefix: Non-empty key prefix.

        :type timeout: float
        :param timeout: (Optional) RPC timeout in seconds.

        :raises: :class:`ValueError` for an empty prefix.
        """
        row_key_prefix = _to_bytes(row_key_prefix)
        if not row_key_prefix:
            raise ValueError("Row key prefix cannot be empty")
        self._drop_row_range(timeout, row_key_prefix=row_key_prefix)

    def mutations_batcher(
        self,
        flush_count=FLUSH_COUNT,
        max_row_bytes=MAX_MUTATION_SIZE,
        flush_interval=1,
        batch_completed_callback=None,
    ):
        """Batcher that buffers rows and flushes them through ``mutate_rows``.

        A flush happens when ``flush_count`` rows or ``max_row_bytes`` bytes
        are buffered, or every ``flush_interval`` seconds.
        ``batch_completed_callback`` receives the statuses of each batch.

        :rtype: :class:`~bigtable_client.batcher.MutationsBatcher`
        """
        return MutationsBatcher(
            self,
            flush_count=flush_count,
            max_row_bytes=max_row_bytes,
            flush_interval=flush_interval,
            batch_completed_callback=batch_completed_callback,
        )

    def backup(self, backup_id, cluster_id=None, expire_time=None, **kwargs):
        """Backup handle whose source is this table.

        ``cluster_id`` is needed before any RPC and ``expire_time`` before
        ``create``. ``backup_type`` and ``hot_to_standard_time`` pass
        through to :class:`Backup`.

        :rtype: :class:`~bigtable_client.backup.Backup`
        """
        return Backup(
            backup_id,
            self._instance,
            cluster_id=cluster_id,
            table_id=self.table_id,
            expire_time=expire_time,
            **kwargs
        )

    def list_backups(self, cluster_id=None, filter_=None, order_by=None, page_size=0):
        """List the backups taken from this table.

        :type cluster_id: str
        :param cluster_id: (Optional) Restrict to one cluster. All clusters
                           of the instance are searched by default.

        :type filter_: str
        :param filter_: (Optional) Extra backup filter such as
                        ``state:READY``. It is ANDed with the source table
                        condition.

        :type order_by: str
        :param order_by: (Optional) Sort expression, e.g. ``"start_time desc"``.

        :type page_size: int
        :param page_size: (Optional) Page size of the underlying RPCs.

        :rtype: list of :class:`~bigtable_client.backup.Backup`
        """
        cluster_id = cluster_id or "-"

        backups_filter = "source_table:{}".format(self.name)
        if filter_:
            backups_filter = "({}) AND ({})".format(backups_filter, filter_)

        parent = "{}/clusters/{}".format(self._instance.name, cluster_id)
        request = {"parent": parent, "filter": backups_filter, "page_size": page_size}
        if order_by:
            request["order_by"] = order_by
        backup_list_pb = self._admin_api.list_backups(
            request=request, retry=DEFAULT_ADMIN_RETRY
        )

        return [Backup.from_pb(backup_pb, self._instance) for backup_pb in backup_list_pb]

    def restore(self, new_table_id, cluster_id=None, backup_id=None, backup_name=None):
        """Start restoring a backup into a new table of this instance.

        The backup is named either in full through ``backup_name`` or by
        ``cluster_id`` plus ``backup_id``. ``backup_name`` wins when both
        are given.

        :type new_table_id: str
        :param new_table_id: ID of the table to create. It must not exist.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: Operation whose result is the restored table.
        :raises: :class:`ValueError` when the backup cannot be named.
        """
        if not backup_name:
            if not (cluster_id and backup_id):
                raise ValueError(
                    "Either backup_name or both cluster_id and backup_id are required"
                )
            backup_name = "{}/clusters/{}/backups/{}".format(
                self._instance.name, cluster_id, backup_id
            )
        return self._admin_api.restore_table(
            request={
                "parent": self._instance.name,
                "table_id": new_table_id,
                "backup": backup_name,
            }
        )

    def authorized_view(
        self, authorized_view_id, subset_view=None, deletion_protection=None
    ):
        """Factory to create an authorized view of this table.

        :rtype: :class:`~bigtable_client.authorized_view.AuthorizedView`
        """
        return AuthorizedView(
            authorized_view_id,
            self,
            subset_view=subset_view,
            deletion_protection=deletion_protection,
        )

    def list_authorized_views(self):
        """List the authorized views of this table.

        :rtype: list of :class:`~bigtable_client.authorized_view.AuthorizedView`
        """
        resp = self._admin_api.list_authorized_views(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        return [AuthorizedView.from_pb(view_pb, self) for view_pb in resp]

    def schema_bundle(self, schema_bundle_id, proto_descriptors=None, etag=None):
        """Factory to create a schema bundle for this table.

        :rtype: :class:`~bigtable_client.schema_bundle.SchemaBundle`
        """
        return SchemaBundle(
            schema_bundle_id, self, proto_descriptors=proto_descriptors, etag=etag
        )

    def list_schema_bundles(self):
        """List the schema bundles of this table.

        :rtype: list of :class:`~bigtable_client.schema_bundle.SchemaBundle`
        """
        resp = self._admin_api.list_schema_bundles(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        return [SchemaBundle.from_pb(bundle_pb, self) for bundle_pb in resp]


class _RetryableMutateRowsWorker(object):
    """Sends ``MutateRows`` and resends only the rows that failed transiently.

    ``responses_statuses`` holds the latest status of every row. Once no
    row is retryable, further calls send nothing.
    """

    RETRY_CODES = (
        StatusCode.DEADLINE_EXCEEDED.value[0],
        StatusCode.ABORTED.value[0],
        StatusCode.UNAVAILABLE.value[0],
    )

    def __init__(
        self,
        client,
        table_name,
        rows,
        app_profile_id=None,
        timeout=None,
        authorized_view_name=None,
    ):
        self.client = client
        self.table_name = table_name
        self.authorized_view_name = authorized_view_name
        self.rows = rows
        self.app_profile_id = app_profile_id
        self.responses_statuses = [None] * len(self.rows)
        self.timeout = timeout
        self._last_rpc_error = None

    def __call__(self, retry=DEFAULT_RETRY):
        """Run attempts under ``retry`` and return the per-row statuses."""
        attempt = self._do_mutate_retryable_rows
        if retry:
            attempt = retry(attempt)

        try:
            attempt()
        except (_BigtableRetryableError, RetryError):
            # Retries exhausted or disabled; the statuses already hold the
            # outcome of the last attempt.
            self._record_rpc_error()

        return self.responses_statuses

    def _record_rpc_error(self):
        """Gives rows the RPC never answered the status of the last RPC error."""
        exc = self._last_rpc_error
        if exc is None:
            return
        code = code_pb2.UNKNOWN
        if exc.grpc_status_code is not None:
            code = exc.grpc_status_code.value[0]
        for index, status in enumerate(self.responses_statuses):
            if status is None:
                self.responses_statuses[index] = status_pb2.Status(
                    code=code, message=exc.message
                )

    @staticmethod
    def _is_retryable(status):
        return status is None or status.code in _RetryableMutateRowsWorker.RETRY_CODES

    def _do_mutate_retryable_rows(self):
        """One ``MutateRows`` call covering the rows that still need it.

        Unsent rows and rows whose last status is transient are included.

        :raises: :exc:`_BigtableRetryableError` while some row remains
                 retryable, :exc:`RuntimeError` when the server answers a
                 different number of entries than were sent.
        """
        pending = [
            index
            for index, status in enumerate(self.responses_statuses)
            if self._is_retryable(status)
        ]
        if not pending:
            return self.responses_statuses

        request_pb = _mutate_rows_request(
            self.table_name,
            [self.rows[index] for index in pending],
            app_profile_id=self.app_profile_id,
            authorized_view_name=self.authorized_view_name,
        )
        kwargs = {}
        if self.timeout is not None:
            kwargs["timeout"] = timeouts.ExponentialTimeout(deadline=self.timeout)

        _LOGGER.debug(
            "MutateRows attempt: %d of %d rows pending", len(pending), len(self.rows)
        )

        answered = 0
        still_retryable = 0
        try:
            stream = self.client.table_data_client.mutate_rows(
                request=request_pb, retry=None, **kwargs
            )
            for response in stream:
                for entry in response.entries:
                    answered += 1
                    row_index = pending[entry.index]
                    self.responses_statuses[row_index] = entry.status
                    if entry.status.code == code_pb2.OK:
                        self.rows[row_index].clear()
                    elif self._is_retryable(entry.status):
                        still_retryable += 1
        except _RETRYABLE_RPC_ERRORS as exc:
            # INTERNAL is only retried when the stream was reset.
            if isinstance(exc, InternalServerError) and not _is_retryable_internal_error(
                exc
            ):
                raise
            self._last_rpc_error = exc
            _LOGGER.debug("MutateRows failed with a retryable error: %s", exc)
            raise _BigtableRetryableError from exc

        if answered != len(pending):
            raise RuntimeError(
                "MutateRows answered {} of {} entries".format(answered, len(pending))
            )

        if still_retryable:
            _LOGGER.debug("MutateRows: %d rows still retryable", still_retryable)
            raise _BigtableRetryableError

        return self.responses_statuses


class ClusterState(object):
    """Replication state of a table in one cluster.

    :type replication_state: int
    :param replication_state: A ``Table.ClusterState.ReplicationState``
                              value, e.g. ``READY`` once the cluster serves
                              data requests for the table.
    """

    _STATE_NAMES = {
        enums.Table.ReplicationState.STATE_NOT_KNOWN: "STATE_NOT_KNOWN",
        enums.Table.ReplicationState.INITIALIZING: "INITIALIZING",
        enums.Table.ReplicationState.PLANNED_MAINTENANCE: "PLANNED_MAINTENANCE",
        enums.Table.ReplicationState.UNPLANNED_MAINTENANCE: "UNPLANNED_MAINTENANCE",
        enums.Table.ReplicationState.READY: "READY",
        enums.Table.ReplicationState.READY_OPTIMIZING: "READY_OPTIMIZING",
    }

    def __init__(self, replication_state):
        self.replication_state = replication_state

    def __repr__(self):
        return self._STATE_NAMES.get(self.replication_state, "STATE_NOT_KNOWN")

    def __eq__(self, other):
        if not isinstance(other, ClusterState):
            return False
        return self.replication_state == other.replication_state

    def __ne__(self, other):
        return not self == other


def _deletion_protection_value(deletion_protection):
    """Maps a bool or :class:`enums.DeletionProtection` to the wire value.

    :rtype: bool or None
    :returns: ``None`` when the server default should be used.
    """
    if deletion_protection is None or isinstance(deletion_protection, bool):
        return deletion_protection
    if deletion_protection == enums.DeletionProtection.PROTECTED:
        return True
    if deletion_protection == enums.DeletionProtection.UNPROTECTED:
        return False
    return None


def _create_row_request(
    table_name,
    start_key=None,
    end_key=None,
    filter_=None,
    limit=None,
    end_inclusive=False,
    app_profile_id=None,
    row_set=None,
    authorized_view_name=None,
    reversed=False,
):
    """Build a ``ReadRowsRequest``.

    A key range given by ``start_key`` / ``end_key`` is turned into a
    one-range :class:`.RowSet`. It cannot be combined with ``row_set``.
    The request targets ``authorized_view_name`` when one is given.

    :rtype: :class:`data_messages_v2_pb2.ReadRowsRequest`
    :raises: :class:`ValueError` when both a key range and ``row_set`` are
             passed.
    """
    has_range = start_key is not None or end_key is not None
    if has_range and row_set is not None:
        raise ValueError("Pass either a key range or a row set, not both")

    if authorized_view_name is not None:
        fields = {"authorized_view_name": authorized_view_name}
    else:
        fields = {"table_name": table_name}
    if filter_ is not None:
        fields["filter"] = filter_.to_pb()
    if limit is not None:
        fields["rows_limit"] = limit
    if app_profile_id is not None:
        fields["app_profile_id"] = app_profile_id
    if reversed:
        fields["reversed"] = True
    request_pb = data_messages_v2_pb2.ReadRowsRequest(**fields)

    if has_range:
        row_set = RowSet()
        row_set.add_row_range(RowRange(start_key, end_key, end_inclusive=end_inclusive))
    if row_set is not None:
        row_set._update_message_request(request_pb)
    return request_pb


def _mutate_rows_request(
    table_name, rows, app_profile_id=None, authorized_view_name=None
):
    """Build a ``MutateRowsRequest`` with one entry per row.

    :type rows: list
    :param rows: :class:`.DirectRow` instances bound to ``table_name`` or
                 to no table.

    :rtype: :class:`data_messages_v2_pb2.MutateRowsRequest`
    :raises: :exc:`~.exceptions.TooManyMutationsError` past the per-request
             mutation cap.
    """
    if authorized_view_name is not None:
        request_pb = data_messages_v2_pb2.MutateRowsRequest(
            authorized_view_name=authorized_view_name, app_profile_id=app_profile_id
        )
    else:
        request_pb = data_messages_v2_pb2.MutateRowsRequest(
            table_name=table_name, app_profile_id=app_profile_id
        )
    total = 0
    entries = []
    for row in rows:
        _check_row_table_name(table_name, row)
        _check_row_type(row)
        mutations = row._get_mutations()
        total += len(mutations)
        entries.append(
            data_messages_v2_pb2.MutateRowsRequest.Entry(
                row_key=row.row_key, mutations=mutations
            )
        )
    if total > _MAX_BULK_MUTATIONS:
        raise TooManyMutationsError(
            "{} mutations exceed the limit of {}".format(total, _MAX_BULK_MUTATIONS)
        )
    request_pb.entries.extend(entries)
    return request_pb


def _check_row_table_name(table_name, row):
    """Raise :exc:`~.exceptions.TableMismatchError` for a foreign row."""
    if row.table is not None and row.table.name != table_name:
        raise TableMismatchError(
            "Row {!r} belongs to {}, not {}".format(
                row.row_key, row.table.name, table_name
            )
        )


def _check_row_type(row):
    if not isinstance(row, DirectRow):
        raise TypeError(
            "Only DirectRow can be sent in bulk, got {}".format(type(row).__name__)
        )
