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

"""Backups of Cloud Bigtable tables."""

import re

from google.api_core.exceptions import NotFound
from google.cloud.bigtable_admin_v2.types import table

from bigtable_client import enums
from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import _last_segment
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY
from bigtable_client.encryption_info import EncryptionInfo
from bigtable_client.policy import Policy

_BACKUP_NAME_RE = re.compile(
    r"^projects/(?P<project>[^/]+)/instances/(?P<instance_id>[^/]+)/"
    r"clusters/(?P<cluster_id>[^/]+)/backups/(?P<backup_id>[^/]+)$"
)


class Backup(object):
    """A backup of a table, stored in one cluster of an instance.

    :type backup_id: str
    :param backup_id: The ID of the backup.

    :type instance: :class:`~bigtable_client.instance.Instance`
    :param instance: The instance holding the backup.

    :type cluster_id: str
    :param cluster_id: (Optional) The cluster holding the backup. Every call
                       that names the backup needs it.

    :type table_id: str
    :param table_id: (Optional) The table to back up. Needed by :meth:`create`.

    :type expire_time: :class:`datetime.datetime`
    :param expire_time: (Optional) When the server deletes the backup. Needed
                        by :meth:`create`.

    :type backup_type: int
    :param backup_type: (Optional) One of
                        :class:`~bigtable_client.enums.Backup.BackupType`.

    :type hot_to_standard_time: :class:`datetime.datetime`
    :param hot_to_standard_time: (Optional) When a HOT backup turns into a
                                 STANDARD one. Setting it makes the backup HOT.
    """

    def __init__(
        self,
        backup_id,
        instance,
        cluster_id=None,
        table_id=None,
        expire_time=None,
        backup_type=None,
        hot_to_standard_time=None,
        encryption_info=None,
    ):
        self.backup_id = backup_id
        self._instance = instance
        self._cluster = cluster_id
        self.table_id = table_id
        self.expire_time = expire_time
        self._backup_type = backup_type
        self._hot_to_standard_time = hot_to_standard_time
        self._encryption_info = encryption_info

        # Filled in from the server by ``from_pb`` / ``reload``.
        self._source_table = None
        self._source_backup = None
        self._start_time = None
        self._end_time = None
        self._size_bytes = None
        self._state = None

    @property
    def _api(self):
        return self._instance._client.table_admin_client

    @property
    def cluster(self):
        """ID of the cluster holding the backup, or ``None``."""
        return self._cluster

    @cluster.setter
    def cluster(self, cluster_id):
        self._cluster = cluster_id

    @property
    def parent(self):
        """``projects/{project}/instances/{instance}/clusters/{cluster}``

        ``None`` while no cluster is set.
        """
        if not self._cluster:
            return None
        return "{}/clusters/{}".format(self._instance.name, self._cluster)

    @property
    def name(self):
        """Full resource name of the backup.

        :rtype: str
        :raises: :class:`ValueError <exceptions.ValueError>` if no cluster
                 is set.
        """
        if not self._cluster:
            raise ValueError("A cluster is required to name a backup")
        return "{}/backups/{}".format(self.parent, self.backup_id)

    @property
    def source_table(self):
        """Full name of the backed-up table.

        Taken from the server once loaded, otherwise derived from
        ``table_id``. ``None`` when neither is known.
        """
        if self._source_table:
            return self._source_table
        if self.table_id:
            return "{}/tables/{}".format(self._instance.name, self.table_id)
        return None

    @property
    def source_backup(self):
        """Name of the backup this one was copied from, if any."""
        return self._source_backup

    @property
    def backup_type(self):
        return self._backup_type

    @property
    def hot_to_standard_time(self):
        return self._hot_to_standard_time

    @property
    def encryption_info(self):
        """:class:`~bigtable_client.encryption_info.EncryptionInfo` or ``None``."""
        return self._encryption_info

    @property
    def start_time(self):
        return self._start_time

    @property
    def end_time(self):
        return self._end_time

    @property
    def size_bytes(self):
        return self._size_bytes

    @property
    def state(self):
        """One of :class:`~bigtable_client.enums.Backup.State`."""
        return self._state

    @classmethod
    def from_pb(cls, backup_pb, instance):
        """Builds a backup from its protobuf.

        :type backup_pb: :class:`~google.cloud.bigtable_admin_v2.types.Backup`
        :param backup_pb: The message returned by the server.

        :type instance: :class:`~bigtable_client.instance.Instance`
        :param instance: The instance the backup must belong to.

        :rtype: :class:`Backup`
        :raises: :class:`ValueError <exceptions.ValueError>` if the name is
                 malformed or points at another project or instance.
        """
        match = _BACKUP_NAME_RE.match(backup_pb.name)
        if match is None:
            raise ValueError("Malformed backup name", backup_pb.name)
        if match.group("project") != instance._client.project:
            raise ValueError(
                "Backup {} is not in project {}".format(
                    backup_pb.name, instance._client.project
                )
            )
        if match.group("instance_id") != instance.instance_id:
            raise ValueError(
                "Backup {} is not in instance {}".format(
                    backup_pb.name, instance.instance_id
                )
            )

        table_id = None
        if "/tables/" in backup_pb.source_table:
            table_id = _last_segment(backup_pb.source_table)

        result = cls(
            match.group("backup_id"),
            instance,
            cluster_id=match.group("cluster_id"),
            table_id=table_id,
        )
        result._update_from_pb(backup_pb)
        return result

    def _update_from_pb(self, backup_pb):
        self._source_table = backup_pb.source_table or None
        self._source_backup = backup_pb.source_backup or None
        self.expire_time = backup_pb.expire_time
        self._start_time = backup_pb.start_time
        self._end_time = backup_pb.end_time
        self._size_bytes = backup_pb.size_bytes
        self._state = backup_pb.state
        self._backup_type = backup_pb.backup_type
        self._hot_to_standard_time = backup_pb.hot_to_standard_time
        self._encryption_info = None
        if "encryption_info" in backup_pb:
            self._encryption_info = EncryptionInfo._from_pb(backup_pb.encryption_info)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return other.backup_id == self.backup_id and other._instance == self._instance

    def __ne__(self, other):
        return not self == other

    def create(self, cluster_id=None):
        """Starts backing up ``table_id``.

        :type cluster_id: str
        :param cluster_id: (Optional) Overrides the cluster given at
                           construction.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running create operation.
        :raises: :class:`ValueError <exceptions.ValueError>` if the expire
                 time, table or cluster is missing.
        """
        if not self.expire_time:
            raise ValueError("expire_time must be set to create a backup")
        if not self.table_id:
            raise ValueError("table_id must be set to create a backup")
        if cluster_id:
            self._cluster = cluster_id
        if not self._cluster:
            raise ValueError("A cluster is required to create a backup")

        backup_pb = table.Backup(
            source_table=self.source_table, expire_time=self.expire_time
        )
        if self._hot_to_standard_time is not None:
            backup_pb.backup_type = enums.Backup.BackupType.HOT
            backup_pb.hot_to_standard_time = self._hot_to_standard_time
        elif self._backup_type is not None:
            backup_pb.backup_type = self._backup_type

        return self._api.create_backup(
            request={
                "parent": self.parent,
                "backup_id": self.backup_id,
                "backup": backup_pb,
            }
        )

    def get(self):
        """Fetches the backup message.

        :rtype: :class:`~google.cloud.bigtable_admin_v2.types.Backup`
        :returns: The message, or ``None`` if the backup does not exist.
        """
        try:
            return self._api.get_backup(
                request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
            )
        except NotFound:
            return None

    def reload(self):
        """Refreshes the server-side properties.

        :raises: :class:`~google.api_core.exceptions.NotFound` if the
                 backup is gone.
        """
        backup_pb = self.get()
        if backup_pb is None:
            raise NotFound("Backup {} not found".format(self.name))
        self._update_from_pb(backup_pb)

    def exists(self):
        """Check whether the backup exists.

        :rtype: bool
        """
        return self.get() is not None

    def _update(self, backup_pb, path):
        self._api.update_backup(
            request={"backup": backup_pb, "update_mask": _field_mask([path])}
        )

    def update_expire_time(self, new_expire_time):
        """Moves the expiration of the backup.

        :type new_expire_time: :class:`datetime.datetime`
        :param new_expire_time: The new expiration time.
        """
        self._update(
            table.Backup(name=self.name, expire_time=new_expire_time), "expire_time"
        )
        self.expire_time = new_expire_time

    def update_hot_to_standard_time(self, new_hot_to_standard_time):
        """Moves, or with ``None`` clears, the HOT to STANDARD conversion."""
        backup_pb = table.Backup(name=self.name)
        if new_hot_to_standard_time is not None:
            backup_pb.hot_to_standard_time = new_hot_to_standard_time
        self._update(backup_pb, "hot_to_standard_time")
        self._hot_to_standard_time = new_hot_to_standard_time

    def delete(self):
        """Delete this backup."""
        self._api.delete_backup(request={"name": self.name})

    def restore(self, table_id, instance_id=None):
        """Restores the backup into a new table.

        :type table_id: str
        :param table_id: ID of the table to create. It must not exist yet.

        :type instance_id: str
        :param instance_id: (Optional) Restore into this instance of the same
                            project instead of the backup's own instance.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running restore operation. Its result is the new
                  table message.
        """
        parent = self._instance.name
        if instance_id:
            parent = "projects/{}/instances/{}".format(
                self._instance._client.project, instance_id
            )
        return self._api.restore_table(
            request={"parent": parent, "table_id": table_id, "backup": self.name}
        )

    def copy(
        self,
        dest_cluster_id,
        dest_backup_id,
        expire_time,
        dest_instance_id=None,
        dest_project=None,
    ):
        """Copies the backup to another cluster.

        The destination instance and project default to the backup's own.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running copy operation.
        """
        parent = "projects/{}/instances/{}/clusters/{}".format(
            dest_project or self._instance._client.project,
            dest_instance_id or self._instance.instance_id,
            dest_cluster_id,
        )
        return self._api.copy_backup(
            request={
                "parent": parent,
                "backup_id": dest_backup_id,
                "source_backup": self.name,
                "expire_time": expire_time,
            }
        )

    def get_iam_policy(self):
        """Gets the IAM policy of the backup.

        :rtype: :class:`bigtable_client.policy.Policy`
        """
        response = self._api.get_iam_policy(request={"resource": self.name})
        return Policy.from_pb(response)

    def set_iam_policy(self, policy):
        """Replaces the IAM policy of the backup.

        :type policy: :class:`bigtable_client.policy.Policy`
        :param policy: The new policy.

        :rtype: :class:`bigtable_client.policy.Policy`
        :returns: The policy stored by the server.
        """
        response = self._api.set_iam_policy(
            request={"resource": self.name, "policy": policy.to_pb()}
        )
        return Policy.from_pb(response)

    def test_iam_permissions(self, permissions):
        """Returns the subset of ``permissions`` the caller holds on the backup.

        :type permissions: list
        :param permissions: Permission names, without wildcards.

        :rtype: list
        """
        response = self._api.test_iam_permissions(
            request={"resource": self.name, "permissions": permissions}
        )
        return list(response.permissions)
