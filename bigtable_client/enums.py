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

"""Wrappers for the generated admin enums."""

from google.cloud.bigtable_admin_v2.types import common
from google.cloud.bigtable_admin_v2.types import instance
from google.cloud.bigtable_admin_v2.types import table


class StorageType(object):
    """The storage media types for persisting Bigtable data.

    Attributes:
        UNSPECIFIED (int): The user did not specify a storage type.
        SSD (int): Flash (SSD) storage should be used.
        HDD (int): Magnetic drive (HDD) storage should be used.
    """

    UNSPECIFIED = common.StorageType.STORAGE_TYPE_UNSPECIFIED
    SSD = common.StorageType.SSD
    HDD = common.StorageType.HDD


class Instance(object):
    class State(object):
        """The possible states of an instance.

        Attributes:
            NOT_KNOWN (int): The state of the instance could not be determined.
            READY (int): The instance has been successfully created and can
                serve requests to its tables.
            CREATING (int): The instance is currently being created, and may be
                destroyed if the creation process encounters an error.
        """

        NOT_KNOWN = instance.Instance.State.STATE_NOT_KNOWN
        READY = instance.Instance.State.READY
        CREATING = instance.Instance.State.CREATING

    class Type(object):
        """The type of the instance.

        Attributes:
            UNSPECIFIED (int): The type of the instance is unspecified. If set
                when creating an instance, a ``PRODUCTION`` instance will be
                created.
            PRODUCTION (int): An instance meant for production use.
            DEVELOPMENT (int): Deprecated. Development instances are created
                as ``PRODUCTION`` instances with a single node.
        """

        UNSPECIFIED = instance.Instance.Type.TYPE_UNSPECIFIED
        PRODUCTION = instance.Instance.Type.PRODUCTION
        DEVELOPMENT = instance.Instance.Type.DEVELOPMENT


class Cluster(object):
    class State(object):
        """Possible states of a cluster.

        Attributes:
            NOT_KNOWN (int): The state of the cluster could not be determined.
            READY (int): The cluster has been successfully created and is
                ready to serve requests.
            CREATING (int): The cluster is currently being created.
            RESIZING (int): The cluster is currently being resized.
            DISABLED (int): The cluster has no backing nodes.
        """

        NOT_KNOWN = instance.Cluster.State.STATE_NOT_KNOWN
        READY = instance.Cluster.State.READY
        CREATING = instance.Cluster.State.CREATING
        RESIZING = instance.Cluster.State.RESIZING
        DISABLED = instance.Cluster.State.DISABLED

    class NodeScalingFactor(object):
        """Granularity in which the cluster's node count can be scaled.

        Attributes:
            UNSPECIFIED (int): No scaling factor requested; the service
                default of one node per step applies.
            ONE_X (int): Nodes are added or removed one at a time.
            TWO_X (int): Nodes are added or removed in pairs.
        """

        UNSPECIFIED = instance.Cluster.NodeScalingFactor.NODE_SCALING_FACTOR_UNSPECIFIED
        ONE_X = instance.Cluster.NodeScalingFactor.NODE_SCALING_FACTOR_1X
        TWO_X = instance.Cluster.NodeScalingFactor.NODE_SCALING_FACTOR_2X


class RoutingPolicyType(object):
    """The type of the routing policy for app_profile.

    Attributes:
        ANY (int): Read/write requests may be routed to any cluster in the
            instance, and will fail over to another cluster in the event of
            transient errors or delays.
        SINGLE (int): Unconditionally routes all read/write requests to a
            specific cluster.
    """

    ANY = 1
    SINGLE = 2


class Priority(object):
    """Scheduling priority for requests sent through a standard-isolation
    app profile.
    """

    UNSPECIFIED = instance.AppProfile.Priority.PRIORITY_UNSPECIFIED
    LOW = instance.AppProfile.Priority.PRIORITY_LOW
    MEDIUM = instance.AppProfile.Priority.PRIORITY_MEDIUM
    HIGH = instance.AppProfile.Priority.PRIORITY_HIGH


class ComputeBillingOwner(object):
    """Who pays for Data Boost compute."""

    UNSPECIFIED = (
        instance.AppProfile.DataBoostIsolationReadOnly.ComputeBillingOwner.COMPUTE_BILLING_OWNER_UNSPECIFIED
    )
    HOST_PAYS = instance.AppProfile.DataBoostIsolationReadOnly.ComputeBillingOwner.HOST_PAYS


class Table(object):
    class View(object):
        """Defines a view over a table's fields.

        Attributes:
            VIEW_UNSPECIFIED (int): Uses the default view for each method.
            NAME_ONLY (int): Only populates ``name``.
            SCHEMA_VIEW (int): Only populates ``name`` and fields related to
                the table's schema.
            REPLICATION_VIEW (int): Only populates ``name`` and fields related
                to the table's replication state.
            ENCRYPTION_VIEW (int): Only populates ``name`` and fields related
                to the table's encryption state.
            FULL (int): Populates all fields.
        """

        VIEW_UNSPECIFIED = table.Table.View.VIEW_UNSPECIFIED
        NAME_ONLY = table.Table.View.NAME_ONLY
        SCHEMA_VIEW = table.Table.View.SCHEMA_VIEW
        REPLICATION_VIEW = table.Table.View.REPLICATION_VIEW
        ENCRYPTION_VIEW = table.Table.View.ENCRYPTION_VIEW
        FULL = table.Table.View.FULL

    class ReplicationState(object):
        """Table replication states.

        Attributes:
            STATE_NOT_KNOWN (int): The replication state of the table is
                unknown in this cluster.
            INITIALIZING (int): The cluster was recently created, and the
                table must finish copying over pre-existing data from other
                clusters before it can begin receiving live replication
                updates and serving Data API requests.
            PLANNED_MAINTENANCE (int): The table is temporarily unable to
                serve Data API requests from this cluster due to planned
                internal maintenance.
            UNPLANNED_MAINTENANCE (int): The table is temporarily unable to
                serve Data API requests from this cluster due to unplanned or
                emergency maintenance.
            READY (int): The table can serve Data API requests from this
                cluster.
            READY_OPTIMIZING (int): The table is fully created and ready for
                use after a restore, and is being optimized for performance.
        """

        STATE_NOT_KNOWN = table.Table.ClusterState.ReplicationState.STATE_NOT_KNOWN
        INITIALIZING = table.Table.ClusterState.ReplicationState.INITIALIZING
        PLANNED_MAINTENANCE = (
            table.Table.ClusterState.ReplicationState.PLANNED_MAINTENANCE
        )
        UNPLANNED_MAINTENANCE = (
            table.Table.ClusterState.ReplicationState.UNPLANNED_MAINTENANCE
        )
        READY = table.Table.ClusterState.ReplicationState.READY
        READY_OPTIMIZING = table.Table.ClusterState.ReplicationState.READY_OPTIMIZING


class DeletionProtection(object):
    """Tri-state deletion protection setting used when creating a table.

    ``NONE`` leaves the server default in place.
    """

    NONE = 0
    PROTECTED = 1
    UNPROTECTED = 2


class EncryptionInfo(object):
    class EncryptionType(object):
        """Possible encryption types for a resource.

        Attributes:
            ENCRYPTION_TYPE_UNSPECIFIED (int): Encryption type was not specified,
                though data at rest remains encrypted.
            GOOGLE_DEFAULT_ENCRYPTION (int): The data backing this resource is
                encrypted at rest with a key that is fully managed by Google.
            CUSTOMER_MANAGED_ENCRYPTION (int): The data backing this resource is
                encrypted at rest with a key that is managed by the customer.
        """

        ENCRYPTION_TYPE_UNSPECIFIED = (
            table.EncryptionInfo.EncryptionType.ENCRYPTION_TYPE_UNSPECIFIED
        )
        GOOGLE_DEFAULT_ENCRYPTION = (
            table.EncryptionInfo.EncryptionType.GOOGLE_DEFAULT_ENCRYPTION
        )
        CUSTOMER_MANAGED_ENCRYPTION = (
            table.EncryptionInfo.EncryptionType.CUSTOMER_MANAGED_ENCRYPTION
        )


class Backup(object):
    class State(object):
        """Possible states of a backup.

        Attributes:
            STATE_UNSPECIFIED (int): Not specified.
            CREATING (int): The pending backup is still being created.
            READY (int): The backup is complete and ready for use.
        """

        STATE_UNSPECIFIED = table.Backup.State.STATE_UNSPECIFIED
        CREATING = table.Backup.State.CREATING
        READY = table.Backup.State.READY

    class BackupType(object):
        """Storage tier of a backup.

        Attributes:
            UNSPECIFIED (int): Not specified; the server picks ``STANDARD``.
            STANDARD (int): The default backup type.
            HOT (int): A backup stored on SSD that can be restored quickly.
        """

        UNSPECIFIED = table.Backup.BackupType.BACKUP_TYPE_UNSPECIFIED
        STANDARD = table.Backup.BackupType.STANDARD
        HOT = table.Backup.BackupType.HOT
