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

"""Instances and the resources they own: clusters, app profiles, tables
and views."""

import logging
import re
import warnings

from google.api_core import exceptions as core_exceptions
from google.api_core.exceptions import NotFound
from google.cloud.bigtable_admin_v2.types import instance
from google.iam.v1 import options_pb2

from bigtable_client import enums
from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import _wait_for_operation
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY
from bigtable_client.app_profile import AppProfile
from bigtable_client.cluster import Cluster
from bigtable_client.exceptions import ClusterSyncError
from bigtable_client.logical_view import LogicalView
from bigtable_client.materialized_view import MaterializedView
from bigtable_client.policy import Policy
from bigtable_client.table import Table

_LOGGER = logging.getLogger(__name__)

_INSTANCE_NAME_RE = re.compile(
    r"^projects/(?P<project>[^/]+)/instances/(?P<instance_id>[a-z][-a-z0-9]*)$"
)

_LEGACY_CREATE_WARNING = (
    "Passing location_id, serve_nodes or default_storage_type to "
    "Instance.create() is deprecated; build the cluster with "
    "instance.cluster(...) and pass clusters=[cluster] instead."
)


class UpdateInstanceResults(object):
    """What :meth:`Instance.sync_clusters` changed, so far or in total.

    The cluster lists hold cluster IDs in the order the changes were made.
    """

    def __init__(
        self,
        instance_updated=False,
        created_clusters=None,
        deleted_clusters=None,
        updated_clusters=None,
    ):
        self.instance_updated = instance_updated
        self.created_clusters = list(created_clusters or [])
        self.deleted_clusters = list(deleted_clusters or [])
        self.updated_clusters = list(updated_clusters or [])

    def _key(self):
        return (
            self.instance_updated,
            self.created_clusters,
            self.deleted_clusters,
            self.updated_clusters,
        )

    def __eq__(self, other):
        if not isinstance(other, UpdateInstanceResults):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not self == other

    def __str__(self):
        return (
            "Instance updated? {} Clusters added:{} Clusters deleted:{} "
            "Clusters updated:{}".format(*self._key())
        )

    def __repr__(self):
        return "<UpdateInstanceResults {}>".format(self)


class Instance(object):
    """A Bigtable instance.

    Beyond its own lifecycle, an instance hands out the objects that live
    inside it: :meth:`cluster`, :meth:`app_profile`, :meth:`table`,
    :meth:`logical_view` and :meth:`materialized_view`.

    :type instance_id: str
    :param instance_id: Instance ID within the client's project.

    :type client: :class:`~bigtable_client.client.Client`
    :param client: Client supplying the project and the admin APIs.

    :type display_name: str
    :param display_name: (Optional) Console name, 4 to 30 characters.
                         Falls back to ``instance_id``.

    :type instance_type: int
    :param instance_type: (Optional) One of
                          :class:`bigtable_client.enums.Instance.Type`.

    :type labels: dict
    :param labels: (Optional) Resource labels.
    """

    def __init__(
        self,
        instance_id,
        client,
        display_name=None,
        instance_type=None,
        labels=None,
        _state=None,
    ):
        self.instance_id = instance_id
        self._client = client
        self._display_name = display_name
        self.type_ = instance_type
        self.labels = labels
        self._state = _state

    @classmethod
    def from_pb(cls, instance_pb, client):
        """Build an instance from an admin API message.

        :raises: :class:`ValueError` when the name is malformed, belongs to
                 another project or the message has no display name.
        """
        match = _INSTANCE_NAME_RE.match(instance_pb.name)
        if match is None:
            raise ValueError("Malformed instance name: {!r}".format(instance_pb.name))
        if match.group("project") != client.project:
            raise ValueError(
                "Instance {} is not in project {}".format(
                    instance_pb.name, client.project
                )
            )
        result = cls(match.group("instance_id"), client)
        result._update_from_pb(instance_pb)
        return result

    def _update_from_pb(self, instance_pb):
        if not instance_pb.display_name:
            raise ValueError(
                "Instance {} has no display_name".format(instance_pb.name)
            )
        self._display_name = instance_pb.display_name
        self.type_ = instance_pb.type_
        self.labels = dict(instance_pb.labels)
        self._state = instance_pb.state

    @property
    def display_name(self):
        """Console name; the instance ID when none was given."""
        return self._display_name or self.instance_id

    @display_name.setter
    def display_name(self, value):
        self._display_name = value

    @property
    def name(self):
        """``projects/<project>/instances/<instance_id>``"""
        return "projects/{}/instances/{}".format(self._client.project, self.instance_id)

    @property
    def state(self):
        """Server-reported ``Instance.State``; ``None`` until loaded."""
        return self._state

    @property
    def _api(self):
        return self._client.instance_admin_client

    def __eq__(self, other):
        # Identity only: the same instance may be seen in different states.
        if not isinstance(other, Instance):
            return NotImplemented
        return (self.instance_id, self._client) == (other.instance_id, other._client)

    def __ne__(self, other):
        return not self == other

    def create(
        self,
        location_id=None,
        serve_nodes=None,
        default_storage_type=None,
        clusters=None,
    ):
        """Start creating the instance together with its first clusters.

        ``location_id``, ``serve_nodes`` and ``default_storage_type`` are the
        deprecated way of describing a single cluster named
        ``<instance_id>-cluster``. They cannot be combined with ``clusters``.

        :type clusters: list
        :param clusters: :class:`~bigtable_client.cluster.Cluster` objects
                         to create. At least one is needed.

        :rtype: :class:`~google.api_core.operation.Operation`
        :raises: :class:`ValueError` when no cluster is described or both
                 styles are mixed.
        """
        legacy = (location_id, serve_nodes, default_storage_type)
        if clusters is None:
            if location_id is None:
                raise ValueError("Creating an instance needs at least one cluster")
            warnings.warn(_LEGACY_CREATE_WARNING, DeprecationWarning, stacklevel=2)
            clusters = [
                self.cluster(
                    "{}-cluster".format(self.instance_id),
                    location_id=location_id,
                    serve_nodes=serve_nodes,
                    default_storage_type=default_storage_type,
                )
            ]
        elif any(value is not None for value in legacy):
            raise ValueError(
                "clusters cannot be combined with location_id, serve_nodes "
                "or default_storage_type"
            )
        elif not clusters:
            raise ValueError("Creating an instance needs at least one cluster")

        return self._api.create_instance(
            request={
                "parent": "projects/{}".format(self._client.project),
                "instance_id": self.instance_id,
                "instance": instance.Instance(
                    display_name=self.display_name,
                    type_=self.type_,
                    labels=self.labels,
                ),
                "clusters": {c.cluster_id: c._to_pb() for c in clusters},
            }
        )

    def exists(self):
        """:rtype: bool"""
        try:
            self._api.get_instance(request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY)
        except NotFound:
            return False
        return True

    def reload(self):
        """Refresh display name, type, labels and state from the server."""
        self._update_from_pb(
            self._api.get_instance(request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY)
        )

    def update(self):
        """Write the display name, type and labels that are set.

        The display name is only written when it was given explicitly or
        loaded from the server.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The update operation, or ``None`` when nothing is set.
        """
        paths = []
        if self._display_name:
            paths.append("display_name")
        if self.type_ is not None and self.type_ != enums.Instance.Type.UNSPECIFIED:
            paths.append("type")
        if self.labels is not None:
            paths.append("labels")
        if not paths:
            return None

        instance_pb = instance.Instance(
            name=self.name,
            display_name=self.display_name,
            type_=self.type_,
            labels=self.labels,
        )
        return self._api.partial_update_instance(
            request={"instance": instance_pb, "update_mask": _field_mask(paths)}
        )

    def delete(self):
        """Delete the instance together with all of its clusters and tables."""
        self._api.delete_instance(request={"name": self.name})

    def sync_clusters(self, clusters, timeout=None):
        """Update this instance and make its clusters match ``clusters``.

        * Clusters in ``clusters`` that already exist are updated, provided
          they specify ``serve_nodes`` or an autoscaling configuration.
          Autoscaling wins over ``serve_nodes``.
        * Clusters in ``clusters`` that do not exist are created.
        * Existing clusters missing from ``clusters`` are deleted.

        Deletions are interleaved with creations so that capacity never drops
        more than needed, and the last cluster of the instance is never
        deleted before a replacement exists.

        :type clusters: list
        :param clusters: The desired :class:`~bigtable_client.cluster.Cluster`
                         objects.

        :type timeout: float
        :param timeout: (Optional) How long to wait for each long-running
                        operation, in seconds.

        :rtype: :class:`UpdateInstanceResults`
        :returns: The work performed.

        :raises: :exc:`~bigtable_client.exceptions.ClusterSyncError` if a step
                 fails; the exception carries the progress made so far.
        """
        existing, failed_locations = self.list_clusters()
        if failed_locations:
            _LOGGER.debug(
                "Listing clusters of %s skipped locations %s",
                self.instance_id,
                failed_locations,
            )

        operation = self.update()
        if operation is not None:
            _wait_for_operation(operation, timeout=timeout)
        results = UpdateInstanceResults(instance_updated=operation is not None)

        existing_ids = [c.cluster_id for c in existing]
        to_delete = list(existing_ids)
        to_create = []
        for cluster in clusters:
            if cluster.cluster_id not in existing_ids:
                to_create.append(cluster)
                continue
            to_delete.remove(cluster.cluster_id)

            if cluster.autoscaling_enabled:
                target = self.cluster(
                    cluster.cluster_id,
                    min_serve_nodes=cluster.min_serve_nodes,
                    max_serve_nodes=cluster.max_serve_nodes,
                    cpu_utilization_percent=cluster.cpu_utilization_percent,
                    storage_utilization_gib_per_node=(
                        cluster.storage_utilization_gib_per_node
                    ),
                )
            elif cluster.serve_nodes and cluster.serve_nodes > 0:
                target = self.cluster(cluster.cluster_id, serve_nodes=cluster.serve_nodes)
            else:
                continue

            _LOGGER.debug("Updating cluster %s", cluster.cluster_id)
            self._sync_step(
                "UpdateCluster", cluster.cluster_id, results, target.update, timeout
            )
            results.updated_clusters.append(cluster.cluster_id)

        num_existing = len(existing_ids)
        while to_create or to_delete:
            if (num_existing > 1 and to_delete) or not to_create:
                cluster_id = to_delete.pop(0)
                _LOGGER.debug("Deleting cluster %s", cluster_id)
                self._sync_step(
                    "DeleteCluster",
                    cluster_id,
                    results,
                    self.cluster(cluster_id).delete,
                    None,
                )
                results.deleted_clusters.append(cluster_id)
                num_existing -= 1

            if to_create:
                cluster = to_create.pop(0)
                cluster._instance = self
                _LOGGER.debug("Creating cluster %s", cluster.cluster_id)
                self._sync_step(
                    "CreateCluster", cluster.cluster_id, results, cluster.create, timeout
                )
                results.created_clusters.append(cluster.cluster_id)
                num_existing += 1

        return results

    @staticmethod
    def _sync_step(step, cluster_id, results, func, timeout):
        try:
            operation = func()
            if operation is not None:
                _wait_for_operation(operation, timeout=timeout)
        except core_exceptions.GoogleAPICallError as exc:
            raise ClusterSyncError(
                "{} {!r} failed: {}; Progress: {}".format(
                    step, cluster_id, exc, results
                ),
                results,
            ) from exc

    def get_iam_policy(self, requested_policy_version=None):
        """Fetch the IAM policy of the instance.

        :type requested_policy_version: int
        :param requested_policy_version: (Optional) Policy format version.
                                         Pass 3 to receive conditional
                                         bindings.

        :rtype: :class:`bigtable_client.policy.Policy`
        """
        request = {"resource": self.name}
        if requested_policy_version is not None:
            request["options"] = options_pb2.GetPolicyOptions(
                requested_policy_version=requested_policy_version
            )
        return Policy.from_pb(self._api.get_iam_policy(request=request))

    def set_iam_policy(self, policy):
        """Replace the IAM policy of the instance.

        :type policy: :class:`bigtable_client.policy.Policy`
        :param policy: The complete new policy.

        :rtype: :class:`bigtable_client.policy.Policy`
        :returns: The policy as stored by the server.
        """
        policy_pb = self._api.set_iam_policy(
            request={"resource": self.name, "policy": policy.to_pb()}
        )
        return Policy.from_pb(policy_pb)

    def test_iam_permissions(self, permissions):
        """Return the subset of ``permissions`` the caller holds here.

        :type permissions: list
        :param permissions: Permission names such as
                            ``bigtable.tables.readRows``. Wildcards are not
                            accepted.

        :rtype: list
        """
        response = self._api.test_iam_permissions(
            request={"resource": self.name, "permissions": permissions}
        )
        return list(response.permissions)

    def cluster(
        self,
        cluster_id,
        location_id=None,
        serve_nodes=None,
        default_storage_type=None,
        kms_key_name=None,
        min_serve_nodes=None,
        max_serve_nodes=None,
        cpu_utilization_percent=None,
        storage_utilization_gib_per_node=None,
        node_scaling_factor=None,
    ):
        """Cluster handle in this instance; see :class:`Cluster` for arguments.

        :rtype: :class:`~bigtable_client.cluster.Cluster`
        """
        return Cluster(
            cluster_id,
            self,
            location_id=location_id,
            serve_nodes=serve_nodes,
            default_storage_type=default_storage_type,
            kms_key_name=kms_key_name,
            min_serve_nodes=min_serve_nodes,
            max_serve_nodes=max_serve_nodes,
            cpu_utilization_percent=cpu_utilization_percent,
            storage_utilization_gib_per_node=storage_utilization_gib_per_node,
            node_scaling_factor=node_scaling_factor,
        )

    def list_clusters(self):
        """List the clusters of the instance.

        :rtype: tuple
        :returns: ``(clusters, failed_locations)``. The second item names
                  the locations that could not be reached.
        """
        response = self._api.list_clusters(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        clusters = [Cluster.from_pb(cluster_pb, self) for cluster_pb in response.clusters]
        return clusters, list(response.failed_locations)

    def table(
        self, table_id, mutation_timeout=None, app_profile_id=None, authorized_view_id=None
    ):
        """Table handle in this instance.

        :type mutation_timeout: int
        :param mutation_timeout: (Optional) Default timeout of
                                 :meth:`Table.mutate_rows`.

        :type app_profile_id: str
        :param app_profile_id: (Optional) App profile used by data requests.

        :type authorized_view_id: str
        :param authorized_view_id: (Optional) Send data requests through this
                                   authorized view.

        :rtype: :class:`~bigtable_client.table.Table`
        """
        return Table(
            table_id,
            self,
            mutation_timeout=mutation_timeout,
            app_profile_id=app_profile_id,
            authorized_view_id=authorized_view_id,
        )

    def list_tables(self):
        """:rtype: list of :class:`~bigtable_client.table.Table`

        :raises: :class:`ValueError` for a table outside this instance.
        """
        prefix = self.name + "/tables/"
        tables = []
        for table_pb in self._client.table_admin_client.list_tables(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        ):
            if not table_pb.name.startswith(prefix):
                raise ValueError(
                    "Table {} is not in instance {}".format(table_pb.name, self.name)
                )
            tables.append(self.table(table_pb.name[len(prefix) :]))
        return tables

    def app_profile(
        self,
        app_profile_id,
        routing_policy_type=None,
        description=None,
        cluster_id=None,
        multi_cluster_ids=None,
        allow_transactional_writes=None,
        row_affinity=False,
        isolation=None,
    ):
        """App profile handle; see :class:`AppProfile` for arguments.

        :rtype: :class:`~bigtable_client.app_profile.AppProfile`
        """
        return AppProfile(
            app_profile_id,
            self,
            routing_policy_type=routing_policy_type,
            description=description,
            cluster_id=cluster_id,
            multi_cluster_ids=multi_cluster_ids,
            allow_transactional_writes=allow_transactional_writes,
            row_affinity=row_affinity,
            isolation=isolation,
        )

    def list_app_profiles(self):
        """:rtype: list of :class:`~bigtable_client.app_profile.AppProfile`"""
        response = self._api.list_app_profiles(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        return [AppProfile.from_pb(app_profile_pb, self) for app_profile_pb in response]

    def logical_view(self, logical_view_id, query=None, deletion_protection=None):
        """:rtype: :class:`~bigtable_client.logical_view.LogicalView`"""
        return LogicalView(
            logical_view_id, self, query=query, deletion_protection=deletion_protection
        )

    def list_logical_views(self):
        """:rtype: list of :class:`~bigtable_client.logical_view.LogicalView`"""
        response = self._api.list_logical_views(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        return [LogicalView.from_pb(view_pb, self) for view_pb in response]

    def materialized_view(
        self, materialized_view_id, query=None, deletion_protection=None
    ):
        """:rtype: :class:`~bigtable_client.materialized_view.MaterializedView`"""
        return MaterializedView(
            materialized_view_id,
            self,
            query=query,
            deletion_protection=deletion_protection,
        )

    def list_materialized_views(self):
        """:rtype: list of
        :class:`~bigtable_client.materialized_view.MaterializedView`
        """
        response = self._api.list_materialized_views(
            request={"parent": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        return [MaterializedView.from_pb(view_pb, self) for view_pb in response]
