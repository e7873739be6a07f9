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

"""Clusters: the zonal serving units of an instance."""

import re

from google.api_core.exceptions import NotFound
from google.cloud.bigtable_admin_v2.types import instance

from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY


_CLUSTER_NAME_RE = re.compile(
    r"^projects/(?P<project>[^/]+)/"
    r"instances/(?P<instance>[^/]+)/clusters/"
    r"(?P<cluster_id>[a-z][-a-z0-9]*)$"
)

_AUTOSCALING_CONFIG_PATH = "cluster_config.cluster_autoscaling_config"
_AUTOSCALING_FIELDS = (
    "min_serve_nodes",
    "max_serve_nodes",
    "cpu_utilization_percent",
    "storage_utilization_gib_per_node",
)


class Cluster(object):
    """A cluster of a Bigtable instance.

    A cluster scales either manually through ``serve_nodes`` or with
    autoscaling, which needs ``min_serve_nodes`` and ``max_serve_nodes``
    plus at least one target. Setting both modes is an error.

    :type cluster_id: str
    :param cluster_id: Cluster ID, unique within the instance.

    :type instance: :class:`~bigtable_client.instance.Instance`
    :param instance: Owning instance.

    :type location_id: str
    :param location_id: (Creation only) Zone, e.g. ``us-central1-b``.

    :type serve_nodes: int
    :param serve_nodes: (Optional) Node count under manual scaling.

    :type default_storage_type: int
    :param default_storage_type: (Creation only) One of
                                 :class:`bigtable_client.enums.StorageType`.

    :type kms_key_name: str
    :param kms_key_name: (Creation only) CMEK key protecting the data.

    :type min_serve_nodes: int
    :param min_serve_nodes: (Optional) Autoscaling lower bound.

    :type max_serve_nodes: int
    :param max_serve_nodes: (Optional) Autoscaling upper bound.

    :type cpu_utilization_percent: int
    :param cpu_utilization_percent: (Optional) Autoscaling CPU target.

    :type storage_utilization_gib_per_node: int
    :param storage_utilization_gib_per_node: (Optional) Autoscaling storage
                                             target per node, in GiB.

    :type node_scaling_factor: int
    :param node_scaling_factor: (Creation only) One of
                                :class:`bigtable_client.enums.Cluster.NodeScalingFactor`.
    """

    def __init__(
        self,
        cluster_id,
        instance,
        location_id=None,
        serve_nodes=None,
        default_storage_type=None,
        kms_key_name=None,
        min_serve_nodes=None,
        max_serve_nodes=None,
        cpu_utilization_percent=None,
        storage_utilization_gib_per_node=None,
        node_scaling_factor=None,
        _state=None,
    ):
        self.cluster_id = cluster_id
        self._instance = instance
        self.location_id = location_id
        self.serve_nodes = serve_nodes
        self.default_storage_type = default_storage_type
        self._kms_key_name = kms_key_name
        self.min_serve_nodes = min_serve_nodes
        self.max_serve_nodes = max_serve_nodes
        self.cpu_utilization_percent = cpu_utilization_percent
        self.storage_utilization_gib_per_node = storage_utilization_gib_per_node
        self.node_scaling_factor = node_scaling_factor
        self._state = _state

    @classmethod
    def from_pb(cls, cluster_pb, instance):
        """Build a cluster from an admin API message.

        :raises: :class:`ValueError` when the resource name is malformed or
                 belongs to another project or instance.
        """
        match = _CLUSTER_NAME_RE.match(cluster_pb.name)
        if match is None:
            raise ValueError("Malformed cluster name: {!r}".format(cluster_pb.name))
        if match.group("project") != instance._client.project:
            raise ValueError(
                "Cluster {} is not in project {}".format(
                    cluster_pb.name, instance._client.project
                )
            )
        if match.group("instance") != instance.instance_id:
            raise ValueError(
                "Cluster {} is not in instance {}".format(
                    cluster_pb.name, instance.instance_id
                )
            )

        cluster = cls(match.group("cluster_id"), instance)
        cluster._update_from_pb(cluster_pb)
        return cluster

    def _update_from_pb(self, cluster_pb):
        self.location_id = cluster_pb.location.rsplit("/", 1)[-1]
        self.default_storage_type = cluster_pb.default_storage_type
        self.node_scaling_factor = cluster_pb.node_scaling_factor
        self._kms_key_name = cluster_pb.encryption_config.kms_key_name or None
        self._state = cluster_pb.state

        autoscaling = cluster_pb.cluster_config.cluster_autoscaling_config
        limits = autoscaling.autoscaling_limits
        targets = autoscaling.autoscaling_targets
        self.min_serve_nodes = limits.min_serve_nodes or None
        self.max_serve_nodes = limits.max_serve_nodes or None
        self.cpu_utilization_percent = targets.cpu_utilization_percent or None
        self.storage_utilization_gib_per_node = (
            targets.storage_utilization_gib_per_node or None
        )
        # Under autoscaling the node count is chosen by the server.
        self.serve_nodes = None if self.autoscaling_enabled else cluster_pb.serve_nodes

    @property
    def name(self):
        """``projects/<project>/instances/<instance>/clusters/<cluster_id>``"""
        return "{}/clusters/{}".format(self._instance.name, self.cluster_id)

    @property
    def state(self):
        """Server-reported ``Cluster.State``; ``None`` until loaded."""
        return self._state

    @property
    def kms_key_name(self):
        return self._kms_key_name

    @property
    def autoscaling_enabled(self):
        """True once any autoscaling limit or target is set."""
        return any(getattr(self, field) is not None for field in _AUTOSCALING_FIELDS)

    def __eq__(self, other):
        # Identity only: the same cluster may be seen in different states.
        if not isinstance(other, Cluster):
            return NotImplemented
        return (self.cluster_id, self._instance) == (other.cluster_id, other._instance)

    def __ne__(self, other):
        return not self == other

    @property
    def _api(self):
        return self._instance._client.instance_admin_client

    def _check_scaling(self):
        if not self.autoscaling_enabled:
            return
        if self.serve_nodes:
            raise ValueError(
                "serve_nodes cannot be combined with autoscaling settings"
            )
        if not (self.min_serve_nodes and self.max_serve_nodes):
            raise ValueError(
                "Autoscaling needs both min_serve_nodes and max_serve_nodes"
            )
        if self.min_serve_nodes > self.max_serve_nodes:
            raise ValueError(
                "min_serve_nodes ({}) exceeds max_serve_nodes ({})".format(
                    self.min_serve_nodes, self.max_serve_nodes
                )
            )

    def reload(self):
        """Refresh the configuration and state from the server."""
        cluster_pb = self._api.get_cluster(
            request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        self._update_from_pb(cluster_pb)

    def exists(self):
        """:rtype: bool"""
        try:
            self._api.get_cluster(request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY)
        except NotFound:
            return False
        return True

    def create(self):
        """Start creating the cluster with the current settings.

        :rtype: :class:`~google.api_core.operation.Operation`
        :raises: :class:`ValueError` for an invalid scaling configuration.
        """
        self._check_scaling()
        return self._api.create_cluster(
            request={
                "parent": self._instance.name,
                "cluster_id": self.cluster_id,
                "cluster": self._to_pb(),
            }
        )

    def update(self):
        """Push the scaling settings to the server.

        With autoscaling set only the autoscaling config is written.
        Otherwise ``serve_nodes`` is written and any autoscaling config on
        the server is cleared.

        :rtype: :class:`~google.api_core.operation.Operation`
        :raises: :class:`ValueError` for an invalid scaling configuration.
        """
        self._check_scaling()
        if self.autoscaling_enabled:
            cluster_pb = instance.Cluster(
                name=self.name, cluster_config=self._autoscaling_config_pb()
            )
            paths = [_AUTOSCALING_CONFIG_PATH]
        else:
            cluster_pb = instance.Cluster(name=self.name, serve_nodes=self.serve_nodes)
            paths = ["serve_nodes", _AUTOSCALING_CONFIG_PATH]
        return self._api.partial_update_cluster(
            request={"cluster": cluster_pb, "update_mask": _field_mask(paths)}
        )

    def disable_autoscaling(self, serve_nodes):
        """Switch to manual scaling with ``serve_nodes`` nodes.

        :rtype: :class:`~google.api_core.operation.Operation`
        """
        for field in _AUTOSCALING_FIELDS:
            setattr(self, field, None)
        self.serve_nodes = serve_nodes
        return self.update()

    def delete(self):
        """Delete the cluster along with the replicas of its tables."""
        self._api.delete_cluster(request={"name": self.name})

    def _autoscaling_config_pb(self):
        autoscaling = instance.Cluster.ClusterAutoscalingConfig(
            autoscaling_limits=instance.AutoscalingLimits(
                min_serve_nodes=self.min_serve_nodes or 0,
                max_serve_nodes=self.max_serve_nodes or 0,
            ),
            autoscaling_targets=instance.AutoscalingTargets(
                cpu_utilization_percent=self.cpu_utilization_percent or 0,
                storage_utilization_gib_per_node=(
                    self.storage_utilization_gib_per_node or 0
                ),
            ),
        )
        return instance.Cluster.ClusterConfig(cluster_autoscaling_config=autoscaling)

    def _to_pb(self):
        location = "projects/{}/locations/{}".format(
            self._instance._client.project, self.location_id
        )
        cluster_pb = instance.Cluster(location=location)
        if self.default_storage_type is not None:
            cluster_pb.default_storage_type = self.default_storage_type
        if self.node_scaling_factor is not None:
            cluster_pb.node_scaling_factor = self.node_scaling_factor
        if self._kms_key_name:
            cluster_pb.encryption_config = instance.Cluster.EncryptionConfig(
                kms_key_name=self._kms_key_name
            )
        if self.autoscaling_enabled:
            cluster_pb.cluster_config = self._autoscaling_config_pb()
        else:
            cluster_pb.serve_nodes = self.serve_nodes or 0
        return cluster_pb
