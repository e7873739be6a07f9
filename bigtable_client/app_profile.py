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

"""App profiles: how an application's requests are routed and isolated."""

import re

from google.api_core.exceptions import NotFound
from google.cloud.bigtable_admin_v2.types import instance

from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY
from bigtable_client.enums import RoutingPolicyType


_APP_PROFILE_NAME_RE = re.compile(
    r"^projects/(?P<project>[^/]+)/"
    r"instances/(?P<instance>[^/]+)/appProfiles/"
    r"(?P<app_profile_id>[_a-zA-Z0-9][-_.a-zA-Z0-9]*)$"
)


class _Isolation(object):
    # Name of the ``AppProfile`` oneof member this isolation fills.
    _field = None

    def _key(self):
        raise NotImplementedError

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not self == other


class StandardIsolation(_Isolation):
    """Share compute with other standard traffic at ``priority``.

    :type priority: int
    :param priority: One of :class:`bigtable_client.enums.Priority`.
    """

    _field = "standard_isolation"

    def __init__(self, priority):
        self.priority = priority

    def _key(self):
        return self.priority

    def _to_pb(self):
        return instance.AppProfile.StandardIsolation(priority=self.priority)


class DataBoostIsolationReadOnly(_Isolation):
    """Serve read-only traffic from serverless Data Boost compute.

    :type compute_billing_owner: int
    :param compute_billing_owner: One of
        :class:`bigtable_client.enums.ComputeBillingOwner`.
    """

    _field = "data_boost_isolation_read_only"

    def __init__(self, compute_billing_owner):
        self.compute_billing_owner = compute_billing_owner

    def _key(self):
        return self.compute_billing_owner

    def _to_pb(self):
        return instance.AppProfile.DataBoostIsolationReadOnly(
            compute_billing_owner=self.compute_billing_owner
        )


class AppProfile(object):
    """An app profile of an instance.

    Routing is either ``RoutingPolicyType.ANY`` (multi-cluster, optionally
    restricted to ``multi_cluster_ids`` and with ``row_affinity``) or
    ``RoutingPolicyType.SINGLE`` (one ``cluster_id``, optionally with
    ``allow_transactional_writes``).

    :type app_profile_id: str
    :param app_profile_id: Profile ID, matching ``[_a-zA-Z0-9][-_.a-zA-Z0-9]*``.

    :type instance: :class:`~bigtable_client.instance.Instance`
    :param instance: Owning instance.

    :type routing_policy_type: int
    :param routing_policy_type: (Optional) One of
                                :class:`bigtable_client.enums.RoutingPolicyType`.
                                Required by ``create`` and ``update``.

    :type description: str
    :param description: (Optional) Free-form description.

    :type isolation: :class:`StandardIsolation` or
                     :class:`DataBoostIsolationReadOnly`
    :param isolation: (Optional) Compute isolation of the profile.
    """

    def __init__(
        self,
        app_profile_id,
        instance,
        routing_policy_type=None,
        description=None,
        cluster_id=None,
        multi_cluster_ids=None,
        allow_transactional_writes=None,
        row_affinity=False,
        isolation=None,
    ):
        self.app_profile_id = app_profile_id
        self._instance = instance
        self.routing_policy_type = routing_policy_type
        self.description = description
        self.cluster_id = cluster_id
        self.multi_cluster_ids = multi_cluster_ids
        self.allow_transactional_writes = allow_transactional_writes
        self.row_affinity = row_affinity
        self.isolation = isolation

    @property
    def name(self):
        """``projects/<project>/instances/<instance>/appProfiles/<id>``"""
        return "{}/appProfiles/{}".format(self._instance.name, self.app_profile_id)

    @property
    def _api(self):
        return self._instance._client.instance_admin_client

    def __eq__(self, other):
        # Identity only; routing settings may be stale on either side.
        if not isinstance(other, AppProfile):
            return NotImplemented
        return (self.app_profile_id, self._instance) == (
            other.app_profile_id,
            other._instance,
        )

    def __ne__(self, other):
        return not self == other

    @classmethod
    def from_pb(cls, app_profile_pb, instance):
        """Build an app profile from an admin API message.

        :raises: :class:`ValueError` when the resource name is malformed or
                 belongs to another project or instance.
        """
        match = _APP_PROFILE_NAME_RE.match(app_profile_pb.name)
        if match is None:
            raise ValueError(
                "Malformed app profile name: {!r}".format(app_profile_pb.name)
            )
        if (match.group("project"), match.group("instance")) != (
            instance._client.project,
            instance.instance_id,
        ):
            raise ValueError(
                "App profile {} does not belong to {}".format(
                    app_profile_pb.name, instance.name
                )
            )
        app_profile = cls(match.group("app_profile_id"), instance)
        app_profile._update_from_pb(app_profile_pb)
        return app_profile

    def _update_from_pb(self, app_profile_pb):
        self.description = app_profile_pb.description
        self.routing_policy_type = None
        self.cluster_id = None
        self.multi_cluster_ids = None
        self.allow_transactional_writes = None
        self.row_affinity = False
        self.isolation = None

        if "multi_cluster_routing_use_any" in app_profile_pb:
            multi = app_profile_pb.multi_cluster_routing_use_any
            self.routing_policy_type = RoutingPolicyType.ANY
            self.multi_cluster_ids = list(multi.cluster_ids)
            self.row_affinity = "row_affinity" in multi
        elif "single_cluster_routing" in app_profile_pb:
            single = app_profile_pb.single_cluster_routing
            self.routing_policy_type = RoutingPolicyType.SINGLE
            self.cluster_id = single.cluster_id
            self.allow_transactional_writes = single.allow_transactional_writes

        if "standard_isolation" in app_profile_pb:
            self.isolation = StandardIsolation(
                app_profile_pb.standard_isolation.priority
            )
        elif "data_boost_isolation_read_only" in app_profile_pb:
            boost = app_profile_pb.data_boost_isolation_read_only
            self.isolation = DataBoostIsolationReadOnly(boost.compute_billing_owner)

    def _routing_field(self):
        if self.routing_policy_type == RoutingPolicyType.ANY:
            return "multi_cluster_routing_use_any"
        return "single_cluster_routing"

    def _to_pb(self):
        """:raises: :class:`ValueError` without a routing policy type."""
        if not self.routing_policy_type:
            raise ValueError("An app profile needs a routing_policy_type")

        app_profile_pb = instance.AppProfile(
            name=self.name, description=self.description
        )
        if self.routing_policy_type == RoutingPolicyType.ANY:
            routing = instance.AppProfile.MultiClusterRoutingUseAny(
                cluster_ids=self.multi_cluster_ids or []
            )
            if self.row_affinity:
                routing.row_affinity = (
                    instance.AppProfile.MultiClusterRoutingUseAny.RowAffinity()
                )
        else:
            routing = instance.AppProfile.SingleClusterRouting(
                cluster_id=self.cluster_id,
                allow_transactional_writes=self.allow_transactional_writes,
            )
        setattr(app_profile_pb, self._routing_field(), routing)

        if isinstance(self.isolation, _Isolation):
            setattr(app_profile_pb, self.isolation._field, self.isolation._to_pb())
        return app_profile_pb

    def reload(self):
        self._update_from_pb(
            self._api.get_app_profile(
                request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
            )
        )

    def exists(self):
        """:rtype: bool"""
        try:
            self._api.get_app_profile(
                request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
            )
        except NotFound:
            return False
        return True

    def create(self, ignore_warnings=None):
        """Create the profile from the current settings.

        :type ignore_warnings: bool
        :param ignore_warnings: (Optional) Skip the server's safety checks.

        :rtype: :class:`AppProfile`
        :returns: The profile as stored by the server.
        """
        app_profile_pb = self._api.create_app_profile(
            request={
                "parent": self._instance.name,
                "app_profile_id": self.app_profile_id,
                "app_profile": self._to_pb(),
                "ignore_warnings": bool(ignore_warnings),
            }
        )
        return self.from_pb(app_profile_pb, self._instance)

    def update(self, ignore_warnings=None):
        """Write the description, routing and isolation to the server.

        The description is only written when set.

        :rtype: :class:`~google.api_core.operation.Operation`
        """
        paths = []
        if self.description is not None:
            paths.append("description")
        paths.append(self._routing_field())
        if isinstance(self.isolation, _Isolation):
            paths.append(self.isolation._field)

        return self._api.update_app_profile(
            request={
                "app_profile": self._to_pb(),
                "update_mask": _field_mask(paths),
                "ignore_warnings": bool(ignore_warnings),
            }
        )

    def delete(self, ignore_warnings=True):
        self._api.delete_app_profile(
            request={"name": self.name, "ignore_warnings": ignore_warnings}
        )
