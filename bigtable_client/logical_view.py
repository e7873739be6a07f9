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

"""User-friendly container for Google Cloud Bigtable LogicalView."""

import re

from google.api_core.exceptions import NotFound
from google.cloud.bigtable_admin_v2.services.bigtable_instance_admin import (
    BigtableInstanceAdminClient,
)
from google.cloud.bigtable_admin_v2.types import instance

from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY


class _InstanceView(object):
    """Common behaviour of SQL views owned by an instance.

    Subclasses set ``_COLLECTION`` (the resource collection in the name),
    ``_PB_CLASS`` (the admin message type) and ``_RPC`` (the suffix of the
    generated client methods, e.g. ``"logical_view"``).
    """

    _COLLECTION = None
    _PB_CLASS = None
    _RPC = None

    def __init__(self, view_id, instance, query=None, deletion_protection=None):
        self.view_id = view_id
        self._instance = instance
        self.query = query
        self.deletion_protection = deletion_protection
        self._etag = None

    @property
    def name(self):
        path = getattr(BigtableInstanceAdminClient, self._RPC + "_path")
        return path(
            self._instance._client.project, self._instance.instance_id, self.view_id
        )

    @property
    def etag(self):
        """str: Server-assigned version of the view, set by :meth:`reload`."""
        return self._etag

    @classmethod
    def _name_re(cls):
        return re.compile(
            r"^projects/(?P<project>[^/]+)/"
            r"instances/(?P<instance>[^/]+)/" + cls._COLLECTION + r"/"
            r"(?P<view_id>[^/]+)$"
        )

    @classmethod
    def from_pb(cls, view_pb, instance):
        """Creates a view from a protobuf.

        :raises: :class:`ValueError <exceptions.ValueError>` if the name does
                 not belong to ``instance``.
        """
        match = cls._name_re().match(view_pb.name)
        if match is None:
            raise ValueError(
                "{} protobuf name was not in the expected format.".format(
                    cls.__name__
                ),
                view_pb.name,
            )
        if match.group("instance") != instance.instance_id:
            raise ValueError(
                "Instance ID on {} does not match the instance ID".format(
                    cls.__name__
                )
            )
        if match.group("project") != instance._client.project:
            raise ValueError(
                "Project ID on {} does not match the project ID on the "
                "client".format(cls.__name__)
            )
        result = cls(match.group("view_id"), instance)
        result._update_from_pb(view_pb)
        return result

    def _update_from_pb(self, view_pb):
        self.query = view_pb.query
        self.deletion_protection = view_pb.deletion_protection
        self._etag = view_pb.etag

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return other.view_id == self.view_id and other._instance == self._instance

    def __ne__(self, other):
        return not self == other

    @property
    def _api(self):
        return self._instance._client.instance_admin_client

    def _call(self, verb, **kwargs):
        method = getattr(self._api, "{}_{}".format(verb, self._RPC))
        return method(**kwargs)

    def create(self):
        """Creates this view.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running operation corresponding to the create.
        :raises: :class:`ValueError <exceptions.ValueError>` if no query is set.
        """
        if not self.query:
            raise ValueError('"query" must be set to create a view')
        view_pb = self._PB_CLASS(query=self.query)
        if self.deletion_protection is not None:
            view_pb.deletion_protection = self.deletion_protection
        return self._call(
            "create",
            request={
                "parent": self._instance.name,
                self._RPC + "_id": self.view_id,
                self._RPC: view_pb,
            },
        )

    def reload(self):
        """Reload the metadata for this view."""
        view_pb = self._call(
            "get", request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        self._update_from_pb(view_pb)

    def exists(self):
        """Check whether the view exists.

        :rtype: bool
        :returns: True if the view exists, else False.
        """
        try:
            self._call("get", request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY)
            return True
        except NotFound:
            return False

    def update(self):
        """Updates the query and/or deletion protection of this view.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running operation corresponding to the update.
        :raises: :class:`ValueError <exceptions.ValueError>` if neither the
                 query nor deletion protection is set.
        """
        view_pb = self._PB_CLASS(name=self.name)
        paths = []
        if self.query:
            view_pb.query = self.query
            paths.append("query")
        if self.deletion_protection is not None:
            view_pb.deletion_protection = self.deletion_protection
            paths.append("deletion_protection")
        if not paths:
            raise ValueError("Nothing to update: set query or deletion_protection")
        return self._call(
            "update",
            request={self._RPC: view_pb, "update_mask": _field_mask(paths)},
        )

    def delete(self):
        """Deletes this view."""
        self._call("delete", request={"name": self.name})


class LogicalView(_InstanceView):
    """Representation of a Google Cloud Bigtable logical view: a saved SQL
    query that can be read like a table.

    :type logical_view_id: str
    :param logical_view_id: The ID of the logical view.

    :type instance: :class:`~bigtable_client.instance.Instance`
    :param instance: The instance that owns the view.

    :type query: str
    :param query: (Optional) The view's SQL query. Required by :meth:`create`.

    :type deletion_protection: bool
    :param deletion_protection: (Optional) Whether the view can be deleted.
    """

    _COLLECTION = "logicalViews"
    _PB_CLASS = instance.LogicalView
    _RPC = "logical_view"

    def __init__(
        self, logical_view_id, instance, query=None, deletion_protection=None
    ):
        super(LogicalView, self).__init__(
            logical_view_id,
            instance,
            query=query,
            deletion_protection=deletion_protection,
        )

    @property
    def logical_view_id(self):
        return self.view_id
