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

"""User-friendly container for Google Cloud Bigtable AuthorizedView."""

import re

from google.api_core.exceptions import NotFound
from google.cloud._helpers import _to_bytes  # type: ignore
from google.cloud.bigtable_admin_v2 import (
    BigtableTableAdminClient,
)
from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY
from bigtable_client.policy import Policy

_AUTHORIZED_VIEW_NAME_RE = re.compile(
    r"^projects/(?P<project>[^/]+)/"
    r"instances/(?P<instance_id>[^/]+)/"
    r"tables/(?P<table_id>[^/]+)/"
    r"authorizedViews/(?P<authorized_view_id>[^/]+)$"
)


class FamilySubset(object):
    """Columns of one family that an authorized view exposes.

    :type qualifiers: list
    :param qualifiers: (Optional) Individual column qualifiers.

    :type qualifier_prefixes: list
    :param qualifier_prefixes: (Optional) Qualifier prefixes; an empty prefix
                               matches every column of the family.
    """

    def __init__(self, qualifiers=None, qualifier_prefixes=None):
        self.qualifiers = [_to_bytes(q) for q in qualifiers or ()]
        self.qualifier_prefixes = [_to_bytes(p) for p in qualifier_prefixes or ()]

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.qualifiers == self.qualifiers
            and other.qualifier_prefixes == self.qualifier_prefixes
        )

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "FamilySubset(qualifiers={!r}, qualifier_prefixes={!r})".format(
            self.qualifiers, self.qualifier_prefixes
        )


class SubsetView(object):
    """Authorized view that exposes some rows and columns of a table.

    :type row_prefixes: list
    :param row_prefixes: (Optional) Row key prefixes; rows matching any of
                         them are visible.

    :type family_subsets: dict
    :param family_subsets: (Optional) Column family names mapped to
                           :class:`FamilySubset`.
    """

    def __init__(self, row_prefixes=None, family_subsets=None):
        self.row_prefixes = [_to_bytes(p) for p in row_prefixes or ()]
        self.family_subsets = dict(family_subsets or {})

    def add_row_prefix(self, prefix):
        self.row_prefixes.append(_to_bytes(prefix))

    def _family(self, family_name):
        return self.family_subsets.setdefault(family_name, FamilySubset())

    def add_family_subset_qualifier(self, family_name, qualifier):
        """Expose a single column of ``family_name``."""
        self._family(family_name).qualifiers.append(_to_bytes(qualifier))

    def add_family_subset_qualifier_prefix(self, family_name, qualifier_prefix):
        """Expose the columns of ``family_name`` starting with a prefix."""
        self._family(family_name).qualifier_prefixes.append(
            _to_bytes(qualifier_prefix)
        )

    def _to_pb(self):
        return table_v2_pb2.AuthorizedView.SubsetView(
            row_prefixes=self.row_prefixes,
            family_subsets={
                family: table_v2_pb2.AuthorizedView.FamilySubsets(
                    qualifiers=subset.qualifiers,
                    qualifier_prefixes=subset.qualifier_prefixes,
                )
                for family, subset in self.family_subsets.items()
            },
        )

    @classmethod
    def _from_pb(cls, subset_pb):
        return cls(
            row_prefixes=list(subset_pb.row_prefixes),
            family_subsets={
                family: FamilySubset(
                    qualifiers=list(subset.qualifiers),
                    qualifier_prefixes=list(subset.qualifier_prefixes),
                )
                for family, subset in subset_pb.family_subsets.items()
            },
        )

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.row_prefixes == self.row_prefixes
            and other.family_subsets == self.family_subsets
        )

    def __ne__(self, other):
        return not self == other


class AuthorizedView(object):
    """Representation of a Google Cloud Bigtable authorized view.

    An authorized view restricts which rows and columns of a table a caller
    can read and write. Data access through a view goes through
    ``instance.table(table_id, authorized_view_id=...)``.

    :type authorized_view_id: str
    :param authorized_view_id: The ID of the authorized view.

    :type table: :class:`~bigtable_client.table.Table`
    :param table: The table the view belongs to.

    :type subset_view: :class:`SubsetView`
    :param subset_view: (Optional) Rows and columns the view exposes.
                        Required by :meth:`create`.

    :type deletion_protection: bool
    :param deletion_protection: (Optional) Whether the view can be deleted.
    """

    def __init__(
        self, authorized_view_id, table, subset_view=None, deletion_protection=None
    ):
        self.authorized_view_id = authorized_view_id
        self._table = table
        self.subset_view = subset_view
        self.deletion_protection = deletion_protection
        self._etag = None

    @property
    def name(self):
        """Authorized view name used in requests.

        ``"projects/../instances/../tables/../authorizedViews/{authorized_view_id}"``

        :rtype: str
        """
        instance = self._table._instance
        return BigtableTableAdminClient.authorized_view_path(
            project=instance._client.project,
            instance=instance.instance_id,
            table=self._table.table_id,
            authorized_view=self.authorized_view_id,
        )

    @property
    def etag(self):
        return self._etag

    @property
    def _api(self):
        return self._table._instance._client.table_admin_client

    @classmethod
    def from_pb(cls, view_pb, table):
        """Creates an authorized view from a protobuf.

        :type view_pb: :class:`table_v2_pb2.AuthorizedView`
        :param view_pb: An authorized view protobuf object.

        :type table: :class:`~bigtable_client.table.Table`
        :param table: The table the view belongs to.

        :rtype: :class:`AuthorizedView`
        :raises: :class:`ValueError <exceptions.ValueError>` if the name does
                 not belong to ``table``.
        """
        match = _AUTHORIZED_VIEW_NAME_RE.match(view_pb.name)
        if match is None:
            raise ValueError(
                "AuthorizedView protobuf name was not in the expected format.",
                view_pb.name,
            )
        if (
            match.group("table_id") != table.table_id
            or match.group("instance_id") != table._instance.instance_id
            or match.group("project") != table._instance._client.project
        ):
            raise ValueError(
                "AuthorizedView {} does not belong to table {}".format(
                    view_pb.name, table.name
                )
            )
        result = cls(match.group("authorized_view_id"), table)
        result._update_from_pb(view_pb)
        return result

    def _update_from_pb(self, view_pb):
        if "subset_view" in view_pb:
            self.subset_view = SubsetView._from_pb(view_pb.subset_view)
        else:
            self.subset_view = None
        self.deletion_protection = view_pb.deletion_protection
        self._etag = view_pb.etag

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.authorized_view_id == self.authorized_view_id
            and other._table == self._table
        )

    def __ne__(self, other):
        return not self == other

    def _to_pb(self):
        view_pb = table_v2_pb2.AuthorizedView()
        if self.deletion_protection is not None:
            view_pb.deletion_protection = self.deletion_protection
        if self.subset_view is not None:
            view_pb.subset_view = self.subset_view._to_pb()
        return view_pb

    def create(self):
        """Creates this authorized view.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running operation corresponding to the create.
        :raises: :class:`ValueError <exceptions.ValueError>` if no subset view
                 is set.
        """
        if self.subset_view is None:
            raise ValueError("A subset view is required to create an authorized view")
        return self._api.create_authorized_view(
            request={
                "parent": self._table.name,
                "authorized_view_id": self.authorized_view_id,
                "authorized_view": self._to_pb(),
            }
        )

    def reload(self):
        """Reload the metadata for this authorized view."""
        view_pb = self._api.get_authorized_view(
            request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        self._update_from_pb(view_pb)

    def exists(self):
        """Check whether the authorized view exists.

        :rtype: bool
        :returns: True if the view exists, else False.
        """
        try:
            self._api.get_authorized_view(
                request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
            )
            return True
        except NotFound:
            return False

    def update(self, ignore_warnings=False):
        """Updates the subset view and/or deletion protection of this view.

        :type ignore_warnings: bool
        :param ignore_warnings: (Optional) If true, ignore safety checks.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running operation corresponding to the update.
        """
        paths = []
        if self.deletion_protection is not None:
            paths.append("deletion_protection")
        if self.subset_view is not None:
            paths.append("subset_view")

        view_pb = self._to_pb()
        view_pb.name = self.name
        return self._api.update_authorized_view(
            request={
                "authorized_view": view_pb,
                "update_mask": _field_mask(paths),
                "ignore_warnings": ignore_warnings,
            }
        )

    def delete(self):
        """Delete this authorized view."""
        self._api.delete_authorized_view(request={"name": self.name})

    def get_iam_policy(self):
        """Gets the IAM access control policy for this authorized view.

        :rtype: :class:`bigtable_client.policy.Policy`
        """
        resp = self._api.get_iam_policy(request={"resource": self.name})
        return Policy.from_pb(resp)

    def set_iam_policy(self, policy):
        """Sets the IAM access control policy for this authorized view.

        :type policy: :class:`bigtable_client.policy.Policy`
        :param policy: A new IAM policy to replace the current one.

        :rtype: :class:`bigtable_client.policy.Policy`
        """
        resp = self._api.set_iam_policy(
            request={"resource": self.name, "policy": policy.to_pb()}
        )
        return Policy.from_pb(resp)

    def test_iam_permissions(self, permissions):
        """Returns the subset of ``permissions`` the caller holds on this view.

        :rtype: list
        """
        resp = self._api.test_iam_permissions(
            request={"resource": self.name, "permissions": permissions}
        )
        return list(resp.permissions)
