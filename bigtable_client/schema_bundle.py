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

"""User-friendly container for Google Cloud Bigtable SchemaBundle."""

from google.api_core.exceptions import NotFound
from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

from bigtable_client._helpers import _field_mask
from bigtable_client._helpers import _last_segment
from bigtable_client._helpers import DEFAULT_ADMIN_RETRY


class SchemaBundle(object):
    """A named set of protobuf schemas attached to a table.

    :type schema_bundle_id: str
    :param schema_bundle_id: The ID of the schema bundle.

    :type table: :class:`~bigtable_client.table.Table`
    :param table: The table that owns the bundle.

    :type proto_descriptors: bytes
    :param proto_descriptors: (Optional) A serialized
                              ``google.protobuf.FileDescriptorSet``.

    :type etag: str
    :param etag: (Optional) Version used for optimistic concurrency in
                 :meth:`update`. Set by :meth:`reload`.
    """

    def __init__(self, schema_bundle_id, table, proto_descriptors=None, etag=None):
        self.schema_bundle_id = schema_bundle_id
        self._table = table
        self.proto_descriptors = proto_descriptors
        self.etag = etag

    @property
    def name(self):
        """``"projects/../instances/../tables/../schemaBundles/{schema_bundle_id}"``"""
        return self._table.name + "/schemaBundles/" + self.schema_bundle_id

    @property
    def _api(self):
        return self._table._instance._client.table_admin_client

    @classmethod
    def from_pb(cls, bundle_pb, table):
        """Creates a schema bundle from a protobuf.

        :raises: :class:`ValueError <exceptions.ValueError>` if the bundle does
                 not belong to ``table``.
        """
        prefix = table.name + "/schemaBundles/"
        if not bundle_pb.name.startswith(prefix):
            raise ValueError(
                "SchemaBundle name {} not of expected format".format(bundle_pb.name)
            )
        result = cls(_last_segment(bundle_pb.name), table)
        result._update_from_pb(bundle_pb)
        return result

    def _update_from_pb(self, bundle_pb):
        self.etag = bundle_pb.etag
        self.proto_descriptors = bundle_pb.proto_schema.proto_descriptors or None

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            other.schema_bundle_id == self.schema_bundle_id
            and other._table == self._table
        )

    def __ne__(self, other):
        return not self == other

    def _to_pb(self):
        bundle_pb = table_v2_pb2.SchemaBundle()
        if self.proto_descriptors:
            bundle_pb.proto_schema = table_v2_pb2.ProtoSchema(
                proto_descriptors=self.proto_descriptors
            )
        return bundle_pb

    def create(self):
        """Creates this schema bundle.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running operation corresponding to the create.
        """
        return self._api.create_schema_bundle(
            request={
                "parent": self._table.name,
                "schema_bundle_id": self.schema_bundle_id,
                "schema_bundle": self._to_pb(),
            }
        )

    def reload(self):
        """Reload the descriptors and etag of this schema bundle."""
        bundle_pb = self._api.get_schema_bundle(
            request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
        )
        self._update_from_pb(bundle_pb)

    def exists(self):
        """Check whether the schema bundle exists.

        :rtype: bool
        """
        try:
            self._api.get_schema_bundle(
                request={"name": self.name}, retry=DEFAULT_ADMIN_RETRY
            )
            return True
        except NotFound:
            return False

    def update(self, ignore_warnings=False):
        """Replaces the descriptors of this schema bundle.

        The stored ``etag`` is sent along, so the update fails if the bundle
        changed since it was last loaded.

        :type ignore_warnings: bool
        :param ignore_warnings: (Optional) If true, ignore safety checks.

        :rtype: :class:`~google.api_core.operation.Operation`
        :returns: The long-running operation corresponding to the update.
        """
        bundle_pb = self._to_pb()
        bundle_pb.name = self.name
        if self.etag:
            bundle_pb.etag = self.etag

        paths = ["proto_schema"] if self.proto_descriptors else []
        return self._api.update_schema_bundle(
            request={
                "schema_bundle": bundle_pb,
                "update_mask": _field_mask(paths),
                "ignore_warnings": ignore_warnings,
            }
        )

    def delete(self):
        """Delete this schema bundle."""
        self._api.delete_schema_bundle(request={"name": self.name})
