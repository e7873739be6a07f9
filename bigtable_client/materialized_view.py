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

"""User-friendly container for Google Cloud Bigtable MaterializedView."""

from google.cloud.bigtable_admin_v2.types import instance

from bigtable_client.logical_view import _InstanceView


class MaterializedView(_InstanceView):
    """Representation of a Google Cloud Bigtable materialized view: a SQL
    query whose results the service keeps up to date.

    :type materialized_view_id: str
    :param materialized_view_id: The ID of the materialized view.

    :type instance: :class:`~bigtable_client.instance.Instance`
    :param instance: The instance that owns the view.

    :type query: str
    :param query: (Optional) The view's SQL query. Required by :meth:`create`.

    :type deletion_protection: bool
    :param deletion_protection: (Optional) Whether the view can be deleted.
    """

    _COLLECTION = "materializedViews"
    _PB_CLASS = instance.MaterializedView
    _RPC = "materialized_view"

    def __init__(
        self, materialized_view_id, instance, query=None, deletion_protection=None
    ):
        super(MaterializedView, self).__init__(
            materialized_view_id,
            instance,
            query=query,
            deletion_protection=deletion_protection,
        )

    @property
    def materialized_view_id(self):
        return self.view_id
