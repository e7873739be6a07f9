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

"""Mocks and fakes shared by the unit tests."""

import mock

PROJECT = "project-id"
INSTANCE_ID = "instance-id"
INSTANCE_NAME = "projects/" + PROJECT + "/instances/" + INSTANCE_ID
TABLE_ID = "table-id"
TABLE_NAME = INSTANCE_NAME + "/tables/" + TABLE_ID
CLUSTER_ID = "cluster-id"
CLUSTER_NAME = INSTANCE_NAME + "/clusters/" + CLUSTER_ID


def _make_credentials():
    import google.auth.credentials

    class _CredentialsWithScopes(
        google.auth.credentials.Credentials, google.auth.credentials.Scoped
    ):
        pass

    return mock.Mock(spec=_CredentialsWithScopes)


def _make_data_api():
    from google.cloud.bigtable_v2 import BigtableClient

    return mock.create_autospec(BigtableClient, instance=True)


def _make_table_admin_api():
    from google.cloud.bigtable_admin_v2 import BigtableTableAdminClient

    return mock.create_autospec(BigtableTableAdminClient, instance=True)


def _make_instance_admin_api():
    from google.cloud.bigtable_admin_v2 import BigtableInstanceAdminClient

    return mock.create_autospec(BigtableInstanceAdminClient, instance=True)


def _make_client(project=PROJECT, admin=True):
    from bigtable_client.client import Client

    credentials = _make_credentials()
    return Client(project=project, credentials=credentials, admin=admin)


def _make_client_with_apis(project=PROJECT):
    """Real client whose generated clients are autospec mocks."""
    client = _make_client(project=project)
    client._table_data_client = _make_data_api()
    client._table_admin_client = _make_table_admin_api()
    client._instance_admin_client = _make_instance_admin_api()
    return client


def _make_instance(client=None, instance_id=INSTANCE_ID):
    from bigtable_client.instance import Instance

    if client is None:
        client = _make_client_with_apis()
    return Instance(instance_id, client)


def _make_operation(result=None):
    from google.api_core import operation

    op = mock.create_autospec(operation.Operation, instance=True)
    op.result.return_value = result
    return op


def _make_table(instance=None, table_id=TABLE_ID, **kwargs):
    from bigtable_client.table import Table

    if instance is None:
        instance = _make_instance()
    return Table(table_id, instance, **kwargs)
