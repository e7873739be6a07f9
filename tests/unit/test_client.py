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

import mock
import pytest

from ._testing import _make_credentials
from ._testing import _make_data_api
from ._testing import _make_instance_admin_api
from ._testing import INSTANCE_ID
from ._testing import PROJECT


def _make_client(*args, **kwargs):
    from bigtable_client.client import Client

    return Client(*args, **kwargs)


def _instance_pb(instance_id, project=PROJECT):
    from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2

    return data_v2_pb2.Instance(
        name="projects/{}/instances/{}".format(project, instance_id),
        display_name=instance_id,
    )


def _cluster_pb(instance_id, cluster_id):
    from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2

    return data_v2_pb2.Cluster(
        name="projects/{}/instances/{}/clusters/{}".format(
            PROJECT, instance_id, cluster_id
        ),
        location="projects/{}/locations/us-central1-c".format(PROJECT),
        serve_nodes=3,
    )


def test_client_constructor_defaults():
    from bigtable_client.client import DATA_SCOPE
    from bigtable_client.gapic_version import __version__

    credentials = _make_credentials()
    client = _make_client(project=PROJECT, credentials=credentials)

    assert client.project == PROJECT
    assert client._credentials is credentials.with_scopes.return_value
    assert not client._read_only
    assert not client._admin
    assert client._client_info.client_library_version == __version__
    assert client._channel is None
    assert client.SCOPE == (DATA_SCOPE,)


def test_client_constructor_read_only_and_admin():
    credentials = _make_credentials()
    with pytest.raises(ValueError):
        _make_client(
            project=PROJECT, credentials=credentials, read_only=True, admin=True
        )


def test_client_constructor_w_channel_warns():
    credentials = _make_credentials()
    channel = mock.sentinel.channel

    with pytest.warns(DeprecationWarning):
        client = _make_client(project=PROJECT, credentials=credentials, channel=channel)

    assert client._channel is channel


def test_client_constructor_w_client_options_dict():
    credentials = _make_credentials()
    client = _make_client(
        project=PROJECT,
        credentials=credentials,
        admin=True,
        client_options={"api_endpoint": "data.example.com"},
        admin_client_options={"api_endpoint": "admin.example.com"},
    )

    assert client._client_options.api_endpoint == "data.example.com"
    assert client._admin_client_options.api_endpoint == "admin.example.com"


def test_client_constructor_w_emulator_host():
    from google.auth.credentials import AnonymousCredentials
    from google.cloud.environment_vars import BIGTABLE_EMULATOR

    from bigtable_client.client import _DEFAULT_BIGTABLE_EMULATOR_CLIENT

    emulator_host = "localhost:8081"
    with mock.patch.dict("os.environ", {BIGTABLE_EMULATOR: emulator_host}):
        client = _make_client()

    assert client._emulator_host == emulator_host
    assert client.project == _DEFAULT_BIGTABLE_EMULATOR_CLIENT
    assert isinstance(client._credentials, AnonymousCredentials)


@pytest.mark.parametrize(
    "read_only,admin,expected",
    [
        (False, False, ("DATA",)),
        (True, False, ("READ_ONLY",)),
        (False, True, ("DATA", "ADMIN")),
    ],
)
def test_client__get_scopes(read_only, admin, expected):
    from bigtable_client import client as MUT

    scopes = {
        "DATA": MUT.DATA_SCOPE,
        "READ_ONLY": MUT.READ_ONLY_SCOPE,
        "ADMIN": MUT.ADMIN_SCOPE,
    }
    client = _make_client(
        project=PROJECT,
        credentials=_make_credentials(),
        read_only=read_only,
        admin=admin,
    )

    assert client._get_scopes() == tuple(scopes[name] for name in expected)


def test_client_project_path():
    client = _make_client(project=PROJECT, credentials=_make_credentials())
    assert client.project_path == "projects/" + PROJECT


def test_client__create_gapic_client_channel_w_emulator():
    from bigtable_client.client import _GRPC_CHANNEL_OPTIONS

    client = _make_client(project=PROJECT, credentials=_make_credentials())
    client._emulator_host = "localhost:8081"
    client_class = mock.Mock(DEFAULT_ENDPOINT="bigtable.googleapis.com")
    transport_class = mock.Mock()

    with mock.patch("bigtable_client.client.grpc.insecure_channel") as insecure:
        transport = client._create_gapic_client_channel(
            client_class, transport_class, None
        )

    insecure.assert_called_once_with(
        target="localhost:8081", options=_GRPC_CHANNEL_OPTIONS
    )
    transport_class.create_channel.assert_not_called()
    transport_class.assert_called_once_with(
        channel=insecure.return_value, host="localhost:8081"
    )
    assert transport is transport_class.return_value


def test_client__create_gapic_client_channel_w_endpoint():
    from google.api_core.client_options import ClientOptions

    from bigtable_client.client import _GRPC_CHANNEL_OPTIONS

    client = _make_client(project=PROJECT, credentials=_make_credentials())
    client_class = mock.Mock(DEFAULT_ENDPOINT="bigtable.googleapis.com")
    transport_class = mock.Mock()
    options = ClientOptions(api_endpoint="other.example.com")

    client._create_gapic_client_channel(client_class, transport_class, options)

    transport_class.create_channel.assert_called_once_with(
        host="other.example.com",
        credentials=client._credentials,
        options=_GRPC_CHANNEL_OPTIONS,
    )
    transport_class.assert_called_once_with(
        channel=transport_class.create_channel.return_value,
        host="other.example.com",
    )


def test_client__create_gapic_client_channel_w_default_endpoint():
    client = _make_client(project=PROJECT, credentials=_make_credentials())
    client_class = mock.Mock(DEFAULT_ENDPOINT="bigtable.googleapis.com")
    transport_class = mock.Mock()

    client._create_gapic_client_channel(client_class, transport_class, None)

    _, kwargs = transport_class.create_channel.call_args
    assert kwargs["host"] == "bigtable.googleapis.com"


def test_client_table_data_client_is_lazy():
    client = _make_client(project=PROJECT, credentials=_make_credentials())
    transport = mock.Mock()

    patch_channel = mock.patch.object(
        client, "_create_gapic_client_channel", return_value=transport
    )
    patch_gapic = mock.patch("google.cloud.bigtable_v2.BigtableClient")
    with patch_channel as create_channel, patch_gapic as gapic_class:
        data_client = client.table_data_client
        again = client.table_data_client

    assert data_client is gapic_class.return_value
    assert again is data_client
    create_channel.assert_called_once()
    gapic_class.assert_called_once_with(
        credentials=None,
        client_info=client._client_info,
        client_options=client._client_options,
        transport=transport,
    )


def test_client_table_data_client_already_set():
    client = _make_client(project=PROJECT, credentials=_make_credentials())
    api = client._table_data_client = _make_data_api()
    assert client.table_data_client is api


def test_client_admin_clients_require_admin():
    client = _make_client(project=PROJECT, credentials=_make_credentials())

    with pytest.raises(ValueError):
        client.table_admin_client

    with pytest.raises(ValueError):
        client.instance_admin_client


@pytest.mark.parametrize(
    "prop,gapic_name",
    [
        ("table_admin_client", "BigtableTableAdminClient"),
        ("instance_admin_client", "BigtableInstanceAdminClient"),
    ],
)
def test_client_admin_clients_are_lazy(prop, gapic_name):
    client = _make_client(
        project=PROJECT,
        credentials=_make_credentials(),
        admin=True,
        admin_client_options={"api_endpoint": "admin.example.com"},
    )
    transport = mock.Mock()

    patch_channel = mock.patch.object(
        client, "_create_gapic_client_channel", return_value=transport
    )
    patch_gapic = mock.patch("google.cloud.bigtable_admin_v2." + gapic_name)
    with patch_channel, patch_gapic as gapic_class:
        first = getattr(client, prop)
        second = getattr(client, prop)

    assert first is second is gapic_class.return_value
    gapic_class.assert_called_once_with(
        credentials=None,
        client_info=client._client_info,
        client_options=client._admin_client_options,
        transport=transport,
    )


def test_client_instance_factory():
    from bigtable_client import enums
    from bigtable_client.instance import Instance

    client = _make_client(project=PROJECT, credentials=_make_credentials())
    labels = {"env": "test"}

    instance = client.instance(
        INSTANCE_ID,
        display_name="My Instance",
        instance_type=enums.Instance.Type.DEVELOPMENT,
        labels=labels,
    )

    assert isinstance(instance, Instance)
    assert instance.instance_id == INSTANCE_ID
    assert instance.display_name == "My Instance"
    assert instance.type_ == enums.Instance.Type.DEVELOPMENT
    assert instance.labels == labels
    assert instance._client is client


def _admin_client_with_api():
    client = _make_client(project=PROJECT, credentials=_make_credentials(), admin=True)
    api = client._instance_admin_client = _make_instance_admin_api()
    return client, api


def test_client_list_instances():
    from google.cloud.bigtable_admin_v2.types import bigtable_instance_admin

    from bigtable_client._helpers import DEFAULT_ADMIN_RETRY

    client, api = _admin_client_with_api()
    api.list_instances.return_value = bigtable_instance_admin.ListInstancesResponse(
        instances=[_instance_pb("one"), _instance_pb("two")],
        failed_locations=["projects/p/locations/us-east1-b"],
    )

    instances, failed = client.list_instances()

    assert [instance.instance_id for instance in instances] == ["one", "two"]
    assert all(instance._client is client for instance in instances)
    assert failed == ["projects/p/locations/us-east1-b"]
    api.list_instances.assert_called_once_with(
        request={"parent": "projects/" + PROJECT}, retry=DEFAULT_ADMIN_RETRY
    )


def test_client_list_instances_fail_on_unavailable():
    from google.cloud.bigtable_admin_v2.types import bigtable_instance_admin

    from bigtable_client.exceptions import PartiallyUnavailableError

    client, api = _admin_client_with_api()
    api.list_instances.return_value = bigtable_instance_admin.ListInstancesResponse(
        instances=[_instance_pb("one")],
        failed_locations=["loc-a"],
    )

    with pytest.raises(PartiallyUnavailableError) as exc_info:
        client.list_instances(fail_on_unavailable=True)

    assert exc_info.value.locations == ["loc-a"]
    assert [i.instance_id for i in exc_info.value.partial_results] == ["one"]


def test_client_list_instances_fail_on_unavailable_all_reachable():
    from google.cloud.bigtable_admin_v2.types import bigtable_instance_admin

    client, api = _admin_client_with_api()
    api.list_instances.return_value = bigtable_instance_admin.ListInstancesResponse(
        instances=[_instance_pb("one")]
    )

    instances, failed = client.list_instances(fail_on_unavailable=True)

    assert len(instances) == 1
    assert failed == []


def test_client_list_clusters():
    from google.cloud.bigtable_admin_v2.types import bigtable_instance_admin

    from bigtable_client._helpers import DEFAULT_ADMIN_RETRY

    client, api = _admin_client_with_api()
    parent = "projects/{}/instances/-".format(PROJECT)
    api.instance_path.return_value = parent
    api.list_clusters.return_value = bigtable_instance_admin.ListClustersResponse(
        clusters=[
            _cluster_pb("inst-1", "c-1"),
            _cluster_pb("inst-1", "c-2"),
            _cluster_pb("inst-2", "c-3"),
        ],
        failed_locations=["loc-a"],
    )

    clusters, failed = client.list_clusters()

    assert [cluster.cluster_id for cluster in clusters] == ["c-1", "c-2", "c-3"]
    assert [cluster._instance.instance_id for cluster in clusters] == [
        "inst-1",
        "inst-1",
        "inst-2",
    ]
    assert clusters[0]._instance is clusters[1]._instance
    assert failed == ["loc-a"]
    api.instance_path.assert_called_once_with(PROJECT, "-")
    api.list_clusters.assert_called_once_with(
        request={"parent": parent}, retry=DEFAULT_ADMIN_RETRY
    )


def test_client_list_clusters_fail_on_unavailable():
    from google.cloud.bigtable_admin_v2.types import bigtable_instance_admin

    from bigtable_client.exceptions import PartiallyUnavailableError

    client, api = _admin_client_with_api()
    api.instance_path.return_value = "projects/{}/instances/-".format(PROJECT)
    api.list_clusters.return_value = bigtable_instance_admin.ListClustersResponse(
        clusters=[_cluster_pb("inst-1", "c-1")],
        failed_locations=["loc-a", "loc-b"],
    )

    with pytest.raises(PartiallyUnavailableError) as exc_info:
        client.list_clusters(fail_on_unavailable=True)

    assert exc_info.value.locations == ["loc-a", "loc-b"]
    assert len(exc_info.value.partial_results) == 1


def test_client_list_clusters_bad_name():
    from google.cloud.bigtable_admin_v2.types import bigtable_instance_admin
    from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2

    client, api = _admin_client_with_api()
    api.instance_path.return_value = "projects/{}/instances/-".format(PROJECT)
    api.list_clusters.return_value = bigtable_instance_admin.ListClustersResponse(
        clusters=[data_v2_pb2.Cluster(name="not/a/cluster")]
    )

    with pytest.raises(ValueError):
        client.list_clusters()


def test_client_close():
    client = _make_client(project=PROJECT, credentials=_make_credentials(), admin=True)
    data_api = client._table_data_client = mock.Mock(spec=["transport"])
    table_api = client._table_admin_client = mock.Mock(spec=["transport"])

    client.close()

    data_api.transport.close.assert_called_once_with()
    table_api.transport.close.assert_called_once_with()
    assert client._table_data_client is None
    assert client._table_admin_client is None
    assert client._instance_admin_client is None
