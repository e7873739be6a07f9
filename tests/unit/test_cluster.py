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

import unittest

import mock
import pytest

from tests.unit._testing import CLUSTER_ID
from tests.unit._testing import CLUSTER_NAME
from tests.unit._testing import INSTANCE_ID
from tests.unit._testing import INSTANCE_NAME
from tests.unit._testing import PROJECT
from tests.unit._testing import _make_instance
from tests.unit._testing import _make_operation

LOCATION_ID = "us-central1-c"
LOCATION_PATH = "projects/" + PROJECT + "/locations/"
KMS_KEY_NAME = "projects/p/locations/l/keyRings/r/cryptoKeys/k"


class TestCluster(unittest.TestCase):
    @staticmethod
    def _get_target_class():
        from bigtable_client.cluster import Cluster

        return Cluster

    def _make_one(self, *args, **kwargs):
        return self._get_target_class()(*args, **kwargs)

    def _make_cluster_pb(self, **kwargs):
        from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2

        kwargs.setdefault("name", CLUSTER_NAME)
        kwargs.setdefault("location", LOCATION_PATH + LOCATION_ID)
        return data_v2_pb2.Cluster(**kwargs)

    def test_constructor_defaults(self):
        instance = _make_instance()
        cluster = self._make_one(CLUSTER_ID, instance)

        self.assertEqual(cluster.cluster_id, CLUSTER_ID)
        self.assertIs(cluster._instance, instance)
        self.assertIsNone(cluster.location_id)
        self.assertIsNone(cluster.serve_nodes)
        self.assertIsNone(cluster.default_storage_type)
        self.assertIsNone(cluster.kms_key_name)
        self.assertIsNone(cluster.state)
        self.assertFalse(cluster.autoscaling_enabled)

    def test_name(self):
        cluster = self._make_one(CLUSTER_ID, _make_instance())
        self.assertEqual(cluster.name, CLUSTER_NAME)

    def test_from_pb_manual_scaling(self):
        from bigtable_client import enums

        instance = _make_instance()
        cluster_pb = self._make_cluster_pb(
            serve_nodes=3,
            default_storage_type=enums.StorageType.SSD,
            state=enums.Cluster.State.READY,
        )

        cluster = self._get_target_class().from_pb(cluster_pb, instance)

        self.assertEqual(cluster.cluster_id, CLUSTER_ID)
        self.assertEqual(cluster.location_id, LOCATION_ID)
        self.assertEqual(cluster.serve_nodes, 3)
        self.assertEqual(cluster.default_storage_type, enums.StorageType.SSD)
        self.assertEqual(cluster.state, enums.Cluster.State.READY)
        self.assertIsNone(cluster.kms_key_name)
        self.assertFalse(cluster.autoscaling_enabled)

    def test_from_pb_autoscaling(self):
        from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2

        config = data_v2_pb2.Cluster.ClusterConfig(
            cluster_autoscaling_config=data_v2_pb2.Cluster.ClusterAutoscalingConfig(
                autoscaling_limits=data_v2_pb2.AutoscalingLimits(
                    min_serve_nodes=1, max_serve_nodes=5
                ),
                autoscaling_targets=data_v2_pb2.AutoscalingTargets(
                    cpu_utilization_percent=60
                ),
            )
        )
        cluster_pb = self._make_cluster_pb(
            serve_nodes=2,
            cluster_config=config,
            encryption_config=data_v2_pb2.Cluster.EncryptionConfig(
                kms_key_name=KMS_KEY_NAME
            ),
        )

        cluster = self._get_target_class().from_pb(cluster_pb, _make_instance())

        self.assertTrue(cluster.autoscaling_enabled)
        self.assertIsNone(cluster.serve_nodes)
        self.assertEqual(cluster.min_serve_nodes, 1)
        self.assertEqual(cluster.max_serve_nodes, 5)
        self.assertEqual(cluster.cpu_utilization_percent, 60)
        self.assertIsNone(cluster.storage_utilization_gib_per_node)
        self.assertEqual(cluster.kms_key_name, KMS_KEY_NAME)

    def test_from_pb_bad_name(self):
        cluster_pb = self._make_cluster_pb(name="clusters/" + CLUSTER_ID)
        with self.assertRaises(ValueError):
            self._get_target_class().from_pb(cluster_pb, _make_instance())

    def test_from_pb_instance_mismatch(self):
        cluster_pb = self._make_cluster_pb()
        instance = _make_instance(instance_id="other-instance")
        with self.assertRaises(ValueError):
            self._get_target_class().from_pb(cluster_pb, instance)

    def test_from_pb_project_mismatch(self):
        cluster_pb = self._make_cluster_pb(
            name="projects/other/instances/" + INSTANCE_ID + "/clusters/c"
        )
        with self.assertRaises(ValueError):
            self._get_target_class().from_pb(cluster_pb, _make_instance())

    def test___eq__(self):
        instance = _make_instance()
        cluster1 = self._make_one(CLUSTER_ID, instance, serve_nodes=1)
        cluster2 = self._make_one(CLUSTER_ID, instance, serve_nodes=3)
        self.assertEqual(cluster1, cluster2)
        self.assertNotEqual(cluster1, self._make_one("other", instance))
        self.assertNotEqual(cluster1, object())

    def test_reload(self):
        from bigtable_client._helpers import DEFAULT_ADMIN_RETRY

        instance = _make_instance()
        api = instance._client.instance_admin_client
        api.get_cluster.return_value = self._make_cluster_pb(serve_nodes=7)
        cluster = self._make_one(CLUSTER_ID, instance, serve_nodes=1)

        cluster.reload()

        self.assertEqual(cluster.serve_nodes, 7)
        self.assertEqual(cluster.location_id, LOCATION_ID)
        api.get_cluster.assert_called_once_with(
            request={"name": CLUSTER_NAME}, retry=DEFAULT_ADMIN_RETRY
        )

    def test_exists(self):
        from google.api_core.exceptions import NotFound

        instance = _make_instance()
        api = instance._client.instance_admin_client
        cluster = self._make_one(CLUSTER_ID, instance)

        api.get_cluster.return_value = self._make_cluster_pb()
        self.assertTrue(cluster.exists())

        api.get_cluster.side_effect = NotFound("testing")
        self.assertFalse(cluster.exists())

    def test_create_manual_scaling(self):
        from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2
        from bigtable_client import enums

        instance = _make_instance()
        api = instance._client.instance_admin_client
        op = api.create_cluster.return_value = _make_operation()
        cluster = self._make_one(
            CLUSTER_ID,
            instance,
            location_id=LOCATION_ID,
            serve_nodes=3,
            default_storage_type=enums.StorageType.HDD,
            kms_key_name=KMS_KEY_NAME,
        )

        result = cluster.create()

        self.assertIs(result, op)
        expected_pb = data_v2_pb2.Cluster(
            location=LOCATION_PATH + LOCATION_ID,
            serve_nodes=3,
            default_storage_type=enums.StorageType.HDD,
            encryption_config=data_v2_pb2.Cluster.EncryptionConfig(
                kms_key_name=KMS_KEY_NAME
            ),
        )
        api.create_cluster.assert_called_once_with(
            request={
                "parent": INSTANCE_NAME,
                "cluster_id": CLUSTER_ID,
                "cluster": expected_pb,
            }
        )

    def test_create_autoscaling(self):
        instance = _make_instance()
        api = instance._client.instance_admin_client
        cluster = self._make_one(
            CLUSTER_ID,
            instance,
            location_id=LOCATION_ID,
            min_serve_nodes=1,
            max_serve_nodes=4,
            cpu_utilization_percent=50,
        )

        cluster.create()

        request = api.create_cluster.call_args.kwargs["request"]
        cluster_pb = request["cluster"]
        self.assertEqual(cluster_pb.serve_nodes, 0)
        autoscaling = cluster_pb.cluster_config.cluster_autoscaling_config
        self.assertEqual(autoscaling.autoscaling_limits.min_serve_nodes, 1)
        self.assertEqual(autoscaling.autoscaling_limits.max_serve_nodes, 4)
        self.assertEqual(autoscaling.autoscaling_targets.cpu_utilization_percent, 50)

    def test_create_both_scaling_modes(self):
        cluster = self._make_one(
            CLUSTER_ID,
            _make_instance(),
            location_id=LOCATION_ID,
            serve_nodes=3,
            min_serve_nodes=1,
            max_serve_nodes=4,
        )
        with self.assertRaises(ValueError):
            cluster.create()

    def test_create_autoscaling_missing_limits(self):
        cluster = self._make_one(
            CLUSTER_ID,
            _make_instance(),
            location_id=LOCATION_ID,
            cpu_utilization_percent=50,
        )
        with self.assertRaises(ValueError):
            cluster.create()

    def test_create_autoscaling_min_above_max(self):
        cluster = self._make_one(
            CLUSTER_ID,
            _make_instance(),
            location_id=LOCATION_ID,
            min_serve_nodes=5,
            max_serve_nodes=2,
        )
        with self.assertRaises(ValueError):
            cluster.create()

    def test_update_manual_scaling(self):
        from google.cloud.bigtable_admin_v2.types import instance as data_v2_pb2

        instance = _make_instance()
        api = instance._client.instance_admin_client
        cluster = self._make_one(CLUSTER_ID, instance, serve_nodes=5)

        cluster.update()

        api.partial_update_cluster.assert_called_once_with(
            request={
                "cluster": data_v2_pb2.Cluster(name=CLUSTER_NAME, serve_nodes=5),
                "update_mask": {
                    "paths": [
                        "serve_nodes",
                        "cluster_config.cluster_autoscaling_config",
                    ]
                },
            }
        )

    def test_update_autoscaling(self):
        instance = _make_instance()
        api = instance._client.instance_admin_client
        cluster = self._make_one(
            CLUSTER_ID,
            instance,
            min_serve_nodes=2,
            max_serve_nodes=8,
            storage_utilization_gib_per_node=2560,
        )

        cluster.update()

        request = api.partial_update_cluster.call_args.kwargs["request"]
        self.assertEqual(
            request["update_mask"],
            {"paths": ["cluster_config.cluster_autoscaling_config"]},
        )
        autoscaling = request["cluster"].cluster_config.cluster_autoscaling_config
        self.assertEqual(autoscaling.autoscaling_limits.max_serve_nodes, 8)
        self.assertEqual(
            autoscaling.autoscaling_targets.storage_utilization_gib_per_node, 2560
        )

    def test_disable_autoscaling(self):
        instance = _make_instance()
        api = instance._client.instance_admin_client
        cluster = self._make_one(
            CLUSTER_ID,
            instance,
            min_serve_nodes=2,
            max_serve_nodes=8,
            cpu_utilization_percent=70,
        )

        cluster.disable_autoscaling(serve_nodes=4)

        self.assertFalse(cluster.autoscaling_enabled)
        self.assertEqual(cluster.serve_nodes, 4)
        request = api.partial_update_cluster.call_args.kwargs["request"]
        self.assertEqual(request["cluster"].serve_nodes, 4)

    def test_delete(self):
        instance = _make_instance()
        api = instance._client.instance_admin_client
        cluster = self._make_one(CLUSTER_ID, instance)

        cluster.delete()

        api.delete_cluster.assert_called_once_with(request={"name": CLUSTER_NAME})


@pytest.mark.parametrize(
    "kwargs,enabled",
    [
        ({}, False),
        ({"serve_nodes": 3}, False),
        ({"min_serve_nodes": 1}, True),
        ({"storage_utilization_gib_per_node": 4096}, True),
    ],
)
def test_cluster_autoscaling_enabled(kwargs, enabled):
    from bigtable_client.cluster import Cluster

    cluster = Cluster(CLUSTER_ID, mock.sentinel.instance, **kwargs)
    assert cluster.autoscaling_enabled is enabled
