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

from tests.unit._testing import TABLE_NAME
from tests.unit._testing import _make_table

VIEW_ID = "view-id"
VIEW_NAME = TABLE_NAME + "/authorizedViews/" + VIEW_ID


class TestSubsetView(unittest.TestCase):
    @staticmethod
    def _get_target_class():
        from bigtable_client.authorized_view import SubsetView

        return SubsetView

    def _make_one(self, *args, **kwargs):
        return self._get_target_class()(*args, **kwargs)

    def test_constructor_encodes_bytes(self):
        from bigtable_client.authorized_view import FamilySubset

        subset = self._make_one(
            row_prefixes=["user#"],
            family_subsets={"cf": FamilySubset(qualifiers=["name"])},
        )
        self.assertEqual(subset.row_prefixes, [b"user#"])
        self.assertEqual(subset.family_subsets["cf"].qualifiers, [b"name"])

    def test_add_helpers(self):
        from bigtable_client.authorized_view import FamilySubset

        subset = self._make_one()
        subset.add_row_prefix("a")
        subset.add_family_subset_qualifier("cf", "q1")
        subset.add_family_subset_qualifier("cf", b"q2")
        subset.add_family_subset_qualifier_prefix("cf2", "")

        self.assertEqual(subset.row_prefixes, [b"a"])
        self.assertEqual(
            subset.family_subsets,
            {
                "cf": FamilySubset(qualifiers=[b"q1", b"q2"]),
                "cf2": FamilySubset(qualifier_prefixes=[b""]),
            },
        )

    def test_pb_round_trip(self):
        subset = self._make_one(row_prefixes=[b"p"])
        subset.add_family_subset_qualifier("cf", b"q")
        subset.add_family_subset_qualifier_prefix("cf", b"pre")

        subset_pb = subset._to_pb()

        self.assertEqual(list(subset_pb.row_prefixes), [b"p"])
        self.assertEqual(list(subset_pb.family_subsets["cf"].qualifiers), [b"q"])
        self.assertEqual(self._get_target_class()._from_pb(subset_pb), subset)


class TestAuthorizedView(unittest.TestCase):
    @staticmethod
    def _get_target_class():
        from bigtable_client.authorized_view import AuthorizedView

        return AuthorizedView

    def _make_one(self, *args, **kwargs):
        return self._get_target_class()(*args, **kwargs)

    def _make_subset(self):
        from bigtable_client.authorized_view import SubsetView

        subset = SubsetView(row_prefixes=[b"user#"])
        subset.add_family_subset_qualifier("cf", b"name")
        return subset

    def test_constructor_and_name(self):
        table = _make_table()
        view = self._make_one(VIEW_ID, table)

        self.assertEqual(view.authorized_view_id, VIEW_ID)
        self.assertIs(view._table, table)
        self.assertIsNone(view.subset_view)
        self.assertIsNone(view.deletion_protection)
        self.assertIsNone(view.etag)
        self.assertEqual(view.name, VIEW_NAME)

    def test_from_pb(self):
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

        subset = self._make_subset()
        view_pb = table_v2_pb2.AuthorizedView(
            name=VIEW_NAME,
            subset_view=subset._to_pb(),
            deletion_protection=True,
            etag="etag-1",
        )

        view = self._get_target_class().from_pb(view_pb, _make_table())

        self.assertEqual(view.authorized_view_id, VIEW_ID)
        self.assertEqual(view.subset_view, subset)
        self.assertTrue(view.deletion_protection)
        self.assertEqual(view.etag, "etag-1")

    def test_from_pb_without_subset(self):
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

        view_pb = table_v2_pb2.AuthorizedView(name=VIEW_NAME)
        view = self._get_target_class().from_pb(view_pb, _make_table())
        self.assertIsNone(view.subset_view)

    def test_from_pb_bad_name(self):
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

        view_pb = table_v2_pb2.AuthorizedView(name="authorizedViews/" + VIEW_ID)
        with self.assertRaises(ValueError):
            self._get_target_class().from_pb(view_pb, _make_table())

    def test_from_pb_other_table(self):
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

        view_pb = table_v2_pb2.AuthorizedView(name=VIEW_NAME)
        with self.assertRaises(ValueError):
            self._get_target_class().from_pb(
                view_pb, _make_table(table_id="other-table")
            )

    def test___eq__(self):
        table = _make_table()
        view = self._make_one(VIEW_ID, table)
        self.assertEqual(view, self._make_one(VIEW_ID, table, deletion_protection=True))
        self.assertNotEqual(view, self._make_one("other", table))

    def test_create_requires_subset(self):
        view = self._make_one(VIEW_ID, _make_table())
        with self.assertRaises(ValueError):
            view.create()

    def test_create(self):
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

        table = _make_table()
        api = table._instance._client.table_admin_client
        subset = self._make_subset()
        view = self._make_one(VIEW_ID, table, subset_view=subset)

        result = view.create()

        self.assertIs(result, api.create_authorized_view.return_value)
        api.create_authorized_view.assert_called_once_with(
            request={
                "parent": TABLE_NAME,
                "authorized_view_id": VIEW_ID,
                "authorized_view": table_v2_pb2.AuthorizedView(
                    subset_view=subset._to_pb()
                ),
            }
        )

    def test_reload_and_exists(self):
        from google.api_core.exceptions import NotFound
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2
        from bigtable_client._helpers import DEFAULT_ADMIN_RETRY

        table = _make_table()
        api = table._instance._client.table_admin_client
        api.get_authorized_view.return_value = table_v2_pb2.AuthorizedView(
            name=VIEW_NAME, etag="etag-2"
        )
        view = self._make_one(VIEW_ID, table)

        view.reload()

        self.assertEqual(view.etag, "etag-2")
        api.get_authorized_view.assert_called_once_with(
            request={"name": VIEW_NAME}, retry=DEFAULT_ADMIN_RETRY
        )
        self.assertTrue(view.exists())

        api.get_authorized_view.side_effect = NotFound("testing")
        self.assertFalse(view.exists())

    def test_update(self):
        from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

        table = _make_table()
        api = table._instance._client.table_admin_client
        view = self._make_one(VIEW_ID, table, deletion_protection=False)

        view.update(ignore_warnings=True)

        api.update_authorized_view.assert_called_once_with(
            request={
                "authorized_view": table_v2_pb2.AuthorizedView(
                    name=VIEW_NAME, deletion_protection=False
                ),
                "update_mask": {"paths": ["deletion_protection"]},
                "ignore_warnings": True,
            }
        )

    def test_delete(self):
        table = _make_table()
        api = table._instance._client.table_admin_client
        view = self._make_one(VIEW_ID, table)

        view.delete()

        api.delete_authorized_view.assert_called_once_with(
            request={"name": VIEW_NAME}
        )

    def test_iam(self):
        from google.iam.v1 import iam_policy_pb2
        from google.iam.v1 import policy_pb2
        from bigtable_client.policy import Policy

        table = _make_table()
        api = table._instance._client.table_admin_client
        api.get_iam_policy.return_value = policy_pb2.Policy(etag=b"a")
        api.set_iam_policy.return_value = policy_pb2.Policy(etag=b"b")
        api.test_iam_permissions.return_value = (
            iam_policy_pb2.TestIamPermissionsResponse(permissions=["p"])
        )
        view = self._make_one(VIEW_ID, table)

        self.assertEqual(view.get_iam_policy().etag, b"a")
        policy = Policy()
        self.assertEqual(view.set_iam_policy(policy).etag, b"b")
        self.assertEqual(view.test_iam_permissions(["p", "q"]), ["p"])

        api.get_iam_policy.assert_called_once_with(request={"resource": VIEW_NAME})
        api.set_iam_policy.assert_called_once_with(
            request={"resource": VIEW_NAME, "policy": policy.to_pb()}
        )
        api.test_iam_permissions.assert_called_once_with(
            request={"resource": VIEW_NAME, "permissions": ["p", "q"]}
        )
