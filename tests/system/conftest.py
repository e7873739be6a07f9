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

import os
import uuid

import pytest
from google.cloud.environment_vars import BIGTABLE_EMULATOR

from bigtable_client.client import Client
from bigtable_client.column_family import MaxVersionsGCRule

COLUMN_FAMILY_ID = "cf1"
COLUMN_FAMILY_ID2 = "cf2"


@pytest.fixture(scope="session", autouse=True)
def in_emulator():
    if os.getenv(BIGTABLE_EMULATOR) is None:
        pytest.skip("{} is not set".format(BIGTABLE_EMULATOR))
    return True


@pytest.fixture(scope="session")
def unique_suffix():
    return uuid.uuid4().hex[:8]


@pytest.fixture(scope="session")
def admin_client(in_emulator):
    client = Client(project="emulator-project", admin=True)
    yield client
    client.close()


@pytest.fixture(scope="session")
def instance(admin_client):
    return admin_client.instance("emulator-instance")


@pytest.fixture(scope="function")
def data_table(instance, unique_suffix):
    table = instance.table("data-table-" + uuid.uuid4().hex[:8])
    table.create(
        column_families={
            COLUMN_FAMILY_ID: MaxVersionsGCRule(10),
            COLUMN_FAMILY_ID2: None,
        }
    )

    yield table

    table.delete()
