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

from google.rpc import code_pb2
from google.rpc import status_pb2


def _make_info_pb(message="ok"):
    from google.cloud.bigtable_admin_v2.types import table as table_v2_pb2

    return table_v2_pb2.EncryptionInfo(
        encryption_type=table_v2_pb2.EncryptionInfo.EncryptionType.CUSTOMER_MANAGED_ENCRYPTION,
        encryption_status=status_pb2.Status(code=code_pb2.OK, message=message),
        kms_key_version="key-version",
    )


def test_status_accessors():
    from bigtable_client.encryption_info import Status

    status = Status(status_pb2.Status(code=code_pb2.NOT_FOUND, message="missing"))

    assert status.code == code_pb2.NOT_FOUND
    assert status.message == "missing"
    assert status.details == []
    assert status == Status(status_pb2.Status(code=code_pb2.NOT_FOUND, message="missing"))
    assert status != Status(status_pb2.Status(code=code_pb2.OK))


def test_encryption_info_from_pb():
    from bigtable_client import enums
    from bigtable_client.encryption_info import EncryptionInfo
    from bigtable_client.encryption_info import Status

    info = EncryptionInfo._from_pb(_make_info_pb())

    assert (
        info.encryption_type
        == enums.EncryptionInfo.EncryptionType.CUSTOMER_MANAGED_ENCRYPTION
    )
    assert info.encryption_status == Status(
        status_pb2.Status(code=code_pb2.OK, message="ok")
    )
    assert info.kms_key_version == "key-version"
    assert info == EncryptionInfo._from_pb(_make_info_pb())
    assert info != EncryptionInfo._from_pb(_make_info_pb(message="other"))
