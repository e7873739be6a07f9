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

"""Class for encryption info for tables and backups."""


class Status(object):
    """A status, comprising a code and a message.

    See: `Cloud APIs Errors <https://cloud.google.com/apis/design/errors>`_

    This is a thin wrapper for ``google.rpc.status_pb2.Status``.

    :type status_pb: :class:`google.rpc.status_pb2.Status`
    :param status_pb: The status protocol buffer.
    """

    def __init__(self, status_pb):
        self.status_pb = status_pb

    @property
    def code(self):
        """The status code.

        Values are defined in ``google.rpc.code_pb2.Code``.

        :rtype: int
        :returns: The status code.
        """
        return self.status_pb.code

    @property
    def message(self):
        """A human readable status message.

        :rtype: str
        :returns: The status message.
        """
        return self.status_pb.message

    @property
    def details(self):
        return list(self.status_pb.details)

    def __repr__(self):
        return repr(self.status_pb)

    def __eq__(self, other):
        if isinstance(other, type(self)):
            return self.status_pb == other.status_pb
        return NotImplemented

    def __ne__(self, other):
        return not self == other


class EncryptionInfo(object):
    """Encryption information for a given resource.

    If this resource is protected with customer managed encryption, the in-use Google
    Cloud Key Management Service (KMS) key versions will be specified along with their
    status.

    :type encryption_type: int
    :param encryption_type: See
        :class:`enums.EncryptionInfo.EncryptionType`

    :type encryption_status: :class:`Status`
    :param encryption_status: The encryption status.

    :type kms_key_version: str
    :param kms_key_version: The key version used for encryption.
    """

    @classmethod
    def _from_pb(cls, info_pb):
        return cls(
            info_pb.encryption_type,
            Status(info_pb.encryption_status),
            info_pb.kms_key_version,
        )

    def __init__(self, encryption_type, encryption_status, kms_key_version):
        self.encryption_type = encryption_type
        self.encryption_status = encryption_status
        self.kms_key_version = kms_key_version

    def __eq__(self, other):
        if self is other:
            return True

        if not isinstance(other, type(self)):
            return NotImplemented

        return (
            self.encryption_type == other.encryption_type
            and self.encryption_status == other.encryption_status
            and self.kms_key_version == other.kms_key_version
        )

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "EncryptionInfo(encryption_type={!r}, kms_key_version={!r})".format(
            self.encryption_type, self.kms_key_version
        )
