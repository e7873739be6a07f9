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

"""Polling future used to wait for table replication."""

import logging

from google.api_core import retry as retries
from google.api_core.future import polling

_LOGGER = logging.getLogger(__name__)

DEFAULT_CONSISTENCY_POLLING = retries.Retry(
    predicate=retries.if_exception_type(polling._OperationNotComplete),
    initial=1.0,
    maximum=10.0,
    multiplier=1.5,
    timeout=None,
)
"""How often :class:`_ConsistencyFuture` asks the server about a token."""


class _ConsistencyFuture(polling.PollingFuture):
    """A future that completes once a consistency token is replicated.

    Instances are created by
    :meth:`~bigtable_client.table.Table.wait_for_replication`.

    :type table: :class:`~bigtable_client.table.Table`
    :param table: The table whose writes are being replicated.

    :type token: str
    :param token: A token from
                  :meth:`~bigtable_client.table.Table.generate_consistency_token`.

    :type polling: :class:`~google.api_core.retry.Retry`
    :param polling: (Optional) Controls how often :meth:`done` is called by
                    :meth:`result`.
    """

    def __init__(self, table, token, polling=DEFAULT_CONSISTENCY_POLLING, **kwargs):
        super(_ConsistencyFuture, self).__init__(polling=polling, **kwargs)
        self._table = table
        self._token = token

    @property
    def token(self):
        return self._token

    def done(self, retry=None):
        """Checks the token once.

        :rtype: bool
        :returns: True if all writes before the token are replicated.
        """
        if self._result_set:
            return True

        try:
            consistent = self._table.check_consistency(self._token)
        except Exception as exc:
            self.set_exception(exc)
            raise

        _LOGGER.debug(
            "Consistency token for %s is %sconsistent",
            self._table.name,
            "" if consistent else "not yet ",
        )
        if consistent:
            self.set_result(True)
        return consistent

    def cancel(self):
        raise NotImplementedError("Cannot cancel a replication wait")

    def cancelled(self):
        return False
