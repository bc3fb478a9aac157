#
# Copyright 2022 European Centre for Medium-Range Weather Forecasts (ECMWF)
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
#
# In applying this licence, ECMWF does not waive the privileges and immunities
# granted to it by virtue of its status as an intergovernmental organisation nor
# does it submit to any jurisdiction.
#

import logging
import threading
import uuid


class TrackingState:
    """Dirty flag and dirty-field record shared by every view of one dirtify() call.

    The state only ever moves from clean to dirty; there is no way
    to clear it.
    """

    __slots__ = ("id", "lock", "_dirty", "_dirty_fields")

    def __init__(self):
        self.id = str(uuid.uuid4())
        self.lock = threading.RLock()
        self._dirty = False
        self._dirty_fields = {}

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def dirty_fields(self) -> dict:
        """A snapshot of the recorded keys; changing it does not touch the state"""
        with self.lock:
            return dict(self._dirty_fields)

    def mark_dirty(self, key):
        with self.lock:
            self._dirty = True
            if key not in self._dirty_fields:
                logging.debug("Field %r marked dirty", key, extra={"tracking_id": self.id})
            self._dirty_fields[key] = True

    def __repr__(self):
        return f"TrackingState(id={self.id}, dirty={self._dirty}, dirty_fields={list(self._dirty_fields)})"
