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

from . import config as dirtify_config
from .interception import InterceptionStrategy, is_trackable
from .state import TrackingState

DEFAULT_CACHE_VIEWS = False
DEFAULT_TRACK_DELETES = True
DEFAULT_TRACK_MUTATORS = True


def dirtify(value, config=None):
    """Wrap value in a change-tracking view.

    Values that are not object-like (None, numbers, strings, callables...) are
    returned unchanged. Every call allocates its own TrackingState; nested
    objects read through the returned view share it.

    config is the ``tracking`` section of the configuration; when omitted the
    section of the global configuration is used.
    """
    if not is_trackable(value):
        return value

    if config is None:
        config = dirtify_config.global_config.get("tracking", {})

    state = TrackingState()
    strategy = InterceptionStrategy(
        state,
        cache_views=config.get("cache_views", DEFAULT_CACHE_VIEWS),
        track_deletes=config.get("track_deletes", DEFAULT_TRACK_DELETES),
        track_mutators=config.get("track_mutators", DEFAULT_TRACK_MUTATORS),
    )
    logging.debug("Tracking changes to %s", type(value).__name__, extra={"tracking_id": state.id})
    return strategy.wrap(value)
