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

import datetime
import enum
import functools
import logging
import numbers
import operator
import types
from collections.abc import Mapping, MutableMapping, MutableSequence, MutableSet, Set

from .state import TrackingState
from .view import VIRTUAL_FIELDS, DirtyView, unwrap

SCALAR_TYPES = (
    type(None),
    bool,
    numbers.Number,
    str,
    bytes,
    enum.Enum,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    type(Ellipsis),
    type(NotImplemented),
)

MAPPING_MUTATORS = frozenset({"update", "setdefault", "pop", "popitem", "clear"})
SEQUENCE_MUTATORS = frozenset(
    {
        "append",
        "extend",
        "insert",
        "pop",
        "remove",
        "clear",
        "reverse",
        "sort",
        # collections.deque
        "appendleft",
        "extendleft",
        "popleft",
        "rotate",
    }
)
SET_MUTATORS = frozenset(
    {
        "add",
        "discard",
        "remove",
        "pop",
        "clear",
        "update",
        "intersection_update",
        "difference_update",
        "symmetric_difference_update",
    }
)

_MISSING = object()


def is_scalar(value) -> bool:
    return isinstance(value, SCALAR_TYPES)


def is_trackable(value) -> bool:
    """True for values that get wrapped: anything but scalars, callables and modules"""
    return not (is_scalar(value) or callable(value) or isinstance(value, types.ModuleType))


def changed(old, new) -> bool:
    """Strict inequality: identity for objects, same-type equality for scalars"""
    if old is new:
        return False
    if type(old) is type(new) and is_scalar(old):
        return bool(old != new)
    return True


def mutators_for(target):
    if isinstance(target, MutableMapping):
        return MAPPING_MUTATORS
    if isinstance(target, MutableSequence):
        return SEQUENCE_MUTATORS
    if isinstance(target, MutableSet):
        return SET_MUTATORS
    return frozenset()


def _snapshot(target):
    """One level of references, never a deep copy"""
    if isinstance(target, Mapping):
        return dict(target)
    if isinstance(target, Set):
        return set(target)
    return list(target)


def _changed_keys(before, after):
    if isinstance(before, dict):
        keys = [k for k in before if k not in after or changed(before[k], after[k])]
        return keys + [k for k in after if k not in before]
    if isinstance(before, set):
        return list(before ^ after)
    return [
        i
        for i in range(max(len(before), len(after)))
        if i >= len(before) or i >= len(after) or changed(before[i], after[i])
    ]


def _lookup(target, key):
    if isinstance(target, Mapping):
        return target[key] if key in target else _MISSING
    try:
        return target[key]
    except LookupError:
        return _MISSING


def _normalize_index(target, key):
    """Negative in-range list indices are recorded as their positive position"""
    if isinstance(target, MutableSequence) and isinstance(key, int) and not isinstance(key, bool):
        if -len(target) <= key < 0:
            return key + len(target)
    return key


def _uses_class_cell(func):
    """Functions calling zero-argument super() need a real instance as self"""
    return "__class__" in func.__code__.co_freevars


def _data_descriptor(target, name):
    """The class-level data descriptor (e.g. a property) behind name, if any"""
    for klass in type(target).__mro__:
        if name in vars(klass):
            descriptor = vars(klass)[name]
            if isinstance(descriptor, (types.MemberDescriptorType, types.GetSetDescriptorType)):
                return None
            return descriptor if hasattr(type(descriptor), "__set__") else None
    return None


class InterceptionStrategy:
    """Get/set/delete logic shared by every view created from one dirtify() call.

    All views hold a reference to the same strategy, and through it to the same
    TrackingState, so a write at any depth is visible from the root view.
    Nested values are wrapped again on every read unless ``cache_views`` is set,
    in which case views are memoized by target identity for the lifetime of the
    strategy.
    """

    def __init__(self, state: TrackingState, cache_views=False, track_deletes=True, track_mutators=True):
        self.state = state
        self.track_deletes = track_deletes
        self.track_mutators = track_mutators
        self._views = {} if cache_views else None

    def wrap(self, value):
        if not is_trackable(value):
            return value
        if self._views is None:
            return DirtyView(value, self)
        # cached views keep their target alive, so its id cannot be reused
        with self.state.lock:
            view = self._views.get(id(value))
            if view is None:
                view = self._views[id(value)] = DirtyView(value, self)
            return view

    def iterate(self, iterable):
        for item in iterable:
            yield self.wrap(item)

    # ------------------ attributes -----------------

    def get_attr(self, target, name, view):
        value = getattr(target, name)
        if isinstance(value, types.MethodType) and value.__self__ is target:
            if isinstance(value.__func__, types.FunctionType) and not _uses_class_cell(value.__func__):
                # self inside the method is the view, so its writes are tracked
                return types.MethodType(value.__func__, view)
            return self._bind_python(target, value)
        if callable(value) and getattr(value, "__self__", None) is target:
            return self._bind(target, name, value)
        return self.wrap(value)

    def set_attr(self, target, name, value, view):
        if name in VIRTUAL_FIELDS:
            logging.debug("Ignoring write to virtual field %s", name, extra={"tracking_id": self.state.id})
            return
        value = unwrap(value)
        with self.state.lock:
            old = getattr(target, name, _MISSING)
            dirty = old is _MISSING or changed(unwrap(old), value)
            descriptor = _data_descriptor(target, name)
            if descriptor is not None:
                # run the setter against the view so its own writes are recorded
                descriptor.__set__(view, value)
            else:
                setattr(target, name, value)
            if dirty:
                self.state.mark_dirty(name)

    def del_attr(self, target, name):
        if name in VIRTUAL_FIELDS:
            logging.debug("Ignoring delete of virtual field %s", name, extra={"tracking_id": self.state.id})
            return
        with self.state.lock:
            existed = hasattr(target, name)
            delattr(target, name)
            if existed and self.track_deletes:
                self.state.mark_dirty(name)

    # ------------------ items -----------------

    def get_item(self, target, key):
        key = unwrap(key)
        if not isinstance(target, Mapping):
            return self.wrap(target[key])
        with self.state.lock:
            existed = key in target
            value = target[key]
            # e.g. defaultdict.__missing__ inserting the key on read
            if not existed and key in target:
                self.state.mark_dirty(key)
        return self.wrap(value)

    def set_item(self, target, key, value):
        key = _normalize_index(target, unwrap(key))
        value = unwrap(value)
        if isinstance(key, slice):
            self._mutate(target, operator.setitem, target, key, value)
            return
        with self.state.lock:
            old = _lookup(target, key)
            dirty = old is _MISSING or changed(unwrap(old), value)
            target[key] = value
            if dirty:
                self.state.mark_dirty(key)

    def del_item(self, target, key):
        key = _normalize_index(target, unwrap(key))
        if isinstance(target, MutableSequence) or isinstance(key, slice):
            # removing from a sequence shifts every later index
            if self.track_deletes:
                self._mutate(target, operator.delitem, target, key)
            else:
                del target[key]
            return
        with self.state.lock:
            existed = _lookup(target, key) is not _MISSING
            del target[key]
            if existed and self.track_deletes:
                self.state.mark_dirty(key)

    # ------------------ mutators -----------------

    def inplace(self, target, op, other):
        other = unwrap(other)
        if self.track_mutators and mutators_for(target):
            return self.wrap(self._mutate(target, op, target, other))
        return self.wrap(op(target, other))

    def _bind(self, target, name, method):
        mutator = self.track_mutators and name in mutators_for(target)

        @functools.wraps(method)
        def call(*args, **kwargs):
            args = [unwrap(a) for a in args]
            kwargs = {k: unwrap(v) for k, v in kwargs.items()}
            if mutator:
                return self.wrap(self._mutate(target, method, *args, **kwargs))
            return self.wrap(method(*args, **kwargs))

        return call

    def _bind_python(self, target, method):
        """Methods that need the real instance run on it; attribute changes are diffed"""

        @functools.wraps(method)
        def call(*args, **kwargs):
            args = [unwrap(a) for a in args]
            kwargs = {k: unwrap(v) for k, v in kwargs.items()}
            with self.state.lock:
                before = dict(getattr(target, "__dict__", {}))
                result = method(*args, **kwargs)
                for key in _changed_keys(before, dict(getattr(target, "__dict__", {}))):
                    self.state.mark_dirty(key)
            return self.wrap(result)

        return call

    def _mutate(self, target, func, *args, **kwargs):
        """Run func and record every key of target whose slot it changed"""
        with self.state.lock:
            before = _snapshot(target)
            result = func(*args, **kwargs)
            for key in _changed_keys(before, _snapshot(target)):
                self.state.mark_dirty(key)
        return result
