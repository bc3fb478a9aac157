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

import operator

VIRTUAL_FIELDS = ("dirty", "dirty_fields")


def unwrap(value):
    """Return the object underneath any number of stacked views"""
    while isinstance(value, DirtyView):
        value = value._DirtyView__target
    return value


class DirtyView:
    """A transparent facade over a target object.

    Attribute and item access is routed through the strategy shared by every
    view of one dirtify() call. Only dunders, the private slots and the two
    virtual fields live on the view itself; everything else is resolved on the
    target.
    """

    __slots__ = ("__target", "__strategy")

    def __init__(self, target, strategy):
        object.__setattr__(self, "_DirtyView__target", target)
        object.__setattr__(self, "_DirtyView__strategy", strategy)

    @property
    def dirty(self) -> bool:
        return self.__strategy.state.dirty

    @property
    def dirty_fields(self) -> dict:
        return self.__strategy.state.dirty_fields

    # attributes

    def __getattr__(self, name):
        if name.startswith("_DirtyView__"):
            raise AttributeError(name)
        return self.__strategy.get_attr(self.__target, name, self)

    def __setattr__(self, name, value):
        self.__strategy.set_attr(self.__target, name, value, self)

    def __delattr__(self, name):
        self.__strategy.del_attr(self.__target, name)

    def __dir__(self):
        return sorted(set(dir(self.__target)) | set(VIRTUAL_FIELDS))

    # items

    def __getitem__(self, key):
        return self.__strategy.get_item(self.__target, key)

    def __setitem__(self, key, value):
        self.__strategy.set_item(self.__target, key, value)

    def __delitem__(self, key):
        self.__strategy.del_item(self.__target, key)

    def __len__(self):
        return len(self.__target)

    def __iter__(self):
        return self.__strategy.iterate(self.__target)

    def __reversed__(self):
        return self.__strategy.iterate(reversed(self.__target))

    def __contains__(self, item):
        return unwrap(item) in self.__target

    # in-place operators, e.g. `view.tags += [...]`

    def __iadd__(self, other):
        return self.__strategy.inplace(self.__target, operator.iadd, other)

    def __imul__(self, other):
        return self.__strategy.inplace(self.__target, operator.imul, other)

    def __ior__(self, other):
        return self.__strategy.inplace(self.__target, operator.ior, other)

    def __iand__(self, other):
        return self.__strategy.inplace(self.__target, operator.iand, other)

    def __isub__(self, other):
        return self.__strategy.inplace(self.__target, operator.isub, other)

    def __ixor__(self, other):
        return self.__strategy.inplace(self.__target, operator.ixor, other)

    # comparison and display

    def __eq__(self, other):
        return self.__target == unwrap(other)

    def __lt__(self, other):
        return self.__target < unwrap(other)

    def __le__(self, other):
        return self.__target <= unwrap(other)

    def __gt__(self, other):
        return self.__target > unwrap(other)

    def __ge__(self, other):
        return self.__target >= unwrap(other)

    def __hash__(self):
        return hash(self.__target)

    def __bool__(self):
        return bool(self.__target)

    def __repr__(self):
        return repr(self.__target)

    def __str__(self):
        return str(self.__target)
