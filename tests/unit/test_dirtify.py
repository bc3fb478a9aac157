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

import enum

from dirtify import DirtyView, dirtify


class Key(enum.Enum):
    TOKEN = "token"


class Test:
    def setup_method(self, method):
        self.obj = {
            "name": "Alice",
            "age": 30,
            "address": {
                "street": "123 Main St",
                "city": "Wonderland",
            },
        }
        self.view = dirtify(self.obj)

    def test_initially_clean(self):
        assert self.view.dirty is False
        assert self.view.dirty_fields == {}

    def test_dirty_when_field_changes(self):
        self.view["name"] = "Bob"
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"name": True}
        assert self.obj["name"] == "Bob"

    def test_same_value_is_not_a_change(self):
        self.view["name"] = "Alice"
        self.view["age"] = 30
        assert self.view.dirty is False
        assert self.view.dirty_fields == {}

    def test_equal_value_of_other_type_is_a_change(self):
        self.view["age"] = 30.0
        assert self.view.dirty_fields == {"age": True}

    def test_multiple_dirty_fields(self):
        self.view["name"] = "Bob"
        self.view["age"] = 31
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"name": True, "age": True}

    def test_nested_modification_records_leaf_key(self):
        self.view["address"]["street"] = "456 Oak St"
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"street": True}
        assert self.view["address"].dirty is True
        assert self.view["address"].dirty_fields == {"street": True}
        assert self.obj["address"]["street"] == "456 Oak St"

    def test_new_key(self):
        self.view["new_prop"] = "new value"
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"new_prop": True}
        assert self.obj["new_prop"] == "new value"

    def test_new_key_with_none_value(self):
        self.view["nothing"] = None
        assert self.view.dirty_fields == {"nothing": True}

    def test_dirty_cannot_be_assigned(self):
        self.view.dirty = True
        assert self.view.dirty is False

        self.view["name"] = "Changed"
        assert self.view.dirty is True
        self.view.dirty = False
        assert self.view.dirty is True

    def test_dirty_fields_cannot_be_assigned(self):
        self.view.dirty_fields = {"some_field": True}
        assert self.view.dirty_fields == {}

        self.view["name"] = "Changed"
        assert self.view.dirty_fields == {"name": True}
        self.view.dirty_fields = {}
        assert self.view.dirty_fields == {"name": True}

    def test_virtual_fields_cannot_be_deleted(self):
        self.view["name"] = "Changed"
        del self.view.dirty
        del self.view.dirty_fields
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"name": True}

    def test_dirty_fields_is_a_copy(self):
        self.view["name"] = "Bob"
        fields = self.view.dirty_fields
        fields["age"] = True
        assert self.view.dirty_fields == {"name": True}

    def test_non_object_values_pass_through(self):
        assert dirtify(None) is None
        assert dirtify(123) == 123
        assert dirtify("test") == "test"
        assert dirtify(True) is True
        assert dirtify(Key.TOKEN) is Key.TOKEN
        assert dirtify(len) is len

    def test_symbolic_keys(self):
        sym = object()
        self.obj[sym] = "symbol value"
        view = dirtify(self.obj)

        assert view.dirty is False
        view[sym] = "new symbol value"
        assert view.dirty is True
        assert view.dirty_fields[sym] is True
        assert view[sym] == "new symbol value"

    def test_enum_keys_behave_like_text_keys(self):
        view = dirtify({Key.TOKEN: "a"})
        view[Key.TOKEN] = "a"
        assert view.dirty is False
        view[Key.TOKEN] = "b"
        assert view.dirty_fields == {Key.TOKEN: True}

    def test_nested_access_after_parent_modification(self):
        self.view["name"] = "Bob"
        assert self.view["address"]["city"] == "Wonderland"
        self.view["address"]["city"] = "New City"
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"name": True, "city": True}
        assert self.view["address"]["city"] == "New City"

    def test_independent_instances(self):
        view1 = dirtify({"a": 1})
        view2 = dirtify({"b": 2})

        assert view1.dirty is False
        assert view2.dirty is False

        view1["a"] = 10
        assert view1.dirty is True
        assert view1.dirty_fields == {"a": True}
        assert view2.dirty is False
        assert view2.dirty_fields == {}

        view2["b"] = 20
        assert view1.dirty_fields == {"a": True}
        assert view2.dirty is True
        assert view2.dirty_fields == {"b": True}

    def test_same_target_wrapped_twice_is_independent(self):
        other = dirtify(self.obj)
        self.view["name"] = "Bob"
        assert other.dirty is False
        assert other["name"] == "Bob"

    def test_nested_views_share_state(self):
        self.view["address"]["street"] = "456 Oak St"
        nested = self.view["address"]

        assert self.view.dirty is True
        assert nested.dirty is True
        assert self.view.dirty_fields == {"street": True}
        assert nested.dirty_fields == {"street": True}

        nested["city"] = "New City"
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"street": True, "city": True}
        assert nested.dirty_fields == {"street": True, "city": True}

    def test_nested_views_are_created_per_read(self):
        first = self.view["address"]
        second = self.view["address"]
        assert isinstance(first, DirtyView)
        assert first is not second
        assert first == second

    def test_colliding_leaf_names_share_one_key(self):
        view = dirtify({"name": "root", "child": {"name": "child"}})
        view["child"]["name"] = "renamed"
        assert view.dirty_fields == {"name": True}
        assert view["name"] == "root"

    def test_reads_are_live(self):
        self.obj["age"] = 99
        assert self.view["age"] == 99
        assert self.view.dirty is False

    def test_write_same_nested_object_is_not_a_change(self):
        self.view["address"] = self.view["address"]
        assert self.view.dirty is False
        assert self.obj["address"] is not None
        assert not isinstance(self.obj["address"], DirtyView)

    def test_replacing_nested_object_with_equal_copy_is_a_change(self):
        self.view["address"] = dict(self.obj["address"])
        assert self.view.dirty_fields == {"address": True}

    def test_stays_dirty_after_restoring_value(self):
        self.view["name"] = "Bob"
        self.view["name"] = "Alice"
        assert self.view.dirty is True
        assert self.view.dirty_fields == {"name": True}
