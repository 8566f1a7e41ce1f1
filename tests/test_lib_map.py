"""Tests for the map library.

Maps have no literal syntax, so the tests bind them as variables.
"""

import pytest

from exql import DefaultContext, FunctionError, eval_expression, with_builtin_library


def run(source, **variables):
    ctx = DefaultContext(with_builtin_library(), variables=variables)
    return eval_expression(source, ctx)


@pytest.fixture
def user():
    return {
        "name": "ada",
        "age": 36,
        "address": {"city": "London", "zip": "N1"},
    }


# =============================================================================
# Basic Operation Tests
# =============================================================================


class TestBasics:
    def test_keys_and_values_sorted(self):
        m = {"b": 2, "a": 1, "c": 3}

        assert run("map.keys(m)", m=m) == ["a", "b", "c"]
        assert run("map.values(m)", m=m) == [1.0, 2.0, 3.0]

    def test_size_and_empty(self, user):
        assert run("map.size(u)", u=user) == 3.0
        assert run("map.isEmpty(m)", m={}) is True

    def test_requires_map(self):
        with pytest.raises(FunctionError, match="keys: expected map, got list"):
            run("map.keys([1])")

    def test_has(self, user):
        assert run("map.has(u, 'name')", u=user) is True
        assert run("map.has(u, 'email')", u=user) is False

    def test_get(self, user):
        assert run("map.get(u, 'name')", u=user) == "ada"
        assert run("map.get(u, 'email')", u=user) is None
        assert run("map.get(u, 'email', 'none')", u=user) == "none"

    def test_set_and_delete_copy(self, user):
        ctx = DefaultContext(with_builtin_library(), variables={"u": user})

        updated = eval_expression("map.set(u, 'age', 37)", ctx)
        removed = eval_expression("map.delete(u, 'age')", ctx)

        assert updated["age"] == 37.0
        assert "age" not in removed
        assert ctx.lookup_variable("u")["age"] == 36.0


class TestMerging:
    def test_merge_later_wins(self):
        result = run("map.merge(a, b)", a={"x": 1, "y": 1}, b={"y": 2})
        assert result == {"x": 1.0, "y": 2.0}

    def test_merge_rejects_non_map(self):
        with pytest.raises(FunctionError, match="merge: argument 2 expected map, got number"):
            run("map.merge(a, 1)", a={})

    def test_merge_deep(self):
        a = {"db": {"host": "localhost", "port": 5432}, "debug": False}
        b = {"db": {"port": 6543}, "debug": True}

        result = run("map.mergeDeep(a, b)", a=a, b=b)

        assert result == {"db": {"host": "localhost", "port": 6543.0}, "debug": True}

    def test_merge_deep_does_not_mutate(self):
        a = {"db": {"port": 1}}
        ctx = DefaultContext(with_builtin_library(), variables={"a": a, "b": {"db": {"port": 2}}})

        eval_expression("map.mergeDeep(a, b)", ctx)

        assert ctx.lookup_variable("a") == {"db": {"port": 1.0}}

    def test_invert(self):
        assert run("map.invert(m)", m={"a": 1, "b": "x"}) == {"1": "a", "x": "b"}

    def test_filter(self):
        m = {"a": 0, "b": "", "c": None, "d": False, "e": "ok", "f": []}
        assert run("map.filter(m)", m=m) == {"e": "ok", "f": []}

    def test_filter_and_omit_keys(self, user):
        assert run("map.filterKeys(u, ['name', 'age'])", u=user) == {"name": "ada", "age": 36.0}
        assert run("map.omitKeys(u, ['address', 'age'])", u=user) == {"name": "ada"}

    def test_rename(self):
        result = run("map.rename(row, names)", row={"id": 1, "x": 2}, names={"id": "user_id"})
        assert result == {"user_id": 1.0, "x": 2.0}


class TestConversion:
    def test_to_list(self):
        assert run("map.toList(m)", m={"b": 2, "a": 1}) == [["a", 1.0], ["b", 2.0]]

    def test_from_list(self):
        assert run("map.fromList([['a', 1], ['b', 2, 'extra']])") == {"a": 1.0, "b": 2.0}

    def test_from_list_bad_pair(self):
        with pytest.raises(FunctionError, match="fromList: pair 0 must have at least 2 elements"):
            run("map.fromList([['a']])")
        with pytest.raises(FunctionError, match="fromList: item 1 expected list, got string"):
            run("map.fromList([['a', 1], 'b'])")

    def test_to_query_string(self):
        m = {"b": 2, "a": "x", "tags": ["p", "q"]}
        assert run("map.toQueryString(m)", m=m) == "a=x&b=2&tags=p&tags=q"

    def test_from_query_string(self):
        assert run("map.fromQueryString('a=1&b=2&a=3&flag')") == {"a": ["1", "3"], "b": "2"}
        assert run("map.fromQueryString('')") == {}


class TestPaths:
    def test_get_path(self, user):
        assert run("map.getPath(u, 'address.city')", u=user) == "London"
        assert run("map.getPath(u, 'address.country')", u=user) is None
        assert run("map.getPath(u, 'address.country', 'UK')", u=user) == "UK"

    def test_get_path_through_scalar(self, user):
        with pytest.raises(FunctionError, match="getPath: path 'name.first' invalid at part 'first'"):
            run("map.getPath(u, 'name.first')", u=user)
        assert run("map.getPath(u, 'name.first', 'x')", u=user) == "x"

    def test_get_empty_path_returns_map(self, user):
        assert run("map.getPath(u, '')", u=user)["name"] == "ada"

    def test_set_path_creates_maps(self):
        result = run("map.setPath(m, 'a.b.c', 1)", m={"a": 5})
        assert result == {"a": {"b": {"c": 1.0}}}

    def test_set_path_empty(self):
        with pytest.raises(FunctionError, match="setPath: path cannot be empty"):
            run("map.setPath(m, '', 1)", m={})

    def test_has_path(self, user):
        assert run("map.hasPath(u, 'address.zip')", u=user) is True
        assert run("map.hasPath(u, 'address.zip.code')", u=user) is False
        assert run("map.hasPath(u, '')", u=user) is True

    def test_delete_path(self, user):
        ctx = DefaultContext(with_builtin_library(), variables={"u": user})

        result = eval_expression("map.deletePath(u, 'address.zip')", ctx)

        assert result["address"] == {"city": "London"}
        assert ctx.lookup_variable("u")["address"]["zip"] == "N1"

    def test_delete_missing_path(self, user):
        assert run("map.deletePath(u, 'nope.zip')", u=user) == run("map.merge(u)", u=user)
