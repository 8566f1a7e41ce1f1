"""Tests for the list library."""

import pytest

from exql import DefaultContext, FunctionError, eval_expression, with_builtin_library


def run(source, **variables):
    ctx = DefaultContext(with_builtin_library(), variables=variables)
    return eval_expression(source, ctx)


# =============================================================================
# Basic Operation Tests
# =============================================================================


class TestBasics:
    def test_length_and_empty(self):
        assert run("list.list_length([1, 2, 3])") == 3.0
        assert run("list.list_is_empty([])") is True

    def test_requires_list(self):
        with pytest.raises(FunctionError, match="list_length: expected list, got string"):
            run("list.list_length('abc')")

    def test_get(self):
        assert run("list.list_get([1, 2, 3], 0)") == 1.0
        assert run("list.list_get([1, 2, 3], -1)") == 3.0

    def test_get_out_of_range(self):
        assert run("list.list_get([1], 5, 'none')") == "none"
        with pytest.raises(FunctionError, match=r"list_get: index 5 out of bounds \(list length: 1\)"):
            run("list.list_get([1], 5)")

    def test_set_returns_copy(self):
        items = [1, 2]
        ctx = DefaultContext(with_builtin_library(), variables={"items": items})

        assert eval_expression("list.list_set(items, 1, 'x')", ctx) == [1.0, "x"]
        assert ctx.lookup_variable("items") == [1.0, 2.0]

    def test_set_out_of_range(self):
        with pytest.raises(FunctionError, match="list_set: index 3 out of bounds"):
            run("list.list_set([1], 3, 0)")


class TestConstruction:
    def test_append_prepend(self):
        assert run("list.append([1], 2, 3)") == [1.0, 2.0, 3.0]
        assert run("list.prepend([3], 1, 2)") == [1.0, 2.0, 3.0]

    def test_insert_clamps(self):
        assert run("list.list_insert([1, 3], 1, 2)") == [1.0, 2.0, 3.0]
        assert run("list.list_insert([1], 10, 2)") == [1.0, 2.0]
        assert run("list.list_insert([1, 2], -1, 3)") == [1.0, 2.0, 3.0]

    def test_remove(self):
        assert run("list.list_remove([1, 2, 3], 1)") == [1.0, 3.0]
        assert run("list.list_remove([1, 2, 3], -1)") == [1.0, 2.0]

    def test_concat(self):
        assert run("list.list_concat([1], [], [2, 3])") == [1.0, 2.0, 3.0]

    def test_concat_rejects_non_list(self):
        with pytest.raises(FunctionError, match="list_concat: argument 2 expected list, got number"):
            run("list.list_concat([1], 2)")


class TestAccess:
    def test_first_last(self):
        assert run("list.first([1, 2])") == 1.0
        assert run("list.last([1, 2])") == 2.0
        assert run("list.head([1, 2])") == 1.0

    def test_first_of_empty(self):
        assert run("list.first([], 0)") == 0.0
        with pytest.raises(FunctionError, match="first: list is empty"):
            run("list.first([])")

    def test_tail_and_init(self):
        assert run("list.tail([1, 2, 3])") == [2.0, 3.0]
        assert run("list.rest([])") == []
        assert run("list.list_init([1, 2, 3])") == [1.0, 2.0]

    def test_slice(self):
        assert run("list.slice([1, 2, 3, 4], 1, -1)") == [2.0, 3.0]
        assert run("list.slice([1, 2, 3], 1)") == [2.0, 3.0]
        assert run("list.slice([1, 2, 3], 2, 1)") == []
        assert run("list.slice([1, 2, 3], -10, 10)") == [1.0, 2.0, 3.0]

    def test_take_drop(self):
        assert run("list.take([1, 2, 3], 2)") == [1.0, 2.0]
        assert run("list.drop([1, 2, 3], 2)") == [3.0]

    def test_take_negative(self):
        with pytest.raises(FunctionError, match="take: count must be non-negative"):
            run("list.take([1], -1)")


class TestTransformation:
    def test_reverse(self):
        assert run("list.reverse([1, 2, 3])") == [3.0, 2.0, 1.0]

    def test_sort_numeric_and_strings(self):
        assert run("list.sort([3, '10', 2])") == [2.0, 3.0, "10"]
        assert run("list.sort(['b', 'a', 'c'])") == ["a", "b", "c"]

    def test_sort_desc(self):
        assert run("list.sort_desc([1, 3, 2])") == [3.0, 2.0, 1.0]

    def test_shuffle_keeps_elements(self):
        result = run("list.shuffle([1, 2, 3, 4])")
        assert sorted(result) == [1.0, 2.0, 3.0, 4.0]

    def test_unique_uses_loose_keys(self):
        assert run("list.unique([1, '1', 2, 1])") == [1.0, 2.0]

    def test_flatten(self):
        assert run("list.flatten([[1, [2]], [3]])") == [1.0, [2.0], 3.0]
        assert run("list.flatten([[1, [2]], [3]], 2)") == [1.0, 2.0, 3.0]
        assert run("list.flatten([[1]], 0)") == [[1.0]]

    def test_flatten_negative_depth(self):
        with pytest.raises(FunctionError, match="flatten: depth must be non-negative"):
            run("list.flatten([], -1)")

    def test_filter(self):
        assert run("list.filter([0, 1, '', 'a', false, missing, []])") == [1.0, "a", []]


class TestSearch:
    def test_contains(self):
        assert run("list.list_contains([1, 2], '2')") is True
        assert run("list.list_contains([1, 2], 3)") is False

    def test_index_of(self):
        assert run("list.list_index_of([1, 2, 1], 1)") == 0.0
        assert run("list.list_index_of([1, 2, 1], 1, 1)") == 2.0
        assert run("list.list_index_of([1], 5)") == -1.0

    def test_last_index_of(self):
        assert run("list.list_last_index_of([1, 2, 1], 1)") == 2.0

    def test_count(self):
        assert run("list.list_count(['a', 'b', 'a'], 'a')") == 2.0


class TestGeneration:
    def test_range(self):
        assert run("list.range(3)") == [0.0, 1.0, 2.0]
        assert run("list.range(2, 5)") == [2.0, 3.0, 4.0]
        assert run("list.range(10, 0, -5)") == [10.0, 5.0]
        assert run("list.range(5, 2)") == []

    def test_range_zero_step(self):
        with pytest.raises(FunctionError, match="range: step cannot be zero"):
            run("list.range(0, 5, 0)")

    def test_repeat(self):
        assert run("list.list_repeat('x', 3)") == ["x", "x", "x"]

    def test_zip(self):
        assert run("list.zip([1, 2, 3], ['a', 'b'])") == [[1.0, "a"], [2.0, "b"]]

    def test_zip_rejects_non_list(self):
        with pytest.raises(FunctionError, match="zip: argument 2 expected list, got string"):
            run("list.zip([1], 'a')")
