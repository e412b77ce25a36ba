"""
Tests for selector resolution and name disambiguation.
"""

import numpy as np
import pandas as pd
import pytest

from exprset.core.errors import DimensionMismatch, IndexOutOfRange, UnknownIdentifier
from exprset.core.selectors import ALL, make_unique, resolve_names, resolve_selector


class TestResolveSelector:

    def test_all_and_none(self):
        np.testing.assert_array_equal(resolve_selector(ALL, 3), [0, 1, 2])
        np.testing.assert_array_equal(resolve_selector(None, 3), [0, 1, 2])

    def test_order_and_repeats_kept(self):
        np.testing.assert_array_equal(resolve_selector([2, 0, 2], 3), [2, 0, 2])

    def test_scalar(self):
        np.testing.assert_array_equal(resolve_selector(np.int64(1), 3), [1])

    def test_mask(self):
        np.testing.assert_array_equal(resolve_selector(np.array([False, True, True]), 3), [1, 2])

    def test_series_mask_ignores_index(self):
        mask = pd.Series([True, False, True], index=['c', 'b', 'a'])
        np.testing.assert_array_equal(resolve_selector(mask, 3), [0, 2])

    def test_object_array_of_bools(self):
        mask = np.array([True, False], dtype=object)
        np.testing.assert_array_equal(resolve_selector(mask, 2), [0])

    def test_mask_length(self):
        with pytest.raises(DimensionMismatch, match="samples mask length"):
            resolve_selector([True], 3, axis='samples')

    def test_out_of_range_message(self):
        with pytest.raises(IndexOutOfRange, match=r"features index 5 out of range \[0, 3\)"):
            resolve_selector([0, 5], 3, axis='features')

    def test_single_bool_rejected(self):
        with pytest.raises(TypeError):
            resolve_selector(True, 3)

    def test_two_dimensional_rejected(self):
        with pytest.raises(TypeError):
            resolve_selector([[0, 1]], 3)

    def test_string_selector_rejected(self):
        with pytest.raises(TypeError):
            resolve_selector(['a', 'b'], 3)

    def test_all_is_singleton(self):
        assert type(ALL)() is ALL
        assert repr(ALL) == 'ALL'


class TestResolveNames:

    def test_positions_in_given_order(self):
        index = pd.Index(['a', 'b', 'c'])
        np.testing.assert_array_equal(resolve_names(['c', 'a'], index), [2, 0])

    def test_missing(self):
        with pytest.raises(UnknownIdentifier):
            resolve_names(['a', 'z'], pd.Index(['a', 'b']))


class TestMakeUnique:

    def test_unique_input_unchanged(self):
        index = pd.Index(['a', 'b'])
        assert make_unique(index) is index

    def test_suffixes(self):
        result = make_unique(pd.Index(['a', 'a', 'b', 'a']))
        assert list(result) == ['a', 'a.1', 'b', 'a.2']

    def test_avoids_existing_names(self):
        result = make_unique(pd.Index(['a', 'a', 'a.1']))
        assert list(result) == ['a', 'a.2', 'a.1']
        assert result.is_unique
