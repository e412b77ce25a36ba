"""
Tests for two-axis subsetting.

The central property: matrix columns and sample annotation rows (and matrix
rows and feature annotation rows) always move together.
"""

import itertools

import numpy as np
import pandas as pd
import pytest

from exprset import ALL, AnnotatedMatrix, DimensionMismatch, IndexOutOfRange, UnknownIdentifier


class TestScenarios:
    """Worked examples on the 3 x 4 integer matrix."""

    def test_reorder_and_omit_samples(self, scenario_matrix):
        sub = scenario_matrix.subset(ALL, [2, 0])
        np.testing.assert_array_equal(sub.matrix('expr'), [[3, 1], [7, 5], [11, 9]])
        assert list(sub.sample_names) == ['s3', 's1']
        assert list(sub.feature_names) == ['g1', 'g2', 'g3']

    def test_column_field_follows_sample_permutation(self, scenario_matrix):
        before = scenario_matrix.column_field('sex')
        sub = scenario_matrix.subset(ALL, [1, 0, 2, 3])
        after = sub.column_field('sex')

        assert list(sub.sample_names) == ['s2', 's1', 's3', 's4']
        assert list(after) == [before[name] for name in sub.sample_names]
        assert list(after.index) == list(sub.sample_names)

    def test_all_all_is_identity(self, scenario_matrix, two_channel_set):
        assert scenario_matrix.subset(ALL, ALL).equals(scenario_matrix)
        assert two_channel_set.subset().equals(two_channel_set)
        assert two_channel_set.subset(None, None).equals(two_channel_set)


class TestSelectorSemantics:

    def test_every_permutation_reorders_annotation(self, scenario_matrix):
        names = list(scenario_matrix.sample_names)
        pheno = scenario_matrix.col_annotation
        for perm in itertools.permutations(range(4)):
            sub = scenario_matrix.subset(ALL, list(perm))
            assert list(sub.sample_names) == [names[i] for i in perm]
            expected = pheno.iloc[list(perm)]
            pd.testing.assert_frame_equal(sub.col_annotation, expected)

    def test_element_mapping(self, two_channel_set):
        rows = [5, 0, 17, 17, 3]
        cols = [9, 2, 4]
        sub = two_channel_set.subset(rows, cols)
        for channel in two_channel_set.channel_names:
            source = two_channel_set.matrix(channel)
            result = sub.matrix(channel)
            for i, r in enumerate(rows):
                for j, c in enumerate(cols):
                    assert result[i, j] == source[r, c]

    def test_row_selector_moves_feature_annotation(self, scenario_matrix):
        sub = scenario_matrix.subset([2, 0], ALL)
        assert list(sub.feature_names) == ['g3', 'g1']
        assert list(sub.row_field('symbol')) == ['SOD1', 'TP53']
        np.testing.assert_array_equal(sub.matrix('expr'), [[9, 10, 11, 12], [1, 2, 3, 4]])

    def test_boolean_mask(self, scenario_matrix):
        sub = scenario_matrix.subset(ALL, [True, False, False, True])
        assert list(sub.sample_names) == ['s1', 's4']
        np.testing.assert_array_equal(sub.matrix('expr')[:, 1], [4, 8, 12])

    def test_series_mask_from_column_field(self, scenario_matrix):
        females = scenario_matrix.subset(cols=scenario_matrix.column_field('sex') == 'F')
        assert list(females.sample_names) == ['s1', 's4']
        assert set(females.column_field('sex')) == {'F'}

    def test_mask_wrong_length(self, scenario_matrix):
        with pytest.raises(DimensionMismatch):
            scenario_matrix.subset(ALL, [True, False])

    def test_out_of_range_sample_index(self, scenario_matrix):
        with pytest.raises(IndexOutOfRange):
            scenario_matrix.subset(ALL, [0, 4])

    def test_out_of_range_feature_index(self, scenario_matrix):
        with pytest.raises(IndexOutOfRange):
            scenario_matrix.subset([3], ALL)

    def test_negative_index_is_out_of_range(self, scenario_matrix):
        with pytest.raises(IndexOutOfRange):
            scenario_matrix.subset(ALL, [-1])
        with pytest.raises(IndexError):
            scenario_matrix.subset(ALL, [-1])

    def test_float_selector_rejected(self, scenario_matrix):
        with pytest.raises(TypeError):
            scenario_matrix.subset(ALL, [0.5, 1.0])

    def test_repeated_indices_get_unique_names(self, scenario_matrix):
        sub = scenario_matrix.subset(ALL, [0, 0, 1])
        assert list(sub.sample_names) == ['s1', 's1.1', 's2']
        np.testing.assert_array_equal(sub.matrix('expr')[:, 0], sub.matrix('expr')[:, 1])
        assert list(sub.column_field('sex')) == ['F', 'F', 'M']

    def test_empty_selection(self, scenario_matrix):
        sub = scenario_matrix.subset(ALL, [])
        assert sub.shape == (3, 0)
        assert sub.matrix('expr').shape == (3, 0)

    def test_metadata_and_platform_carried(self, small_set):
        sub = small_set.subset([0, 1], [0])
        assert sub.platform == 'hgu95av2'
        assert sub.experiment == small_set.experiment


class TestDrop:

    def test_single_column_keeps_container_by_default(self, scenario_matrix):
        sub = scenario_matrix.subset(ALL, [1])
        assert isinstance(sub, AnnotatedMatrix)
        assert sub.shape == (3, 1)

    def test_single_row_keeps_container_by_default(self, scenario_matrix):
        sub = scenario_matrix.subset(0, ALL)
        assert isinstance(sub, AnnotatedMatrix)
        assert sub.shape == (1, 4)

    def test_drop_single_row(self, scenario_matrix):
        dropped = scenario_matrix.subset(1, ALL, drop=True)
        series = dropped['expr']
        assert isinstance(series, pd.Series)
        assert list(series.index) == ['s1', 's2', 's3', 's4']
        assert list(series) == [5, 6, 7, 8]
        assert series.name == 'g2'

    def test_drop_single_column(self, scenario_matrix):
        series = scenario_matrix.subset(ALL, [3], drop=True)['expr']
        assert list(series.index) == ['g1', 'g2', 'g3']
        assert list(series) == [4, 8, 12]

    def test_drop_single_cell(self, scenario_matrix):
        assert scenario_matrix.subset(2, 2, drop=True) == {'expr': 11}

    def test_drop_without_unit_axis_returns_container(self, scenario_matrix):
        assert isinstance(scenario_matrix.subset([0, 1], [0, 1], drop=True), AnnotatedMatrix)


class TestIndependence:
    """Copy-on-subset: derived containers never alias the source."""

    def test_subset_does_not_mutate_source(self, scenario_matrix):
        before = scenario_matrix.copy()
        scenario_matrix.subset([2, 1], [3, 0])
        assert scenario_matrix.equals(before)

    def test_subset_shares_no_memory(self, two_channel_set):
        sub = two_channel_set.subset(ALL, ALL)
        for channel in two_channel_set.channel_names:
            assert not np.shares_memory(sub.matrix(channel), two_channel_set.matrix(channel))


class TestFieldConsistency:
    """column_field(name)[sel] == subset(ALL, sel).column_field(name)."""

    @pytest.mark.parametrize("selector", [
        [3, 1],
        [0, 1, 2, 3],
        [2, 2, 0],
        [True, False, True, True],
    ])
    def test_direct_access_matches_subset(self, scenario_matrix, selector):
        positions = np.flatnonzero(selector) if isinstance(selector[0], bool) else selector
        direct = scenario_matrix.column_field('age').iloc[positions]
        via_subset = scenario_matrix.subset(ALL, selector).column_field('age')
        assert list(direct.to_numpy()) == list(via_subset.to_numpy())

    def test_labels_match_without_repeats(self, small_set):
        order = np.argsort(small_set.column_field('age').to_numpy(), kind='stable')
        direct = small_set.column_field('age').iloc[order]
        via_subset = small_set.subset(ALL, order).column_field('age')
        pd.testing.assert_series_equal(direct, via_subset)


class TestSubsetByName:

    def test_by_name(self, scenario_matrix):
        sub = scenario_matrix.subset_by_name(features=['g3'], samples=['s4', 's2'])
        np.testing.assert_array_equal(sub.matrix('expr'), [[12, 10]])
        assert list(sub.column_field('sex')) == ['F', 'M']

    def test_single_name(self, scenario_matrix):
        sub = scenario_matrix.subset_by_name(samples='s2')
        assert list(sub.sample_names) == ['s2']

    def test_unknown_name(self, scenario_matrix):
        with pytest.raises(UnknownIdentifier, match="s9"):
            scenario_matrix.subset_by_name(samples=['s1', 's9'])
