"""
Tests for feature annotation lookups and annotate_features.
"""

import json
from unittest import mock

import numpy as np
import pandas as pd
import pytest

from exprset import AnnotatedMatrix, UnknownField
from exprset.annotation import CachedLookup, FeatureLookup, MappingLookup, annotate_features


class CountingLookup(FeatureLookup):
    """Records how often the backing source is asked."""

    def __init__(self, records):
        self.records = records
        self.calls = []

    def lookup(self, feature_id):
        self.calls.append(feature_id)
        return dict(self.records.get(feature_id, {}))


@pytest.fixture
def probe_matrix():
    return AnnotatedMatrix(
        {'exprs': np.arange(6, dtype=float).reshape(3, 2)},
        row_annotation=pd.DataFrame({'entrez': ['780', '5982', None]}),
        feature_names=['1007_s_at', '1053_at', 'AFFX-BioB-5_at'],
        sample_names=['a', 'b'],
    )


PROBES = {
    '1007_s_at': {'symbol': 'DDR1', 'chromosome': '6'},
    '1053_at': {'symbol': 'RFC2', 'chromosome': '7'},
}


class TestMappingLookup:

    def test_lookup_and_miss(self):
        lookup = MappingLookup(PROBES)
        assert lookup.lookup('1053_at') == {'symbol': 'RFC2', 'chromosome': '7'}
        assert lookup.lookup('unknown') == {}
        assert len(lookup) == 2

    def test_records_are_copies(self):
        lookup = MappingLookup(PROBES)
        lookup.lookup('1053_at')['symbol'] = 'changed'
        assert lookup.lookup('1053_at')['symbol'] == 'RFC2'

    def test_from_dataframe_skips_missing(self):
        table = pd.DataFrame(
            {'symbol': ['DDR1', 'RFC2'], 'chromosome': ['6', np.nan]},
            index=['1007_s_at', '1053_at'],
        )
        lookup = MappingLookup(table)
        assert lookup.lookup('1053_at') == {'symbol': 'RFC2'}

    def test_dataframe_needs_unique_index(self):
        table = pd.DataFrame({'symbol': ['A', 'B']}, index=['x', 'x'])
        with pytest.raises(ValueError):
            MappingLookup(table)

    def test_lookup_many_default(self):
        result = MappingLookup(PROBES).lookup_many(['1007_s_at', 'nope'])
        assert result == {'1007_s_at': PROBES['1007_s_at'], 'nope': {}}


class TestCachedLookup:

    def test_second_call_served_from_cache(self, tmp_path):
        source = CountingLookup(PROBES)
        cached = CachedLookup(source, cache_file=tmp_path / 'cache.json')
        assert cached.lookup('1007_s_at') == PROBES['1007_s_at']
        assert cached.lookup('1007_s_at') == PROBES['1007_s_at']
        assert source.calls == ['1007_s_at']
        assert '1007_s_at' in cached

    def test_cache_persisted(self, tmp_path):
        cache_file = tmp_path / 'cache.json'
        CachedLookup(CountingLookup(PROBES), cache_file=cache_file).lookup_many(['1053_at', 'x'])
        assert json.loads(cache_file.read_text()) == {'1053_at': PROBES['1053_at'], 'x': {}}

        source = CountingLookup(PROBES)
        reloaded = CachedLookup(source, cache_file=cache_file)
        assert reloaded.lookup('1053_at') == PROBES['1053_at']
        assert source.calls == []

    def test_corrupted_cache_ignored(self, tmp_path, caplog):
        cache_file = tmp_path / 'cache.json'
        cache_file.write_text('{not json')
        cached = CachedLookup(CountingLookup(PROBES), cache_file=cache_file)
        assert cached.lookup('1053_at') == PROBES['1053_at']
        assert "Corrupted cache" in caplog.text


class TestMyGeneLookup:

    def test_batches_and_field_extraction(self):
        from exprset.annotation.lookup import MyGeneLookup

        client = mock.MagicMock()
        client.querymany.return_value = {'out': [
            {'query': 'TP53', 'symbol': 'TP53', 'entrezgene': 7157,
             'genomic_pos': [{'chr': '17'}, {'chr': 'HSCHR17'}]},
            {'query': 'NOPE', 'notfound': True},
        ]}
        with mock.patch('mygene.MyGeneInfo', return_value=client):
            lookup = MyGeneLookup(fields=['symbol', 'entrezgene', 'genomic_pos.chr'])
            result = lookup.lookup_many(['TP53', 'NOPE'])

        assert result['TP53'] == {'symbol': 'TP53', 'entrezgene': 7157, 'genomic_pos.chr': '17'}
        assert result['NOPE'] == {}
        kwargs = client.querymany.call_args.kwargs
        assert kwargs['fields'] == 'symbol,entrezgene,genomic_pos.chr'
        assert kwargs['species'] == 'human'


class TestAnnotateFeatures:

    def test_adds_fields_aligned_to_features(self, probe_matrix):
        annotated = annotate_features(probe_matrix, MappingLookup(PROBES))
        assert list(annotated.row_field('symbol').iloc[:2]) == ['DDR1', 'RFC2']
        assert pd.isna(annotated.row_field('symbol').iloc[2])
        assert list(annotated.row_field('chromosome').iloc[:2]) == ['6', '7']
        assert 'symbol' not in probe_matrix.row_annotation.columns

    def test_selected_fields_only(self, probe_matrix):
        annotated = annotate_features(probe_matrix, MappingLookup(PROBES), fields=['symbol'])
        assert 'chromosome' not in annotated.row_annotation.columns

    def test_key_field(self, probe_matrix):
        lookup = MappingLookup({'780': {'symbol': 'DDR1'}, '5982': {'symbol': 'RFC2'}})
        annotated = annotate_features(probe_matrix, lookup, key_field='entrez')
        symbols = annotated.row_field('symbol')
        assert list(symbols.iloc[:2]) == ['DDR1', 'RFC2']
        assert pd.isna(symbols.iloc[2])

    def test_unknown_key_field(self, probe_matrix):
        with pytest.raises(UnknownField):
            annotate_features(probe_matrix, MappingLookup(PROBES), key_field='ensembl')

    def test_existing_field_kept_unless_overwrite(self, probe_matrix):
        lookup = MappingLookup({'1007_s_at': {'entrez': 'other'}})
        kept = annotate_features(probe_matrix, lookup, fields=['entrez'])
        assert kept.row_field('entrez').iloc[0] == '780'
        replaced = annotate_features(probe_matrix, lookup, fields=['entrez'], overwrite=True)
        assert replaced.row_field('entrez').iloc[0] == 'other'

    def test_annotation_survives_subset(self, probe_matrix):
        annotated = annotate_features(probe_matrix, MappingLookup(PROBES))
        sub = annotated.subset([1, 0])
        assert list(sub.row_field('symbol')) == ['RFC2', 'DDR1']
