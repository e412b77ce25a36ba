"""
Feature annotation lookups.

An annotation source answers one question: given a feature identifier
(probe set, Ensembl id, gene symbol), what do we know about it? Chromosomal
location, gene symbol, Entrez id, description. The container never embeds an
annotation database; it only asks a FeatureLookup.

Design Principles:
    - Abstract interface: in-memory tables, caches and web services look alike
    - Batch friendly: lookup_many() lets remote sources group requests
    - Misses are not errors: unknown ids map to an empty record
    - Caching: remote answers are memoized in a JSON file

Examples:
    >>> from exprset.annotation.lookup import MappingLookup, CachedLookup
    >>>
    >>> lookup = MappingLookup({
    ...     '1007_s_at': {'symbol': 'DDR1', 'chromosome': '6'},
    ...     '1053_at': {'symbol': 'RFC2', 'chromosome': '7'},
    ... })
    >>> lookup.lookup('1053_at')
    {'symbol': 'RFC2', 'chromosome': '7'}
    >>> lookup.lookup('not_a_probe')
    {}
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from exprset.utils.fileio import atomic_write_json, read_json

logger = logging.getLogger(__name__)

__all__ = [
    'FeatureLookup',
    'MappingLookup',
    'CachedLookup',
    'MyGeneLookup',
]

Record = Dict[str, Any]


class FeatureLookup(ABC):
    """
    Abstract interface for feature annotation sources.

    Key Methods:
        lookup(feature_id): Annotation record for one feature
        lookup_many(feature_ids): Records for many features at once
    """

    @abstractmethod
    def lookup(self, feature_id: str) -> Record:
        """
        Annotation record for a feature.

        Args:
            feature_id: Identifier in the source's namespace

        Returns:
            Mapping field name -> value, e.g.
            {'symbol': 'TP53', 'chromosome': '17', 'entrez': '7157'}.
            Empty dict if the id is unknown (don't raise on misses).
        """
        pass

    def lookup_many(self, feature_ids: Iterable[str]) -> Dict[str, Record]:
        """
        Records for several features; subclasses batch where they can.

        Returns:
            Mapping feature_id -> record (empty records for unknown ids)
        """
        return {fid: self.lookup(fid) for fid in feature_ids}


class MappingLookup(FeatureLookup):
    """
    In-memory lookup backed by a dict of records or a DataFrame.

    Args:
        records: {feature_id: {field: value}} or a DataFrame indexed by
            feature id with one column per field
    """

    def __init__(self, records: Union[Mapping[str, Record], pd.DataFrame]):
        if isinstance(records, pd.DataFrame):
            if not records.index.is_unique:
                raise ValueError("Annotation table index must hold unique feature ids")
            records = {
                fid: {k: v for k, v in row.items() if not _is_missing(v)}
                for fid, row in records.to_dict(orient='index').items()
            }
        elif not isinstance(records, Mapping):
            raise TypeError(f"records must be a mapping or DataFrame, got {type(records)}")
        self._records: Dict[str, Record] = {k: dict(v) for k, v in records.items()}

    def lookup(self, feature_id: str) -> Record:
        return dict(self._records.get(feature_id, {}))

    def __len__(self) -> int:
        return len(self._records)


def _is_missing(value: Any) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # list-like values are never "missing"
        return False


class CachedLookup(FeatureLookup):
    """
    Wrapper that memoizes an expensive lookup in a JSON file.

    Useful for repeated annotation of the same platform against a web
    service. The cache is rewritten atomically after each batch of misses.

    Args:
        lookup: Underlying lookup to cache
        cache_file: JSON cache path
            (default: ~/.cache/exprset/annotations.json)

    Examples:
        >>> cached = CachedLookup(MyGeneLookup(), cache_file=Path('mygene_cache.json'))
        >>> cached.lookup('TP53')   # queries mygene.info, caches
        >>> cached.lookup('TP53')   # served from cache
    """

    def __init__(self, lookup: FeatureLookup, cache_file: Optional[Path] = None):
        self.lookup_source = lookup
        self.cache_file = Path(cache_file) if cache_file else (
            Path.home() / '.cache' / 'exprset' / 'annotations.json'
        )
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)

        self._cache: Dict[str, Record] = {}
        if self.cache_file.exists():
            try:
                raw = read_json(self.cache_file)
                if not isinstance(raw, dict):
                    raise ValueError("cache root must be an object")
                self._cache = raw
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Corrupted cache file {self.cache_file}, ignoring: {e}")
                self._cache = {}

    def _save_cache(self) -> None:
        atomic_write_json(self.cache_file, self._cache)

    def lookup(self, feature_id: str) -> Record:
        return self.lookup_many([feature_id])[feature_id]

    def lookup_many(self, feature_ids: Iterable[str]) -> Dict[str, Record]:
        feature_ids = list(feature_ids)
        misses = [fid for fid in dict.fromkeys(feature_ids) if fid not in self._cache]
        if misses:
            logger.debug(f"Cache miss for {len(misses)}/{len(feature_ids)} ids")
            fetched = self.lookup_source.lookup_many(misses)
            for fid in misses:
                self._cache[fid] = fetched.get(fid, {})
            self._save_cache()
        return {fid: copy.deepcopy(self._cache[fid]) for fid in feature_ids}

    def __contains__(self, feature_id: str) -> bool:
        return feature_id in self._cache


class MyGeneLookup(FeatureLookup):
    """
    Annotation lookup against the mygene.info web service.

    Queries are batched (1000 ids per request, the service maximum).

    Args:
        fields: mygene fields to return
            (default: symbol, name, entrezgene, genomic_pos.chr)
        scopes: Identifier namespace of the feature ids
            (e.g. 'reporter' for Affymetrix probe sets, 'ensembl.gene', 'symbol')
        species: Species to query (default: 'human')
        batch_size: Ids per request

    Examples:
        >>> lookup = MyGeneLookup(scopes='reporter')
        >>> lookup.lookup('1007_s_at')
        {'symbol': 'DDR1', 'name': 'discoidin domain receptor tyrosine kinase 1', ...}
    """

    DEFAULT_FIELDS = ('symbol', 'name', 'entrezgene', 'genomic_pos.chr')

    def __init__(
        self,
        fields: Optional[Sequence[str]] = None,
        scopes: str = 'symbol',
        species: str = 'human',
        batch_size: int = 1000,
    ):
        import mygene

        self.fields = list(fields) if fields else list(self.DEFAULT_FIELDS)
        self.scopes = scopes
        self.species = species
        self.batch_size = batch_size
        self.mg = mygene.MyGeneInfo()

    def lookup(self, feature_id: str) -> Record:
        return self.lookup_many([feature_id]).get(feature_id, {})

    def lookup_many(self, feature_ids: Iterable[str]) -> Dict[str, Record]:
        ids = list(dict.fromkeys(feature_ids))
        results: Dict[str, Record] = {fid: {} for fid in ids}
        batches = [ids[i:i + self.batch_size] for i in range(0, len(ids), self.batch_size)]

        logger.info(f"Querying mygene.info: {len(ids)} ids in {len(batches)} batches")
        for batch_num, batch in enumerate(batches):
            logger.debug(f"Querying batch {batch_num + 1}/{len(batches)} ({len(batch)} ids)")
            response = self.mg.querymany(
                batch,
                scopes=self.scopes,
                fields=','.join(self.fields),
                species=self.species,
                returnall=True,
            )
            for hit in response['out']:
                query = hit.get('query')
                # first hit wins for ids matching several genes
                if query is None or hit.get('notfound') or results.get(query):
                    continue
                results[query] = self._extract_fields(hit)

        n_found = sum(1 for r in results.values() if r)
        logger.info(f"mygene.info annotated {n_found}/{len(ids)} ids")
        return results

    def _extract_fields(self, hit: Mapping[str, Any]) -> Record:
        record: Record = {}
        for field_name in self.fields:
            value: Any = hit
            for part in field_name.split('.'):
                if isinstance(value, list):
                    value = value[0] if value else None
                if isinstance(value, dict):
                    value = value.get(part)
                else:
                    value = None
                    break
            if isinstance(value, list):
                value = value[0] if value else None
            if value is not None:
                record[field_name] = value
        return record
