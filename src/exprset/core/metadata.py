"""
Experiment-level metadata attached to an annotated matrix.

Modelled on the MIAME checklist (Minimum Information About a Microarray
Experiment): who ran the experiment, where it is published, and free-text
notes on samples, hybridizations and processing. Every field is optional;
a dataset pulled from a public repository often carries only a title and a
PubMed id.

Examples:
    >>> from exprset.core.metadata import ExperimentMetadata
    >>> meta = ExperimentMetadata(
    ...     title="Smoking-related changes in airway epithelium",
    ...     name="Pierre Fermat",
    ...     lab="Francis Galton Lab",
    ...     pubmed_ids=["12345678"],
    ... )
    >>> meta.is_empty()
    False
    >>> ExperimentMetadata.from_dict({"title": "x", "grant": "R01"}).other
    {'grant': 'R01'}
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

__all__ = ['ExperimentMetadata']


@dataclass
class ExperimentMetadata:
    """
    Free-form description of the experiment behind a matrix.

    Attributes:
        title: Single-sentence experiment title
        name: Experimenter name
        lab: Laboratory of origin
        contact: Contact information (email, address)
        url: Link to the experiment or its data deposit
        abstract: Abstract text
        pubmed_ids: PubMed identifiers of associated publications
        samples: Notes on sample sources and treatments
        hybridizations: Notes on hybridization procedures
        normalization: Notes on normalization / control elements
        preprocessing: Notes on preprocessing steps already applied
        other: Any further fields (grant numbers, protocol notes, ...)
    """

    title: Optional[str] = None
    name: Optional[str] = None
    lab: Optional[str] = None
    contact: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None
    pubmed_ids: List[str] = field(default_factory=list)
    samples: Dict[str, Any] = field(default_factory=dict)
    hybridizations: Dict[str, Any] = field(default_factory=dict)
    normalization: Dict[str, Any] = field(default_factory=dict)
    preprocessing: Dict[str, Any] = field(default_factory=dict)
    other: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.pubmed_ids, (str, int)):
            self.pubmed_ids = [str(self.pubmed_ids)]
        else:
            self.pubmed_ids = [str(p) for p in self.pubmed_ids]

    def is_empty(self) -> bool:
        """True when no field carries information."""
        return not any(getattr(self, f.name) for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict (JSON/YAML serializable when the notes are)."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> ExperimentMetadata:
        """
        Build from a mapping; unrecognised keys are collected into ``other``.

        Raises:
            TypeError: If data is not a mapping
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise TypeError(f"experiment metadata must be a mapping, got {type(data)}")

        known = {f.name for f in fields(cls)}
        kwargs = {k: copy.deepcopy(v) for k, v in data.items() if k in known and k != 'other'}
        other = copy.deepcopy(dict(data.get('other') or {}))
        other.update({k: copy.deepcopy(v) for k, v in data.items() if k not in known})
        return cls(**kwargs, other=other)

    def copy(self) -> ExperimentMetadata:
        return copy.deepcopy(self)

    def summary_lines(self) -> List[str]:
        """Short human-readable description, one line per populated field."""
        lines = []
        for key in ('title', 'name', 'lab', 'contact', 'url'):
            value = getattr(self, key)
            if value:
                lines.append(f"{key}: {value}")
        if self.abstract:
            words = self.abstract.split()
            lines.append(f"abstract: {len(words)} words")
        if self.pubmed_ids:
            lines.append(f"pubmed_ids: {', '.join(self.pubmed_ids)}")
        for key in ('samples', 'hybridizations', 'normalization', 'preprocessing', 'other'):
            value = getattr(self, key)
            if value:
                lines.append(f"{key}: {', '.join(str(k) for k in value)}")
        return lines
