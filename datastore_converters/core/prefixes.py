#!/usr/bin/env python3

"""
Chromosome/supercontig classification of sequence names.

Prefix lists come from two places: the global datastore table keyed by
``gensp.strain.assembly`` (older tables use ``gensp.strain``), and the
``chromosome_prefix``/``supercontig_prefix`` fields of the collection
README, which override the global table for that collection.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from .exceptions import UnresolvableIdentifierError
from .identifiers import FIELD_SEPARATOR, FeatureIdentifier


class Classification(Enum):
    """Result of classifying a sequence name."""
    CHROMOSOME = "Chromosome"
    SUPERCONTIG = "Supercontig"
    UNKNOWN = "Unknown"


def split_prefixes(value: Optional[str]) -> List[str]:
    """Split a comma-separated prefix list, dropping blanks."""
    if not value:
        return []
    return [prefix.strip() for prefix in str(value).split(',') if prefix.strip()]


def _starts_with_any(name: str, prefixes: Iterable[str]) -> bool:
    return any(name.startswith(prefix) for prefix in prefixes)


@dataclass
class PrefixTable:
    """Chromosome and supercontig prefixes keyed by collection."""
    chromosome: Dict[str, List[str]] = field(default_factory=dict)
    supercontig: Dict[str, List[str]] = field(default_factory=dict)

    def add_chromosome_prefixes(self, key: str, prefixes: Sequence[str]) -> None:
        self.chromosome.setdefault(key, []).extend(prefixes)

    def add_supercontig_prefixes(self, key: str, prefixes: Sequence[str]) -> None:
        self.supercontig.setdefault(key, []).extend(prefixes)

    @staticmethod
    def _lookup(table: Dict[str, List[str]], gensp: str, strain: str, assembly: Optional[str]) -> List[str]:
        if assembly:
            key = FIELD_SEPARATOR.join((gensp, strain, assembly))
            if key in table:
                return table[key]
        # legacy tables key on gensp.strain only
        return table.get(FIELD_SEPARATOR.join((gensp, strain)), [])

    def chromosome_prefixes(self, gensp: str, strain: str, assembly: Optional[str] = None) -> List[str]:
        return self._lookup(self.chromosome, gensp, strain, assembly)

    def supercontig_prefixes(self, gensp: str, strain: str, assembly: Optional[str] = None) -> List[str]:
        return self._lookup(self.supercontig, gensp, strain, assembly)

    def __len__(self):
        return len(self.chromosome) + len(self.supercontig)


@dataclass(frozen=True)
class PrefixOverrides:
    """README prefix lists for the collection being converted."""
    chromosome: Sequence[str] = ()
    supercontig: Sequence[str] = ()

    @classmethod
    def from_readme(cls, readme) -> 'PrefixOverrides':
        return cls(tuple(readme.chromosome_prefixes), tuple(readme.supercontig_prefixes))


class PrefixClassifier:
    """Classifies sequence names as chromosome, supercontig or unknown."""

    def __init__(self, table: PrefixTable, overrides: Optional[PrefixOverrides] = None):
        self.table = table
        self.overrides = overrides or PrefixOverrides()

    def classify(self, gensp: str, strain: str, assembly_version: Optional[str], name: str) -> Classification:
        """
        Classify a sequence name for the given collection.

        README chromosome prefixes are tested first and win outright.
        Otherwise supercontig prefixes are tested before chromosome
        prefixes, so ``Chr0c03`` is a supercontig under chromosome prefix
        ``Chr`` and supercontig prefix ``Chr0``.
        """
        if self.overrides.chromosome and _starts_with_any(name, self.overrides.chromosome):
            return Classification.CHROMOSOME

        supercontig_prefixes = self.overrides.supercontig or \
            self.table.supercontig_prefixes(gensp, strain, assembly_version)
        if _starts_with_any(name, supercontig_prefixes):
            return Classification.SUPERCONTIG

        if _starts_with_any(name, self.table.chromosome_prefixes(gensp, strain, assembly_version)):
            return Classification.CHROMOSOME

        logging.debug(f"No prefix matches {name} for {gensp}.{strain}.{assembly_version}")
        return Classification.UNKNOWN

    def classify_identifier(self, identifier: str) -> Classification:
        """Classify an assembly-level full-yuck identifier such as phavu.G19833.gnm1.Chr01."""
        feature = FeatureIdentifier.parse(identifier, is_annotation_feature=False)
        if feature is None:
            raise UnresolvableIdentifierError(
                "expected gensp.strain.assembly.name", identifier)
        return self.classify(feature.gensp, feature.strain, feature.assembly_version,
                             feature.secondary_identifier)

    def with_overrides(self, overrides: Optional[PrefixOverrides]) -> 'PrefixClassifier':
        """Return a classifier sharing this table with collection-specific overrides."""
        return PrefixClassifier(self.table, overrides)
