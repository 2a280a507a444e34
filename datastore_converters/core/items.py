#!/usr/bin/env python3

"""
Output items and the sinks that persist them.

Converters only ever touch the sink through ``create`` and ``store`` and
items through ``set_attribute``, ``set_reference`` and
``add_to_collection``. Sinks buffer stored items until ``commit`` so that
an aborted run leaves nothing behind.
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .exceptions import UnsupportedFeatureError


class Item:
    """A typed output object with attributes, references and collections."""

    def __init__(self, class_name: str, identifier: str):
        self.class_name = class_name
        self.identifier = identifier
        self.attributes: Dict[str, str] = {}
        self.references: Dict[str, 'Item'] = {}
        self.collections: Dict[str, List['Item']] = {}

    def set_attribute(self, name: str, value: Any) -> None:
        if isinstance(value, bool):
            value = "true" if value else "false"
        self.attributes[name] = str(value)

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def set_reference(self, name: str, item: 'Item') -> None:
        self.references[name] = item

    def get_reference(self, name: str) -> Optional['Item']:
        return self.references.get(name)

    def add_to_collection(self, name: str, item: 'Item') -> None:
        members = self.collections.setdefault(name, [])
        if all(member is not item for member in members):
            members.append(item)

    def get_collection(self, name: str) -> List['Item']:
        return list(self.collections.get(name, []))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.identifier,
            'class': self.class_name,
            'attributes': dict(self.attributes),
            'references': {name: ref.identifier for name, ref in self.references.items()},
            'collections': {name: [member.identifier for member in members]
                            for name, members in self.collections.items()},
        }

    def __repr__(self):
        return f"Item({self.class_name!r}, {self.identifier!r})"


class ItemSink(ABC):
    """Creates items and accepts them for persistence."""

    def __init__(self):
        self._next_id = 1

    def create(self, class_name: str) -> Item:
        item = Item(class_name, f"0_{self._next_id}")
        self._next_id += 1
        return item

    @abstractmethod
    def store(self, item: Item) -> None:
        """Accept an item for persistence."""

    def commit(self) -> None:
        """Persist everything stored so far."""


class InMemoryItemSink(ItemSink):
    """Keeps stored items in memory, in store order."""

    def __init__(self):
        super().__init__()
        self._stored: Dict[str, Item] = {}
        self.committed = False

    def store(self, item: Item) -> None:
        self._stored.setdefault(item.identifier, item)

    def commit(self) -> None:
        self.committed = True

    @property
    def items(self) -> List[Item]:
        return list(self._stored.values())

    def __len__(self):
        return len(self._stored)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._stored.values())

    def of_class(self, class_name: str) -> List[Item]:
        return [item for item in self._stored.values() if item.class_name == class_name]

    def find(self, class_name: str, **attributes) -> Optional[Item]:
        """First stored item of class_name whose attributes match."""
        for item in self.of_class(class_name):
            if all(item.get_attribute(name) == str(value) for name, value in attributes.items()):
                return item
        return None


class JsonLinesItemSink(InMemoryItemSink):
    """Writes one JSON object per stored item on commit."""

    def __init__(self, output_path: Union[str, Path]):
        super().__init__()
        self.output_path = Path(output_path)

    def commit(self) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, 'w') as f:
            for item in self._stored.values():
                f.write(json.dumps(item.to_dict(), sort_keys=True))
                f.write('\n')
        logging.info(f"Wrote {len(self._stored):,} items to {self.output_path}")
        super().commit()


class FeatureKind(Enum):
    """Output classes for sequence features, keyed by GFF3 type."""
    CHROMOSOME = "Chromosome"
    SUPERCONTIG = "Supercontig"
    GENE = "Gene"
    MRNA = "MRNA"
    CDS = "CDSRegion"
    EXON = "Exon"
    INTRON = "Intron"
    THREE_PRIME_UTR = "ThreePrimeUTR"
    FIVE_PRIME_UTR = "FivePrimeUTR"
    LNC_RNA = "LncRNA"
    TRANSCRIPT = "Transcript"
    PSEUDOGENE = "Pseudogene"
    MIRNA = "MiRNA"
    NCRNA = "NcRNA"
    PRE_MIRNA = "PreMiRNA"
    PROTEIN = "Protein"

    @property
    def class_name(self) -> str:
        return self.value

    @classmethod
    def from_gff_type(cls, gff_type: str) -> 'FeatureKind':
        """Map a GFF3 column-3 type to its output kind."""
        try:
            return _GFF_TYPES[gff_type]
        except KeyError:
            raise UnsupportedFeatureError(
                f"GFF3 type {gff_type} has no output class", gff_type) from None


_GFF_TYPES = {
    'chromosome': FeatureKind.CHROMOSOME,
    'supercontig': FeatureKind.SUPERCONTIG,
    'gene': FeatureKind.GENE,
    'mRNA': FeatureKind.MRNA,
    'CDS': FeatureKind.CDS,
    'exon': FeatureKind.EXON,
    'intron': FeatureKind.INTRON,
    'three_prime_UTR': FeatureKind.THREE_PRIME_UTR,
    'five_prime_UTR': FeatureKind.FIVE_PRIME_UTR,
    'lnc_RNA': FeatureKind.LNC_RNA,
    'transcript': FeatureKind.TRANSCRIPT,
    'primary_transcript': FeatureKind.TRANSCRIPT,
    'pseudogene': FeatureKind.PSEUDOGENE,
    'miRNA': FeatureKind.MIRNA,
    'miRNA_primary_transcript': FeatureKind.MIRNA,
    'ncRNA': FeatureKind.NCRNA,
    'pre_miRNA': FeatureKind.PRE_MIRNA,
    'polypeptide': FeatureKind.PROTEIN,
}
