#!/usr/bin/env python3

"""
Collection README metadata.

Every Datastore collection carries a ``README.<collection>.yml`` file
describing its organism, provenance and publication. Some are written
with a tab after the colon, which YAML does not accept as separation, so
those tabs are normalized before loading.
"""

import logging
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .exceptions import MissingRequiredMetadataError
from .prefixes import split_prefixes

TAB_SEPARATOR_PATTERN = re.compile(r'^(\s*[A-Za-z_][A-Za-z0-9_]*):\t+', re.MULTILINE)


@dataclass
class Readme:
    """Recognized README fields; every value is optional until required."""
    identifier: Optional[str] = None
    provenance: Optional[str] = None
    source: Optional[str] = None
    synopsis: Optional[str] = None
    related_to: Optional[Any] = None
    scientific_name: Optional[str] = None
    taxid: Optional[str] = None
    bioproject: Optional[str] = None
    scientific_name_abbrev: Optional[str] = None
    genotype: Optional[Any] = None
    description: Optional[str] = None
    dataset_doi: Optional[str] = None
    genbank_accession: Optional[str] = None
    original_file_creation_date: Optional[str] = None
    local_file_creation_date: Optional[str] = None
    dataset_release_date: Optional[str] = None
    publication_doi: Optional[str] = None
    publication_title: Optional[str] = None
    contributors: Optional[Any] = None
    data_curators: Optional[Any] = None
    public_access_level: Optional[str] = None
    license: Optional[str] = None
    keywords: Optional[Any] = None
    citations: Optional[Any] = None
    chromosome_prefix: Optional[str] = None
    supercontig_prefix: Optional[str] = None
    genotyping_platform: Optional[str] = None
    genotyping_method: Optional[str] = None
    file_transformation: Optional[Any] = None
    changes: Optional[Any] = None
    subject: Optional[str] = None

    source_path: Optional[str] = None

    # scalar fields YAML may read as numbers or dates
    STRING_FIELDS = ('identifier', 'taxid', 'bioproject', 'dataset_doi', 'publication_doi',
                     'original_file_creation_date', 'local_file_creation_date',
                     'dataset_release_date', 'chromosome_prefix', 'supercontig_prefix')

    @classmethod
    def from_file(cls, readme_path: Union[str, Path]) -> 'Readme':
        """Load a README file."""
        readme_path = Path(readme_path)
        if not readme_path.exists():
            raise MissingRequiredMetadataError(f"README not found: {readme_path}", source=str(readme_path))
        with open(readme_path, 'r') as f:
            text = f.read()
        return cls.from_text(text, source_path=str(readme_path))

    @classmethod
    def from_text(cls, text: str, source_path: Optional[str] = None) -> 'Readme':
        text = TAB_SEPARATOR_PATTERN.sub(r'\1: ', text)
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise MissingRequiredMetadataError(f"README is not valid YAML: {e}",
                                               source=source_path or "") from e
        if not isinstance(data, dict):
            raise MissingRequiredMetadataError("README does not hold a key/value mapping",
                                               source=source_path or "")
        return cls.from_dict(data, source_path=source_path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source_path: Optional[str] = None) -> 'Readme':
        known_keys = {f.name for f in fields(cls)} - {'source_path'}
        unknown = sorted(set(data) - known_keys)
        if unknown:
            logging.debug(f"Ignoring unrecognized README fields: {', '.join(unknown)}")
        values = {k: v for k, v in data.items() if k in known_keys}
        for name in cls.STRING_FIELDS:
            if values.get(name) is not None:
                values[name] = str(values[name])
        return cls(source_path=source_path, **values)

    def require(self, *field_names: str) -> None:
        """Raise MissingRequiredMetadataError for the first absent field."""
        for name in field_names:
            value = getattr(self, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise MissingRequiredMetadataError(
                    "required README field is absent", field=name, source=self.source_path or "")

    @property
    def chromosome_prefixes(self) -> List[str]:
        return split_prefixes(self.chromosome_prefix)

    @property
    def supercontig_prefixes(self) -> List[str]:
        return split_prefixes(self.supercontig_prefix)

    @property
    def genotypes(self) -> List[str]:
        """The genotype field may be a single value or a list."""
        if self.genotype is None:
            return []
        if isinstance(self.genotype, (list, tuple)):
            return [str(g) for g in self.genotype]
        return [str(self.genotype)]
