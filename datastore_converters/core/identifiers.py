#!/usr/bin/env python3

"""
Identifier grammar for Datastore collections and features.

Collection identifiers look like ``strain.assembly[.annotation].KEY4``
(``G19833.gnm1.ann1.PB8d``). Feature identifiers, the "full-yuck" form,
prefix a collection-level secondary identifier with its origin:

    gensp.strain.assembly.secondaryIdentifier              assembly features
    gensp.strain.assembly.annotation.secondaryIdentifier   annotation features

The secondary identifier may itself contain dots. Every extraction
function returns None when the identifier does not have the expected
shape; callers decide whether that is fatal.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .exceptions import UnresolvableIdentifierError

FIELD_SEPARATOR = "."

# field[1] values marking collections without an assembly
NON_ASSEMBLY_COLLECTIONS = frozenset({"gwas", "map", "qtl"})

# field[2] values marking collections without an annotation
NON_ANNOTATION_COLLECTIONS = frozenset({"syn", "mrk"})

# annotation is only captured when at least one more field follows it
COLLECTION_PATTERN = re.compile(
    r'^(?P<strain>[^.]+)'
    r'(?:\.(?P<assembly>[^.]+))?'
    r'(?:\.(?P<annotation>[^.]+)(?=\.))?'
    r'(?:\.(?P<tail>.+))?$'
)

KEY4_PATTERN = re.compile(r'(?:^|\.)(?P<key4>[^.]{4})$')

ASSEMBLY_FEATURE_PATTERN = re.compile(
    r'^(?P<gensp>[^.]+)\.(?P<strain>[^.]+)\.(?P<assembly>[^.]+)\.'
    r'(?P<secondary>.+)$'
)

ANNOTATION_FEATURE_PATTERN = re.compile(
    r'^(?P<gensp>[^.]+)\.(?P<strain>[^.]+)\.(?P<assembly>[^.]+)\.(?P<annotation>[^.]+)\.'
    r'(?P<secondary>.+)$'
)

README_FILENAME_PATTERN = re.compile(r'^README\.(?P<collection>.+?)(?:\.ya?ml)?$')


def _match_feature(feature_id: Optional[str], is_annotation_feature: bool):
    # trailing empty fields do not count
    pattern = ANNOTATION_FEATURE_PATTERN if is_annotation_feature else ASSEMBLY_FEATURE_PATTERN
    return pattern.match((feature_id or "").rstrip(FIELD_SEPARATOR))


def _match_collection(collection_id: Optional[str]):
    if not collection_id:
        return None
    return COLLECTION_PATTERN.match(collection_id)


def extract_strain_identifier(collection_id: str) -> Optional[str]:
    """Return the strain field of a collection identifier."""
    match = _match_collection(collection_id)
    return match.group('strain') if match else None


def extract_assembly_version(collection_id: str) -> Optional[str]:
    """Return field[1] unless it marks a GWAS, map or QTL collection."""
    match = _match_collection(collection_id)
    if not match or match.group('assembly') is None:
        return None
    assembly = match.group('assembly')
    if assembly in NON_ASSEMBLY_COLLECTIONS:
        return None
    return assembly


def extract_annotation_version(collection_id: str) -> Optional[str]:
    """
    Return field[2] of a collection identifier with at least four fields.

    Synteny and marker collections (``syn``, ``mrk``) carry no annotation.
    """
    match = _match_collection(collection_id)
    if not match or match.group('annotation') is None:
        return None
    annotation = match.group('annotation')
    if annotation in NON_ANNOTATION_COLLECTIONS:
        return None
    return annotation


def extract_key4(collection_id: str) -> Optional[str]:
    """Return the trailing field iff it is exactly four characters long."""
    if not collection_id:
        return None
    match = KEY4_PATTERN.search(collection_id)
    return match.group('key4') if match else None


def extract_secondary_identifier(feature_id: str, is_annotation_feature: bool) -> Optional[str]:
    """
    Strip the gensp.strain.assembly[.annotation] prefix from a full-yuck identifier.

    Args:
        feature_id: Full-yuck identifier
        is_annotation_feature: True for genes, mRNAs, proteins and other
            features carrying an annotation version; False for chromosomes,
            supercontigs and other assembly features

    Returns:
        The secondary identifier, or None if the identifier is too short
    """
    match = _match_feature(feature_id, is_annotation_feature)
    return match.group('secondary') if match else None


def extract_gensp(feature_id: str) -> Optional[str]:
    """Return the gensp field of an assembly- or annotation-level identifier."""
    match = _match_feature(feature_id, False)
    return match.group('gensp') if match else None


def extract_gene_identifier_from_protein_identifier(protein_id: str,
                                                    trailing_fields: int = 1) -> Optional[str]:
    """
    Derive a gene identifier by dropping trailing protein/transcript fields.

    Most record families drop the single ``.N`` suffix; pan-gene cluster
    files drop two fields.
    """
    if not protein_id or trailing_fields < 1:
        return None
    fields = protein_id.split(FIELD_SEPARATOR)
    if len(fields) <= trailing_fields:
        return None
    return FIELD_SEPARATOR.join(fields[:-trailing_fields])


def form_primary_identifier(gensp: Optional[str], strain: Optional[str],
                            assembly_version: Optional[str], annotation_version: Optional[str],
                            secondary_identifier: Optional[str]) -> str:
    """Form an annotation-level full-yuck identifier from its parts."""
    parts = {
        'gensp': gensp,
        'strain': strain,
        'assembly_version': assembly_version,
        'annotation_version': annotation_version,
        'secondary_identifier': secondary_identifier,
    }
    missing = [name for name, value in parts.items() if not value]
    if missing:
        raise UnresolvableIdentifierError(
            f"cannot form primary identifier, unset: {', '.join(missing)}",
            str(secondary_identifier or ""))
    return FIELD_SEPARATOR.join(parts.values())


def is_full_yuck(label: Optional[str]) -> bool:
    """True when the label has the five-field annotation feature shape."""
    return bool(label) and _match_feature(label, True) is not None


def collection_from_readme_filename(filename: str) -> Optional[str]:
    """README.G19833.gnm1.ann1.PB8d.yml -> G19833.gnm1.ann1.PB8d"""
    match = README_FILENAME_PATTERN.match(filename)
    return match.group('collection') if match else None


@dataclass(frozen=True)
class FeatureIdentifier:
    """Structured view of a full-yuck identifier."""
    gensp: str
    strain: str
    assembly_version: str
    secondary_identifier: str
    annotation_version: Optional[str] = None

    @classmethod
    def parse(cls, identifier: str, is_annotation_feature: bool) -> Optional['FeatureIdentifier']:
        match = _match_feature(identifier, is_annotation_feature)
        if not match:
            return None
        groups = match.groupdict()
        return cls(
            gensp=groups['gensp'],
            strain=groups['strain'],
            assembly_version=groups['assembly'],
            secondary_identifier=groups['secondary'],
            annotation_version=groups.get('annotation'),
        )

    @property
    def collection_key(self) -> str:
        """gensp.strain.assembly lookup key."""
        return FIELD_SEPARATOR.join((self.gensp, self.strain, self.assembly_version))

    def __str__(self):
        parts = [self.gensp, self.strain, self.assembly_version]
        if self.annotation_version:
            parts.append(self.annotation_version)
        parts.append(self.secondary_identifier)
        return FIELD_SEPARATOR.join(parts)
