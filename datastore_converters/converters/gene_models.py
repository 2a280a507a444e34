#!/usr/bin/env python3

"""
Gene models from a collection's gene_models_main.gff3.

Features are created in file order, so the file must list parents before
their children. A sequence name matching no supercontig prefix is loaded
as a chromosome.
"""

import logging
from pathlib import Path
from typing import Dict

from ..core.converter import DatastoreConverter, iter_lines
from ..core.exceptions import MalformedRecordError, UnresolvableIdentifierError
from ..core.identifiers import FIELD_SEPARATOR, extract_strain_identifier
from ..core.items import FeatureKind, Item
from ..core.prefixes import Classification
from ..core.records import GFF3Record

INTERPRO_DBXREF_PREFIX = "InterPro:"


class GeneModelsConverter(DatastoreConverter):
    """Genes, transcripts, exons, CDS regions and their locations."""

    FILE_HANDLERS = (
        ('.gene_models_main.gff3', 'process_gff_file'),
        ('.gene_models_main.gff3.gz', 'process_gff_file'),
    )
    REQUIRES_README = True
    REQUIRED_README_FIELDS = ('identifier', 'taxid', 'scientific_name_abbrev')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.features: Dict[str, Item] = {}

    @property
    def identifier_prefix(self) -> str:
        """gensp.strain.assembly.annotation. shared by every feature ID in the collection."""
        parts = (self.readme.scientific_name_abbrev, extract_strain_identifier(self.collection_identifier),
                 self.assembly_version, self.annotation_version)
        if not all(parts):
            return ""
        return FIELD_SEPARATOR.join(parts) + FIELD_SEPARATOR

    def get_sequence(self, seqid: str) -> Item:
        classification = self.classifier.classify_identifier(seqid)
        if classification is Classification.UNKNOWN:
            if not self.linker.contains("Sequence", seqid):
                logging.warning(f"{seqid} matches no chromosome or supercontig prefix, loading as chromosome")
            classification = Classification.CHROMOSOME
        return self.get_chromosome_or_supercontig(seqid, classification)

    def process_gff_file(self, path: Path) -> None:
        dataset = self.get_dataset()
        prefix = self.identifier_prefix

        for line_num, line in iter_lines(path):
            try:
                record = GFF3Record.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            feature_id = record.attributes.get('ID')
            if not feature_id:
                raise self.malformed(MalformedRecordError(
                    "GFF3 line has no ID attribute", line, record.attributes), line_num)
            if prefix and not feature_id.startswith(prefix):
                raise UnresolvableIdentifierError(
                    f"ID does not belong to collection {self.collection_identifier}", feature_id)
            kind = FeatureKind.from_gff_type(record.type)

            feature = self.features.get(feature_id)
            if feature is None:
                feature = self.get_annotation_feature(kind.class_name, feature_id)
                self.features[feature_id] = feature
                sequence = self.get_sequence(record.seqid)
                sequence.add_to_collection("dataSets", dataset)
                strand = "-1" if record.strand == '-' else "1"
                self.locate(feature, sequence, record.start, record.end, strand, dataset)
                if kind is not FeatureKind.MRNA:
                    feature.set_attribute("length", record.length)
            feature.add_to_collection("dataSets", dataset)
            self._set_attributes(feature, kind, record, dataset)

            for parent_id in record.attribute_values('Parent'):
                parent = self.features.get(parent_id)
                if parent is None:
                    raise UnresolvableIdentifierError(
                        f"parent not loaded before child {feature_id}; is the GFF sorted?", parent_id)
                parent.add_to_collection("childFeatures", feature)
                if kind is FeatureKind.MRNA and parent.class_name == FeatureKind.GENE.class_name:
                    feature.set_reference("gene", parent)
                    parent.add_to_collection("transcripts", feature)
            self.records_processed += 1

        logging.info(f"{path.name}: {len(self.features):,} features on "
                     f"{self.linker.count('Sequence'):,} sequences")

    def _set_attributes(self, feature: Item, kind: FeatureKind, record: GFF3Record, dataset: Item) -> None:
        feature_id = record.attributes['ID']
        if 'Name' in record.attributes:
            feature.set_attribute("name", record.attributes['Name'])
            feature.set_attribute("secondaryIdentifier", record.attributes['Name'])
        if 'Note' in record.attributes:
            feature.set_attribute("description", record.attributes['Note'])
        if 'symbol' in record.attributes:
            feature.set_attribute("symbol", record.attributes['symbol'])

        for term in record.attribute_values('Ontology_term'):
            self.annotate(feature, feature_id, term, self._ontology_of(term), dataset)
        for term in record.attribute_values('Dbxref'):
            if term.startswith(INTERPRO_DBXREF_PREFIX):
                if kind is FeatureKind.GENE:
                    domain = self.get_protein_domain(term[len(INTERPRO_DBXREF_PREFIX):])
                    feature.add_to_collection("proteinDomains", domain)
            else:
                self.annotate(feature, feature_id, term, self._ontology_of(term), dataset)

    @staticmethod
    def _ontology_of(term: str) -> str:
        """GO:0005634 -> GO; terms without a prefix have no ontology name."""
        return term.split(':', 1)[0] if ':' in term else ""

    def close(self) -> int:
        if self.readme is not None:
            organism = self.get_organism(self.readme.taxid)
            strain = self.linker.get("Strain", extract_strain_identifier(self.collection_identifier))
            for feature in self.features.values():
                if self.assembly_version:
                    feature.set_attribute("assemblyVersion", self.assembly_version)
                if self.annotation_version:
                    feature.set_attribute("annotationVersion", self.annotation_version)
                feature.set_reference("organism", organism)
                if strain is not None:
                    feature.set_reference("strain", strain)
            for sequence in self.linker.values("Sequence"):
                sequence.set_reference("organism", organism)
                if strain is not None:
                    sequence.set_reference("strain", strain)
        return super().close()
