#!/usr/bin/env python3

"""
Genetic markers placed on an assembly, from a marker collection GFF3.

    0     1    2    3   4         5
    glyma.Wm82.gnm2.mrk.SoySNP50K.gff3.gz

Marker collections are named ``strain.assembly.mrk.markerset`` and carry
no annotation version. Each GFF3 line is one GeneticMarker whose ID is an
assembly-level full-yuck identifier of the collection's strain and
assembly.
"""

import logging
from pathlib import Path
from typing import Dict

from ..core.converter import DatastoreConverter, iter_lines
from ..core.exceptions import MalformedRecordError, MissingRequiredMetadataError, UnresolvableIdentifierError
from ..core.identifiers import FeatureIdentifier, extract_strain_identifier
from ..core.items import Item
from ..core.prefixes import Classification
from ..core.records import GFF3Record

GENERIC_MARKER_TYPE = "genetic_marker"

# GFF3 attribute, matched in any case -> GeneticMarker attribute
MARKER_ATTRIBUTES = (
    ('Name', "name"),
    ('Symbol', "symbol"),
    ('Alias', "alias"),
    ('Note', "description"),
    ('Alleles', "alleles"),
    ('Motif', "motif"),
)


class MarkerGFF3Converter(DatastoreConverter):
    """GeneticMarkers with chromosome or supercontig locations."""

    FILE_HANDLERS = (
        ('.gff3', 'process_marker_gff_file'),
        ('.gff3.gz', 'process_marker_gff_file'),
    )
    REQUIRES_README = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.markers: Dict[str, Item] = {}

    def _check_collection(self) -> None:
        if self.assembly_version is None or self.annotation_version is not None:
            raise UnresolvableIdentifierError(
                "marker collections are named strain.assembly.mrk.markerset", self.collection_identifier or "")

    def _check_identifier(self, marker_id: str) -> None:
        feature = FeatureIdentifier.parse(marker_id, False)
        if (feature is None
                or feature.strain != extract_strain_identifier(self.collection_identifier)
                or feature.assembly_version != self.assembly_version):
            raise UnresolvableIdentifierError(
                f"ID does not match strain.assembly of collection {self.collection_identifier}", marker_id)

    def get_marker(self, marker_id: str) -> Item:
        def create():
            item = self.sink.create("GeneticMarker")
            item.set_attribute("primaryIdentifier", marker_id)
            item.set_attribute("secondaryIdentifier", FeatureIdentifier.parse(marker_id, False).secondary_identifier)
            return item
        marker = self.linker.get_or_create("GeneticMarker", marker_id, create)
        self.markers[marker_id] = marker
        return marker

    def process_marker_gff_file(self, path: Path) -> None:
        self._check_collection()
        dataset = self.get_dataset()
        unplaced = 0

        for line_num, line in iter_lines(path):
            try:
                record = GFF3Record.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            marker_id = record.attribute_ignoring_case('ID')
            if not marker_id:
                raise self.malformed(MalformedRecordError(
                    "GFF3 line has no ID attribute", line, record.attributes), line_num)
            self._check_identifier(marker_id)

            seen = self.linker.contains("GeneticMarker", marker_id)
            marker = self.get_marker(marker_id)
            marker.add_to_collection("dataSets", dataset)
            if not seen:
                marker.set_attribute("length", record.length)
                classification = self.classifier.classify_identifier(record.seqid)
                if classification is Classification.UNKNOWN:
                    logging.debug(f"{record.seqid} matches no prefix, {marker_id} left unplaced")
                    unplaced += 1
                else:
                    sequence = self.get_chromosome_or_supercontig(record.seqid, classification)
                    sequence.add_to_collection("dataSets", dataset)
                    strand = "-1" if record.strand == '-' else "1"
                    self.locate(marker, sequence, record.start, record.end, strand, dataset)

            if record.type == GENERIC_MARKER_TYPE:
                if record.length == 1:
                    marker.set_attribute("type", "SNP")
            else:
                marker.set_attribute("type", record.type)
            for gff_name, attribute in MARKER_ATTRIBUTES:
                value = record.attribute_ignoring_case(gff_name)
                if value is not None:
                    marker.set_attribute(attribute, value)
            self.records_processed += 1

        if unplaced:
            logging.warning(f"{path.name}: {unplaced:,} markers on sequences matching no prefix were not placed")
        logging.info(f"{path.name}: {len(self.markers):,} genetic markers")

    def close(self) -> int:
        if self.readme is None:
            raise MissingRequiredMetadataError("README not processed", field="README")
        if not self.markers:
            raise MissingRequiredMetadataError("no genetic markers loaded", field="GeneticMarker",
                                               source=self.collection_identifier or "")
        organism = self.get_organism(self.readme.taxid)
        strain = self.linker.get("Strain", extract_strain_identifier(self.collection_identifier))
        publication = None
        if self.readme.publication_doi:
            publication = self.linker.get("Publication", f"doi:{self.readme.publication_doi}")

        for marker in self.markers.values():
            if self.readme.genotyping_platform:
                marker.set_attribute("genotypingPlatform", self.readme.genotyping_platform)
            marker.set_attribute("assemblyVersion", self.assembly_version)
            marker.set_reference("organism", organism)
            if strain is not None:
                marker.set_reference("strain", strain)
            if publication is not None:
                marker.add_to_collection("publications", publication)
        for sequence in self.linker.values("Sequence"):
            sequence.set_attribute("assemblyVersion", self.assembly_version)
            sequence.set_reference("organism", organism)
            if strain is not None:
                sequence.set_reference("strain", strain)
        return super().close()
