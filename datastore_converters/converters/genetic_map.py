#!/usr/bin/env python3

"""
Genetic maps: CMap exports, marker GFF3 placements and flanking sequences.

    0     1     2    3    4    5
    phavu.mixed.map1.7PMp.cmap.txt
    phavu.mixed.map1.7PMp.map.gff3
    phavu.mixed.map1.7PMp.flanking_seq.fna

Markers are keyed by their short name (``TOG905303_749``) so that the
three files link to the same GeneticMarker.
"""

import logging
from pathlib import Path

from ..core.converter import DatastoreConverter, file_fields, iter_fasta, iter_lines
from ..core.exceptions import MalformedRecordError
from ..core.items import Item
from ..core.prefixes import Classification
from ..core.records import CMapRecord, MapGFFRecord, marker_name


class GeneticMapConverter(DatastoreConverter):
    """LinkageGroups, GeneticMarkers and their genomic placements."""

    FILE_HANDLERS = (
        ('.cmap.txt', 'process_cmap_file'),
        ('.map.gff3', 'process_map_gff_file'),
        ('.flanking_seq.fna', 'process_flanking_seq_file'),
    )

    def _map_context(self, path: Path):
        fields = file_fields(path)
        gensp, dataset_version = fields[0], fields[2]
        dataset = self.get_dataset(self.collection_identifier or '.'.join(fields[1:4]))
        dataset.set_attribute("version", dataset_version)
        return self.get_organism_for_gensp(gensp), dataset

    def get_linkage_group(self, identifier: str) -> Item:
        def create():
            item = self.sink.create("LinkageGroup")
            item.set_attribute("primaryIdentifier", identifier)
            return item
        return self.linker.get_or_create("LinkageGroup", identifier, create)

    def process_cmap_file(self, path: Path) -> None:
        organism, dataset = self._map_context(path)

        for line_num, line in iter_lines(path):
            try:
                record = CMapRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            linkage_group = self.get_linkage_group(record.map_acc)
            linkage_group.set_attribute("secondaryIdentifier", record.map_name)
            linkage_group.set_attribute("length", record.map_stop)
            linkage_group.set_reference("organism", organism)
            linkage_group.set_reference("dataSet", dataset)

            name = record.feature_aliases.strip() or marker_name(record.feature_name)
            marker = self.get_genetic_marker(name)
            marker.set_attribute("type", record.feature_type_acc)
            marker.set_reference("organism", organism)
            marker.add_to_collection("dataSets", dataset)

            position = self.sink.create("LinkageGroupPosition")
            position.set_attribute("position", record.feature_start)
            position.set_reference("linkageGroup", linkage_group)
            self.store(position)
            marker.add_to_collection("linkageGroupPositions", position)
            linkage_group.add_to_collection("markers", marker)
            self.records_processed += 1

    def process_map_gff_file(self, path: Path) -> None:
        """Place markers on their sequences; unclassified sequences are taken to be chromosomes."""
        organism, dataset = self._map_context(path)

        for line_num, line in iter_lines(path):
            try:
                record = MapGFFRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None or not record.has_data:
                continue

            classification = self.classifier.classify_identifier(record.seqid)
            if classification is Classification.UNKNOWN:
                logging.debug(f"{record.seqid} matches no prefix, assuming chromosome")
                classification = Classification.CHROMOSOME
            sequence = self.get_chromosome_or_supercontig(record.seqid, classification)
            sequence.set_reference("organism", organism)
            sequence.add_to_collection("dataSets", dataset)

            marker = self.get_genetic_marker(record.name)
            marker.set_attribute("primaryIdentifier", record.full_name)
            marker.set_attribute("type", record.type)
            marker.set_attribute("length", record.length)
            if record.alleles is not None:
                marker.set_attribute("alleles", record.alleles)
            marker.set_reference("organism", organism)
            marker.add_to_collection("dataSets", dataset)
            self.locate(marker, sequence, record.start, record.end, record.strand, dataset)
            self.records_processed += 1

    def process_flanking_seq_file(self, path: Path) -> None:
        """Store each flanking sequence as its marker's Sequence."""
        organism, dataset = self._map_context(path)

        for full_name, residues in iter_fasta(path):
            marker = self.get_genetic_marker(marker_name(full_name))
            marker.set_reference("organism", organism)
            marker.add_to_collection("dataSets", dataset)
            sequence = self.sink.create("Sequence")
            sequence.set_attribute("residues", residues)
            sequence.set_attribute("length", len(residues))
            self.store(sequence)
            marker.set_reference("sequence", sequence)
            self.records_processed += 1
