#!/usr/bin/env python3

"""
Synteny blocks from DAGchainer-style GFF3 files.

    0     1    2    3    4 5     6      7    8    9
    glyma.Wm82.gnm2.ann1.x.phavu.G19833.gnm2.ann1.gff3

Each ``syntenic_region`` line gives a source region (the GFF location) and
a target region (``Target=chr:start..end``). Files list most blocks in
both directions, so a block is stored once per unordered region pair.
"""

import logging
from pathlib import Path
from typing import Optional

from ..core.converter import DatastoreConverter, file_fields, iter_lines
from ..core.exceptions import MalformedRecordError
from ..core.identifiers import FeatureIdentifier
from ..core.items import FeatureKind, Item
from ..core.prefixes import Classification
from ..core.records import SyntenicRegionRecord

SYNTENY_FILENAME_FIELDS = 10
SCAFFOLD_MARKERS = ('scaffold', 'superscaf')


class SyntenyConverter(DatastoreConverter):
    """SyntenyBlocks joining pairs of SyntenicRegions."""

    FILE_HANDLERS = (
        ('.gff3', 'process_synteny_file'),
    )

    def _classify(self, name: str, gensp: str, strain: str, assembly: str) -> Classification:
        feature = FeatureIdentifier.parse(name, is_annotation_feature=False)
        short_name = feature.secondary_identifier if feature else name
        return self.classifier.classify(gensp, strain, assembly, short_name)

    def process_synteny_file(self, path: Path) -> None:
        fields = file_fields(path)
        if len(fields) != SYNTENY_FILENAME_FIELDS:
            logging.warning(f"{path.name} is not a synteny file name, skipping")
            return
        source = (fields[0], fields[1], fields[2])
        target = (fields[5], fields[6], fields[7])
        source_organism = self.get_organism_for_gensp(source[0])
        source_strain = self.get_strain(source[1], source_organism)
        target_organism = self.get_organism_for_gensp(target[0])
        target_strain = self.get_strain(target[1], target_organism)
        dataset = self.get_dataset(self.collection_identifier or path.name)

        for line_num, line in iter_lines(path):
            try:
                record = SyntenicRegionRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None or not record.is_syntenic_region:
                continue

            target_range = record.target
            if target_range is None:
                raise self.malformed(MalformedRecordError(
                    "syntenic_region lacks a chr:start..end Target", line, record.attributes), line_num)
            if any(marker in target_range.seqid.lower() for marker in SCAFFOLD_MARKERS):
                self.records_skipped += 1
                continue
            # supercontig regions are skipped; unclassified names are kept
            if (self._classify(record.seqid, *source) is Classification.SUPERCONTIG or
                    self._classify(target_range.seqid, *target) is Classification.SUPERCONTIG):
                self.records_skipped += 1
                continue

            source_chromosome = self._get_chromosome(record.seqid, source_organism, source_strain)
            target_chromosome = self._get_chromosome(target_range.seqid, target_organism, target_strain)

            if not self.linker.register_unordered_pair("SyntenyBlock", record.region_name,
                                                       target_range.region_name):
                continue

            source_region = self._region(record.region_name, record.length, record.score,
                                         source_organism, source_strain)
            target_region = self._region(target_range.region_name,
                                         target_range.end - target_range.start + 1, record.score,
                                         target_organism, target_strain)

            block = self.sink.create("SyntenyBlock")
            if record.median_ks is not None:
                block.set_attribute("medianKs", record.median_ks)
            block.add_to_collection("syntenicRegions", source_region)
            block.add_to_collection("syntenicRegions", target_region)
            block.add_to_collection("dataSets", dataset)
            self.store(block)

            for region in (source_region, target_region):
                region.set_reference("syntenyBlock", block)
                region.add_to_collection("dataSets", dataset)
            self.locate(source_region, source_chromosome, record.start, record.end, record.strand)
            self.locate(target_region, target_chromosome, target_range.start, target_range.end,
                        record.target_strand)
            self.store(source_region)
            self.store(target_region)
            self.records_processed += 1

        logging.info(f"{self.linker.count('Sequence')} chromosomes, "
                     f"{self.records_processed:,} synteny blocks so far")

    def _get_chromosome(self, name: str, organism: Item, strain: Item) -> Item:
        chromosome = self.get_sequence_feature(FeatureKind.CHROMOSOME, name)
        chromosome.set_reference("organism", organism)
        chromosome.set_reference("strain", strain)
        return chromosome

    def _region(self, name: str, length: int, score: Optional[str], organism: Item, strain: Item) -> Item:
        region = self.sink.create("SyntenicRegion")
        region.set_attribute("primaryIdentifier", name)
        region.set_attribute("length", length)
        if score and score != '.':
            region.set_attribute("score", score)
        region.set_reference("organism", organism)
        region.set_reference("strain", strain)
        return region
