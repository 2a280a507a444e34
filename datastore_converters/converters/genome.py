#!/usr/bin/env python3

"""
Genome assemblies: one Chromosome or Supercontig, with its Sequence, per
FASTA record of a genome_main.fna file.

Sequence names are classified with the collection README prefix lists
taking precedence over the global table. Names that match no prefix are
skipped.
"""

import hashlib
import logging
from pathlib import Path

import pyfaidx

from ..core.converter import DatastoreConverter
from ..core.identifiers import FeatureIdentifier, extract_strain_identifier
from ..core.items import Item
from ..core.prefixes import Classification


def sequence_key(header: str) -> str:
    """lcl|phavu.G19833.gnm2.Chr01 -> phavu.G19833.gnm2.Chr01"""
    if '|' in header:
        return header.split('|')[1]
    return header


class GenomeConverter(DatastoreConverter):
    """Assembly sequences from the collection's genome FASTA."""

    FILE_HANDLERS = (
        ('.genome_main.fna', 'process_genome_file'),
        ('.genome_main.fna.gz', 'process_genome_file'),
    )
    REQUIRES_README = True

    def classify_sequence(self, name: str) -> Classification:
        feature = FeatureIdentifier.parse(name, is_annotation_feature=False)
        if feature is not None:
            return self.classifier.classify(feature.gensp, feature.strain, feature.assembly_version,
                                            feature.secondary_identifier)
        gensp = self.readme.scientific_name_abbrev or ""
        strain = extract_strain_identifier(self.collection_identifier) or ""
        return self.classifier.classify(gensp, strain, self.assembly_version, name)

    def process_genome_file(self, path: Path) -> None:
        organism = self.get_organism(self.readme.taxid)
        strain = self.linker.get("Strain", extract_strain_identifier(self.collection_identifier))
        dataset = self.get_dataset()
        if self.assembly_version and self.annotation_version:
            dataset.set_attribute("version", f"{self.assembly_version}.{self.annotation_version}")
        elif self.assembly_version:
            dataset.set_attribute("version", self.assembly_version)
        publication = self.linker.values("Publication")

        with pyfaidx.Fasta(str(path), as_raw=True, key_function=sequence_key,
                           read_long_names=False) as fasta:
            for name in fasta.keys():
                classification = self.classify_sequence(name)
                if classification is Classification.UNKNOWN:
                    logging.warning(f"Skipping {name}: matches no chromosome or supercontig prefix")
                    self.records_skipped += 1
                    continue

                record = fasta[name]
                residues = record[:]
                feature = self.get_chromosome_or_supercontig(name, classification)
                sequence = self._sequence(residues)
                feature.set_attribute("length", len(residues))
                if self.assembly_version:
                    feature.set_attribute("assemblyVersion", self.assembly_version)
                feature.set_reference("sequence", sequence)
                feature.set_reference("organism", organism)
                if strain is not None:
                    feature.set_reference("strain", strain)
                feature.add_to_collection("dataSets", dataset)
                if publication:
                    feature.add_to_collection("publications", publication[0])
                self.records_processed += 1

        logging.info(f"{path.name}: {self.records_processed:,} sequences stored, "
                     f"{self.records_skipped:,} skipped")

    def _sequence(self, residues: str) -> Item:
        sequence = self.sink.create("Sequence")
        sequence.set_attribute("residues", residues)
        sequence.set_attribute("length", len(residues))
        sequence.set_attribute("md5checksum", hashlib.md5(residues.encode()).hexdigest())
        self.store(sequence)
        return sequence
