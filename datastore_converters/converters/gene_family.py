#!/usr/bin/env python3

"""
Gene family descriptions (info_annot_ahrd.tsv) and member FASTA files.

    legume.genefam.fam1.M65K.info_annot_ahrd.tsv
    legume.genefam.fam1.M65K.family_fasta/legfed_v1_0.L_LFXSXJ

Each family may have an aligned FASTA file, named by family identifier,
in the companion family_fasta directory; its headers name the member
proteins.
"""

import logging
from pathlib import Path

from ..core.converter import DatastoreConverter, file_fields, iter_fasta, iter_lines
from ..core.exceptions import MalformedRecordError
from ..core.identifiers import extract_gensp
from ..core.items import Item
from ..core.records import AHRDRecord

AHRD_SUFFIX = 'info_annot_ahrd.tsv'
FASTA_DIR_SUFFIX = 'family_fasta'


class GeneFamilyConverter(DatastoreConverter):
    """GeneFamily items with InterPro domains, GO annotations and member proteins."""

    FILE_HANDLERS = (
        ('.' + AHRD_SUFFIX, 'process_ahrd_file'),
    )

    def process_ahrd_file(self, path: Path) -> None:
        fields = file_fields(path)
        dataset_version = fields[2] if len(fields) > 2 else None
        dataset = self.get_dataset(self.collection_identifier or '.'.join(fields[:4]))
        if dataset_version:
            dataset.set_attribute("version", dataset_version)
        fasta_dir = path.parent / path.name.replace(AHRD_SUFFIX, FASTA_DIR_SUFFIX)
        if not fasta_dir.is_dir():
            logging.info(f"No family FASTA directory {fasta_dir.name}, proteins will not be linked")

        for line_num, line in iter_lines(path):
            try:
                record = AHRDRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            family = self.get_gene_family(record.family_identifier)
            family.set_attribute("version", record.version)
            family.set_attribute("description", record.description)
            family.set_reference("dataSet", dataset)

            for term, label in record.go.items():
                self.annotate(family, record.family_identifier, term, 'GO', dataset, description=label)
            for domain_id, label in record.interpro.items():
                domain = self.get_protein_domain(domain_id)
                domain.set_attribute("description", label)
                domain.add_to_collection("geneFamilies", family)

            fasta_path = fasta_dir / record.family_identifier
            if fasta_path.exists():
                self.link_family_members(fasta_path, family, dataset)
            self.records_processed += 1

    def link_family_members(self, fasta_path: Path, family: Item, dataset: Item) -> int:
        linked = 0
        for name, _ in iter_fasta(fasta_path):
            protein = self.get_protein(name)
            protein.set_reference("geneFamily", family)
            protein.add_to_collection("dataSets", dataset)
            gensp = extract_gensp(name) or name.split('.')[0]
            if self.tables.has_gensp(gensp):
                protein.set_reference("organism", self.get_organism_for_gensp(gensp))
            linked += 1
        logging.debug(f"Linked {linked} proteins to family {family.get_attribute('identifier')}")
        return linked
