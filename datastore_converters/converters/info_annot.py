#!/usr/bin/env python3

"""
Annotation tables: info_annot.txt and info_descriptors.txt.

    phavu.G19833.gnm2.ann1.PB8d.info_annot.txt
    arahy.Tifrunner.gnm1.ann1.CCJH.info_descriptors.txt

The info_annot names carry only core identifiers; the gensp, strain,
assembly and annotation fields of the file name are prepended to form
primary identifiers.
"""

import logging
from pathlib import Path

from ..core.converter import DatastoreConverter, file_fields, iter_lines
from ..core.exceptions import MalformedRecordError, UnresolvableIdentifierError
from ..core.identifiers import form_primary_identifier
from ..core.records import DescriptorRecord, InfoAnnotRecord

# info_annot columns annotating the gene; all others annotate the protein
GENE_TERM_COLUMNS = (('go', 'GO'), ('ko', 'KO'))
PROTEIN_TERM_COLUMNS = (('pfam', 'Pfam'), ('panther', 'PANTHER'), ('kog', 'KOG'), ('ec', 'EC'))


class InfoAnnotConverter(DatastoreConverter):
    """Genes, mRNAs, proteins and their ontology annotations."""

    FILE_HANDLERS = (
        ('.info_annot.txt', 'process_info_annot_file'),
        ('.info_annot.txt.gz', 'process_info_annot_file'),
        ('.info_descriptors.txt', 'process_info_descriptors_file'),
        ('.info_descriptors.txt.gz', 'process_info_descriptors_file'),
    )

    def _collection_from_filename(self, path: Path):
        fields = file_fields(path)
        if len(fields) < 6:
            raise UnresolvableIdentifierError(
                "expected gensp.strain.assembly.annotation.KEY4 file name", path.name)
        return fields[0], fields[1], fields[2], fields[3]

    def process_info_annot_file(self, path: Path) -> None:
        gensp, strain_id, assembly, annotation = self._collection_from_filename(path)
        version_key = f"{assembly}.{annotation}"
        dataset = self.get_dataset(self.collection_identifier or '.'.join(file_fields(path)[1:5]))
        organism = self.get_organism_for_gensp(gensp)
        strain = self.get_strain(strain_id, organism)

        def primary(name):
            return form_primary_identifier(gensp, strain_id, assembly, annotation, name)

        for line_num, line in iter_lines(path):
            try:
                record = InfoAnnotRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            gene_id = primary(record.locus_name)
            protein_id = primary(record.peptide_name)
            mrna_id = primary(record.transcript_name)

            gene = self.get_gene(gene_id)
            protein = self.get_protein(protein_id)
            mrna = self.get_mrna(mrna_id)
            for item in (gene, protein, mrna):
                item.set_attribute("assemblyVersion", assembly)
                item.set_attribute("annotationVersion", annotation)
                item.set_reference("organism", organism)
                item.set_reference("strain", strain)
                item.add_to_collection("dataSets", dataset)
            protein.add_to_collection("genes", gene)
            mrna.set_reference("gene", gene)
            mrna.set_reference("protein", protein)

            for column, ontology in GENE_TERM_COLUMNS:
                for term in getattr(record, column):
                    self.annotate(gene, gene_id, term, ontology, dataset, version_key)
            for column, ontology in PROTEIN_TERM_COLUMNS:
                for term in getattr(record, column):
                    self.annotate(protein, protein_id, term, ontology, dataset, version_key)
            self.records_processed += 1

        logging.info(f"Linked {self.linker.count('Gene'):,} genes from {path.name}")

    def process_info_descriptors_file(self, path: Path) -> None:
        fields = file_fields(path)
        dataset = self.get_dataset(self.collection_identifier or '.'.join(fields[1:5]))

        for line_num, line in iter_lines(path):
            try:
                record = DescriptorRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            gene = self.get_gene(record.identifier)
            gene.set_attribute("description", record.description)
            gene.add_to_collection("dataSets", dataset)
            for term, label in record.go.items():
                self.annotate(gene, record.identifier, term, 'GO', dataset, description=label)
            self.records_processed += 1
