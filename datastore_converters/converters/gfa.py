#!/usr/bin/env python3

"""
Gene family assignment files.

    0     1    2    3    4    5           6    7   8
    glyma.Wm82.gnm2.ann1.N6CB.legfed_v1_0.M65K.gfa.tsv

Rows are gene, family, protein and an optional score; a two-column
``ScoreMeaning`` row names what the score measures.
"""

from pathlib import Path

from ..core.converter import DatastoreConverter, file_fields, iter_lines
from ..core.exceptions import MalformedRecordError, UnresolvableIdentifierError
from ..core.records import GFARecord, is_skippable, split_columns

GFA_FILENAME_FIELDS = 9


class GFAConverter(DatastoreConverter):
    """Assigns genes and proteins to gene families."""

    FILE_HANDLERS = (
        ('.gfa.tsv', 'process_gfa_file'),
        ('.gfa.tsv.gz', 'process_gfa_file'),
    )

    def process_gfa_file(self, path: Path) -> None:
        fields = file_fields(path)
        if path.name.endswith('.gz'):
            fields = fields[:-1]
        if len(fields) != GFA_FILENAME_FIELDS:
            raise UnresolvableIdentifierError(
                f"GFA file name needs {GFA_FILENAME_FIELDS} dot-separated parts", path.name)
        version = fields[5]
        dataset = self.get_dataset(self.collection_identifier or '.'.join(fields[1:5]))
        score_meaning = None

        for line_num, line in iter_lines(path):
            if is_skippable(line):
                continue
            columns = split_columns(line)
            if len(columns) == 2:
                if columns[0] == 'ScoreMeaning':
                    score_meaning = columns[1]
                continue
            try:
                record = GFARecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            family = self.get_gene_family(record.gene_family)
            family.set_attribute("version", version)
            gene = self.get_gene(record.gene)
            protein = self.get_protein(record.protein)
            for item in (gene, protein):
                item.set_reference("geneFamily", family)
                item.add_to_collection("dataSets", dataset)
                if record.score is not None:
                    if score_meaning:
                        item.set_attribute("geneFamilyScoreMeaning", score_meaning)
                    item.set_attribute("geneFamilyScore", record.score)
            gene.add_to_collection("proteins", protein)
            self.records_processed += 1
