#!/usr/bin/env python3

"""
Pan-gene sets from hash (hsh.tsv) and cluster (clust.tsv) files.

The two formats derive gene identifiers differently and must stay that
way: hash files drop the final protein field
(``...Phvul.002G040500.1`` -> ``...Phvul.002G040500``) while cluster
files drop the final two fields.
"""

from pathlib import Path

from ..core.converter import DatastoreConverter, file_fields, iter_lines
from ..core.exceptions import UnresolvableIdentifierError
from ..core.identifiers import extract_gene_identifier_from_protein_identifier
from ..core.items import Item
from ..core.records import is_skippable, split_columns

HSH_FILENAME_FIELDS = 6
HSH_TRAILING_FIELDS = 1
CLUSTER_TRAILING_FIELDS = 2


class PanGeneConverter(DatastoreConverter):
    """PanGeneSet items linked to their member genes and proteins."""

    FILE_HANDLERS = (
        ('.hsh.tsv', 'process_hash_file'),
        ('.clust.tsv', 'process_cluster_file'),
        ('.clust.tsv.gz', 'process_cluster_file'),
    )

    def get_pan_gene_set(self, identifier: str) -> Item:
        def create():
            item = self.sink.create("PanGeneSet")
            item.set_attribute("primaryIdentifier", identifier)
            return item
        return self.linker.get_or_create("PanGeneSet", identifier, create)

    def _gene_for(self, protein_id: str, trailing_fields: int) -> Item:
        gene_id = extract_gene_identifier_from_protein_identifier(protein_id, trailing_fields)
        if gene_id is None:
            raise UnresolvableIdentifierError(
                f"cannot drop {trailing_fields} field(s) to form a gene identifier", protein_id)
        return self.get_gene(gene_id)

    def process_hash_file(self, path: Path) -> None:
        """glysp.mixed.pan2.TV81.hsh.tsv: pan-gene set and protein per line."""
        fields = file_fields(path)
        if len(fields) != HSH_FILENAME_FIELDS:
            raise UnresolvableIdentifierError(
                f"hash file name needs {HSH_FILENAME_FIELDS} dot-separated parts", path.name)
        version = fields[2]
        dataset = self.get_dataset(self.collection_identifier or '.'.join(fields[1:4]))

        for _, line in iter_lines(path):
            if is_skippable(line):
                continue
            columns = split_columns(line)
            if len(columns) != 2:
                continue
            set_id, protein_id = columns
            pan_gene_set = self.get_pan_gene_set(set_id)
            pan_gene_set.set_attribute("version", version)
            pan_gene_set.set_reference("dataSet", dataset)

            protein = self.get_protein(protein_id)
            protein.set_reference("panGeneSet", pan_gene_set)
            protein.add_to_collection("dataSets", dataset)
            gene = self._gene_for(protein_id, HSH_TRAILING_FIELDS)
            gene.set_reference("panGeneSet", pan_gene_set)
            gene.add_to_collection("dataSets", dataset)
            gene.add_to_collection("proteins", protein)
            self.records_processed += 1

    def process_cluster_file(self, path: Path) -> None:
        """Pan-gene set followed by all of its member proteins, one set per line."""
        dataset = self.get_dataset(self.collection_identifier or path.name)

        for _, line in iter_lines(path):
            if is_skippable(line):
                continue
            columns = split_columns(line)
            pan_gene_set = self.get_pan_gene_set(columns[0])
            pan_gene_set.set_reference("dataSet", dataset)
            for protein_id in columns[1:]:
                if not protein_id:
                    continue
                protein = self.get_protein(protein_id)
                pan_gene_set.add_to_collection("proteins", protein)
                gene = self._gene_for(protein_id, CLUSTER_TRAILING_FIELDS)
                pan_gene_set.add_to_collection("genes", gene)
            self.records_processed += 1

    def close(self) -> int:
        publication = self.linker.values("Publication")
        if publication:
            for kind in ("Gene", "Protein", "PanGeneSet"):
                for item in self.linker.values(kind):
                    item.add_to_collection("publications", publication[0])
        return super().close()
