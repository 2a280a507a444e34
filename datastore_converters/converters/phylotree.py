#!/usr/bin/env python3

"""
Gene family phylogenetic trees in Newick format.

Each file becomes a Phylotree and a GeneFamily, both identified by the
file name. Nodes are numbered in preorder from the root and identified
as ``<file name>.<index>``; leaves named by full-yuck protein identifiers
reference their Protein.
"""

import logging
from pathlib import Path

from Bio import Phylo

from ..core.converter import DatastoreConverter, open_text
from ..core.identifiers import is_full_yuck
from ..core.items import Item

TREE_DATASET_DESCRIPTION = "LIS gene family phylogenetic tree files"


class PhylotreeConverter(DatastoreConverter):
    """Phylotree, GeneFamily and Phylonode items from Newick files."""

    FILE_HANDLERS = (
        ('.nwk', 'process_tree_file'),
        ('.newick', 'process_tree_file'),
        ('.nwk.gz', 'process_tree_file'),
    )

    def _tree_dataset(self, path: Path) -> Item:
        if self.readme is not None:
            return self.get_dataset()
        dataset = self.get_dataset(path.parent.name or str(path.parent))
        if not dataset.has_attribute("description"):
            dataset.set_attribute("description", TREE_DATASET_DESCRIPTION)
        return dataset

    def process_tree_file(self, path: Path) -> None:
        identifier = path.name
        dataset = self._tree_dataset(path)
        with open_text(path) as handle:
            tree = Phylo.read(handle, 'newick')

        phylotree = self.sink.create("Phylotree")
        phylotree.set_attribute("identifier", identifier)
        phylotree.set_reference("dataSet", dataset)
        family = self.get_gene_family(identifier)
        family.set_reference("phylotree", phylotree)
        phylotree.set_reference("geneFamily", family)

        nodes = {}
        num_leaves = 0
        for index, clade in enumerate(tree.find_clades(order='preorder')):
            node = self.sink.create("Phylonode")
            node.set_attribute("identifier", f"{identifier}.{index}")
            node.set_attribute("isRoot", clade is tree.root)
            node.set_attribute("isLeaf", clade.is_terminal())
            node.set_attribute("numChildren", len(clade.clades))
            if clade.branch_length is not None:
                node.set_attribute("length", clade.branch_length)
            node.set_reference("tree", phylotree)
            phylotree.add_to_collection("nodes", node)
            nodes[id(clade)] = node

            if clade.is_terminal():
                num_leaves += 1
                if clade.name:
                    node.set_attribute("name", clade.name)
                    if is_full_yuck(clade.name):
                        protein = self.get_protein(clade.name)
                        node.set_reference("protein", protein)
                        protein.add_to_collection("phylonodes", node)

        for clade in tree.find_clades(order='preorder'):
            parent = nodes[id(clade)]
            for child in clade.clades:
                child_node = nodes[id(child)]
                child_node.set_reference("parent", parent)
                parent.add_to_collection("children", child_node)

        for node in nodes.values():
            self.store(node)
        phylotree.set_attribute("numLeaves", num_leaves)
        self.store(phylotree)
        self.records_processed += 1
        logging.info(f"{identifier}: {len(nodes)} nodes, {num_leaves} leaves")
