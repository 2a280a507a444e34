#!/usr/bin/env python3

"""
Unit tests for run-scoped record linking, output items and sinks.
"""

import unittest
import tempfile
import json
import sys
import os
from pathlib import Path

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from datastore_converters.core.linker import RecordLinker
from datastore_converters.core.items import (
    FeatureKind, InMemoryItemSink, Item, JsonLinesItemSink
)
from datastore_converters.core.exceptions import UnsupportedFeatureError


class TestRecordLinker(unittest.TestCase):
    """Test get-or-create semantics."""

    def setUp(self):
        self.sink = InMemoryItemSink()
        self.linker = RecordLinker()
        self.calls = 0

    def _gene(self):
        self.calls += 1
        return self.sink.create("Gene")

    def test_get_or_create_is_idempotent(self):
        first = self.linker.get_or_create("Gene", "g1", self._gene)
        second = self.linker.get_or_create("Gene", "g1", self._gene)
        self.assertIs(first, second)
        self.assertEqual(self.calls, 1)

    def test_kinds_are_separate(self):
        gene = self.linker.get_or_create("Gene", "x", self._gene)
        protein = self.linker.get_or_create("Protein", "x", lambda: self.sink.create("Protein"))
        self.assertIsNot(gene, protein)
        self.assertEqual(self.linker.count("Gene"), 1)
        self.assertEqual(self.linker.count("Protein"), 1)

    def test_get_and_contains(self):
        self.assertIsNone(self.linker.get("Gene", "g1"))
        self.assertFalse(self.linker.contains("Gene", "g1"))
        gene = self.linker.get_or_create("Gene", "g1", self._gene)
        self.assertIs(self.linker.get("Gene", "g1"), gene)
        self.assertTrue(self.linker.contains("Gene", "g1"))

    def test_unordered_pair_registered_once(self):
        self.assertTrue(self.linker.register_unordered_pair("SyntenyBlock", "A", "B"))
        self.assertFalse(self.linker.register_unordered_pair("SyntenyBlock", "B", "A"))
        self.assertFalse(self.linker.register_unordered_pair("SyntenyBlock", "A", "B"))
        self.assertTrue(self.linker.register_unordered_pair("SyntenyBlock", "A", "C"))

    def test_flush_stores_in_creation_order_and_clears(self):
        g1 = self.linker.get_or_create("Gene", "g1", self._gene)
        p1 = self.linker.get_or_create("Protein", "p1", lambda: self.sink.create("Protein"))
        g2 = self.linker.get_or_create("Gene", "g2", self._gene)

        self.assertEqual(self.linker.flush(self.sink), 3)
        self.assertEqual(self.sink.items, [g1, p1, g2])
        self.assertEqual(self.linker.count("Gene"), 0)
        self.assertEqual(self.linker.items(), [])


class TestItems(unittest.TestCase):
    """Test items and sinks."""

    def test_attributes_are_strings(self):
        item = Item("Gene", "0_1")
        item.set_attribute("length", 201)
        item.set_attribute("isLeaf", True)
        self.assertEqual(item.get_attribute("length"), "201")
        self.assertEqual(item.get_attribute("isLeaf"), "true")
        self.assertFalse(item.has_attribute("name"))

    def test_collection_ignores_repeats(self):
        gene = Item("Gene", "0_1")
        protein = Item("Protein", "0_2")
        gene.add_to_collection("proteins", protein)
        gene.add_to_collection("proteins", protein)
        self.assertEqual(gene.get_collection("proteins"), [protein])

    def test_sink_assigns_identifiers(self):
        sink = InMemoryItemSink()
        self.assertEqual(sink.create("Gene").identifier, "0_1")
        self.assertEqual(sink.create("Gene").identifier, "0_2")

    def test_sink_stores_item_once(self):
        sink = InMemoryItemSink()
        gene = sink.create("Gene")
        gene.set_attribute("primaryIdentifier", "g1")
        sink.store(gene)
        sink.store(gene)
        self.assertEqual(len(sink), 1)
        self.assertIs(sink.find("Gene", primaryIdentifier="g1"), gene)
        self.assertIsNone(sink.find("Gene", primaryIdentifier="g2"))

    def test_to_dict(self):
        gene = Item("Gene", "0_1")
        protein = Item("Protein", "0_2")
        gene.set_attribute("primaryIdentifier", "g1")
        gene.add_to_collection("proteins", protein)
        protein.set_reference("gene", gene)
        self.assertEqual(gene.to_dict(), {
            'id': "0_1",
            'class': "Gene",
            'attributes': {'primaryIdentifier': "g1"},
            'references': {},
            'collections': {'proteins': ["0_2"]},
        })
        self.assertEqual(protein.to_dict()['references'], {'gene': "0_1"})

    def test_json_lines_sink_writes_on_commit(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            output = Path(temp_dir) / "out" / "items.jsonl"
            sink = JsonLinesItemSink(output)
            gene = sink.create("Gene")
            sink.store(gene)
            self.assertFalse(output.exists())

            sink.commit()
            with open(output) as f:
                lines = [json.loads(line) for line in f]
            self.assertEqual(len(lines), 1)
            self.assertEqual(lines[0]['class'], "Gene")
            self.assertTrue(sink.committed)


class TestFeatureKind(unittest.TestCase):
    """Test GFF3 type dispatch."""

    def test_known_types(self):
        self.assertIs(FeatureKind.from_gff_type("gene"), FeatureKind.GENE)
        self.assertIs(FeatureKind.from_gff_type("mRNA"), FeatureKind.MRNA)
        self.assertEqual(FeatureKind.from_gff_type("CDS").class_name, "CDSRegion")
        self.assertEqual(FeatureKind.from_gff_type("polypeptide").class_name, "Protein")

    def test_unsupported_type(self):
        with self.assertRaises(UnsupportedFeatureError) as context:
            FeatureKind.from_gff_type("transposable_element")
        self.assertEqual(context.exception.feature_type, "transposable_element")


if __name__ == '__main__':
    unittest.main()
