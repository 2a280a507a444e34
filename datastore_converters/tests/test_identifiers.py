#!/usr/bin/env python3

"""
Unit tests for the identifier grammar.

Collection identifiers (strain.assembly[.annotation].KEY4) and full-yuck
feature identifiers (gensp.strain.assembly[.annotation].name).
"""

import unittest
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from datastore_converters.core.identifiers import (
    FeatureIdentifier, collection_from_readme_filename, extract_annotation_version,
    extract_assembly_version, extract_gene_identifier_from_protein_identifier, extract_gensp,
    extract_key4, extract_secondary_identifier, extract_strain_identifier,
    form_primary_identifier, is_full_yuck,
)
from datastore_converters.core.exceptions import UnresolvableIdentifierError


class TestCollectionIdentifier(unittest.TestCase):
    """Test field extraction from collection identifiers."""

    def test_annotation_collection(self):
        collection = "G19833.gnm2.ann1.PB8d"
        self.assertEqual(extract_strain_identifier(collection), "G19833")
        self.assertEqual(extract_assembly_version(collection), "gnm2")
        self.assertEqual(extract_annotation_version(collection), "ann1")
        self.assertEqual(extract_key4(collection), "PB8d")

    def test_assembly_collection_has_no_annotation(self):
        collection = "G19833.gnm2.fC0g"
        self.assertEqual(extract_assembly_version(collection), "gnm2")
        self.assertIsNone(extract_annotation_version(collection))
        self.assertEqual(extract_key4(collection), "fC0g")

    def test_non_assembly_collections(self):
        """gwas, map and qtl collections carry no assembly whatever follows."""
        for kind in ("gwas", "map", "qtl"):
            with self.subTest(kind=kind):
                self.assertIsNone(extract_assembly_version(f"mixed.{kind}.Song_Hyten_2015.X3Y4"))
                self.assertIsNone(extract_assembly_version(f"mixed.{kind}.K4F1"))

    def test_non_assembly_match_is_case_sensitive(self):
        self.assertEqual(extract_assembly_version("mixed.GWAS.K4F1"), "GWAS")

    def test_non_annotation_collections(self):
        self.assertIsNone(extract_annotation_version("Wm82.gnm2.syn.X1Y2"))
        self.assertIsNone(extract_annotation_version("Wm82.gnm2.mrk.X1Y2"))
        self.assertEqual(extract_assembly_version("Wm82.gnm2.syn.X1Y2"), "gnm2")

    def test_key4_requires_exactly_four_characters(self):
        self.assertIsNone(extract_key4("G19833.gnm2.ann1.PB8dX"))
        self.assertIsNone(extract_key4("G19833.gnm2.ann1.PB8"))
        self.assertIsNone(extract_key4(""))
        self.assertIsNone(extract_key4(None))

    def test_empty_identifier(self):
        self.assertIsNone(extract_strain_identifier(""))
        self.assertIsNone(extract_assembly_version(None))
        self.assertIsNone(extract_annotation_version(""))

    def test_readme_filename(self):
        self.assertEqual(collection_from_readme_filename("README.G19833.gnm1.ann1.PB8d.yml"),
                         "G19833.gnm1.ann1.PB8d")
        self.assertEqual(collection_from_readme_filename("README.G19833.gnm1.fC0g"), "G19833.gnm1.fC0g")
        self.assertIsNone(collection_from_readme_filename("phavu.G19833.gnm1.fC0g.genome_main.fna"))


class TestFeatureIdentifier(unittest.TestCase):
    """Test full-yuck feature identifiers."""

    def test_secondary_identifier_of_annotation_feature(self):
        self.assertEqual(
            extract_secondary_identifier("phavu.G19833.gnm2.ann1.Phvul.001G000100", True),
            "Phvul.001G000100")

    def test_secondary_identifier_of_assembly_feature(self):
        self.assertEqual(extract_secondary_identifier("phavu.G19833.gnm2.Chr01", False), "Chr01")
        self.assertEqual(extract_secondary_identifier("phavu.G19833.gnm2.scaffold_10.1", False),
                         "scaffold_10.1")

    def test_secondary_identifier_too_short(self):
        self.assertIsNone(extract_secondary_identifier("phavu.G19833.gnm2.Chr01", True))
        self.assertIsNone(extract_secondary_identifier("phavu.G19833.Chr01", False))
        self.assertIsNone(extract_secondary_identifier("", False))
        self.assertIsNone(extract_secondary_identifier("phavu.G19833.gnm2.ann1.", True))

    def test_secondary_identifier_empty_fields(self):
        self.assertEqual(extract_secondary_identifier("phavu.G19833.gnm2.ann1.Phvul.", True), "Phvul")
        self.assertEqual(extract_secondary_identifier("phavu.G19833.gnm2.ann1..Phvul", True), ".Phvul")
        self.assertEqual(extract_secondary_identifier("phavu.G19833.gnm2.Chr01..1", False), "Chr01..1")

    def test_secondary_identifier_inverts_primary_identifier(self):
        primary = form_primary_identifier("glyma", "Wm82", "gnm2", "ann1", "Glyma01g00100")
        self.assertEqual(primary, "glyma.Wm82.gnm2.ann1.Glyma01g00100")
        self.assertEqual(extract_secondary_identifier(primary, True), "Glyma01g00100")

    def test_form_primary_identifier_requires_every_part(self):
        with self.assertRaises(UnresolvableIdentifierError):
            form_primary_identifier("glyma", "Wm82", None, "ann1", "Glyma01g00100")
        with self.assertRaises(UnresolvableIdentifierError):
            form_primary_identifier("glyma", "Wm82", "gnm2", "ann1", "")

    def test_gene_from_protein_drops_last_field(self):
        self.assertEqual(
            extract_gene_identifier_from_protein_identifier("phaac.Frijol_Bayo.gnm1.ann1.Phacu.CVR.011G222700.1"),
            "phaac.Frijol_Bayo.gnm1.ann1.Phacu.CVR.011G222700")

    def test_gene_from_protein_drops_two_fields(self):
        self.assertEqual(
            extract_gene_identifier_from_protein_identifier("glyma.Wm82.gnm2.ann1.Glyma.01G000100.1.p", 2),
            "glyma.Wm82.gnm2.ann1.Glyma.01G000100")

    def test_gene_from_protein_without_fields_to_drop(self):
        self.assertIsNone(extract_gene_identifier_from_protein_identifier("Phvul"))
        self.assertIsNone(extract_gene_identifier_from_protein_identifier(""))

    def test_gensp(self):
        self.assertEqual(extract_gensp("phavu.G19833.gnm2.Chr01"), "phavu")
        self.assertIsNone(extract_gensp("Chr01"))

    def test_is_full_yuck(self):
        self.assertTrue(is_full_yuck("phavu.G19833.gnm2.ann1.Phvul.001G000100.1"))
        self.assertFalse(is_full_yuck("Phvul.001G000100.1"))
        self.assertFalse(is_full_yuck(None))

    def test_parse(self):
        feature = FeatureIdentifier.parse("phavu.G19833.gnm2.ann1.Phvul.001G000100", True)
        self.assertEqual(feature.gensp, "phavu")
        self.assertEqual(feature.strain, "G19833")
        self.assertEqual(feature.assembly_version, "gnm2")
        self.assertEqual(feature.annotation_version, "ann1")
        self.assertEqual(feature.secondary_identifier, "Phvul.001G000100")
        self.assertEqual(feature.collection_key, "phavu.G19833.gnm2")
        self.assertEqual(str(feature), "phavu.G19833.gnm2.ann1.Phvul.001G000100")

    def test_parse_assembly_feature(self):
        feature = FeatureIdentifier.parse("phavu.G19833.gnm2.Chr01", False)
        self.assertIsNone(feature.annotation_version)
        self.assertEqual(str(feature), "phavu.G19833.gnm2.Chr01")
        self.assertIsNone(FeatureIdentifier.parse("Chr01", False))


if __name__ == '__main__':
    unittest.main()
