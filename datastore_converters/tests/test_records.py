#!/usr/bin/env python3

"""
Unit tests for the line record parsers.
"""

import unittest
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from datastore_converters.core.records import (
    AHRDRecord, CMapRecord, DescriptorRecord, GFARecord, GFF3Record, GWASResultRecord,
    InfoAnnotRecord, MapGFFRecord, QTLMarkerRecord, SyntenicRegionRecord, TargetRange, format_info,
    marker_name, parse_gff3_attributes, parse_target, scan_terms,
)
from datastore_converters.core.exceptions import MalformedRecordError

AHRD_LINE = ("legfed_v1_0.L_QQS5LC\tglucan endo-1,3-beta-glucosidase 14-like [Glycine max]; "
             "IPR000490 (Glycoside hydrolase, family 17), IPR017853 (Glycoside hydrolase, superfamily); "
             "GO:0005975 (carbohydrate metabolic process)")

MAP_GFF_LINE = ("phavu.G19833.gnm1.Chr01\tblastn\tSNP\t242423\t242423\t.\t+\t.\t"
                "Name=Pv_TOG905303_749;ID=1;Note=LG01 cM 0.0;alleles=T/G")


class TestAttributeParsing(unittest.TestCase):
    """Test GFF3 attributes and Target ranges."""

    def test_parse_attributes(self):
        attributes = parse_gff3_attributes("ID=gene1;Name=Phvul.001G000100;Note=kinase%2C putative;")
        self.assertEqual(attributes['ID'], "gene1")
        self.assertEqual(attributes['Name'], "Phvul.001G000100")
        self.assertEqual(attributes['Note'], "kinase, putative")

    def test_attributes_without_value_are_ignored(self):
        self.assertEqual(parse_gff3_attributes("ID=a;flag;;"), {'ID': "a"})

    def test_target_range(self):
        target = parse_target("phavu.G19833.gnm2.Chr03:100..500")
        self.assertEqual(target, TargetRange("phavu.G19833.gnm2.Chr03", 100, 500))
        self.assertEqual(target.region_name, "phavu.G19833.gnm2.Chr03:100-500")

    def test_target_columns(self):
        target = parse_target("Chr03 100 500 -")
        self.assertEqual(target.seqid, "Chr03")
        self.assertEqual(target.strand, "-")

    def test_bad_target(self):
        self.assertIsNone(parse_target("Chr03:100-500"))
        self.assertIsNone(parse_target(""))

    def test_marker_name(self):
        self.assertEqual(marker_name("Pv_TOG905303_749"), "TOG905303_749")
        self.assertEqual(marker_name("ss715591641"), "ss715591641")
        self.assertEqual(marker_name("BARC_GM_01_1234"), "BARC_GM_01_1234")


class TestTermScanning(unittest.TestCase):
    """Test AHRD-style term sections."""

    def test_labels_keep_commas(self):
        interpro, go = scan_terms("IPR000490 (Glycoside hydrolase, family 17), IPR017853 (Glycoside hydrolase, superfamily)")
        self.assertEqual(interpro, {
            'IPR000490': "Glycoside hydrolase, family 17",
            'IPR017853': "Glycoside hydrolase, superfamily",
        })
        self.assertEqual(go, {})

    def test_ahrd_record(self):
        record = AHRDRecord.from_line(AHRD_LINE)
        self.assertEqual(record.version, "legfed_v1_0")
        self.assertEqual(record.identifier, "L_QQS5LC")
        self.assertEqual(record.family_identifier, "legfed_v1_0.L_QQS5LC")
        self.assertEqual(record.description, "glucan endo-1,3-beta-glucosidase 14-like [Glycine max]")
        self.assertEqual(record.interpro, {
            'IPR000490': "Glycoside hydrolase, family 17",
            'IPR017853': "Glycoside hydrolase, superfamily",
        })
        self.assertEqual(record.go, {'GO:0005975': "carbohydrate metabolic process"})

    def test_ahrd_consensus_suffix(self):
        record = AHRDRecord.from_line("legfed_v1_0.L_QQS5LC-consensus\tsome protein")
        self.assertEqual(record.identifier, "L_QQS5LC")
        self.assertEqual(record.interpro, {})

    def test_ahrd_without_version(self):
        with self.assertRaises(MalformedRecordError):
            AHRDRecord.from_line("L_QQS5LC\tsome protein")

    def test_descriptor_record(self):
        record = DescriptorRecord.from_line(
            "arahy.Tifrunner.gnm1.ann1.Ah01g000100\tkinase; IPR000719 (Protein kinase domain); "
            "GO:0004672 (protein kinase activity), GO:0006468 (protein phosphorylation)")
        self.assertEqual(record.description, "kinase")
        self.assertEqual(set(record.go), {"GO:0004672", "GO:0006468"})
        self.assertEqual(record.interpro['IPR000719'], "Protein kinase domain")


class TestMapRecords(unittest.TestCase):
    """Test genetic map records."""

    def test_map_gff_record(self):
        record = MapGFFRecord.from_line(MAP_GFF_LINE)
        self.assertEqual(record.seqid, "phavu.G19833.gnm1.Chr01")
        self.assertEqual(record.full_name, "Pv_TOG905303_749")
        self.assertEqual(record.name, "TOG905303_749")
        self.assertEqual(record.alleles, "T/G")
        self.assertEqual(record.note, "LG01 cM 0.0")
        self.assertTrue(record.is_snp)
        self.assertEqual(record.length, 1)

    def test_map_gff_bad_start(self):
        line = MAP_GFF_LINE.replace("242423\t242423", "2424x3\t242423")
        with self.assertRaises(MalformedRecordError) as context:
            MapGFFRecord.from_line(line)
        error = context.exception
        self.assertEqual(error.line, line)
        self.assertEqual(error.fields['seqid'], "phavu.G19833.gnm1.Chr01")
        self.assertIn("start", str(error))

    def test_cmap_record(self):
        line = "m1\tLG01\t0.0\t98.5\tf1\t\"Pv_TOG905303_749\"\t\t12.5\t12.5\tSNP\t1"
        record = CMapRecord.from_line(line)
        self.assertEqual(record.map_name, "LG01")
        self.assertEqual(record.map_stop, 98.5)
        self.assertEqual(record.feature_name, "Pv_TOG905303_749")
        self.assertEqual(record.feature_start, 12.5)
        self.assertTrue(record.is_snp)
        self.assertTrue(record.is_landmark)
        self.assertFalse(record.is_qtl)

    def test_cmap_header_and_short_lines(self):
        self.assertIsNone(CMapRecord.from_line("map_acc\tmap_name\tmap_start"))
        with self.assertRaises(MalformedRecordError):
            CMapRecord.from_line("m1\tLG01\t0.0")


class TestTabularRecords(unittest.TestCase):
    """Test annotation, GFA and GWAS rows."""

    def test_info_annot_record(self):
        line = ("27143015\tPhvul.001G000100\tPhvul.001G000100.1\tPhvul.001G000100.1.p\t"
                "PF00069,PF07714\tPTHR24420\tKOG0192\t2.7.11.1\tK04730\tGO:0004672,GO:0005524\t"
                "AT1G01540.2\tAPK1A\tProtein kinase superfamily protein")
        record = InfoAnnotRecord.from_line(line)
        self.assertEqual(record.peptide_name, "Phvul.001G000100.1")
        self.assertEqual(record.pfam, ["PF00069", "PF07714"])
        self.assertEqual(record.go, ["GO:0004672", "GO:0005524"])
        self.assertEqual(record.best_hit_at_symbol, "APK1A")

    def test_info_annot_short_row(self):
        record = InfoAnnotRecord.from_line("1\tg\tg.1\tg.1.p")
        self.assertEqual(record.pfam, [])
        self.assertIsNone(record.best_hit_at_name)

    def test_gfa_record(self):
        record = GFARecord.from_line("glyma.Wm82.gnm2.ann1.Glyma.01G000100\tlegfed_v1_0.L_ABCDEF\t"
                                     "glyma.Wm82.gnm2.ann1.Glyma.01G000100.1\t1.2e-50")
        self.assertEqual(record.gene_family, "legfed_v1_0.L_ABCDEF")
        self.assertEqual(record.score, 1.2e-50)
        self.assertIsNone(GFARecord.from_line("ScoreMeaning\te-value"))

    def test_gwas_record_capitalizes(self):
        record = GWASResultRecord.from_line("SEED OIL 4-g14\tseed oil\tss715591641\t3.16E-09\tNA")
        self.assertEqual(record.identifier, "Seed oil 4-g14")
        self.assertEqual(record.phenotype, "Seed oil")
        self.assertEqual(record.pvalue, 3.16e-09)
        self.assertIsNone(record.lod)

    def test_gwas_record_bad_pvalue(self):
        with self.assertRaises(MalformedRecordError) as context:
            GWASResultRecord.from_line("Seed oil 4-g14\tSeed oil\tss715591641\tlow")
        self.assertEqual(context.exception.fields['marker'], "ss715591641")

    def test_format_info(self):
        self.assertEqual(format_info({'DP': 14, 'AF': (0.5, 0.25), 'DB': True}), "DP=14;AF=0.5,0.25;DB;")

    def test_qtl_marker_record(self):
        record = QTLMarkerRecord.from_line("Hls\t1_0910\tPeak")
        self.assertEqual((record.qtl, record.marker, record.distinction), ("Hls", "1_0910", "Peak"))
        self.assertIsNone(QTLMarkerRecord.from_line("Hls\t1_0349\t").distinction)
        self.assertIsNone(QTLMarkerRecord.from_line("#Identifier\tMarker\tDistinction"))
        with self.assertRaises(MalformedRecordError):
            QTLMarkerRecord.from_line("Hls")


class TestGFF3Records(unittest.TestCase):
    """Test generic and syntenic_region GFF3 lines."""

    def test_gff3_record(self):
        record = GFF3Record.from_line("phavu.G19833.gnm2.Chr01\tphytozome\texon\t100\t250\t.\t-\t.\t"
                                      "ID=e1;Parent=t1,t2")
        self.assertEqual(record.length, 151)
        self.assertEqual(record.attribute_values('Parent'), ["t1", "t2"])
        self.assertEqual(record.attribute_values('Dbxref'), [])
        self.assertIsNone(GFF3Record.from_line("##gff-version 3"))

    def test_attribute_ignoring_case(self):
        record = GFF3Record.from_line("glyma.Wm82.gnm2.Gm01\tSoySNP50K\tSNP\t1000\t1000\t.\t+\t.\t"
                                      "ID=glyma.Wm82.gnm2.ss715578788;alleles=A/G")
        self.assertEqual(record.attribute_ignoring_case('Alleles'), "A/G")
        self.assertEqual(record.attribute_ignoring_case('id'), "glyma.Wm82.gnm2.ss715578788")
        self.assertIsNone(record.attribute_ignoring_case('Motif'))

    def test_syntenic_region(self):
        line = ("glyma.Wm82.gnm2.Gm01\tDAGchainer\tsyntenic_region\t1000\t2000\t350.0\t+\t.\t"
                "ID=b1;Name=Gm01.Pv01.1 -;median_Ks=0.4100;Target=phavu.G19833.gnm2.Chr01:5000..9000")
        record = SyntenicRegionRecord.from_line(line)
        self.assertTrue(record.is_syntenic_region)
        self.assertEqual(record.median_ks, "0.4100")
        self.assertEqual(record.target.region_name, "phavu.G19833.gnm2.Chr01:5000-9000")
        self.assertEqual(record.target_strand, "-")
        self.assertEqual(record.region_name, "glyma.Wm82.gnm2.Gm01:1000-2000")


if __name__ == '__main__':
    unittest.main()
