#!/usr/bin/env python3

"""
End-to-end tests for the run driver, the command line and run monitoring.
"""

import unittest
import tempfile
import json
import time
import sys
import os
from pathlib import Path

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from datastore_converters.core.config import ConverterConfig, DatastoreTables
from datastore_converters.core.exceptions import ConfigurationError, MemoryLimitError
from datastore_converters.core.items import InMemoryItemSink
from datastore_converters.core.pipeline import ConversionPipeline, collect_input_files
from datastore_converters.core.prefixes import PrefixTable
from datastore_converters.utils.performance_monitor import PerformanceMonitor
import converter_cli

README_TEXT = """identifier: G19833.gnm2.ann1.PB8d
taxid: 3885
scientific_name_abbrev: phavu
synopsis: Gene models of Phaseolus vulgaris G19833
"""

GENE_ID = "phavu.G19833.gnm2.ann1.Phvul.001G000100"

GFF_TEXT = (
    "##gff-version 3\n"
    f"phavu.G19833.gnm2.Chr01\tphytozome\tgene\t100\t900\t.\t+\t.\tID={GENE_ID}\n"
    f"phavu.G19833.gnm2.Chr01\tphytozome\tmRNA\t100\t900\t.\t+\t.\tID={GENE_ID}.1;Parent={GENE_ID}\n"
)


class PipelineTestCase(unittest.TestCase):
    """A gene models collection directory and an output directory."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        root = Path(self.temp_dir.name)
        self.collection_dir = root / "G19833.gnm2.ann1.PB8d"
        self.collection_dir.mkdir()
        self.output_dir = root / "out"
        # README sorts after the GFF by name; the driver must still load it first
        (self.collection_dir / "phavu.G19833.gnm2.ann1.PB8d.gene_models_main.gff3").write_text(GFF_TEXT)
        (self.collection_dir / "README.G19833.gnm2.ann1.PB8d.yml").write_text(README_TEXT)

        self.organism_config = root / "organism_config.properties"
        self.organism_config.write_text("taxon.3885.genus=Phaseolus\ntaxon.3885.species=vulgaris\n")
        self.datastore_config = root / "datastore_config.properties"
        self.datastore_config.write_text("chromosome.phavu.G19833.gnm2=Chr\nsupercontig.phavu.G19833.gnm2=scaffold\n")

    def tables(self) -> DatastoreTables:
        prefixes = PrefixTable()
        prefixes.add_chromosome_prefixes("phavu.G19833.gnm2", ["Chr"])
        return DatastoreTables({"3885": ("Phaseolus", "vulgaris")}, prefixes)


class TestCollectInputFiles(PipelineTestCase):
    """Test input expansion and ordering."""

    def test_readme_first(self):
        files = collect_input_files([self.collection_dir])
        self.assertEqual([p.name for p in files], [
            "README.G19833.gnm2.ann1.PB8d.yml",
            "phavu.G19833.gnm2.ann1.PB8d.gene_models_main.gff3",
        ])

    def test_index_files_skipped(self):
        (self.collection_dir / "phavu.G19833.gnm2.fC0g.genome_main.fna.fai").write_text("")
        self.assertEqual(len(collect_input_files([self.collection_dir])), 2)

    def test_missing_input(self):
        with self.assertRaises(ConfigurationError):
            collect_input_files([self.collection_dir / "missing.gff3"])


class TestConversionPipeline(PipelineTestCase):
    """Test complete conversion runs."""

    def test_gene_models_run(self):
        pipeline = ConversionPipeline(ConverterConfig(), self.tables())
        self.assertTrue(pipeline.run("gene-models", [self.collection_dir], self.output_dir))

        items_path = self.output_dir / "gene-models.items.jsonl"
        with open(items_path) as f:
            items = [json.loads(line) for line in f]
        classes = [item['class'] for item in items]
        self.assertIn("Gene", classes)
        self.assertIn("MRNA", classes)
        self.assertIn("Chromosome", classes)
        gene = next(item for item in items if item['class'] == "Gene")
        self.assertEqual(gene['attributes']['primaryIdentifier'], GENE_ID)
        self.assertIn('organism', gene['references'])
        self.assertTrue((self.output_dir / "conversion.log").exists())

        stats = pipeline.converter.stats()
        self.assertEqual(stats['records_processed'], 2)
        self.assertEqual(pipeline.monitor.get_performance_summary()['phases']['close']['records_count'],
                         len(pipeline.converter.sink) - 2)

    def test_failed_run_writes_nothing(self):
        gff = self.collection_dir / "phavu.G19833.gnm2.ann1.PB8d.gene_models_main.gff3"
        gff.write_text(GFF_TEXT.replace("\tgene\t", "\ttransposable_element\t"))
        sink = InMemoryItemSink()
        pipeline = ConversionPipeline(ConverterConfig(), self.tables())

        self.assertFalse(pipeline.run("gene-models", [self.collection_dir], self.output_dir, sink=sink))
        self.assertFalse(sink.committed)
        self.assertFalse((self.output_dir / "gene-models.items.jsonl").exists())

    def test_unknown_converter(self):
        pipeline = ConversionPipeline(ConverterConfig(), self.tables())
        self.assertFalse(pipeline.run("bogus", [self.collection_dir], self.output_dir))

    def test_tables_from_config(self):
        config = ConverterConfig(organism_config=str(self.organism_config),
                                 datastore_config=str(self.datastore_config))
        pipeline = ConversionPipeline(config)
        self.assertEqual(pipeline.tables.taxon_id_for("phavu"), "3885")
        self.assertTrue(pipeline.run("gene-models", [self.collection_dir], self.output_dir))


class TestCommandLine(PipelineTestCase):
    """Test converter_cli.main."""

    def test_main(self):
        status = converter_cli.main([
            "--converter", "gene-models",
            "--input", str(self.collection_dir),
            "--output", str(self.output_dir),
            "--organism-config", str(self.organism_config),
            "--datastore-config", str(self.datastore_config),
            "--log-level", "WARNING",
        ])
        self.assertEqual(status, 0)
        self.assertTrue((self.output_dir / "gene-models.items.jsonl").exists())

    def test_main_missing_table(self):
        status = converter_cli.main([
            "--converter", "gene-models",
            "--input", str(self.collection_dir),
            "--output", str(self.output_dir),
            "--organism-config", str(self.output_dir / "missing.properties"),
            "--log-level", "ERROR",
        ])
        self.assertEqual(status, 1)

    def test_unknown_converter_rejected(self):
        with self.assertRaises(SystemExit):
            converter_cli.create_argument_parser().parse_args(
                ["--converter", "bogus", "--input", "x", "--output", "y"])


class TestPerformanceMonitor(unittest.TestCase):
    """Test run monitoring."""

    def test_memory_usage(self):
        monitor = PerformanceMonitor()
        self.assertGreater(monitor.get_memory_usage(), 0)

    def test_phase_records(self):
        monitor = PerformanceMonitor()
        with monitor.phase_context("parse") as metrics:
            monitor.record_operations(10)
            monitor.record_operations(5)
            time.sleep(0.01)
        self.assertEqual(metrics.records_count, 15)
        self.assertIsNotNone(metrics.end_time)
        self.assertGreater(metrics.records_per_second, 0)
        self.assertIsNone(monitor.current_phase)
        self.assertEqual(monitor.get_performance_summary()['records'], 15)

    def test_memory_limit(self):
        monitor = PerformanceMonitor(memory_limit_mb=1)
        with self.assertRaises(MemoryLimitError) as context:
            monitor.check_memory_limit()
        self.assertEqual(context.exception.limit, 1)

    def test_disabled_monitor_skips_limit(self):
        self.assertTrue(PerformanceMonitor(memory_limit_mb=1, enabled=False).check_memory_limit())


if __name__ == '__main__':
    unittest.main()
