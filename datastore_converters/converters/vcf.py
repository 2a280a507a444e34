#!/usr/bin/env python3

"""
Genotyping studies from VCF files.

    glyma.Wm82.gnm2.div.Q4VR.SoySNP50k.vcf.gz

Each file is one GenotypingStudy with a GenotypingSample per header
sample, a VCFRecord per variant and a VCFSampleRecord per sample call.
"""

import logging
from pathlib import Path
from typing import Dict

import pysam

from ..core.converter import DatastoreConverter, file_fields
from ..core.identifiers import extract_key4, extract_strain_identifier
from ..core.items import Item
from ..core.records import format_info


def genotype_string(sample) -> str:
    """Allele bases of a sample call, e.g. A/G, C|C or ./."""
    separator = '|' if sample.phased else '/'
    alleles = sample.alleles or ()
    if not alleles:
        return '.'
    return separator.join(allele if allele is not None else '.' for allele in alleles)


class GenotypeVCFConverter(DatastoreConverter):
    """GenotypingStudy, samples, variant records and per-sample calls."""

    FILE_HANDLERS = (
        ('.vcf', 'process_vcf_file'),
        ('.vcf.gz', 'process_vcf_file'),
    )

    def study_key(self, path: Path) -> str:
        if self.readme is not None:
            key = extract_key4(self.readme.identifier)
        else:
            key = extract_key4('.'.join(file_fields(path)[1:5]))
        return key or path.name

    def get_genotyping_study(self, key: str) -> Item:
        def create():
            item = self.sink.create("GenotypingStudy")
            item.set_attribute("identifier", key)
            if self.readme is not None:
                for attribute, value in (("subject", self.readme.subject),
                                         ("description", self.readme.description),
                                         ("genbank", self.readme.genbank_accession)):
                    if value:
                        item.set_attribute(attribute, value)
                if self.readme.publication_doi:
                    item.set_reference("publication", self.get_publication(doi=self.readme.publication_doi))
            return item
        return self.linker.get_or_create("GenotypingStudy", key, create)

    def get_contig(self, contig: str, organism: Item, strain: Item, dataset: Item) -> Item:
        def create():
            item = self.sink.create("Chromosome")
            item.set_attribute("secondaryIdentifier", contig)
            item.set_reference("organism", organism)
            item.set_reference("strain", strain)
            item.add_to_collection("dataSets", dataset)
            return item
        return self.linker.get_or_create("Chromosome", contig, create)

    def process_vcf_file(self, path: Path) -> None:
        fields = file_fields(path)
        if self.readme is not None:
            organism = self.get_organism(self.readme.taxid)
            strain_identifier = extract_strain_identifier(self.readme.identifier)
            dataset = self.get_dataset()
        else:
            organism = self.get_organism_for_gensp(fields[0])
            strain_identifier = fields[1]
            dataset = self.get_dataset(path.name)
        strain = self.get_strain(strain_identifier, organism)

        study = self.get_genotyping_study(self.study_key(path))
        study.set_reference("organism", organism)
        study.set_reference("strain", strain)
        study.set_reference("dataSet", dataset)

        with pysam.VariantFile(str(path)) as vcf:
            samples: Dict[str, Item] = {}
            for name in vcf.header.samples:
                sample = self.sink.create("GenotypingSample")
                sample.set_attribute("identifier", name)
                sample.set_reference("organism", organism)
                sample.set_reference("strain", strain)
                self.store(sample)
                study.add_to_collection("samples", sample)
                samples[name] = sample
            logging.info(f"Loaded {len(samples)} samples from VCF header")

            for variant in vcf:
                self._process_variant(variant, samples, study, organism, strain, dataset)
                self.records_processed += 1

        logging.info(f"{path.name}: {self.records_processed:,} variants")

    def _process_variant(self, variant, samples: Dict[str, Item], study: Item,
                         organism: Item, strain: Item, dataset: Item) -> None:
        chromosome = self.get_contig(variant.chrom, organism, strain, dataset)

        location = self.sink.create("Location")
        location.set_attribute("start", variant.pos)
        location.set_attribute("end", variant.stop)
        location.set_reference("locatedOn", chromosome)
        location.add_to_collection("dataSets", dataset)
        self.store(location)

        record = self.sink.create("VCFRecord")
        if variant.id and variant.id != '.':
            record.set_attribute("identifier", variant.id)
        record.set_attribute("ref", variant.ref)
        if variant.alts:
            record.set_attribute("alt", variant.alts[0])
        if variant.qual is not None:
            record.set_attribute("qual", variant.qual)
        filters = ';'.join(variant.filter.keys())
        if filters:
            record.set_attribute("filter", filters)
        record.set_attribute("info", format_info(dict(variant.info.items())))
        record.set_reference("genotypingStudy", study)
        record.set_reference("chromosome", chromosome)
        record.set_reference("location", location)
        self.store(record)

        has_likelihoods = 'PL' in variant.format
        for name, sample in samples.items():
            call = variant.samples[name]
            sample_record = self.sink.create("VCFSampleRecord")
            sample_record.set_attribute("genotype", genotype_string(call))
            if has_likelihoods and call.get('PL') is not None:
                sample_record.set_attribute(
                    "likelihoods", ','.join('.' if pl is None else str(pl) for pl in call['PL']))
            sample_record.set_reference("sample", sample)
            sample_record.set_reference("vcfRecord", record)
            self.store(sample_record)
