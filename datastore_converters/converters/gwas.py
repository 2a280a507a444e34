#!/usr/bin/env python3

"""
GWAS experiment files: a key/value header followed by result rows.

    TaxonID         3847
    Name            KGK20170714.1
    PlatformName    SoySNP50k
    DOI             10.3835/plantgenome2015.04.0024
    #identifier     phenotype  marker       pvalue
    Seed oil 4-g14  Seed oil   ss715591641  3.16E-09
"""

import logging
from pathlib import Path
from typing import Optional

from ..core.converter import DatastoreConverter, file_fields, iter_lines
from ..core.exceptions import MalformedRecordError
from ..core.items import Item
from ..core.records import GWASResultRecord, is_skippable, split_columns

HEADER_ATTRIBUTES = {
    'name': "primaryIdentifier",
    'platformname': "platformName",
    'platformdetails': "platformDetails",
}


class GWASConverter(DatastoreConverter):
    """One GWAS item per file, with GWASResults linking markers to phenotypes."""

    FILE_HANDLERS = (
        ('.gwas.tsv', 'process_gwas_file'),
        ('.gwas.tsv.gz', 'process_gwas_file'),
    )

    def process_gwas_file(self, path: Path) -> None:
        if self.readme is not None:
            organism = self.get_organism(self.readme.taxid)
            dataset = self.get_dataset()
        else:
            organism = self.get_organism_for_gensp(file_fields(path)[0])
            dataset = self.get_dataset(path.name)

        gwas = self.sink.create("GWAS")
        gwas.set_reference("organism", organism)
        gwas.set_reference("dataSet", dataset)
        publication: Optional[Item] = None
        results = 0

        for line_num, line in iter_lines(path):
            if is_skippable(line):
                continue
            parts = split_columns(line)
            key = parts[0].strip().lower()

            if key == 'taxonid':
                continue
            if key in HEADER_ATTRIBUTES:
                if len(parts) > 1 and parts[1].strip():
                    gwas.set_attribute(HEADER_ATTRIBUTES[key], parts[1].strip())
                continue
            if key in ('pmid', 'doi'):
                value = parts[1].strip() if len(parts) > 1 else ""
                if not value:
                    continue
                if key == 'pmid':
                    try:
                        publication = self.get_publication(pmid=int(value))
                    except ValueError:
                        raise self.malformed(MalformedRecordError(
                            f"PMID is not a number: {value!r}", line), line_num) from None
                else:
                    publication = self.get_publication(doi=value)
                gwas.add_to_collection("publications", publication)
                logging.info(f"GWAS publication {key.upper()}={value}")
                continue

            try:
                record = GWASResultRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            marker = self.get_genetic_marker(record.marker)
            marker.set_attribute("primaryIdentifier", record.marker)
            marker.set_reference("organism", organism)
            phenotype = self.get_phenotype(record.phenotype)
            if publication is not None:
                marker.add_to_collection("publications", publication)
                phenotype.add_to_collection("publications", publication)

            result = self.sink.create("GWASResult")
            result.set_attribute("identifier", record.identifier)
            result.set_attribute("pValue", record.pvalue)
            if record.lod is not None:
                result.set_attribute("lod", record.lod)
            result.set_reference("gwas", gwas)
            result.set_reference("phenotype", phenotype)
            result.set_reference("marker", marker)
            self.store(result)
            results += 1

        self.store(gwas)
        self.records_processed += results
        logging.info(f"{gwas.get_attribute('primaryIdentifier')}: {results:,} GWAS results")
