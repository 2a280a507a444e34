#!/usr/bin/env python3

"""
QTL experiments and the markers that define each QTL.

    0     1     2   3    4              5    6
    vigun.mixed.qtl.7Qk1.Pottorff_2012.expt.tsv
    vigun.mixed.qtl.7Qk1.Pottorff_2012.markers.tsv

The experiment file is a key/value header followed by phenotype, QTL rows:

    Identifier          22691139
    Name                Pottorff et al. 2012
    MappingParent       Sanzi
    MappingParent       Vita7
    PMID                22691139
    #Phenotype          Identifier
    Hastate leaf shape  Hls

The markers file lists QTL, marker and an optional distinction. Every QTL
it names must come from an experiment file processed earlier.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from ..core.converter import DatastoreConverter, file_fields, iter_lines
from ..core.exceptions import (
    MalformedRecordError, MissingRequiredMetadataError, UnresolvableIdentifierError,
)
from ..core.identifiers import extract_assembly_version, extract_key4
from ..core.items import Item
from ..core.records import QTLMarkerRecord, is_skippable, split_columns

EXPERIMENT_ATTRIBUTES = {
    'Name': "name",
    'Description': "description",
    'MappingDescription': "mappingDescription",
    'GenotypingPlatform': "genotypingPlatform",
    'GenotypingMethod': "genotypingMethod",
}


class QTLConverter(DatastoreConverter):
    """QTLExperiments, QTLs, their phenotypes and QTL-marker links."""

    FILE_HANDLERS = (
        ('.expt.tsv', 'process_experiment_file'),
        ('.markers.tsv', 'process_markers_file'),
    )

    def _qtl_context(self, path: Path) -> Tuple[Item, Item]:
        fields = file_fields(path)
        collection = self.collection_identifier or '.'.join(fields[1:4])
        if extract_assembly_version(collection) is not None or extract_key4(collection) is None:
            raise UnresolvableIdentifierError(
                "QTL files are named gensp.mixed.qtl.KEY4.<experiment>.expt.tsv", path.name)
        if self.readme is not None:
            organism = self.get_organism(self.readme.taxid)
        else:
            organism = self.get_organism_for_gensp(fields[0])
        return organism, self.get_dataset(collection)

    def get_qtl(self, identifier: str, experiment: Item, organism: Item) -> Item:
        def create():
            item = self.sink.create("QTL")
            item.set_attribute("primaryIdentifier", identifier)
            item.set_reference("experiment", experiment)
            item.set_reference("organism", organism)
            return item
        return self.linker.get_or_create("QTL", identifier, create)

    def process_experiment_file(self, path: Path) -> None:
        organism, dataset = self._qtl_context(path)
        experiment = self.sink.create("QTLExperiment")
        experiment.set_reference("organism", organism)
        experiment.add_to_collection("dataSets", dataset)
        publication: Optional[Item] = None
        qtls = 0

        for line_num, line in iter_lines(path):
            if is_skippable(line):
                continue
            parts = split_columns(line)
            key = parts[0].strip()
            value = parts[1].strip() if len(parts) > 1 else ""

            if key == 'Identifier':
                if self.linker.contains("QTLExperiment", value):
                    raise UnresolvableIdentifierError(
                        f"QTL experiment in {path.name} was already loaded from another file", value)
                experiment.set_attribute("primaryIdentifier", value)
                self.linker.get_or_create("QTLExperiment", value, lambda: experiment)
                continue
            if key == 'TaxonID':
                continue
            if key in EXPERIMENT_ATTRIBUTES:
                if value:
                    experiment.set_attribute(EXPERIMENT_ATTRIBUTES[key], value)
                continue
            if key == 'MappingParent':
                if value:
                    experiment.add_to_collection("mappingParents", self.get_strain(value, organism))
                continue
            if key in ('PMID', 'DOI'):
                if not value:
                    continue
                if key == 'PMID':
                    try:
                        pmid = int(value)
                    except ValueError:
                        raise self.malformed(MalformedRecordError(
                            f"PMID is not a number: {value!r}", line), line_num) from None
                    if publication is None:
                        publication = self.get_publication(pmid=pmid)
                    else:
                        publication.set_attribute("pubMedId", pmid)
                elif publication is None:
                    publication = self.get_publication(doi=value)
                else:
                    publication.set_attribute("doi", value)
                experiment.set_reference("publication", publication)
                continue

            # phenotype, QTL
            if not experiment.has_attribute("primaryIdentifier"):
                raise MissingRequiredMetadataError(
                    "experiment header has no Identifier", field="Identifier", source=path.name)
            if publication is None:
                raise MissingRequiredMetadataError(
                    "experiment header has no PMID or DOI", field="PMID", source=path.name)
            if not value:
                raise self.malformed(MalformedRecordError(
                    "phenotype row has no QTL identifier", line, {'phenotype': key}), line_num)

            phenotype = self.get_phenotype(key)
            phenotype.add_to_collection("dataSets", dataset)
            qtl = self.get_qtl(value, experiment, organism)
            qtl.add_to_collection("publications", publication)
            qtl.add_to_collection("dataSets", dataset)
            qtl.add_to_collection("phenotypes", phenotype)
            qtls += 1

        if qtls == 0:
            raise MissingRequiredMetadataError(
                "experiment file has no QTL records", field="QTL", source=path.name)
        self.records_processed += qtls
        logging.info(f"{experiment.get_attribute('primaryIdentifier')}: {qtls:,} QTL records")

    def process_markers_file(self, path: Path) -> None:
        organism, dataset = self._qtl_context(path)
        links = 0

        for line_num, line in iter_lines(path):
            try:
                record = QTLMarkerRecord.from_line(line)
            except MalformedRecordError as e:
                raise self.malformed(e, line_num)
            if record is None:
                continue

            qtl = self.linker.get("QTL", record.qtl)
            if qtl is None:
                raise UnresolvableIdentifierError(
                    f"QTL in {path.name} is missing from its experiment file", record.qtl)
            qtl.add_to_collection("dataSets", dataset)
            marker = self.get_genetic_marker(record.marker)
            marker.set_attribute("secondaryIdentifier", record.marker)
            marker.set_reference("organism", organism)
            marker.add_to_collection("dataSets", dataset)

            qtl_marker = self.sink.create("QTLMarker")
            qtl_marker.set_reference("qtl", qtl)
            qtl_marker.set_reference("marker", marker)
            if record.distinction:
                qtl_marker.set_attribute("distinction", record.distinction)
            self.store(qtl_marker)
            links += 1

        self.records_processed += links
        logging.info(f"{path.name}: {links:,} QTL-marker links")
