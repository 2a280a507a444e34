#!/usr/bin/env python3

"""
Base class for Datastore file converters.

A converter owns one RecordLinker and one sink for the length of a run.
Files are handed to ``process_file`` one at a time; the collection README
must come first for converters that depend on it. ``close`` hands every
linked item to the sink.
"""

import gzip
import logging
from pathlib import Path
from typing import IO, Dict, Iterator, Optional, Tuple, Union

from .config import ConverterConfig, DatastoreTables
from .exceptions import MalformedRecordError, MissingRequiredMetadataError
from .identifiers import (
    collection_from_readme_filename, extract_annotation_version, extract_assembly_version,
    extract_secondary_identifier, extract_strain_identifier,
)
from .items import FeatureKind, Item, ItemSink
from .linker import RecordLinker
from .prefixes import Classification, PrefixClassifier, PrefixOverrides
from .readme import Readme

PathLike = Union[str, Path]

# ontology names keyed by the short names used in annotation tables
ONTOLOGIES = {
    'GO': "GO",
    'Pfam': "Pfam",
    'PANTHER': "PANTHER",
    'KOG': "KOG",
    'EC': "ENZYME",
    'KO': "KEGG Orthology",
    'InterPro': "InterPro",
}


def open_text(path: PathLike) -> IO[str]:
    """Open a plain or gzip-compressed text file."""
    path = str(path)
    if path.endswith('.gz'):
        return gzip.open(path, 'rt')
    return open(path, 'r')


def iter_lines(path: PathLike) -> Iterator[Tuple[int, str]]:
    """Yield (line number, line) with line endings removed."""
    with open_text(path) as f:
        for line_num, line in enumerate(f, 1):
            yield line_num, line.rstrip('\r\n')


def iter_fasta(path: PathLike) -> Iterator[Tuple[str, str]]:
    """Yield (first word of header, sequence) for each FASTA record."""
    current_id = None
    current_seq = []
    with open_text(path) as f:
        for line in f:
            line = line.strip()
            if line.startswith('>'):
                if current_id is not None:
                    yield current_id, ''.join(current_seq)
                header = line[1:].split()
                current_id = header[0] if header else ""
                current_seq = []
            elif line and current_id is not None:
                current_seq.append(line)
    if current_id is not None:
        yield current_id, ''.join(current_seq)


def file_fields(path: PathLike) -> list:
    """phavu.G19833.gnm2.ann1.PB8d.info_annot.txt -> its dot-separated fields."""
    return Path(path).name.split('.')


class DatastoreConverter:
    """
    Shared lifecycle and get-or-create helpers for all converters.

    Subclasses list ``(filename suffix, method name)`` pairs in
    ``FILE_HANDLERS``; the first matching suffix wins.
    """

    FILE_HANDLERS: Tuple[Tuple[str, str], ...] = ()
    REQUIRES_README = False
    REQUIRED_README_FIELDS: Tuple[str, ...] = ('identifier', 'taxid')

    def __init__(self, sink: ItemSink, tables: DatastoreTables,
                 config: Optional[ConverterConfig] = None):
        self.sink = sink
        self.tables = tables
        self.config = config or ConverterConfig()
        self.linker = RecordLinker()
        self.classifier = PrefixClassifier(tables.prefixes)
        self.readme: Optional[Readme] = None
        self.current_file: Optional[Path] = None
        self.records_processed = 0
        self.records_skipped = 0

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _handler_for(self, name: str) -> Optional[str]:
        for suffix, method_name in self.FILE_HANDLERS:
            if name.endswith(suffix):
                return method_name
        return None

    def process_file(self, path: PathLike) -> bool:
        """Process one file; returns False when no handler claims it."""
        path = Path(path)
        self.current_file = path
        if path.name.startswith("README."):
            self.process_readme(path)
            return True

        method_name = self._handler_for(path.name)
        if method_name is None:
            logging.warning(f"No handler for {path.name}, skipping")
            return False

        if self.REQUIRES_README and self.readme is None:
            raise MissingRequiredMetadataError(
                f"README must be processed before {path.name}", field="README", source=str(path))

        logging.info(f"Processing {path.name}")
        getattr(self, method_name)(path)
        return True

    def process_readme(self, path: PathLike) -> Readme:
        """Load the collection README and create its Organism, Strain, DataSet and Publication."""
        readme = Readme.from_file(path)
        readme.require(*self.REQUIRED_README_FIELDS)
        collection = collection_from_readme_filename(Path(path).name)
        if collection and readme.identifier and collection != readme.identifier:
            logging.warning(f"README identifier {readme.identifier} does not match file name {Path(path).name}")

        self.readme = readme
        self.classifier = self.classifier.with_overrides(PrefixOverrides.from_readme(readme))

        organism = self.get_organism(readme.taxid)
        strain_identifier = extract_strain_identifier(readme.identifier)
        if strain_identifier:
            self.get_strain(strain_identifier, organism)
        dataset = self.get_dataset()
        if readme.publication_doi:
            publication = self.get_publication(doi=readme.publication_doi)
            if readme.publication_title:
                publication.set_attribute("title", readme.publication_title)
            dataset.set_reference("publication", publication)
        logging.info(f"Loaded README for collection {readme.identifier}")
        return readme

    def close(self) -> int:
        """Hand every linked item to the sink."""
        return self.linker.flush(self.sink)

    def store(self, item: Item) -> None:
        """Store an item that is not held in the linker caches."""
        self.sink.store(item)

    def malformed(self, error: MalformedRecordError, line_number: int) -> MalformedRecordError:
        """Attach file position to a parse error."""
        error.filename = self.current_file.name if self.current_file else ""
        error.line_number = line_number
        return error

    # ------------------------------------------------------------------
    # Collection-level items
    # ------------------------------------------------------------------

    @property
    def collection_identifier(self) -> Optional[str]:
        return self.readme.identifier if self.readme else None

    @property
    def assembly_version(self) -> Optional[str]:
        return extract_assembly_version(self.collection_identifier)

    @property
    def annotation_version(self) -> Optional[str]:
        return extract_annotation_version(self.collection_identifier)

    def get_data_source(self) -> Item:
        def create():
            item = self.sink.create("DataSource")
            item.set_attribute("name", self.config.data_source_name)
            item.set_attribute("url", self.config.data_source_url)
            item.set_attribute("description", self.config.data_source_description)
            return item
        return self.linker.get_or_create("DataSource", self.config.data_source_name, create)

    def get_dataset(self, name: Optional[str] = None) -> Item:
        """DataSet for the README collection, or a named one when there is no README."""
        if name is None:
            if self.readme is None:
                raise MissingRequiredMetadataError(
                    "data set name needs a README or explicit name", field="identifier")
            name = self.readme.identifier

        def create():
            item = self.sink.create("DataSet")
            item.set_attribute("name", name)
            item.set_attribute("licence", self.readme.license if self.readme and self.readme.license
                               else self.config.dataset_licence)
            item.set_reference("dataSource", self.get_data_source())
            if self.readme and name == self.readme.identifier:
                if self.readme.synopsis:
                    item.set_attribute("synopsis", self.readme.synopsis)
                if self.readme.description:
                    item.set_attribute("description", self.readme.description)
                if self.readme.dataset_doi:
                    item.set_attribute("doi", self.readme.dataset_doi)
                if self.readme.bioproject:
                    item.set_attribute("bioProject", self.readme.bioproject)
                if self.readme.dataset_release_date:
                    item.set_attribute("version", self.readme.dataset_release_date)
            return item
        return self.linker.get_or_create("DataSet", name, create)

    def get_organism(self, taxon_id: str) -> Item:
        taxon_id = str(taxon_id)

        def create():
            item = self.sink.create("Organism")
            item.set_attribute("taxonId", taxon_id)
            if taxon_id in self.tables.organisms:
                genus, species = self.tables.genus_species(taxon_id)
                item.set_attribute("genus", genus)
                item.set_attribute("species", species)
                item.set_attribute("name", f"{genus} {species}")
            if self.readme and self.readme.taxid == taxon_id:
                if self.readme.scientific_name_abbrev:
                    item.set_attribute("abbreviation", self.readme.scientific_name_abbrev)
                if self.readme.scientific_name:
                    item.set_attribute("name", self.readme.scientific_name)
            return item
        return self.linker.get_or_create("Organism", taxon_id, create)

    def get_organism_for_gensp(self, gensp: str) -> Item:
        return self.get_organism(self.tables.taxon_id_for(gensp))

    def get_strain(self, identifier: str, organism: Item) -> Item:
        def create():
            item = self.sink.create("Strain")
            item.set_attribute("identifier", identifier)
            item.set_reference("organism", organism)
            return item
        return self.linker.get_or_create("Strain", identifier, create)

    def get_publication(self, doi: Optional[str] = None, pmid: Optional[int] = None) -> Item:
        if doi:
            key, attribute, value = f"doi:{doi}", "doi", doi
        elif pmid is not None:
            key, attribute, value = f"pmid:{pmid}", "pubMedId", str(pmid)
        else:
            raise MissingRequiredMetadataError("publication needs a DOI or PMID", field="publication_doi")

        def create():
            item = self.sink.create("Publication")
            item.set_attribute(attribute, value)
            return item
        return self.linker.get_or_create("Publication", key, create)

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def get_annotation_feature(self, class_name: str, primary_identifier: str) -> Item:
        """Gene, MRNA, Protein and friends, keyed by full-yuck primary identifier."""
        def create():
            item = self.sink.create(class_name)
            item.set_attribute("primaryIdentifier", primary_identifier)
            secondary = extract_secondary_identifier(primary_identifier, True)
            if secondary is not None:
                item.set_attribute("secondaryIdentifier", secondary)
            return item
        return self.linker.get_or_create(class_name, primary_identifier, create)

    def get_gene(self, primary_identifier: str) -> Item:
        return self.get_annotation_feature(FeatureKind.GENE.class_name, primary_identifier)

    def get_mrna(self, primary_identifier: str) -> Item:
        return self.get_annotation_feature(FeatureKind.MRNA.class_name, primary_identifier)

    def get_protein(self, primary_identifier: str) -> Item:
        return self.get_annotation_feature(FeatureKind.PROTEIN.class_name, primary_identifier)

    def get_sequence_feature(self, kind: FeatureKind, primary_identifier: str) -> Item:
        """Chromosome or Supercontig keyed by full-yuck primary identifier."""
        def create():
            item = self.sink.create(kind.class_name)
            item.set_attribute("primaryIdentifier", primary_identifier)
            secondary = extract_secondary_identifier(primary_identifier, False)
            if secondary is not None:
                item.set_attribute("secondaryIdentifier", secondary)
            return item
        # one cache for both kinds so a name is never both
        return self.linker.get_or_create("Sequence", primary_identifier, create)

    def get_chromosome_or_supercontig(self, identifier: str, classification: Classification) -> Item:
        kind = FeatureKind.SUPERCONTIG if classification is Classification.SUPERCONTIG else FeatureKind.CHROMOSOME
        return self.get_sequence_feature(kind, identifier)

    def get_gene_family(self, identifier: str) -> Item:
        def create():
            item = self.sink.create("GeneFamily")
            item.set_attribute("identifier", identifier)
            return item
        return self.linker.get_or_create("GeneFamily", identifier, create)

    def get_genetic_marker(self, name: str) -> Item:
        def create():
            item = self.sink.create("GeneticMarker")
            item.set_attribute("name", name)
            return item
        return self.linker.get_or_create("GeneticMarker", name, create)

    def get_phenotype(self, name: str) -> Item:
        def create():
            item = self.sink.create("Phenotype")
            item.set_attribute("primaryIdentifier", name)
            return item
        return self.linker.get_or_create("Phenotype", name, create)

    def get_protein_domain(self, identifier: str) -> Item:
        def create():
            item = self.sink.create("ProteinDomain")
            item.set_attribute("primaryIdentifier", identifier)
            return item
        return self.linker.get_or_create("ProteinDomain", identifier, create)

    # ------------------------------------------------------------------
    # Ontologies
    # ------------------------------------------------------------------

    def get_ontology(self, short_name: str) -> Item:
        name = ONTOLOGIES.get(short_name, short_name)

        def create():
            item = self.sink.create("Ontology")
            item.set_attribute("name", name)
            return item
        return self.linker.get_or_create("Ontology", name, create)

    def get_ontology_term(self, identifier: str, ontology: Optional[str] = None) -> Item:
        def create():
            item = self.sink.create("OntologyTerm")
            item.set_attribute("identifier", identifier)
            return item
        term = self.linker.get_or_create("OntologyTerm", identifier, create)
        if ontology:
            term.set_reference("ontology", self.get_ontology(ontology))
        return term

    def annotate(self, subject: Item, subject_key: str, term_identifier: str,
                 ontology: Optional[str], dataset: Optional[Item] = None,
                 version_key: str = "0", description: Optional[str] = None) -> Item:
        """
        OntologyAnnotation of subject by term, at most one per
        (term, version, subject) key.
        """
        term = self.get_ontology_term(term_identifier, ontology)
        if description:
            term.set_attribute("description", description)

        def create():
            item = self.sink.create("OntologyAnnotation")
            item.set_reference("subject", subject)
            item.set_reference("ontologyTerm", term)
            return item
        key = f"{term_identifier}_{version_key}_{subject_key}"
        annotation = self.linker.get_or_create("OntologyAnnotation", key, create)
        if dataset is not None:
            annotation.add_to_collection("dataSets", dataset)
        return annotation

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def locate(self, feature: Item, sequence: Item, start: int, end: int,
               strand: Optional[str] = None, dataset: Optional[Item] = None) -> Item:
        """Store a Location of feature on a chromosome or supercontig and reference it."""
        location = self.sink.create("Location")
        location.set_attribute("start", start)
        location.set_attribute("end", end)
        if strand:
            location.set_attribute("strand", strand)
        location.set_reference("feature", feature)
        location.set_reference("locatedOn", sequence)
        if dataset is not None:
            location.add_to_collection("dataSets", dataset)
        self.store(location)

        if sequence.class_name == FeatureKind.SUPERCONTIG.class_name:
            feature.set_reference("supercontig", sequence)
            feature.set_reference("supercontigLocation", location)
        else:
            feature.set_reference("chromosome", sequence)
            feature.set_reference("chromosomeLocation", location)
        return location

    def stats(self) -> Dict[str, int]:
        return {
            'records_processed': self.records_processed,
            'records_skipped': self.records_skipped,
            **{kind: count for kind, count in self.linker.summary()},
        }
