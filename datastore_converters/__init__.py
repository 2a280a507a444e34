#!/usr/bin/env python3

"""
Datastore Converters

Converters from the genomics Datastore's flat-file collections (annotation
tables, gene families, genetic maps, GWAS, synteny, phylogenetic trees,
genome FASTA, gene-model GFF3 and VCF) to typed items for bulk loading.

Modules:
- core: identifier grammar, prefix classification, record linking,
  line parsers, items and sinks, configuration and the run driver
- converters: one converter per collection file family
- utils: run monitoring
- tests: unit tests
"""

__version__ = "1.0.0"
__author__ = "Datastore Converters Team"

from .core.exceptions import (
    ConverterError, MalformedRecordError, MissingRequiredMetadataError,
    UnresolvableIdentifierError, UnsupportedFeatureError, ConfigurationError,
    MemoryLimitError
)
from .core.config import ConverterConfig, DatastoreTables, load_config
from .core.prefixes import Classification, PrefixClassifier, PrefixTable
from .core.linker import RecordLinker
from .core.items import Item, InMemoryItemSink, JsonLinesItemSink, FeatureKind
from .core.pipeline import ConversionPipeline

__all__ = [
    # Run driver
    'ConversionPipeline',
    # Classification and linking
    'Classification', 'PrefixClassifier', 'PrefixTable', 'RecordLinker',
    # Items
    'Item', 'InMemoryItemSink', 'JsonLinesItemSink', 'FeatureKind',
    # Exceptions
    'ConverterError', 'MalformedRecordError', 'MissingRequiredMetadataError',
    'UnresolvableIdentifierError', 'UnsupportedFeatureError', 'ConfigurationError',
    'MemoryLimitError',
    # Configuration
    'ConverterConfig', 'DatastoreTables', 'load_config'
]
