#!/usr/bin/env python3

"""
Core module for the datastore converters.

Contains the identifier grammar, prefix classifier, record linker, line
record parsers, output items, configuration and exception types.
"""

from .exceptions import (
    ConverterError, MalformedRecordError, MissingRequiredMetadataError,
    UnresolvableIdentifierError, UnsupportedFeatureError, ConfigurationError,
    MemoryLimitError
)
from .config import ConverterConfig, DatastoreTables, load_config
from .prefixes import Classification, PrefixClassifier, PrefixOverrides, PrefixTable
from .linker import RecordLinker
from .readme import Readme

__all__ = [
    'ConverterError', 'MalformedRecordError', 'MissingRequiredMetadataError',
    'UnresolvableIdentifierError', 'UnsupportedFeatureError', 'ConfigurationError',
    'MemoryLimitError',
    'ConverterConfig', 'DatastoreTables', 'load_config',
    'Classification', 'PrefixClassifier', 'PrefixOverrides', 'PrefixTable',
    'RecordLinker', 'Readme'
]
