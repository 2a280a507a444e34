#!/usr/bin/env python3

"""
Configuration management for the datastore converters.

ConverterConfig holds run settings (file, environment or defaults).
DatastoreTables holds the organism and sequence-prefix tables; it is
built once per process and passed to every converter.
"""

import os
import json
import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional, Dict, Any, Tuple, Union

import yaml

from .exceptions import ConfigurationError, MissingRequiredMetadataError
from .prefixes import PrefixTable, split_prefixes


@dataclass
class ConverterConfig:
    """Run settings shared by every converter."""

    # Data source
    data_source_name: str = "Legume Information System"
    data_source_url: str = "https://www.legumeinfo.org/"
    data_source_description: str = (
        "A centralized resource for legume biological information, "
        "focused on genomic, genetic, and trait data")
    dataset_licence: str = "ODC Public Domain Dedication and Licence (PDDL)"

    # Global tables
    organism_config: Optional[str] = None
    datastore_config: Optional[str] = None

    # Performance settings
    memory_limit_mb: int = 4096
    enable_memory_monitoring: bool = True

    # Advanced settings
    debug_mode: bool = False

    @classmethod
    def from_file(cls, config_path: str) -> 'ConverterConfig':
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration file format: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")

        return cls.from_dict(config_data or {})

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ConverterConfig':
        """Create configuration from dictionary."""
        # Filter out unknown keys
        known_keys = set(cls.__dataclass_fields__.keys())
        filtered_dict = {k: v for k, v in config_dict.items() if k in known_keys}

        try:
            return cls(**filtered_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration parameters: {e}")

    @classmethod
    def from_env(cls) -> 'ConverterConfig':
        """Load configuration from environment variables."""
        config = cls()

        env_mappings = {
            'DATASTORE_DATA_SOURCE_NAME': ('data_source_name', str),
            'DATASTORE_DATA_SOURCE_URL': ('data_source_url', str),
            'DATASTORE_ORGANISM_CONFIG': ('organism_config', str),
            'DATASTORE_CONFIG': ('datastore_config', str),
            'DATASTORE_MEMORY_LIMIT_MB': ('memory_limit_mb', int),
            'DATASTORE_DEBUG_MODE': ('debug_mode', lambda x: x.lower() in ('true', '1', 'yes')),
        }

        for env_var, (field_name, converter) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value:
                try:
                    setattr(config, field_name, converter(env_value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")

        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to file."""
        config_dict = self.to_dict()

        with open(config_path, 'w') as f:
            if config_path.lower().endswith(('.yaml', '.yml')):
                yaml.safe_dump(config_dict, f, default_flow_style=False)
            else:
                json.dump(config_dict, f, indent=2)

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not self.data_source_name:
            raise ConfigurationError("data_source_name must not be empty")

        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")

        for name in ('organism_config', 'datastore_config'):
            path = getattr(self, name)
            if path and not os.path.exists(path):
                raise ConfigurationError(f"{name} file not found: {path}")

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> ConverterConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Args:
        config_path: Path to configuration file (optional)
        use_env: Whether to load environment variables

    Returns:
        ConverterConfig: Loaded configuration
    """
    config = ConverterConfig()

    if use_env:
        env_config = ConverterConfig.from_env()
        for field_name in ConverterConfig.__dataclass_fields__:
            env_value = getattr(env_config, field_name)
            if env_value != getattr(config, field_name):
                setattr(config, field_name, env_value)

    if config_path:
        file_config = ConverterConfig.from_file(config_path)
        for field_name in ConverterConfig.__dataclass_fields__:
            setattr(config, field_name, getattr(file_config, field_name))

    config.validate()
    return config


def read_properties(path: Union[str, Path]) -> Dict[str, str]:
    """Read a key=value properties file, skipping comments and blank lines."""
    properties = {}
    with open(path, 'r') as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith(('#', '!')):
                continue
            if '=' not in line:
                raise ConfigurationError(f"Invalid properties line {line_num} in {path}: {line}")
            key, value = line.split('=', 1)
            properties[key.strip()] = value.strip()
    return properties


def form_gensp(genus: str, species: str) -> str:
    """Phaseolus vulgaris -> phavu"""
    return genus[:3].lower() + species[:2].lower()


@dataclass
class DatastoreTables:
    """Organism taxonomy and sequence prefix tables, read-only after loading."""
    organisms: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    prefixes: PrefixTable = field(default_factory=PrefixTable)

    def __post_init__(self):
        self._taxon_ids = {form_gensp(genus, species): taxon_id
                           for taxon_id, (genus, species) in self.organisms.items()}

    def taxon_id_for(self, gensp: str) -> str:
        try:
            return self._taxon_ids[gensp]
        except KeyError:
            raise MissingRequiredMetadataError(
                f"no taxon ID configured for {gensp}", field="taxid", source="organism table") from None

    def genus_species(self, taxon_id: str) -> Tuple[str, str]:
        try:
            return self.organisms[str(taxon_id)]
        except KeyError:
            raise MissingRequiredMetadataError(
                f"no genus/species configured for taxon {taxon_id}", field="taxid",
                source="organism table") from None

    def has_gensp(self, gensp: str) -> bool:
        return gensp in self._taxon_ids

    @classmethod
    def from_properties(cls, organism_path: Optional[str] = None,
                        datastore_path: Optional[str] = None) -> 'DatastoreTables':
        """
        Build tables from the legacy properties pair.

        organism_config.properties:  taxon.3885.genus=Phaseolus
                                     taxon.3885.species=vulgaris
        datastore_config.properties: chromosome.medtr.A17.gnm5=MtrunA17Chr
                                     supercontig.medtr.A17.gnm5=MtrunA17Chr0c
        """
        organisms: Dict[str, Dict[str, str]] = {}
        if organism_path:
            for key, value in read_properties(organism_path).items():
                parts = key.split('.')
                if len(parts) == 3 and parts[0] == 'taxon' and parts[2] in ('genus', 'species'):
                    organisms.setdefault(parts[1], {})[parts[2]] = value

        prefixes = PrefixTable()
        if datastore_path:
            for key, value in read_properties(datastore_path).items():
                category, _, collection = key.partition('.')
                if category == 'chromosome':
                    prefixes.add_chromosome_prefixes(collection, split_prefixes(value))
                elif category == 'supercontig':
                    prefixes.add_supercontig_prefixes(collection, split_prefixes(value))

        tables = cls(cls._complete_organisms(organisms), prefixes)
        logging.info(f"Loaded {len(tables.organisms)} organisms and {len(prefixes)} prefix entries")
        return tables

    @classmethod
    def from_file(cls, tables_path: str) -> 'DatastoreTables':
        """
        Build tables from one YAML or JSON document::

            organisms:
              "3885": {genus: Phaseolus, species: vulgaris}
            chromosome_prefixes:
              phavu.G19833.gnm2: [Chr]
            supercontig_prefixes:
              phavu.G19833.gnm2: [scaffold]
        """
        if not os.path.exists(tables_path):
            raise ConfigurationError(f"Datastore tables file not found: {tables_path}")
        with open(tables_path, 'r') as f:
            if tables_path.lower().endswith(('.yaml', '.yml')):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        organisms = {str(taxon_id): {k: str(v) for k, v in (entry or {}).items()}
                     for taxon_id, entry in (data.get('organisms') or {}).items()}
        prefixes = PrefixTable()
        for key, values in (data.get('chromosome_prefixes') or {}).items():
            prefixes.add_chromosome_prefixes(key, cls._prefix_list(values))
        for key, values in (data.get('supercontig_prefixes') or {}).items():
            prefixes.add_supercontig_prefixes(key, cls._prefix_list(values))
        return cls(cls._complete_organisms(organisms), prefixes)

    @staticmethod
    def _prefix_list(values) -> list:
        if isinstance(values, str):
            return split_prefixes(values)
        return [str(v) for v in values or []]

    @staticmethod
    def _complete_organisms(organisms: Dict[str, Dict[str, str]]) -> Dict[str, Tuple[str, str]]:
        complete = {}
        for taxon_id, names in organisms.items():
            if 'genus' not in names or 'species' not in names:
                raise ConfigurationError(f"Taxon {taxon_id} needs both genus and species")
            complete[taxon_id] = (names['genus'], names['species'])
        return complete

    @classmethod
    def from_config(cls, config: ConverterConfig) -> 'DatastoreTables':
        """Load the tables named by a ConverterConfig."""
        datastore_path = config.datastore_config
        if datastore_path and datastore_path.lower().endswith(('.yaml', '.yml', '.json')):
            tables = cls.from_file(datastore_path)
            if config.organism_config:
                legacy = cls.from_properties(organism_path=config.organism_config)
                tables = cls({**legacy.organisms, **tables.organisms}, tables.prefixes)
            return tables
        return cls.from_properties(config.organism_config, datastore_path)
