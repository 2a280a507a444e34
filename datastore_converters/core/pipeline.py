#!/usr/bin/env python3

"""
Run driver: one converter over one collection's files.

Files are processed README first, each in its own monitored phase. Items
reach the output file only when every file has converted, so a failed
run leaves no partial output.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .config import ConverterConfig, DatastoreTables
from .exceptions import ConfigurationError
from .items import ItemSink, JsonLinesItemSink
from ..utils.performance_monitor import PerformanceMonitor

PathLike = Union[str, Path]


def collect_input_files(input_paths: Iterable[PathLike]) -> List[Path]:
    """Expand directories into their files, README files first, otherwise in name order."""
    files: List[Path] = []
    for input_path in input_paths:
        path = Path(input_path)
        if path.is_dir():
            files.extend(sorted(p for p in path.iterdir() if p.is_file() and not p.name.endswith('.fai')))
        elif path.exists():
            files.append(path)
        else:
            raise ConfigurationError(f"Input file not found: {path}")
    return sorted(files, key=lambda p: (not p.name.startswith("README."), p.name))


class ConversionPipeline:
    """Runs a named converter and commits its items to a sink."""

    def __init__(self, config: ConverterConfig, tables: Optional[DatastoreTables] = None):
        self.config = config
        self.tables = tables if tables is not None else DatastoreTables.from_config(config)
        self.monitor = PerformanceMonitor(memory_limit_mb=config.memory_limit_mb,
                                          enabled=config.enable_memory_monitoring)
        self.converter = None

    def run(self, converter_name: str, input_paths: Iterable[PathLike], output_dir: PathLike,
            sink: Optional[ItemSink] = None) -> bool:
        """
        Convert the input files with the named converter.

        Args:
            converter_name: Key of CONVERTERS, e.g. ``gene-models``
            input_paths: Files and/or collection directories
            output_dir: Directory for the items file and run log
            sink: Destination for items; defaults to
                ``<output_dir>/<converter_name>.items.jsonl``

        Returns:
            True if every file converted and the items were committed
        """
        from ..converters import CONVERTERS

        file_handler = None
        try:
            if converter_name not in CONVERTERS:
                raise ConfigurationError(
                    f"Unknown converter {converter_name}; choose from {', '.join(sorted(CONVERTERS))}")

            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            file_handler = self._setup_run_logging(output_dir)
            if sink is None:
                sink = JsonLinesItemSink(output_dir / f"{converter_name}.items.jsonl")

            files = collect_input_files(input_paths)
            logging.info(f"Starting {converter_name} conversion of {len(files)} files")
            self.converter = CONVERTERS[converter_name](sink, self.tables, self.config)

            for path in files:
                with self.monitor.phase_context(path.name):
                    before = self.converter.records_processed
                    self.converter.process_file(path)
                    self.monitor.record_operations(self.converter.records_processed - before)
                    self.monitor.check_memory_limit()

            stats = self.converter.stats()
            with self.monitor.phase_context("close"):
                stored = self.converter.close()
                self.monitor.record_operations(stored)
            sink.commit()

            for name, count in stats.items():
                logging.info(f"  {name}: {count:,}")
            logging.info("Conversion completed successfully")
            self.monitor.log_performance_report()
            return True

        except Exception as e:
            logging.error(f"Conversion failed: {e}")
            logging.debug("Full traceback:", exc_info=True)
            return False
        finally:
            if file_handler is not None:
                logging.getLogger().removeHandler(file_handler)
                file_handler.close()

    def _setup_run_logging(self, output_dir: Path) -> logging.Handler:
        """Add a file handler for this run to the root logger."""
        file_handler = logging.FileHandler(output_dir / 'conversion.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        ))

        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        if self.config.debug_mode:
            root_logger.setLevel(logging.DEBUG)
        return file_handler
