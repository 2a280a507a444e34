#!/usr/bin/env python3

"""
Command-line interface for the datastore converters.

Runs one converter over a collection's files and writes the resulting
items as JSON lines in the output directory.
"""

import argparse
import sys
import logging

from datastore_converters.core.config import DatastoreTables, load_config
from datastore_converters.core.exceptions import ConverterError
from datastore_converters.converters import CONVERTERS


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Convert Datastore collection files to loadable items",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Gene models, README first
  python converter_cli.py --converter gene-models --input G19833.gnm2.ann1.PB8d/ --output out \\
      --organism-config organism_config.properties --datastore-config datastore_config.properties

  # GWAS files with tables from one YAML document
  python converter_cli.py --converter gwas --input *.gwas.tsv --output out --datastore-config tables.yml
        """
    )

    # Required arguments
    parser.add_argument(
        '--converter',
        required=True,
        choices=sorted(CONVERTERS),
        help='Converter to run'
    )
    parser.add_argument(
        '--input',
        required=True,
        nargs='+',
        help='Collection directory or files to convert'
    )
    parser.add_argument(
        '--output',
        required=True,
        help='Output directory for the items file and run log'
    )

    # Configuration
    parser.add_argument(
        '--config',
        help='Configuration file (JSON or YAML)'
    )
    parser.add_argument(
        '--organism-config',
        help='Organism table: taxon.<id>.genus/species properties'
    )
    parser.add_argument(
        '--datastore-config',
        help='Prefix table: properties file, or YAML/JSON with organisms and prefixes'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    # Advanced options
    parser.add_argument(
        '--memory-limit',
        type=int,
        help='Memory limit in MB (default: 4096)'
    )

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(config_path=args.config, use_env=True)

        # Override config with command line arguments
        if args.organism_config is not None:
            config.organism_config = args.organism_config
        if args.datastore_config is not None:
            config.datastore_config = args.datastore_config
        if args.memory_limit is not None:
            config.memory_limit_mb = args.memory_limit
        if args.log_level == 'DEBUG':
            config.debug_mode = True

        # Re-validate after CLI overrides.
        config.validate()
        tables = DatastoreTables.from_config(config)

        logger.info(f"Converter: {args.converter}")
        logger.info(f"Input: {' '.join(args.input)}")
        logger.info(f"Output directory: {args.output}")

        from datastore_converters import ConversionPipeline

        pipeline = ConversionPipeline(config, tables)
        success = pipeline.run(args.converter, args.input, args.output)

        if success:
            logger.info("Conversion completed successfully!")
            return 0
        else:
            logger.error("Conversion failed!")
            return 1

    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        return 1
    except ConverterError as e:
        logger.error(f"Converter error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Full traceback:", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
