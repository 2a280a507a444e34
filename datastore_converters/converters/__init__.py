#!/usr/bin/env python3

"""
Datastore file converters, one per collection file family.

CONVERTERS maps the names accepted by ``converter_cli.py --converter``
to their classes.
"""

from .gene_family import GeneFamilyConverter
from .gene_models import GeneModelsConverter
from .genetic_map import GeneticMapConverter
from .genome import GenomeConverter
from .gfa import GFAConverter
from .gwas import GWASConverter
from .info_annot import InfoAnnotConverter
from .markers import MarkerGFF3Converter
from .pangene import PanGeneConverter
from .phylotree import PhylotreeConverter
from .qtl import QTLConverter
from .synteny import SyntenyConverter
from .vcf import GenotypeVCFConverter

CONVERTERS = {
    'info-annot': InfoAnnotConverter,
    'gene-family': GeneFamilyConverter,
    'gfa': GFAConverter,
    'pangene': PanGeneConverter,
    'genetic-map': GeneticMapConverter,
    'gwas': GWASConverter,
    'qtl': QTLConverter,
    'markers': MarkerGFF3Converter,
    'synteny': SyntenyConverter,
    'phylotree': PhylotreeConverter,
    'genome': GenomeConverter,
    'gene-models': GeneModelsConverter,
    'vcf': GenotypeVCFConverter,
}

__all__ = [
    'CONVERTERS',
    'InfoAnnotConverter', 'GeneFamilyConverter', 'GFAConverter', 'PanGeneConverter',
    'GeneticMapConverter', 'GWASConverter', 'QTLConverter', 'MarkerGFF3Converter',
    'SyntenyConverter', 'PhylotreeConverter',
    'GenomeConverter', 'GeneModelsConverter', 'GenotypeVCFConverter',
]
