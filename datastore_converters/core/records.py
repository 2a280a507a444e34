#!/usr/bin/env python3

"""
Line parsers for Datastore tabular formats.

Each record class turns a single line into a fixed-shape dataclass.
``from_line`` returns None for comment and header lines and raises
MalformedRecordError, carrying the line and whatever was parsed before
the failure, when columns are missing or numbers do not parse.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import unquote

from .exceptions import MalformedRecordError

COMMENT_PREFIX = '#'

INTERPRO_TERM_PATTERN = re.compile(r'(?P<identifier>IPR\d+)\s*\((?P<label>[^)]*)\)')
GO_TERM_PATTERN = re.compile(r'(?P<identifier>GO:\d+)\s*\((?P<label>[^)]*)\)')

# chr:start..end, as written by the synteny pipeline
TARGET_RANGE_PATTERN = re.compile(r'^(?P<seqid>[^:\s]+):(?P<start>\d+)\.\.(?P<end>\d+)$')
# seqid start end [strand], the GFF3 column form
TARGET_COLUMNS_PATTERN = re.compile(r'^(?P<seqid>\S+) (?P<start>\d+) (?P<end>\d+)(?: (?P<strand>[+-]))?$')


def split_columns(line: str) -> List[str]:
    return line.rstrip('\r\n').split('\t')


def is_skippable(line: str) -> bool:
    """Comment and blank lines carry no record."""
    return line.startswith(COMMENT_PREFIX) or not line.strip()


def _number(value: str, converter, name: str, line: str, parsed: Dict[str, Any]):
    try:
        return converter(value.strip())
    except (ValueError, AttributeError):
        raise MalformedRecordError(f"{name} is not a number: {value!r}", line, parsed) from None


def _require_columns(parts: List[str], count: int, kind: str, line: str) -> None:
    if len(parts) < count:
        raise MalformedRecordError(
            f"{kind} line has {len(parts)} columns, expected at least {count}", line)


def _comma_list(value: str) -> List[str]:
    if not value.strip():
        return []
    return [term.strip() for term in value.split(',') if term.strip()]


def parse_gff3_attributes(attr_string: str) -> Dict[str, str]:
    """Parse GFF3 column 9 (key=value;key=value) into a dict."""
    attributes = {}
    for attr in attr_string.strip().split(';'):
        attr = attr.strip()
        if not attr or '=' not in attr:
            continue
        key, value = attr.split('=', 1)
        attributes[key.strip()] = unquote(value.strip())
    return attributes


@dataclass(frozen=True)
class TargetRange:
    seqid: str
    start: int
    end: int
    strand: Optional[str] = None

    @property
    def region_name(self) -> str:
        return f"{self.seqid}:{self.start}-{self.end}"


def parse_target(text: str) -> Optional[TargetRange]:
    """Parse a Target attribute in either chr:start..end or 'chr start end' form."""
    text = (text or "").strip()
    match = TARGET_RANGE_PATTERN.match(text) or TARGET_COLUMNS_PATTERN.match(text)
    if not match:
        return None
    groups = match.groupdict()
    return TargetRange(groups['seqid'], int(groups['start']), int(groups['end']), groups.get('strand'))


def marker_name(full_name: str) -> str:
    """Pv_TOG905303_749 -> TOG905303_749; names of any other shape are unchanged."""
    parts = full_name.split('_')
    if len(parts) == 3:
        return '_'.join(parts[1:])
    return full_name


def scan_terms(text: str) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Collect InterPro and GO terms from the ``; ``-separated term sections.

    Labels run to the first closing parenthesis and may contain commas.
    """
    interpro: Dict[str, str] = {}
    go: Dict[str, str] = {}
    for section in text.split('; '):
        for match in INTERPRO_TERM_PATTERN.finditer(section):
            interpro[match.group('identifier')] = match.group('label')
        for match in GO_TERM_PATTERN.finditer(section):
            go[match.group('identifier')] = match.group('label')
    return interpro, go


def _split_descriptor(value: str) -> Tuple[str, Dict[str, str], Dict[str, str]]:
    sections = value.strip().split('; ', 1)
    description = sections[0]
    if len(sections) > 1:
        interpro, go = scan_terms(sections[1])
    else:
        interpro, go = {}, {}
    return description, interpro, go


def format_info(info: Mapping[str, Any]) -> str:
    """Flatten VCF INFO fields to key=value; pairs."""
    text = ""
    for key, value in info.items():
        if value is True:
            text += f"{key};"
            continue
        if isinstance(value, (tuple, list)):
            value = ','.join(str(v) for v in value)
        text += f"{key}={value};"
    return text


@dataclass
class CMapRecord:
    """One feature row of a CMap genetic map export."""
    map_acc: str
    map_name: str
    map_start: float
    map_stop: float
    feature_acc: str
    feature_name: str
    feature_aliases: str
    feature_start: float
    feature_stop: float
    feature_type_acc: str
    is_landmark: bool = False

    @property
    def is_qtl(self) -> bool:
        return self.feature_type_acc.startswith("QTL")

    @property
    def is_snp(self) -> bool:
        return self.feature_type_acc == "SNP"

    @classmethod
    def from_line(cls, line: str) -> Optional['CMapRecord']:
        if is_skippable(line) or line.startswith("map_acc"):
            return None
        parts = split_columns(line)
        _require_columns(parts, 10, "CMap", line)
        parsed: Dict[str, Any] = {'map_acc': parts[0], 'map_name': parts[1]}
        parsed['map_start'] = _number(parts[2], float, 'map_start', line, parsed)
        parsed['map_stop'] = _number(parts[3], float, 'map_stop', line, parsed)
        parsed['feature_acc'] = parts[4].replace('"', '')
        parsed['feature_name'] = parts[5].replace('"', '')
        parsed['feature_aliases'] = parts[6]
        parsed['feature_start'] = _number(parts[7], float, 'feature_start', line, parsed)
        parsed['feature_stop'] = _number(parts[8], float, 'feature_stop', line, parsed)
        parsed['feature_type_acc'] = parts[9]
        if len(parts) > 10 and parts[10].strip():
            parsed['is_landmark'] = _number(parts[10], int, 'is_landmark', line, parsed) == 1
        return cls(**parsed)


@dataclass
class MapGFFRecord:
    """A marker placement line from a genetic map GFF3 file."""
    seqid: str
    source: str
    type: str
    start: int
    end: int
    strand: str
    full_name: Optional[str] = None
    name: Optional[str] = None
    alleles: Optional[str] = None
    note: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.name is not None

    @property
    def is_snp(self) -> bool:
        return self.type == "SNP"

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @classmethod
    def from_line(cls, line: str) -> Optional['MapGFFRecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 9, "GFF", line)
        parsed: Dict[str, Any] = {'seqid': parts[0], 'source': parts[1], 'type': parts[2]}
        parsed['start'] = _number(parts[3], int, 'start', line, parsed)
        parsed['end'] = _number(parts[4], int, 'end', line, parsed)
        parsed['strand'] = parts[6]
        attributes = parse_gff3_attributes(parts[8])
        if 'Name' in attributes:
            parsed['full_name'] = attributes['Name']
            parsed['name'] = marker_name(attributes['Name'])
        parsed['alleles'] = attributes.get('alleles')
        parsed['note'] = attributes.get('Note')
        return cls(**parsed)


@dataclass
class InfoAnnotRecord:
    """A row of an info_annot.txt gene/transcript/protein annotation table."""
    pac_id: str
    locus_name: str
    transcript_name: str
    peptide_name: str
    pfam: List[str] = field(default_factory=list)
    panther: List[str] = field(default_factory=list)
    kog: List[str] = field(default_factory=list)
    ec: List[str] = field(default_factory=list)
    ko: List[str] = field(default_factory=list)
    go: List[str] = field(default_factory=list)
    best_hit_at_name: Optional[str] = None
    best_hit_at_symbol: Optional[str] = None
    best_hit_at_defline: Optional[str] = None

    LIST_COLUMNS = ('pfam', 'panther', 'kog', 'ec', 'ko', 'go')
    TEXT_COLUMNS = ('best_hit_at_name', 'best_hit_at_symbol', 'best_hit_at_defline')

    @classmethod
    def from_line(cls, line: str) -> Optional['InfoAnnotRecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 4, "info_annot", line)
        peptide_name = parts[3].strip()
        if peptide_name.endswith('.p'):
            peptide_name = peptide_name[:-2]
        record = cls(parts[0].strip(), parts[1].strip(), parts[2].strip(), peptide_name)
        for offset, name in enumerate(cls.LIST_COLUMNS, start=4):
            if len(parts) > offset:
                setattr(record, name, _comma_list(parts[offset]))
        for offset, name in enumerate(cls.TEXT_COLUMNS, start=10):
            if len(parts) > offset and parts[offset].strip():
                setattr(record, name, parts[offset])
        return record


@dataclass
class AHRDRecord:
    """
    A gene family line of an info_annot_ahrd.tsv file.

    legfed_v1_0.L_QQS5LC<TAB>description; IPR000490 (label), ...; GO:0005975 (label)
    """
    version: str
    identifier: str
    description: str
    interpro: Dict[str, str] = field(default_factory=dict)
    go: Dict[str, str] = field(default_factory=dict)

    @property
    def family_identifier(self) -> str:
        return f"{self.version}.{self.identifier}"

    @classmethod
    def from_line(cls, line: str) -> Optional['AHRDRecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 2, "AHRD", line)
        name = parts[0].strip().replace('-consensus', '')
        if '.' not in name:
            raise MalformedRecordError("family identifier lacks a version prefix", line, {'identifier': name})
        version, identifier = name.split('.', 1)
        description, interpro, go = _split_descriptor(parts[1])
        return cls(version, identifier, description, interpro, go)


@dataclass
class DescriptorRecord:
    """A gene line of an info_descriptors.txt file; same layout as AHRD after the identifier."""
    identifier: str
    description: str
    interpro: Dict[str, str] = field(default_factory=dict)
    go: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_line(cls, line: str) -> Optional['DescriptorRecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 2, "info_descriptors", line)
        identifier = parts[0].strip()
        if not identifier:
            raise MalformedRecordError("empty record identifier", line)
        description, interpro, go = _split_descriptor(parts[1])
        return cls(identifier, description, interpro, go)


@dataclass
class GFARecord:
    """Gene family assignment: gene, family, protein and optional score."""
    gene: str
    gene_family: str
    protein: str
    score: Optional[float] = None

    @classmethod
    def from_line(cls, line: str) -> Optional['GFARecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        if len(parts) < 3:
            return None
        parsed: Dict[str, Any] = {'gene': parts[0], 'gene_family': parts[1], 'protein': parts[2]}
        if len(parts) > 3 and parts[3].strip():
            parsed['score'] = _number(parts[3], float, 'score', line, parsed)
        return cls(**parsed)


@dataclass
class GWASResultRecord:
    """A result row of a GWAS file: identifier, phenotype, marker, p-value, LOD."""
    identifier: str
    phenotype: str
    marker: str
    pvalue: float
    lod: Optional[float] = None

    @classmethod
    def from_line(cls, line: str) -> Optional['GWASResultRecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 4, "GWAS result", line)
        parsed: Dict[str, Any] = {
            'identifier': parts[0].strip().lower().capitalize(),
            'phenotype': parts[1].strip().lower().capitalize(),
            'marker': parts[2].strip(),
        }
        parsed['pvalue'] = _number(parts[3], float, 'pvalue', line, parsed)
        if len(parts) > 4 and parts[4].strip() and parts[4].strip().lower() != 'na':
            parsed['lod'] = _number(parts[4], float, 'lod', line, parsed)
        return cls(**parsed)


@dataclass
class QTLMarkerRecord:
    """A row of a QTL markers file: QTL identifier, marker and optional distinction (Peak, Flanking)."""
    qtl: str
    marker: str
    distinction: Optional[str] = None

    @classmethod
    def from_line(cls, line: str) -> Optional['QTLMarkerRecord']:
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 2, "QTL marker", line)
        distinction = parts[2].strip() if len(parts) > 2 and parts[2].strip() else None
        return cls(qtl=parts[0].strip(), marker=parts[1].strip(), distinction=distinction)


@dataclass
class GFF3Record:
    """One feature line of a GFF3 file with its column-9 attributes."""
    seqid: str
    source: str
    type: str
    start: int
    end: int
    score: str
    strand: str
    attributes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_line(cls, line: str):
        if is_skippable(line):
            return None
        parts = split_columns(line)
        _require_columns(parts, 9, "GFF", line)
        parsed: Dict[str, Any] = {'seqid': parts[0], 'source': parts[1], 'type': parts[2]}
        parsed['start'] = _number(parts[3], int, 'start', line, parsed)
        parsed['end'] = _number(parts[4], int, 'end', line, parsed)
        parsed['score'] = parts[5]
        parsed['strand'] = parts[6]
        parsed['attributes'] = parse_gff3_attributes(parts[8])
        return cls(**parsed)

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def attribute_values(self, name: str) -> List[str]:
        """Comma-separated values of a multi-valued attribute such as Parent or Dbxref."""
        return _comma_list(self.attributes.get(name, ""))

    def attribute_ignoring_case(self, name: str) -> Optional[str]:
        """Value of the first attribute whose key equals name in any case (Alleles, alleles)."""
        lowered = name.lower()
        for key, value in self.attributes.items():
            if key.lower() == lowered:
                return value
        return None



@dataclass
class SyntenicRegionRecord(GFF3Record):
    """A syntenic_region GFF3 line linking a source region to its Target."""

    @property
    def is_syntenic_region(self) -> bool:
        return self.type == "syntenic_region"

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get('Name')

    @property
    def median_ks(self) -> Optional[str]:
        return self.attributes.get('median_Ks')

    @property
    def target(self) -> Optional[TargetRange]:
        return parse_target(self.attributes.get('Target', ''))

    @property
    def target_strand(self) -> Optional[str]:
        """Strand of the target region, read from the trailing character of Name."""
        if not self.name:
            return None
        last = self.name[-1]
        if last in (' ', '+'):
            return '+'
        if last == '-':
            return '-'
        return None

    @property
    def region_name(self) -> str:
        return f"{self.seqid}:{self.start}-{self.end}"
