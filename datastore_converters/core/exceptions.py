#!/usr/bin/env python3

"""
Custom exceptions for the datastore converters.

Fatal conditions raised while reading collection metadata, parsing
records or resolving identifiers. Any of these aborts the conversion run.
"""

from typing import Any, Dict, Optional


class ConverterError(Exception):
    """Base exception for all converter-related errors."""
    pass


class MalformedRecordError(ConverterError):
    """A line does not split into the expected fields or a number fails to parse."""

    def __init__(self, message: str, line: str = "",
                 fields: Optional[Dict[str, Any]] = None,
                 filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.line = line
        self.fields = dict(fields or {})
        self.filename = filename
        self.line_number = line_number

    def __str__(self):
        if self.filename and self.line_number:
            text = f"Malformed record in {self.filename} at line {self.line_number}: {super().__str__()}"
        elif self.filename:
            text = f"Malformed record in {self.filename}: {super().__str__()}"
        else:
            text = super().__str__()
        if self.line:
            text += f"\n{self.line}"
        if self.fields:
            parsed = " ".join(f"{name}={value}" for name, value in self.fields.items())
            text += f"\n{parsed}"
        return text


class MissingRequiredMetadataError(ConverterError):
    """A required README or configuration field is absent."""

    def __init__(self, message: str, field: str = "", source: str = ""):
        super().__init__(message)
        self.field = field
        self.source = source

    def __str__(self):
        if self.field and self.source:
            return f"Missing {self.field} in {self.source}: {super().__str__()}"
        elif self.field:
            return f"Missing {self.field}: {super().__str__()}"
        return super().__str__()


class UnresolvableIdentifierError(ConverterError):
    """An identifier does not have the dot-field shape the caller requires."""

    def __init__(self, message: str, identifier: str = ""):
        super().__init__(message)
        self.identifier = identifier

    def __str__(self):
        if self.identifier:
            return f"Unresolvable identifier {self.identifier}: {super().__str__()}"
        return super().__str__()


class UnsupportedFeatureError(ConverterError):
    """A feature type has no corresponding output kind."""

    def __init__(self, message: str, feature_type: str = ""):
        super().__init__(message)
        self.feature_type = feature_type


class ConfigurationError(ConverterError):
    """Error in converter configuration."""
    pass


class MemoryLimitError(ConverterError):
    """Memory usage exceeded limits."""

    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit

    def __str__(self):
        return f"Memory error: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"
