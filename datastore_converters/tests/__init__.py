#!/usr/bin/env python3

"""
Test suite for the datastore converters.

Unit tests covering:
- Identifier grammar and prefix classification
- Record linking and line record parsers
- README and configuration loading
- Each converter against small collection files
- The conversion pipeline end to end
"""
