"""
addrlib_gen — stable cross-version identifiers for binary locations.

Builds a correlation graph over (version, offset) locations from
disassembler exports and binary-diff reports, seeds it from previously
published address bins and mints identifiers for everything new.
"""

__version__ = "0.1.0"
GENERATOR_VERSION = "v0"
PACKAGE_NAME = "addrlib_gen"
SCHEMA_VERSION = "0.1"
