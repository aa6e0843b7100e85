"""Parsing of Portable Executable headers, import, export and resource tables."""

__version__ = "0.1.0"