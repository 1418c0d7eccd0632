"""Searchable local index of a remote object store."""

__version__ = "0.1.0"
