"""Disk-backed B+ tree index with page files, range scans and query predicates."""

__version__ = "0.1.0"