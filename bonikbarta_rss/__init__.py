"""Bonikbarta JSON API to RSS 2.0 feed generator."""

__version__ = "1.0.0"
