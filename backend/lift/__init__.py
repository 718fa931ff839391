"""Lift: notes-to-study-material and career document generation service."""

__version__ = "0.1.0"
