"""Feedmix: a personal command-line feed viewer."""

__version__ = "0.1.0"
