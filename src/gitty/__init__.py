"""Gitty - visual Git history rewriting."""

__version__ = "0.1.0"
