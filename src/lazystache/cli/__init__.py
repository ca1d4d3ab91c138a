"""Command line interface for lazystache."""

from .main import lazystache

__all__ = ["lazystache"]
