"""Molecules module: insertion of molecules into a container."""

from mcspace.molecules.inserter import RandomInserter

__all__ = ["RandomInserter"]
