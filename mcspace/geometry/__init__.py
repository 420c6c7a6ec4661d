"""Geometry module: container shapes and periodic boundaries."""

from mcspace.geometry.boundary import Geometry, GeometryKind

__all__ = ["Geometry", "GeometryKind"]
