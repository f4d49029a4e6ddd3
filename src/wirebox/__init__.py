"""Minimal inversion-of-control container.

This package provides a lightweight dependency injection container for Python,
mapping case-insensitive string or class identifiers to literal values,
resolvers, or classes, with singleton caching and recursive constructor
injection driven by type hints.

Exports:
- `Container`: Binding table and resolution engine.
- `ContainerMap`: Bracket-syntax adapter over a container.
- `Lifetime`: Enum for controlling object lifetimes (singleton or transient).
- `ResolutionError`: Base class of every resolution failure, with the
  `NotInstantiable`, `UnresolvableDependency` and `CircularDependency` subclasses.
"""

import logging

from ._container import (
    Builder,
    CircularDependency,
    Container,
    Factory,
    Lifetime,
    NotInstantiable,
    Registration,
    ResolutionError,
    UnresolvableDependency,
)
from ._mapping import ContainerMap


logging.getLogger(__name__).addHandler(logging.NullHandler())


__all__ = [
    "Builder",
    "CircularDependency",
    "Container",
    "ContainerMap",
    "Factory",
    "Lifetime",
    "NotInstantiable",
    "Registration",
    "ResolutionError",
    "UnresolvableDependency",
]
