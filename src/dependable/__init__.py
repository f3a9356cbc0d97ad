"""Minimal typed dependency container.

This package provides a type-keyed store of dependencies with default-value
fallback, meant to be threaded through an explicit environment and handed to
consumers that configure themselves from it.

Exports:
- `DependencyKey`: Base class for declaring one injectable dependency: its value
  type and its default.
- `DependencyValues`: Mutable store mapping key classes to their current values,
  falling back to each key's default when unbound.
- `DependencyInjectable`: Protocol for consumers that configure themselves from a
  `DependencyValues` snapshot via `on_inject`.
- `Environment`: Immutable node carrying a snapshot, with scoped overrides for
  subtrees of consumers.
- `inject`, `override`, `use_dependencies`, `current_dependencies`: Explicit and
  ambient (context-variable) propagation helpers.
"""

from ._environment import (
    DependencyInjectable,
    Environment,
    current_dependencies,
    current_environment,
    inject,
    override,
    use_dependencies,
)
from ._errors import DependableError, DependencyTypeError, KeyDeclarationError, NotInjectableError
from ._key import DependencyKey, is_dependency_key
from ._values import DependencyValues, dependency_property


__all__ = [
    "DependableError",
    "DependencyInjectable",
    "DependencyKey",
    "DependencyTypeError",
    "DependencyValues",
    "Environment",
    "KeyDeclarationError",
    "NotInjectableError",
    "current_dependencies",
    "current_environment",
    "dependency_property",
    "inject",
    "is_dependency_key",
    "override",
    "use_dependencies",
]
