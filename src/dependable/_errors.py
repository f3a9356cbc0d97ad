from __future__ import annotations


class DependableError(Exception):
    pass


class DependencyTypeError(DependableError, TypeError):
    """A value does not match the type its dependency key declares."""


class KeyDeclarationError(DependableError, TypeError):
    """A dependency key class is declared incorrectly."""


class NotInjectableError(DependableError, TypeError):
    """An object handed to `inject` does not implement `on_inject`."""
