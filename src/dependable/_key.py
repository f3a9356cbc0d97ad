from __future__ import annotations

import inspect
import logging
import threading
import weakref
from typing import Any, ClassVar, Generic, NoReturn, TypeVar, get_args, get_origin

from ._errors import KeyDeclarationError
from ._validation import check_value, is_valid_value_type


logger = logging.getLogger(__name__)

V = TypeVar("V")

_MISSING = object()

# memoized defaults, one per key class for the lifetime of the class
_defaults: weakref.WeakKeyDictionary[type, object] = weakref.WeakKeyDictionary()
# one lock per key class; the registry lock only guards the two mappings
_locks: weakref.WeakKeyDictionary[type, threading.RLock] = weakref.WeakKeyDictionary()
_pending: set[type] = set()
_registry_lock = threading.Lock()


class DependencyKey(Generic[V]):
    """Type-level handle for one injectable dependency.

    A key is the class itself; it is never instantiated. Subclasses declare
    the governed value type through the generic parameter and a default,
    either eagerly as a `default` attribute or lazily by overriding
    `make_default`:

        class ClockKey(DependencyKey[Clock]):
            default = SystemClock()

        class DatabaseKey(DependencyKey[Database]):
            @classmethod
            def make_default(cls) -> Database:
                return Database.connect_in_memory()

    The default is built at most once per key class and validated against
    the value type before it is handed out.
    """

    value_type: ClassVar[Any] = Any

    def __new__(cls, *args: Any, **kwargs: Any) -> NoReturn:
        msg = f"{cls.__name__} is a dependency key; use the class itself, do not instantiate it"
        raise TypeError(msg)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        if "value_type" in cls.__dict__:
            if not is_valid_value_type(cls.value_type):
                msg = f"{cls.__qualname__}.value_type must be a type, got {cls.value_type!r}"
                raise KeyDeclarationError(msg)
            return

        declared = _value_type_from_bases(cls)
        if declared is not _MISSING:
            cls.value_type = Any if isinstance(declared, TypeVar) else declared

    @classmethod
    def make_default(cls) -> V:
        """Build the default value. Called once per key class by `default_value`."""
        default = getattr(cls, "default", _MISSING)
        if default is _MISSING:
            msg = f"{cls.__qualname__} declares neither a `default` attribute nor a `make_default` classmethod"
            raise KeyDeclarationError(msg)
        return default  # type: ignore[return-value]

    @classmethod
    def default_value(cls) -> V:
        if cls is DependencyKey:
            msg = "DependencyKey is abstract; declare a subclass"
            raise TypeError(msg)

        value = _defaults.get(cls, _MISSING)
        if value is not _MISSING:
            return value  # type: ignore[return-value]

        # only this key's lock is held while user code builds the default
        with _lock_for(cls):
            value = _defaults.get(cls, _MISSING)
            if value is not _MISSING:
                return value  # type: ignore[return-value]

            if cls in _pending:
                logger.warning("default for %s requested while it is being built", cls.__qualname__)
                msg = f"{cls.__qualname__}.make_default() depends on its own default"
                raise KeyDeclarationError(msg)

            _pending.add(cls)
            try:
                value = cls.make_default()
                check_value(cls.value_type, value, key_name=cls.__qualname__)
            finally:
                _pending.discard(cls)

            with _registry_lock:
                _defaults[cls] = value
            logger.debug("materialized default for %s: %r", cls.__qualname__, value)
            return value


def _lock_for(cls: type) -> threading.RLock:
    with _registry_lock:
        lock = _locks.get(cls)
        if lock is None:
            lock = _locks[cls] = threading.RLock()
        return lock


def _value_type_from_bases(cls: type) -> Any:
    for base in cls.__dict__.get("__orig_bases__", ()):
        origin = get_origin(base)
        if inspect.isclass(origin) and issubclass(origin, DependencyKey):
            args = get_args(base)
            if args:
                return args[0]
    return _MISSING


def is_dependency_key(obj: object) -> bool:
    """Whether `obj` is a key class usable for lookups."""
    return inspect.isclass(obj) and issubclass(obj, DependencyKey) and obj is not DependencyKey


def ensure_key(obj: object) -> type[DependencyKey[Any]]:
    if not is_dependency_key(obj):
        msg = f"Expected a DependencyKey subclass, got {obj!r}"
        raise TypeError(msg)
    return obj  # type: ignore[return-value]
