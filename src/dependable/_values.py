from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Generic, TypeVar, overload

from ._key import DependencyKey, ensure_key
from ._validation import check_value


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from typing import Self

T = TypeVar("T")


class DependencyValues:
    """Type-keyed store of the dependencies currently in effect.

    - `get(Key)` returns the bound value, or `Key.default_value()` when unbound.
    - `set(Key, value)` validates the value against the key's declared type
      and overwrites any earlier binding.
    - `copy()` takes an independent snapshot; hand a copy, not the original,
      to every consumer that should not observe later writes.

    Instances are mutable and shared by reference. A single call is atomic,
    but the store is meant to have one writer at a time.
    """

    def __init__(self) -> None:
        self._values: dict[type[DependencyKey[Any]], object] = {}
        self._lock = threading.RLock()

    def get(self, key: type[DependencyKey[T]]) -> T:
        key = ensure_key(key)
        with self._lock:
            try:
                return self._values[key]  # type: ignore[return-value]
            except KeyError:
                pass
        return key.default_value()

    def set(self, key: type[DependencyKey[T]], value: T) -> None:
        key = ensure_key(key)
        check_value(key.value_type, value, key_name=key.__qualname__)
        with self._lock:
            self._values[key] = value
        logger.debug("bound %s -> %r", key.__qualname__, value)

    def unset(self, key: type[DependencyKey[Any]]) -> None:
        """Drop the explicit binding for `key` so its default applies again."""
        key = ensure_key(key)
        with self._lock:
            removed = key in self._values
            self._values.pop(key, None)
        if removed:
            logger.debug("unbound %s", key.__qualname__)

    def with_value(self, key: type[DependencyKey[T]], value: T) -> Self:
        """Return a copy with one binding changed. This store is left untouched."""
        clone = self.copy()
        clone.set(key, value)
        return clone

    def copy(self) -> Self:
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        with self._lock:
            clone._values = dict(self._values)  # noqa: SLF001
        clone._lock = threading.RLock()  # noqa: SLF001
        return clone

    __copy__ = copy

    def describe(self) -> str:
        return f"DependencyValues contains {len(self)} dependencies."

    __str__ = describe

    def __repr__(self) -> str:
        with self._lock:
            names = ", ".join(k.__qualname__ for k in self._values)
        return f"{type(self).__name__}({names})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    @overload
    def __getitem__(self, key: type[DependencyKey[T]]) -> T: ...

    @overload
    def __getitem__(self, key: object) -> Any: ...

    def __getitem__(self, key: Any) -> Any:
        return self.get(key)

    def __setitem__(self, key: type[DependencyKey[T]], value: T) -> None:
        self.set(key, value)


class dependency_property(Generic[T]):  # noqa: N801
    """Named accessor for one key on a `DependencyValues` subclass.

    Example:
      class AppDependencies(DependencyValues):
          clock = dependency_property(ClockKey)

      deps = AppDependencies()
      deps.clock = FrozenClock()

    """

    def __init__(self, key: type[DependencyKey[T]]) -> None:
        self.key = ensure_key(key)
        self.__doc__ = f"Dependency bound to {self.key.__qualname__}."

    def __set_name__(self, owner: type, name: str) -> None:
        if not issubclass(owner, DependencyValues):
            msg = f"dependency_property '{name}' must be declared on a DependencyValues subclass, not {owner.__name__}"
            raise TypeError(msg)
        self.name = name

    @overload
    def __get__(self, instance: None, owner: type) -> Self: ...

    @overload
    def __get__(self, instance: DependencyValues, owner: type) -> T: ...

    def __get__(self, instance: DependencyValues | None, owner: type) -> Any:
        if instance is None:
            return self
        return instance.get(self.key)

    def __set__(self, instance: DependencyValues, value: T) -> None:
        instance.set(self.key, value)

    def __delete__(self, instance: DependencyValues) -> None:
        instance.unset(self.key)
