from __future__ import annotations

import contextlib
import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from ._errors import NotInjectableError
from ._values import DependencyValues


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._key import DependencyKey

T = TypeVar("T")
C = TypeVar("C")


@runtime_checkable
class DependencyInjectable(Protocol):
    """Anything that configures itself from a `DependencyValues` snapshot."""

    def on_inject(self, dependencies: DependencyValues) -> None: ...


def inject(consumer: C, dependencies: DependencyValues | None = None) -> C:
    """Hand `consumer` a snapshot of `dependencies` through its `on_inject` hook.

    When `dependencies` is omitted the ambient container is used. Returns the
    consumer so construction and injection read as one expression:

      view_model = inject(ViewModel(), deps)

    """
    hook = getattr(consumer, "on_inject", None)
    if not callable(hook):
        msg = f"{type(consumer).__name__} does not implement on_inject(dependencies)"
        raise NotInjectableError(msg)

    snapshot = (dependencies if dependencies is not None else current_dependencies()).copy()
    logger.debug("injecting %s into %s", snapshot, type(consumer).__name__)
    hook(snapshot)
    return consumer


class Environment:
    """Immutable node in a tree of consumers, carrying one dependency snapshot.

    Children see what their parent held when they were created, plus their own
    override. Overriding never reaches back into the parent or its other children.
    """

    def __init__(self, dependencies: DependencyValues | None = None, *, parent: Environment | None = None) -> None:
        self._dependencies = dependencies.copy() if dependencies is not None else DependencyValues()
        self._parent = parent

    @property
    def dependencies(self) -> DependencyValues:
        """A fresh copy of this node's container."""
        return self._dependencies.copy()

    @property
    def parent(self) -> Environment | None:
        return self._parent

    @property
    def depth(self) -> int:
        depth = 0
        node = self._parent
        while node is not None:
            depth += 1
            node = node._parent  # noqa: SLF001
        return depth

    def get(self, key: type[DependencyKey[T]]) -> T:
        return self._dependencies.get(key)

    def child(self) -> Environment:
        return Environment(self._dependencies, parent=self)

    def override(self, key: type[DependencyKey[T]], value: T) -> Environment:
        """Return a child environment where `key` resolves to `value`."""
        node = Environment(self._dependencies.with_value(key, value), parent=self)
        logger.debug("override %s at depth %d", key.__qualname__, node.depth)
        return node

    def attach(self, consumer: C) -> C:
        return inject(consumer, self._dependencies)

    @contextlib.contextmanager
    def activate(self) -> Iterator[Environment]:
        """Make this environment ambient for the enclosed block."""
        token = _current.set(self)
        try:
            yield self
        finally:
            _current.reset(token)

    def __repr__(self) -> str:
        return f"Environment(depth={self.depth}, {self._dependencies!r})"


_root = Environment()
_current: ContextVar[Environment] = ContextVar("dependable_environment", default=_root)


def current_environment() -> Environment:
    return _current.get()


def current_dependencies() -> DependencyValues:
    """A snapshot of the ambient container. Mutating it does not affect the environment."""
    return _current.get().dependencies


@contextlib.contextmanager
def use_dependencies(dependencies: DependencyValues) -> Iterator[Environment]:
    """Run the enclosed block with `dependencies` as the ambient container."""
    with Environment(dependencies, parent=current_environment()).activate() as env:
        yield env


@contextlib.contextmanager
def override(key: type[DependencyKey[T]], value: T) -> Iterator[Environment]:
    """Run the enclosed block with one ambient binding replaced.

    Example:
      with override(ClockKey, FrozenClock()):
          report = inject(ReportViewModel())

    """
    with current_environment().override(key, value).activate() as env:
        yield env
