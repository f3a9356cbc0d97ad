import copy
from dataclasses import dataclass
from typing import Protocol

import pytest

from dependable import DependencyKey, DependencyTypeError, DependencyValues


class Serviceable(Protocol):
    @property
    def value(self) -> str: ...


@dataclass(frozen=True)
class Service:
    value: str


class ServiceKey(DependencyKey[Serviceable]):
    default = Service(value="default")


def test_get_unbound_key_returns_default():
    c = DependencyValues()
    assert c.get(ServiceKey) is ServiceKey.default_value()
    assert c.get(ServiceKey).value == "default"


def test_get_after_set_returns_bound_value():
    c = DependencyValues()
    svc = Service(value="Testing")

    c.set(ServiceKey, svc)

    assert c.get(ServiceKey) is svc


def test_set_twice_last_write_wins():
    c = DependencyValues()
    c.set(ServiceKey, Service(value="Initial"))
    c.set(ServiceKey, Service(value="Replaced"))

    assert c.get(ServiceKey).value == "Replaced"
    assert len(c) == 1


def test_subscript_aliases_get_and_set():
    c = DependencyValues()
    assert c[ServiceKey].value == "default"

    c[ServiceKey] = Service(value="Subscripted")

    assert c[ServiceKey].value == "Subscripted"
    assert c.get(ServiceKey).value == "Subscripted"


def test_structurally_identical_keys_do_not_collide():
    class FirstKey(DependencyKey[int]):
        default = 0

    class SecondKey(DependencyKey[int]):
        default = 0

    c = DependencyValues()
    c.set(FirstKey, 1)

    assert c.get(FirstKey) == 1
    assert c.get(SecondKey) == 0


def test_subclassed_key_is_a_distinct_key():
    class BaseKey(DependencyKey[int]):
        default = 1

    class DerivedKey(BaseKey): ...

    c = DependencyValues()
    c.set(BaseKey, 5)

    assert c.get(DerivedKey) == 1
    assert DerivedKey.value_type is int


def test_copy_is_not_affected_by_later_writes():
    c = DependencyValues()
    snapshot = c.copy()

    c.set(ServiceKey, Service(value="Testing"))

    assert snapshot.get(ServiceKey).value == "default"
    assert c.get(ServiceKey).value == "Testing"


def test_writes_to_copy_do_not_reach_source():
    c = DependencyValues()
    c.set(ServiceKey, Service(value="Source"))
    snapshot = copy.copy(c)

    snapshot.set(ServiceKey, Service(value="Snapshot"))

    assert c.get(ServiceKey).value == "Source"
    assert snapshot.get(ServiceKey).value == "Snapshot"


def test_with_value_returns_modified_copy():
    c = DependencyValues()

    changed = c.with_value(ServiceKey, Service(value="Changed"))

    assert changed is not c
    assert changed.get(ServiceKey).value == "Changed"
    assert ServiceKey not in c


def test_unset_restores_default():
    c = DependencyValues()
    c.set(ServiceKey, Service(value="Testing"))

    c.unset(ServiceKey)
    c.unset(ServiceKey)  # no-op when unbound

    assert c.get(ServiceKey).value == "default"
    assert len(c) == 0


def test_contains_reports_explicit_bindings_only():
    c = DependencyValues()
    assert ServiceKey not in c

    c.get(ServiceKey)
    assert ServiceKey not in c

    c.set(ServiceKey, Service(value="Testing"))
    assert ServiceKey in c


def test_describe_empty_container():
    assert DependencyValues().describe() == "DependencyValues contains 0 dependencies."


def test_describe_counts_distinct_keys_only():
    class CountKey(DependencyKey[int]):
        default = 0

    class NameKey(DependencyKey[str]):
        default = ""

    c = DependencyValues()
    c.set(ServiceKey, Service(value="a"))
    c.set(CountKey, 3)
    c.set(NameKey, "n")
    c.set(CountKey, 4)

    assert c.describe() == "DependencyValues contains 3 dependencies."
    assert str(c) == c.describe()


def test_repr_lists_bound_keys():
    c = DependencyValues()
    c.set(ServiceKey, Service(value="a"))
    assert "ServiceKey" in repr(c)


def test_set_mismatched_type_raises_and_stores_nothing():
    class CountKey(DependencyKey[int]):
        default = 0

    c = DependencyValues()

    with pytest.raises(DependencyTypeError):
        c.set(CountKey, "three")

    assert len(c) == 0
    assert c.get(CountKey) == 0


def test_set_non_conforming_protocol_value_raises():
    class NotAService:
        other = "nope"

    c = DependencyValues()

    with pytest.raises(TypeError):
        c.set(ServiceKey, NotAService())


def test_set_structurally_conforming_value_is_accepted():
    class Lookalike:
        def __init__(self):
            self.value = "lookalike"

    c = DependencyValues()
    c.set(ServiceKey, Lookalike())
    assert c.get(ServiceKey).value == "lookalike"


def test_string_token_is_rejected():
    c = DependencyValues()

    with pytest.raises(TypeError):
        c.get("ServiceKey")

    with pytest.raises(TypeError):
        c.set("ServiceKey", Service(value="x"))


def test_abstract_base_key_is_rejected():
    c = DependencyValues()
    with pytest.raises(TypeError):
        c.get(DependencyKey)


def test_optional_value_type_accepts_none():
    class MaybeNameKey(DependencyKey[str | None]):
        default = None

    c = DependencyValues()
    assert c.get(MaybeNameKey) is None

    c.set(MaybeNameKey, "name")
    assert c.get(MaybeNameKey) == "name"

    c.set(MaybeNameKey, None)
    assert c.get(MaybeNameKey) is None
    assert MaybeNameKey in c

    with pytest.raises(DependencyTypeError):
        c.set(MaybeNameKey, 42)
