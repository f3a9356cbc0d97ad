from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Literal, Protocol, TypeVar, Union, get_args, get_origin, get_type_hints

from ._errors import DependencyTypeError


_MISSING = object()


def check_value(value_type: Any, value: object, *, key_name: str) -> None:
    """Raise `DependencyTypeError` unless `value` is acceptable for `value_type`.

    - `Any` / `object`: everything.
    - plain classes and ABCs: isinstance.
    - Protocols: nominal via MRO, runtime-checkable isinstance, then structural conformance.
    - Union / Optional: any member.
    - parametrised generics: origin only.
    - Literal: membership.
    - anything else (TypeVar, forward refs): accepted.
    """
    try:
        _check(value_type, value)
    except TypeError as e:
        msg = f"Value {value!r} for {key_name} does not match declared type {_type_repr(value_type)}: {e}"
        raise DependencyTypeError(msg) from e


def _check(value_type: Any, value: object) -> None:  # noqa: C901
    if value_type is Any or value_type is object:
        return

    if value_type is None or value_type is type(None):
        if value is not None:
            msg = "expected None"
            raise TypeError(msg)
        return

    if isinstance(value_type, (TypeVar, str, typing.ForwardRef)):
        return

    origin = get_origin(value_type)

    if origin is Union or origin is types.UnionType:
        errors: list[str] = []
        for member in get_args(value_type):
            try:
                _check(member, value)
            except TypeError as e:
                errors.append(str(e))
            else:
                return
        msg = f"no union member accepts it ({'; '.join(errors)})"
        raise TypeError(msg)

    if origin is Literal:
        if value not in get_args(value_type):
            msg = f"expected one of {get_args(value_type)!r}"
            raise TypeError(msg)
        return

    if origin is typing.Annotated:
        _check(get_args(value_type)[0], value)
        return

    if origin is not None:
        # list[int], Callable[..., T], ...: only the container type is checked
        _check(origin, value)
        return

    if not inspect.isclass(value_type):
        return

    if is_protocol(value_type):
        _check_protocol_instance(value_type, value)
        return

    if typing.is_typeddict(value_type):
        _check(dict, value)
        return

    try:
        matches = isinstance(value, value_type)
    except TypeError:
        # the class refuses instance checks, so there is nothing to compare against
        return

    if not matches:
        msg = f"{type(value).__name__} is not an instance of {value_type.__name__}"
        raise TypeError(msg)


def _check_protocol_instance(proto_cls: type, value: object) -> None:
    impl = type(value)

    # Try nominal conformance without issubclass
    if proto_cls in getattr(impl, "__mro__", ()):
        return

    if is_runtime_checkable_protocol(proto_cls) and not isinstance(value, proto_cls):
        msg = f"{impl.__name__} does not implement runtime protocol {proto_cls.__name__}"
        raise TypeError(msg)

    validate_structural_conformance(proto_cls, value)


def is_runtime_checkable_protocol(tp: type) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def validate_structural_conformance(proto_cls: type, obj: object) -> None:  # noqa: C901
    """Best-effort structural conformance: presence + basic callable arity + return type checks.

    Members are looked up statically, so property getters and `__getattr__`
    on `obj` never run.
    """
    impl = type(obj)
    missing: list[str] = []
    signature_mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls, include_extras=True)
    except (TypeError, NameError):
        proto_hints = {}

    # Attributes required by annotations
    for name in proto_hints:
        if name.startswith("_"):
            continue
        if inspect.getattr_static(obj, name, _MISSING) is _MISSING:
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_"):
            continue

        if isinstance(proto_attr, property):
            if inspect.getattr_static(obj, name, _MISSING) is _MISSING:
                missing.append(name)
            continue

        if not inspect.isfunction(proto_attr):
            continue

        impl_attr = inspect.getattr_static(obj, name, _MISSING)
        if impl_attr is _MISSING:
            missing.append(name)
            continue

        if isinstance(impl_attr, (staticmethod, classmethod)):
            impl_attr = impl_attr.__func__

        if not callable(impl_attr):
            signature_mismatches.append(f"{name}: not Callable on {impl.__name__}")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError) as e:
            signature_mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        proto_params = [p for p in proto_sig.parameters.values() if p.name != "self"]
        impl_params = [p for p in impl_sig.parameters.values() if p.name not in ("self", "cls")]

        if _positional_arity(impl_params) < _positional_arity(proto_params):
            signature_mismatches.append(
                f"{name}: impl has fewer required positional params "
                f"({_positional_arity(impl_params)}) than protocol "
                f"({_positional_arity(proto_params)})"
            )

        proto_ret = proto_sig.return_annotation
        impl_ret = impl_sig.return_annotation

        if (
            proto_ret is not inspect.Signature.empty
            and impl_ret is not inspect.Signature.empty
            and proto_ret is not Any
            and impl_ret is not Any
            and not _is_return_type_compatible(impl_ret, proto_ret)
        ):
            signature_mismatches.append(
                f"{name}: return type {impl_ret!r} is not compatible with protocol return type {proto_ret!r}"
            )

    if missing or signature_mismatches:
        msgs = []
        if missing:
            msgs.append(f"missing members: {', '.join(missing)}")
        if signature_mismatches:
            msgs.append(f"signature mismatches: {', '.join(signature_mismatches)}")

        msg = (
            f"{impl.__name__} does not structurally conform to protocol "
            f"{proto_cls.__name__}: {'; '.join(msgs)}"
        )
        raise TypeError(msg)


def _positional_arity(params: list[inspect.Parameter]) -> int:
    return sum(
        1
        for p in params
        if p.kind
        in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        )
        and p.default is inspect.Parameter.empty
    )


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    # Exact match
    if impl_ret == proto_ret:
        return True

    # Handle class-based covariance
    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(impl_ret, proto_ret)

    # Annotations stringified by `from __future__ import annotations` cannot be compared
    if isinstance(impl_ret, str) or isinstance(proto_ret, str):
        return True

    # Everything else (Union, Protocol, TypeVar, etc.) -> conservative failure
    return False


def _type_repr(tp: Any) -> str:
    if inspect.isclass(tp) and get_origin(tp) is None:
        return tp.__qualname__
    return repr(tp)


def is_valid_value_type(tp: Any) -> bool:
    """Whether `tp` can be used as a key's declared value type."""
    if tp is None or tp is Any:
        return True
    if inspect.isclass(tp) or get_origin(tp) is not None:
        return True
    return isinstance(tp, (TypeVar, str, typing.ForwardRef, types.UnionType))


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: Any) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return inspect.isclass(tp) and bool(getattr(tp, "_is_protocol", False)) and tp is not Protocol
