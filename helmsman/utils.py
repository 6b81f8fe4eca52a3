"""
Helmsman utilities shared by every layer.

Contents
- Unset (UnsetType): the "argument not given" marker. Option defaults such as
  None, 0, "" and False are meaningful, so None cannot mark absence.
- coalesce(value, default=None): turn Unset into a default, keep anything else.
- rename(callable, name) / @rename(name): give generated callables a stable
  __name__ and __qualname__. argparse quotes a converter's __name__ in its
  "invalid int value" messages, so converters rely on it.
- mirror(name): read-only property over the private "_name" field; container
  values are handed out as fresh copies.

    >>> coalesce(Unset, 8)
    8
    >>> coalesce(0, 8)
    0
"""
import builtins
import types
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker: falsy, sealed, one instance per process.

    It also takes part in PEP 604 unions, so "str | Unset" is a valid
    isinstance() target.
    """
    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __or__(self, other, /):
        if isinstance(other, type | types.UnionType):
            return type(self) | other
        return NotImplemented

    def __ror__(self, other, /):
        if isinstance(other, type | types.UnionType):
            return other | type(self)
        return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    default when object is Unset, object otherwise (falsy values included).
    """
    if object is Unset:
        return default
    return object


def _rename(callable, name, /):
    if not builtins.callable(callable):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() second argument must be a string")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"rename() cannot rename {callable!r}") from None
    return callable


def rename(*parameters):
    """
    rename(callable, name) renames in place and returns callable;
    rename(name) returns a decorator doing the same.
    """
    match parameters:
        case (callable, name):
            return _rename(callable, name)
        case (str() as name,):
            return _rename(lambda callable: _rename(callable, name), "rename")
        case (_,):
            raise TypeError("@rename() argument must be a string")
        case _:
            raise TypeError(f"rename() takes 1 or 2 arguments ({len(parameters)} given)")


def _detach(object):
    match object:
        case str():
            return object
        case Sequence():
            return [_detach(item) for item in object]
        case Mapping():
            return {key: _detach(value) for key, value in object.items()}
        case Set():
            return {_detach(item) for item in object}
    return object


def mirror(name, /):
    """
    property returning a detached copy of self._<name>.

        class Registry:
            header = mirror("header")   # reads self._header
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    field = "_" + name

    def getter(self):
        return _detach(getattr(self, field))

    return property(_rename(getter, name))


Unset = UnsetType()


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "UnsetType",
    "Unset",
)
