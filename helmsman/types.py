"""
Helmsman value types: type tags, bindings and the kind table.

Overview
- Type: tag naming the primitive kind of an option value. Every plain tag has
  a "_VAR" twin that writes into a caller supplied Ref instead of a fresh cell.
  NIL (not a type) and DEFAULT (unknown type) are never valid.
- Ref[_T]: typed mutable cell, the binding target of "_VAR" tags.
- Value: abstract user-settable value (set(text) + __str__), the payload of
  the VAR tag. Any object with a set() method qualifies (duck-typed).
- KINDS: the single table used by validation, flag materialization and the
  typed accessors; one Kind per tag:
  • label:       display name used in messages.
  • element:     Python type stored in the value (and in a Ref).
  • accepts:     predicate for defaults and resolved values.
  • convert:     text → value converter used by the flag parser.
  • pointer:     True when the value lives in a caller supplied Ref.
  • constructor: name of the FlagSet method that registers the flag.

Value domains
- int, int64:    plain int (never bool) in the signed 64-bit range.
- uint, uint64:  plain int in [0, 2**64).
- float64:       float.      string:   str.
- bool:          bool.       duration: datetime.timedelta.

Converters
- integers accept base prefixes ("0x1f", "0o17", "0b101") and underscores.
- booleans accept 1 t T TRUE true True / 0 f F FALSE false False.
- durations accept signed sequences of decimal numbers with a unit, e.g.
  "300ms", "-1.5h", "2h45m"; units: ns, us (µs), ms, s, m, h.
"""
import builtins
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from types import MappingProxyType
from typing import NamedTuple

from .utils import *

_INT64 = range(-2 ** 63, 2 ** 63)
_UINT64 = range(0, 2 ** 64)

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

# nanoseconds per unit
_UNITS = {
    "ns": Decimal(1),
    "us": Decimal(10 ** 3),
    "µs": Decimal(10 ** 3),  # U+00B5 micro sign
    "μs": Decimal(10 ** 3),  # U+03BC greek mu
    "ms": Decimal(10 ** 6),
    "s": Decimal(10 ** 9),
    "m": Decimal(60 * 10 ** 9),
    "h": Decimal(3600 * 10 ** 9),
}
_SEGMENT = r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)"


class Type(IntEnum):
    """
    primitive kind of an option value.

    ordering follows the historic numbering of the tags; do not reorder.
    """
    NIL = 0
    INT = 1
    INT_VAR = 2
    INT64 = 3
    INT64_VAR = 4
    UINT = 5
    UINT_VAR = 6
    UINT64 = 7
    UINT64_VAR = 8
    FLOAT64 = 9
    FLOAT64_VAR = 10
    STRING = 11
    STRING_VAR = 12
    BOOL = 13
    BOOL_VAR = 14
    DURATION = 15
    DURATION_VAR = 16
    VAR = 17
    DEFAULT = 18

    @property
    def pointer(self):
        """
        True for tags that bind into a caller supplied Ref.
        """
        return self.name.endswith("_VAR")

    @property
    def base(self):
        """
        the plain tag of a "_VAR" tag (INT_VAR → INT); other tags map to themselves.
        """
        return type(self)[self.name.removesuffix("_VAR")]

    def __str__(self):
        if (kind := KINDS.get(self)) is not None:
            return kind.label
        return "nil" if self is Type.NIL else "unknown"


class Ref[_T]:
    """
    typed mutable cell, the Python stand-in for a pointer binding.

    a Ref starts with the zero value of its element type unless a value is
    given; the flag parser writes the default and then any command-line value
    into it.

        >>> count = Ref(int)
        >>> count.value
        0
    """
    __slots__ = ("type", "value")

    def __init__(self, type, value=Unset, /):
        if not isinstance(type, builtins.type):
            raise TypeError("Ref() first argument must be a type")
        self.type = type
        self.value = type() if value is Unset else value

    def __repr__(self):
        return f"Ref[{self.type.__name__}]({self.value!r})"


class Value(ABC):
    """
    user-settable flag value.

    subclasses implement set(text), raising ValueError on bad input, and
    __str__ for display. Any class defining set() is recognized through
    __subclasshook__, so inheriting from Value is optional.
    """

    @abstractmethod
    def set(self, text, /):
        """
        parse text and store it; raise ValueError when text is unacceptable.
        """

    @classmethod
    def __subclasshook__(cls, subclass):
        if cls is Value:
            for base in subclass.__mro__:
                if "set" in base.__dict__:
                    return callable(base.__dict__["set"]) or NotImplemented
        return NotImplemented


@rename("int")
def parse_int(text, /):
    """
    parse a signed 64-bit integer (base prefixes allowed).
    """
    if (value := int(text, 0)) not in _INT64:
        raise ValueError("value out of range")
    return value


@rename("uint")
def parse_uint(text, /):
    """
    parse an unsigned 64-bit integer (base prefixes allowed).
    """
    if (value := int(text, 0)) not in _UINT64:
        raise ValueError("value out of range")
    return value


@rename("float64")
def parse_float(text, /):
    return float(text)


@rename("bool")
def parse_bool(text, /):
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean {text!r}")


@rename("duration")
def parse_duration(text, /):
    """
    parse a duration string such as "1h30m" or "-2.5s" into a timedelta.

    the result is rounded to the microsecond, the resolution of timedelta.
    """
    if not isinstance(text, str):
        raise TypeError("parse_duration() argument must be a string")
    sign, body = (text[0], text[1:]) if text[:1] in "+-" and text else ("", text)
    if body == "0":
        return timedelta(0)
    if not body or not re.fullmatch(f"(?:{_SEGMENT})+", body):
        raise ValueError(f"invalid duration {text!r}")
    try:
        total = sum(Decimal(number) * _UNITS[unit] for number, unit in re.findall(_SEGMENT, body))
    except InvalidOperation:
        raise ValueError(f"invalid duration {text!r}") from None
    if sign == "-":
        total = -total
    return timedelta(microseconds=float(total / 1000))


def _within(bounds):
    @rename("accepts")
    def accepts(object, /):
        return type(object) is int and object in bounds
    return accepts


def _exactly(element):
    @rename("accepts")
    def accepts(object, /):
        return type(object) is element
    return accepts


def _settable(object, /):
    return isinstance(object, Value)


class Kind(NamedTuple):
    label: str
    element: type | None
    accepts: object
    convert: object
    pointer: bool
    constructor: str


def _kinds():
    plain = {
        Type.INT: Kind("int", int, _within(_INT64), parse_int, False, "int"),
        Type.INT64: Kind("int64", int, _within(_INT64), parse_int, False, "int64"),
        Type.UINT: Kind("uint", int, _within(_UINT64), parse_uint, False, "uint"),
        Type.UINT64: Kind("uint64", int, _within(_UINT64), parse_uint, False, "uint64"),
        Type.FLOAT64: Kind("float64", float, _exactly(float), parse_float, False, "float64"),
        Type.STRING: Kind("string", str, _exactly(str), str, False, "string"),
        Type.BOOL: Kind("bool", bool, _exactly(bool), parse_bool, False, "bool"),
        Type.DURATION: Kind("duration", timedelta, _exactly(timedelta), parse_duration, False, "duration"),
    }
    table = {}
    for tag, kind in plain.items():
        table[tag] = kind
        table[Type[tag.name + "_VAR"]] = kind._replace(
            label="ref[%s]" % kind.label, pointer=True, constructor=kind.constructor + "_var"
        )
    table[Type.VAR] = Kind("value", None, _settable, None, False, "var")
    return table


KINDS: Mapping[Type, Kind] = MappingProxyType(_kinds())
"""
tag → Kind table; NIL and DEFAULT are deliberately absent.
"""


__all__ = (
    "Type",
    "Ref",
    "Value",
    "Kind",
    "KINDS",
    "parse_int",
    "parse_uint",
    "parse_float",
    "parse_bool",
    "parse_duration",
)
