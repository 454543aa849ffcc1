"""Typed conversion of query string values.

A converter turns the decoded values supplied for one key into a typed
value. Any object with a matching ``from_query_string`` method is a
converter; no base class is required::

    class Colour:
        @classmethod
        def from_query_string(cls, key, values):
            ...

Leaf converters (``STRING``, ``BOOL``, the integer and float family)
require exactly one value. ``OptionalValues`` and ``RepeatedValues``
wrap any other converter for absent and repeated parameters.

Every failure, whatever parser produced it, is raised as
``ConversionError`` with that parser's description.
"""

import math
import re
import struct
import types
import typing
from collections.abc import Sequence
from decimal import Decimal
from typing import Annotated, Any, Protocol, Union, runtime_checkable

from quail.errors import ConfigurationError, ConversionError
from quail.http.encoding import FormUrlDecoded


@runtime_checkable
class TryFromValues[T](Protocol):
    """Protocol for query string converters."""

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> T: ...


def _single(values: Sequence[FormUrlDecoded]) -> str:
    """Return the only value's text, or raise on any other arity."""
    if len(values) != 1:
        raise ConversionError("Invalid number of values")
    return values[0].val


# -- Leaf converters --


class StringValues:
    """Decoded text, unchanged."""

    __slots__ = ()

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> str:
        return _single(values)

    def __repr__(self) -> str:
        return "STRING"


class BoolValues:
    """Exactly ``true`` or ``false``."""

    __slots__ = ()

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> bool:
        text = _single(values)
        if text == "true":
            return True
        if text == "false":
            return False
        raise ConversionError("provided string was not `true` or `false`")

    def __repr__(self) -> str:
        return "BOOL"


class IntegerValues:
    """An integer, optionally bounded to a fixed-width range.

    Accepts an optional sign followed by ASCII digits. Unlike ``int()``,
    surrounding whitespace and ``_`` separators are rejected.
    """

    __slots__ = ("_name", "maximum", "minimum")

    def __init__(self, name: str, minimum: int | None = None, maximum: int | None = None) -> None:
        self._name = name
        self.minimum = minimum
        self.maximum = maximum

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> int:
        text = _single(values)
        if not text:
            raise ConversionError("cannot parse integer from empty string")

        digits = text[1:] if text[0] in "+-" else text
        unsigned = self.minimum is not None and self.minimum >= 0
        if not (digits.isascii() and digits.isdigit()) or (unsigned and text[0] == "-"):
            raise ConversionError("invalid digit found in string")

        negative = text[0] == "-"
        significant = digits.lstrip("0") or "0"
        limit = self.minimum if negative else self.maximum
        if limit is not None and len(significant) > len(str(abs(limit))):
            # Too long to fit; never hand it to int()
            if negative:
                raise ConversionError("number too small to fit in target type")
            raise ConversionError("number too large to fit in target type")

        try:
            value = int(significant)
        except ValueError as exc:
            # int_max_str_digits, for unbounded integers
            raise ConversionError(str(exc)) from exc
        if negative:
            value = -value
        if self.maximum is not None and value > self.maximum:
            raise ConversionError("number too large to fit in target type")
        if self.minimum is not None and value < self.minimum:
            raise ConversionError("number too small to fit in target type")
        return value

    def __repr__(self) -> str:
        return self._name


_FLOAT_RE = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?)",
    re.IGNORECASE,
)


def _single_bits(value: float) -> int:
    """Ordinal of a single-precision float; adjacent floats differ by one."""
    bits = struct.unpack("<I", struct.pack("<f", value))[0]
    if bits & 0x80000000:
        return -(bits & 0x7FFFFFFF)
    return bits


def _from_single_bits(ordinal: int) -> float:
    bits = ordinal if ordinal >= 0 else (-ordinal) | 0x80000000
    return struct.unpack("<f", struct.pack("<I", bits))[0]


def _round_single(text: str, value: float) -> float:
    """Round the number written as *text* to single precision.

    *value* is ``float(text)``. Narrowing it with ``struct`` rounds twice,
    which only goes wrong when *value* lands exactly halfway between two
    singles; that tie is settled against the exact decimal in *text*.
    """
    try:
        nearest = struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)
    if nearest == value or not math.isfinite(nearest):
        return nearest

    step = 1 if value > nearest else -1
    other = _from_single_bits(_single_bits(nearest) + step)
    # Midpoint of adjacent singles is exact in double precision
    midpoint = (nearest + other) / 2
    if value != midpoint:
        return nearest

    exact = Decimal(text)
    if exact == Decimal(midpoint):
        return nearest
    low, high = min(nearest, other), max(nearest, other)
    return high if exact > Decimal(midpoint) else low


class FloatValues:
    """A float, at double or single precision.

    Single precision is correctly rounded from the decimal text, not
    from the intermediate double.
    """

    __slots__ = ("_name", "single")

    def __init__(self, name: str, *, single: bool = False) -> None:
        self._name = name
        self.single = single

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> float:
        text = _single(values)
        if not text:
            raise ConversionError("cannot parse float from empty string")
        if _FLOAT_RE.fullmatch(text) is None:
            raise ConversionError("invalid float literal")

        value = float(text)
        if not self.single:
            return value
        return _round_single(text, value)

    def __repr__(self) -> str:
        return self._name


STRING = StringValues()
BOOL = BoolValues()
INT = IntegerValues("INT")
I8 = IntegerValues("I8", -(2**7), 2**7 - 1)
I16 = IntegerValues("I16", -(2**15), 2**15 - 1)
I32 = IntegerValues("I32", -(2**31), 2**31 - 1)
I64 = IntegerValues("I64", -(2**63), 2**63 - 1)
ISIZE = IntegerValues("ISIZE", -(2**63), 2**63 - 1)
U8 = IntegerValues("U8", 0, 2**8 - 1)
U16 = IntegerValues("U16", 0, 2**16 - 1)
U32 = IntegerValues("U32", 0, 2**32 - 1)
U64 = IntegerValues("U64", 0, 2**64 - 1)
USIZE = IntegerValues("USIZE", 0, 2**64 - 1)
F32 = FloatValues("F32", single=True)
F64 = FloatValues("F64")


# -- Composite converters --


class OptionalValues[T]:
    """``None`` when no values were supplied, otherwise *inner*'s result."""

    __slots__ = ("inner",)

    def __init__(self, inner: TryFromValues[T]) -> None:
        self.inner = inner

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> T | None:
        if not values:
            return None
        return self.inner.from_query_string(key, values)

    def __repr__(self) -> str:
        return f"OptionalValues({self.inner!r})"


class RepeatedValues[T]:
    """Each value converted on its own by *inner*, in source order.

    *inner* receives one value at a time, so it must be a single-value
    converter; nesting ``RepeatedValues`` is rejected.
    """

    __slots__ = ("inner",)

    def __init__(self, inner: TryFromValues[T]) -> None:
        nested: Any = inner
        while isinstance(nested, OptionalValues):
            nested = nested.inner
        if isinstance(nested, RepeatedValues):
            msg = "RepeatedValues cannot wrap another RepeatedValues"
            raise ConfigurationError(msg)
        self.inner = inner

    def from_query_string(self, key: str, values: Sequence[FormUrlDecoded]) -> list[T]:
        return [self.inner.from_query_string(key, [value]) for value in values]

    def __repr__(self) -> str:
        return f"RepeatedValues({self.inner!r})"


# -- Annotation resolution --

_BUILTINS: dict[Any, TryFromValues[Any]] = {
    str: STRING,
    bool: BOOL,
    int: INT,
    float: F64,
}

_REPEATED_ORIGINS = (list, Sequence)


def converter_for(annotation: Any) -> TryFromValues[Any]:
    """Return the converter for a field annotation.

    Supported::

        str, bool, int, float
        T | None, Optional[T]                   -> OptionalValues
        list[T], Sequence[T]                    -> RepeatedValues
        Annotated[int, U8]                      -> the converter given
        a class defining from_query_string      -> the class itself

    Raises ``ConfigurationError`` for anything else.
    """
    try:
        builtin = _BUILTINS.get(annotation)
    except TypeError:
        # Unhashable, e.g. Annotated with list metadata
        builtin = None
    if builtin is not None:
        return builtin

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is Annotated:
        for meta in args[1:]:
            if isinstance(meta, TryFromValues):
                return meta
        return converter_for(args[0])

    if origin is Union or origin is types.UnionType:
        inner = [arg for arg in args if arg is not type(None)]
        if len(inner) != 1 or len(inner) == len(args):
            msg = f"Only 'T | None' unions can be converted from a query string, got {annotation!r}"
            raise ConfigurationError(msg)
        return OptionalValues(converter_for(inner[0]))

    if origin in _REPEATED_ORIGINS:
        if len(args) != 1:
            msg = f"Repeated query parameters need one item type, got {annotation!r}"
            raise ConfigurationError(msg)
        return RepeatedValues(converter_for(args[0]))

    if isinstance(annotation, type) and isinstance(annotation, TryFromValues):
        return annotation

    msg = f"No query string converter for {annotation!r}"
    raise ConfigurationError(msg)
