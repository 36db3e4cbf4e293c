from __future__ import annotations

import math
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from ..types import BOOL, CHAR, FLOAT, INT, VOID, Type

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1
CHAR_MASK = 0xFFFF

UNDEF_TEXT = "undef"


def wrap_i32(value: int) -> int:
    return ((value - INT_MIN) % 2**32) + INT_MIN


def to_f32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def format_f32(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    for digits in range(1, 10):
        candidate = float(f"{value:.{digits}g}")
        if to_f32(candidate) == value:
            return repr(candidate)
    return repr(value)


@dataclass(frozen=True)
class Value(ABC):
    """A runtime value. `undefined` marks a declared but never assigned slot."""

    type: ClassVar[Type]
    undefined: bool = field(default=False, kw_only=True)

    @property
    @abstractmethod
    def payload(self) -> object:
        ...

    def __str__(self) -> str:
        if self.undefined:
            return UNDEF_TEXT
        return self._render()

    def _render(self) -> str:
        return str(self.payload)


@dataclass(frozen=True)
class IntValue(Value):
    type: ClassVar[Type] = INT
    value: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", wrap_i32(int(self.value)))

    @property
    def payload(self) -> int:
        return self.value


@dataclass(frozen=True)
class BoolValue(Value):
    type: ClassVar[Type] = BOOL
    value: bool = False

    @property
    def payload(self) -> bool:
        return self.value

    def _render(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class CharValue(Value):
    type: ClassVar[Type] = CHAR
    value: str = "\x00"

    def __post_init__(self) -> None:
        if len(self.value) != 1:
            raise ValueError(f"char value must be a single character, got {self.value!r}")

    @property
    def payload(self) -> str:
        return self.value


@dataclass(frozen=True)
class FloatValue(Value):
    type: ClassVar[Type] = FLOAT
    value: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_f32(float(self.value)))

    @property
    def payload(self) -> float:
        return self.value

    def _render(self) -> str:
        return format_f32(self.value)


@dataclass(frozen=True)
class VoidValue(Value):
    """Stand-in result of a void call; it carries no payload."""

    type: ClassVar[Type] = VOID

    @property
    def payload(self) -> None:
        return None

    def _render(self) -> str:
        return ""


VOID_VALUE = VoidValue()

_ZERO_CLASSES = {
    INT: IntValue,
    BOOL: BoolValue,
    CHAR: CharValue,
    FLOAT: FloatValue,
    VOID: VoidValue,
}


def undefined_value(ty: Type) -> Value:
    """The zero value of `ty`, flagged undefined."""
    return _ZERO_CLASSES[ty](undefined=True)


def int_value(value: int) -> IntValue:
    return IntValue(value=value)


def bool_value(value: bool) -> BoolValue:
    return BoolValue(value=bool(value))


def char_value(value: str) -> CharValue:
    return CharValue(value=value)


def float_value(value: float) -> FloatValue:
    return FloatValue(value=value)
