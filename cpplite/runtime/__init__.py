from __future__ import annotations

from .store import CallFrame, CallStack, Store, StoreError
from .values import (
    INT_MAX,
    INT_MIN,
    VOID_VALUE,
    BoolValue,
    CharValue,
    FloatValue,
    IntValue,
    Value,
    VoidValue,
    bool_value,
    char_value,
    float_value,
    int_value,
    undefined_value,
)

__all__ = [
    "INT_MAX",
    "INT_MIN",
    "VOID_VALUE",
    "BoolValue",
    "CallFrame",
    "CallStack",
    "CharValue",
    "FloatValue",
    "IntValue",
    "Store",
    "StoreError",
    "Value",
    "VoidValue",
    "bool_value",
    "char_value",
    "float_value",
    "int_value",
    "undefined_value",
]
