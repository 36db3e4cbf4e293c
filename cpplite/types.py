from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional


class Type(Enum):
    INT = "int"
    BOOL = "bool"
    CHAR = "char"
    FLOAT = "float"
    VOID = "void"

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return self.value


INT = Type.INT
BOOL = Type.BOOL
CHAR = Type.CHAR
FLOAT = Type.FLOAT
VOID = Type.VOID

_TYPE_NAMES: Dict[str, Type] = {ty.value: ty for ty in Type}


def resolve_type(name: str) -> Type:
    ty = _TYPE_NAMES.get(name)
    if ty is None:
        raise TypeSystemError(f"Type '{name}' is not defined")
    return ty


class TypeSystemError(Exception):
    pass


class Op(Enum):
    """Generic operators as written in source, before type tagging."""

    PLUS = "+"
    MINUS = "-"
    TIMES = "*"
    DIV = "/"
    REM = "%"

    LT = "<"
    LE = "<="
    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="

    AND = "&&"
    OR = "||"

    NOT = "!"
    NEG = "unary-"
    TO_INT = "(int)"
    TO_FLOAT = "(float)"
    TO_CHAR = "(char)"

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return self.value


class TypedOp(Enum):
    """Operators after the transformer has resolved them for one operand type."""

    INT_PLUS = "INT+"
    INT_MINUS = "INT-"
    INT_TIMES = "INT*"
    INT_DIV = "INT/"
    INT_REM = "INT%"
    INT_LT = "INT<"
    INT_LE = "INT<="
    INT_EQ = "INT=="
    INT_NE = "INT!="
    INT_GT = "INT>"
    INT_GE = "INT>="
    INT_NEG = "INT_NEG"

    FLOAT_PLUS = "FLOAT+"
    FLOAT_MINUS = "FLOAT-"
    FLOAT_TIMES = "FLOAT*"
    FLOAT_DIV = "FLOAT/"
    FLOAT_REM = "FLOAT%"
    FLOAT_LT = "FLOAT<"
    FLOAT_LE = "FLOAT<="
    FLOAT_EQ = "FLOAT=="
    FLOAT_NE = "FLOAT!="
    FLOAT_GT = "FLOAT>"
    FLOAT_GE = "FLOAT>="
    FLOAT_NEG = "FLOAT_NEG"

    CHAR_LT = "CHAR<"
    CHAR_LE = "CHAR<="
    CHAR_EQ = "CHAR=="
    CHAR_NE = "CHAR!="
    CHAR_GT = "CHAR>"
    CHAR_GE = "CHAR>="

    BOOL_LT = "BOOL<"
    BOOL_LE = "BOOL<="
    BOOL_EQ = "BOOL=="
    BOOL_NE = "BOOL!="
    BOOL_GT = "BOOL>"
    BOOL_GE = "BOOL>="

    AND = "&&"
    OR = "||"
    NOT = "!"

    I2F = "I2F"
    F2I = "F2I"
    C2I = "C2I"
    I2C = "I2C"

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return self.value


ARITHMETIC_OPS = frozenset({Op.PLUS, Op.MINUS, Op.TIMES, Op.DIV, Op.REM})
RELATIONAL_OPS = frozenset({Op.LT, Op.LE, Op.EQ, Op.NE, Op.GT, Op.GE})
BOOLEAN_OPS = frozenset({Op.AND, Op.OR})
CAST_OPS = frozenset({Op.TO_INT, Op.TO_FLOAT, Op.TO_CHAR})

BINARY_OPS = ARITHMETIC_OPS | RELATIONAL_OPS | BOOLEAN_OPS

# Target type of each cast form.
CAST_TARGETS: Dict[Op, Type] = {
    Op.TO_INT: INT,
    Op.TO_FLOAT: FLOAT,
    Op.TO_CHAR: CHAR,
}

# Operand types each cast form accepts.
CAST_SOURCES: Dict[Op, FrozenSet[Type]] = {
    Op.TO_INT: frozenset({FLOAT, CHAR}),
    Op.TO_FLOAT: frozenset({INT}),
    Op.TO_CHAR: frozenset({INT}),
}

_INT_MAP: Dict[Op, TypedOp] = {
    Op.PLUS: TypedOp.INT_PLUS,
    Op.MINUS: TypedOp.INT_MINUS,
    Op.TIMES: TypedOp.INT_TIMES,
    Op.DIV: TypedOp.INT_DIV,
    Op.REM: TypedOp.INT_REM,
    Op.LT: TypedOp.INT_LT,
    Op.LE: TypedOp.INT_LE,
    Op.EQ: TypedOp.INT_EQ,
    Op.NE: TypedOp.INT_NE,
    Op.GT: TypedOp.INT_GT,
    Op.GE: TypedOp.INT_GE,
    Op.NEG: TypedOp.INT_NEG,
    Op.TO_FLOAT: TypedOp.I2F,
    Op.TO_CHAR: TypedOp.I2C,
}

_FLOAT_MAP: Dict[Op, TypedOp] = {
    Op.PLUS: TypedOp.FLOAT_PLUS,
    Op.MINUS: TypedOp.FLOAT_MINUS,
    Op.TIMES: TypedOp.FLOAT_TIMES,
    Op.DIV: TypedOp.FLOAT_DIV,
    Op.REM: TypedOp.FLOAT_REM,
    Op.LT: TypedOp.FLOAT_LT,
    Op.LE: TypedOp.FLOAT_LE,
    Op.EQ: TypedOp.FLOAT_EQ,
    Op.NE: TypedOp.FLOAT_NE,
    Op.GT: TypedOp.FLOAT_GT,
    Op.GE: TypedOp.FLOAT_GE,
    Op.NEG: TypedOp.FLOAT_NEG,
    Op.TO_INT: TypedOp.F2I,
}

_CHAR_MAP: Dict[Op, TypedOp] = {
    Op.LT: TypedOp.CHAR_LT,
    Op.LE: TypedOp.CHAR_LE,
    Op.EQ: TypedOp.CHAR_EQ,
    Op.NE: TypedOp.CHAR_NE,
    Op.GT: TypedOp.CHAR_GT,
    Op.GE: TypedOp.CHAR_GE,
    Op.TO_INT: TypedOp.C2I,
}

_BOOL_MAP: Dict[Op, TypedOp] = {
    Op.LT: TypedOp.BOOL_LT,
    Op.LE: TypedOp.BOOL_LE,
    Op.EQ: TypedOp.BOOL_EQ,
    Op.NE: TypedOp.BOOL_NE,
    Op.GT: TypedOp.BOOL_GT,
    Op.GE: TypedOp.BOOL_GE,
    Op.NOT: TypedOp.NOT,
}

_TAG_MAPS: Dict[Type, Dict[Op, TypedOp]] = {
    INT: _INT_MAP,
    FLOAT: _FLOAT_MAP,
    CHAR: _CHAR_MAP,
    BOOL: _BOOL_MAP,
}


def tag_operator(op: Op, operand_type: Type) -> Optional[TypedOp]:
    """Return the tagged form of `op` applied to `operand_type`, or None."""
    if op is Op.AND:
        return TypedOp.AND
    if op is Op.OR:
        return TypedOp.OR
    table = _TAG_MAPS.get(operand_type)
    if table is None:
        return None
    return table.get(op)


def result_type(op: Op, operand_type: Type) -> Type:
    """Static type of applying generic `op` to operands of `operand_type`."""
    if op in RELATIONAL_OPS or op in BOOLEAN_OPS or op is Op.NOT:
        return BOOL
    if op in CAST_TARGETS:
        return CAST_TARGETS[op]
    return operand_type
