from __future__ import annotations

import logging
import math
import sys
from typing import Callable, Dict, Sequence, Tuple

from . import ast
from .runtime import (
    INT_MAX,
    INT_MIN,
    CallFrame,
    CallStack,
    Store,
    Value,
    bool_value,
    char_value,
    float_value,
    int_value,
    undefined_value,
)
from .runtime.values import CHAR_MASK
from .type_env import function_table
from .types import TypedOp

logger = logging.getLogger(__name__)


class EvaluationError(Exception):
    pass


class UndefinedValueError(EvaluationError):
    pass


class DivisionByZeroError(EvaluationError):
    pass


class UnknownFunctionError(LookupError):
    pass


# Operator semantics. Operands reaching these are already checked for definedness.


def _int_div(left: int, right: int) -> int:
    if right == 0:
        raise DivisionByZeroError("integer division by zero")
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _int_rem(left: int, right: int) -> int:
    if right == 0:
        raise DivisionByZeroError("integer remainder by zero")
    return left - right * _int_div(left, right)


def _float_div(left: float, right: float) -> float:
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _float_rem(left: float, right: float) -> float:
    try:
        return math.fmod(left, right)
    except ValueError:
        return math.nan


def _float_to_int(value: float) -> int:
    if math.isnan(value):
        return 0
    if value >= INT_MAX:
        return INT_MAX
    if value <= INT_MIN:
        return INT_MIN
    return math.trunc(value)


def _bool_ordering(left: Value, right: Value) -> Value:
    raise EvaluationError(f"bool values are not ordered: {left} and {right}")


BinaryFn = Callable[[Value, Value], Value]
UnaryFn = Callable[[Value], Value]

BINARY_OPS: Dict[TypedOp, BinaryFn] = {
    TypedOp.INT_PLUS: lambda a, b: int_value(a.payload + b.payload),
    TypedOp.INT_MINUS: lambda a, b: int_value(a.payload - b.payload),
    TypedOp.INT_TIMES: lambda a, b: int_value(a.payload * b.payload),
    TypedOp.INT_DIV: lambda a, b: int_value(_int_div(a.payload, b.payload)),
    TypedOp.INT_REM: lambda a, b: int_value(_int_rem(a.payload, b.payload)),
    TypedOp.INT_LT: lambda a, b: bool_value(a.payload < b.payload),
    TypedOp.INT_LE: lambda a, b: bool_value(a.payload <= b.payload),
    TypedOp.INT_EQ: lambda a, b: bool_value(a.payload == b.payload),
    TypedOp.INT_NE: lambda a, b: bool_value(a.payload != b.payload),
    TypedOp.INT_GT: lambda a, b: bool_value(a.payload > b.payload),
    TypedOp.INT_GE: lambda a, b: bool_value(a.payload >= b.payload),
    TypedOp.FLOAT_PLUS: lambda a, b: float_value(a.payload + b.payload),
    TypedOp.FLOAT_MINUS: lambda a, b: float_value(a.payload - b.payload),
    TypedOp.FLOAT_TIMES: lambda a, b: float_value(a.payload * b.payload),
    TypedOp.FLOAT_DIV: lambda a, b: float_value(_float_div(a.payload, b.payload)),
    TypedOp.FLOAT_REM: lambda a, b: float_value(_float_rem(a.payload, b.payload)),
    TypedOp.FLOAT_LT: lambda a, b: bool_value(a.payload < b.payload),
    TypedOp.FLOAT_LE: lambda a, b: bool_value(a.payload <= b.payload),
    TypedOp.FLOAT_EQ: lambda a, b: bool_value(a.payload == b.payload),
    TypedOp.FLOAT_NE: lambda a, b: bool_value(a.payload != b.payload),
    TypedOp.FLOAT_GT: lambda a, b: bool_value(a.payload > b.payload),
    TypedOp.FLOAT_GE: lambda a, b: bool_value(a.payload >= b.payload),
    TypedOp.CHAR_LT: lambda a, b: bool_value(a.payload < b.payload),
    TypedOp.CHAR_LE: lambda a, b: bool_value(a.payload <= b.payload),
    TypedOp.CHAR_EQ: lambda a, b: bool_value(a.payload == b.payload),
    TypedOp.CHAR_NE: lambda a, b: bool_value(a.payload != b.payload),
    TypedOp.CHAR_GT: lambda a, b: bool_value(a.payload > b.payload),
    TypedOp.CHAR_GE: lambda a, b: bool_value(a.payload >= b.payload),
    TypedOp.BOOL_EQ: lambda a, b: bool_value(a.payload == b.payload),
    TypedOp.BOOL_NE: lambda a, b: bool_value(a.payload != b.payload),
    TypedOp.BOOL_LT: _bool_ordering,
    TypedOp.BOOL_LE: _bool_ordering,
    TypedOp.BOOL_GT: _bool_ordering,
    TypedOp.BOOL_GE: _bool_ordering,
    TypedOp.AND: lambda a, b: bool_value(a.payload and b.payload),
    TypedOp.OR: lambda a, b: bool_value(a.payload or b.payload),
}

UNARY_OPS: Dict[TypedOp, UnaryFn] = {
    TypedOp.INT_NEG: lambda a: int_value(-a.payload),
    TypedOp.FLOAT_NEG: lambda a: float_value(-a.payload),
    TypedOp.NOT: lambda a: bool_value(not a.payload),
    TypedOp.I2F: lambda a: float_value(float(a.payload)),
    TypedOp.F2I: lambda a: int_value(_float_to_int(a.payload)),
    TypedOp.C2I: lambda a: int_value(ord(a.payload)),
    TypedOp.I2C: lambda a: char_value(chr(a.payload & CHAR_MASK)),
}


class Interpreter:
    """
    Evaluates a transformed program.

    Each call pushes a CallFrame holding the callee's local Store and its
    pending result. Statement execution returns whether the current frame has
    completed; once a Return completes the frame every later statement in that
    call is skipped, including further loop iterations.
    """

    def __init__(self, program: ast.Program, stdout=None) -> None:
        self.program = program
        self.functions = function_table(program)
        self.stdout = stdout or sys.stdout
        self.globals = Store.from_declarations(program.globals)
        self.stack = CallStack()

    def run(self) -> Value:
        """Reset the global store and run `main`; returns main's result."""
        self.globals = Store.from_declarations(self.program.globals)
        return self.call("main", ())

    def call(self, name: str, args: Sequence[Value]) -> Value:
        fn = self.functions.get(name)
        if fn is None:
            raise UnknownFunctionError(f"Unknown function '{name}'")
        if len(args) != len(fn.params):
            raise EvaluationError(f"{name} expects {len(fn.params)} args, got {len(args)}")
        local_store = Store()
        for param, value in zip(fn.params, args):
            local_store.declare(param.name, value)
        for decl in fn.locals:
            local_store.declare(decl.name, undefined_value(decl.type))
        frame = CallFrame(function=fn, locals=local_store)
        self.stack.push(frame)
        logger.debug("enter %s (depth %d)", name, len(self.stack))
        try:
            self._exec_stmt(fn.body, frame)
        finally:
            self.stack.pop()
        result = frame.result()
        logger.debug("leave %s -> %s", name, result)
        return result

    def _exec_stmt(self, stmt: ast.Stmt, frame: CallFrame) -> bool:
        if frame.completed:
            return True
        if isinstance(stmt, ast.Skip):
            return False
        if isinstance(stmt, ast.Block):
            for member in stmt.members:
                if self._exec_stmt(member, frame):
                    return True
            return False
        if isinstance(stmt, ast.Assignment):
            value = self._eval_expr(stmt.source, frame)
            self._assign(stmt.target.ident, value, frame)
            return False
        if isinstance(stmt, ast.Conditional):
            if self._eval_test(stmt.test, frame):
                return self._exec_stmt(stmt.then_branch, frame)
            if stmt.else_branch is not None:
                return self._exec_stmt(stmt.else_branch, frame)
            return False
        if isinstance(stmt, ast.Loop):
            while not frame.completed and self._eval_test(stmt.test, frame):
                if self._exec_stmt(stmt.body, frame):
                    break
            return frame.completed
        if isinstance(stmt, ast.Print):
            value = self._eval_expr(stmt.expr, frame)
            if value.undefined:
                raise UndefinedValueError(f"{ast.loc_prefix(stmt)}undef value error: cannot print an undefined value")
            self.stdout.write(str(value))
            return False
        if isinstance(stmt, ast.CallStmt):
            self._eval_call(stmt.callee, stmt.args, frame)
            return False
        if isinstance(stmt, ast.Return):
            frame.complete(self._eval_expr(stmt.result, frame))
            return True
        raise EvaluationError(f"Unsupported statement {stmt}")

    def _eval_expr(self, expr: ast.Expr, frame: CallFrame) -> Value:
        if isinstance(expr, ast.Variable):
            if expr.ident in frame.locals:
                return frame.locals[expr.ident]
            return self.globals[expr.ident]
        if isinstance(expr, ast.Literal):
            return expr.value
        if isinstance(expr, ast.Binary):
            left = self._eval_expr(expr.left, frame)
            right = self._eval_expr(expr.right, frame)
            return self._apply_binary(expr, left, right)
        if isinstance(expr, ast.Unary):
            operand = self._eval_expr(expr.operand, frame)
            return self._apply_unary(expr, operand)
        if isinstance(expr, ast.CallExpr):
            return self._eval_call(expr.callee, expr.args, frame)
        raise EvaluationError(f"Unsupported expression {expr}")

    def _eval_test(self, test: ast.Expr, frame: CallFrame) -> bool:
        value = self._eval_expr(test, frame)
        if value.undefined:
            raise UndefinedValueError(f"{ast.loc_prefix(test)}undef value error: undefined condition")
        return bool(value.payload)

    def _eval_call(self, callee: str, args: Tuple[ast.Expr, ...], frame: CallFrame) -> Value:
        values = [self._eval_expr(arg, frame) for arg in args]
        return self.call(callee, values)

    def _apply_binary(self, expr: ast.Binary, left: Value, right: Value) -> Value:
        impl = BINARY_OPS.get(expr.op)
        if impl is None:
            raise EvaluationError(f"{ast.loc_prefix(expr)}untyped or unknown binary operator '{expr.op}'")
        if left.undefined or right.undefined:
            raise UndefinedValueError(f"{ast.loc_prefix(expr)}undef value error: operand of '{expr.op}' is undefined")
        return impl(left, right)

    def _apply_unary(self, expr: ast.Unary, operand: Value) -> Value:
        impl = UNARY_OPS.get(expr.op)
        if impl is None:
            raise EvaluationError(f"{ast.loc_prefix(expr)}untyped or unknown unary operator '{expr.op}'")
        if operand.undefined:
            raise UndefinedValueError(f"{ast.loc_prefix(expr)}undef value error: operand of '{expr.op}' is undefined")
        return impl(operand)

    def _assign(self, name: str, value: Value, frame: CallFrame) -> None:
        if name in frame.locals:
            frame.locals.set(name, value)
            return
        self.globals.set(name, value)


def evaluate(program: ast.Program, stdout=None) -> Store:
    """Run `main` of a transformed program and return the final global store."""
    interpreter = Interpreter(program, stdout=stdout)
    interpreter.run()
    return interpreter.globals
