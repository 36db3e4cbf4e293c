from __future__ import annotations

import logging
from typing import Tuple

from . import ast
from .type_env import TypeEnv, function_env
from .types import CHAR, FLOAT, INT, Op, Type, TypedOp, result_type, tag_operator
from .validator import ValidatedProgram

logger = logging.getLogger(__name__)

# (target, source) -> conversion inserted around an assignment source.
_WIDENING_OPS = {
    (FLOAT, INT): TypedOp.I2F,
    (INT, CHAR): TypedOp.C2I,
}


class TransformError(Exception):
    pass


def transform(validated: ValidatedProgram) -> ast.Program:
    """
    Rewrite a validated program so every operator carries its operand type:
    - Binary/Unary ops become TypedOp tags chosen by the operand type
    - casts become I2F/F2I/C2I/I2C
    - assignments that widen int->float or char->int get an explicit conversion
    Declarations, function signatures and statement shapes are unchanged.
    """
    return Transformer(validated).transform()


class Transformer:
    def __init__(self, validated: ValidatedProgram) -> None:
        self.validated = validated
        self.program = validated.program

    def transform(self) -> ast.Program:
        functions = tuple(self._transform_function(fn) for fn in self.program.functions)
        return ast.Program(globals=self.program.globals, functions=functions)

    def _transform_function(self, fn: ast.Function) -> ast.Function:
        env = self.validated.envs.get(fn.name)
        if env is None:
            env = function_env(self.validated.globals, fn)
        body = self._lower_stmt(fn.body, env)
        logger.debug("transformed function %s", fn.name)
        return ast.Function(
            name=fn.name,
            return_type=fn.return_type,
            params=fn.params,
            locals=fn.locals,
            body=body,
            loc=fn.loc,
        )

    def _lower_stmt(self, stmt: ast.Stmt, env: TypeEnv) -> ast.Stmt:
        if isinstance(stmt, ast.Skip):
            return stmt
        if isinstance(stmt, ast.Block):
            return ast.Block(
                members=tuple(self._lower_stmt(member, env) for member in stmt.members),
                loc=stmt.loc,
            )
        if isinstance(stmt, ast.Assignment):
            target_type = env.lookup(stmt.target.ident)
            if target_type is None:
                raise TransformError(f"Unknown variable '{stmt.target.ident}'")
            source, source_type = self._lower_expr(stmt.source, env)
            widening = _WIDENING_OPS.get((target_type, source_type))
            if widening is not None:
                source = ast.Unary(op=widening, operand=source, loc=source.loc)
            elif source_type is not target_type:
                raise TransformError(f"cannot assign {source_type} to '{stmt.target.ident}' of type {target_type}")
            return ast.Assignment(target=stmt.target, source=source, loc=stmt.loc)
        if isinstance(stmt, ast.Conditional):
            test, _ = self._lower_expr(stmt.test, env)
            else_branch = None
            if stmt.else_branch is not None:
                else_branch = self._lower_stmt(stmt.else_branch, env)
            return ast.Conditional(
                test=test,
                then_branch=self._lower_stmt(stmt.then_branch, env),
                else_branch=else_branch,
                loc=stmt.loc,
            )
        if isinstance(stmt, ast.Loop):
            test, _ = self._lower_expr(stmt.test, env)
            return ast.Loop(test=test, body=self._lower_stmt(stmt.body, env), loc=stmt.loc)
        if isinstance(stmt, ast.Print):
            expr, _ = self._lower_expr(stmt.expr, env)
            return ast.Print(expr=expr, loc=stmt.loc)
        if isinstance(stmt, ast.CallStmt):
            args = tuple(self._lower_expr(arg, env)[0] for arg in stmt.args)
            return ast.CallStmt(callee=stmt.callee, args=args, loc=stmt.loc)
        if isinstance(stmt, ast.Return):
            result, _ = self._lower_expr(stmt.result, env)
            return ast.Return(function=stmt.function, result=result, loc=stmt.loc)
        raise TransformError(f"Unsupported statement {stmt}")

    def _lower_expr(self, expr: ast.Expr, env: TypeEnv) -> Tuple[ast.Expr, Type]:
        if isinstance(expr, ast.Variable):
            ty = env.lookup(expr.ident)
            if ty is None:
                raise TransformError(f"Unknown variable '{expr.ident}'")
            return expr, ty
        if isinstance(expr, ast.Literal):
            return expr, expr.value.type
        if isinstance(expr, ast.Binary):
            left, left_ty = self._lower_expr(expr.left, env)
            right, _ = self._lower_expr(expr.right, env)
            tagged = self._tag(expr.op, left_ty)
            return ast.Binary(op=tagged, left=left, right=right, loc=expr.loc), result_type(expr.op, left_ty)
        if isinstance(expr, ast.Unary):
            operand, operand_ty = self._lower_expr(expr.operand, env)
            tagged = self._tag(expr.op, operand_ty)
            return ast.Unary(op=tagged, operand=operand, loc=expr.loc), result_type(expr.op, operand_ty)
        if isinstance(expr, ast.CallExpr):
            fn = self.validated.functions.get(expr.callee)
            if fn is None:
                raise TransformError(f"Unknown function '{expr.callee}'")
            args = tuple(self._lower_expr(arg, env)[0] for arg in expr.args)
            return ast.CallExpr(callee=expr.callee, args=args, loc=expr.loc), fn.return_type
        raise TransformError(f"Unsupported expression {expr}")

    def _tag(self, op: ast.Operator, operand_type: Type) -> TypedOp:
        if not isinstance(op, Op):
            raise TransformError(f"operator '{op}' is already typed")
        tagged = tag_operator(op, operand_type)
        if tagged is None:
            raise TransformError(f"no typed form of '{op}' for {operand_type}")
        return tagged
