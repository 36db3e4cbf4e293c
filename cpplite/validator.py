from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set

from . import ast
from .type_env import FunctionTable, TypeEnv, build_type_env, function_env
from .types import (
    ARITHMETIC_OPS,
    BOOL,
    BOOLEAN_OPS,
    CAST_OPS,
    CAST_SOURCES,
    CAST_TARGETS,
    CHAR,
    FLOAT,
    INT,
    RELATIONAL_OPS,
    VOID,
    Op,
    Type,
)

logger = logging.getLogger(__name__)

# (target, source) pairs that an assignment widens implicitly.
WIDENINGS = frozenset({(FLOAT, INT), (INT, CHAR)})

_NUMERIC = (INT, FLOAT)
_COMPARABLE = (INT, FLOAT, CHAR, BOOL)


class ValidationError(Exception):
    pass


@dataclass
class ValidatedProgram:
    program: ast.Program
    globals: TypeEnv
    functions: Dict[str, ast.Function]
    envs: Dict[str, TypeEnv]


@dataclass
class FunctionContext:
    function: ast.Function
    env: TypeEnv
    functions: FunctionTable


class Validator:
    def validate(self, program: ast.Program) -> ValidatedProgram:
        self._check_declarations(program.globals)
        globals_env = build_type_env(program.globals)
        functions = self._register_functions(program.functions)
        self._check_main(functions)
        envs: Dict[str, TypeEnv] = {}
        for fn in program.functions:
            envs[fn.name] = self._check_function(fn, globals_env, functions)
        logger.debug(
            "validated %d globals and %d functions", len(program.globals), len(program.functions)
        )
        return ValidatedProgram(
            program=program,
            globals=globals_env,
            functions=functions,
            envs=envs,
        )

    def _check_declarations(self, declarations: Iterable[ast.Declaration]) -> None:
        seen: Set[str] = set()
        for decl in declarations:
            if decl.name in seen:
                raise ValidationError(f"{ast.loc_prefix(decl)}duplicate declaration '{decl.name}'")
            if decl.type is VOID:
                raise ValidationError(f"{ast.loc_prefix(decl)}'{decl.name}' cannot be declared void")
            seen.add(decl.name)

    def _register_functions(self, functions: Iterable[ast.Function]) -> Dict[str, ast.Function]:
        table: Dict[str, ast.Function] = {}
        for fn in functions:
            if fn.name in table:
                raise ValidationError(f"{ast.loc_prefix(fn)}Function '{fn.name}' already defined")
            table[fn.name] = fn
        return table

    def _check_main(self, functions: FunctionTable) -> None:
        main = functions.get("main")
        if main is None:
            raise ValidationError("missing function 'main'")
        if main.return_type is not INT:
            raise ValidationError(f"{ast.loc_prefix(main)}'main' must return int, not {main.return_type}")
        if main.params:
            raise ValidationError(f"{ast.loc_prefix(main)}'main' must not take parameters")

    def _check_function(self, fn: ast.Function, globals_env: TypeEnv, functions: FunctionTable) -> TypeEnv:
        self._check_declarations((*fn.params, *fn.locals))
        returns: List[ast.Return] = [
            stmt for stmt in ast.walk_statements(fn.body) if isinstance(stmt, ast.Return)
        ]
        if fn.is_void and returns:
            raise ValidationError(f"{ast.loc_prefix(returns[0])}void function '{fn.name}' cannot return a value")
        if not fn.is_void and not returns:
            raise ValidationError(f"{ast.loc_prefix(fn)}function '{fn.name}' has no return statement")
        env = function_env(globals_env, fn)
        ctx = FunctionContext(function=fn, env=env, functions=functions)
        self._check_stmt(fn.body, ctx)
        logger.debug("validated function %s", fn.name)
        return env

    def _check_stmt(self, stmt: ast.Stmt, ctx: FunctionContext) -> None:
        if isinstance(stmt, ast.Skip):
            return
        if isinstance(stmt, ast.Block):
            for member in stmt.members:
                self._check_stmt(member, ctx)
            return
        if isinstance(stmt, ast.Assignment):
            target = stmt.target.ident
            target_type = ctx.env.lookup(target)
            if target_type is None:
                raise ValidationError(f"{ast.loc_prefix(stmt)}assignment to undeclared variable '{target}'")
            source_type = self._check_expr(stmt.source, ctx)
            if source_type is not target_type and (target_type, source_type) not in WIDENINGS:
                raise ValidationError(
                    f"{ast.loc_prefix(stmt)}cannot assign {source_type} to '{target}' of type {target_type}"
                )
            return
        if isinstance(stmt, ast.Conditional):
            test_type = self._check_expr(stmt.test, ctx)
            self._expect_type(test_type, BOOL, stmt, "if condition")
            self._check_stmt(stmt.then_branch, ctx)
            if stmt.else_branch is not None:
                self._check_stmt(stmt.else_branch, ctx)
            return
        if isinstance(stmt, ast.Loop):
            test_type = self._check_expr(stmt.test, ctx)
            self._expect_type(test_type, BOOL, stmt, "while condition")
            self._check_stmt(stmt.body, ctx)
            return
        if isinstance(stmt, ast.Print):
            if self._check_expr(stmt.expr, ctx) is VOID:
                raise ValidationError(f"{ast.loc_prefix(stmt)}cannot print a void value")
            return
        if isinstance(stmt, ast.CallStmt):
            self._check_call(stmt.callee, stmt.args, stmt, ctx)
            return
        if isinstance(stmt, ast.Return):
            owner = ctx.functions.get(stmt.function)
            if owner is None:
                raise ValidationError(f"{ast.loc_prefix(stmt)}return from unknown function '{stmt.function}'")
            if owner.name != ctx.function.name:
                raise ValidationError(
                    f"{ast.loc_prefix(stmt)}return for '{owner.name}' outside its function (in '{ctx.function.name}')"
                )
            result_type = self._check_expr(stmt.result, ctx)
            self._expect_type(result_type, owner.return_type, stmt, f"return value of '{owner.name}'")
            return
        raise ValidationError(f"{ast.loc_prefix(stmt)}Unsupported statement {stmt}")

    def _check_expr(self, expr: ast.Expr, ctx: FunctionContext) -> Type:
        if isinstance(expr, ast.Variable):
            ty = ctx.env.lookup(expr.ident)
            if ty is None:
                raise ValidationError(f"{ast.loc_prefix(expr)}undeclared variable '{expr.ident}'")
            return ty
        if isinstance(expr, ast.Literal):
            return expr.value.type
        if isinstance(expr, ast.Binary):
            return self._check_binary(expr, ctx)
        if isinstance(expr, ast.Unary):
            return self._check_unary(expr, ctx)
        if isinstance(expr, ast.CallExpr):
            return self._check_call(expr.callee, expr.args, expr, ctx)
        raise ValidationError(f"{ast.loc_prefix(expr)}Unsupported expression {expr}")

    def _check_binary(self, expr: ast.Binary, ctx: FunctionContext) -> Type:
        left = self._check_expr(expr.left, ctx)
        right = self._check_expr(expr.right, ctx)
        op = expr.op
        if op in ARITHMETIC_OPS:
            if left is not right or left not in _NUMERIC:
                raise ValidationError(f"{ast.loc_prefix(expr)}operator '{op}' not defined for {left} and {right}")
            return left
        if op in RELATIONAL_OPS:
            if left is not right or left not in _COMPARABLE:
                raise ValidationError(f"{ast.loc_prefix(expr)}operator '{op}' not defined for {left} and {right}")
            return BOOL
        if op in BOOLEAN_OPS:
            if left is not BOOL or right is not BOOL:
                raise ValidationError(f"{ast.loc_prefix(expr)}operator '{op}' expects bool operands, got {left} and {right}")
            return BOOL
        raise ValidationError(f"{ast.loc_prefix(expr)}Unsupported binary operator '{op}'")

    def _check_unary(self, expr: ast.Unary, ctx: FunctionContext) -> Type:
        operand = self._check_expr(expr.operand, ctx)
        op = expr.op
        if op is Op.NOT:
            self._expect_type(operand, BOOL, expr, "operand of '!'")
            return BOOL
        if op is Op.NEG:
            if operand not in _NUMERIC:
                raise ValidationError(f"{ast.loc_prefix(expr)}cannot negate a value of type {operand}")
            return operand
        if op in CAST_OPS:
            if operand not in CAST_SOURCES[op]:
                raise ValidationError(f"{ast.loc_prefix(expr)}cannot convert {operand} with '{op}'")
            return CAST_TARGETS[op]
        raise ValidationError(f"{ast.loc_prefix(expr)}Unsupported unary operator '{op}'")

    def _check_call(self, callee: str, args: Iterable[ast.Expr], node: object, ctx: FunctionContext) -> Type:
        fn = ctx.functions.get(callee)
        if fn is None:
            raise ValidationError(f"{ast.loc_prefix(node)}Unknown function '{callee}'")
        args = tuple(args)
        if len(args) != len(fn.params):
            raise ValidationError(f"{ast.loc_prefix(node)}'{callee}' expects {len(fn.params)} args, got {len(args)}")
        for arg, param in zip(args, fn.params):
            actual = self._check_expr(arg, ctx)
            if actual is not param.type:
                raise ValidationError(
                    f"{ast.loc_prefix(arg)}argument '{param.name}' of '{callee}' expects {param.type}, got {actual}"
                )
        return fn.return_type

    def _expect_type(self, actual: Type, expected: Type, node: object, what: str) -> None:
        if actual is not expected:
            raise ValidationError(f"{ast.loc_prefix(node)}{what} must be {expected}, got {actual}")


def validate(program: ast.Program) -> ValidatedProgram:
    return Validator().validate(program)
