from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple, Union

from .runtime.values import Value
from .types import VOID, Op, Type, TypedOp


@dataclass(frozen=True)
class Located:
    line: int
    column: int

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return f"{self.line}:{self.column}"


NOWHERE = Located(line=0, column=0)


def loc_prefix(node: object) -> str:
    """`line:column: ` for a positioned node, empty when it has no position."""
    loc = getattr(node, "loc", NOWHERE)
    if loc == NOWHERE:
        return ""
    return f"{loc.line}:{loc.column}: "


def _loc_field() -> Located:
    return field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True)
class Declaration:
    name: str
    type: Type
    loc: Located = _loc_field()


Declarations = Tuple[Declaration, ...]


class Stmt:
    loc: Located


class Expr:
    loc: Located


Operator = Union[Op, TypedOp]


# Expressions


@dataclass(frozen=True)
class Variable(Expr):
    ident: str
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Literal(Expr):
    value: Value
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Binary(Expr):
    op: Operator
    left: Expr
    right: Expr
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Unary(Expr):
    op: Operator
    operand: Expr
    loc: Located = _loc_field()


@dataclass(frozen=True)
class CallExpr(Expr):
    callee: str
    args: Tuple[Expr, ...] = ()
    loc: Located = _loc_field()


# Statements


@dataclass(frozen=True)
class Skip(Stmt):
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Block(Stmt):
    members: Tuple[Stmt, ...] = ()
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Assignment(Stmt):
    target: Variable
    source: Expr
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Conditional(Stmt):
    test: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt] = None
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Loop(Stmt):
    test: Expr
    body: Stmt
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Print(Stmt):
    expr: Expr
    loc: Located = _loc_field()


@dataclass(frozen=True)
class CallStmt(Stmt):
    callee: str
    args: Tuple[Expr, ...] = ()
    loc: Located = _loc_field()


@dataclass(frozen=True)
class Return(Stmt):
    function: str
    result: Expr
    loc: Located = _loc_field()


# Top level


@dataclass(frozen=True)
class Function:
    name: str
    return_type: Type
    params: Declarations = ()
    locals: Declarations = ()
    body: Block = Block()
    loc: Located = _loc_field()

    @property
    def is_void(self) -> bool:
        return self.return_type is VOID


@dataclass(frozen=True)
class Program:
    globals: Declarations = ()
    functions: Tuple[Function, ...] = ()

    def function(self, name: str) -> Optional[Function]:
        for fn in self.functions:
            if fn.name == name:
                return fn
        return None


def walk_statements(stmt: Stmt) -> Iterator[Stmt]:
    """Yield `stmt` and every statement nested inside it, depth first."""
    stack = [stmt]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, Block):
            stack.extend(reversed(current.members))
        elif isinstance(current, Conditional):
            if current.else_branch is not None:
                stack.append(current.else_branch)
            stack.append(current.then_branch)
        elif isinstance(current, Loop):
            stack.append(current.body)
