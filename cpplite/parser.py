from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from lark import Lark, Token, Tree

from .ast import (
    Assignment,
    Binary,
    Block,
    CallExpr,
    CallStmt,
    Conditional,
    Declaration,
    Expr,
    Function,
    Literal,
    Located,
    Loop,
    Print,
    Program,
    Return,
    Skip,
    Stmt,
    Unary,
    Variable,
    loc_prefix,
)
from .runtime.values import INT_MAX, bool_value, char_value, float_value, int_value
from .types import BINARY_OPS, Op, Type, resolve_type

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    start="program",
    propagate_positions=True,
    maybe_placeholders=False,
)

_BINARY_OPS = {op.value: op for op in BINARY_OPS}

_CASTS = {
    "int": Op.TO_INT,
    "float": Op.TO_FLOAT,
    "char": Op.TO_CHAR,
}

class ParseError(ValueError):
    """Well-formed input that still cannot become an AST, e.g. an oversized literal."""


_CHAR_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\x00",
    "\\": "\\",
    "'": "'",
}


def parse_program(source: str) -> Program:
    tree = _PARSER.parse(source)
    return _build_program(tree)


def _build_program(tree: Tree) -> Program:
    globals_: List[Declaration] = []
    functions: List[Function] = []
    for child in tree.children:
        if not isinstance(child, Tree):
            continue
        kind = _name(child)
        if kind == "declaration":
            globals_.extend(_build_declaration(child))
        elif kind == "function":
            functions.append(_build_function(child))
    return Program(globals=tuple(globals_), functions=tuple(functions))


def _build_declaration(tree: Tree) -> List[Declaration]:
    type_node = tree.children[0]
    ty = _build_type(type_node)
    return [
        Declaration(name=token.value, type=ty, loc=_loc_from_token(token))
        for token in tree.children[1:]
        if isinstance(token, Token) and token.type == "NAME"
    ]


def _build_type(tree: Tree) -> Type:
    token = tree.children[0]
    return resolve_type(token.value)


def _build_function(tree: Tree) -> Function:
    type_node, name_token, params_node, locals_node, stmts_node = tree.children
    name = name_token.value
    params = tuple(_build_param(p) for p in params_node.children if isinstance(p, Tree))
    locals_: List[Declaration] = []
    for decl in locals_node.children:
        locals_.extend(_build_declaration(decl))
    members = tuple(_build_stmt(child, name) for child in stmts_node.children)
    return Function(
        name=name,
        return_type=_build_type(type_node),
        params=params,
        locals=tuple(locals_),
        body=Block(members=members, loc=_loc(stmts_node)),
        loc=_loc_from_token(name_token),
    )


def _build_param(tree: Tree) -> Declaration:
    type_node, name_token = tree.children
    return Declaration(name=name_token.value, type=_build_type(type_node), loc=_loc_from_token(name_token))


def _build_stmt(tree: Tree, fn_name: str) -> Stmt:
    """Build one statement; `fn_name` is the enclosing function, stamped on returns."""
    kind = _name(tree)
    loc = _loc(tree)
    if kind == "skip_stmt":
        return Skip(loc=loc)
    if kind == "block":
        return Block(members=tuple(_build_stmt(child, fn_name) for child in tree.children), loc=loc)
    if kind == "assign_stmt":
        name_token, value_node = tree.children
        target = Variable(ident=name_token.value, loc=_loc_from_token(name_token))
        return Assignment(target=target, source=_build_expr(value_node), loc=loc)
    if kind == "call_stmt":
        name_token, args_node = tree.children
        return CallStmt(callee=name_token.value, args=_build_args(args_node), loc=loc)
    if kind == "if_stmt":
        test = _build_expr(tree.children[0])
        then_branch = _build_stmt(tree.children[1], fn_name)
        else_branch = None
        if len(tree.children) > 2:
            else_branch = _build_stmt(tree.children[2], fn_name)
        return Conditional(test=test, then_branch=then_branch, else_branch=else_branch, loc=loc)
    if kind == "while_stmt":
        test_node, body_node = tree.children
        return Loop(test=_build_expr(test_node), body=_build_stmt(body_node, fn_name), loc=loc)
    if kind == "print_stmt":
        return Print(expr=_build_expr(tree.children[0]), loc=loc)
    if kind == "return_stmt":
        return Return(function=fn_name, result=_build_expr(tree.children[0]), loc=loc)
    raise ValueError(f"Unsupported statement node: {kind}")


def _build_args(tree: Tree) -> Tuple[Expr, ...]:
    return tuple(_build_expr(child) for child in tree.children if isinstance(child, Tree))


def _build_expr(node) -> Expr:
    if isinstance(node, Tree):
        name = _name(node)
    else:
        raise TypeError(f"Unexpected node type: {type(node)}")

    if name == "logic_or":
        return _fold_chain(node, "logic_or_tail")
    if name == "logic_and":
        return _fold_chain(node, "logic_and_tail")
    if name == "equality":
        return _fold_chain(node, "equality_tail")
    if name == "comparison":
        return _fold_chain(node, "comparison_tail")
    if name == "sum":
        return _fold_chain(node, "sum_tail")
    if name == "term":
        return _fold_chain(node, "term_tail")
    if name == "neg":
        return Unary(op=Op.NEG, operand=_build_expr(node.children[1]), loc=_loc(node))
    if name == "not_op":
        return Unary(op=Op.NOT, operand=_build_expr(node.children[1]), loc=_loc(node))
    if name == "cast":
        cast_node, operand = node.children
        op = _CASTS[cast_node.children[0].value]
        return Unary(op=op, operand=_build_expr(operand), loc=_loc(node))
    if name == "call":
        name_token, args_node = node.children
        return CallExpr(callee=name_token.value, args=_build_args(args_node), loc=_loc(node))
    if name == "var":
        return Variable(ident=node.children[0].value, loc=_loc(node))
    if name == "int_lit":
        return _build_int_literal(node)
    if name == "float_lit":
        return Literal(value=float_value(float(node.children[0].value)), loc=_loc(node))
    if name == "char_lit":
        return Literal(value=char_value(_decode_char(node.children[0].value)), loc=_loc(node))
    if name == "true_lit":
        return Literal(value=bool_value(True), loc=_loc(node))
    if name == "false_lit":
        return Literal(value=bool_value(False), loc=_loc(node))
    raise ValueError(f"Unsupported expression node: {name}")


def _build_int_literal(node: Tree) -> Literal:
    # Literals are unsigned; -2147483648 has to be written as an expression.
    text = node.children[0].value
    literal = Literal(value=int_value(int(text)), loc=_loc(node))
    if int(text) > INT_MAX:
        raise ParseError(f"{loc_prefix(literal)}integer literal {text} is out of range")
    return literal


def _decode_char(raw: str) -> str:
    body = raw[1:-1]
    if body.startswith("\\"):
        escaped = body[1]
        if escaped not in _CHAR_ESCAPES:
            raise ValueError(f"Unknown character escape {raw}")
        return _CHAR_ESCAPES[escaped]
    return body


def _fold_chain(tree: Tree, tail_name: str) -> Expr:
    child_nodes = [child for child in tree.children if isinstance(child, Tree)]
    result = _build_expr(child_nodes[0])
    for child in child_nodes[1:]:
        if _name(child) != tail_name:
            continue
        result = _binary_tail(result, child)
    return result


def _binary_tail(left: Expr, tail: Tree) -> Expr:
    op_token = tail.children[0]
    right = _build_expr(tail.children[1])
    return Binary(op=_BINARY_OPS[op_token.value], left=left, right=right, loc=_loc_from_token(op_token))


def _loc(tree: Tree) -> Located:
    meta = tree.meta
    return Located(line=getattr(meta, "line", 0), column=getattr(meta, "column", 0))


def _loc_from_token(token: Token) -> Located:
    return Located(line=token.line, column=token.column)


def _name(node: Tree | Token) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    if isinstance(node, Token):
        return node.type
    return str(node)
