from __future__ import annotations

import pytest

from cpplite import ast
from cpplite.parser import parse_program
from cpplite.types import BOOL, CHAR, FLOAT, INT, VOID, Op
from cpplite.validator import ValidationError, validate

from tests.builders import (
    assign,
    binary,
    call,
    call_stmt,
    decl,
    function,
    lit_bool,
    lit_char,
    lit_float,
    lit_int,
    main_fn,
    print_,
    program,
    ret,
    unary,
    var,
)


def _check(source: str):
    return validate(parse_program(source))


def _main_with(*stmts: ast.Stmt, globals=(), extra=()):
    return program(globals=globals, functions=(main_fn(*stmts), *extra))


def test_accepts_well_typed_program():
    validated = _check(
        """
        int x; float f; char c; bool b;
        int add(int a, int b) { return a + b; }
        void show(int v) { print v; }
        int main() {
            x = add(1, 2);
            f = x;
            c = 'q';
            x = c;
            b = x < 3 && f >= 1.0;
            if (b) show(x); else ;
            while (!b) b = true;
            return x;
        }
        """
    )
    assert validated.globals.lookup("f") is FLOAT
    assert set(validated.functions) == {"add", "show", "main"}


def test_duplicate_global_is_rejected():
    """Two globals sharing a name fail before anything else runs."""
    with pytest.raises(ValidationError, match="duplicate declaration 'x'"):
        _check("int x; float x; int main() { return 0; }")


def test_duplicate_between_param_and_local_is_rejected():
    with pytest.raises(ValidationError, match="duplicate declaration 'a'"):
        _check("int f(int a) { int a; return 1; } int main() { return 0; }")


def test_local_may_shadow_global():
    validated = _check("int x; int f(float x) { return 1; } int main() { return 0; }")
    assert validated.envs["f"].lookup("x") is FLOAT
    assert validated.globals.lookup("x") is INT


@pytest.mark.parametrize(
    "source",
    [
        "void v; int main() { return 0; }",
        "int main() { void v; return 0; }",
        "int f(void v) { return 1; } int main() { return 0; }",
    ],
)
def test_void_declarations_are_rejected(source):
    with pytest.raises(ValidationError, match="cannot be declared void"):
        _check(source)


def test_duplicate_function_is_rejected():
    with pytest.raises(ValidationError, match="already defined"):
        _check("int f() { return 1; } int f() { return 2; } int main() { return 0; }")


@pytest.mark.parametrize(
    "source, message",
    [
        ("int f() { return 1; }", "missing function 'main'"),
        ("void main() { }", "'main' must return int"),
        ("int main(int argc) { return 0; }", "'main' must not take parameters"),
    ],
)
def test_main_requirements(source, message):
    with pytest.raises(ValidationError, match=message):
        _check(source)


def test_undeclared_variable_reference():
    with pytest.raises(ValidationError, match="undeclared variable 'y'"):
        validate(_main_with(print_(var("y"))))


def test_assignment_to_undeclared_target():
    with pytest.raises(ValidationError, match="assignment to undeclared variable 'y'"):
        validate(_main_with(assign("y", lit_int(1))))


@pytest.mark.parametrize(
    "target_type, source",
    [
        (INT, lit_int(1)),
        (FLOAT, lit_float(1.0)),
        (FLOAT, lit_int(1)),
        (INT, lit_char("a")),
        (CHAR, lit_char("a")),
        (BOOL, lit_bool(True)),
    ],
)
def test_assignment_accepts_identity_and_widenings(target_type, source):
    validate(_main_with(assign("t", source), globals=(decl("t", target_type),)))


@pytest.mark.parametrize(
    "target_type, source",
    [
        (INT, lit_float(1.0)),
        (CHAR, lit_int(65)),
        (FLOAT, lit_char("a")),
        (BOOL, lit_int(1)),
        (INT, lit_bool(True)),
    ],
)
def test_assignment_rejects_other_conversions(target_type, source):
    with pytest.raises(ValidationError, match="cannot assign"):
        validate(_main_with(assign("t", source), globals=(decl("t", target_type),)))


def test_conditional_and_loop_tests_must_be_bool():
    with pytest.raises(ValidationError, match="if condition must be bool"):
        _check("int main() { if (1) ; return 0; }")
    with pytest.raises(ValidationError, match="while condition must be bool"):
        _check("int main() { while (1.0) ; return 0; }")


@pytest.mark.parametrize("op", [Op.PLUS, Op.MINUS, Op.TIMES, Op.DIV, Op.REM])
def test_arithmetic_requires_matching_numeric_operands(op):
    validate(_main_with(print_(binary(op, lit_int(1), lit_int(2)))))
    validate(_main_with(print_(binary(op, lit_float(1.0), lit_float(2.0)))))
    for left, right in [
        (lit_int(1), lit_float(2.0)),
        (lit_char("a"), lit_char("b")),
        (lit_bool(True), lit_bool(False)),
    ]:
        with pytest.raises(ValidationError, match="not defined for"):
            validate(_main_with(print_(binary(op, left, right))))


@pytest.mark.parametrize("op", [Op.LT, Op.LE, Op.EQ, Op.NE, Op.GT, Op.GE])
def test_relational_accepts_any_matching_scalar(op):
    for operand in (lit_int(1), lit_float(1.0), lit_char("a"), lit_bool(True)):
        validate(_main_with(print_(binary(op, operand, operand))))
    with pytest.raises(ValidationError, match="not defined for int and float"):
        validate(_main_with(print_(binary(op, lit_int(1), lit_float(1.0)))))


def test_relational_result_is_bool():
    program_ = _main_with(assign("b", binary(Op.LT, lit_int(1), lit_int(2))), globals=(decl("b", BOOL),))
    validate(program_)


@pytest.mark.parametrize("op", [Op.AND, Op.OR])
def test_boolean_operators_require_bool(op):
    validate(_main_with(print_(binary(op, lit_bool(True), lit_bool(False)))))
    with pytest.raises(ValidationError, match="expects bool operands"):
        validate(_main_with(print_(binary(op, lit_bool(True), lit_int(1)))))


def test_unary_operators():
    validate(_main_with(print_(unary(Op.NOT, lit_bool(True)))))
    validate(_main_with(print_(unary(Op.NEG, lit_int(1)))))
    validate(_main_with(print_(unary(Op.NEG, lit_float(1.0)))))
    with pytest.raises(ValidationError, match="operand of '!' must be bool"):
        validate(_main_with(print_(unary(Op.NOT, lit_int(1)))))
    with pytest.raises(ValidationError, match="cannot negate"):
        validate(_main_with(print_(unary(Op.NEG, lit_char("a")))))


@pytest.mark.parametrize(
    "op, operand, result",
    [
        (Op.TO_INT, lit_float(1.5), INT),
        (Op.TO_INT, lit_char("a"), INT),
        (Op.TO_FLOAT, lit_int(1), FLOAT),
        (Op.TO_CHAR, lit_int(65), CHAR),
    ],
)
def test_casts_accept_their_source_types(op, operand, result):
    validate(_main_with(assign("t", unary(op, operand)), globals=(decl("t", result),)))


@pytest.mark.parametrize(
    "op, operand",
    [
        (Op.TO_INT, lit_int(1)),
        (Op.TO_INT, lit_bool(True)),
        (Op.TO_FLOAT, lit_float(1.0)),
        (Op.TO_FLOAT, lit_char("a")),
        (Op.TO_CHAR, lit_char("a")),
        (Op.TO_CHAR, lit_float(1.0)),
    ],
)
def test_casts_reject_other_source_types(op, operand):
    with pytest.raises(ValidationError, match="cannot convert"):
        validate(_main_with(print_(unary(op, operand))))


def test_call_checks():
    add = function("add", INT, [ret("add", binary(Op.PLUS, var("a"), var("b")))],
                   params=[decl("a", INT), decl("b", INT)])
    validate(_main_with(print_(call("add", lit_int(1), lit_int(2))), extra=(add,)))
    with pytest.raises(ValidationError, match="Unknown function 'nope'"):
        validate(_main_with(call_stmt("nope")))
    with pytest.raises(ValidationError, match="expects 2 args, got 1"):
        validate(_main_with(print_(call("add", lit_int(1))), extra=(add,)))
    with pytest.raises(ValidationError, match="argument 'b' of 'add' expects int, got float"):
        validate(_main_with(print_(call("add", lit_int(1), lit_float(2.0))), extra=(add,)))


def test_call_arguments_do_not_widen():
    with pytest.raises(ValidationError, match="expects float, got int"):
        _check("int f(float x) { return 1; } int main() { return f(1); }")


def test_return_type_must_match():
    with pytest.raises(ValidationError, match="return value of 'main' must be int, got float"):
        _check("int main() { return 1.0; }")


def test_return_from_unknown_function():
    with pytest.raises(ValidationError, match="return from unknown function 'ghost'"):
        validate(program(functions=[function("main", INT, [ret("ghost", lit_int(0))])]))


def test_return_owned_by_other_function():
    helper = function("helper", INT, [ret("helper", lit_int(1))])
    main = function("main", INT, [ret("helper", lit_int(0))])
    with pytest.raises(ValidationError, match="outside its function"):
        validate(program(functions=[helper, main]))


def test_void_function_must_not_return():
    with pytest.raises(ValidationError, match="void function 'f' cannot return"):
        validate(
            program(
                functions=[
                    function("f", VOID, [ret("f", lit_int(1))]),
                    main_fn(),
                ]
            )
        )


def test_non_void_function_needs_a_return_somewhere():
    with pytest.raises(ValidationError, match="has no return statement"):
        _check("int f() { print 1; } int main() { return 0; }")


def test_return_existence_check_is_flat():
    """A return nested in a branch is enough, even if other paths fall off the end."""
    _check("int f(bool b) { if (b) { while (b) return 1; } } int main() { return 0; }")


def test_void_call_cannot_be_used_as_a_value():
    source = "void g() { } int x; int main() { %s return 0; }"
    with pytest.raises(ValidationError, match="cannot print a void value"):
        _check(source % "print g();")
    with pytest.raises(ValidationError, match="cannot assign void"):
        _check(source % "x = g();")
    _check(source % "g();")


def test_messages_carry_source_positions():
    with pytest.raises(ValidationError) as excinfo:
        _check("int main() {\n  print y;\n  return 0;\n}")
    assert str(excinfo.value).startswith("2:9: ")


def test_validation_is_idempotent():
    prog = parse_program("int x; int f(char x) { return 1; } int main() { x = f('a'); return x; }")
    first = validate(prog)
    second = validate(prog)
    assert first.globals == second.globals
    assert first.envs == second.envs
    bad = parse_program("int x; int x; int main() { return 0; }")
    for _ in range(2):
        with pytest.raises(ValidationError):
            validate(bad)
