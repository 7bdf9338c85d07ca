"""FAIL parser tests: data-driven accept/reject suites plus AST shape checks."""

from pathlib import Path

import pytest

from conftest import discover_tests
from ramfail.diagnostics import (
    E_CONDITION_MUST_RETURN_BOOLEAN,
    KIND_SEMANTIC,
    KIND_TYPE,
    ParseError,
    RamfailError,
    TypeCheckError,
)
from ramfail.fail import parse_source
from ramfail.fail.ast import (
    ArgumentDefinition,
    Array,
    ArrayAccessor,
    Assignment,
    BinaryOperation,
    Body,
    ElementType,
    FunctionCall,
    FunctionDeclaration,
    Identifier,
    If,
    Number,
    Scope,
    TypeInitialization,
    While,
    walk,
)

PARSE_DIR = Path(__file__).parent / "02_parse"


def pytest_generate_tests(metafunc):
    """Parametrize tests over parse test files."""
    if "parse_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in discover_tests(PARSE_DIR)
        ]
        metafunc.parametrize("parse_input,parse_expected", params)


def test_parse(parse_input: str, parse_expected: str):
    """Verify parser accepts or rejects with the expected message."""
    if parse_expected == "ok":
        parse_source(parse_input)
        return
    assert parse_expected.startswith("error:"), f"Unknown expected format: {parse_expected}"
    expected_msg = parse_expected[6:].strip()
    with pytest.raises(RamfailError) as info:
        parse_source(parse_input)
    assert expected_msg.lower() in str(info.value).lower()


def only(source: str):
    scope = parse_source(source)
    return scope.statements[-1]


# ── Expressions ────────────────────────────────────────────


def test_dot_binds_tighter_than_stroke():
    decl = only("int x = 1 + 2 * 3;")
    expr = decl.expr
    assert isinstance(expr, BinaryOperation)
    assert expr.operator == "+"
    assert expr.left == Number(None, 1)
    assert isinstance(expr.right, BinaryOperation) and expr.right.operator == "*"


def test_test_level_is_outermost():
    expr = only("bool b = 1 + 2 > 3 * 4;").expr
    assert expr.operator == ">"
    assert expr.left.operator == "+"
    assert expr.right.operator == "*"


def test_left_associative():
    expr = only("int x = 10 - 3 - 2;").expr
    assert expr.operator == "-"
    assert isinstance(expr.left, BinaryOperation)
    assert str(expr.left) == "10 - 3"
    assert expr.right == Number(None, 2)
    assert str(expr) == "10 - 3 - 2"


def test_parentheses_group():
    expr = only("int x = 10 - (3 - 2);").expr
    assert expr.left == Number(None, 10)
    assert str(expr) == "10 - (3 - 2)"
    assert str(only("int y = (1 + 2) * 3;").expr) == "(1 + 2) * 3"


def test_comparison_chain_is_left_associative():
    expr = only("bool b = 1 < 2 == 1;").expr
    assert expr.operator == "=="
    assert expr.left.operator == "<"


# ── Declarations and identifiers ───────────────────────────


def test_declaration_types():
    scope = parse_source("int a = 1; bool b = 1 < 2; var c = 3;")
    types = [s.target.type for s in scope.statements]
    assert types[0] == ElementType(None, "int")
    assert types[1] == ElementType(None, "bool")
    assert types[2] is None
    assert all(s.is_initial for s in scope.statements)


def test_array_declaration_takes_initializer_type():
    decl = only("var a = new int[4];")
    assert isinstance(decl.expr, TypeInitialization)
    assert decl.target.type.is_array
    assert decl.target.type.name == Array(None, ElementType(None, "int"), 4)
    assert str(decl) == "int[4] a = new int[4]"


def test_references_link_to_declaration():
    scope = parse_source("int x = 1; x = x + 1;")
    decl, assign = scope.statements
    assert assign.target.declaration is decl.target
    assert assign.expr.left.declaration is decl.target
    assert not assign.is_initial


def test_inner_declaration_shadows_outer():
    scope = parse_source("int x = 1; { int x = 2; x = 3; } x = 4;")
    outer, block, after = scope.statements
    inner_decl, inner_assign = block.scope.statements
    assert inner_assign.target.declaration is inner_decl.target
    assert after.target.declaration is outer.target


def test_parameters_shadow_globals():
    scope = parse_source("int n = 1; fn f(int n) { n = 2; }")
    fn = scope.statements[1]
    assign = fn.body.scope.statements[0]
    assert assign.target.declaration is fn.parameters[0].identifier


def test_self_assignment_desugars():
    assign = only("int x = 1; x *= 3 + 1;")
    assert assign.target.name == "x"
    assert assign.expr.operator == "*"
    assert assign.expr.left is assign.target
    assert str(assign) == "x = x * (3 + 1)"


def test_increment_desugars():
    assert str(only("int x = 1; x++;")) == "x = x + 1"
    assert str(only("int x = 1; x--;")) == "x = x - 1"


def test_element_write():
    assign = only("int a = new int[3]; a[1 + 1] = 7;")
    assert isinstance(assign.target, ArrayAccessor)
    assert str(assign.target.index) == "1 + 1"
    assert str(assign) == "a[1 + 1] = 7"


# ── Control flow ───────────────────────────────────────────


def test_single_statement_body_gets_own_scope():
    scope = parse_source("int x = 1; if (x > 0) x = 2;")
    stmt = scope.statements[1]
    assert isinstance(stmt, If)
    assert isinstance(stmt.body, Body)
    assert len(stmt.body.scope.statements) == 1
    assert stmt.body.scope.shared_scopes == [scope]
    assert stmt.else_body is None


def test_else_if_nests_in_else_body():
    stmt = only("int x = 1; if (x < 1) x = 0; else if (x < 2) x = 1; else x = 2;")
    nested = stmt.else_body.scope.statements[0]
    assert isinstance(nested, If)
    assert nested.else_body is not None
    assert str(stmt) == "if (x < 1) { x = 0 } else { if (x < 2) { x = 1 } else { x = 2 } }"


def test_while_body():
    stmt = only("int i = 0; while (i < 3) { i++; }")
    assert isinstance(stmt, While)
    assert str(stmt.condition) == "i < 3"
    assert len(stmt.body.scope.statements) == 1


def test_condition_error_is_type_error():
    with pytest.raises(TypeCheckError) as info:
        parse_source("int x = 1;\nwhile (x) { }")
    err = info.value
    assert err.kind == KIND_TYPE
    assert err.code == E_CONDITION_MUST_RETURN_BOOLEAN
    assert (err.line, err.col) == (2, 8)


# ── Functions ──────────────────────────────────────────────


def test_function_declaration_shape():
    fn = only("fn add(int a, bool b) -> int { return a; }")
    assert isinstance(fn, FunctionDeclaration)
    assert fn.name == "add"
    assert [str(p) for p in fn.parameters] == ["int a", "bool b"]
    assert all(isinstance(p, ArgumentDefinition) for p in fn.parameters)
    assert fn.return_type == ElementType(None, "int")
    assert str(fn) == "fn add(int a, bool b) -> int { return a }"


def test_function_scopes_chain_to_enclosing():
    scope = parse_source("int g = 1; fn f(int a) { a = g; }")
    fn = scope.statements[1]
    assert fn.arguments.shared_scopes == [scope]
    assert fn.body.scope.shared_scopes == [fn.arguments]
    assign = fn.body.scope.statements[0]
    assert assign.expr.declaration is scope.statements[0].target


def test_call_arguments_scope():
    call = only("fn f(int a, int b) { } f(1, 2 + 3);")
    assert isinstance(call, FunctionCall)
    assert call.name == "f"
    assert [str(a) for a in call.arguments.statements] == ["1", "2 + 3"]
    assert call.resolved_function is None


def test_calls_inside_expressions():
    decl = only("fn f(int a) -> int { return a; } int x = f(1) + f(f(2));")
    calls = [n for n in walk(Scope([decl])) if isinstance(n, FunctionCall)]
    assert [str(c) for c in calls] == ["f(1)", "f(f(2))", "f(2)"]


def test_semantic_errors_carry_kind():
    with pytest.raises(ParseError) as info:
        parse_source("y = 1;")
    assert info.value.kind == KIND_SEMANTIC
    assert info.value.token.raw == "y"


def test_walk_visits_nested_nodes():
    scope = parse_source("int x = 1; while (x < 3) { if (x == 2) { x = 5; } x++; }")
    kinds = [type(n).__name__ for n in walk(scope)]
    assert kinds.count("Assignment") == 3
    assert kinds.count("If") == 1
    assert kinds[0] == "Assignment"
    identifiers = [n for n in walk(scope) if isinstance(n, Identifier)]
    assert all(n.declared is scope.statements[0].target for n in identifiers)
