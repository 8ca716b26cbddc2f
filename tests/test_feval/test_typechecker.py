import pytest

from feval import abstract_syntax as ast, type_checker
from feval.bindings import Bindings
from feval.parser import parse_expr
from feval.recursion import Failed, Ok
from feval.translate import translate
from feval.type_checker import (
    Arrow,
    Bool,
    Int,
    ListType,
    NotClosed,
    Var,
    close,
    equation,
    infer,
    is_inconsistent,
    resolve,
    typecheck,
)


def check(src: str) -> type_checker.Type:
    return typecheck(translate(parse_expr(src)))


def equations_of(src: str):
    result = infer(translate(parse_expr(src)))
    assert isinstance(result, Ok)
    return result.value[1]


def test_literals():
    assert check("42") == Int()
    assert check("true") == Bool()


def test_operators():
    assert check("1 + 2 * 3") == Int()
    assert check("1 < 2") == Bool()
    assert check("1 <= 2") == Bool()
    assert check("true && not false") == Bool()


def test_function_with_inferred_argument():
    assert check("fun x -> x + 5") == Arrow(Int(), Int())
    assert str(check("fun x -> x + 5")) == "(Int -> Int)"


def test_identity_stays_polymorphic():
    assert check("fun x -> x") == Arrow(Var(0), Var(0))
    assert str(check("fun x -> x")) == "(t0 -> t0)"


def test_application():
    assert check("(fun x -> x + 5) 10") == Int()
    assert check("(fun f -> f 1) (fun x -> x < 2)") == Bool()


def test_higher_order_function():
    assert check("fun f -> fun x -> f (f x)") == Arrow(
        Arrow(Var(1), Var(1)), Arrow(Var(1), Var(1))
    )


def test_type_mismatch():
    with pytest.raises(type_checker.InconsistentTypes) as exc_info:
        check("4 + true")
    assert {exc_info.value.left, exc_info.value.right} == {Int(), Bool()}


def test_applying_a_non_function():
    with pytest.raises(type_checker.InconsistentTypes):
        check("1 2")


def test_free_variable():
    with pytest.raises(type_checker.FreeVariableError):
        check("fun x -> y")


def test_type_errors_are_type_errors():
    with pytest.raises(TypeError):
        check("true + 1")


def test_infinite_type():
    with pytest.raises(type_checker.InfiniteType):
        check("fun x -> x x")


def test_unknown_operator_is_uncheckable():
    with pytest.raises(type_checker.UncheckableExpression):
        typecheck(parse_expr("1 <= 2"))


def test_conditional():
    assert check("if true then 1 else 2") == Int()

    with pytest.raises(type_checker.InconsistentTypes):
        check("if 1 then 1 else 2")

    with pytest.raises(type_checker.InconsistentTypes):
        check("if true then 1 else false")


def test_let():
    assert check("let x = 5 in x + 1") == Int()
    assert check("let f = fun x -> x + 1 in f 2") == Int()


def test_recursive_let():
    src = "let fact n = if n == 0 then 1 else n * fact (n - 1) in fact"
    assert check(src) == Arrow(Int(), Int())


def test_lists():
    assert check("[1, 2]") == ListType(Int())
    assert check("[]") == ListType(Var(0))
    assert check("case [true] of [] -> false | h :: t -> h") == Bool()
    assert check("fun xs -> case xs of [] -> 0 | h :: t -> h + 1") == Arrow(
        ListType(Int()), Int()
    )

    with pytest.raises(type_checker.InconsistentTypes):
        check("[1, true]")

    with pytest.raises(type_checker.InconsistentTypes):
        check("1 :: 2")


def test_recursive_list_function():
    src = "let length xs = case xs of [] -> 0 | y :: ys -> 1 + length ys in length [true]"
    assert check(src) == Int()


def test_hypotheses_lookup_returns_innermost_binding():
    hyps = Bindings().extend("x", Int()).extend("y", Bool()).extend("x", Bool())
    assert hyps.lookup("x") == Bool()
    assert hyps.lookup("y") == Bool()
    assert hyps.lookup("z") is None
    assert list(hyps) == [("x", Bool()), ("y", Bool()), ("x", Int())]


def test_infer_under_hypotheses():
    result = infer(ast.var("x"), Bindings().extend("x", Int()))
    assert result == Ok((Int(), frozenset()))


def test_free_variable_equation():
    result = infer(ast.var("x"))
    assert result == Ok((NotClosed(), frozenset([(NotClosed(), NotClosed())])))


def test_handles_are_issued_in_traversal_order():
    ty, _ = infer(parse_expr("fun x -> fun y -> x")).value
    assert ty == Arrow(Var(0), Arrow(Var(1), Var(0)))

    ty, _ = infer(parse_expr("(fun x -> x) (fun y -> y)")).value
    assert ty == Var(0)


def test_equations_are_symmetric():
    for src in ["fun x -> x + 5", "(fun f -> f 1) (fun x -> x)", "[1] :: []"]:
        eqs = equations_of(src)
        assert all((b, a) in eqs for a, b in eqs)
        closed = close(eqs)
        assert all((b, a) in closed for a, b in closed)


def test_closure_is_idempotent():
    for src in ["fun x -> x + 5", "fun f -> fun x -> f (f x)", "4 + true"]:
        closed = close(equations_of(src))
        assert close(closed) == closed


def test_closure_transitivity():
    eqs = equation(Var(0), Var(1)) | equation(Var(1), Int())
    assert (Var(0), Int()) in close(eqs)
    assert (Int(), Var(0)) in close(eqs)


def test_closure_decomposes_arrows():
    eqs = equation(Arrow(Var(0), Var(1)), Arrow(Int(), Bool()))
    closed = close(eqs)
    assert (Var(0), Int()) in closed
    assert (Bool(), Var(1)) in closed


def test_inconsistency_patterns():
    assert is_inconsistent(equation(Int(), Bool()))
    assert is_inconsistent(equation(Int(), Arrow(Int(), Int())))
    assert is_inconsistent(equation(Bool(), Arrow(Int(), Int())))
    assert is_inconsistent(equation(NotClosed(), Var(0)))
    assert is_inconsistent(equation(ListType(Int()), Int()))
    assert not is_inconsistent(equation(Var(0), Arrow(Int(), Int())))
    assert not is_inconsistent(equation(Int(), Int()))


def test_resolve_prefers_lowest_variable():
    eqs = close(equation(Var(3), Var(1)) | equation(Var(1), Var(2)))
    assert resolve(Var(3), eqs) == Var(1)
    assert resolve(Var(2), eqs) == Var(1)
    assert resolve(Var(1), eqs) == Var(1)


def test_resolve_prefers_concrete_types():
    eqs = close(equation(Var(3), Var(1)) | equation(Var(3), Int()))
    assert resolve(Var(1), eqs) == Int()
    assert resolve(Int(), eqs) == Int()


def test_resolve_structured_types():
    eqs = close(equation(Var(0), Arrow(Var(1), Var(2))) | equation(Var(2), Bool()))
    assert resolve(Var(0), eqs) == Arrow(Var(1), Bool())
    assert resolve(ListType(Var(2)), eqs) == ListType(Bool())


def test_uncheckable_result_is_failed():
    assert isinstance(infer(parse_expr("1 > 2")), Failed)
