from __future__ import annotations

import dataclasses
import logging
from typing import Any

from feval import abstract_syntax as ast
from feval.printer import show_expr
from feval.recursion import (
    Failed,
    Failure,
    Ok,
    Result,
    Thunk,
    combine,
    fold_failable_lazy,
)

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Function:
    """A closure without environment: free names are resolved by substitution."""

    param: str
    body: ast.Fix


@dataclasses.dataclass
class EvalError(Exception):
    kind: Failure
    detail: str

    def __str__(self):
        return f"{self.kind.value}: {self.detail}"


def evaluate(expr: ast.Fix) -> Any:
    match reduce(expr):
        case Ok(value):
            logger.debug("Value: %s", show_value(value))
            return value
        case Failed(kind, detail):
            raise EvalError(kind, detail)


def reduce(expr: ast.Fix) -> Result:
    return fold_failable_lazy(evaluation_rule, expr)


def evaluation_rule(node: ast.Node) -> Result:
    match node:
        case ast.IntLiteral(value) | ast.BoolLiteral(value):
            return Ok(value)
        case ast.Variable(name):
            return Failed(Failure.FREE_VARIABLE, name)
        case ast.BinaryOp(op, left, right):
            return combine(lambda a, b: apply_operator(op, a, b), left, right)
        case ast.Not(operand):
            return operand.bind(negate)
        case ast.Function(param, body):
            return Ok(Function(param, body.tree))
        case ast.Apply(callee, argument):
            return callee.force().bind(lambda fun: apply_function(fun, argument))
        case ast.Let(name, bound, body):
            return reduce(unroll(name, bound.tree)).bind(
                lambda val: reduce(ast.substitute(body.tree, name, as_tree(val)))
            )
        case ast.If(condition, consequence, alternative):
            return condition.bind(
                lambda cond: choose(cond, consequence, alternative)
            )
        case ast.Nil():
            return Ok(())
        case ast.Cons(head, tail):
            return combine(cons, head, tail)
        case ast.Case(scrutinee, on_nil, head, tail, on_cons):
            return scrutinee.bind(
                lambda xs: match_list(xs, on_nil, head, tail, on_cons)
            )
        case _:
            return Failed(Failure.UNEVALUABLE, type(node).__name__)


def apply_operator(op: str, a: Any, b: Any) -> Result:
    match op:
        case "&&" | "||":
            if not (is_bool(a) and is_bool(b)):
                return mismatch(op, a, b)
            return Ok(a and b if op == "&&" else a or b)
        case "+" | "-" | "*" | "/" | "==" | "<":
            if not (is_int(a) and is_int(b)):
                return mismatch(op, a, b)
        case _:
            return Failed(Failure.UNEVALUABLE, f"unknown operator {op}")

    match op:
        case "+":
            return Ok(a + b)
        case "-":
            return Ok(a - b)
        case "*":
            return Ok(a * b)
        case "/":
            if b == 0:
                return Failed(Failure.UNEVALUABLE, "division by zero")
            return Ok(a // b)
        case "==":
            return Ok(a == b)
        case "<":
            return Ok(a < b)


def negate(x: Any) -> Result:
    if not is_bool(x):
        return Failed(Failure.TYPE_MISMATCH, f"not {show_value(x)}")
    return Ok(not x)


def apply_function(fun: Any, argument: Thunk) -> Result:
    if not isinstance(fun, Function):
        return Failed(Failure.TYPE_MISMATCH, f"cannot apply {show_value(fun)}")
    return argument.force().bind(
        lambda arg: reduce(ast.substitute(fun.body, fun.param, as_tree(arg)))
    )


def unroll(name: str, bound: ast.Fix) -> ast.Fix:
    """Replace self references in a let-bound expression by the let itself.

    Every unrolled application meets another `let name = bound in name` and
    unrolls once more, which is how recursive definitions evaluate.
    """
    return ast.substitute(
        bound, name, lambda: ast.let(name, ast.fresh_copy(bound), ast.var(name))
    )


def choose(cond: Any, consequence: Thunk, alternative: Thunk) -> Result:
    if not is_bool(cond):
        return Failed(Failure.TYPE_MISMATCH, f"if {show_value(cond)}")
    if cond:
        return consequence.force()
    return alternative.force()


def cons(head: Any, tail: Any) -> Result:
    if not isinstance(tail, tuple):
        return Failed(Failure.TYPE_MISMATCH, f"{show_value(tail)} is not a list")
    return Ok((head,) + tail)


def match_list(
    xs: Any, on_nil: Thunk, head: str, tail: str, on_cons: Thunk
) -> Result:
    if not isinstance(xs, tuple):
        return Failed(Failure.TYPE_MISMATCH, f"{show_value(xs)} is not a list")
    if not xs:
        return on_nil.force()
    body = ast.substitute(on_cons.tree, head, as_tree(xs[0]))
    body = ast.substitute(body, tail, as_tree(xs[1:]))
    return reduce(body)


def as_tree(value: Any):
    return lambda: value_to_tree(value)


def value_to_tree(value: Any) -> ast.Fix:
    match value:
        case bool():
            return ast.Fix(ast.BoolLiteral(value))
        case int():
            return ast.int_lit(value)
        case Function(param, body):
            return ast.fun(param, ast.fresh_copy(body))
        case tuple():
            return ast.list_of(*map(value_to_tree, value))
        case _:
            raise TypeError(f"not a value: {value!r}")


def is_bool(x: Any) -> bool:
    return isinstance(x, bool)


def is_int(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


def mismatch(op: str, a: Any, b: Any) -> Failed:
    return Failed(
        Failure.TYPE_MISMATCH, f"{show_value(a)} {op} {show_value(b)}"
    )


def show_value(value: Any) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case int():
            return str(value)
        case Function(param, body):
            return f"fun {param} -> {show_expr(body)}"
        case tuple():
            return "[" + ", ".join(map(show_value, value)) + "]"
        case _:
            return repr(value)
