"""Reduce the extended language to the base language the evaluator and type checker accept."""

from feval import abstract_syntax as ast
from feval.abstract_syntax import Fix
from feval.recursion import fold
from feval.structure import structural_visitor


def translate(expr: Fix) -> Fix:
    return fold(translation_rule, expr)


def translation_rule(node: ast.Node[Fix]) -> Fix:
    match node:
        case ast.BinaryOp("<=", x, y):
            return less_or_equal(x, y)
        case ast.BinaryOp(">", x, y):
            return Fix(ast.Not(less_or_equal(x, y)))
        case ast.BinaryOp(">=", x, y):
            return Fix(ast.Not(ast.binop("<", x, y)))
        case ast.BinaryOp("!=", x, y):
            return Fix(ast.Not(ast.binop("==", x, y)))
        case ast.Let(name, bound, body) if name not in free_variables(bound):
            return ast.apply(ast.fun(name, body), bound)
        case _:
            return Fix(node)


def less_or_equal(x: Fix, y: Fix) -> Fix:
    return ast.binop(
        "||",
        ast.binop("<", x, y),
        ast.binop("==", ast.fresh_copy(x), ast.fresh_copy(y)),
    )


def free_variables(expr: Fix) -> frozenset[str]:
    return fold(free_variables_rule, expr)


def free_variables_rule(node: ast.Node[frozenset[str]]) -> frozenset[str]:
    match node:
        case ast.Variable(name):
            return frozenset([name])
        case ast.Function(param, body):
            return body - {param}
        case ast.Let(name, bound, body):
            return (bound | body) - {name}
        case ast.Case(scrutinee, on_nil, head, tail, on_cons):
            return scrutinee | on_nil | (on_cons - {head, tail})
        case _:
            return structural_visitor(
                node, lambda fvs: fvs, lambda fvs: frozenset().union(*fvs)
            )
