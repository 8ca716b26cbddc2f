from feval import abstract_syntax as ast
from feval.recursion import fold


def show_expr(expr: ast.Fix) -> str:
    """Render a tree as source text that parses back to the same tree."""
    return fold(show_rule, expr)


def show_rule(node: ast.Node[str]) -> str:
    match node:
        case ast.IntLiteral(value) if value < 0:
            return f"({value})"
        case ast.IntLiteral(value):
            return str(value)
        case ast.BoolLiteral(value):
            return "true" if value else "false"
        case ast.Variable(name):
            return name
        case ast.BinaryOp(op, left, right):
            return f"({left} {op} {right})"
        case ast.Not(operand):
            return f"(not {operand})"
        case ast.Function(param, body):
            return f"(fun {param} -> {body})"
        case ast.Apply(callee, argument):
            return f"({callee} {argument})"
        case ast.Let(name, bound, body):
            return f"(let {name} = {bound} in {body})"
        case ast.If(condition, consequence, alternative):
            return f"(if {condition} then {consequence} else {alternative})"
        case ast.Nil():
            return "[]"
        case ast.Cons(head, tail):
            return f"({head} :: {tail})"
        case ast.Case(scrutinee, on_nil, head, tail, on_cons):
            return f"(case {scrutinee} of [] -> {on_nil} | {head} :: {tail} -> {on_cons})"
        case _:
            raise TypeError(f"not an expression node: {node!r}")
