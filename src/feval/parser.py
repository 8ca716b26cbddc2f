import functools
import string

import pyparsing as pp

from feval import abstract_syntax as ast

pp.ParserElement.enable_packrat()


def parse_expr(src: str) -> ast.Fix:
    return expr.parse_string(src, True)[0]


### Grammar

KEYWORDS = ["if", "then", "else", "fun", "let", "in", "case", "of", "true", "false", "not"]

keyword = pp.MatchFirst([pp.Keyword(k) for k in KEYWORDS])
_ident_init_chars = string.ascii_lowercase + "_"
_ident_body_chars = _ident_init_chars + pp.nums + string.ascii_uppercase
ident = ~keyword + pp.Word(_ident_init_chars, _ident_body_chars)


expr = pp.Forward()

integer = pp.Word(pp.nums).set_parse_action(lambda t: ast.int_lit(int(t[0])))

boolean = (pp.Keyword("true") | pp.Keyword("false")).set_parse_action(
    lambda t: ast.Fix(ast.BoolLiteral(t[0] == "true"))
)

varref = ident.copy().set_parse_action(lambda t: ast.var(t[0]))

list_literal = (
    pp.Suppress("[")
    + pp.Optional(expr + pp.ZeroOrMore(pp.Suppress(",") + expr))
    + pp.Suppress("]")
).set_parse_action(lambda t: ast.list_of(*t))

simple_expr = (
    integer | boolean | varref | list_literal | (pp.Suppress("(") + expr + pp.Suppress(")"))
)

call_expr = pp.OneOrMore(simple_expr).set_parse_action(
    lambda t: functools.reduce(ast.apply, t[1:], t[0])
)


def _negate(t):
    _, operand = t[0]
    match operand.unwrap():
        case ast.IntLiteral(value):
            return ast.int_lit(-value)
        case _:
            return ast.binop("-", ast.int_lit(0), operand)


def _not(t):
    _, operand = t[0]
    return ast.Fix(ast.Not(operand))


def _binary(t):
    tokens = t[0]
    result = tokens[0]
    for op, rhs in zip(tokens[1::2], tokens[2::2]):
        result = ast.binop(op, result, rhs)
    return result


def _cons(t):
    items = t[0][0::2]
    return functools.reduce(
        lambda tail, head: ast.Fix(ast.Cons(head, tail)), reversed(items[:-1]), items[-1]
    )


op_expr = pp.infix_notation(
    call_expr,
    [
        (pp.Literal("-"), 1, pp.OpAssoc.RIGHT, _negate),
        (pp.Keyword("not"), 1, pp.OpAssoc.RIGHT, _not),
        (pp.one_of("* /"), 2, pp.OpAssoc.LEFT, _binary),
        (pp.one_of("+ -"), 2, pp.OpAssoc.LEFT, _binary),
        (pp.Literal("::"), 2, pp.OpAssoc.RIGHT, _cons),
        (pp.one_of("== != <= >= < >"), 2, pp.OpAssoc.LEFT, _binary),
        (pp.Literal("&&"), 2, pp.OpAssoc.LEFT, _binary),
        (pp.Literal("||"), 2, pp.OpAssoc.LEFT, _binary),
    ],
)


def _curry(params, body):
    return functools.reduce(lambda b, p: ast.fun(p, b), reversed(params), body)


conditional = (
    pp.Suppress(pp.Keyword("if"))
    + expr
    + pp.Suppress(pp.Keyword("then"))
    + expr
    + pp.Suppress(pp.Keyword("else"))
    + expr
).set_parse_action(lambda t: ast.Fix(ast.If(t[0], t[1], t[2])))

function = (
    pp.Suppress(pp.Keyword("fun"))
    + pp.Group(pp.OneOrMore(ident))
    + pp.Suppress("->")
    + expr
).set_parse_action(lambda t: _curry(list(t[0]), t[1]))

let = (
    pp.Suppress(pp.Keyword("let"))
    + ident
    + pp.Group(pp.ZeroOrMore(ident))
    + pp.Suppress("=")
    + expr
    + pp.Suppress(pp.Keyword("in"))
    + expr
).set_parse_action(lambda t: ast.let(t[0], _curry(list(t[1]), t[2]), t[3]))

case_of = (
    pp.Suppress(pp.Keyword("case"))
    + expr
    + pp.Suppress(pp.Keyword("of") + "[" + "]" + "->")
    + expr
    + pp.Suppress("|")
    + ident
    + pp.Suppress("::")
    + ident
    + pp.Suppress("->")
    + expr
).set_parse_action(lambda t: ast.Fix(ast.Case(t[0], t[1], t[2], t[3], t[4])))

expr <<= conditional | function | let | case_of | op_expr
