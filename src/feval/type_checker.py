"""Equational type inference.

Every node yields its type together with a set of equations that must hold
between types. The equations of the whole program are closed under
transitivity and structural decomposition; a closed set that equates two
different type constructors (or that mentions `NotClosed`) is a type error.
Otherwise the program's type is read off the closed set by substitution.
"""

from __future__ import annotations

import abc
import collections
import dataclasses
import logging
from typing import Mapping, Optional, TypeAlias

from feval import abstract_syntax as ast
from feval.bindings import Bindings
from feval.recursion import (
    Counter,
    Failed,
    Failure,
    Ok,
    Result,
    combine,
    fold_with_counter,
    new_handle,
)
from feval.structure import hole, structural_visitor, visit_fields

logger = logging.getLogger(__name__)


class Type(abc.ABC):
    def __str__(self):
        return f"{self.__class__.__name__}"


@structural_visitor.register
def _(struc: Type, visitor, reducer=None, lazy=None):
    return visit_fields(struc, visitor, reducer, lazy)


@dataclasses.dataclass(frozen=True)
class Int(Type):
    pass


@dataclasses.dataclass(frozen=True)
class Bool(Type):
    pass


@dataclasses.dataclass(frozen=True)
class Var(Type):
    id: int

    def __str__(self):
        return f"t{self.id}"


@dataclasses.dataclass(frozen=True)
class Arrow(Type):
    targ: Type = hole()
    tret: Type = hole()

    def __str__(self):
        return f"({self.targ} -> {self.tret})"


@dataclasses.dataclass(frozen=True)
class ListType(Type):
    elem: Type = hole()

    def __str__(self):
        return f"[{self.elem}]"


@dataclasses.dataclass(frozen=True)
class NotClosed(Type):
    pass


CONCRETE = (Int, Bool)
STRUCTURED = (Arrow, ListType)

Equation: TypeAlias = tuple[Type, Type]
Equations: TypeAlias = frozenset[Equation]
Typing: TypeAlias = tuple[Type, Equations]
Hypotheses: TypeAlias = Bindings[Type]

NO_EQUATIONS: Equations = frozenset()

OPERATOR_TYPES: dict[str, tuple[Type, Type]] = {
    "+": (Int(), Int()),
    "-": (Int(), Int()),
    "*": (Int(), Int()),
    "/": (Int(), Int()),
    "==": (Int(), Bool()),
    "<": (Int(), Bool()),
    "&&": (Bool(), Bool()),
    "||": (Bool(), Bool()),
}


class TypeCheckError(TypeError):
    pass


@dataclasses.dataclass
class FreeVariableError(TypeCheckError):
    def __str__(self):
        return "expression refers to an unbound variable"


@dataclasses.dataclass
class InconsistentTypes(TypeCheckError):
    left: Type
    right: Type

    def __str__(self):
        return f"cannot unify {self.left} with {self.right}"


@dataclasses.dataclass
class InfiniteType(TypeCheckError):
    var: Var

    def __str__(self):
        return f"{self.var} occurs in its own type"


@dataclasses.dataclass
class UncheckableExpression(TypeCheckError):
    kind: Failure
    detail: str

    def __str__(self):
        return f"{self.kind.value}: {self.detail}"


def equation(a: Type, b: Type) -> Equations:
    return frozenset([(a, b), (b, a)])


def typecheck(expr: ast.Fix) -> Type:
    result = infer(expr)
    if isinstance(result, Failed):
        raise UncheckableExpression(result.kind, result.detail)
    ty, eqs = result.value

    closed = close(eqs)
    check_consistency(closed)
    index = index_equations(closed)
    # every variable must resolve to a finite type
    for v in type_variables(closed):
        _resolve(v, index, frozenset())
    result = _resolve(ty, index, frozenset())
    logger.debug("Type: %s", result)
    return result


def infer(expr: ast.Fix, hyps: Optional[Hypotheses] = None) -> Result:
    """Derive the type and equation set of an expression, numbering handles from 0."""
    if hyps is None:
        hyps = Bindings()
    result, counter = fold_with_counter(typing_rule, expr, 0, hyps)
    logger.debug("Issued %d type variables", counter)
    return result


def typing_rule(
    node: ast.Node, counter: Counter, hyps: Hypotheses
) -> tuple[Result, Counter]:
    match node:
        case ast.IntLiteral(_):
            return Ok((Int(), NO_EQUATIONS)), counter
        case ast.BoolLiteral(_):
            return Ok((Bool(), NO_EQUATIONS)), counter
        case ast.Variable(name):
            ty = hyps.lookup(name)
            if ty is None:
                return Ok((NotClosed(), equation(NotClosed(), NotClosed()))), counter
            return Ok((ty, NO_EQUATIONS)), counter
        case ast.BinaryOp(op, left, right):
            if op not in OPERATOR_TYPES:
                return Failed(Failure.UNEVALUABLE, f"operator {op}"), counter
            operand_t, result_t = OPERATOR_TYPES[op]

            def binary(lhs: Typing, rhs: Typing) -> Result:
                eqs = lhs[1] | rhs[1]
                eqs |= equation(lhs[0], operand_t) | equation(rhs[0], operand_t)
                return Ok((result_t, eqs))

            return combine(binary, left, right), counter
        case ast.Not(operand):
            return operand.map(lambda x: (Bool(), x[1] | equation(x[0], Bool()))), counter
        case ast.Function(param, body):
            n, counter = new_handle(counter)
            result, counter = body.force(counter, hyps.extend(param, Var(n)))
            return result.map(lambda b: (Arrow(Var(n), b[0]), b[1])), counter
        case ast.Apply(callee, argument):
            n, counter = new_handle(counter)
            fun, counter = callee.force(counter, hyps)
            arg, counter = argument.force(counter, hyps)

            def application(f: Typing, x: Typing) -> Result:
                eqs = f[1] | x[1] | equation(f[0], Arrow(x[0], Var(n)))
                return Ok((Var(n), eqs))

            return combine(application, fun, arg), counter
        case ast.Let(name, bound, body):
            n, counter = new_handle(counter)
            inner = hyps.extend(name, Var(n))
            val, counter = bound.force(counter, inner)
            res, counter = body.force(counter, inner)

            def let(b: Typing, e: Typing) -> Result:
                return Ok((e[0], b[1] | e[1] | equation(Var(n), b[0])))

            return combine(let, val, res), counter
        case ast.If(condition, consequence, alternative):
            then_, counter = consequence.force(counter, hyps)
            else_, counter = alternative.force(counter, hyps)

            def conditional(c: Typing, t: Typing, e: Typing) -> Result:
                eqs = c[1] | t[1] | e[1]
                eqs |= equation(c[0], Bool()) | equation(t[0], e[0])
                return Ok((t[0], eqs))

            return combine(conditional, condition, then_, else_), counter
        case ast.Nil():
            n, counter = new_handle(counter)
            return Ok((ListType(Var(n)), NO_EQUATIONS)), counter
        case ast.Cons(head, tail):

            def cons(h: Typing, t: Typing) -> Result:
                return Ok((ListType(h[0]), h[1] | t[1] | equation(t[0], ListType(h[0]))))

            return combine(cons, head, tail), counter
        case ast.Case(scrutinee, on_nil, head, tail, on_cons):
            n, counter = new_handle(counter)
            elem = Var(n)
            nil, counter = on_nil.force(counter, hyps)
            inner = hyps.extend(tail, ListType(elem)).extend(head, elem)
            more, counter = on_cons.force(counter, inner)

            def case(s: Typing, a: Typing, b: Typing) -> Result:
                eqs = s[1] | a[1] | b[1]
                eqs |= equation(s[0], ListType(elem)) | equation(a[0], b[0])
                return Ok((a[0], eqs))

            return combine(case, scrutinee, nil, more), counter
        case _:
            return Failed(Failure.UNEVALUABLE, type(node).__name__), counter


def children(ty: Type) -> list[Type]:
    return structural_visitor(ty, lambda t: t, list)


def close(eqs: Equations) -> Equations:
    """Saturate under transitivity and decomposition of structured types."""
    closed = set(eqs)
    passes = 0
    while True:
        passes += 1
        index = index_equations(closed)
        new = set()
        for a, b in closed:
            for c in index[b]:
                new.add((a, c))
                new.add((c, a))
            if type(a) is type(b) and isinstance(a, STRUCTURED):
                for x, y in zip(children(a), children(b)):
                    new.add((x, y))
                    new.add((y, x))
        new -= closed
        if not new:
            logger.debug("Closed %d equations in %d passes", len(closed), passes)
            return frozenset(closed)
        closed |= new


def index_equations(eqs) -> Mapping[Type, set[Type]]:
    index = collections.defaultdict(set)
    for a, b in eqs:
        index[a].add(b)
    return index


def find_inconsistency(eqs: Equations) -> Optional[Equation]:
    clashes = [
        (a, b)
        for a, b in eqs
        if isinstance(a, NotClosed)
        or (
            isinstance(a, CONCRETE + STRUCTURED)
            and isinstance(b, CONCRETE + STRUCTURED)
            and type(a) is not type(b)
        )
    ]
    if not clashes:
        return None
    return min(
        clashes,
        key=lambda e: (not isinstance(e[0], NotClosed), str(e[0]), str(e[1])),
    )


def is_inconsistent(eqs: Equations) -> bool:
    return find_inconsistency(eqs) is not None


def check_consistency(eqs: Equations):
    clash = find_inconsistency(eqs)
    match clash:
        case None:
            return
        case (NotClosed(), _):
            raise FreeVariableError()
        case (a, b):
            raise InconsistentTypes(a, b)


def type_variables(eqs: Equations) -> list[Var]:
    return sorted({a for a, _ in eqs if isinstance(a, Var)}, key=lambda v: v.id)


def resolve(ty: Type, eqs: Equations) -> Type:
    return _resolve(ty, index_equations(eqs), frozenset())


def _resolve(ty: Type, index: Mapping[Type, set[Type]], visiting: frozenset[int]) -> Type:
    match ty:
        case Var(n):
            if n in visiting:
                raise InfiniteType(ty)
            candidates = index.get(ty, set()) | {ty}
            for c in candidates:
                if isinstance(c, CONCRETE):
                    return c
            structured = [c for c in candidates if isinstance(c, STRUCTURED)]
            if structured:
                return _resolve(min(structured, key=str), index, visiting | {n})
            return min(
                (c for c in candidates if isinstance(c, Var)), key=lambda v: v.id
            )
        case Arrow() | ListType():
            return structural_visitor(ty, lambda t: _resolve(t, index, visiting))
        case _:
            return ty
