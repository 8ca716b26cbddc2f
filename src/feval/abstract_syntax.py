from __future__ import annotations

import abc
import copy
import dataclasses
import typing
from typing import Callable, Generic, TypeVar

from feval.structure import hole, structural_visitor, visit_fields

C = TypeVar("C")


class Node(abc.ABC, Generic[C]):
    """One level of an expression. The child slots hold values of type C."""


@structural_visitor.register
def _(struc: Node, visitor, reducer=None, lazy=None):
    return visit_fields(struc, visitor, reducer, lazy)


@dataclasses.dataclass(frozen=True)
class Fix:
    node: Node[Fix]

    def unwrap(self) -> Node[Fix]:
        return self.node


Op = typing.Literal["&&", "||", "+", "-", "*", "/", "==", "<"]
ExtendedOp = typing.Literal["<=", ">", ">=", "!="]

BASE_OPERATORS = ("&&", "||", "+", "-", "*", "/", "==", "<")
EXTENDED_OPERATORS = ("<=", ">", ">=", "!=")


@dataclasses.dataclass(frozen=True)
class IntLiteral(Node[C]):
    value: int


@dataclasses.dataclass(frozen=True)
class BoolLiteral(Node[C]):
    value: bool


@dataclasses.dataclass(frozen=True)
class Variable(Node[C]):
    name: str


@dataclasses.dataclass(frozen=True)
class BinaryOp(Node[C]):
    op: str
    left: C = hole()
    right: C = hole()


@dataclasses.dataclass(frozen=True)
class Not(Node[C]):
    operand: C = hole()


@dataclasses.dataclass(frozen=True)
class Function(Node[C]):
    param: str
    body: C = hole(lazy=True)


@dataclasses.dataclass(frozen=True)
class Apply(Node[C]):
    callee: C = hole(lazy=True)
    argument: C = hole(lazy=True)


@dataclasses.dataclass(frozen=True)
class Let(Node[C]):
    name: str
    bound: C = hole(lazy=True)
    body: C = hole(lazy=True)


@dataclasses.dataclass(frozen=True)
class If(Node[C]):
    condition: C = hole()
    consequence: C = hole(lazy=True)
    alternative: C = hole(lazy=True)


@dataclasses.dataclass(frozen=True)
class Nil(Node[C]):
    pass


@dataclasses.dataclass(frozen=True)
class Cons(Node[C]):
    head: C = hole()
    tail: C = hole()


@dataclasses.dataclass(frozen=True)
class Case(Node[C]):
    scrutinee: C = hole()
    on_nil: C = hole(lazy=True)
    head: str
    tail: str
    on_cons: C = hole(lazy=True)


TRUE = Fix(BoolLiteral(True))
FALSE = Fix(BoolLiteral(False))


def int_lit(value: int) -> Fix:
    return Fix(IntLiteral(value))


def var(name: str) -> Fix:
    return Fix(Variable(name))


def binop(op: str, left: Fix, right: Fix) -> Fix:
    return Fix(BinaryOp(op, left, right))


def fun(param: str, body: Fix) -> Fix:
    return Fix(Function(param, body))


def apply(callee: Fix, *args: Fix) -> Fix:
    for arg in args:
        callee = Fix(Apply(callee, arg))
    return callee


def let(name: str, bound: Fix, body: Fix) -> Fix:
    return Fix(Let(name, bound, body))


def list_of(*items: Fix) -> Fix:
    result = Fix(Nil())
    for item in reversed(items):
        result = Fix(Cons(item, result))
    return result


def substitute(tree: Fix, name: str, make: Callable[[], Fix]) -> Fix:
    """Replace every free occurrence of `name` in `tree` by a fresh tree from `make`.

    Binders that rebind `name` stop the substitution from descending into their scope.
    """
    node = tree.unwrap()

    def sub(t: Fix) -> Fix:
        return substitute(t, name, make)

    match node:
        case Variable(n) if n == name:
            return make()
        case Function(param, _) if param == name:
            return tree
        case Let(n, _, _) if n == name:
            return tree
        case Case(scrutinee, on_nil, head, tail, on_cons) if name in (head, tail):
            return Fix(Case(sub(scrutinee), sub(on_nil), head, tail, on_cons))
        case _:
            return Fix(structural_visitor(node, sub))


def fresh_copy(tree: Fix) -> Fix:
    return copy.deepcopy(tree)
