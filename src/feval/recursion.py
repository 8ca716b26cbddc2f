"""Generic folds over expression trees.

A combining rule receives one node whose child slots already hold fold
results and reduces it to a single result. The lazy folds leave lazy holes
unfolded and hand them to the rule as `Thunk`s, so the rule decides whether
and when a lazy child gets folded.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Callable, Generic, TypeAlias, TypeVar

from feval.abstract_syntax import Fix, Node
from feval.structure import structural_visitor

T = TypeVar("T")
R = TypeVar("R")


class Failure(enum.Enum):
    TYPE_MISMATCH = "type mismatch"
    UNEVALUABLE = "unevaluable"
    FREE_VARIABLE = "free variable"


@dataclasses.dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def bind(self, f: Callable[[T], Result]) -> Result:
        return f(self.value)

    def map(self, f: Callable[[T], Any]) -> Result:
        return Ok(f(self.value))


@dataclasses.dataclass(frozen=True)
class Failed:
    kind: Failure
    detail: str = ""

    def bind(self, f: Callable[[Any], Result]) -> Result:
        return self

    def map(self, f: Callable[[Any], Any]) -> Result:
        return self


Result: TypeAlias = "Ok | Failed"


def combine(f: Callable[..., Result], *results: Result) -> Result:
    """Apply f to the payloads of all results, or return the first failure."""
    values = []
    for r in results:
        match r:
            case Failed():
                return r
            case Ok(v):
                values.append(v)
    return f(*values)


@dataclasses.dataclass(frozen=True)
class Thunk(Generic[R]):
    """A lazy hole: the unfolded subtree and the fold to run on demand."""

    tree: Fix
    fold: Callable[..., R]

    def force(self, *args) -> R:
        return self.fold(self.tree, *args)


def fold(rule: Callable[[Node], R], tree: Fix) -> R:
    """Fold every child first, then apply the rule. Lazy holes are treated as strict."""
    return rule(structural_visitor(tree.unwrap(), lambda child: fold(rule, child)))


def fold_failable(rule: Callable[[Node[Result]], Result], tree: Fix) -> Result:
    """Like `fold`, but child results are `Ok` or `Failed`.

    Failed children do not short-circuit: the rule still runs and decides how
    to combine them, usually through `combine` or `bind`.
    """
    return rule(
        structural_visitor(tree.unwrap(), lambda child: fold_failable(rule, child))
    )


def fold_lazy(rule: Callable[[Node], R], tree: Fix) -> R:
    def recurse(child: Fix) -> R:
        return fold_lazy(rule, child)

    node = structural_visitor(
        tree.unwrap(), recurse, lazy=lambda child: Thunk(child, recurse)
    )
    return rule(node)


def fold_failable_lazy(rule: Callable[[Node], Result], tree: Fix) -> Result:
    def recurse(child: Fix) -> Result:
        return fold_failable_lazy(rule, child)

    node = structural_visitor(
        tree.unwrap(), recurse, lazy=lambda child: Thunk(child, recurse)
    )
    return rule(node)


Counter: TypeAlias = int


def new_handle(counter: Counter) -> tuple[int, Counter]:
    return counter, counter + 1


def fold_with_counter(
    rule: Callable[[Node, Counter, Any], tuple[Result, Counter]],
    tree: Fix,
    counter: Counter,
    context: Any,
) -> tuple[Result, Counter]:
    """Failable lazy fold that threads a counter and a context through every step.

    Strict holes are folded left to right under the current context before the
    rule runs. Lazy holes are forced by the rule with `thunk.force(counter, context)`,
    so the rule chooses the counter and the context its children see.
    """

    def fold_step(child: Fix, counter: Counter, context: Any):
        return fold_with_counter(rule, child, counter, context)

    def strict(child: Fix) -> Result:
        nonlocal counter
        result, counter = fold_with_counter(rule, child, counter, context)
        return result

    node = structural_visitor(
        tree.unwrap(), strict, lazy=lambda child: Thunk(child, fold_step)
    )
    return rule(node, counter, context)
