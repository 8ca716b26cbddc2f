import dataclasses
from functools import singledispatch
from typing import Any, Callable, Optional


@singledispatch
def structural_visitor(
    struc: Any,
    visitor: Callable[[Any], Any],
    reducer=None,
    lazy: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """Map or reduce over the child slots of a node or type shape.

    Strict holes go through `visitor`. Lazy holes go through `lazy` when it is
    given, so a fold can leave them unevaluated; otherwise they are visited
    like strict holes. Without a reducer the result is a copy of `struc` with
    every slot replaced. With one, the reducer receives the visited slots in
    declaration order. Unregistered values are atoms and have no slots.
    """
    if reducer is None:
        return struc
    return reducer(_ for _ in ())


def hole(lazy: bool = False):
    """Declare a dataclass field as a child slot of a node shape."""
    return dataclasses.field(metadata={"hole": "lazy" if lazy else "strict"})


def holes(struc: Any) -> list[dataclasses.Field]:
    return [f for f in dataclasses.fields(struc) if "hole" in f.metadata]


def is_lazy(field: dataclasses.Field) -> bool:
    return field.metadata["hole"] == "lazy"


def visit_fields(
    struc: Any,
    visitor: Callable[[Any], Any],
    reducer=None,
    lazy: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """Generic implementation for dataclasses that declare their child slots with `hole`.

    Fields are visited in declaration order, which is the left-to-right order of the source.
    """

    def visit(f):
        if lazy is not None and is_lazy(f):
            return lazy(getattr(struc, f.name))
        return visitor(getattr(struc, f.name))

    if reducer is None:
        return dataclasses.replace(struc, **{f.name: visit(f) for f in holes(struc)})
    return reducer(visit(f) for f in holes(struc))
