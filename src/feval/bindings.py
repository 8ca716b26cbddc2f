from __future__ import annotations
from typing import Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class Bindings(Generic[T]):
    """Immutable association list. Later bindings shadow earlier ones."""

    def __init__(self, key=None, val=None, next=None):
        self.key = key
        self.val = val
        self.next = next

    def lookup(self, k: str) -> Optional[T]:
        match self.key:
            case None:
                return None
            case key if key == k:
                return self.val
            case _:
                return self.next.lookup(k)

    def extend(self, k: str, v: T) -> Bindings[T]:
        return Bindings(k, v, self)

    def __iter__(self) -> Iterator[tuple[str, T]]:
        b = self
        while b.key is not None:
            yield b.key, b.val
            b = b.next
