from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Mapping

from .values import VOID_VALUE, Value, undefined_value

if TYPE_CHECKING:
    from ..ast import Declaration, Function


class StoreError(KeyError):
    pass


class Store(Mapping[str, Value]):
    """Variable name -> Value, in declaration order."""

    def __init__(self, values: Mapping[str, Value] | None = None) -> None:
        self._values: Dict[str, Value] = dict(values or {})

    @classmethod
    def from_declarations(cls, declarations: Iterable[Declaration]) -> Store:
        store = cls()
        for decl in declarations:
            store.declare(decl.name, undefined_value(decl.type))
        return store

    def declare(self, name: str, value: Value) -> None:
        self._values[name] = value

    def set(self, name: str, value: Value) -> None:
        if name not in self._values:
            raise StoreError(f"Unknown variable '{name}'")
        self._values[name] = value

    def __getitem__(self, name: str) -> Value:
        try:
            return self._values[name]
        except KeyError:
            raise StoreError(f"Unknown variable '{name}'") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={value}" for name, value in self._values.items())
        return f"Store({inner})"

    def dump(self) -> List[str]:
        return [f"{name} = {value}" for name, value in self._values.items()]


@dataclass
class CallFrame:
    function: Function
    locals: Store
    pending: Value = field(init=False)
    completed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.pending = undefined_value(self.function.return_type)

    def complete(self, value: Value) -> None:
        self.pending = value
        self.completed = True

    def result(self) -> Value:
        if self.function.is_void:
            return VOID_VALUE
        return self.pending


class CallStack:
    def __init__(self) -> None:
        self._frames: List[CallFrame] = []

    def push(self, frame: CallFrame) -> None:
        self._frames.append(frame)

    def pop(self) -> CallFrame:
        if not self._frames:
            raise IndexError("pop from empty call stack")
        return self._frames.pop()

    def __len__(self) -> int:
        return len(self._frames)
