"""
Type environments for validation and transformation.

A TypeEnv maps identifiers to declared types. The environment for a function
body is the global environment overlaid with the function's params and locals,
so a param or local shadows a global of the same name.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Mapping, Optional

from .ast import Declaration, Function, Program
from .types import Type

FunctionTable = Mapping[str, Function]


class TypeEnv(Mapping[str, Type]):
    def __init__(self, types: Mapping[str, Type] | None = None, parent: Optional[TypeEnv] = None) -> None:
        self.parent = parent
        self.types: Dict[str, Type] = dict(types or {})

    def lookup(self, name: str) -> Optional[Type]:
        if name in self.types:
            return self.types[name]
        if self.parent is not None:
            return self.parent.lookup(name)
        return None

    def __getitem__(self, name: str) -> Type:
        ty = self.lookup(name)
        if ty is None:
            raise KeyError(name)
        return ty

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __iter__(self) -> Iterator[str]:
        seen = set(self.types)
        yield from self.types
        if self.parent is not None:
            for name in self.parent:
                if name not in seen:
                    yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {ty}" for name, ty in self.items())
        return f"TypeEnv({inner})"


def build_type_env(declarations: Iterable[Declaration], parent: Optional[TypeEnv] = None) -> TypeEnv:
    """Build a TypeEnv from `declarations`; later entries win on a repeated name."""
    return TypeEnv({decl.name: decl.type for decl in declarations}, parent=parent)


def function_env(globals_env: TypeEnv, fn: Function) -> TypeEnv:
    return build_type_env((*fn.params, *fn.locals), parent=globals_env)


def function_table(program: Program) -> Dict[str, Function]:
    return {fn.name: fn for fn in program.functions}
