"""Symbols and nested symbol tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .types import CompileError, SymbolType, ValueType


class DuplicateSymbolError(CompileError):
    """Raised when a name is defined twice in the same scope."""


@dataclass(eq=False)
class Symbol:
    """A named entity: variable, array, function or for-loop."""

    stype: SymbolType
    vtype: ValueType
    name: str
    imported: bool = False
    exported: bool = False
    offset: int = 0
    parent_scope: SymbolTable | None = None
    # Arrays: symbols of the hidden dimension variables.
    dims: list[Symbol] = field(default_factory=list)
    # Functions.
    label_name: str | None = None
    param_count: int = 0
    param_ptr: int = 0
    param_types: list[ValueType] = field(default_factory=list)
    param_dim_counts: list[int] = field(default_factory=list)
    # Functions and for-loops: the scope they open.
    scope: SymbolTable | None = None

    @property
    def dim_count(self) -> int:
        return len(self.dims)

    @classmethod
    def function(cls, name: str, vtype: ValueType, param_count: int, imported: bool) -> Symbol:
        """Symbol for a function taking ``param_count`` parameters."""
        return cls(
            SymbolType.FUNCTION,
            vtype,
            name,
            imported=imported,
            param_count=param_count,
            param_types=[ValueType.NULL] * param_count,
            param_dim_counts=[0] * param_count,
        )

    @classmethod
    def array(cls, name: str, vtype: ValueType, imported: bool) -> Symbol:
        """Symbol for an array variable."""
        return cls(SymbolType.ARRAYVAR, vtype, name, imported=imported)

    @classmethod
    def variable(cls, name: str, vtype: ValueType, imported: bool) -> Symbol:
        """Symbol for a scalar variable."""
        return cls(SymbolType.VALUEVAR, vtype, name, imported=imported)

    @classmethod
    def for_loop(cls, adjusted_name: str) -> Symbol:
        """Placeholder symbol that carries the scope of a for-loop."""
        return cls(SymbolType.FORLOOP, ValueType.NULL, adjusted_name)


class SymbolTable:
    """Symbols of one scope, linked to its enclosing scope."""

    def __init__(self, parent_scope: SymbolTable | None = None, parent_fun: Symbol | None = None):
        self.parent_scope = parent_scope
        self.parent_fun = parent_fun
        self.nesting_level = 0 if parent_scope is None else parent_scope.nesting_level + 1
        self.localvar_offset_counter = 0
        self.for_loop_counter = 0
        self._table: dict[str, Symbol] = {}

    def insert(self, name: str, symbol: Symbol) -> None:
        """Add ``symbol`` under ``name`` and make this table its scope."""
        if name in self._table:
            raise DuplicateSymbolError(f"Symbol {name} already exists, but is redefined")
        symbol.parent_scope = self
        self._table[name] = symbol

    def lookup(self, name: str) -> Symbol | None:
        """Symbol named ``name`` in this scope only."""
        return self._table.get(name)

    def find(self, name: str) -> Symbol | None:
        """Symbol named ``name`` in this scope or any enclosing one."""
        return scope_tree_find(self, name)

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)


def scope_tree_find(scope: SymbolTable | None, name: str) -> Symbol | None:
    """Search ``scope`` and its ancestors for ``name``."""
    while scope is not None:
        found = scope.lookup(name)
        if found is not None:
            return found
        scope = scope.parent_scope
    return None