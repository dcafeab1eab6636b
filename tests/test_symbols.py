import pytest

from civicc.symbols import DuplicateSymbolError, Symbol, SymbolTable, scope_tree_find
from civicc.types import CompileError, SymbolType, ValueType


def test_nesting_levels():
    glob = SymbolTable()
    fun = Symbol.function("f", ValueType.VOID, 0, False)
    inner = SymbolTable(glob, fun)
    innermost = SymbolTable(inner, fun)
    assert glob.nesting_level == 0
    assert inner.nesting_level == 1
    assert innermost.nesting_level == 2
    assert inner.parent_fun is fun
    assert innermost.parent_scope is inner


def test_insert_sets_parent_scope():
    table = SymbolTable()
    sym = Symbol.variable("x", ValueType.NUM, False)
    table.insert("x", sym)
    assert sym.parent_scope is table
    assert table.lookup("x") is sym
    assert "x" in table
    assert len(table) == 1


def test_duplicate_insert_raises():
    table = SymbolTable()
    table.insert("x", Symbol.variable("x", ValueType.NUM, False))
    with pytest.raises(DuplicateSymbolError):
        table.insert("x", Symbol.variable("x", ValueType.FLOAT, False))
    assert table.lookup("x").vtype is ValueType.NUM


def test_duplicate_is_compile_error():
    table = SymbolTable()
    table.insert("y", Symbol.variable("y", ValueType.BOOL, False))
    with pytest.raises(CompileError):
        table.insert("y", Symbol.variable("y", ValueType.NUM, False))
    assert len(table) == 1


def test_lookup_does_not_search_parents():
    glob = SymbolTable()
    glob.insert("g", Symbol.variable("g", ValueType.BOOL, False))
    child = SymbolTable(glob)
    assert child.lookup("g") is None
    assert child.find("g") is glob.lookup("g")


def test_scope_tree_find_prefers_innermost():
    glob = SymbolTable()
    outer = Symbol.variable("a", ValueType.NUM, False)
    glob.insert("a", outer)
    child = SymbolTable(glob)
    inner = Symbol.variable("a", ValueType.FLOAT, False)
    child.insert("a", inner)
    assert scope_tree_find(child, "a") is inner
    assert scope_tree_find(glob, "a") is outer


def test_scope_tree_find_missing():
    assert scope_tree_find(SymbolTable(SymbolTable()), "nope") is None
    assert scope_tree_find(None, "nope") is None


def test_function_symbol():
    sym = Symbol.function("f", ValueType.NUM, 3, True)
    assert sym.stype is SymbolType.FUNCTION
    assert sym.param_count == 3
    assert len(sym.param_types) == 3
    assert len(sym.param_dim_counts) == 3
    assert sym.imported
    assert not sym.exported
    assert sym.label_name is None


def test_array_symbol_dims():
    arr = Symbol.array("a", ValueType.NUMARRAY, False)
    assert arr.stype is SymbolType.ARRAYVAR
    assert arr.dim_count == 0
    arr.dims.append(Symbol.variable("_index0_a", ValueType.NUM, False))
    arr.dims.append(Symbol.variable("_index1_a", ValueType.NUM, False))
    assert arr.dim_count == 2


def test_for_loop_symbol():
    sym = Symbol.for_loop("0_i")
    assert sym.stype is SymbolType.FORLOOP
    assert sym.vtype is ValueType.NULL
    assert sym.name == "0_i"


def test_iteration_yields_symbols():
    table = SymbolTable()
    syms = [Symbol.variable(n, ValueType.NUM, False) for n in ("a", "b")]
    for s in syms:
        table.insert(s.name, s)
    assert list(table) == syms