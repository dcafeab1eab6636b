import pytest

from civicc.assembly import Assembly
from civicc.ast import ArrExpr, Num
from civicc.emitter import Emitter, count_arrexpr
from civicc.symbols import Symbol, SymbolTable
from civicc.types import CompileError, ValueType, generate_array_dim_name


def make_scopes():
    glob = SymbolTable()
    outer = Symbol.function("outer", ValueType.VOID, 0, False)
    glob.insert("outer", outer)
    outer_scope = SymbolTable(glob, outer)
    outer.scope = outer_scope
    inner = Symbol.function("inner", ValueType.VOID, 0, False)
    outer_scope.insert("inner", inner)
    inner_scope = SymbolTable(outer_scope, inner)
    inner.scope = inner_scope
    return glob, outer_scope, inner_scope


def make_array(scope, name, vtype, ndims, offset, imported=False):
    dims = []
    for i in range(ndims):
        dim = Symbol.variable(generate_array_dim_name(name, i), ValueType.NUM, imported)
        dim.offset = offset + i
        scope.insert(dim.name, dim)
        dims.append(dim)
    arr = Symbol.array(name, vtype, imported)
    arr.offset = offset + ndims
    arr.dims = dims
    scope.insert(name, arr)
    return arr


def stream(instructions):
    return [(i.instr, *i.args) for i in instructions]


def test_new_label_is_unique_and_numbered():
    glob, _, _ = make_scopes()
    em = Emitter(glob)
    assert em.new_label("else") == "_lab0_else"
    assert em.new_label("end") == "_lab1_end"


def test_instr_at_global_level_goes_to_init():
    glob, outer_scope, _ = make_scopes()
    asm = Assembly()
    em = Emitter(glob, asm)
    em.instr("iloadc_0")
    em.scope = outer_scope
    em.instr("iload", 4)
    assert stream(asm.init_instrs) == [("iloadc_0",)]
    assert stream(asm.instrs) == [("iload", "4")]


def test_label_always_in_main_stream():
    glob, _, _ = make_scopes()
    asm = Assembly()
    em = Emitter(glob, asm)
    em.label("foo", True)
    assert asm.init_instrs == []
    assert asm.instrs[0].is_label and asm.instrs[0].is_fun


def test_load_array_ref_locations():
    glob, outer_scope, inner_scope = make_scopes()
    local = make_array(outer_scope, "a", ValueType.NUMARRAY, 1, 0)
    global_arr = make_array(glob, "g", ValueType.NUMARRAY, 1, 0)
    imported = make_array(glob, "e", ValueType.NUMARRAY, 1, 2, imported=True)
    asm = Assembly()
    em = Emitter(glob, asm)
    em.scope = outer_scope
    em.load_array_ref(local)
    em.load_array_ref(global_arr)
    em.load_array_ref(imported)
    em.scope = inner_scope
    em.load_array_ref(local)
    assert stream(asm.instrs) == [
        ("aload", "1"),
        ("aloadg", "1"),
        ("aloade", "3"),
        ("aloadn", "1", "1"),
    ]


@pytest.mark.parametrize(
    "vtype, store, load",
    [
        (ValueType.NUMARRAY, "istorea", "iloada"),
        (ValueType.FLOATARRAY, "fstorea", "floada"),
        (ValueType.BOOLARRAY, "bstorea", "bloada"),
    ],
)
def test_array_element_access(vtype, store, load):
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", vtype, 1, 0)
    em = Emitter(outer_scope)
    em.store_array_element(arr)
    em.load_array_element(arr)
    assert stream(em.assembly.instrs) == [(store,), (load,)]


def test_array_element_access_rejects_scalar():
    _, outer_scope, _ = make_scopes()
    scalar = Symbol.variable("x", ValueType.NUM, False)
    outer_scope.insert("x", scalar)
    em = Emitter(outer_scope)
    with pytest.raises(ValueError):
        em.store_array_element(scalar)


def test_compute_array_size_multiplies_all_dims():
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.FLOATARRAY, 3, 0)
    em = Emitter(outer_scope)
    em.compute_array_size(arr)
    assert stream(em.assembly.instrs) == [
        ("iload", "0"),
        ("iload", "1"),
        ("iload", "2"),
        ("imul",),
        ("imul",),
    ]


def test_push_array_dims_from_start():
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.NUMARRAY, 3, 0)
    em = Emitter(outer_scope)
    em.push_array_dims(arr, 2)
    assert stream(em.assembly.instrs) == [("iload", "2")]


def test_store_array_dim_nested():
    _, outer_scope, inner_scope = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.NUMARRAY, 1, 0)
    em = Emitter(outer_scope)
    em.scope = inner_scope
    em.store_array_dim(arr.dims[0])
    assert stream(em.assembly.instrs) == [("istoren", "1", "0")]


def test_push_array_with_dims_global():
    glob, outer_scope, _ = make_scopes()
    arr = make_array(glob, "g", ValueType.BOOLARRAY, 2, 0)
    em = Emitter(glob)
    em.scope = outer_scope
    em.push_array_with_dims(arr)
    assert stream(em.assembly.instrs) == [("iloadg", "0"), ("iloadg", "1"), ("aloadg", "2")]


def test_create_array_at_global_level():
    glob, _, _ = make_scopes()
    arr = make_array(glob, "g", ValueType.FLOATARRAY, 2, 0)
    em = Emitter(glob)
    em.create_array(arr)
    assert stream(em.assembly.init_instrs) == [
        ("iloadg", "0"),
        ("iloadg", "1"),
        ("imul",),
        ("fnewa",),
        ("astoreg", "2"),
    ]
    assert em.assembly.instrs == []


def test_init_array_with_arrexpr_stores_in_reverse():
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.NUMARRAY, 1, 0)
    em = Emitter(outer_scope)
    em.init_array_with_arrexpr(arr, 3)
    assert [c.value for c in em.assembly.consts] == ["2", "1", "0"]
    assert all(c.type == "int" for c in em.assembly.consts)
    assert stream(em.assembly.instrs) == [
        ("iloadc", "0"), ("aload", "1"), ("istorea",),
        ("iloadc", "1"), ("aload", "1"), ("istorea",),
        ("iloadc", "2"), ("aload", "1"), ("istorea",),
    ]


def test_init_array_with_arrexpr_continues_constant_pool():
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.BOOLARRAY, 1, 0)
    em = Emitter(outer_scope)
    em.assembly.emit_const("int", "42")
    em.init_array_with_arrexpr(arr, 1)
    assert stream(em.assembly.instrs)[0] == ("iloadc", "1")
    assert len(em.assembly.consts) == 2


def test_init_array_with_scalar():
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.NUMARRAY, 2, 0)
    for offset, kind in enumerate(("scalar", "counter", "size"), start=3):
        helper = Symbol.variable(f"_{kind}_a", ValueType.NUM, False)
        helper.offset = offset
        outer_scope.insert(helper.name, helper)
    em = Emitter(outer_scope)
    em.last_type = ValueType.NUM
    em.init_array_with_scalar(arr)
    assert stream(em.assembly.instrs) == [
        ("istore", "3"),
        ("iloadc_0",),
        ("istore", "4"),
        ("iload", "0"),
        ("iload", "1"),
        ("imul",),
        ("istore", "5"),
        ("_lab0_for_loop_start",),
        ("iload", "4"),
        ("iload", "5"),
        ("ilt",),
        ("branch_f", "_lab1_for_loop_end"),
        ("iload", "3"),
        ("iload", "4"),
        ("aload", "2"),
        ("istorea",),
        ("iinc_1", "4"),
        ("jump", "_lab0_for_loop_start"),
        ("_lab1_for_loop_end",),
    ]
    assert sum(i.is_label for i in em.assembly.instrs) == 2


def test_init_array_with_scalar_rejects_non_scalar():
    _, outer_scope, _ = make_scopes()
    arr = make_array(outer_scope, "a", ValueType.NUMARRAY, 1, 0)
    em = Emitter(outer_scope)
    em.last_type = ValueType.VOID
    with pytest.raises(ValueError):
        em.init_array_with_scalar(arr)


def test_count_arrexpr_flat_and_nested():
    flat = ArrExpr([Num(1), Num(2), Num(3)])
    nested = ArrExpr([ArrExpr([Num(1), Num(2)]), ArrExpr([Num(3), Num(4)])])
    assert count_arrexpr(flat) == len(flat.exprs)
    assert count_arrexpr(nested) == 4


def test_count_arrexpr_scalar_before_nested_allowed():
    node = ArrExpr([Num(1), ArrExpr([Num(2), Num(3)])])
    assert count_arrexpr(node) == 3


def test_count_arrexpr_inconsistent_shape():
    node = ArrExpr([ArrExpr([Num(1)]), Num(2)])
    with pytest.raises(CompileError):
        count_arrexpr(node)