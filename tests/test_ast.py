from civicc.ast import (
    ArrExpr,
    Assign,
    BinOp,
    Bool,
    Cast,
    DoWhile,
    ExprStmt,
    Float,
    For,
    FunBody,
    FunCall,
    FunDef,
    GlobDecl,
    GlobDef,
    IfElse,
    MonOp,
    Num,
    Param,
    Program,
    Return,
    Var,
    VarDecl,
    VarLet,
    While,
)
from civicc.types import BinOpType, CType, MonOpType


def test_default_lists_are_independent():
    a = Program()
    b = Program()
    a.decls.append(GlobDecl(CType.INT, "x"))
    assert b.decls == []
    assert len(a.decls) == 1


def test_structural_equality():
    left = BinOp(BinOpType.ADD, Num(1), Var("x"))
    right = BinOp(BinOpType.ADD, Num(1), Var("x"))
    assert left == right
    assert left != BinOp(BinOpType.SUB, Num(1), Var("x"))


def test_var_symbol_not_compared():
    assert Var("x", symbol=object()) == Var("x")
    assert Var("x").symbol is None


def test_fundef_without_body_is_extern():
    extern = FunDef(CType.VOID, "printInt", [Param(CType.INT, "val")])
    assert extern.body is None
    assert not extern.export
    assert extern.params[0].name == "val"


def test_fundef_with_body():
    body = FunBody(
        decls=[VarDecl(CType.INT, "a", init=Num(3))],
        stmts=[Assign(VarLet("a"), Num(4)), Return(Var("a"))],
    )
    fun = FunDef(CType.INT, "main", body=body, export=True)
    assert fun.body.decls[0].init == Num(3)
    assert fun.body.local_fundefs == []
    assert fun.body.stmts[-1] == Return(Var("a"))


def test_statement_defaults():
    assert Return().expr is None
    assert IfElse(Bool(True)).else_block == []
    assert While(Bool(False)).block == []
    assert DoWhile(Bool(False)).block == []
    loop = For("i", Num(0), Num(10))
    assert loop.step is None
    assert loop.block == []


def test_globdef_fields():
    g = GlobDef(CType.FLOAT, "arr", export=True, dims=[Num(2), Num(3)], init=ArrExpr([Float(1.0)]))
    assert g.export
    assert len(g.dims) == 2
    assert isinstance(g.init, ArrExpr)
    assert g.init.exprs == [Float(1.0)]


def test_expression_nodes_hold_children():
    call = FunCall("f", [Cast(CType.INT, Float(2.5)), MonOp(MonOpType.NEG, Num(1))])
    stmt = ExprStmt(call)
    assert stmt.expr.args[0].type is CType.INT
    assert stmt.expr.args[1].operand == Num(1)
    assert VarLet("a", [Num(0)]).indices == [Num(0)]