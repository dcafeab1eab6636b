"""Abstract syntax tree of a source program."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .types import BinOpType, CType, MonOpType


@dataclass
class Num:
    val: int


@dataclass
class Float:
    val: float


@dataclass
class Bool:
    val: bool


@dataclass
class Var:
    name: str
    indices: list[Expr] = field(default_factory=list)
    symbol: Any = field(default=None, compare=False, repr=False)


@dataclass
class VarLet:
    name: str
    indices: list[Expr] = field(default_factory=list)


@dataclass
class BinOp:
    op: BinOpType
    left: Expr
    right: Expr


@dataclass
class MonOp:
    op: MonOpType
    operand: Expr


@dataclass
class Cast:
    type: CType
    expr: Expr


@dataclass
class FunCall:
    name: str
    args: list[Expr] = field(default_factory=list)


@dataclass
class ArrExpr:
    exprs: list[Expr] = field(default_factory=list)


Expr = Union[Num, Float, Bool, Var, BinOp, MonOp, Cast, FunCall, ArrExpr]


@dataclass
class Assign:
    let: VarLet
    expr: Expr


@dataclass
class ExprStmt:
    expr: Expr


@dataclass
class Return:
    expr: Expr | None = None


@dataclass
class IfElse:
    cond: Expr
    then: list[Stmt] = field(default_factory=list)
    else_block: list[Stmt] = field(default_factory=list)


@dataclass
class While:
    cond: Expr
    block: list[Stmt] = field(default_factory=list)


@dataclass
class DoWhile:
    cond: Expr
    block: list[Stmt] = field(default_factory=list)


@dataclass
class For:
    var: str
    start_expr: Expr
    stop: Expr
    step: Expr | None = None
    block: list[Stmt] = field(default_factory=list)


Stmt = Union[Assign, ExprStmt, Return, IfElse, While, DoWhile, For]


@dataclass
class VarDecl:
    type: CType
    name: str
    dims: list[Expr] = field(default_factory=list)
    init: Expr | None = None


@dataclass
class Param:
    type: CType
    name: str
    dims: list[str] = field(default_factory=list)


@dataclass
class FunBody:
    decls: list[VarDecl] = field(default_factory=list)
    local_fundefs: list[FunDef] = field(default_factory=list)
    stmts: list[Stmt] = field(default_factory=list)


@dataclass
class FunDef:
    """A function; without a body it is an imported (extern) declaration."""

    type: CType
    name: str
    params: list[Param] = field(default_factory=list)
    body: FunBody | None = None
    export: bool = False


@dataclass
class GlobDecl:
    """An imported global variable."""

    type: CType
    name: str
    dims: list[str] = field(default_factory=list)


@dataclass
class GlobDef:
    type: CType
    name: str
    export: bool = False
    dims: list[Expr] = field(default_factory=list)
    init: Expr | None = None


Decl = Union[GlobDecl, GlobDef, FunDef]


@dataclass
class Program:
    decls: list[Decl] = field(default_factory=list)