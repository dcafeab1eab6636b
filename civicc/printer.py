"""Human-readable dump of the abstract syntax tree."""

from __future__ import annotations

import io
import sys
from typing import Callable, Iterable, TextIO

from .ast import (
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
from .types import CType, ct_to_str, float_to_str


def _bool_to_string(value: bool) -> str:
    return "true" if value else "false"


def _type_to_string(t: CType) -> str:
    if not isinstance(t, CType):
        raise ValueError(f"UNKNOWN TYPE {t!r}")
    return ct_to_str(t)


class AstPrinter:
    """Writes an indented, bracketed description of a program."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream
        self._parts: list[str] = []
        self._indent = 0
        self._handlers: dict[type, Callable[[object], None]] = {
            GlobDecl: self._globdecl,
            GlobDef: self._globdef,
            FunDef: self._fundef,
            FunBody: self._funbody,
            Param: self._param,
            VarDecl: self._vardecl,
            Assign: self._assign,
            ExprStmt: self._exprstmt,
            Return: self._return,
            IfElse: self._ifelse,
            While: self._while,
            DoWhile: self._dowhile,
            For: self._for,
            FunCall: self._funcall,
            Cast: self._cast,
            BinOp: self._binop,
            MonOp: self._monop,
            VarLet: self._varlet,
            Var: self._var,
            Num: self._num,
            Float: self._float,
            Bool: self._bool,
            ArrExpr: self._arrexpr,
        }

    def print(self, program: Program) -> None:
        """Write the description of ``program`` to the stream (stdout by default)."""
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(self.render(program))

    def render(self, program: Program) -> str:
        """The description of ``program`` as text."""
        self._parts = []
        self._indent = 0
        self._out("START OF PROGRAM")
        for decl in program.decls:
            self._out("\n")
            self._visit(decl)
        self._out("\nEND OF PROGRAM\n")
        return "".join(self._parts)

    # Helpers

    def _out(self, text: str) -> None:
        self._parts.append(text)

    def _print_indent(self) -> None:
        self._out("\t" * self._indent)

    def _visit(self, node: object) -> None:
        handler = self._handlers.get(type(node))
        if handler is None:
            raise TypeError(f"Cannot print node {node!r}")
        handler(node)

    def _visit_all(self, nodes: Iterable[object]) -> None:
        for node in nodes:
            self._visit(node)

    def _stmts(self, stmts: Iterable[object]) -> None:
        for stmt in stmts:
            self._out("\n")
            self._print_indent()
            self._visit(stmt)

    def _indented_block(self, stmts: Iterable[object]) -> None:
        self._indent += 1
        self._stmts(stmts)
        self._indent -= 1

    # Declarations

    def _globdecl(self, node: GlobDecl) -> None:
        self._out(f"GLOBDECL(name={node.name}, type={_type_to_string(node.type)})")

    def _globdef(self, node: GlobDef) -> None:
        self._out(
            f"GLOBDEF(export={_bool_to_string(node.export)} name={node.name}, "
            f"type={_type_to_string(node.type)})"
        )
        if node.init is not None:
            self._out(" <- ")
            self._visit(node.init)

    def _fundef(self, node: FunDef) -> None:
        has_body = node.body is not None
        self._print_indent()
        if has_body:
            self._out("BEGIN ")
        self._out(f"FUNDEF(name={node.name}, type={_type_to_string(node.type)}")
        if node.params:
            self._out(", params=(")
            for index, param in enumerate(node.params):
                if index:
                    self._out(", ")
                self._visit(param)
            self._out(")")
        self._out(")")

        if has_body:
            self._indent += 1
            self._visit(node.body)
            self._indent -= 1
            self._out("\n")
            self._print_indent()
            self._out(f"END FUNDEF(name={node.name})")

    def _funbody(self, node: FunBody) -> None:
        self._visit_all(node.decls)
        for local in node.local_fundefs:
            self._out("\n")
            self._visit(local)
        self._stmts(node.stmts)

    def _param(self, node: Param) -> None:
        self._out(f"{ct_to_str(node.type)} {node.name}")

    def _vardecl(self, node: VarDecl) -> None:
        self._out("\n")
        self._print_indent()
        self._out(f"VARDECL(name={node.name}, type={_type_to_string(node.type)})")
        if node.init is not None:
            self._out(" <- ")
            self._visit(node.init)

    # Statements

    def _assign(self, node: Assign) -> None:
        self._out("ASSIGN(")
        self._visit(node.let)
        self._out(" <- ")
        self._visit(node.expr)
        self._out(")")

    def _exprstmt(self, node: ExprStmt) -> None:
        self._visit(node.expr)

    def _return(self, node: Return) -> None:
        self._out("RETURN(")
        if node.expr is not None:
            self._visit(node.expr)
        self._out(")")

    def _ifelse(self, node: IfElse) -> None:
        self._out("START IF(cond=")
        self._visit(node.cond)
        self._out(")")
        self._indented_block(node.then)
        self._out("\n")
        if node.else_block:
            self._print_indent()
            self._out("ELSE")
            self._indented_block(node.else_block)
            self._out("\n")
        self._print_indent()
        self._out("END IF")

    def _while(self, node: While) -> None:
        self._out("START WHILE(cond=")
        self._visit(node.cond)
        self._out(")")
        self._indented_block(node.block)
        self._out("\n")
        self._print_indent()
        self._out("END WHILE")

    def _dowhile(self, node: DoWhile) -> None:
        self._stmts(node.block)
        self._visit(node.cond)

    def _for(self, node: For) -> None:
        self._visit(node.start_expr)
        self._visit(node.stop)
        if node.step is not None:
            self._visit(node.step)
        self._stmts(node.block)

    # Expressions

    def _funcall(self, node: FunCall) -> None:
        self._out(f"FUNCALL(name={node.name}")
        self._visit_all(node.args)
        self._out(")")

    def _cast(self, node: Cast) -> None:
        self._visit(node.expr)

    def _binop(self, node: BinOp) -> None:
        self._out("BINOP(")
        self._visit(node.left)
        self._out(f" {node.op.value} ")
        self._visit(node.right)
        self._out(")")

    def _monop(self, node: MonOp) -> None:
        self._out(f"MONOP({node.op.value}")
        self._visit(node.operand)
        self._out(")")

    def _varlet(self, node: VarLet) -> None:
        self._out(f"VARLET({node.name})")
        self._visit_all(node.indices)

    def _var(self, node: Var) -> None:
        self._out(f"VAR({node.name})")
        self._visit_all(node.indices)

    def _num(self, node: Num) -> None:
        self._out(f"NUM({node.val})")

    def _float(self, node: Float) -> None:
        self._out(f"FLOAT({float_to_str(node.val)})")

    def _bool(self, node: Bool) -> None:
        self._out(f"BOOL({_bool_to_string(node.val)})")

    def _arrexpr(self, node: ArrExpr) -> None:
        self._visit_all(node.exprs)


def format_ast(program: Program) -> str:
    """The printed description of ``program`` as a string."""
    buffer = io.StringIO()
    AstPrinter(buffer).print(program)
    return buffer.getvalue()