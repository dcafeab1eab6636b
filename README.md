# civicc

`civicc` is the back end of a compiler for CiviC, a small C-like teaching
language. You give it the abstract syntax tree of a CiviC program and the
program's resolved symbol tables. It produces textual assembly for the CiviC
stack virtual machine.

## Modules

- `civicc.types` holds the enumerations `ValueType`, `SymbolType`, `CType`,
  `BinOpType` and `MonOpType`, and the helpers that name and convert them:
  `ct_to_str`, `vt_to_str`, `ct_to_vt`, `bo_to_str`, `mo_to_str`,
  `float_to_str`, `is_array`, `demote_array_type` and
  `generate_array_dim_name`. Invalid programs raise `CompileError`. For
  example, `ct_to_vt(CType.VOID, True)` raises it because a `void` array
  cannot exist.
- `civicc.symbols` holds `Symbol` and `SymbolTable`. You create a `Symbol`
  with `Symbol.function`, `Symbol.array`, `Symbol.variable` or
  `Symbol.for_loop`. A `SymbolTable` is one scope. It tracks its nesting level
  and its parent scope. `SymbolTable.lookup` searches only that scope.
  `SymbolTable.find` and `scope_tree_find` also search the enclosing scopes.
  Inserting a name twice into the same scope raises `DuplicateSymbolError`,
  which is a subclass of `CompileError`.
- `civicc.ast` holds the node dataclasses of a program: `Program`,
  `GlobDecl`, `GlobDef`, `FunDef`, `FunBody`, `Param`, `VarDecl`, the
  statements (`Assign`, `ExprStmt`, `Return`, `IfElse`, `While`, `DoWhile`,
  `For`) and the expressions (`Num`, `Float`, `Bool`, `Var`, `VarLet`,
  `BinOp`, `MonOp`, `Cast`, `FunCall`, `ArrExpr`).
- `civicc.assembly` holds `Assembly`. It collects instructions, labels,
  constants, global variables, imports and exports. `Assembly.render` turns
  them into the assembler's text format, and `write_assembly` writes that
  text to a stream.
- `civicc.emitter` holds `Emitter` and `count_arrexpr`. `Emitter` emits
  instructions relative to the current scope, including the array helpers.
  `civicc.expressions` holds `ExpressionCompiler`, which compiles
  expressions. `civicc.statements` holds `CodeGenerator`, `compile_program`
  and `write_program`, which compile whole programs.
- `civicc.printer` holds `AstPrinter` and `format_ast`. They render a
  program as an indented outline, which helps with debugging.

## Building assembly by hand

```python
from civicc.assembly import Assembly

asm = Assembly()
asm.emit_label("main", True)
asm.emit_instr("iloadc", "0")
asm.emit_instr("ireturn")
asm.emit_const("int", "42")
asm.emit_fun_export("main", "int", [])

print(asm.render())
```

This prints:

```
main:
    iloadc 0
    ireturn

.const int 42
.exportfun "main" int main
```

`asm.find_constant("42")` returns the pair `(index, Constant)` for the first
constant with that value, or `None` if there is no such constant. The
generator uses it to reuse constants rather than emit them twice.

## Compiling a program

The generator expects the symbol tables to be filled in already. Each
function symbol needs its label name and its own scope. Each variable symbol
needs its offset.

```python
from civicc.ast import FunBody, FunDef, Num, Program, Return
from civicc.statements import compile_program
from civicc.symbols import Symbol, SymbolTable
from civicc.types import CType, ValueType

global_scope = SymbolTable()
main = Symbol.function("main", ValueType.NUM, 0, False)
main.label_name = "main"
main.exported = True
global_scope.insert("main", main)
main.scope = SymbolTable(global_scope, main)

program = Program([FunDef(CType.INT, "main", body=FunBody(stmts=[Return(Num(5))]))])
print(compile_program(program, global_scope).render())
```

This prints:

```
main:
    iloadc 0
    ireturn

.const int 5
.exportfun "main" int main
```

Instructions emitted at global level, such as initialisers of global
definitions, go into an `__init` routine at the top of the output. Pass
`requires_init_function=True` to also export `__init`.
`write_program(program, global_scope, requires_init_function, "out.s")`
writes the rendered assembly to a file.

Two kinds of error can occur. A name with no symbol raises `CompileError`.
Operand types that do not fit an instruction raise `ValueError`, for example
a `%` on floats or mismatched binary operands.

## What it does not do

- It has no lexer or parser. The `Program` tree has to be built by other code.
- It has no pass that builds the symbol tables. Offsets, label names, scopes
  and the hidden helper variables for arrays and `for` loops must already be
  in place.
- It has no command-line program. You use it as a library.

## Running the tests

Install the `test` extra, then run `pytest` from the project root.