"""In-memory assembly program and its textual form."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Iterable, TextIO

_INDENT = "    "


def _present_args(args: Iterable[object]) -> tuple[str, ...]:
    """Arguments up to the first missing one, as strings."""
    return tuple(str(arg) for arg in itertools.takewhile(lambda a: a is not None, args))


@dataclass(frozen=True)
class Instruction:
    """One instruction, or a label when ``is_label`` is set."""

    instr: str
    args: tuple[str, ...] = ()
    is_label: bool = False
    is_fun: bool = False


@dataclass(frozen=True)
class Constant:
    type: str
    value: str

    def render(self) -> str:
        return f".const {self.type} {self.value}"


@dataclass(frozen=True)
class FunExport:
    name: str
    ret_type: str
    args: tuple[str, ...] = ()

    def render(self) -> str:
        parts = [f'.exportfun "{self.name}"', self.ret_type, *self.args, self.name]
        return " ".join(parts)


@dataclass(frozen=True)
class VarExport:
    name: str
    global_index: int

    def render(self) -> str:
        return f'.exportvar "{self.name}" {self.global_index}'


@dataclass(frozen=True)
class GlobVar:
    type: str

    def render(self) -> str:
        return f".global {self.type}"


@dataclass(frozen=True)
class FunImport:
    name: str
    ret_type: str
    args: tuple[str, ...] = ()

    def render(self) -> str:
        return " ".join([f'.importfun "{self.name}"', self.ret_type, *self.args])


@dataclass(frozen=True)
class VarImport:
    name: str
    type: str

    def render(self) -> str:
        return f'.importvar "{self.name}" {self.type}'


@dataclass
class Assembly:
    """All tables that make up an assembly file, in emission order."""

    instrs: list[Instruction] = field(default_factory=list)
    init_instrs: list[Instruction] = field(default_factory=list)
    consts: list[Constant] = field(default_factory=list)
    fun_exports: list[FunExport] = field(default_factory=list)
    var_exports: list[VarExport] = field(default_factory=list)
    glob_vars: list[GlobVar] = field(default_factory=list)
    fun_imports: list[FunImport] = field(default_factory=list)
    var_imports: list[VarImport] = field(default_factory=list)

    def emit_instr(self, name: str, *args: object) -> None:
        """Append an instruction to the main instruction stream."""
        self.instrs.append(Instruction(name, _present_args(args)))

    def emit_init(self, name: str, *args: object) -> None:
        """Append an instruction to the global initialisation routine."""
        self.init_instrs.append(Instruction(name, _present_args(args)))

    def emit_label(self, label: str, is_fun: bool) -> None:
        """Append a label to the main instruction stream."""
        self.instrs.append(Instruction(label, is_label=True, is_fun=is_fun))

    def emit_const(self, type_name: str, value: str) -> None:
        self.consts.append(Constant(type_name, str(value)))

    def emit_fun_export(self, name: str, ret_type: str, args: Iterable[str] = ()) -> None:
        self.fun_exports.append(FunExport(name, ret_type, tuple(args)))

    def emit_var_export(self, name: str, glob_index: int) -> None:
        self.var_exports.append(VarExport(name, glob_index))

    def emit_glob_var(self, type_name: str) -> None:
        self.glob_vars.append(GlobVar(type_name))

    def emit_fun_import(self, name: str, ret_type: str, args: Iterable[str] = ()) -> None:
        self.fun_imports.append(FunImport(name, ret_type, tuple(args)))

    def emit_var_import(self, name: str, type_name: str) -> None:
        self.var_imports.append(VarImport(name, type_name))

    def find_constant(self, value: str) -> tuple[int, Constant] | None:
        """Index and entry of the first constant with ``value``, if any."""
        return next(
            ((idx, const) for idx, const in enumerate(self.consts) if const.value == value),
            None,
        )

    def find_fun_export(self, name: str) -> tuple[int, FunExport] | None:
        """Index and entry of the exported function ``name``, if any."""
        return next(
            ((idx, exp) for idx, exp in enumerate(self.fun_exports) if exp.name == name),
            None,
        )

    def find_fun_import(self, name: str) -> tuple[int, FunImport] | None:
        """Index and entry of the imported function ``name``, if any."""
        return next(
            ((idx, imp) for idx, imp in enumerate(self.fun_imports) if imp.name == name),
            None,
        )

    def render(self) -> str:
        """The complete assembly file as text."""
        lines: list[str] = []
        written_first_label = False

        def instruction_lines(instructions: list[Instruction]) -> None:
            nonlocal written_first_label
            for instruction in instructions:
                if instruction.is_label:
                    if written_first_label and instruction.is_fun:
                        lines.append("\n")
                    else:
                        written_first_label = True
                    lines.append(f"{instruction.instr}:\n")
                else:
                    text = " ".join((instruction.instr, *instruction.args))
                    lines.append(f"{_INDENT}{text}\n")

        if self.init_instrs:
            lines.append("__init:\n")
            instruction_lines(self.init_instrs)
            lines.append(f"{_INDENT}return\n\n")

        instruction_lines(self.instrs)
        lines.append("\n")

        for table in (
            self.consts,
            self.fun_exports,
            self.var_exports,
            self.glob_vars,
            self.fun_imports,
            self.var_imports,
        ):
            lines.extend(f"{entry.render()}\n" for entry in table)

        return "".join(lines)


def write_assembly(stream: TextIO, assembly: Assembly) -> None:
    """Write the textual form of ``assembly`` to ``stream``."""
    stream.write(assembly.render())