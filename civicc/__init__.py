"""CiviC code generation: types, symbol tables, AST, and stack-VM assembly output."""

__version__ = "1.0.0"