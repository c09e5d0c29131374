"""
exprcc - Expression Compiler for x86-64 and AArch64
===================================================

This package compiles a tiny expression-and-assignment language into
textual assembly for x86-64 (Intel syntax) or AArch64.

Main Components
---------------
- **compiler**: lexer, parser, expression trees, code generator and the
  per-architecture backends
- **executor**: reference executor that runs generated assembly, used to
  check results without a native toolchain
- **cli**: the ``exprcc`` command

Quick Start
-----------
Compile a program:
    >>> from exprcc.compiler import compile_source
    >>> asm = compile_source("a = 5; a + 1;", target="aarch64")

Run it on the reference executor:
    >>> from exprcc.executor import run_assembly
    >>> run_assembly(asm, "aarch64")
    6

Or use the command-line tool:
    $ exprcc prog.calc -o prog.s --target x86_64
    $ exprcc prog.calc --run
"""

__version__ = "1.0.0"

from exprcc.errors import ExprccError, SourceLocation, LocatedError, ExecutorError

__all__ = [
    "__version__",
    "ExprccError",
    "SourceLocation",
    "LocatedError",
    "ExecutorError",
]
