"""
exprcc Command-Line Interface
=============================

- **exprcc**: compile a source file to x86-64 or AArch64 assembly,
  optionally running the result on the reference executor

The command is a Click application; failures map to the exit codes in
``exprcc.cli.errors``.
"""

__all__ = ["main", "errors"]
