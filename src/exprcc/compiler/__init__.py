"""
exprcc Compiler
===============

This package compiles the exprcc expression language to assembly for
x86-64 (Intel syntax) or AArch64.

The language is a sequence of ``;``-terminated expression statements
over numbers and variables:

    a = 5;
    b = a * (a - 1);
    b >= 20;

Pipeline
--------
    Source → Lexer → Parser → Expression Trees → Code Generator → Assembly
                                                       │
                                                  Backend (x86_64 | aarch64)

The program's result is the value of its last statement, returned in the
target's return register.

Usage
-----
>>> from exprcc.compiler import compile_source
>>> print(compile_source("1 + 2 * 3;", target="x86_64"))

Language Subset
---------------
Supported:
- Operators: = == != < <= > >= + - * / and unary + -
- Parentheses
- Variables (created on first use, 8 bytes each)
- Integer literals; float literals with no fractional part

Not supported:
- Control flow, functions, types
- Fractional arithmetic
"""

# =============================================================================
# Public API Imports
# =============================================================================

from exprcc.compiler.compiler import (
    Compiler,
    CompilerOptions,
    CompilerResult,
    compile_source,
    compile_file,
)
from exprcc.compiler.errors import (
    CompileError,
    LexicalError,
    InvalidCharacterError,
    InvalidNumberError,
    ParseError,
    UnexpectedTokenError,
    MissingTokenError,
    CodeGenError,
    InvalidAssignmentTargetError,
    UnsupportedLiteralError,
    NestingTooDeepError,
    UnknownTargetError,
)
from exprcc.compiler.context import CompilationContext, IdentifierTable
from exprcc.compiler.lexer import Lexer, Token, TokenType
from exprcc.compiler.parser import Parser, parse_source
from exprcc.compiler.codegen import CodeGenerator
from exprcc.compiler.backends import (
    Backend,
    X86_64Backend,
    AArch64Backend,
    available_targets,
    get_backend,
)
from exprcc.compiler.ast import (
    Expression,
    NodeKind,
    NumberLiteral,
    VariableSlot,
    BinaryOp,
    Program,
    ASTPrinter,
)

# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    # Main API
    "Compiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_source",
    "compile_file",
    # Errors
    "CompileError",
    "LexicalError",
    "InvalidCharacterError",
    "InvalidNumberError",
    "ParseError",
    "UnexpectedTokenError",
    "MissingTokenError",
    "CodeGenError",
    "InvalidAssignmentTargetError",
    "UnsupportedLiteralError",
    "NestingTooDeepError",
    "UnknownTargetError",
    # Context
    "CompilationContext",
    "IdentifierTable",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    # Parser
    "Parser",
    "parse_source",
    # Code Generator
    "CodeGenerator",
    "Backend",
    "X86_64Backend",
    "AArch64Backend",
    "available_targets",
    "get_backend",
    # Expression Tree
    "Expression",
    "NodeKind",
    "NumberLiteral",
    "VariableSlot",
    "BinaryOp",
    "Program",
    "ASTPrinter",
]
