"""
exprcc Compiler Main Module
===========================

This module provides the main compiler interface for exprcc.
It orchestrates the complete compilation process:

    Source → Lex → Parse → Generate → Assembly

Usage
-----
Command line:
    $ exprcc prog.calc -o prog.s --target aarch64

Programmatic:
    >>> from exprcc.compiler import compile_source
    >>> asm = compile_source("a = 5; a + 1;")

Compilation Pipeline
--------------------
1. **Lexical Analysis**: tokens are pulled from the source on demand
2. **Parsing**: statements become expression trees; identifiers are
   assigned frame slots in the compilation context
3. **Code Generation**: trees are lowered through the selected backend

Error Handling
--------------
Compilation stops at the first error. Input nested deeper than the
interpreter's recursion limit is reported as NestingTooDeepError rather
than crashing.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import logging

from exprcc.compiler.ast import Program
from exprcc.compiler.backends import get_backend, canonical_target
from exprcc.compiler.codegen import CodeGenerator
from exprcc.compiler.context import CompilationContext
from exprcc.compiler.errors import NestingTooDeepError
from exprcc.compiler.lexer import Lexer
from exprcc.compiler.parser import Parser


logger = logging.getLogger(__name__)

DEFAULT_TARGET = "x86_64"


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        target: Target name or alias (x86_64, aarch64, native, ...)
        entry_symbol: Entry point label; None uses the backend's default
                      (``main`` on x86-64, ``_main`` on AArch64)
        emit_comments: Precede each statement's code with a comment
    """
    target: str = DEFAULT_TARGET
    entry_symbol: Optional[str] = None
    emit_comments: bool = False


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        target: Canonical name of the backend used
        assembly: Generated assembly code
        program: The parsed program
        identifier_count: Number of distinct variables
    """
    filename: str = ""
    target: str = ""
    assembly: str = ""
    program: Optional[Program] = None
    identifier_count: int = 0


class Compiler:
    """
    exprcc compiler.

    Example:
        compiler = Compiler(CompilerOptions(target="aarch64"))
        result = compiler.compile_file("prog.calc")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        """
        Initialize the compiler.

        Args:
            options: Compiler configuration (uses defaults if None)

        Raises:
            UnknownTargetError: If the configured target is not supported
        """
        self.options = options or CompilerOptions()
        # Fail on a bad target before any source is read
        self.target = canonical_target(self.options.target)

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile exprcc source code to assembly.

        Args:
            source: Source code string
            filename: Source filename for error messages

        Returns:
            CompilerResult holding the assembly and the parsed program

        Raises:
            CompileError: If compilation fails
        """
        context = CompilationContext(filename)

        program = self._parse(source, filename, context)

        backend = get_backend(self.target, self.options.entry_symbol)
        generator = CodeGenerator(
            backend,
            emit_comments=self.options.emit_comments,
            source_lines=source.splitlines(),
        )
        try:
            assembly = generator.generate(program, context.identifier_count())
        except RecursionError:
            raise NestingTooDeepError("code generation") from None

        logger.info(
            f"Compiled {filename}: {len(program)} statement(s), "
            f"{context.identifier_count()} variable(s), target {self.target}"
        )
        return CompilerResult(
            filename=filename,
            target=self.target,
            assembly=assembly,
            program=program,
            identifier_count=context.identifier_count(),
        )

    def compile_file(self, filepath: Union[str, Path]) -> CompilerResult:
        """
        Compile a source file to assembly.

        Raises:
            CompileError: If compilation fails
            FileNotFoundError: If source file not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.compile_source(source, str(filepath))

    def _parse(self, source: str, filename: str, context: CompilationContext) -> Program:
        """Lex and parse source into a Program."""
        lexer = Lexer(source, context, filename)
        try:
            return Parser(lexer, context).parse()
        except RecursionError:
            raise NestingTooDeepError("parsing") from None


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_source(
    source: str,
    filename: str = "<input>",
    target: str = DEFAULT_TARGET,
) -> str:
    """
    Compile exprcc source code to assembly text.

    This is the primary high-level interface.

    Args:
        source: Source code
        filename: Source filename for error messages
        target: Target name or alias

    Returns:
        Generated assembly code

    Raises:
        CompileError: If compilation fails

    Example:
        >>> asm = compile_source("1 + 2 * 3;", target="aarch64")
    """
    compiler = Compiler(CompilerOptions(target=target))
    return compiler.compile_source(source, filename).assembly


def compile_file(
    filepath: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    target: str = DEFAULT_TARGET,
) -> str:
    """
    Compile a source file to assembly.

    Args:
        filepath: Path to the source file
        output_path: Optional path to write assembly output
        target: Target name or alias

    Returns:
        Generated assembly code

    Raises:
        CompileError: If compilation fails
        FileNotFoundError: If source file not found
    """
    compiler = Compiler(CompilerOptions(target=target))
    result = compiler.compile_file(filepath)

    if output_path:
        Path(output_path).write_text(result.assembly, encoding="utf-8")

    return result.assembly
