"""
exprcc Error Hierarchy
======================

This module defines the base of the exception hierarchy for exprcc.
All exceptions inherit from ExprccError, allowing callers to catch all
exprcc-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
ExprccError (base)
├── CompileError (see exprcc.compiler.errors)
│   ├── LexicalError
│   ├── ParseError
│   ├── CodeGenError
│   ├── NestingTooDeepError
│   └── UnknownTargetError
└── ExecutorError - the reference executor could not run the assembly

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class ExprccError(Exception):
    """
    Base exception for all exprcc errors.

        try:
            asm = compile_source("a = 1;")
        except ExprccError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Located Error Base
# =============================================================================

class LocatedError(ExprccError):
    """
    Error carrying an optional source location, source line and hint.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            prog.calc:1:3: error: invalid character '$'
                1 $ 2;
                  ^
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class ExecutorError(LocatedError):
    """
    Raised by the reference executor when generated assembly cannot run.

    Examples:
        - Unknown mnemonic or malformed operand
        - Read from an address that was never written
        - Division by zero
        - Program runs past the end without returning
    """
    pass
