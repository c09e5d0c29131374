"""
Compiler Error Hierarchy
========================

This module defines the exception hierarchy for the exprcc compiler.
All exceptions inherit from CompileError, which itself inherits from
the base ExprccError for consistent error handling across the package.

Exception Hierarchy
-------------------
CompileError (base for all compiler errors)
├── LexicalError - no token rule matches the input
│   ├── InvalidCharacterError - unexpected character
│   └── InvalidNumberError - malformed numeric literal
├── ParseError - structural mismatch in the token stream
│   ├── UnexpectedTokenError - wrong token where a construct was expected
│   └── MissingTokenError - required ';' or ')' is absent
├── CodeGenError - tree cannot be lowered
│   ├── InvalidAssignmentTargetError - left side of '=' is not a variable
│   └── UnsupportedLiteralError - literal is not a 64-bit integer
├── NestingTooDeepError - input nests deeper than the host stack allows
└── UnknownTargetError - no backend registered under the requested name

Every compiler error is fatal: compilation stops at the first one and no
partial assembly is produced.
"""

from typing import Optional, Iterable

from exprcc.errors import LocatedError, SourceLocation


# =============================================================================
# Base Compiler Exception
# =============================================================================

class CompileError(LocatedError):
    """Base exception for all compiler errors."""
    pass


# =============================================================================
# Lexical Errors
# =============================================================================

class LexicalError(CompileError):
    """An input character sequence matches no token rule."""
    pass


class InvalidCharacterError(LexicalError):
    """
    Invalid character in source code.

    Raised when the lexer encounters a character that starts no token.
    The offending character is kept on the exception as ``char``.
    """

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}' (0x{ord(char):02X})",
            location=location,
            source_line=source_line,
        )


class InvalidNumberError(LexicalError):
    """
    Malformed numeric literal.

    Raised for digit/'.' runs that do not form a number, such as
    ``1.2.3`` or a lone ``.``.
    """

    def __init__(
        self,
        text: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.text = text
        super().__init__(
            f"malformed number '{text}'",
            location=location,
            hint="numbers are digits with at most one '.'",
            source_line=source_line,
        )


# =============================================================================
# Parse Errors
# =============================================================================

class ParseError(CompileError):
    """
    Syntax error in the token stream.

    Parsing does not resynchronise: the first ParseError ends the
    compilation.
    """
    pass


class UnexpectedTokenError(ParseError):
    """
    Unexpected token during parsing.

    Raised when the parser encounters a token that doesn't match
    the expected grammar rule.
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected

        hint = None
        if expected:
            hint = f"expected {expected}"

        super().__init__(
            f"unexpected token '{found}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class MissingTokenError(ParseError):
    """
    Required token is missing.

    Raised when a required token (like ';' or ')') is not found
    where expected.
    """

    def __init__(
        self,
        expected: str,
        found: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        self.found = found

        message = f"expected '{expected}'"
        if found is not None:
            message += f" before '{found}'"

        super().__init__(
            message,
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class CodeGenError(CompileError):
    """Error during code generation."""
    pass


class InvalidAssignmentTargetError(CodeGenError):
    """
    Invalid left-hand side of assignment.

    Examples of invalid targets:
        - 42 = x;
        - (a + b) = x;
    """

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "left side of assignment is not a variable",
            location=location,
            hint="only a plain identifier can be assigned to",
            source_line=source_line,
        )


class UnsupportedLiteralError(CodeGenError):
    """
    Literal cannot be represented as a signed 64-bit integer.

    Raised for fractional literals (``1.5``) and integers outside
    the signed 64-bit range.
    """

    def __init__(
        self,
        value,
        reason: str,
        location: Optional[SourceLocation] = None,
    ):
        self.value = value
        super().__init__(
            f"cannot lower literal {value}: {reason}",
            location=location,
        )


# =============================================================================
# Driver Errors
# =============================================================================

class NestingTooDeepError(CompileError):
    """Input nests deeper than the recursive parser or generator can follow."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(
            f"expression nesting too deep during {stage}",
            hint="split the expression into several statements",
        )


class UnknownTargetError(CompileError):
    """No backend is registered under the requested target name."""

    def __init__(self, target: str, available: Iterable[str] = ()):
        self.target = target
        self.available = sorted(available)

        hint = None
        if self.available:
            hint = "available targets: " + ", ".join(self.available)

        super().__init__(f"unknown target '{target}'", hint=hint)
