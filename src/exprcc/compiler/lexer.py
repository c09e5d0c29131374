"""
exprcc Lexer (Tokenizer)
========================

This module implements the lexer for the exprcc expression language.
It converts source text into a pull-based stream of tokens for the parser.

Token Categories
----------------
- Numbers: a run of digits and '.' (``42``, ``3.5``)
- Identifiers: a run of letters and '_' (``total``, ``_x``)
- Operators: + - * / = == != < <= > >=
- Delimiters: ( ) ;
- End of input: end of the text, or a NUL character

Identifiers never contain digits: ``a1`` lexes as the identifier ``a``
followed by the number ``1``.

Pull Interface
--------------
The parser drives the lexer one token at a time:

- ``next()`` consumes and returns the next token
- ``peek()`` returns the next token without consuming it
- ``check(expected)`` tests the next token without consuming it; never raises
- ``try_consume(expected)`` consumes the next token only if it matches

Example Usage
-------------
>>> from exprcc.compiler.lexer import Lexer
>>> lexer = Lexer("a = 1 + 2;")
>>> for token in lexer.tokenize():
...     print(token)
Token(IDENTIFIER, 'a', 1:1)
Token(ASSIGN, 1:3)
Token(NUMBER, 1, 1:5)
Token(PLUS, 1:7)
Token(NUMBER, 2, 1:9)
Token(SEMICOLON, 1:10)
Token(EOF, 1:11)
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, Optional, Union
import logging
import string

from exprcc.errors import SourceLocation
from exprcc.compiler.context import CompilationContext
from exprcc.compiler.errors import (
    LexicalError,
    InvalidCharacterError,
    InvalidNumberError,
    UnexpectedTokenError,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for the exprcc language."""

    # === Structural Tokens ===
    EOF = auto()            # End of input

    # === Identifiers and Literals ===
    IDENTIFIER = auto()     # Variable names
    NUMBER = auto()         # Numeric literals

    # === Arithmetic Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /

    # === Comparison Operators ===
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    LE = auto()             # <=
    GT = auto()             # >
    GE = auto()             # >=

    # === Assignment ===
    ASSIGN = auto()         # =

    # === Delimiters ===
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    SEMICOLON = auto()      # ;


# Textual rendering of every token type without a payload
TOKEN_TEXT: dict[TokenType, str] = {
    TokenType.EOF: "",
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.LT: "<",
    TokenType.LE: "<=",
    TokenType.GT: ">",
    TokenType.GE: ">=",
    TokenType.ASSIGN: "=",
    TokenType.LPAREN: "(",
    TokenType.RPAREN: ")",
    TokenType.SEMICOLON: ";",
}

# Two-character operators, keyed by their first character
TWO_CHAR_OPERATORS: dict[str, tuple[str, TokenType]] = {
    "=": ("=", TokenType.EQ),
    "!": ("=", TokenType.NE),
    "<": ("=", TokenType.LE),
    ">": ("=", TokenType.GE),
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "<": TokenType.LT,
    ">": TokenType.GT,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ";": TokenType.SEMICOLON,
    "=": TokenType.ASSIGN,
}

# Returned by the character accessors past the end of the source
SENTINEL = "\0"


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from exprcc source.

    Two tokens are equal when their type and payload are equal; the
    source location is only used for diagnostics.

    Attributes:
        type: The TokenType classification
        value: Numeric value for NUMBER, name for IDENTIFIER, else None
        location: Where the token starts in the source
    """
    type: TokenType
    value: Union[int, float, str, None] = None
    location: Optional[SourceLocation] = field(default=None, compare=False)

    def __repr__(self) -> str:
        """Format token for debugging output."""
        where = ""
        if self.location is not None:
            where = f", {self.location.line}:{self.location.column}"
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}{where})"
        return f"Token({self.type.name}{where})"

    @property
    def text(self) -> str:
        """The token rendered back to source text."""
        if self.type in (TokenType.NUMBER, TokenType.IDENTIFIER):
            return str(self.value)
        return TOKEN_TEXT[self.type]

    def describe(self) -> str:
        """Human-readable form for error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        return self.text


TokenLike = Union[Token, TokenType]


def _as_token(expected: TokenLike) -> Token:
    if isinstance(expected, TokenType):
        return Token(expected)
    return expected


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes exprcc source code on demand.

    The lexer also gives the parser access to the compilation's identifier
    table through ``resolve_offset`` and ``identifier_count``.

    Attributes:
        source: The source code being tokenized
        context: The compilation context holding the identifier table
        filename: Name of the source file (for error reporting)
    """

    IDENT_CHARS = string.ascii_letters + "_"

    NUMBER_CHARS = string.digits + "."

    def __init__(
        self,
        source: str,
        context: Optional[CompilationContext] = None,
        filename: Optional[str] = None,
    ):
        """
        Initialize the lexer with source code.

        Args:
            source: The source code to tokenize
            context: Compilation context (a fresh one is created if None)
            filename: Name of the source file (defaults to the context's)
        """
        self.source = source
        self.context = context or CompilationContext(filename or "<input>")
        self.filename = filename or self.context.filename

        # Current position in source
        self._pos = 0
        self._line = 1
        self._column = 1

        # Track line start position for error reporting
        self._line_start_pos = 0

    # =========================================================================
    # Public Token Interface
    # =========================================================================

    def next(self) -> Token:
        """
        Consume and return the next token.

        Raises:
            InvalidCharacterError: If no token rule matches
            InvalidNumberError: If a numeric literal is malformed
        """
        self._skip_whitespace()
        return self._scan_token()

    def peek(self) -> Token:
        """
        Return the next token without consuming it.

        Raises:
            LexicalError: If the next token cannot be scanned
        """
        state = self._save()
        try:
            return self.next()
        finally:
            self._restore(state)

    def check(self, expected: TokenLike) -> bool:
        """
        Return True if the next token renders identically to ``expected``.

        Never consumes input and never raises: a lexical error at the
        current position simply compares unequal.
        """
        try:
            token = self.peek()
        except LexicalError:
            return False
        return self._matches(token, _as_token(expected))

    def try_consume(self, expected: TokenLike) -> Token:
        """
        Consume the next token if it renders identically to ``expected``.

        Args:
            expected: The token (or bare token type) to match

        Returns:
            The consumed token

        Raises:
            UnexpectedTokenError: If the next token differs; the lexer
                does not advance in that case
            LexicalError: If the next token cannot be scanned
        """
        wanted = _as_token(expected)
        token = self.peek()
        if not self._matches(token, wanted):
            raise UnexpectedTokenError(
                token.describe(),
                expected=f"'{wanted.text}'" if wanted.text else "end of input",
                location=token.location,
                source_line=self.line_text(token.location),
            )
        return self.next()

    def tokenize(self) -> Iterator[Token]:
        """
        Generate every remaining token, ending with EOF.

        Raises:
            LexicalError: If invalid input is encountered
        """
        while True:
            token = self.next()
            yield token
            if token.type == TokenType.EOF:
                return

    # =========================================================================
    # Identifier Table Access
    # =========================================================================

    def resolve_offset(self, name: str) -> int:
        """Return the frame offset of ``name``, allocating a slot if new."""
        return self.context.resolve_offset(name)

    def identifier_count(self) -> int:
        """Return the number of distinct identifiers seen so far."""
        return self.context.identifier_count()

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek_char(self, offset: int = 0) -> str:
        """
        Look at character at current position + offset without advancing.

        Returns the NUL sentinel if past end of source.
        """
        pos = self._pos + offset
        if pos >= len(self.source):
            return SENTINEL
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return SENTINEL

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _save(self) -> tuple[int, int, int, int]:
        return (self._pos, self._line, self._column, self._line_start_pos)

    def _restore(self, state: tuple[int, int, int, int]) -> None:
        self._pos, self._line, self._column, self._line_start_pos = state

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self._peek_char().isspace():
            self._advance()

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self._line, self._column)

    @staticmethod
    def _matches(token: Token, expected: Token) -> bool:
        return token.type == expected.type and token.text == expected.text

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        """Scan one token starting at the current (non-blank) position."""
        location = self._location()
        char = self._peek_char()

        if char in self.NUMBER_CHARS:
            return self._scan_number(location)

        if char in self.IDENT_CHARS:
            return self._scan_identifier(location)

        if char == SENTINEL:
            # End of input, or an embedded NUL; either way the stream ends
            self._advance()
            return Token(TokenType.EOF, location=location)

        if char in TWO_CHAR_OPERATORS:
            second, token_type = TWO_CHAR_OPERATORS[char]
            if self._peek_char(1) == second:
                self._advance()
                self._advance()
                return Token(token_type, location=location)

        if char in SINGLE_CHAR_TOKENS:
            self._advance()
            return Token(SINGLE_CHAR_TOKENS[char], location=location)

        raise InvalidCharacterError(
            char,
            location,
            self._get_current_line(),
        )

    def _scan_number(self, location: SourceLocation) -> Token:
        """
        Scan a greedy run of digits and '.'.

        A run without '.' is an int, a run with exactly one '.' and at
        least one digit is a float; anything else is malformed.
        """
        start = self._pos
        while self._peek_char() in self.NUMBER_CHARS and not self._at_end():
            self._advance()
        text = self.source[start:self._pos]

        dots = text.count(".")
        if dots == 0:
            value: Union[int, float] = int(text)
        elif dots == 1 and len(text) > 1:
            value = float(text)
        else:
            raise InvalidNumberError(text, location, self.line_text(location))

        return Token(TokenType.NUMBER, value, location=location)

    def _scan_identifier(self, location: SourceLocation) -> Token:
        start = self._pos
        while not self._at_end() and self._peek_char() in self.IDENT_CHARS:
            self._advance()
        return Token(TokenType.IDENTIFIER, self.source[start:self._pos], location=location)

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _get_current_line(self) -> str:
        """Get the current line of source text for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    def line_text(self, location: Optional[SourceLocation]) -> Optional[str]:
        """Return the source line a location points into."""
        if location is None:
            return None
        lines = self.source.splitlines()
        if 0 < location.line <= len(lines):
            return lines[location.line - 1]
        return ""
