"""
exprcc Recursive Descent Parser
===============================

This module implements a recursive descent parser for the exprcc
expression language. It pulls tokens from the lexer on demand and
builds an expression tree per statement.

Grammar (EBNF)
--------------
program         ::= statement* EOF
statement       ::= expr ';'
expr            ::= assignment
assignment      ::= equality ('=' assignment)?
equality        ::= relational (('==' | '!=') relational)*
relational      ::= additive (('<' | '<=' | '>' | '>=') additive)*
additive        ::= multiplicative (('+' | '-') multiplicative)*
multiplicative  ::= unary (('*' | '/') unary)*
unary           ::= '+' primary | '-' primary | primary
primary         ::= '(' expr ')' | NUMBER | IDENTIFIER

Expression Precedence (lowest to highest)
-----------------------------------------
1. assignment     =        (right-associative)
2. equality       == !=
3. relational     < <= > >=
4. additive       + -
5. multiplicative * /
6. unary          + -
7. primary        NUMBER, IDENTIFIER, '(' expr ')'

Lowering Done Here
------------------
- ``a > b``  becomes ``LESS(b, a)``
- ``a >= b`` becomes ``LESS_EQUAL(b, a)``
- ``-x``     becomes ``SUB(0, x)``
- ``+x``     becomes ``x``
- identifiers become ``VariableSlot(offset)`` via the compilation context

Errors
------
The first structural mismatch raises and ends the parse. There is no
error recovery.

Example Usage
-------------
>>> from exprcc.compiler.parser import parse_source
>>> program = parse_source("1 + 2 * 3;")
>>> program.statements[0]
BinaryOp(kind=<NodeKind.ADD: 6>, left=NumberLiteral(value=1), right=BinaryOp(...))
"""

from typing import Callable, Optional
import logging

from exprcc.compiler.context import CompilationContext
from exprcc.compiler.lexer import Lexer, Token, TokenType
from exprcc.compiler.ast import (
    Expression,
    NodeKind,
    Program,
    make_binary,
    make_number,
    make_variable,
)
from exprcc.compiler.errors import (
    UnexpectedTokenError,
    MissingTokenError,
)


logger = logging.getLogger(__name__)


# Maps an operator token to (node kind, swap operands)
OperatorTable = dict[TokenType, tuple[NodeKind, bool]]

EQUALITY_OPERATORS: OperatorTable = {
    TokenType.EQ: (NodeKind.EQUAL, False),
    TokenType.NE: (NodeKind.NOT_EQUAL, False),
}

RELATIONAL_OPERATORS: OperatorTable = {
    TokenType.LT: (NodeKind.LESS, False),
    TokenType.LE: (NodeKind.LESS_EQUAL, False),
    TokenType.GT: (NodeKind.LESS, True),
    TokenType.GE: (NodeKind.LESS_EQUAL, True),
}

ADDITIVE_OPERATORS: OperatorTable = {
    TokenType.PLUS: (NodeKind.ADD, False),
    TokenType.MINUS: (NodeKind.SUB, False),
}

MULTIPLICATIVE_OPERATORS: OperatorTable = {
    TokenType.STAR: (NodeKind.MUL, False),
    TokenType.SLASH: (NodeKind.DIV, False),
}


class Parser:
    """
    Recursive descent parser for exprcc.

    The parser holds a reference to a live lexer and consumes it as it
    goes; after ``parse()`` the lexer is positioned at end of input.

    Attributes:
        lexer: Token source
        context: Compilation context that owns the identifier table
    """

    def __init__(self, lexer: Lexer, context: Optional[CompilationContext] = None):
        """
        Initialize the parser.

        Args:
            lexer: The lexer to pull tokens from
            context: Compilation context (defaults to the lexer's)
        """
        self.lexer = lexer
        self.context = context or lexer.context

    def parse(self) -> Program:
        """
        Parse statements until end of input.

        Returns:
            Program holding one tree per statement

        Raises:
            LexicalError: If the lexer meets invalid input
            ParseError: If the token stream does not fit the grammar
        """
        statements = []

        while not self.lexer.check(TokenType.EOF):
            statements.append(self._parse_statement())

        self.lexer.try_consume(TokenType.EOF)

        logger.debug(
            f"Parsed {len(statements)} statement(s), "
            f"{self.context.identifier_count()} identifier(s)"
        )
        return Program(tuple(statements))

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _match(self, *types: TokenType) -> Optional[Token]:
        """
        Consume the next token if it is one of the given types.

        Returns:
            The consumed token, or None if no match
        """
        for token_type in types:
            if self.lexer.check(token_type):
                return self.lexer.try_consume(token_type)
        return None

    def _expect(self, token_type: TokenType, text: str) -> Token:
        """
        Expect and consume a specific token type.

        Raises:
            MissingTokenError: If the next token is something else
            LexicalError: If the next token cannot be scanned at all
        """
        if self.lexer.check(token_type):
            return self.lexer.next()

        # Rescan so a lexical error surfaces as itself
        current = self.lexer.peek()
        raise MissingTokenError(
            text,
            found=current.describe(),
            location=current.location,
            source_line=self.lexer.line_text(current.location),
        )

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Expression:
        """Parse ``expr ';'``."""
        expr = self._parse_expression()
        self._expect(TokenType.SEMICOLON, ";")
        return expr

    # =========================================================================
    # Expression Parsing (Operator Precedence)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse assignment expression (right-associative)."""
        expr = self._parse_equality()

        op_token = self._match(TokenType.ASSIGN)
        if op_token is not None:
            value = self._parse_assignment()
            return make_binary(NodeKind.ASSIGN, expr, value, op_token.location)

        return expr

    def _parse_equality(self) -> Expression:
        return self._parse_binary(self._parse_relational, EQUALITY_OPERATORS)

    def _parse_relational(self) -> Expression:
        return self._parse_binary(self._parse_additive, RELATIONAL_OPERATORS)

    def _parse_additive(self) -> Expression:
        return self._parse_binary(self._parse_multiplicative, ADDITIVE_OPERATORS)

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(self._parse_unary, MULTIPLICATIVE_OPERATORS)

    def _parse_binary(
        self,
        operand_parser: Callable[[], Expression],
        operators: OperatorTable,
    ) -> Expression:
        """
        Generic left-associative binary expression parser.

        Args:
            operand_parser: Function to parse operands
            operators: Map of token types to (node kind, swap operands)
        """
        expr = operand_parser()

        while True:
            op_token = self._match(*operators)
            if op_token is None:
                return expr
            kind, swap = operators[op_token.type]
            right = operand_parser()
            if swap:
                expr = make_binary(kind, right, expr, op_token.location)
            else:
                expr = make_binary(kind, expr, right, op_token.location)

    def _parse_unary(self) -> Expression:
        """Parse unary expression ('+' primary | '-' primary | primary)."""
        if self._match(TokenType.PLUS):
            return self._parse_primary()

        minus = self._match(TokenType.MINUS)
        if minus is not None:
            zero = make_number(0, minus.location)
            return make_binary(NodeKind.SUB, zero, self._parse_primary(), minus.location)

        return self._parse_primary()

    def _parse_primary(self) -> Expression:
        """Parse primary expression (literals, identifiers, parenthesized)."""
        token = self.lexer.next()

        if token.type == TokenType.NUMBER:
            return make_number(token.value, token.location)

        if token.type == TokenType.IDENTIFIER:
            offset = self.context.resolve_offset(token.value)
            return make_variable(offset, token.location)

        if token.type == TokenType.LPAREN:
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, ")")
            return expr

        raise UnexpectedTokenError(
            token.describe(),
            expected="a number, an identifier or '('",
            location=token.location,
            source_line=self.lexer.line_text(token.location),
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(
    source: str,
    filename: str = "<input>",
    context: Optional[CompilationContext] = None,
) -> Program:
    """
    Parse exprcc source code into a Program.

    Args:
        source: The source code
        filename: Source filename for error messages
        context: Compilation context to record identifiers in

    Returns:
        The parsed Program

    Raises:
        CompileError: If lexing or parsing fails
    """
    context = context or CompilationContext(filename)
    lexer = Lexer(source, context, filename)
    return Parser(lexer, context).parse()
