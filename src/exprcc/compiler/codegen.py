"""
exprcc Code Generator
=====================

This module lowers expression trees to assembly text through a Backend.
The generator decides *what* happens (push, pop, add, ...) over logical
operands; the backend decides *how* it is spelled on one architecture.

Code Generation Strategy
------------------------
Stack-based evaluation, post-order:

1. Every subtree leaves exactly one value on the machine stack
2. A binary node pops its right operand into SECONDARY and its left
   operand into ACCUMULATOR, combines them into ACCUMULATOR and pushes
   the result
3. Variables live in word-sized slots below FRAME_BASE; a read computes
   the slot address and pushes the word stored there
4. After each statement the value is popped into ACCUMULATOR, so the
   program returns the value of its last statement

Stack Frame Layout
------------------
    +----------------+ <- FRAME_BASE
    | variable 1     |  FRAME_BASE - 8
    | variable 2     |  FRAME_BASE - 16
    | ...            |
    +----------------+
    | temp values    |  (expression evaluation)
    +----------------+ <- STACK_TOP

Literals
--------
The generated code works on signed 64-bit integers. Integer literals are
used as they are, float literals with no fractional part are lowered to
the equal integer, anything else raises UnsupportedLiteralError.
"""

from typing import Optional, Union
import logging

from exprcc.compiler.ast import (
    Expression,
    NodeKind,
    NumberLiteral,
    VariableSlot,
    BinaryOp,
    Program,
)
from exprcc.compiler.backends.base import (
    Backend,
    Immediate,
    Memory,
    Role,
    ACCUMULATOR,
    FRAME_BASE,
    SCRATCH0,
    SECONDARY,
    INT64_MIN,
    INT64_MAX,
)
from exprcc.compiler.errors import (
    CodeGenError,
    InvalidAssignmentTargetError,
    UnsupportedLiteralError,
)


logger = logging.getLogger(__name__)


def literal_to_int(node: NumberLiteral) -> int:
    """
    Lower a literal value to a signed 64-bit integer.

    Raises:
        UnsupportedLiteralError: For fractional or out-of-range values
    """
    value: Union[int, float] = node.value
    if isinstance(value, float):
        if not value.is_integer():
            raise UnsupportedLiteralError(value, "fractional values are not supported", node.location)
        value = int(value)
    if not INT64_MIN <= value <= INT64_MAX:
        raise UnsupportedLiteralError(node.value, "out of 64-bit range", node.location)
    return value


class CodeGenerator:
    """
    Generates assembly from exprcc expression trees.

    Output accumulates in an internal buffer: ``emit`` appends one tree,
    ``generate`` produces a whole program.

    Attributes:
        backend: Target backend, fixed for the generator's lifetime
        emit_comments: Annotate statements with comments
    """

    def __init__(
        self,
        backend: Backend,
        emit_comments: bool = False,
        source_lines: Optional[list[str]] = None,
    ):
        """
        Initialize the code generator.

        Args:
            backend: Backend that spells instructions
            emit_comments: Precede each statement with a comment
            source_lines: Source text used for statement comments and
                error messages
        """
        self.backend = backend
        self.emit_comments = emit_comments
        self._source_lines = source_lines or []
        self._output: list[str] = []

    @property
    def lines(self) -> list[str]:
        """Lines emitted so far."""
        return list(self._output)

    def generate(self, program: Program, identifier_count: int) -> str:
        """
        Generate a complete assembly program.

        Args:
            program: The parsed program
            identifier_count: Number of variable slots to reserve

        Returns:
            Assembly text, newline-terminated

        Raises:
            CodeGenError: If a tree cannot be lowered
        """
        self._output = []

        self._extend(self.backend.header())
        self._extend(self.backend.frame_prologue(identifier_count * self.backend.word_size))

        for index, statement in enumerate(program.statements, 1):
            if self.emit_comments:
                self._emit_statement_comment(index, statement)
            self.emit(statement)
            self._extend(self.backend.statement_epilogue())

        self._extend(self.backend.program_epilogue())

        logger.debug(
            f"Generated {len(self._output)} lines for {len(program)} statement(s) "
            f"on {self.backend.name}"
        )
        return "\n".join(self._output) + "\n"

    def emit(self, tree: Expression) -> None:
        """
        Append the instructions for one tree; its value ends on the stack.

        Raises:
            CodeGenError: If the tree cannot be lowered
        """
        if isinstance(tree, NumberLiteral):
            self._extend(self.backend.push(Immediate(literal_to_int(tree))))
        elif isinstance(tree, VariableSlot):
            self._emit_address(tree)
            self._extend(self.backend.push(Memory(Role.ACCUMULATOR)))
        elif isinstance(tree, BinaryOp):
            if tree.kind == NodeKind.ASSIGN:
                self._emit_assignment(tree)
            else:
                self._emit_binary(tree)
        else:
            raise CodeGenError(f"cannot generate code for {tree!r}")

    # =========================================================================
    # Assembly Output Methods
    # =========================================================================

    def _extend(self, lines: list[str]) -> None:
        self._output.extend(lines)

    def _emit_statement_comment(self, index: int, statement: Expression) -> None:
        location = getattr(statement, "location", None)
        text = f"statement {index}"
        if location is not None and 0 < location.line <= len(self._source_lines):
            text += f": {self._source_lines[location.line - 1].strip()}"
        self._output.append(self.backend.comment(text))

    # =========================================================================
    # Expression Code Generation
    # =========================================================================

    def _emit_address(self, slot: VariableSlot) -> None:
        """Leave the slot's address in ACCUMULATOR."""
        self._extend(self.backend.move(SCRATCH0, FRAME_BASE))
        self._extend(self.backend.sub(SCRATCH0, Immediate(slot.offset)))
        self._extend(self.backend.move(ACCUMULATOR, SCRATCH0))

    def _emit_assignment(self, node: BinaryOp) -> None:
        if not isinstance(node.left, VariableSlot):
            location = node.location
            source_line = None
            if location is not None and 0 < location.line <= len(self._source_lines):
                source_line = self._source_lines[location.line - 1]
            raise InvalidAssignmentTargetError(location, source_line)

        self._emit_address(node.left)
        self._extend(self.backend.push(ACCUMULATOR))
        self.emit(node.right)
        self._extend(self.backend.pop(SECONDARY))
        self._extend(self.backend.pop(ACCUMULATOR))
        self._extend(self.backend.move(Memory(Role.ACCUMULATOR), SECONDARY))
        # The assigned value is the value of the expression
        self._extend(self.backend.push(SECONDARY))

    def _emit_binary(self, node: BinaryOp) -> None:
        self.emit(node.left)
        self.emit(node.right)
        self._extend(self.backend.pop(SECONDARY))
        self._extend(self.backend.pop(ACCUMULATOR))
        self._extend(self.backend.arithmetic(node.kind, ACCUMULATOR, SECONDARY))
        self._extend(self.backend.push(ACCUMULATOR))
