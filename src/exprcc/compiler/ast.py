"""
exprcc Expression Tree Definitions
==================================

This module defines the tree produced by the parser and consumed by the
code generator.

Node Hierarchy
--------------
Expression (base)
├── NumberLiteral - numeric constant
├── VariableSlot - reference to a variable, by frame offset
└── BinaryOp - operator applied to two subtrees (including '=')

Program - ordered sequence of top-level expressions, one per statement

Design Notes
------------
- All nodes are frozen dataclasses; trees compare structurally
- Each node may carry its source location for error reporting; the
  location never takes part in equality
- Variables are resolved to frame offsets at parse time, so the tree
  holds no names
- '>' and '>=' never appear in a tree: the parser swaps operands and
  uses LESS / LESS_EQUAL
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union

from exprcc.errors import SourceLocation


# =============================================================================
# Operator Kinds
# =============================================================================

class NodeKind(Enum):
    """Binary operator kinds."""
    ASSIGN = auto()         # =
    EQUAL = auto()          # ==
    NOT_EQUAL = auto()      # !=
    LESS = auto()           # <
    LESS_EQUAL = auto()     # <=
    ADD = auto()            # +
    SUB = auto()            # -
    MUL = auto()            # *
    DIV = auto()            # /


COMPARISON_KINDS = frozenset({
    NodeKind.EQUAL,
    NodeKind.NOT_EQUAL,
    NodeKind.LESS,
    NodeKind.LESS_EQUAL,
})

ARITHMETIC_KINDS = frozenset({
    NodeKind.ADD,
    NodeKind.SUB,
    NodeKind.MUL,
    NodeKind.DIV,
})


# =============================================================================
# Nodes
# =============================================================================

class Expression:
    """Base class for all expression tree nodes."""
    pass


@dataclass(frozen=True)
class NumberLiteral(Expression):
    """
    Numeric constant.

    Attributes:
        value: The literal value (int, or float when written with '.')
    """
    value: Union[int, float]
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class VariableSlot(Expression):
    """
    Variable reference.

    Attributes:
        offset: Byte distance below the frame base of the variable's slot
    """
    offset: int
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class BinaryOp(Expression):
    """
    Binary operation, including assignment.

    For ASSIGN the left child is expected to be a VariableSlot; this is
    checked by the code generator, not here.

    Attributes:
        kind: The operator
        left: Left operand
        right: Right operand
    """
    kind: NodeKind
    left: Expression
    right: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Program:
    """
    A parsed source text.

    Attributes:
        statements: Top-level expressions in source order
    """
    statements: tuple[Expression, ...] = ()

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)


# =============================================================================
# Constructors
# =============================================================================

def make_binary(
    kind: NodeKind,
    left: Expression,
    right: Expression,
    location: Optional[SourceLocation] = None,
) -> BinaryOp:
    return BinaryOp(kind, left, right, location=location)


def make_number(value: Union[int, float], location: Optional[SourceLocation] = None) -> NumberLiteral:
    return NumberLiteral(value, location=location)


def make_variable(offset: int, location: Optional[SourceLocation] = None) -> VariableSlot:
    return VariableSlot(offset, location=location)


# =============================================================================
# Debug Printer
# =============================================================================

class ASTPrinter:
    """
    Renders a tree as indented text, one node per line.

    Used by ``exprcc --ast``:

        Program (1 statement)
          ASSIGN
            VariableSlot offset=8
            ADD
              NumberLiteral 1
              NumberLiteral 2
    """

    def __init__(self, indent: str = "  "):
        self.indent = indent

    def print(self, node: Union[Program, Expression]) -> str:
        lines: list[str] = []
        self._visit(node, 0, lines)
        return "\n".join(lines)

    def _visit(self, node, depth: int, lines: list[str]) -> None:
        pad = self.indent * depth
        if isinstance(node, Program):
            count = len(node.statements)
            word = "statement" if count == 1 else "statements"
            lines.append(f"{pad}Program ({count} {word})")
            for stmt in node.statements:
                self._visit(stmt, depth + 1, lines)
        elif isinstance(node, NumberLiteral):
            lines.append(f"{pad}NumberLiteral {node.value}")
        elif isinstance(node, VariableSlot):
            lines.append(f"{pad}VariableSlot offset={node.offset}")
        elif isinstance(node, BinaryOp):
            lines.append(f"{pad}{node.kind.name}")
            self._visit(node.left, depth + 1, lines)
            self._visit(node.right, depth + 1, lines)
        else:
            lines.append(f"{pad}{node!r}")
