"""
Backend Abstraction
===================

The code generator never names a physical register or writes a mnemonic.
It works with *operands* over *logical roles* and asks a backend to turn
each operation into instruction lines for one architecture.

Logical Roles
-------------
| Role         | Usage                                        |
|--------------|----------------------------------------------|
| FRAME_BASE   | Base of the variable area (slots below it)   |
| STACK_TOP    | Stack pointer for intermediate values        |
| ACCUMULATOR  | Left operand, result, program return value   |
| SECONDARY    | Right operand                                |
| SCRATCH0     | Address computation                          |
| SCRATCH1     | Reserved for the backend's own expansions    |

Operands
--------
- ``Immediate(value)``  - constant
- ``Register(role)``    - contents of a register
- ``Memory(role)``      - the word at the address held in a register

Stack Discipline
----------------
Intermediate values live on the machine stack and are only ever moved
there by ``push`` and removed by ``pop``. No other operation addresses
stack memory.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from exprcc.compiler.ast import NodeKind
from exprcc.compiler.errors import CodeGenError


# =============================================================================
# Roles and Operands
# =============================================================================

class Role(Enum):
    """Architecture-independent register roles."""
    FRAME_BASE = auto()
    STACK_TOP = auto()
    ACCUMULATOR = auto()
    SECONDARY = auto()
    SCRATCH0 = auto()
    SCRATCH1 = auto()


@dataclass(frozen=True)
class Immediate:
    """Constant operand."""
    value: int


@dataclass(frozen=True)
class Register:
    """Register operand, by role."""
    role: Role


@dataclass(frozen=True)
class Memory:
    """Word in memory addressed by the register playing ``role``."""
    role: Role


Operand = Union[Immediate, Register, Memory]

# Shorthands used by the generator and the backends
FRAME_BASE = Register(Role.FRAME_BASE)
STACK_TOP = Register(Role.STACK_TOP)
ACCUMULATOR = Register(Role.ACCUMULATOR)
SECONDARY = Register(Role.SECONDARY)
SCRATCH0 = Register(Role.SCRATCH0)
SCRATCH1 = Register(Role.SCRATCH1)

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


# =============================================================================
# Backend Base Class
# =============================================================================

class Backend(ABC):
    """
    Instruction emission for one target architecture.

    Every emitting method returns a list of assembly lines; the caller
    decides where they go. A backend instance is chosen once per
    compilation and its role-to-register mapping never changes.

    Attributes:
        name: Canonical target name
        word_size: Bytes per variable slot
        registers: Role -> physical register name
        entry_symbol: Global label of the generated entry point
    """

    name: str = ""
    word_size: int = 8
    registers: dict[Role, str] = {}
    default_entry_symbol: str = "main"
    comment_prefix: str = "#"

    def __init__(self, entry_symbol: Optional[str] = None):
        self.entry_symbol = entry_symbol or self.default_entry_symbol

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(entry_symbol={self.entry_symbol!r})"

    # =========================================================================
    # Formatting Helpers
    # =========================================================================

    def register_name(self, role: Role) -> str:
        return self.registers[role]

    @staticmethod
    def instruction(mnemonic: str, *operands: str) -> str:
        """Format one instruction line."""
        if operands:
            return f"        {mnemonic:<8}{', '.join(operands)}"
        return f"        {mnemonic}"

    @staticmethod
    def label(name: str) -> str:
        return f"{name}:"

    def comment(self, text: str) -> str:
        return f"        {self.comment_prefix} {text}"

    @staticmethod
    def _require_register(operand: Operand, what: str) -> Register:
        if not isinstance(operand, Register):
            raise CodeGenError(f"{what} requires a register operand, got {operand!r}")
        return operand

    # =========================================================================
    # Program Structure
    # =========================================================================

    @abstractmethod
    def header(self) -> list[str]:
        """Syntax directives and the entry label."""

    @abstractmethod
    def frame_prologue(self, local_bytes: int) -> list[str]:
        """Save the caller's frame, set up a new one, reserve locals."""

    def statement_epilogue(self) -> list[str]:
        """Drop a statement's value from the stack, keeping it in the accumulator."""
        return self.pop(ACCUMULATOR)

    @abstractmethod
    def program_epilogue(self) -> list[str]:
        """Restore the caller's frame and return the accumulator."""

    # =========================================================================
    # Operations
    # =========================================================================

    @abstractmethod
    def render(self, operand: Operand) -> str:
        """Render an operand in this architecture's syntax."""

    @abstractmethod
    def push(self, operand: Operand) -> list[str]:
        ...

    @abstractmethod
    def pop(self, operand: Operand) -> list[str]:
        ...

    @abstractmethod
    def move(self, dest: Operand, src: Operand) -> list[str]:
        ...

    @abstractmethod
    def add(self, dest: Operand, src: Operand) -> list[str]:
        ...

    @abstractmethod
    def sub(self, dest: Operand, src: Operand) -> list[str]:
        ...

    @abstractmethod
    def mul(self, dest: Operand, src: Operand) -> list[str]:
        ...

    @abstractmethod
    def div(self, dest: Operand, src: Operand) -> list[str]:
        """Signed quotient of dest / src into dest."""

    @abstractmethod
    def compare_and_set(self, kind: NodeKind, dest: Operand, src: Operand) -> list[str]:
        """Set dest to 1 if ``dest <kind> src`` holds, else 0."""

    def arithmetic(self, kind: NodeKind, dest: Operand, src: Operand) -> list[str]:
        """Dispatch a binary node kind to the matching operation."""
        if kind == NodeKind.ADD:
            return self.add(dest, src)
        if kind == NodeKind.SUB:
            return self.sub(dest, src)
        if kind == NodeKind.MUL:
            return self.mul(dest, src)
        if kind == NodeKind.DIV:
            return self.div(dest, src)
        return self.compare_and_set(kind, dest, src)
