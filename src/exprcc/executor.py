"""
Reference Executor
==================

Runs the assembly produced by the exprcc backends without an assembler
or a native machine. It understands exactly the instruction subset the
backends emit, on a 64-bit register file and a word-addressed stack.

Used by the test suite to check program results on both targets, and by
``exprcc --run``.

Machine Model
-------------
- Registers hold signed 64-bit values; arithmetic wraps
- Memory is a sparse map of 8-byte words; reading a word that was never
  written is an error, which catches stack discipline bugs
- The stack starts at STACK_BASE and grows down
- ``ret`` ends the run; the stack pointer must be back at STACK_BASE and
  the program's value is the accumulator (``rax`` / ``x0``)

Example:
    >>> from exprcc.compiler import compile_source
    >>> run_assembly(compile_source("1 + 2 * 3;"), "x86_64")
    7
"""

from dataclasses import dataclass
from typing import Callable, Optional
import inspect
import logging

from exprcc.errors import ExecutorError, SourceLocation
from exprcc.compiler.backends import canonical_target


logger = logging.getLogger(__name__)


STACK_BASE = 0x10000
WORD_SIZE = 8

_MASK64 = (1 << 64) - 1


def to_signed(value: int) -> int:
    """Wrap an integer to the signed 64-bit range."""
    value &= _MASK64
    return value - (1 << 64) if value >> 63 else value


def truncating_div(dividend: int, divisor: int) -> int:
    """Signed division rounding toward zero, as hardware divides."""
    quotient = abs(dividend) // abs(divisor)
    return -quotient if (dividend < 0) != (divisor < 0) else quotient


# =============================================================================
# Instruction Model
# =============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    One decoded assembly line.

    Attributes:
        mnemonic: Lower-case mnemonic
        operands: Operand strings, split on top-level commas
        line: 1-based line number in the assembly text
        text: The raw line
    """
    mnemonic: str
    operands: tuple[str, ...]
    line: int
    text: str


def split_operands(text: str) -> tuple[str, ...]:
    """Split on commas that are not inside brackets."""
    operands = []
    depth = 0
    current = ""
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == "," and depth == 0:
            operands.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        operands.append(current.strip())
    return tuple(operands)


# =============================================================================
# Executor Base Class
# =============================================================================

class Executor:
    """
    Interprets one program's assembly.

    Subclasses supply the register file, the handler table and the
    comment syntax for one architecture.

    Attributes:
        registers: Register name -> signed value
        memory: Address -> signed word
        on_instruction: Optional hook called before each instruction
    """

    comment_prefix = "#"
    accumulator = ""
    stack_pointer = ""
    register_names: tuple[str, ...] = ()

    def __init__(self, assembly: str, filename: str = "<assembly>"):
        self.filename = filename
        self.program: list[Instruction] = []
        self.labels: dict[str, int] = {}
        self.entry: Optional[str] = None

        self.registers: dict[str, int] = {name: 0 for name in self.register_names}
        self.registers[self.stack_pointer] = STACK_BASE
        self.memory: dict[int, int] = {}

        # Last comparison, as (left, right)
        self._compared: Optional[tuple[int, int]] = None
        self._current: Optional[Instruction] = None

        self.on_instruction: Optional[Callable[[Instruction], None]] = None

        self._load(assembly)

    # =========================================================================
    # Loading
    # =========================================================================

    def _load(self, assembly: str) -> None:
        for number, raw in enumerate(assembly.splitlines(), 1):
            text = raw.strip()
            if not text or text.startswith(self.comment_prefix):
                continue
            if text.startswith("."):
                parts = text.split()
                if parts[0] == ".globl" and len(parts) > 1:
                    self.entry = parts[1]
                continue
            if text.endswith(":"):
                self.labels[text[:-1]] = len(self.program)
                continue

            mnemonic, _, rest = text.partition(" ")
            self.program.append(
                Instruction(mnemonic.lower(), split_operands(rest), number, raw)
            )

    # =========================================================================
    # Execution
    # =========================================================================

    def run(self) -> int:
        """
        Execute from the entry label until ``ret``.

        Returns:
            The accumulator value at return

        Raises:
            ExecutorError: On any instruction the machine cannot execute
        """
        pc = 0
        if self.entry is not None:
            if self.entry not in self.labels:
                raise ExecutorError(f"entry label '{self.entry}' is not defined")
            pc = self.labels[self.entry]

        steps = 0
        while pc < len(self.program):
            instruction = self.program[pc]
            self._current = instruction
            if self.on_instruction is not None:
                self.on_instruction(instruction)

            steps += 1
            if instruction.mnemonic == "ret":
                return self._return(steps)

            handler = getattr(self, f"_op_{instruction.mnemonic}", None)
            if handler is None:
                self._fail(f"unknown instruction '{instruction.mnemonic}'")
            try:
                inspect.signature(handler).bind(*instruction.operands)
            except TypeError:
                self._fail(f"wrong number of operands for '{instruction.mnemonic}'")
            handler(*instruction.operands)
            pc += 1

        raise ExecutorError("program ran past the end without returning")

    def _return(self, steps: int) -> int:
        if self.registers[self.stack_pointer] != STACK_BASE:
            self._fail(
                f"stack pointer is 0x{self.registers[self.stack_pointer]:X} at return, "
                f"expected 0x{STACK_BASE:X}"
            )
        value = self.registers[self.accumulator]
        logger.debug(f"Executed {steps} instruction(s), result {value}")
        return value

    # =========================================================================
    # Machine Access
    # =========================================================================

    def _fail(self, message: str) -> None:
        instruction = self._current
        if instruction is None:
            raise ExecutorError(message)
        column = len(instruction.text) - len(instruction.text.lstrip()) + 1
        raise ExecutorError(
            message,
            location=SourceLocation(self.filename, instruction.line, column),
            source_line=instruction.text,
        )

    def read_register(self, name: str) -> int:
        if name not in self.registers:
            self._fail(f"unknown register '{name}'")
        return self.registers[name]

    def write_register(self, name: str, value: int) -> None:
        if name not in self.registers:
            self._fail(f"unknown register '{name}'")
        self.registers[name] = to_signed(value)

    def load(self, address: int) -> int:
        if address % WORD_SIZE:
            self._fail(f"misaligned access at 0x{address:X}")
        if address not in self.memory:
            self._fail(f"read of uninitialised memory at 0x{address:X}")
        return self.memory[address]

    def store(self, address: int, value: int) -> None:
        if address % WORD_SIZE:
            self._fail(f"misaligned access at 0x{address:X}")
        self.memory[address] = to_signed(value)

    def parse_int(self, text: str) -> int:
        try:
            return int(text, 0)
        except ValueError:
            self._fail(f"malformed immediate '{text}'")

    def compare(self, left: int, right: int) -> None:
        self._compared = (left, right)

    def condition(self, name: str) -> bool:
        if self._compared is None:
            self._fail("condition tested before any comparison")
        left, right = self._compared
        if name in ("e", "eq"):
            return left == right
        if name == "ne":
            return left != right
        if name in ("l", "lt"):
            return left < right
        if name == "le":
            return left <= right
        self._fail(f"unknown condition '{name}'")


# =============================================================================
# x86-64
# =============================================================================

class X86_64Executor(Executor):
    """x86-64 subset, Intel syntax."""

    comment_prefix = "#"
    accumulator = "rax"
    stack_pointer = "rsp"
    register_names = ("rax", "rdx", "rdi", "r10", "r11", "rbp", "rsp")

    BYTE_REGISTERS = {"al": "rax", "dil": "rdi", "r10b": "r10", "r11b": "r11"}

    def _address(self, operand: str) -> Optional[int]:
        if "[" not in operand:
            return None
        inner = operand[operand.index("[") + 1:operand.rindex("]")]
        return self.read_register(inner.strip())

    def value(self, operand: str) -> int:
        address = self._address(operand)
        if address is not None:
            return self.load(address)
        if operand in self.registers:
            return self.registers[operand]
        if operand in self.BYTE_REGISTERS:
            return self.registers[self.BYTE_REGISTERS[operand]] & 0xFF
        return self.parse_int(operand)

    def assign(self, operand: str, value: int) -> None:
        address = self._address(operand)
        if address is not None:
            self.store(address, value)
        elif operand in self.BYTE_REGISTERS:
            wide = self.BYTE_REGISTERS[operand]
            self.write_register(wide, (self.registers[wide] & ~0xFF) | (value & 0xFF))
        else:
            self.write_register(operand, value)

    def _op_push(self, src):
        value = self.value(src)
        self.registers["rsp"] -= WORD_SIZE
        self.store(self.registers["rsp"], value)

    def _op_pop(self, dest):
        value = self.load(self.registers["rsp"])
        self.registers["rsp"] += WORD_SIZE
        self.assign(dest, value)

    def _op_mov(self, dest, src):
        self.assign(dest, self.value(src))

    def _op_movzx(self, dest, src):
        self.assign(dest, self.value(src) & 0xFF)

    def _op_add(self, dest, src):
        self.assign(dest, self.value(dest) + self.value(src))

    def _op_sub(self, dest, src):
        self.assign(dest, self.value(dest) - self.value(src))

    def _op_imul(self, dest, src, immediate=None):
        if immediate is None:
            self.assign(dest, self.value(dest) * self.value(src))
        else:
            self.assign(dest, self.value(src) * self.value(immediate))

    def _op_cqo(self):
        self.write_register("rdx", -1 if self.registers["rax"] < 0 else 0)

    def _op_idiv(self, src):
        divisor = self.value(src)
        if divisor == 0:
            self._fail("division by zero")
        dividend = (self.registers["rdx"] << 64) | (self.registers["rax"] & _MASK64)
        quotient = truncating_div(dividend, divisor)
        if to_signed(quotient) != quotient:
            self._fail("division overflow")
        self.write_register("rax", quotient)
        self.write_register("rdx", dividend - quotient * divisor)

    def _op_cmp(self, left, right):
        self.compare(self.value(left), self.value(right))

    def _setcc(self, condition, dest):
        self.assign(dest, 1 if self.condition(condition) else 0)

    def _op_sete(self, dest):
        self._setcc("e", dest)

    def _op_setne(self, dest):
        self._setcc("ne", dest)

    def _op_setl(self, dest):
        self._setcc("l", dest)

    def _op_setle(self, dest):
        self._setcc("le", dest)


# =============================================================================
# AArch64
# =============================================================================

class AArch64Executor(Executor):
    """AArch64 subset."""

    comment_prefix = "//"
    accumulator = "x0"
    stack_pointer = "sp"
    register_names = tuple(f"x{n}" for n in range(31)) + ("sp",)

    def value(self, operand: str) -> int:
        if operand.startswith("#"):
            return self.parse_int(operand[1:])
        if operand == "xzr":
            return 0
        return self.read_register(operand)

    def _shift(self, operand: Optional[str]) -> int:
        if operand is None:
            return 0
        kind, _, amount = operand.partition(" ")
        if kind != "lsl":
            self._fail(f"unsupported shift '{operand}'")
        return self.value(amount.strip())

    def _memory(self, operand: str) -> tuple[str, int, bool]:
        """Decode ``[base]``, ``[base, #off]`` or ``[base, #off]!``."""
        writeback = operand.endswith("!")
        inner = operand.rstrip("!").strip()
        if not (inner.startswith("[") and inner.endswith("]")):
            self._fail(f"malformed memory operand '{operand}'")
        parts = [part.strip() for part in inner[1:-1].split(",")]
        offset = self.value(parts[1]) if len(parts) > 1 else 0
        return parts[0], offset, writeback

    def _access(self, address_operand: str, post_index: Optional[str]) -> int:
        """Resolve an address, applying pre- or post-index writeback."""
        base, offset, writeback = self._memory(address_operand)
        if writeback:
            self.write_register(base, self.read_register(base) + offset)
            return self.read_register(base)
        address = self.read_register(base) + offset
        if post_index is not None:
            self.write_register(base, self.read_register(base) + self.value(post_index))
        return address

    def _op_mov(self, dest, src):
        self.write_register(dest, self.value(src))

    def _op_movz(self, dest, imm, shift=None):
        self.write_register(dest, self.value(imm) << self._shift(shift))

    def _op_movk(self, dest, imm, shift=None):
        amount = self._shift(shift)
        keep = self.read_register(dest) & ~(0xFFFF << amount)
        self.write_register(dest, keep | ((self.value(imm) & 0xFFFF) << amount))

    def _op_add(self, dest, left, right):
        self.write_register(dest, self.value(left) + self.value(right))

    def _op_sub(self, dest, left, right):
        self.write_register(dest, self.value(left) - self.value(right))

    def _op_mul(self, dest, left, right):
        self.write_register(dest, self.value(left) * self.value(right))

    def _op_sdiv(self, dest, left, right):
        divisor = self.value(right)
        # AArch64 division by zero yields zero and does not trap
        quotient = 0 if divisor == 0 else truncating_div(self.value(left), divisor)
        self.write_register(dest, quotient)

    def _op_cmp(self, left, right):
        self.compare(self.value(left), self.value(right))

    def _op_cset(self, dest, condition):
        self.write_register(dest, 1 if self.condition(condition) else 0)

    def _op_str(self, src, address, post_index=None):
        value = self.value(src)
        self.store(self._access(address, post_index), value)

    def _op_ldr(self, dest, address, post_index=None):
        self.write_register(dest, self.load(self._access(address, post_index)))

    def _op_stp(self, first, second, address, post_index=None):
        values = (self.value(first), self.value(second))
        base = self._access(address, post_index)
        self.store(base, values[0])
        self.store(base + WORD_SIZE, values[1])

    def _op_ldp(self, first, second, address, post_index=None):
        base = self._access(address, post_index)
        self.write_register(first, self.load(base))
        self.write_register(second, self.load(base + WORD_SIZE))


EXECUTORS: dict[str, type[Executor]] = {
    "x86_64": X86_64Executor,
    "aarch64": AArch64Executor,
}


# =============================================================================
# Convenience Functions
# =============================================================================

def run_assembly(assembly: str, target: str = "x86_64", filename: str = "<assembly>") -> int:
    """
    Run generated assembly and return the program's value.

    Args:
        assembly: Assembly text from one of the exprcc backends
        target: Target name or alias the assembly was generated for
        filename: Name used in error locations

    Returns:
        The accumulator at ``ret``, as a signed 64-bit integer

    Raises:
        ExecutorError: If the assembly cannot be executed
        UnknownTargetError: If the target is not supported
    """
    executor = EXECUTORS[canonical_target(target)](assembly, filename)
    return executor.run()
