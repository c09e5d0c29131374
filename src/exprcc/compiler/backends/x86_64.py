"""
x86-64 Backend (Intel syntax)
=============================

Emits GNU assembler input in ``.intel_syntax noprefix`` mode.

Register Mapping
----------------
| Role        | Register |
|-------------|----------|
| FRAME_BASE  | rbp      |
| STACK_TOP   | rsp      |
| ACCUMULATOR | rax      |
| SECONDARY   | rdi      |
| SCRATCH0    | r10      |
| SCRATCH1    | r11      |

Notes
-----
- ``push`` only takes a sign-extended 32-bit immediate; wider values are
  loaded into r11 first
- ``idiv`` divides rdx:rax, so division is only defined with the
  accumulator as destination; ``cqo`` sign-extends rax into rdx first
- comparisons use ``setCC`` on the low byte and ``movzx`` to widen

Example output for ``1 + 2;``:

    .intel_syntax noprefix
    .globl main
    main:
            push    rbp
            mov     rbp, rsp
            push    1
            push    2
            pop     rdi
            pop     rax
            add     rax, rdi
            push    rax
            pop     rax
            mov     rsp, rbp
            pop     rbp
            ret
"""

from exprcc.compiler.ast import NodeKind
from exprcc.compiler.errors import CodeGenError
from exprcc.compiler.backends.base import (
    Backend,
    Immediate,
    Memory,
    Operand,
    Register,
    Role,
    ACCUMULATOR,
    FRAME_BASE,
    SCRATCH1,
    STACK_TOP,
)


INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1

# Low byte of each 64-bit register used by a role
BYTE_REGISTERS = {
    "rax": "al",
    "rdi": "dil",
    "r10": "r10b",
    "r11": "r11b",
}

CONDITION_CODES = {
    NodeKind.EQUAL: "e",
    NodeKind.NOT_EQUAL: "ne",
    NodeKind.LESS: "l",
    NodeKind.LESS_EQUAL: "le",
}


def fits_imm32(value: int) -> bool:
    return INT32_MIN <= value <= INT32_MAX


class X86_64Backend(Backend):
    """x86-64 code emission, Intel syntax."""

    name = "x86_64"
    word_size = 8
    default_entry_symbol = "main"
    registers = {
        Role.FRAME_BASE: "rbp",
        Role.STACK_TOP: "rsp",
        Role.ACCUMULATOR: "rax",
        Role.SECONDARY: "rdi",
        Role.SCRATCH0: "r10",
        Role.SCRATCH1: "r11",
    }

    def render(self, operand: Operand) -> str:
        if isinstance(operand, Immediate):
            return str(operand.value)
        if isinstance(operand, Register):
            return self.register_name(operand.role)
        if isinstance(operand, Memory):
            return f"QWORD PTR [{self.register_name(operand.role)}]"
        raise CodeGenError(f"unknown operand {operand!r}")

    # =========================================================================
    # Program Structure
    # =========================================================================

    def header(self) -> list[str]:
        return [
            ".intel_syntax noprefix",
            f".globl {self.entry_symbol}",
            self.label(self.entry_symbol),
        ]

    def frame_prologue(self, local_bytes: int) -> list[str]:
        lines = [
            self.instruction("push", self.render(FRAME_BASE)),
            self.instruction("mov", self.render(FRAME_BASE), self.render(STACK_TOP)),
        ]
        if local_bytes > 0:
            lines += self.sub(STACK_TOP, Immediate(local_bytes))
        return lines

    def program_epilogue(self) -> list[str]:
        return [
            self.instruction("mov", self.render(STACK_TOP), self.render(FRAME_BASE)),
            self.instruction("pop", self.render(FRAME_BASE)),
            self.instruction("ret"),
        ]

    # =========================================================================
    # Operations
    # =========================================================================

    def _wide_immediate(self, operand: Operand) -> tuple[list[str], Operand]:
        """Load an immediate that does not fit imm32 into SCRATCH1."""
        if isinstance(operand, Immediate) and not fits_imm32(operand.value):
            load = [self.instruction("mov", self.render(SCRATCH1), str(operand.value))]
            return load, SCRATCH1
        return [], operand

    def push(self, operand: Operand) -> list[str]:
        lines, operand = self._wide_immediate(operand)
        return lines + [self.instruction("push", self.render(operand))]

    def pop(self, operand: Operand) -> list[str]:
        if isinstance(operand, Immediate):
            raise CodeGenError("cannot pop into an immediate")
        return [self.instruction("pop", self.render(operand))]

    def move(self, dest: Operand, src: Operand) -> list[str]:
        if isinstance(dest, Immediate):
            raise CodeGenError("cannot move into an immediate")

        if isinstance(dest, Register) and isinstance(src, Immediate):
            # mov r64, imm64 is encodable
            return [self.instruction("mov", self.render(dest), str(src.value))]

        lines, src = self._wide_immediate(src)
        if isinstance(dest, Memory) and isinstance(src, Memory):
            lines.append(self.instruction("mov", self.render(SCRATCH1), self.render(src)))
            src = SCRATCH1
        lines.append(self.instruction("mov", self.render(dest), self.render(src)))
        return lines

    def _binary(self, mnemonic: str, dest: Operand, src: Operand) -> list[str]:
        self._require_register(dest, mnemonic)
        lines, src = self._wide_immediate(src)
        lines.append(self.instruction(mnemonic, self.render(dest), self.render(src)))
        return lines

    def add(self, dest: Operand, src: Operand) -> list[str]:
        return self._binary("add", dest, src)

    def sub(self, dest: Operand, src: Operand) -> list[str]:
        return self._binary("sub", dest, src)

    def mul(self, dest: Operand, src: Operand) -> list[str]:
        self._require_register(dest, "imul")
        lines, src = self._wide_immediate(src)
        if isinstance(src, Immediate):
            # Only the three-operand form takes an immediate
            target = self.render(dest)
            lines.append(self.instruction("imul", target, target, str(src.value)))
        else:
            lines.append(self.instruction("imul", self.render(dest), self.render(src)))
        return lines

    def div(self, dest: Operand, src: Operand) -> list[str]:
        if dest != ACCUMULATOR:
            raise CodeGenError("x86-64 division requires the accumulator as destination")
        lines = []
        if isinstance(src, Immediate):
            lines += self.move(SCRATCH1, src)
            src = SCRATCH1
        lines.append(self.instruction("cqo"))
        lines.append(self.instruction("idiv", self.render(src)))
        return lines

    def compare_and_set(self, kind: NodeKind, dest: Operand, src: Operand) -> list[str]:
        if kind not in CONDITION_CODES:
            raise CodeGenError(f"no comparison for {kind.name}")
        register = self._require_register(dest, "comparison")
        wide = self.render(register)
        byte = BYTE_REGISTERS[wide]

        lines = self._binary("cmp", dest, src)
        lines.append(self.instruction(f"set{CONDITION_CODES[kind]}", byte))
        lines.append(self.instruction("movzx", wide, byte))
        return lines
