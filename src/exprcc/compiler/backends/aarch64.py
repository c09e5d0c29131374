"""
AArch64 Backend
===============

Emits AArch64 assembly for the Apple/LLVM and GNU assemblers.

Register Mapping
----------------
| Role        | Register |
|-------------|----------|
| FRAME_BASE  | x29      |
| STACK_TOP   | sp       |
| ACCUMULATOR | x0       |
| SECONDARY   | x1       |
| SCRATCH0    | x9       |
| SCRATCH1    | x10      |

Notes
-----
- ``sp`` must stay 16-byte aligned, so each pushed word occupies a
  16-byte slot: ``str x0, [sp, #-16]!`` / ``ldr x0, [sp], #16``
- the local area reserved by the prologue is rounded up to 16 bytes
- memory is only reachable through ``ldr``/``str``; memory operands of
  arithmetic are loaded into x10 first
- immediates outside ``mov``'s range are built with ``movz``/``movk``;
  ``add``/``sub``/``cmp`` take 0..4095 directly, anything else goes
  through x10

Example output for ``1 + 2;``:

    .globl _main
    .p2align 2
    _main:
            stp     x29, x30, [sp, #-16]!
            mov     x29, sp
            mov     x10, #1
            str     x10, [sp, #-16]!
            ...
            ldp     x29, x30, [sp], #16
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
    FRAME_BASE,
    SCRATCH1,
    STACK_TOP,
)


STACK_ALIGNMENT = 16

# Largest unsigned immediate accepted by add/sub/cmp
ARITH_IMM_MAX = 4095

CONDITION_CODES = {
    NodeKind.EQUAL: "eq",
    NodeKind.NOT_EQUAL: "ne",
    NodeKind.LESS: "lt",
    NodeKind.LESS_EQUAL: "le",
}


def align(value: int, alignment: int = STACK_ALIGNMENT) -> int:
    return (value + alignment - 1) // alignment * alignment


class AArch64Backend(Backend):
    """AArch64 code emission."""

    name = "aarch64"
    word_size = 8
    default_entry_symbol = "_main"
    comment_prefix = "//"
    registers = {
        Role.FRAME_BASE: "x29",
        Role.STACK_TOP: "sp",
        Role.ACCUMULATOR: "x0",
        Role.SECONDARY: "x1",
        Role.SCRATCH0: "x9",
        Role.SCRATCH1: "x10",
    }

    def render(self, operand: Operand) -> str:
        if isinstance(operand, Immediate):
            return f"#{operand.value}"
        if isinstance(operand, Register):
            return self.register_name(operand.role)
        if isinstance(operand, Memory):
            return f"[{self.register_name(operand.role)}]"
        raise CodeGenError(f"unknown operand {operand!r}")

    # =========================================================================
    # Program Structure
    # =========================================================================

    def header(self) -> list[str]:
        return [
            f".globl {self.entry_symbol}",
            ".p2align 2",
            self.label(self.entry_symbol),
        ]

    def frame_prologue(self, local_bytes: int) -> list[str]:
        fp = self.render(FRAME_BASE)
        sp = self.render(STACK_TOP)
        lines = [
            self.instruction("stp", fp, "x30", f"[{sp}, #-{STACK_ALIGNMENT}]!"),
            self.instruction("mov", fp, sp),
        ]
        if local_bytes > 0:
            lines += self.sub(STACK_TOP, Immediate(align(local_bytes)))
        return lines

    def program_epilogue(self) -> list[str]:
        fp = self.render(FRAME_BASE)
        sp = self.render(STACK_TOP)
        return [
            self.instruction("mov", sp, fp),
            self.instruction("ldp", fp, "x30", f"[{sp}]", f"#{STACK_ALIGNMENT}"),
            self.instruction("ret"),
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    def load_immediate(self, dest: Register, value: int) -> list[str]:
        """Materialise a 64-bit constant in a register."""
        target = self.render(dest)
        if -0x10000 < value < 0x10000:
            return [self.instruction("mov", target, f"#{value}")]

        bits = value & 0xFFFF_FFFF_FFFF_FFFF
        lines = [self.instruction("movz", target, f"#{bits & 0xFFFF}")]
        for shift in (16, 32, 48):
            chunk = (bits >> shift) & 0xFFFF
            if chunk:
                lines.append(self.instruction("movk", target, f"#{chunk}", f"lsl #{shift}"))
        return lines

    def _into_register(self, operand: Operand) -> tuple[list[str], Register]:
        """Bring any operand into a register, using SCRATCH1 when needed."""
        if isinstance(operand, Register):
            return [], operand
        if isinstance(operand, Immediate):
            return self.load_immediate(SCRATCH1, operand.value), SCRATCH1
        if isinstance(operand, Memory):
            load = self.instruction("ldr", self.render(SCRATCH1), self.render(operand))
            return [load], SCRATCH1
        raise CodeGenError(f"unknown operand {operand!r}")

    def _arith_operand(self, operand: Operand) -> tuple[list[str], Operand]:
        """Operand for add/sub/cmp: small immediates stay, the rest go to a register."""
        if isinstance(operand, Immediate) and 0 <= operand.value <= ARITH_IMM_MAX:
            return [], operand
        return self._into_register(operand)

    # =========================================================================
    # Operations
    # =========================================================================

    def push(self, operand: Operand) -> list[str]:
        lines, register = self._into_register(operand)
        slot = f"[{self.render(STACK_TOP)}, #-{STACK_ALIGNMENT}]!"
        lines.append(self.instruction("str", self.render(register), slot))
        return lines

    def pop(self, operand: Operand) -> list[str]:
        if isinstance(operand, Immediate):
            raise CodeGenError("cannot pop into an immediate")
        sp = f"[{self.render(STACK_TOP)}]"
        post = f"#{STACK_ALIGNMENT}"
        if isinstance(operand, Register):
            return [self.instruction("ldr", self.render(operand), sp, post)]
        return [
            self.instruction("ldr", self.render(SCRATCH1), sp, post),
            self.instruction("str", self.render(SCRATCH1), self.render(operand)),
        ]

    def move(self, dest: Operand, src: Operand) -> list[str]:
        if isinstance(dest, Immediate):
            raise CodeGenError("cannot move into an immediate")

        if isinstance(dest, Register):
            if isinstance(src, Immediate):
                return self.load_immediate(dest, src.value)
            if isinstance(src, Memory):
                return [self.instruction("ldr", self.render(dest), self.render(src))]
            return [self.instruction("mov", self.render(dest), self.render(src))]

        lines, register = self._into_register(src)
        lines.append(self.instruction("str", self.render(register), self.render(dest)))
        return lines

    def _three_operand(self, mnemonic: str, dest: Operand, src: Operand, immediate_ok: bool) -> list[str]:
        register = self._require_register(dest, mnemonic)
        if immediate_ok:
            lines, src = self._arith_operand(src)
        else:
            lines, src = self._into_register(src)
        target = self.render(register)
        lines.append(self.instruction(mnemonic, target, target, self.render(src)))
        return lines

    def add(self, dest: Operand, src: Operand) -> list[str]:
        return self._three_operand("add", dest, src, immediate_ok=True)

    def sub(self, dest: Operand, src: Operand) -> list[str]:
        return self._three_operand("sub", dest, src, immediate_ok=True)

    def mul(self, dest: Operand, src: Operand) -> list[str]:
        return self._three_operand("mul", dest, src, immediate_ok=False)

    def div(self, dest: Operand, src: Operand) -> list[str]:
        return self._three_operand("sdiv", dest, src, immediate_ok=False)

    def compare_and_set(self, kind: NodeKind, dest: Operand, src: Operand) -> list[str]:
        if kind not in CONDITION_CODES:
            raise CodeGenError(f"no comparison for {kind.name}")
        register = self._require_register(dest, "comparison")
        lines, src = self._arith_operand(src)
        target = self.render(register)
        lines.append(self.instruction("cmp", target, self.render(src)))
        lines.append(self.instruction("cset", target, CONDITION_CODES[kind]))
        return lines
