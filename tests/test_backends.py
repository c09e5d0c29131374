"""
Backend Test Suite
==================

Tests for the operand abstraction, the x86-64 and AArch64 backends and
the backend registry.

Test Organization
-----------------
- TestX86_64Backend: Intel-syntax instruction selection
- TestAArch64Backend: AArch64 instruction selection
- TestRegistry: Target name resolution
"""

import pytest

from exprcc.compiler.ast import NodeKind
from exprcc.compiler.backends import (
    AArch64Backend,
    X86_64Backend,
    Immediate,
    Memory,
    Role,
    ACCUMULATOR,
    SECONDARY,
    SCRATCH0,
    STACK_TOP,
    available_targets,
    canonical_target,
    get_backend,
)
from exprcc.compiler.errors import CodeGenError, UnknownTargetError


def ins(mnemonic, *operands):
    return X86_64Backend.instruction(mnemonic, *operands)


# =============================================================================
# x86-64 Tests
# =============================================================================

class TestX86_64Backend:
    """Tests for x86-64 instruction selection."""

    @pytest.fixture
    def backend(self):
        return X86_64Backend()

    def test_instruction_format(self):
        assert ins("push", "rax") == "        push    rax"
        assert ins("ret") == "        ret"

    def test_render(self, backend):
        assert backend.render(Immediate(-3)) == "-3"
        assert backend.render(ACCUMULATOR) == "rax"
        assert backend.render(Memory(Role.ACCUMULATOR)) == "QWORD PTR [rax]"

    def test_header(self, backend):
        assert backend.header() == [".intel_syntax noprefix", ".globl main", "main:"]

    def test_frame_prologue(self, backend):
        assert backend.frame_prologue(16) == [
            ins("push", "rbp"),
            ins("mov", "rbp", "rsp"),
            ins("sub", "rsp", "16"),
        ]

    def test_frame_prologue_without_locals(self, backend):
        assert backend.frame_prologue(0) == [ins("push", "rbp"), ins("mov", "rbp", "rsp")]

    def test_program_epilogue(self, backend):
        assert backend.program_epilogue() == [
            ins("mov", "rsp", "rbp"),
            ins("pop", "rbp"),
            ins("ret"),
        ]

    def test_push_small_immediate(self, backend):
        assert backend.push(Immediate(42)) == [ins("push", "42")]

    def test_push_wide_immediate(self, backend):
        assert backend.push(Immediate(1 << 40)) == [
            ins("mov", "r11", str(1 << 40)),
            ins("push", "r11"),
        ]

    def test_push_memory(self, backend):
        assert backend.push(Memory(Role.ACCUMULATOR)) == [ins("push", "QWORD PTR [rax]")]

    def test_pop_immediate_rejected(self, backend):
        with pytest.raises(CodeGenError):
            backend.pop(Immediate(1))

    def test_move_memory_to_memory(self, backend):
        assert backend.move(Memory(Role.ACCUMULATOR), Memory(Role.SECONDARY)) == [
            ins("mov", "r11", "QWORD PTR [rdi]"),
            ins("mov", "QWORD PTR [rax]", "r11"),
        ]

    def test_store(self, backend):
        assert backend.move(Memory(Role.ACCUMULATOR), SECONDARY) == [
            ins("mov", "QWORD PTR [rax]", "rdi"),
        ]

    def test_sub_immediate(self, backend):
        assert backend.sub(SCRATCH0, Immediate(8)) == [ins("sub", "r10", "8")]

    def test_arithmetic_needs_register(self, backend):
        with pytest.raises(CodeGenError):
            backend.add(Memory(Role.ACCUMULATOR), SECONDARY)

    def test_mul_forms(self, backend):
        assert backend.mul(ACCUMULATOR, SECONDARY) == [ins("imul", "rax", "rdi")]
        assert backend.mul(ACCUMULATOR, Immediate(3)) == [ins("imul", "rax", "rax", "3")]

    def test_div(self, backend):
        assert backend.div(ACCUMULATOR, SECONDARY) == [ins("cqo"), ins("idiv", "rdi")]

    def test_div_immediate(self, backend):
        assert backend.div(ACCUMULATOR, Immediate(2)) == [
            ins("mov", "r11", "2"),
            ins("cqo"),
            ins("idiv", "r11"),
        ]

    def test_div_requires_accumulator(self, backend):
        with pytest.raises(CodeGenError):
            backend.div(SECONDARY, ACCUMULATOR)

    @pytest.mark.parametrize("kind,setcc", [
        (NodeKind.EQUAL, "sete"),
        (NodeKind.NOT_EQUAL, "setne"),
        (NodeKind.LESS, "setl"),
        (NodeKind.LESS_EQUAL, "setle"),
    ])
    def test_compare_and_set(self, backend, kind, setcc):
        assert backend.compare_and_set(kind, ACCUMULATOR, SECONDARY) == [
            ins("cmp", "rax", "rdi"),
            ins(setcc, "al"),
            ins("movzx", "rax", "al"),
        ]

    def test_compare_rejects_arithmetic_kind(self, backend):
        with pytest.raises(CodeGenError):
            backend.compare_and_set(NodeKind.ADD, ACCUMULATOR, SECONDARY)

    def test_arithmetic_dispatch(self, backend):
        assert backend.arithmetic(NodeKind.SUB, ACCUMULATOR, SECONDARY) == [
            ins("sub", "rax", "rdi"),
        ]

    def test_statement_epilogue(self, backend):
        assert backend.statement_epilogue() == [ins("pop", "rax")]

    def test_comment(self, backend):
        assert backend.comment("hello") == "        # hello"


# =============================================================================
# AArch64 Tests
# =============================================================================

class TestAArch64Backend:
    """Tests for AArch64 instruction selection."""

    @pytest.fixture
    def backend(self):
        return AArch64Backend()

    def test_render(self, backend):
        assert backend.render(Immediate(5)) == "#5"
        assert backend.render(STACK_TOP) == "sp"
        assert backend.render(Memory(Role.ACCUMULATOR)) == "[x0]"

    def test_header(self, backend):
        assert backend.header() == [".globl _main", ".p2align 2", "_main:"]

    def test_frame_prologue_rounds_to_sixteen(self, backend):
        assert backend.frame_prologue(8) == [
            ins("stp", "x29", "x30", "[sp, #-16]!"),
            ins("mov", "x29", "sp"),
            ins("sub", "sp", "sp", "#16"),
        ]
        assert backend.frame_prologue(24)[-1] == ins("sub", "sp", "sp", "#32")

    def test_frame_prologue_large(self, backend):
        assert backend.frame_prologue(8000)[-2:] == [
            ins("mov", "x10", "#8000"),
            ins("sub", "sp", "sp", "x10"),
        ]

    def test_program_epilogue(self, backend):
        assert backend.program_epilogue() == [
            ins("mov", "sp", "x29"),
            ins("ldp", "x29", "x30", "[sp]", "#16"),
            ins("ret"),
        ]

    def test_push_register(self, backend):
        assert backend.push(ACCUMULATOR) == [ins("str", "x0", "[sp, #-16]!")]

    def test_push_immediate(self, backend):
        assert backend.push(Immediate(7)) == [
            ins("mov", "x10", "#7"),
            ins("str", "x10", "[sp, #-16]!"),
        ]

    def test_push_memory(self, backend):
        assert backend.push(Memory(Role.ACCUMULATOR)) == [
            ins("ldr", "x10", "[x0]"),
            ins("str", "x10", "[sp, #-16]!"),
        ]

    def test_pop(self, backend):
        assert backend.pop(SECONDARY) == [ins("ldr", "x1", "[sp]", "#16")]

    def test_store(self, backend):
        assert backend.move(Memory(Role.ACCUMULATOR), SECONDARY) == [
            ins("str", "x1", "[x0]"),
        ]

    def test_load_immediate_small(self, backend):
        assert backend.load_immediate(ACCUMULATOR, -1) == [ins("mov", "x0", "#-1")]

    def test_load_immediate_wide(self, backend):
        assert backend.load_immediate(ACCUMULATOR, 0x11170) == [
            ins("movz", "x0", "#4464"),
            ins("movk", "x0", "#1", "lsl #16"),
        ]

    def test_load_immediate_negative_wide(self, backend):
        lines = backend.load_immediate(ACCUMULATOR, -70000)
        assert lines[0].split()[0] == "movz"
        assert len(lines) == 4

    def test_add_small_immediate(self, backend):
        assert backend.add(ACCUMULATOR, Immediate(4095)) == [ins("add", "x0", "x0", "#4095")]

    def test_sub_large_immediate(self, backend):
        assert backend.sub(SCRATCH0, Immediate(5000)) == [
            ins("mov", "x10", "#5000"),
            ins("sub", "x9", "x9", "x10"),
        ]

    def test_mul_and_div(self, backend):
        assert backend.mul(ACCUMULATOR, SECONDARY) == [ins("mul", "x0", "x0", "x1")]
        assert backend.div(ACCUMULATOR, SECONDARY) == [ins("sdiv", "x0", "x0", "x1")]

    @pytest.mark.parametrize("kind,cond", [
        (NodeKind.EQUAL, "eq"),
        (NodeKind.NOT_EQUAL, "ne"),
        (NodeKind.LESS, "lt"),
        (NodeKind.LESS_EQUAL, "le"),
    ])
    def test_compare_and_set(self, backend, kind, cond):
        assert backend.compare_and_set(kind, ACCUMULATOR, SECONDARY) == [
            ins("cmp", "x0", "x1"),
            ins("cset", "x0", cond),
        ]

    def test_arithmetic_needs_register(self, backend):
        with pytest.raises(CodeGenError):
            backend.sub(Memory(Role.SCRATCH0), Immediate(8))

    def test_comment(self, backend):
        assert backend.comment("hello") == "        // hello"


# =============================================================================
# Registry Tests
# =============================================================================

class TestRegistry:
    """Tests for selecting a backend by name."""

    @pytest.mark.parametrize("name,expected", [
        ("x86_64", X86_64Backend),
        ("x86-64", X86_64Backend),
        ("AMD64", X86_64Backend),
        ("aarch64", AArch64Backend),
        ("arm64", AArch64Backend),
    ])
    def test_names_and_aliases(self, name, expected):
        assert isinstance(get_backend(name), expected)

    def test_unknown_target(self):
        with pytest.raises(UnknownTargetError) as exc_info:
            get_backend("sparc")
        assert "available targets" in str(exc_info.value)
        assert exc_info.value.target == "sparc"

    def test_native_follows_host(self, monkeypatch):
        monkeypatch.setattr("platform.machine", lambda: "arm64")
        assert canonical_target("native") == "aarch64"
        monkeypatch.setattr("platform.machine", lambda: "x86_64")
        assert canonical_target("native") == "x86_64"

    def test_native_on_unsupported_host(self, monkeypatch):
        monkeypatch.setattr("platform.machine", lambda: "riscv64")
        with pytest.raises(UnknownTargetError):
            canonical_target("native")

    def test_entry_symbol_override(self):
        backend = get_backend("x86_64", entry_symbol="start")
        assert backend.header()[1:] == [".globl start", "start:"]

    def test_available_targets(self):
        targets = available_targets()
        assert targets[:2] == ["x86_64", "aarch64"]
        assert "native" in targets
