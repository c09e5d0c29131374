"""
Code Generator Test Suite
=========================

Tests for lowering expression trees to assembly through a backend.

Test Organization
-----------------
- TestEmit: Per-node instruction sequences
- TestGenerate: Whole-program layout
- TestLiterals: Literal lowering rules
- TestCodeGenErrors: Trees that cannot be lowered
"""

import pytest

from exprcc.compiler.ast import NodeKind, NumberLiteral, Program, VariableSlot, BinaryOp
from exprcc.compiler.backends import AArch64Backend, X86_64Backend
from exprcc.compiler.codegen import CodeGenerator, literal_to_int
from exprcc.compiler.context import CompilationContext
from exprcc.compiler.errors import InvalidAssignmentTargetError, UnsupportedLiteralError
from exprcc.compiler.parser import parse_source


def ins(mnemonic, *operands):
    return X86_64Backend.instruction(mnemonic, *operands)


def generate(source: str, backend=None, **kwargs) -> list[str]:
    context = CompilationContext()
    program = parse_source(source, context=context)
    generator = CodeGenerator(backend or X86_64Backend(), source_lines=source.splitlines(), **kwargs)
    return generator.generate(program, context.identifier_count()).splitlines()


def mnemonics(lines: list[str]) -> list[str]:
    return [line.split()[0] for line in lines if line.startswith("        ")]


# =============================================================================
# Emit Tests
# =============================================================================

class TestEmit:
    """Tests for the instructions emitted per node."""

    @pytest.fixture
    def generator(self):
        return CodeGenerator(X86_64Backend())

    def test_number(self, generator):
        generator.emit(NumberLiteral(5))
        assert generator.lines == [ins("push", "5")]

    def test_variable_read(self, generator):
        generator.emit(VariableSlot(16))
        assert generator.lines == [
            ins("mov", "r10", "rbp"),
            ins("sub", "r10", "16"),
            ins("mov", "rax", "r10"),
            ins("push", "QWORD PTR [rax]"),
        ]

    def test_binary(self, generator):
        generator.emit(BinaryOp(NodeKind.ADD, NumberLiteral(1), NumberLiteral(2)))
        assert generator.lines == [
            ins("push", "1"),
            ins("push", "2"),
            ins("pop", "rdi"),
            ins("pop", "rax"),
            ins("add", "rax", "rdi"),
            ins("push", "rax"),
        ]

    def test_assignment(self, generator):
        generator.emit(BinaryOp(NodeKind.ASSIGN, VariableSlot(8), NumberLiteral(3)))
        assert generator.lines == [
            ins("mov", "r10", "rbp"),
            ins("sub", "r10", "8"),
            ins("mov", "rax", "r10"),
            ins("push", "rax"),
            ins("push", "3"),
            ins("pop", "rdi"),
            ins("pop", "rax"),
            ins("mov", "QWORD PTR [rax]", "rdi"),
            ins("push", "rdi"),
        ]

    def test_comparison(self, generator):
        generator.emit(BinaryOp(NodeKind.LESS, NumberLiteral(1), NumberLiteral(2)))
        assert mnemonics(generator.lines)[-4:] == ["cmp", "setl", "movzx", "push"]

    def test_emit_accumulates(self, generator):
        generator.emit(NumberLiteral(1))
        generator.emit(NumberLiteral(2))
        assert len(generator.lines) == 2


# =============================================================================
# Generate Tests
# =============================================================================

class TestGenerate:
    """Tests for whole-program output."""

    def test_empty_program_x86_64(self):
        assert generate("") == [
            ".intel_syntax noprefix",
            ".globl main",
            "main:",
            ins("push", "rbp"),
            ins("mov", "rbp", "rsp"),
            ins("mov", "rsp", "rbp"),
            ins("pop", "rbp"),
            ins("ret"),
        ]

    def test_empty_program_aarch64(self):
        lines = generate("", AArch64Backend())
        assert lines[:3] == [".globl _main", ".p2align 2", "_main:"]
        assert mnemonics(lines) == ["stp", "mov", "mov", "ldp", "ret"]

    def test_output_ends_with_newline(self):
        context = CompilationContext()
        text = CodeGenerator(X86_64Backend()).generate(parse_source("1;", context=context), 0)
        assert text.endswith("ret\n")

    def test_frame_reserves_slots(self):
        assert ins("sub", "rsp", "16") in generate("a = 1; b = 2;")

    def test_frame_aarch64_rounded(self):
        assert ins("sub", "sp", "sp", "#32") in generate("a; b; c;", AArch64Backend())

    def test_statement_value_popped(self):
        lines = generate("1; 2;")
        body = lines[5:-3]
        assert body == [
            ins("push", "1"),
            ins("pop", "rax"),
            ins("push", "2"),
            ins("pop", "rax"),
        ]

    def test_pushes_balance_pops(self):
        lines = generate("a = 2; b = a * (a + 3) - 4 / 2; a < b; b >= a;")
        ops = mnemonics(lines)
        assert ops.count("push") == ops.count("pop")

    def test_aarch64_pushes_balance_pops(self):
        lines = generate("a = 2; b = a * (a + 3) - 4 / 2; a != b;", AArch64Backend())
        pushes = sum(1 for line in lines if "[sp, #-16]!" in line and line.split()[0] == "str")
        pops = sum(1 for line in lines if line.rstrip().endswith("[sp], #16") and line.split()[0] == "ldr")
        assert pushes == pops

    def test_comments(self):
        lines = generate("a = 1;\nb = a;", emit_comments=True)
        assert "        # statement 1: a = 1;" in lines
        assert "        # statement 2: b = a;" in lines

    def test_comments_aarch64(self):
        lines = generate("a = 1;", AArch64Backend(), emit_comments=True)
        assert "        // statement 1: a = 1;" in lines

    def test_no_comments_by_default(self):
        assert not any("#" in line for line in generate("a = 1;"))

    def test_generate_resets_output(self):
        generator = CodeGenerator(X86_64Backend())
        first = generator.generate(Program((NumberLiteral(1),)), 0)
        second = generator.generate(Program((NumberLiteral(1),)), 0)
        assert first == second


# =============================================================================
# Literal Tests
# =============================================================================

class TestLiterals:
    """Tests for literal lowering."""

    def test_integer(self):
        assert literal_to_int(NumberLiteral(12)) == 12

    def test_integral_float(self):
        assert literal_to_int(NumberLiteral(2.0)) == 2
        assert ins("push", "2") in generate("2.0;")

    def test_fractional_float(self):
        with pytest.raises(UnsupportedLiteralError):
            generate("1.5;")

    def test_out_of_range(self):
        with pytest.raises(UnsupportedLiteralError) as exc_info:
            generate("9223372036854775808;")
        assert "out of 64-bit range" in str(exc_info.value)

    def test_largest_literal(self):
        lines = generate("9223372036854775807;")
        assert ins("mov", "r11", "9223372036854775807") in lines


# =============================================================================
# Error Tests
# =============================================================================

class TestCodeGenErrors:
    """Tests for trees that cannot be lowered."""

    @pytest.mark.parametrize("source", ["1 = 2;", "(a + b) = 3;", "a = 1 = 2;"])
    def test_invalid_assignment_target(self, source):
        with pytest.raises(InvalidAssignmentTargetError) as exc_info:
            generate(source)
        assert "left side of assignment is not a variable" in str(exc_info.value)

    def test_invalid_assignment_location(self):
        with pytest.raises(InvalidAssignmentTargetError) as exc_info:
            generate("a = 1;\n4 = a;")
        error = exc_info.value
        assert error.location.line == 2
        assert error.source_line == "4 = a;"
