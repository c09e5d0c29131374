"""
Compiler Driver Test Suite
==========================

Tests for the compiler entry points: options, results, file handling
and driver-level errors.
"""

from pathlib import Path

import pytest

from exprcc import ExprccError
from exprcc.compiler import (
    Compiler,
    CompilerOptions,
    CompileError,
    NestingTooDeepError,
    UnknownTargetError,
    compile_file,
    compile_source,
)


class TestCompileSource:
    """Tests for compiling source text."""

    def test_default_target(self):
        asm = compile_source("1 + 2;")
        assert asm.startswith(".intel_syntax noprefix\n")

    def test_aarch64_target(self):
        asm = compile_source("1 + 2;", target="arm64")
        assert asm.startswith(".globl _main\n")

    def test_result_fields(self):
        result = Compiler().compile_source("a = 1; b = a;", "prog.calc")
        assert result.filename == "prog.calc"
        assert result.target == "x86_64"
        assert result.identifier_count == 2
        assert len(result.program) == 2
        assert result.assembly.endswith("ret\n")

    def test_compilations_are_independent(self):
        compiler = Compiler()
        compiler.compile_source("a = 1; b = 2;")
        assert compiler.compile_source("c = 3;").identifier_count == 1

    def test_target_alias_canonicalised(self):
        assert Compiler(CompilerOptions(target="AMD64")).target == "x86_64"

    def test_unknown_target_rejected_early(self):
        with pytest.raises(UnknownTargetError):
            Compiler(CompilerOptions(target="mips"))

    def test_errors_carry_filename(self):
        with pytest.raises(CompileError) as exc_info:
            compile_source("1 +;", "prog.calc")
        assert str(exc_info.value).startswith("prog.calc:1:4: error:")

    def test_errors_are_exprcc_errors(self):
        with pytest.raises(ExprccError):
            compile_source("1.5;")

    def test_deep_nesting(self):
        source = "(" * 5000 + "1" + ")" * 5000 + ";"
        with pytest.raises(NestingTooDeepError) as exc_info:
            compile_source(source)
        assert "parsing" in str(exc_info.value)

    def test_moderate_nesting(self):
        source = "(" * 50 + "1" + ")" * 50 + ";"
        assert "push" in compile_source(source)


class TestCompileFile:
    """Tests for compiling files."""

    def test_compile_file_returns_assembly(self, tmp_path: Path):
        source = tmp_path / "prog.calc"
        source.write_text("a = 5; a + 1;")
        asm = compile_file(source)
        assert "main:" in asm

    def test_compile_file_writes_output(self, tmp_path: Path):
        source = tmp_path / "prog.calc"
        source.write_text("a = 5; a + 1;")
        output = tmp_path / "prog.s"
        asm = compile_file(source, output, target="aarch64")
        assert output.read_text() == asm
        assert "_main:" in asm

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            compile_file(tmp_path / "missing.calc")

    def test_error_location_uses_path(self, tmp_path: Path):
        source = tmp_path / "bad.calc"
        source.write_text("a = 1;\nb = $;")
        with pytest.raises(CompileError) as exc_info:
            Compiler().compile_file(source)
        assert str(exc_info.value).startswith(f"{source}:2:5: error:")
