"""
exprcc - Expression Compiler Command-Line Interface
===================================================

This module implements the ``exprcc`` command. It reads a source file,
compiles it for the selected target and writes the assembly next to it.

Usage Examples
--------------
Basic compilation (writes prog.s):
    $ exprcc prog.calc

Choose the target and output file:
    $ exprcc prog.calc -t aarch64 -o prog-arm.s

Print the expression trees instead of compiling:
    $ exprcc prog.calc --ast

Compile and run on the reference executor:
    $ exprcc prog.calc --run

Assemble the output with a native toolchain:
    $ exprcc prog.calc -t native && cc prog.s -o prog && ./prog; echo $?
"""

import logging
from pathlib import Path
from typing import Optional

import click

from exprcc import __version__
from exprcc.cli.errors import handle_cli_exception
from exprcc.compiler import Compiler, CompilerOptions, ASTPrinter, available_targets
from exprcc.executor import run_assembly


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: input.s)",
)
@click.option(
    "-t", "--target",
    type=click.Choice(available_targets(), case_sensitive=False),
    default="x86_64",
    show_default=True,
    envvar="EXPRCC_TARGET",
    help="Target architecture. 'native' picks the host machine.",
)
@click.option(
    "--entry-symbol",
    default=None,
    help="Entry point label (default: main on x86-64, _main on AArch64)",
)
@click.option(
    "--comments",
    is_flag=True,
    help="Annotate each statement in the assembly with a comment",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the expression trees and exit (for debugging)",
)
@click.option(
    "--run",
    "run_program",
    is_flag=True,
    help="Run the generated assembly on the reference executor and print the result",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="exprcc")
def main(
    input_file: Path,
    output: Optional[Path],
    target: str,
    entry_symbol: Optional[str],
    comments: bool,
    ast: bool,
    run_program: bool,
    verbose: bool,
) -> None:
    """
    Compile an exprcc program to assembly.

    INPUT_FILE is a source file of ';'-terminated expression statements.
    The program's exit value is the value of its last statement.

    \b
    Examples:
        exprcc prog.calc                 # Outputs prog.s for x86-64
        exprcc prog.calc -t aarch64      # AArch64 assembly
        exprcc prog.calc -o out.s        # Specify output file
        exprcc prog.calc --ast           # Dump expression trees
        exprcc prog.calc --run           # Compile and run
    """
    setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".s")

    options = CompilerOptions(
        target=target,
        entry_symbol=entry_symbol,
        emit_comments=comments,
    )

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...")
            click.echo(f"Target: {target}")

        source = input_file.read_text(encoding="utf-8")

        compiler = Compiler(options)
        result = compiler.compile_source(source, str(input_file))

        if ast:
            click.echo(ASTPrinter().print(result.program))
            return

        output.write_text(result.assembly, encoding="utf-8")

        if verbose:
            click.echo(f"Wrote {len(result.assembly)} bytes to {output}")
            click.echo(f"Parsed: {len(result.program)} statements, "
                       f"{result.identifier_count} variables")

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        handle_cli_exception(e, verbose)

    if run_program:
        try:
            value = run_assembly(result.assembly, result.target, str(output))
        except Exception as e:
            handle_cli_exception(e, verbose, error_type="Run")
        click.echo(f"Result: {value}")


if __name__ == "__main__":
    main()
