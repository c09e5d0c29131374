"""
Target Backends
===============

Each supported architecture is a ``Backend`` subclass registered here
under its canonical name. A compilation picks one by name with
``get_backend``; the code generator only ever talks to that instance.

Target Names
------------
| Name     | Aliases        | Backend         |
|----------|----------------|-----------------|
| x86_64   | x86-64, amd64  | X86_64Backend   |
| aarch64  | arm64          | AArch64Backend  |
| native   |                | host machine    |
"""

import logging
import platform
from typing import Optional

from exprcc.compiler.errors import UnknownTargetError
from exprcc.compiler.backends.base import (
    Backend,
    Role,
    Immediate,
    Register,
    Memory,
    Operand,
    FRAME_BASE,
    STACK_TOP,
    ACCUMULATOR,
    SECONDARY,
    SCRATCH0,
    SCRATCH1,
)
from exprcc.compiler.backends.x86_64 import X86_64Backend
from exprcc.compiler.backends.aarch64 import AArch64Backend


logger = logging.getLogger(__name__)


BACKENDS: dict[str, type[Backend]] = {
    X86_64Backend.name: X86_64Backend,
    AArch64Backend.name: AArch64Backend,
}

TARGET_ALIASES: dict[str, str] = {
    "x86-64": "x86_64",
    "amd64": "x86_64",
    "arm64": "aarch64",
}

NATIVE = "native"


def available_targets() -> list[str]:
    """Every name accepted by ``get_backend``, canonical names first."""
    return list(BACKENDS) + list(TARGET_ALIASES) + [NATIVE]


def canonical_target(name: str) -> str:
    """
    Resolve a target name or alias to a registered backend name.

    ``native`` resolves to the host machine's architecture.

    Raises:
        UnknownTargetError: If the name (or the host) is not supported
    """
    key = name.strip().lower()
    if key == NATIVE:
        key = platform.machine().lower()
    key = TARGET_ALIASES.get(key, key)
    if key not in BACKENDS:
        raise UnknownTargetError(name, available_targets())
    return key


def get_backend(name: str, entry_symbol: Optional[str] = None) -> Backend:
    """
    Create the backend registered under ``name``.

    Args:
        name: Target name or alias
        entry_symbol: Override for the entry point label

    Raises:
        UnknownTargetError: If no backend matches
    """
    target = canonical_target(name)
    logger.debug(f"Selected backend '{target}' for target '{name}'")
    return BACKENDS[target](entry_symbol)


__all__ = [
    "Backend",
    "X86_64Backend",
    "AArch64Backend",
    "Role",
    "Immediate",
    "Register",
    "Memory",
    "Operand",
    "FRAME_BASE",
    "STACK_TOP",
    "ACCUMULATOR",
    "SECONDARY",
    "SCRATCH0",
    "SCRATCH1",
    "BACKENDS",
    "TARGET_ALIASES",
    "available_targets",
    "canonical_target",
    "get_backend",
]
