"""
Compilation Context
===================

Per-compilation state shared by the lexer and the parser. At present this
is the identifier table: the mapping from variable name to the byte offset
of its slot below the frame base.

Offsets are assigned in first-seen order, in multiples of the word size:

    a = 1; b = 2; a;   ->   a: 8, b: 16

A context is created for one compilation and discarded afterwards.
"""

import logging
from typing import Iterator


logger = logging.getLogger(__name__)

# Slot width in bytes; both targets are 64-bit.
WORD_SIZE = 8


class IdentifierTable:
    """
    Insertion-ordered name -> offset mapping that only grows.

    Attributes:
        word_size: Slot width in bytes
    """

    def __init__(self, word_size: int = WORD_SIZE):
        self.word_size = word_size
        self._offsets: dict[str, int] = {}

    def resolve(self, name: str) -> int:
        """
        Return the offset for ``name``, allocating the next slot if unseen.

        Args:
            name: Identifier name

        Returns:
            Byte offset from the frame base (always a positive multiple
            of the word size)
        """
        offset = self._offsets.get(name)
        if offset is None:
            offset = (len(self._offsets) + 1) * self.word_size
            self._offsets[name] = offset
            logger.debug(f"Allocated slot for '{name}' at offset {offset}")
        return offset

    def __contains__(self, name: str) -> bool:
        return name in self._offsets

    def __len__(self) -> int:
        return len(self._offsets)

    def __iter__(self) -> Iterator[str]:
        return iter(self._offsets)

    def items(self):
        """Return (name, offset) pairs in allocation order."""
        return self._offsets.items()


class CompilationContext:
    """
    State owned by a single compilation.

    Attributes:
        identifiers: The identifier table
        filename: Source filename used in diagnostics
    """

    def __init__(self, filename: str = "<input>", word_size: int = WORD_SIZE):
        self.filename = filename
        self.identifiers = IdentifierTable(word_size)

    @property
    def word_size(self) -> int:
        return self.identifiers.word_size

    def resolve_offset(self, name: str) -> int:
        """Return the slot offset for ``name``, allocating it if new."""
        return self.identifiers.resolve(name)

    def identifier_count(self) -> int:
        """Return the number of distinct identifiers seen so far."""
        return len(self.identifiers)

    def frame_size(self) -> int:
        """Bytes of local storage needed for every identifier seen."""
        return self.identifier_count() * self.word_size
