"""Core data types of the H.E.I.P. language, its compiler and its runtime."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Optional


class InstructionType(enum.Enum):
    """Kinds of source-level instructions."""

    INSTRUCT = 0
    GUIDE = 1
    STATE = 2
    BUBBLE = 3
    CHAIN = 4
    CASE = 5
    FRANCHISE = 6
    PROTOCOL = 7
    RANGE = 8
    OVERLAY = 9
    SUPERLATIVE = 10


class MutabilityType(enum.Enum):
    """Whether a state container may change."""

    MUTABLE = 0
    IMMUTABLE = 1


class HEIPOpcode(enum.IntEnum):
    """Single-byte opcodes of the bytecode."""

    NOP = 0x00
    LOAD = 0x01
    STORE = 0x02
    ADD = 0x03
    SUB = 0x04
    MUL = 0x05
    DIV = 0x06
    CALL = 0x07
    RET = 0x08
    JMP = 0x09
    JZ = 0x0A
    JNZ = 0x0B
    CMP = 0x0C
    PUSH = 0x0D
    POP = 0x0E
    ALLOC = 0x0F
    FREE = 0x10
    HELP_LEARN = 0x20
    HELP_ADAPT = 0x21
    HELP_HEAL = 0x22
    HELP_RECOMMEND = 0x23
    FRAME_CREATE = 0x30
    FRAME_ENTER = 0x31
    FRAME_EXIT = 0x32
    STATE_SAVE = 0x33
    STATE_RESTORE = 0x34
    OVERLAY_EXPAND = 0x40
    SYMBOL_RESOLVE = 0x41


@dataclass
class Overlay:
    """A keyword replaced by a symbol and a block of precompiled bytecode."""

    name: str
    symbol: str
    compressed_bytecode: bytes = b""
    original_size: int = 0
    compressed_size: int = 0

    def compression_ratio(self) -> float:
        """Original size over compressed size, or 1.0 when the original is empty."""
        if self.original_size <= 0:
            return 1.0
        if self.compressed_size == 0:
            return math.inf
        return self.original_size / self.compressed_size


@dataclass
class Instruction:
    """One parsed source line."""

    type: InstructionType = InstructionType.INSTRUCT
    name: str = ""
    params: list[str] = field(default_factory=list)
    bytecode: bytes = b""
    range_start: int = 0
    range_end: int = 0
    overlay_ref: Optional[Overlay] = None


@dataclass
class Protocol:
    """A named sequence of instructions."""

    name: str = ""
    instructions: list[Instruction] = field(default_factory=list)
    state_variables: dict[str, str] = field(default_factory=dict)
    range_scope: int = 0


@dataclass
class Franchise:
    """An organisational grouping of protocols and nested franchises."""

    name: str = ""
    protocols: list[Protocol] = field(default_factory=list)
    sub_franchises: dict[str, "Franchise"] = field(default_factory=dict)


@dataclass
class State:
    """A runtime state container."""

    name: str = ""
    variables: dict[str, Any] = field(default_factory=dict)
    mutability: MutabilityType = MutabilityType.MUTABLE
    is_traced: bool = False


@dataclass
class Range:
    """A contextual execution boundary, inclusive at both ends."""

    start: int = 0
    end: int = 0
    context: str = ""
    states: list[State] = field(default_factory=list)


@dataclass
class DodecaMap:
    """Two-way mapping between keywords, symbols and overlays."""

    symbol_to_overlay: dict[str, Overlay] = field(default_factory=dict)
    keyword_to_symbol: dict[str, str] = field(default_factory=dict)

    def compress(self, keyword: str) -> str:
        """Return the symbol for a keyword, or "0" when it has none."""
        return self.keyword_to_symbol.get(keyword, "0")

    def decompress(self, symbol: str) -> Optional[Overlay]:
        """Return the overlay for a symbol, or None."""
        return self.symbol_to_overlay.get(symbol)


@dataclass
class HELPContext:
    """Heuristic learning state shared across compilations."""

    compilation_count: int = 0
    learning_rate: float = 0.01
    adaptation_history: list[str] = field(default_factory=list)
    heuristic_scores: dict[str, float] = field(default_factory=dict)

    def _bump(self, key: str, amount: float) -> None:
        self.heuristic_scores[key] = self.heuristic_scores.get(key, 0.0) + amount

    def learn_from_error(self, error_type: str) -> None:
        """Raise the score of an error kind and record it."""
        self._bump(error_type, self.learning_rate)
        self.adaptation_history.append(f"Learned from: {error_type}")

    def adapt_optimization(self, pattern: str) -> None:
        """Raise the score of an optimisation pattern twice as fast and record it."""
        self._bump(pattern, self.learning_rate * 2.0)
        self.adaptation_history.append(f"Adapted: {pattern}")

    def recommend_fix(self, issue: str) -> Optional[str]:
        """Return a recommendation once an issue's score exceeds 0.5, else None."""
        if self.heuristic_scores.get(issue, 0.0) > 0.5:
            return f"Apply known pattern for: {issue}"
        return None


@dataclass
class Frame:
    """An execution context with a checkpoint for recovery."""

    name: str = ""
    active_protocols: list[Protocol] = field(default_factory=list)
    local_state: Optional[State] = None
    execution_range: Optional[Range] = None
    frame_id: int = 0
    timestamp: int = 0
    can_recover: bool = False
    checkpoint_state: bytes = b""