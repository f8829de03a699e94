"""The dodecagramic-overlay compiler: source text to folded bytecode."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from heip.model import (
    DodecaMap,
    HELPContext,
    HEIPOpcode,
    Instruction,
    InstructionType,
    Overlay,
    Protocol,
)

PathLike = Union[str, Path]

_KEYWORDS = {
    "instruct": InstructionType.INSTRUCT,
    "guide": InstructionType.GUIDE,
    "state": InstructionType.STATE,
    "protocol": InstructionType.PROTOCOL,
    "bubble": InstructionType.BUBBLE,
    "chain": InstructionType.CHAIN,
    "franchise": InstructionType.FRANCHISE,
}
# Only the all-lowercase and capitalised spellings are keywords.
_KEYWORD_TABLE = {
    spelling: kind
    for word, kind in _KEYWORDS.items()
    for spelling in (word, word.capitalize())
}

_OPCODES = {
    "load": HEIPOpcode.LOAD,
    "store": HEIPOpcode.STORE,
    "add": HEIPOpcode.ADD,
    "sub": HEIPOpcode.SUB,
    "call": HEIPOpcode.CALL,
    "return": HEIPOpcode.RET,
    "jump": HEIPOpcode.JMP,
    "compare": HEIPOpcode.CMP,
    "push": HEIPOpcode.PUSH,
    "pop": HEIPOpcode.POP,
}


class CompilationError(Exception):
    """Raised when a source file cannot be compiled."""


def is_valid_symbol(symbol: str) -> bool:
    """Whether a single character is a dodecagramic symbol (0-9, a-z)."""
    return len(symbol) == 1 and ("0" <= symbol <= "9" or "a" <= symbol <= "z")


def calculate_compression_potential(structure_size: int) -> float:
    """Theoretical compression for a structure, capped at 10."""
    if structure_size <= 0:
        return -math.inf
    return min(10.0, math.log2(structure_size) + 1.0)


def optimal_fold_depth(data_size: int) -> int:
    """Number of folding passes for data of the given size."""
    if data_size <= 0:
        return 0
    return int(math.log2(data_size)) // 2


def _fold(data: bytes, depth: int) -> bytes:
    for _ in range(depth):
        if len(data) < 4:
            break
        patterns: dict[tuple[int, ...], int] = {}
        data = bytes(
            patterns.setdefault(chunk, len(patterns) % 256)
            for chunk in zip(*[iter(data)] * 4)
        )
    return data


def _ratio(original: int, compressed: int) -> float:
    if compressed == 0:
        return math.inf if original > 0 else math.nan
    return original / compressed


class DodecaCompiler:
    """Compiles source into bytecode through parsing, folding and optimisation."""

    def __init__(self) -> None:
        self.help_enabled = True
        self.help_context = HELPContext()
        self.original_size = 0
        self.compressed_size = 0
        self.compression_ratio = 1.0
        self._next_symbol = "0"
        self._dodeca_map = DodecaMap()
        self._overlay_registry: dict[str, Overlay] = {}

    def enable_learning(self, enable: bool) -> None:
        """Switch the HELP optimisation stage on or off."""
        self.help_enabled = enable

    def compile(self, source_file: PathLike, output_file: PathLike) -> bytes:
        """Compile a source file, write the result and return it."""
        while True:
            try:
                return self._compile_once(source_file, output_file)
            except CompilationError:
                raise
            except Exception as exc:
                if not self._attempt_error_recovery(str(exc)):
                    raise CompilationError(f"Compilation error: {exc}") from exc
                print("Error recovered through HELP system")

    def _compile_once(self, source_file: PathLike, output_file: PathLike) -> bytes:
        try:
            raw = Path(source_file).read_bytes()
        except OSError as exc:
            raise CompilationError(f"Failed to open source file: {source_file}") from exc
        self.original_size = len(raw)
        source = raw.decode("utf-8", "surrogateescape")

        instructions = self.parse_instructions(source)
        protocols = self.build_protocols(instructions)
        bytecode = self.generate_bytecode(protocols)
        folded = self.fold_structure(bytecode)
        if self.help_enabled:
            folded = self._apply_help_optimizations(folded)

        self.compressed_size = len(folded)
        self.compression_ratio = _ratio(self.original_size, self.compressed_size)

        native = self.emit_native_code(folded)
        try:
            with open(output_file, "wb") as output:
                output.write(native)
        except OSError as exc:
            raise CompilationError(f"Failed to open output file: {output_file}") from exc

        self.help_context.compilation_count += 1
        self._log_forensic_event(f"Compilation successful: {source_file}")

        print("Compilation successful!")
        print(f"Original size: {self.original_size} bytes")
        print(f"Compressed size: {self.compressed_size} bytes")
        print(f"Compression ratio: {self.compression_ratio:g}x")
        return native

    def parse_instructions(self, source: str) -> list[Instruction]:
        """Parse source lines into instructions, skipping blanks and comments."""
        instructions: list[Instruction] = []
        lines = (line for line in source.split("\n") if line and not line.startswith("#"))
        for position, line in enumerate(lines):
            tokens = line.split()
            keyword = tokens[0] if tokens else ""
            inst = Instruction(
                name=tokens[1] if len(tokens) > 1 else "",
                params=tokens[2:],
                range_start=position,
                range_end=position + 1,
            )
            kind = _KEYWORD_TABLE.get(keyword)
            if kind is not None:
                inst.type = kind
            elif is_valid_symbol(keyword):
                inst.type = InstructionType.OVERLAY
                inst.overlay_ref = self._dodeca_map.decompress(keyword)
            instructions.append(inst)
        return instructions

    def build_protocols(self, instructions: Iterable[Instruction]) -> list[Protocol]:
        """Group instructions under the protocol that precedes them."""
        protocols: list[Protocol] = []
        current: Optional[Protocol] = None
        for inst in instructions:
            if inst.type is InstructionType.PROTOCOL:
                current = Protocol(name=inst.name)
                protocols.append(current)
            elif current is not None:
                current.instructions.append(inst)
        return protocols

    def generate_bytecode(self, protocols: Iterable[Protocol]) -> bytes:
        """Emit unfolded bytecode for the protocols."""
        out = bytearray()
        for protocol in protocols:
            out.append(HEIPOpcode.FRAME_CREATE)
            for inst in protocol.instructions:
                if inst.overlay_ref is not None:
                    out.append(HEIPOpcode.OVERLAY_EXPAND)
                    out += inst.overlay_ref.compressed_bytecode
                    continue
                out.append(self.map_to_opcode(inst.name))
                for param in inst.params:
                    data = param.encode("utf-8", "surrogateescape")
                    out += (len(data) & 0xFFFFFFFF).to_bytes(4, "big")
                    out += data
            out.append(HEIPOpcode.FRAME_EXIT)
        return bytes(out)

    def fold_structure(self, unfolded: bytes) -> bytes:
        """Fold 4-byte patterns into pattern ids, repeated log2(n)/2 times."""
        return _fold(bytes(unfolded), optimal_fold_depth(len(unfolded)))

    def map_to_opcode(self, instruction: str) -> HEIPOpcode:
        """Opcode for an instruction name, NOP when unknown."""
        return _OPCODES.get(instruction, HEIPOpcode.NOP)

    def emit_native_code(self, heip_bytecode: Sequence[int]) -> bytes:
        """Native code for the bytecode; currently the bytecode itself."""
        return bytes(heip_bytecode)

    def register_overlay(self, keyword: str, replacement_bytecode: bytes) -> Overlay:
        """Bind a keyword to a new symbol and replacement bytecode."""
        data = bytes(replacement_bytecode)
        overlay = Overlay(
            name=keyword,
            symbol=self._allocate_symbol(),
            compressed_bytecode=data,
            compressed_size=len(data),
        )
        self._overlay_registry[keyword] = overlay
        self._dodeca_map.symbol_to_overlay[overlay.symbol] = overlay
        self._dodeca_map.keyword_to_symbol[keyword] = overlay.symbol
        return overlay

    def _allocate_symbol(self) -> str:
        symbol = self._next_symbol
        current = self._next_symbol
        if "0" <= current < "9":
            self._next_symbol = chr(ord(current) + 1)
        elif current == "9":
            self._next_symbol = "a"
        elif current == "b":
            self._next_symbol = "c"
        elif "c" <= current < "z":
            self._next_symbol = chr(ord(current) + 1)
        return symbol

    def _apply_help_optimizations(self, bytecode: bytes) -> bytes:
        self.help_context.adapt_optimization("bytecode_compression")
        return bytes(b for b in bytecode if b != HEIPOpcode.NOP)

    def _attempt_error_recovery(self, error: str) -> bool:
        self.help_context.learn_from_error(error)
        recommendation = self.help_context.recommend_fix(error)
        if recommendation:
            self._log_forensic_event(f"Recovery attempted: {recommendation}")
            return True
        return False

    def _log_forensic_event(self, event: str) -> None:
        self.help_context.adaptation_history.append(event)