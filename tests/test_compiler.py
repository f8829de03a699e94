import math

import pytest

from heip.compiler import (
    CompilationError,
    DodecaCompiler,
    calculate_compression_potential,
    is_valid_symbol,
    optimal_fold_depth,
)
from heip.model import HEIPOpcode, InstructionType

SOURCE = (
    "# demo program\n"
    "\n"
    "Protocol main\n"
    "Instruct load 12\n"
    "instruct add\n"
    "Instruct mystery\n"
    "Protocol second\n"
    "Instruct push\n"
)


@pytest.fixture
def compiler():
    return DodecaCompiler()


@pytest.mark.parametrize("symbol", ["0", "9", "a", "b", "c", "z"])
def test_valid_symbols(symbol):
    assert is_valid_symbol(symbol) is True


@pytest.mark.parametrize("symbol", ["A", "#", "", "ab", "-"])
def test_invalid_symbols(symbol):
    assert is_valid_symbol(symbol) is False


def test_compression_potential_caps_at_ten():
    assert calculate_compression_potential(1) == pytest.approx(1.0)
    assert calculate_compression_potential(1 << 20) == pytest.approx(10.0)


def test_optimal_fold_depth():
    assert optimal_fold_depth(1) == 0
    assert optimal_fold_depth(16) == 2
    assert optimal_fold_depth(0) == 0


def test_map_to_opcode(compiler):
    assert compiler.map_to_opcode("load") is HEIPOpcode.LOAD
    assert compiler.map_to_opcode("return") is HEIPOpcode.RET
    assert compiler.map_to_opcode("compare") is HEIPOpcode.CMP
    assert compiler.map_to_opcode("LOAD") is HEIPOpcode.NOP


def test_parse_skips_comments_and_blank_lines(compiler):
    insts = compiler.parse_instructions(SOURCE)
    assert len(insts) == 6
    assert [i.range_start for i in insts] == list(range(6))
    assert [i.range_end for i in insts] == list(range(1, 7))


def test_parse_types_names_and_params(compiler):
    insts = compiler.parse_instructions(SOURCE)
    assert insts[0].type is InstructionType.PROTOCOL
    assert insts[0].name == "main"
    assert insts[1].type is InstructionType.INSTRUCT
    assert insts[1].name == "load"
    assert insts[1].params == ["12"]
    assert insts[2].params == []


def test_parse_unknown_keyword_defaults_to_instruct(compiler):
    (inst,) = compiler.parse_instructions("BUBBLE thing x y\n")
    assert inst.type is InstructionType.INSTRUCT
    assert inst.name == "thing"
    assert inst.params == ["x", "y"]


def test_parse_overlay_symbol(compiler):
    overlay = compiler.register_overlay("loop", b"\x05\x06")
    (inst,) = compiler.parse_instructions(f"{overlay.symbol} body\n")
    assert inst.type is InstructionType.OVERLAY
    assert inst.overlay_ref is overlay
    (missing,) = compiler.parse_instructions("q body\n")
    assert missing.type is InstructionType.OVERLAY
    assert missing.overlay_ref is None


def test_build_protocols_drops_leading_instructions(compiler):
    insts = compiler.parse_instructions("Instruct load\n" + SOURCE)
    protocols = compiler.build_protocols(insts)
    assert [p.name for p in protocols] == ["main", "second"]
    assert [i.name for i in protocols[0].instructions] == ["load", "add", "mystery"]
    assert [i.name for i in protocols[1].instructions] == ["push"]


def test_generate_bytecode_layout(compiler):
    protocols = compiler.build_protocols(
        compiler.parse_instructions("Protocol main\nInstruct load ab\n")
    )
    expected = (
        bytes([HEIPOpcode.FRAME_CREATE, HEIPOpcode.LOAD, 0, 0, 0, 2])
        + b"ab"
        + bytes([HEIPOpcode.FRAME_EXIT])
    )
    assert compiler.generate_bytecode(protocols) == expected


def test_generate_bytecode_expands_overlay(compiler):
    overlay = compiler.register_overlay("loop", b"\x07\x08\x09")
    protocols = compiler.build_protocols(
        compiler.parse_instructions(f"Protocol p\n{overlay.symbol} x\n")
    )
    code = compiler.generate_bytecode(protocols)
    assert code[1] == HEIPOpcode.OVERLAY_EXPAND
    assert code[2:-1] == b"\x07\x08\x09"
    assert code[-1] == HEIPOpcode.FRAME_EXIT


def test_fold_short_data_unchanged(compiler):
    assert compiler.fold_structure(b"abc") == b"abc"
    assert compiler.fold_structure(b"") == b""


def test_fold_repeated_pattern_collapses(compiler):
    assert compiler.fold_structure(b"abcd" * 4) == b"\x00"


def test_fold_distinct_patterns_get_ids(compiler):
    assert compiler.fold_structure(b"abcdabce") == b"\x00\x01"


def test_fold_output_never_longer(compiler):
    data = bytes(range(200))
    assert len(compiler.fold_structure(data)) <= len(data)


def test_emit_native_code_is_identity(compiler):
    assert compiler.emit_native_code([1, 2, 3]) == b"\x01\x02\x03"


def test_symbol_allocation_sequence(compiler):
    symbols = [compiler.register_overlay(f"k{n}", b"") .symbol for n in range(12)]
    assert symbols[:10] == [str(d) for d in range(10)]
    assert symbols[10:] == ["a", "a"]


def test_register_overlay_sizes(compiler):
    overlay = compiler.register_overlay("kw", b"\x01\x02\x03")
    assert overlay.compressed_size == 3
    assert overlay.original_size == 0
    assert overlay.name == "kw"


def test_compile_writes_output(compiler, tmp_path, capsys):
    src = tmp_path / "prog.heip"
    out = tmp_path / "prog.bin"
    src.write_text(SOURCE)
    result = compiler.compile(src, out)
    assert out.read_bytes() == result
    assert compiler.original_size == len(SOURCE.encode())
    assert compiler.compressed_size == len(result)
    assert 0 not in result
    assert compiler.help_context.compilation_count == 1
    assert "Adapted: bytecode_compression" in compiler.help_context.adaptation_history
    assert "Compilation successful!" in capsys.readouterr().out


def test_compile_without_learning_keeps_fold(compiler, tmp_path):
    src = tmp_path / "prog.heip"
    out = tmp_path / "prog.bin"
    src.write_text(SOURCE)
    compiler.enable_learning(False)
    result = compiler.compile(src, out)
    expected = compiler.fold_structure(
        compiler.generate_bytecode(
            compiler.build_protocols(compiler.parse_instructions(SOURCE))
        )
    )
    assert result == expected
    assert compiler.help_context.heuristic_scores == {}


def test_compile_empty_program_has_infinite_ratio(compiler, tmp_path):
    src = tmp_path / "empty.heip"
    src.write_text("# nothing here\n")
    result = compiler.compile(src, tmp_path / "empty.bin")
    assert result == b""
    assert math.isinf(compiler.compression_ratio)


def test_compile_missing_source(compiler, tmp_path):
    with pytest.raises(CompilationError, match="Failed to open source file"):
        compiler.compile(tmp_path / "absent.heip", tmp_path / "out.bin")
    assert compiler.help_context.compilation_count == 0


def test_compile_unwritable_output(compiler, tmp_path):
    src = tmp_path / "prog.heip"
    src.write_text(SOURCE)
    with pytest.raises(CompilationError, match="Failed to open output file"):
        compiler.compile(src, tmp_path)