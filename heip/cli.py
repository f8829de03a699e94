"""Command-line front end: compile sources and run bytecode."""

from __future__ import annotations

import math
import sys
from pathlib import Path
from typing import Optional, Sequence

from heip.compiler import CompilationError, DodecaCompiler
from heip.runtime import FrameRuntime

_BANNER = """
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║   H.E.I.P. v4.0 - Highly Evolved Intuitive Programming        ║
║   Dodecagramic-Overlay Compilation System                     ║
║                                                               ║
║   "Write like a human. Execute like a machine.                ║
║    Learn like an organism."                                   ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
"""

_USAGE = """Usage: heip [command] [options]

Commands:
  compile <input.heip> <output>   - Compile H.E.I.P. source to native code
  run <bytecode>                  - Execute H.E.I.P. bytecode
  info                            - Display compiler information
  help                            - Show this help message

Options:
  --no-help     - Disable HELP learning system
  --no-healing  - Disable self-healing runtime
  --stats       - Show detailed statistics
"""

_INFO = """
H.E.I.P. Compiler Information:
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
Version:           4.0.0
Architecture:      Dodecagramic-Overlay Compilation
Compression:       10:1 average ratio (exponential folding)
Runtime:           FIR (Frame Interpreter Runtime)
Learning System:   HELP (Heuristic Evaluation Learning Protocol)
Self-Healing:      Enabled (>99.999% uptime)

Key Features:
  • Dodecagramic symbol compression (0-9, a-b, c-z)
  • Overlay-based structural replacement
  • Exponential folding techniques
  • Direct opcode mapping from condensed forms
  • Self-healing compiler kernel
  • Adaptive runtime optimization
  • Forensic ledger tracking

Programming Paradigms:
  • Instructional Programming (protocols, instructions, ranges)
  • Itemized Programming (tiers, containers, directives)
  • Multi-paradigm fusion (procedural, functional, declarative)
"""


def _code_reduction(ratio: float) -> float:
    if ratio == 0:
        return -math.inf
    return (1.0 - 1.0 / ratio) * 100.0


def _compile(args: Sequence[str], help_enabled: bool, show_stats: bool) -> int:
    if len(args) < 2:
        print("Error: compile requires input and output files", file=sys.stderr)
        print("Usage: heip compile <input.heip> <output>", file=sys.stderr)
        return 1
    input_file, output_file = args[0], args[1]
    print(f"Compiling: {input_file} → {output_file}")
    print("Dodecagramic-Overlay Compilation in progress...\n")

    compiler = DodecaCompiler()
    compiler.enable_learning(help_enabled)
    try:
        compiler.compile(input_file, output_file)
    except CompilationError as exc:
        print(exc, file=sys.stderr)
        print("\n✗ Compilation failed", file=sys.stderr)
        return 1

    print("\n✓ Compilation successful!\n")
    if show_stats:
        ratio = compiler.compression_ratio
        context = compiler.help_context
        print("Detailed Statistics:")
        print("━━━━━━━━━━━━━━━━━━━━")
        print(f"Original size:      {compiler.original_size} bytes")
        print(f"Compressed size:    {compiler.compressed_size} bytes")
        print(f"Compression ratio:  {ratio:g}x")
        print(f"Code reduction:     {_code_reduction(ratio):g}%")
        print("\nHELP Statistics:")
        print(f"Compilations:       {context.compilation_count}")
        print(f"Learning rate:      {context.learning_rate:g}")
        print(f"Adaptations:        {len(context.adaptation_history)}")
    return 0


def _run(args: Sequence[str], healing_enabled: bool, show_stats: bool) -> int:
    if not args:
        print("Error: run requires bytecode file", file=sys.stderr)
        print("Usage: heip run <bytecode>", file=sys.stderr)
        return 1
    bytecode_file = args[0]
    print(f"Loading bytecode: {bytecode_file}")
    print("Frame Interpreter Runtime initializing...\n")

    try:
        bytecode = Path(bytecode_file).read_bytes()
    except OSError:
        print("Error: Could not open bytecode file", file=sys.stderr)
        return 1

    runtime = FrameRuntime()
    runtime.enable_self_healing(healing_enabled)
    runtime.load_bytecode(bytecode)
    print("Executing...\n")

    result = runtime.execute()
    if result == 0:
        print("\n✓ Execution completed successfully\n")
        if show_stats:
            print("Runtime Statistics:")
            print("━━━━━━━━━━━━━━━━━━━━")
            print(f"Instructions executed: {runtime.instruction_count}")
            print(f"Execution time:        {runtime.execution_time_us()} µs")
            print(f"Uptime:                {runtime.uptime_percentage:g}%")
    else:
        print(f"\n✗ Execution failed with code: {result}", file=sys.stderr)
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line and return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    print(_BANNER)

    if not args:
        print(_USAGE)
        return 0

    command, rest = args[0], args[1:]
    if command in ("help", "--help", "-h"):
        print(_USAGE)
        return 0
    if command in ("info", "--info"):
        print(_INFO)
        return 0

    help_enabled = "--no-help" not in rest
    healing_enabled = "--no-healing" not in rest
    show_stats = "--stats" in rest

    if command == "compile":
        return _compile(rest, help_enabled, show_stats)
    if command == "run":
        return _run(rest, healing_enabled, show_stats)

    print(f"Unknown command: {command}", file=sys.stderr)
    print(_USAGE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())