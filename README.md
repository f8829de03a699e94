# heip

A compiler and bytecode interpreter for the H.E.I.P. instruction language.

## Source language

H.E.I.P. source is line-oriented text. Empty lines and lines starting with `#`
are ignored. Every other line is split on whitespace: the first token is a
keyword, the second a name, the rest parameters.

Keywords are `Protocol`, `Instruct`, `Guide`, `State`, `Bubble`, `Chain` and
`Franchise`, each in capitalised or all-lowercase spelling. A first token that is
a single character `0`-`9` or `a`-`z` makes the line an overlay line; if an
overlay was registered for that symbol, the line refers to it.

Lines are grouped under the most recent `Protocol` line; lines before the first
`Protocol` are dropped.

```
# a protocol with two instructions
Protocol main
Instruct load 42
Instruct add
```

## What compilation does

For each protocol the compiler emits `FRAME_CREATE`, then for each line either
`OVERLAY_EXPAND` followed by the overlay's bytes, or the opcode for the line's
name (`load`, `store`, `add`, `sub`, `call`, `return`, `jump`, `compare`, `push`,
`pop`; anything else becomes `NOP`) followed by each parameter as a 4-byte
big-endian length and its UTF-8 bytes, and finally `FRAME_EXIT`.

The bytecode is then folded: in each pass, consecutive 4-byte chunks are replaced
by a one-byte id of the chunk's first appearance, with `int(log2(n)) // 2`
passes for `n` bytes of input. Unless learning is switched off, `NOP` (zero)
bytes are then removed. The result is written to the output file.

## Command line

```
heip compile program.heip program.bin --stats
heip run program.bin --stats
heip info
heip help
```

Options, given after the command's arguments:

- `--no-help` skips the `NOP`-stripping learning pass during compilation
- `--no-healing` disables recovery from checkpoints in the runtime
- `--stats` prints sizes, compression ratio and learning statistics after
  `compile`, or instruction count, execution time and uptime after `run`

`heip` with no command prints the usage text. Exit status is 0 on success and 1
on failure or an unknown command.

## Library use

```python
from heip.compiler import CompilationError, DodecaCompiler
from heip.runtime import FrameRuntime

compiler = DodecaCompiler()
try:
    output = compiler.compile("program.heip", "program.bin")  # returns the bytes written
except CompilationError as exc:
    print(exc)
print(compiler.original_size, compiler.compressed_size, compiler.compression_ratio)

runtime = FrameRuntime()
runtime.load_bytecode(bytes([0x01, 0, 0, 0, 2, 0x01, 0, 0, 0, 3, 0x03]))
status = runtime.execute()     # 0 on success, 1 on failure
print(runtime.stack)           # [5]
print(runtime.instruction_count, runtime.execution_time_us())
```

`DodecaCompiler` also offers `parse_instructions`, `build_protocols`,
`generate_bytecode`, `fold_structure`, `map_to_opcode`, `emit_native_code`,
`register_overlay` and `enable_learning`. `heip.compiler` has the helpers
`is_valid_symbol`, `calculate_compression_potential` and `optimal_fold_depth`.

`FrameRuntime` is a 32-bit stack machine with 1 MiB of memory. Besides
`load_bytecode` and `execute` it has frame handling (`create_frame`,
`enter_frame`, `exit_frame`), checkpoints (`save_state`, `restore_state`,
`create_checkpoint`, `attempt_recovery`), `enable_self_healing`, and an
inclusive execution range (`set_execution_range`, `in_range`). When an
instruction fails and self-healing is on, the runtime restores the current
frame's checkpoint and carries on.

The shared data types (`HEIPOpcode`, `InstructionType`, `Instruction`,
`Protocol`, `Overlay`, `DodecaMap`, `HELPContext`, `Frame`, `Range` and others)
live in `heip.model`.

## Limitations

- No machine code is produced: `emit_native_code` returns the bytecode as is.
- Folding cannot be undone, and there is no decompiler.
- The runtime executes `NOP`, `LOAD`, `STORE`, `ADD`, `SUB`, `MUL`, `CALL`,
  `RET`, `JMP`, `PUSH`, `POP`, `FRAME_CREATE`, `FRAME_EXIT`, `HELP_LEARN`,
  `HELP_HEAL` and `OVERLAY_EXPAND`; every other opcode, including `DIV`, `JZ`,
  `JNZ` and `CMP`, fails.
- Because compiled output is folded, running it with `heip run` does not
  reproduce the source program's instructions.