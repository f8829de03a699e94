"""Frame interpreter runtime: executes bytecode on a 32-bit stack machine."""

from __future__ import annotations

import struct
import sys
import time
from typing import Iterable, Optional

from heip.model import Frame, HEIPOpcode, Range

MEMORY_SIZE = 1024 * 1024

_WORD = struct.Struct(">I")
_MASK = 0xFFFFFFFF


class _Fault(Exception):
    """An instruction could not complete."""


class FrameRuntime:
    """Executes bytecode with frames, checkpoints and self-healing recovery."""

    def __init__(self) -> None:
        self.program_counter = 0
        self.stack: list[int] = []
        self.memory = bytearray(MEMORY_SIZE)
        self.frame_stack: list[Frame] = []
        self.self_healing_enabled = True
        self.instruction_count = 0
        self.uptime_percentage = 100.0
        self.execution_log: list[str] = []
        self.error_log: list[str] = []
        self._bytecode = b""
        self._next_frame_id = 1
        self._start_time = time.perf_counter_ns()
        self._end_time = self._start_time
        self.current_frame: Optional[Frame] = self.create_frame("__root__")

    def load_bytecode(self, bytecode: Iterable[int]) -> None:
        """Load a program and reset the program counter."""
        self._bytecode = bytes(bytecode)
        self.program_counter = 0
        self._log(f"Bytecode loaded: {len(self._bytecode)} bytes")

    def enable_self_healing(self, enable: bool) -> None:
        """Switch recovery from checkpoints on or off."""
        self.self_healing_enabled = enable

    def execute(self) -> int:
        """Run the loaded program; return 0 on success and 1 on failure."""
        while True:
            try:
                status = self._run()
            except Exception as exc:  # noqa: BLE001 - any fault may be healed
                print(f"Runtime exception: {exc}", file=sys.stderr)
                if self.self_healing_enabled and self.attempt_recovery():
                    self._log("Exception recovered")
                    continue
                status = 1
            self._end_time = time.perf_counter_ns()
            return status

    def _run(self) -> int:
        self._log("Execution started")
        while self.program_counter < len(self._bytecode):
            opcode = self._bytecode[self.program_counter]
            self.program_counter += 1
            try:
                self._execute_opcode(opcode)
            except _Fault:
                if self.self_healing_enabled and self.attempt_recovery():
                    self._log("Self-healing recovery successful")
                    continue
                print(
                    f"Execution failed at PC: {self.program_counter - 1}",
                    file=sys.stderr,
                )
                return 1
            self.instruction_count += 1
            if not self.in_range(self.program_counter & _MASK):
                self._log("Execution out of range")
                break
        self._log("Execution completed successfully")
        return 0

    def _operand(self) -> int:
        if self.program_counter + 4 > len(self._bytecode):
            raise _Fault("truncated operand")
        (value,) = _WORD.unpack_from(self._bytecode, self.program_counter)
        self.program_counter += 4
        return value

    def _pop(self) -> int:
        if not self.stack:
            raise _Fault("stack underflow")
        return self.stack.pop()

    def _pop_pair(self) -> tuple[int, int]:
        if len(self.stack) < 2:
            raise _Fault("stack underflow")
        b = self.stack.pop()
        a = self.stack.pop()
        return a, b

    def _execute_opcode(self, opcode: int) -> None:
        try:
            op = HEIPOpcode(opcode)
        except ValueError:
            raise _Fault(f"unknown opcode {opcode:#04x}") from None

        match op:
            case HEIPOpcode.NOP:
                pass
            case HEIPOpcode.LOAD:
                self.stack.append(self._operand())
            case HEIPOpcode.STORE:
                value = self._pop()
                address = self._operand()
                if address + 4 > len(self.memory):
                    raise _Fault("address out of bounds")
                _WORD.pack_into(self.memory, address, value & _MASK)
            case HEIPOpcode.ADD:
                a, b = self._pop_pair()
                self.stack.append((a + b) & _MASK)
            case HEIPOpcode.SUB:
                a, b = self._pop_pair()
                self.stack.append((a - b) & _MASK)
            case HEIPOpcode.MUL:
                a, b = self._pop_pair()
                self.stack.append((a * b) & _MASK)
            case HEIPOpcode.CALL:
                target = self._operand()
                self.stack.append(self.program_counter & _MASK)
                self.program_counter = target
            case HEIPOpcode.RET:
                self.program_counter = self._pop()
            case HEIPOpcode.JMP:
                self.program_counter = self._operand()
            case HEIPOpcode.PUSH:
                # Pushing is implicit in this stack machine.
                if not self.stack:
                    raise _Fault("stack underflow")
            case HEIPOpcode.POP:
                self._pop()
            case HEIPOpcode.FRAME_CREATE:
                self.create_checkpoint()
                self._log("Frame created")
            case HEIPOpcode.FRAME_EXIT:
                self._log("Frame exited")
            case HEIPOpcode.HELP_LEARN:
                self._log("HELP learning invoked")
            case HEIPOpcode.HELP_HEAL:
                self._log("HELP self-healing triggered")
                self.attempt_recovery()
            case HEIPOpcode.OVERLAY_EXPAND:
                self._log("Overlay expanded")
            case _:
                raise _Fault(f"unsupported opcode {op.name}")

    def create_frame(self, name: str) -> Frame:
        """Create a frame and push it on the frame stack."""
        frame = Frame(
            name=name,
            frame_id=self._next_frame_id,
            timestamp=time.time_ns() // 1000,
            can_recover=True,
        )
        self._next_frame_id += 1
        self.frame_stack.append(frame)
        return frame

    def enter_frame(self, frame: Frame) -> None:
        """Make a frame current."""
        self.current_frame = frame
        self._log(f"Entered frame: {frame.name}")

    def exit_frame(self) -> None:
        """Pop the frame stack and make its new top current."""
        if self.frame_stack:
            self.frame_stack.pop()
        if self.frame_stack:
            self.current_frame = self.frame_stack[-1]
        self._log("Exited frame")

    def save_state(self) -> None:
        """Store the program counter and stack in the current frame's checkpoint."""
        words = [self.program_counter & _MASK, *self.stack]
        state = b"".join(_WORD.pack(word & _MASK) for word in words)
        if self.current_frame is not None:
            self.current_frame.checkpoint_state = state

    def restore_state(self) -> None:
        """Reload the program counter and stack from the current frame's checkpoint."""
        frame = self.current_frame
        if frame is None or not frame.checkpoint_state:
            return
        state = frame.checkpoint_state
        (self.program_counter,) = _WORD.unpack_from(state, 0)
        self.stack = [value for (value,) in _WORD.iter_unpack(state[4:])]
        self._log("State restored from checkpoint")

    def create_checkpoint(self) -> None:
        """Save the current state as a checkpoint."""
        self.save_state()
        self._log("Checkpoint created")

    def attempt_recovery(self) -> bool:
        """Restore the last checkpoint; true when one exists."""
        self._log("Attempting self-healing recovery")
        self.restore_state()
        self.error_log.clear()
        return self.current_frame is not None and bool(
            self.current_frame.checkpoint_state
        )

    def set_execution_range(self, start: int, end: int) -> None:
        """Limit execution of the current frame to positions start..end inclusive."""
        if self.current_frame is not None:
            self.current_frame.execution_range = Range(start=start, end=end)

    def in_range(self, position: int) -> bool:
        """Whether a position lies inside the current frame's execution range."""
        frame = self.current_frame
        if frame is not None and frame.execution_range is not None:
            bounds = frame.execution_range
            return bounds.start <= position <= bounds.end
        return True

    def execution_time_us(self) -> int:
        """Microseconds from construction to the end of the last execution."""
        return max(0, (self._end_time - self._start_time) // 1000)

    def _log(self, event: str) -> None:
        self.execution_log.append(event)

    def _handle_execution_error(self, error: str) -> bool:
        self.error_log.append(error)
        error_rate = len(self.error_log) / (self.instruction_count + 1)
        self.uptime_percentage = (1.0 - error_rate) * 100.0
        return self.self_healing_enabled