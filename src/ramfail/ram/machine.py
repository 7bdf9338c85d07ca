"""RAM interpreter — a clocked, steppable accumulator machine.

The machine owns a register bank (register 0 is the accumulator) and a
memory of resolved, bounds-checked instructions. Observers subscribe to the
`started`, `stepped` and `stopped` signals, and to each register's `changed`
signal, instead of reading state while a run is in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..diagnostics import MachineFault
from .program import (
    ARITHMETIC_OPS,
    JUMP_OPS,
    OP_ADD,
    OP_DIV,
    OP_END,
    OP_JNZERO,
    OP_JZERO,
    OP_LOAD,
    OP_MUL,
    OP_STORE,
    OP_SUB,
    Address,
    AddressPointer,
    Argument,
    Immediate,
    Instruction,
    Label,
    LabelReference,
    Program,
)

logger = logging.getLogger(__name__)

DEFAULT_REGISTER_COUNT = 5
DEFAULT_SPEED = 1.0  # Hz

U32_MASK = 0xFFFFFFFF

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_STOPPED = "stopped"


# ============================================================
# Notifications
# ============================================================


class Signal:
    """Synchronous observer list; handlers run in the emitting thread."""

    def __init__(self) -> None:
        self._handlers: list[Callable[..., object]] = []

    def connect(self, handler: Callable[..., object]) -> Callable[..., object]:
        self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable[..., object]) -> None:
        self._handlers.remove(handler)

    def emit(self, *args: object) -> None:
        for handler in list(self._handlers):
            handler(*args)


class Register:
    def __init__(self, name: str, value: int = 0):
        self.name: str = name
        self._value: int = value
        self.changed: Signal = Signal()

    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, value: int) -> None:
        value &= U32_MASK
        if value == self._value:
            return
        self._value = value
        self.changed.emit(self)

    def __repr__(self) -> str:
        return "Register(" + self.name + ", " + str(self._value) + ")"

    def __str__(self) -> str:
        return self.name + ": " + str(self._value)


def _register_bank(register_count: int) -> list[Register]:
    registers = [Register("Acc")]
    i = 1
    while i <= register_count:
        registers.append(Register("R" + str(i)))
        i += 1
    return registers


# ============================================================
# Clocks
# ============================================================


class Clock:
    """One cancellable suspension point per instruction."""

    async def tick(self, cancel: asyncio.Event | None) -> bool:
        """Wait for the next tick. Returns False if cancelled meanwhile."""
        raise NotImplementedError


class RealTimeClock(Clock):
    """Back-to-back execution; only yields to the event loop."""

    async def tick(self, cancel: asyncio.Event | None) -> bool:
        await asyncio.sleep(0)
        return cancel is None or not cancel.is_set()


class PeriodicClock(Clock):
    """Ticks every `interval` seconds; missed ticks are coalesced."""

    def __init__(self, interval: float):
        self.interval: float = interval
        self._deadline: float | None = None

    async def tick(self, cancel: asyncio.Event | None) -> bool:
        loop = asyncio.get_running_loop()
        if self._deadline is None:
            self._deadline = loop.time() + self.interval
        delay = self._deadline - loop.time()
        if delay > 0:
            if cancel is None:
                await asyncio.sleep(delay)
            else:
                try:
                    await asyncio.wait_for(cancel.wait(), delay)
                    return False
                except asyncio.TimeoutError:
                    pass
        now = loop.time()
        self._deadline += self.interval
        if self._deadline < now:
            self._deadline = now + self.interval
        return cancel is None or not cancel.is_set()


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    def __init__(
        self,
        speed: float = DEFAULT_SPEED,
        real_time: bool = False,
        register_count: int = DEFAULT_REGISTER_COUNT,
    ):
        self.speed: float = speed
        self.real_time: bool = real_time
        self.registers: list[Register] = _register_bank(register_count)
        self.memory: list[Instruction] = []
        self.labels: list[Label] = []
        self.memory_pointer: int = 0
        self.state: str = STATE_IDLE
        self.started: Signal = Signal()
        self.stepped: Signal = Signal()
        self.stopped: Signal = Signal()

    @property
    def is_running(self) -> bool:
        return self.state == STATE_RUNNING

    @property
    def accumulator(self) -> Register:
        return self.registers[0]

    def snapshot(self) -> tuple[int, ...]:
        return tuple(r.value for r in self.registers)

    def load_program(self, program: Program, register_count: int = DEFAULT_REGISTER_COUNT) -> None:
        """Reset the machine with a fresh bank of `register_count` general registers."""
        if self.state == STATE_RUNNING:
            raise MachineFault("cannot load a program while running")
        self.memory = list(program.instructions)
        self.labels = list(program.labels)
        self.registers = _register_bank(register_count)
        self.memory_pointer = 0
        self.state = STATE_IDLE
        logger.debug(
            "loaded %d instructions, %d registers", len(self.memory), register_count
        )

    def _clock(self) -> Clock:
        if self.real_time:
            return RealTimeClock()
        if self.speed <= 0:
            raise MachineFault("speed must be positive, got " + str(self.speed))
        return PeriodicClock(1 / self.speed)

    # ── Running ─────────────────────────────────────────────

    async def execute(self, cancel: asyncio.Event | None = None) -> None:
        """Run from the current memory pointer until END, the end of memory,
        a halt, or cancellation."""
        if self.state == STATE_RUNNING:
            raise MachineFault("machine is already running")
        clock = self._clock()
        self.state = STATE_RUNNING
        self.started.emit()
        try:
            while (
                self.memory_pointer < len(self.memory)
                and self.state == STATE_RUNNING
                and (cancel is None or not cancel.is_set())
            ):
                if not await clock.tick(cancel):
                    break
                self._step()
            if (
                not self.real_time
                and self.state == STATE_RUNNING
                and (cancel is None or not cancel.is_set())
            ):
                await clock.tick(cancel)
        finally:
            self.state = STATE_STOPPED
            logger.debug("stopped at memory pointer %d", self.memory_pointer)
            self.stopped.emit()

    def step(self) -> bool:
        """Execute one instruction outside of `execute`.

        Returns True while there is more to execute.
        """
        if self.state == STATE_RUNNING:
            raise MachineFault("cannot step while running")
        if self.state == STATE_STOPPED or self.memory_pointer >= len(self.memory):
            self.state = STATE_STOPPED
            return False
        self._step()
        if self.state == STATE_STOPPED or self.memory_pointer >= len(self.memory):
            self.state = STATE_STOPPED
            return False
        return True

    def _step(self) -> None:
        pointer = self.memory_pointer
        self.stepped.emit(pointer)
        self._execute_instruction(self.memory[pointer])
        self.memory_pointer += 1

    def _halt(self, reason: str) -> None:
        logger.debug("halt at %d: %s", self.memory_pointer, reason)
        self.state = STATE_STOPPED

    # ── Instructions ────────────────────────────────────────

    def _execute_instruction(self, instruction: Instruction) -> None:
        opcode = instruction.opcode
        if opcode == OP_END:
            self._halt("END")
            return
        argument = instruction.argument
        if argument is None:
            raise MachineFault(opcode + " without an argument")
        acc = self.registers[0]

        if opcode in ARITHMETIC_OPS:
            value = self._read(argument)
            if value is None:
                return
            if opcode == OP_LOAD:
                acc.value = value
            elif opcode == OP_ADD:
                acc.value = acc.value + value
            elif opcode == OP_SUB:
                acc.value = 0 if value > acc.value else acc.value - value
            elif opcode == OP_MUL:
                acc.value = acc.value * value
            else:
                if value == 0:
                    logger.warning("division by zero at %d", self.memory_pointer)
                    self._halt("division by zero")
                    return
                acc.value = acc.value // value
            return

        if opcode == OP_STORE:
            index = self._target(argument)
            if index is None:
                return
            self.registers[index].value = acc.value
            return

        if opcode in JUMP_OPS:
            if opcode == OP_JZERO and acc.value != 0:
                return
            if opcode == OP_JNZERO and acc.value == 0:
                return
            target = argument.value
            if not isinstance(target, LabelReference) or target.label is None:
                raise MachineFault(opcode + " reached the machine with an unresolved label")
            # The loop's increment lands exactly on the label.
            self.memory_pointer = target.label.address - 1
            return

        raise MachineFault("Unknown opcode: " + opcode)

    def _read(self, argument: Argument) -> int | None:
        value = argument.value
        if isinstance(value, Immediate):
            return value.value
        if isinstance(value, Address):
            return self.registers[value.value].value
        if isinstance(value, AddressPointer):
            index = self._deref(value.value)
            if index is None:
                return None
            return self.registers[index].value
        raise MachineFault("A label reference is not a value operand: " + str(value))

    def _target(self, argument: Argument) -> int | None:
        value = argument.value
        if isinstance(value, Address):
            return value.value
        if isinstance(value, AddressPointer):
            return self._deref(value.value)
        raise MachineFault("STORE needs a register operand, got " + str(value))

    def _deref(self, pointer: int) -> int | None:
        index = self.registers[pointer].value
        if index >= len(self.registers):
            logger.warning(
                "register %d points outside the bank (%d) at %d",
                pointer,
                index,
                self.memory_pointer,
            )
            self._halt("invalid indirect access")
            return None
        return index
