"""ramfail CLI — assemble, compile and run RAM / FAIL programs."""

from __future__ import annotations

import asyncio
import logging
import sys

from .diagnostics import MachineFault, RamfailError
from .fail import compile_source
from .fail.tokens import tokenize as tokenize_fail
from .ram import Interpreter, assemble
from .ram.machine import DEFAULT_REGISTER_COUNT, DEFAULT_SPEED
from .ram.tokens import tokenize as tokenize_ram

logger = logging.getLogger(__name__)


USAGE: str = """\
ramfail COMMAND [OPTIONS] FILE

Commands:
  run FILE.ram       Assemble and run a RAM program
  compile FILE.fail  Compile a FAIL program and print the assembly
  exec FILE.fail     Compile a FAIL program and run it
  tokens FILE        Print the tokens of a .ram or .fail file

Options:
  --registers N      General registers for `run` (default 5)
  --speed HZ         Instructions per second (default 1)
  --realtime         Run without delays between instructions
  --verbose          Log pipeline and machine events to stderr
  --help             Show this help message
"""

COMMANDS: set[str] = {"run", "compile", "exec", "tokens"}


def _read_source(filepath: str) -> str | None:
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("ramfail: " + filepath + ": No such file or directory", file=sys.stderr)
        return None
    except OSError as e:
        print("ramfail: " + filepath + ": " + str(e), file=sys.stderr)
        return None
    try:
        return raw.decode("utf-8")
    except ValueError:
        print("ramfail: " + filepath + ": invalid utf-8", file=sys.stderr)
        return None


def _print_registers(machine: Interpreter) -> None:
    for register in machine.registers:
        print(str(register))


def _execute(machine: Interpreter) -> int:
    try:
        asyncio.run(machine.execute())
    except MachineFault as e:
        print("ramfail: runtime error: " + str(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("ramfail: interrupted", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    command: str = ""
    filepath: str = ""
    register_count = DEFAULT_REGISTER_COUNT
    speed = DEFAULT_SPEED
    real_time = False
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--realtime":
            real_time = True
            i += 1
        elif arg == "--verbose" or arg == "-v":
            verbose = True
            i += 1
        elif arg == "--registers" or arg == "--speed":
            if i + 1 >= len(args):
                print("ramfail: " + arg + " needs a value", file=sys.stderr)
                return 2
            value = args[i + 1]
            try:
                if arg == "--registers":
                    register_count = int(value)
                else:
                    speed = float(value)
            except ValueError:
                print("ramfail: invalid value for " + arg + ": '" + value + "'", file=sys.stderr)
                return 2
            if register_count < 0 or speed <= 0:
                print("ramfail: " + arg + " must be positive", file=sys.stderr)
                return 2
            i += 2
        elif arg.startswith("-"):
            print("ramfail: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif command == "":
            if arg not in COMMANDS:
                print("ramfail: unknown command '" + arg + "'", file=sys.stderr)
                return 2
            command = arg
            i += 1
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("ramfail: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if command == "":
        print("ramfail: missing command", file=sys.stderr)
        return 2
    if filepath == "":
        print("ramfail: missing file argument", file=sys.stderr)
        return 2

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    source = _read_source(filepath)
    if source is None:
        return 1

    try:
        if command == "tokens":
            tokenize = tokenize_fail if filepath.endswith(".fail") else tokenize_ram
            for tok in tokenize(source):
                print(str(tok.line) + ":" + str(tok.col) + " " + tok.kind + " " + tok.raw)
            return 0
        if command == "compile":
            print(compile_source(source).text, end="")
            return 0
        if command == "exec":
            emission = compile_source(source)
            register_count = emission.register_count
            program = assemble(emission.text, register_count)
        else:
            emission = None
            program = assemble(source, register_count)
    except RamfailError as e:
        print("ramfail: " + e.describe(), file=sys.stderr)
        return 1

    machine = Interpreter(speed, real_time, register_count)
    machine.load_program(program, register_count)
    logger.debug("running %s at %s", filepath, "full speed" if real_time else str(speed) + " Hz")
    status = _execute(machine)
    _print_registers(machine)
    if emission is not None:
        for name, register in emission.symbols.items():
            print(name + " = R" + str(register))
    return status


if __name__ == "__main__":
    sys.exit(main())
