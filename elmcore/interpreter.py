"""Command line interpreter: collects user characters, runs AT commands and OBD requests."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Sequence

from .autoadapter import AutoAdapter
from .collector import DataCollector
from .commands import ERR_MESSAGE, CommandHandlers, CommandSpec, command_table
from .config import OBD_IN_MSG_DLEN, RX_BUFFER_LEN, RX_RESERVED, AdapterConfig, Param
from .profile import OBDProfile
from .protocols import AdapterKind, AdapterRegistry, MessageHistory
from .timeouts import TimeoutManager

PROMPT = ">"

# (name length, takes an argument) in the order the lookups are tried
_LOOKUP_PASSES = ((4, False), (4, True), (3, True), (2, True))


class Interpreter:
    """The adapter's user side: echo, command collection and dispatch."""

    def __init__(
        self,
        config: AdapterConfig | None = None,
        registry: AdapterRegistry | None = None,
        write: Callable[[str], None] | None = None,
        read_adc: Callable[[], int] | None = None,
        serial_number: Callable[[], str] | None = None,
    ) -> None:
        self.config = config if config is not None else AdapterConfig()
        self.registry = registry if registry is not None else AdapterRegistry()
        self.history = MessageHistory()
        self._write = write
        self._capture: list[str] | None = None

        if AdapterKind.AUTO not in self.registry:
            self.registry.register(
                AdapterKind.AUTO,
                AutoAdapter(self.config, self.registry, self.history, self.reply),
            )
        self.profile = OBDProfile(self.config, self.registry, self.reply)
        self.timeouts = TimeoutManager(self.config, self.profile.protocol)
        self.handlers = CommandHandlers(
            self.config,
            self.profile,
            self.reply,
            self.timeouts,
            self.history,
            read_adc,
            serial_number,
        )
        self.table: tuple[CommandSpec, ...] = command_table(self.handlers)
        self.collector = DataCollector(RX_BUFFER_LEN, RX_RESERVED)
        self.previous = DataCollector(OBD_IN_MSG_DLEN)

        self.handlers.reset("", Param.RESET_CPU)
        self._send(PROMPT)

    def _send(self, text: str) -> None:
        if self._capture is not None:
            self._capture.append(text)
        if self._write is not None:
            self._write(text)

    def reply(self, text: str) -> None:
        """Send a line terminated by CR, or CR LF when linefeeds are on."""
        ending = "\r\n" if self.config.get_bool(Param.LINEFEED) else "\r"
        self._send(text + ending)

    def feed(self, ch: str) -> bool:
        """Take one received character; True when it ends a command."""
        if len(ch) != 1:
            raise ValueError("feed takes a single character")
        if self.config.get_bool(Param.ECHO) and ch != "\n":
            self._send(ch)
            if ch == "\r" and self.config.get_bool(Param.LINEFEED):
                self._send("\n")
        if ch == "\r":
            return True
        if ch.isascii() and ch.isprintable():
            self.collector.put_char(ch)
        return False

    def _dispatch(self, text: str, name_len: int, with_arg: bool) -> bool:
        name = text[2 : 2 + name_len] if with_arg else text[2:]
        for spec in self.table:
            if spec.takes_argument != with_arg or name != spec.name:
                continue
            arg = text[name_len + 2 :] if with_arg else ""
            if with_arg and not spec.accepts(arg):
                continue
            spec.callback(arg, spec.param)
            return True
        return False

    def dispatch_at(self, text: str) -> bool:
        """Run an ``AT`` command line; False if no command matched."""
        return any(self._dispatch(text, n, arg) for n, arg in _LOOKUP_PASSES)

    def on_command(self) -> None:
        """Process the collected command, then prompt for the next one."""
        active = self.collector
        if not active.text:
            active = self.previous
        elif not active.is_huge_buffer():
            self.previous = active.copy(OBD_IN_MSG_DLEN)

        succeeded = False
        try:
            if active.is_data:
                self.profile.on_request(active)
                succeeded = True
            elif active.text[:2] == "AT":
                succeeded = self.dispatch_at(active.text)
        except LookupError:
            succeeded = False

        if not succeeded:
            self.reply(ERR_MESSAGE)
        self._send(PROMPT)
        self.collector.reset()

    def process_line(self, line: str) -> str:
        """Feed a line (a CR is added if missing) and return everything sent back."""
        if not line.endswith("\r"):
            line += "\r"
        self._capture = []
        try:
            for ch in line:
                if self.feed(ch):
                    self.on_command()
            return "".join(self._capture)
        finally:
            self._capture = None


def main(argv: Sequence[str] | None = None) -> int:
    """Read commands from standard input, one per line, and write the replies."""
    parser = argparse.ArgumentParser(
        prog="elmcore", description="OBD adapter command interpreter on standard input/output."
    )
    parser.parse_args(argv)

    def write(text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    interpreter = Interpreter(write=write)
    for line in sys.stdin:
        interpreter.process_line(line.rstrip("\r\n"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())