# elmcore

`elmcore` is the command core of an ELM327-compatible OBD-II adapter: the
part that sits between the serial line and the vehicle bus. It provides:

- the `AT` command set (`ATZ`, `ATD`, `ATE0`, `ATL0`, `ATS0`, `ATH1`, `ATSP`,
  `ATSH`, `ATCRA`, `ATCF`, `ATCM`, `ATFCSM`, `ATDP`, `ATDPN`, `ATBD`, `ATI`,
  `AT@1`, ...) with the replies `OK` and `?`, in `elmcore.commands`
  (`CommandHandlers`, `command_table`, `CommandSpec`)
- the adapter settings, keyed by the `Param` enumeration, in
  `elmcore.config.AdapterConfig`, with short byte-sequence settings held as
  `ByteArray`
- hex text and byte conversion in `elmcore.codec` (`to_bytes`, `to_ascii`,
  `can_id_to_string`, `kwords_to_string`, `auto_receive_parse`,
  `reverse_bytes`)
- input collection in `elmcore.collector.DataCollector`: upper-casing,
  dropping spaces, turning hex digits into request bytes and reading a
  trailing odd digit as the number of responses to wait for
- ISO 9141, ISO 14230, J1850 VPW and J1850 PWM message framing in
  `elmcore.ecumsg` (`create_message`, `iso_checksum`, `j1850_crc`)
- adaptive timing (`ATAT0`/`ATAT1`/`ATAT2`) and the P2 timeout in
  `elmcore.timeouts.TimeoutManager`
- the CAN frame log in `elmcore.canhistory.CanHistory` and the J1939
  transport-protocol connection manager in
  `elmcore.j1939conn.J1939ConnectionManager`
- the protocol adapter base, reply codes and protocol numbers in
  `elmcore.protocols`, the automatic protocol search in
  `elmcore.autoadapter.AutoAdapter`, and request routing with the error
  replies (`NO DATA`, `DATA ERROR`, `UNABLE TO CONNECT`, `BUS BUSY`, ...) in
  `elmcore.profile.OBDProfile`

It needs nothing beyond the Python standard library.

## Installing

```
pip install .
```

## The `elmcore` command

`elmcore` reads commands from standard input, one per line, and writes the
replies to standard output as the adapter would: on start it prints
`ELM327 v2.1` and the `>` prompt, and every reply line ends in CR LF (or CR
alone after `ATL0`). Echo is on by default, so each command is written back
before its reply; send `ATE0` to turn that off.

```
$ elmcore
ATE0
ATI
AT@1
ATDP
```

answers `OK`, `ELM327 v2.1`, `1.24` and `AUTO`, each followed by the prompt.

## Using it as a library

```python
from elmcore.interpreter import Interpreter

interp = Interpreter()
interp.process_line("ATE0")      # the echoed command, then "OK\r\n>"
interp.process_line("ATSH 7E0")  # "OK\r\n>"
interp.process_line("ATDPN")     # "A0\r\n>"
```

`process_line` feeds one line (adding the CR if it is missing) and returns
everything sent back. An `Interpreter` can also be given a `write` callback
that receives all output, an `AdapterConfig`, an `AdapterRegistry` of protocol
adapters, a `read_adc` callback used by `ATRV` and a `serial_number`
callback used by `AT#RSN`.

The building blocks work on their own as well:

```python
from elmcore.codec import to_bytes, to_ascii, can_id_to_string
from elmcore.ecumsg import MessageType, create_message, iso_checksum

to_bytes("0100")                      # b"\x01\x00"
to_ascii(b"\x41\x00", True)           # "41 00"
can_id_to_string(0x7E8, False, True)  # "7E8"

msg = create_message(MessageType.ISO9141)
msg.set_data(b"\x01\x00")
msg.add_header_and_checksum()
msg.format_reply(True)                # "68 6A F1 01 00 C4"
```

`CommandHandlers.set_defaults` applies the same settings as `ATD`.

## What it does not do

The package drives no vehicle bus. Out of the box only the automatic-search
adapter (`AutoAdapter`) is registered, and it finds no ECU, so:

- OBD requests such as `0100` are answered with `NO DATA`;
- choosing a specific protocol (`ATSP6`, `ATTP3`, ...) is answered with `?`
  unless a `ProtocolAdapter` for it has been registered in the
  `AdapterRegistry`; `ATSP0`, `ATSP00` and `ATSPA0` work;
- `ATRV` answers `?` unless a `read_adc` callback is given, `AT#RSN` sends
  nothing without a `serial_number` callback, and `AT#3` and `ATKW` report
  only what registered adapters provide.

To reach a real ECU, subclass `ProtocolAdapter` for the bus you have and
register it under its `AdapterKind`.

## Running the tests

```
pip install .[test]
pytest
```