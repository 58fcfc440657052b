import io

import pytest

from elmcore.commands import format_voltage
from elmcore.config import Param
from elmcore.interpreter import Interpreter, main


@pytest.fixture
def quiet():
    interp = Interpreter()
    interp.process_line("ATE0")
    return interp


def test_startup_banner_is_written():
    written = []
    Interpreter(write=written.append)
    assert "".join(written) == "ELM327 v2.1\r\n>"


def test_echo_is_on_after_start():
    interp = Interpreter()
    assert interp.process_line("ATE0") == "ATE0\r\nOK\r\n>"
    assert interp.config.get_bool(Param.ECHO) is False


def test_interface_and_version(quiet):
    assert quiet.process_line("ATI") == "ELM327 v2.1\r\n>"
    assert quiet.process_line("AT@1") == "1.24\r\n>"


def test_unknown_command_and_non_at_text(quiet):
    assert quiet.process_line("ATXYZ") == "?\r\n>"
    assert quiet.process_line("HELLO") == "?\r\n>"


def test_linefeed_off_uses_carriage_return_only(quiet):
    assert quiet.process_line("ATL0") == "OK\r>"


def test_data_request_without_ecu_reports_no_data(quiet):
    assert quiet.process_line("0100") == "NO DATA\r\n>"


def test_empty_line_repeats_previous_command(quiet):
    first = quiet.process_line("AT@1")
    assert quiet.process_line("") == first


def test_spaces_are_ignored_in_commands(quiet):
    assert quiet.process_line("AT ST 19") == "OK\r\n>"
    assert quiet.config.get_int(Param.TIMEOUT) == int("19", 16)


def test_set_protocol_requires_argument(quiet):
    assert quiet.process_line("ATSP") == "?\r\n>"


def test_set_protocol_auto(quiet):
    assert quiet.process_line("ATSP0") == "OK\r\n>"
    assert quiet.config.get_bool(Param.USE_AUTO_SP) is False
    assert quiet.process_line("ATSPA0") == "OK\r\n>"
    assert quiet.process_line("ATDPN") == "A0\r\n>"
    assert quiet.process_line("ATDP") == "AUTO\r\n>"


def test_protocol_without_adapter_is_rejected(quiet):
    assert quiet.process_line("ATSP6") == "?\r\n>"


def test_header_show_property(quiet):
    quiet.process_line("ATH1")
    assert quiet.config.get_bool(Param.HEADER_SHOW) is True
    quiet.process_line("ATH0")
    assert quiet.config.get_bool(Param.HEADER_SHOW) is False


def test_read_voltage_uses_adc():
    interp = Interpreter(read_adc=lambda: 0x0A54)
    interp.process_line("ATE0")
    assert interp.process_line("ATRV") == format_voltage(0x0A54) + "\r\n>"


def test_read_voltage_without_adc(quiet):
    assert quiet.process_line("ATRV") == "?\r\n>"


def test_reset_restores_echo(quiet):
    assert quiet.process_line("ATZ") == "ELM327 v2.1\r\n>"
    assert quiet.config.get_bool(Param.ECHO) is True
    assert quiet.process_line("AT@1").startswith("AT@1\r\n")


def test_feed_reports_terminator(quiet):
    assert quiet.feed("A") is False
    assert quiet.feed("\r") is True


def test_feed_rejects_multiple_characters(quiet):
    with pytest.raises(ValueError):
        quiet.feed("AT")


def test_dispatch_at_result(quiet):
    assert quiet.dispatch_at("ATE1") is True
    assert quiet.config.get_bool(Param.ECHO) is True
    assert quiet.dispatch_at("ATQQ") is False


def test_reply_follows_linefeed_setting(quiet):
    written = []
    interp = Interpreter(write=written.append)
    written.clear()
    interp.reply("X")
    interp.config.set_bool(Param.LINEFEED, False)
    interp.reply("Y")
    assert written == ["X\r\n", "Y\r"]


def test_collector_is_reset_after_command(quiet):
    quiet.process_line("ATI")
    assert quiet.collector.text == ""


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("ATE0\nATI\n"))
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out == "ELM327 v2.1\r\n>" + "ATE0\r\nOK\r\n>" + "ELM327 v2.1\r\n>"