"""
Unit tests for the CUPS command wrapper.

subprocess.run is patched; no CUPS installation is needed.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from core.cups_client import (
    CupsPrintSystem,
    classify_state,
    is_usb_uri,
    parse_default,
    parse_device_uris,
    parse_printer_states,
)
from core.exceptions import PrintSystemError, SpoolerRejected, SubmissionTimeout
from models.printer import PrinterStatus
from models.print_job import PrintOptions


LPSTAT_P = """printer Brother_HL is idle.  enabled since Sat 18 Oct 2026 10:00:00 AM
printer Canon_MG disabled since Sat 18 Oct 2026 10:02:11 AM -
\tPaused
printer Epson_XP now printing Epson_XP-12.  enabled since Sat 18 Oct 2026 10:05:00 AM
printer Zebra_GX is idle.  enabled since Sat 18 Oct 2026 09:00:00 AM
\tWaiting for printer to become available.
printer HP_Office disabled since Sat 18 Oct 2026 08:00:00 AM -
\tMedia jam
"""

LPSTAT_D = "system default destination: Brother_HL\n"

LPSTAT_V = """device for Brother_HL: ipp://192.168.1.20/ipp/print
device for Canon_MG: dnssd://Canon%20MG._ipp._tcp.local./
device for Epson_XP: usb://EPSON/XP-4100?serial=X2ZN
device for Zebra_GX: usb://Zebra%20Technologies/GX420d
device for HP_Office: socket://10.0.0.5
"""


def completed(stdout=b"", stderr=b"", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def fake_lpstat(outputs):
    """side_effect returning canned output per lpstat flag."""
    def run(args, **kwargs):
        return outputs[args[1]]
    return run


@pytest.fixture
def cups():
    return CupsPrintSystem(command_timeout=1.0)


class TestParsing:

    def test_printer_states(self):
        states = {name: status for name, status, _ in parse_printer_states(LPSTAT_P)}
        assert states == {
            "Brother_HL": PrinterStatus.IDLE,
            "Canon_MG": PrinterStatus.PAUSED,
            "Epson_XP": PrinterStatus.PRINTING,
            "Zebra_GX": PrinterStatus.OFFLINE,
            "HP_Office": PrinterStatus.PAUSED,
        }

    def test_reason_lines_are_kept(self):
        reasons = {name: reason for name, _, reason in parse_printer_states(LPSTAT_P)}
        assert reasons["Canon_MG"] == "Paused"
        assert reasons["Brother_HL"] == ""

    @pytest.mark.parametrize("reason", [
        'Unable to locate printer "Zebra".',
        "Media jam",
        "Paused",
        "",
    ])
    def test_disabled_queue_is_paused_whatever_the_reason(self, reason):
        output = f"printer Zebra disabled since Sat 18 Oct 2026 08:00:00 AM -\n\t{reason}\n"

        [(name, status, kept_reason)] = parse_printer_states(output)

        assert status is PrinterStatus.PAUSED
        assert kept_reason == reason

    def test_enabled_queue_uses_reason_hints(self):
        assert classify_state("is idle.", "Media jam") is PrinterStatus.ERROR
        assert classify_state("is idle.", "Printer is offline") is PrinterStatus.OFFLINE

    def test_unrecognized_state_is_unknown(self):
        assert classify_state("is frobnicating.", "") is PrinterStatus.UNKNOWN

    def test_default(self):
        assert parse_default(LPSTAT_D) == "Brother_HL"
        assert parse_default("no system default destination\n") is None

    def test_device_uris(self):
        uris = parse_device_uris(LPSTAT_V)
        assert uris["Zebra_GX"] == "usb://Zebra%20Technologies/GX420d"
        assert len(uris) == 5

    @pytest.mark.parametrize("uri, expected", [
        ("usb://EPSON/XP-4100", True),
        ("USB://HP/LaserJet", True),
        ("ipp://192.168.1.20/ipp/print", False),
        ("", False),
    ])
    def test_is_usb_uri(self, uri, expected):
        assert is_usb_uri(uri) is expected


class TestEnumerate:

    def test_builds_printers(self, cups):
        outputs = {
            "-p": completed(LPSTAT_P.encode()),
            "-d": completed(LPSTAT_D.encode()),
            "-v": completed(LPSTAT_V.encode()),
        }
        with patch("core.cups_client.subprocess.run", side_effect=fake_lpstat(outputs)) as run:
            printers = {p.name: p for p in cups.enumerate()}

        assert printers["Brother_HL"].is_default
        assert not printers["Brother_HL"].is_usb
        assert printers["Epson_XP"].is_usb
        assert printers["Canon_MG"].status is PrinterStatus.PAUSED
        assert sum(p.is_default for p in printers.values()) == 1

        env = run.call_args.kwargs["env"]
        assert env["LC_ALL"] == "C"

    def test_no_destinations_is_empty(self, cups):
        empty = completed(stderr=b"lpstat: No destinations added.\n", returncode=1)
        outputs = {"-p": empty, "-d": empty, "-v": empty}
        with patch("core.cups_client.subprocess.run", side_effect=fake_lpstat(outputs)):
            assert cups.enumerate() == []

    def test_scheduler_down_raises(self, cups):
        down = completed(stderr=b"lpstat: Bad file descriptor\n", returncode=1)
        with patch("core.cups_client.subprocess.run", return_value=down):
            with pytest.raises(PrintSystemError) as exc_info:
                cups.enumerate()
        assert exc_info.value.command == "lpstat -p"

    def test_missing_cups_raises(self, cups):
        with patch("core.cups_client.subprocess.run", side_effect=FileNotFoundError("lpstat")):
            with pytest.raises(PrintSystemError) as exc_info:
                cups.enumerate()
        assert "not found" in exc_info.value.message


class TestResume:

    def test_runs_cupsenable(self, cups):
        with patch("core.cups_client.subprocess.run", return_value=completed()) as run:
            cups.resume("Canon_MG")
        assert run.call_args.args[0] == ["cupsenable", "Canon_MG"]

    def test_failure_raises(self, cups):
        forbidden = completed(stderr=b"cupsenable: Forbidden\n", returncode=1)
        with patch("core.cups_client.subprocess.run", return_value=forbidden):
            with pytest.raises(PrintSystemError) as exc_info:
                cups.resume("Canon_MG")
        assert "Forbidden" in exc_info.value.message


class TestEnqueue:

    def test_returns_request_id(self, cups):
        ok = completed(b"request id is Brother_HL-42 (1 file(s))\n")
        with patch("core.cups_client.subprocess.run", return_value=ok) as run:
            job_id = cups.enqueue("Brother_HL", b"png", PrintOptions(copies=2), title="page")

        assert job_id == "Brother_HL-42"
        args = run.call_args.args[0]
        assert args == ["lp", "-d", "Brother_HL", "-n", "2", "-o", "fit-to-page", "-t", "page"]
        assert run.call_args.kwargs["input"] == b"png"

    def test_fit_to_page_off(self, cups):
        ok = completed(b"request id is Brother_HL-43 (1 file(s))\n")
        with patch("core.cups_client.subprocess.run", return_value=ok) as run:
            cups.enqueue("Brother_HL", b"png", PrintOptions(fit_to_page=False))
        assert "fit-to-page" not in run.call_args.args[0]

    def test_missing_request_id_is_synthesized(self, cups):
        with patch("core.cups_client.subprocess.run", return_value=completed(b"")):
            job_id = cups.enqueue("Brother_HL", b"png", PrintOptions())
        assert job_id.startswith("Brother_HL-")

    def test_rejection(self, cups):
        refused = completed(stderr=b"lp: Destination \"Canon_MG\" is not accepting jobs.\n", returncode=1)
        with patch("core.cups_client.subprocess.run", return_value=refused):
            with pytest.raises(SpoolerRejected) as exc_info:
                cups.enqueue("Canon_MG", b"png", PrintOptions())
        assert "not accepting jobs" in exc_info.value.reason

    def test_timeout(self, cups):
        expired = subprocess.TimeoutExpired(cmd="lp", timeout=1.0)
        with patch("core.cups_client.subprocess.run", side_effect=expired):
            with pytest.raises(SubmissionTimeout):
                cups.enqueue("Brother_HL", b"png", PrintOptions(), timeout_seconds=1.0)

    def test_missing_lp_is_rejection(self, cups):
        with patch("core.cups_client.subprocess.run", side_effect=FileNotFoundError("lp")):
            with pytest.raises(SpoolerRejected):
                cups.enqueue("Brother_HL", b"png", PrintOptions())

    def test_uses_custom_logger(self):
        logger = MagicMock()
        cups = CupsPrintSystem(logger=logger)
        ok = completed(b"request id is Brother_HL-44 (1 file(s))\n")
        with patch("core.cups_client.subprocess.run", return_value=ok):
            cups.enqueue("Brother_HL", b"png", PrintOptions())
        logger.info.assert_called()
