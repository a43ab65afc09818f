"""
HTTP API tests using the Flask test client.

The app is built with fakes for CUPS, the USB device and the image model.
"""

import threading
from unittest.mock import MagicMock

import pytest

from app import create_app
from config import TestingConfig
from conftest import FakeTransport
from core.exceptions import ImageGenerationError, PrintSystemError
from modules.image_generator import ImageGenerator


PNG = b"\x89PNG\r\n\x1a\n" + b"\x01" * 24


class ShortTimeoutConfig(TestingConfig):
    SUBMIT_TIMEOUT_SECONDS = 0.2


@pytest.fixture
def image_generator():
    generator = MagicMock(spec=ImageGenerator)
    generator.is_configured = True
    generator.generate.return_value = PNG
    return generator


@pytest.fixture
def app(fake_print_system, fake_transport, image_generator):
    app = create_app(
        TestingConfig,
        print_system=fake_print_system,
        transport=fake_transport,
        image_generator=image_generator,
    )
    yield app
    app.extensions["coloring_printer_cleanup"]()


@pytest.fixture
def client(app):
    return app.test_client()


class TestPrinters:

    def test_list(self, client):
        response = client.get("/api/printers")

        assert response.status_code == 200
        data = response.get_json()
        assert [p["name"] for p in data["printers"]] == ["Office", "Zebra"]
        assert data["printers"][1] == {
            "name": "Zebra",
            "isDefault": False,
            "isUSB": True,
            "status": "idle",
        }
        assert data["fetchedAt"] is not None

    def test_refresh(self, client, fake_print_system):
        calls = fake_print_system.enumerate_calls
        response = client.post("/api/printers/refresh")

        assert response.status_code == 200
        assert fake_print_system.enumerate_calls == calls + 1

    def test_failed_refresh_returns_stale_list(self, client, fake_print_system):
        fake_print_system.enumerate_error = PrintSystemError("lpstat -p", "scheduler is not running")

        response = client.post("/api/printers/refresh")

        assert response.status_code == 503
        data = response.get_json()
        assert data["kind"] == "RegistryRefreshFailed"
        assert [p["name"] for p in data["printers"]] == ["Office", "Zebra"]

        # Listing still works from the last snapshot
        assert len(client.get("/api/printers").get_json()["printers"]) == 2


class TestPrint:

    def test_prints_to_default_via_spooler(self, client, fake_print_system):
        response = client.post("/api/print", data=PNG, content_type="image/png")

        assert response.status_code == 200
        data = response.get_json()
        assert data == {
            "success": True,
            "printerName": "Office",
            "jobId": "Office-1",
            "status": "queued",
            "rule": "default",
        }
        assert fake_print_system.enqueue_calls[0][1] == PNG

    def test_explicit_usb_printer(self, client, fake_transport):
        response = client.post(
            "/api/print?copies=2",
            data=PNG,
            content_type="image/png",
            headers={"X-Printer-Name": "Zebra"},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["printerName"] == "Zebra"
        assert data["status"] == "completed"
        assert data["rule"] == "explicit"
        assert bytes(fake_transport.written["Zebra"]) == PNG * 2

    def test_printer_query_arg(self, client):
        response = client.post("/api/print?printer=Zebra", data=PNG)
        assert response.get_json()["printerName"] == "Zebra"

    def test_last_selected_hint(self, client):
        response = client.post(
            "/api/print",
            data=PNG,
            headers={"X-Last-Selected-Printer": "Zebra"},
        )
        assert response.get_json()["rule"] == "last_selected"

    def test_unknown_printer_is_404(self, client, fake_print_system):
        response = client.post("/api/print", data=PNG, headers={"X-Printer-Name": "Nope"})

        assert response.status_code == 404
        data = response.get_json()
        assert data["kind"] == "PrinterNotFound"
        assert data["category"] == "configuration"
        assert data["hardwareUncertain"] is False
        assert fake_print_system.enqueue_calls == []

    @pytest.mark.parametrize("query", ["copies=0", "copies=-2", "copies=two", "fit_to_page=maybe"])
    def test_bad_options_are_400(self, client, fake_print_system, query):
        response = client.post(f"/api/print?{query}", data=PNG)

        assert response.status_code == 400
        assert response.get_json()["kind"] == "InvalidOptions"
        assert fake_print_system.enqueue_calls == []

    def test_empty_body_is_400(self, client):
        response = client.post("/api/print")
        assert response.status_code == 400

    def test_no_usable_printer_is_503(self, client, fake_print_system):
        fake_print_system.printers = []
        client.post("/api/printers/refresh")

        response = client.post("/api/print", data=PNG)

        assert response.status_code == 503
        assert response.get_json()["kind"] == "NoUsablePrinter"

    def test_partial_usb_write_is_flagged(self, fake_print_system, image_generator):
        app = create_app(
            TestingConfig,
            print_system=fake_print_system,
            transport=FakeTransport(fail_after_bytes=8),
            image_generator=image_generator,
        )
        try:
            app.config["JOB_SUBMITTER"]._chunk_size = 8
            response = app.test_client().post("/api/print?printer=Zebra", data=PNG)
        finally:
            app.extensions["coloring_printer_cleanup"]()

        assert response.status_code == 502
        data = response.get_json()
        assert data["kind"] == "TransportWriteFailed"
        assert data["category"] == "runtime"
        assert data["hardwareUncertain"] is True
        assert data["details"]["bytes_written"] == 8

    def test_stuck_usb_printer_is_504(self, fake_print_system, image_generator):
        release = threading.Event()
        app = create_app(
            ShortTimeoutConfig,
            print_system=fake_print_system,
            transport=FakeTransport(block=release),
            image_generator=image_generator,
        )
        try:
            response = app.test_client().post("/api/print?printer=Zebra", data=PNG)
        finally:
            release.set()
            app.extensions["coloring_printer_cleanup"]()

        assert response.status_code == 504
        assert response.get_json()["kind"] == "SubmissionTimeout"

    def test_startup_refresh_failure_recovers_on_first_print(self, fake_print_system, fake_transport, image_generator):
        fake_print_system.enumerate_error = RuntimeError("cups not started yet")
        app = create_app(
            TestingConfig,
            print_system=fake_print_system,
            transport=fake_transport,
            image_generator=image_generator,
        )
        try:
            client = app.test_client()
            assert client.get("/api/printers").get_json()["printers"] == []

            fake_print_system.enumerate_error = None
            response = client.post("/api/print", data=PNG)
        finally:
            app.extensions["coloring_printer_cleanup"]()

        assert response.status_code == 200
        assert response.get_json()["printerName"] == "Office"


class TestJobs:

    def test_lookup_submitted_job(self, client):
        job_id = client.post("/api/print", data=PNG).get_json()["jobId"]

        response = client.get(f"/api/jobs/{job_id}")

        assert response.status_code == 200
        data = response.get_json()
        assert data["jobId"] == job_id
        assert data["status"] == "queued"
        assert data["printerName"] == "Office"

    def test_unknown_job_is_404(self, client):
        assert client.get("/api/jobs/missing").status_code == 404


class TestGenerate:

    def test_returns_png(self, client, image_generator):
        response = client.post("/api/generate", json={"prompt": "a friendly dragon"})

        assert response.status_code == 200
        assert response.mimetype == "image/png"
        assert response.data == PNG
        image_generator.generate.assert_called_once_with("a friendly dragon")

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 3}])
    def test_prompt_required(self, client, image_generator, body):
        response = client.post("/api/generate", json=body)

        assert response.status_code == 400
        image_generator.generate.assert_not_called()

    def test_generation_failure_is_502(self, client, image_generator):
        image_generator.generate.side_effect = ImageGenerationError("No image was generated for this prompt")

        response = client.post("/api/generate", json={"prompt": "a friendly dragon"})

        assert response.status_code == 502
        assert response.get_json()["error"] == "No image was generated for this prompt"


class TestService:

    def test_health_ok(self, client):
        data = client.get("/health").get_json()

        assert data["status"] == "ok"
        assert data["printers"] == 2
        assert data["refreshFailures"] == 0
        assert data["watcher"]["running"] is False

    def test_health_degraded_after_failed_refresh(self, client, fake_print_system):
        fake_print_system.enumerate_error = RuntimeError("boom")
        client.post("/api/printers/refresh")

        data = client.get("/health").get_json()

        assert data["status"] == "degraded"
        assert data["refreshFailures"] == 1
        assert data["printers"] == 2

    def test_cors_header(self, client):
        response = client.get("/api/printers")
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_unknown_route_is_json_404(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}
