import json
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from boiler_telemetry.app.core.telemetry_exceptions import TransportTimeoutError
from boiler_telemetry.app.main import create_app
from boiler_telemetry.app.models.register_map import RegisterMapConfig
from boiler_telemetry.app.models.telemetry import ReadingSnapshot
from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime

from fakes import FakeTransportFactory
from test_service_runtime import make_settings


class TestApi(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.factory = FakeTransportFactory()
        self.runtime = ServiceRuntime(
            make_settings(self.tmpdir.name, poll_interval=60, auto_connect=False),
            register_map=RegisterMapConfig(retry_delay=0),
            transport_factory=self.factory,
            configure_logging=False
        )
        self.client = TestClient(create_app(self.runtime))
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self.tmpdir.cleanup()

    def connect(self, port="COM9", plant_id="P1"):
        return self.client.post("/api/v1/connection/connect", json={"plantId": plant_id, "comPort": port})

    def test_root(self):
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["version"], "1.0.0")

    def test_status_while_disconnected(self):
        response = self.client.get("/api/v1/connection")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["state"], "disconnected")
        self.assertEqual(body["serial"]["baudrate"], 9600)

    def test_connect(self):
        response = self.connect()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["state"], "connected")
        self.assertEqual(response.json()["port"], "COM9")
        stored = json.loads(Path(self.runtime.settings.connection_config_path).read_text())
        self.assertEqual(stored, {"plantId": "P1", "comPort": "COM9"})

    def test_connect_falls_back_to_stored_port(self):
        self.client.put("/api/v1/config", json={"plantId": "P1", "comPort": "COM5"})

        response = self.client.post("/api/v1/connection/connect", json={"plantId": "P1"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.factory.last.port, "COM5")

    def test_connect_without_any_port(self):
        response = self.client.post("/api/v1/connection/connect", json={"plantId": "P1"})

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"]["error_type"], "PLCConnectionError")

    def test_connect_failure(self):
        self.factory.open_errors = [OSError("access denied")]

        response = self.connect()

        self.assertEqual(response.status_code, 503)
        self.assertIn("access denied", response.json()["detail"]["message"])

    def test_read_requires_connection(self):
        response = self.client.post("/api/v1/telemetry/read")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["error_type"], "NotConnectedError")

    def test_read_and_latest(self):
        self.assertEqual(self.client.get("/api/v1/telemetry/latest").status_code, 404)
        self.connect()

        response = self.client.post("/api/v1/telemetry/read")

        self.assertEqual(response.status_code, 200)
        readings = response.json()["readings"]
        self.assertEqual([r["id"] for r in readings], [1, 2, 3])
        self.assertEqual(readings[0]["reactorTemp"], 101)
        self.assertEqual(readings[0]["coolingEndTime"], "18:12:15")
        self.assertEqual(readings[2]["atmTemp"], -10)
        self.assertIsNone(readings[0]["autoShutDown"])

        latest = self.client.get("/api/v1/telemetry/latest")
        self.assertEqual(latest.status_code, 200)
        self.assertEqual(latest.json()["timestamp"], response.json()["timestamp"])

    def test_read_reports_its_own_snapshot(self):
        self.connect()
        service = self.runtime.telemetry_service

        def poll_finishes_meanwhile(snapshot):
            service.latest = ReadingSnapshot(readings=[], source="poll")

        service.add_sink(poll_finishes_meanwhile)

        response = self.client.post("/api/v1/telemetry/read")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["source"], "on_demand")
        self.assertEqual(len(response.json()["readings"]), 3)

    def test_read_timeout(self):
        self.connect()
        self.factory.last.responses = [TransportTimeoutError("no response") for _ in range(3)]

        response = self.client.post("/api/v1/telemetry/read")

        self.assertEqual(response.status_code, 504)
        self.assertEqual(response.json()["detail"]["error_type"], "TimeoutExhaustedError")
        self.assertEqual(response.json()["detail"]["address"], 4466)

    def test_disconnect(self):
        self.connect()

        first = self.client.post("/api/v1/connection/disconnect")
        second = self.client.post("/api/v1/connection/disconnect")

        self.assertTrue(first.json()["disconnected"])
        self.assertFalse(second.json()["disconnected"])
        self.assertEqual(self.factory.last.close_calls, 1)

    def test_service_starts_with_corrupt_stored_config(self):
        Path(self.runtime.settings.connection_config_path).write_text("{not json")
        runtime = ServiceRuntime(
            self.runtime.settings,
            register_map=RegisterMapConfig(retry_delay=0),
            transport_factory=self.factory,
            configure_logging=False
        )

        with TestClient(create_app(runtime)) as client:
            status = client.get("/api/v1/connection")
            self.assertEqual(status.status_code, 200)
            self.assertEqual(status.json()["state"], "disconnected")

            repaired = client.put("/api/v1/config", json={"plantId": "P1", "comPort": "COM9"})
            self.assertEqual(repaired.status_code, 200)
            self.assertEqual(client.get("/api/v1/config").json(), {"plantId": "P1", "comPort": "COM9"})

    def test_config_round_trip(self):
        self.assertEqual(self.client.get("/api/v1/config").json(), {"plantId": "", "comPort": ""})

        response = self.client.put("/api/v1/config", json={"plantId": "P2", "comPort": "/dev/ttyUSB0"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/v1/config").json(), {"plantId": "P2", "comPort": "/dev/ttyUSB0"})


if __name__ == '__main__':
    unittest.main()
