import asyncio
import unittest

from boiler_telemetry.app.core.connection_manager import ConnectionManager
from boiler_telemetry.app.core.telemetry_exceptions import NotConnectedError, PLCConnectionError
from boiler_telemetry.app.models.connection_manager import ConnectionState
from boiler_telemetry.app.models.serial_config import DEFAULT_SERIAL_SETTINGS
from boiler_telemetry.app.schemas.connection import ConnectionConfig

from fakes import FakeTransportFactory


class TestConnectionManager(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.factory = FakeTransportFactory()
        self.manager = ConnectionManager(transport_factory=self.factory)
        self.config = ConnectionConfig(plant_id="P1", port="COM9")

    async def test_connect_opens_transport_with_fixed_serial_settings(self):
        state = await self.manager.connect(self.config)

        self.assertEqual(state, ConnectionState.CONNECTED)
        self.assertTrue(self.manager.is_connected())
        self.assertEqual(self.factory.last.port, "COM9")
        self.assertEqual(self.factory.last.open_calls, 1)
        self.assertIs(self.factory.last.serial_settings, DEFAULT_SERIAL_SETTINGS)
        self.assertIsNotNone(self.manager.connected_since)

    async def test_reconnect_closes_previous_transport(self):
        await self.manager.connect(self.config)
        first = self.factory.last

        await self.manager.connect(ConnectionConfig(plant_id="P1", port="COM10"))

        self.assertEqual(first.close_calls, 1)
        self.assertEqual(len(self.factory.created), 2)
        self.assertEqual(self.factory.last.close_calls, 0)
        self.assertEqual(self.manager.config.port, "COM10")
        self.assertTrue(self.manager.is_connected())

    async def test_failed_open_leaves_disconnected(self):
        self.factory.open_errors = [OSError("port busy")]

        with self.assertRaises(PLCConnectionError) as ctx:
            await self.manager.connect(self.config)

        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertEqual(self.manager.state, ConnectionState.DISCONNECTED)
        self.assertIn("port busy", self.manager.last_error)

    async def test_failed_reconnect_drops_previous_link(self):
        await self.manager.connect(self.config)
        first = self.factory.last
        self.factory.open_errors = [PLCConnectionError("no such port")]

        with self.assertRaises(PLCConnectionError):
            await self.manager.connect(ConnectionConfig(port="COM99"))

        self.assertEqual(first.close_calls, 1)
        self.assertFalse(self.manager.is_connected())

    async def test_connect_requires_port(self):
        with self.assertRaises(PLCConnectionError):
            await self.manager.connect(ConnectionConfig(plant_id="P1"))

        self.assertEqual(self.factory.created, [])

    async def test_disconnect(self):
        await self.manager.connect(self.config)

        result = await self.manager.disconnect()

        self.assertTrue(result)
        self.assertEqual(self.factory.last.close_calls, 1)
        self.assertEqual(self.manager.state, ConnectionState.DISCONNECTED)

    async def test_disconnect_when_disconnected(self):
        self.assertFalse(await self.manager.disconnect())

        await self.manager.connect(self.config)
        await self.manager.disconnect()

        self.assertFalse(await self.manager.disconnect())
        self.assertEqual(self.factory.last.close_calls, 1)

    async def test_acquire_requires_connection(self):
        with self.assertRaises(NotConnectedError):
            async with self.manager.acquire():
                pass

    async def test_connect_waits_for_in_flight_read(self):
        await self.manager.connect(self.config)

        async with self.manager.acquire() as transport:
            task = asyncio.create_task(self.manager.connect(ConnectionConfig(port="COM10")))
            await asyncio.sleep(0.01)
            self.assertFalse(task.done())
            self.assertEqual(transport.close_calls, 0)

        await task
        self.assertEqual(self.factory.created[0].close_calls, 1)

    async def test_status(self):
        await self.manager.connect(self.config)

        status = self.manager.get_status()

        self.assertEqual(status["state"], "connected")
        self.assertEqual(status["plant_id"], "P1")
        self.assertEqual(status["port"], "COM9")
        self.assertEqual(status["serial"]["baudrate"], 9600)
        self.assertEqual(status["serial"]["bytesize"], 7)
        self.assertEqual(status["serial"]["parity"], "E")
        self.assertEqual(status["serial"]["stopbits"], 1)
        self.assertEqual(status["serial"]["slave_id"], 1)
        self.assertEqual(status["serial"]["framing"], "ascii")


if __name__ == '__main__':
    unittest.main()
