import unittest

from boiler_telemetry.app.core.telemetry_decoder import decode, format_duration, frame_to_words
from boiler_telemetry.app.core.telemetry_exceptions import InsufficientDataError, LengthMismatchError
from boiler_telemetry.app.models.register_map import EXTENDED_UNIT_LAYOUT, RESERVED_FIELD, RegisterMapConfig

from fakes import BOILER_WORDS, FIXTURE_FRAME, words_to_bytes


class TestFormatDuration(unittest.TestCase):

    def test_formats_hours_minutes_seconds(self):
        self.assertEqual(format_duration(0), "00:00:00")
        self.assertEqual(format_duration(59), "00:00:59")
        self.assertEqual(format_duration(3661), "01:01:01")
        self.assertEqual(format_duration(45296), "12:34:56")

    def test_maximum_counter_value(self):
        self.assertEqual(format_duration(65535), "18:12:15")

    def test_counter_wraps_at_sixteen_bits(self):
        self.assertEqual(format_duration(65536), "00:00:00")
        self.assertEqual(format_duration(65536 + 61), "00:01:01")


class TestDecode(unittest.TestCase):

    def test_fixture_frame_yields_three_boilers(self):
        self.assertEqual(len(FIXTURE_FRAME), 84)

        readings = decode(FIXTURE_FRAME)

        self.assertEqual([r.id for r in readings], [1, 2, 3])

    def test_fields_follow_word_order(self):
        first = decode(FIXTURE_FRAME)[0]

        self.assertEqual(first.reactor_temp, 101)
        self.assertEqual(first.separator_temp, 102)
        self.assertEqual(first.furnace_temp, 103)
        self.assertEqual(first.condenser_temp, 104)
        self.assertEqual(first.atm_temp, 105)
        self.assertEqual(first.reactor_pressure, 11)
        self.assertEqual(first.gas_tank_pressure, 12)
        self.assertEqual(first.process_start_time, "01:01:01")
        self.assertEqual(first.time_of_reaction, "02:00:00")
        self.assertEqual(first.process_end_time, "00:00:59")
        self.assertEqual(first.cooling_end_time, "18:12:15")
        self.assertEqual(first.nitrogen_purging, 1)
        self.assertEqual(first.carbon_door_status, 0)
        self.assertEqual(first.co_ch4_leakage, 2)

    def test_every_field_matches_its_two_byte_slice(self):
        for reading, words in zip(decode(FIXTURE_FRAME), BOILER_WORDS):
            self.assertEqual(reading.reactor_temp, words[0])
            self.assertEqual(reading.separator_temp, words[1])
            self.assertEqual(reading.furnace_temp, words[2])
            self.assertEqual(reading.condenser_temp, words[3])
            self.assertEqual(reading.reactor_pressure, words[5])
            self.assertEqual(reading.nitrogen_purging, words[11])
            self.assertEqual(reading.carbon_door_status, words[12])
            self.assertEqual(reading.co_ch4_leakage, words[13])

    def test_temperatures_and_pressures_are_signed(self):
        third = decode(FIXTURE_FRAME)[2]

        self.assertEqual(third.atm_temp, -10)
        self.assertEqual(third.gas_tank_pressure, -32768)
        self.assertEqual(third.process_start_time, "12:34:56")

    def test_default_layout_leaves_unmapped_status_fields_empty(self):
        first = decode(FIXTURE_FRAME)[0]

        self.assertIsNone(first.jaali_blockage)
        self.assertIsNone(first.machine_maintenance)
        self.assertIsNone(first.auto_shut_down)

    def test_short_frame_omits_incomplete_boiler(self):
        readings = decode(FIXTURE_FRAME[:80])

        self.assertEqual([r.id for r in readings], [1, 2])

    def test_frame_shorter_than_one_boiler(self):
        with self.assertRaises(InsufficientDataError):
            decode(FIXTURE_FRAME[:26])

    def test_empty_frame(self):
        with self.assertRaises(InsufficientDataError):
            decode(b"")

    def test_odd_length_frame(self):
        with self.assertRaises(LengthMismatchError):
            decode(FIXTURE_FRAME[:83])

    def test_extra_trailing_words_are_ignored(self):
        readings = decode(FIXTURE_FRAME + words_to_bytes([9, 9, 9, 9, 9, 9, 9, 9]))

        self.assertEqual(len(readings), 3)

    def test_extended_layout_maps_all_status_words(self):
        register_map = RegisterMapConfig(words_per_unit=17, fields=EXTENDED_UNIT_LAYOUT)
        group = list(range(1, 18))
        frame = words_to_bytes(group * 3)

        readings = decode(frame, register_map)

        self.assertEqual(len(readings), 3)
        self.assertEqual(readings[1].nitrogen_purging, 12)
        self.assertEqual(readings[1].jaali_blockage, 15)
        self.assertEqual(readings[1].machine_maintenance, 16)
        self.assertEqual(readings[1].auto_shut_down, 17)

    def test_reserved_words_are_skipped(self):
        register_map = RegisterMapConfig(
            unit_count=1, words_per_unit=3,
            fields=("reactor_temp", RESERVED_FIELD, "auto_shut_down")
        )

        reading = decode(words_to_bytes([70, 999, 1]), register_map)[0]

        self.assertEqual(reading.reactor_temp, 70)
        self.assertEqual(reading.auto_shut_down, 1)

    def test_to_dict_uses_display_keys(self):
        record = decode(FIXTURE_FRAME)[0].to_dict()

        self.assertEqual(record["id"], 1)
        self.assertEqual(record["reactorTemp"], 101)
        self.assertEqual(record["gasTankPressure"], 12)
        self.assertEqual(record["coCh4Leakage"], 2)
        self.assertEqual(record["coolingEndTime"], "18:12:15")
        self.assertIn("autoShutDown", record)

    def test_frame_to_words_is_big_endian(self):
        self.assertEqual(frame_to_words(b"\x01\x02\xff\xfe"), [0x0102, 0xFFFE])


class TestRegisterMapConfig(unittest.TestCase):

    def test_defaults(self):
        register_map = RegisterMapConfig()

        self.assertEqual(register_map.base_address, 4466)
        self.assertEqual(register_map.span, 42)
        self.assertEqual(register_map.max_attempts, 3)
        self.assertEqual(register_map.retry_delay, 0.5)

    def test_rejects_layout_longer_than_unit(self):
        with self.assertRaises(ValueError):
            RegisterMapConfig(words_per_unit=10)

    def test_rejects_unknown_fields(self):
        with self.assertRaises(ValueError):
            RegisterMapConfig(words_per_unit=2, fields=("reactor_temp", "boiler_colour"))

    def test_rejects_oversized_chunks(self):
        with self.assertRaises(ValueError):
            RegisterMapConfig(max_chunk_size=126)


if __name__ == '__main__':
    unittest.main()
