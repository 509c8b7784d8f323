from dataclasses import dataclass, field
from typing import Optional, Tuple

TEMPERATURE_FIELDS = (
    "reactor_temp",
    "separator_temp",
    "furnace_temp",
    "condenser_temp",
    "atm_temp",
)
PRESSURE_FIELDS = (
    "reactor_pressure",
    "gas_tank_pressure",
)
# Elapsed-seconds counters rendered as HH:MM:SS
DURATION_FIELDS = (
    "process_start_time",
    "time_of_reaction",
    "process_end_time",
    "cooling_end_time",
)
STATUS_FIELDS = (
    "nitrogen_purging",
    "carbon_door_status",
    "co_ch4_leakage",
    "jaali_blockage",
    "machine_maintenance",
    "auto_shut_down",
)
SIGNED_FIELDS = TEMPERATURE_FIELDS + PRESSURE_FIELDS
KNOWN_FIELDS = TEMPERATURE_FIELDS + PRESSURE_FIELDS + DURATION_FIELDS + STATUS_FIELDS

# Placeholder for a word the layout skips
RESERVED_FIELD = "reserved"

# 14-word unit: measurements, timers and the first three status words
DEFAULT_UNIT_LAYOUT: Tuple[str, ...] = TEMPERATURE_FIELDS + PRESSURE_FIELDS + DURATION_FIELDS + STATUS_FIELDS[:3]
# 17-word unit carrying every field of a boiler reading
EXTENDED_UNIT_LAYOUT: Tuple[str, ...] = KNOWN_FIELDS

MAX_REGISTERS_PER_REQUEST = 125  # Modbus function 0x03 limit
MAX_ADDRESS = 0xFFFF


@dataclass(frozen=True)
class RegisterMapConfig:
    """
    Deployment specific register layout and read policy

    The PLC exposes ``unit_count`` boilers as consecutive groups of
    ``words_per_unit`` holding registers starting at ``base_address``.
    ``fields`` names the words of one group in order.
    """
    base_address: int = 4466
    unit_count: int = 3
    words_per_unit: int = 14
    span: Optional[int] = None  # defaults to unit_count * words_per_unit
    max_chunk_size: int = 14
    max_attempts: int = 3
    retry_delay: float = 0.5  # seconds
    fields: Tuple[str, ...] = field(default=DEFAULT_UNIT_LAYOUT)

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        if self.span is None:
            object.__setattr__(self, "span", self.unit_count * self.words_per_unit)
        self.validate()

    @property
    def required_words(self) -> int:
        return self.unit_count * self.words_per_unit

    def validate(self):
        if not 0 <= self.base_address <= MAX_ADDRESS:
            raise ValueError(f"base_address {self.base_address} outside 0..{MAX_ADDRESS}")
        if self.unit_count < 1:
            raise ValueError("unit_count must be at least 1")
        if self.words_per_unit < 1:
            raise ValueError("words_per_unit must be at least 1")
        if self.span < self.words_per_unit:
            raise ValueError(f"span {self.span} cannot hold a single unit of {self.words_per_unit} words")
        if self.base_address + self.span > MAX_ADDRESS + 1:
            raise ValueError(f"register range {self.base_address}+{self.span} exceeds the address space")
        if not 1 <= self.max_chunk_size <= MAX_REGISTERS_PER_REQUEST:
            raise ValueError(f"max_chunk_size must be within 1..{MAX_REGISTERS_PER_REQUEST}")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.retry_delay < 0:
            raise ValueError("retry_delay cannot be negative")
        if len(self.fields) > self.words_per_unit:
            raise ValueError(f"{len(self.fields)} fields do not fit in {self.words_per_unit} words")

        named = [name for name in self.fields if name != RESERVED_FIELD]
        unknown = [name for name in named if name not in KNOWN_FIELDS]
        if unknown:
            raise ValueError(f"Unknown register fields: {unknown}")
        if len(set(named)) != len(named):
            raise ValueError("Register fields must not repeat")


DEFAULT_REGISTER_MAP = RegisterMapConfig()
