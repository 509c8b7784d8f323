from dataclasses import dataclass


@dataclass(frozen=True)
class SerialSettings:
    """Electrical and framing parameters of the PLC serial link (Modbus ASCII, 7E1)"""
    baudrate: int = 9600
    bytesize: int = 7
    parity: str = "E"
    stopbits: int = 1
    slave_id: int = 1  # unit id for every request
    timeout: float = 10.0
    framing: str = "ascii"


# The PLC only speaks this configuration
DEFAULT_SERIAL_SETTINGS = SerialSettings()
