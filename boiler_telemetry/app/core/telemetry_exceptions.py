# Custom Exception Classes
class TelemetryError(Exception):
    """Base exception for telemetry acquisition"""
    def __init__(self, message: str, plant_id: str = None, address: int = None, count: int = None):
        super().__init__(message)
        self.plant_id = plant_id
        self.address = address
        self.count = count


class PLCConnectionError(TelemetryError):
    """Raised when the serial transport cannot be opened or closed"""
    pass


class NotConnectedError(TelemetryError):
    """Raised when an operation needs an open transport and there is none"""
    pass


class TransportTimeoutError(TelemetryError):
    """Raised by a transport when a single request got no response in time"""
    pass


class TimeoutExhaustedError(TelemetryError):
    """Raised when every attempt of a sub-request timed out"""
    def __init__(self, message: str, attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class ProtocolError(TelemetryError):
    """Raised when the device answers with an exception or a malformed response"""
    pass


class TransportIOError(TelemetryError):
    """Raised on serial I/O failures other than timeouts"""
    pass


class ReadCancelledError(TelemetryError):
    """Raised when a read is cancelled before its next attempt"""
    pass


class FrameError(TelemetryError):
    """Structural fault in a raw register frame"""
    pass


class LengthMismatchError(FrameError):
    """Raised when a frame does not have the expected byte length"""
    def __init__(self, message: str, expected: int = None, actual: int = None, **kwargs):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


class InsufficientDataError(FrameError):
    """Raised when a frame is too short to hold a single boiler unit"""
    pass


class ConfigError(TelemetryError):
    """Raised when configuration cannot be read, parsed or written"""
    pass
