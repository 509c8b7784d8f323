from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from collections import deque


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass(frozen=True)
class RegisterBlock:
    """Contiguous holding-register range issued as one request"""
    start_address: int
    count: int

    @property
    def end_address(self) -> int:
        return self.start_address + self.count - 1

    @property
    def byte_length(self) -> int:
        return self.count * 2


@dataclass()
class ReadMetrics:
    """Register read performance and reliability metrics"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    timeouts: int = 0
    retries: int = 0
    avg_response_time: float = 0.0
    last_successful_read: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    response_times: deque = field(default_factory=lambda: deque(maxlen=100))

    @property
    def success_rate(self) -> float:
        if self.total_requests > 0:
            return (self.successful_requests / self.total_requests) * 100
        return 0.0
