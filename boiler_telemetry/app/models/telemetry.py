from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional


def _camel_case(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


@dataclass(frozen=True)
class BoilerReading:
    """Decoded telemetry of one boiler unit for a single poll"""
    id: int
    reactor_temp: Optional[int] = None
    separator_temp: Optional[int] = None
    furnace_temp: Optional[int] = None
    condenser_temp: Optional[int] = None
    atm_temp: Optional[int] = None
    reactor_pressure: Optional[int] = None
    gas_tank_pressure: Optional[int] = None
    process_start_time: Optional[str] = None
    time_of_reaction: Optional[str] = None
    process_end_time: Optional[str] = None
    cooling_end_time: Optional[str] = None
    nitrogen_purging: Optional[int] = None
    carbon_door_status: Optional[int] = None
    co_ch4_leakage: Optional[int] = None
    jaali_blockage: Optional[int] = None
    machine_maintenance: Optional[int] = None
    auto_shut_down: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Record keyed the way the display layer expects (camelCase)"""
        return {
            _camel_case(f.name): getattr(self, f.name)
            for f in fields(self)
        }


@dataclass(frozen=True)
class ReadingSnapshot:
    """Readings published by one successful poll or on-demand read"""
    readings: List[BoilerReading]
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = "on_demand"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "readings": [reading.to_dict() for reading in self.readings],
        }
