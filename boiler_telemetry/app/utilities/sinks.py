import json
from pathlib import Path
from typing import Union

from boiler_telemetry.app.models.telemetry import ReadingSnapshot
from boiler_telemetry.app.utilities.telemetry import logger


def log_snapshot(snapshot: ReadingSnapshot) -> None:
    """Publish readings to the service log"""
    for reading in snapshot.readings:
        logger.info("Boiler reading", extra={
            "component": "telemetry",
            "source": snapshot.source,
            "reading": reading.to_dict()
        })


class JsonlReadingSink:
    """Appends every published snapshot to a JSON lines file, one object per line"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, snapshot: ReadingSnapshot) -> None:
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(snapshot.to_dict(), ensure_ascii=False, separators=(',', ':')))
            f.write("\n")
