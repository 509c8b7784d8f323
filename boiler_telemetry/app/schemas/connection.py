from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionConfig(BaseModel):
    """Last-used connection parameters, persisted as {plantId, comPort}"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    plant_id: str = Field("", alias="plantId", description="Plant identifier")
    port: str = Field("", alias="comPort", description="Serial port name, e.g. COM9 or /dev/ttyUSB0")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class ConnectRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plant_id: str = Field("", alias="plantId")
    port: Optional[str] = Field(None, alias="comPort", description="Falls back to the stored port when omitted")


class ConnectionStatusResponse(BaseModel):
    state: str
    plant_id: str
    port: str
    connected_since: Optional[str] = None
    last_error: Optional[str] = None
    serial: dict
    metrics: dict
    polling: dict


class DisconnectResponse(BaseModel):
    disconnected: bool
    message: str
