from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class BoilerReadingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    reactor_temp: Optional[int] = Field(None, alias="reactorTemp")
    separator_temp: Optional[int] = Field(None, alias="separatorTemp")
    furnace_temp: Optional[int] = Field(None, alias="furnaceTemp")
    condenser_temp: Optional[int] = Field(None, alias="condenserTemp")
    atm_temp: Optional[int] = Field(None, alias="atmTemp")
    reactor_pressure: Optional[int] = Field(None, alias="reactorPressure")
    gas_tank_pressure: Optional[int] = Field(None, alias="gasTankPressure")
    process_start_time: Optional[str] = Field(None, alias="processStartTime")
    time_of_reaction: Optional[str] = Field(None, alias="timeOfReaction")
    process_end_time: Optional[str] = Field(None, alias="processEndTime")
    cooling_end_time: Optional[str] = Field(None, alias="coolingEndTime")
    nitrogen_purging: Optional[int] = Field(None, alias="nitrogenPurging")
    carbon_door_status: Optional[int] = Field(None, alias="carbonDoorStatus")
    co_ch4_leakage: Optional[int] = Field(None, alias="coCh4Leakage")
    jaali_blockage: Optional[int] = Field(None, alias="jaaliBlockage")
    machine_maintenance: Optional[int] = Field(None, alias="machineMaintenance")
    auto_shut_down: Optional[int] = Field(None, alias="autoShutDown")


class ReadingSnapshotResponse(BaseModel):
    timestamp: str
    source: str
    readings: List[BoilerReadingResponse]
