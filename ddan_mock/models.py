from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ScanStatus(str, Enum):
    SCANNING = "scanning"
    DONE = "done"
    ERROR = "error"


class ScanResult(str, Enum):
    CLEAN = "clean"
    INFECTED = "infected"
    UNKNOWN = "unknown"


TERMINAL_STATUSES = frozenset({ScanStatus.DONE, ScanStatus.ERROR})


class ScanRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(alias="fileId", min_length=1)
    status: ScanStatus = Field(default=ScanStatus.SCANNING)
    result: ScanResult = Field(default=ScanResult.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
