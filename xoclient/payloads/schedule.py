# xoclient/payloads/schedule.py
from typing import Optional

from pydantic import Field

from ..codec import UUIDOrString
from .base import XOModel


class Schedule(XOModel):
    id: Optional[UUIDOrString] = None
    job_id: UUIDOrString = Field(alias="jobId")
    name: Optional[str] = None
    cron: str
    enabled: bool = False
    timezone: Optional[str] = None
