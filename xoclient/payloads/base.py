# xoclient/payloads/base.py
from pydantic import BaseModel, ConfigDict


class XOModel(BaseModel):
    """Base for API payloads: JSON aliases accepted alongside field names, unknown fields ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
