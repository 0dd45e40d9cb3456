"""Pydantic request/response models for the lanwake API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceCreate(_ApiModel):
    # Checked by the registry: a missing value is a 400, not a 422.
    mac_address: Optional[str] = None
    name: Optional[str] = None
    ip_address: Optional[str] = None
    tags: Optional[list[str]] = None


class DevicePatch(_ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    mac_address: Optional[str] = None
    name: Optional[str] = None
    ip_address: Optional[str] = None
    tags: Optional[list[str]] = None
    is_online: Optional[bool] = None
    broadcast_address: Optional[str] = None
    port: Optional[int] = None


class WakeRequest(_ApiModel):
    mac_address: Optional[str] = None
    broadcast_address: Optional[str] = None
    port: Optional[int] = None


class StatusResponse(BaseModel):
    status: str
    message: str
    version: str


class WakeResponse(_ApiModel):
    message: str = "Wake packet sent successfully"
    mac_address: str
    broadcast_address: str
    port: int
