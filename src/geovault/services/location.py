"""Location lookup value model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LocationInfo(BaseModel):
    """Where an account is based, as reported by the lookup backend.

    Accepts the backend's camelCase field names (``locationAccurate``,
    ``isVpn``, ``learnMoreUrl``) as well as the snake_case ones.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    location: str | None = Field(None, description="Country or region the account is based in")
    source: str | None = Field(None, description="Where the account connects from")
    source_country: str | None = Field(None, description="Country of the connection source")
    location_accurate: bool = Field(True, description="Whether the location is considered accurate")
    is_vpn: bool = Field(False, description="Whether the account is connecting through a VPN")
    learn_more_url: str | None = Field(None, description="Help page explaining the data")

    @property
    def is_empty(self) -> bool:
        """Nothing to report: neither a location nor a source."""
        return not self.location and not self.source


__all__ = ["LocationInfo"]
