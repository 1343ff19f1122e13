"""Lookup backend configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from geovault.shared.constants import NetworkConfig


class APISettings(BaseModel):
    """HTTP lookup backend configuration.

    Security: bearer_token is masked in __repr__ so it never reaches logs.
    """

    url_template: str = Field(
        default=NetworkConfig.DEFAULT_URL_TEMPLATE,
        description="Lookup URL; '{key}' is replaced with the account key",
    )
    bearer_token: str = Field(
        default="",
        repr=False,
        description="Bearer token sent with every lookup",
    )
    user_agent: str = Field(
        default=NetworkConfig.USER_AGENT,
        description="User-Agent header",
    )
    extra_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Additional request headers",
    )

    @field_validator("url_template")
    @classmethod
    def _require_key_placeholder(cls, value: str) -> str:
        if "{key}" not in value:
            msg = "url_template must contain the '{key}' placeholder"
            raise ValueError(msg)
        return value

    def __repr__(self) -> str:
        masked_token = "****" if self.bearer_token else "[empty]"
        return f"APISettings(url_template={self.url_template!r}, bearer_token={masked_token})"


__all__ = ["APISettings"]
