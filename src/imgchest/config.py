from __future__ import annotations

import os

from pydantic import BaseModel
from pydantic import Field

API_BASE = "https://api.imgchest.com"
SITE_BASE = "https://imgchest.com"

# The service allows 60 requests per minute, but that still trips the
# ratelimit in practice.
REQUESTS_PER_MINUTE = 55


class ClientConfig(BaseModel):
    """Settings shared by every request a Client makes.

    Attributes:
        api_base: Base URL of the JSON API.
        site_base: Base URL of the website, used for scraping and listings.
        token: API token sent as a bearer token. Required for most API calls.
        timeout_seconds: Per-request timeout handed to the transport.
        requests_per_minute: Request budget for the JSON API.
        impersonate: Browser profile the default transport impersonates.
    """

    class Config:
        frozen = True

    api_base: str = API_BASE
    site_base: str = SITE_BASE
    token: str | None = Field(default=None, repr=False)
    timeout_seconds: float = Field(default=30.0, gt=0)
    requests_per_minute: int = Field(default=REQUESTS_PER_MINUTE, ge=1)
    impersonate: str = "Chrome137"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ClientConfig:
        """Build a config from IMGCHEST_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ.

        Returns:
            A ClientConfig with defaults for every unset variable.
        """
        env: dict[str, str] = dict(os.environ if environ is None else environ)

        values: dict[str, str] = {}
        if env.get("IMGCHEST_TOKEN"):
            values["token"] = env["IMGCHEST_TOKEN"]
        if env.get("IMGCHEST_API_BASE"):
            values["api_base"] = env["IMGCHEST_API_BASE"]
        if env.get("IMGCHEST_SITE_BASE"):
            values["site_base"] = env["IMGCHEST_SITE_BASE"]
        if env.get("IMGCHEST_TIMEOUT"):
            values["timeout_seconds"] = env["IMGCHEST_TIMEOUT"]

        return cls.model_validate(values)

    def with_token(self, token: str | None) -> ClientConfig:
        """Return a copy of this config using a different token."""
        return self.model_copy(update={"token": token})
