"""
Rate limiting and audit settings.
"""
from typing import List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

AUDIT_SINK_CHOICES = {"console", "file", "database"}


class RateLimitSettings(BaseSettings):
    """
    Defines the sliding window, block fallback, default rule seeding and the
    audit destinations.

    Security Note:
        - RATE_LIMIT_SEED_DEFAULT_RULES only installs rules into an empty store;
          an empty store without seeding denies every request.
    """
    RATE_LIMIT_WINDOW_SECONDS: int = Field(ge=1, default=60)
    RATE_LIMIT_DEFAULT_BLOCK_SECONDS: int = Field(ge=1, default=20)
    RATE_LIMIT_TEST_IDENTITY: str = "Test person 1"
    RATE_LIMIT_SEED_DEFAULT_RULES: bool = True
    RATE_LIMIT_AUDIT_DENIED: bool = True

    AUDIT_LOG_DIR: str = "Logs"
    AUDIT_LOG_FILE: str = "ApiLogs.txt"
    AUDIT_SINKS: Union[str, List[str]] = Field(default="console,file,database")

    @field_validator("AUDIT_SINKS", mode="before")
    @classmethod
    def assemble_audit_sinks(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Splits a comma-separated list of sink names and rejects unknown ones.
        """
        if isinstance(v, str):
            v = [i.strip().lower() for i in v.split(",") if i.strip()]
        unknown = set(v) - AUDIT_SINK_CHOICES
        if unknown:
            raise ValueError(f"Unknown audit sinks: {', '.join(sorted(unknown))}")
        return list(v)
