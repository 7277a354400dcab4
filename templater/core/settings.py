from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TEMPLATER_", case_sensitive=False)

    strict_undefined: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True
    encoding: str = "utf-8"
    file_mode: int = 0o644

    @field_validator("file_mode", mode="before")
    @classmethod
    def _parse_octal(cls, value: Any) -> Any:
        # Environment values are octal strings such as "0600".
        if isinstance(value, str):
            return int(value, 8)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
