import logging

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    db_url: str | None = None

    # Challenge settings
    challenge_ttl_seconds: int = Field(gt=0, default=300, description="Challenge lifetime")
    channel_code_digits: int = Field(gt=0, default=6, description="Digits in SMS/email codes")

    # TOTP settings
    totp_issuer: str = Field(default="GasRapido", description="TOTP issuer name")
    totp_digits: int = Field(default=6, description="Digits in TOTP codes")
    totp_interval: int = Field(gt=0, default=30, description="TOTP time step in seconds")

    # Backup code settings
    backup_code_length: int = Field(gt=0, default=8, description="Characters per backup code")
    backup_codes_count: int = Field(gt=0, default=10, description="Number of backup codes to generate")

    model_config = SettingsConfigDict(env_prefix='mfa_')


@lru_cache()
def get_settings():
    return Settings()
