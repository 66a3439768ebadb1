"""
App configuration settings.
"""

import json
from pathlib import Path
from typing import Annotated, List, Union
from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application setting class"""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )

    PROJECT_NAME: str = "SPF Inspector"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # CORS settings
    BACKEND_CORS_ORIGINS: Annotated[List[Union[str, AnyHttpUrl]], NoDecode] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        """parse CORS origins from string or list"""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # DNS service settings
    DNS_RESOLVER_BACKEND: str = "doh"  # "doh" or "system"
    DOH_RESOLVER_URL: str = "https://dns.google/resolve"
    DNS_RESOLVER_TIMEOUT: int = 5  # seconds
    DNS_RESOLVER_LIFETIME: int = 10  # seconds

    @field_validator("DNS_RESOLVER_BACKEND")
    @classmethod
    def check_resolver_backend(cls, v: str) -> str:
        """only the DoH and system resolvers are available"""
        v = v.strip().lower()
        if v not in ("doh", "system"):
            raise ValueError(f"Unknown DNS resolver backend: {v}")
        return v

    # SPF evaluation
    MAX_INCLUDE_DEPTH: int = 10
    LOOKUP_WARNING_THRESHOLD: int = 10  # RFC 7208 lookup budget

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_TO_FILE: bool = True


settings = Settings()
