"""
Settings Configuration
Pydantic-backed configuration loaded from environment / .env
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class ResolverSettings(BaseSettings):
    """Format resolution defaults"""
    model_config = SettingsConfigDict(env_prefix="RESOLVER_")

    lang: str = Field(default="en", description="Page language (hl)")
    player_clients: List[str] = Field(
        default_factory=lambda: ["WEB_EMBEDDED", "IOS", "ANDROID", "TV"],
        description="Enabled personas, in merge order",
    )
    max_retries: int = Field(default=3, description="Retries for 5xx responses")
    backoff_inc_ms: int = Field(default=500, description="Backoff increment (ms)")
    backoff_max_ms: int = Field(default=5000, description="Backoff cap (ms)")


class NetworkSettings(BaseSettings):
    """HTTP agent configuration"""
    model_config = SettingsConfigDict(env_prefix="NETWORK_")

    request_timeout: float = Field(default=30.0, description="Request timeout (s)")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="Default User-Agent")
    ipv6_block: Optional[str] = Field(default=None, description="IPv6 CIDR for source address rotation")
    local_address: Optional[str] = Field(default=None, description="Fixed source address")
    proxy: Optional[str] = Field(default=None, description="Proxy URL")
    cookies: Optional[str] = Field(default=None, description="Raw Cookie header")


class StorageSettings(BaseSettings):
    """Cache and diagnostics configuration"""
    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    cache_ttl: Optional[int] = Field(default=None, description="Info cache TTL (s), None = never expire")
    cache_max_size: int = Field(default=1000, description="Max cached entries")
    page_cache_ttl: int = Field(default=60, description="Watch page body TTL (s)")
    debug_dir: str = Field(default="./data/debug", description="Diagnostic snapshot directory")


class Settings(BaseSettings):
    """Root settings aggregating the sections"""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings after applying the given .env file"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            resolver=ResolverSettings(),
            network=NetworkSettings(),
            storage=StorageSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton"""
    return Settings.load_from_env_file()


def get_network_settings() -> NetworkSettings:
    return get_settings().network
