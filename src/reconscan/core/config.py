"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scan-wide deadline applied to every enumerate/scan/probe/crawl call
    scan_deadline_minutes: float = Field(default=30.0, gt=0, le=24 * 60)

    # DNS resolution
    dns_resolvers: list[str] = Field(
        default=["8.8.8.8:53", "1.1.1.1:53", "8.8.4.4:53"],
        description="DNS servers as host[:port]. Set DNS_RESOLVERS as a JSON list.",
    )
    dns_timeout: float = Field(default=5.0, gt=0, le=60)
    dns_retries: int = Field(default=2, ge=0, le=10)
    dns_workers: int = Field(default=100, ge=1, le=2000)

    # Passive enumeration
    passive_timeout: float = Field(default=30.0, gt=0, le=300)
    passive_queries_per_minute: int = Field(default=30, ge=1, le=600)
    subdomain_workers: int = Field(default=100, ge=1, le=2000)

    # Port scanning
    port_scan_workers: int = Field(default=300, ge=1, le=5000)
    port_scan_timeout: float = Field(default=3.0, gt=0, le=60)
    port_scans_per_second: int = Field(default=1000, ge=1, le=100000)

    # HTTP probing
    http_workers: int = Field(default=100, ge=1, le=2000)
    http_timeout: float = Field(default=10.0, gt=0, le=120)
    http_retries: int = Field(default=2, ge=0, le=10)
    http_requests_per_second: int = Field(default=500, ge=1, le=10000)
    http_max_redirects: int = Field(default=5, ge=0, le=30)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    # Crawling
    crawl_workers: int = Field(default=20, ge=1, le=500)
    crawl_max_depth: int = Field(default=3, ge=0, le=20)
    crawl_max_urls: int = Field(default=1000, ge=1, le=1000000)
    crawl_requests_per_second: int = Field(default=50, ge=1, le=5000)
    crawl_requests_per_host: int = Field(default=10, ge=1, le=1000)
    crawl_user_agent: str = Field(default="ReconCrawler/1.0")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING"
    )
    log_format: Literal["json", "text"] = Field(default="text")

    @property
    def scan_deadline_seconds(self) -> float:
        """Scan deadline expressed in seconds."""
        return self.scan_deadline_minutes * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
