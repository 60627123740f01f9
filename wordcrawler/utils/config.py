"""
Configuration management for the word frequency crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass, field

from .urls import is_valid_url


DEFAULT_SEED_URLS = [
    "https://www.onet.pl",
    "https://www.wp.pl",
    "https://www.pudelek.pl",
    "https://example.com",
]


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str] = field(default_factory=lambda: list(DEFAULT_SEED_URLS))
    max_workers: int = 5
    request_timeout: int = 30
    max_content_size: int = 10 * 1024 * 1024
    user_agent: str = "WordCrawler/1.0"
    top_words: int = 5


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = "config.yaml"):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """
        Load configuration from the YAML file.

        Sections or keys missing from the file fall back to their defaults;
        with no path at all the built-in defaults are used.
        """
        config_data = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}

        self._config = Config(
            crawler=CrawlerConfig(**(config_data.get('crawler') or {})),
            logging=LoggingConfig(**(config_data.get('logging') or {})),
            monitoring=MonitoringConfig(**(config_data.get('monitoring') or {}))
        )

        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ValueError("Configuration not loaded")

        validate_crawler_config(self._config.crawler)
        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def validate_crawler_config(crawler: CrawlerConfig):
    """Raise ValueError if the crawler section cannot drive a crawl."""
    if not crawler.seed_urls:
        raise ValueError("At least one seed URL must be provided")

    for url in crawler.seed_urls:
        if not is_valid_url(url):
            raise ValueError(f"Seed URL is not a crawlable http(s) URL: {url!r}")

    if crawler.max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    if crawler.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")

    if crawler.top_words < 1:
        raise ValueError("top_words must be at least 1")


def load_config(config_path: Optional[str] = "config.yaml") -> Config:
    """Load configuration from file, or defaults when config_path is None."""
    return ConfigManager(config_path).load_config()
