"""
Configuration loader for the e-Gov Law MCP server.

Reads API, cache and known-law settings from a YAML file and falls back to
built-in values when the file is missing or broken.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from .cache import DEFAULT_CACHE_DIR, CacheConfig

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://laws.e-gov.go.jp/api/1"


class ConfigLoader:
    """
    Configuration loader with environment overrides.

    Lookup order for the file: EGOV_LAW_CONFIG, then ``config_path``, then
    ``config/egov_law.yaml`` at the repository root.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize ConfigLoader with optional custom config path.

        Args:
            config_path: Path to YAML config file
        """
        default_config = Path(__file__).parent.parent.parent / "config" / "egov_law.yaml"
        config_env = os.environ.get("EGOV_LAW_CONFIG")
        if config_env:
            self.config_path = Path(config_env)
        elif config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = default_config
        self._config: Optional[dict[str, Any]] = None

        self._fallback_api = {
            "base_url": DEFAULT_API_URL,
            "timeout": 30.0,
            "max_retries": 3,
            "retry_delay": 1.0,
        }

        # 主な法令ID
        self._fallback_known_laws = {
            "民法": "129AC0000000089",
            "会社法": "417AC0000000086",
            "個人情報保護法": "415AC0000000057",
            "個人情報の保護に関する法律": "415AC0000000057",
            "下請法": "331AC0000000120",
            "消費者契約法": "412AC0000000061",
            "印紙税法": "342AC0000000023",
        }

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from the YAML file."""
        if self._config is not None:
            return self._config
        try:
            if self.config_path.exists():
                with open(self.config_path, encoding='utf-8') as f:
                    config = yaml.safe_load(f)
                logger.info(f"Loaded configuration from {self.config_path}")
                self._config = config if isinstance(config, dict) else {}
            else:
                logger.warning(f"Config file not found at {self.config_path}, using fallback values")
                self._config = {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            logger.info("Using fallback values")
            self._config = {}
        return self._config

    @property
    def api(self) -> dict[str, Any]:
        """API settings merged over the fallbacks, with EGOV_API_URL applied."""
        settings = dict(self._fallback_api)
        settings.update(self._load_config().get("api") or {})
        env_url = os.environ.get("EGOV_API_URL")
        if env_url:
            settings["base_url"] = env_url
        return settings

    @property
    def cache_dir(self) -> Path:
        env_dir = os.environ.get("EGOV_LAW_CACHE_DIR")
        if env_dir:
            return Path(env_dir)
        configured = (self._load_config().get("cache") or {}).get("directory")
        return Path(configured).expanduser() if configured else DEFAULT_CACHE_DIR

    @property
    def cache_config(self) -> CacheConfig:
        ttl = (self._load_config().get("cache") or {}).get("ttl") or {}
        defaults = CacheConfig()
        return CacheConfig(
            law_list_ttl=int(ttl.get("law_list", defaults.law_list_ttl)),
            law_text_ttl=int(ttl.get("law_text", defaults.law_text_ttl)),
            update_list_ttl=int(ttl.get("update_list", defaults.update_list_ttl)),
        )

    @property
    def known_laws(self) -> dict[str, str]:
        """Law name -> law ID mapping."""
        return self._load_config().get("known_laws") or self._fallback_known_laws

    def reload_config(self) -> None:
        """Reload configuration from file."""
        self._config = None
        logger.info("Configuration reloaded")
