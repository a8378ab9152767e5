"""
Configuration Management
Loads settings from YAML files and environment variables
"""
import yaml
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    environment: str = "development"
    debug: bool = True

    # API Settings
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Voice platform
    vapi_api_key: str = ""
    vapi_base_url: str = "https://api.vapi.ai"

    # Telephony provider
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""

    # Calendar provider
    google_calendar_api_url: str = "https://www.googleapis.com/calendar/v3"

    # Local store
    supabase_url: str = ""
    supabase_service_key: str = ""

    # Secrets
    connector_encryption_key: Optional[str] = None
    connector_encryption_keys_old: str = ""
    tools_shared_secret: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def old_encryption_keys(self) -> list[str]:
        return [k.strip() for k in self.connector_encryption_keys_old.split(",") if k.strip()]


@dataclass(frozen=True)
class DispatchPolicy:
    """Tunables for outbound call fan-out"""
    max_concurrency: int = 1
    rate_limit_per_minute: Optional[int] = None
    call_timeout_seconds: float = 30.0


class ConfigManager:
    """Manages loading and merging configuration from multiple sources"""

    def __init__(self, env: str = "development", config_dir: Optional[Path] = None):
        self.env = env
        self.config_dir = config_dir or Path(__file__).parent.parent.parent / "config"
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration files in order of precedence"""
        # Load default config if exists
        default_path = self.config_dir / "default.yaml"
        if default_path.exists():
            self._config = self._load_yaml(default_path)

        # Load environment-specific config
        env_path = self.config_dir / f"{self.env}.yaml"
        if env_path.exists():
            env_config = self._load_yaml(env_path)
            self._deep_merge(self._config, env_config)

        # Substitute environment variables
        self._substitute_env_vars(self._config)

    def _load_yaml(self, path: Path) -> Dict:
        """Load YAML file"""
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}

    def _substitute_env_vars(self, config: Dict) -> None:
        """Replace ${VAR_NAME} with environment variable values"""
        for key, value in config.items():
            if isinstance(value, dict):
                self._substitute_env_vars(value)
            elif isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                config[key] = os.getenv(env_var, value)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override into base"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get("dispatch.max_concurrency") -> 4
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_dispatch_policy(self) -> DispatchPolicy:
        """Dispatch pool settings with safe defaults"""
        rate_limit = self.get("dispatch.rate_limit_per_minute")
        return DispatchPolicy(
            max_concurrency=max(int(self.get("dispatch.max_concurrency", 1)), 1),
            rate_limit_per_minute=int(rate_limit) if rate_limit else None,
            call_timeout_seconds=float(self.get("dispatch.call_timeout_seconds", 30.0))
        )
