"""
Unit Tests for Configuration
Tests for ConfigManager, Settings and ProviderValidator.
"""
import pytest

from dialdesk.core.config import ConfigManager, DispatchPolicy, Settings
from dialdesk.core.validation import ProviderValidator, validate_providers_on_startup

REQUIRED = [
    "VAPI_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]
OPTIONAL = ["CONNECTOR_ENCRYPTION_KEY", "TOOLS_SHARED_SECRET"]


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_environment_overrides_default(self, tmp_path):
        """Test env YAML is deep-merged over default.yaml."""
        (tmp_path / "default.yaml").write_text(
            "dispatch:\n  max_concurrency: 4\n  rate_limit_per_minute: 60\n"
            "calendar:\n  provider: google\n"
        )
        (tmp_path / "staging.yaml").write_text("dispatch:\n  max_concurrency: 2\n")

        config = ConfigManager(env="staging", config_dir=tmp_path)

        assert config.get("dispatch.max_concurrency") == 2
        assert config.get("dispatch.rate_limit_per_minute") == 60
        assert config.get("calendar.provider") == "google"
        assert config.get("calendar.missing", "fallback") == "fallback"

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        """Test ${VAR} values are read from the environment."""
        monkeypatch.setenv("MEETING_TITLE", "Intro call")
        (tmp_path / "default.yaml").write_text('calendar:\n  meeting_title: "${MEETING_TITLE}"\n')

        config = ConfigManager(env="development", config_dir=tmp_path)

        assert config.get("calendar.meeting_title") == "Intro call"

    def test_dispatch_policy(self, tmp_path):
        """Test dispatch settings become a DispatchPolicy."""
        (tmp_path / "default.yaml").write_text(
            "dispatch:\n  max_concurrency: 3\n  rate_limit_per_minute: 90\n  call_timeout_seconds: 10\n"
        )

        policy = ConfigManager(env="none", config_dir=tmp_path).get_dispatch_policy()

        assert policy == DispatchPolicy(max_concurrency=3, rate_limit_per_minute=90, call_timeout_seconds=10.0)

    def test_dispatch_policy_defaults(self, tmp_path):
        """Test missing config yields sequential, unlimited dispatch."""
        policy = ConfigManager(env="none", config_dir=tmp_path).get_dispatch_policy()

        assert policy.max_concurrency == 1
        assert policy.rate_limit_per_minute is None

    def test_shipped_config_loads(self):
        """Test the repository's config directory parses."""
        config = ConfigManager(env="development")

        assert config.get("scheduling.max_window_minutes") == 60
        assert config.get_dispatch_policy().max_concurrency >= 1


class TestSettings:
    """Tests for Settings."""

    def test_old_encryption_keys_split(self, monkeypatch):
        """Test comma-separated old keys are split and trimmed."""
        monkeypatch.setenv("CONNECTOR_ENCRYPTION_KEYS_OLD", " key1 , ,key2")

        settings = Settings()

        assert settings.old_encryption_keys == ["key1", "key2"]


class TestProviderValidator:
    """Tests for ProviderValidator."""

    def test_missing_required_fails(self, monkeypatch):
        """Test missing API keys are errors."""
        for name in REQUIRED + OPTIONAL:
            monkeypatch.delenv(name, raising=False)

        all_valid, results = ProviderValidator().validate_all()

        assert all_valid is False
        failed = {r.setting for r in results if not r.is_valid}
        assert failed == set(REQUIRED)

    def test_optional_missing_is_warning(self, monkeypatch):
        """Test optional settings only warn outside strict mode."""
        for name in REQUIRED:
            monkeypatch.setenv(name, "x")
        for name in OPTIONAL:
            monkeypatch.delenv(name, raising=False)

        all_valid, _ = ProviderValidator(strict=False).validate_all()
        strict_valid, _ = ProviderValidator(strict=True).validate_all()

        assert all_valid is True
        assert strict_valid is False

    def test_startup_raises_with_summary(self, monkeypatch):
        """Test startup validation raises RuntimeError naming the setting."""
        for name in REQUIRED + OPTIONAL:
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(RuntimeError, match="VAPI_API_KEY"):
            validate_providers_on_startup()
