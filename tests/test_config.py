"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from dashauth.core.config import Settings


class TestSettings:

    def test_model_config(self):
        assert Settings.model_config["env_file"] == ".env"
        assert Settings.model_config["case_sensitive"] is True
        assert "Config" not in vars(Settings)

    def test_reads_environment(self):
        assert Settings().JWT_SECRET_KEY == "test-session-secret"

    def test_env_names_are_case_sensitive(self, monkeypatch):
        monkeypatch.setenv("lockout_minutes", "99")

        assert Settings().LOCKOUT_MINUTES == 10

    def test_forwarded_for_untrusted_by_default(self, monkeypatch):
        monkeypatch.delenv("TRUST_FORWARDED_FOR", raising=False)

        assert Settings().TRUST_FORWARDED_FOR is False

    def test_unknown_magic_link_strategy_refused(self):
        with pytest.raises(ValidationError):
            Settings(MAGIC_LINK_STRATEGY="sequential")
