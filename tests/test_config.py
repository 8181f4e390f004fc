"""
Tests for the settings layer.
"""

import pytest
from pydantic import ValidationError

from collabsense.config import Settings


class TestPolicySettings:
    """Test tunable policy settings."""

    def test_knowledge_sharing_weights_default(self):
        config = Settings()

        assert config.contribute_weight == 5
        assert config.collaborate_weight == 3

    def test_weights_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("CONTRIBUTE_WEIGHT", "8")
        monkeypatch.setenv("COLLABORATE_WEIGHT", "4")

        config = Settings()

        assert config.contribute_weight == 8
        assert config.collaborate_weight == 4

    def test_every_setting_is_documented(self):
        undocumented = [
            name for name, field in Settings.model_fields.items()
            if not field.description
        ]

        assert undocumented == []

    def test_minimums_are_validated(self, monkeypatch):
        monkeypatch.setenv("MIN_SHARED_SKILLS", "0")

        with pytest.raises(ValidationError):
            Settings()
