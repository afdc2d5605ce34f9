"""
Tests for environment-driven settings.
"""

import pytest

from xmaint.config import MaintenanceSettings


class TestMaintenanceSettings:

    def test_defaults(self, monkeypatch):
        for name in ('XMAINT_POLL_INTERVAL', 'XMAINT_QUEUE_DRAIN_RETRIES', 'XMAINT_REQUESTER'):
            monkeypatch.delenv(name, raising=False)

        settings = MaintenanceSettings.from_env()

        assert settings.poll_interval == 5.0
        assert settings.queue_drain_retries == 60
        assert settings.requester == "Maintenance"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('XMAINT_POLL_INTERVAL', '2.5')
        monkeypatch.setenv('XMAINT_COPY_RETRIES', '10')
        monkeypatch.setenv('XMAINT_REQUESTER', 'Patching')

        settings = MaintenanceSettings.from_env()

        assert settings.poll_interval == 2.5
        assert settings.copy_retries == 10
        assert settings.requester == "Patching"

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv('XMAINT_CLUSTER_RETRIES', 'many')

        with pytest.raises(ValueError, match="XMAINT_CLUSTER_RETRIES"):
            MaintenanceSettings.from_env()

    def test_with_overrides_ignores_none(self):
        settings = MaintenanceSettings()

        assert settings.with_overrides(poll_interval=None) is settings
        assert settings.with_overrides(poll_interval=1.0).poll_interval == 1.0
