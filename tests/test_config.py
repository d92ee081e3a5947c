import pytest

from meshstats.config import Config, ErrorPolicy
from meshstats.errors import ConfigurationError, MissingConfiguration

_ENV = {
    "AIRTABLE_API_KEY": "key-123",
    "AIRTABLE_BASE_ID": "app123",
    "AIRTABLE_TABLE_NAME": "Members",
    "GRAYLOG_URL": "https://graylog.example.org",
    "GRAYLOG_USER": "reader",
    "GRAYLOG_PASS": "hunter2",
    "MONGO_URL": "mongodb://db.example.org:27017",
    "MONGO_DATABASE": "mesh",
    "MONGO_COLLECTION": "bandwidth_usage_periods",
}


@pytest.fixture()
def full_env(monkeypatch: "pytest.MonkeyPatch") -> "None":
    for name, value in _ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("PUSHGATEWAY_URL", raising=False)


class TestConfigFromEnv:
    def test_reads_env_vars(self, full_env: "None") -> "None":
        config = Config.from_env()
        assert config.airtable_api_key == "key-123"
        assert config.airtable_table_name == "Members"
        assert config.graylog_user == "reader"
        assert config.mongo_collection == "bandwidth_usage_periods"
        assert config.pushgateway_url == ""

    def test_graylog_url_gets_trailing_slash(self, full_env: "None") -> "None":
        config = Config.from_env()
        assert config.graylog_url == "https://graylog.example.org/"

    def test_defaults_for_run_options(self, full_env: "None") -> "None":
        config = Config.from_env()
        assert config.error_policy is ErrorPolicy.ABORT
        assert config.concurrency == 1
        assert config.dry_run is False

    def test_pushgateway(self, full_env: "None", monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.setenv("PUSHGATEWAY_URL", "localhost:9091")
        config = Config.from_env()
        assert config.metrics_push_enabled is True


class TestValidate:
    def test_complete_config_passes(self, full_env: "None") -> "None":
        Config.from_env().validate()

    def test_names_every_missing_variable(
        self, full_env: "None", monkeypatch: "pytest.MonkeyPatch"
    ) -> "None":
        monkeypatch.delenv("GRAYLOG_PASS")
        monkeypatch.setenv("MONGO_URL", "  ")

        with pytest.raises(MissingConfiguration) as exc_info:
            Config.from_env().validate()

        assert exc_info.value.names == ["GRAYLOG_PASS", "MONGO_URL"]
        assert "GRAYLOG_PASS" in str(exc_info.value)

    def test_is_a_configuration_error(self) -> "None":
        with pytest.raises(ConfigurationError):
            Config().validate()


class TestMasked:
    def test_hides_credentials(self, full_env: "None") -> "None":
        masked = Config.from_env().masked()
        assert masked["airtable_api_key"] == "***"
        assert masked["graylog_pass"] == "***"
        assert masked["mongo_url"] == "***"
        assert masked["graylog_user"] == "reader"
        assert masked["error_policy"] == "abort"
