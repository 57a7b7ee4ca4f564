"""
Tests for settlement configuration loading.

Verifies:
- Packaged defaults match the schema defaults
- YAML overrides, unknown keys and invalid values
- TRADELEDGER_CONFIG environment override
- Config trace log entry
"""

from textwrap import dedent

import pytest
import yaml

from tradeledger_config import CONFIG_ENV_VAR, SettlementConfig, get_active_config
from tradeledger_config.loader import compute_checksum, load_yaml_file, parse_config
from tradeledger_config.schema import DatabasePolicy, OutboxPolicy, StatusPolicy
from tradeledger_kernel.exceptions import InvalidCurrencyError


@pytest.fixture
def write_config(tmp_path):
    def _write(text: str):
        path = tmp_path / "settings.yaml"
        path.write_text(dedent(text))
        return path

    return _write


class TestDefaults:
    def test_packaged_defaults_match_schema(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert get_active_config() == SettlementConfig()

    def test_schema_defaults(self):
        config = SettlementConfig()
        assert config.enforce_balance_check is True
        assert config.convert_customer_allocations is False
        assert config.unusual_currency_pairs == (("USD", "CNY"),)
        assert config.statuses.customer_excluded == ("cancelled", "draft")
        assert config.statuses.supplier_excluded == ("cancelled",)
        assert config.statuses.closed == ("delivered",)
        assert config.statuses.settled == ("delivered", "completed")
        assert config.outbox.max_attempts == 5
        assert config.database.url == "sqlite://"

    def test_is_unusual_pair(self):
        config = SettlementConfig()
        assert config.is_unusual_pair("USD", "CNY")
        assert not config.is_unusual_pair("CNY", "USD")


class TestYamlLoading:
    def test_overrides(self, write_config):
        path = write_config(
            """
            convert_customer_allocations: true
            unusual_currency_pairs:
              - [usd, cny]
              - [EUR, CNY]
            statuses:
              closed: [Delivered, completed, shipped]
            outbox:
              max_attempts: 8
              dispatch_inline: false
            database:
              url: postgresql://ledger@localhost/ledger
            """
        )

        config = get_active_config(path)

        assert config.convert_customer_allocations is True
        assert config.unusual_currency_pairs == (("USD", "CNY"), ("EUR", "CNY"))
        assert config.statuses.closed == ("delivered", "completed", "shipped")
        assert config.statuses.customer_excluded == ("cancelled", "draft")
        assert config.outbox.max_attempts == 8
        assert config.outbox.dispatch_inline is False
        assert config.database.url == "postgresql://ledger@localhost/ledger"

    def test_empty_file_gives_defaults(self, write_config):
        assert get_active_config(write_config("")) == SettlementConfig()

    def test_env_var(self, write_config, monkeypatch):
        path = write_config("enforce_balance_check: false\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert get_active_config().enforce_balance_check is False

    def test_unknown_root_key(self, write_config):
        with pytest.raises(ValueError, match="Unknown keys in settings"):
            get_active_config(write_config("reference_currency: USD\n"))

    def test_unknown_section_key(self, write_config):
        with pytest.raises(ValueError, match="Unknown keys in outbox"):
            get_active_config(write_config("outbox:\n  retries: 3\n"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, write_config):
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(write_config("statuses: [unclosed\n"))

    def test_top_level_must_be_mapping(self, write_config):
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(write_config("- a\n- b\n"))

    def test_trace_logged(self, write_config, captured_logs):
        path = write_config("enforce_balance_check: true\n")
        get_active_config(path)

        trace = next(r for r in captured_logs() if r["message"] == "TRADELEDGER_CONFIG_TRACE")
        assert trace["config_path"] == str(path)
        assert trace["checksum"] == compute_checksum({"enforce_balance_check": True})


class TestValidation:
    def test_invalid_currency_pair(self):
        with pytest.raises(InvalidCurrencyError):
            parse_config({"unusual_currency_pairs": [["USD", "XXX"]]})

    def test_pair_needs_two_codes(self):
        with pytest.raises(ValueError, match="two codes"):
            parse_config({"unusual_currency_pairs": [["USD"]]})

    def test_closed_and_excluded_overlap(self):
        with pytest.raises(ValueError, match="both closed and excluded"):
            StatusPolicy(closed=("cancelled",))

    def test_settled_and_excluded_overlap(self):
        with pytest.raises(ValueError, match="both closed and excluded"):
            StatusPolicy(settled=("delivered", "cancelled"))

    def test_status_list_required(self):
        with pytest.raises(ValueError, match="must be a list"):
            StatusPolicy(closed="delivered")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"retry_backoff_seconds": -1},
            {"notification_timeout_seconds": 0},
            {"batch_size": 0},
        ],
    )
    def test_outbox_policy_bounds(self, kwargs):
        with pytest.raises(ValueError):
            OutboxPolicy(**kwargs)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"url": ""},
            {"statement_timeout_ms": 0},
            {"write_retry_attempts": 0},
            {"tracking_refresh_attempts": 0},
        ],
    )
    def test_database_policy_bounds(self, kwargs):
        with pytest.raises(ValueError):
            DatabasePolicy(**kwargs)

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
