#!/usr/bin/env python3
"""
Unit tests for connection data validation
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from connections.records import TenantConnectionRecord
from connections.validator import REQUIRED_DB_PARAMS, ConnectionValidator


@pytest.fixture
def probe():
    probe = MagicMock()
    probe.check.return_value = True
    return probe


@pytest.fixture
def validator(backend, probe, clock):
    return ConnectionValidator(backend, probe, clock=clock)


class TestDatabaseValidation:

    def test_complete_config_is_probed(self, validator, probe, db_config):
        assert validator.validate_database_connection(db_config) is True
        probe.check.assert_called_once_with(db_config)

    def test_unreachable_database(self, validator, probe, db_config):
        probe.check.return_value = False
        assert validator.validate_database_connection(db_config) is False

    @pytest.mark.parametrize("param", REQUIRED_DB_PARAMS)
    def test_missing_parameter_fails_without_probe(self, validator, probe, db_config, param):
        del db_config[param]

        assert validator.validate_database_connection(db_config) is False
        probe.check.assert_not_called()

    def test_empty_parameter_fails_without_probe(self, validator, probe, db_config):
        db_config["password"] = ""
        assert validator.validate_database_connection(db_config) is False
        probe.check.assert_not_called()

    def test_absent_config(self, validator, probe):
        assert validator.validate_database_connection(None) is False
        assert validator.validate_database_connection({}) is False
        probe.check.assert_not_called()


class TestRecordValidation:

    def test_record_without_db_section_passes(self, validator, probe):
        record = TenantConnectionRecord("acme", {"rabbitmq": {"host": "mq"}})

        assert validator.validate_connection_data(record) is True
        probe.check.assert_not_called()

    def test_failing_db_section_is_reported_once(self, validator, probe, db_config):
        probe.check.return_value = False
        record = TenantConnectionRecord("acme", {"db": db_config, "rabbitmq": {"host": "mq"}})

        failing = validator.failing_connections(record)

        assert failing == [("db", db_config)]
        assert probe.check.call_count == 1

    def test_validate_connection_data(self, validator, probe, db_config):
        record = TenantConnectionRecord("acme", {"db": db_config})
        assert validator.validate_connection_data(record) is True

        probe.check.return_value = False
        assert validator.validate_connection_data(record) is False

    def test_both_database_sections_use_database_check(self, backend, probe, clock, db_config):
        validator = ConnectionValidator(backend, probe, probe_sections=("db", "postgres"), clock=clock)
        probe.check.side_effect = [True, False]
        record = TenantConnectionRecord("acme", {"db": db_config, "postgres": dict(db_config, driver="pgsql")})

        failing = validator.failing_connections(record)

        assert [section for section, _ in failing] == ["postgres"]


class TestSectionChecks:

    def test_non_database_section_uses_its_own_check(self, backend, probe, clock, db_config):
        rabbitmq_check = MagicMock(return_value=True)
        validator = ConnectionValidator(
            backend, probe, probe_sections=("db", "rabbitmq"),
            checks={"rabbitmq": rabbitmq_check}, clock=clock,
        )
        rabbitmq = {"host": "mq.acme.internal", "port": 5672}
        record = TenantConnectionRecord("acme", {"db": db_config, "rabbitmq": rabbitmq})

        assert validator.failing_connections(record) == []
        rabbitmq_check.assert_called_once_with(rabbitmq)
        probe.check.assert_called_once_with(db_config)

    def test_failing_custom_check_is_reported(self, backend, probe, clock, db_config):
        validator = ConnectionValidator(
            backend, probe, probe_sections=("db", "rabbitmq"),
            checks={"rabbitmq": lambda config: False}, clock=clock,
        )
        record = TenantConnectionRecord("acme", {"db": db_config, "rabbitmq": {"host": "mq"}})

        assert validator.failing_connections(record) == [("rabbitmq", {"host": "mq"})]

    def test_section_without_check_rejected_at_construction(self, backend, probe, clock):
        with pytest.raises(ValueError, match="rabbitmq"):
            ConnectionValidator(backend, probe, probe_sections=("db", "rabbitmq"), clock=clock)

    def test_database_check_can_be_replaced(self, backend, probe, clock, db_config):
        validator = ConnectionValidator(backend, probe, checks={"db": lambda config: False}, clock=clock)

        assert not validator.validate_connection_data(TenantConnectionRecord("acme", {"db": db_config}))
        probe.check.assert_not_called()


class TestBlockStorage:

    def test_block_uses_prefix_and_ttl(self, backend, probe, clock):
        validator = ConnectionValidator(backend, probe, block_duration=60, block_prefix="blk_", clock=clock)

        validator.block_url("acme")

        assert backend.get("blk_acme") == {"blocked_at": int(clock()), "duration": 60}
        clock.advance(60)
        assert not validator.is_blocked("acme")

    def test_explicit_duration(self, validator, clock):
        validator.block_url("acme", duration=5)
        clock.advance(5)
        assert not validator.is_blocked("acme")

    def test_failed_block_write_is_reported(self, probe, clock):
        backend = MagicMock()
        backend.put.return_value = False
        validator = ConnectionValidator(backend, probe, clock=clock)

        assert validator.block_url("acme") is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
