from unittest.mock import MagicMock

from connections.validator import ConnectionValidator


def test_block_expires_after_duration(backend, clock):
    breaker = ConnectionValidator(backend, MagicMock(), block_duration=60, clock=clock)

    assert not breaker.is_blocked("acme")
    assert breaker.block_url("acme")
    assert breaker.is_blocked("acme")

    clock.advance(59)
    assert breaker.is_blocked("acme")

    clock.advance(1)
    assert not breaker.is_blocked("acme")


def test_reblocking_refreshes_window(backend, clock):
    breaker = ConnectionValidator(backend, MagicMock(), block_duration=60, clock=clock)

    breaker.block_url("acme")
    clock.advance(50)
    breaker.block_url("acme")
    clock.advance(50)

    assert breaker.is_blocked("acme")


def test_block_entry_records_time_and_duration(backend, clock):
    breaker = ConnectionValidator(backend, MagicMock(), clock=clock)

    breaker.block_url("acme", duration=120)

    assert backend.get("connection_block_acme") == {"blocked_at": int(clock()), "duration": 120}


def test_unblock(backend, clock):
    breaker = ConnectionValidator(backend, MagicMock(), clock=clock)

    breaker.block_url("acme")
    assert breaker.unblock_url("acme")
    assert not breaker.is_blocked("acme")
    assert breaker.unblock_url("acme")


def test_blocks_are_per_box(backend, clock):
    breaker = ConnectionValidator(backend, MagicMock(), clock=clock)

    breaker.block_url("acme")

    assert not breaker.is_blocked("globex")
