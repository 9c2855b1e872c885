import math

import pytest

from twilight_switch.domain.engine import relay_state_for
from twilight_switch.domain.errors import ConflictError, ValidationError
from twilight_switch.domain.models import Mode


async def _assert_relay_invariant(repo):
    rows, _ = await repo.paginate(1, 1000)
    for r in rows:
        assert r.relay_status == relay_state_for(r.mode, r.lux, r.threshold_low, r.manual_relay_state), r


async def test_first_reading_persists_defaults(service, repo):
    result = await service.receive_sensor_data(120.0)

    assert result.relay_state is False
    assert result.mode is Mode.AUTO
    assert result.threshold_low == 100
    assert result.manual_relay_state is False
    assert result.event.threshold_high == 500
    assert result.event == await repo.latest()


async def test_dark_reading_turns_relay_on(service):
    result = await service.receive_sensor_data(42.0)
    assert result.relay_state is True
    assert result.event.relay_status is True


async def test_missing_lux_is_rejected_without_write(service, repo):
    with pytest.raises(ValidationError):
        await service.receive_sensor_data(None)
    assert await repo.count() == 0


async def test_non_finite_lux_is_rejected(service):
    with pytest.raises(ValidationError):
        await service.receive_sensor_data(math.nan)


async def test_every_reading_appends_a_row(service, repo):
    # No debounce: oscillating around the threshold writes every reading
    for lux in (99, 101, 99, 101):
        await service.receive_sensor_data(lux)
    assert await repo.count() == 4
    await _assert_relay_invariant(repo)


async def test_update_settings_appends_and_carries_forward(service, repo):
    first = await service.receive_sensor_data(150.0)

    event = await service.update_settings(threshold=200)

    assert event.id != first.id
    assert event.threshold_low == 200
    assert event.mode is Mode.AUTO
    assert event.lux == 150.0
    assert event.relay_status is True  # 150 < 200
    assert await repo.count() == 2
    # the earlier row is untouched
    rows, _ = await repo.paginate(1, 10)
    assert rows[-1] == first.event

    nxt = await service.receive_sensor_data(180.0)
    assert nxt.threshold_low == 200
    assert nxt.relay_state is True


async def test_update_settings_mode_case_insensitive(service):
    event = await service.update_settings(mode="MANUAL", manual_relay_state=True)
    assert event.mode is Mode.MANUAL
    assert event.manual_relay_state is True
    assert event.relay_status is True


async def test_update_settings_rejects_unknown_mode(service, repo):
    with pytest.raises(ValidationError):
        await service.update_settings(mode="turbo")
    assert await repo.count() == 0


async def test_update_settings_on_empty_store_uses_defaults(service):
    event = await service.update_settings(threshold_high=800)
    assert event.mode is Mode.AUTO
    assert event.threshold_low == 100
    assert event.threshold_high == 800
    assert event.lux == 0.0


async def test_manual_mode_ignores_subsequent_readings(service):
    await service.update_settings(mode="manual", manual_relay_state=False)
    result = await service.receive_sensor_data(0.0)
    assert result.relay_state is False
    assert result.mode is Mode.MANUAL


async def test_control_relay_rejected_in_auto(service, repo):
    await service.receive_sensor_data(150.0)
    before = await repo.count()

    with pytest.raises(ConflictError):
        await service.control_relay(True)

    assert await repo.count() == before


async def test_control_relay_rejected_on_empty_store(service, repo):
    with pytest.raises(ConflictError):
        await service.control_relay(True)
    assert await repo.count() == 0


async def test_control_relay_in_manual(service, repo):
    await service.receive_sensor_data(150.0)
    await service.update_settings(mode="manual")

    event = await service.control_relay(True)

    assert event.relay_status is True
    assert event.manual_relay_state is True
    assert event.mode is Mode.MANUAL
    assert event.lux == 150.0
    assert (await service.receive_sensor_data(999.0)).relay_state is True
    await _assert_relay_invariant(repo)


async def test_current_settings(service):
    ctrl = await service.current_settings()
    assert ctrl.mode is Mode.AUTO
    assert ctrl.threshold_low == 100

    await service.update_settings(mode="manual", threshold=70)
    ctrl = await service.current_settings()
    assert ctrl.mode is Mode.MANUAL
    assert ctrl.threshold_low == 70


async def test_clear_history_keeps_settings(service, repo):
    for lux in (10, 20, 30):
        await service.receive_sensor_data(lux)
    await service.update_settings(threshold=55)

    assert await service.clear_history() == 3
    assert (await service.current_settings()).threshold_low == 55


async def test_activity_log(service):
    await service.receive_sensor_data(150.0)  # first: relay off
    await service.receive_sensor_data(160.0)  # no change
    await service.receive_sensor_data(50.0)   # relay on
    await service.update_settings(mode="manual", manual_relay_state=False)  # mode change + relay off

    entries = await service.activity(limit=10)

    assert [e.kind for e in entries] == ["relay_off", "mode_change", "relay_on", "relay_off"]
    assert entries[1].message == "Mode changed AUTO -> MANUAL"

    assert len(await service.activity(limit=2)) == 2


async def test_settings_rows_repeat_last_reading_in_stats(service, repo):
    await service.receive_sensor_data(40.0)
    await service.update_settings(threshold=30)

    stats = await repo.aggregate_stats()
    assert stats.total_records == 2
    assert stats.min_lux == stats.max_lux == 40.0


async def test_settings_row_on_empty_store_counts_as_zero_lux(service, repo):
    await service.update_settings(mode="manual")
    await service.receive_sensor_data(80.0)

    stats = await repo.aggregate_stats()
    assert stats.min_lux == 0.0
    assert stats.avg_lux == pytest.approx(40.0)
