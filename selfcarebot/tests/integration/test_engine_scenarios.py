# selfcarebot/tests/integration/test_engine_scenarios.py
import asyncio

import pytest

from selfcarebot.core.course import SLOTS, Slot, get_day_content
from selfcarebot.core.i18n import MESSAGES, fmt
from selfcarebot.core.reminder_engine import DayOutcome, ReminderEngine


def make_engine(gateway, adapter, **kw):
    return ReminderEngine(gateway, adapter, **kw)


async def run_day(engine):
    return [await engine.run_slot(slot) for slot in SLOTS]


@pytest.mark.asyncio
async def test_fresh_user_walks_through_day_one(gateway, adapter):
    user = await gateway.create_user(500)
    engine = make_engine(gateway, adapter)

    report = await engine.run_slot(Slot.MORNING)
    assert report.sent == 1
    assert adapter.texts_to(500) == [get_day_content(1).morning]
    assert await gateway.was_slot_sent_today(user.id, 1, Slot.MORNING)

    # Duplicate tick on the same date: nothing is delivered
    again = await engine.run_slot(Slot.MORNING)
    assert again.sent == 0 and again.skipped == 1
    assert len(adapter.sent) == 1

    for slot in (Slot.EXERCISE, Slot.PHRASE):
        await engine.run_slot(slot)
    evening = await engine.run_slot(Slot.EVENING)

    assert evening.advanced == 1
    assert len(adapter.sent) == 5
    assert adapter.texts_to(500)[-1] == fmt("day_advanced", day=1, next_day=2)
    fresh = await gateway.get_user(500)
    assert fresh.current_day == 2
    assert not fresh.course_completed
    assert await gateway.is_day_completed(user.id, 1)


@pytest.mark.asyncio
async def test_options_only_on_evening_message(gateway, adapter):
    await gateway.create_user(500)
    await run_day(make_engine(gateway, adapter))

    options = [opts for (_, _, opts, _) in adapter.sent]
    assert options[:3] == [[], [], []]
    assert [o.token for o in options[3]] == [o.token for o in get_day_content(1).options]


@pytest.mark.asyncio
async def test_day_seven_completes_course(gateway, adapter):
    user = await gateway.create_user(700)
    await gateway.set_user_day(user.id, 7)
    engine = make_engine(gateway, adapter)

    reports = await run_day(engine)

    assert reports[-1].completed == 1
    assert reports[-1].advanced == 0
    fresh = await gateway.get_user(700)
    assert fresh.course_completed is True
    assert fresh.current_day == 7
    assert adapter.texts_to(700)[-1] == MESSAGES["course_completed"]

    # Completed users are no longer scheduled
    adapter.sent.clear()
    report = await engine.run_slot(Slot.MORNING)
    assert report.sent == 0
    assert adapter.sent == []


@pytest.mark.asyncio
async def test_evening_check_is_monotone(gateway, adapter):
    await gateway.create_user(500)
    engine = make_engine(gateway, adapter)
    await run_day(engine)

    stale = await gateway.get_user(500)
    stale.current_day = 1  # a read taken before the advance
    assert await engine.complete_day_if_ready(stale) is DayOutcome.ALREADY_COMPLETED
    assert (await gateway.get_user(500)).current_day == 2


@pytest.mark.asyncio
async def test_evening_alone_does_not_advance(gateway, adapter):
    await gateway.create_user(500)
    engine = make_engine(gateway, adapter)

    report = await engine.run_slot(Slot.EVENING)

    assert report.sent == 1 and report.advanced == 0
    assert (await gateway.get_user(500)).current_day == 1
    assert await engine.complete_day_if_ready(await gateway.get_user(500)) is DayOutcome.NOT_READY


@pytest.mark.asyncio
async def test_next_date_starts_fresh_slots(gateway, adapter, clock):
    await gateway.create_user(500)
    engine = make_engine(gateway, adapter)
    await run_day(engine)

    clock.advance(days=1)
    adapter.sent.clear()
    await run_day(engine)

    assert adapter.texts_to(500)[0] == get_day_content(2).morning
    assert (await gateway.get_user(500)).current_day == 3


@pytest.mark.asyncio
async def test_paused_user_gets_nothing(gateway, adapter):
    user = await gateway.create_user(500)
    await gateway.set_paused(user.id, True)

    reports = await run_day(make_engine(gateway, adapter))

    assert adapter.sent == []
    assert all(r.sent == 0 for r in reports)
    assert (await gateway.get_user(500)).current_day == 1


@pytest.mark.asyncio
async def test_failed_delivery_is_not_logged(gateway, adapter):
    user = await gateway.create_user(500)
    adapter.fail_for.add(500)
    engine = make_engine(gateway, adapter)

    report = await engine.run_slot(Slot.MORNING)

    assert report.failed == 1 and report.sent == 0
    assert not await gateway.was_slot_sent_today(user.id, 1, Slot.MORNING)

    # Next trigger retries the open slot
    adapter.fail_for.clear()
    assert (await engine.run_slot(Slot.MORNING)).sent == 1


@pytest.mark.asyncio
async def test_one_user_failure_does_not_stop_the_cycle(gateway, adapter):
    await gateway.create_user(1)
    await gateway.create_user(2)
    adapter.raise_for.add(1)

    report = await make_engine(gateway, adapter).run_slot(Slot.MORNING)

    assert report.failed == 1
    assert report.sent == 1
    assert adapter.texts_to(2) == [get_day_content(1).morning]


@pytest.mark.asyncio
async def test_slow_delivery_times_out_per_user(gateway):
    await gateway.create_user(1)

    class SlowAdapter:
        async def send(self, chat_id, text, options=None, *, menu=None):
            await asyncio.sleep(1)
            return True

    report = await make_engine(gateway, SlowAdapter(), user_timeout_s=0.05).run_slot(Slot.MORNING)

    assert report.failed == 1
    assert report.sent == 0


@pytest.mark.asyncio
async def test_active_user_fetch_failure_aborts_cycle(gateway, adapter, monkeypatch):
    await gateway.create_user(1)

    async def boom():
        raise RuntimeError("db gone")

    monkeypatch.setattr(gateway, "list_active_users", boom)
    report = await make_engine(gateway, adapter).run_slot(Slot.MORNING)

    assert report.aborted is True
    assert adapter.sent == []


@pytest.mark.asyncio
async def test_inconsistent_user_row_is_skipped(gateway, adapter, monkeypatch):
    user = await gateway.create_user(1)
    real = gateway.list_active_users

    async def with_bad_day():
        users = await real()
        for u in users:
            u.current_day = 8
        return users

    monkeypatch.setattr(gateway, "list_active_users", with_bad_day)
    report = await make_engine(gateway, adapter).run_slot(Slot.MORNING)

    assert report.skipped == 1
    assert adapter.sent == []
    assert not await gateway.was_slot_sent_today(user.id, 8, Slot.MORNING)


@pytest.mark.asyncio
async def test_lost_advance_notice_keeps_the_advance(gateway, adapter):
    await gateway.create_user(500)
    engine = make_engine(gateway, adapter)
    for slot in (Slot.MORNING, Slot.EXERCISE, Slot.PHRASE):
        await engine.run_slot(slot)

    sends = []
    real_send = adapter.send

    async def notice_fails(chat_id, text, options=None, *, menu=None):
        sends.append(text)
        if len(sends) == 2:
            return False
        return await real_send(chat_id, text, options, menu=menu)

    adapter.send = notice_fails
    report = await engine.run_slot(Slot.EVENING)

    assert report.advanced == 1 and report.failed == 0
    assert sends[1] == fmt("day_advanced", day=1, next_day=2)
    assert (await gateway.get_user(500)).current_day == 2
