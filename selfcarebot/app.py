# selfcarebot/app.py
from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from selfcarebot import config as cfg
from selfcarebot.adapters.telegram_adapter import TelegramAdapter
from selfcarebot.core.clock import Clock
from selfcarebot.core.config_validation import parse_hhmm, validate_config
from selfcarebot.core.conversation import ConversationHandler
from selfcarebot.core.course import SLOTS
from selfcarebot.core.logging_utils import kv, setup_logging
from selfcarebot.core.reminder_engine import ReminderEngine
from selfcarebot.db.gateway import CourseGateway
from selfcarebot.db.session import create_engine, init_schema


def schedule_jobs(engine: ReminderEngine, timezone, slot_times: dict[str, str]) -> AsyncIOScheduler:
    """
    One cron job per slot. The scheduler is configured here but NOT started.
    """
    sched = AsyncIOScheduler(timezone=timezone)
    for slot in SLOTS:
        hh, mm = parse_hhmm(slot_times[slot.value])
        sched.add_job(
            engine.run_slot,
            trigger="cron",
            hour=hh,
            minute=mm,
            kwargs={"slot": slot},
            id=f"slot:{slot.value}",
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=300,
            max_instances=1,
        )
    return sched


async def main() -> None:
    log = setup_logging(cfg).getChild("app")

    # Fatal configuration errors stop the process here
    token = cfg.get_bot_token()
    alert_keywords = cfg.get_alert_keywords()
    active_window_days = cfg.get_active_window_days()
    validate_config(cfg, alert_keywords=alert_keywords, active_window_days=active_window_days)

    db = create_engine(cfg.DATABASE_URL)
    await init_schema(db)

    clock = Clock(cfg.TZ)
    gateway = CourseGateway(db, clock, active_window_days)

    # Break constructor cycle: adapter needs handler, handler and engine need adapter
    adapter = TelegramAdapter(bot_token=token, handler=None)
    engine = ReminderEngine(gateway, adapter, clock=clock, user_timeout_s=cfg.USER_TIMEOUT_S)
    handler = ConversationHandler(
        gateway,
        adapter,
        engine,
        alert_keywords=alert_keywords,
        admin_chat_id=cfg.ADMIN_CHAT_ID,
        clock=clock,
    )
    adapter.attach_handler(handler)

    sched = schedule_jobs(engine, cfg.TZ, cfg.SLOT_TIMES)
    sched.start()
    log.info(
        "startup.ready "
        + kv(tz=cfg.TIMEZONE, slots=cfg.SLOT_TIMES, window_days=active_window_days, keywords=len(alert_keywords))
    )

    try:
        await adapter.run_polling()
    finally:
        sched.shutdown(wait=False)
        await adapter.close()
        await db.dispose()
        log.info("shutdown.done")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.getLogger("selfcarebot.app").info("shutdown.interrupt")


if __name__ == "__main__":
    run()
