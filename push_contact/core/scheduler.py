from __future__ import annotations

import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from push_contact.core.config import settings

logger = logging.getLogger(__name__)
_scheduler: BackgroundScheduler | None = None


def get_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler(
            timezone="UTC",
            executors={"default": ThreadPoolExecutor(settings.deferred_max_workers)},
            job_defaults={"coalesce": False, "max_instances": 1},
        )
    return _scheduler


def start_scheduler() -> None:
    scheduler = get_scheduler()
    if scheduler.running:
        return
    scheduler.start()
    logger.info("백그라운드 스케줄러 시작 (workers=%s)", settings.deferred_max_workers)


def shutdown_scheduler() -> None:
    if _scheduler and _scheduler.running:
        # 진행 중인 브로드캐스트는 끝날 때까지 기다린다
        _scheduler.shutdown(wait=True)
        logger.info("백그라운드 스케줄러 종료")
