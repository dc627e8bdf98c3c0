"""
Sync Scheduler
==============

Loop tick tetap yang mengevaluasi jadwal sync tiap company (INTERVAL, DAILY,
WEEKLY) lalu men-dispatch SyncService sebagai asyncio task terpisah.

Registry in-flight bersifat per-process: deployment multi-instance butuh
lease eksternal (mis. lock berbasis database).
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import update

from ..config import settings
from ..database import AsyncSessionLocal
from ..models import Company, SyncType, utcnow
from ..services import create_service_registry
from ..services.company_service import CompanyService

logger = logging.getLogger(__name__)

SYNC_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Naive UTC -> waktu lokal scheduler"""
    return value.replace(tzinfo=timezone.utc).astimezone(tz)


def is_interval_due(company, now: datetime) -> bool:
    if company.last_sync_at is None:
        return True
    if not company.sync_interval_minutes:
        return False
    return now - company.last_sync_at >= timedelta(minutes=company.sync_interval_minutes)


def is_daily_due(company, now: datetime, tz: ZoneInfo) -> bool:
    local_now = to_local(now, tz)
    if (local_now.hour, local_now.minute) != (company.daily_sync_hour, company.daily_sync_minute or 0):
        return False
    if company.last_sync_at is None:
        return True
    return to_local(company.last_sync_at, tz).date() != local_now.date()


def is_weekly_due(company, now: datetime, tz: ZoneInfo) -> bool:
    local_now = to_local(now, tz)
    weekday = (local_now.weekday() + 1) % 7  # 0=Minggu
    if weekday != company.weekly_sync_day:
        return False
    if (local_now.hour, local_now.minute) != (company.weekly_sync_hour, company.weekly_sync_minute or 0):
        return False
    if company.last_sync_at is None:
        return True
    return to_local(company.last_sync_at, tz).isocalendar()[:2] != local_now.isocalendar()[:2]


def is_due(company, now: datetime, tz: ZoneInfo) -> bool:
    if company.sync_type == SyncType.INTERVAL:
        return is_interval_due(company, now)
    if company.sync_type == SyncType.DAILY:
        return is_daily_due(company, now, tz)
    if company.sync_type == SyncType.WEEKLY:
        return is_weekly_due(company, now, tz)
    return False


def sync_window(company, now: datetime):
    """[last_import_date, now]; tanpa watermark pakai kemarin sehari penuh"""
    if company.last_import_date is not None:
        return company.last_import_date.strftime(SYNC_DATE_FORMAT), now.strftime(SYNC_DATE_FORMAT)
    yesterday = (now - timedelta(days=1)).strftime('%Y-%m-%d')
    return f"{yesterday} 00:00:00", f"{yesterday} 23:59:59"


class SyncScheduler:
    """Scheduler sync per company, satu instance per process"""

    def __init__(self, session_factory: Callable = None, pos_fetcher=None,
                 tick_seconds: int = None, tz_name: str = None, config: dict = None):
        self.session_factory = session_factory or AsyncSessionLocal
        self.pos_fetcher = pos_fetcher
        self.tick_seconds = tick_seconds or settings.SCHEDULER_TICK_SECONDS
        self.timezone = ZoneInfo(tz_name or settings.SCHEDULER_TIMEZONE)
        self.config = config or settings.model_dump()

        self._loop_task: Optional[asyncio.Task] = None
        self._tick_running = False
        self._in_flight: Dict[int, asyncio.Task] = {}
        self.last_tick_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self):
        if self.is_running:
            logger.info("Scheduler already running")
            return
        logger.info(f"Starting sync scheduler (tick={self.tick_seconds}s, tz={self.timezone.key})")
        self._loop_task = asyncio.create_task(self._run_loop())

    async def stop(self):
        """Stop loop dan tunggu semua sync yang sedang berjalan"""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} in-flight sync(s)")
        await self.wait_idle()
        logger.info("Scheduler stopped")

    async def _run_loop(self):
        while True:
            try:
                await self.check_and_sync()
            except Exception as e:
                logger.error(f"Scheduler tick failed: {str(e)}")
            await asyncio.sleep(self.tick_seconds)

    async def check_and_sync(self, now: datetime = None) -> list:
        """Satu tick: dispatch sync untuk company yang jatuh tempo. Return company id yang di-dispatch."""
        if self._tick_running:
            logger.warning("Check skipped - previous check still running")
            return []

        self._tick_running = True
        dispatched = []
        try:
            now = now or utcnow()
            self.last_tick_at = now

            async with self.session_factory() as session:
                companies = await CompanyService(session).get_schedulable()
                logger.debug(f"Found {len(companies)} schedulable companies")

                for company in companies:
                    if company.id in self._in_flight:
                        logger.info(f"Company {company.code} still syncing, skipped")
                        continue
                    if not is_due(company, now, self.timezone):
                        continue

                    start_date, end_date = sync_window(company, now)
                    company_id, code = company.id, company.code

                    # Stamp dulu supaya tick berikutnya tidak trigger ulang
                    await session.execute(
                        update(Company).where(Company.id == company_id).values(last_sync_at=now)
                    )
                    await session.commit()

                    logger.info(f"Triggering {company.sync_type.value} sync for {code}: {start_date} - {end_date}")
                    self._dispatch(company_id, code, start_date, end_date)
                    dispatched.append(company_id)
        finally:
            self._tick_running = False
        return dispatched

    def _dispatch(self, company_id: int, code: str, start_date: str, end_date: str):
        task = asyncio.create_task(self._run_company_sync(company_id, code, start_date, end_date))
        self._in_flight[company_id] = task
        task.add_done_callback(lambda _t: self._in_flight.pop(company_id, None))

    async def _run_company_sync(self, company_id: int, code: str, start_date: str, end_date: str):
        async with self.session_factory() as session:
            registry = create_service_registry(
                session, self.config, current_user='scheduler', pos_fetcher=self.pos_fetcher
            )
            try:
                result = await registry.sync_service.run_sync(company_id, start_date, end_date)
                logger.info(f"Scheduled sync for {code} completed (batch {result.batch_id})")
                return result
            except Exception as e:
                # Batch sudah ditandai FAILED oleh SyncService; dicoba lagi pada jadwal berikutnya
                logger.error(f"Scheduled sync for {code} failed: {str(e)}")
                return None

    async def wait_idle(self):
        """Tunggu semua sync in-flight selesai"""
        pending = list(self._in_flight.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def get_status(self) -> dict:
        return {
            'running': self.is_running,
            'tick_in_progress': self._tick_running,
            'tick_seconds': self.tick_seconds,
            'timezone': self.timezone.key,
            'last_tick_at': self.last_tick_at.isoformat() if self.last_tick_at else None,
            'in_flight_company_ids': sorted(self._in_flight.keys()),
        }
