"""
Maturity Sweep
Moves active investments past their maturity date to matured

Uses the record store's transition contract (active -> matured), one
transaction per investment. Status only: balances are not credited.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.domain.errors import ConcurrencyConflictError
from app.domain.models import InvestmentStatus
from app.infrastructure.db.repositories.investment_repository import InvestmentRepository
from app.utils.time import today_ist

logger = logging.getLogger(__name__)


@dataclass
class MaturitySweepResult:
    as_of: date
    matured: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


async def run_maturity_sweep(
    session_factory: async_sessionmaker,
    as_of: Optional[date] = None,
    batch_size: Optional[int] = None,
) -> MaturitySweepResult:
    """
    Mature every active investment with maturity_date <= as_of

    Investments that changed status concurrently (e.g. cancelled while the
    sweep ran) are skipped. A storage failure on one investment is logged
    and the sweep moves on; the record stays active for the next run.
    """
    as_of = as_of or today_ist()
    batch_size = batch_size or settings.MATURITY_SWEEP_BATCH_SIZE
    result = MaturitySweepResult(as_of=as_of)

    while True:
        async with session_factory() as session:
            due = await InvestmentRepository(session).find_due_for_maturity(
                as_of, limit=batch_size + len(result.failed)
            )
        due = [i for i in due if i.id not in result.failed]

        for investment in due:
            try:
                async with session_factory() as session:
                    async with session.begin():
                        await InvestmentRepository(session).update_status(
                            investment.id, InvestmentStatus.ACTIVE, InvestmentStatus.MATURED
                        )
                result.matured.append(investment.id)
            except ConcurrencyConflictError as exc:
                logger.warning(
                    "Maturity skipped | id=%s | now %s", investment.id, exc.current_status
                )
                result.skipped.append(investment.id)
            except SQLAlchemyError as exc:
                logger.error(
                    "Maturity failed | id=%s | %s", investment.id, exc.__class__.__name__
                )
                result.failed.append(investment.id)

        if len(due) < batch_size:
            break

    logger.info(
        "Maturity sweep done | as_of=%s | matured=%d | skipped=%d | failed=%d",
        as_of, len(result.matured), len(result.skipped), len(result.failed),
    )
    return result


class MaturityScheduler:
    """
    Runs the maturity sweep once a day
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.scheduler = AsyncIOScheduler(timezone=pytz.timezone(settings.TIMEZONE))

    async def maturity_job(self):
        """Daily sweep; failures are logged and retried on the next run"""
        logger.info("🔄 Starting maturity sweep job...")
        try:
            await run_maturity_sweep(self.session_factory)
        except Exception as e:
            logger.error(f"❌ Maturity sweep failed: {e}", exc_info=True)

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.maturity_job,
            CronTrigger(hour=settings.MATURITY_SWEEP_HOUR, minute=settings.MATURITY_SWEEP_MINUTE),
            id="maturity_sweep",
            name="Daily Maturity Sweep",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            "✅ Maturity sweep scheduled daily at %02d:%02d %s",
            settings.MATURITY_SWEEP_HOUR, settings.MATURITY_SWEEP_MINUTE, settings.TIMEZONE,
        )

    def stop(self):
        """Stop the scheduler"""
        self.scheduler.shutdown()
        logger.info("✅ Maturity scheduler stopped")
