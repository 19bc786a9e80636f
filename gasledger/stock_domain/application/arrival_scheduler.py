# gasledger/stock_domain/application/arrival_scheduler.py
"""Background task that credits scheduled arrivals once they fall due."""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

import schedule

from gasledger.common.config.settings import settings
from gasledger.common.dtos.stock_dtos import SchedulerStatusDTO
from gasledger.common.exceptions.custom_exceptions import SchedulerExecutionError
from gasledger.common.utils.date_utils import utc_now
from gasledger.stock_domain.domain.repositories.shop_stock_repository import IShopStockRepository
from gasledger.stock_domain.domain.services.ledger_writer import LedgerWriter

logger = logging.getLogger(__name__)


class ArrivalScheduler:
    """
    Periodically scans all ledgers for arrivals that are scheduled, have
    auto-update enabled and whose arrival date has passed, and executes them.

    Uses its own `schedule.Scheduler` so jobs never leak into the module-level
    default scheduler, and runs it on a daemon thread. Each arrival is executed
    through the LedgerWriter, so it races safely with order traffic and runs at
    most once even if two scans overlap.
    """

    def __init__(
        self,
        stock_repo: IShopStockRepository,
        ledger_writer: LedgerWriter,
        interval_seconds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
        poll_seconds: float = 1.0,
    ) -> None:
        self.stock_repo = stock_repo
        self.ledger_writer = ledger_writer
        self.interval_seconds = interval_seconds or settings.ARRIVAL_CHECK_INTERVAL_SECONDS
        self.clock = clock
        self.poll_seconds = poll_seconds

        self._scheduler = schedule.Scheduler()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Runs one scan immediately, then one every interval until stop() is called."""
        with self._lock:
            if self.is_running:
                logger.info("Arrival scheduler is already running")
                return

            logger.info(f"Starting arrival scheduler (every {self.interval_seconds} seconds)...")
            self.check_and_execute_arrivals()

            self._stop_event.clear()
            self._scheduler.clear()
            self._scheduler.every(self.interval_seconds).seconds.do(self.check_and_execute_arrivals)
            self._thread = threading.Thread(target=self._run_loop, name="arrival-scheduler", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            self._stop_event.set()
            if self._thread is not None:
                self._thread.join(timeout=self.poll_seconds * 5)
                self._thread = None
            self._scheduler.clear()
            logger.info("Arrival scheduler stopped")

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self.poll_seconds):
            self._scheduler.run_pending()

    def check_and_execute_arrivals(self) -> int:
        """Executes every due arrival across all shops. Returns how many were executed."""
        logger.info("Checking for scheduled arrivals...")
        now = self.clock()
        try:
            shop_ids = self.stock_repo.find_shop_ids_with_due_arrivals(now)
        except Exception as e:
            logger.error(f"Error in arrival scheduler scan: {e}")
            return 0

        total_executed = 0
        for shop_id in shop_ids:
            try:
                ledger = self.stock_repo.get_by_shop_id(shop_id)
            except Exception as e:
                logger.error(f"Could not load stock ledger for shop {shop_id}: {e}")
                continue
            if ledger is None:
                continue

            for line in ledger.due_arrivals(now):
                if self._execute_line(shop_id, line.brand_name, line.gas_type, now):
                    total_executed += 1

        if total_executed > 0:
            logger.info(f"Successfully executed {total_executed} scheduled arrivals")
        else:
            logger.info("No arrivals due for execution")
        return total_executed

    def _execute_line(self, shop_id: str, brand_name: str, gas_type: str, now: datetime) -> bool:
        try:
            executed, ledger = self.ledger_writer.apply(
                shop_id, lambda l: l.execute_arrival(brand_name, gas_type, now)
            )
        except Exception as e:
            error = SchedulerExecutionError(shop_id, brand_name, gas_type, original_exception=e)
            logger.error(str(error))
            return False

        if executed:
            line = ledger.get_line(brand_name, gas_type)
            logger.info(
                f"Executed arrival for shop {shop_id}: {brand_name} {gas_type} "
                f"- {line.next_arrival.expected_quantity} units"
            )
        return executed

    def execute_arrivals_now(self) -> SchedulerStatusDTO:
        """Manual trigger: runs a scan right away and reports the scheduler status."""
        logger.info("Manually triggering arrival executions...")
        self.check_and_execute_arrivals()
        return self.get_status()

    def get_status(self) -> SchedulerStatusDTO:
        running = self.is_running
        if not running:
            next_check_in = "Stopped"
        elif self.interval_seconds == 3600:
            next_check_in = "Running every hour"
        else:
            next_check_in = f"Running every {self.interval_seconds} seconds"
        return SchedulerStatusDTO(is_running=running, next_check_in=next_check_in)
