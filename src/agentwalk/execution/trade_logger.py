# file: agentwalk/execution/trade_logger.py

import csv
import os
from datetime import datetime, timezone
from typing import List, Optional

from agentwalk.execution.order_model import ExecutionResult
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)

HEADER: List[str] = [
    "id",
    "timestamp",
    "symbol",
    "action",
    "success",
    "qty",
    "price",
    "cash",
    "equity",
    "position_side",
    "position_qty",
    "position_avg_price",
    "pnl",
    "error",
]


class ExecutionJournal:
    """
    CSV journal of every execution result:
    - trades.csv (full history)
    - logs/trades_YYYY-MM-DD.csv (one file per day)
    Failures are logged and never reach the runner.
    """

    def __init__(self, main_filename: str = "trades.csv", log_dir: str = "logs") -> None:
        self.main_filename = main_filename
        self.log_dir = log_dir
        os.makedirs(self.log_dir, exist_ok=True)

        self._ensure_header(self.main_filename)
        self._counter = self._load_existing_count()

    # -----------------------------------------------------
    def _ensure_header(self, path: str) -> None:
        if os.path.exists(path):
            return
        try:
            with open(path, "w", newline="") as f:
                csv.writer(f).writerow(HEADER)
        except OSError as e:
            logger.warning(f"[CSV] Could not create {path}: {e}")

    # -----------------------------------------------------
    def _load_existing_count(self) -> int:
        try:
            if not os.path.exists(self.main_filename):
                return 0
            with open(self.main_filename, "r") as f:
                total = sum(1 for _ in f) - 1  # header
                return max(total, 0)
        except OSError:
            return 0

    # -----------------------------------------------------
    def _daily_path(self, date_str: str) -> str:
        path = os.path.join(self.log_dir, f"trades_{date_str}.csv")
        self._ensure_header(path)
        return path

    @property
    def count(self) -> int:
        return self._counter

    # -----------------------------------------------------
    def log_result(self, result: ExecutionResult, symbol: str, when: Optional[datetime] = None) -> None:
        when = when or datetime.now(timezone.utc)
        self._counter += 1

        row = [
            self._counter,
            when.isoformat(),
            symbol,
            result.action.value,
            result.success,
            result.qty,
            result.price,
            result.cash,
            result.equity,
            result.position.side.value,
            result.position.qty,
            result.position.avg_price,
            result.pnl if result.pnl is not None else "",
            result.error or "",
        ]

        for path in (self.main_filename, self._daily_path(when.strftime("%Y-%m-%d"))):
            try:
                with open(path, "a", newline="") as f:
                    csv.writer(f).writerow(row)
            except OSError as e:
                logger.warning(f"[CSV] Failed to write execution to {path}: {e}")
