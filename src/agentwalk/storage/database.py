# file: agentwalk/storage/database.py

import sqlite3
import threading
from typing import Any, Dict, List

import pandas as pd

from agentwalk.execution.order_model import ExecutionResult
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class DatabaseManager:
    """SQLite persistence for execution results and the equity curve."""

    def __init__(self, db_path: str = "agentwalk.db"):
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.lock = threading.Lock()
        self._create_tables()

    def _create_tables(self) -> None:
        cur = self.conn.cursor()

        cur.execute("""
        CREATE TABLE IF NOT EXISTS executions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT,
            symbol TEXT,
            action TEXT,
            success INTEGER,
            qty REAL,
            price REAL,
            cash REAL,
            equity REAL,
            position_side TEXT,
            position_qty REAL,
            position_avg_price REAL,
            pnl REAL,
            error TEXT
        )
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS equity_curve (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT,
            equity REAL
        )
        """)

        self.conn.commit()

    def insert_execution(self, timestamp: str, symbol: str, result: ExecutionResult) -> None:
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(
                """INSERT INTO executions
                (timestamp, symbol, action, success, qty, price, cash, equity,
                 position_side, position_qty, position_avg_price, pnl, error)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    timestamp,
                    symbol,
                    result.action.value,
                    int(result.success),
                    result.qty,
                    result.price,
                    result.cash,
                    result.equity,
                    result.position.side.value,
                    result.position.qty,
                    result.position.avg_price,
                    result.pnl,
                    result.error,
                ),
            )
            self.conn.commit()

    def insert_equity(self, timestamp: str, equity: float) -> None:
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(
                "INSERT INTO equity_curve (timestamp, equity) VALUES (?, ?)",
                (timestamp, equity)
            )
            self.conn.commit()

    def fetch_executions(self, limit: int = 100) -> List[Dict[str, Any]]:
        with self.lock:
            cur = self.conn.cursor()
            cur.execute("SELECT * FROM executions ORDER BY id DESC LIMIT ?", (limit,))
            rows = cur.fetchall()
        return [dict(r) for r in reversed(rows)]

    def equity_frame(self) -> pd.DataFrame:
        with self.lock:
            return pd.read_sql_query("SELECT timestamp, equity FROM equity_curve ORDER BY id", self.conn)

    def export_equity_csv(self, path: str = "equity_curve.csv") -> None:
        df = self.equity_frame()
        df.to_csv(path, index=False)
        logger.info(f"Equity curve exported to {path}")

    def close(self) -> None:
        with self.lock:
            self.conn.close()
