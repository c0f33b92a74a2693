# file: agentwalk/dashboard/server.py

import math
import threading
import time
from collections import deque
from threading import Thread
from typing import Any, Callable, Deque, Dict, Optional

from flask import Flask, jsonify

from agentwalk.execution.order_model import ExecutionResult
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class DashboardServer:
    """
    Read-only status server.
      - /api/status       -> runner snapshot (cash, equity, position, flags)
      - /api/last_result  -> last execution result
      - /api/executions   -> recent execution results
      - /api/equity       -> equity curve points
    Only snapshots are stored or served; the runner state is never exposed.
    """

    def __init__(
        self,
        status_provider: Callable[[], Dict[str, Any]],
        max_points: int = 10000,
        max_executions: int = 500,
        port: int = 8000,
    ):
        self.app = Flask(__name__)
        self.port = port
        self.status_provider = status_provider

        self._executions: Deque[Dict[str, Any]] = deque(maxlen=max_executions)
        self._equity: Deque[Dict[str, Any]] = deque(maxlen=max_points)
        self._last_result: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()
        self._thread: Optional[Thread] = None

        # ------------- ROUTES -------------
        @self.app.route("/api/status")
        def api_status():
            return jsonify(self._sanitize_json(self.status_provider()))

        @self.app.route("/api/last_result")
        def api_last_result():
            with self._lock:
                data = self._last_result
            return jsonify(self._sanitize_json(data))

        @self.app.route("/api/executions")
        def api_executions():
            with self._lock:
                data = list(self._executions)
            return jsonify(self._sanitize_json(data))

        @self.app.route("/api/equity")
        def api_equity():
            with self._lock:
                data = list(self._equity)
            return jsonify(self._sanitize_json(data))

    def _sanitize_json(self, data):
        """
        Recursively replace NaN/Infinity with None to ensure valid JSON.
        """
        if isinstance(data, dict):
            return {k: self._sanitize_json(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [self._sanitize_json(v) for v in data]
        elif isinstance(data, float):
            if math.isnan(data) or math.isinf(data):
                return None
            return data
        return data

    # -----------------------------
    # RESULTS
    # -----------------------------
    def push_result(self, result: ExecutionResult, ts: Optional[float] = None) -> None:
        ts = ts if ts is not None else time.time()
        payload = result.to_dict()
        payload["timestamp"] = ts

        with self._lock:
            self._last_result = payload
            self._executions.append(payload)
            if result.success:
                self._equity.append({"timestamp": ts, "equity": float(result.equity)})

    # -----------------------------
    # SERVER
    # -----------------------------
    def start(self) -> None:
        """Starts Flask on a background thread."""
        if self._thread is not None:
            return

        def run():
            logger.info(f"[DASHBOARD] Serving on http://127.0.0.1:{self.port}")
            self.app.run(
                host="127.0.0.1",
                port=self.port,
                debug=False,
                use_reloader=False,
            )

        self._thread = Thread(target=run, daemon=True, name="DashboardServer")
        self._thread.start()
