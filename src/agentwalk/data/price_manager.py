# file: agentwalk/data/price_manager.py

import math
import threading
import time
from typing import Dict, Optional

from binance.client import Client
from binance.exceptions import BinanceAPIException, BinanceRequestException

from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class PriceManager:
    """
    Last-price cache fed by REST polling of the Binance ticker.

    get_price() never blocks on the network: it returns the last value the
    poller stored, or 0.0 if nothing has been fetched yet.
    """

    def __init__(self, client: Client, poll_interval_ms: int = 1000):
        self.client = client
        self.poll_interval_ms = poll_interval_ms

        self._prices: Dict[str, float] = {}
        self._last_update: Dict[str, float] = {}
        self._lock = threading.Lock()

        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._symbols: list = []

    def fetch_price(self, symbol: str) -> Optional[float]:
        try:
            ticker = self.client.get_symbol_ticker(symbol=symbol)
            price = float(ticker["price"])
        except (BinanceAPIException, BinanceRequestException, KeyError, ValueError, OSError) as e:
            logger.warning(f"[PRICE] Failed to fetch {symbol}: {e}")
            return None

        if not math.isfinite(price) or price <= 0:
            logger.warning(f"[PRICE] Ignoring invalid price for {symbol}: {price}")
            return None

        with self._lock:
            self._prices[symbol] = price
            self._last_update[symbol] = time.time()
        return price

    def subscribe(self, symbol: str) -> None:
        """Fetches once synchronously, then keeps the symbol in the polling loop."""
        self.fetch_price(symbol)
        with self._lock:
            if symbol not in self._symbols:
                self._symbols.append(symbol)

        if self._thread is None:
            self.start()

    def get_price(self, symbol: str) -> float:
        with self._lock:
            return self._prices.get(symbol, 0.0)

    def seconds_since_update(self, symbol: str) -> Optional[float]:
        with self._lock:
            ts = self._last_update.get(symbol)
        return time.time() - ts if ts is not None else None

    def oracle(self, symbol: str):
        """Zero-argument price callable for AgentRunner."""
        return lambda: self.get_price(symbol)

    # ========== POLLING ==========

    def start(self) -> None:
        if self._thread is not None:
            return
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run, args=(stop_event,), daemon=True, name="PricePoller"
        )
        self._thread.start()
        logger.info(f"[PRICE] Polling every {self.poll_interval_ms}ms")

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=self.poll_interval_ms / 1000.0 + 5.0)
        self._thread = None
        self._stop_event = None
        logger.info("[PRICE] Polling stopped")

    def _run(self, stop_event: threading.Event) -> None:
        interval = self.poll_interval_ms / 1000.0
        while not stop_event.wait(interval):
            with self._lock:
                symbols = list(self._symbols)
            for symbol in symbols:
                self.fetch_price(symbol)
