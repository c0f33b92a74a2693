# file: agentwalk/core/engine.py

import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from agentwalk.agent.agent_runner import AgentRunner
from agentwalk.agent.llm_agent import LLMAgent
from agentwalk.config.config_loader import AppConfig
from agentwalk.dashboard.server import DashboardServer
from agentwalk.data.price_manager import PriceManager
from agentwalk.execution.order_model import ExecutionResult
from agentwalk.execution.trade_executor import PaperExecutor
from agentwalk.execution.trade_logger import ExecutionJournal
from agentwalk.notifications.telegram_notifier import TelegramNotifier
from agentwalk.storage.database import DatabaseManager
from agentwalk.tick.timer_tick import TimerTick
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)

ResultSink = Callable[[ExecutionResult], None]


def build_result_handler(symbol: str, sinks: List[ResultSink]) -> ResultSink:
    """Fans one result out to every sink; a failing sink is logged and skipped."""

    def on_result(result: ExecutionResult) -> None:
        for sink in sinks:
            try:
                sink(result)
            except Exception as e:
                logger.warning(f"[ENGINE] Result sink {getattr(sink, '__name__', sink)!r} failed: {e}")

        if result.success:
            logger.info(f"[ENGINE] ✅ Action completed: {result.action.value} {symbol}")
        else:
            logger.info(f"[ENGINE] ❌ Action failed: {result.error}")

    return on_result


def persist_sinks(db: DatabaseManager, journal: ExecutionJournal, symbol: str) -> List[ResultSink]:
    def to_db(result: ExecutionResult) -> None:
        ts = datetime.now(timezone.utc).isoformat()
        db.insert_execution(ts, symbol, result)
        if result.success:
            db.insert_equity(ts, result.equity)

    def to_csv(result: ExecutionResult) -> None:
        journal.log_result(result, symbol)

    return [to_db, to_csv]


def run_paper(cfg: AppConfig, stop_event: Optional[threading.Event] = None) -> AgentRunner:
    """
    Builds and runs one paper session until stop_event is set or Ctrl+C.
    Returns the stopped runner so callers can read its final snapshot.
    """
    cfg.validate()
    symbol = cfg.symbol

    logger.info(f"Starting AgentWalk PAPER session for {symbol} (balance {cfg.initial_balance:.2f})")

    prices = PriceManager(cfg.get_client(), poll_interval_ms=cfg.price_poll_interval_ms)
    prices.subscribe(symbol)

    initial_price = prices.get_price(symbol)
    if initial_price <= 0:
        prices.stop()
        raise RuntimeError(f"Failed to get initial price for {symbol}")
    logger.info(f"Initial price: ${initial_price:.2f}")

    executor = PaperExecutor(slippage=cfg.slippage, taker_fee=cfg.taker_fee)
    agent = LLMAgent(
        api_key=cfg.anthropic_api_key,
        model=cfg.anthropic_model,
        system_prompt=cfg.load_system_prompt(),
        timeout=cfg.decision_timeout,
    )

    db = DatabaseManager(cfg.db_path)
    journal = ExecutionJournal(main_filename=cfg.trades_csv)
    notifier = TelegramNotifier(cfg.telegram_token, cfg.telegram_chat_id)

    sinks = persist_sinks(db, journal, symbol)
    sinks.append(lambda result: notifier.notify_result(result, symbol))

    runner: Optional[AgentRunner] = None
    dashboard: Optional[DashboardServer] = None
    if cfg.dashboard_enabled:
        dashboard = DashboardServer(status_provider=lambda: runner.get_stats(), port=cfg.dashboard_port)
        sinks.append(dashboard.push_result)

    runner = AgentRunner(
        name=cfg.agent_name,
        symbol=symbol,
        agent=agent,
        executor=executor,
        tick=TimerTick(cfg.tick_interval_ms),
        initial_cash=cfg.initial_balance,
        price_oracle=prices.oracle(symbol),
        cooldown_ms=cfg.cooldown_ms,
        on_result=build_result_handler(symbol, sinks),
    )

    if dashboard is not None:
        dashboard.start()

    stop_event = stop_event or threading.Event()
    runner.start()
    notifier.send(f"🚀 AgentWalk PAPER started for {symbol}")

    try:
        while not stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Shutting down AgentWalk...")
    finally:
        runner.stop()
        prices.stop()
        stats = runner.get_stats()
        logger.info(f"Final equity: {stats['equity']:.2f} cash: {stats['cash']:.2f}")
        notifier.send(f"🛑 AgentWalk PAPER stopped. Equity: {stats['equity']:.2f}")
        db.close()

    return runner
