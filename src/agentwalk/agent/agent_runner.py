# file: agentwalk/agent/agent_runner.py

import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from agentwalk.agent.base_agent import DecisionProvider
from agentwalk.agent.types import AgentContext, Decision, parse_decision
from agentwalk.execution.order_model import Action, ExecutionResult, Position
from agentwalk.execution.risk_manager import RiskManager
from agentwalk.execution.trade_executor import Executor
from agentwalk.tick.base_tick import Tick
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)

ResultCallback = Callable[[ExecutionResult], None]


@dataclass(frozen=True)
class AccountSnapshot:
    name: str
    symbol: str
    cash: float
    equity: float
    position: Position
    running: bool
    executing: bool
    cycles: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "cash": self.cash,
            "equity": self.equity,
            "position": self.position.to_dict(),
            "running": self.running,
            "executing": self.executing,
            "cycles": self.cycles,
        }


class AgentRunner:
    """
    Drives one agent against one paper account.

    On every tick: skip if a cycle is in flight, skip if inside the
    cooldown, otherwise snapshot the account, ask the agent, size the
    order, execute it and commit the result. Account state is only
    touched here; readers get snapshot().
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        agent: DecisionProvider,
        executor: Executor,
        tick: Tick,
        initial_cash: float,
        price_oracle: Union[Callable[[], float], Any],
        cooldown_ms: int = 5000,
        on_result: Optional[ResultCallback] = None,
        risk_manager: Optional[RiskManager] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if initial_cash < 0:
            raise ValueError(f"initial_cash must be >= 0, got {initial_cash}")
        if cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {cooldown_ms}")

        self.name = name
        self.symbol = symbol
        self.agent = agent
        self.executor = executor
        self.tick = tick
        self.on_result = on_result
        self.risk = risk_manager or RiskManager()
        self.cooldown = cooldown_ms / 1000.0
        self._clock = clock

        if hasattr(price_oracle, "get_price"):
            self._get_price = price_oracle.get_price
        else:
            self._get_price = price_oracle

        # account state
        self._cash = float(initial_cash)
        self._equity = float(initial_cash)
        self._position = Position.flat(symbol)

        self._running = False
        self._executing = False
        self._last_execution_time: Optional[float] = None
        self._cycles = 0
        self._last_result: Optional[ExecutionResult] = None

        self._guard = threading.Lock()
        self._lifecycle_lock = threading.Lock()

    # ========== LIFECYCLE ==========

    @property
    def running(self) -> bool:
        return self._running

    @property
    def executing(self) -> bool:
        return self._executing

    def start(self) -> None:
        with self._lifecycle_lock:
            if self._running:
                return
            self._running = True
            self.tick.on_tick(self._on_tick)
            self.tick.start()
        logger.info(f"[{self.name}] Started")

    def stop(self) -> None:
        with self._lifecycle_lock:
            if not self._running:
                return
            self._running = False
            self.tick.stop()
            self.tick.off_tick(self._on_tick)
        logger.info(f"[{self.name}] Stopped")

    # ========== SNAPSHOTS ==========

    def snapshot(self) -> AccountSnapshot:
        with self._guard:
            return AccountSnapshot(
                name=self.name,
                symbol=self.symbol,
                cash=self._cash,
                equity=self._equity,
                position=self._position,
                running=self._running,
                executing=self._executing,
                cycles=self._cycles,
            )

    def get_stats(self) -> Dict[str, Any]:
        return self.snapshot().to_dict()

    @property
    def last_result(self) -> Optional[ExecutionResult]:
        return self._last_result

    # ========== TICK ==========

    def _claim(self) -> bool:
        with self._guard:
            if self._executing:
                logger.info(f"[{self.name}] Skipping tick (already executing)")
                return False

            now = self._clock()
            if self._last_execution_time is not None and now - self._last_execution_time < self.cooldown:
                logger.info(f"[{self.name}] Skipping tick (cooldown)")
                return False

            self._executing = True
            self._last_execution_time = now
            return True

    def _on_tick(self) -> None:
        if not self._running:
            return
        if not self._claim():
            return

        try:
            self._run_cycle()
        except Exception as e:
            logger.error(f"[{self.name}] Execution error: {e}", exc_info=True)
        finally:
            with self._guard:
                self._executing = False

    # ========== CYCLE ==========

    def _build_context(self, current_price: float) -> AgentContext:
        with self._guard:
            return AgentContext(
                symbol=self.symbol,
                current_price=current_price,
                position=self._position,
                cash=self._cash,
                equity=self._equity,
                timestamp=time.time(),
            )

    def _run_cycle(self) -> ExecutionResult:
        """One decision/execution round. Exceptions propagate to _on_tick."""
        current_price = float(self._get_price() or 0.0)
        context = self._build_context(current_price)

        pos = context.position
        logger.info(
            f"[{self.name}] Context: price=${current_price:.2f} "
            f"position={pos.side.value} {pos.abs_qty:.4f} @ ${pos.avg_price:.2f} "
            f"cash=${context.cash:.2f} equity=${context.equity:.2f}"
        )

        decision = parse_decision(self.agent.decide(context))
        logger.info(f"[{self.name}] Decision: {decision.action.value} {decision.qty:.2f} - {decision.reason}")

        qty = self.risk.size_order(decision.action, decision.qty, context.equity, current_price)
        action = decision.action
        if action != Action.HOLD and (not math.isfinite(qty) or qty <= 0):
            logger.info(f"[{self.name}] Order size is 0, holding instead of {action.value}")
            action = Action.HOLD

        result = self.executor.execute(action, qty, context)
        self._commit(result)
        self._report(result)
        return result

    def _commit(self, result: ExecutionResult) -> None:
        with self._guard:
            self._cycles += 1
            self._last_result = result
            if result.success:
                self._cash = result.cash
                self._position = result.position
                self._equity = result.equity

        if not result.success:
            logger.warning(f"[{self.name}] Execution failed: {result.error}")
        elif result.action != Action.HOLD:
            pnl_txt = f", pnl=${result.pnl:.2f}" if result.pnl else ""
            logger.info(
                f"[{self.name}] Executed {result.action.value}: qty={result.qty:.4f}, "
                f"price=${result.price:.2f}, equity=${result.equity:.2f}{pnl_txt}"
            )

    def _report(self, result: ExecutionResult) -> None:
        if self.on_result is None:
            return
        try:
            self.on_result(result)
        except Exception as e:
            logger.warning(f"[{self.name}] on_result callback failed: {e}")
