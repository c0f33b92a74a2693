# file: agentwalk/execution/trade_executor.py

from abc import ABC, abstractmethod

from agentwalk.execution.execution_price_model import ExecutionPriceModel
from agentwalk.execution.order_model import (
    Action,
    ExecutionContext,
    ExecutionResult,
    Position,
    PositionSide,
)
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class InsufficientFundsError(Exception):
    """Raised inside the executor when a fill needs more cash than available."""


class Executor(ABC):
    @abstractmethod
    def execute(self, action: Action, qty: float, context: ExecutionContext) -> ExecutionResult:
        ...


class PaperExecutor(Executor):
    """
    Paper executor:
    - instant fills at current price +/- slippage
    - taker fee on every fill
    - pure: never mutates the context, returns the new account state

    Cash accounting:
    - BUY opening/adding LONG debits notional + fee
    - SELL closing LONG credits notional - fee
    - SELL opening/adding SHORT credits notional - fee
    - BUY closing SHORT credits the realized pnl (net of fee)
    The only failure is insufficient cash on a BUY that opens or adds to a LONG
    (including the remainder of a SHORT -> LONG flip).
    """

    def __init__(self, slippage: float = 0.001, taker_fee: float = 0.0005):
        self.slippage = slippage
        self.taker_fee = taker_fee
        self.price_model = ExecutionPriceModel(slippage=slippage, taker_fee=taker_fee)

    def execute(self, action: Action, qty: float, context: ExecutionContext) -> ExecutionResult:
        action = Action(action)

        if action == Action.HOLD:
            return ExecutionResult(
                success=True,
                action=Action.HOLD,
                qty=0.0,
                price=context.current_price,
                cash=context.cash,
                position=context.position,
                equity=context.equity,
            )

        fill_price = self.price_model.fill_price(action, context.current_price)

        try:
            if action == Action.BUY:
                return self._buy(qty, fill_price, context)
            return self._sell(qty, fill_price, context)
        except InsufficientFundsError as e:
            logger.info(f"[EXEC] {action.value} {qty:.6f} rejected: {e}")
            return ExecutionResult(
                success=False,
                action=action,
                qty=0.0,
                price=context.current_price,
                cash=context.cash,
                position=context.position,
                equity=context.equity,
                error=str(e),
            )

    # ========== BUY ==========

    def _buy(self, qty: float, price: float, context: ExecutionContext) -> ExecutionResult:
        pos = context.position

        # NONE or LONG -> accumulate long
        if pos.side in (PositionSide.NONE, PositionSide.LONG):
            total_cost = self._open_cost(qty, price, context.cash)

            total_qty = pos.abs_qty + qty
            if pos.side == PositionSide.NONE:
                avg_price = price
            else:
                avg_price = (pos.avg_price * pos.abs_qty + price * qty) / total_qty

            new_position = Position(
                symbol=context.symbol,
                qty=total_qty,
                avg_price=avg_price,
                side=PositionSide.LONG,
            )
            return self._result(Action.BUY, qty, price, context.cash - total_cost, new_position, context, pnl=0.0)

        # SHORT -> close or flip
        short_qty = pos.abs_qty

        if qty >= short_qty:
            close_fee = self.price_model.fee(short_qty * price)
            pnl = (pos.avg_price - price) * short_qty - close_fee
            new_cash = context.cash + pnl

            remaining = qty - short_qty
            if remaining > 0:
                # cash check runs against post-close cash
                new_cash -= self._open_cost(remaining, price, new_cash)
                new_position = Position(
                    symbol=context.symbol,
                    qty=remaining,
                    avg_price=price,
                    side=PositionSide.LONG,
                )
            else:
                new_position = Position.flat(context.symbol)

            return self._result(Action.BUY, qty, price, new_cash, new_position, context, pnl=pnl)

        # partial close
        fee = self.price_model.fee(qty * price)
        pnl = (pos.avg_price - price) * qty - fee
        new_position = Position(
            symbol=context.symbol,
            qty=-(short_qty - qty),
            avg_price=pos.avg_price,
            side=PositionSide.SHORT,
        )
        return self._result(Action.BUY, qty, price, context.cash + pnl, new_position, context, pnl=pnl)

    # ========== SELL ==========

    def _sell(self, qty: float, price: float, context: ExecutionContext) -> ExecutionResult:
        pos = context.position

        # NONE or SHORT -> accumulate short
        if pos.side in (PositionSide.NONE, PositionSide.SHORT):
            net_proceeds = self._net_proceeds(qty, price)

            total_qty = pos.abs_qty + qty
            if pos.side == PositionSide.NONE:
                avg_price = price
            else:
                avg_price = (pos.avg_price * pos.abs_qty + price * qty) / total_qty

            new_position = Position(
                symbol=context.symbol,
                qty=-total_qty,
                avg_price=avg_price,
                side=PositionSide.SHORT,
            )
            return self._result(Action.SELL, qty, price, context.cash + net_proceeds, new_position, context, pnl=0.0)

        # LONG -> close or flip
        long_qty = pos.abs_qty

        if qty >= long_qty:
            close_fee = self.price_model.fee(long_qty * price)
            pnl = (price - pos.avg_price) * long_qty - close_fee
            new_cash = context.cash + self._net_proceeds(long_qty, price)

            remaining = qty - long_qty
            if remaining > 0:
                new_cash += self._net_proceeds(remaining, price)
                new_position = Position(
                    symbol=context.symbol,
                    qty=-remaining,
                    avg_price=price,
                    side=PositionSide.SHORT,
                )
            else:
                new_position = Position.flat(context.symbol)

            return self._result(Action.SELL, qty, price, new_cash, new_position, context, pnl=pnl)

        # partial close
        fee = self.price_model.fee(qty * price)
        pnl = (price - pos.avg_price) * qty - fee
        new_position = Position(
            symbol=context.symbol,
            qty=long_qty - qty,
            avg_price=pos.avg_price,
            side=PositionSide.LONG,
        )
        return self._result(
            Action.SELL, qty, price, context.cash + self._net_proceeds(qty, price), new_position, context, pnl=pnl
        )

    # ========== HELPERS ==========

    def _open_cost(self, qty: float, price: float, available_cash: float) -> float:
        cost = qty * price
        total_cost = cost + self.price_model.fee(cost)
        if total_cost > available_cash:
            raise InsufficientFundsError(
                f"Insufficient cash: need {total_cost:.2f}, have {available_cash:.2f}"
            )
        return total_cost

    def _net_proceeds(self, qty: float, price: float) -> float:
        proceeds = qty * price
        return proceeds - self.price_model.fee(proceeds)

    def _result(
        self,
        action: Action,
        qty: float,
        price: float,
        cash: float,
        position: Position,
        context: ExecutionContext,
        pnl: float,
    ) -> ExecutionResult:
        # mark at the pre-fill market price, not the fill price
        equity = cash + position.unrealized_pnl(context.current_price)
        return ExecutionResult(
            success=True,
            action=action,
            qty=qty,
            price=price,
            cash=cash,
            position=position,
            equity=equity,
            pnl=pnl,
        )
