import unittest

from agentwalk.execution.order_model import (
    Action,
    ExecutionContext,
    ExecutionResult,
    Position,
    PositionSide,
)
from agentwalk.execution.trade_executor import PaperExecutor

SYMBOL = "BTCUSDT"


def _ctx(price, cash=1000.0, position=None, equity=None):
    position = position or Position.flat(SYMBOL)
    if equity is None:
        equity = cash + position.unrealized_pnl(price)
    return ExecutionContext(
        symbol=SYMBOL,
        current_price=price,
        position=position,
        cash=cash,
        equity=equity,
    )


def _next_ctx(result: ExecutionResult, price: float) -> ExecutionContext:
    return _ctx(price, cash=result.cash, position=result.position)


class PaperExecutorHoldTest(unittest.TestCase):
    def test_hold_echoes_context(self):
        ex = PaperExecutor(slippage=0.01, taker_fee=0.001)
        pos = Position(symbol=SYMBOL, qty=2.0, avg_price=90.0, side=PositionSide.LONG)
        ctx = _ctx(100.0, cash=500.0, position=pos, equity=777.0)

        result = ex.execute(Action.HOLD, 5.0, ctx)

        self.assertTrue(result.success)
        self.assertEqual(result.action, Action.HOLD)
        self.assertEqual(result.qty, 0.0)
        self.assertEqual(result.price, 100.0)
        self.assertEqual(result.cash, 500.0)
        self.assertEqual(result.position, pos)
        self.assertEqual(result.equity, 777.0)
        self.assertIsNone(result.pnl)

    def test_accepts_plain_string_action(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        result = ex.execute("HOLD", 0, _ctx(100.0))
        self.assertEqual(result.action, Action.HOLD)


class PaperExecutorBuyTest(unittest.TestCase):
    def test_open_long_applies_slippage_and_fee(self):
        ex = PaperExecutor(slippage=0.01, taker_fee=0.001)

        result = ex.execute(Action.BUY, 2.0, _ctx(100.0, cash=1000.0))

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.price, 101.0)
        self.assertAlmostEqual(result.cash, 1000.0 - 202.0 - 0.202)
        self.assertEqual(result.position.side, PositionSide.LONG)
        self.assertAlmostEqual(result.position.qty, 2.0)
        self.assertAlmostEqual(result.position.avg_price, 101.0)
        self.assertEqual(result.pnl, 0.0)
        # marked at the pre-fill price
        self.assertAlmostEqual(result.equity, result.cash + (100.0 - 101.0) * 2.0)

    def test_accumulating_buys_use_volume_weighted_average(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        fills = [(100.0, 1.0), (110.0, 2.0), (130.0, 1.0)]

        ctx = _ctx(fills[0][0], cash=10_000.0)
        for price, qty in fills:
            result = ex.execute(Action.BUY, qty, _ctx(price, cash=ctx.cash, position=ctx.position))
            self.assertTrue(result.success)
            ctx = _next_ctx(result, price)

        expected = sum(p * q for p, q in fills) / sum(q for _, q in fills)
        self.assertAlmostEqual(result.position.avg_price, expected)
        self.assertAlmostEqual(result.position.qty, 4.0)
        self.assertAlmostEqual(result.cash, 10_000.0 - 450.0)

    def test_insufficient_funds_leaves_state_unchanged(self):
        ex = PaperExecutor(slippage=0.001, taker_fee=0.0005)
        pos = Position(symbol=SYMBOL, qty=1.0, avg_price=95.0, side=PositionSide.LONG)
        ctx = _ctx(100.0, cash=50.0, position=pos)

        result = ex.execute(Action.BUY, 1.0, ctx)

        self.assertFalse(result.success)
        self.assertEqual(result.action, Action.BUY)
        self.assertEqual(result.qty, 0.0)
        self.assertEqual(result.cash, ctx.cash)
        self.assertEqual(result.position, ctx.position)
        self.assertEqual(result.equity, ctx.equity)
        self.assertIn("Insufficient cash", result.error)

    def test_fee_counts_towards_required_cash(self):
        ex = PaperExecutor(slippage=0, taker_fee=0.01)
        result = ex.execute(Action.BUY, 1.0, _ctx(100.0, cash=100.5))
        self.assertFalse(result.success)

    def test_partial_close_of_short(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=-3.0, avg_price=100.0, side=PositionSide.SHORT)

        result = ex.execute(Action.BUY, 1.0, _ctx(90.0, cash=1000.0, position=pos))

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.pnl, 10.0)
        self.assertAlmostEqual(result.cash, 1010.0)
        self.assertEqual(result.position.side, PositionSide.SHORT)
        self.assertAlmostEqual(result.position.abs_qty, 2.0)
        self.assertAlmostEqual(result.position.avg_price, 100.0)
        self.assertAlmostEqual(result.equity, 1010.0 + 20.0)

    def test_exact_close_of_short_goes_flat(self):
        ex = PaperExecutor(slippage=0, taker_fee=0.001)
        pos = Position(symbol=SYMBOL, qty=-2.0, avg_price=100.0, side=PositionSide.SHORT)

        result = ex.execute(Action.BUY, 2.0, _ctx(100.0, cash=1000.0, position=pos))

        self.assertTrue(result.success)
        self.assertEqual(result.position, Position.flat(SYMBOL))
        self.assertAlmostEqual(result.pnl, -0.2)
        self.assertAlmostEqual(result.cash, 999.8)
        self.assertAlmostEqual(result.equity, 999.8)

    def test_flip_short_to_long(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=-1.0, avg_price=100.0, side=PositionSide.SHORT)

        result = ex.execute(Action.BUY, 3.0, _ctx(90.0, cash=1000.0, position=pos))

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.pnl, 10.0)
        self.assertEqual(result.position.side, PositionSide.LONG)
        self.assertAlmostEqual(result.position.qty, 2.0)
        self.assertAlmostEqual(result.position.avg_price, 90.0)
        self.assertAlmostEqual(result.cash, 1000.0 + 10.0 - 180.0)

    def test_flip_cash_check_uses_post_close_cash(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=-1.0, avg_price=150.0, side=PositionSide.SHORT)
        ctx = _ctx(100.0, cash=100.0, position=pos)

        # remainder 1.4 costs 140: more than pre-close cash (100), less than post-close (150)
        result = ex.execute(Action.BUY, 2.4, ctx)

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.cash, 10.0)
        self.assertAlmostEqual(result.position.qty, 1.4)

    def test_failed_flip_reverts_to_pre_call_state(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=-1.0, avg_price=100.0, side=PositionSide.SHORT)
        ctx = _ctx(100.0, cash=100.0, position=pos)

        result = ex.execute(Action.BUY, 3.0, ctx)

        self.assertFalse(result.success)
        self.assertEqual(result.cash, 100.0)
        self.assertEqual(result.position, pos)
        self.assertEqual(result.equity, ctx.equity)


class PaperExecutorSellTest(unittest.TestCase):
    def test_open_short_credits_net_proceeds(self):
        ex = PaperExecutor(slippage=0.01, taker_fee=0.001)

        result = ex.execute(Action.SELL, 2.0, _ctx(100.0, cash=1000.0))

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.price, 99.0)
        self.assertAlmostEqual(result.cash, 1000.0 + 198.0 - 0.198)
        self.assertEqual(result.position.side, PositionSide.SHORT)
        self.assertAlmostEqual(result.position.qty, -2.0)
        self.assertAlmostEqual(result.position.avg_price, 99.0)
        self.assertAlmostEqual(result.equity, result.cash + (99.0 - 100.0) * 2.0)

    def test_adding_to_short_averages_price(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=-1.0, avg_price=100.0, side=PositionSide.SHORT)

        result = ex.execute(Action.SELL, 3.0, _ctx(120.0, cash=1000.0, position=pos))

        self.assertAlmostEqual(result.position.qty, -4.0)
        self.assertAlmostEqual(result.position.avg_price, (100.0 + 360.0) / 4.0)

    def test_sell_has_no_cash_check(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        result = ex.execute(Action.SELL, 100.0, _ctx(100.0, cash=0.0))
        self.assertTrue(result.success)

    def test_partial_close_of_long(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=2.0, avg_price=100.0, side=PositionSide.LONG)

        result = ex.execute(Action.SELL, 0.5, _ctx(120.0, cash=800.0, position=pos))

        self.assertAlmostEqual(result.pnl, 10.0)
        self.assertAlmostEqual(result.cash, 860.0)
        self.assertEqual(result.position.side, PositionSide.LONG)
        self.assertAlmostEqual(result.position.qty, 1.5)
        self.assertAlmostEqual(result.position.avg_price, 100.0)

    def test_exact_close_of_long_goes_flat(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=2.0, avg_price=100.0, side=PositionSide.LONG)

        result = ex.execute(Action.SELL, 2.0, _ctx(100.0, cash=800.0, position=pos))

        self.assertEqual(result.position.side, PositionSide.NONE)
        self.assertEqual(result.position.qty, 0.0)
        self.assertEqual(result.position.avg_price, 0.0)
        self.assertAlmostEqual(result.cash, 1000.0)

    def test_flip_long_to_short(self):
        ex = PaperExecutor(slippage=0, taker_fee=0)
        pos = Position(symbol=SYMBOL, qty=1.0, avg_price=100.0, side=PositionSide.LONG)

        result = ex.execute(Action.SELL, 3.0, _ctx(110.0, cash=1000.0, position=pos))

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.pnl, 10.0)
        self.assertEqual(result.position.side, PositionSide.SHORT)
        self.assertAlmostEqual(result.position.abs_qty, 2.0)
        self.assertAlmostEqual(result.position.avg_price, 110.0)
        # close leg returns 110, short leg credits 220
        self.assertAlmostEqual(result.cash, 1000.0 + 110.0 + 220.0)


class EquityIdentityTest(unittest.TestCase):
    def test_equity_matches_cash_plus_unrealized_along_a_path(self):
        ex = PaperExecutor(slippage=0.0005, taker_fee=0.0004)
        steps = [
            (Action.BUY, 1.5, 100.0),
            (Action.BUY, 0.5, 104.0),
            (Action.SELL, 1.0, 108.0),
            (Action.SELL, 3.0, 102.0),
            (Action.BUY, 0.5, 99.0),
            (Action.HOLD, 0.0, 97.0),
            (Action.BUY, 4.0, 95.0),
        ]

        ctx = _ctx(100.0, cash=1000.0)
        for action, qty, price in steps:
            ctx = _ctx(price, cash=ctx.cash, position=ctx.position)
            result = ex.execute(action, qty, ctx)
            self.assertTrue(result.success, result.error)
            expected = result.cash + result.position.unrealized_pnl(price)
            self.assertAlmostEqual(result.equity, expected, places=9)
            ctx = _ctx(price, cash=result.cash, position=result.position)


if __name__ == "__main__":
    unittest.main()
