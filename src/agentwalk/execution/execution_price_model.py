# file: agentwalk/execution/execution_price_model.py

from agentwalk.execution.order_model import Action


class ExecutionPriceModel:
    """
    Fill model for paper execution:
    - slippage always works against the trader (BUY pays more, SELL gets less)
    - taker fee charged on the notional of every fill
    Both values are fractions (0.001 = 0.1%).
    """

    def __init__(self, slippage: float, taker_fee: float):
        self.slippage = slippage
        self.taker_fee = taker_fee

    # ===============================
    # BUY
    # ===============================

    def exec_buy(self, price: float) -> float:
        return price * (1 + self.slippage)

    # ===============================
    # SELL
    # ===============================

    def exec_sell(self, price: float) -> float:
        return price * (1 - self.slippage)

    def fill_price(self, action: Action, price: float) -> float:
        if action == Action.BUY:
            return self.exec_buy(price)
        if action == Action.SELL:
            return self.exec_sell(price)
        return price

    def fee(self, notional: float) -> float:
        return notional * self.taker_fee
