# file: agentwalk/execution/risk_manager.py

import math

from agentwalk.execution.order_model import Action
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class RiskManager:
    """
    Turns a decision fraction into an absolute order size.
    Fraction is of current equity, converted at the current price.
    """

    def size_order(self, action: Action, fraction: float, equity: float, price: float) -> float:
        if action == Action.HOLD:
            return 0.0

        if not math.isfinite(price) or price <= 0:
            logger.warning(f"Price unavailable ({price}), sizing order to 0")
            return 0.0

        if not math.isfinite(equity) or equity <= 0:
            logger.warning(f"Equity is {equity:.2f}, sizing order to 0")
            return 0.0

        size = fraction * equity / price
        logger.debug(f"Position size calculated: {size}")
        return size
