# file: agentwalk/execution/order_model.py

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class PositionSide(str, Enum):
    NONE = "NONE"
    LONG = "LONG"
    SHORT = "SHORT"


@dataclass(frozen=True)
class Position:
    """
    Open exposure on one symbol.

    LONG carries a positive qty, SHORT a negative one; `side` is what
    callers should read, `abs_qty` gives the magnitude.
    """

    symbol: str
    qty: float = 0.0
    avg_price: float = 0.0
    side: PositionSide = PositionSide.NONE

    @classmethod
    def flat(cls, symbol: str) -> "Position":
        return cls(symbol=symbol, qty=0.0, avg_price=0.0, side=PositionSide.NONE)

    @property
    def abs_qty(self) -> float:
        return abs(self.qty)

    def unrealized_pnl(self, mark_price: float) -> float:
        if self.side == PositionSide.LONG:
            return (mark_price - self.avg_price) * self.abs_qty
        if self.side == PositionSide.SHORT:
            return (self.avg_price - mark_price) * self.abs_qty
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "qty": float(self.qty),
            "avg_price": float(self.avg_price),
            "side": self.side.value,
        }


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable account snapshot handed to the executor."""

    symbol: str
    current_price: float
    position: Position
    cash: float
    equity: float


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    action: Action
    qty: float
    price: float
    cash: float
    position: Position
    equity: float
    pnl: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        data["position"] = self.position.to_dict()
        return data
