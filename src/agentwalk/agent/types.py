# file: agentwalk/agent/types.py

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from agentwalk.execution.order_model import Action, ExecutionContext
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class Decision:
    """Trading decision: qty is a fraction of equity in [0, 1]."""

    action: Action
    qty: float
    reason: str

    @classmethod
    def hold(cls, reason: str) -> "Decision":
        return cls(action=Action.HOLD, qty=0.0, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {"action": getattr(self.action, "value", self.action), "qty": self.qty, "reason": self.reason}


@dataclass(frozen=True)
class AgentContext(ExecutionContext):
    """Execution context plus the wall-clock time (epoch seconds) it was taken."""

    timestamp: float = 0.0


def _coerce_mapping(payload: Mapping[str, Any]) -> Decision:
    raw_action = payload.get("action")
    if not isinstance(raw_action, str):
        return Decision.hold(f"Invalid decision: missing action ({raw_action!r})")
    try:
        action = Action(raw_action.strip().upper())
    except ValueError:
        return Decision.hold(f"Invalid decision: unknown action {raw_action!r}")

    raw_reason = payload.get("reason")
    reason = str(raw_reason) if raw_reason not in (None, "") else "No reason provided"

    if action == Action.HOLD:
        return Decision.hold(reason)

    raw_qty = payload.get("qty")
    # bool is an int subclass, reject it explicitly
    if isinstance(raw_qty, bool) or not isinstance(raw_qty, (int, float)):
        return Decision.hold(f"Invalid decision: non-numeric qty {raw_qty!r}")
    qty = float(raw_qty)
    if math.isnan(qty) or qty < 0 or qty > 1:
        return Decision.hold(f"Invalid decision: qty {raw_qty!r} outside [0, 1]")

    return Decision(action=action, qty=qty, reason=reason)


def parse_decision(raw: Any) -> Decision:
    """
    Normalizes whatever a decision provider returned into a Decision.

    Accepts a Decision, a mapping, or text holding a JSON object (markdown
    fences and surrounding prose are tolerated). Anything malformed becomes
    HOLD with qty 0; this function never raises.
    """
    try:
        if isinstance(raw, Decision):
            return _coerce_mapping({"action": raw.action, "qty": raw.qty, "reason": raw.reason})

        if isinstance(raw, Mapping):
            return _coerce_mapping(raw)

        if isinstance(raw, (str, bytes)):
            text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
            match = _JSON_OBJECT.search(text)
            if not match:
                return Decision.hold("Failed to parse decision: no JSON object found")
            parsed = json.loads(match.group(0))
            if not isinstance(parsed, dict):
                return Decision.hold("Failed to parse decision: JSON is not an object")
            return _coerce_mapping(parsed)

        return Decision.hold(f"Failed to parse decision: unsupported type {type(raw).__name__}")

    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"[DECISION] Parse error: {e}")
        return Decision.hold("Failed to parse decision")
