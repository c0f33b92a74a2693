# file: agentwalk/agent/base_agent.py

from abc import ABC, abstractmethod
from typing import Any

from agentwalk.agent.types import AgentContext


class DecisionProvider(ABC):
    """
    Base class for anything that maps an account/market snapshot to a decision.

    decide() may return a Decision, a dict following the decision JSON schema,
    or raw text containing that JSON. The runner validates the output, so a
    provider does not need to be strict about it. Providers may be slow and
    may raise; the runner treats both as normal.
    """

    @abstractmethod
    def decide(self, context: AgentContext) -> Any:
        ...
