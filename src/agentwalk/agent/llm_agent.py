# file: agentwalk/agent/llm_agent.py

from typing import Optional

import anthropic

from agentwalk.agent.base_agent import DecisionProvider
from agentwalk.agent.types import AgentContext, Decision, parse_decision
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"

DEFAULT_SYSTEM_PROMPT = """You are a cryptocurrency futures trading agent.

Your task is to analyze the current market context and make a trading decision.

You will receive:
- Current price
- Your current position (qty, average price, side: LONG/SHORT/NONE)
- Available cash
- Total equity

You must respond with a JSON object with this exact structure:
{
  "action": "BUY" | "SELL" | "HOLD",
  "qty": <number between 0 and 1, representing fraction of equity to use>,
  "reason": "<brief explanation of your decision>"
}

Rules:
- qty represents the fraction of your total equity to allocate (0.0 to 1.0)
- Consider risk management and position sizing
- Provide clear reasoning for your decisions
- If uncertain, prefer HOLD over risky trades"""


class LLMAgent(DecisionProvider):
    """
    Decision provider backed by the Anthropic Messages API.

    timeout=None leaves the SDK default in place, so a hung request can
    stall the runner's cycle. Ticks arriving meanwhile are dropped by the
    runner, not queued.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: Optional[float] = None,
        client=None,
    ):
        if client is None and not api_key:
            raise ValueError("ANTHROPIC_API_KEY is required for LLMAgent")

        self.model = model
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self.max_tokens = max_tokens
        self.timeout = timeout

        if client is not None:
            self.client = client
        elif timeout is not None:
            self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        else:
            self.client = anthropic.Anthropic(api_key=api_key)

    def decide(self, context: AgentContext) -> Decision:
        prompt = self.build_prompt(context)

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.system_prompt,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error(f"[LLM] API error: {e}")
            return Decision.hold(f"LLM error: {e.__class__.__name__}")

        text = "".join(
            getattr(block, "text", "")
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text:
            logger.warning("[LLM] Response had no text content")
            return Decision.hold("LLM returned no text")

        decision = parse_decision(text)
        logger.debug(f"[LLM] Raw response: {text}")
        return decision

    @staticmethod
    def build_prompt(context: AgentContext) -> str:
        pos = context.position
        return (
            f"Symbol: {context.symbol}\n"
            f"Current Price: ${context.current_price:.2f}\n"
            f"\n"
            f"Position:\n"
            f"- Side: {pos.side.value}\n"
            f"- Quantity: {pos.qty}\n"
            f"- Average Price: ${pos.avg_price:.2f}\n"
            f"\n"
            f"Account:\n"
            f"- Cash: ${context.cash:.2f}\n"
            f"- Total Equity: ${context.equity:.2f}\n"
            f"\n"
            f"What is your trading decision?"
        )
