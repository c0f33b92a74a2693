# file: agentwalk/notifications/telegram_notifier.py

import asyncio
from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

from agentwalk.execution.order_model import Action, ExecutionResult
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class TelegramNotifier:
    """
    Thin wrapper over the Telegram bot API.
    Without token/chat_id, messages are only logged.
    """

    def __init__(self, token: str, chat_id: str):
        self.token = token
        self.chat_id = chat_id
        self.bot: Optional[Bot] = None

        if token and chat_id:
            self.bot = Bot(token=self.token)
        else:
            logger.info("Token or chat_id empty. Notifications will only be logged.")

    def send(self, text: str) -> None:
        if self.bot is None:
            logger.info(f"[TELEGRAM MOCK] {text}")
            return

        try:
            asyncio.run(self.bot.send_message(chat_id=self.chat_id, text=text))
        except (TelegramError, RuntimeError, OSError) as e:
            logger.error(f"Error sending Telegram message: {e}")

    def notify_result(self, result: ExecutionResult, symbol: str) -> None:
        if result.action == Action.HOLD and result.success:
            return
        self.send(format_result(result, symbol))


def format_result(result: ExecutionResult, symbol: str) -> str:
    if not result.success:
        return (
            f"❌ {result.action.value} REJECTED\n"
            f"• Symbol: {symbol}\n"
            f"• Reason: {result.error}"
        )

    emoji = "🟩" if result.action == Action.BUY else "🟥"
    pos = result.position
    lines = [
        f"{emoji} {result.action.value} FILLED",
        f"• Symbol: {symbol}",
        f"• Qty: {result.qty:,.6f}",
        f"• Price: {result.price:,.2f}",
        f"• Position: {pos.side.value} {pos.abs_qty:,.6f} @ {pos.avg_price:,.2f}",
        f"• Cash: {result.cash:,.2f}",
        f"• Equity: {result.equity:,.2f}",
    ]
    if result.pnl:
        lines.append(f"• Realized PnL: {result.pnl:,.2f}")
    return "\n".join(lines)
