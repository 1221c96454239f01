"""RSI/MACD confirmation state machine.

An extreme RSI arms a side by recording the current MACD as its baseline.
From then on every eligible event compares MACD to the baseline and moves
the baseline to the latest MACD, so a confirmation means "MACD moved in the
favourable direction since the previous event". Once a side collects the
required confirmations it emits an intent and resets.

- Buy side: armed when RSI < rsi_buy, confirmed by MACD rising.
- Sell side: armed when RSI > rsi_sell, confirmed by MACD falling.

Only events whose RSI reading is LIVE are eligible; historical replay only
warms up the indicators. Not-ready events (either reading None) change
nothing. Buy is evaluated before sell within one event, and both sides may
be armed at the same time.
"""

import operator
from collections.abc import AsyncIterator, Callable
from decimal import Decimal

from trader.indicators.pairing import lockstep
from trader.logging import get_logger
from trader.models import (
    BuyIntent,
    ConfirmationState,
    Origin,
    Reading,
    SellIntent,
    TradeIntent,
)

logger = get_logger(__name__)


class SignalStateMachine:
    """Buy-side and sell-side confirmation state for one trading session.

    Args:
        rsi_buy: Buy side arms when RSI is strictly below this value.
        rsi_sell: Sell side arms when RSI is strictly above this value.
        confirmations_required: Confirmations needed before an intent fires.
    """

    def __init__(
        self,
        rsi_buy: Decimal,
        rsi_sell: Decimal,
        confirmations_required: int = 2,
    ) -> None:
        if confirmations_required < 1:
            raise ValueError(
                f"confirmations_required must be positive, got {confirmations_required}"
            )
        self._rsi_buy = rsi_buy
        self._rsi_sell = rsi_sell
        self._required = confirmations_required
        self.buy = ConfirmationState()
        self.sell = ConfirmationState()

    def observe(self, rsi: Reading | None, macd: Reading | None) -> list[TradeIntent]:
        """Advance both sides with one paired event and return fired intents."""
        if rsi is None or macd is None or rsi.origin is not Origin.LIVE:
            return []

        r, m = rsi.value, macd.value
        logger.info("indicator_update", time=rsi.timestamp.isoformat(), rsi=str(r), macd=str(m))
        intents: list[TradeIntent] = []

        if r < self._rsi_buy and not self.buy.armed:
            self.buy.baseline_macd = m
            logger.info("rsi_buy_signal", time=rsi.timestamp.isoformat(), rsi=str(r))
        if self._track(self.buy, m, operator.gt, "buy"):
            intents.append(
                BuyIntent(rsi.timestamp, r, m, self.buy.confirm_count)
            )
            self.buy.reset()

        if r > self._rsi_sell and not self.sell.armed:
            self.sell.baseline_macd = m
            logger.info("rsi_sell_signal", time=rsi.timestamp.isoformat(), rsi=str(r))
        if self._track(self.sell, m, operator.lt, "sell"):
            intents.append(
                SellIntent(rsi.timestamp, r, m, self.sell.confirm_count)
            )
            self.sell.reset()

        return intents

    def _track(
        self,
        state: ConfirmationState,
        macd: Decimal,
        favourable: Callable[[Decimal, Decimal], bool],
        side: str,
    ) -> bool:
        """Compare to the baseline, follow MACD, report whether the side fired."""
        if state.baseline_macd is None:
            return False
        if favourable(macd, state.baseline_macd):
            state.confirm_count += 1
            logger.info(
                "macd_confirmation",
                side=side,
                macd=str(macd),
                prev_macd=str(state.baseline_macd),
                confirm_count=state.confirm_count,
            )
        state.baseline_macd = macd
        return state.confirm_count >= self._required


async def signal_intents(
    rsi: AsyncIterator[Reading | None],
    macd: AsyncIterator[Reading | None],
    machine: SignalStateMachine,
) -> AsyncIterator[TradeIntent]:
    """Pair RSI and MACD readings in lockstep and yield every intent fired."""
    async for rsi_reading, macd_reading in lockstep(rsi, macd):
        for intent in machine.observe(rsi_reading, macd_reading):
            logger.info(
                "trade_intent",
                side=intent.side.value,
                rsi=str(intent.rsi),
                macd=str(intent.macd),
                confirm_count=intent.confirm_count,
            )
            yield intent
