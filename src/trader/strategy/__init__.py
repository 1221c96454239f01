"""Trading strategy -- the RSI/MACD confirmation state machine."""

from trader.strategy.state_machine import SignalStateMachine, signal_intents

__all__ = ["SignalStateMachine", "signal_intents"]
