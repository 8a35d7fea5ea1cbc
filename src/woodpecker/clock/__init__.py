"""Woodpecker clock - tick source and background ticker."""

from woodpecker.clock.clock import Clock, TickCallback, TickClock
from woodpecker.clock.ticker import Ticker

__all__ = ["Clock", "TickCallback", "TickClock", "Ticker"]
