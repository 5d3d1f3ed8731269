"""Cartridges: pluggable pipeline processors."""

from portfolio_events.cartridges.dedup import DeduplicationCartridge
from portfolio_events.cartridges.writer import RecordWriterCartridge

__all__ = ["DeduplicationCartridge", "RecordWriterCartridge"]
