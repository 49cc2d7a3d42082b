"""heartbeat-signal - Synchronous multi-subscriber notifier."""
from __future__ import annotations

from heartbeat_signal.signal import Connection, Signal, SignalDestroyedError

__all__ = ["Connection", "Signal", "SignalDestroyedError"]
