"""Order execution, multientry lifecycle and alert processing."""

from src.execution.engine import ExecutionEngine
from src.execution.lifecycle import PositionLifecycleManager, apply_leg_response
from src.execution.processor import AlertProcessor
from src.execution.state_store import InMemoryStateStore, JsonStateStore, TradeStateStore

__all__ = [
    "AlertProcessor",
    "ExecutionEngine",
    "InMemoryStateStore",
    "JsonStateStore",
    "PositionLifecycleManager",
    "TradeStateStore",
    "apply_leg_response",
]
