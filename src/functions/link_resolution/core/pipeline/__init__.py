"""Link resolution pipeline: timer loop, orchestrator and fan-out."""

from .fanout import FanOutController
from .orchestrator import UNRECOGNIZED_MESSAGE, LinkOrchestrator
from .timer_loop import TimerBypassLoop

__all__ = [
    "FanOutController",
    "LinkOrchestrator",
    "TimerBypassLoop",
    "UNRECOGNIZED_MESSAGE",
]
