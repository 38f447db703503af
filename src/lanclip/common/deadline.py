"""
Run a task against a deadline

The task runs on a background thread and receives a stop event. When the
deadline passes the event is set; tasks check it between short socket
timeouts so no blocked call outlives the deadline for long.
"""
import logging
import threading
from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Optional

from lanclip import config

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """How a deadline-bounded task ended"""
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class DeadlineResult:
    outcome: Outcome
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def completed(self) -> bool:
        return self.outcome == Outcome.COMPLETED

    @property
    def timed_out(self) -> bool:
        return self.outcome == Outcome.TIMED_OUT


def run_with_deadline(task: Callable[[threading.Event], Any], timeout: float,
                      grace: float = config.SOCKET_POLL_INTERVAL * 2,
                      name: str = "deadline-task") -> DeadlineResult:
    """
    Run task(stop_event) for at most timeout seconds.

    Args:
        task: Callable taking the stop event; its return value is reported
        timeout: Seconds before the task is told to stop
        grace: Seconds to wait for the task to notice the stop event

    Returns:
        DeadlineResult with COMPLETED (and the value), FAILED (and the
        exception) or TIMED_OUT
    """
    stop_event = threading.Event()
    done = threading.Event()
    state = {}

    def runner():
        try:
            state['value'] = task(stop_event)
        except Exception as e:
            state['error'] = e
        finally:
            done.set()

    thread = threading.Thread(target=runner, name=name, daemon=True)
    thread.start()

    if done.wait(timeout):
        if 'error' in state:
            return DeadlineResult(Outcome.FAILED, error=state['error'])
        return DeadlineResult(Outcome.COMPLETED, value=state.get('value'))

    stop_event.set()
    thread.join(grace)
    if thread.is_alive():
        logger.debug(f"{name} still running {grace}s after its deadline")

    # Errors raised while shutting down still count as a timeout
    return DeadlineResult(Outcome.TIMED_OUT, value=state.get('value'), error=state.get('error'))
