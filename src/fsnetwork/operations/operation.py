"""Cancellable asynchronous operations with observable state.

A NetworkOperation is a unit of asynchronous work that moves through the
states ready -> executing -> finished, or to cancelled from ready or
executing. Finished and cancelled are terminal. Every transition is announced
to registered observers twice: once before the state is assigned and once
after.

Operations are confined to the event loop that started them; none of the
methods here are safe to call from another thread.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

from fsnetwork.api.exceptions import OperationStateError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationState(StrEnum):
    """Lifecycle states of a NetworkOperation."""

    READY = "ready"
    EXECUTING = "executing"
    FINISHED = "finished"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({OperationState.FINISHED, OperationState.CANCELLED})


class ChangePhase(StrEnum):
    """Which side of a state assignment an observer is notified on."""

    WILL_CHANGE = "will_change"
    DID_CHANGE = "did_change"


@dataclass(frozen=True, slots=True)
class OperationStateChange:
    """One observer notification for a state transition."""

    operation: NetworkOperation
    previous: OperationState
    current: OperationState
    phase: ChangePhase


StateObserver = Callable[[OperationStateChange], Any]


class NetworkOperation(ABC):
    """Base class for asynchronous, cancellable operations.

    Subclasses implement main(). start() returns as soon as main() has been
    scheduled; completion is signalled only by the transition to finished,
    which subclasses trigger through finish() or complete().
    """

    default_name = "Network Operation"

    def __init__(self, name: str | None = None) -> None:
        self.name = name or self.default_name
        self._state = OperationState.READY
        self._observers: list[StateObserver] = []
        self._task: asyncio.Task[None] | None = None
        self._done = asyncio.Event()
        self._delivered = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', state={self._state.value})"

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is OperationState.READY

    @property
    def is_executing(self) -> bool:
        return self._state is OperationState.EXECUTING

    @property
    def is_finished(self) -> bool:
        return self._state is OperationState.FINISHED

    @property
    def is_cancelled(self) -> bool:
        return self._state is OperationState.CANCELLED

    @property
    def is_asynchronous(self) -> bool:
        """Operations always complete after start() has returned."""
        return True

    def add_observer(self, observer: StateObserver) -> None:
        """Register a callable notified on both sides of every transition."""
        self._observers.append(observer)

    def remove_observer(self, observer: StateObserver) -> None:
        """Unregister an observer; unknown observers are ignored."""
        try:
            self._observers.remove(observer)
        except ValueError:
            logger.debug("Observer %r was not registered on %s", observer, self.name)

    def _notify(self, change: OperationStateChange) -> None:
        for observer in list(self._observers):
            observer(change)

    def _transition(self, state: OperationState) -> None:
        previous = self._state
        self._notify(OperationStateChange(self, previous, state, ChangePhase.WILL_CHANGE))
        self._state = state
        self._notify(OperationStateChange(self, previous, state, ChangePhase.DID_CHANGE))
        logger.debug("Operation %s: %s -> %s", self.name, previous.value, state.value)
        if state in TERMINAL_STATES:
            self._done.set()

    def start(self) -> None:
        """Move to executing and schedule main() on the running event loop.

        Calling start() while executing does nothing.

        Raises:
            OperationStateError: If the operation is finished or cancelled
            RuntimeError: If no event loop is running
        """
        if self._state is OperationState.EXECUTING:
            logger.debug("Operation %s already executing", self.name)
            return
        if self._state is not OperationState.READY:
            raise OperationStateError(self.name, self._state.value, "start")

        loop = asyncio.get_running_loop()
        self._transition(OperationState.EXECUTING)
        self._task = loop.create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        try:
            await self.main()
        except asyncio.CancelledError:
            if not self.is_cancelled:
                raise
            logger.debug("Operation %s stopped after cancellation", self.name)
        except Exception as error:
            logger.exception("Operation %s failed with an unexpected error", self.name)
            self.fail(error)
        finally:
            await self.close()

    @abstractmethod
    async def main(self) -> None:
        """Do the work of the operation; must eventually call finish()."""

    async def close(self) -> None:
        """Release resources held by the operation once main() has returned."""

    def fail(self, error: Exception) -> None:  # noqa: ARG002 - used by subclasses
        """Handle an unexpected error raised by main(). Finishes by default."""
        self.finish()

    def finish(self) -> None:
        """Move from executing to finished. Used only by subclasses.

        Finishing a finished or cancelled operation does nothing, so a
        completion racing a cancellation cannot leave the cancelled state.

        Raises:
            OperationStateError: If the operation was never started
        """
        if self._state in TERMINAL_STATES:
            logger.debug("Ignoring finish of %s in state %s", self.name, self._state.value)
            return
        if self._state is OperationState.READY:
            raise OperationStateError(self.name, self._state.value, "finish")
        self._transition(OperationState.FINISHED)

    def complete(self, callback: Callable[[T], Any] | None, value: T) -> None:
        """Deliver a result to callback, then finish.

        Nothing is delivered once the operation is cancelled.
        """
        if self.is_cancelled:
            logger.debug("Dropping result of cancelled operation %s", self.name)
            return
        self._delivered = True
        if callback is not None:
            callback(value)
        self.finish()

    def cancel(self) -> None:
        """Move to cancelled and stop main() if it is running.

        Cancelling a finished or cancelled operation does nothing.
        """
        if self._state in TERMINAL_STATES:
            logger.debug("Ignoring cancel of %s in state %s", self.name, self._state.value)
            return
        self._transition(OperationState.CANCELLED)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the operation is finished or cancelled."""
        await self._done.wait()
