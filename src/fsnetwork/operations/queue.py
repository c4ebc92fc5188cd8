"""Queue running network operations on the current event loop."""

import asyncio
import logging

from fsnetwork.api.exceptions import OperationStateError
from fsnetwork.operations.operation import (
    TERMINAL_STATES,
    ChangePhase,
    NetworkOperation,
    OperationStateChange,
)

logger = logging.getLogger(__name__)


class NetworkQueue:
    """Starts operations concurrently and tracks them until they end.

    Operations run with no ordering guarantee between each other. An
    operation leaves the queue when it reaches finished or cancelled.
    """

    def __init__(self) -> None:
        self._operations: list[NetworkOperation] = []

    def __repr__(self) -> str:
        return f"NetworkQueue(operations={len(self._operations)})"

    @property
    def operations(self) -> list[NetworkOperation]:
        """Operations that have been started and have not ended yet."""
        return list(self._operations)

    @property
    def operation_count(self) -> int:
        return len(self._operations)

    def add_operation(self, operation: NetworkOperation) -> None:
        """Start an operation on the running event loop.

        Already cancelled operations are skipped.

        Raises:
            OperationStateError: If the operation is not ready
            RuntimeError: If no event loop is running
        """
        asyncio.get_running_loop()

        if operation.is_cancelled:
            logger.debug("Skipping cancelled operation %s", operation.name)
            return
        if not operation.is_ready:
            raise OperationStateError(operation.name, operation.state.value, "enqueue")

        operation.add_observer(self._observe)
        self._operations.append(operation)
        operation.start()

    def _observe(self, change: OperationStateChange) -> None:
        if change.phase is not ChangePhase.DID_CHANGE or change.current not in TERMINAL_STATES:
            return
        change.operation.remove_observer(self._observe)
        if change.operation in self._operations:
            self._operations.remove(change.operation)
        logger.debug("Operation %s left the queue (%s)", change.operation.name, change.current)

    def cancel_all_operations(self) -> None:
        """Cancel every operation still in the queue."""
        for operation in list(self._operations):
            operation.cancel()

    async def wait_until_all_operations_are_finished(self) -> None:
        """Wait until every queued operation is finished or cancelled."""
        pending = list(self._operations)
        if pending:
            await asyncio.gather(*(operation.wait() for operation in pending))
