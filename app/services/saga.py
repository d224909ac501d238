# app/services/saga.py
"""
Compensation stack for multi-step operations that span this service and a
collaborator. Each locally committed step registers the action that undoes it;
on a later failure the actions run newest-first.
"""

from typing import Callable, List, Tuple

from app.exceptions import CompensationFailedError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class Saga:
    def __init__(self, name: str):
        self.name = name
        self._compensations: List[Tuple[str, Callable[[], None]]] = []

    def add_compensation(self, step: str, action: Callable[[], None]):
        self._compensations.append((step, action))

    def clear(self):
        self._compensations.clear()

    def compensate(self):
        """
        Run registered compensations in reverse order. Stops at the first one
        that fails and raises CompensationFailedError; the remaining steps are
        left for manual reconciliation and listed in the error details.
        """
        while self._compensations:
            step, action = self._compensations.pop()
            logger.info(f"[SAGA:{self.name}] compensating '{step}'")
            try:
                action()
            except Exception as e:
                pending = [s for s, _ in reversed(self._compensations)]
                logger.critical(f"[SAGA:{self.name}] compensation '{step}' failed: {e}", exc_info=True)
                raise CompensationFailedError(step, str(e), {"saga": self.name, "pending": pending})
