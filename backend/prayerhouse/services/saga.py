"""
Compensating-transaction helper for multi-resource writes.

Steps run in order; each may register a compensation. If the block raises,
compensations for completed steps run in reverse order before the error
propagates.
"""
import logging
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Saga:
    """Run dependent steps and undo completed ones on failure."""

    def __init__(self, name: str):
        self.name = name
        self._compensations: List[Tuple[str, Callable[[], Any]]] = []

    def step(self, action: Callable[[], Any], compensation: Optional[Callable[[Any], Any]] = None,
             label: str = "step") -> Any:
        """Run an action and remember how to undo it."""
        result = action()
        if compensation is not None:
            self._compensations.append((label, lambda: compensation(result)))
        return result

    def compensate(self) -> None:
        """Undo completed steps, newest first. Failures are logged and skipped."""
        while self._compensations:
            label, undo = self._compensations.pop()
            try:
                undo()
            except Exception as e:
                logger.error(f"Saga '{self.name}': compensation for {label} failed: {e}", exc_info=True)

    def __enter__(self) -> "Saga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning(f"Saga '{self.name}' failed ({exc_type.__name__}); compensating")
            self.compensate()
        else:
            self._compensations.clear()
        return False
