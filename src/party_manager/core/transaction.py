"""Multi-step filesystem operations with per-step rollback.

Release builds and installs are a sequence of side effects (write a temp
file, rename it, extract, register). Each step is recorded together with
the action that undoes it. If a later step fails, the completed steps are
undone in reverse order before the error propagates::

    with Transaction("install fakegame") as tx:
        staging = tx.step("create staging dir", make_staging, undo=remove_staging)
        tx.step("extract", lambda: extract(staging))
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..logging_config import get_logger

logger = get_logger("transaction")


@dataclass
class CompletedStep:
    """A step that ran successfully, with its undo action"""
    description: str
    undo: Optional[Callable[[], Any]] = None


class Transaction:
    """Runs named steps and undoes the completed ones on failure.

    Usable as a context manager: an exception escaping the block triggers
    rollback(), then propagates unchanged. A failing undo action is logged
    and the remaining undo actions still run.
    """

    def __init__(self, name: str):
        self.name = name
        self.completed: list[CompletedStep] = []
        self.rolled_back = False
        self.rollback_errors: list[str] = []

    def step(self, description: str, action: Callable[[], Any],
             undo: Optional[Callable[[], Any]] = None) -> Any:
        """Run one step and remember how to undo it.

        The undo action is only recorded once the action has returned, so a
        step that fails is expected to clean up after itself.

        Returns:
            Whatever the action returns
        """
        logger.debug(f"[{self.name}] {description}")
        result = action()
        self.completed.append(CompletedStep(description, undo))
        return result

    def rollback(self) -> None:
        """Undo completed steps in reverse order."""
        if self.rolled_back:
            return
        self.rolled_back = True

        for completed in reversed(self.completed):
            if completed.undo is None:
                continue
            logger.info(f"[{self.name}] Rolling back: {completed.description}")
            try:
                completed.undo()
            except Exception as e:
                message = f"undo of '{completed.description}' failed: {e}"
                logger.error(f"[{self.name}] {message}")
                self.rollback_errors.append(message)
        self.completed.clear()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning(f"[{self.name}] Failed: {exc}")
            self.rollback()
        return False
