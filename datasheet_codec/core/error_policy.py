"""
Error Continuation Policy

Single decision service consulted by the importer at every recoverable,
per-entity failure site (bad table type column, data field record, data type
record, macro record, reserved message ID record, column reference).

Each error category carries a tri-state flag, initially ASK:
    - SKIP_ALL: the entry is dropped silently and the import continues
    - ABORT: ImportAbortedError is raised with the original message
    - ASK: the injected decision callback is invoked; its answer decides

Decision callback answers:
    - IGNORE: drop this entry only (flag stays ASK)
    - IGNORE_ALL: drop this entry and every later one of the same category
    - ABORT: stop the import

The callback may block (e.g. waiting on a human); the importer resumes from
the same point once it returns.

Usage:
    from datasheet_codec.core.error_policy import (
        ErrorContinuationPolicy, ErrorCategory, always_ignore_all,
    )

    policy = ErrorContinuationPolicy(always_ignore_all)
    policy.handle(ErrorCategory.MACRO, "Missing macro name")
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ImportAbortedError

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of recoverable import errors."""
    TABLE_TYPE = "Table type"
    TABLE_TYPE_FIELD = "Table type data field"
    DATA_TYPE = "Data type"
    MACRO = "Macro"
    RESERVED_MSG_ID = "Reserved message ID"
    COLUMN = "Column"
    DATA_FIELD = "Data field"


class ContinuationChoice(str, Enum):
    """Answers a decision callback can give."""
    IGNORE = "ignore"
    IGNORE_ALL = "ignore_all"
    ABORT = "abort"


class CategoryState(str, Enum):
    """Per-category policy flag."""
    ASK = "ask"
    SKIP_ALL = "skip_all"
    ABORT = "abort"


DecisionCallback = Callable[[ErrorCategory, str], ContinuationChoice]


def always_abort(category: ErrorCategory, message: str) -> ContinuationChoice:
    """Headless decider that stops at the first recoverable error."""
    return ContinuationChoice.ABORT


def always_ignore_all(category: ErrorCategory, message: str) -> ContinuationChoice:
    """Headless decider that skips every recoverable error."""
    return ContinuationChoice.IGNORE_ALL


DEFAULT_DECIDER: DecisionCallback = always_abort


class ErrorContinuationPolicy:
    """Tri-state, per-category continuation policy for one import run.

    Attributes:
        skipped: (category, message) for every entry that was dropped
    """

    def __init__(self, decide: Optional[DecisionCallback] = None):
        """Initialize with every category set to ASK.

        Args:
            decide: Decision callback (defaults to DEFAULT_DECIDER)
        """
        self._decide = decide or DEFAULT_DECIDER
        self._states: Dict[ErrorCategory, CategoryState] = {
            category: CategoryState.ASK for category in ErrorCategory
        }
        self.skipped: List[Tuple[ErrorCategory, str]] = []

    def state(self, category: ErrorCategory) -> CategoryState:
        return self._states[category]

    def handle(self, category: ErrorCategory, message: str) -> None:
        """Resolve one recoverable error.

        Returns normally when the entry should be skipped.

        Raises:
            ImportAbortedError: If the category is (or becomes) ABORT
        """
        state = self._states[category]

        if state == CategoryState.ASK:
            choice = ContinuationChoice(self._decide(category, message))
            if choice == ContinuationChoice.IGNORE_ALL:
                self._states[category] = CategoryState.SKIP_ALL
            elif choice == ContinuationChoice.ABORT:
                self._states[category] = CategoryState.ABORT
            state = self._states[category]

        if state == CategoryState.ABORT:
            logger.error(f"{category.value} error, import stopped: {message}")
            raise ImportAbortedError(category, message)

        logger.warning(f"{category.value} error, entry skipped: {message}")
        self.skipped.append((category, message))
