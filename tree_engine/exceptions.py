"""
Custom exception classes for the tree engine.

This module provides specialized exception classes for the different ways a
tree edit can fail, each carrying context and recovery suggestions.
"""

import logging
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class TreeEngineError(Exception):
    """
    Base exception for tree engine errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class TreeValidationError(TreeEngineError):
    """
    Exception raised when a tree or node fails schema validation.

    The ``errors`` attribute holds one readable ``path: message`` string per
    failed constraint, e.g. ``0 -> children -> 1 -> name: Name is required``.
    """

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = list(errors)

        if message is None:
            message = f"Tree validation failed: {'; '.join(self.errors)}"

        context = {
            'error_count': len(self.errors),
            'errors': self.errors
        }

        recovery_suggestions = [
            "Ensure every node has a non-empty 'id'",
            "Keep node names between 1 and 100 characters",
            "Make sure 'children' is a list of nodes when present"
        ]

        super().__init__(message, context, recovery_suggestions)


class DuplicateIdError(TreeValidationError):
    """Exception raised when the same id occurs more than once in a tree."""

    def __init__(self, duplicate_ids: List[str]):
        self.duplicate_ids = sorted(set(duplicate_ids))
        errors = [f"{node_id}: Duplicate node id" for node_id in self.duplicate_ids]
        super().__init__(
            errors,
            message=f"Duplicate node ids found: {', '.join(self.duplicate_ids)}"
        )
        self.context['duplicate_ids'] = self.duplicate_ids
        self.recovery_suggestions = [
            "Re-assign ids with assign_new_ids before inserting copied nodes",
            "Regenerate the tree with generate_tree_with_ids"
        ]


class IdGenerationError(TreeEngineError):
    """
    Exception raised when no unused id could be generated.

    This only happens when the id space for the configured suffix length is
    nearly exhausted by the ids already present in the tree.
    """

    def __init__(self, prefix: str, attempts: int, taken_count: int):
        self.prefix = prefix
        self.attempts = attempts

        message = f"Could not generate an unused id with prefix '{prefix}' after {attempts} attempts"

        context = {
            'prefix': prefix,
            'attempts': attempts,
            'taken_count': taken_count
        }

        recovery_suggestions = [
            "Increase ids.suffix_length in config.yaml",
            "Increase ids.max_attempts in config.yaml"
        ]

        super().__init__(message, context, recovery_suggestions)


class InvalidWorkflowStateError(TreeEngineError):
    """Exception raised when the icon cascade workflow is driven out of order."""

    def __init__(self, current_state: str, action: str):
        self.current_state = current_state
        self.action = action

        message = f"Cannot {action} while icon workflow is {current_state}"

        super().__init__(
            message,
            {'current_state': current_state, 'action': action},
            ["Pick an icon before confirming or cancelling the cascade"]
        )


class TreeActionDisabledError(TreeEngineError):
    """Exception raised when an editor action is turned off in the tree settings."""

    def __init__(self, action: str, setting: str):
        self.action = action
        self.setting = setting

        message = f"Action '{action}' is disabled (tree setting '{setting}' is off)"

        super().__init__(
            message,
            {'action': action, 'setting': setting},
            [f"Enable '{setting}' in the tree settings to allow '{action}'"]
        )


def log_error_with_context(error: TreeEngineError, operation: str) -> None:
    """
    Log error with full context information.

    Args:
        error: TreeEngineError instance
        operation: Description of the operation that failed
    """
    logger.error(f"Tree engine error during {operation}")
    logger.error(f"Error type: {type(error).__name__}")
    logger.error(f"Error message: {error.message}")

    if error.context:
        logger.error("Error context:")
        for key, value in error.context.items():
            logger.error(f"  {key}: {value}")

    if error.recovery_suggestions:
        logger.info("Recovery suggestions:")
        for i, suggestion in enumerate(error.recovery_suggestions, 1):
            logger.info(f"  {i}. {suggestion}")
