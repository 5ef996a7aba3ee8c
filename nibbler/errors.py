"""
Exceptions raised while declaring schemas and evaluating selectors.
"""

from typing import Optional


class NibblerError(Exception):
    """Base class for all nibbler errors."""


class InvalidRuleDeclaration(NibblerError, ValueError):
    """Raised when a rule's selector or property can't be determined."""


class InvalidDelegate(NibblerError, TypeError):
    """Raised when a delegate is neither callable nor a schema."""


class SelectorSyntaxError(NibblerError, ValueError):
    """Raised when a path selector can't be compiled."""

    def __init__(self, message: str, selector: str, position: Optional[int] = None):
        self.selector = selector
        self.position = position
        if position is not None:
            message = f"{message} at position {position} in {selector!r}"
        else:
            message = f"{message} in {selector!r}"
        super().__init__(message)
