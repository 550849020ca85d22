"""
Transition tables for the status workflows
"""
from typing import Dict, Iterable, FrozenSet
import logging

from utils.errors import ConflictError

logger = logging.getLogger(__name__)


class StatusMachine:
    """
    A named table of allowed ``from -> {to}`` moves.
    Statuses missing from the table, or mapped to nothing, are terminal.
    """

    def __init__(self, name: str, transitions: Dict[str, Iterable[str]]):
        self.name = name
        self.transitions: Dict[str, FrozenSet[str]] = {
            source: frozenset(targets) for source, targets in transitions.items()
        }

    def can(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, frozenset())

    def is_terminal(self, current: str) -> bool:
        return not self.transitions.get(current)

    def allowed_from(self, current: str) -> FrozenSet[str]:
        return self.transitions.get(current, frozenset())

    def check(self, current: str, target: str) -> None:
        """Raise ConflictError unless current -> target is in the table"""
        if not self.can(current, target):
            logger.warning(f"Rejected {self.name} transition {current} -> {target}")
            raise ConflictError(
                f"Cannot move {self.name} from {current} to {target}"
            )
