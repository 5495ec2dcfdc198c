"""
Status Workflow Engine - strict one-directional state machines.

DESIGN PRINCIPLES:
- No backward transitions
- Terminal states accept nothing
- Invalid transitions rejected programmatically, before any write
"""

from typing import Dict, FrozenSet, List
import logging

from kumbh_alert.core.errors import InvalidTransition
from kumbh_alert.models.lost_found import LostFoundStatus
from kumbh_alert.models.medical import CaseStatus
from kumbh_alert.models.sos import SOSStatus

logger = logging.getLogger(__name__)


class StatusWorkflow:
    """
    Allowed-transition table for one record kind.

    A status only maps to itself where re-applying it is meaningful
    (reassigning an in-progress case, re-confirming an existing pair).
    """

    def __init__(self, name: str, transitions: Dict[str, FrozenSet[str]]):
        self.name = name
        self.transitions = transitions

    def is_valid_transition(self, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is valid.

        Args:
            from_status: Current status
            to_status: Desired new status

        Returns:
            True if transition is allowed, False otherwise
        """
        return to_status in self.transitions.get(from_status, frozenset())

    def get_allowed_transitions(self, current_status: str) -> List[str]:
        return sorted(self.transitions.get(current_status, frozenset()))

    def validate_transition(self, record_id: str, from_status: str, to_status: str) -> None:
        """
        Raises:
            InvalidTransition: If the table does not allow from_status → to_status
        """
        if not self.is_valid_transition(from_status, to_status):
            allowed = self.get_allowed_transitions(from_status)
            logger.info(f"Rejected {self.name} transition for {record_id}: {from_status} → {to_status}")
            raise InvalidTransition(
                f"Invalid {self.name} status transition: {from_status} → {to_status}. "
                f"Allowed transitions from {from_status}: {allowed}"
            )


SOS_WORKFLOW = StatusWorkflow("SOS", {
    SOSStatus.PENDING.value: frozenset({SOSStatus.ACKNOWLEDGED.value, SOSStatus.RESOLVED.value}),
    SOSStatus.ACKNOWLEDGED.value: frozenset({SOSStatus.RESOLVED.value}),
    SOSStatus.RESOLVED.value: frozenset(),
})

MEDICAL_WORKFLOW = StatusWorkflow("medical case", {
    CaseStatus.PENDING.value: frozenset({CaseStatus.IN_PROGRESS.value, CaseStatus.RESOLVED.value}),
    CaseStatus.IN_PROGRESS.value: frozenset({CaseStatus.IN_PROGRESS.value, CaseStatus.RESOLVED.value}),
    CaseStatus.RESOLVED.value: frozenset(),
})

LOST_FOUND_WORKFLOW = StatusWorkflow("lost/found", {
    LostFoundStatus.OPEN.value: frozenset({LostFoundStatus.MATCHED.value, LostFoundStatus.RESOLVED.value}),
    LostFoundStatus.MATCHED.value: frozenset({LostFoundStatus.MATCHED.value, LostFoundStatus.RESOLVED.value}),
    LostFoundStatus.RESOLVED.value: frozenset(),
})
