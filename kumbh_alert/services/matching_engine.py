"""
Matching Engine - lost/found pairing and person-to-registration correlation.

DESIGN PRINCIPLES:
- A "lost" report only ever pairs with a "found" report, and vice versa
- Pairing is symmetric: if A.matched_with == B then B.matched_with == A
- Registrations are never mutated by a correlation
- Candidate suggestion is recency only; there is no scoring

CONSISTENCY NOTE:
Pairing touches two records and the store has no multi-record transaction
here. The two updates are applied in order, each conditional on the
version read at the start, so a racing pairing on either record loses
with InvalidMatch. If the second update fails the first is rolled back
to its previous values and PartialMatchError is raised, with
`rolled_back=False` when even the rollback failed.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from kumbh_alert.core.errors import InvalidMatch, NotFound, PartialMatchError, StaleRecord
from kumbh_alert.core.settings import settings
from kumbh_alert.models.lost_found import LostFoundStatus
from kumbh_alert.services.status_workflow import LOST_FOUND_WORKFLOW
from kumbh_alert.store import get_lost_found_store, get_registration_store
from kumbh_alert.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)


def registration_lead(registration: Dict) -> Dict:
    """The slice of a registration staff need to initiate real-world contact."""
    return {
        "registration_id": registration["id"],
        "contact_info": registration.get("contact_info", {}),
        "destination": registration.get("intended_destination"),
        "custom_destination": registration.get("custom_destination"),
        "group_size": registration.get("group_size"),
        "registered_at": registration.get("registered_at"),
    }


class MatchingEngine:
    """Stateless matching operations over the lost/found and registration stores."""

    def __init__(self, report_store=None, registration_store=None):
        self.reports = report_store or get_lost_found_store()
        self.registrations = registration_store or get_registration_store()

    def _get_report(self, report_id: str) -> Dict:
        report = self.reports.get_by_id(report_id)
        if report is None:
            raise NotFound(f"Lost/found report {report_id} not found")
        return report

    def _get_versioned_report(self, report_id: str) -> Tuple[Dict, Any]:
        report, version = self.reports.get_versioned(report_id)
        if report is None:
            raise NotFound(f"Lost/found report {report_id} not found")
        return report, version

    def match_reports(self, id_a: str, id_b: str) -> Tuple[Dict, Dict]:
        """
        Pair a lost report with a found report.

        Both writes are conditional on the versions read here, so a
        concurrent pairing touching either report makes this one fail
        instead of leaving a one-sided link behind.

        Args:
            id_a: First report id
            id_b: Second report id (must be of the opposite type)

        Returns:
            (updated report A, updated report B)

        Raises:
            NotFound: Either report is absent
            InvalidMatch: Same type, one side is already paired elsewhere,
                or either report changed while the pairing was applied
            InvalidTransition: Either report is already resolved
            PartialMatchError: A was updated but B could not be
        """
        report_a, version_a = self._get_versioned_report(id_a)
        report_b, version_b = self._get_versioned_report(id_b)

        if report_a.get("type") == report_b.get("type"):
            raise InvalidMatch("Cannot match two items of the same type")

        for report, peer_id in ((report_a, id_b), (report_b, id_a)):
            LOST_FOUND_WORKFLOW.validate_transition(report["id"], report.get("status"), LostFoundStatus.MATCHED.value)
            current_peer = report.get("matched_with")
            if current_peer and current_peer != peer_id:
                raise InvalidMatch(f"Report {report['id']} is already matched with {current_peer}")

        matched = LostFoundStatus.MATCHED.value
        try:
            updated_a = self.reports.update(id_a, {"matched_with": id_b, "status": matched}, expected_version=version_a)
        except StaleRecord as e:
            raise InvalidMatch(f"Report {id_a} changed while pairing with {id_b}; reload and retry") from e

        try:
            updated_b = self.reports.update(id_b, {"matched_with": id_a, "status": matched}, expected_version=version_b)
        except StaleRecord as e:
            logger.warning(f"Report {id_b} changed while pairing with {id_a}; undoing {id_a}")
            if self._rollback(report_a):
                raise InvalidMatch(f"Report {id_b} changed while pairing with {id_a}; reload and retry") from e
            raise PartialMatchError(id_a, id_b, rolled_back=False, cause=e) from e
        except Exception as e:
            logger.error(f"Second half of pairing {id_a} <-> {id_b} failed: {e}", exc_info=True)
            rolled_back = self._rollback(report_a)
            raise PartialMatchError(id_a, id_b, rolled_back=rolled_back, cause=e) from e

        logger.info(f"Matched lost/found reports {id_a} <-> {id_b}")
        return updated_a, updated_b

    def _rollback(self, original: Dict) -> bool:
        try:
            self.reports.update(original["id"], {
                "matched_with": original.get("matched_with"),
                "status": original.get("status"),
            })
            logger.warning(f"Rolled back report {original['id']} after failed pairing")
            return True
        except Exception as e:
            logger.critical(
                f"Rollback of report {original['id']} failed; one-sided match left in store: {e}",
                exc_info=True,
            )
            return False

    def correlate_person_report(self, report_id: str, registration_id: str) -> Dict:
        """
        Link a person-report to the entry registration it probably belongs to.

        Returns:
            Dict with the updated report and the registration lead
            (contact info, destination, group size)

        Raises:
            NotFound: Report or registration absent
            InvalidMatch: Report is not a person-report
            InvalidTransition: Report is already resolved
        """
        report, version = self._get_versioned_report(report_id)
        registration = self.registrations.get_by_id(registration_id)
        if registration is None:
            raise NotFound(f"Registration {registration_id} not found")

        if not report.get("is_person"):
            raise InvalidMatch("This item is not a person report")

        LOST_FOUND_WORKFLOW.validate_transition(report_id, report.get("status"), LostFoundStatus.MATCHED.value)

        try:
            updated = self.reports.update(report_id, {
                "matched_with_registration": registration_id,
                "status": LostFoundStatus.MATCHED.value,
            }, expected_version=version)
        except StaleRecord as e:
            raise InvalidMatch(f"Report {report_id} changed while correlating; reload and retry") from e
        logger.info(f"Correlated person report {report_id} with registration {registration_id}")

        return {
            "report": updated,
            "registration": registration_lead(registration),
        }

    def suggest_candidates(self, report: Optional[Dict] = None, limit: Optional[int] = None) -> List[Dict]:
        """
        Provisional leads for a new person-report: the most recent registrations.

        Recency is the only ordering; no similarity scoring is attempted.
        """
        if limit is None:
            limit = settings.CANDIDATE_SUGGESTION_LIMIT
        recent = self.registrations.query(limit=limit)
        if report is not None:
            logger.info(f"Suggested {len(recent)} registration candidates for report {report.get('id')}")
        return [registration_lead(registration) for registration in recent]

    def resolve_report(self, report_id: str) -> Dict:
        report = self._get_report(report_id)
        LOST_FOUND_WORKFLOW.validate_transition(report_id, report.get("status"), LostFoundStatus.RESOLVED.value)
        return self.reports.update(report_id, {
            "status": LostFoundStatus.RESOLVED.value,
            "resolved_at": utc_now(),
        })


# Global engine instance
_matching_engine = None


def get_matching_engine() -> MatchingEngine:
    """Get or create MatchingEngine singleton."""
    global _matching_engine
    if _matching_engine is None:
        _matching_engine = MatchingEngine()
    return _matching_engine
