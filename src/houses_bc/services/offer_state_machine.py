"""Offer state machine: validates purchase-offer status transitions."""

from houses_bc.domain.enums import OfferActor, OfferStatus


class InvalidOfferTransitionError(Exception):
    """Raised when an offer status change is not allowed."""

    def __init__(
        self,
        current_status: OfferStatus,
        target_status: OfferStatus,
        reason: str,
    ):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        super().__init__(
            f"Invalid transition from {current_status.value} to {target_status.value}: {reason}"
        )


# ---------------------------------------------------------------------------
# Transition map: from_status -> {to_status: set_of_allowed_actors}
# ---------------------------------------------------------------------------

S = OfferStatus
A = OfferActor

TRANSITION_MAP: dict[OfferStatus, dict[OfferStatus, set[OfferActor]]] = {
    S.DRAFT: {
        S.SUBMITTED: {A.CLIENT},
    },
    S.SUBMITTED: {
        S.ACCEPTED: {A.ADMIN},
        S.REJECTED: {A.ADMIN},
    },
}

TERMINAL_STATES: set[OfferStatus] = {S.ACCEPTED, S.REJECTED}

# Only drafts can be edited or deleted
EDITABLE_STATES: set[OfferStatus] = {S.DRAFT}


class OfferStateMachine:
    """Validates offer status transitions."""

    def validate_transition(
        self,
        current_status: OfferStatus,
        target_status: OfferStatus,
        actor: OfferActor,
    ) -> bool:
        """Return True if the transition is valid. Raise InvalidOfferTransitionError if not."""
        current_status = OfferStatus(current_status)
        target_status = OfferStatus(target_status)

        allowed_targets = TRANSITION_MAP.get(current_status)
        if allowed_targets is None:
            raise InvalidOfferTransitionError(
                current_status,
                target_status,
                f"No transitions allowed from {current_status.value}",
            )

        if target_status not in allowed_targets:
            raise InvalidOfferTransitionError(
                current_status,
                target_status,
                f"Transition from {current_status.value} to {target_status.value} is not allowed",
            )

        allowed_actors = allowed_targets[target_status]
        if actor not in allowed_actors:
            raise InvalidOfferTransitionError(
                current_status,
                target_status,
                f"Actor {actor.value} is not permitted for this transition "
                f"(allowed: {', '.join(sorted(a.value for a in allowed_actors))})",
            )

        return True

    def is_editable(self, status: OfferStatus) -> bool:
        return OfferStatus(status) in EDITABLE_STATES
