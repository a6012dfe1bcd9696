"""Review document lifecycle using transitions library.

    draft --submit--> submitted --resolve_all--> resolved
                          ^                         |
                          +---------reopen----------+

The document status is never set directly. After every comment mutation the
target status is derived from the comments (derive_status) and the machine
is advanced to it, so illegal moves (anything back to draft) are rejected.
"""

import logging

from transitions import Machine, MachineError

logger = logging.getLogger(__name__)


STATES = ["draft", "submitted", "resolved"]

TRANSITIONS = [
    # First comment added (or comments found in a draft written by the agent)
    {"trigger": "submit", "source": "draft", "dest": "submitted"},

    # Last pending comment resolved
    {"trigger": "resolve_all", "source": "submitted", "dest": "resolved"},
    {"trigger": "resolve_all", "source": "draft", "dest": "resolved"},

    # Reply to a resolved comment, new comment on a resolved review
    {"trigger": "reopen", "source": "resolved", "dest": "submitted"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


def derive_status(comments: list, submitted_at: str | None) -> str:
    """
    Status a document should have given its comments.

    resolved iff every comment is resolved; a document that never had a
    comment stays draft.
    """
    if not comments and submitted_at is None:
        return "draft"
    if all(c.status == "resolved" for c in comments):
        return "resolved"
    return "submitted"


class ReviewLifecycle:
    """State machine for one review document's status."""

    def __init__(self, status: str, label: str = "review"):
        self.label = label

        initial = status
        if initial not in STATES:
            logger.warning(f"[FSM] {label}: Unknown status '{status}', defaulting to 'draft'")
            initial = "draft"

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Log every transition."""
        logger.info(
            f"[FSM] {self.label}: {event.transition.source} -> {event.transition.dest} ({event.event.name})"
        )

    def advance_to(self, target: str) -> str:
        """
        Fire whichever trigger moves the machine to target.

        Raises:
            MachineError: if no transition leads from the current state to target
        """
        if target == self.state:
            return self.state
        trigger = TRIGGER_FOR.get((self.state, target))
        if trigger is None:
            raise MachineError(f"No transition from {self.state} to {target}")
        self.trigger(trigger)
        return self.state


def recompute_status(document) -> str:
    """Advance a ReviewDocument's status to match its comments, in place."""
    target = derive_status(document.comments, document.submitted_at)
    lifecycle = ReviewLifecycle(document.status, label=document.branch)
    try:
        document.status = lifecycle.advance_to(target)
    except MachineError as e:
        logger.warning(f"[FSM] {lifecycle.label}: keeping status '{document.status}': {e.value}")
    return document.status
