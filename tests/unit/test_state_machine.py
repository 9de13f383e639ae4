import pytest

from accu_lifecycle.core.errors import InvalidTransitionError, ValidationError
from accu_lifecycle.models.entities import ApplicationStatus
from accu_lifecycle.state_machine.application_status import (
    TERMINAL_STATUSES,
    allowed_targets,
    can_transition,
    enforce_transition,
)

S = ApplicationStatus
EDGES = {
    (S.draft, S.submitted),
    (S.draft, S.rejected),
    (S.submitted, S.under_review),
    (S.submitted, S.rejected),
    (S.under_review, S.approved),
    (S.under_review, S.rejected),
    (S.approved, S.issued),
}


def test_valid_transition_chain():
    assert can_transition(S.draft, S.submitted)
    assert can_transition(S.under_review, S.approved)
    assert can_transition(S.approved, S.issued)


@pytest.mark.parametrize("current", list(ApplicationStatus))
@pytest.mark.parametrize("target", list(ApplicationStatus))
def test_every_pair_matches_the_graph(current, target):
    if (current, target) in EDGES:
        enforce_transition(current, target)
    else:
        with pytest.raises(InvalidTransitionError) as excinfo:
            enforce_transition(current, target)
        assert excinfo.value.details == {"from": current.value, "to": target.value}


def test_invalid_transition_is_a_validation_error():
    with pytest.raises(ValidationError):
        enforce_transition(S.draft, S.issued)


def test_terminal_statuses_have_no_targets():
    assert TERMINAL_STATUSES == {S.rejected, S.issued}
    for status in TERMINAL_STATUSES:
        assert allowed_targets(status) == frozenset()
