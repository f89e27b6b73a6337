"""
PilotGB Control Tower
Tests — stage order rules (pure functions, no database).

Covers:
    - Stage sequence + next stage lookup
    - validate_stage_order matrix (next, skip, no-op, regression, unknown)
    - compute_next_status
    - evaluate_transition rule ordering against an in-memory LifecycleState
"""

from types import SimpleNamespace

import pytest

from app.models.initiative import STAGE_SEQUENCE
from app.services.initiative_store import LifecycleState
from app.services.stage_lifecycle import (
    IncompleteChecklistError,
    MissingApprovalsError,
    NoOpTransitionError,
    RegressionNotAllowedError,
    ScopeNotApprovedError,
    ScopeNotSignedOffError,
    StageSkipError,
    TransitionError,
    UnknownStageError,
    compute_next_status,
    evaluate_transition,
    get_next_stage,
    stage_index,
    validate_stage_order,
)
from app.utils.errors import E


def _state(stage, *, scope_status="APPROVED", approved_roles=("PROJECT_MANAGER", "DATA_ARCHITECT"),
           incomplete=(), status="ON_TRACK"):
    approvals = [
        SimpleNamespace(stage=s, role=r, approved=(s == stage and r in approved_roles))
        for s in STAGE_SEQUENCE
        for r in ("PROJECT_MANAGER", "DATA_ARCHITECT")
    ]
    checklist = [
        SimpleNamespace(id=i + 1, stage=s, title=f"{s} exit gate",
                        completed=not (s == stage and s in incomplete))
        for i, s in enumerate(STAGE_SEQUENCE)
    ]
    scope = SimpleNamespace(status=scope_status) if scope_status else None
    return LifecycleState(
        initiative_id=1, stage=stage, status=status,
        checklist_items=checklist, approvals=approvals, scope_of_work=scope,
    )


# ═════════════════════════════════════════════════════════════════════════════
# SEQUENCE
# ═════════════════════════════════════════════════════════════════════════════

class TestSequence:
    def test_sequence_order(self):
        assert STAGE_SEQUENCE == (
            "INGESTION", "TRANSFORMATION", "ENRICHMENT",
            "VALIDATION", "VISUALIZATION", "DEPLOYMENT",
        )

    def test_stage_index_unknown(self):
        assert stage_index("ARCHIVE") == -1
        assert stage_index("INGESTION") == 0

    @pytest.mark.parametrize("idx", range(len(STAGE_SEQUENCE) - 1))
    def test_next_stage(self, idx):
        assert get_next_stage(STAGE_SEQUENCE[idx]) == STAGE_SEQUENCE[idx + 1]

    def test_next_stage_after_deployment_is_none(self):
        assert get_next_stage("DEPLOYMENT") is None

    def test_next_stage_unknown_is_none(self):
        assert get_next_stage("nope") is None


# ═════════════════════════════════════════════════════════════════════════════
# ORDER VALIDATION
# ═════════════════════════════════════════════════════════════════════════════

class TestValidateStageOrder:
    def test_next_stage_succeeds(self):
        assert validate_stage_order("INGESTION", "TRANSFORMATION") is None

    def test_skip_fails(self):
        with pytest.raises(StageSkipError) as exc:
            validate_stage_order("INGESTION", "ENRICHMENT")
        assert exc.value.code == E.STAGE_SKIP
        assert exc.value.details["next_stage"] == "TRANSFORMATION"

    def test_skip_fails_even_with_regression_flag(self):
        with pytest.raises(StageSkipError):
            validate_stage_order("INGESTION", "DEPLOYMENT", allow_regression=True)

    def test_regression_without_override(self):
        with pytest.raises(RegressionNotAllowedError) as exc:
            validate_stage_order("ENRICHMENT", "TRANSFORMATION")
        assert str(exc.value) == "Stage regression is not permitted without override"

    def test_regression_with_override(self):
        assert validate_stage_order("ENRICHMENT", "TRANSFORMATION", allow_regression=True) is None

    def test_multi_step_regression_with_override(self):
        assert validate_stage_order("DEPLOYMENT", "INGESTION", allow_regression=True) is None

    @pytest.mark.parametrize("stage", STAGE_SEQUENCE)
    @pytest.mark.parametrize("allow", [False, True])
    def test_noop_always_fails(self, stage, allow):
        with pytest.raises(NoOpTransitionError):
            validate_stage_order(stage, stage, allow_regression=allow)

    @pytest.mark.parametrize("current,target", [
        ("INGESTION", "ARCHIVE"),
        ("LIMBO", "TRANSFORMATION"),
        ("ingestion", "TRANSFORMATION"),
    ])
    def test_unknown_stage(self, current, target):
        with pytest.raises(UnknownStageError) as exc:
            validate_stage_order(current, target)
        assert isinstance(exc.value, TransitionError)
        assert str(exc.value) == "Unknown stage transition"

    def test_validation_is_repeatable(self):
        for _ in range(3):
            with pytest.raises(StageSkipError):
                validate_stage_order("TRANSFORMATION", "VALIDATION")


# ═════════════════════════════════════════════════════════════════════════════
# NEXT STATUS
# ═════════════════════════════════════════════════════════════════════════════

class TestComputeNextStatus:
    def test_deployment_completes(self):
        assert compute_next_status("DEPLOYMENT", "AT_RISK") == "COMPLETE"

    def test_complete_reopens_on_any_move(self):
        assert compute_next_status("VISUALIZATION", "COMPLETE") == "ON_TRACK"

    @pytest.mark.parametrize("status", ["ON_TRACK", "AT_RISK", "BLOCKED", "ARCHIVED"])
    def test_other_status_kept(self, status):
        assert compute_next_status("TRANSFORMATION", status) == status


# ═════════════════════════════════════════════════════════════════════════════
# RULE ORDER
# ═════════════════════════════════════════════════════════════════════════════

class TestEvaluateTransition:
    def test_all_rules_pass(self):
        assert evaluate_transition(_state("INGESTION"), "TRANSFORMATION") is None

    def test_order_checked_before_scope(self):
        state = _state("INGESTION", scope_status="DRAFT")
        with pytest.raises(StageSkipError):
            evaluate_transition(state, "VALIDATION")

    def test_scope_not_approved_wins_over_approvals_and_checklist(self):
        state = _state("INGESTION", scope_status="DRAFT", approved_roles=(), incomplete=("INGESTION",))
        with pytest.raises(ScopeNotApprovedError):
            evaluate_transition(state, "TRANSFORMATION")

    def test_scope_gate_only_applies_when_leaving_ingestion(self):
        state = _state("TRANSFORMATION", scope_status="DRAFT")
        assert evaluate_transition(state, "ENRICHMENT") is None

    def test_no_scope_skips_scope_gates(self):
        state = _state("VISUALIZATION", scope_status=None)
        assert evaluate_transition(state, "DEPLOYMENT") is None

    def test_deployment_requires_signed_off(self):
        state = _state("VISUALIZATION", scope_status="APPROVED")
        with pytest.raises(ScopeNotSignedOffError):
            evaluate_transition(state, "DEPLOYMENT")

    def test_missing_approvals_lists_roles(self):
        state = _state("ENRICHMENT", approved_roles=("PROJECT_MANAGER",))
        with pytest.raises(MissingApprovalsError) as exc:
            evaluate_transition(state, "VALIDATION")
        assert exc.value.details == {"missing_approvals": ["DATA_ARCHITECT"]}

    def test_approvals_for_target_stage_do_not_count(self):
        state = _state("ENRICHMENT", approved_roles=())
        for a in state.approvals:
            if a.stage == "VALIDATION":
                a.approved = True
        with pytest.raises(MissingApprovalsError) as exc:
            evaluate_transition(state, "VALIDATION")
        assert exc.value.missing_roles == ["PROJECT_MANAGER", "DATA_ARCHITECT"]

    def test_incomplete_checklist_lists_items(self):
        state = _state("ENRICHMENT", incomplete=("ENRICHMENT",))
        with pytest.raises(IncompleteChecklistError) as exc:
            evaluate_transition(state, "VALIDATION")
        assert exc.value.details["incomplete_checklist_items"] == [
            {"id": 3, "title": "ENRICHMENT exit gate"},
        ]

    def test_regression_skips_checklist_but_not_approvals(self):
        state = _state("ENRICHMENT", incomplete=("ENRICHMENT",))
        assert evaluate_transition(state, "TRANSFORMATION", allow_regression=True) is None

        state = _state("ENRICHMENT", approved_roles=(), incomplete=("ENRICHMENT",))
        with pytest.raises(MissingApprovalsError):
            evaluate_transition(state, "TRANSFORMATION", allow_regression=True)

    def test_to_dict_payload(self):
        err = MissingApprovalsError(["PROJECT_MANAGER"])
        assert err.to_dict() == {
            "code": E.MISSING_APPROVALS,
            "message": "Stage progression requires approvals.",
            "details": {"missing_approvals": ["PROJECT_MANAGER"]},
        }
