from app.db.models import Stage, StageStatus
from app.services.stage_gates import (
    PARTNER_MISSING_REASON,
    STAGE_GATES,
    ProgressSnapshot,
    can_advance,
    evaluate_gates,
)


def snap(stage=Stage.COMPACT, status=StageStatus.IN_PROGRESS):
    return ProgressSnapshot(stage=stage, status=status)


def test_every_stage_declares_gates():
    assert set(STAGE_GATES) == {0, 1, 2, 3, 4}
    assert all(STAGE_GATES[stage] for stage in STAGE_GATES)


def test_all_gates_satisfied_allows_advance():
    gates = evaluate_gates(Stage.COMPACT, {"compact_signed": True, "partner_signed_compact": True})
    decision = can_advance(snap(), snap(), gates)
    assert decision.can_advance is True
    assert decision.blocked_reason is None


def test_reason_is_first_unsatisfied_required_gate():
    gates = evaluate_gates(Stage.NEEDS, {})
    decision = can_advance(snap(Stage.NEEDS), snap(Stage.NEEDS), gates)
    assert decision.can_advance is False
    assert decision.blocked_reason == "Needs identified"

    gates = evaluate_gates(Stage.NEEDS, {"needs_identified": True})
    assert can_advance(snap(Stage.NEEDS), snap(Stage.NEEDS), gates).blocked_reason == "Needs confirmed"


def test_missing_facts_count_as_unsatisfied():
    gates = evaluate_gates(Stage.WITNESS, {"unrelated": True})
    assert [g.satisfied for g in gates] == [False]


def test_force_bypasses_soft_gates_only():
    soft_blocked = evaluate_gates(Stage.COMPACT, {"compact_signed": True})
    assert can_advance(snap(), snap(), soft_blocked).blocked_reason == "Partner signed the compact"
    assert can_advance(snap(), snap(), soft_blocked, force=True).can_advance is True

    hard_blocked = evaluate_gates(Stage.COMPACT, {"partner_signed_compact": True})
    decision = can_advance(snap(), snap(), hard_blocked, force=True)
    assert decision.can_advance is False
    assert decision.blocked_reason == "You signed the compact"


def test_missing_partner_blocks_unless_forced():
    gates = evaluate_gates(Stage.COMPACT, {"compact_signed": True})
    assert can_advance(snap(), None, gates).blocked_reason == PARTNER_MISSING_REASON
    assert can_advance(snap(), None, gates, force=True).can_advance is True


def test_structural_blocks():
    gates = evaluate_gates(Stage.COMPACT, {"compact_signed": True, "partner_signed_compact": True})
    assert can_advance(None, snap(), gates).blocked_reason == "Stage has not been started"
    assert can_advance(snap(status=StageStatus.NOT_STARTED), snap(), gates).blocked_reason == "Stage has not been started"
    assert can_advance(snap(status=StageStatus.COMPLETED), snap(), gates).blocked_reason == "Stage already completed"

    final = evaluate_gates(Stage.STRATEGIES, {"ranking_submitted": True, "agreement_confirmed": True})
    assert can_advance(snap(Stage.STRATEGIES), snap(Stage.STRATEGIES), final).blocked_reason == "Final stage reached"


def test_gate_pending_row_can_still_advance():
    gates = evaluate_gates(Stage.WITNESS, {"feel_heard_confirmed": True})
    assert can_advance(snap(Stage.WITNESS, StageStatus.GATE_PENDING), snap(Stage.WITNESS), gates).can_advance
