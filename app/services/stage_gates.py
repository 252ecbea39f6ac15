"""
Stage gates.

Each stage declares the gates a participant must satisfy before moving on.
A *hard* gate depends on the participant's own actions and always blocks.
A *soft* gate waits on the partner and can be bypassed with ``force``.

The functions here are pure: callers collect the facts from the database
(see ``app.services.stages``) and pass them in.
"""

from dataclasses import dataclass

from app.db.models import Stage, StageStatus


@dataclass(frozen=True)
class GateSpec:
    id: str
    description: str
    required_for_advance: bool = True
    soft: bool = False


@dataclass(frozen=True)
class GateResult:
    id: str
    description: str
    satisfied: bool
    required_for_advance: bool
    soft: bool


@dataclass(frozen=True)
class ProgressSnapshot:
    stage: int
    status: str


@dataclass(frozen=True)
class AdvanceDecision:
    can_advance: bool
    blocked_reason: str | None = None


STAGE_GATES: dict[int, tuple[GateSpec, ...]] = {
    Stage.COMPACT: (
        GateSpec("compact_signed", "You signed the compact"),
        GateSpec("partner_signed_compact", "Partner signed the compact", soft=True),
    ),
    Stage.WITNESS: (
        GateSpec("feel_heard_confirmed", "Feel heard confirmed"),
    ),
    Stage.EMPATHY: (
        GateSpec("empathy_shared", "Empathy statement shared with partner"),
        GateSpec("partner_validated_empathy", "Partner validated your empathy statement", soft=True),
    ),
    Stage.NEEDS: (
        GateSpec("needs_identified", "Needs identified"),
        GateSpec("needs_confirmed", "Needs confirmed"),
    ),
    Stage.STRATEGIES: (
        GateSpec("ranking_submitted", "Strategy ranking submitted"),
        GateSpec("agreement_confirmed", "Agreement confirmed"),
    ),
}

PARTNER_MISSING_REASON = "Partner has not joined the session"


def evaluate_gates(stage: int, facts: dict[str, bool]) -> list[GateResult]:
    """Applies ``facts`` (gate id -> satisfied) to the gates of ``stage``."""
    return [
        GateResult(
            id=gate.id,
            description=gate.description,
            satisfied=bool(facts.get(gate.id, False)),
            required_for_advance=gate.required_for_advance,
            soft=gate.soft,
        )
        for gate in STAGE_GATES.get(stage, ())
    ]


def can_advance(
    mine: ProgressSnapshot | None,
    partner: ProgressSnapshot | None,
    gates: list[GateResult],
    force: bool = False,
) -> AdvanceDecision:
    """
    Decides whether the participant may leave their current stage.

    Structural checks come first (stage started, not already completed, not
    the final stage), then the partner's presence in the session, then the
    gates in declaration order. The reason is the first blocking condition.
    """
    if mine is None or mine.status == StageStatus.NOT_STARTED:
        return AdvanceDecision(False, "Stage has not been started")
    if mine.status == StageStatus.COMPLETED:
        return AdvanceDecision(False, "Stage already completed")
    if mine.stage >= Stage.LAST:
        return AdvanceDecision(False, "Final stage reached")

    if partner is None and not force:
        return AdvanceDecision(False, PARTNER_MISSING_REASON)

    for gate in gates:
        if gate.satisfied or not gate.required_for_advance:
            continue
        if force and gate.soft:
            continue
        return AdvanceDecision(False, gate.description)

    return AdvanceDecision(True)
