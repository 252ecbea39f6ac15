"""
Empathy stage: private drafts, consent-to-share and partner validation.

A shared attempt is immutable. The partner's attempt is revealed only after
the requesting user has shared their own.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, ConsentRequiredError, ValidationError
from app.db.models import EmpathyAttempt, EmpathyDraft, EmpathyValidation, Session, Stage
from app.schemas.empathy import (
    ConsentToShareResponse,
    EmpathyAttemptDTO,
    EmpathyDraftDTO,
    GetEmpathyDraftResponse,
    GetPartnerEmpathyResponse,
    SaveEmpathyDraftResponse,
    ValidateEmpathyResponse,
)
from app.services.realtime import dispatch_partner_event
from app.services.sessions import utcnow
from app.services.stages import evaluate_for, partner_validated_attempt, require_stage

log = logging.getLogger(__name__)


async def get_draft(db: AsyncSession, session_id: str, user_id: int) -> EmpathyDraft | None:
    return await db.scalar(
        select(EmpathyDraft).where(
            EmpathyDraft.session_id == session_id,
            EmpathyDraft.user_id == user_id,
        )
    )


async def get_attempt(db: AsyncSession, session_id: str, source_user_id: int) -> EmpathyAttempt | None:
    return await db.scalar(
        select(EmpathyAttempt).where(
            EmpathyAttempt.session_id == session_id,
            EmpathyAttempt.source_user_id == source_user_id,
        )
    )


async def latest_validation(db: AsyncSession, attempt_id: str, user_id: int) -> EmpathyValidation | None:
    return await db.scalar(
        select(EmpathyValidation)
        .where(
            EmpathyValidation.attempt_id == attempt_id,
            EmpathyValidation.user_id == user_id,
        )
        .order_by(EmpathyValidation.validated_at.desc(), EmpathyValidation.id.desc())
        .limit(1)
    )


def attempt_dto(attempt: EmpathyAttempt | None) -> EmpathyAttemptDTO | None:
    return EmpathyAttemptDTO.model_validate(attempt) if attempt else None


async def save_draft(
    db: AsyncSession,
    session: Session,
    user_id: int,
    content: str,
    ready_to_share: bool,
) -> SaveEmpathyDraftResponse:
    await require_stage(db, session.id, user_id, Stage.EMPATHY)

    if await get_attempt(db, session.id, user_id) is not None:
        raise ConflictError("Empathy statement already shared and can no longer be edited")

    draft = await get_draft(db, session.id, user_id)
    if draft is None:
        draft = EmpathyDraft(session_id=session.id, user_id=user_id, content=content, version=1)
        db.add(draft)
    else:
        draft.content = content
        draft.version += 1
    draft.ready_to_share = ready_to_share
    draft.updated_at = utcnow()

    await db.commit()
    await db.refresh(draft)

    return SaveEmpathyDraftResponse(
        draft=EmpathyDraftDTO.model_validate(draft),
        ready_to_share=draft.ready_to_share,
    )


async def read_draft(db: AsyncSession, session: Session, user_id: int) -> GetEmpathyDraftResponse:
    draft = await get_draft(db, session.id, user_id)
    attempt = await get_attempt(db, session.id, user_id)
    return GetEmpathyDraftResponse(
        draft=EmpathyDraftDTO.model_validate(draft) if draft else None,
        can_consent=bool(draft and draft.ready_to_share) and attempt is None,
        already_consented=attempt is not None,
    )


async def consent_to_share(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    consent: bool,
    final_content: str | None = None,
) -> ConsentToShareResponse:
    """
    Turns the user's draft into a shared attempt. Declining consent is a
    no-op that keeps the draft private.
    """
    await require_stage(db, session.id, user_id, Stage.EMPATHY)

    if not consent:
        return ConsentToShareResponse(consented=False, waiting_for_partner=False)

    existing = await get_attempt(db, session.id, user_id)
    if existing is not None:
        raise ConflictError("Empathy statement already shared")

    draft = await get_draft(db, session.id, user_id)
    content = final_content or (draft.content if draft else None)
    if not content:
        raise ValidationError("Save an empathy draft before sharing it")

    attempt = EmpathyAttempt(
        session_id=session.id,
        source_user_id=user_id,
        draft_id=draft.id if draft else None,
        content=content,
        shared_at=utcnow(),
    )
    db.add(attempt)
    if draft is not None and final_content:
        draft.content = final_content
        draft.version += 1

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Empathy statement already shared")
    await db.refresh(attempt)

    partner_attempt = await get_attempt(db, session.id, partner_id) if partner_id else None

    await dispatch_partner_event(
        session.id, partner_id, "partner.empathy_shared", {"userId": user_id, "attemptId": attempt.id}
    )

    return ConsentToShareResponse(
        consented=True,
        consented_at=attempt.shared_at,
        waiting_for_partner=partner_attempt is None,
        partner_attempt=attempt_dto(partner_attempt),
    )


async def get_partner_empathy(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
) -> GetPartnerEmpathyResponse:
    own = await get_attempt(db, session.id, user_id)
    partner_attempt = await get_attempt(db, session.id, partner_id) if partner_id else None

    # mutual reveal: nothing is shown until both attempts exist
    if own is None or partner_attempt is None:
        return GetPartnerEmpathyResponse(
            attempt=None,
            waiting_for_partner=True,
            validated=False,
            awaiting_revision=False,
        )

    validation = await latest_validation(db, partner_attempt.id, user_id)
    return GetPartnerEmpathyResponse(
        attempt=attempt_dto(partner_attempt),
        waiting_for_partner=False,
        validated=bool(validation and validation.validated),
        validated_at=validation.validated_at if validation else None,
        awaiting_revision=bool(validation and not validation.validated),
    )


async def validate_empathy(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    validated: bool,
    feedback: str | None = None,
    consent_to_share_feedback: bool = False,
) -> ValidateEmpathyResponse:
    """Records how accurately the partner's attempt reflects the user."""
    await require_stage(db, session.id, user_id, Stage.EMPATHY)

    if await get_attempt(db, session.id, user_id) is None:
        raise ConsentRequiredError("Share your own empathy statement before validating your partner's")

    partner_attempt = await get_attempt(db, session.id, partner_id) if partner_id else None
    if partner_attempt is None:
        raise ConsentRequiredError("Your partner has not shared an empathy statement yet")

    validation = EmpathyValidation(
        attempt_id=partner_attempt.id,
        user_id=user_id,
        validated=validated,
        feedback=feedback,
        feedback_shared=bool(feedback) and consent_to_share_feedback,
        validated_at=utcnow(),
    )
    db.add(validation)
    await db.commit()

    if not validated:
        log.info("Empathy attempt %s in session %s not validated", partner_attempt.id, session.id)

    _, _, _, decision = await evaluate_for(db, session.id, user_id, partner_id)

    await dispatch_partner_event(
        session.id,
        partner_id,
        "partner.stage_completed",
        {"userId": user_id, "stage": Stage.EMPATHY, "validated": validated},
    )

    return ValidateEmpathyResponse(
        validated=validated,
        validated_at=validation.validated_at,
        feedback_shared=validation.feedback_shared,
        awaiting_revision=not validated,
        can_advance=decision.can_advance,
        partner_validated=await partner_validated_attempt(db, session.id, user_id),
    )
