"""
SQLAlchemy database models.

All models are organized by domain:
- base: Base declarative class
- user: User accounts and push subscriptions
- sessions: Conversation sessions and participant vessels
- stage: Per-user stage progress
- emotion: Emotional readings and exercise completions
- invitation: Partner invitations
- empathy: Empathy drafts, shared attempts and validations
- resolution: Needs and strategies

Import any model from this module:
    from app.db.models import User, Session, StageProgress
"""

# Base class (must be imported first)
from .base import Base

# User models
from .user import User, PushSubscription

# Session models
from .sessions import Session, SessionStatus, UserVessel

# Stage models
from .stage import Stage, StageStatus, StageProgress

# Emotional barometer
from .emotion import EmotionalReading, EmotionalExerciseCompletion, ExerciseType

# Invitations
from .invitation import Invitation, InvitationStatus

# Empathy stage
from .empathy import EmpathyDraft, EmpathyAttempt, EmpathyValidation

# Needs and strategies
from .resolution import IdentifiedNeed, Strategy, StrategyRanking

# Export all models
__all__ = [
    # Base
    "Base",
    # User
    "User",
    "PushSubscription",
    # Session
    "Session",
    "SessionStatus",
    "UserVessel",
    # Stage
    "Stage",
    "StageStatus",
    "StageProgress",
    # Emotion
    "EmotionalReading",
    "EmotionalExerciseCompletion",
    "ExerciseType",
    # Invitation
    "Invitation",
    "InvitationStatus",
    # Empathy
    "EmpathyDraft",
    "EmpathyAttempt",
    "EmpathyValidation",
    # Resolution
    "IdentifiedNeed",
    "Strategy",
    "StrategyRanking",
]
