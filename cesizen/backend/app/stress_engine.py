from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

MODERATE_THRESHOLD = 150
HIGH_THRESHOLD = 300


class RiskTier(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"

    @property
    def label(self) -> str:
        return TIER_LABELS[self]

    @property
    def interpretation(self) -> str:
        return TIER_INTERPRETATIONS[self]


TIER_LABELS: Dict[RiskTier, str] = {
    RiskTier.LOW: "Faible risque",
    RiskTier.MODERATE: "Risque modéré",
    RiskTier.HIGH: "Risque élevé",
}

TIER_INTERPRETATIONS: Dict[RiskTier, str] = {
    RiskTier.LOW: "Risque faible de problème de santé lié au stress (moins de 30%)",
    RiskTier.MODERATE: "Risque modéré de problème de santé lié au stress (30% à 50%)",
    RiskTier.HIGH: "Risque élevé de problème de santé lié au stress (plus de 80%)",
}


class EventCategory(str, Enum):
    FAMILIAL = "Familial"
    PERSONNEL = "Personnel"
    SANTE = "Santé"
    PROFESSIONNEL = "Professionnel"
    FINANCIER = "Financier"
    AUTRE = "Autre"


class DiagnosticError(Exception):
    """Base class for failures surfaced by the diagnostic flow."""


class InvalidSubmission(DiagnosticError):
    def __init__(self, message: str = "Select at least one event.", unknown_ids: Optional[List[int]] = None):
        super().__init__(message)
        self.unknown_ids = unknown_ids or []


class CatalogUnavailable(DiagnosticError):
    pass


@dataclass(frozen=True)
class StressEvent:
    id: int
    label: str
    weight: int
    category: EventCategory = EventCategory.AUTRE
    description: str = ""

    def __post_init__(self) -> None:
        if self.weight <= 0:
            raise ValueError(f"Stress event {self.id} must have a positive weight, got {self.weight}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "weight": self.weight,
            "category": self.category.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class DiagnosticSubmission:
    selected_event_ids: Tuple[int, ...]
    user_id: Optional[int] = None

    @classmethod
    def from_ids(cls, ids: Iterable[int], user_id: Optional[int] = None) -> "DiagnosticSubmission":
        return cls(selected_event_ids=tuple(dict.fromkeys(ids)), user_id=user_id)


@dataclass(frozen=True)
class DiagnosticResult:
    total_score: int
    risk_tier: RiskTier
    interpretation: str
    selected_events: Tuple[StressEvent, ...]
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def risk_label(self) -> str:
        return self.risk_tier.label

    @property
    def selected_event_ids(self) -> List[int]:
        return [event.id for event in self.selected_events]

    def to_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "risk_tier": self.risk_tier.value,
            "risk_label": self.risk_label,
            "interpretation": self.interpretation,
            "selected_events": [event.to_dict() for event in self.selected_events],
            "created_at": self.created_at.isoformat(),
        }


def classify_score(total_score: int) -> RiskTier:
    if total_score < MODERATE_THRESHOLD:
        return RiskTier.LOW
    if total_score < HIGH_THRESHOLD:
        return RiskTier.MODERATE
    return RiskTier.HIGH


def resolve_events(
    selected_event_ids: Iterable[int],
    catalog: Mapping[int, StressEvent],
) -> Tuple[List[StressEvent], List[int]]:
    resolved: List[StressEvent] = []
    unknown: List[int] = []
    for event_id in dict.fromkeys(selected_event_ids):
        event = catalog.get(event_id)
        if event is None:
            unknown.append(event_id)
        else:
            resolved.append(event)
    return resolved, unknown


def score(
    selected_event_ids: Iterable[int],
    catalog: Mapping[int, StressEvent],
    strict_ids: bool = False,
    now: Optional[datetime] = None,
) -> DiagnosticResult:
    """Score a Holmes-Rahe selection against ``catalog``.

    Duplicate ids count once. Ids missing from the catalog are dropped unless
    ``strict_ids`` is set, in which case they reject the whole submission.
    Raises :class:`InvalidSubmission` when nothing usable is selected.
    """
    ids = list(selected_event_ids)
    if not ids:
        raise InvalidSubmission()

    resolved, unknown = resolve_events(ids, catalog)
    if unknown and strict_ids:
        raise InvalidSubmission(f"Unknown event IDs: {unknown}", unknown_ids=unknown)
    if not resolved:
        raise InvalidSubmission(unknown_ids=unknown)

    total_score = sum(event.weight for event in resolved)
    tier = classify_score(total_score)
    return DiagnosticResult(
        total_score=total_score,
        risk_tier=tier,
        interpretation=tier.interpretation,
        selected_events=tuple(resolved),
        created_at=now or datetime.utcnow(),
    )


def score_submission(
    submission: DiagnosticSubmission,
    catalog: Mapping[int, StressEvent],
    strict_ids: bool = False,
    now: Optional[datetime] = None,
) -> DiagnosticResult:
    return score(submission.selected_event_ids, catalog, strict_ids=strict_ids, now=now)
