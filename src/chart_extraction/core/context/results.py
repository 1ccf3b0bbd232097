# ============================================================================
# src/chart_extraction/core/context/results.py
# ============================================================================
"""
Derived result records
- Invariant violations and the checker's report
- Document/field confidence
- Chart conflicts
- Merge decision

All of these describe problems as data. None of them is ever raised.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .enums import ConflictType, DocumentStatus, MergeCategory, Severity, ViolationCode


def _round(value: float) -> float:
    return round(value, 2)


@dataclass(frozen=True)
class Violation:
    code: ViolationCode
    message: str
    severity: Severity

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL

    def to_dict(self) -> Dict[str, str]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class InvariantReport:
    """
    Outcome of the structural checks.

    `violations` holds header-present/list-empty failures; `notes` holds
    info-level audit entries (filtered medications, NKDA auto-correction).
    """
    violations: Tuple[Violation, ...] = ()
    notes: Tuple[Violation, ...] = ()
    header_flags: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "violations", tuple(self.violations))
        object.__setattr__(self, "notes", tuple(self.notes))
        object.__setattr__(self, "header_flags", MappingProxyType(dict(self.header_flags)))

    @property
    def has_critical(self) -> bool:
        return any(v.is_critical for v in self.violations)

    @property
    def has_warnings(self) -> bool:
        return any(v.severity == Severity.WARNING for v in self.violations)

    @property
    def passed(self) -> bool:
        return not self.has_critical

    @property
    def penalized_count(self) -> int:
        """Violations that cost confidence (every missing-list violation)."""
        return len(self.violations)

    @property
    def issues(self) -> Tuple[Violation, ...]:
        return self.violations + self.notes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "has_critical": self.has_critical,
            "has_warnings": self.has_warnings,
            "issues": [v.to_dict() for v in self.issues],
            "header_flags": dict(self.header_flags),
        }


@dataclass(frozen=True)
class Confidence:
    score: float = 0.0
    field_confidence: Mapping[str, float] = field(default_factory=dict)
    breakdown: Mapping[str, float] = field(default_factory=dict)
    missing_fields: Tuple[str, ...] = ()
    level: str = "low"

    def __post_init__(self):
        object.__setattr__(self, "field_confidence", MappingProxyType(dict(self.field_confidence)))
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))
        object.__setattr__(self, "missing_fields", tuple(self.missing_fields))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": _round(self.score),
            "level": self.level,
            "breakdown": {k: _round(v) for k, v in self.breakdown.items()},
            "field_confidence": {k: _round(v) for k, v in self.field_confidence.items()},
            "missing_fields": list(self.missing_fields),
        }


@dataclass(frozen=True)
class Conflict:
    """One mismatch between incoming facts and the stored chart."""
    field: str
    conflict_type: ConflictType
    existing: Any
    incoming: Any
    severity: Severity
    message: str
    blocked_categories: Tuple[MergeCategory, ...] = ()
    evidence: Tuple[str, ...] = ()
    action: str = "blocked_merge_needs_review"

    def __post_init__(self):
        object.__setattr__(self, "blocked_categories", tuple(self.blocked_categories))
        object.__setattr__(self, "evidence", tuple(self.evidence))

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL

    @property
    def approvable(self) -> bool:
        """A record-number mismatch may point at the wrong patient."""
        return self.conflict_type != ConflictType.RECORD_NUMBER_MISMATCH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "type": self.conflict_type.value,
            "existing": _plain(self.existing),
            "incoming": _plain(self.incoming),
            "severity": self.severity.value,
            "message": self.message,
            "action": self.action,
            "blocked_categories": [c.value for c in self.blocked_categories],
            "evidence": list(self.evidence),
        }


def _plain(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value


@dataclass(frozen=True)
class ConflictReport:
    conflicts: Tuple[Conflict, ...] = ()
    safe_to_merge: Mapping[MergeCategory, bool] = field(
        default_factory=lambda: {c: True for c in MergeCategory}
    )

    def __post_init__(self):
        object.__setattr__(self, "conflicts", tuple(self.conflicts))
        object.__setattr__(self, "safe_to_merge", MappingProxyType(dict(self.safe_to_merge)))

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def has_critical(self) -> bool:
        return any(c.is_critical for c in self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_conflicts": self.has_conflicts,
            "has_critical": self.has_critical,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "safe_to_merge": {c.value: self.safe_to_merge[c] for c in MergeCategory},
        }


@dataclass(frozen=True)
class MergeDecision:
    can_merge: bool
    needs_review: bool
    status: DocumentStatus
    reasons: Tuple[str, ...] = ()
    safe_to_merge: Mapping[MergeCategory, bool] = field(
        default_factory=lambda: {c: True for c in MergeCategory}
    )
    auto_merge: bool = False
    # Confidence and invariants allow merging, conflicts aside
    eligible: bool = False

    def __post_init__(self):
        object.__setattr__(self, "reasons", tuple(self.reasons))
        object.__setattr__(self, "safe_to_merge", MappingProxyType(dict(self.safe_to_merge)))

    @property
    def eligible_categories(self) -> List[MergeCategory]:
        if not self.can_merge:
            return []
        return [c for c in MergeCategory if self.safe_to_merge.get(c, False)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_merge": self.can_merge,
            "needs_review": self.needs_review,
            "auto_merge": self.auto_merge,
            "eligible": self.eligible,
            "status": self.status.value,
            "reasons": list(self.reasons),
            "safe_to_merge": {c.value: self.safe_to_merge.get(c, False) for c in MergeCategory},
        }


def blocked_decision(reason: str, status: DocumentStatus = DocumentStatus.NEEDS_REVIEW,
                     extra: Optional[List[str]] = None) -> MergeDecision:
    """A decision that merges nothing."""
    return MergeDecision(
        can_merge=False,
        needs_review=True,
        status=status,
        reasons=[reason] + list(extra or []),
        safe_to_merge={c: False for c in MergeCategory},
    )
