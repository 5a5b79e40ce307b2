"""Value types shared by the keyword expansion, enrichment and relevancy pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

KeywordDifficulty = Literal["UNKNOWN", "LOW", "MEDIUM", "HIGH"]

DIFFICULTY_UNKNOWN: KeywordDifficulty = "UNKNOWN"
DIFFICULTY_LOW: KeywordDifficulty = "LOW"
DIFFICULTY_MEDIUM: KeywordDifficulty = "MEDIUM"
DIFFICULTY_HIGH: KeywordDifficulty = "HIGH"


@dataclass(frozen=True, slots=True)
class RawSource:
    """Provider-tagged vendor payload, stored as-is and never introspected."""

    provider: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {"provider": self.provider, "payload": dict(self.payload)}

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> RawSource | None:
        if not isinstance(data, dict) or not data.get("provider"):
            return None
        payload = data.get("payload")
        return cls(provider=str(data["provider"]), payload=payload if isinstance(payload, dict) else {})


@dataclass(slots=True)
class RawKeywordSuggestion:
    """One unprocessed result row returned by a keyword lookup vendor."""

    text: str
    raw_volume: str | None
    raw_difficulty: str | None
    last_updated: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class KeywordCandidate:
    """Keyword with enrichment metrics; `keyword` is the natural key."""

    keyword: str
    search_volume: int
    difficulty: KeywordDifficulty = DIFFICULTY_UNKNOWN
    last_updated: datetime | None = None
    provider: str | None = None
    raw_source: RawSource | None = None


@dataclass(frozen=True, slots=True)
class KeywordRefs:
    """Ordered keyword ids as stored on a website profile (unresolved)."""

    ids: tuple[str, ...] = ()

    @classmethod
    def from_ids(cls, ids: list[str] | None) -> KeywordRefs:
        return cls(ids=tuple(str(keyword_id) for keyword_id in ids or []))

    def __bool__(self) -> bool:
        return bool(self.ids)

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True, slots=True)
class BusinessContext:
    """What the keyword classifiers and expanders need to know about the business."""

    domain: str
    business_overview: str = ""
    icps: tuple[str, ...] = ()
    intents: tuple[str, ...] = ()


@dataclass(slots=True)
class KeywordExpansion:
    """Search variations generated for one seed keyword."""

    original: str
    expanded: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RelevancyVerdict:
    """Classifier answer for one batch, as keyword texts."""

    relevant: list[str] = field(default_factory=list)
    irrelevant: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RelevancyResult:
    """Reconciled relevancy split of keyword candidates."""

    relevant: list[KeywordCandidate] = field(default_factory=list)
    irrelevant: list[KeywordCandidate] = field(default_factory=list)
