"""
Learned pattern store (LLKB) persistence.

Patterns live in ``<root>/learned-patterns.json``::

    {"version": "1.0.0", "lastUpdated": "...", "patterns": [...]}

Every mutation rewrites the whole document through a temp file and
``os.replace``. Reads are cached for ``cache_ttl`` seconds and the cache
is dropped on every write by this instance. There is no cross-process
lock: two processes writing at once can lose an update, so callers that
share a root must serialize access themselves.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import Field

from ..core.errors import ErrorContext, PatternStoreError
from ..core.ir import IRModel, IRPrimitive
from ..mapping.glossary import GlossaryNormalizer
from .confidence import DEFAULT_CONFIDENCE, calculate_confidence
from .promotion import (
    DEFAULT_PROMOTION_CRITERIA,
    PromotedPattern,
    PromotionCriteria,
    generate_regex_from_text,
    get_promotable_patterns,
)
from .similarity import calculate_similarity

logger = logging.getLogger(__name__)

PATTERNS_FILE = "learned-patterns.json"
EXPORT_FILE = "autogen-patterns.json"
STORE_VERSION = "1.0.0"

HIGH_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.3
DEFAULT_MIN_SIMILARITY = 0.7


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_pattern_id() -> str:
    return f"LP{uuid.uuid4().hex[:12]}".upper()


class LearnedPattern(IRModel):
    """One learned phrasing and the primitive it maps to."""

    id: str
    original_text: str
    normalized_text: str
    mapped_primitive: IRPrimitive
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0, le=1)
    source_journeys: list[str] = Field(default_factory=list)
    success_count: int = Field(default=0, ge=0)
    fail_count: int = Field(default=0, ge=0)
    last_used: str
    created_at: str
    promoted_to_core: bool = False
    promoted_at: str | None = None


class LlkbDocument(IRModel):
    version: str = STORE_VERSION
    last_updated: str | None = None
    patterns: list[LearnedPattern] = Field(default_factory=list)


@dataclass(frozen=True)
class LlkbMatch:
    pattern_id: str
    primitive: IRPrimitive
    confidence: float
    similarity: float = 1.0  # below 1.0 for a fuzzy match


@dataclass
class PruneResult:
    removed: int
    remaining: int
    removed_ids: list[str] = field(default_factory=list)


@dataclass
class LlkbStats:
    total: int = 0
    promoted: int = 0
    high_confidence: int = 0
    low_confidence: int = 0
    avg_confidence: float = 0.0
    total_successes: int = 0
    total_failures: int = 0


@dataclass
class ExportResult:
    exported: int
    path: Path


class LearnedPatternStore:
    """
    File-backed learned pattern store rooted at one directory.

    Args:
        root: Directory holding ``learned-patterns.json``.
        normalizer: Produces the lookup key for step text.
        cache_ttl: Seconds a loaded pattern list is reused.
        clock: Monotonic seconds, for cache expiry.
        now: Wall-clock time, for timestamps.
    """

    def __init__(
        self,
        root: Path,
        *,
        normalizer: GlossaryNormalizer | None = None,
        cache_ttl: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.root = Path(root)
        self.normalizer = normalizer or GlossaryNormalizer()
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._now = now
        self._cache: list[LearnedPattern] | None = None
        self._loaded_at = 0.0

    @property
    def path(self) -> Path:
        return self.root / PATTERNS_FILE

    def normalize(self, text: str) -> str:
        return self.normalizer.normalize(text.strip())

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def invalidate_cache(self) -> None:
        self._cache = None

    def load(self, *, bypass_cache: bool = False) -> list[LearnedPattern]:
        """Load all patterns. A missing or unreadable file reads as empty."""
        if (
            not bypass_cache
            and self._cache is not None
            and self._clock() - self._loaded_at < self.cache_ttl
        ):
            return list(self._cache)

        patterns = self._read()
        self._cache = patterns
        self._loaded_at = self._clock()
        return list(patterns)

    def _read(self) -> list[LearnedPattern]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return list(LlkbDocument.model_validate(data).patterns)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load learned patterns from {self.path}: {e}")
            return []

    def save(self, patterns: Iterable[LearnedPattern]) -> Path:
        """Atomically replace the stored pattern list."""
        document = LlkbDocument(
            version=STORE_VERSION,
            last_updated=self._now().isoformat(),
            patterns=list(patterns),
        )
        payload = json.dumps(document.to_dict(), indent=2, ensure_ascii=False)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".learned-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PatternStoreError(
                f"Cannot write learned patterns: {e}", ErrorContext(file=self.path)
            ) from e
        finally:
            self.invalidate_cache()
        logger.debug(f"Saved {len(document.patterns)} learned patterns to {self.path}")
        return self.path

    # -------------------------------------------------------------------------
    # Matching and learning
    # -------------------------------------------------------------------------

    def match(
        self,
        text: str,
        min_confidence: float = HIGH_CONFIDENCE,
        *,
        use_fuzzy_match: bool = True,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> LlkbMatch | None:
        """Best unpromoted pattern for ``text`` at or above ``min_confidence``.

        An exact match on the normalized text wins outright. Otherwise, with
        ``use_fuzzy_match``, the most similar pattern at or above
        ``min_similarity`` is returned with its confidence scaled by that
        similarity.
        """
        key = self.normalize(text)
        candidates = [
            p for p in self.load() if p.confidence >= min_confidence and not p.promoted_to_core
        ]
        exact = [p for p in candidates if p.normalized_text == key]
        if exact:
            best = max(exact, key=lambda p: p.confidence)
            return LlkbMatch(
                pattern_id=best.id, primitive=best.mapped_primitive, confidence=best.confidence
            )
        if not use_fuzzy_match:
            return None

        best_pattern: LearnedPattern | None = None
        best_similarity = 0.0
        for pattern in candidates:
            similarity = calculate_similarity(key, pattern.normalized_text)
            if similarity >= min_similarity and similarity > best_similarity:
                best_pattern, best_similarity = pattern, similarity
        if best_pattern is None:
            return None
        logger.debug(f"Fuzzy LLKB match {best_pattern.id} (similarity {best_similarity:.3f})")
        return LlkbMatch(
            pattern_id=best_pattern.id,
            primitive=best_pattern.mapped_primitive,
            confidence=best_pattern.confidence * best_similarity,
            similarity=best_similarity,
        )

    def find(self, text: str) -> LearnedPattern | None:
        key = self.normalize(text)
        return next((p for p in self.load() if p.normalized_text == key), None)

    def record_success(
        self, text: str, primitive: IRPrimitive, journey_id: str
    ) -> LearnedPattern:
        """Create the pattern for ``text`` or count one more success for it."""
        patterns = self.load(bypass_cache=True)
        key = self.normalize(text)
        timestamp = self._now().isoformat()

        for index, existing in enumerate(patterns):
            if existing.normalized_text != key:
                continue
            success_count = existing.success_count + 1
            journeys = list(existing.source_journeys)
            if journey_id not in journeys:
                journeys.append(journey_id)
            updated = existing.model_copy(
                update={
                    "success_count": success_count,
                    "confidence": calculate_confidence(success_count, existing.fail_count),
                    "last_used": timestamp,
                    "source_journeys": journeys,
                }
            )
            patterns[index] = updated
            self.save(patterns)
            return updated

        created = LearnedPattern(
            id=generate_pattern_id(),
            original_text=text.strip(),
            normalized_text=key,
            mapped_primitive=primitive,
            confidence=DEFAULT_CONFIDENCE,
            source_journeys=[journey_id],
            success_count=1,
            fail_count=0,
            last_used=timestamp,
            created_at=timestamp,
        )
        patterns.append(created)
        self.save(patterns)
        logger.info(f"Learned new pattern {created.id} from {journey_id}: {text.strip()!r}")
        return created

    def record_failure(self, text: str, journey_id: str) -> LearnedPattern | None:
        """Count a failure against the pattern for ``text``; None if unknown."""
        patterns = self.load(bypass_cache=True)
        key = self.normalize(text)

        for index, existing in enumerate(patterns):
            if existing.normalized_text != key:
                continue
            fail_count = existing.fail_count + 1
            updated = existing.model_copy(
                update={
                    "fail_count": fail_count,
                    "confidence": calculate_confidence(existing.success_count, fail_count),
                    "last_used": self._now().isoformat(),
                }
            )
            patterns[index] = updated
            self.save(patterns)
            logger.debug(f"Recorded failure for {updated.id} from {journey_id}")
            return updated
        return None

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def promotable(
        self, criteria: PromotionCriteria = DEFAULT_PROMOTION_CRITERIA
    ) -> list[PromotedPattern]:
        return get_promotable_patterns(self.load(), criteria)

    def mark_promoted(self, pattern_ids: Iterable[str]) -> int:
        """Flag patterns as promoted into the grammar. Returns the number changed."""
        ids = set(pattern_ids)
        timestamp = self._now().isoformat()
        patterns = self.load(bypass_cache=True)
        changed = 0
        for index, pattern in enumerate(patterns):
            if pattern.id in ids and not pattern.promoted_to_core:
                patterns[index] = pattern.model_copy(
                    update={"promoted_to_core": True, "promoted_at": timestamp}
                )
                changed += 1
        if changed:
            self.save(patterns)
        return changed

    def prune(
        self,
        *,
        max_age_days: int = 90,
        min_confidence: float = LOW_CONFIDENCE,
        min_success: int = 1,
    ) -> PruneResult:
        """Drop unpromoted patterns below the retention bar.

        Promoted patterns are always kept. Others go when their confidence
        is under ``min_confidence``, when they have fewer than
        ``min_success`` successes, or when they are older than
        ``max_age_days`` without a single success.
        """
        patterns = self.load(bypass_cache=True)
        cutoff = self._now() - timedelta(days=max_age_days)
        kept: list[LearnedPattern] = []
        removed_ids: list[str] = []

        for pattern in patterns:
            if pattern.promoted_to_core:
                kept.append(pattern)
                continue
            stale = _parse_timestamp(pattern.created_at) < cutoff and pattern.success_count == 0
            if (
                pattern.confidence < min_confidence
                or (min_success > 0 and pattern.success_count < min_success)
                or stale
            ):
                removed_ids.append(pattern.id)
                continue
            kept.append(pattern)

        if removed_ids:
            self.save(kept)
            logger.info(f"Pruned {len(removed_ids)} learned patterns")
        return PruneResult(removed=len(removed_ids), remaining=len(kept), removed_ids=removed_ids)

    def stats(self) -> LlkbStats:
        patterns = self.load()
        if not patterns:
            return LlkbStats()
        return LlkbStats(
            total=len(patterns),
            promoted=sum(1 for p in patterns if p.promoted_to_core),
            high_confidence=sum(1 for p in patterns if p.confidence >= HIGH_CONFIDENCE),
            low_confidence=sum(1 for p in patterns if p.confidence < LOW_CONFIDENCE),
            avg_confidence=sum(p.confidence for p in patterns) / len(patterns),
            total_successes=sum(p.success_count for p in patterns),
            total_failures=sum(p.fail_count for p in patterns),
        )

    def export(
        self, output_path: Path | None = None, *, min_confidence: float = HIGH_CONFIDENCE
    ) -> ExportResult:
        """Write unpromoted patterns at or above ``min_confidence`` as trigger regexes."""
        exportable = [
            p for p in self.load() if p.confidence >= min_confidence and not p.promoted_to_core
        ]
        document = {
            "version": STORE_VERSION,
            "exportedAt": self._now().isoformat(),
            "patterns": [
                {
                    "id": p.id,
                    "trigger": generate_regex_from_text(p.original_text),
                    "primitive": p.to_dict()["mappedPrimitive"],
                    "confidence": p.confidence,
                    "sourceCount": len(p.source_journeys),
                }
                for p in exportable
            ],
        }
        target = output_path or self.root / EXPORT_FILE
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        return ExportResult(exported=len(exportable), path=target)

    def clear(self) -> None:
        """Delete every learned pattern."""
        self.path.unlink(missing_ok=True)
        self.invalidate_cache()


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
