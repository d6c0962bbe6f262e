"""Tests for the learned pattern store."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from stepforge.core.errors import PatternStoreError
from stepforge.core.ir import Click, LocatorSpec, LocatorStrategy
from stepforge.llkb.store import (
    EXPORT_FILE,
    PATTERNS_FILE,
    LearnedPattern,
    LearnedPatternStore,
)

SAVE = Click(locator=LocatorSpec(strategy=LocatorStrategy.TEXT, value="Save"))


def learn(store: LearnedPatternStore, text: str, times: int, journey: str = "JRN-0001") -> None:
    for _ in range(times):
        store.record_success(text, SAVE, journey)


class TestRecording:
    def test_first_success_creates_pattern(self, store: LearnedPatternStore) -> None:
        created = store.record_success("  Persist the draft ", SAVE, "JRN-0001")
        assert created.id.startswith("LP")
        assert created.original_text == "Persist the draft"
        assert created.normalized_text == "persist the draft"
        assert created.confidence == 0.5
        assert created.success_count == 1
        assert created.source_journeys == ["JRN-0001"]
        assert store.path.exists()

    def test_same_normalized_text_updates(self, store: LearnedPatternStore) -> None:
        store.record_success("Persist the draft", SAVE, "JRN-0001")
        updated = store.record_success("PERSIST   the draft", SAVE, "JRN-0002")
        assert len(store.load()) == 1
        assert updated.success_count == 2
        assert updated.confidence < 0.5
        assert updated.source_journeys == ["JRN-0001", "JRN-0002"]

    def test_journeys_not_duplicated(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 3)
        assert store.find("Persist the draft").source_journeys == ["JRN-0001"]

    def test_failure_lowers_confidence(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 10)
        before = store.find("Persist the draft").confidence
        after = store.record_failure("Persist the draft", "JRN-0001")
        assert after.fail_count == 1
        assert after.confidence < before

    def test_failure_for_unknown_text(self, store: LearnedPatternStore) -> None:
        assert store.record_failure("Never seen", "JRN-0001") is None

    def test_timestamps_from_clock(self, store: LearnedPatternStore, clock) -> None:
        store.record_success("Persist the draft", SAVE, "JRN-0001")
        clock.advance(days=3)
        updated = store.record_success("Persist the draft", SAVE, "JRN-0001")
        assert updated.created_at.startswith("2025-01-01")
        assert updated.last_used.startswith("2025-01-04")


class TestPersistence:
    def test_document_shape(self, store: LearnedPatternStore) -> None:
        store.record_success("Persist the draft", SAVE, "JRN-0001")
        data = json.loads((store.root / PATTERNS_FILE).read_text())
        assert data["version"] == "1.0.0"
        assert "lastUpdated" in data
        pattern = data["patterns"][0]
        assert pattern["originalText"] == "Persist the draft"
        assert pattern["mappedPrimitive"]["type"] == "click"
        assert pattern["promotedToCore"] is False

    def test_reload_from_disk(self, store: LearnedPatternStore, tmp_path: Path) -> None:
        store.record_success("Persist the draft", SAVE, "JRN-0001")
        fresh = LearnedPatternStore(tmp_path / "llkb")
        loaded = fresh.load()
        assert len(loaded) == 1
        assert isinstance(loaded[0], LearnedPattern)
        assert loaded[0].mapped_primitive == SAVE

    def test_reads_are_cached_until_ttl(self, store: LearnedPatternStore, clock, tmp_path: Path) -> None:
        assert store.load() == []
        other = LearnedPatternStore(tmp_path / "llkb")
        other.record_success("Persist the draft", SAVE, "JRN-0001")
        assert store.load() == []
        clock.advance(seconds=10)
        assert len(store.load()) == 1

    def test_bypass_cache(self, store: LearnedPatternStore, tmp_path: Path) -> None:
        assert store.load() == []
        LearnedPatternStore(tmp_path / "llkb").record_success("Persist the draft", SAVE, "JRN-0001")
        assert len(store.load(bypass_cache=True)) == 1

    def test_corrupt_file_reads_empty(
        self, store: LearnedPatternStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        store.root.mkdir(parents=True)
        store.path.write_text("{not json")
        with caplog.at_level(logging.WARNING):
            assert store.load() == []
        assert "Failed to load learned patterns" in caplog.text

    def test_invalid_document_reads_empty(self, store: LearnedPatternStore) -> None:
        store.root.mkdir(parents=True)
        store.path.write_text(json.dumps({"patterns": [{"id": "x"}]}))
        assert store.load() == []

    def test_unwritable_root(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = LearnedPatternStore(blocker)
        with pytest.raises(PatternStoreError):
            store.record_success("Persist the draft", SAVE, "JRN-0001")

    def test_no_temp_files_left(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 2)
        assert [p.name for p in store.root.iterdir()] == [PATTERNS_FILE]


class TestMatching:
    def test_match_above_threshold(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        match = store.match("persist the draft")
        assert match is not None
        assert match.primitive == SAVE
        assert match.confidence >= 0.7

    def test_below_threshold(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 3)
        assert store.match("Persist the draft") is None
        assert store.match("Persist the draft", min_confidence=0.1) is not None

    def test_promoted_patterns_not_matched(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        pattern = store.find("Persist the draft")
        assert store.mark_promoted([pattern.id]) == 1
        assert store.match("Persist the draft") is None

    def test_normalization_applies(self, store: LearnedPatternStore) -> None:
        learn(store, "Tap the btn", 12)
        assert store.match("click the button") is not None

    def test_fuzzy_fallback(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        pattern = store.find("Persist the draft")
        match = store.match("Persist the drafts")
        assert match is not None
        assert match.pattern_id == pattern.id
        assert match.primitive == SAVE
        assert match.similarity == pytest.approx(17 / 18)
        assert match.confidence == pytest.approx(pattern.confidence * 17 / 18)

    def test_fuzzy_similarity_threshold(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        # 11 edits over 28 characters
        assert store.match("Persist the draft now please") is None
        match = store.match("Persist the draft now please", min_similarity=0.6)
        assert match is not None
        assert match.similarity == pytest.approx(17 / 28)

    def test_fuzzy_disabled(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        assert store.match("Persist the drafts", use_fuzzy_match=False) is None
        assert store.match("Persist the draft", use_fuzzy_match=False) is not None

    def test_fuzzy_skips_low_confidence_and_promoted(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 3)
        assert store.match("Persist the drafts") is None
        learn(store, "Persist the draft", 9)
        store.mark_promoted([store.find("Persist the draft").id])
        assert store.match("Persist the drafts") is None

    def test_exact_match_preferred(self, store: LearnedPatternStore) -> None:
        other = Click(locator=LocatorSpec(strategy=LocatorStrategy.TEXT, value="Keep"))
        learn(store, "Persist the draft", 20)
        for _ in range(12):
            store.record_success("Persist the drafts", other, "JRN-0001")
        match = store.match("Persist the drafts")
        assert match.primitive == other
        assert match.similarity == 1.0
        assert match.confidence == store.find("Persist the drafts").confidence

    def test_most_similar_pattern_wins(self, store: LearnedPatternStore) -> None:
        other = Click(locator=LocatorSpec(strategy=LocatorStrategy.TEXT, value="Keep"))
        learn(store, "Persist the draft", 20)
        for _ in range(12):
            store.record_success("Persist the drafts now", other, "JRN-0001")
        assert store.match("Persist the draft now").primitive == other


class TestMaintenance:
    def test_mark_promoted_is_idempotent(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 2)
        pattern_id = store.find("Persist the draft").id
        assert store.mark_promoted([pattern_id]) == 1
        assert store.mark_promoted([pattern_id]) == 0
        promoted = store.find("Persist the draft")
        assert promoted.promoted_to_core
        assert promoted.promoted_at is not None

    def test_prune_low_confidence(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        learn(store, "Flaky step", 1)
        for _ in range(4):
            store.record_failure("Flaky step", "JRN-0001")
        result = store.prune()
        assert result.removed == 1
        assert result.remaining == 1
        assert store.find("Flaky step") is None

    def test_prune_keeps_promoted(self, store: LearnedPatternStore) -> None:
        learn(store, "Flaky step", 1)
        for _ in range(4):
            store.record_failure("Flaky step", "JRN-0001")
        store.mark_promoted([store.find("Flaky step").id])
        assert store.prune().removed == 0

    def test_prune_stale_without_success(self, store: LearnedPatternStore, clock) -> None:
        stale = LearnedPattern(
            id="LPSTALE",
            original_text="Old step",
            normalized_text="old step",
            mapped_primitive=SAVE,
            last_used="2024-01-01T00:00:00+00:00",
            created_at="2024-01-01T00:00:00+00:00",
        )
        store.save([stale])
        result = store.prune(min_success=0, min_confidence=0.0)
        assert result.removed_ids == ["LPSTALE"]

    def test_prune_nothing_does_not_write(self, store: LearnedPatternStore) -> None:
        result = store.prune()
        assert (result.removed, result.remaining) == (0, 0)
        assert not store.path.exists()

    def test_stats(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 12)
        learn(store, "Flaky step", 1)
        store.record_failure("Flaky step", "JRN-0001")
        stats = store.stats()
        assert stats.total == 2
        assert stats.high_confidence == 1
        assert stats.total_successes == 13
        assert stats.total_failures == 1
        assert 0 < stats.avg_confidence < 1

    def test_empty_stats(self, store: LearnedPatternStore) -> None:
        assert store.stats().total == 0

    def test_export(self, store: LearnedPatternStore) -> None:
        learn(store, "User archives 'Report'", 12)
        learn(store, "Persist the draft", 2)
        result = store.export()
        assert result.exported == 1
        assert result.path == store.root / EXPORT_FILE
        data = json.loads(result.path.read_text())
        exported = data["patterns"][0]
        assert exported["trigger"] == "^(?:user\\s+)?archives '([^']+)'$"
        assert exported["primitive"]["type"] == "click"
        assert exported["sourceCount"] == 1

    def test_export_custom_path(self, store: LearnedPatternStore, tmp_path: Path) -> None:
        target = tmp_path / "out" / "patterns.json"
        result = store.export(target, min_confidence=0.0)
        assert result.path == target
        assert json.loads(target.read_text())["patterns"] == []

    def test_clear(self, store: LearnedPatternStore) -> None:
        learn(store, "Persist the draft", 1)
        store.clear()
        assert store.load() == []
        store.clear()
