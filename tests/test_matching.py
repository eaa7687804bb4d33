import threading

import cv2
import numpy as np
import pytest

from fingermatch import runtime
from fingermatch.alignment.phase_correlation import rotate_image, translate_image
from fingermatch.matching.hybrid_matcher import HybridMatcher
from fingermatch.matching.interface import (
    BaseMatcher,
    Decision,
    MatchCandidateResult,
    MatchResult
)
from fingermatch.matching.ncc_matcher import NCCMatcher, compute_ncc
from fingermatch.runtime import OperationCancelledError
from fingermatch.utils.config import Config, ScoringConfig


class MeanScoreMatcher(BaseMatcher):
    """Scores a candidate by its mean intensity."""

    def __init__(self, on_score=None, **kwargs):
        super().__init__(**kwargs)
        self.on_score = on_score
        self.calls = 0

    @property
    def name(self):
        return "MeanScore"

    def prepare_probe(self, probe):
        return None

    def score_candidate(self, probe_state, candidate):
        self.calls += 1
        if self.on_score is not None:
            self.on_score()
        score = float(candidate.mean())
        return score, {"mean": score / 100.0}


def flat(value):
    return np.full((8, 8), value, dtype=np.float64)


class TestResults:

    def test_confidence_is_clamped(self):
        assert MatchCandidateResult("a", 150.0, Decision.MATCH).confidence == 1.0
        assert MatchCandidateResult("a", 42.0, Decision.NO_MATCH).confidence == pytest.approx(0.42)

    def test_to_dict(self):
        candidate = MatchCandidateResult("a", 70.0, Decision.MATCH, {"pixel": 0.7}, 12.5)
        result = MatchResult(threshold_used=60.0, candidates=[candidate], elapsed_ms=20.0)

        data = result.to_dict()

        assert data["threshold_used"] == 60.0
        assert data["candidates"][0]["decision"] == "MATCH"
        assert data["candidates"][0]["feature_scores"] == {"pixel": 0.7}
        assert result.best is candidate

    def test_best_of_empty_result(self):
        assert MatchResult(threshold_used=58.0).best is None


class TestBaseMatcher:

    @pytest.mark.parametrize("score, decision", [
        (58.0, Decision.MATCH),
        (57.999, Decision.UNCERTAIN),
        (45.0, Decision.UNCERTAIN),
        (44.999, Decision.NO_MATCH),
        (100.0, Decision.MATCH),
        (0.0, Decision.NO_MATCH),
    ])
    def test_decision_bands(self, score, decision):
        assert MeanScoreMatcher().decide(score) == decision

    def test_inverted_thresholds_raise(self):
        with pytest.raises(ValueError):
            MeanScoreMatcher(match_threshold=40.0, uncertain_threshold=50.0)

    @pytest.mark.parametrize("num_workers", [1, 4])
    def test_results_sorted_by_score(self, num_workers):
        matcher = MeanScoreMatcher(num_workers=num_workers)
        candidates = {"low": flat(10), "high": flat(70), "mid": flat(50)}

        result = matcher.match(flat(0), candidates, threshold=30.0)

        assert [c.candidate_id for c in result.candidates] == ["high", "mid", "low"]
        assert [c.decision for c in result.candidates] == [
            Decision.MATCH, Decision.UNCERTAIN, Decision.NO_MATCH
        ]
        assert result.threshold_used == 30.0
        assert result.best.candidate_id == "high"

    def test_threshold_does_not_change_decisions(self):
        matcher = MeanScoreMatcher(num_workers=1)
        strict = matcher.match(flat(0), {"a": flat(60)}, threshold=99.0)
        assert strict.candidates[0].decision == Decision.MATCH

    def test_default_threshold_is_echoed(self):
        result = MeanScoreMatcher(num_workers=1).match(flat(0), {})
        assert result.threshold_used == 58.0

    def test_scores_are_clipped(self):
        result = MeanScoreMatcher(num_workers=1).match(flat(0), {"a": flat(250)})
        assert result.candidates[0].score == 100.0

    def test_empty_candidates(self):
        result = MeanScoreMatcher().match(flat(0), {})
        assert result.candidates == []
        assert result.best is None

    def test_unavailable_runtime_gives_zero_scores(self, monkeypatch):
        monkeypatch.setattr(runtime, "is_vision_available", lambda: False)
        matcher = MeanScoreMatcher()

        result = matcher.match(flat(0), {"a": flat(90), "b": flat(80)}, threshold=50.0)

        assert {c.candidate_id for c in result.candidates} == {"a", "b"}
        assert all(c.score == 0.0 for c in result.candidates)
        assert all(c.decision == Decision.NO_MATCH for c in result.candidates)
        assert result.threshold_used == 50.0
        assert matcher.calls == 0

    def test_cancel_before_start(self):
        event = threading.Event()
        event.set()
        matcher = MeanScoreMatcher()

        with pytest.raises(OperationCancelledError):
            matcher.match(flat(0), {"a": flat(10)}, cancel_event=event)
        assert matcher.calls == 0

    def test_cancel_skips_remaining_candidates(self):
        event = threading.Event()
        matcher = MeanScoreMatcher(on_score=event.set, num_workers=1)
        candidates = {str(i): flat(i) for i in range(5)}

        with pytest.raises(OperationCancelledError):
            matcher.match(flat(0), candidates, cancel_event=event)
        assert matcher.calls == 1

    def test_cancel_during_last_candidate_keeps_result(self):
        event = threading.Event()
        matcher = MeanScoreMatcher(on_score=event.set, num_workers=1)

        result = matcher.match(flat(0), {"only": flat(70)}, cancel_event=event)

        assert [c.candidate_id for c in result.candidates] == ["only"]
        assert result.best.decision == Decision.MATCH

    def test_explain(self):
        info = MeanScoreMatcher().explain()
        assert info["name"] == "MeanScore"
        assert info["parameters"]["match_threshold"] == 58.0


class TestHybridMatcher:

    def test_from_config(self):
        config = Config(scoring=ScoringConfig(match_threshold=70.0, num_workers=2))
        matcher = HybridMatcher.from_config(config)

        assert matcher.match_threshold == 70.0
        assert matcher.num_workers == 2
        assert matcher.get_current_parameters()["weights"]["orientation"] == 0.30

    def test_weights_must_cover_all_features(self):
        with pytest.raises(ValueError):
            HybridMatcher(weights={"orientation": 1.0})

    def test_fuse(self):
        matcher = HybridMatcher()
        scores = {name: 1.0 for name in matcher.weights}
        assert matcher.fuse(scores) == pytest.approx(100.0)

        scores["orientation"] = 0.0
        assert matcher.fuse(scores) == pytest.approx(70.0)

    def test_identical_candidate_scores_high(self, ridge_image):
        matcher = HybridMatcher(num_workers=1)

        result = matcher.match(ridge_image, {"same": ridge_image.copy()})

        best = result.best
        assert best.candidate_id == "same"
        assert best.decision == Decision.MATCH
        assert best.score > 85.0
        assert set(best.feature_scores) == {
            "orientation", "gabor", "frequency", "texture", "pixel"
        }
        assert all(0.0 <= v <= 1.0 for v in best.feature_scores.values())

    def test_rotated_shifted_copy_is_a_match(self, ridge_image):
        candidate = translate_image(rotate_image(ridge_image, 10.0), 5, 0)
        matcher = HybridMatcher(num_workers=1)

        result = matcher.match(ridge_image, {"rotated": candidate}, threshold=58.0)

        assert result.best.decision == Decision.MATCH
        assert result.best.score >= 58.0

    def test_probe_is_ranked_first(self, ridge_image, texture_image):
        candidates = {"noise": texture_image, "same": ridge_image.copy()}

        result = HybridMatcher(num_workers=2).match(ridge_image, candidates)

        assert [c.candidate_id for c in result.candidates][0] == "same"
        assert result.candidates[0].score >= result.candidates[1].score

    @pytest.mark.parametrize("num_workers", [1, 2])
    def test_malformed_candidate_does_not_abort_the_run(self, ridge_image, num_workers):
        candidates = {"good": ridge_image, "bad": np.zeros((32, 32, 2), dtype=np.uint8)}

        result = HybridMatcher(num_workers=num_workers).match(ridge_image, candidates)

        assert [c.candidate_id for c in result.candidates] == ["good", "bad"]
        assert result.candidates[0].decision == Decision.MATCH
        bad = result.candidates[1]
        assert bad.score == 0.0
        assert bad.decision == Decision.NO_MATCH

    def test_malformed_probe_gives_no_match(self, ridge_image):
        probe = np.zeros((32, 32, 2), dtype=np.uint8)

        result = HybridMatcher(num_workers=1).match(probe, {"a": ridge_image, "b": ridge_image})

        assert {c.candidate_id for c in result.candidates} == {"a", "b"}
        assert all(c.score == 0.0 for c in result.candidates)
        assert all(c.decision == Decision.NO_MATCH for c in result.candidates)

    def test_color_inputs(self, ridge_image):
        bgr = cv2.cvtColor(ridge_image, cv2.COLOR_GRAY2BGR)
        result = HybridMatcher(num_workers=1).match(bgr, {"same": bgr})
        assert result.best.decision == Decision.MATCH


class TestNCCMatcher:

    def test_compute_ncc(self, texture_image):
        assert compute_ncc(texture_image, texture_image) == pytest.approx(1.0)
        assert compute_ncc(texture_image, np.zeros_like(texture_image)) == 0.0

    def test_identical_candidate(self, ridge_image):
        result = NCCMatcher(num_workers=1).match(ridge_image, {"same": ridge_image})
        assert result.best.score == pytest.approx(100.0)
        assert result.best.feature_scores["pixel"] == pytest.approx(1.0)
