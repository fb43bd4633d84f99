"""Unit tests for quest post scoring."""

import pytest

from akari.arc.quest_scoring import (
    alignment_score,
    clarity_score,
    compliance_score,
    detect_brand_attribution,
    engagement_boost,
    extract_objective_phrases,
    normalize_brand_aliases,
    safety_score,
    score_quest_post,
)

pytestmark = pytest.mark.asyncio

ALIASES = normalize_brand_aliases("Akari  Mystic", "AkariClub", ["MYST", "myst"])
OBJECTIVES = "Explain the wheel. Share your referral link; ok"


class TestBrandAttribution:
    async def test_aliases(self):
        assert ALIASES == ["akari mystic", "akari", "akarimystic", "@akariclub", "akariclub", "myst"]

    async def test_short_primary_name_is_skipped(self):
        assert normalize_brand_aliases("Ton Labs") == ["ton labs", "tonlabs"]

    async def test_handle_with_at(self):
        assert normalize_brand_aliases(brand_handle="@Akari") == ["@akari", "akari"]

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Spinning the wheel on Akari today", True),
            ("shoutout @AkariClub", True),
            ("AKARI MYSTIC is live", True),
            ("the akarimania continues", False),
            ("mystery box", False),
            ("", False),
        ],
    )
    async def test_detect(self, text, expected):
        assert detect_brand_attribution(text, ALIASES) is expected

    async def test_handle_argument(self):
        assert detect_brand_attribution("cc @someproject", [], handle="someproject") is True


class TestParts:
    async def test_objective_phrases(self):
        assert extract_objective_phrases(OBJECTIVES) == ["Explain the wheel", "Share your referral link"]
        assert extract_objective_phrases(None) == []

    async def test_alignment_rounds_half_up(self):
        text = "Let me explain the wheel to you"
        assert alignment_score(text, OBJECTIVES, brand_attribution=False) == 33
        assert alignment_score(text, OBJECTIVES, brand_attribution=True) == 48

    async def test_alignment_without_objectives(self):
        assert alignment_score("anything", None, brand_attribution=True) == 40
        assert alignment_score("anything", "", brand_attribution=False) == 20
        assert alignment_score("", OBJECTIVES) == 0

    async def test_full_alignment(self):
        text = "explain the wheel and share your referral link"
        assert alignment_score(text, OBJECTIVES, brand_attribution=True) == 70

    async def test_compliance(self):
        assert compliance_score(True, True) == 15
        assert compliance_score(True, False) == 8
        assert compliance_score(False, True) == 7
        assert compliance_score(False, False) == 0

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("a" * 120, 10),
            ("a" * 80, 8),
            ("a" * 40, 6),
            ("a" * 20, 4),
            ("short", 2),
            ("", 0),
        ],
    )
    async def test_clarity_by_length(self, text, expected):
        assert clarity_score(text) == expected

    async def test_clarity_penalizes_shouting(self):
        assert clarity_score("THIS IS AMAZING NEWS") == 2

    async def test_clarity_penalizes_link_spam(self):
        text = " ".join(f"https://example.com/{i}" for i in range(4)) + " " + "a" * 60
        assert clarity_score(text) == 8

    async def test_safety(self):
        assert safety_score("Guaranteed gains, no risk!") == 2
        assert safety_score("a fun wheel") == 5
        assert safety_score("") == 0

    async def test_engagement_boost_saturates(self):
        assert engagement_boost(0, 0, 0) == (0, 0.0)
        metric, boost = engagement_boost(100, 50, 25)
        assert metric == 200
        assert boost == pytest.approx(1.0)
        assert engagement_boost(10_000)[1] == 1.0


class TestScoreQuestPost:
    async def test_complete_score(self):
        text = "Akari lets you explain the wheel to friends and share your referral link for MYST rewards every day."
        score = score_quest_post(
            text,
            OBJECTIVES,
            used_campaign_link=True,
            brand_attribution=detect_brand_attribution(text, ALIASES),
            likes=100,
            replies=50,
            reposts=25,
        )

        assert score.alignment_score == 70
        assert score.compliance_score == 15
        assert score.clarity_score == 8
        assert score.safety_score == 5
        assert score.post_quality_score == 98
        assert score.post_final_score == pytest.approx(107.8)
        assert score.reason["compliance"]["brandAttribution"] is True

    async def test_engagement_only_counts_on_x(self):
        score = score_quest_post("a" * 120, platform="telegram", likes=1000)
        assert score.engagement_boost == 0.0
        assert score.post_final_score == score.post_quality_score

    async def test_as_dict_keys(self):
        data = score_quest_post("hello world").as_dict()
        assert set(data) == {
            "alignmentScore",
            "complianceScore",
            "clarityScore",
            "safetyScore",
            "postQualityScore",
            "postFinalScore",
            "engagementMetric",
            "engagementBoost",
            "reason",
        }
