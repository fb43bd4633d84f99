"""
Quest post scoring.

A quest submission is scored out of 100 from four parts:

* alignment (0..70): how many of the campaign objectives the post covers,
  with a higher base when the brand is mentioned;
* compliance (0..15): campaign link used (8) and brand attributed (7);
* clarity (0..10): post length, minus penalties for link spam and shouting;
* safety (2 or 5): scam-like promises lower it.

Posts on X additionally get up to a 10 % boost from their engagement.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .scoring import round_half_up

ALIGNMENT_MAX = 70
COMPLIANCE_MAX = 15
CLARITY_MAX = 10
ENGAGEMENT_CAP = 200

SAFETY_FLAGS = ("guaranteed", "risk-free", "100%", "double your", "get rich", "no risk")

_OBJECTIVE_SPLIT = re.compile(r"[.\n;•-]")
_URL = re.compile(r"https?://\S+", re.IGNORECASE)


@dataclass
class QuestScore:
    alignment_score: int
    compliance_score: int
    clarity_score: int
    safety_score: int
    post_quality_score: int
    post_final_score: float
    engagement_metric: float
    engagement_boost: float
    reason: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "alignmentScore": self.alignment_score,
            "complianceScore": self.compliance_score,
            "clarityScore": self.clarity_score,
            "safetyScore": self.safety_score,
            "postQualityScore": self.post_quality_score,
            "postFinalScore": self.post_final_score,
            "engagementMetric": self.engagement_metric,
            "engagementBoost": self.engagement_boost,
            "reason": self.reason,
        }


def _clamp(value, lower, upper):
    return max(lower, min(upper, value))


def _normalize_alias(value: str) -> str:
    return " ".join(value.split()).lower()


def normalize_brand_aliases(
    brand_name: Optional[str] = None,
    brand_handle: Optional[str] = None,
    aliases: Optional[Sequence[str]] = None,
) -> List[str]:
    """Every lower-case spelling under which a post may mention the brand."""
    found: Dict[str, None] = {}

    name = _normalize_alias(brand_name) if brand_name else ""
    if name:
        found[name] = None
        primary = name.split(" ")[0]
        if len(primary) >= 4:
            found[primary] = None
        compact = re.sub(r"[^a-z0-9]", "", name)
        if len(compact) >= 4:
            found[compact] = None

    handle = _normalize_alias(brand_handle) if brand_handle else ""
    if handle:
        handle = handle if handle.startswith("@") else f"@{handle}"
        found[handle] = None
        bare = handle.lstrip("@")
        if bare:
            found[bare] = None

    for alias in aliases or []:
        clean = _normalize_alias(alias)
        if clean:
            found[clean] = None
    return list(found)


def detect_brand_attribution(text: str, aliases: Sequence[str], handle: Optional[str] = None) -> bool:
    if not text:
        return False
    lower = text.lower()

    if handle:
        clean = _normalize_alias(handle)
        if clean:
            with_at = clean if clean.startswith("@") else f"@{clean}"
            if with_at in lower:
                return True

    for alias in aliases:
        if not alias:
            continue
        if alias.startswith("@"):
            if alias in lower:
                return True
            continue
        # short aliases must stand alone
        if len(alias) <= 5:
            if re.search(rf"\b{re.escape(alias)}\b", text, re.IGNORECASE):
                return True
        elif alias in lower:
            return True
    return False


def extract_objective_phrases(objectives: Optional[str]) -> List[str]:
    if not objectives:
        return []
    return [phrase.strip() for phrase in _OBJECTIVE_SPLIT.split(objectives) if len(phrase.strip()) >= 6]


def alignment_score(text: str, objectives: Optional[str], brand_attribution: bool = False) -> int:
    if not text:
        return 0
    phrases = extract_objective_phrases(objectives)
    if not phrases:
        return 40 if brand_attribution else 20
    lower = text.lower()
    ratio = sum(1 for phrase in phrases if phrase.lower() in lower) / len(phrases)
    base = 25 if brand_attribution else 10
    return _clamp(round_half_up(base + 45 * ratio), 0, ALIGNMENT_MAX)


def compliance_score(used_campaign_link: bool, brand_attribution: bool) -> int:
    score = (8 if used_campaign_link else 0) + (7 if brand_attribution else 0)
    return _clamp(score, 0, COMPLIANCE_MAX)


def clarity_score(text: str) -> int:
    if not text:
        return 0
    trimmed = text.strip()
    length = len(trimmed)
    if length >= 120:
        score = 10
    elif length >= 80:
        score = 8
    elif length >= 40:
        score = 6
    elif length >= 20:
        score = 4
    else:
        score = 2

    if len(_URL.findall(trimmed)) > 3:
        score -= 2

    letters = re.sub(r"[^a-zA-Z]", "", trimmed)
    if len(letters) > 10:
        upper = len(re.sub(r"[^A-Z]", "", letters))
        if upper / len(letters) > 0.6:
            score -= 2
    return _clamp(score, 0, CLARITY_MAX)


def safety_score(text: str) -> int:
    if not text:
        return 0
    lower = text.lower()
    return 2 if any(flag in lower for flag in SAFETY_FLAGS) else 5


def engagement_boost(likes: float = 0, replies: float = 0, reposts: float = 0) -> tuple[float, float]:
    """Engagement metric and its boost in [0, 1], saturating at 200."""
    metric = max(0, (likes or 0) + (replies or 0) + 2 * (reposts or 0))
    boost = math.log1p(metric) / math.log1p(ENGAGEMENT_CAP)
    return metric, _clamp(boost, 0.0, 1.0)


def score_quest_post(
    text: str,
    objectives: Optional[str] = None,
    used_campaign_link: bool = False,
    brand_attribution: bool = False,
    platform: str = "x",
    likes: Optional[float] = None,
    replies: Optional[float] = None,
    reposts: Optional[float] = None,
) -> QuestScore:
    alignment = alignment_score(text, objectives, brand_attribution)
    compliance = compliance_score(used_campaign_link, brand_attribution)
    clarity = clarity_score(text)
    safety = safety_score(text)
    quality = _clamp(alignment + compliance + clarity + safety, 0, 100)

    if platform == "x":
        metric, boost = engagement_boost(likes or 0, replies or 0, reposts or 0)
    else:
        metric, boost = 0, 0.0

    return QuestScore(
        alignment_score=alignment,
        compliance_score=compliance,
        clarity_score=clarity,
        safety_score=safety,
        post_quality_score=quality,
        post_final_score=round(quality * (1 + 0.1 * boost), 2),
        engagement_metric=metric,
        engagement_boost=boost,
        reason={
            "alignment": {"score": alignment},
            "compliance": {
                "score": compliance,
                "usedCampaignLink": used_campaign_link,
                "brandAttribution": brand_attribution,
            },
            "clarity": {"score": clarity},
            "safety": {"score": safety},
            "engagement": {"metric": metric, "boost": boost},
        },
    )
