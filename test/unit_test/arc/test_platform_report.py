"""Unit tests for the super admin platform report."""

from datetime import datetime, timedelta, timezone

import pytest

from akari.arc.platform_report import PlatformReportService, ReportRange, build_platform_report, resolve_range
from akari.core.database.entities.arc import ArcBillingRecord, Arena, ArenaCreator
from akari.core.database.entities.projects import Project, ProjectTweet

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 10, 18, 12, 0)


class TestResolveRange:
    async def test_named_ranges(self):
        assert resolve_range("7d", now=NOW) == ReportRange("7d", NOW - timedelta(days=7), NOW)
        assert resolve_range("30d", now=NOW) == ReportRange("30d", NOW - timedelta(days=30), NOW)

    async def test_custom_range(self):
        start = datetime(2026, 9, 1, tzinfo=timezone(timedelta(hours=2)))
        end = datetime(2026, 9, 30)
        report_range = resolve_range("custom", start, end, now=NOW)
        assert report_range.type == "custom"
        assert report_range.start == datetime(2026, 8, 31, 22, 0)
        assert report_range.end == end

    @pytest.mark.parametrize("time_range", ["custom", "90d", None])
    async def test_falls_back_to_thirty_days(self, time_range):
        report_range = resolve_range(time_range, start_date=NOW - timedelta(days=1), now=NOW)
        assert report_range.type == "30d"
        assert report_range.start == NOW - timedelta(days=30)


class TestBuildPlatformReport:
    async def test_empty_report_has_zero_ratios(self):
        report = build_platform_report(resolve_range("7d", now=NOW), [], [], [], [], [], [])

        assert report["timeRange"] == {
            "type": "7d",
            "startDate": "2026-10-11T12:00:00",
            "endDate": "2026-10-18T12:00:00",
        }
        assert report["aggregate"]["projects"]["totalActive"] == 0
        assert report["financial"]["revenue"]["discountRate"] == 0.0
        assert report["ratios"] == {
            "revenuePerCreator": 0.0,
            "costPerParticipation": 0.0,
            "costPerUniqueCreator": 0.0,
            "engagementToSpendRatio": 0.0,
        }
        assert report["costs"] == {"cpe": 0.0}


class TestPlatformReportService:
    async def test_generate(self, session):
        leaderboard = Project(name="One", slug="one", arc_active=True, arc_access_level="leaderboard")
        gamified = Project(name="Two", slug="two", arc_active=True, arc_access_level="gamified")
        inactive = Project(name="Three", slug="three", arc_active=False, arc_access_level="gamified")
        no_access = Project(name="Four", slug="four", arc_active=True)
        session.add_all([leaderboard, gamified, inactive, no_access])
        await session.commit()

        first_arena = Arena(project_id=leaderboard.id, slug="one-s1", name="One S1", status="active")
        second_arena = Arena(project_id=gamified.id, slug="two-s1", name="Two S1", status="active")
        session.add_all([first_arena, second_arena])
        await session.commit()

        session.add_all(
            [
                ArenaCreator(arena_id=first_arena.id, profile_id="prof-1", created_at=NOW - timedelta(days=2)),
                ArenaCreator(arena_id=second_arena.id, profile_id="prof-1", created_at=NOW - timedelta(days=3)),
                ArenaCreator(arena_id=first_arena.id, profile_id="prof-2", created_at=NOW - timedelta(days=40)),
                ProjectTweet(
                    tweet_id="1", project_id=leaderboard.id, author_handle="a", likes=10, replies=2, retweets=3,
                    quotes=1, is_thread=True, created_at=NOW - timedelta(days=1),
                ),
                ProjectTweet(
                    tweet_id="2", project_id=gamified.id, author_handle="b", likes=4, created_at=NOW - timedelta(days=1)
                ),
                ProjectTweet(
                    tweet_id="3", project_id=inactive.id, author_handle="c", likes=99, created_at=NOW - timedelta(days=1)
                ),
                ProjectTweet(
                    tweet_id="4", project_id=leaderboard.id, author_handle="d", likes=99,
                    created_at=NOW - timedelta(days=45),
                ),
                ArcBillingRecord(
                    project_id=leaderboard.id, access_level="leaderboard", base_price_usd=100, discount_percent=20,
                    final_price_usd=80, payment_status="paid", created_at=NOW - timedelta(days=5),
                ),
                ArcBillingRecord(
                    project_id=gamified.id, access_level="gamified", base_price_usd=50, final_price_usd=50,
                    created_at=NOW - timedelta(days=1),
                ),
                ArcBillingRecord(
                    project_id=gamified.id, access_level="gamified", base_price_usd=1000, final_price_usd=1000,
                    payment_status="paid", created_at=NOW - timedelta(days=60),
                ),
            ]
        )
        await session.commit()

        report = await PlatformReportService(session).generate("30d", now=NOW)

        aggregate = report["aggregate"]
        assert aggregate["projects"] == {"totalActive": 2, "mindshare": 1, "gamified": 1, "crm": 0}
        assert aggregate["creators"] == {"unique": 1, "totalParticipations": 2}
        assert aggregate["engagement"] == {
            "totalLikes": 14,
            "totalReplies": 2,
            "totalReposts": 3,
            "totalQuotes": 1,
            "totalEngagement": 20,
        }
        assert aggregate["content"] == {"totalPosts": 1, "totalThreads": 1, "totalContent": 2}

        financial = report["financial"]
        assert financial["revenue"]["gross"] == pytest.approx(150)
        assert financial["revenue"]["net"] == pytest.approx(130)
        assert financial["revenue"]["discountsTotal"] == pytest.approx(20)
        assert financial["revenue"]["discountRate"] == pytest.approx(100 * 20 / 150)
        assert financial["mrr"] == {"mindshare": 80, "gamified": 0.0, "crm": 0.0, "total": 80}
        assert financial["byAccessLevel"]["leaderboard"] == {"revenue": 80, "projects": 1}
        assert financial["byAccessLevel"]["gamified"] == {"revenue": 50, "projects": 1}

        assert report["ratios"]["revenuePerCreator"] == pytest.approx(130)
        assert report["ratios"]["costPerParticipation"] == pytest.approx(65)
        assert report["ratios"]["engagementToSpendRatio"] == pytest.approx(20 / 130)
        assert report["costs"]["cpe"] == pytest.approx(6.5)
