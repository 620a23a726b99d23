"""HTTP surface: routing, commits and error-to-status mapping."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from examprep.database import get_engine
from examprep.db.base import Base
from examprep.time_utils import utcnow


class TestHealth:

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_readiness(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"] == {"database": "ok", "redis": "ok"}
        assert data["rank_lock"] == "redis"

    async def test_readiness_without_redis_is_degraded(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
        def _uninitialised():
            raise RuntimeError("Redis not initialized")

        monkeypatch.setattr("examprep.health.router.get_redis", _uninitialised)
        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["redis"] == "disabled"
        assert data["rank_lock"] == "in-process"

    async def test_readiness_redis_ping_failure(self, client: AsyncClient, mock_redis: MagicMock):
        mock_redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["redis"] == "error: refused"

    async def test_readiness_missing_schema(self, client: AsyncClient):
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        response = await client.get("/ready")
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unavailable"
        assert data["checks"]["database"].startswith("error:")

    async def test_version(self, client: AsyncClient):
        response = await client.get("/version")
        assert response.json()["version"] == "0.1.0"

    async def test_request_id_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-Id": "abc-123"})
        assert response.headers["X-Request-Id"] == "abc-123"


class TestTopicProgressApi:

    async def test_record_and_read_back(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/progress/7/topics/algebra/sessions",
            json={"score": 72, "time_spent": 15, "weak_areas": ["fractions"]},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["mastery_changed"] is False
        assert data["progress"]["total_sessions"] == 1
        assert data["progress"]["weak_areas"] == ["fractions"]

        response = await client.get("/api/v1/progress/7/topics/algebra")
        assert response.status_code == 200
        assert response.json()["average_score"] == 72

        response = await client.get("/api/v1/progress/7/topics")
        assert response.json()["total"] == 1

    async def test_invalid_score_is_422(self, client: AsyncClient):
        response = await client.post("/api/v1/progress/7/topics/algebra/sessions", json={"score": 120, "time_spent": 1})
        assert response.status_code == 422

    async def test_missing_topic_is_404(self, client: AsyncClient):
        response = await client.get("/api/v1/progress/7/topics/unknown")
        assert response.status_code == 404
        assert response.json() == {"detail": "Topic progress not found"}

        response = await client.get("/api/v1/progress/7/topics/unknown/analytics")
        assert response.status_code == 404

    async def test_analytics_and_statistics(self, client: AsyncClient):
        for score in (50, 52, 90):
            await client.post("/api/v1/progress/7/topics/algebra/sessions", json={"score": score, "time_spent": 10})

        analytics = (await client.get("/api/v1/progress/7/topics/algebra/analytics")).json()
        assert analytics["session_analytics"]["total_sessions"] == 3
        assert analytics["basic_info"]["mastery_level"] == "beginner"
        assert "Great improvement! Consider advancing to more challenging material" in analytics["recommendations"]

        stats = (await client.get("/api/v1/progress/7/statistics")).json()
        assert stats["total_topics"] == 1
        assert stats["total_sessions"] == 3
        assert stats["average_score"] == 64

    async def test_areas_and_delete(self, client: AsyncClient):
        await client.post("/api/v1/progress/7/topics/algebra/sessions", json={"score": 60, "time_spent": 5})

        response = await client.put(
            "/api/v1/progress/7/topics/algebra/areas",
            json={"weak_areas": ["b", "a", "b"], "strong_areas": ["c"]},
        )
        assert response.json()["weak_areas"] == ["b", "a"]

        assert (await client.delete("/api/v1/progress/7/topics/algebra")).status_code == 204
        assert (await client.delete("/api/v1/progress/7/topics/algebra")).status_code == 404


class TestAchievementApi:

    async def test_create_progress_and_statistics(self, client: AsyncClient):
        created = await client.post("/api/v1/achievements/3", json={"name": "Bookworm", "target": 4})
        assert created.status_code == 201
        achievement_id = created.json()["id"]

        response = await client.patch(f"/api/v1/achievements/3/{achievement_id}/progress", json={"progress": 9})
        assert response.status_code == 200
        data = response.json()
        assert data["became_completed"] is True
        assert data["achievement"]["progress"] == 4
        assert data["achievement"]["earned_date"] is not None

        stats = (await client.get("/api/v1/achievements/3/statistics")).json()
        assert stats["completion_rate"] == 100

    async def test_other_users_achievement_is_404(self, client: AsyncClient):
        created = await client.post("/api/v1/achievements/3", json={"name": "Bookworm", "target": 4})
        achievement_id = created.json()["id"]
        response = await client.patch(f"/api/v1/achievements/4/{achievement_id}/progress", json={"progress": 1})
        assert response.status_code == 404

    async def test_negative_progress_is_422(self, client: AsyncClient):
        created = await client.post("/api/v1/achievements/3", json={"name": "Bookworm", "target": 4})
        achievement_id = created.json()["id"]
        response = await client.patch(f"/api/v1/achievements/3/{achievement_id}/progress", json={"progress": -1})
        assert response.status_code == 422


class TestMissionApi:

    async def _create(self, client: AsyncClient, expires_in: timedelta = timedelta(days=1)) -> int:
        response = await client.post(
            "/api/v1/missions/5",
            json={
                "title": "Daily drill",
                "mission_type": "daily",
                "target": 10,
                "points": 20,
                "expires_at": (utcnow() + expires_in).isoformat(),
            },
        )
        assert response.status_code == 201
        return response.json()["id"]

    async def test_completion_then_409(self, client: AsyncClient):
        mission_id = await self._create(client)

        response = await client.patch(f"/api/v1/missions/5/{mission_id}/progress", json={"progress": 10})
        assert response.json()["became_completed"] is True

        response = await client.patch(f"/api/v1/missions/5/{mission_id}/progress", json={"progress": 5})
        assert response.status_code == 409
        assert response.json() == {"detail": "Mission already completed"}

    async def test_expired_is_410(self, client: AsyncClient):
        mission_id = await self._create(client, expires_in=timedelta(minutes=-5))
        response = await client.patch(f"/api/v1/missions/5/{mission_id}/progress", json={"progress": 1})
        assert response.status_code == 410

    async def test_listing_and_statistics(self, client: AsyncClient):
        await self._create(client)
        await self._create(client, expires_in=timedelta(days=-1))

        assert len((await client.get("/api/v1/missions/5")).json()) == 2
        assert len((await client.get("/api/v1/missions/5", params={"active_only": True})).json()) == 1

        stats = (await client.get("/api/v1/missions/5/statistics")).json()
        assert stats["overall"]["total_missions"] == 2
        assert stats["overall"]["expired_missions"] == 1
        assert stats["by_type"] == [{"type": "daily", "count": 2, "completed": 0}]


class TestLeaderboardApi:

    async def test_entry_update_and_recalculate(self, client: AsyncClient):
        for user_id, points in ((1, 500), (2, 400), (3, 600)):
            response = await client.put(f"/api/v1/leaderboard/users/{user_id}", json={"country": "sn"})
            assert response.status_code == 200
            assert response.json()["country"] == "SN"
            response = await client.patch(f"/api/v1/leaderboard/users/{user_id}", json={"total_points": points})
            assert response.status_code == 200

        response = await client.post("/api/v1/leaderboard/recalculate")
        assert response.json() == {"updated": 3, "series": None}

        board = (await client.get("/api/v1/leaderboard")).json()
        assert [(e["user_id"], e["global_rank"]) for e in board["entries"]] == [(3, 1), (1, 2), (2, 3)]

        rank = (await client.get("/api/v1/leaderboard/users/1")).json()
        assert rank["global_rank"] == 2
        assert rank["top_performance"] is True

        stats = (await client.get("/api/v1/leaderboard/statistics")).json()
        assert stats["total_users"] == 3
        assert stats["total_points"] == 1500

    async def test_update_without_entry_is_404(self, client: AsyncClient):
        response = await client.patch("/api/v1/leaderboard/users/99", json={"streak": 1})
        assert response.status_code == 404

    async def test_invalid_rank_is_422(self, client: AsyncClient):
        await client.put("/api/v1/leaderboard/users/1", json={})
        response = await client.patch("/api/v1/leaderboard/users/1", json={"global_rank": 0})
        assert response.status_code == 422

    async def test_unknown_field_is_422(self, client: AsyncClient):
        await client.put("/api/v1/leaderboard/users/1", json={})
        response = await client.patch("/api/v1/leaderboard/users/1", json={"xp": 5})
        assert response.status_code == 422

    async def test_missing_user_rank_is_404(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboard/users/42")
        assert response.status_code == 404
