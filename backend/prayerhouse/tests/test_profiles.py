"""
Tests for profiles and account deletion.
"""
import httpx
import pytest
from datetime import date
from prayerhouse.core.config import settings
from prayerhouse.core.errors import ConfigurationMissing, UpstreamError
from prayerhouse.models.gratitude import GratitudeEntry
from prayerhouse.models.mission import Mission
from prayerhouse.models.prayer import Prayer
from prayerhouse.models.profile import Profile
from prayerhouse.schemas.mission import MissionCreate, DailyEntryCreate
from prayerhouse.schemas.prayer import PrayerCreate
from prayerhouse.services import gratitude_service, mission_service, prayer_service, profile_service
from prayerhouse.services.mission_service import ImageUpload


@pytest.fixture
def auth_service(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_SERVICE_URL", "https://auth.example.com")
    monkeypatch.setattr(settings, "AUTH_SERVICE_ROLE_KEY", "service-role-key")


def mock_client(status_code, seen):
    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(status_code, json={})
    return httpx.Client(transport=httpx.MockTransport(handler))


def seed_user_data(db, storage, user_id="u1"):
    gratitude_service.save_gratitude_entry(user_id, date(2024, 3, 10), "감사", True, db=db, today=date(2024, 3, 10))
    prayer_service.create_prayer(user_id, "김성도", PrayerCreate(title="기도", content="내용", category="가족"), db)
    mission = mission_service.create_mission(user_id, MissionCreate(
        title="선교", country="케냐", region="아프리카", start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 5), description="<p>개요</p>", missionary_name="김선교"
    ), db)
    mission_service.create_daily_entry(
        mission.id, user_id, DailyEntryCreate(title="하루", content="기록"),
        [ImageUpload(filename="a.webp", content_type="image/webp", data=b"a")], storage, db
    )


def test_fallback_profile_is_created(db):
    profile = profile_service.get_or_create_profile("u1", "김성도", db)
    assert profile.name == "김성도"
    assert profile.profile_completed is True
    assert profile.is_public is True
    assert profile_service.get_or_create_profile("u1", "다른이름", db).name == "김성도"


def test_fallback_name_default(db):
    assert profile_service.get_or_create_profile("u1", None, db).name == "사용자"


def test_summary_has_streak_and_prayers(db):
    gratitude_service.save_gratitude_entry("u1", "2024-03-09", "어제", False, db=db, today=date(2024, 3, 10))
    gratitude_service.save_gratitude_entry("u1", "2024-03-10", "오늘", False, db=db, today=date(2024, 3, 10))
    prayer_service.create_prayer("u1", "김성도", PrayerCreate(title="기도", content="내용"), db)

    summary = profile_service.get_profile_summary("u1", "김성도", db, today=date(2024, 3, 10))
    assert summary["gratitude_streak"] == 2
    assert [p["title"] for p in summary["prayers"]] == ["기도"]


def test_delete_account_calls_auth_admin_and_removes_data(db, storage, stored_files, auth_service):
    seed_user_data(db, storage)
    profile_service.get_or_create_profile("u1", "김성도", db)
    seen = []

    profile_service.delete_account("u1", storage, db, client=mock_client(200, seen))

    assert len(seen) == 1
    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/auth/v1/admin/users/u1"
    assert seen[0].headers["apikey"] == "service-role-key"
    assert db.query(Profile).count() == 0
    assert db.query(GratitudeEntry).count() == 0
    assert db.query(Prayer).count() == 0
    assert db.query(Mission).count() == 0
    assert stored_files() == []


def test_delete_account_keeps_data_when_auth_service_refuses(db, storage, auth_service):
    seed_user_data(db, storage)
    with pytest.raises(UpstreamError):
        profile_service.delete_account("u1", storage, db, client=mock_client(500, []))
    assert db.query(Mission).count() == 1
    assert db.query(Prayer).count() == 1


def test_delete_account_requires_configuration(db, storage, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_SERVICE_ROLE_KEY", "")
    with pytest.raises(ConfigurationMissing):
        profile_service.delete_account("u1", storage, db)


def test_api_profile(client, auth_headers):
    headers = auth_headers("u1", name="김성도")
    response = client.get("/api/profiles/me", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["name"] == "김성도"
    assert data["gratitude_streak"] == 0
    assert data["prayers"] == []

    response = client.patch("/api/profiles/me", json={"church": "사랑의교회", "gender": "female"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["church"] == "사랑의교회"

    response = client.patch("/api/profiles/me", json={"name": ""}, headers=headers)
    assert response.status_code == 400


def test_api_delete_without_configuration(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_SERVICE_ROLE_KEY", "")
    response = client.delete("/api/profiles/me", headers=auth_headers("u1"))
    assert response.status_code == 500
    assert response.json()["error"].startswith("서버 설정이 필요합니다.")


def test_api_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
