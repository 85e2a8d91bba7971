"""
Tests for mission reports: form validation, ownership, images and daily entries.
"""
import pytest
from datetime import date, datetime
from prayerhouse.core.config import settings
from prayerhouse.core.errors import ValidationFailed, PermissionDenied, Conflict, SaveFailed
from prayerhouse.models.mission import Mission, MissionImage, MissionDailyEntry, MissionDailyImage
from prayerhouse.schemas.mission import MissionCreate, DailyEntryCreate
from prayerhouse.services import mission_service
from prayerhouse.services.mission_service import ImageUpload, MissionAccess
from prayerhouse.services.storage_service import StorageBucket, StorageError


def mission_payload(**overrides):
    data = {
        "title": "필리핀 단기선교",
        "type": "단기선교",
        "region": "아시아",
        "country": "필리핀",
        "theme": "교육",
        "priority": "일반",
        "start_date": "2024-07-01",
        "end_date": "2024-07-10",
        "description": "<p>아이들과 함께한 여름</p>",
        "missionary_name": "김선교",
        "is_anonymous": False,
        "needs_support": False,
    }
    data.update(overrides)
    return data


def support_payload(**overrides):
    data = mission_payload(
        needs_support=True,
        support_goal=1000000,
        current_support=250000,
        support_description="교재 구입",
        account_bank="국민은행",
        account_number="123-456",
        account_holder="김선교",
    )
    data.update(overrides)
    return data


def image(name="photo.webp", size=16, content_type="image/webp"):
    return ImageUpload(filename=name, content_type=content_type, data=b"x" * size)


class FlakyBucket(StorageBucket):
    """Bucket whose n-th upload fails."""

    def __init__(self, fail_on, **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on
        self.calls = 0

    def upload(self, path, data, content_type="image/webp", upsert=False):
        self.calls += 1
        if self.calls == self.fail_on:
            raise StorageError("disk full")
        return super().upload(path, data, content_type=content_type, upsert=upsert)


@pytest.fixture
def mission(db):
    return mission_service.create_mission("owner", MissionCreate(**mission_payload()), db)


@pytest.mark.parametrize("overrides,message", [
    ({"title": ""}, "제목과 선교 개요를 입력해주세요."),
    ({"description": "<p></p>"}, "제목과 선교 개요를 입력해주세요."),
    ({"country": ""}, "국가와 기간을 입력해주세요."),
    ({"end_date": None}, "국가와 기간을 입력해주세요."),
    ({"missionary_name": "  "}, "선교사 이름을 입력해주세요."),
    ({"type": "여행"}, "선교 유형을 선택해주세요."),
])
def test_mission_form_validation(overrides, message):
    with pytest.raises(ValidationFailed) as exc:
        mission_service.validate_mission_form(MissionCreate(**mission_payload(**overrides)))
    assert exc.value.message == message


def test_title_is_checked_before_country():
    payload = MissionCreate(**mission_payload(title="", country=""))
    with pytest.raises(ValidationFailed) as exc:
        mission_service.validate_mission_form(payload)
    assert exc.value.message == "제목과 선교 개요를 입력해주세요."


@pytest.mark.parametrize("overrides,message", [
    ({"support_goal": 5000}, "후원 목표 금액을 10,000원 이상으로 설정해주세요."),
    ({"current_support": 2000000}, "현재 모금액은 목표 금액을 초과할 수 없습니다."),
    ({"support_description": ""}, "후원 사용 목적을 입력해주세요."),
    ({"account_holder": None}, "후원 계좌 정보를 모두 입력해주세요."),
])
def test_support_validation(overrides, message):
    with pytest.raises(ValidationFailed) as exc:
        mission_service.validate_mission_form(MissionCreate(**support_payload(**overrides)))
    assert exc.value.message == message


def test_support_fields_cleared_when_not_needed(db):
    payload = MissionCreate(**support_payload(needs_support=False))
    mission = mission_service.create_mission("owner", payload, db)
    assert mission.support_goal == 0
    assert mission.current_support == 0
    assert mission.account_number is None
    assert mission.support_description is None


def test_completed_at_follows_flag(db, mission):
    assert mission.completed_at is None
    updated = mission_service.update_mission(
        mission.id, "owner", MissionCreate(**mission_payload(is_completed=True)), db
    )
    assert updated.completed_at is not None
    reopened = mission_service.update_mission(mission.id, "owner", MissionCreate(**mission_payload()), db)
    assert reopened.completed_at is None


def test_access_states(mission):
    assert mission_service.mission_access(None, mission) == MissionAccess.ANONYMOUS_VIEWER
    assert mission_service.mission_access("someone", mission) == MissionAccess.AUTHENTICATED_NON_OWNER
    assert mission_service.mission_access("owner", mission) == MissionAccess.OWNER


def test_update_by_non_owner_is_denied(db, mission):
    with pytest.raises(PermissionDenied):
        mission_service.update_mission(mission.id, "intruder", MissionCreate(**mission_payload(title="변경")), db)


def test_is_mission_ended():
    mission = Mission(end_date=date(2024, 7, 10))
    assert not mission_service.is_mission_ended(mission, now=datetime(2024, 7, 10, 23, 0))
    assert mission_service.is_mission_ended(mission, now=datetime(2024, 7, 11, 0, 0, 1))


def test_anonymous_name_is_masked(db):
    mission = mission_service.create_mission("owner", MissionCreate(**mission_payload(is_anonymous=True)), db)
    assert mission_service.mask_missionary_name(mission) == "익명"


def test_support_info(db):
    mission = mission_service.create_mission("owner", MissionCreate(**support_payload()), db)
    info = mission_service.support_info(mission)
    assert info["progress_percent"] == 25
    assert info["account_bank"] == "국민은행"

    plain = mission_service.create_mission("owner", MissionCreate(**mission_payload()), db)
    assert "account_number" not in mission_service.support_info(plain)


def test_listing_merges_images_and_day_counts(db, storage, mission):
    mission_service.replace_mission_images(mission.id, "owner", [image()], storage, db)
    for _ in range(2):
        mission_service.create_daily_entry(
            mission.id, "owner", DailyEntryCreate(title="하루", content="기록"), [], storage, db
        )
    other = mission_service.create_mission("other", MissionCreate(**mission_payload(title="두번째")), db)

    listing = {m["id"]: m for m in mission_service.get_missions(db, storage, viewer_id="owner")}
    assert listing[mission.id]["days"] == 2
    assert len(listing[mission.id]["images"]) == 1
    assert listing[mission.id]["images"][0]["url"].startswith(f"/static/mission-images/missions/{mission.id}/")
    assert listing[mission.id]["can_edit"] is True
    assert listing[other.id]["days"] == 0
    assert listing[other.id]["images"] == []
    assert listing[other.id]["can_edit"] is False


def test_replace_images_removes_old_objects(db, storage, mission, stored_files):
    mission_service.replace_mission_images(mission.id, "owner", [image()], storage, db)
    first = stored_files()
    mission_service.replace_mission_images(mission.id, "owner", [image()], storage, db)
    second = stored_files()

    assert len(first) == len(second) == 1
    assert first != second
    assert db.query(MissionImage).count() == 1


def test_thumbnail_limit(db, storage, mission):
    with pytest.raises(ValidationFailed) as exc:
        mission_service.replace_mission_images(mission.id, "owner", [image(), image()], storage, db)
    assert exc.value.message == "썸네일은 1장만 업로드할 수 있습니다."


def test_day_numbers_are_assigned_by_server(db, storage, mission):
    fields = DailyEntryCreate(title="하루", content="기록")
    first = mission_service.create_daily_entry(mission.id, "owner", fields, [], storage, db)
    second = mission_service.create_daily_entry(mission.id, "owner", fields, [], storage, db)
    assert (first["day"], second["day"]) == (1, 2)

    mission_service.delete_daily_entry(mission.id, first["id"], "owner", storage, db)
    third = mission_service.create_daily_entry(mission.id, "owner", fields, [], storage, db)
    assert third["day"] == 3
    assert mission_service.next_day_number(mission.id, db) == 4


def test_daily_entry_defaults(db, storage, mission):
    entry = mission_service.create_daily_entry(
        mission.id, "owner",
        DailyEntryCreate(title="하루", content="기록", activities=[" 예배 ", "", "찬양"]),
        [], storage, db, today=date(2024, 7, 2)
    )
    assert entry["date"] == date(2024, 7, 2)
    assert entry["mood"] == "감사"
    assert entry["weather"] == "맑음"
    assert entry["activities"] == ["예배", "찬양"]


def test_daily_entry_photo_limit(db, storage, mission):
    with pytest.raises(ValidationFailed) as exc:
        mission_service.create_daily_entry(
            mission.id, "owner", DailyEntryCreate(title="하루", content="기록"),
            [image() for _ in range(4)], storage, db
        )
    assert exc.value.message == "최대 3장의 사진만 업로드할 수 있습니다."


def test_oversized_image_is_rejected(db, storage, mission, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 8)
    with pytest.raises(ValidationFailed) as exc:
        mission_service.create_daily_entry(
            mission.id, "owner", DailyEntryCreate(title="하루", content="기록"),
            [image(size=9)], storage, db
        )
    assert exc.value.message == "이미지 용량이 5MB를 초과합니다. 더 작은 이미지를 사용해주세요."


def test_failed_upload_removes_earlier_uploads(db, tmp_path, mission):
    bucket = FlakyBucket(fail_on=3, name="mission-images", root=str(tmp_path), public_url="/static")
    with pytest.raises(SaveFailed) as exc:
        mission_service.create_daily_entry(
            mission.id, "owner", DailyEntryCreate(title="하루", content="기록"),
            [image(), image(), image()], bucket, db
        )
    assert exc.value.message.startswith("이미지 업로드 실패")
    assert [p for p in bucket.root.rglob("*") if p.is_file()] == []
    assert db.query(MissionDailyEntry).count() == 0


def test_duplicate_day_is_conflict_and_compensated(db, storage, mission, stored_files, monkeypatch):
    fields = DailyEntryCreate(title="하루", content="기록")
    mission_service.create_daily_entry(mission.id, "owner", fields, [], storage, db)

    monkeypatch.setattr(mission_service, "next_day_number", lambda mission_id, db: 1)
    with pytest.raises(Conflict):
        mission_service.create_daily_entry(mission.id, "owner", fields, [image()], storage, db)

    assert stored_files() == []
    assert db.query(MissionDailyEntry).count() == 1
    assert db.query(MissionDailyImage).count() == 0


def test_daily_entry_by_non_owner_is_denied(db, storage, mission):
    with pytest.raises(PermissionDenied) as exc:
        mission_service.create_daily_entry(
            mission.id, "intruder", DailyEntryCreate(title="하루", content="기록"), [], storage, db
        )
    assert exc.value.message == "이 선교 일기서는 작성자만 편집할 수 있습니다."


def test_update_daily_entry(db, storage, mission):
    entry = mission_service.create_daily_entry(
        mission.id, "owner", DailyEntryCreate(title="하루", content="기록"), [], storage, db
    )
    updated = mission_service.update_daily_entry(
        mission.id, entry["id"], "owner", {"mood": "기쁨", "thanksgiving": "  "}, storage, db
    )
    assert updated["mood"] == "기쁨"
    assert updated["thanksgiving"] is None
    assert updated["title"] == "하루"

    with pytest.raises(ValidationFailed):
        mission_service.update_daily_entry(mission.id, entry["id"], "owner", {"weather": "눈"}, storage, db)


def test_delete_mission_cascades(db, storage, mission, stored_files):
    mission_service.replace_mission_images(mission.id, "owner", [image()], storage, db)
    mission_service.create_daily_entry(
        mission.id, "owner", DailyEntryCreate(title="하루", content="기록"), [image(), image()], storage, db
    )
    assert len(stored_files()) == 3

    mission_service.delete_mission(mission.id, "owner", storage, db)

    assert stored_files() == []
    assert db.query(Mission).count() == 0
    assert db.query(MissionImage).count() == 0
    assert db.query(MissionDailyEntry).count() == 0
    assert db.query(MissionDailyImage).count() == 0


def test_api_mission_flow(client, auth_headers):
    owner = auth_headers("owner")
    response = client.post("/api/missions", json=mission_payload(is_anonymous=True), headers=owner)
    assert response.status_code == 201
    mission = response.json()
    assert mission["display_name"] == "익명"
    assert mission["can_edit"] is True

    anonymous_view = client.get(f"/api/missions/{mission['id']}").json()
    assert anonymous_view["can_edit"] is False
    other_view = client.get(f"/api/missions/{mission['id']}", headers=auth_headers("other")).json()
    assert other_view["can_edit"] is False

    response = client.put(f"/api/missions/{mission['id']}", json=mission_payload(title="변경"), headers=auth_headers("other"))
    assert response.status_code == 403
    assert response.json() == {"error": "작성자만 수정할 수 있습니다."}


def test_api_create_requires_login(client):
    response = client.post("/api/missions", json=mission_payload())
    assert response.status_code == 401


def test_api_invalid_form(client, auth_headers):
    response = client.post("/api/missions", json=mission_payload(missionary_name=""), headers=auth_headers("owner"))
    assert response.status_code == 400
    assert response.json()["error"] == "선교사 이름을 입력해주세요."


def test_api_images_and_daily_entries(client, auth_headers, stored_files):
    owner = auth_headers("owner")
    mission = client.post("/api/missions", json=mission_payload(), headers=owner).json()

    response = client.put(
        f"/api/missions/{mission['id']}/images",
        files=[("images", ("thumb.webp", b"webp-bytes", "image/webp"))],
        headers=owner
    )
    assert response.status_code == 200
    assert response.json()[0]["url"].startswith(f"/static/mission-images/missions/{mission['id']}/")

    response = client.post(
        f"/api/missions/{mission['id']}/daily",
        data={"title": "첫째 날", "content": "도착", "mood": "설렘", "activities": ["예배", "교제"], "date": "2024-07-01"},
        files=[
            ("images", ("a.webp", b"a", "image/webp")),
            ("images", ("b.webp", b"b", "image/webp")),
        ],
        headers=owner
    )
    assert response.status_code == 201
    entry = response.json()
    assert entry["day"] == 1
    assert entry["date"] == "2024-07-01"
    assert entry["activities"] == ["예배", "교제"]
    assert len(entry["images"]) == 2
    assert len(stored_files()) == 3

    response = client.get(f"/api/missions/{mission['id']}/daily/1")
    assert response.status_code == 200
    assert response.json()["can_edit"] is False

    response = client.get(f"/api/missions/{mission['id']}/daily/2")
    assert response.status_code == 404

    response = client.patch(
        f"/api/missions/{mission['id']}/daily/{entry['id']}", json={"title": "남의 일기"}, headers=auth_headers("other")
    )
    assert response.status_code == 403

    response = client.delete(f"/api/missions/{mission['id']}", headers=owner)
    assert response.status_code == 204
    assert stored_files() == []
    assert client.get(f"/api/missions/{mission['id']}").status_code == 404


def test_api_rejects_non_image_upload(client, auth_headers):
    owner = auth_headers("owner")
    mission = client.post("/api/missions", json=mission_payload(), headers=owner).json()
    response = client.post(
        f"/api/missions/{mission['id']}/daily",
        data={"title": "하루", "content": "기록"},
        files=[("images", ("notes.txt", b"text", "text/plain"))],
        headers=owner
    )
    assert response.status_code == 400


def test_api_support_page(client, auth_headers):
    mission = client.post("/api/missions", json=support_payload(), headers=auth_headers("owner")).json()
    response = client.get(f"/api/missions/{mission['id']}/support")
    assert response.status_code == 200
    assert response.json()["progress_percent"] == 25
