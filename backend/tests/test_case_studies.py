import pytest

from caseflow.models.case_study import CaseStudy
from caseflow.models.case_study_version import CaseStudyVersion
from caseflow.services import case_study_service, lifecycle_service
from caseflow.services.errors import NotFound, ValidationFailed
from tests.conftest import auth_headers


def test_create_case_study(client, seed_users):
    headers = auth_headers(client, "editor001")
    resp = client.post(
        "/api/case-studies",
        json={
            "title": "How would you price Notion AI?",
            "question_type": "Pricing Strategy",
            "difficulty": "advanced",
            "tags": ["pricing"],
        },
        headers=headers,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["current_version"] == 0
    assert data["deleted_at"] is None
    assert data["image_generation_status"] == "pending"


def test_create_rejects_invalid_enum(client, seed_users):
    headers = auth_headers(client, "editor001")
    resp = client.post(
        "/api/case-studies",
        json={"title": "Bad", "difficulty": "expert"},
        headers=headers,
    )
    assert resp.status_code == 400


def test_update_creates_version(client, db, seed_users, seed_case):
    headers = auth_headers(client, "editor001")
    resp = client.patch(
        f"/api/case-studies/{seed_case.id}",
        json={"updates": {"title": "Revised title", "tags": ["metrics", "funnel"]}, "change_reason": "copy edit"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == 1
    assert data["changed_fields"] == ["title", "tags"]
    assert data["change_type"] == "content"
    assert data["case_study"]["current_version"] == 1
    assert data["case_study"]["title"] == "Revised title"

    detail = client.get(f"/api/case-studies/{seed_case.id}/versions/1", headers=headers)
    assert detail.status_code == 200
    body = detail.json()
    assert body["previous_values"]["title"] == "Why did checkout conversion drop?"
    assert body["new_values"]["tags"] == ["metrics", "funnel"]
    assert body["change_reason"] == "copy edit"
    assert body["created_by"] == "editor001"


def test_update_with_identical_values_is_noop(client, db, seed_users, seed_case):
    headers = auth_headers(client, "editor001")
    resp = client.patch(
        f"/api/case-studies/{seed_case.id}",
        json={"updates": {"title": seed_case.title, "tags": ["metrics"]}},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] is None
    assert data["changed_fields"] == []
    assert data["case_study"]["current_version"] == 0
    assert db.query(CaseStudyVersion).count() == 0


def test_update_only_versions_changed_fields(db, seed_case):
    result = case_study_service.update_case_study(
        db,
        seed_case.id,
        {"title": seed_case.title, "difficulty": "advanced"},
        actor="editor001",
    )
    assert result["changed_fields"] == ["difficulty"]
    assert result["change_type"] == "metadata"
    row = db.query(CaseStudyVersion).one()
    assert row.previous_values == {"difficulty": "intermediate"}


def test_explicit_change_type_is_recorded(db, seed_case):
    result = case_study_service.update_case_study(
        db, seed_case.id, {"charts": [{"type": "bar"}]}, change_type="full_regenerate", actor="admin001"
    )
    assert result["change_type"] == "full_regenerate"


def test_update_of_deleted_record_is_not_found(db, seed_case):
    lifecycle_service.soft_delete(db, seed_case.id, actor="editor001")
    with pytest.raises(NotFound):
        case_study_service.update_case_study(db, seed_case.id, {"title": "x"}, actor="editor001")


@pytest.mark.parametrize(
    "updates, message",
    [
        ({"current_version": 3}, "system field"),
        ({"deleted_at": None}, "system field"),
        ({"difficulty": "expert"}, "Invalid difficulty"),
        ({"seniority_level": 7}, "Invalid seniority_level"),
        ({"seniority_level": True}, "Invalid seniority_level"),
        ({"read_time_minutes": 45}, "read_time_minutes"),
        ({"tags": "pricing"}, "tags must be an array"),
        ({"mental_model": "steps"}, "mental_model"),
        ({"answer_approach": {"part": 1}}, "answer_approach must be an array"),
        ({"title": "  "}, "title"),
    ],
)
def test_validate_updates_rejects(updates, message):
    with pytest.raises(ValidationFailed) as exc_info:
        case_study_service.validate_updates(updates)
    assert any(message in error for error in exc_info.value.errors)


def test_validate_updates_collects_every_error():
    with pytest.raises(ValidationFailed) as exc_info:
        case_study_service.validate_updates({"id": "x", "difficulty": "expert", "read_time_minutes": 0})
    assert len(exc_info.value.errors) == 3


def test_unknown_fields_are_dropped_with_warning():
    accepted, warnings = case_study_service.validate_updates({"title": "ok", "colour": "blue"})
    assert accepted == {"title": "ok"}
    assert warnings == ["Unknown field 'colour' - will be ignored"]


def test_only_unknown_fields_is_rejected():
    with pytest.raises(ValidationFailed):
        case_study_service.validate_updates({"colour": "blue"})


def test_invalid_change_type_is_rejected(db, seed_case):
    with pytest.raises(ValidationFailed):
        case_study_service.update_case_study(db, seed_case.id, {"title": "x"}, change_type="soft_delete")


def test_update_validation_error_payload(client, seed_users, seed_case):
    headers = auth_headers(client, "editor001")
    resp = client.patch(
        f"/api/case-studies/{seed_case.id}",
        json={"updates": {"difficulty": "expert", "colour": "blue"}},
        headers=headers,
    )
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["errors"][0].startswith("Invalid difficulty 'expert'")
    assert detail["warnings"] == ["Unknown field 'colour' - will be ignored"]


def test_history_endpoint_limit_and_order(client, db, seed_users, seed_case):
    for idx in range(3):
        case_study_service.update_case_study(db, seed_case.id, {"title": f"Title {idx}"}, actor="editor001")

    headers = auth_headers(client, "viewer001")
    resp = client.get(f"/api/case-studies/{seed_case.id}/versions", params={"limit": 2}, headers=headers)
    assert resp.status_code == 200
    assert [row["version_number"] for row in resp.json()] == [3, 2]

    missing = client.get(f"/api/case-studies/{seed_case.id}/versions/99", headers=headers)
    assert missing.status_code == 404


def test_viewer_cannot_update(client, seed_users, seed_case):
    headers = auth_headers(client, "viewer001")
    resp = client.patch(f"/api/case-studies/{seed_case.id}", json={"updates": {"title": "x"}}, headers=headers)
    assert resp.status_code == 403


def test_unknown_case_is_not_found(client, seed_users):
    headers = auth_headers(client, "admin001")
    assert client.get("/api/case-studies/missing", headers=headers).status_code == 404
    assert client.delete("/api/case-studies/missing", headers=headers).status_code == 404


def test_update_keeps_other_fields(db, seed_case):
    case_study_service.update_case_study(db, seed_case.id, {"industry": "Retail"}, actor="editor001")
    row = db.query(CaseStudy).filter(CaseStudy.id == seed_case.id).first()
    db.refresh(row)
    assert row.industry == "Retail"
    assert row.title == "Why did checkout conversion drop?"


def test_float_with_same_value_is_noop(client, db, seed_users, seed_case):
    headers = auth_headers(client, "editor001")
    resp = client.patch(
        f"/api/case-studies/{seed_case.id}",
        json={"updates": {"read_time_minutes": 3.0}},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["version"] is None
    assert resp.json()["case_study"]["current_version"] == 0
    assert db.query(CaseStudyVersion).count() == 0
