from datetime import datetime, timedelta

import pytest

from caseflow.models.case_study_version import CaseStudyVersion
from caseflow.services import lifecycle_service
from caseflow.services.errors import AlreadyDeleted, NotDeleted, NotFound
from tests.conftest import auth_headers, make_case


def test_delete_restore_delete_sequence(db, seed_case):
    first = lifecycle_service.soft_delete(db, seed_case.id, reason="duplicate", actor="editor001")
    second = lifecycle_service.restore(db, seed_case.id, actor="admin001")
    third = lifecycle_service.soft_delete(db, seed_case.id, reason="outdated", actor="editor001")

    assert [first.version_number, second.version_number, third.version_number] == [1, 2, 3]
    assert [first.change_type, second.change_type, third.change_type] == ["soft_delete", "restore", "soft_delete"]
    assert second.change_reason == "Restored from soft delete"

    db.refresh(seed_case)
    assert seed_case.current_version == 3
    assert seed_case.deleted_by == "editor001"
    assert seed_case.delete_reason == "outdated"
    assert seed_case.deleted_at is not None


def test_soft_delete_records_deletion_fields_and_unpublishes(db, seed_case):
    row = lifecycle_service.soft_delete(db, seed_case.id, reason="duplicate", actor="editor001")

    assert row.changed_fields == ["deleted_at", "deleted_by", "delete_reason", "is_published"]
    assert row.previous_values["deleted_at"] is None
    assert row.previous_values["is_published"] is True
    assert row.new_values["deleted_by"] == "editor001"
    assert row.new_values["is_published"] is False

    db.refresh(seed_case)
    assert seed_case.is_published is False


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_soft_delete_without_reason_fills_deletion_triple(db, seed_case, reason):
    row = lifecycle_service.soft_delete(db, seed_case.id, reason=reason, actor="editor001")
    assert "delete_reason" in row.changed_fields
    assert row.new_values["delete_reason"] == lifecycle_service.DEFAULT_DELETE_REASON
    assert row.change_reason == lifecycle_service.DEFAULT_DELETE_REASON

    db.refresh(seed_case)
    assert seed_case.deleted_at is not None
    assert seed_case.deleted_by == "editor001"
    assert seed_case.delete_reason == lifecycle_service.DEFAULT_DELETE_REASON


def test_restore_clears_deletion_triple(db, seed_case):
    lifecycle_service.soft_delete(db, seed_case.id, reason="duplicate", actor="editor001")
    row = lifecycle_service.restore(db, seed_case.id, actor="admin001")

    assert row.changed_fields == ["deleted_at", "deleted_by", "delete_reason"]
    assert row.new_values == {"deleted_at": None, "deleted_by": None, "delete_reason": None}
    db.refresh(seed_case)
    assert (seed_case.deleted_at, seed_case.deleted_by, seed_case.delete_reason) == (None, None, None)


def test_double_delete_is_rejected_without_write(db, seed_case):
    lifecycle_service.soft_delete(db, seed_case.id, actor="editor001")
    with pytest.raises(AlreadyDeleted):
        lifecycle_service.soft_delete(db, seed_case.id, actor="editor001")

    assert db.query(CaseStudyVersion).count() == 1
    db.refresh(seed_case)
    assert seed_case.current_version == 1


def test_restore_of_active_record_is_rejected_without_write(db, seed_case):
    with pytest.raises(NotDeleted):
        lifecycle_service.restore(db, seed_case.id, actor="admin001")
    assert db.query(CaseStudyVersion).count() == 0


def test_missing_record_is_not_found(db):
    with pytest.raises(NotFound):
        lifecycle_service.soft_delete(db, "does-not-exist", actor="editor001")


def test_list_deleted_respects_lookback(db):
    recent = make_case(db, title="Recent")
    old = make_case(db, title="Old")
    lifecycle_service.soft_delete(db, recent.id, actor="editor001")
    lifecycle_service.soft_delete(db, old.id, actor="editor001")
    old.deleted_at = datetime.utcnow() - timedelta(days=45)
    db.commit()

    rows = lifecycle_service.list_deleted(db)
    assert [r.id for r in rows] == [recent.id]
    assert {r.id for r in lifecycle_service.list_deleted(db, days_back=60)} == {recent.id, old.id}


def test_delete_and_restore_via_api(client, db, seed_users, seed_case):
    headers = auth_headers(client, "editor001")

    resp = client.delete(f"/api/case-studies/{seed_case.id}", params={"reason": "duplicate"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["version"] == 1

    again = client.delete(f"/api/case-studies/{seed_case.id}", headers=headers)
    assert again.status_code == 409

    restore = client.post(f"/api/case-studies/{seed_case.id}/restore", headers=headers)
    assert restore.status_code == 200
    assert restore.json()["version"] == 2

    restore_again = client.post(f"/api/case-studies/{seed_case.id}/restore", headers=headers)
    assert restore_again.status_code == 409


def test_deleted_record_hidden_from_viewer(client, db, seed_users, seed_case):
    lifecycle_service.soft_delete(db, seed_case.id, reason="duplicate", actor="editor001")

    viewer = auth_headers(client, "viewer001")
    assert client.get(f"/api/case-studies/{seed_case.id}", headers=viewer).status_code == 404
    assert client.get(f"/api/case-studies/{seed_case.id}/versions", headers=viewer).status_code == 404
    assert client.get("/api/case-studies/deleted", headers=viewer).status_code == 403

    editor = auth_headers(client, "editor001")
    resp = client.get(f"/api/case-studies/{seed_case.id}", headers=editor)
    assert resp.status_code == 200
    assert resp.json()["deleted_by"] == "editor001"

    history = client.get(f"/api/case-studies/{seed_case.id}/versions", headers=editor)
    assert history.status_code == 200
    assert history.json()[0]["change_type"] == "soft_delete"

    deleted = client.get("/api/case-studies/deleted", headers=editor)
    assert deleted.status_code == 200
    assert [row["id"] for row in deleted.json()] == [seed_case.id]


def test_viewer_cannot_delete(client, seed_users, seed_case):
    viewer = auth_headers(client, "viewer001")
    resp = client.delete(f"/api/case-studies/{seed_case.id}", headers=viewer)
    assert resp.status_code == 403
