import pytest
from sqlalchemy.exc import OperationalError

from caseflow.models.case_study import CaseStudy
from caseflow.models.case_study_version import CaseStudyVersion
from caseflow.models.configuration import Configuration
from caseflow.services import version_service
from caseflow.services.errors import NotFound, StoreFailure
from tests.conftest import make_case


def _update_title(db, case, title, actor="editor001"):
    return version_service.record_change(
        db,
        case,
        change_type="content",
        previous={"title": case.title},
        new={"title": title},
        actor=actor,
        apply={"title": title},
    )


def _version_numbers(db, case_id):
    return [
        row[0]
        for row in db.query(CaseStudyVersion.version_number)
        .filter(CaseStudyVersion.case_study_id == case_id)
        .order_by(CaseStudyVersion.version_number)
        .all()
    ]


def test_diff_fields_keeps_order_and_restricts_values():
    diff = version_service.diff_fields(
        {"title": "A", "tags": ["x"], "difficulty": "beginner"},
        {"title": "B", "tags": ["x"], "difficulty": "advanced", "industry": "SaaS"},
    )
    assert diff.changed_fields == ["title", "difficulty", "industry"]
    assert diff.previous_values == {"title": "A", "difficulty": "beginner", "industry": None}
    assert diff.new_values == {"title": "B", "difficulty": "advanced", "industry": "SaaS"}


def test_diff_fields_compares_structures_deeply():
    previous = {"mental_model": {"flow": "a", "steps": [1, 2]}}
    same = {"mental_model": {"steps": [1, 2], "flow": "a"}}
    changed = {"mental_model": {"flow": "a", "steps": [2, 1]}}
    assert not version_service.diff_fields(previous, same)
    assert version_service.diff_fields(previous, changed).changed_fields == ["mental_model"]


def test_diff_fields_treats_equal_numbers_as_unchanged():
    assert not version_service.diff_fields({"read_time_minutes": 3}, {"read_time_minutes": 3.0})
    assert not version_service.diff_fields({"charts": [{"width": 2}]}, {"charts": [{"width": 2.0}]})
    assert version_service.diff_fields({"is_published": True}, {"is_published": 1}).changed_fields == ["is_published"]


@pytest.mark.parametrize(
    "fields, expected",
    [
        (["charts"], "visuals"),
        (["charts", "image_generation_status"], "visuals"),
        (["tags", "difficulty"], "metadata"),
        (["title"], "content"),
        (["title", "charts"], "content"),
        (["tags", "charts"], "content"),
    ],
)
def test_determine_change_type(fields, expected):
    assert version_service.determine_change_type(fields) == expected


def test_noop_writes_nothing(db, seed_case):
    row = version_service.record_change(
        db,
        seed_case,
        change_type="content",
        previous={"title": seed_case.title},
        new={"title": seed_case.title},
    )
    assert row is None
    assert db.query(CaseStudyVersion).count() == 0
    db.refresh(seed_case)
    assert seed_case.current_version == 0


def test_record_change_numbers_monotonically_and_moves_pointer(db, seed_case):
    first = _update_title(db, seed_case, "First")
    second = _update_title(db, seed_case, "Second")

    assert (first.version_number, second.version_number) == (1, 2)
    db.refresh(seed_case)
    assert seed_case.current_version == 2
    assert seed_case.title == "Second"
    assert second.changed_fields == ["title"]
    assert second.previous_values == {"title": "First"}
    assert second.new_values == {"title": "Second"}
    assert second.created_by == "editor001"


def test_unknown_change_type_is_rejected(db, seed_case):
    with pytest.raises(ValueError):
        version_service.record_change(
            db, seed_case, change_type="bogus", previous={"title": "a"}, new={"title": "b"}
        )


def test_retention_keeps_newest_five(db, seed_case):
    for idx in range(8):
        _update_title(db, seed_case, f"Title {idx}")

    assert _version_numbers(db, seed_case.id) == [4, 5, 6, 7, 8]
    db.refresh(seed_case)
    assert seed_case.current_version == 8


def test_retention_window_follows_configuration(db, seed_case):
    db.add(
        Configuration(
            config_key="version_retention_count",
            config_type="system",
            config_value={"value": 3},
        )
    )
    db.commit()

    for idx in range(5):
        _update_title(db, seed_case, f"Title {idx}")

    assert _version_numbers(db, seed_case.id) == [3, 4, 5]


def test_invalid_retention_configuration_falls_back_to_setting(db, seed_case):
    db.add(
        Configuration(
            config_key="version_retention_count",
            config_type="system",
            config_value={"value": 0},
        )
    )
    db.commit()
    assert version_service.get_retention_window(db) == 5


def test_store_failure_rolls_back_everything(db, seed_case, monkeypatch):
    _update_title(db, seed_case, "Stable")

    def broken_prune(*args, **kwargs):
        raise OperationalError("DELETE FROM case_study_versions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(version_service, "prune_versions", broken_prune)

    with pytest.raises(StoreFailure):
        _update_title(db, seed_case, "Never written")

    fresh = db.query(CaseStudy).filter(CaseStudy.id == seed_case.id).first()
    db.refresh(fresh)
    assert fresh.title == "Stable"
    assert fresh.current_version == 1
    assert _version_numbers(db, seed_case.id) == [1]


def test_history_is_newest_first_and_limited(db, seed_case):
    for idx in range(4):
        _update_title(db, seed_case, f"Title {idx}")

    rows = version_service.list_versions(db, case_study_id=seed_case.id, limit=2)
    assert [r.version_number for r in rows] == [4, 3]

    # limit은 보존 범위(5)를 넘지 않는다.
    rows = version_service.list_versions(db, case_study_id=seed_case.id, limit=50)
    assert [r.version_number for r in rows] == [4, 3, 2, 1]


def test_pruned_version_is_not_found(db, seed_case):
    for idx in range(7):
        _update_title(db, seed_case, f"Title {idx}")

    with pytest.raises(NotFound):
        version_service.get_version(db, case_study_id=seed_case.id, version_number=1)
    assert version_service.get_version(db, case_study_id=seed_case.id, version_number=7).new_values == {
        "title": "Title 6"
    }


def test_reconcile_repairs_pointer_drift(db, seed_case):
    _update_title(db, seed_case, "One")
    seed_case.current_version = 9
    db.commit()

    assert version_service.reconcile_current_version(db, seed_case) == 1
    db.refresh(seed_case)
    assert seed_case.current_version == 1


def test_histories_are_independent_per_case(db):
    a = make_case(db, title="A")
    b = make_case(db, title="B")
    _update_title(db, a, "A2")
    _update_title(db, a, "A3")
    _update_title(db, b, "B2")

    assert _version_numbers(db, a.id) == [1, 2]
    assert _version_numbers(db, b.id) == [1]
