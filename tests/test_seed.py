from conftest import login, make_app
from school_app.models import Fee, FeePayment, FeeStatus, Notice, SiteSetting, User
from school_app.seed import DEFAULT_SETTINGS, seed_defaults
from school_app.storage import get_storage


def test_seed_installs_demo_data(app):
    with app.app_context():
        storage = get_storage()
        summary = seed_defaults(storage)
        assert summary["settings"] == len(DEFAULT_SETTINGS)
        assert summary["admin_created"] and summary["student_created"]
        assert storage.get_setting("schoolName").value == "St. Stephen School"

        student = storage.get_student_by_user_id(storage.get_user_by_username("student").user_id)
        fees = storage.list_fees_for_student(student.student_id)
        assert [(f.term, f.status) for f in fees] == [
            ("Term 1 2023", FeeStatus.PAID), ("Term 2 2023", FeeStatus.PENDING),
        ]
        payments = storage.list_payments_for_fee(fees[0].fee_id)
        assert [p.transaction_id for p in payments] == ["TXN123456"]
        assert storage.list_payments_for_fee(fees[1].fee_id) == []
        assert len(storage.list_academic_records(student.student_id)) == 3


def test_seed_is_idempotent(app):
    with app.app_context():
        storage = get_storage()
        seed_defaults(storage)
        counts = {m: len(storage.list_records(m)) for m in (SiteSetting, User, Notice, Fee, FeePayment)}
        summary = seed_defaults(storage)
        assert summary["settings"] == 0
        assert not summary["admin_created"]
        assert {m: len(storage.list_records(m)) for m in counts} == counts


def test_seed_on_startup():
    app = make_app("memory", SEED_DEMO_DATA=True)
    client = app.test_client()
    assert login(client, "admin", "admin123").status_code == 200
    assert len(client.get("/api/admin/students").get_json()["data"]) == 1

    student = app.test_client()
    assert login(student, "student", "student123").status_code == 200
    fees = student.get("/api/student/fees").get_json()["data"]
    assert [f["display_status"] for f in fees] == ["paid", "overdue"]
