from datetime import date
from decimal import Decimal

import pytest

from school_app.errors import DuplicateUsername, ValidationError
from school_app.models import (
    AcademicRecord, AdmissionInquiry, Fee, FeeStatus, InquiryStatus, Notice, Role, SiteSetting, Student, User,
)
from school_app.security import hash_password
from school_app.storage import create_storage


def user_fields(username, role=Role.STUDENT):
    return {
        "username": username,
        "password_hash": hash_password("secret123", "pbkdf2:sha256:1000"),
        "role": role,
        "full_name": username.title(),
        "email": f"{username}@example.com",
    }


def test_unknown_backend():
    with pytest.raises(ValueError):
        create_storage("flatfile")


def test_record_crud(storage):
    notice = storage.create_record(Notice, title="Holiday", content="School closed", category="General")
    assert notice.notice_id is not None
    assert notice.is_active is True
    assert notice.date is not None

    assert storage.get_record(Notice, notice.notice_id).title == "Holiday"
    updated = storage.update_record(Notice, notice.notice_id, title="Holiday notice")
    assert updated.title == "Holiday notice"
    assert storage.update_record(Notice, 999, title="x") is None

    assert storage.delete_record(Notice, notice.notice_id) is True
    assert storage.delete_record(Notice, notice.notice_id) is False
    assert storage.get_record(Notice, notice.notice_id) is None


def test_list_records_filters_and_orders(storage):
    storage.create_record(SiteSetting, key="b", value="2")
    storage.create_record(SiteSetting, key="a", value="1")
    storage.create_record(SiteSetting, key="c", value="3")

    assert [s.key for s in storage.list_records(SiteSetting, order_by="key")] == ["a", "b", "c"]
    assert [s.key for s in storage.list_records(SiteSetting, order_by="key", descending=True, limit=2)] == ["c", "b"]
    assert [s.key for s in storage.list_records(SiteSetting, value="2")] == ["b"]
    assert storage.get_setting("a").value == "1"
    assert storage.get_setting("zzz") is None


def test_enum_columns_round_trip(storage):
    inquiry = storage.create_record(
        AdmissionInquiry, student_name="Kiran", date_of_birth=date(2012, 1, 2), gender="female",
        applying_for_class="6", parent_name="Lata", relationship="mother", email="lata@example.com",
        phone="9999999999", address="Patna",
    )
    assert inquiry.status is InquiryStatus.PENDING
    storage.update_record(AdmissionInquiry, inquiry.inquiry_id, status=InquiryStatus.WAITLISTED)
    assert storage.get_record(AdmissionInquiry, inquiry.inquiry_id).status is InquiryStatus.WAITLISTED


def test_setting_updated_at_moves_on_update(storage):
    setting = storage.create_record(SiteSetting, key="schoolName", value="Old")
    before = setting.updated_at
    storage.update_record(SiteSetting, setting.setting_id, value="New")
    assert storage.get_record(SiteSetting, setting.setting_id).updated_at >= before


def test_create_user_with_profile(storage):
    user = storage.create_user(user_fields("asha"), {"class_name": "10", "section": "A"})
    student = storage.get_student_by_user_id(user.user_id)
    assert student.class_name == "10"
    assert student.admission_date is not None
    assert storage.get_user_by_username("asha").user_id == user.user_id


def test_duplicate_username_creates_nothing(storage):
    storage.create_user(user_fields("asha"), {})
    with pytest.raises(DuplicateUsername):
        storage.create_user(user_fields("asha"), {"class_name": "9"})
    assert len(storage.list_records(User)) == 1
    assert len(storage.list_records(Student)) == 1


def test_delete_user_removes_profile_and_records(storage):
    user = storage.create_user(user_fields("asha"), {})
    student = storage.get_student_by_user_id(user.user_id)
    storage.create_record(AcademicRecord, student_id_fk=student.student_id, subject="Maths", term="T1", grade="A")

    assert storage.delete_user(user.user_id) is True
    assert storage.get_record(User, user.user_id) is None
    assert storage.list_records(Student) == []
    assert storage.list_records(AcademicRecord) == []
    assert storage.delete_user(user.user_id) is False


def test_delete_user_with_fees_is_blocked(storage):
    user = storage.create_user(user_fields("asha"), {})
    student = storage.get_student_by_user_id(user.user_id)
    storage.create_record(
        Fee, student_id_fk=student.student_id, term="T1", amount=Decimal("100"),
        due_date=date(2024, 1, 1), status=FeeStatus.PENDING,
    )
    with pytest.raises(ValidationError):
        storage.delete_user(user.user_id)
    assert storage.get_record(User, user.user_id) is not None
    assert storage.get_student_by_user_id(user.user_id) is not None


def test_delete_user_with_fee_activity_is_blocked(storage):
    admin = storage.create_user(user_fields("bursar", role=Role.ADMIN))
    user = storage.create_user(user_fields("asha"), {})
    student = storage.get_student_by_user_id(user.user_id)
    fee = storage.create_record(
        Fee, student_id_fk=student.student_id, term="T1", amount=Decimal("100"),
        due_date=date(2024, 1, 1), status=FeeStatus.PENDING,
    )
    storage.set_fee_status(fee.fee_id, FeeStatus.PAID, actor_user_id=admin.user_id)

    with pytest.raises(ValidationError):
        storage.delete_user(admin.user_id)
    assert storage.get_record(User, admin.user_id) is not None
    assert storage.list_fee_logs(fee.fee_id)[0].actor_user_id_fk == admin.user_id


def test_fee_listing_for_student(storage):
    user = storage.create_user(user_fields("asha"), {})
    student_id = storage.get_student_by_user_id(user.user_id).student_id
    for term, due in (("T2", date(2024, 6, 1)), ("T1", date(2024, 1, 1))):
        storage.create_record(
            Fee, student_id_fk=student_id, term=term, amount=Decimal("100"), due_date=due, status=FeeStatus.PENDING,
        )
    assert [f.term for f in storage.list_fees_for_student(student_id)] == ["T1", "T2"]
    assert storage.list_fees_for_student(student_id + 1) == []
