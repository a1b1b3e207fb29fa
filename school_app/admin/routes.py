from datetime import date

from flask import Response, current_app, request
from flask_login import current_user

from ..api_utils import api_success, json_body
from ..auth import services as auth_services
from ..errors import NotFound, ValidationError
from ..fees import services as fee_services
from ..fees.exports import build_fee_ledger
from ..main.routes import invalidate_settings_cache
from ..models import (
    AcademicRecord, Achievement, AdmissionInquiry, ContactMessage, Fee, GalleryItem, Notice, Role,
    SiteSetting, Student, User,
)
from ..storage import get_storage
from ..validation import (
    ACADEMIC_RECORD_FIELDS, ACHIEVEMENT_FIELDS, CONTACT_STATUS_FIELDS, GALLERY_FIELDS,
    INQUIRY_STATUS_FIELDS, NOTICE_FIELDS, PROFILE_FIELDS, SETTING_FIELDS, parse_fields,
)
from . import admin_bp

ACADEMIC_RECORD_UPDATE_FIELDS = {k: v for k, v in ACADEMIC_RECORD_FIELDS.items() if k != "student_id"}


def _create(model, table):
    fields = parse_fields(json_body(), table)
    record = get_storage().create_record(model, **fields)
    return api_success(record.to_dict(), status=201)


def _update(model, pk, table, label):
    fields = parse_fields(json_body(), table, partial=True)
    record = get_storage().update_record(model, pk, **fields)
    if record is None:
        raise NotFound(f"{label} not found.")
    return api_success(record.to_dict())


def _delete(model, pk, label):
    if not get_storage().delete_record(model, pk):
        raise NotFound(f"{label} not found.")
    return api_success({"deleted": pk})


def _list(model, order_by, descending=True):
    rows = get_storage().list_records(model, order_by=order_by, descending=descending)
    return api_success([r.to_dict() for r in rows])


def _require_student(storage, student_id):
    student = storage.get_record(Student, student_id)
    if student is None:
        raise NotFound("Student not found.")
    return student


# ==========================================
# SITE SETTINGS
# ==========================================

@admin_bp.route("/settings", methods=["POST"])
def create_setting():
    storage = get_storage()
    fields = parse_fields(json_body(), SETTING_FIELDS)
    if storage.get_setting(fields["key"]) is not None:
        raise ValidationError("Invalid data.", details={"key": "A setting with this key already exists."})
    setting = storage.create_record(SiteSetting, **fields)
    invalidate_settings_cache()
    return api_success(setting.to_dict(), status=201)


@admin_bp.route("/settings/<key>", methods=["PUT"])
def update_setting(key):
    storage = get_storage()
    setting = storage.get_setting(key)
    if setting is None:
        raise NotFound("Setting not found.")
    fields = parse_fields(json_body(), {"value": SETTING_FIELDS["value"]})
    setting = storage.update_record(SiteSetting, setting.setting_id, **fields)
    invalidate_settings_cache()
    return api_success(setting.to_dict())


@admin_bp.route("/settings/<int:setting_id>", methods=["DELETE"])
def delete_setting(setting_id):
    response = _delete(SiteSetting, setting_id, "Setting")
    invalidate_settings_cache()
    return response


# ==========================================
# NOTICES / GALLERY / ACHIEVEMENTS
# ==========================================

@admin_bp.route("/notices", methods=["GET"])
def list_notices():
    return _list(Notice, "date")


@admin_bp.route("/notices", methods=["POST"])
def create_notice():
    return _create(Notice, NOTICE_FIELDS)


@admin_bp.route("/notices/<int:notice_id>", methods=["PUT"])
def update_notice(notice_id):
    return _update(Notice, notice_id, NOTICE_FIELDS, "Notice")


@admin_bp.route("/notices/<int:notice_id>", methods=["DELETE"])
def delete_notice(notice_id):
    return _delete(Notice, notice_id, "Notice")


@admin_bp.route("/gallery", methods=["GET"])
def list_gallery():
    return _list(GalleryItem, "upload_date")


@admin_bp.route("/gallery", methods=["POST"])
def create_gallery_item():
    return _create(GalleryItem, GALLERY_FIELDS)


@admin_bp.route("/gallery/<int:item_id>", methods=["PUT"])
def update_gallery_item(item_id):
    return _update(GalleryItem, item_id, GALLERY_FIELDS, "Gallery item")


@admin_bp.route("/gallery/<int:item_id>", methods=["DELETE"])
def delete_gallery_item(item_id):
    return _delete(GalleryItem, item_id, "Gallery item")


@admin_bp.route("/achievements", methods=["GET"])
def list_achievements():
    return _list(Achievement, "achievement_date")


@admin_bp.route("/achievements", methods=["POST"])
def create_achievement():
    return _create(Achievement, ACHIEVEMENT_FIELDS)


@admin_bp.route("/achievements/<int:achievement_id>", methods=["PUT"])
def update_achievement(achievement_id):
    return _update(Achievement, achievement_id, ACHIEVEMENT_FIELDS, "Achievement")


@admin_bp.route("/achievements/<int:achievement_id>", methods=["DELETE"])
def delete_achievement(achievement_id):
    return _delete(Achievement, achievement_id, "Achievement")


# ==========================================
# INQUIRIES / CONTACT MESSAGES
# ==========================================

@admin_bp.route("/inquiries", methods=["GET"])
def list_inquiries():
    return _list(AdmissionInquiry, "inquiry_date")


@admin_bp.route("/inquiries/<int:inquiry_id>", methods=["PUT"])
def update_inquiry_status(inquiry_id):
    fields = parse_fields(json_body(), INQUIRY_STATUS_FIELDS)
    inquiry = get_storage().update_record(AdmissionInquiry, inquiry_id, **fields)
    if inquiry is None:
        raise NotFound("Inquiry not found.")
    current_app.logger.info(
        f"AUDIT inquiry_status inquiry_id={inquiry_id} status={inquiry.status.value} by_user_id={current_user.user_id}"
    )
    return api_success(inquiry.to_dict())


@admin_bp.route("/inquiries/<int:inquiry_id>", methods=["DELETE"])
def delete_inquiry(inquiry_id):
    return _delete(AdmissionInquiry, inquiry_id, "Inquiry")


@admin_bp.route("/contact-messages", methods=["GET"])
def list_contact_messages():
    return _list(ContactMessage, "created_at")


@admin_bp.route("/contact-messages/<int:message_id>", methods=["PUT"])
def update_contact_message(message_id):
    return _update(ContactMessage, message_id, CONTACT_STATUS_FIELDS, "Message")


@admin_bp.route("/contact-messages/<int:message_id>", methods=["DELETE"])
def delete_contact_message(message_id):
    return _delete(ContactMessage, message_id, "Message")


# ==========================================
# STUDENTS / USERS
# ==========================================

@admin_bp.route("/students", methods=["GET"])
def list_students():
    storage = get_storage()
    users = {u.user_id: u for u in storage.list_records(User, role=Role.STUDENT)}
    out = []
    for student in storage.list_records(Student, order_by="student_id", descending=False):
        row = student.to_dict()
        user = users.get(student.user_id_fk)
        row["user"] = user.to_dict() if user else None
        out.append(row)
    return api_success(out)


@admin_bp.route("/students", methods=["POST"])
def provision_student():
    storage = get_storage()
    user = auth_services.create_account(storage, json_body(), role=Role.STUDENT)
    current_app.logger.info(
        f"AUDIT user_create user_id={user.user_id} role={user.role.value} by_user_id={current_user.user_id}"
    )
    return api_success(auth_services.user_payload(storage, user), status=201)


@admin_bp.route("/students/<int:student_id>", methods=["PUT"])
def update_student(student_id):
    fields = parse_fields(json_body(), PROFILE_FIELDS, partial=True)
    student = get_storage().update_record(Student, student_id, **fields)
    if student is None:
        raise NotFound("Student not found.")
    return api_success(student.to_dict())


@admin_bp.route("/students/<int:student_id>/fees", methods=["GET"])
def student_fees(student_id):
    storage = get_storage()
    _require_student(storage, student_id)
    return api_success(fee_services.fees_with_payments(storage, student_id))


@admin_bp.route("/students/<int:student_id>/academic-records", methods=["GET"])
def student_academic_records(student_id):
    storage = get_storage()
    _require_student(storage, student_id)
    return api_success([r.to_dict() for r in storage.list_academic_records(student_id)])


@admin_bp.route("/users", methods=["POST"])
def create_user():
    storage = get_storage()
    data = json_body()
    try:
        role = Role(data.get("role", Role.STUDENT.value))
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError("Invalid data.", details={"role": f"Must be one of: {allowed}."})
    user = auth_services.create_account(storage, data, role=role)
    current_app.logger.info(
        f"AUDIT user_create user_id={user.user_id} role={user.role.value} by_user_id={current_user.user_id}"
    )
    return api_success(auth_services.user_payload(storage, user), status=201)


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
def delete_user(user_id):
    if user_id == current_user.user_id:
        raise ValidationError("You cannot delete your own account.")
    if not get_storage().delete_user(user_id):
        raise NotFound("User not found.")
    current_app.logger.info(f"AUDIT user_delete user_id={user_id} by_user_id={current_user.user_id}")
    return api_success({"deleted": user_id})


# ==========================================
# FEES
# ==========================================

@admin_bp.route("/fees", methods=["GET"])
def list_fees():
    storage = get_storage()
    filters = {}
    student_id = request.args.get("student_id", type=int)
    if student_id is not None:
        filters["student_id_fk"] = student_id
    fees = storage.list_records(Fee, order_by="due_date", **filters)
    return api_success([f.to_dict() for f in fees])


@admin_bp.route("/fees", methods=["POST"])
def create_fee():
    fee = fee_services.create_fee(get_storage(), json_body(), actor_user_id=current_user.user_id)
    return api_success(fee.to_dict(), status=201)


@admin_bp.route("/fees/<int:fee_id>", methods=["PUT"])
def update_fee(fee_id):
    fee = fee_services.update_fee(get_storage(), fee_id, json_body(), actor_user_id=current_user.user_id)
    return api_success(fee.to_dict())


@admin_bp.route("/fees/<int:fee_id>/history", methods=["GET"])
def fee_history(fee_id):
    storage = get_storage()
    if storage.get_record(Fee, fee_id) is None:
        raise NotFound("Fee not found.")
    return api_success([log.to_dict() for log in storage.list_fee_logs(fee_id)])


@admin_bp.route("/fees/export", methods=["GET"])
def export_fees():
    bio = build_fee_ledger(get_storage())
    filename = f"fee_ledger_{date.today().isoformat()}.xlsx"
    current_app.logger.info(f"AUDIT fee_export by_user_id={current_user.user_id}")
    return Response(bio.read(), mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", headers={
        "Content-Disposition": f"attachment; filename={filename}"
    })


# ==========================================
# ACADEMIC RECORDS
# ==========================================

@admin_bp.route("/academic-records", methods=["POST"])
def create_academic_record():
    storage = get_storage()
    fields = parse_fields(json_body(), ACADEMIC_RECORD_FIELDS)
    student_id = fields.pop("student_id")
    _require_student(storage, student_id)
    record = storage.create_record(AcademicRecord, student_id_fk=student_id, **fields)
    return api_success(record.to_dict(), status=201)


@admin_bp.route("/academic-records/<int:record_id>", methods=["PUT"])
def update_academic_record(record_id):
    return _update(AcademicRecord, record_id, ACADEMIC_RECORD_UPDATE_FIELDS, "Academic record")


@admin_bp.route("/academic-records/<int:record_id>", methods=["DELETE"])
def delete_academic_record(record_id):
    return _delete(AcademicRecord, record_id, "Academic record")
