import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from flask_login import UserMixin
from sqlalchemy import inspect as sa_inspect

from . import db


def utc_now():
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    STUDENT = "student"
    ADMIN = "admin"


class FeeStatus(str, enum.Enum):
    # "overdue" is derived from the due date at read time, never stored.
    PENDING = "pending"
    PAID = "paid"


class FeeEventSource(str, enum.Enum):
    PAYMENT = "payment"
    ADMIN_OVERRIDE = "admin_override"


class InquiryStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class MessageStatus(str, enum.Enum):
    UNREAD = "unread"
    READ = "read"
    REPLIED = "replied"


def enum_type(enum_cls):
    return db.Enum(
        enum_cls,
        native_enum=False,
        length=16,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


def json_value(value):
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class SerializerMixin:
    serialize_exclude = ()

    def to_dict(self):
        out = {}
        for attr in sa_inspect(type(self)).column_attrs:
            if attr.key in self.serialize_exclude:
                continue
            out[attr.key] = json_value(getattr(self, attr.key))
        return out


# ==========================================
# IDENTITY
# ==========================================

class User(UserMixin, SerializerMixin, db.Model):
    __tablename__ = "users"
    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(enum_type(Role), nullable=False, default=Role.STUDENT)
    full_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32))
    address = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    serialize_exclude = ("password_hash",)

    def get_id(self):
        return str(self.user_id)

    @property
    def is_admin(self):
        return self.role is Role.ADMIN


class Student(SerializerMixin, db.Model):
    __tablename__ = "students"
    student_id = db.Column(db.Integer, primary_key=True)
    user_id_fk = db.Column(db.Integer, db.ForeignKey("users.user_id"), unique=True, nullable=False)
    class_name = db.Column("class", db.String(32))
    section = db.Column(db.String(16))
    roll_number = db.Column(db.String(32))
    parent_name = db.Column(db.String(128))
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(16))
    admission_date = db.Column(db.DateTime, default=utc_now)
    previous_school = db.Column(db.String(128))


# ==========================================
# PUBLIC CONTENT
# ==========================================

class Notice(SerializerMixin, db.Model):
    __tablename__ = "notices"
    notice_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    date = db.Column(db.DateTime, default=utc_now, nullable=False)
    important = db.Column(db.Boolean, default=False)
    attachment_url = db.Column(db.String(255))
    attachment_type = db.Column(db.String(32))
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class GalleryItem(SerializerMixin, db.Model):
    __tablename__ = "gallery"
    item_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64))
    upload_date = db.Column(db.DateTime, default=utc_now, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class Achievement(SerializerMixin, db.Model):
    __tablename__ = "achievements"
    achievement_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    achievement_date = db.Column(db.DateTime, default=utc_now)
    category = db.Column(db.String(64))
    value = db.Column(db.String(64))
    image_url = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class AdmissionInquiry(SerializerMixin, db.Model):
    __tablename__ = "admission_inquiries"
    inquiry_id = db.Column(db.Integer, primary_key=True)
    student_name = db.Column(db.String(128), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=False)
    gender = db.Column(db.String(16), nullable=False)
    applying_for_class = db.Column(db.String(32), nullable=False)
    previous_school = db.Column(db.String(128))
    parent_name = db.Column(db.String(128), nullable=False)
    relationship = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.Text, nullable=False)
    reference_source = db.Column(db.String(64))
    reason = db.Column(db.Text)
    special_needs = db.Column(db.Text)
    status = db.Column(enum_type(InquiryStatus), nullable=False, default=InquiryStatus.PENDING)
    inquiry_date = db.Column(db.DateTime, default=utc_now, nullable=False)


class ContactMessage(SerializerMixin, db.Model):
    __tablename__ = "contact_messages"
    message_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(128), nullable=False)
    subject = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(enum_type(MessageStatus), nullable=False, default=MessageStatus.UNREAD)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)


class SiteSetting(SerializerMixin, db.Model):
    """Key-value site configuration shown on the public pages."""
    __tablename__ = "site_settings"
    setting_id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), unique=True, nullable=False)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)


# ==========================================
# FEES
# ==========================================

class Fee(SerializerMixin, db.Model):
    __tablename__ = "fees"
    fee_id = db.Column(db.Integer, primary_key=True)
    student_id_fk = db.Column(db.Integer, db.ForeignKey("students.student_id"), nullable=False, index=True)
    term = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    status = db.Column(enum_type(FeeStatus), nullable=False, default=FeeStatus.PENDING)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def display_status(self, today=None):
        if self.status is FeeStatus.PAID:
            return FeeStatus.PAID.value
        today = today or date.today()
        if self.due_date and self.due_date < today:
            return "overdue"
        return FeeStatus.PENDING.value

    def to_dict(self):
        out = super().to_dict()
        out["display_status"] = self.display_status()
        return out


class FeePayment(SerializerMixin, db.Model):
    __tablename__ = "fee_payments"
    payment_id = db.Column(db.Integer, primary_key=True)
    fee_id_fk = db.Column(db.Integer, db.ForeignKey("fees.fee_id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_date = db.Column(db.DateTime, default=utc_now, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    transaction_id = db.Column(db.String(64))
    receipt = db.Column(db.String(255))
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"))


class FeeStatusLog(SerializerMixin, db.Model):
    """Audit trail of fee status changes, one row per transition."""
    __tablename__ = "fee_status_logs"
    log_id = db.Column(db.Integer, primary_key=True)
    fee_id_fk = db.Column(db.Integer, db.ForeignKey("fees.fee_id"), nullable=False, index=True)
    old_status = db.Column(enum_type(FeeStatus))
    new_status = db.Column(enum_type(FeeStatus), nullable=False)
    source = db.Column(enum_type(FeeEventSource), nullable=False)
    actor_user_id_fk = db.Column(db.Integer, db.ForeignKey("users.user_id"))
    payment_id_fk = db.Column(db.Integer, db.ForeignKey("fee_payments.payment_id"))
    at = db.Column(db.DateTime, default=utc_now, nullable=False)


# ==========================================
# ACADEMICS
# ==========================================

class AcademicRecord(SerializerMixin, db.Model):
    __tablename__ = "academic_records"
    record_id = db.Column(db.Integer, primary_key=True)
    student_id_fk = db.Column(db.Integer, db.ForeignKey("students.student_id"), nullable=False, index=True)
    subject = db.Column(db.String(64), nullable=False)
    term = db.Column(db.String(64), nullable=False)
    grade = db.Column(db.String(8))
    marks = db.Column(db.Float)
    max_marks = db.Column(db.Float)
    remarks = db.Column(db.Text)
    record_date = db.Column(db.DateTime, default=utc_now, nullable=False)
