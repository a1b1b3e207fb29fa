"""
Field tables and the converter that checks request payloads against them.

Each table maps a payload key to ``(kind, required)``. ``kind`` is one of the
names in ``_CONVERTERS`` or an ``enum.Enum`` subclass. ``parse_fields`` collects
every problem before raising, so the caller gets all field errors at once.
"""
import enum
import re
from datetime import date
from decimal import Decimal, InvalidOperation

from .errors import ValidationError
from .models import InquiryStatus, MessageStatus

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _to_str(value):
    if not isinstance(value, str):
        raise ValueError("Must be a string.")
    return value.strip()


def _to_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise ValueError("Must be true or false.")


def _to_int(value):
    if isinstance(value, bool):
        raise ValueError("Must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError("Must be an integer.")


def _to_float(value):
    if isinstance(value, bool):
        raise ValueError("Must be a number.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError("Must be a number.")


def _to_amount(value):
    if isinstance(value, bool):
        raise ValueError("Must be a positive amount.")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError("Must be a positive amount.")
    if not amount.is_finite() or amount <= 0:
        raise ValueError("Must be a positive amount.")
    return amount.quantize(Decimal("0.01"))


def _to_date(value):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(_to_str(value)[:10])
    except ValueError:
        raise ValueError("Must be a date (YYYY-MM-DD).")


def _to_email(value):
    value = _to_str(value)
    if not EMAIL_RE.match(value):
        raise ValueError("Must be a valid email address.")
    return value


_CONVERTERS = {
    "str": _to_str,
    "bool": _to_bool,
    "int": _to_int,
    "float": _to_float,
    "amount": _to_amount,
    "date": _to_date,
    "email": _to_email,
}


def _convert(kind, value):
    if isinstance(kind, type) and issubclass(kind, enum.Enum):
        try:
            return kind(value)
        except ValueError:
            allowed = ", ".join(m.value for m in kind)
            raise ValueError(f"Must be one of: {allowed}.")
    return _CONVERTERS[kind](value)


def parse_fields(data, fields, partial=False):
    """Validate ``data`` against a field table and return the converted values.

    With ``partial`` (updates), missing keys are simply left out. An explicit
    empty value clears an optional field and is rejected for a required one.
    """
    cleaned = {}
    errors = {}
    for name, (kind, required) in fields.items():
        if name not in data:
            if required and not partial:
                errors[name] = "This field is required."
            continue
        value = data[name]
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                errors[name] = "This field is required."
            else:
                cleaned[name] = None
            continue
        try:
            cleaned[name] = _convert(kind, value)
        except ValueError as e:
            errors[name] = str(e)
    if errors:
        raise ValidationError("Invalid data.", details=errors)
    return cleaned


USER_FIELDS = {
    "username": ("str", True),
    "full_name": ("str", True),
    "email": ("email", True),
    "phone": ("str", False),
    "address": ("str", False),
}

PROFILE_FIELDS = {
    "class_name": ("str", False),
    "section": ("str", False),
    "roll_number": ("str", False),
    "parent_name": ("str", False),
    "date_of_birth": ("date", False),
    "gender": ("str", False),
    "previous_school": ("str", False),
}

NOTICE_FIELDS = {
    "title": ("str", True),
    "content": ("str", True),
    "category": ("str", True),
    "important": ("bool", False),
    "attachment_url": ("str", False),
    "attachment_type": ("str", False),
    "is_active": ("bool", False),
}

GALLERY_FIELDS = {
    "title": ("str", True),
    "description": ("str", False),
    "image_url": ("str", True),
    "category": ("str", False),
    "is_active": ("bool", False),
}

ACHIEVEMENT_FIELDS = {
    "title": ("str", True),
    "description": ("str", False),
    "category": ("str", False),
    "value": ("str", False),
    "image_url": ("str", False),
    "is_active": ("bool", False),
}

INQUIRY_FIELDS = {
    "student_name": ("str", True),
    "date_of_birth": ("date", True),
    "gender": ("str", True),
    "applying_for_class": ("str", True),
    "previous_school": ("str", False),
    "parent_name": ("str", True),
    "relationship": ("str", True),
    "email": ("email", True),
    "phone": ("str", True),
    "address": ("str", True),
    "reference_source": ("str", False),
    "reason": ("str", False),
    "special_needs": ("str", False),
}

INQUIRY_STATUS_FIELDS = {"status": (InquiryStatus, True)}

CONTACT_FIELDS = {
    "name": ("str", True),
    "email": ("email", True),
    "subject": ("str", True),
    "message": ("str", True),
}

CONTACT_STATUS_FIELDS = {"status": (MessageStatus, True)}

SETTING_FIELDS = {
    "key": ("str", True),
    "value": ("str", True),
}

FEE_FIELDS = {
    "student_id": ("int", True),
    "term": ("str", True),
    "amount": ("amount", True),
    "due_date": ("date", True),
}

PAYMENT_FIELDS = {
    "payment_method": ("str", True),
    "transaction_id": ("str", False),
    "receipt": ("str", False),
}

ACADEMIC_RECORD_FIELDS = {
    "student_id": ("int", True),
    "subject": ("str", True),
    "term": ("str", True),
    "grade": ("str", False),
    "marks": ("float", False),
    "max_marks": ("float", False),
    "remarks": ("str", False),
}
