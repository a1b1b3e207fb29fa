from flask import request

from .. import cache
from ..api_utils import api_success, json_body
from ..errors import NotFound, ValidationError
from ..models import (
    Achievement, AdmissionInquiry, ContactMessage, GalleryItem, InquiryStatus, MessageStatus,
    Notice, SiteSetting,
)
from ..storage import get_storage
from ..validation import CONTACT_FIELDS, INQUIRY_FIELDS, parse_fields
from . import main_bp

SETTINGS_CACHE_KEY = "public_site_settings"
SETTINGS_CACHE_TIMEOUT = 300
MAX_RECENT_NOTICES = 50


def invalidate_settings_cache():
    cache.delete(SETTINGS_CACHE_KEY)


def _settings_rows():
    rows = cache.get(SETTINGS_CACHE_KEY)
    if rows is None:
        rows = [s.to_dict() for s in get_storage().list_records(SiteSetting, order_by="key")]
        cache.set(SETTINGS_CACHE_KEY, rows, timeout=SETTINGS_CACHE_TIMEOUT)
    return rows


# ==========================================
# SITE CONTENT
# ==========================================

@main_bp.route("/settings", methods=["GET"])
def list_settings():
    return api_success(_settings_rows())


@main_bp.route("/settings/<key>", methods=["GET"])
def get_setting(key):
    setting = get_storage().get_setting(key)
    if setting is None:
        raise NotFound("Setting not found.")
    return api_success(setting.to_dict())


@main_bp.route("/notices", methods=["GET"])
def list_notices():
    notices = get_storage().list_records(Notice, order_by="date", descending=True, is_active=True)
    return api_success([n.to_dict() for n in notices])


@main_bp.route("/notices/recent", methods=["GET"])
def recent_notices():
    raw = request.args.get("limit", "3")
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError("Invalid data.", details={"limit": "Must be an integer."})
    limit = max(1, min(limit, MAX_RECENT_NOTICES))
    notices = get_storage().list_records(
        Notice, order_by="date", descending=True, limit=limit, is_active=True
    )
    return api_success([n.to_dict() for n in notices], meta={"limit": limit})


@main_bp.route("/gallery", methods=["GET"])
def list_gallery():
    items = get_storage().list_records(GalleryItem, order_by="upload_date", descending=True, is_active=True)
    return api_success([i.to_dict() for i in items])


@main_bp.route("/achievements", methods=["GET"])
def list_achievements():
    rows = get_storage().list_records(
        Achievement, order_by="achievement_date", descending=True, is_active=True
    )
    return api_success([a.to_dict() for a in rows])


# ==========================================
# PUBLIC SUBMISSIONS
# ==========================================

@main_bp.route("/inquiries", methods=["POST"])
def submit_inquiry():
    fields = parse_fields(json_body(), INQUIRY_FIELDS)
    inquiry = get_storage().create_record(AdmissionInquiry, status=InquiryStatus.PENDING, **fields)
    return api_success(inquiry.to_dict(), status=201)


@main_bp.route("/contact", methods=["POST"])
def submit_contact():
    fields = parse_fields(json_body(), CONTACT_FIELDS)
    message = get_storage().create_record(ContactMessage, status=MessageStatus.UNREAD, **fields)
    return api_success(message.to_dict(), status=201)
