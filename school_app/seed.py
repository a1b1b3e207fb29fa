"""
Default site content and demo accounts.

Every step checks what is already there first, so running the seed against a
populated store only fills in what is missing.
"""
from datetime import date
from decimal import Decimal

from flask import current_app

from .models import AcademicRecord, Achievement, Fee, FeeStatus, GalleryItem, Notice, Role, SiteSetting
from .security import hash_password

DEFAULT_SETTINGS = [
    ("schoolName", "St. Stephen School"),
    ("schoolTagline", "Excellence in Education"),
    ("schoolAddress", "Bailey Road, Patna, Bihar, India"),
    ("schoolEmail", "contact@ststephen.edu"),
    ("schoolPhone", "+91 612 222 3333"),
    ("admissionOpen", "true"),
    ("facebookUrl", "https://facebook.com/ststephenschool"),
    ("twitterUrl", "https://twitter.com/ststephenschool"),
    ("instagramUrl", "https://instagram.com/ststephenschool"),
    ("youtubeUrl", "https://youtube.com/ststephenschool"),
    ("heroTitle", "Welcome to St. Stephen School"),
    ("heroSubtitle", "Nurturing Excellence, Building Character"),
    ("aboutIntro", "St. Stephen School is a prestigious institution with a rich legacy of academic "
                   "excellence and character building."),
    ("aboutMission", "Our mission is to provide quality education that nurtures intellectual, physical, "
                     "emotional, and spiritual growth while instilling values of integrity, compassion, "
                     "and resilience."),
    ("aboutVision", "To be a leading educational institution that develops future leaders committed to "
                    "positive social change and global citizenship."),
    ("foundedYear", "1978"),
]

DEMO_ADMIN = {
    "username": "admin",
    "password": "admin123",
    "full_name": "System Admin",
    "email": "admin@ststephen.edu",
    "phone": "9876543210",
    "address": "St. Stephen School Campus",
}

DEMO_STUDENT = {
    "username": "student",
    "password": "student123",
    "full_name": "John Smith",
    "email": "student@example.com",
    "phone": "9876543211",
    "address": "123 Student Lane",
}

DEMO_STUDENT_PROFILE = {
    "class_name": "10",
    "section": "A",
    "roll_number": "1001",
    "parent_name": "David Smith",
    "date_of_birth": date(2005, 5, 15),
    "gender": "male",
    "previous_school": "Primary School",
}

NOTICES = [
    {"title": "Final Examination Schedule", "category": "Academic", "important": True,
     "content": "The final examination for all classes will commence from June 5th, 2023. "
                "The detailed schedule is now available."},
    {"title": "Annual Sports Day", "category": "Event", "important": False,
     "content": "The Annual Sports Day will be held on May 20th, 2023. "
                "All students are requested to participate enthusiastically."},
    {"title": "Fee Payment Reminder", "category": "Administrative", "important": True,
     "content": "This is a gentle reminder for parents to clear the pending fee payments for the "
                "current academic term by May 25th, 2023."},
]

GALLERY = [
    {"title": "Modern Science Labs", "description": "Hands-on learning experiences", "category": "Facilities",
     "image_url": "https://images.unsplash.com/photo-1509062522246-3755977927d7?auto=format&fit=crop&w=800&h=600"},
    {"title": "Cultural Celebrations", "description": "Nurturing talents beyond academics", "category": "Events",
     "image_url": "https://images.unsplash.com/photo-1560260240-c6ef90a163a4?auto=format&fit=crop&w=800&h=600"},
    {"title": "Sports Excellence", "description": "Promoting physical fitness and teamwork", "category": "Sports",
     "image_url": "https://images.unsplash.com/photo-1571260899304-425eee4c7efc?auto=format&fit=crop&w=800&h=600"},
]

ACHIEVEMENTS = [
    {"title": "Board Exam Results", "description": "Average Pass Rate in Board Examinations",
     "category": "Academic", "value": "98%"},
    {"title": "Sports Championships", "description": "State-Level Sports Championships",
     "category": "Sports", "value": "25+"},
    {"title": "Years of Excellence", "description": "Years of Academic Excellence",
     "category": "Academic", "value": "15+"},
    {"title": "University Admissions", "description": "Students in Top Universities",
     "category": "Academic", "value": "100+"},
]

ACADEMIC_RECORDS = [
    {"subject": "Mathematics", "grade": "A", "marks": 92, "remarks": "Excellent performance"},
    {"subject": "Science", "grade": "A", "marks": 88, "remarks": "Very good performance"},
    {"subject": "English", "grade": "B+", "marks": 85, "remarks": "Good performance"},
]


def ensure_user(storage, account, role, profile=None):
    """Create the account when the username is free. Returns (user, created)."""
    user = storage.get_user_by_username(account["username"])
    if user is not None:
        return user, False
    fields = {k: v for k, v in account.items() if k != "password"}
    fields["password_hash"] = hash_password(account["password"], current_app.config.get("PASSWORD_HASH_METHOD"))
    fields["role"] = role
    return storage.create_user(fields, profile), True


def _seed_rows(storage, model, rows):
    if storage.list_records(model, limit=1):
        return 0
    for row in rows:
        storage.create_record(model, **row)
    return len(rows)


def _seed_student_records(storage, student):
    created = {"fees": 0, "academic_records": 0}
    if not storage.list_fees_for_student(student.student_id):
        paid = storage.create_record(
            Fee, student_id_fk=student.student_id, term="Term 1 2023",
            amount=Decimal("25000.00"), due_date=date(2023, 5, 15), status=FeeStatus.PENDING,
        )
        storage.pay_fee(paid.fee_id, {
            "amount": paid.amount,
            "payment_method": "Online Transfer",
            "transaction_id": "TXN123456",
            "receipt": "receipt_123.pdf",
        })
        storage.create_record(
            Fee, student_id_fk=student.student_id, term="Term 2 2023",
            amount=Decimal("25000.00"), due_date=date(2023, 8, 15), status=FeeStatus.PENDING,
        )
        created["fees"] = 2

    if not storage.list_academic_records(student.student_id):
        for row in ACADEMIC_RECORDS:
            storage.create_record(
                AcademicRecord, student_id_fk=student.student_id, term="Term 1 2023", max_marks=100, **row
            )
        created["academic_records"] = len(ACADEMIC_RECORDS)
    return created


def seed_defaults(storage):
    summary = {"settings": 0}
    for key, value in DEFAULT_SETTINGS:
        if storage.get_setting(key) is None:
            storage.create_record(SiteSetting, key=key, value=value)
            summary["settings"] += 1

    _, summary["admin_created"] = ensure_user(storage, DEMO_ADMIN, Role.ADMIN)
    student_user, summary["student_created"] = ensure_user(
        storage, DEMO_STUDENT, Role.STUDENT, profile=DEMO_STUDENT_PROFILE
    )

    summary["notices"] = _seed_rows(storage, Notice, NOTICES)
    summary["gallery"] = _seed_rows(storage, GalleryItem, GALLERY)
    summary["achievements"] = _seed_rows(storage, Achievement, ACHIEVEMENTS)

    student = storage.get_student_by_user_id(student_user.user_id)
    if student is not None:
        summary.update(_seed_student_records(storage, student))

    current_app.logger.info(f"Seeded defaults: {summary}")
    return summary
