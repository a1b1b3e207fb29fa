from datetime import date
from io import BytesIO

from openpyxl import Workbook

from ..models import Fee, Student, User

LEDGER_HEADERS = [
    "Fee ID", "Student ID", "Student Name", "Class", "Section", "Term", "Amount",
    "Due Date", "Status", "Paid On", "Method", "Transaction ID",
]


def build_fee_ledger(storage, today=None):
    """All fees with their latest payment as an .xlsx workbook in memory."""
    today = today or date.today()
    wb = Workbook()
    ws = wb.active
    ws.title = "Fees"
    ws.append(LEDGER_HEADERS)

    students = {s.student_id: s for s in storage.list_records(Student)}
    users = {u.user_id: u for u in storage.list_records(User)}
    for fee in storage.list_records(Fee, order_by="due_date"):
        student = students.get(fee.student_id_fk)
        user = users.get(student.user_id_fk) if student else None
        payments = storage.list_payments_for_fee(fee.fee_id)
        latest = payments[0] if payments else None
        ws.append([
            fee.fee_id,
            fee.student_id_fk,
            user.full_name if user else "",
            (student.class_name or "") if student else "",
            (student.section or "") if student else "",
            fee.term,
            float(fee.amount),
            fee.due_date,
            fee.display_status(today),
            latest.payment_date.replace(tzinfo=None) if latest and latest.payment_date else None,
            latest.payment_method if latest else "",
            (latest.transaction_id or "") if latest else "",
        ])

    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio
