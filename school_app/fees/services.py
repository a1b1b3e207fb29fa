from flask import current_app

from ..errors import AlreadyPaid, Forbidden, NotFound, ValidationError
from ..models import Fee, FeeStatus, Student
from ..validation import FEE_FIELDS, PAYMENT_FIELDS, parse_fields

FEE_UPDATE_FIELDS = {k: v for k, v in FEE_FIELDS.items() if k != "student_id"}


def parse_fee_status(value):
    """Map a requested status to FeeStatus. "overdue" is never accepted."""
    if value == "overdue":
        raise ValidationError("Invalid data.", details={
            "status": "Overdue is derived from the due date and cannot be set.",
        })
    try:
        return FeeStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in FeeStatus)
        raise ValidationError("Invalid data.", details={"status": f"Must be one of: {allowed}."})


def record_payment(storage, fee_id, details, acting_student_id, actor_user_id=None):
    """
    Student payment against one fee.
    The payment row and the pending -> paid flip are written as one unit by
    the storage; a racing second payment gets AlreadyPaid.
    """
    fee = storage.get_record(Fee, fee_id)
    if fee is None:
        raise NotFound("Fee not found.")
    if fee.student_id_fk != acting_student_id:
        raise Forbidden("Not authorized to pay this fee.")
    if fee.status is FeeStatus.PAID:
        raise AlreadyPaid()

    fields = parse_fields(details, PAYMENT_FIELDS)
    fields["amount"] = fee.amount
    payment = storage.pay_fee(fee_id, fields, actor_user_id=actor_user_id)
    current_app.logger.info(
        f"AUDIT fee_payment fee_id={fee_id} payment_id={payment.payment_id} student_id={acting_student_id} "
        f"amount={payment.amount} method={payment.payment_method} txn={payment.transaction_id}"
    )
    return payment


def _check_reopen(storage, fee, status):
    if status is FeeStatus.PENDING and fee.status is not FeeStatus.PENDING and storage.list_payments_for_fee(fee.fee_id):
        raise ValidationError("Invalid data.", details={
            "status": "Fee has recorded payments and cannot be reopened.",
        })


def set_status(storage, fee_id, new_status, actor_user_id=None):
    """
    Admin override of a fee's status. No payment is created; the change is
    logged with source admin_override.
    """
    status = new_status if isinstance(new_status, FeeStatus) else parse_fee_status(new_status)
    fee = storage.get_record(Fee, fee_id)
    if fee is None:
        raise NotFound("Fee not found.")
    if fee.status is status:
        return fee
    _check_reopen(storage, fee, status)

    old_status = fee.status
    fee = storage.set_fee_status(fee_id, status, actor_user_id=actor_user_id)
    current_app.logger.info(
        f"AUDIT fee_status_override fee_id={fee_id} from={old_status.value} to={status.value} "
        f"by_user_id={actor_user_id}"
    )
    return fee


def create_fee(storage, data, actor_user_id=None):
    fields = parse_fields(data, FEE_FIELDS)
    status = parse_fee_status(data["status"]) if data.get("status") else FeeStatus.PENDING
    student_id = fields.pop("student_id")
    if storage.get_record(Student, student_id) is None:
        raise NotFound("Student not found.")

    fee = storage.create_record(Fee, student_id_fk=student_id, status=FeeStatus.PENDING, **fields)
    current_app.logger.info(
        f"AUDIT fee_create fee_id={fee.fee_id} student_id={student_id} amount={fee.amount} by_user_id={actor_user_id}"
    )
    if status is not FeeStatus.PENDING:
        fee = set_status(storage, fee.fee_id, status, actor_user_id=actor_user_id)
    return fee


def update_fee(storage, fee_id, data, actor_user_id=None):
    """Admin edit: term/amount/due date, and status through the override path."""
    fields = parse_fields(data, FEE_UPDATE_FIELDS, partial=True)
    status = parse_fee_status(data["status"]) if "status" in data else None
    fee = storage.get_record(Fee, fee_id)
    if fee is None:
        raise NotFound("Fee not found.")

    # Nothing is written until every check has passed.
    if status is not None:
        _check_reopen(storage, fee, status)
    if "amount" in fields and fields["amount"] != fee.amount and storage.list_payments_for_fee(fee_id):
        raise ValidationError("Invalid data.", details={
            "amount": "Fee has recorded payments; its amount cannot be changed.",
        })

    if fields:
        storage.update_record(Fee, fee_id, **fields)
    if status is not None:
        set_status(storage, fee_id, status, actor_user_id=actor_user_id)
    return storage.get_record(Fee, fee_id)


def fees_with_payments(storage, student_id):
    out = []
    for fee in storage.list_fees_for_student(student_id):
        row = fee.to_dict()
        row["payments"] = [p.to_dict() for p in storage.list_payments_for_fee(fee.fee_id)]
        out.append(row)
    return out
