import itertools
import threading
from collections import defaultdict

from sqlalchemy import inspect as sa_inspect

from ..errors import AlreadyPaid, DuplicateUsername, NotFound, ValidationError
from ..models import (
    AcademicRecord, Fee, FeeEventSource, FeePayment, FeeStatus, FeeStatusLog, Student, User,
)
from .base import Storage, primary_key_name


def _apply_column_defaults(obj, onupdate=False, skip=()):
    """Fill in Python-side column defaults the way a flush would."""
    for attr in sa_inspect(type(obj)).column_attrs:
        if attr.key in skip:
            continue
        column = attr.columns[0]
        default = column.onupdate if onupdate else column.default
        if default is None:
            continue
        if not onupdate and getattr(obj, attr.key) is not None:
            continue
        if default.is_callable:
            value = default.arg(None)
        elif default.is_scalar:
            value = default.arg
        else:
            continue
        setattr(obj, attr.key, value)


def _sort_key(order_by, pk_name):
    def key(row):
        value = getattr(row, order_by)
        return (value is not None, value, getattr(row, pk_name))
    return key


class MemoryStorage(Storage):
    """Process-local storage: one dict per table plus an id counter per table.

    A single re-entrant lock makes every public method atomic with respect to
    the others, which is what the multi-table units rely on.
    """

    def __init__(self):
        self._tables = defaultdict(dict)
        self._counters = defaultdict(lambda: itertools.count(1))
        self._lock = threading.RLock()

    def _table(self, model):
        return self._tables[model.__tablename__]

    def _insert(self, model, fields):
        obj = model(**fields)
        _apply_column_defaults(obj)
        pk = next(self._counters[model.__tablename__])
        setattr(obj, primary_key_name(model), pk)
        self._table(model)[pk] = obj
        return obj

    def get_record(self, model, pk):
        with self._lock:
            return self._table(model).get(pk)

    def list_records(self, model, order_by=None, descending=False, limit=None, **filters):
        with self._lock:
            rows = [
                row for row in self._table(model).values()
                if all(getattr(row, k) == v for k, v in filters.items())
            ]
        pk_name = primary_key_name(model)
        if order_by:
            rows.sort(key=_sort_key(order_by, pk_name), reverse=descending)
        else:
            rows.sort(key=lambda row: getattr(row, pk_name))
        if limit:
            rows = rows[:limit]
        return rows

    def create_record(self, model, **fields):
        with self._lock:
            return self._insert(model, fields)

    def update_record(self, model, pk, **fields):
        with self._lock:
            obj = self._table(model).get(pk)
            if obj is None:
                return None
            for key, value in fields.items():
                setattr(obj, key, value)
            _apply_column_defaults(obj, onupdate=True, skip=fields.keys())
            return obj

    def delete_record(self, model, pk) -> bool:
        with self._lock:
            return self._table(model).pop(pk, None) is not None

    def create_user(self, user_fields, profile_fields=None):
        with self._lock:
            username = user_fields.get("username")
            if any(u.username == username for u in self._table(User).values()):
                raise DuplicateUsername()
            user = self._insert(User, user_fields)
            if profile_fields is not None:
                try:
                    self._insert(Student, dict(profile_fields, user_id_fk=user.user_id))
                except Exception:
                    self._table(User).pop(user.user_id, None)
                    raise
            return user

    def delete_user(self, user_id) -> bool:
        with self._lock:
            user = self._table(User).get(user_id)
            if user is None:
                return False
            if self.has_fee_activity(user_id):
                raise ValidationError("User is referenced by fee records and cannot be deleted.")
            student = self.get_student_by_user_id(user_id)
            if student is not None:
                if self.list_fees_for_student(student.student_id):
                    raise ValidationError("Student has fee records and cannot be deleted.")
                for record in self.list_academic_records(student.student_id):
                    self._table(AcademicRecord).pop(record.record_id, None)
                self._table(Student).pop(student.student_id, None)
            self._table(User).pop(user_id, None)
            return True

    def pay_fee(self, fee_id, payment_fields, actor_user_id=None):
        with self._lock:
            fee = self._table(Fee).get(fee_id)
            if fee is None:
                raise NotFound("Fee not found.")
            if fee.status is FeeStatus.PAID:
                raise AlreadyPaid()
            old_status = fee.status
            payment = self._insert(
                FeePayment, dict(payment_fields, fee_id_fk=fee_id, created_by_user_id=actor_user_id)
            )
            fee.status = FeeStatus.PAID
            self._insert(FeeStatusLog, {
                "fee_id_fk": fee_id,
                "old_status": old_status,
                "new_status": FeeStatus.PAID,
                "source": FeeEventSource.PAYMENT,
                "actor_user_id_fk": actor_user_id,
                "payment_id_fk": payment.payment_id,
            })
            return payment

    def set_fee_status(self, fee_id, status, actor_user_id=None):
        with self._lock:
            fee = self._table(Fee).get(fee_id)
            if fee is None:
                raise NotFound("Fee not found.")
            old_status = fee.status
            fee.status = status
            self._insert(FeeStatusLog, {
                "fee_id_fk": fee_id,
                "old_status": old_status,
                "new_status": status,
                "source": FeeEventSource.ADMIN_OVERRIDE,
                "actor_user_id_fk": actor_user_id,
            })
            return fee
