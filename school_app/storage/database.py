from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import db
from ..errors import AlreadyPaid, DuplicateUsername, NotFound, ValidationError
from ..models import (
    AcademicRecord, Fee, FeeEventSource, FeePayment, FeeStatus, FeeStatusLog, Student, User,
)
from .base import Storage, primary_key_name


class DatabaseStorage(Storage):
    """Storage over the Flask-SQLAlchemy session; every write commits or rolls back."""

    def _commit(self):
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

    def get_record(self, model, pk):
        return db.session.get(model, pk)

    def list_records(self, model, order_by=None, descending=False, limit=None, **filters):
        pk_col = getattr(model, primary_key_name(model))
        stmt = select(model).filter_by(**filters)
        if order_by:
            col = getattr(model, order_by)
            if descending:
                stmt = stmt.order_by(col.desc(), pk_col.desc())
            else:
                stmt = stmt.order_by(col.asc(), pk_col)
        else:
            stmt = stmt.order_by(pk_col)
        if limit:
            stmt = stmt.limit(limit)
        return db.session.execute(stmt).scalars().all()

    def create_record(self, model, **fields):
        obj = model(**fields)
        db.session.add(obj)
        self._commit()
        return obj

    def update_record(self, model, pk, **fields):
        obj = db.session.get(model, pk)
        if obj is None:
            return None
        for key, value in fields.items():
            setattr(obj, key, value)
        self._commit()
        return obj

    def delete_record(self, model, pk) -> bool:
        obj = db.session.get(model, pk)
        if obj is None:
            return False
        db.session.delete(obj)
        self._commit()
        return True

    def create_user(self, user_fields, profile_fields=None):
        try:
            user = User(**user_fields)
            db.session.add(user)
            db.session.flush()
            if profile_fields is not None:
                db.session.add(Student(user_id_fk=user.user_id, **profile_fields))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if self.get_user_by_username(user_fields.get("username")) is not None:
                raise DuplicateUsername()
            raise
        except Exception:
            db.session.rollback()
            raise
        return user

    def delete_user(self, user_id) -> bool:
        user = db.session.get(User, user_id)
        if user is None:
            return False
        try:
            if self.has_fee_activity(user_id):
                raise ValidationError("User is referenced by fee records and cannot be deleted.")
            student = self.get_student_by_user_id(user_id)
            if student is not None:
                if self.list_fees_for_student(student.student_id):
                    raise ValidationError("Student has fee records and cannot be deleted.")
                db.session.execute(
                    delete(AcademicRecord).where(AcademicRecord.student_id_fk == student.student_id)
                )
                db.session.delete(student)
            db.session.delete(user)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return True

    def pay_fee(self, fee_id, payment_fields, actor_user_id=None):
        try:
            if db.session.get(Fee, fee_id) is None:
                raise NotFound("Fee not found.")
            # Compare-and-swap on status: a concurrent payer that already
            # flipped the row leaves nothing for this UPDATE to match.
            result = db.session.execute(
                update(Fee)
                .where(Fee.fee_id == fee_id, Fee.status != FeeStatus.PAID)
                .values(status=FeeStatus.PAID)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AlreadyPaid()
            payment = FeePayment(fee_id_fk=fee_id, created_by_user_id=actor_user_id, **payment_fields)
            db.session.add(payment)
            db.session.flush()
            db.session.add(FeeStatusLog(
                fee_id_fk=fee_id,
                old_status=FeeStatus.PENDING,
                new_status=FeeStatus.PAID,
                source=FeeEventSource.PAYMENT,
                actor_user_id_fk=actor_user_id,
                payment_id_fk=payment.payment_id,
            ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return payment

    def set_fee_status(self, fee_id, status, actor_user_id=None):
        fee = db.session.get(Fee, fee_id)
        if fee is None:
            raise NotFound("Fee not found.")
        try:
            old_status = fee.status
            fee.status = status
            db.session.add(FeeStatusLog(
                fee_id_fk=fee_id,
                old_status=old_status,
                new_status=status,
                source=FeeEventSource.ADMIN_OVERRIDE,
                actor_user_id_fk=actor_user_id,
            ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return fee
