import abc

from sqlalchemy import inspect as sa_inspect

from ..models import AcademicRecord, Fee, FeePayment, FeeStatusLog, SiteSetting, Student, User


def primary_key_name(model):
    mapper = sa_inspect(model)
    return mapper.get_property_by_column(mapper.primary_key[0]).key


class Storage(abc.ABC):
    """Data access used by the services and routes.

    Records are the model instances from ``school_app.models`` whichever
    backend is wired in. Generic CRUD goes through the ``*_record`` methods;
    operations that must be atomic across tables have their own methods.
    """

    # -- generic records ---------------------------------------------------

    @abc.abstractmethod
    def get_record(self, model, pk):
        """Return the record with primary key ``pk`` or None."""

    @abc.abstractmethod
    def list_records(self, model, order_by=None, descending=False, limit=None, **filters):
        """Return records whose attributes equal ``filters``, optionally sorted."""

    @abc.abstractmethod
    def create_record(self, model, **fields):
        """Insert and return a new record."""

    @abc.abstractmethod
    def update_record(self, model, pk, **fields):
        """Apply ``fields`` and return the record, or None when it does not exist."""

    @abc.abstractmethod
    def delete_record(self, model, pk) -> bool:
        """Delete the record; False when it did not exist."""

    # -- multi-table units -------------------------------------------------

    @abc.abstractmethod
    def create_user(self, user_fields, profile_fields=None):
        """Create a user and, when ``profile_fields`` is given, its student profile.

        Both rows are written or neither is. Raises DuplicateUsername when
        the username is taken.
        """

    @abc.abstractmethod
    def delete_user(self, user_id) -> bool:
        """Delete a user together with its student profile and academic records."""

    @abc.abstractmethod
    def pay_fee(self, fee_id, payment_fields, actor_user_id=None):
        """Insert a payment and flip the fee to paid as one unit.

        The status flip is conditional on the fee not being paid yet, so of
        several racing calls exactly one succeeds and the rest raise
        AlreadyPaid without writing anything.
        """

    @abc.abstractmethod
    def set_fee_status(self, fee_id, status, actor_user_id=None):
        """Overwrite a fee's status and log it as an admin override."""

    # -- lookups shared by both backends ----------------------------------

    def _first(self, model, **filters):
        rows = self.list_records(model, limit=1, **filters)
        return rows[0] if rows else None

    def get_user_by_username(self, username):
        return self._first(User, username=username)

    def get_student_by_user_id(self, user_id):
        return self._first(Student, user_id_fk=user_id)

    def get_setting(self, key):
        return self._first(SiteSetting, key=key)

    def list_fees_for_student(self, student_id):
        return self.list_records(Fee, order_by="due_date", student_id_fk=student_id)

    def list_payments_for_fee(self, fee_id):
        return self.list_records(FeePayment, order_by="payment_date", descending=True, fee_id_fk=fee_id)

    def list_fee_logs(self, fee_id):
        return self.list_records(FeeStatusLog, order_by="log_id", fee_id_fk=fee_id)

    def list_academic_records(self, student_id):
        return self.list_records(AcademicRecord, order_by="record_date", descending=True, student_id_fk=student_id)

    def has_fee_activity(self, user_id):
        """True when payment or status-log rows name this user as their actor."""
        return bool(
            self._first(FeePayment, created_by_user_id=user_id)
            or self._first(FeeStatusLog, actor_user_id_fk=user_id)
        )
