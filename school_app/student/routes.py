from flask_login import current_user

from ..api_utils import api_success, json_body
from ..decorators import role_required
from ..errors import NotFound
from ..fees import services as fee_services
from ..storage import get_storage
from . import student_bp


def _current_student(storage):
    student = storage.get_student_by_user_id(current_user.user_id)
    if student is None:
        raise NotFound("Student profile not found.")
    return student


@student_bp.route("/profile", methods=["GET"])
@role_required("student")
def profile():
    storage = get_storage()
    student = _current_student(storage)
    data = student.to_dict()
    data["user"] = current_user.to_dict()
    return api_success(data)


@student_bp.route("/academic-records", methods=["GET"])
@role_required("student")
def academic_records():
    storage = get_storage()
    student = _current_student(storage)
    return api_success([r.to_dict() for r in storage.list_academic_records(student.student_id)])


@student_bp.route("/fees", methods=["GET"])
@role_required("student")
def fees():
    storage = get_storage()
    student = _current_student(storage)
    return api_success(fee_services.fees_with_payments(storage, student.student_id))


@student_bp.route("/fees/<int:fee_id>/pay", methods=["POST"])
@role_required("student")
def pay_fee(fee_id):
    storage = get_storage()
    student = _current_student(storage)
    payment = fee_services.record_payment(
        storage, fee_id, json_body(), student.student_id, actor_user_id=current_user.user_id
    )
    return api_success(payment.to_dict(), status=201)
