import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from backend.models.report import PRIORITIES, STATUSES, TYPES, Report, normalize_choice
from backend.models.user import STAFF_ROLES
from backend.utils.auth_middleware import roles_required, validate_json_data
from backend.utils.errors import error_response, success_response
from backend.utils.pagination import get_pagination, pagination_meta

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__)


def visible_to(report):
    return current_user.is_staff or report.user_id == current_user.id


@reports_bp.route('', methods=['POST'])
@login_required
@validate_json_data(['type', 'category', 'location', 'description'])
def create_report():
    """Submit a security incident or maintenance request"""
    report = Report.from_payload(request.get_json(), current_user.id).save()
    logger.info("Report %s (%s) submitted by %s", report.reference, report.type, current_user.email)
    return success_response({'report': report.to_dict()},
                            message='Report submitted successfully', status_code=201)


@reports_bp.route('', methods=['GET'])
@login_required
def list_reports():
    """Students see their own reports, admin and staff see all of them"""
    page, limit = get_pagination()

    filters = {}
    for name, choices in (('status', STATUSES), ('type', TYPES), ('priority', PRIORITIES)):
        raw = request.args.get(name)
        if raw:
            value = normalize_choice(raw, choices)
            if value is None:
                return error_response(f'Invalid {name} filter', 400)
            filters[name] = value

    query = Report.build_query(
        user_id=None if current_user.is_staff else current_user.id,
        **filters
    )
    reports, total = Report.find_page(query, page=page, limit=limit)
    return success_response({
        'reports': [r.to_dict() for r in reports],
        'pagination': pagination_meta(total, page, limit)
    })


@reports_bp.route('/stats', methods=['GET'])
@login_required
def report_stats():
    """Dashboard counters over the visible reports"""
    user_id = None if current_user.is_staff else current_user.id
    return success_response({'stats': Report.stats(user_id=user_id)})


@reports_bp.route('/<reference>', methods=['GET'])
@login_required
def get_report(reference):
    report = Report.find_by_reference(reference)
    if not report or not visible_to(report):
        return error_response('Report not found', 404)
    return success_response({'report': report.to_dict()})


@reports_bp.route('/<reference>/status', methods=['PATCH'])
@login_required
@roles_required(*STAFF_ROLES)
@validate_json_data(['status'])
def update_report_status(reference):
    """Move a report through open, in review and resolved"""
    report = Report.find_by_reference(reference)
    if not report:
        return error_response('Report not found', 404)

    report.update_status(request.get_json()['status'])
    logger.info("Report %s set to %s by %s", report.reference, report.status, current_user.email)
    return success_response({'report': report.to_dict()}, message='Report status updated')
