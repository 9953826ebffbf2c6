import math

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from app.schemas import (
    AppealRequest,
    AppealReviewRequest,
    PaginationParams,
    PendingReviewParams,
    ReviewActionRequest,
)
from app.services.database_service import db_service
from app.services.moderation.decisions import Allow, Block, Submission
from app.utils.access import require_admin, require_user
from app.utils.error_handlers import (
    api_success_response,
    handle_api_error,
    validate_json_request,
    validate_query_params,
)
from app.utils.errors import CaseNotFoundError, PermissionDeniedError

moderation_bp = Blueprint('moderation', __name__)

DECISION_MESSAGES = {
    'approved': 'Content approved and uploaded successfully',
    'rejected': 'Content blocked',
    'quarantined': 'Content uploaded but requires review',
}


def _services():
    return current_app.extensions['moderation']


def _pagination(page, limit, total):
    return {
        'current_page': page,
        'total_pages': math.ceil(total / limit) if limit else 0,
        'total_items': total
    }


def decision_response(decision):
    """Render an Allow, Block or Quarantine as the HTTP response"""
    body = {
        'status': decision.status,
        'message': DECISION_MESSAGES[decision.status]
    }
    if decision.case_id:
        body['caseId'] = decision.case_id

    if isinstance(decision, Block):
        body.update(success=False, reason=decision.reason)
        return jsonify(body), decision.status_code
    if not isinstance(decision, Allow):
        body['reason'] = decision.reason
    return api_success_response(body, status_code=decision.status_code)


def _form_flag(name):
    return (request.form.get(name) or '').strip().lower() in ('1', 'true', 'yes', 'on')


@moderation_bp.route('/upload', methods=['POST'])
@require_user
@handle_api_error
def upload_content():
    """Run an upload through the moderation pipeline"""
    upload = request.files.get('file')
    url_fields = {
        field_name: request.form.get(field_name)
        for field_name in current_app.config.get('URL_FIELDS', [])
        if request.form.get(field_name)
    }

    submission = Submission(
        submitter_id=current_user.id,
        title=request.form.get('title', ''),
        description=request.form.get('description', ''),
        url_fields=url_fields,
        quarantine_requested=_form_flag('quarantine')
    )

    if upload is not None and upload.filename:
        data = upload.read()
        submission.file_bytes = data
        submission.file_name = upload.filename
        submission.mime_type = upload.mimetype
        submission.size_bytes = len(data)
        current_app.logger.info(
            f"Processing content upload: {upload.filename} ({len(data) // 1024}KB)")

    decision = _services()['orchestrator'].moderate_upload(submission)
    return decision_response(decision)


@moderation_bp.route('/pending', methods=['GET'])
@require_admin
@validate_query_params(PendingReviewParams)
@handle_api_error
def get_pending(validated_params=None):
    """Review queue for moderators"""
    params = validated_params
    items, total = db_service.get_pending_reviews(
        status=params.status.value if params.status else None,
        risk_level=params.risk_level.value if params.risk_level else None,
        page=params.page,
        per_page=params.limit
    )
    return api_success_response({
        'content': [item.to_dict() for item in items],
        'pagination': _pagination(params.page, params.limit, total)
    })


@moderation_bp.route('/review/<case_id>', methods=['POST'])
@require_admin
@validate_json_request(ReviewActionRequest)
@handle_api_error
def review_content(case_id, validated_data=None):
    case = _services()['workflow'].review_case(
        case_id,
        validated_data.action.value,
        current_user.id,
        notes=validated_data.notes,
        expected_version=validated_data.expected_version
    )
    return api_success_response(
        {'content': case.to_dict()},
        message=f"Content {case.status} successfully")


@moderation_bp.route('/appeal/<case_id>', methods=['POST'])
@require_user
@validate_json_request(AppealRequest)
@handle_api_error
def request_appeal(case_id, validated_data=None):
    case = _services()['workflow'].request_appeal(
        case_id, current_user.id, validated_data.reason)
    return api_success_response(
        {'appeal': case.appeal_to_dict(), 'caseId': case.id},
        message='Appeal submitted successfully')


@moderation_bp.route('/appeal/<case_id>/review', methods=['POST'])
@require_admin
@validate_json_request(AppealReviewRequest)
@handle_api_error
def review_appeal(case_id, validated_data=None):
    case = _services()['workflow'].review_appeal(
        case_id,
        current_user.id,
        validated_data.approved,
        notes=validated_data.notes,
        expected_version=validated_data.expected_version
    )
    outcome = 'approved' if validated_data.approved else 'rejected'
    return api_success_response(
        {'content': case.to_dict()},
        message=f"Appeal {outcome} successfully")


@moderation_bp.route('/stats', methods=['GET'])
@require_admin
@handle_api_error
def get_stats():
    return api_success_response({'stats': db_service.get_review_statistics()})


@moderation_bp.route('/user/<user_id>', methods=['GET'])
@require_user
@validate_query_params(PaginationParams)
@handle_api_error
def get_user_content(user_id, validated_params=None):
    """Upload history; users see their own, admins see anyone's"""
    if user_id != current_user.id and not current_user.is_admin:
        raise PermissionDeniedError('You can only view your own uploads')

    params = validated_params
    items, total = db_service.get_user_reviews(
        user_id, page=params.page, per_page=params.limit)
    return api_success_response({
        'content': [item.to_dict() for item in items],
        'pagination': _pagination(params.page, params.limit, total)
    })


@moderation_bp.route('/cases/<case_id>', methods=['GET'])
@require_user
@handle_api_error
def get_case(case_id):
    case = db_service.get_content_review(case_id)
    if case is None:
        raise CaseNotFoundError(f"Content review {case_id} not found")
    if case.uploaded_by != current_user.id and not current_user.is_admin:
        raise PermissionDeniedError('You can only view your own uploads')
    return api_success_response({'content': case.to_dict()})
