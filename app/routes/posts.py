"""Post intake and the admin post-review queue"""
import math

from flask import Blueprint, current_app
from flask_login import current_user

from app.routes.moderation import decision_response
from app.schemas import PaginationParams, PostReviewActionRequest, PostSubmitRequest
from app.services.database_service import db_service
from app.utils.access import require_admin, require_user
from app.utils.error_handlers import (
    api_success_response,
    handle_api_error,
    validate_json_request,
    validate_query_params,
)

posts_bp = Blueprint('posts', __name__)
post_review_bp = Blueprint('post_review', __name__)


@posts_bp.route('', methods=['POST'])
@require_user
@validate_json_request(PostSubmitRequest)
@handle_api_error
def submit_post(validated_data=None):
    """Text checks, then queue the post for admin approval"""
    decision = current_app.extensions['moderation']['orchestrator'].moderate_post(
        validated_data.type, validated_data.payload, current_user.id)
    return decision_response(decision)


@post_review_bp.route('/pending', methods=['GET'])
@require_admin
@validate_query_params(PaginationParams)
@handle_api_error
def get_pending_posts(validated_params=None):
    params = validated_params
    items, total = db_service.get_pending_post_reviews(
        page=params.page, per_page=params.limit)
    return api_success_response({
        'reviews': [item.to_dict() for item in items],
        'pagination': {
            'current_page': params.page,
            'total_pages': math.ceil(total / params.limit),
            'total_items': total
        }
    })


@post_review_bp.route('/review/<case_id>', methods=['POST'])
@require_admin
@validate_json_request(PostReviewActionRequest)
@handle_api_error
def review_post(case_id, validated_data=None):
    review = current_app.extensions['moderation']['workflow'].review_post(
        case_id, validated_data.action.value, current_user.id, notes=validated_data.notes)
    message = 'Post approved and published' if review.status == 'approved' \
        else 'Post rejected and removed'
    return api_success_response({'reviewId': review.id, 'review': review.to_dict()},
                                message=message)
