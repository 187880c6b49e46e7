from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from errors import InvalidInput
from routes.common import current_user, json_body, paging_args, services
from utils.validation import parse_int


reviews_bp = Blueprint('reviews', __name__, url_prefix='/api/v1/reviews')


@reviews_bp.route('', methods=['POST'])
@jwt_required()
def create_review():
    """
    The guest of a completed booking reviews it, once.
    """
    user_id, _ = current_user()
    data = json_body()
    if data.get('booking_id') is None:
        raise InvalidInput('booking_id is required')

    review = services()['reviews'].create_review(
        reviewer_id=user_id,
        booking_id=parse_int(data['booking_id'], 'booking_id'),
        rating=data.get('rating'),
        comment=data.get('comment'),
    )
    return jsonify({'msg': 'Review created successfully', 'review': review}), 201


@reviews_bp.route('/my', methods=['GET'])
@jwt_required()
def my_reviews():
    user_id, _ = current_user()
    page, limit = paging_args()
    return jsonify(services()['reviews'].get_user_reviews(user_id, page, limit)), 200


@reviews_bp.route('', methods=['GET'])
@jwt_required()
def all_reviews():
    _, role = current_user()
    page, limit = paging_args()
    return jsonify(services()['reviews'].get_all_reviews(role, page, limit)), 200


@reviews_bp.route('/<int:review_id>', methods=['GET'])
@jwt_required()
def get_review(review_id):
    return jsonify(services()['reviews'].get_review(review_id)), 200


@reviews_bp.route('/<int:review_id>', methods=['PUT'])
@jwt_required()
def update_review(review_id):
    user_id, _ = current_user()
    review = services()['reviews'].update_review(review_id, user_id, json_body())
    return jsonify({'msg': 'Review updated successfully', 'review': review}), 200


@reviews_bp.route('/<int:review_id>', methods=['DELETE'])
@jwt_required()
def delete_review(review_id):
    user_id, role = current_user()
    services()['reviews'].delete_review(review_id, user_id, role)
    return jsonify({'msg': 'Review deleted successfully'}), 200
