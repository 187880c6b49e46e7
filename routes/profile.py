from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from routes.common import current_user, json_body, services


profile_bp = Blueprint('profile', __name__, url_prefix='/api/v1')


@profile_bp.route('/profile', methods=['GET'])
@jwt_required()
def get_profile():
    user_id, _ = current_user()
    return jsonify(services()['users'].get_user(user_id)), 200


@profile_bp.route('/profile', methods=['PUT'])
@jwt_required()
def update_profile():
    """
    Update user personal information. Only the fields sent are changed.
    :return: The updated profile, otherwise error.
    """
    user_id, _ = current_user()
    user = services()['users'].update_profile(user_id, json_body())
    return jsonify({'msg': 'Profile updated successfully', 'user': user}), 200
