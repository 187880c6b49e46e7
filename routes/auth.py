from flask import Blueprint, jsonify
from flask_jwt_extended import create_access_token, create_refresh_token, get_jwt_identity, jwt_required

from routes.common import json_body, services


auth_bp = Blueprint('auth', __name__, url_prefix='/api/v1/auth')


def _issue_tokens(user):
    claims = {'id': user['id'], 'role': user['role'], 'email': user['email']}
    return {
        'access_token': create_access_token(identity=str(user['id']), additional_claims=claims),
        'refresh_token': create_refresh_token(identity=str(user['id']), additional_claims=claims),
    }


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Registers a new user (host or guest) with email and password.
    :return: The created user, otherwise error.
    """
    user = services()['users'].register(json_body())
    return jsonify({'msg': 'User registered successfully', 'user': user}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Login a user (host or guest or admin) with email and password.
    :return: Access and refresh tokens (JWT) and the user, otherwise error.
    """
    data = json_body()
    user = services()['users'].login(data.get('email'), data.get('password'))
    return jsonify({**_issue_tokens(user), 'user': user}), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    user = services()['users'].get_active_user(int(get_jwt_identity()))
    return jsonify(_issue_tokens(user)), 200
