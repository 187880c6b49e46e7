from flask import current_app, request
from flask_jwt_extended import get_jwt

from errors import InvalidInput
from models import UserRole
from utils.validation import parse_int


def services():
    """ The service instances wired by create_app. """
    return current_app.extensions['stayhub']


def current_user():
    """
    Requester identity from the JWT claims.
    :return: (user id, UserRole)
    """
    claims = get_jwt()
    return claims['id'], UserRole(claims['role'])


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('request body must be a JSON object')
    return data


def paging_args():
    """ page/limit from the query string; invalid values fall back to the defaults. """
    values = []
    for name in ('page', 'limit'):
        raw = request.args.get(name)
        try:
            values.append(parse_int(raw, name) if raw else None)
        except InvalidInput:
            values.append(None)
    return tuple(values)
