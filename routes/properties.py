from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from errors import InvalidInput
from models import PropertyType
from routes.common import current_user, json_body, paging_args, services
from utils.validation import parse_date, parse_decimal, parse_enum, parse_int


properties_bp = Blueprint('properties', __name__, url_prefix='/api/v1/properties')


def _search_filters(args):
    """ Turns the search query string into typed filters, skipping empty values. """
    filters = {}
    for field in ('city', 'state', 'country'):
        if args.get(field):
            filters[field] = args[field].strip()
    if args.get('guests'):
        filters['guests'] = parse_int(args['guests'], 'guests', minimum=1)
    if args.get('min_price'):
        filters['min_price'] = parse_decimal(args['min_price'], 'min_price', minimum=0)
    if args.get('max_price'):
        filters['max_price'] = parse_decimal(args['max_price'], 'max_price', minimum=0)
    if args.get('type'):
        filters['type'] = parse_enum(PropertyType, args['type'], 'property type')

    amenities = []
    for value in args.getlist('amenities'):
        amenities.extend(item.strip() for item in value.split(',') if item.strip())
    if amenities:
        filters['amenities'] = amenities

    if args.get('check_in'):
        filters['check_in'] = parse_date(args['check_in'], 'check-in date')
    if args.get('check_out'):
        filters['check_out'] = parse_date(args['check_out'], 'check-out date')
    return filters


@properties_bp.route('', methods=['GET'])
def list_properties():
    page, limit = paging_args()
    return jsonify(services()['properties'].list_properties(page, limit)), 200


@properties_bp.route('/search', methods=['GET'])
def search_properties():
    """
    Search active properties by location, capacity, price, type, amenities
    and, when both dates are given, availability.
    """
    page, limit = paging_args()
    result = services()['properties'].search_properties(_search_filters(request.args), page, limit)
    return jsonify(result), 200


@properties_bp.route('/my', methods=['GET'])
@jwt_required()
def my_properties():
    user_id, _ = current_user()
    page, limit = paging_args()
    return jsonify(services()['properties'].get_properties_by_host(user_id, page, limit)), 200


@properties_bp.route('/<int:property_id>', methods=['GET'])
def get_property(property_id):
    return jsonify(services()['properties'].get_property(property_id)), 200


@properties_bp.route('/<int:property_id>/availability', methods=['GET'])
def check_availability(property_id):
    check_in = request.args.get('check_in')
    check_out = request.args.get('check_out')
    if not check_in or not check_out:
        raise InvalidInput('check_in and check_out are required')

    check_in = parse_date(check_in, 'check-in date')
    check_out = parse_date(check_out, 'check-out date')
    available = services()['properties'].check_availability(property_id, check_in, check_out)
    return jsonify({
        'property_id': property_id,
        'check_in': check_in.isoformat(),
        'check_out': check_out.isoformat(),
        'available': available,
    }), 200


@properties_bp.route('/<int:property_id>/reviews', methods=['GET'])
def property_reviews(property_id):
    page, limit = paging_args()
    return jsonify(services()['reviews'].get_property_reviews(property_id, page, limit)), 200


@properties_bp.route('/<int:property_id>/rating', methods=['GET'])
def property_rating(property_id):
    return jsonify(services()['reviews'].get_property_rating(property_id)), 200


@properties_bp.route('', methods=['POST'])
@jwt_required()
def create_property():
    """
    It creates 'Property' for who have the 'host' (or 'admin') role.
    New properties wait as pending until an admin approves them.
    """
    user_id, role = current_user()
    prop = services()['properties'].create_property(user_id, role, json_body())
    return jsonify({'msg': 'Property created successfully', 'property': prop}), 201


@properties_bp.route('/<int:property_id>', methods=['PUT'])
@jwt_required()
def update_property(property_id):
    user_id, _ = current_user()
    prop = services()['properties'].update_property(property_id, user_id, json_body())
    return jsonify({'msg': 'Property updated successfully', 'property': prop}), 200


@properties_bp.route('/<int:property_id>', methods=['DELETE'])
@jwt_required()
def delete_property(property_id):
    user_id, _ = current_user()
    services()['properties'].delete_property(property_id, user_id)
    return jsonify({'msg': 'Property deleted successfully'}), 200


@properties_bp.route('/<int:property_id>/approve', methods=['POST'])
@jwt_required()
def approve_property(property_id):
    _, role = current_user()
    prop = services()['properties'].approve_property(property_id, role)
    return jsonify({'msg': 'Property approved successfully', 'property': prop}), 200
