from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from errors import InvalidInput
from routes.common import current_user, json_body, paging_args, services
from utils.validation import parse_date, parse_int


booking_bp = Blueprint('booking', __name__, url_prefix='/api/v1/bookings')


@booking_bp.route('', methods=['POST'])
@jwt_required()
def create_booking():
    """
    Books a property for the current user. The booking starts as pending
    and is priced as nights x price_per_night.
    """
    user_id, _ = current_user()
    data = json_body()

    missing = [field for field in ('property_id', 'check_in', 'check_out', 'guests') if data.get(field) is None]
    if missing:
        raise InvalidInput(f'Missing required fields: {", ".join(missing)}')

    booking = services()['bookings'].create_booking(
        guest_id=user_id,
        property_id=parse_int(data['property_id'], 'property_id'),
        check_in=parse_date(data['check_in'], 'check-in date'),
        check_out=parse_date(data['check_out'], 'check-out date'),
        guests=parse_int(data['guests'], 'guests'),
        notes=data.get('notes'),
    )
    return jsonify({'msg': 'Booking created successfully', 'booking': booking}), 201


@booking_bp.route('/my', methods=['GET'])
@jwt_required()
def my_bookings():
    user_id, _ = current_user()
    page, limit = paging_args()
    return jsonify(services()['bookings'].get_user_bookings(user_id, page, limit)), 200


@booking_bp.route('/property/<int:property_id>', methods=['GET'])
@jwt_required()
def property_bookings(property_id):
    user_id, _ = current_user()
    page, limit = paging_args()
    return jsonify(services()['bookings'].get_property_bookings(property_id, user_id, page, limit)), 200


@booking_bp.route('/<int:booking_id>', methods=['GET'])
@jwt_required()
def get_booking(booking_id):
    user_id, role = current_user()
    return jsonify(services()['bookings'].get_booking(booking_id, user_id, role)), 200


@booking_bp.route('/<int:booking_id>', methods=['PUT'])
@jwt_required()
def update_booking(booking_id):
    """ Partial update: only the keys present in the body are applied. """
    user_id, role = current_user()
    booking = services()['bookings'].update_booking(booking_id, user_id, role, json_body())
    return jsonify({'msg': 'Booking updated successfully', 'booking': booking}), 200


@booking_bp.route('/<int:booking_id>/cancel', methods=['POST'])
@jwt_required()
def cancel_booking(booking_id):
    user_id, role = current_user()
    booking = services()['bookings'].cancel_booking(booking_id, user_id, role)
    return jsonify({'msg': 'Booking cancelled successfully', 'booking': booking}), 200
