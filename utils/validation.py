"""
Parsers shared by the routes (query strings, JSON bodies) and the services
(field rules). Each one either returns a clean Python value or raises
InvalidInput with a message naming the field.
"""
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation

from errors import InvalidInput


EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def parse_date(value, field):
    """ Accepts a date or a 'YYYY-MM-DD' string. """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise InvalidInput(f'invalid {field} format. Use YYYY-MM-DD')


def parse_time(value, field):
    """ Accepts a time, 'HH:MM' or 'HH:MM:SS'; None clears the value. """
    if value is None or isinstance(value, time):
        return value
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(str(value), fmt).time()
        except ValueError:
            continue
    raise InvalidInput(f'invalid {field} format. Use HH:MM')


def parse_int(value, field, minimum=None, maximum=None):
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{field} must be an integer')
    if isinstance(value, float) and value != number:
        raise InvalidInput(f'{field} must be an integer')
    _check_range(number, field, minimum, maximum)
    return number


def parse_decimal(value, field, minimum=None, maximum=None):
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f'{field} must be a number')
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInput(f'{field} must be a number')
    if not number.is_finite():
        raise InvalidInput(f'{field} must be a number')
    _check_range(number, field, minimum, maximum)
    return number


def parse_float(value, field, minimum=None, maximum=None):
    """ Optional float; None clears the value. """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{field} must be a number')
    _check_range(number, field, minimum, maximum)
    return number


def parse_string(value, field, min_length=0, max_length=None):
    if not isinstance(value, str):
        raise InvalidInput(f'{field} must be a string')
    value = value.strip()
    if len(value) < min_length:
        if min_length == 1:
            raise InvalidInput(f'{field} is required')
        raise InvalidInput(f'{field} must be at least {min_length} characters')
    if max_length is not None and len(value) > max_length:
        raise InvalidInput(f'{field} must be at most {max_length} characters')
    return value


def parse_string_list(value, field):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidInput(f'{field} must be a list of strings')
    return [item.strip() for item in value if item.strip()]


def parse_enum(enum_cls, value, field):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise InvalidInput(f'invalid {field}: must be one of {allowed}')


def parse_email(value):
    email = parse_string(value, 'email', min_length=1, max_length=255).lower()
    if not EMAIL_RE.match(email):
        raise InvalidInput('invalid email address')
    return email


def _check_range(number, field, minimum, maximum):
    if minimum is not None and number < minimum:
        raise InvalidInput(f'{field} must be at least {minimum}')
    if maximum is not None and number > maximum:
        raise InvalidInput(f'{field} must be at most {maximum}')
