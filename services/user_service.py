import logging

from database import get_db
from errors import AuthenticationFailed, Forbidden, InvalidInput, NotFound
from models import User, UserRole
from repositories.users import UserRepository
from utils.security import check_password, hash_password
from utils.validation import parse_email, parse_enum, parse_string


MIN_PASSWORD_LENGTH = 8

_PROFILE_PARSERS = {
    'first_name': lambda v: parse_string(v, 'first_name', min_length=2, max_length=50),
    'last_name': lambda v: parse_string(v, 'last_name', min_length=2, max_length=50),
    'phone': lambda v: None if v is None else parse_string(v, 'phone', max_length=32),
    'avatar': lambda v: None if v is None else parse_string(v, 'avatar'),
    'bio': lambda v: None if v is None else parse_string(v, 'bio', max_length=500),
}


def _parse_password(value):
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f'password must be at least {MIN_PASSWORD_LENGTH} characters')
    return value


class UserService:
    """ Accounts: registration, credential checks and the profile. """

    def __init__(self, session_factory, logger=None):
        self.session_factory = session_factory
        self.log = logger or logging.getLogger('stayhub.users')

    def register(self, data, allow_admin=False):
        """
        Creates a guest or host account. Admin accounts are only created with
        allow_admin=True, which the `create-admin` CLI command passes.
        """
        email = parse_email(data.get('email'))
        password = _parse_password(data.get('password'))
        first_name = _PROFILE_PARSERS['first_name'](data.get('first_name'))
        last_name = _PROFILE_PARSERS['last_name'](data.get('last_name'))
        role = parse_enum(UserRole, data.get('role') or UserRole.guest.value, 'role')
        if role is UserRole.admin and not allow_admin:
            raise InvalidInput('invalid role: must be one of guest, host')

        with get_db(self.session_factory) as db:
            user = User(
                email=email,
                password_hash=hash_password(password),
                role=role,
                first_name=first_name,
                last_name=last_name,
                phone=_PROFILE_PARSERS['phone'](data.get('phone')),
            )
            UserRepository(db, self.log).create(user)
            self.log.info('user %s registered as %s', user.id, role.value)
            return user.to_dict()

    def login(self, email, password):
        if not email or not password:
            raise AuthenticationFailed('invalid email or password')

        with get_db(self.session_factory) as db:
            user = UserRepository(db, self.log).get_by_email(email)
            if user is None or not check_password(password, user.password_hash):
                raise AuthenticationFailed('invalid email or password')
            if not user.is_active:
                raise Forbidden('account is disabled')
            return user.to_dict()

    def get_user(self, user_id):
        with get_db(self.session_factory) as db:
            user = UserRepository(db, self.log).get_by_id(user_id)
            if user is None:
                raise NotFound('user not found')
            return user.to_dict()

    def get_user_by_email(self, email):
        with get_db(self.session_factory) as db:
            user = UserRepository(db, self.log).get_by_email(email)
            if user is None:
                raise NotFound('user not found')
            return user.to_dict()

    def get_active_user(self, user_id):
        """ Used on token refresh: a deleted or disabled account gets no new tokens. """
        user = self.get_user(user_id)
        if not user['is_active']:
            raise Forbidden('account is disabled')
        return user

    def update_profile(self, user_id, patch):
        with get_db(self.session_factory) as db:
            users = UserRepository(db, self.log)
            user = users.get_by_id(user_id)
            if user is None:
                raise NotFound('user not found')

            changes = {field: parser(patch[field]) for field, parser in _PROFILE_PARSERS.items() if field in patch}
            for field, value in changes.items():
                setattr(user, field, value)
            users.update(user)
            return user.to_dict()
