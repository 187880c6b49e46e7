from sqlalchemy import func

from models import User
from repositories.base import Repository


class UserRepository(Repository):
    model = User

    def create(self, user):
        return self._add(user, 'create user', conflict_message='user with this email already exists')

    def get_by_id(self, user_id):
        return self._first(self._live().filter(User.id == user_id), 'get user')

    def get_by_email(self, email):
        query = self._live().filter(func.lower(User.email) == email.lower())
        return self._first(query, 'get user by email')

    def update(self, user):
        return self._save(user, 'update user')
