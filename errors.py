class DomainError(Exception):
    """ Base class of every failure the services report to the HTTP layer. """

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    """ The requested entity does not exist (or was soft-deleted). """


class Forbidden(DomainError):
    """ Authenticated, but not allowed to touch this entity or action. """


class Conflict(DomainError):
    """ State or scheduling conflict: overlapping dates, duplicates, wrong status. """


class InvalidInput(DomainError):
    """ Malformed date range, capacity exceeded, bad enum value, ... """


class Unavailable(DomainError):
    """ The store or another dependency failed. """


class AuthenticationFailed(DomainError):
    """ Credentials did not match any active account. """
