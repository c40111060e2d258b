"""
Error taxonomy for relationship actions.

Domain errors carry an HTTP status and a short machine-readable code; the
exception handler registered in main.py renders them for API callers.
"""


class FriendlinkError(Exception):
    """Base class for errors surfaced to the caller"""

    status_code = 500
    code = 'internal_error'

    def __init__(self, message: str = None):
        self.message = message or self.code.replace('_', ' ')
        super().__init__(self.message)

    def to_response(self) -> dict:
        return {'detail': self.message, 'code': self.code}


class ValidationError(FriendlinkError):
    status_code = 400
    code = 'validation_error'


class NotFoundError(FriendlinkError):
    status_code = 404
    code = 'not_found'


class AuthorizationError(FriendlinkError):
    status_code = 403
    code = 'not_authorized'


class ConflictError(FriendlinkError):
    status_code = 409
    code = 'conflict'


class TransientCollaboratorFailure(FriendlinkError):
    """Raised by collaborators (greeting generator, delivery channel).

    Never reaches API callers: the greeting service substitutes a fallback
    and the dispatcher logs and drops failed pushes.
    """

    status_code = 503
    code = 'collaborator_unavailable'
