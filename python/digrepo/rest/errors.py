"""
Exceptions that carry an HTTP status to be returned to the REST client.

Any :py:class:`RESTError` raised while processing a request--while resolving the requested
resource, checking access, extracting parameters, or within an endpoint handler--ends the
request: the dispatcher converts it into a JSON response of the form ``{"message": ...}``
with the error's ``code`` as the HTTP status.
"""
from http import HTTPStatus

from digrepo.base import DigRepoException

__all__ = [ "RESTError", "BadRequest", "Unauthorized", "Forbidden", "NotFound", "MethodNotAllowed" ]

class RESTError(DigRepoException):
    """
    a failure to be reported to the client with a particular HTTP status code.  Endpoint
    handlers raise this class directly to return a status of their own choosing.
    """
    default_code = 500

    def __init__(self, message: str=None, code: int=None):
        if code is None:
            code = self.default_code
        if not message:
            message = reason_for(code)
        super(RESTError, self).__init__(message)
        self.code = code
        self.message = message

    @property
    def kind(self) -> str:
        """
        a name for the type of failure
        """
        return type(self).__name__

    @property
    def reason(self) -> str:
        """
        the standard HTTP reason phrase that accompanies the status code
        """
        return reason_for(self.code)

class BadRequest(RESTError):
    default_code = 400

class Unauthorized(RESTError):
    default_code = 401

class Forbidden(RESTError):
    default_code = 403

class NotFound(RESTError):
    default_code = 404

class MethodNotAllowed(RESTError):
    default_code = 405

def reason_for(code: int) -> str:
    """
    return the standard HTTP reason phrase for the given status code
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Error"
