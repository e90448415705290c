"""
Support for querying the repository's Solr search index
"""
from collections.abc import Mapping

from digrepo.base import DigRepoException, DigRepoSystem

system = DigRepoSystem("Search Index", "search")

class SearchException(DigRepoException):
    """
    an exception indicating a problem using the search service.  The ``code`` property carries
    an HTTP-compatible status describing the failure.
    """

    def __init__(self, resource=None, http_code=None, http_reason=None, message=None, cause=None):
        if not message:
            if resource:
                message = f"Trouble accessing {resource} from the search service"
            else:
                message = "Problem accessing the search service"
            if http_code or http_reason:
                message += ":"
                if http_code:
                    message += " "+str(http_code)
                if http_reason:
                    message += " "+str(http_reason)
            elif cause:
                message += ": "+str(cause)

        super(SearchException, self).__init__(message)
        self.resource = resource
        self.status = http_code
        self.reason = http_reason
        self.cause = cause

    @property
    def code(self):
        return 500

class SearchServerError(SearchException):
    """
    an exception indicating an error occurred on the server side of the search service (or
    that it could not be reached).
    """
    pass

class SearchClientError(SearchException):
    """
    an exception indicating that the search service rejected the query as erroneous
    """

    def __init__(self, resource, http_code, http_reason, message=None, cause=None):
        if not message:
            message = "search query rejected"
            if resource:
                message += " while processing " + resource
            message += ": {0} {1}".format(http_code, http_reason)
        super(SearchClientError, self).__init__(resource, http_code, http_reason, message, cause)

    @property
    def code(self):
        return 400

from .client import SolrClient

def create_search_client(config: Mapping):
    """
    create a SolrClient according to the given ``search`` configuration, or return None if
    search is not configured (i.e. ``service_endpoint`` is not set).
    """
    if not config or not config.get('service_endpoint'):
        return None
    return SolrClient(config['service_endpoint'], config.get('timeout', 30),
                      config.get('default_params'), config.get('enabled', True))
