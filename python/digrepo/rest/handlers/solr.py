"""
Handler for the ``solr`` endpoint, which passes a query through to the repository's search index
"""
from collections.abc import Mapping
from logging import Logger

from digrepo.search import SolrClient
from ..dispatch import EndpointRequest
from ..permissions import EndpointKind, Method

class SolrHandler(object):
    """
    the handler for search requests.  The query is taken from the request path; all other
    parameters are passed to Solr as given.
    """

    def __init__(self, client: SolrClient, log: Logger=None):
        self.client = client
        self.log = log

    def register_with(self, registry):
        registry.register(EndpointKind.SOLR, Method.GET, self.do_GET)

    def do_GET(self, req: EndpointRequest) -> Mapping:
        params = dict(req.params)
        query = params.pop('q', None)
        if req.path_params.get('query'):
            query = req.path_params['query']
        if self.log:
            self.log.debug("Solr query: %s %s", query, str(params))
        return self.client.select(query, params)
