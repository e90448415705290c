"""
The endpoint handlers that carry out the operations of the REST service, one module per kind
of endpoint.
"""
from collections.abc import Mapping
from logging import Logger

from digrepo.repo import Repository
from digrepo.search import SolrClient
from ..dispatch import HandlerRegistry
from .object import ObjectHandlers
from .datastream import DatastreamHandlers
from .token import DatastreamTokenHandlers
from .relationship import RelationshipHandlers
from .solr import SolrHandler

def register_handlers(registry: HandlerRegistry, repo: Repository, search: SolrClient=None,
                      config: Mapping=None, log: Logger=None) -> HandlerRegistry:
    """
    register all of the standard endpoint handlers into the given registry
    :param HandlerRegistry registry:  the registry to load
    :param Repository repo:    the repository the handlers should operate on
    :param SolrClient search:  the client for the search index; if None, no search handler is
                               registered
    :param dict config:        the service configuration
    """
    if config is None:
        config = {}
    ObjectHandlers(repo, config, log).register_with(registry)
    DatastreamHandlers(repo, config, log).register_with(registry)
    DatastreamTokenHandlers(repo, config.get('tokens', {}), log).register_with(registry)
    RelationshipHandlers(repo, config, log).register_with(registry)
    if search is not None:
        SolrHandler(search, log).register_with(registry)
    return registry
