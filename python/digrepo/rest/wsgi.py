"""
The WSGI application that hosts the repository's REST service.

The service responds to the following paths, relative to the application's base endpoint
(set via the ``base_ep`` configuration parameter):

``object``
    ingest new objects (POST)
``object/{pid}``
    describe (GET), update (PUT), or purge (DELETE) an object
``object/{pid}/datastream``
    list (GET) or add (POST) an object's datastreams
``object/{pid}/datastream/{dsid}``
    retrieve (GET), update (PUT), or purge (DELETE) a datastream
``object/{pid}/datastream/{dsid}/token``
    obtain a token granting access to a datastream (GET)
``object/{pid}/relationship``
    list (GET), add (POST), or remove (DELETE) an object's relationships
``solr/{query}``
    search the repository's index (GET)

A client unable to send PUT or DELETE requests may send a POST request with a ``method`` form
field (or JSON body property) naming the method it intends.
"""
import logging
from collections.abc import Mapping
from logging import Logger
from typing import Callable, List
from wsgiref.headers import Headers

from digrepo.base.config import ConfigurationException
from digrepo.repo import Repository, create_repository
from digrepo.search import SolrClient, create_search_client
from digrepo.web.rest import (Handler, ServiceApp, WSGIAppSuite, Agent,
                              authenticate_via_jwt, authenticate_via_authkey)
from . import system
from .access import RolePolicy, AccessEnforcer
from .dispatch import Dispatcher, HandlerRegistry, OBJECT_ID, SUB_RESOURCE_ID
from .encode import encode_error
from .errors import RESTError, NotFound, reason_for
from .handlers import register_handlers
from .params import RequestContext
from .permissions import EndpointKind, PermissionMapper
from .resource import ResourceResolver

deflog = logging.getLogger(system.system_abbrev).getChild(system.subsystem_abbrev)

DEF_BASE_PATH = "/rest/v1/"

class RepositoryService(object):
    """
    the collection of long-lived components that together carry out REST requests: the
    repository, the search client, the permission table, and the registered endpoint handlers.
    A :py:class:`~digrepo.rest.dispatch.Dispatcher` is created for each request to reflect the
    permissions of the requesting user.
    """

    def __init__(self, config: Mapping, repo: Repository, search: SolrClient=None,
                 log: Logger=None):
        if not log:
            log = deflog
        self.cfg = config
        self.log = log
        self.repo = repo
        self.search = search

        self.mapper = PermissionMapper(config.get('permissions'))
        self.resolver = ResourceResolver(repo, log)
        self.registry = register_handlers(HandlerRegistry(), repo, search, config, log)
        self.registry.validate(self.mapper)

    def dispatcher_for(self, who: Agent) -> Dispatcher:
        policy = RolePolicy(self.cfg.get('access', {}), who, self.log)
        enforcer = AccessEnforcer(policy, self.search, self.mapper, self.log)
        return Dispatcher(self.resolver, enforcer, self.registry, self.log)

class RESTHandler(Handler):
    """
    a Handler that passes a request on a REST endpoint through the dispatch pipeline and sends
    the result.
    """

    def __init__(self, service: RepositoryService, kind: EndpointKind, path_params: Mapping,
                 path: str, wsgienv: dict, start_resp: Callable, who=None, config: dict={},
                 log: Logger=None, app=None):
        super(RESTHandler, self).__init__(path, wsgienv, start_resp, who, config, log, app)
        self.svc = service
        self.kind = kind
        self.path_params = path_params

    def handle(self):
        if self._meth == "OPTIONS":
            return self.send_options(["GET", "POST", "PUT", "DELETE"])

        ctx = RequestContext(self._env, self.who, self.log)
        if self.kind is None:
            body, ctype, status = encode_error(NotFound())
        else:
            dispatcher = self.svc.dispatcher_for(self.who)
            if self.kind == EndpointKind.SOLR:
                body, ctype, status = dispatcher.handle_solr(self.path_params, ctx)
            else:
                body, ctype, status = dispatcher.handle(self.kind, self.path_params, ctx)

        try:
            for name, value in ctx.headers:
                self.add_header(name, value)
            return self._send(status, reason_for(status), body, ctype, None, 'utf-8')
        except Exception as ex:
            if self.log:
                self.log.exception("Failed to send %s response: %s", self._meth, str(ex))
            self._hdr = Headers(list(self.app.include_headers.items()) if self.app else [])
            body, ctype, status = encode_error(RESTError("Internal Server Error", 500))
            return self._send(status, reason_for(status), body, ctype, None, 'utf-8')

class ObjectServiceApp(ServiceApp):
    """
    the ServiceApp handling the ``object`` endpoints
    """

    def __init__(self, service: RepositoryService, log: Logger, config: Mapping=None):
        super(ObjectServiceApp, self).__init__("object", log, config)
        self.svc = service

    def route(self, path: str):
        """
        determine the kind of endpoint and the path parameters from the path below ``object``.
        The kind returned is None if the path is not recognized.
        """
        parts = [p for p in path.split('/') if p]
        params = {}
        if len(parts) > 0:
            params[OBJECT_ID] = parts[0]
        if len(parts) < 2:
            return (EndpointKind.OBJECT, params)

        if parts[1] == "relationship" and len(parts) == 2:
            return (EndpointKind.RELATIONSHIP, params)

        if parts[1] == "datastream":
            if len(parts) > 2:
                params[SUB_RESOURCE_ID] = parts[2]
            if len(parts) < 4:
                return (EndpointKind.DATASTREAM, params)
            if parts[3] == "token" and len(parts) == 4:
                return (EndpointKind.DATASTREAM_TOKEN, params)

        return (None, params)

    def create_handler(self, env: dict, start_resp: Callable, path: str, who: Agent) -> Handler:
        kind, params = self.route(path)
        return RESTHandler(self.svc, kind, params, path, env, start_resp, who, self.cfg,
                           self.log, self)

class SearchServiceApp(ServiceApp):
    """
    the ServiceApp handling the ``solr`` endpoint
    """

    def __init__(self, service: RepositoryService, log: Logger, config: Mapping=None):
        super(SearchServiceApp, self).__init__("solr", log, config)
        self.svc = service

    def create_handler(self, env: dict, start_resp: Callable, path: str, who: Agent) -> Handler:
        params = {}
        if path.strip('/'):
            params['query'] = path.strip('/')
        return RESTHandler(self.svc, EndpointKind.SOLR, params, path, env, start_resp, who,
                           self.cfg, self.log, self)

class RepositoryWebApp(WSGIAppSuite):
    """
    the WSGI application providing the REST interface to the repository.

    The configuration recognizes the following parameters, in addition to those of
    :py:class:`~digrepo.web.rest.WSGIAppSuite`:

    ``authentication``
        the client authentication configuration; its ``type`` parameter selects the mechanism,
        ``jwt`` or ``authkey`` (see :py:func:`~digrepo.web.rest.authenticate_via_jwt` and
        :py:func:`~digrepo.web.rest.authenticate_via_authkey`).  If not set, all users are
        anonymous.
    ``repository``
        the configuration of the repository backend (see
        :py:func:`~digrepo.repo.create_repository`)
    ``search``
        the configuration of the search client (see
        :py:func:`~digrepo.search.create_search_client`)
    ``access``
        the grants of permissions to roles (see :py:class:`~digrepo.rest.access.RolePolicy`)
    ``permissions``
        overrides to the permissions required by each operation
    ``tokens``
        the configuration for issuing datastream tokens
    """

    def __init__(self, config: Mapping, log: Logger=None, base_ep: str=None,
                 repo: Repository=None, search: SolrClient=None):
        """
        initialize the service
        :param dict config:  the service configuration
        :param Logger  log:  the Logger to use; if None, a default is used
        :param str base_ep:  the base endpoint path; if not given, it is taken from the
                             configuration (``base_ep``) or defaults to "/rest/v1/".
        :param Repository repo:  the repository to serve; if not given, one is created from
                             the ``repository`` configuration
        :param SolrClient search: the search client; if not given, one is created from the
                             ``search`` configuration (if set)
        """
        if not log:
            log = deflog
        if not base_ep:
            base_ep = config.get('base_ep', DEF_BASE_PATH)

        if repo is None:
            repo = create_repository(config.get('repository', {}))
        if search is None:
            search = create_search_client(config.get('search', {}))

        authcfg = config.get('authentication', {})
        if authcfg and authcfg.get('type', 'jwt') not in ("jwt", "authkey"):
            raise ConfigurationException("authentication.type: not one of jwt, authkey: " +
                                         str(authcfg.get('type')))

        self.service = RepositoryService(config, repo, search, log)
        svcapps = {
            "object": ObjectServiceApp(self.service, log.getChild("object"), config),
            "solr":   SearchServiceApp(self.service, log.getChild("solr"), config)
        }
        super(RepositoryWebApp, self).__init__(config, svcapps, log, base_ep)
        if not self.name:
            self.name = "digrepo"

    def authenticate_user(self, env: Mapping, agents: List[str]=None, client_id: str=None) -> Agent:
        authcfg = self.cfg.get('authentication')
        if not authcfg:
            return super(RepositoryWebApp, self).authenticate_user(env, agents, client_id)

        if authcfg.get('type', 'jwt') == "authkey":
            return authenticate_via_authkey(self.name, env, authcfg, self.log, agents, client_id)
        return authenticate_via_jwt(self.name, env, authcfg, self.log, agents, client_id)

app = RepositoryWebApp
