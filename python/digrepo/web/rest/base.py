"""
The base classes of the WSGI framework used to host repository REST services
"""
import re, json
from abc import ABCMeta, abstractmethod
from functools import reduce
from logging import Logger
from collections.abc import Mapping
from typing import Callable, List, Union

import jwt

from wsgiref.headers import Headers

from digrepo.base.config import ConfigurationException
from ..agent import Agent

__all__ = ["Handler", "ServiceApp", "Unauthenticated", "WSGIApp",
           "AuthenticatedWSGIApp", "WSGIAppSuite", "Agent",
           "authenticate_via_authkey", "authenticate_via_jwt", "make_agent_from_claimset" ]

class Handler(object):
    """
    a default web request handler that also serves as a base class for the handlers
    specialized for the supported resource paths.  Key features built into this class include:
      * the ``who`` property that holds the identity of the remote user making the request
      * ``send_*`` methods for delivering the response status, headers, and body
    """

    def __init__(self, path: str, wsgienv: dict, start_resp: Callable, who=None,
                 config: dict={}, log: Logger=None, app=None):
        self._path = path
        self._env = wsgienv
        self._start = start_resp
        self._hdr = Headers([])
        self._code = 0
        self._msg = "unknown status"
        self.cfg = config
        self.log = log

        self._app = app
        if self._app and hasattr(app, 'include_headers'):
            self._hdr = Headers(list(app.include_headers.items()))
        if not who:
            who = self._default_agent()
        self.who = who

        self._meth = self._env.get('REQUEST_METHOD', 'GET')

    @property
    def app(self):
        """
        the ServiceApp instance that created this handler
        """
        return self._app

    def _default_agent(self):
        name = "digrepo" if not self.app else self.app.name
        return Agent(name, Agent.UNKN, Agent.ANONYMOUS, Agent.PUBLIC)

    def send_error(self, code, message, content=None, contenttype=None, ashead=None, encoding='utf-8'):
        """
        respond to the client with an error of a given code and reason

        :param int code:        the HTTP response code to assign
        :param str message:     the briefly-stated reason to give for the error; this text
                                is sent as the message that accompanies the code in the HTTP
                                response header
        :param content:         Content to return as the body.
                                :type content: str or byte or a list of either
        :param str contenttype: the MIME type to associate with the returned content.
        :param bool ashead:     True if this is being sent as if in response to a HEAD request; if so,
                                the size and type of the content will be included in the headers, but
                                the actual content will be withheld.  If not provided, it will be set
                                to True if the originally requested method is "HEAD".
        :param str encoding:    The encoding required to turn the content--when given as str--into bytes.
        """
        return self._send(code, message, content, contenttype, ashead, encoding)

    def send_unauthorized(self, message="Unauthorized", content=None, contenttype=None, ashead=None,
                          encoding='utf-8'):
        return self.send_error(401, message, content, contenttype, ashead, encoding)

    def send_ok(self, content=None, contenttype=None, message="OK", code=200, ashead=None, encoding='utf-8'):
        """
        respond to the client a response of success.

        :param content:         Content to return as the body.  If not provided, the body will be
                                empty.
                                :type content: str or byte
        :param str contenttype: the MIME type to associate with the returned content.
        :param str message:     the briefly-stated reason to give in the status line (default: "OK")
        :param int code:        the HTTP response code to assign (default: 200)
        :param bool ashead:     True if this is being sent as if in response to a HEAD request
        :param str encoding:    The encoding required to turn the content--when given as str--into bytes.
        """
        return self._send(code, message, content, contenttype, ashead, encoding)

    def send_json(self, data, message="OK", code=200, ashead=False, encoding='utf-8'):
        """
        Send some data formatted as JSON.
        :param data:     the data to encode in JSON
                         :type data: dict, list, or string
        """
        return self._send(code, message, json.dumps(data, indent=2), "application/json", ashead, encoding)

    def send_options(self, allowed_methods: List[str]=None, origin: str=None, forcors: bool=True):
        """
        send a response to a OPTIONS request.  This implememtation is primarily for CORS preflight requests
        :param List[str] allowed_methods:   a list of the HTTP methods that are allowed for request
        :param str                origin:   the origin to allow, if any
        """
        meths = list(allowed_methods or [])
        if 'OPTIONS' not in meths:
            meths.append('OPTIONS')
        if forcors:
            self.add_header('Access-Control-Allow-Methods', ", ".join(meths))
            if origin:
                self.add_header('Access-Control-Allow-Origin', origin)
            self.add_header('Access-Control-Allow-Headers', "Content-Type, Authorization")

        return self.send_ok(message="No Content")

    def _send(self, code, message, content, contenttype, ashead, encoding):
        if ashead is None:
            ashead = self._meth.upper() == "HEAD"
        self.set_response(code, message)

        if content:
            if not isinstance(content, list):
                content = [ content ]
            badtype = [type(c) for c in content if not isinstance(c, (str, bytes))]
            if badtype:
                raise TypeError("send_*: non-str/bytes found in content")
            if not contenttype:
                contenttype = (isinstance(content[0], str) and "text/plain") or "application/octet-stream"
        elif content is None:
            content = []
        # convert to bytes
        content = [(isinstance(c, str) and c.encode(encoding)) or c for c in content]

        if contenttype:
            self.add_header("Content-Type", contenttype)
        if len(content) > 0:
            self.add_header("Content-Length", str(reduce(lambda x, t: x+len(t), content, 0)))

        self.end_headers()
        return (not ashead and content) or []

    def add_header(self, name, value):
        """
        record a name-value pair to be sent as part of the response header.

        :raises UnicodeEncodeError:  if name or value includes Unicode characters (see PEP 333)
        """
        # HTTP header values must be latin-1 encodable (PEP 333)
        e = "ISO-8859-1"
        (name.encode(e), value.encode(e))

        self._hdr.add_header(name, value)

    def set_response(self, code, message):
        """
        record the response code and message to be sent when the response is triggered to push out.
        """
        self._code = code
        self._msg = message

    def end_headers(self):
        """
        trigger the delivery of response's header to the web client.  It should be preceded with
        a call to :py:meth:`set_response`; afterward, the handler should return the body content
        (as an iterable).
        """
        status = "{0} {1}".format(str(self._code), self._msg)
        self._start(status, self._hdr.items(), None)

    def handle(self):
        """
        handle the request encapsulated in this Handler (at construction time).

        The default implementation looks for a Handler method of the form, `do_`METH(), where METH is
        is the HTTP method requested (e.g. GET, HEAD, etc.) and calls it with the requested URL path
        (as set at construction).  If the requested method is HEAD and there is no HEAD, `do_GET()`
        is called with a second argument set to True.
        """
        meth_handler = 'do_'+self._meth

        if not self.preauthorize():
            return self.send_unauthorized()

        try:
            if hasattr(self, meth_handler):
                return getattr(self, meth_handler)(self._path)
            elif self._meth == "HEAD" and hasattr(self, 'do_GET'):
                return self.do_GET(self._path, ashead=True)
            else:
                return self.send_error(405, self._meth + " not supported on this resource")
        except Exception as ex:
            if self.log:
                self.log.exception("Unexpected failure: "+str(ex))
            return self.send_error(500, "Server failure")

    def preauthorize(self):
        """
        do an initial test to see if the client identity is authorized to access this service.
        This implementation always returns True; subclasses may override this to filter out
        requests early, based just on the identity of the client (``self.who``).
        """
        return True

class ServiceApp(metaclass=ABCMeta):
    """
    a base class WSGI implementation intended to run as a delegate handling a particular path
    within another WSGI application.
    """

    def __init__(self, appname: str, log: Logger, config: Mapping=None):
        self.log = log
        if config is None:
            config = {}
        self.cfg = config
        self._name = appname

        self.include_headers = Headers()
        if config.get("include_headers"):
            try:
                if isinstance(config.get("include_headers"), Mapping):
                    self.include_headers = Headers(list(config.get("include_headers").items()))
                elif isinstance(config.get("include_headers"), list):
                    self.include_headers = Headers([tuple(h) for h in config.get("include_headers")])
                else:
                    raise TypeError("Not a list of 2-tuples")
            except (TypeError, ValueError) as ex:
                raise ConfigurationException("include_headers: must be either a dict or a list of "+
                                             "name-value pairs", cause=ex)
    @property
    def name(self):
        """
        a name for the service provided by this ServiceApp instance (set at construction time).
        """
        return self._name

    @abstractmethod
    def create_handler(self, env: dict, start_resp: Callable, path: str, who: Agent) -> Handler:
        """
        return a handler instance to handle a particular request to a path
        :param Mapping env:  the WSGI environment containing the request
        :param Callable start_resp:  the start_resp function to use initiate the response
        :param str path:     the path to the resource being requested, relative to the parent
                             path that this ServiceApp is configured to handle.
        """
        raise NotImplementedError()

    def handle_path_request(self, env: dict, start_resp: Callable, path: str=None, who: Agent=None):
        """
        respond to a request on a particular (relative) URL path.
        """
        if path is None:
            path = env.get('PATH_INFO', '')
        return self.create_handler(env, start_resp, path, who).handle()

    def __call__(self, env, start_resp):
        return self.handle_path_request(env, start_resp)

class Unauthenticated(Exception):
    """
    An exception indicating that a service client did not successfully authenticate itself.

    Note that an implementation is not required to raise this exception, particularly if
    credentials are optional.  Instead an identity can be returned that specifically represent
    an unauthenticated client.
    """
    pass

class WSGIApp(metaclass=ABCMeta):
    """
    A WSGI application base class for wrapping one or more ServiceApp classes.  It provides a
    common authentication check.

    This base implementation will leverage two parameters from the configuration:

    ``base_ep``
        _str_.  The base endpoint URL for the web app given as a path starting with a forward
        slash, ``/``.  All resource path requests must start with this path.
    ``name``
        _str_.  A short name to use to identify this web app (e.g. in log messages)
    """

    def __init__(self, config: Mapping, log: Logger, base_ep: str = None, name: str = None):
        self.log = log
        self.cfg = config
        self.name = name
        if not self.name:
            self.name = self.cfg.get("name", "")
        self.base_ep = None
        if not base_ep:
            base_ep = self.cfg.get("base_ep", "")
        base_ep = base_ep.strip('/')
        if base_ep:
            self.base_ep = '/%s/' % base_ep

    def authenticate(self, env) -> Union[object,str,None]:
        """
        determine and return the identity of the client.  This implementation returns None,
        reflecting that by default authentication is not supported.

        :raises Unauthenticated:  if the authentication process fails.  If it does,
                  :py:meth:`handle_request` will immediately respond with a 401 error.
        """
        return None

    def handle_request(self, env: Mapping, start_resp: Callable):
        path = re.sub(r'/+', '/', env.get('PATH_INFO', '/'))

        # determine who is making the request
        try:
            who = self.authenticate(env)
        except Unauthenticated as ex:
            self.log.debug("Authentication failure: %s", str(ex))
            return Handler(path, env, start_resp).send_error(401, "Authentication Failure")
        except Exception as ex:
            self.log.exception("Unexpected failure while authenticating: %s", str(ex))
            return Handler(path, env, start_resp).send_error(500, "Internal Server Error")

        if self.base_ep:
            if path.startswith(self.base_ep):
                path = path[len(self.base_ep):]

            elif self.base_ep == path+'/':
                path = ''

            elif self.base_ep.startswith(path.rstrip('/')+'/'):
                # client asked for a parent resource of the base_ep
                return Handler(path, env, start_resp).send_error(403, "Forbidden")

            else:
                return Handler(path, env, start_resp).send_error(404, "Not Found")

        return self.handle_path_request(path.strip('/'), env, start_resp, who)

    @abstractmethod
    def handle_path_request(self, path: str, env: Mapping, start_resp: Callable, who = None):
        """
        Dispatch a request on a resource path to a handler.
        :param str path:  the path requested by the client, relative to the base endpoint path
                          and without a leading slash.
        :param dict env:  the WSGI environment containing all request information
        :param func start_resp:  the start-response function provided by the WSGI engine.
        :param      who:  a string or object that represents the client user.
        """
        raise NotImplementedError()

    def __call__(self, env, start_resp):
        return self.handle_request(env, start_resp)

class AuthenticatedWSGIApp(WSGIApp):
    """
    a WSGIApp base class that identifies the client with an :py:class:`~digrepo.web.agent.Agent`.
    Subclasses provide a specific authentication mechanism via :py:meth:`authenticate_user`.

    The ``authentication`` configuration parameter is an object that can include:

    ``client_agents``
        a map of client IDs to the list of agent identifiers to attach to the returned Agent
        as its delegation chain.
    ``allowed_clients``
        a list of client identifiers (given via the ``X-Client-Id`` HTTP header) that are
        allowed to use this service.  If not set, all clients are allowed.
    ``raise_on_invalid``
        if True, raise :py:class:`Unauthenticated` for invalid credentials instead of returning
        an "invalid" Agent.
    ``raise_on_anonymous``
        if True, raise :py:class:`Unauthenticated` when no credentials are presented instead of
        returning an anonymous Agent.
    """

    def authenticate(self, env) -> Agent:
        authcfg = self.cfg.get('authentication', {})

        client_id = env.get('HTTP_X_CLIENT_ID','(unknown)')
        agents = env.get('HTTP_X_CLIENT_AGENTS', '').split()
        if not agents:
            agents = authcfg.get('client_agents', {}).get(client_id, [client_id])
        allowed = authcfg.get('allowed_clients')
        if allowed is not None and client_id not in allowed:
            self.log.warning("Client %s is not recognized among %s", client_id, str(allowed))
            if authcfg.get('raise_on_invalid'):
                raise Unauthenticated("Unrecognized Client ID")
            return Agent(self.name or client_id, Agent.UNKN, Agent.ANONYMOUS, Agent.INVALID, agents,
                         invalid_reason=f"Unrecognized client ID: {client_id}")

        return self.authenticate_user(env, agents, client_id)

    def authenticate_user(self, env: Mapping, agents: List[str]=None, client_id: str=None) -> Agent:
        """
        determine the authenticated user.  This implementation simply returns an Agent instance
        representing an anonymous user.  Subclasses requiring user authentication should override
        this method, typically with :py:func:`authenticate_via_authkey` or
        :py:func:`authenticate_via_jwt`.
        """
        if self.cfg.get('authentication', {}).get('raise_on_anonymous'):
            raise Unauthenticated("Unauthenticated by default")
        if not client_id:
            client_id = "(unknown)"
        vehicle = self.name or client_id
        return Agent(vehicle, Agent.UNKN, Agent.ANONYMOUS, Agent.PUBLIC, agents)


def authenticate_via_authkey(svcname: str, env: Mapping, authcfg: Mapping, log: Logger,
                             agents: List[str]=None, client_id: str=None):
    """
    authenticate the user via a simple shared Bearer Authorization key.  The recognized keys
    are listed in the ``authorized`` configuration parameter, a list of objects with:

    ``auth_key``
       _str_ (required).  A recognized opaque key looked for as a Bearer Authorization token
    ``user``
       _str_ (required).  the actor identity to assign when the associated key is presented
    ``client``
       _str_.  a name for the client, set as the Agent's ``agent_class``
    ``groups``
       _list_.  the names of groups (roles) the user should be considered part of

    :returns:  an :py:class:`Agent` instance representing the user
    """
    if not client_id:
        client_id = "(unknown)"
    if not svcname:
        svcname = client_id

    auth = env.get('HTTP_AUTHORIZATION', "x").split()
    if len(auth) < 2 or auth[0] != "Bearer" or not auth[1]:
        log.debug("Client %s did not provide a Bearer authentication token", str(client_id))
        if authcfg.get('raise_on_anonymous'):
            raise Unauthenticated("No auth token provided")
        return Agent(svcname, Agent.UNKN, Agent.ANONYMOUS, Agent.PUBLIC, agents)

    for client in authcfg.get('authorized', []):
        if client.get("auth_key") == auth[1]:
            return Agent(svcname, Agent.AUTO, client.get('user','authorized'),
                         client.get('client', client_id), agents, client.get('groups'))

    log.warning("Unrecognized token from client %s", str(client_id))
    if authcfg.get('raise_on_invalid'):
        raise Unauthenticated("Unrecognized auth token")
    return Agent(svcname, Agent.UNKN, Agent.ANONYMOUS, Agent.INVALID, agents,
                 invalid_reason="Unrecognized auth token")

def authenticate_via_jwt(svcname: str, env: Mapping, jwtcfg: Mapping, log: Logger,
                         agents: List[str], client_id: str=None,
                         claim_to_agent_func: Callable=None):
    """
    authenticate the remote user assuming a JWT was provided as an Authorization Bearer token.

    This function will look for the following properties in the provided configuration dictionary:

    ``key``
        (str) _required_.  The secret key shared with the token generator.
    ``algorithm``
        (str) _optional_.  The name of the signing algorithm (default: "HS256").
    ``require_expiration``
        (bool) _optional_.  If True (default), any JWT token that does not include an expiration
        time will be rejected.

    :param function claim_to_agent_func:  a function that takes a JWT claimset dictionary and
                          returns an Agent instance.  If not provided,
                          :py:func:`make_agent_from_claimset` will be used.
    :returns:  an :py:class:`Agent` instance representing the user
    """
    if not client_id:
        client_id = "(unknown)"
    if not svcname:
        svcname = client_id

    auth = env.get('HTTP_AUTHORIZATION', "x").split()
    if len(auth) < 2 or auth[0] != "Bearer":
        log.debug("Client %s did not provide an authentication token", str(client_id))
        if jwtcfg.get('raise_on_anonymous'):
            raise Unauthenticated("JWT token not provided")
        return Agent(svcname, Agent.UNKN, Agent.ANONYMOUS, Agent.PUBLIC, agents)

    try:
        userinfo = jwt.decode(auth[1], jwtcfg.get("key", ""),
                              algorithms=[jwtcfg.get("algorithm", "HS256")])
    except jwt.InvalidTokenError as ex:
        log.warning("Invalid token can not be decoded: %s", str(ex))
        if jwtcfg.get('raise_on_invalid'):
            raise Unauthenticated("Undecodable JWT token")
        return Agent(svcname, Agent.UNKN, Agent.ANONYMOUS, Agent.INVALID, agents,
                     invalid_reason="Invalid token can not be decoded")

    # expiration itself was checked by jwt.decode()
    if jwtcfg.get('require_expiration', True) and not userinfo.get('exp'):
        log.warning("Rejecting non-expiring token for user %s", userinfo.get('sub', "(unknown)"))
        if jwtcfg.get('raise_on_invalid'):
            raise Unauthenticated("Non-expiring JWT token")
        return Agent(svcname, Agent.UNKN, Agent.ANONYMOUS, Agent.INVALID, agents,
                     invalid_reason="non-expiring token rejected")

    if not claim_to_agent_func:
        claim_to_agent_func = make_agent_from_claimset
    return claim_to_agent_func(svcname, userinfo, log, agents)

def make_agent_from_claimset(svcname: str, userinfo: Mapping, log: Logger, agents=None,
                             client_id: str=None) -> Agent:
    """
    Create an Agent instance representing the end user given a JWT claim set.  The ``sub``
    claim provides the actor identity; the optional ``roles`` claim provides the groups the
    user belongs to.
    """
    subj = userinfo.get('sub')
    if not subj:
        log.warning("User token is missing subject identifier; defaulting to anonymous")
        subj = Agent.ANONYMOUS
    roles = userinfo.get('roles') or []
    if isinstance(roles, str):
        roles = roles.split()

    umd = dict((k,v) for k,v in userinfo.items() if k not in ["sub", "roles", "exp", "iat"])

    return Agent(svcname, Agent.USER, subj, client_id, agents, roles, **umd)


class WSGIAppSuite(AuthenticatedWSGIApp):
    """
    A WSGI application class that aggregates one or more :py:class:`ServiceApp` instances, each
    handling the requests below its own path.
    """

    def __init__(self, config: Mapping, svcapps: Mapping[str, ServiceApp], log: Logger,
                 base_ep: str = None):
        """
        initialize the suite of web services
        :param dict  config:  the configuration for the suite of services
        :param dict svcapps:  a mapping of resource paths (relative to the base endpoint URL)
                              to the ServiceApp instances that should serve them.
        :param Logger   log:  the base logger to use among the suite
        :param str  base_ep:  the base endpoint URL for the suite of services.  If not provided,
                              it is set by the configuration (via the ``base_ep`` parameter).
        """
        super(WSGIAppSuite, self).__init__(config, log, base_ep)
        self.svcapps = dict(svcapps.items())

    def handle_path_request(self, path: str, env: Mapping, start_resp: Callable, who = None):
        # Determine which ServiceApp should handle this request
        base = re.sub(r'/+', '/', path)
        apppath = ''
        svcapp = None
        isaparent = False
        while not svcapp:
            svcapp = self.svcapps.get(base)
            if svcapp:
                continue

            if not base:
                if isaparent:
                    return Handler(path, env, start_resp).send_error(403, "Forbidden")
                else:
                    return Handler(path, env, start_resp).send_error(404, "Not Found")

            elif not isaparent:
                isaparent = any([p.startswith(base+'/') for p in self.svcapps.keys()])

            parts = base.rsplit('/', 1)
            if len(parts) < 2:
                parts = ['', base]
            apppath = "/".join([parts[1], apppath]).strip('/')
            base = parts[0]

        return svcapp.handle_path_request(env, start_resp, apppath, who)
