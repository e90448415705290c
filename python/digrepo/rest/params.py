"""
Extraction of the parameters of a REST request from its query string or body.

A :py:class:`RequestContext` is created for each request; it holds the request's WSGI
environment, reads the request body at most once, and collects the response status and content
type that an endpoint handler wishes to set.
"""
import json, re
from collections import OrderedDict
from collections.abc import Mapping
from logging import Logger
from typing import List
from urllib.parse import parse_qs, unquote_plus

from digrepo.web.agent import Agent
from .errors import BadRequest, MethodNotAllowed
from .permissions import Method

__all__ = [ "RequestContext", "extract_parameters", "extract_solr_parameters", "effective_method" ]

FORM_TYPE = "application/x-www-form-urlencoded"
_json_type_re = re.compile(r'^application/([\w.-]+\+)?json$')

_NOTREAD = object()

class RequestContext(object):
    """
    the state of a single REST request.  Beyond giving access to the request's inputs, it
    allows an endpoint handler to set the HTTP status (via :py:attr:`status`) and the content
    type (via :py:attr:`content_type`) of the response.
    """

    def __init__(self, env: Mapping, who: Agent=None, log: Logger=None):
        self.env = env
        self.who = who
        self.log = log

        self.status = None
        self.content_type = None
        self.headers = []

        self._body = _NOTREAD
        self._decoded = _NOTREAD

    @property
    def method(self) -> str:
        """
        the HTTP method of the request as given by the client
        """
        return self.env.get('REQUEST_METHOD', 'GET').upper()

    @property
    def query_string(self) -> str:
        return self.env.get('QUERY_STRING', '')

    @property
    def request_type(self) -> str:
        """
        the MIME type of the request body, without any parameters (e.g. "charset"), or an empty
        string if none was specified
        """
        return self.env.get('CONTENT_TYPE', '').split(';', 1)[0].strip().lower()

    def add_header(self, name: str, value: str):
        """
        request that a header be included in the response
        """
        self.headers.append((name, value))

    def read_body(self) -> bytes:
        """
        return the raw request body.  The body is read from the input stream on the first call
        only; subsequent calls return the same bytes.
        """
        if self._body is _NOTREAD:
            try:
                clen = int(self.env.get('CONTENT_LENGTH') or 0)
            except ValueError:
                clen = 0
            body = b''
            if clen > 0 and self.env.get('wsgi.input'):
                body = self.env['wsgi.input'].read(clen)
            self._body = body
        return self._body

    def decoded_body(self):
        """
        return the request body decoded according to its content type: JSON content is parsed
        into its value, and form content is parsed into a dictionary of fields.  An empty body
        decodes to an empty dictionary.
        :raises BadRequest:  if the body is not in a supported format or cannot be decoded
        """
        if self._decoded is _NOTREAD:
            self._decoded = self._decode(self.read_body())
        return self._decoded

    def _decode(self, body: bytes):
        if not body:
            return {}

        ctype = self.request_type
        if ctype == FORM_TYPE:
            try:
                return _collapse(parse_qs(body.decode('utf-8'), keep_blank_values=True))
            except UnicodeDecodeError as ex:
                raise BadRequest("Undecodable form data: "+str(ex))

        if ctype and not _json_type_re.match(ctype):
            raise BadRequest("Unsupported request content type: "+ctype)

        try:
            return json.loads(body, object_pairs_hook=OrderedDict)
        except ValueError as ex:
            if self.log:
                self.log.debug("Unparseable JSON request body: %s", str(ex))
            raise BadRequest("Request body is not valid JSON: "+str(ex))

    @property
    def form(self) -> Mapping:
        """
        the form fields submitted with the request (empty if the request did not submit a form)
        """
        if self.request_type != FORM_TYPE:
            return {}
        return self.decoded_body()

def _collapse(params: Mapping[str, List[str]]) -> Mapping:
    return OrderedDict((k, (v[0] if len(v) == 1 else v)) for k, v in params.items())

def _as_params(data, source: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise BadRequest("Request %s must be a JSON object" % source)
    return data

def extract_parameters(ctx: RequestContext, method: Method) -> Mapping:
    """
    return the parameters of a request as a dictionary, taken from the source appropriate for
    the given method: the query string for GET; the submitted form fields (or, without a form,
    the request body) for POST; and the request body for PUT and DELETE.  A query parameter
    given more than once maps to a list of its values.
    :raises MethodNotAllowed:  if the method is not one supported by the service
    :raises BadRequest:        if the request body cannot be decoded
    """
    if method == Method.GET:
        return _collapse(parse_qs(ctx.query_string, keep_blank_values=True))
    if method == Method.POST:
        return ctx.form or _as_params(ctx.decoded_body(), "body")
    if method in (Method.PUT, Method.DELETE):
        return _as_params(ctx.decoded_body(), "body")
    raise MethodNotAllowed("Method not supported: "+str(getattr(method, 'value', method)))

def extract_solr_parameters(ctx: RequestContext, method: Method) -> Mapping:
    """
    return the parameters of a search request taken from its raw query string.  Parameter
    names may contain dots, and a parameter given more than once maps to a list of its values
    in the order they appear.
    :raises MethodNotAllowed:  if the method is not GET
    """
    if method != Method.GET:
        raise MethodNotAllowed("Searches only support GET")

    out = OrderedDict()
    for pair in ctx.query_string.split('&'):
        if not pair:
            continue
        name, sep, value = pair.partition('=')
        name = unquote_plus(name)
        value = unquote_plus(value)
        if name in out:
            if not isinstance(out[name], list):
                out[name] = [out[name]]
            out[name].append(value)
        else:
            out[name] = value
    return out

def effective_method(ctx: RequestContext) -> Method:
    """
    return the method that the request should be handled as.  A POST request may ask to be
    handled as another method by providing a ``method`` form field (or JSON body property).
    :raises MethodNotAllowed:  if the requested method is not supported
    :raises BadRequest:        if a POST request body cannot be decoded
    """
    meth = ctx.method
    if meth == 'HEAD':
        meth = 'GET'
    elif meth == 'POST':
        data = ctx.form or ctx.decoded_body()
        if isinstance(data, Mapping) and data.get('method'):
            meth = str(data['method']).upper()
    try:
        return Method(meth)
    except ValueError:
        raise MethodNotAllowed(meth + " not supported")
