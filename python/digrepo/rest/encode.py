"""
Conversion of endpoint handler results into HTTP response content.
"""
import json
from collections import OrderedDict
from collections.abc import Mapping
from typing import Tuple, Union

from .errors import RESTError
from .params import RequestContext

__all__ = [ "encode", "encode_error", "JSON_TYPE" ]

JSON_TYPE = "application/json"

Encoded = Tuple[Union[str, bytes], str, int]

def encode(payload, ctx: RequestContext=None) -> Encoded:
    """
    convert the result returned by an endpoint handler into the response content.  Structured
    data (dictionaries and lists) are serialized as JSON; string and byte content are returned
    as is with the content type that the handler set on the request context.

    :return:  a 3-tuple giving the response body, its content type, and the HTTP status.  The
              status is the one set by the handler on the request context or, by default, 200.
    """
    status = (ctx and ctx.status) or 200
    ctype = ctx.content_type if ctx else None

    if payload is None:
        return ("", ctype, status)

    if isinstance(payload, (Mapping, list, tuple)):
        return (json.dumps(payload, indent=2), JSON_TYPE, status)

    if isinstance(payload, (str, bytes)):
        return (payload, ctype, status)

    raise TypeError("Unable to encode handler result of type "+type(payload).__name__)

def encode_error(err: RESTError) -> Encoded:
    """
    convert a failure into the standard error response, ``{"message": "..."}``
    """
    return (json.dumps(OrderedDict([("message", err.message)])), JSON_TYPE, err.code)
