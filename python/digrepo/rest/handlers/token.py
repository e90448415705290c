"""
Handler for the ``datastream_token`` endpoint, which issues signed, short-lived tokens that grant
access to a datastream's content.
"""
import time
from collections import OrderedDict
from datetime import datetime, timezone

import jwt

from ..dispatch import EndpointRequest
from ..errors import RESTError, BadRequest
from ..permissions import EndpointKind
from .base import EndpointHandlers, as_int

DEF_LIFETIME = 300

class DatastreamTokenHandlers(EndpointHandlers):
    """
    Handlers for issuing datastream access tokens.  This handler takes its configuration from the
    ``tokens`` service configuration parameter which supports:

    ``key``
        the secret key used to sign the tokens (required for tokens to be issued)
    ``algorithm``
        the signing algorithm (default: "HS256")
    ``lifetime``
        the default number of seconds a token remains valid (default: 300)
    """
    kind = EndpointKind.DATASTREAM_TOKEN

    def do_GET(self, req: EndpointRequest):
        ds = req.datastream
        if ds is None:
            raise BadRequest("Datastream identifier required")
        if not self.cfg.get('key'):
            raise RESTError("Datastream tokens are not enabled", 501)

        uses = as_int(req.param('uses', 1), 'uses')
        lifetime = as_int(req.param('expires_in', self.cfg.get('lifetime', DEF_LIFETIME)),
                          'expires_in')
        if uses < 1 or lifetime < 1:
            raise BadRequest("uses and expires_in must be positive")

        exp = int(time.time()) + lifetime
        claims = {
            "pid": ds.parent.id,
            "dsid": ds.id,
            "sub": req.who.actor if req.who else "anonymous",
            "uses": uses,
            "exp": exp
        }
        token = jwt.encode(claims, self.cfg['key'], algorithm=self.cfg.get('algorithm', "HS256"))

        return OrderedDict([
            ("token", token),
            ("pid", ds.parent.id),
            ("dsid", ds.id),
            ("uses", uses),
            ("expires", datetime.fromtimestamp(exp, timezone.utc).isoformat().replace("+00:00", "Z"))
        ])
