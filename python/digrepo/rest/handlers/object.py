"""
Handlers for the ``object`` endpoints: describing, ingesting, updating, and purging repository
objects.
"""
from digrepo.repo.base import STATES
from ..dispatch import EndpointRequest
from ..errors import BadRequest
from ..permissions import EndpointKind
from .base import EndpointHandlers, as_list

class ObjectHandlers(EndpointHandlers):
    kind = EndpointKind.OBJECT

    def do_GET(self, req: EndpointRequest):
        return self.require_object(req).to_dict()

    def do_POST(self, req: EndpointRequest):
        """
        ingest a new object.  The identifier is taken from the ``pid`` parameter or, if not
        given, minted within the namespace given by ``namespace``.
        """
        props = {
            "label":  req.param('label'),
            "owner":  req.param('owner'),
            "models": as_list(req.param('models'))
        }
        if not props['owner'] and req.who and not req.who.is_anonymous:
            props['owner'] = req.who.actor
        if req.param('state'):
            props['state'] = self._state(req.param('state'))

        try:
            obj = self.repo.new_object(req.param('pid'), req.param('namespace'), **props)
        except ValueError as ex:
            raise BadRequest(str(ex))

        self.repo.ingest_object(obj)
        self.created(req)
        return obj.to_dict()

    def do_PUT(self, req: EndpointRequest):
        obj = self.require_object(req)
        if req.param('label') is not None:
            obj.label = req.param('label')
        if req.param('owner') is not None:
            obj.owner = req.param('owner')
        if req.param('state') is not None:
            obj.state = self._state(req.param('state'))
        obj.touch()
        self.repo.save_object(obj)
        return obj.to_dict()

    def do_DELETE(self, req: EndpointRequest):
        obj = self.require_object(req)
        self.repo.purge_object(obj.id)
        if self.log:
            self.log.info("%s purged object %s", str(req.who), obj.id)
        return None

    def _state(self, state: str) -> str:
        state = str(state).upper()[:1]
        if state not in STATES:
            raise BadRequest("Unrecognized object state: "+state)
        return state
