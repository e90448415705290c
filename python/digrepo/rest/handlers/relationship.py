"""
Handlers for the ``relationship`` endpoints, listing, asserting, and removing the relationships
an object has with other objects or literal values.
"""
from digrepo.repo.base import relationship_to_dict
from ..dispatch import EndpointRequest
from ..permissions import EndpointKind
from .base import EndpointHandlers, as_bool

class RelationshipHandlers(EndpointHandlers):
    kind = EndpointKind.RELATIONSHIP

    def _filters(self, req: EndpointRequest):
        literal = req.param('literal')
        if literal is not None:
            literal = as_bool(literal, 'literal')
        return {
            "uri": req.param('uri') or None,
            "predicate": req.param('predicate') or None,
            "object": req.param('object') or None,
            "literal": literal
        }

    def do_GET(self, req: EndpointRequest):
        obj = self.require_object(req)
        return [relationship_to_dict(r) for r in obj.get_relationships(**self._filters(req))]

    def do_POST(self, req: EndpointRequest):
        """
        assert a new relationship.  The ``type`` parameter indicates whether the relationship's
        object is another repository object (``uri``, the default) or a literal value (any other
        type, e.g. ``string``, ``int``, or ``date``).
        """
        obj = self.require_object(req)
        uri = self.require(req, 'uri')
        pred = self.require(req, 'predicate')
        value = self.require(req, 'object')
        literal = str(req.param('type', 'uri')).lower() != 'uri'

        rel = obj.add_relationship(uri, pred, str(value), literal)
        self.repo.save_object(obj)
        self.created(req)
        return relationship_to_dict(rel)

    def do_DELETE(self, req: EndpointRequest):
        obj = self.require_object(req)
        removed = obj.remove_relationships(**self._filters(req))
        self.repo.save_object(obj)
        return { "removed": removed }
