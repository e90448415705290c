import os, sys, pdb, json
import unittest as test
from collections import OrderedDict

from digrepo.rest.encode import encode, encode_error
from digrepo.rest.params import RequestContext
from digrepo.rest import errors

class TestEncode(test.TestCase):

    def setUp(self):
        self.ctx = RequestContext({'REQUEST_METHOD': 'GET'})

    def test_structured(self):
        body, ctype, status = encode(OrderedDict([("pid", "demo:1"), ("label", "A Demo")]), self.ctx)
        self.assertEqual(ctype, "application/json")
        self.assertEqual(status, 200)
        self.assertEqual(json.loads(body), {"pid": "demo:1", "label": "A Demo"})

        body, ctype, status = encode([{"dsid": "DC"}], self.ctx)
        self.assertEqual(json.loads(body), [{"dsid": "DC"}])

        self.ctx.status = 201
        body, ctype, status = encode({"pid": "demo:1"}, self.ctx)
        self.assertEqual(status, 201)

        body, ctype, status = encode({"pid": "demo:1"})
        self.assertEqual(status, 200)

    def test_raw(self):
        self.ctx.content_type = "text/xml"
        body, ctype, status = encode(b"<dc/>", self.ctx)
        self.assertEqual(body, b"<dc/>")
        self.assertEqual(ctype, "text/xml")
        self.assertEqual(status, 200)

        self.ctx.status = 206
        body, ctype, status = encode("<dc/>", self.ctx)
        self.assertEqual(body, "<dc/>")
        self.assertEqual(status, 206)

    def test_none(self):
        body, ctype, status = encode(None, self.ctx)
        self.assertEqual(body, "")
        self.assertIsNone(ctype)
        self.assertEqual(status, 200)

    def test_unencodable(self):
        with self.assertRaises(TypeError):
            encode(object(), self.ctx)

    def test_encode_error(self):
        body, ctype, status = encode_error(errors.Unauthorized())
        self.assertEqual(json.loads(body), {"message": "Unauthorized"})
        self.assertEqual(ctype, "application/json")
        self.assertEqual(status, 401)

        body, ctype, status = encode_error(errors.NotFound("Object demo:2 not found"))
        self.assertEqual(json.loads(body), {"message": "Object demo:2 not found"})
        self.assertEqual(status, 404)

        body, ctype, status = encode_error(errors.RESTError("Datastream already exists", 409))
        self.assertEqual(status, 409)

class TestErrors(test.TestCase):

    def test_codes(self):
        self.assertEqual(errors.BadRequest().code, 400)
        self.assertEqual(errors.Unauthorized().code, 401)
        self.assertEqual(errors.Forbidden().code, 403)
        self.assertEqual(errors.NotFound().code, 404)
        self.assertEqual(errors.MethodNotAllowed().code, 405)
        self.assertEqual(errors.RESTError().code, 500)
        self.assertEqual(errors.RESTError(code=409).message, "Conflict")

    def test_reason(self):
        err = errors.Forbidden("You shall not pass")
        self.assertEqual(err.message, "You shall not pass")
        self.assertEqual(err.reason, "Forbidden")
        self.assertEqual(err.kind, "Forbidden")
        self.assertEqual(str(err), "You shall not pass")
        self.assertEqual(errors.reason_for(799), "Error")


if __name__ == '__main__':
    test.main()
