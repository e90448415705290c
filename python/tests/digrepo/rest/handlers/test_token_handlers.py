import os, sys, pdb, json, time
import unittest as test

import jwt

from digrepo.repo import Datastream
from digrepo.repo.inmem import InMemoryRepository
from digrepo.web.agent import Agent
from digrepo.rest.dispatch import EndpointRequest
from digrepo.rest.params import RequestContext
from digrepo.rest.permissions import EndpointKind, Method
from digrepo.rest.resource import Resource
from digrepo.rest.errors import RESTError, BadRequest
from digrepo.rest.handlers.token import DatastreamTokenHandlers

fed = Agent("digrepo", Agent.USER, "fed")
tokencfg = { "key": "tokensecret", "lifetime": 60 }

class TestDatastreamTokenHandlers(test.TestCase):

    def setUp(self):
        self.repo = InMemoryRepository()
        obj = self.repo.new_object("demo:1")
        obj.add_datastream(Datastream("OBJ", content=b"data"))
        self.repo.ingest_object(obj)
        self.hdlrs = DatastreamTokenHandlers(self.repo, tokencfg)

    def request(self, params=None, dsid="OBJ"):
        ctx = RequestContext({'REQUEST_METHOD': "GET"}, fed)
        obj = self.repo.get_object("demo:1")
        res = Resource.for_datastream(obj[dsid]) if dsid else Resource.for_object(obj)
        return EndpointRequest(EndpointKind.DATASTREAM_TOKEN, Method.GET,
                               {"object_id": "demo:1", "sub_resource_id": dsid},
                               params or {}, res, ctx)

    def test_issue(self):
        before = int(time.time())
        data = self.hdlrs.do_GET(self.request())
        self.assertEqual(data['pid'], "demo:1")
        self.assertEqual(data['dsid'], "OBJ")
        self.assertEqual(data['uses'], 1)
        self.assertTrue(data['expires'].endswith("Z"))

        claims = jwt.decode(data['token'], tokencfg['key'], algorithms=["HS256"])
        self.assertEqual(claims['pid'], "demo:1")
        self.assertEqual(claims['dsid'], "OBJ")
        self.assertEqual(claims['sub'], "fed")
        self.assertEqual(claims['uses'], 1)
        self.assertGreaterEqual(claims['exp'], before + 60)
        self.assertLess(claims['exp'], before + 120)

    def test_params(self):
        data = self.hdlrs.do_GET(self.request({"uses": "3", "expires_in": "3600"}))
        claims = jwt.decode(data['token'], tokencfg['key'], algorithms=["HS256"])
        self.assertEqual(claims['uses'], 3)
        self.assertGreater(claims['exp'], int(time.time()) + 3000)

        with self.assertRaises(BadRequest):
            self.hdlrs.do_GET(self.request({"uses": "0"}))
        with self.assertRaises(BadRequest):
            self.hdlrs.do_GET(self.request({"uses": "many"}))
        with self.assertRaises(BadRequest):
            self.hdlrs.do_GET(self.request(dsid=None))

    def test_not_configured(self):
        hdlrs = DatastreamTokenHandlers(self.repo, {})
        with self.assertRaises(RESTError) as cm:
            hdlrs.do_GET(self.request())
        self.assertEqual(cm.exception.code, 501)


if __name__ == '__main__':
    test.main()
