import os, sys, pdb, json
import unittest as test
from unittest.mock import patch, Mock

import requests

from digrepo import search
from digrepo.search.client import SolrClient

def mock_response(code=200, reason="OK", data=None):
    resp = Mock()
    resp.status_code = code
    resp.reason = reason
    if isinstance(data, Exception):
        resp.json.side_effect = data
    else:
        resp.json.return_value = data
    return resp

class TestSolrClient(test.TestCase):

    def setUp(self):
        self.cli = SolrClient("http://solr.example.com/solr/objects/", 10, {"rows": "20"})

    def test_ctor(self):
        self.assertEqual(self.cli.baseurl, "http://solr.example.com/solr/objects")
        self.assertEqual(self.cli.timeout, 10)
        self.assertTrue(self.cli.available)
        self.assertFalse(SolrClient("http://solr", enabled=False).available)

    def test_to_params(self):
        params = self.cli._to_params("PID:demo*", {"fq": ["a:1", "b:2"], "rows": "5"})
        self.assertIn(("q", "PID:demo*"), params)
        self.assertIn(("wt", "json"), params)
        self.assertIn(("rows", "5"), params)
        self.assertNotIn(("rows", "20"), params)
        self.assertEqual([p for p in params if p[0] == "fq"], [("fq", "a:1"), ("fq", "b:2")])

        params = self.cli._to_params(None, None)
        self.assertIn(("q", "*:*"), params)
        self.assertIn(("rows", "20"), params)

    @patch('requests.get')
    def test_select(self, mockget):
        mockget.return_value = mock_response(data={"response": {"numFound": 1, "docs": [{"PID": "demo:1"}]}})
        out = self.cli.select("PID:demo*", {"fl": "PID"})
        self.assertEqual(out['response']['numFound'], 1)

        args, kw = mockget.call_args
        self.assertEqual(args[0], "http://solr.example.com/solr/objects/select")
        self.assertEqual(kw['timeout'], 10)
        self.assertIn(("fl", "PID"), kw['params'])

    @patch('requests.get')
    def test_select_errors(self, mockget):
        mockget.return_value = mock_response(400, "Bad Request")
        with self.assertRaises(search.SearchClientError) as cm:
            self.cli.select("PID:(")
        self.assertEqual(cm.exception.code, 400)
        self.assertEqual(cm.exception.status, 400)

        mockget.return_value = mock_response(503, "Service Unavailable")
        with self.assertRaises(search.SearchServerError) as cm:
            self.cli.select("PID:*")
        self.assertEqual(cm.exception.code, 500)

        mockget.return_value = mock_response(data=ValueError("not JSON"))
        with self.assertRaises(search.SearchServerError):
            self.cli.select("PID:*")

        mockget.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(search.SearchServerError) as cm:
            self.cli.select("PID:*")
        self.assertIsInstance(cm.exception.cause, requests.ConnectionError)

class TestCreateSearchClient(test.TestCase):

    def test_create(self):
        self.assertIsNone(search.create_search_client({}))
        self.assertIsNone(search.create_search_client(None))

        cli = search.create_search_client({"service_endpoint": "http://solr/objects", "timeout": 5})
        self.assertIsInstance(cli, SolrClient)
        self.assertEqual(cli.timeout, 5)
        self.assertTrue(cli.available)

        cli = search.create_search_client({"service_endpoint": "http://solr/objects",
                                           "enabled": False})
        self.assertFalse(cli.available)


if __name__ == '__main__':
    test.main()
