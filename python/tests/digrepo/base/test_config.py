import os, sys, pdb, json, logging, tempfile
import unittest as test
from unittest.mock import patch, Mock

import yaml
import requests

from digrepo.base import config, system, DigRepoSystem

tmpdir = tempfile.TemporaryDirectory(prefix="_test_config.")

class TestSystem(test.TestCase):

    def test_system(self):
        self.assertEqual(system.system_abbrev, "DIGREPO")
        self.assertEqual(system.subsystem_abbrev, "")
        self.assertEqual(system.getSysLogger().name, "DIGREPO")

    def test_subsystem(self):
        sub = DigRepoSystem("REST Service", "rest")
        self.assertEqual(sub.system_name, "Digital Object Repository")
        self.assertEqual(sub.subsystem_name, "REST Service")
        self.assertEqual(sub.getSysLogger().name, "DIGREPO.rest")
        self.assertEqual(sub.getSysLogger("wsgi").name, "DIGREPO.rest.wsgi")

class TestLoadConfig(test.TestCase):

    def setUp(self):
        self.data = {"name": "digrepo", "base_ep": "/rest/v1",
                     "repository": {"factory": "inmem"}}

    def test_load_yaml(self):
        cfgfile = os.path.join(tmpdir.name, "conf.yml")
        with open(cfgfile, 'w') as fd:
            yaml.safe_dump(self.data, fd)

        cfg = config.load_from_file(cfgfile)
        self.assertEqual(cfg, self.data)

        cfg = config.resolve_configuration(cfgfile)
        self.assertEqual(cfg['repository']['factory'], "inmem")

        cfg = config.resolve_configuration("file://"+cfgfile)
        self.assertEqual(cfg['base_ep'], "/rest/v1")

    def test_load_json(self):
        cfgfile = os.path.join(tmpdir.name, "conf.json")
        with open(cfgfile, 'w') as fd:
            json.dump(self.data, fd)

        cfg = config.load_from_file(cfgfile)
        self.assertEqual(cfg, self.data)

    def test_load_bad(self):
        with self.assertRaises(config.ConfigurationException):
            config.load_from_file(os.path.join(tmpdir.name, "goob.yml"))

        cfgfile = os.path.join(tmpdir.name, "bad.json")
        with open(cfgfile, 'w') as fd:
            fd.write("{ goob")
        with self.assertRaises(config.ConfigurationException):
            config.load_from_file(cfgfile)

        with self.assertRaises(config.ConfigurationException):
            config.resolve_configuration("ftp://example.com/conf.yml")

    @patch('requests.get')
    def test_resolve_remote(self, mockget):
        resp = Mock()
        resp.status_code = 200
        resp.headers = {"Content-Type": "application/json"}
        resp.json.return_value = self.data
        mockget.return_value = resp

        cfg = config.resolve_configuration("https://config.example.com/digrepo.json")
        self.assertEqual(cfg, self.data)
        mockget.assert_called_once_with("https://config.example.com/digrepo.json")

        resp.status_code = 404
        resp.reason = "Not Found"
        with self.assertRaises(config.ConfigurationException):
            config.resolve_configuration("https://config.example.com/digrepo.json")

        mockget.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(config.ConfigurationException):
            config.resolve_configuration("https://config.example.com/digrepo.json")

    def test_merge_config(self):
        defc = {"name": "digrepo", "search": {"timeout": 30, "service_endpoint": "http://solr"},
                "access": {"roles": {"anonymous": ["view objects"]}}}
        prim = {"search": {"timeout": 10}, "access": {"superusers": ["admin"]}}

        out = config.merge_config(prim, defc)
        self.assertEqual(out['name'], "digrepo")
        self.assertEqual(out['search'], {"timeout": 10, "service_endpoint": "http://solr"})
        self.assertEqual(out['access']['superusers'], ["admin"])
        self.assertEqual(out['access']['roles'], {"anonymous": ["view objects"]})
        self.assertEqual(defc['search']['timeout'], 30)

class TestConfigureLog(test.TestCase):

    def tearDown(self):
        rootlog = logging.getLogger()
        if config._log_handler:
            rootlog.removeHandler(config._log_handler)
            config._log_handler.close()
            config._log_handler = None

    def test_configure_log(self):
        config.configure_log(config={"logdir": tmpdir.name, "logfile": "test.log",
                                     "loglevel": "DEBUG"})
        self.assertEqual(config.global_logdir, tmpdir.name)
        self.assertEqual(config.global_logfile, os.path.join(tmpdir.name, "test.log"))
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

        logging.getLogger("DIGREPO").info("hello")
        self.assertTrue(os.path.exists(config.global_logfile))


def tearDownModule():
    tmpdir.cleanup()

if __name__ == '__main__':
    test.main()
