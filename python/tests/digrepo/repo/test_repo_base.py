import os, sys, pdb, json
import unittest as test

from digrepo.repo import base, DatastreamNotFound, RepositoryConflict

class TestFuncs(test.TestCase):

    def test_is_valid_pid(self):
        self.assertTrue(base.is_valid_pid("demo:1"))
        self.assertTrue(base.is_valid_pid("my-ns.test:abc_2"))
        self.assertFalse(base.is_valid_pid("demo"))
        self.assertFalse(base.is_valid_pid(":1"))
        self.assertFalse(base.is_valid_pid(""))
        self.assertFalse(base.is_valid_pid(None))

    def test_now_stamp(self):
        self.assertTrue(base.now_stamp().endswith("Z"))

class TestDatastream(test.TestCase):

    def test_ctor(self):
        ds = base.Datastream("DC", content=b"<dc/>", mimetype="text/xml")
        self.assertEqual(ds.id, "DC")
        self.assertEqual(ds.label, "DC")
        self.assertEqual(ds.mimetype, "text/xml")
        self.assertEqual(ds.control_group, "M")
        self.assertEqual(ds.state, "A")
        self.assertTrue(ds.versionable)
        self.assertEqual(ds.content, b"<dc/>")
        self.assertEqual(ds.size, 5)
        self.assertEqual(len(ds.checksum), 64)
        self.assertEqual(ds.versions, [])

        ds = base.Datastream("OBJ")
        self.assertEqual(ds.content, b"")
        self.assertEqual(ds.size, 0)

        with self.assertRaises(ValueError):
            base.Datastream("1DC")
        with self.assertRaises(ValueError):
            base.Datastream("DC", control_group="Q")
        with self.assertRaises(ValueError):
            base.Datastream("DC", state="Z")

    def test_update(self):
        obj = base.RepositoryObject("demo:1")
        ds = obj.add_datastream(base.Datastream("DC", "Dublin Core", "text/xml", content=b"<dc/>"))

        ds.update(label="Description")
        self.assertEqual(ds.label, "Description")
        self.assertEqual(len(ds.versions), 1)
        self.assertEqual(ds.versions[0]['label'], "Dublin Core")

        ds.update(content=b"<dc><title/></dc>")
        self.assertEqual(ds.content, b"<dc><title/></dc>")
        self.assertEqual(len(ds.versions), 2)
        self.assertEqual(ds.get_version(0)['content'], b"<dc><title/></dc>")
        self.assertEqual(ds.get_version(1)['content'], b"<dc/>")
        self.assertEqual(ds.get_version(2)['label'], "Dublin Core")
        with self.assertRaises(IndexError):
            ds.get_version(3)

        # state changes are not versioned
        ds.update(state="I")
        self.assertEqual(ds.state, "I")
        self.assertEqual(len(ds.versions), 2)

        ds.update(versionable=False)
        ds.update(label="DC")
        self.assertEqual(len(ds.versions), 2)

    def test_to_dict(self):
        ds = base.Datastream("DC", "Dublin Core", "text/xml", content=b"<dc/>")
        data = ds.to_dict()
        self.assertEqual(data['dsid'], "DC")
        self.assertEqual(data['label'], "Dublin Core")
        self.assertEqual(data['mimeType'], "text/xml")
        self.assertEqual(data['controlGroup'], "M")
        self.assertEqual(data['size'], 5)
        self.assertEqual(data['checksumType'], "SHA-256")
        self.assertNotIn('versions', data)
        self.assertEqual(ds.to_dict(True)['versions'], [])
        json.dumps(data)

    def test_record(self):
        ds = base.Datastream("DC", "Dublin Core", "text/xml", content=b"<dc/>")
        ds.update(content=b"<dc></dc>")
        ds2 = base.Datastream.from_record(ds.to_record())
        self.assertEqual(ds2.id, "DC")
        self.assertEqual(ds2.content, b"<dc></dc>")
        self.assertEqual(ds2.get_version(1)['content'], b"<dc/>")
        self.assertEqual(ds2.created, ds.created)

class TestRepositoryObject(test.TestCase):

    def setUp(self):
        self.obj = base.RepositoryObject("demo:1", "A Demo", "fed", models=["demo:Model"])

    def test_ctor(self):
        self.assertEqual(self.obj.id, "demo:1")
        self.assertEqual(self.obj.namespace, "demo")
        self.assertEqual(self.obj.label, "A Demo")
        self.assertEqual(self.obj.owner, "fed")
        self.assertEqual(self.obj.state, "A")
        self.assertEqual(self.obj.models, ["demo:Model"])
        self.assertEqual(self.obj.restricted_to, [])
        self.assertEqual(self.obj.created, self.obj.modified)
        self.assertEqual(list(self.obj), [])

        with self.assertRaises(ValueError):
            base.RepositoryObject("demo")
        with self.assertRaises(ValueError):
            base.RepositoryObject("demo:2", state="X")

    def test_datastreams(self):
        self.assertNotIn("DC", self.obj)
        with self.assertRaises(DatastreamNotFound):
            self.obj["DC"]

        ds = self.obj.add_datastream(base.Datastream("DC"))
        self.assertIn("DC", self.obj)
        self.assertIs(self.obj["DC"], ds)
        self.assertIs(ds.parent, self.obj)
        with self.assertRaises(RepositoryConflict):
            self.obj.add_datastream(base.Datastream("DC"))

        self.obj.add_datastream(base.Datastream("OBJ"))
        self.assertEqual([d.id for d in self.obj], ["DC", "OBJ"])

        self.obj.purge_datastream("DC")
        self.assertNotIn("DC", self.obj)
        with self.assertRaises(DatastreamNotFound):
            self.obj.purge_datastream("DC")

    def test_relationships(self):
        uri = "info:fedora/fedora-system:def/relations-external#"
        self.obj.add_relationship(uri, "isMemberOf", "demo:coll")
        self.obj.add_relationship(uri, "isMemberOf", "demo:coll")
        self.obj.add_relationship(uri, "hasNote", "hello", True)
        self.assertEqual(len(self.obj.relationships), 2)

        rels = self.obj.get_relationships(predicate="isMemberOf")
        self.assertEqual(len(rels), 1)
        self.assertEqual(rels[0].object, "demo:coll")
        self.assertFalse(rels[0].literal)
        self.assertEqual(len(self.obj.get_relationships(literal=True)), 1)
        self.assertEqual(len(self.obj.get_relationships(uri="goob")), 0)

        data = base.relationship_to_dict(rels[0])
        self.assertEqual(data['predicate'], {"value": "isMemberOf", "namespace": uri})
        self.assertEqual(data['object'], {"literal": False, "value": "demo:coll"})

        self.assertEqual(self.obj.remove_relationships(predicate="hasNote"), 1)
        self.assertEqual(self.obj.remove_relationships(predicate="hasNote"), 0)
        self.assertEqual(len(self.obj.relationships), 1)

    def test_to_dict(self):
        self.obj.add_datastream(base.Datastream("DC"))
        data = self.obj.to_dict()
        self.assertEqual(data['pid'], "demo:1")
        self.assertEqual(data['label'], "A Demo")
        self.assertEqual(data['owner'], "fed")
        self.assertEqual(data['models'], ["demo:Model"])
        self.assertEqual([d['dsid'] for d in data['datastreams']], ["DC"])
        json.dumps(data)

    def test_record(self):
        self.obj.restricted_to = ["editors"]
        self.obj.add_datastream(base.Datastream("DC", content=b"<dc/>"))
        self.obj.add_relationship("urn:rel#", "isPartOf", "demo:2")

        obj = base.RepositoryObject.from_record(self.obj.to_record())
        self.assertEqual(obj.id, "demo:1")
        self.assertEqual(obj.restricted_to, ["editors"])
        self.assertEqual(obj["DC"].content, b"<dc/>")
        self.assertIs(obj["DC"].parent, obj)
        self.assertEqual(obj.relationships, self.obj.relationships)


if __name__ == '__main__':
    test.main()
