import os, sys, pdb, json, re
import unittest as test

from digrepo.repo import ObjectNotFound, RepositoryConflict, Datastream
from digrepo.repo import mongo

dburl = None
dbname = None
if os.environ.get('MONGO_TESTDB_URL'):
    dburl = os.environ.get('MONGO_TESTDB_URL')
    dbname = re.sub(r'\?.*$', '', dburl).split('/')[-1]
    assert dbname

class TestMongoRepositoryCtor(test.TestCase):

    def test_bad_url(self):
        with self.assertRaises(ValueError):
            mongo.MongoRepository("http://localhost/digrepo")
        with self.assertRaises(ValueError):
            mongo.MongoRepository("mongodb://localhost")

    def test_good_url(self):
        repo = mongo.MongoRepository("mongodb://user:pw@localhost:27017/digrepo")
        self.assertIsNone(repo._native)

@test.skipIf(not os.environ.get('MONGO_TESTDB_URL'), "test mongodb not available")
class TestMongoRepository(test.TestCase):

    def setUp(self):
        self.repo = mongo.MongoRepository(dburl, {"default_namespace": "test"})

    def tearDown(self):
        self.repo.native.client.drop_database(dbname)
        self.repo.disconnect()

    def test_mint_id(self):
        self.assertEqual(self.repo.mint_id(), "test:1")
        self.assertEqual(self.repo.mint_id(), "test:2")
        self.assertEqual(self.repo.mint_id("demo"), "demo:1")

    def test_lifecycle(self):
        obj = self.repo.new_object("demo:1", label="A Demo", owner="fed")
        obj.add_datastream(Datastream("DC", content=b"<dc/>", mimetype="text/xml"))
        obj.add_relationship("urn:rel#", "isPartOf", "demo:2")
        self.repo.ingest_object(obj)
        with self.assertRaises(RepositoryConflict):
            self.repo.ingest_object(obj)

        obj = self.repo.get_object("demo:1")
        self.assertEqual(obj.label, "A Demo")
        self.assertEqual(obj["DC"].content, b"<dc/>")
        self.assertEqual(obj.relationships[0].object, "demo:2")

        obj["DC"].update(content=b"<dc></dc>")
        self.repo.save_object(obj)
        obj = self.repo.get_object("demo:1")
        self.assertEqual(obj["DC"].content, b"<dc></dc>")
        self.assertEqual(obj["DC"].get_version(1)['content'], b"<dc/>")

        self.repo.purge_object("demo:1")
        with self.assertRaises(ObjectNotFound):
            self.repo.get_object("demo:1")


if __name__ == '__main__':
    test.main()
