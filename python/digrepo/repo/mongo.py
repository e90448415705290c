"""
An implementation of the Repository interface that uses a MongoDB database as its backend store
"""
import re
from collections.abc import Mapping
from logging import Logger

from pymongo import MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from . import RepositoryException
from .base import Repository

_dburl_re = re.compile(r"^mongodb://(\w+(:\S+)?@)?\w+(\.\w+)*(:\d+)?/\w+(\?\w.*)?$")

OBJECTS_COLL = "objects"
NEXTNUM_COLL = "nextnum"

class MongoRepository(Repository):
    """
    a Repository whose object records are stored in a MongoDB collection (one document per object,
    with its datastreams embedded).
    """

    def __init__(self, dburl: str, config: Mapping=None, log: Logger=None):
        """
        create the repository with its connector to the MongoDB database

        :param str   dburl:  the URL of MongoDB database in the form, 'mongodb://USER:PW@HOST:PORT/DBNAME'
        :param dict config:  the repository configuration
        """
        if not _dburl_re.match(dburl):
            raise ValueError("MongoRepository: Bad dburl format (need "+
                             "'mongodb://[USER:PASS@]HOST[:PORT]/DBNAME'): "+dburl)
        super(MongoRepository, self).__init__(config, log)
        self._dburl = dburl
        self._mngocli = None
        self._native = None

    def connect(self):
        """
        establish a connection to the database.
        """
        self._mngocli = MongoClient(self._dburl)
        self._native = self._mngocli.get_default_database()

    def disconnect(self):
        """
        close the connection to the database.
        """
        if self._mngocli:
            try:
                self._mngocli.close()
            finally:
                self._mngocli = None
                self._native = None

    @property
    def native(self):
        """
        the native pymongo database object.  Accessing this property will implicitly connect to
        the underlying MongoDB database.
        """
        if self._native is None:
            self.connect()
        return self._native

    def _get_record(self, pid: str) -> Mapping:
        try:
            return self.native[OBJECTS_COLL].find_one({"pid": pid}, {"_id": False})
        except PyMongoError as ex:
            raise RepositoryException("Failed to retrieve object %s: %s" % (pid, str(ex)), cause=ex)

    def _put_record(self, rec: Mapping):
        try:
            self.native[OBJECTS_COLL].replace_one({"pid": rec['pid']}, rec, upsert=True)
        except PyMongoError as ex:
            raise RepositoryException("Failed to store object %s: %s" % (rec['pid'], str(ex)), cause=ex)

    def _delete_record(self, pid: str) -> bool:
        try:
            result = self.native[OBJECTS_COLL].delete_one({"pid": pid})
            return result.deleted_count > 0
        except PyMongoError as ex:
            raise RepositoryException("Failed to delete object %s: %s" % (pid, str(ex)), cause=ex)

    def _next_num(self, namespace: str) -> int:
        try:
            result = self.native[NEXTNUM_COLL].find_one_and_update({"slot": namespace},
                                                                   {"$inc": {"next": 1}},
                                                                   upsert=True,
                                                                   return_document=ReturnDocument.AFTER)
            return result["next"]
        except PyMongoError as ex:
            raise RepositoryException("Failed to access sequence for %s: %s" % (namespace, str(ex)),
                                      cause=ex)
