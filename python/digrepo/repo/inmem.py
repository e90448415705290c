"""
An implementation of the Repository interface based on a simple in-memory look-up.

This is provided primarily for testing purposes
"""
from copy import deepcopy
from collections.abc import Mapping
from logging import Logger

from .base import Repository

class InMemoryRepository(Repository):
    """
    an in-memory Repository implementation.  Records are copied in and out of the store so that
    objects handed out are detached from the stored state.
    """

    def __init__(self, config: Mapping=None, log: Logger=None, records: Mapping=None):
        """
        :param dict  config:  the repository configuration
        :param Logger   log:  the logger to use
        :param dict records:  initial object records to load, keyed by PID
        """
        super(InMemoryRepository, self).__init__(config, log)
        self._db = {}
        self._nextnum = {}
        if records:
            for rec in records.values():
                self._put_record(rec)

    def _get_record(self, pid: str) -> Mapping:
        rec = self._db.get(pid)
        return deepcopy(rec) if rec is not None else None

    def _put_record(self, rec: Mapping):
        self._db[rec['pid']] = deepcopy(rec)

    def _delete_record(self, pid: str) -> bool:
        if pid in self._db:
            del self._db[pid]
            return True
        return False

    def _next_num(self, namespace: str) -> int:
        self._nextnum[namespace] = self._nextnum.get(namespace, 0) + 1
        return self._nextnum[namespace]
