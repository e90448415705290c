"""
Base classes and utilities shared by all digrepo subsystems.

This package provides:

``config``
    support for loading and interpreting configuration data and for setting up logging
"""
from abc import ABCMeta

try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

class DigRepoException(Exception):
    """
    a base class for all exceptions raised by digrepo modules
    """
    pass

class SystemInfoMixin(metaclass=ABCMeta):
    """
    a mixin that provides information about a software system or subsystem, which can be used in
    log and error messages.
    """

    def __init__(self, sysname: str, sysabbrev: str, subsname: str, subsabbrev: str, version: str):
        self._sysn = sysname
        self._sysabbrev = sysabbrev
        self._subsys = subsname
        self._subsabbrev = subsabbrev
        self._ver = version

    @property
    def system_name(self):
        return self._sysn

    @property
    def system_abbrev(self):
        return self._sysabbrev

    @property
    def subsystem_name(self):
        return self._subsys

    @property
    def subsystem_abbrev(self):
        return self._subsabbrev

    @property
    def system_version(self):
        return self._ver

    def getSysLogger(self, name: str=None):
        """
        return a Logger named after the system (or, if given, a child of it)
        """
        import logging
        log = logging.getLogger(self.system_abbrev)
        if self.subsystem_abbrev:
            log = log.getChild(self.subsystem_abbrev)
        if name:
            log = log.getChild(name)
        return log

_SYSNAME = "Digital Object Repository"
_SYSABBREV = "DIGREPO"

class DigRepoSystem(SystemInfoMixin):
    """
    a SystemInfoMixin representing the overall repository system
    """
    def __init__(self, subsysname="", subsysabbrev=""):
        super(DigRepoSystem, self).__init__(_SYSNAME, _SYSABBREV, subsysname, subsysabbrev, __version__)

system = DigRepoSystem()
