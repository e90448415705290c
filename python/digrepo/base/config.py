"""
Utilities for obtaining a configuration for digrepo services and for setting up logging.

A configuration is a (possibly nested) dictionary.  It is usually loaded from a YAML or JSON
file (see :py:func:`load_from_file`), but it may also be retrieved from a remote URL (see
:py:func:`resolve_configuration`).
"""
import os, sys, json, logging
from collections.abc import Mapping
from copy import deepcopy
from urllib.parse import urlparse

import yaml
import requests

from . import DigRepoException, system

__all__ = [ "ConfigurationException", "load_from_file", "resolve_configuration", "merge_config",
            "configure_log", "global_logdir", "global_logfile" ]

global_logdir = None
global_logfile = None

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
_log_handler = None

class ConfigurationException(DigRepoException):
    """
    an exception indicating a problem with the configuration of a component, usually a missing
    or illegal parameter.
    """

    def __init__(self, msg=None, cause=None):
        if not msg and cause:
            msg = "Configuration problem: " + str(cause)
        super(ConfigurationException, self).__init__(msg)
        self.cause = cause

def load_from_file(configfile: str) -> Mapping:
    """
    read the configuration from the given file and return it as a dictionary.  The file name
    extension is used to determine its format: ".json" files are read as JSON; all others are
    read as YAML.

    :raises ConfigurationException:  if the file does not exist or cannot be parsed
    """
    if not os.path.isfile(configfile):
        raise ConfigurationException(configfile+": config file not found")

    try:
        with open(configfile) as fd:
            if configfile.endswith('.json'):
                return json.load(fd)
            return yaml.safe_load(fd)
    except (ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException("%s: config file not parseable: %s" % (configfile, str(ex)),
                                     cause=ex)

def resolve_configuration(location: str) -> Mapping:
    """
    return the configuration data found at the given location.  The location can be a local
    file path, a ``file:`` URL, or an ``http(s):`` URL.  Remote data may be in either JSON
    or YAML format.
    """
    url = urlparse(location)
    if url.scheme in ('', 'file'):
        return load_from_file(url.path)

    if url.scheme not in ('http', 'https'):
        raise ConfigurationException("Unsupported configuration location URL scheme: "+url.scheme)

    try:
        resp = requests.get(location)
        if resp.status_code >= 400:
            raise ConfigurationException("%s: failed to retrieve configuration: %s %s" %
                                         (location, resp.status_code, resp.reason))
        if url.path.endswith('.json') or 'json' in resp.headers.get('Content-Type', ''):
            return resp.json()
        return yaml.safe_load(resp.text)
    except requests.RequestException as ex:
        raise ConfigurationException("%s: failed to retrieve configuration: %s" % (location, str(ex)),
                                     cause=ex)
    except (ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException("%s: config data not parseable: %s" % (location, str(ex)),
                                     cause=ex)

def merge_config(primary: Mapping, defconf: Mapping) -> Mapping:
    """
    merge the data from a primary configuration over a default configuration, returning the
    merged result as a new dictionary.  Values from ``primary`` override those from ``defconf``,
    except that sub-dictionaries are merged recursively.
    """
    out = deepcopy(defconf)
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = merge_config(val, out[key])
        else:
            out[key] = deepcopy(val)
    return out

def configure_log(logfile: str=None, level: int=None, format: str=None, config: Mapping=None,
                  addstderr=False):
    """
    configure the root logger to write messages to a file.  The parameters override values
    found in the configuration (``logfile``, ``loglevel``, ``logdir``).  If no log file is
    specified by either, messages go to a file named after the system in the log directory.

    :param str  logfile:  the path to the output log file; a relative path is taken to be
                          relative to the configured ``logdir``
    :param int    level:  the logging level threshold
    :param str   format:  the message format template
    :param dict  config:  the configuration dictionary
    :param bool addstderr: if True, also send messages to standard error
    """
    global global_logdir, global_logfile, _log_handler
    if not config:
        config = {}
    if not logfile:
        logfile = config.get('logfile', system.system_abbrev.lower() + ".log")
    if not level:
        level = config.get('loglevel', logging.INFO)
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
    if not format:
        format = config.get('logformat', LOG_FORMAT)

    if not os.path.isabs(logfile):
        global_logdir = config.get('logdir', global_logdir or os.environ.get('DIGREPO_LOG_DIR'))
        if not global_logdir:
            global_logdir = os.getcwd()
        logfile = os.path.join(global_logdir, logfile)
    else:
        global_logdir = os.path.dirname(logfile)
    global_logfile = logfile

    rootlog = logging.getLogger()
    if _log_handler:
        rootlog.removeHandler(_log_handler)
    _log_handler = logging.FileHandler(logfile)
    _log_handler.setFormatter(logging.Formatter(format))
    rootlog.addHandler(_log_handler)
    rootlog.setLevel(level)

    if addstderr:
        hdlr = logging.StreamHandler(sys.stderr)
        hdlr.setFormatter(logging.Formatter(format))
        rootlog.addHandler(hdlr)

    rootlog.info("logging to %s", logfile)
