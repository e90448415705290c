"""
The uWSGI script for launching the repository REST service.

This script launches the REST interface to the object repository as a web service using uwsgi.
For example, one can launch the service with the following command:

  uwsgi --plugin python3 --http-socket :9090 --wsgi-file rest-uwsgi.py \
        --set-ph digrepo_config_file=rest_conf.yml

The configuration file (YAML or JSON) can also be given as a URL.  This script also pays
attention to the following environment variables:

   DIGREPO_CONFIG_FILE  The location of the configuration file; this is overridden by the
                           digrepo_config_file uwsgi variable.
   DIGREPO_LOG_DIR      The directory where the log file should be written if the
                           configuration gives a relative path for it.
"""
import os, logging

import uwsgi

from digrepo.base import config
from digrepo.rest import wsgi

# determine where the configuration is coming from
confsrc = uwsgi.opt.get("digrepo_config_file")
if isinstance(confsrc, (bytes, bytearray)):
    confsrc = confsrc.decode()
if not confsrc:
    confsrc = os.environ.get("DIGREPO_CONFIG_FILE")
if not confsrc:
    raise config.ConfigurationException("rest: digrepo configuration not provided")

cfg = config.resolve_configuration(confsrc)
config.configure_log(config=cfg)

application = wsgi.app(cfg)
logging.info("repository REST service ready")
