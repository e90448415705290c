"""
Framework classes for creating REST web interfaces via WSGI

The small framework provided by this module provides foundation classes for the RESTful web APIs
that front the digital object repository.  It features:
  *  a resource-based model for handling requests.  The :py:class:`~digrepo.web.rest.base.Handler`
     class is implemented to handle a single request on a resource (given by a path).  Routing is
     explicitly in the hands of the service implementation.
  *  the ability to compose multiple resources into a single WSGI application via the
     :py:class:`~digrepo.web.rest.base.ServiceApp` and
     :py:class:`~digrepo.web.rest.base.WSGIAppSuite` classes.
  *  full but simple control over the returned HTTP status for proper error handling
  *  pluggable authentication of the client user into an :py:class:`~digrepo.web.agent.Agent`
"""
from .base import *
