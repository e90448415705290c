"""
Utilities for creating web services.

This package is organized into the following modules:

``agent``
    the representation of the client identity behind a web request
``rest``
    a simple framework for creating strict REST services on top of WSGI
"""
