"""
A client for submitting queries to a Solr search index
"""
from collections.abc import Mapping
from typing import List, Tuple

import requests

from . import SearchServerError, SearchClientError

class SolrClient:
    """
    a client for querying the Solr index of repository objects
    """
    SELECT_EP = "/select"

    def __init__(self, baseurl: str, timeout: int=30, default_params: Mapping=None,
                 enabled: bool=True):
        """
        initialize the client
        :param str        baseurl:  the base URL of the Solr core (e.g. "http://localhost:8080/solr/core")
        :param int        timeout:  the number of seconds to wait for a response
        :param dict default_params:  parameters to include in every query unless overridden
        :param bool       enabled:  False if searching is currently turned off
        """
        self.baseurl = baseurl.rstrip('/')
        self.timeout = timeout
        self.defaults = dict(default_params or {})
        self.enabled = enabled

    @property
    def available(self) -> bool:
        """
        True if the search subsystem is enabled
        """
        return self.enabled

    def _to_params(self, query: str, params: Mapping) -> List[Tuple[str, str]]:
        merged = dict(self.defaults)
        merged.update(params or {})
        merged['q'] = query or '*:*'
        merged['wt'] = 'json'

        out = []
        for name, val in merged.items():
            if isinstance(val, (list, tuple)):
                out.extend([(name, v) for v in val])
            else:
                out.append((name, val))
        return out

    def select(self, query: str, params: Mapping=None) -> Mapping:
        """
        submit a query to the index and return the decoded JSON response
        :param str   query:  the Solr query (the ``q`` parameter)
        :param dict params:  other Solr parameters; a value given as a list results in the
                             parameter being repeated for each value
        :raises SearchClientError:  if Solr rejects the query
        :raises SearchServerError:  if Solr cannot be reached or fails
        """
        url = self.baseurl + self.SELECT_EP
        try:
            resp = requests.get(url, params=self._to_params(query, params), timeout=self.timeout)

            if resp.status_code >= 500:
                raise SearchServerError(self.SELECT_EP, resp.status_code, resp.reason)
            elif resp.status_code >= 400:
                raise SearchClientError(self.SELECT_EP, resp.status_code, resp.reason)
            elif resp.status_code != 200:
                raise SearchServerError(self.SELECT_EP, resp.status_code, resp.reason,
                                        message="Unexpected response from search service: {0} {1}"
                                        .format(resp.status_code, resp.reason))

            return resp.json()

        except ValueError as ex:
            raise SearchServerError(self.SELECT_EP,
                                    message="Unable to parse search response as JSON (is service "+
                                            "URL correct?)", cause=ex)
        except requests.RequestException as ex:
            raise SearchServerError(self.SELECT_EP, cause=ex)
