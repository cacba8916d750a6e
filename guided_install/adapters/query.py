"""
HTTP query client — runs validation queries against a JSON endpoint.

Request:   POST <url>  {"query": "<nrql>"}   (Api-Key header)
Response:  {"results": [{...row...}, ...]}  or  {"error": "..."}
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from guided_install.adapters.base import QueryClient, QueryRow
from guided_install.core.context import CancelContext
from guided_install.core.errors import QueryError

logger = logging.getLogger(__name__)


class HttpQueryClient(QueryClient):
    """Query backend over HTTP using urllib.

    Args:
        url: Query endpoint.
        api_key: Sent as ``Api-Key`` when non-empty.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, url: str, api_key: str = "", timeout: float = 30.0):
        self._url = url
        self._api_key = api_key
        self._timeout = timeout

    def query(self, ctx: CancelContext, query: str) -> list[QueryRow]:
        ctx.check()

        body = json.dumps({"query": query}).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["Api-Key"] = self._api_key

        req = urllib.request.Request(self._url, data=body, headers=headers, method="POST")
        logger.debug("POST %s query=%r", self._url, query)

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                payload = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raise QueryError(f"query backend returned HTTP {e.code}") from e
        except urllib.error.URLError as e:
            raise QueryError(f"query backend unreachable: {e.reason}") from e
        except (OSError, ValueError) as e:
            raise QueryError(f"invalid query response: {e}") from e

        return parse_results(payload)


def parse_results(payload: object) -> list[QueryRow]:
    """Extract result rows from a decoded response body."""
    if not isinstance(payload, dict):
        raise QueryError("query response is not a JSON object")
    if payload.get("error"):
        raise QueryError(str(payload["error"]))

    results = payload.get("results", [])
    if not isinstance(results, list):
        raise QueryError("query response 'results' is not a list")
    return [row for row in results if isinstance(row, dict)]
