import os
import requests
from stepflow.core.logger import WorkflowLogger


class HttpClient:
    """
    Minimal JSON-over-HTTP client used as a step body.
    Raises on any non-2xx response so retry() can take over.
    """

    DEFAULT_TIMEOUT = 10

    def __init__(self, base_url=None, token=None, timeout=None, session=None):
        self.base_url = (base_url or os.getenv("STEPFLOW_HTTP_BASE_URL") or "").rstrip("/")
        self.token = token or os.getenv("STEPFLOW_HTTP_TOKEN")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.session = session or requests.Session()
        self.logger = WorkflowLogger("HttpClient", max_entries=0)

    def _url(self, path):
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not self.base_url:
            raise ValueError(f"Relative path {path!r} requires a base_url")
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self):
        headers = {"Accept": "application/json", "User-Agent": "stepflow"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get_json(self, path, params=None):
        """GET a URL and return the decoded JSON body."""
        url = self._url(path)
        self.logger.info(f"GET {url}")
        res = self.session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        res.raise_for_status()
        return res.json()

    def post_json(self, path, payload):
        """POST a JSON payload and return the decoded JSON body."""
        url = self._url(path)
        self.logger.info(f"POST {url}")
        res = self.session.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        res.raise_for_status()
        return res.json()
