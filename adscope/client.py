"""Caller side of the service: upload media, then keep the result locally."""

import mimetypes
from pathlib import Path

import requests

from adscope.exceptions import IntegrationError
from adscope.models.analysis import parse_analysis
from adscope.services.result_store import ResultStore, SavedRecord, get_result_store

DEFAULT_BASE_URL = "http://127.0.0.1:9000"


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        text = resp.text
        if resp.status_code == 413 or "too large" in text.lower():
            return "File size exceeds the upload limit. Please try a smaller file."
        return f"Server error ({resp.status_code}): {text[:100]}"
    if isinstance(data, dict) and data.get("error"):
        return data["error"]
    return "Failed to analyze media"


class AdscopeClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, store: ResultStore | None = None, timeout: float = 300):
        self.base_url = base_url.rstrip("/")
        self.store = store or get_result_store()
        self.timeout = timeout

    def analyze_file(self, path: Path | str, mime_type: str | None = None) -> SavedRecord:
        """Upload a file for analysis and save the result under the file's name."""
        path = Path(path)
        mime_type = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        with path.open("rb") as f:
            try:
                resp = requests.post(
                    f"{self.base_url}/api/analyze",
                    files={"media": (path.name, f, mime_type)},
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise IntegrationError(f"Analysis service unreachable: {e}") from e
        if not resp.ok:
            raise IntegrationError(_error_message(resp))
        return self.store.insert(parse_analysis(resp.json()), path.name)

    def results(self) -> list[SavedRecord]:
        return self.store.list_all()

    def delete(self, result_id: str) -> None:
        self.store.delete_by_id(result_id)

    def clear(self) -> None:
        self.store.clear()
