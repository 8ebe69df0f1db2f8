"""Thin WaniKani v2 REST client.

Collections are exposed as lazy iterables that follow `pages.next_url`
until the API reports no further page. Every iteration restarts from the
first page. HTTP failures are raised to the caller unchanged; nothing here
retries.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Iterator

import requests

from .models import Assignment, StudyMaterial, Subject


LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.wanikani.com/v2"
DEFAULT_REVISION = "20170710"


@dataclass(frozen=True)
class ClientConfig:
    token: str
    base_url: str = DEFAULT_BASE_URL
    revision: str = DEFAULT_REVISION
    timeout_sec: float = 20.0
    page_size: int | None = None


def encode_params(params: dict[str, Any] | None) -> dict[str, str]:
    """Serialize filters the way the API expects them (true/false, a,b,c)."""
    out: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple, set)):
            out[key] = ",".join(str(v) for v in value)
        else:
            out[key] = str(value)
    return out


class Collection:
    """Restartable view over one paginated collection endpoint."""

    def __init__(self, client: "WaniKaniClient", resource: str, params: dict[str, Any] | None = None) -> None:
        self._client = client
        self.resource = resource
        self.params = encode_params(params)
        if client.config.page_size is not None:
            self.params.setdefault("page_size", str(client.config.page_size))

    def pages(self) -> Iterator[list[dict[str, Any]]]:
        url: str | None = self._client.url(self.resource)
        params: dict[str, str] | None = self.params
        page_no = 0
        while url is not None:
            payload = self._client.request("GET", url, params=params).json()
            page_no += 1
            LOGGER.debug("Fetched %s page=%d url=%s", self.resource, page_no, url)
            yield list(payload.get("data", []))
            url = (payload.get("pages") or {}).get("next_url")
            # next_url already carries the query string.
            params = None

    def __iter__(self) -> Iterator[dict[str, Any]]:
        for page in self.pages():
            yield from page


class WaniKaniClient:
    def __init__(self, config: ClientConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session if session is not None else requests.Session()

    def url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self.config.token}",
            "Wanikani-Revision": self.config.revision,
        }
        headers.update(kwargs.pop("headers", {}))
        kwargs["headers"] = headers
        kwargs.setdefault("timeout", self.config.timeout_sec)

        resp = self.session.request(method=method, url=url, **kwargs)
        resp.raise_for_status()
        return resp

    def iter_collection(self, resource: str, params: dict[str, Any] | None = None) -> Collection:
        return Collection(self, resource, params)

    def fetch_collection(self, resource: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        records = list(self.iter_collection(resource, params))
        LOGGER.info("Fetched %s params=%s count=%d", resource, encode_params(params), len(records))
        return records

    def get_subjects(self, types: list[str] | tuple[str, ...] | None = None, **filters: Any) -> list[Subject]:
        params = dict(filters)
        if types:
            params["types"] = list(types)
        return [Subject.from_api(r) for r in self.fetch_collection("subjects", params)]

    def get_assignments(self, **filters: Any) -> list[Assignment]:
        return [Assignment.from_api(r) for r in self.fetch_collection("assignments", filters)]

    def get_study_materials(self, **filters: Any) -> list[StudyMaterial]:
        return [StudyMaterial.from_api(r) for r in self.fetch_collection("study_materials", filters)]

    def start_assignment(self, assignment_id: int) -> dict[str, Any]:
        resp = self.request(
            "PUT",
            self.url(f"assignments/{assignment_id}/start"),
            json={"assignment": {}},
        )
        return resp.json()

    def create_study_material(self, subject_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        body = {"study_material": {"subject_id": subject_id, **fields}}
        return self.request("POST", self.url("study_materials"), json=body).json()

    def update_study_material(self, study_material_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        body = {"study_material": dict(fields)}
        return self.request("PUT", self.url(f"study_materials/{study_material_id}"), json=body).json()
