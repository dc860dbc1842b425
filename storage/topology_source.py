from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError

from models.records import TopologySnapshot
from settings import get_settings


class TopologyUnavailableError(RuntimeError):
    """The configuration collaborator could not provide a topology snapshot."""


class TopologySource(Protocol):
    def fetch(self) -> TopologySnapshot: ...

    def close(self) -> None: ...


class FileTopologySource:
    """Reads the topology snapshot from a JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def fetch(self) -> TopologySnapshot:
        if not self.path.exists():
            raise TopologyUnavailableError(f"Topology file {str(self.path)!r} not found.")
        try:
            data = json.loads(self.path.read_text() or "{}")
            return TopologySnapshot.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise TopologyUnavailableError(
                f"Topology file {str(self.path)!r} is unreadable: {exc}"
            ) from exc

    def close(self) -> None:
        return None


class HttpTopologySource:
    """Fetches ``GET {base_url}/topology`` from the configuration service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def fetch(self) -> TopologySnapshot:
        try:
            response = self._client.get("/topology")
            response.raise_for_status()
            return TopologySnapshot.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise TopologyUnavailableError(
                f"Configuration service request failed: {exc}"
            ) from exc

    def close(self) -> None:
        self._client.close()


@lru_cache
def build_default_topology_source() -> TopologySource:
    settings = get_settings()
    if settings.config_service_url:
        return HttpTopologySource(
            settings.config_service_url, timeout=settings.config_service_timeout
        )
    return FileTopologySource(Path(settings.topology_path or "./tmp/topology.json"))
