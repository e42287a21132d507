"""
Solid Pod storage clients.

Provides the storage interface used by the import/export pipeline, a Solid
LDP client over HTTP with bearer-token authentication, and a local
directory store that mirrors the Pod layout for offline use.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import quote, unquote

import requests

from healthpod.utils.exceptions import ContainerNotFoundError, PodClientError
from healthpod.utils.parameters import PodConfig

logger = logging.getLogger(__name__)

LDP_CONTAINS_KEYS = ("http://www.w3.org/ns/ldp#contains", "ldp:contains", "contains")


class PodResources:
    """Files and sub-containers listed in a Pod container."""

    def __init__(self, url: str, files: list[str], sub_dirs: list[str]) -> None:
        """
        Initialize container listing.

        Args:
            url: Container URL.
            files: Names of the files in the container.
            sub_dirs: Names of the sub-containers (without trailing slash).
        """
        self.url = url
        self.files = files
        self.sub_dirs = sub_dirs

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {"url": self.url, "files": self.files, "sub_dirs": self.sub_dirs}


def _check_relative(path: str) -> str:
    """Reject absolute paths and parent references."""
    clean = path.strip("/")
    if ".." in PurePosixPath(clean).parts:
        raise PodClientError(f"Invalid Pod path: {path}")
    return clean


class PodStore(ABC):
    """Storage primitives of a Pod. Paths are relative to the Pod root."""

    @abstractmethod
    def get_dir_url(self, path: str) -> str:
        """Return the URL of a container."""

    @abstractmethod
    def list_resources(self, path: str) -> PodResources:
        """List a container. Raises PodClientError if it cannot be listed."""

    @abstractmethod
    def read(self, path: str) -> str:
        """Read a file. Raises PodClientError if it cannot be read."""

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        """Create or replace a file, creating its containers as needed."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete a file. Deleting a missing file is not an error."""

    @abstractmethod
    def create_container(self, path: str) -> None:
        """Create a container if it does not exist."""

    def exists(self, path: str) -> bool:
        """Check whether a file is listed in its container."""
        parts = _check_relative(path).split("/")
        try:
            resources = self.list_resources("/".join(parts[:-1]))
        except PodClientError:
            return False
        return parts[-1] in resources.files


class SolidPodClient(PodStore):
    """
    Solid Pod client over HTTP.

    Authenticates with a bearer access token obtained by the Solid login
    flow and reads containers through their JSON-LD representation.
    """

    def __init__(self, config: PodConfig, session: requests.Session | None = None) -> None:
        """
        Initialize Solid Pod client.

        Args:
            config: Pod configuration.
            session: Optional HTTP session (a new one is created if None).

        Raises:
            PodClientError: If no Pod root URL is configured.
        """
        if not config.root_url:
            raise PodClientError("No Pod root_url configured")

        self.config = config
        self.root_url = config.root_url.rstrip("/") + "/"
        self.session = session or requests.Session()

        if config.access_token:
            self.session.headers["Authorization"] = f"Bearer {config.access_token}"
        else:
            logger.warning("No Pod access token configured, requests are unauthenticated")

    def _url(self, path: str) -> str:
        return self.root_url + quote(_check_relative(path))

    def get_dir_url(self, path: str) -> str:
        url = self._url(path)
        return url if url.endswith("/") else url + "/"

    def _request(
        self, method: str, url: str, allowed: tuple[int, ...] = (), **kwargs: Any
    ) -> requests.Response:
        """
        Send a request to the Pod.

        Args:
            method: HTTP method.
            url: Resource URL.
            allowed: Non-2xx status codes returned to the caller instead of raising.
            **kwargs: Passed to requests.

        Raises:
            PodClientError: On connection failure or an unexpected status.
        """
        try:
            response = self.session.request(
                method, url, timeout=self.config.timeout_seconds, **kwargs
            )
        except requests.RequestException as e:
            raise PodClientError(f"{method} {url} failed: {e}") from e

        if response.status_code in allowed or 200 <= response.status_code < 300:
            return response

        raise PodClientError(f"{method} {url} returned HTTP {response.status_code}")

    def list_resources(self, path: str) -> PodResources:
        url = self.get_dir_url(path)
        response = self._request(
            "GET", url, allowed=(404,), headers={"Accept": "application/ld+json"}
        )
        if response.status_code == 404:
            raise ContainerNotFoundError(f"Container not found: {url}")

        try:
            document = response.json()
        except ValueError as e:
            raise PodClientError(f"Container {url} did not return JSON-LD") from e

        files: list[str] = []
        sub_dirs: list[str] = []

        for child in _contained_urls(document):
            child_url = child if child.startswith("http") else url + child
            if not child_url.startswith(url) or child_url == url:
                continue

            name = unquote(child_url[len(url):])
            if name.endswith("/"):
                sub_dirs.append(name.rstrip("/"))
            elif "/" not in name:
                files.append(name)

        logger.debug(f"Listed {len(files)} files and {len(sub_dirs)} containers in {url}")
        return PodResources(url, sorted(files), sorted(sub_dirs))

    def read(self, path: str) -> str:
        response = self._request("GET", self._url(path))
        return response.text

    def write(self, path: str, content: str) -> None:
        content_type = "text/turtle" if path.endswith(".ttl") else "application/json"
        self._request(
            "PUT",
            self._url(path),
            data=content.encode("utf-8"),
            headers={"Content-Type": content_type},
        )
        logger.debug(f"Wrote {path}")

    def delete(self, path: str) -> None:
        response = self._request("DELETE", self._url(path), allowed=(404,))
        if response.status_code == 404:
            logger.debug(f"Delete skipped, {path} does not exist")

    def create_container(self, path: str) -> None:
        url = self.get_dir_url(path)
        response = self._request("HEAD", url, allowed=(404,))
        if response.status_code == 404:
            self._request("PUT", url, headers={"Content-Type": "text/turtle"}, data=b"")
            logger.info(f"Created container {url}")


def _contained_urls(document: Any) -> list[str]:
    """Collect the ldp:contains targets of a JSON-LD container document."""
    if isinstance(document, dict) and "@graph" in document:
        document = document["@graph"]
    nodes = document if isinstance(document, list) else [document]

    urls: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        for key in LDP_CONTAINS_KEYS:
            values = node.get(key, [])
            if not isinstance(values, list):
                values = [values]
            for value in values:
                if isinstance(value, dict) and "@id" in value:
                    urls.append(value["@id"])
                elif isinstance(value, str):
                    urls.append(value)
    return urls


class LocalPodStore(PodStore):
    """Pod store backed by a local directory tree."""

    def __init__(self, config: PodConfig) -> None:
        """
        Initialize local Pod store.

        Args:
            config: Pod configuration (uses local_dir).
        """
        self.base_dir = Path(config.local_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, path: str) -> Path:
        return self.base_dir / _check_relative(path)

    def get_dir_url(self, path: str) -> str:
        url = self._path(path).as_uri()
        return url if url.endswith("/") else url + "/"

    def list_resources(self, path: str) -> PodResources:
        directory = self._path(path)
        if not directory.is_dir():
            raise ContainerNotFoundError(f"Container not found: {path or '/'}")

        files = sorted(p.name for p in directory.iterdir() if p.is_file())
        sub_dirs = sorted(p.name for p in directory.iterdir() if p.is_dir())
        return PodResources(self.get_dir_url(path), files, sub_dirs)

    def read(self, path: str) -> str:
        file_path = self._path(path)
        try:
            return file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise PodClientError(f"Failed to read {path}: {e}") from e

    def write(self, path: str, content: str) -> None:
        file_path = self._path(path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise PodClientError(f"Failed to write {path}: {e}") from e

    def delete(self, path: str) -> None:
        try:
            self._path(path).unlink(missing_ok=True)
        except OSError as e:
            raise PodClientError(f"Failed to delete {path}: {e}") from e

    def create_container(self, path: str) -> None:
        self._path(path).mkdir(parents=True, exist_ok=True)


def create_pod_store(config: PodConfig) -> PodStore:
    """Create the Pod store selected by the configuration."""
    if config.backend == "local":
        return LocalPodStore(config)
    return SolidPodClient(config)


def dump_listing(resources: PodResources) -> str:
    """Render a container listing as JSON."""
    return json.dumps(resources.to_dict(), indent=2)
