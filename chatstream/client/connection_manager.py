"""
HTTP communication with the generation service.

This module handles:
- Opening the streaming generation request
- Exposing the response body as a plain iterator of byte chunks
- Health checks and model discovery

Learning Points:
- requests.Session() pools connections (reuses TCP connections)
- ``stream=True`` + ``iter_content(chunk_size=None)`` yields chunks as they
  arrive instead of buffering the whole body
- Every requests exception is translated into TransportError at this
  boundary, so the stream loop only has one failure type to handle
"""

import logging
from typing import Iterator, List

import requests
from rich.console import Console
from rich.markup import escape

from ..errors import TransportError
from ..models import StreamRequest
from .config import ChatConfig

logger = logging.getLogger(__name__)


class HttpByteStream:
    """A streaming response body; ``close()`` may be called from any thread."""

    def __init__(self, response: requests.Response):
        self.response = response
        self._closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self.response.iter_content(chunk_size=None):
                if chunk:
                    yield chunk
        except (requests.exceptions.RequestException, AttributeError, ValueError) as e:
            # A response closed under us surfaces as one of these
            raise TransportError(f"Stream interrupted: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.response.close()


class ConnectionManager:
    """Manages HTTP connections to the generation service.

    Uses requests.Session for connection pooling which:
    - Reuses TCP connections across turns
    - Keeps default headers in one place
    """

    def __init__(self, config: ChatConfig, session: requests.Session = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "text/event-stream"})
        self.console = Console()

    # ========================================================================
    # Transport interface used by StreamSession
    # ========================================================================

    def open(self, request: StreamRequest) -> HttpByteStream:
        """POST the request and return the streaming body.

        Raises:
            TransportError: On connection failure or a non-2xx status
        """
        logger.debug("POST %s model=%s session=%s", self.config.stream_url,
                     request.model_name, request.session_id)
        try:
            response = self.session.post(
                self.config.stream_url,
                json=request.to_payload(),
                stream=True,
                timeout=(self.config.connect_timeout, self.config.read_timeout),
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request failed: {e}") from e

        if not response.ok:
            status = response.status_code
            response.close()
            raise TransportError(f"Request rejected with HTTP {status}", status_code=status)

        return HttpByteStream(response)

    # ========================================================================
    # Server discovery
    # ========================================================================

    def test_connection(self) -> bool:
        """Check the /health endpoint; True when the server answers 200."""
        try:
            response = self.session.get(f"{self.config.base_url}/health",
                                        timeout=self.config.connect_timeout)
        except requests.exceptions.RequestException as e:
            self.console.print(f"[red]❌[/red] Cannot connect to server: {escape(str(e))}")
            self.console.print(f"Make sure the server is running at {escape(self.config.base_url)}")
            return False

        if response.status_code == 200:
            self.console.print(f"[green]✓[/green] Connected to {escape(self.config.base_url)}")
            return True

        self.console.print(f"[yellow]⚠[/yellow] Server responded with status {response.status_code}")
        return False

    def get_available_models(self) -> List[str]:
        """Query /models; returns an empty list on any failure.

        Accepts either a bare list or ``{"models": [...]}`` / ``{"data": [...]}``,
        where entries are names or objects with an ``id`` or ``name``.
        """
        try:
            response = self.session.get(f"{self.config.base_url}/models",
                                        timeout=self.config.connect_timeout)
            if response.status_code != 200:
                self.console.print(f"[yellow]⚠[/yellow] Could not fetch models: HTTP {response.status_code}")
                return []
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            self.console.print(f"[yellow]⚠[/yellow] Could not fetch models: {escape(str(e))}")
            return []

        if isinstance(data, dict):
            data = data.get('models', data.get('data', []))
        if not isinstance(data, list):
            return []

        models = []
        for entry in data:
            if isinstance(entry, str):
                models.append(entry)
            elif isinstance(entry, dict) and (entry.get('id') or entry.get('name')):
                models.append(str(entry.get('id') or entry.get('name')))
        return models
