"""Minimal client for the Ollama HTTP API and model management."""

from __future__ import annotations

import json
import os
import subprocess
from typing import Any, Optional

import requests

from codesage.config import Config

DEFAULT_HOST = "http://localhost:11434"


class OllamaError(Exception):
    """Raised when the Ollama server or command line reports a failure."""


def _base_url(host: Optional[str]) -> str:
    url = (host or os.environ.get("OLLAMA_HOST") or DEFAULT_HOST).strip().rstrip("/")
    if "://" not in url:
        url = "http://" + url
    return url


def _error_detail(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    text = (response.text or "").strip()
    return text or response.reason or "unknown error"


class OllamaClient:
    """Talks to an Ollama server for chat completions and embeddings."""

    def __init__(
        self,
        host: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = _base_url(host)
        self._session = session or requests.Session()

    def chat(self, model: str, prompt: str) -> str:
        """Send one user message and return the full streamed reply."""
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }
        try:
            response = self._session.post(
                f"{self.base_url}/api/chat", json=payload, stream=True
            )
        except requests.RequestException as exc:
            raise OllamaError(f"chat request failed: {exc}") from exc

        with response:
            if response.status_code >= 400:
                raise OllamaError(
                    f"chat request failed with status {response.status_code}: "
                    f"{_error_detail(response)}"
                )
            parts: list[str] = []
            try:
                for line in response.iter_lines():
                    if not line:
                        continue
                    try:
                        data: Any = json.loads(line)
                    except ValueError as exc:
                        raise OllamaError(f"malformed chat response: {line!r}") from exc
                    if not isinstance(data, dict):
                        raise OllamaError(f"malformed chat response: {line!r}")
                    if data.get("error"):
                        raise OllamaError(str(data["error"]))
                    message = data.get("message") or {}
                    parts.append(str(message.get("content", "")))
                    if data.get("done"):
                        break
            except requests.RequestException as exc:
                raise OllamaError(f"chat stream interrupted: {exc}") from exc
        return "".join(parts)

    def embed(self, model: str, text: str) -> list[float]:
        """Return the embedding vector the model gives for the text."""
        try:
            response = self._session.post(
                f"{self.base_url}/api/embeddings",
                json={"model": model, "prompt": text},
            )
        except requests.RequestException as exc:
            raise OllamaError(f"embedding request failed: {exc}") from exc
        if response.status_code != 200:
            raise OllamaError(
                f"embedding request failed with status {response.status_code}: "
                f"{_error_detail(response)}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise OllamaError("malformed embedding response") from exc
        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not embedding:
            raise OllamaError("no embeddings found in the response")
        try:
            return [float(value) for value in embedding]
        except (TypeError, ValueError) as exc:
            raise OllamaError("malformed embedding response") from exc


def make_models_available(config: Config) -> None:
    """Pull every model the configuration names, failing on the first error."""
    models = [
        config.embedding_model,
        config.code_chat_model,
        config.documentation_model,
    ]
    for model in models:
        print(f"Ensuring model is available: {model}")
        try:
            result = subprocess.run(["ollama", "pull", model], check=False)
        except OSError as exc:
            raise OllamaError(f"failed to pull model {model}: {exc}") from exc
        if result.returncode != 0:
            raise OllamaError(
                f"failed to pull model {model}: exit status {result.returncode}"
            )