from __future__ import annotations

from typing import Any, Dict, List, Mapping

import httpx
import typer

from cli.config import CLIConfig

RESOURCES = ("machine", "sensor", "sensor-data")


class ApiClient:
    """Thin HTTP client for the registry's CRUD endpoints."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_documents(self, resource: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/{resource}")

    def get_document(self, resource: str, document_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/{resource}/{document_id}")

    def create_document(self, resource: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/{resource}", json=dict(payload))

    def update_document(
        self, resource: str, document_id: str, payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        return self._request("PATCH", f"/{resource}/{document_id}", json=dict(payload))

    def delete_document(self, resource: str, document_id: str) -> str:
        body = self._request("DELETE", f"/{resource}/{document_id}")
        return str(body.get("message", ""))

    def machine_sensors(self, machine_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/sensor/{machine_id}/sensor")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        lines: List[str] = []
        try:
            data = exc.response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            if data.get("message"):
                lines.append(str(data["message"]))
            for error in data.get("errors") or []:
                lines.append(f"  - {error.get('field')}: {error.get('message')}")
        if not lines:
            lines.append(exc.response.text.strip() or "no detail provided.")
        typer.secho(
            f"Request failed with status {exc.response.status_code}: " + "\n".join(lines),
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
