from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry simulator service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_devices(self, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        query = {key: value for key, value in (params or {}).items() if value is not None}
        return self._request("GET", "/devices", params=query)

    def get_device(self, device_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/devices/{device_id}", resource=f"Device {device_id}")

    def register_device(self, spec_path: Path) -> Dict[str, Any]:
        if not spec_path.is_file():
            raise typer.BadParameter(f"Path {spec_path} is not a file.")
        try:
            payload = json.loads(spec_path.read_text())
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"{spec_path} is not valid JSON: {exc}") from exc
        return self._request("POST", "/devices", json=payload)

    def remove_device(self, device_id: str) -> None:
        self._request("DELETE", f"/devices/{device_id}", resource=f"Device {device_id}")

    def get_readings(
        self, device_id: str, sensor_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        query = {"sensor_id": sensor_id, "limit": limit}
        return self._request(
            "GET",
            f"/devices/{device_id}/readings",
            params={key: value for key, value in query.items() if value is not None},
            resource=f"Device {device_id}",
        )

    def poll(self) -> Dict[str, Any]:
        return self._request("POST", "/poll")

    def get_events(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit} if limit is not None else None
        return self._request("GET", "/events", params=params)

    def get_predictions(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/maintenance/predictions")

    def _request(
        self,
        method: str,
        url: str,
        resource: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = self._client.request(method, url, **kwargs)
            if response.status_code == 404 and resource is not None:
                raise typer.BadParameter(f"{resource} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
