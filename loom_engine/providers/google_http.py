"""Shared REST helpers for the Google Generative Language API."""

from __future__ import annotations

import json
from http.client import HTTPException
from typing import Any, Mapping
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ..errors import DownloadError, UpstreamHttpError


def model_url(api_base: str, model: str, method: str, api_key: str) -> str:
    return f"{api_base}/v1beta/models/{quote(model, safe='')}:{method}?{urlencode({'key': api_key})}"


def operation_url(api_base: str, name: str, api_key: str) -> str:
    return f"{api_base}/v1beta/{quote(name.lstrip('/'), safe='/')}?{urlencode({'key': api_key})}"


def post_json(url: str, payload: Mapping[str, Any], *, label: str, timeout_s: float) -> dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    req = Request(url, data=body, headers={"Content-Type": "application/json"}, method="POST")
    return _send(req, label=label, timeout_s=timeout_s)


def get_json(url: str, *, label: str, timeout_s: float) -> dict[str, Any]:
    req = Request(url, headers={"accept": "application/json"}, method="GET")
    return _send(req, label=label, timeout_s=timeout_s)


def download_bytes(url: str, *, api_key: str | None, timeout_s: float) -> bytes:
    headers = {"x-goog-api-key": api_key} if api_key else {}
    req = Request(url, headers=headers, method="GET")
    try:
        with urlopen(req, timeout=timeout_s) as response:
            status_code = int(getattr(response, "status", 200))
            data = response.read()
    except HTTPError as exc:
        raise DownloadError(url, f"HTTP {exc.code}") from exc
    except (URLError, OSError, HTTPException) as exc:
        raise DownloadError(url, str(exc)) from exc
    if status_code >= 400:
        raise DownloadError(url, f"HTTP {status_code}")
    if not data:
        raise DownloadError(url, "empty body")
    return data


def _send(req: Request, *, label: str, timeout_s: float) -> dict[str, Any]:
    try:
        with urlopen(req, timeout=timeout_s) as response:
            status_code = int(getattr(response, "status", 200))
            raw = response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        raw = exc.read().decode("utf-8", errors="replace") if exc.fp else str(exc)
        raise UpstreamHttpError(label, exc.code, raw) from exc
    except (URLError, OSError, HTTPException) as exc:
        raise UpstreamHttpError(label, None, str(exc)) from exc
    if status_code < 200 or status_code >= 300:
        raise UpstreamHttpError(label, status_code, raw)
    try:
        payload_json = json.loads(raw)
    except json.JSONDecodeError:
        return {"raw": raw}
    if not isinstance(payload_json, dict):
        return {"raw": payload_json}
    return payload_json
