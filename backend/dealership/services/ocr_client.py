"""
Thin client for the external ID-card OCR service.

The service receives the card image and answers with JSON fields. Any
failure (not configured, transport, HTTP status, malformed body) is logged
and reported as ok=False with empty fields so the caller falls back to
manual entry.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from flask import current_app


logger = logging.getLogger(__name__)

OCR_FIELDS = ("name", "national_id", "phone", "address")

# Accepted spellings in the service response
_FIELD_ALIASES = {
    "name": ("name", "full_name", "fullName"),
    "national_id": ("national_id", "nationalId", "id_number", "idNumber"),
    "phone": ("phone", "phone_number", "phoneNumber"),
    "address": ("address",),
}


def _empty_result(error: str) -> dict:
    result: dict[str, Any] = {field: None for field in OCR_FIELDS}
    result["ok"] = False
    result["error"] = error
    return result


def _pick(payload: dict, field: str) -> str | None:
    for key in _FIELD_ALIASES[field]:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_id_card(
    image: bytes,
    *,
    filename: str = "id-card.jpg",
    content_type: str = "image/jpeg",
    transport: httpx.BaseTransport | None = None,
) -> dict:
    """POST the image to OCR_SERVICE_URL and return the recognized fields."""
    url = current_app.config.get("OCR_SERVICE_URL")
    if not url:
        return _empty_result("OCR service is not configured")
    if not image:
        return _empty_result("Empty image")

    headers = {}
    api_key = current_app.config.get("OCR_API_KEY")
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    timeout = current_app.config.get("OCR_TIMEOUT_SECONDS", 15)

    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.post(
                url,
                files={"image": (filename, image, content_type)},
                headers=headers,
            )
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPStatusError as exc:
        logger.warning("OCR service returned HTTP %s", exc.response.status_code)
        return _empty_result(f"OCR service returned HTTP {exc.response.status_code}")
    except httpx.HTTPError as exc:
        logger.warning("OCR service request failed: %s", exc)
        return _empty_result("OCR service unavailable")
    except ValueError:
        logger.warning("OCR service returned a non-JSON body")
        return _empty_result("OCR service returned an invalid response")

    if not isinstance(payload, dict):
        logger.warning("OCR service returned unexpected payload type %s", type(payload).__name__)
        return _empty_result("OCR service returned an invalid response")

    fields = payload.get("fields") if isinstance(payload.get("fields"), dict) else payload
    result: dict[str, Any] = {field: _pick(fields, field) for field in OCR_FIELDS}
    result["ok"] = any(result[field] for field in OCR_FIELDS)
    result["error"] = None if result["ok"] else "No fields recognized"
    return result
