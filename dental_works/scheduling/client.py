"""Appointment store backed by the Dental Works REST API."""

import logging
from datetime import datetime
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dental_works.core.schemas import PatientRead
from dental_works.scheduling.errors import StoreError
from dental_works.scheduling.models import Appointment, AppointmentPatch
from dental_works.scheduling.store import AppointmentStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

M = TypeVar("M", bound=BaseModel)


def _error_detail(response: httpx.Response) -> str:
    """Pull the server's ``detail`` message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        # FastAPI validation errors: report the first message
        first = detail[0]
        return first.get("msg", str(first)) if isinstance(first, dict) else str(first)
    return f"HTTP {response.status_code}"


class HTTPAppointmentStore(AppointmentStore):
    """Talks to a running API with a bearer session token.

    The token comes from ``/api/v1/auth/login`` and is supplied by the
    caller; this class never authenticates on its own.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the HTTP store.

        Args:
            base_url: API root, e.g. ``http://localhost:8080``
            access_token: Bearer token from the login endpoint
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests mount the app here)
        """
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method, f"{API_PREFIX}{path}", **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                message = _error_detail(e.response)
                logger.warning(f"{method} {path} -> {e.response.status_code}: {message}")
                raise StoreError(message, status_code=e.response.status_code) from e
            except httpx.HTTPError as e:
                logger.error(f"{method} {path} failed: {e}")
                raise StoreError(f"Could not reach the server at {self._base_url}") from e
        return response

    def _parse_one(self, response: httpx.Response, model: type[M]) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unexpected {model.__name__} body from {response.request.url}: {e}")
            raise StoreError("Unexpected response from server") from e

    def _parse_list(self, response: httpx.Response, model: type[M]) -> list[M]:
        try:
            body = response.json()
            if not isinstance(body, list):
                raise ValueError(f"expected a JSON array, got {type(body).__name__}")
            return [model.model_validate(item) for item in body]
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unexpected {model.__name__} list from {response.request.url}: {e}")
            raise StoreError("Unexpected response from server") from e

    async def list_appointments(self, start: datetime, end: datetime) -> list[Appointment]:
        response = await self._request(
            "GET",
            "/appointments",
            params={"start": start.isoformat(), "end": end.isoformat()},
        )
        return self._parse_list(response, Appointment)

    async def create_appointment(
        self,
        patient_id: str,
        scheduled_date: datetime,
        duration: int,
        treatment_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        payload = {
            "patient_id": patient_id,
            "scheduled_date": scheduled_date.isoformat(),
            "duration": duration,
            "treatment_type": treatment_type,
            "notes": notes,
        }
        response = await self._request("POST", "/appointments", json=payload)
        return self._parse_one(response, Appointment)

    async def update_appointment(self, appointment_id: str, patch: AppointmentPatch) -> Appointment:
        payload = patch.model_dump(exclude_unset=True, mode="json")
        response = await self._request("PUT", f"/appointments/{appointment_id}", json=payload)
        return self._parse_one(response, Appointment)

    async def delete_appointment(self, appointment_id: str) -> None:
        await self._request("DELETE", f"/appointments/{appointment_id}")

    async def list_patients(self) -> list[PatientRead]:
        response = await self._request("GET", "/patients")
        return self._parse_list(response, PatientRead)

    async def search_patients(self, query: str) -> list[PatientRead]:
        response = await self._request("GET", "/patients", params={"search": query})
        return self._parse_list(response, PatientRead)
