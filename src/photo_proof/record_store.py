# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Record store client.

The record store is a single web app endpoint with an ``action`` verb:
``read`` (GET) and ``create``/``update``/``delete``/``uploadPhoto`` (POST).
Every call returns a :class:`StoreResponse` envelope. Transport problems
are turned into error envelopes rather than raised.
"""

import json
import logging
from typing import Any, List, Literal, Optional

import httpx
from pydantic import BaseModel

from .config import settings

logger = logging.getLogger(__name__)

PHOTOS_COLLECTION = "Photos"


class StoreResponse(BaseModel):
    """Uniform success/error envelope returned by every verb."""

    status: Literal["success", "error"]
    message: Optional[Any] = None
    data: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def error_message(self) -> str:
        """Human readable message; structured messages are JSON encoded."""
        if self.message is None or self.message == "":
            return "Server responded with error"
        if isinstance(self.message, str):
            return self.message
        try:
            text = json.dumps(self.message)
        except (TypeError, ValueError):
            return "Unknown Error Object"
        if text in ("{}", "[]"):
            return "An unspecified error occurred (Empty Response)"
        return text

    @classmethod
    def error(cls, message: str) -> 'StoreResponse':
        return cls(status="error", message=message)


class RecordStoreClient:
    """
    Async client for the record store.

    Args:
        base_url: Record store endpoint (defaults to config)
        timeout: Request timeout in seconds (defaults to config)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.record_store_url
        self.timeout = timeout or settings.request_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent},
        )

    async def list(self, collection: str) -> List[dict]:
        """
        Read all records of a collection.

        Returns:
            List of records (ids normalised to strings); empty on error
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self.base_url,
                    params={"action": "read", "sheet": collection},
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPError as e:
            logger.error(f"Read of {collection} failed: {e}")
            return []
        except ValueError as e:
            logger.error(f"Read of {collection} returned invalid JSON: {e}")
            return []

        if isinstance(data, dict) and data.get("status") == "error":
            logger.error(f"Record store error ({collection}): {data.get('message')}")
            return []
        if not isinstance(data, list):
            return []

        return [
            {**item, "id": str(item["id"]) if item.get("id") else ""}
            for item in data
            if isinstance(item, dict)
        ]

    async def _post(self, action: str, collection: str, payload: Any) -> StoreResponse:
        # text/plain avoids a CORS preflight the backend cannot answer
        body = json.dumps({"action": action, "sheet": collection, "payload": payload})
        try:
            async with self._client() as client:
                response = await client.post(
                    self.base_url,
                    content=body,
                    headers={"Content-Type": "text/plain;charset=utf-8"},
                )
                response.raise_for_status()
                return StoreResponse.model_validate(response.json())

        except httpx.TimeoutException:
            logger.error(f"{action} on {collection} timed out after {self.timeout}s")
            return StoreResponse.error("Request timeout")

        except httpx.HTTPError as e:
            logger.error(f"{action} on {collection} failed: {e}")
            return StoreResponse.error("Network Error")

        except ValueError as e:
            logger.error(f"{action} on {collection} returned an invalid envelope: {e}")
            return StoreResponse.error("Invalid response from record store")

    async def create(self, collection: str, payload: dict) -> StoreResponse:
        return await self._post("create", collection, payload)

    async def update(self, collection: str, payload: dict) -> StoreResponse:
        return await self._post("update", collection, payload)

    async def delete(self, collection: str, record_id: str) -> StoreResponse:
        return await self._post("delete", collection, {"id": record_id})

    async def upload_photo(self, image_data: str, metadata: dict) -> StoreResponse:
        """
        Upload a stamped photo.

        Args:
            image_data: JPEG as a base64 data URL
            metadata: Proof metadata (executiveId, timestamp, ...)

        Returns:
            Envelope; on success ``data`` holds the stored row incl. ``photoUrl``
        """
        return await self._post(
            "uploadPhoto",
            PHOTOS_COLLECTION,
            {"imageData": image_data, "metadata": metadata},
        )

    async def test_connection(self) -> bool:
        """
        Test connection to the record store.

        Returns:
            True if the endpoint answers a read request
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self.base_url,
                    params={"action": "read", "sheet": PHOTOS_COLLECTION},
                )
                return response.status_code == 200
        except httpx.HTTPError:
            return False
