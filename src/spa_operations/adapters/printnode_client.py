"""PrintNode cloud printing API client."""

import base64
from dataclasses import dataclass
from typing import Protocol

import httpx


class PrintNodeClient(Protocol):
    """Interface for submitting print jobs."""

    async def submit_job(self, title: str, content: str, copies: int = 1) -> int:
        """Send plain-text content to the configured printer; return the job id."""


@dataclass
class HttpxPrintNodeClient(PrintNodeClient):
    """HTTPX-backed PrintNode client."""

    api_key: str
    printer_id: int
    base_url: str
    http_client: httpx.AsyncClient
    source: str = "spa-operations"

    @classmethod
    def create(
        cls, api_key: str, printer_id: int, base_url: str
    ) -> "HttpxPrintNodeClient":
        """Create a PrintNode client with a managed httpx session."""
        return cls(
            api_key=api_key,
            printer_id=printer_id,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    async def submit_job(self, title: str, content: str, copies: int = 1) -> int:
        """Submit a raw text print job."""
        response = await self.http_client.post(
            f"{self.base_url}/printjobs",
            auth=(self.api_key, ""),
            json={
                "printerId": self.printer_id,
                "title": title,
                "contentType": "raw_base64",
                "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                "source": self.source,
                "qty": copies,
            },
            timeout=15,
        )
        response.raise_for_status()
        return int(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
