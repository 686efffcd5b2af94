"""LlamaParse OCR adapter (upload, then poll the job until it finishes)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

import requests
from loguru import logger

from casemap.application.ports.clock_port import ClockPort
from casemap.application.ports.document_loader_port import DocumentLoaderPort, DocumentPayload
from casemap.domain.errors import DocumentError, OCRTimeoutError

LLAMA_PARSE_URL = "https://api.cloud.llamaindex.ai/api/parsing"


@dataclass
class LlamaParseAdapter(DocumentLoaderPort):
    """
    Cloud OCR for scanned filings.

    - sleeps ``poll_interval_s`` through the clock BEFORE every status check
    - gives up after ``max_attempts`` checks with OCRTimeoutError
    - a job reporting ERROR raises DocumentError with the job's message
    """

    api_key: str
    clock: ClockPort
    base_url: str = LLAMA_PARSE_URL
    max_attempts: int = 60
    poll_interval_s: float = 2.0
    timeout_s: float = 60.0
    session: Any = field(default_factory=requests.Session)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _get_json(self, url: str, what: str) -> dict:
        try:
            resp = self.session.get(url, headers=self._headers(), timeout=self.timeout_s)
        except requests.RequestException as ex:
            raise DocumentError(f"{what} failed: {ex}") from ex
        if not resp.ok:
            raise DocumentError(f"{what} failed: {resp.status_code}")
        return resp.json()

    def _upload(self, path: str) -> str:
        try:
            with open(path, "rb") as fh:
                resp = self.session.post(
                    f"{self.base_url}/upload",
                    headers=self._headers(),
                    files={"file": (os.path.basename(path), fh, "application/pdf")},
                    timeout=self.timeout_s,
                )
        except OSError as ex:
            raise DocumentError(f"cannot read {path}: {ex}") from ex
        except requests.RequestException as ex:
            raise DocumentError(f"LlamaParse upload failed: {ex}") from ex
        if not resp.ok:
            raise DocumentError(f"LlamaParse upload failed: {resp.text}")
        job_id = resp.json().get("id")
        if not job_id:
            raise DocumentError("No job ID returned from LlamaParse")
        return str(job_id)

    def _poll(self, job_id: str) -> str:
        for attempt in range(1, self.max_attempts + 1):
            self.clock.sleep(self.poll_interval_s)
            status = self._get_json(f"{self.base_url}/job/{job_id}", "Status check")
            state = status.get("status")
            logger.debug("LlamaParse job {} poll {}: {}", job_id, attempt, state)
            if state == "SUCCESS":
                result = self._get_json(
                    f"{self.base_url}/job/{job_id}/result/text", "Result fetch"
                )
                return result.get("text") or ""
            if state == "ERROR":
                raise DocumentError(status.get("error") or "LlamaParse job failed")
        raise OCRTimeoutError(job_id=job_id, attempts=self.max_attempts)

    def load(self, path: str) -> DocumentPayload:
        if not self.api_key:
            raise DocumentError("LLAMA_CLOUD_API_KEY not set")
        if not path.lower().endswith(".pdf"):
            raise DocumentError("No PDF file provided")
        job_id = self._upload(path)
        logger.info("LlamaParse job {} started for {}", job_id, path)
        text = self._poll(job_id)
        return DocumentPayload(text=text, title=None, source_path=path)
