"""HTTP client for the AI plan-generation function.

The function receives the project name, description and type, and answers
with ``{"phases": [...]}`` where each phase carries ``phase_name`` and either
explicit ``start_date``/``end_date`` or a ``duration_days`` estimate.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx

from buildplan.config import Settings, get_settings
from buildplan.services.errors import GenerationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanRequest:
    """Input sent to the plan generator."""
    project_id: str
    project_name: str
    project_description: Optional[str] = None
    project_type: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "projectDescription": self.project_description,
            "projectType": self.project_type,
        }


class PlanGenerator(Protocol):
    """Anything that can turn a PlanRequest into raw phase field-sets."""

    def generate(self, request: PlanRequest) -> List[Dict[str, Any]]:
        ...


class PlanGenerationClient:
    """
    Synchronous client for the plan-generation function.

    Every failure is reported as GenerationFailure so callers handle a
    single error type.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.url = settings.plan_generation_url
        self.timeout = settings.plan_generation_timeout_seconds

        headers = {"Content-Type": "application/json"}
        if settings.plan_generation_api_key:
            headers["Authorization"] = f"Bearer {settings.plan_generation_api_key}"

        self._client = httpx.Client(
            headers=headers,
            timeout=self.timeout,
            transport=transport,
        )

    def generate(self, request: PlanRequest) -> List[Dict[str, Any]]:
        """
        Ask the function for a plan.

        Args:
            request: Project description

        Returns:
            Raw phase field-sets in plan order

        Raises:
            GenerationFailure: On timeout, transport error, non-2xx status,
                non-JSON body or a missing/empty phase list
        """
        logger.info("Requesting generated plan for project %s", request.project_name)

        try:
            response = self._client.post(self.url, json=request.to_payload())
        except httpx.TimeoutException as e:
            raise GenerationFailure(
                f"Plan generation timed out after {self.timeout}s",
                details={"error_type": type(e).__name__},
            ) from e
        except httpx.HTTPError as e:
            raise GenerationFailure(
                f"Plan generation request failed: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        if response.is_error:
            raise GenerationFailure(
                f"Plan generation rejected with HTTP {response.status_code}",
                details={
                    "status_code": response.status_code,
                    "error": _error_message(response),
                },
            )

        try:
            body = response.json()
        except ValueError as e:
            raise GenerationFailure("Plan generation returned a non-JSON body") from e

        phases = body.get("phases") if isinstance(body, dict) else None
        if not isinstance(phases, list) or not phases:
            raise GenerationFailure(
                "Plan generation returned no phases",
                details={"body_type": type(body).__name__},
            )
        if not all(isinstance(p, dict) for p in phases):
            raise GenerationFailure("Plan generation returned malformed phases")

        logger.info("Received %d generated phases", len(phases))
        return phases

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        return body.get("error")
    return None
