"""JSON response envelope for scripted callers."""

from __future__ import annotations

from mealtrack.agent.response import (
    AgentResponse,
    create_response,
    error_from_exception,
    error_response,
)

__all__ = ["AgentResponse", "create_response", "error_from_exception", "error_response"]
