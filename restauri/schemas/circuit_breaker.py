"""
Circuit Breaker Schemas

This module defines Pydantic models for circuit breaker API responses.
"""

from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class CircuitState(str, Enum):
    """Circuit breaker state enumeration."""
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreakerMetrics(BaseModel):
    total_calls: int = Field(..., description="Calls attempted through the breaker")
    failed_calls: int = Field(..., description="Calls whose operation raised")
    rejected_calls: int = Field(..., description="Calls refused while the circuit was open")
    last_error: Optional[str] = Field(None, description="Message of the most recent failure")
    average_response_time: float = Field(..., description="Average duration of successful calls in ms")
    last_state_change: str = Field(..., description="ISO timestamp of the last state transition")
    error_rate: float = Field(..., description="failed_calls / total_calls as a percentage")
    uptime: float = Field(..., description="Milliseconds since the last state transition")


class CircuitBreakerHealth(BaseModel):
    """Schema for circuit breaker health information."""
    name: str
    state: CircuitState = Field(..., description="Current circuit breaker state")
    failure_count: int = Field(..., description="Consecutive failures")
    failure_threshold: int
    reset_timeout: int = Field(..., description="Milliseconds before a trial call is allowed")
    metrics: CircuitBreakerMetrics
