from restauri.schemas.auth import (
    UserLoginRequest,
    AdminRegistrationRequest,
    AdminRegistrationResponse,
    TokenResponse,
    TokenPayloadResponse,
    UserResponse,
)
from restauri.schemas.content import (
    ListResponse,
    ImageOrderItem,
    ImageOrderUpdate,
    FeaturesUpdate,
    TeamMemberCreate,
    TeamMemberUpdate,
    TeamMemberResponse,
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
)
from restauri.schemas.circuit_breaker import CircuitBreakerHealth, CircuitBreakerMetrics
from restauri.schemas.common import ErrorResponse, ErrorDetail
