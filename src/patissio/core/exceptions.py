"""Core exceptions for tenancy, access control and bookings."""

from uuid import UUID

from patissio.utils.exceptions import ConfigurationError, PatissioError


class ContextNotSetError(PatissioError):
    """Raised when attempting to access request context that is not set.

    This error indicates a programming error - code that needs the request
    context is running outside of a request_context() block.
    """

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


class InvalidRequestError(PatissioError):
    """Raised when a request is well-formed JSON but semantically invalid.

    Attributes:
        field: Name of the offending field, if any
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class AuthenticationError(PatissioError):
    """Raised when a request lacks valid credentials."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(PatissioError):
    """Raised when the authenticated user may not perform an action."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class AccountSuspendedError(ForbiddenError):
    """Raised when a suspended user tries to authenticate.

    Attributes:
        user_id: The suspended user's identifier
    """

    def __init__(self, user_id: UUID | str):
        super().__init__("Account is suspended")
        self.user_id = user_id


class PlanRequiredError(PatissioError):
    """Raised when a tenant's plan tier is below a route's minimum tier.

    Attributes:
        required_plan: The minimum tier the route needs
        current_plan: The tenant's persisted tier
    """

    def __init__(self, required_plan: str, current_plan: str):
        super().__init__(f"This feature requires the {required_plan} plan")
        self.required_plan = required_plan
        self.current_plan = current_plan

    def __str__(self) -> str:
        return f"{self.args[0]} (current plan: {self.current_plan})"


class SupportAccessDeniedError(PatissioError):
    """Raised when a support-mode request falls outside its granted scope.

    Attributes:
        slug: The impersonated tenant slug
        reason: Machine-readable denial reason
    """

    def __init__(self, slug: str, reason: str, message: str | None = None):
        super().__init__(message or f"Support access denied for tenant '{slug}'")
        self.slug = slug
        self.reason = reason


class TenantNotFoundError(PatissioError):
    """Raised when a host, slug or domain does not resolve to a tenant.

    Attributes:
        lookup: The slug, host or domain that failed to resolve
    """

    def __init__(self, lookup: str):
        super().__init__(f"Tenant not found: {lookup}")
        self.lookup = lookup

    def __str__(self) -> str:
        return f"TenantNotFoundError: {self.args[0]}"


class ResourceNotFoundError(PatissioError):
    """Raised when a tenant-owned or public resource does not exist.

    Attributes:
        resource: Resource type name (e.g. "workshop")
        identifier: The identifier that was looked up
    """

    def __init__(self, resource: str, identifier: UUID | str):
        super().__init__(f"{resource.capitalize()} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class ConflictError(PatissioError):
    """Raised when a unique value (email, slug, domain) is already taken.

    Attributes:
        field: The conflicting field
        value: The conflicting value
    """

    def __init__(self, message: str, field: str, value: str):
        super().__init__(message)
        self.field = field
        self.value = value


class CapacityExceededError(PatissioError):
    """Raised when a booking would seat more participants than a workshop holds.

    Attributes:
        workshop_id: The workshop being booked
        capacity: Total seats of the workshop
        booked: Seats held by non-cancelled bookings
        requested: Seats requested by the new booking
    """

    def __init__(self, workshop_id: UUID, capacity: int, booked: int, requested: int):
        super().__init__("Not enough capacity for the requested number of participants")
        self.workshop_id = workshop_id
        self.capacity = capacity
        self.booked = booked
        self.requested = requested

    def __str__(self) -> str:
        return (
            f"{self.args[0]} (capacity={self.capacity}, booked={self.booked}, "
            f"requested={self.requested})"
        )


class ProviderNotConfiguredError(ConfigurationError):
    """Raised when an external provider is called without credentials.

    Attributes:
        provider: Name of the provider (e.g. "vercel", "stripe")
    """

    def __init__(self, provider: str):
        super().__init__(f"{provider.capitalize()} integration is not configured")
        self.provider = provider


class UpstreamServiceError(PatissioError):
    """Raised when an external provider call fails.

    Attributes:
        provider: Name of the provider
        status_code: HTTP status returned by the provider, if any
    """

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        return f"UpstreamServiceError({self.provider}): {self.args[0]}"
