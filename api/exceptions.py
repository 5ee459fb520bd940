"""Custom exceptions and error handling."""

from typing import Any

from fastapi import status


class SiteAuditError(Exception):
    """Base exception for the SiteAudit application."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class QuotaExceededError(SiteAuditError):
    """The user's page budget is spent before the run could start."""

    def __init__(self, pages_analyzed: int, page_limit: int):
        super().__init__(
            message=(
                "Page analysis limit reached. "
                f"You have analyzed {pages_analyzed}/{page_limit} pages."
            ),
            code="quota_exceeded",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"pages_analyzed": pages_analyzed, "page_limit": page_limit},
        )


class AnalysisCancelledError(SiteAuditError):
    """Raised when a run observes its cancellation token."""

    def __init__(self, domain: str | None = None):
        super().__init__(
            message="Analysis cancelled by user",
            code="analysis_cancelled",
            status_code=499,
            details={"domain": domain} if domain else {},
        )


class ExternalServiceError(SiteAuditError):
    """External service error."""

    def __init__(self, service: str, message: str):
        super().__init__(
            message=f"{service}: {message}",
            code="external_service_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service},
        )


class DiscoveryError(ExternalServiceError):
    """Neither sitemap nor crawl produced a usable page list."""

    def __init__(self, domain: str, message: str):
        super().__init__(service="discovery", message=f"{domain}: {message}")
        self.code = "discovery_failed"


class NotFoundError(SiteAuditError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"No {resource} found for {identifier}",
            code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": identifier},
        )


class AuthenticationRequiredError(SiteAuditError):
    """The operation needs a known user."""

    def __init__(self, feature: str):
        super().__init__(
            message=f"Please log in to use {feature}.",
            code="authentication_required",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class InsufficientCreditsError(SiteAuditError):
    """The user cannot pay for the requested operation."""

    def __init__(self, feature: str, needed: int, available: int):
        plural = "" if needed == 1 else "s"
        super().__init__(
            message=(
                f"{feature} requires {needed} credit{plural}. "
                f"You have {available} credits remaining."
            ),
            code="insufficient_credits",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"credits_needed": needed, "credits_available": available},
        )
