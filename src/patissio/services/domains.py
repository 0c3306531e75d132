"""Custom domain provisioning through the Vercel project domains API."""

import time
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from patissio.config.settings import Settings
from patissio.core.exceptions import ProviderNotConfiguredError, UpstreamServiceError
from patissio.core.logging import log_external_call

logger = structlog.get_logger()

VERCEL_API_URL = "https://api.vercel.com"
VERCEL_CNAME_TARGET = "cname.vercel-dns.com"

_ALREADY_ATTACHED_CODES = frozenset({"domain_already_in_use", "domain_already_exists"})


@dataclass(frozen=True)
class DomainConfig:
    """Domain state reported by the hosting provider.

    Attributes:
        verified: Ownership has been verified
        configured: DNS points at the provider
        verification: Pending verification records, if any
    """

    verified: bool
    configured: bool
    verification: list[dict[str, Any]] | None = None

    @property
    def status(self) -> str:
        """``verified``, ``misconfigured`` or ``pending``."""
        if self.verified and self.configured:
            return "verified"
        if not self.configured:
            return "misconfigured"
        return "pending"


class DomainService:
    """Attach, detach and inspect custom domains on the hosting project.

    Example:
        async with DomainService(settings) as domains:
            await domains.add_domain("maboulangerie.fr")
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "DomainService":
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=VERCEL_API_URL, timeout=10.0)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def is_configured(self) -> bool:
        return self._settings.vercel_configured

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise ProviderNotConfiguredError("vercel")

    @property
    def _headers(self) -> dict[str, str]:
        token = self._settings.VERCEL_API_TOKEN
        return {"Authorization": f"Bearer {token.get_secret_value() if token else ''}"}

    @property
    def _params(self) -> dict[str, str]:
        team_id = self._settings.VERCEL_TEAM_ID
        return {"teamId": team_id} if team_id else {}

    def _project_path(self, version: str, domain: str | None = None) -> str:
        path = f"/{version}/projects/{self._settings.VERCEL_PROJECT_ID}/domains"
        return f"{path}/{domain}" if domain else path

    async def _request(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> httpx.Response:
        assert self._client is not None, "DomainService must be used as an async context manager"
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, path, headers=self._headers, params=self._params, **kwargs
            )
        except httpx.HTTPError as exc:
            log_external_call(
                logger,
                "vercel",
                operation,
                (time.perf_counter() - start) * 1000,
                success=False,
                error=str(exc),
            )
            raise UpstreamServiceError("vercel", "Hosting provider is unreachable") from exc
        log_external_call(
            logger,
            "vercel",
            operation,
            (time.perf_counter() - start) * 1000,
            success=response.is_success,
            status_code=response.status_code,
        )
        return response

    async def add_domain(self, domain: str) -> None:
        """Attach a domain to the project. A domain already attached counts as added.

        Raises:
            ProviderNotConfiguredError: If credentials are missing
            UpstreamServiceError: If the provider rejects the domain
        """
        self._ensure_configured()
        response = await self._request(
            "add_domain", "POST", self._project_path("v10"), json={"name": domain}
        )
        if response.is_success:
            logger.info("domain_added", domain=domain)
            return

        error = _error_body(response)
        if error.get("code") in _ALREADY_ATTACHED_CODES:
            logger.info("domain_already_attached", domain=domain)
            return
        raise UpstreamServiceError(
            "vercel",
            error.get("message") or "Failed to add domain to hosting provider",
            status_code=response.status_code,
        )

    async def remove_domain(self, domain: str) -> bool:
        """Detach a domain from the project.

        Returns:
            True if the provider confirmed the removal
        """
        if not self.is_configured:
            logger.warning("domain_remove_skipped", domain=domain, reason="not_configured")
            return False
        try:
            response = await self._request(
                "remove_domain", "DELETE", self._project_path("v9", domain)
            )
        except UpstreamServiceError:
            return False
        if not response.is_success:
            logger.error("domain_remove_failed", domain=domain, error=_error_body(response))
            return False
        logger.info("domain_removed", domain=domain)
        return True

    async def get_domain_config(self, domain: str) -> DomainConfig:
        """Fetch a domain's verification and DNS state.

        Raises:
            ProviderNotConfiguredError: If credentials are missing
            UpstreamServiceError: If the provider cannot report the domain
        """
        self._ensure_configured()
        response = await self._request(
            "get_domain_config", "GET", self._project_path("v9", domain)
        )
        if not response.is_success:
            raise UpstreamServiceError(
                "vercel", "Failed to check domain status", status_code=response.status_code
            )
        data = response.json()
        return DomainConfig(
            verified=data.get("verified") is True,
            configured=not data.get("misconfigured", False),
            verification=data.get("verification"),
        )


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    error = body.get("error") if isinstance(body, dict) else None
    return error if isinstance(error, dict) else {}


def normalize_domain(raw: str) -> str:
    """Lower-case, trim and drop a leading ``www.``."""
    domain = raw.strip().lower()
    return domain.removeprefix("www.")
