"""
Business Logic Services Package.

Registration, login, page guarding and administration.  Services depend
on the ``IdentityProvider`` / ``ProfileStore`` interfaces, never on a
module-level client.

``create_services()`` wires the client-side workflows (publishable
key); ``create_proxy_registration_service()`` wires the elevated
registration path used by the HTTP proxy.
"""

from __future__ import annotations

from typing import TypedDict

from vasudha_access.config import AppConfig
from vasudha_access.database import DatabaseManager
from vasudha_access.identity import SupabaseAdminIdentityProvider, SupabaseIdentityProvider
from vasudha_access.logger import get_logger
from vasudha_access.repositories.profile_repository import ProfileRepository
from vasudha_access.services.admin_service import AdminService
from vasudha_access.services.admission import AdmissionPolicy
from vasudha_access.services.auth_service import AuthService
from vasudha_access.services.authorization import SessionAuthorizer
from vasudha_access.services.page_guard import (
    PageAccessDenied,
    PageGuard,
    PageRegistry,
    build_default_registry,
)
from vasudha_access.services.provisioning import ProfileProvisioningService
from vasudha_access.services.registration_service import RegistrationService

__all__ = [
    "AdminService",
    "AdmissionPolicy",
    "AuthService",
    "PageAccessDenied",
    "PageGuard",
    "PageRegistry",
    "ProfileProvisioningService",
    "RegistrationService",
    "ServiceContainer",
    "SessionAuthorizer",
    "create_proxy_registration_service",
    "create_services",
]


class ServiceContainer(TypedDict):
    """Typed container for the client-side services."""

    registration_service: RegistrationService
    auth_service: AuthService
    page_guard: PageGuard
    admin_service: AdminService
    authorizer: SessionAuthorizer
    page_registry: PageRegistry


def create_services(db: DatabaseManager, config: AppConfig) -> ServiceContainer:
    """
    Wire all client-side repositories and services together.

    Args:
        db: DatabaseManager holding the publishable-key client.
        config: Application configuration.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Service clients
    # ------------------------------------------------------------------
    identity = SupabaseIdentityProvider(db=db, logger=logger)
    profile_repo = ProfileRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    admission = AdmissionPolicy(config=config, profiles=profile_repo, logger=logger)
    authorizer = SessionAuthorizer(profiles=profile_repo, config=config, logger=logger)
    provisioning = ProfileProvisioningService(
        identity=identity,
        profiles=profile_repo,
        admission=admission,
        config=config,
        logger=logger,
    )
    page_registry = build_default_registry(config, logger)

    # ------------------------------------------------------------------
    # 3. Workflows
    # ------------------------------------------------------------------
    registration_service = RegistrationService(
        identity=identity,
        profiles=profile_repo,
        admission=admission,
        config=config,
        logger=logger,
    )
    auth_service = AuthService(
        identity=identity,
        authorizer=authorizer,
        provisioning=provisioning,
        config=config,
        logger=logger,
    )
    page_guard = PageGuard(
        identity=identity,
        authorizer=authorizer,
        registry=page_registry,
        config=config,
        logger=logger,
    )
    admin_service = AdminService(
        identity=identity,
        profiles=profile_repo,
        authorizer=authorizer,
        logger=logger,
    )

    return ServiceContainer(
        registration_service=registration_service,
        auth_service=auth_service,
        page_guard=page_guard,
        admin_service=admin_service,
        authorizer=authorizer,
        page_registry=page_registry,
    )


def create_proxy_registration_service(
    db: DatabaseManager,
    config: AppConfig,
) -> RegistrationService:
    """Wire the elevated registration path for the HTTP proxy.

    Profile writes and the username check go through the service-role
    client; the request body carries no terms flag, so that rule is off.
    """
    logger = get_logger("proxy")
    admin_identity = SupabaseAdminIdentityProvider(db=db, logger=logger)
    profile_repo = ProfileRepository(db=db, logger=logger, elevated=True)
    admission = AdmissionPolicy(config=config, profiles=profile_repo, logger=logger)
    return RegistrationService(
        identity=None,
        profiles=profile_repo,
        admission=admission,
        config=config,
        logger=logger,
        admin_identity=admin_identity,
        require_terms=False,
    )
