"""
Shared test fixtures.

In-memory stand-ins for the identity provider and the ``profiles``
table, plus a fully wired service stack built on them.
"""

import os
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import pytest

# Override environment BEFORE importing application modules
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""

from vasudha_access.config import AppConfig
from vasudha_access.errors import AuthError, ConflictError, TransientError
from vasudha_access.logger import StructuredLogger
from vasudha_access.models import ApprovalPolicy, IdentityCreation, Profile, SessionInfo
from vasudha_access.models.auth_models import PENDING_PROFILE_KEY
from vasudha_access.services import (
    AdminService,
    AdmissionPolicy,
    AuthService,
    PageGuard,
    ProfileProvisioningService,
    RegistrationService,
    SessionAuthorizer,
)
from vasudha_access.services.page_guard import PageRegistry, build_default_registry


class FakeIdentityProvider:
    """Email-keyed identities with one current session."""

    def __init__(self, requires_confirmation: bool = False) -> None:
        self.requires_confirmation = requires_confirmation
        self.accounts: dict[str, dict[str, object]] = {}
        self.session: Optional[SessionInfo] = None
        self.sign_out_calls = 0
        self.authenticate_calls = 0
        self.fail_get_session: Optional[Exception] = None

    def add_account(
        self,
        email: str,
        password: str,
        user_id: Optional[str] = None,
        metadata: Optional[dict[str, object]] = None,
    ) -> str:
        user_id = user_id or str(uuid.uuid4())
        self.accounts[email] = {
            "user_id": user_id,
            "password": password,
            "metadata": dict(metadata or {}),
        }
        return user_id

    def create_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> IdentityCreation:
        if email in self.accounts:
            raise ConflictError("User with this email already exists. Login instead or reset password.")
        user_id = self.add_account(email, password, metadata=metadata)
        if self.requires_confirmation:
            return IdentityCreation(user_id=None, requires_confirmation=True)
        # Sign-up without confirmation opens a session, as Supabase does.
        self.session = SessionInfo(user_id=user_id, email=email, metadata=metadata)
        return IdentityCreation(user_id=user_id, requires_confirmation=False)

    def authenticate(self, email: str, password: str) -> SessionInfo:
        self.authenticate_calls += 1
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise AuthError("Incorrect email or password.")
        self.session = SessionInfo(
            user_id=str(account["user_id"]),
            email=email,
            metadata=dict(account["metadata"]),  # type: ignore[arg-type]
        )
        return self.session

    def get_session(self) -> Optional[SessionInfo]:
        if self.fail_get_session is not None:
            raise self.fail_get_session
        return self.session

    def clear_pending_profile(self) -> None:
        if self.session is None:
            return
        for account in self.accounts.values():
            if account["user_id"] == self.session.user_id:
                account["metadata"].pop(PENDING_PROFILE_KEY, None)  # type: ignore[union-attr]
        metadata = {k: v for k, v in self.session.metadata.items() if k != PENDING_PROFILE_KEY}
        self.session = self.session.model_copy(update={"metadata": metadata})

    def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.session = None

    def login_as(self, email: str) -> SessionInfo:
        """Put *email*'s account in the current session without a password."""
        account = self.accounts[email]
        self.session = SessionInfo(user_id=str(account["user_id"]), email=email)
        return self.session


class FakeAdminIdentityProvider:
    def __init__(self) -> None:
        self.identities: dict[str, str] = {}
        self.deleted: list[str] = []
        self.fail_delete: Optional[Exception] = None

    def create_confirmed_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> IdentityCreation:
        if email in self.identities.values():
            raise ConflictError("User with this email already exists. Login instead or reset password.")
        user_id = str(uuid.uuid4())
        self.identities[user_id] = email
        return IdentityCreation(user_id=user_id)

    def delete_identity(self, user_id: str) -> None:
        if self.fail_delete is not None:
            raise self.fail_delete
        self.identities.pop(user_id, None)
        self.deleted.append(user_id)


class FakeProfileStore:
    """Unique on ``id`` and ``username``; plain inserts never overwrite."""

    def __init__(self) -> None:
        self.rows: dict[str, Profile] = {}
        self.insert_calls = 0
        self.update_calls = 0
        self.fail_insert: Optional[Exception] = None
        self.fail_fetch: Optional[Exception] = None
        self.fail_username_lookup: Optional[Exception] = None

    def add(self, **fields: object) -> Profile:
        fields.setdefault("id", str(uuid.uuid4()))
        fields.setdefault("full_name", "Test User")
        fields.setdefault("role", "buyer")
        profile = Profile(**fields)  # type: ignore[arg-type]
        self.rows[profile.id] = profile
        return profile

    def insert(self, profile: Profile) -> Profile:
        self.insert_calls += 1
        if self.fail_insert is not None:
            raise self.fail_insert
        if profile.id in self.rows:
            raise ConflictError("A profile with these details already exists.")
        if profile.username and any(r.username == profile.username for r in self.rows.values()):
            raise ConflictError("A profile with these details already exists.")
        self.rows[profile.id] = profile
        return profile

    def fetch_by_id(self, profile_id: str) -> Optional[Profile]:
        if self.fail_fetch is not None:
            raise self.fail_fetch
        return self.rows.get(profile_id)

    def username_exists(self, username: str) -> bool:
        if self.fail_username_lookup is not None:
            raise self.fail_username_lookup
        return any(r.username == username for r in self.rows.values())

    def update(self, profile_id: str, fields: dict[str, object]) -> Optional[Profile]:
        self.update_calls += 1
        current = self.rows.get(profile_id)
        if current is None:
            return None
        updated = current.model_copy(update=fields)
        self.rows[profile_id] = updated
        return updated

    def list_where(
        self,
        *,
        approved: Optional[bool] = None,
        blocked: Optional[bool] = None,
    ) -> list[Profile]:
        return [
            row
            for row in self.rows.values()
            if (approved is None or row.approved == approved)
            and (blocked is None or row.blocked == blocked)
        ]


@dataclass
class Stack:
    config: AppConfig
    identity: FakeIdentityProvider
    profiles: FakeProfileStore
    authorizer: SessionAuthorizer
    registry: PageRegistry
    registration: RegistrationService
    auth: AuthService
    guard: PageGuard
    admin: AdminService


@pytest.fixture()
def logger() -> StructuredLogger:
    return StructuredLogger(name="vasudha_access.tests", log_file="")


def make_config(**overrides: object) -> AppConfig:
    return AppConfig(_env_file=None, **overrides)  # type: ignore[call-arg]


@pytest.fixture()
def config() -> AppConfig:
    return make_config()


@pytest.fixture()
def build_stack(logger: StructuredLogger) -> Callable[..., Stack]:
    def _build(
        approval_policy: ApprovalPolicy = ApprovalPolicy.MANUAL,
        requires_confirmation: bool = False,
    ) -> Stack:
        config = make_config(APPROVAL_POLICY=approval_policy)
        identity = FakeIdentityProvider(requires_confirmation=requires_confirmation)
        profiles = FakeProfileStore()
        admission = AdmissionPolicy(config=config, profiles=profiles, logger=logger)
        authorizer = SessionAuthorizer(profiles=profiles, config=config, logger=logger)
        provisioning = ProfileProvisioningService(
            identity=identity, profiles=profiles, admission=admission, config=config, logger=logger,
        )
        registry = build_default_registry(config, logger)
        return Stack(
            config=config,
            identity=identity,
            profiles=profiles,
            authorizer=authorizer,
            registry=registry,
            registration=RegistrationService(
                identity=identity,
                profiles=profiles,
                admission=admission,
                config=config,
                logger=logger,
            ),
            auth=AuthService(
                identity=identity,
                authorizer=authorizer,
                provisioning=provisioning,
                config=config,
                logger=logger,
            ),
            guard=PageGuard(
                identity=identity,
                authorizer=authorizer,
                registry=registry,
                config=config,
                logger=logger,
            ),
            admin=AdminService(
                identity=identity,
                profiles=profiles,
                authorizer=authorizer,
                logger=logger,
            ),
        )

    return _build


@pytest.fixture()
def stack(build_stack: Callable[..., Stack]) -> Stack:
    return build_stack()


@pytest.fixture()
def transient() -> TransientError:
    return TransientError("The profile service is unavailable. Please try again later.")


@pytest.fixture()
def admin_identity() -> FakeAdminIdentityProvider:
    return FakeAdminIdentityProvider()
