import pytest

from vasudha_access.models import ApprovalPolicy, DenialReason, ErrorKind, RegistrationRequest
from vasudha_access.models.auth_models import PENDING_PROFILE_KEY
from vasudha_access.services import AdmissionPolicy, ProfileProvisioningService


def _register(stack, email="buyer@real.com", password="longpass1", **overrides):
    fields = {"first_name": "Bo", "email": email, "password": password, "accepted_terms": True}
    fields.update(overrides)
    return stack.registration.register(RegistrationRequest(**fields))


def _account(stack, email="user@real.com", password="longpass1", **profile_fields):
    user_id = stack.identity.add_account(email, password)
    if profile_fields:
        stack.profiles.add(id=user_id, email=email, **profile_fields)
    return user_id


def test_username_identifier_rejected_before_remote_call(stack):
    result = stack.auth.login("janed", "longpass1")

    assert result.success is False
    assert result.error_code == ErrorKind.VALIDATION
    assert "email address" in result.error_message
    assert stack.identity.authenticate_calls == 0


def test_empty_credentials_rejected(stack):
    result = stack.auth.login("  ", "")
    assert result.error_code == ErrorKind.VALIDATION
    assert stack.identity.authenticate_calls == 0


def test_identifier_is_normalized(stack):
    _account(stack, role="buyer", approved=True)
    result = stack.auth.login("  USER@Real.com ", "longpass1")
    assert result.success is True


def test_bad_credentials_are_idempotent(stack):
    _account(stack, role="buyer", approved=True)
    results = [stack.auth.login("user@real.com", "wrong-pass") for _ in range(5)]

    assert all(r.error_code == ErrorKind.AUTH for r in results)
    assert len({r.error_message for r in results}) == 1
    assert stack.identity.session is None
    assert stack.profiles.insert_calls == 0
    assert stack.profiles.update_calls == 0


def test_missing_profile_fails_closed(stack):
    _account(stack)
    result = stack.auth.login("user@real.com", "longpass1")

    assert result.success is False
    assert result.error_code == ErrorKind.AUTHORIZATION
    assert result.denial_reason == DenialReason.NO_PROFILE
    assert result.signed_out is True
    assert stack.identity.session is None


def test_profile_fetch_error_fails_closed(stack, transient):
    _account(stack, role="buyer", approved=True)
    stack.profiles.fail_fetch = transient
    result = stack.auth.login("user@real.com", "longpass1")

    assert result.denial_reason == DenialReason.NO_PROFILE
    assert stack.identity.session is None


@pytest.mark.parametrize("approved", [True, False])
def test_blocked_dominates_approved(stack, approved):
    _account(stack, role="buyer", approved=approved, blocked=True)
    result = stack.auth.login("user@real.com", "longpass1")

    assert result.success is False
    assert result.denial_reason == DenialReason.BLOCKED
    assert stack.identity.session is None


def test_unapproved_profile_is_pending(stack):
    _account(stack, role="verifier", approved=False)
    result = stack.auth.login("user@real.com", "longpass1")

    assert result.denial_reason == DenialReason.PENDING_APPROVAL
    assert result.signed_out is True


@pytest.mark.parametrize(
    ("role", "destination"),
    [
        ("admin", "/admin/index.html"),
        ("verifier", "/verifier.html"),
        ("field_user", "/field-user.html"),
        ("buyer", "/buyer.html"),
        ("project_owner", "/buyer.html"),
        ("something-else", "/buyer.html"),
    ],
)
def test_role_destinations(stack, role, destination):
    _account(stack, role=role, approved=True)
    result = stack.auth.login("user@real.com", "longpass1")

    assert result.success is True
    assert result.role == role
    assert result.redirect_to == destination
    assert result.message == "Login successful. Redirecting..."
    assert stack.identity.session is not None


def test_register_then_login_manual_policy(build_stack):
    stack = build_stack(approval_policy=ApprovalPolicy.MANUAL)
    assert _register(stack).success is True

    result = stack.auth.login("buyer@real.com", "longpass1")
    assert result.success is False
    assert result.denial_reason == DenialReason.PENDING_APPROVAL
    assert stack.identity.session is None


def test_register_then_login_auto_policy(build_stack):
    stack = build_stack(approval_policy=ApprovalPolicy.AUTO)
    assert _register(stack).success is True

    result = stack.auth.login("buyer@real.com", "longpass1")
    assert result.success is True
    assert result.redirect_to == "/buyer.html"


def test_deleted_profile_is_not_recreated_at_login(build_stack):
    stack = build_stack(approval_policy=ApprovalPolicy.AUTO)
    registered = _register(stack)
    del stack.profiles.rows[registered.user_id]

    result = stack.auth.login("buyer@real.com", "longpass1")

    assert result.success is False
    assert result.denial_reason == DenialReason.NO_PROFILE
    assert stack.identity.session is None
    assert stack.profiles.insert_calls == 1


def test_admin_approval_unlocks_login(stack):
    registered = _register(stack)
    admin_id = _account(stack, email="boss@real.com", role="admin", approved=True)
    stack.identity.login_as("boss@real.com")

    assert stack.admin.approve(registered.user_id).success is True
    assert admin_id != registered.user_id

    stack.identity.sign_out()
    result = stack.auth.login("buyer@real.com", "longpass1")
    assert result.success is True
    assert result.redirect_to == "/buyer.html"


def test_first_login_completes_deferred_registration(build_stack):
    stack = build_stack(approval_policy=ApprovalPolicy.AUTO, requires_confirmation=True)
    _register(stack, role="field_user", phone="555-0100", username="fieldbo")
    assert stack.profiles.rows == {}

    result = stack.auth.login("buyer@real.com", "longpass1")

    assert result.success is True
    assert result.redirect_to == "/field-user.html"
    profile = result.profile
    assert profile.username == "fieldbo"
    assert profile.phone == "555-0100"
    assert profile.approved is True
    assert PENDING_PROFILE_KEY not in stack.identity.accounts["buyer@real.com"]["metadata"]


def test_completed_deferred_registration_is_not_repeated(build_stack):
    stack = build_stack(approval_policy=ApprovalPolicy.AUTO, requires_confirmation=True)
    _register(stack)
    first = stack.auth.login("buyer@real.com", "longpass1")
    assert first.success is True
    stack.auth.logout()
    del stack.profiles.rows[first.profile.id]

    result = stack.auth.login("buyer@real.com", "longpass1")

    assert result.success is False
    assert result.denial_reason == DenialReason.NO_PROFILE
    assert stack.profiles.insert_calls == 1


def test_deferred_registration_respects_manual_policy(build_stack):
    stack = build_stack(requires_confirmation=True)
    _register(stack)

    result = stack.auth.login("buyer@real.com", "longpass1")
    assert result.denial_reason == DenialReason.PENDING_APPROVAL
    assert stack.profiles.insert_calls == 1


def test_completion_conflict_with_existing_row_clears_marker(stack, logger):
    user_id = stack.identity.add_account(
        "race@real.com", "longpass1", metadata={PENDING_PROFILE_KEY: {"full_name": "Race", "role": "buyer"}},
    )
    stack.profiles.add(id=user_id, email="race@real.com", approved=False)
    session = stack.identity.authenticate("race@real.com", "longpass1")
    provisioning = ProfileProvisioningService(
        identity=stack.identity,
        profiles=stack.profiles,
        admission=AdmissionPolicy(config=stack.config, profiles=stack.profiles, logger=logger),
        config=stack.config,
        logger=logger,
    )

    assert provisioning.complete_pending(session).id == user_id
    assert PENDING_PROFILE_KEY not in stack.identity.accounts["race@real.com"]["metadata"]


def test_tampered_pending_role_is_not_provisioned(stack):
    stack.identity.add_account(
        "sneaky@real.com",
        "longpass1",
        metadata={PENDING_PROFILE_KEY: {"full_name": "Sneaky", "role": "admin"}},
    )
    result = stack.auth.login("sneaky@real.com", "longpass1")

    assert result.denial_reason == DenialReason.NO_PROFILE
    assert stack.profiles.rows == {}
    assert stack.identity.session is None


def test_logout_ends_session(stack):
    _account(stack, role="buyer", approved=True)
    stack.auth.login("user@real.com", "longpass1")
    stack.auth.logout()
    assert stack.identity.session is None
