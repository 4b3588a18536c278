"""
Presentation Notices.

Turns workflow results into the short message a page shows before it
navigates.  The workflows never touch the page themselves; whatever
renders a ``Notice`` (toast, banner, JSON body) lives outside this
package.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from vasudha_access.config import AppConfig
from vasudha_access.models.auth_models import (
    AdminActionResult,
    GuardDecision,
    LoginResult,
    RegistrationResult,
)


class NoticeLevel(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    DANGER = "danger"


class Notice(BaseModel):
    """One user-facing message plus an optional deferred redirect.

    ``delay_ms`` is how long to keep the message on screen before
    following ``redirect_to``; zero means navigate at once.
    """

    level: NoticeLevel
    message: str
    redirect_to: Optional[str] = None
    delay_ms: int = 0


def render_registration(result: RegistrationResult, config: AppConfig) -> Notice:
    if not result.success:
        return Notice(level=NoticeLevel.DANGER, message=result.error_message or "Registration failed.")
    if result.redirect_to is None:
        # Held for email confirmation: nothing to navigate to yet.
        return Notice(level=NoticeLevel.INFO, message=result.message or "Registration submitted.")
    return Notice(
        level=NoticeLevel.SUCCESS,
        message=result.message or "Registration successful.",
        redirect_to=result.redirect_to,
        delay_ms=config.REDIRECT_DELAY_MS,
    )


def render_login(result: LoginResult, config: AppConfig) -> Notice:
    if not result.success:
        return Notice(level=NoticeLevel.DANGER, message=result.error_message or "Login failed.")
    return Notice(
        level=NoticeLevel.SUCCESS,
        message=result.message or "Login successful.",
        redirect_to=result.redirect_to,
        delay_ms=config.REDIRECT_DELAY_MS,
    )


def render_guard(decision: GuardDecision) -> Optional[Notice]:
    """``None`` when the page may run; otherwise an immediate redirect."""
    if decision.allowed:
        return None
    return Notice(
        level=NoticeLevel.DANGER,
        message=decision.error_message or "Access denied.",
        redirect_to=decision.redirect_to,
    )


def render_admin(result: AdminActionResult) -> Notice:
    if not result.success:
        return Notice(level=NoticeLevel.DANGER, message=result.error_message or "Action failed.")
    return Notice(level=NoticeLevel.SUCCESS, message=result.message or "Done.")
