from fastapi import status
from fastapi.responses import RedirectResponse
from session_service.services.session_service import REASON_INACTIVE

DEFAULT_LOCALE = "km"


def login_redirect(locale: str = DEFAULT_LOCALE) -> RedirectResponse:
    return RedirectResponse(f"/{locale}/login", status_code=status.HTTP_303_SEE_OTHER)


def logout_reason(reason: str) -> str:
    """Map a validation reason onto the query value the logout page understands."""
    if reason == "no_token":
        return "no_token"
    if reason == REASON_INACTIVE:
        return "revoked"
    return "session_invalid"


def logout_redirect(reason: str, locale: str = DEFAULT_LOCALE) -> RedirectResponse:
    return RedirectResponse(
        f"/{locale}/logout?reason={logout_reason(reason)}",
        status_code=status.HTTP_303_SEE_OTHER,
    )
