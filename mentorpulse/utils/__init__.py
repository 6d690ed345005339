__all__ = [
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "authenticate_user",
    "authenticate_token",
    "get_current_user",
    "oauth2_scheme",
    "utcnow",
]


def __getattr__(name):
    if name in {
        "verify_password",
        "get_password_hash",
        "create_access_token",
        "authenticate_user",
        "authenticate_token",
        "get_current_user",
        "oauth2_scheme",
    }:
        from . import security as _security
        return getattr(_security, name)
    if name == "utcnow":
        from .clock import utcnow
        return utcnow
    raise AttributeError(f"module 'mentorpulse.utils' has no attribute '{name}'")
