from .authentication import ClerkJWTAuthentication, ClerkPrincipal, IsPortalStaff
from .clerk import (
    ClerkConfigurationError,
    authorized_party_matches,
    claims_email,
    claims_role,
    decode_clerk_token,
    is_staff_claims,
)

__all__ = [
    "ClerkJWTAuthentication",
    "ClerkPrincipal",
    "ClerkConfigurationError",
    "IsPortalStaff",
    "authorized_party_matches",
    "claims_email",
    "claims_role",
    "decode_clerk_token",
    "is_staff_claims",
]
