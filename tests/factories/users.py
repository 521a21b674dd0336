"""
Request User Factory

AuthenticatedUser is built from JWT claims rather than stored, so this is a
plain builder instead of a model factory.
"""
import uuid

from apps.core.authentication import AuthenticatedUser


def make_user(
    user_id: uuid.UUID | None = None,
    email: str = 'jane@example.com',
    full_name: str | None = 'Jane Doe',
) -> AuthenticatedUser:
    """Build the request user the JWT authentication would attach."""
    return AuthenticatedUser(
        id=user_id or uuid.uuid4(),
        email=email,
        user_metadata={'full_name': full_name} if full_name else {},
    )
