"""JWT Token Validation - resolves the calling user into an ActorContext"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import Settings, settings as default_settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """Shared-secret JWT validator"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def verify_signature(self) -> bool:
        """Development environments accept unsigned tokens from the profile picker"""
        if self.config.environment.lower() in ["development", "dev", "local"]:
            return bool(self.config.jwt_secret)
        return True

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a bearer token

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            if not self.verify_signature:
                return jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "verify_aud": False,
                    }
                )

            decode_kwargs: Dict[str, Any] = {"algorithms": [self.config.jwt_algorithm]}
            if self.config.jwt_audience:
                decode_kwargs["audience"] = self.config.jwt_audience
            else:
                decode_kwargs["options"] = {"verify_aud": False}
            return jwt.decode(token, self.config.jwt_secret, **decode_kwargs)

        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """
        Extract actor context from validated token

        The stable id is the employee id when the token carries one, else the
        email, so every audit entry references the same kind of identifier.
        """
        claims = self.validate_token(token)

        email = (
            claims.get("email") or
            claims.get("preferred_username") or
            claims.get("upn") or
            ""
        )
        employee_id = claims.get("employeeId") or claims.get("employee_id")
        stable_id = employee_id or email
        if not stable_id:
            logger.warning(f"No identity in token claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user identity from token")

        display_name = claims.get("name") or " ".join(
            part for part in (claims.get("given_name"), claims.get("family_name")) if part
        ) or email or stable_id

        return ActorContext(
            stable_id=stable_id,
            display_name=display_name,
            role=claims.get("role") or "PRODUCT_MANAGER",
            email=email or None,
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """Get current user from authorization header"""
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    return get_jwt_validator().get_actor_context(authorization)
