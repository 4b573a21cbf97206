"""
JWT Authentication for Pilot and Administrator Identities
"""

import jwt
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)


class JWTAuthentication(authentication.BaseAuthentication):
    """
    JWT Token Authentication for API requests.

    The token is issued by the portal login flow; this service only
    verifies it and trusts the pilot/admin claims it carries.
    """

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple[Any, Dict]]:
        auth_header = authentication.get_authorization_header(request)

        if not auth_header:
            return None

        try:
            auth_parts = auth_header.decode('utf-8').split()
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Invalid token header encoding')

        if len(auth_parts) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header format')

        if auth_parts[0].lower() != self.keyword.lower():
            return None

        token = auth_parts[1]
        return self.authenticate_token(token)

    def authenticate_token(self, token: str) -> Tuple['PilotIdentity', Dict]:
        """Validate and decode JWT token"""
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SETTINGS['VERIFYING_KEY'],
                algorithms=[settings.JWT_SETTINGS['ALGORITHM']],
                issuer=settings.JWT_SETTINGS['ISSUER'],
                options={
                    'require': ['exp', 'iat', 'sub', 'iss'],
                    'verify_exp': True,
                    'verify_iat': True,
                    'verify_iss': True,
                }
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

        return (PilotIdentity.from_payload(payload), payload)

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class PilotIdentity:
    """
    Trusted identity supplied to the service layer.

    Carries only what the core needs: who is calling and whether they
    may act as an administrator.
    """

    def __init__(self, pilot_id: str, is_admin: bool = False, pilot_code: str = None):
        self.id = str(pilot_id)
        self.pilot_id = str(pilot_id)
        self.pilot_code = pilot_code
        self.is_admin = bool(is_admin)
        self.is_active = True
        self.is_authenticated = True
        self.is_anonymous = False

    @classmethod
    def from_payload(cls, payload: Dict) -> 'PilotIdentity':
        return cls(
            pilot_id=payload['sub'],
            is_admin=payload.get('is_admin', False),
            pilot_code=payload.get('pilot_code'),
        )

    def __str__(self) -> str:
        role = 'admin' if self.is_admin else 'pilot'
        return f"PilotIdentity({self.pilot_id}, {role})"


class JWTTokenGenerator:
    """
    Generate JWT tokens (used by the login collaborator and by tests).
    """

    @staticmethod
    def generate_access_token(
        pilot_id: str,
        is_admin: bool = False,
        pilot_code: str = None,
        extra_claims: Dict = None
    ) -> str:
        """Generate an access token"""
        now = datetime.now(timezone.utc)

        payload = {
            'sub': str(pilot_id),
            'pilot_code': pilot_code,
            'is_admin': is_admin,
            'iat': now,
            'exp': now + settings.JWT_SETTINGS['ACCESS_TOKEN_LIFETIME'],
            'iss': settings.JWT_SETTINGS['ISSUER'],
            'type': 'access',
        }

        if extra_claims:
            payload.update(extra_claims)

        return jwt.encode(
            payload,
            settings.JWT_SETTINGS['SIGNING_KEY'],
            algorithm=settings.JWT_SETTINGS['ALGORITHM']
        )
