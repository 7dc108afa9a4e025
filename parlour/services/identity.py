"""
Client for the identity authority (a Cognito user pool).

The authority owns registration, password checks and token issuance. This
module only forwards requests to it and translates its failures into
:class:`.ExternalAuthorityError`, whose message is the authority's own.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .. import domain
from ..auth.exceptions import ExternalAuthorityError
from ..context import get_application_config, get_application_global

logger = logging.getLogger(__name__)

PASSWORD_AUTH = 'USER_PASSWORD_AUTH'


def _message(e: Exception) -> str:
    if isinstance(e, ClientError):
        error = e.response.get('Error', {})
        return str(error.get('Message') or error.get('Code') or e)
    return str(e)


class CognitoAuthority(object):
    """
    Talks to a Cognito user pool through its app client.

    Parameters
    ----------
    client_id : str
        The user pool app client. It must allow ``USER_PASSWORD_AUTH``.
    region : str
    endpoint_url : str or None
        Override for the service endpoint (e.g. a local emulator).

    """

    def __init__(self, client_id: str, region: str,
                 endpoint_url: Optional[str] = None) -> None:
        self.client_id = client_id
        self.client = boto3.client('cognito-idp', region_name=region,
                                   endpoint_url=endpoint_url)

    def register(self, username: str, password: str, email: str) -> None:
        """Sign up a new user."""
        try:
            self.client.sign_up(
                ClientId=self.client_id,
                Username=username,
                Password=password,
                UserAttributes=[{'Name': 'email', 'Value': email}]
            )
        except (ClientError, BotoCoreError) as e:
            logger.debug('Registration failed: %s', e)
            raise ExternalAuthorityError(_message(e)) from e

    def confirm(self, username: str, code: str) -> None:
        """Confirm a registration with the code sent to the user."""
        try:
            self.client.confirm_sign_up(
                ClientId=self.client_id,
                Username=username,
                ConfirmationCode=code
            )
        except (ClientError, BotoCoreError) as e:
            logger.debug('Confirmation failed: %s', e)
            raise ExternalAuthorityError(_message(e)) from e

    def issue_tokens(self, username: str, password: str) -> domain.TokenSet:
        """
        Authenticate a user and get a fresh set of tokens.

        Raises
        ------
        :class:`.ExternalAuthorityError`
            The credentials were refused, or the authority is unreachable.

        """
        try:
            response = self.client.initiate_auth(
                AuthFlow=PASSWORD_AUTH,
                ClientId=self.client_id,
                AuthParameters={'USERNAME': username, 'PASSWORD': password}
            )
        except (ClientError, BotoCoreError) as e:
            logger.debug('Authentication failed for %s: %s', username, e)
            raise ExternalAuthorityError(_message(e)) from e

        result = response.get('AuthenticationResult') or {}
        if not result.get('AccessToken') or not result.get('IdToken'):
            # e.g. a NEW_PASSWORD_REQUIRED challenge instead of tokens.
            challenge = response.get('ChallengeName', 'no tokens issued')
            raise ExternalAuthorityError(f'Sign-in incomplete: {challenge}')
        return domain.TokenSet(
            access_token=result['AccessToken'],
            id_token=result['IdToken'],
            refresh_token=result.get('RefreshToken')
        )

    def global_invalidate(self, access_token: str) -> None:
        """Invalidate every token issued to the holder of ``access_token``."""
        try:
            self.client.global_sign_out(AccessToken=access_token)
        except (ClientError, BotoCoreError) as e:
            logger.debug('Global sign-out failed: %s', e)
            raise ExternalAuthorityError(_message(e)) from e


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('AWS_REGION', 'eu-west-1')
    config.setdefault('COGNITO_CLIENT_ID', '')
    config.setdefault('COGNITO_ENDPOINT_URL', None)


def get_authority(app: object = None) -> CognitoAuthority:
    """Create a :class:`.CognitoAuthority` from the application config."""
    config = get_application_config(app)
    return CognitoAuthority(
        config.get('COGNITO_CLIENT_ID', ''),
        config.get('AWS_REGION', 'eu-west-1'),
        endpoint_url=config.get('COGNITO_ENDPOINT_URL') or None
    )


def current_authority() -> CognitoAuthority:
    """Get/create the :class:`.CognitoAuthority` for this context."""
    g = get_application_global()
    if g is None:
        return get_authority()
    if 'authority' not in g:
        g.authority = get_authority()
    authority: CognitoAuthority = g.authority
    return authority
