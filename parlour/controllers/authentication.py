"""
Controllers for registration, sign-in and sign-out.

Sign-in returns the access, ID and refresh tokens issued by the identity
authority. Clients present the ID token as ``Authorization: Bearer <token>``
on mutating requests, and send the access token to sign out.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from werkzeug.datastructures import MultiDict
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired, Email

from .. import status
from ..auth import guard
from ..auth.exceptions import CredentialStateUnavailable, DecodeError, \
    ExternalAuthorityError, MissingCredential, RevokedCredential
from ..auth.lifecycle import current_lifecycle

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

UNAUTHORIZED = {'message': 'Unauthorized'}


class RegisterForm(Form):
    """Registration payload."""

    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    email = StringField('E-mail', validators=[DataRequired(), Email()])


class ConfirmForm(Form):
    """Registration confirmation payload."""

    username = StringField('Username', validators=[DataRequired()])
    confirmationCode = StringField('Confirmation code',
                                   validators=[DataRequired()])


class SignInForm(Form):
    """Sign-in payload."""

    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class SignOutForm(Form):
    """Sign-out payload."""

    accessToken = StringField('Access token', validators=[DataRequired()])


def _form_data(payload: Optional[Dict[str, Any]]) -> MultiDict:
    if not isinstance(payload, dict):
        return MultiDict()
    return MultiDict({key: str(value) for key, value in payload.items()
                      if isinstance(value, (str, int, float))
                      and not isinstance(value, bool)})


def _invalid(form: Form) -> ResponseData:
    logger.debug('Invalid payload: %s', form.errors)
    return {'error': 'Invalid request', 'fields': form.errors}, \
        status.HTTP_400_BAD_REQUEST, {}


def register(payload: Optional[Dict[str, Any]]) -> ResponseData:
    """Register a new user with the identity authority."""
    form = RegisterForm(_form_data(payload))
    if not form.validate():
        return _invalid(form)
    try:
        current_lifecycle().register(form.username.data, form.password.data,
                                     form.email.data)
    except ExternalAuthorityError as e:
        return {'error': str(e)}, status.HTTP_400_BAD_REQUEST, {}
    return {'message': 'User registered successfully'}, status.HTTP_200_OK, {}


def confirm(payload: Optional[Dict[str, Any]]) -> ResponseData:
    """Confirm a registration with the code the user received."""
    form = ConfirmForm(_form_data(payload))
    if not form.validate():
        return _invalid(form)
    try:
        current_lifecycle().confirm(form.username.data,
                                    form.confirmationCode.data)
    except ExternalAuthorityError as e:
        return {'error': str(e)}, status.HTTP_400_BAD_REQUEST, {}
    return {'message': 'User confirmed successfully'}, status.HTTP_200_OK, {}


def sign_in(payload: Optional[Dict[str, Any]]) -> ResponseData:
    """
    Sign a user in.

    Parameters
    ----------
    payload : dict
        Should include ``username`` and ``password``.

    Returns
    -------
    dict
        ``accessToken``, ``idToken`` and ``refreshToken``.
    int
        Status code.
    dict
        Headers to add to the response.

    """
    form = SignInForm(_form_data(payload))
    if not form.validate():
        return _invalid(form)
    try:
        token_set = current_lifecycle().sign_in(form.username.data,
                                                form.password.data)
    except ExternalAuthorityError as e:
        logger.debug('Sign-in failed for %s: %s', form.username.data, e)
        return {'error': str(e)}, status.HTTP_400_BAD_REQUEST, {}
    data = {
        'accessToken': token_set.access_token,
        'idToken': token_set.id_token,
        'refreshToken': token_set.refresh_token
    }
    return data, status.HTTP_200_OK, {}


def sign_out(payload: Optional[Dict[str, Any]]) -> ResponseData:
    """Sign out the holder of an access token, everywhere."""
    form = SignOutForm(_form_data(payload))
    if not form.validate():
        return _invalid(form)
    try:
        current_lifecycle().sign_out(form.accessToken.data)
    except ExternalAuthorityError as e:
        return {'error': str(e)}, status.HTTP_400_BAD_REQUEST, {}
    return {'message': 'User signed out successfully'}, status.HTTP_200_OK, {}


def protected(credential: Optional[str]) -> ResponseData:
    """Greet the holder of a valid, signed-in credential."""
    try:
        claims = guard.current_guard().identify(credential)
    except (MissingCredential, DecodeError, RevokedCredential,
            CredentialStateUnavailable) as e:
        logger.debug('Protected endpoint refused: %s', e)
        return UNAUTHORIZED, status.HTTP_403_FORBIDDEN, {}
    username = claims.get('cognito:username') or claims.get('sub')
    return {
        'message': f'Hello, {username}. '
                   'You have accessed a protected endpoint.'
    }, status.HTTP_200_OK, {}
