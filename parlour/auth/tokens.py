"""
Decoding of bearer credentials.

Credentials are JWTs issued by the identity authority. By default they are
decoded WITHOUT verifying their signature: the authority is trusted, and this
module only reads the subject claim out of a structurally valid token. This
is a known weakness. Passing a ``key`` verifies the signature instead, which
is stricter: forged or tampered tokens then fail with :class:`DecodeError`.
"""

from typing import Any, Iterable, Optional, Sequence

import jwt

from .exceptions import DecodeError

SCHEME = 'bearer'
SUBJECT_CLAIM = 'sub'


def from_header(value: Optional[str]) -> Optional[str]:
    """
    Get the credential from an ``Authorization`` header value.

    A missing or blank header is the same as no credential at all.
    """
    if value is None:
        return None
    credential = strip_scheme(value)
    return credential or None


def strip_scheme(raw: str) -> str:
    """Remove a leading ``Bearer`` marker, in any letter case."""
    raw = raw.strip()
    parts = raw.split(None, 1)
    if parts and parts[0].lower() == SCHEME:
        return parts[1].strip() if len(parts) > 1 else ''
    return raw


def decode_claims(raw: Optional[str], key: Optional[Any] = None,
                  algorithms: Optional[Sequence[str]] = None) -> dict:
    """
    Decode a credential and return all of its claims.

    Parameters
    ----------
    raw : str
        The credential, optionally prefixed with ``Bearer``.
    key : str or None
        If provided, the signature is verified against this key.
    algorithms : list
        Algorithms accepted when verifying.

    Raises
    ------
    :class:`DecodeError`
        The credential is empty or is not a well-formed token.

    """
    if not raw:
        raise DecodeError('Empty credential')
    token = strip_scheme(raw)
    if not token:
        raise DecodeError('Empty credential')
    try:
        if key is None:
            claims = jwt.decode(token, options={'verify_signature': False})
        else:
            claims = jwt.decode(token, key,
                                algorithms=list(algorithms or ['RS256']),
                                options={'verify_aud': False})
    except jwt.exceptions.InvalidTokenError as e:
        raise DecodeError('Not a valid credential') from e
    if not isinstance(claims, dict):
        raise DecodeError('Credential payload is not a claim set')
    return claims


def decode_subject(raw: Optional[str], key: Optional[Any] = None,
                   algorithms: Optional[Iterable[str]] = None) -> str:
    """Get the subject identity of a credential."""
    claims = decode_claims(raw, key=key,
                           algorithms=list(algorithms) if algorithms else None)
    subject = claims.get(SUBJECT_CLAIM)
    if not isinstance(subject, str) or not subject:
        raise DecodeError('Credential has no subject')
    return subject
