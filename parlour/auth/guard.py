"""
Ownership-based authorization of mutating requests.

Anyone holding a credential may create a resource; the resource then records
the creator's subject as its owner. Updates and deletes are allowed only when

1. the presented credential has not been revoked by a sign-out, and
2. it decodes to exactly the subject recorded as the resource's owner.

Revocation is checked first, so a revoked credential is reported as revoked
even when it would also fail the ownership comparison.

Resources created before ownership was recorded have no owner at all. What
happens to those is a matter of policy (see :data:`LEGACY_POLICIES`); the
default, ``locked``, compares against the empty subject, which no decodable
credential carries, so such resources cannot be changed until reseeded.
"""

import logging
from typing import Any, Iterable, Optional, Sequence

from .. import domain
from ..context import get_application_config
from . import ledger as ledger_module
from . import tokens
from .exceptions import CredentialStateUnavailable, MissingCredential, \
    OwnershipMismatch, RevokedCredential

logger = logging.getLogger(__name__)

UNOWNED = ''
"""Owner sentinel for resources that were never tagged."""

LOCKED = 'locked'
OPEN = 'open'
ADMIN = 'admin'
LEGACY_POLICIES = (LOCKED, OPEN, ADMIN)


class OwnershipGuard(object):
    """
    Decides whether a credential may create, update or delete a resource.

    Parameters
    ----------
    ledger : :class:`.RevocationLedger`
    verify_key : str or None
        Passed to the credential decoder; ``None`` decodes without verifying.
    algorithms : list
        Algorithms accepted when ``verify_key`` is set.
    fail_open : bool
        Whether a credential whose revocation state is unknown (ledger down)
        is treated as active (``True``) or refused (``False``).
    legacy_policy : str
        One of :data:`LEGACY_POLICIES`.
    admin_subjects : iterable
        Subjects allowed to change unowned resources under ``admin``.

    """

    def __init__(self, ledger: ledger_module.RevocationLedger,
                 verify_key: Optional[Any] = None,
                 algorithms: Optional[Sequence[str]] = None,
                 fail_open: bool = True,
                 legacy_policy: str = LOCKED,
                 admin_subjects: Iterable[str] = ()) -> None:
        if legacy_policy not in LEGACY_POLICIES:
            raise ValueError(f'Unknown legacy owner policy: {legacy_policy}')
        self.ledger = ledger
        self.verify_key = verify_key
        self.algorithms = algorithms
        self.fail_open = fail_open
        self.legacy_policy = legacy_policy
        self.admin_subjects = frozenset(admin_subjects)

    def decode(self, credential: Optional[str]) -> str:
        """Get the subject of a credential."""
        return tokens.decode_subject(credential, key=self.verify_key,
                                     algorithms=self.algorithms)

    def identify(self, credential: Optional[str]) -> dict:
        """
        Get the claims of a credential that has not been signed out.

        Raises
        ------
        :class:`.MissingCredential`
        :class:`.RevokedCredential`
        :class:`.CredentialStateUnavailable`
            Only when failing closed.
        :class:`.DecodeError`

        """
        if credential is not None:
            credential = tokens.strip_scheme(credential)
        if not credential:
            raise MissingCredential('A credential is required')
        self._check_revocation(credential)
        return tokens.decode_claims(credential, key=self.verify_key,
                                    algorithms=self.algorithms)

    def authorize(self, operation: domain.Operation,
                  credential: Optional[str],
                  owner_subject: Optional[str] = None) -> domain.AuthDecision:
        """
        Authorize ``operation`` for the holder of ``credential``.

        Parameters
        ----------
        operation : :class:`.Operation`
        credential : str or None
            The bearer credential (the ID token), with or without the
            ``Bearer`` prefix.
        owner_subject : str or None
            Owner recorded on the target resource. Ignored for
            :attr:`.Operation.CREATE`.

        Returns
        -------
        :class:`.AuthDecision`
            Carries the decoded subject. On create, the caller must store it
            as the new resource's owner.

        Raises
        ------
        :class:`.MissingCredential`
        :class:`.DecodeError`
        :class:`.RevokedCredential`
            Update/delete only.
        :class:`.CredentialStateUnavailable`
            Update/delete only, when failing closed.
        :class:`.OwnershipMismatch`
            Update/delete only.

        """
        if credential is not None:
            credential = tokens.strip_scheme(credential)
        if not credential:
            logger.debug('No credential presented for %s', operation.value)
            raise MissingCredential('A credential is required')

        if operation is domain.Operation.CREATE:
            subject = self.decode(credential)
            logger.debug('Create allowed for %s', subject)
            return domain.AuthDecision(operation, subject)

        self._check_revocation(credential)
        subject = self.decode(credential)
        if owner_subject is None:
            return self._authorize_unowned(operation, subject)
        if subject != owner_subject:
            logger.debug('%s denied: %s is not the owner (%s)',
                         operation.value, subject, owner_subject)
            raise OwnershipMismatch(subject, owner_subject)
        logger.debug('%s allowed for owner %s', operation.value, subject)
        return domain.AuthDecision(operation, subject)

    def _check_revocation(self, credential: str) -> None:
        state = self.ledger.status(credential)
        if state is domain.RevocationStatus.UNKNOWN:
            logger.warning('Revocation state unknown; failing %s',
                           'open' if self.fail_open else 'closed')
            if self.fail_open:
                return
            raise CredentialStateUnavailable('Revocation state is unknown')
        if state is domain.RevocationStatus.REVOKED:
            logger.debug('Credential has been revoked')
            raise RevokedCredential('Credential has been revoked')

    def _authorize_unowned(self, operation: domain.Operation,
                           subject: str) -> domain.AuthDecision:
        if self.legacy_policy == OPEN:
            logger.debug('%s allowed on unowned resource', operation.value)
            return domain.AuthDecision(operation, subject)
        if self.legacy_policy == ADMIN and subject in self.admin_subjects:
            logger.debug('%s allowed on unowned resource for admin %s',
                         operation.value, subject)
            return domain.AuthDecision(operation, subject)
        logger.debug('%s denied on unowned resource', operation.value)
        raise OwnershipMismatch(subject, UNOWNED)


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('CREDENTIAL_VERIFY_KEY', None)
    config.setdefault('CREDENTIAL_ALGORITHMS', 'RS256')
    config.setdefault('REVOCATION_FAIL_OPEN', True)
    config.setdefault('LEGACY_OWNER_POLICY', LOCKED)
    config.setdefault('ADMIN_SUBJECTS', '')


def _split(value: Any) -> list:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(',') if part.strip()]
    return list(value)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ('1', 'true', 'yes')
    return bool(value)


def current_guard() -> OwnershipGuard:
    """Create an :class:`.OwnershipGuard` from the application config."""
    config = get_application_config()
    return OwnershipGuard(
        ledger_module.current_ledger(),
        verify_key=config.get('CREDENTIAL_VERIFY_KEY') or None,
        algorithms=_split(config.get('CREDENTIAL_ALGORITHMS', 'RS256')),
        fail_open=_flag(config.get('REVOCATION_FAIL_OPEN', True)),
        legacy_policy=config.get('LEGACY_OWNER_POLICY', LOCKED),
        admin_subjects=_split(config.get('ADMIN_SUBJECTS', ''))
    )
