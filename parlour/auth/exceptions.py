"""Exceptions raised while authenticating and authorizing requests."""


class MissingCredential(RuntimeError):
    """No credential was presented with a request that requires one."""


class DecodeError(RuntimeError):
    """The presented credential is empty or cannot be decoded."""


class RevokedCredential(RuntimeError):
    """The presented credential was revoked by an explicit sign-out."""


class CredentialStateUnavailable(RuntimeError):
    """Whether the presented credential was revoked cannot be determined."""


class OwnershipMismatch(RuntimeError):
    """
    The caller does not own the resource it is trying to change.

    Both identities are kept for diagnostics. Neither belongs in a response.
    """

    def __init__(self, subject: str, owner: str) -> None:
        super(OwnershipMismatch, self).__init__('Not permitted')
        self.subject = subject
        self.owner = owner


class LedgerUnavailable(RuntimeError):
    """The revocation ledger could not be read or written."""


class ExternalAuthorityError(RuntimeError):
    """The identity authority rejected or failed a request."""
