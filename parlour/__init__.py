"""
Ice-cream parlour catalog service.

Exposes customer and stock catalogs over a JSON API. Reads are public; every
create, update or delete passes through the ownership guard
(:mod:`parlour.auth.guard`), which consults the revocation ledger
(:mod:`parlour.auth.ledger`) so that credentials invalidated by an explicit
sign-out can no longer mutate anything, and so that only the holder of the
credential that created a record may change or remove it.

Credentials are issued by an external identity authority (a Cognito user
pool, see :mod:`parlour.services.identity`). This service only consumes
those credentials and asks the authority to revoke them.
"""
