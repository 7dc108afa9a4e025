"""
Authentication and authorization for mutating requests.

- :mod:`.tokens` decodes bearer credentials into a subject identity.
- :mod:`.ledger` records issued credentials and explicit revocations.
- :mod:`.guard` decides whether a credential may create, update or delete a
  resource.
- :mod:`.lifecycle` signs users in and out against the identity authority,
  keeping the ledger up to date.
- :mod:`.decorators` applies the guard to Flask routes.
"""
