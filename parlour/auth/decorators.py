"""
Ownership-based protection of Flask routes.

:func:`guarded` wraps a route that creates, updates or deletes a protected
resource. The credential is read from the ``Authorization`` header
(``Bearer <token>``) and handed to the ownership guard together with the
owner recorded on the target resource. For update and delete, the route
supplies ``owner_of``, a function that receives the route's parameters and
returns the current owner (``None`` for an unowned resource), raising
:class:`werkzeug.exceptions.NotFound` if there is no such resource.

.. code-block:: python

   def stock_owner(ice_cream_id: int) -> Optional[str]:
       record = catalog.stock().get(ice_cream_id=ice_cream_id)
       if record is None:
           raise NotFound('No such item')
       return record.owner_subject


   @blueprint.route('/stock/<int:ice_cream_id>', methods=['PUT'])
   @guarded(domain.Operation.UPDATE, owner_of=stock_owner)
   def update_stock(ice_cream_id: int):
       ...

If the request is authorized, the :class:`.AuthDecision` is attached to the
request as ``request.auth``; on create, its ``subject`` is the owner to
record. Rejections are raised as :class:`Unauthorized` (no credential, a
credential that cannot be decoded, a revoked one, or one whose revocation
state cannot be read while failing closed) or :class:`Forbidden`
(someone else's resource). The descriptions tell these cases apart without
ever naming the resource's owner.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional

from flask import request
from werkzeug.exceptions import Forbidden, Unauthorized

from .. import domain
from . import guard, tokens
from .exceptions import CredentialStateUnavailable, DecodeError, \
    MissingCredential, OwnershipMismatch, RevokedCredential

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL = 'missing credential'
INVALID_CREDENTIAL = 'invalid credential'
REVOKED_CREDENTIAL = 'credential revoked'
STATE_UNAVAILABLE = 'credential state unavailable'
NOT_PERMITTED = 'not permitted'


def guarded(operation: domain.Operation,
            owner_of: Optional[Callable[..., Optional[str]]] = None) \
        -> Callable:
    """
    Generate a decorator that enforces ownership for ``operation``.

    Parameters
    ----------
    operation : :class:`.Operation`
    owner_of : function
        Required for update and delete. Called with the route's arguments;
        returns the owner subject of the target resource.

    Returns
    -------
    function

    """
    if operation is not domain.Operation.CREATE and owner_of is None:
        raise ValueError(f'{operation.value} needs an owner_of function')

    def protector(func: Callable) -> Callable:
        """Decorator that provides ownership enforcement."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            """
            Authorize the request before executing the route.

            Raises
            ------
            :class:`.Unauthorized`
            :class:`.Forbidden`

            """
            credential = tokens.from_header(
                request.headers.get('Authorization')
            )
            owner: Optional[str] = None
            if owner_of is not None:
                owner = owner_of(*args, **kwargs)

            try:
                decision = guard.current_guard().authorize(
                    operation, credential, owner
                )
            except MissingCredential as e:
                raise Unauthorized(MISSING_CREDENTIAL) from e
            except DecodeError as e:
                logger.debug('Credential could not be decoded: %s', e)
                raise Unauthorized(INVALID_CREDENTIAL) from e
            except RevokedCredential as e:
                raise Unauthorized(REVOKED_CREDENTIAL) from e
            except CredentialStateUnavailable as e:
                raise Unauthorized(STATE_UNAVAILABLE) from e
            except OwnershipMismatch as e:
                raise Forbidden(NOT_PERMITTED) from e

            request.auth = decision
            return func(*args, **kwargs)
        return wrapper
    return protector
