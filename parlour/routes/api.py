"""Provides the JSON API: authentication, stock and customers."""

import logging
from typing import Any

from flask import Blueprint, Response, jsonify, make_response, request

from .. import domain, status
from ..auth.decorators import guarded
from ..controllers import authentication, customers, stock

logger = logging.getLogger(__name__)

blueprint = Blueprint('api', __name__, url_prefix='')


def _respond(data: dict, code: int, headers: dict) -> Response:
    response: Response = make_response(jsonify(data), code, headers)
    return response


def _payload() -> Any:
    return request.get_json(silent=True)


@blueprint.route('/status', methods=['GET'])
def service_status() -> Response:
    """Health check endpoint."""
    return _respond({'status': 'OK'}, status.HTTP_200_OK, {})


@blueprint.route('/auth/register', methods=['POST'])
def register() -> Response:
    """Register a new user."""
    return _respond(*authentication.register(_payload()))


@blueprint.route('/auth/confirm', methods=['POST'])
def confirm() -> Response:
    """Confirm a registration."""
    return _respond(*authentication.confirm(_payload()))


@blueprint.route('/auth/signin', methods=['POST'])
def sign_in() -> Response:
    """Sign in, getting a set of credentials."""
    return _respond(*authentication.sign_in(_payload()))


@blueprint.route('/auth/signout', methods=['POST'])
def sign_out() -> Response:
    """Sign out everywhere."""
    return _respond(*authentication.sign_out(_payload()))


@blueprint.route('/auth/protected', methods=['GET'])
def protected() -> Response:
    """An endpoint that greets signed-in users."""
    credential = request.headers.get('Authorization')
    return _respond(*authentication.protected(credential))


@blueprint.route('/stock', methods=['GET'])
def list_stock() -> Response:
    """List every ice cream."""
    return _respond(*stock.list_stock())


@blueprint.route('/stock', methods=['POST'])
@guarded(domain.Operation.CREATE)
def add_stock() -> Response:
    """Add an ice cream, owned by the requester."""
    return _respond(*stock.add_stock(_payload(), request.auth.subject))


@blueprint.route('/stock/<int:ice_cream_id>', methods=['GET'])
def get_stock(ice_cream_id: int) -> Response:
    """Get an ice cream."""
    return _respond(*stock.get_stock(ice_cream_id))


@blueprint.route('/stock/<int:ice_cream_id>', methods=['PUT'])
@guarded(domain.Operation.UPDATE, owner_of=stock.stock_owner)
def update_stock(ice_cream_id: int) -> Response:
    """Change an ice cream. Only its owner may do this."""
    return _respond(*stock.update_stock(ice_cream_id, _payload()))


@blueprint.route('/stock/<int:ice_cream_id>', methods=['DELETE'])
@guarded(domain.Operation.DELETE, owner_of=stock.stock_owner)
def delete_stock(ice_cream_id: int) -> Response:
    """Remove an ice cream. Only its owner may do this."""
    return _respond(*stock.delete_stock(ice_cream_id))


@blueprint.route('/customer', methods=['GET'])
def list_customers() -> Response:
    """List every customer."""
    return _respond(*customers.list_customers())


@blueprint.route('/customer', methods=['POST'])
@guarded(domain.Operation.CREATE)
def add_customer() -> Response:
    """Add a customer, owned by the requester."""
    return _respond(*customers.add_customer(_payload(), request.auth.subject))


@blueprint.route('/customer/<int:customer_id>/<name>', methods=['GET'])
def get_customer(customer_id: int, name: str) -> Response:
    """Get a customer."""
    return _respond(*customers.get_customer(customer_id, name))


@blueprint.route('/customer/<int:customer_id>/<name>', methods=['PUT'])
@guarded(domain.Operation.UPDATE, owner_of=customers.customer_owner)
def update_customer(customer_id: int, name: str) -> Response:
    """Change a customer. Only its owner may do this."""
    return _respond(*customers.update_customer(customer_id, name,
                                               _payload()))


@blueprint.route('/customer/<int:customer_id>/<name>', methods=['DELETE'])
@guarded(domain.Operation.DELETE, owner_of=customers.customer_owner)
def delete_customer(customer_id: int, name: str) -> Response:
    """Remove a customer. Only its owner may do this."""
    return _respond(*customers.delete_customer(customer_id, name))
