"""Flask configuration."""

import os

VERSION = '0.3.0'

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))
LOG_JSON = os.environ.get('LOG_JSON', '0') == '1'

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_FAKE = os.environ.get('REDIS_FAKE', '0') == '1'
"""Use an in-process fake Redis server (local development and tests)."""

LEDGER_TABLE = os.environ.get('LEDGER_TABLE', 'credentials')
CUSTOMER_TABLE = os.environ.get('CUSTOMER_TABLE', 'customer')
STOCK_TABLE = os.environ.get('STOCK_TABLE', 'stock')

AWS_REGION = os.environ.get('AWS_REGION', 'eu-west-1')
COGNITO_CLIENT_ID = os.environ.get('COGNITO_CLIENT_ID', '')
COGNITO_ENDPOINT_URL = os.environ.get('COGNITO_ENDPOINT_URL')

CREDENTIAL_VERIFY_KEY = os.environ.get('CREDENTIAL_VERIFY_KEY')
"""
Key used to verify bearer credentials.

When unset, credentials are decoded without signature verification and the
identity authority is trusted to have issued them.
"""

CREDENTIAL_ALGORITHMS = os.environ.get('CREDENTIAL_ALGORITHMS', 'RS256')

REVOCATION_FAIL_OPEN = os.environ.get('REVOCATION_FAIL_OPEN', '1') == '1'
"""Treat credentials as active when the ledger cannot be read."""

LEGACY_OWNER_POLICY = os.environ.get('LEGACY_OWNER_POLICY', 'locked')
"""
How to treat records that carry no owner: ``locked``, ``open`` or ``admin``.
"""

ADMIN_SUBJECTS = os.environ.get('ADMIN_SUBJECTS', '')
"""Comma-separated subjects allowed to modify unowned records (``admin``)."""
