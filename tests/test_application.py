"""End-to-end tests for the parlour API, through the Flask test client."""

import json
import logging
import os
from typing import Any
from unittest import TestCase, mock

import jsonschema
import jwt
from pythonjsonlogger import jsonlogger

from parlour import domain, status
from parlour.app_logging import setup_logger
from parlour.auth import ledger
from parlour.auth.exceptions import ExternalAuthorityError
from parlour.factory import create_web_app
from parlour.services import catalog, datastore, identity

SECRET = 'a-signing-secret-that-is-long-enough-for-hs256'
SCHEMA_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)),
                           'schema')


def load_schema(name: str) -> dict:
    """Load a JSON schema for API responses."""
    with open(os.path.join(SCHEMA_PATH, f'{name}.json')) as f:
        schema: dict = json.load(f)
    return schema


def id_token(subject: str, username: str) -> str:
    """Generate an ID token like the identity authority would."""
    return jwt.encode({'sub': subject, 'cognito:username': username},
                      SECRET, algorithm='HS256')


def bearer(token: str) -> dict:
    """Generate request headers that present ``token``."""
    return {'Authorization': f'Bearer {token}'}


IT1 = id_token('user-42', 'owner')
IT2 = id_token('user-7', 'someone')


class ApplicationTestCase(TestCase):
    """Runs the app on a fake Redis, with a mock identity authority."""

    def setUp(self) -> None:
        """Initialize the application and get a client for testing."""
        self.app = create_web_app()
        self.app.config['REDIS_FAKE'] = True
        self.app.config['REVOCATION_FAIL_OPEN'] = True
        self.app.config['LEGACY_OWNER_POLICY'] = 'locked'
        self.app.config['CREDENTIAL_VERIFY_KEY'] = None
        self.client = self.app.test_client()

        self.authority = mock.MagicMock()
        self.authority.issue_tokens.side_effect = self._issue
        patcher = mock.patch(f'{identity.__name__}.get_authority',
                             return_value=self.authority)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _issue(self, username: str, password: str) -> domain.TokenSet:
        if username == 'owner':
            return domain.TokenSet('AT1', IT1, 'RT1')
        return domain.TokenSet('AT2', IT2, 'RT2')

    def sign_in(self, username: str) -> Any:
        """Sign in as ``username``."""
        return self.client.post('/auth/signin',
                                json={'username': username, 'password': 'pw'})

    def sign_out(self, access_token: str) -> Any:
        """Sign out the holder of ``access_token``."""
        return self.client.post('/auth/signout',
                                json={'accessToken': access_token})

    def add_mint(self, token: str = IT1) -> Any:
        """Add an ice cream as the holder of ``token``."""
        return self.client.post('/stock', headers=bearer(token),
                                json={'IceCreamID': 7, 'Name': 'Mint',
                                      'Allergens': [], 'Price': 4.5,
                                      'IsStock': True})


class TestOwnershipScenario(ApplicationTestCase):
    """A user creates, changes, signs out, and is then refused."""

    def test_scenario(self):
        """The whole lifecycle of an owned record."""
        response = self.sign_in('owner')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.get_json()['accessToken'], 'AT1')
        self.assertEqual(response.get_json()['idToken'], IT1)

        response = self.add_mint()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get('/stock/7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        jsonschema.validate(response.get_json(), load_schema('stock'))
        self.assertNotIn('user-42', response.get_data(as_text=True))

        response = self.client.put('/stock/7', headers=bearer(IT1),
                                   json={'Price': 5.0})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/stock/7').get_json()['Price'], 5.0)

        response = self.client.put('/stock/7', headers=bearer(IT2),
                                   json={'Price': 0.5})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.get_json(), {'reason': 'not permitted'})
        self.assertNotIn('user-42', response.get_data(as_text=True))

        response = self.sign_out('AT1')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.authority.global_invalidate.assert_called_once_with('AT1')

        response = self.client.put('/stock/7', headers=bearer(IT1),
                                   json={'Price': 5.5})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.get_json(),
                         {'reason': 'credential revoked'})

        response = self.client.delete('/stock/7', headers=bearer(IT1))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(self.client.get('/stock/7').get_json()['Price'], 5.0)

    def test_create_after_sign_out(self):
        """Creating is not gated on revocation."""
        self.sign_in('owner')
        self.sign_out('AT1')
        response = self.add_mint()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_revocation_reported_first(self):
        """A revoked non-owner is told the credential is revoked."""
        self.sign_in('owner')
        self.add_mint()
        self.sign_in('someone')
        self.sign_out('AT2')
        response = self.client.put('/stock/7', headers=bearer(IT2),
                                   json={'Price': 0.5})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.get_json(),
                         {'reason': 'credential revoked'})

    def test_ledger_unreadable_fail_closed(self):
        """Failing closed, an unreadable ledger is not called a revocation."""
        self.app.config['REVOCATION_FAIL_OPEN'] = False
        self.add_mint()
        with mock.patch.object(ledger.RevocationLedger, 'status',
                               return_value=domain.RevocationStatus.UNKNOWN):
            response = self.client.put('/stock/7', headers=bearer(IT1),
                                       json={'Price': 1.0})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.get_json(),
                         {'reason': 'credential state unavailable'})

    def test_owner_deletes(self):
        """The owner may delete, after which the record is gone."""
        self.sign_in('owner')
        self.add_mint()
        response = self.client.delete('/stock/7', headers=bearer(IT1))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/stock/7').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_missing_credential(self):
        """Changing a record needs a credential."""
        self.add_mint()
        response = self.client.put('/stock/7', json={'Price': 1.0})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.get_json(),
                         {'reason': 'missing credential'})

    def test_invalid_credential(self):
        """Changing a record needs a decodable credential."""
        self.add_mint()
        response = self.client.put('/stock/7', headers=bearer('junk'),
                                   json={'Price': 1.0})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.get_json(),
                         {'reason': 'invalid credential'})

    def test_create_without_credential(self):
        """Creating a record needs a credential."""
        response = self.client.post('/stock', json={'IceCreamID': 7,
                                                    'Name': 'Mint'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_existing(self):
        """Someone else cannot take over a record by re-creating it."""
        self.add_mint()
        response = self.add_mint(IT2)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.client.put('/stock/7', headers=bearer(IT1),
                                   json={'Price': 1.0})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_missing_record(self):
        """Changing a record that does not exist."""
        response = self.client.put('/stock/99', headers=bearer(IT1),
                                   json={'Price': 1.0})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete('/customer/99/Nobody',
                                      headers=bearer(IT1))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TestSignOutLedger(ApplicationTestCase):
    """What sign-out leaves in the ledger."""

    def test_sign_out_never_issued(self):
        """Signing out an unknown credential adds nothing to the ledger."""
        response = self.sign_out('never-issued')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        with self.app.app_context():
            self.assertEqual(ledger.current_ledger().table.scan(), [])

    def test_sign_out_twice(self):
        """Signing out twice is harmless."""
        self.sign_in('owner')
        self.assertEqual(self.sign_out('AT1').status_code, status.HTTP_200_OK)
        self.assertEqual(self.sign_out('AT1').status_code, status.HTTP_200_OK)
        with self.app.app_context():
            self.assertTrue(ledger.current_ledger().is_revoked(IT1))

    def test_sign_out_authority_fails(self):
        """The credential is revoked even if the authority call fails."""
        self.sign_in('owner')
        self.add_mint()
        self.authority.global_invalidate.side_effect = \
            ExternalAuthorityError('Access Token has been revoked')
        response = self.sign_out('AT1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.get_json(),
                         {'error': 'Access Token has been revoked'})
        response = self.client.put('/stock/7', headers=bearer(IT1),
                                   json={'Price': 1.0})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_sign_in_refused(self):
        """A refused sign-in records nothing."""
        self.authority.issue_tokens.side_effect = \
            ExternalAuthorityError('Incorrect username or password.')
        response = self.sign_in('owner')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        with self.app.app_context():
            self.assertEqual(ledger.current_ledger().table.scan(), [])


class TestCustomers(ApplicationTestCase):
    """Customers, including seeded ones without an owner."""

    def test_seeded_customers(self):
        """Seeded customers can be read but not changed."""
        result = self.app.test_cli_runner().invoke(args=['seed'])
        self.assertIn('Seeded 4 records', result.output)

        response = self.client.get('/customer/1/Evan%20Hearne')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        jsonschema.validate(response.get_json(), load_schema('customer'))
        self.assertEqual(response.get_json()['FavouriteIcecreams'],
                         [1, 2, 3])

        response = self.client.get('/customer')
        self.assertEqual(len(response.get_json()['customers']), 2)

        response = self.client.put('/customer/1/Evan%20Hearne',
                                   headers=bearer(IT1),
                                   json={'Allergies': ['milk']})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get('/stock')
        self.assertEqual([item['Name'] for item
                          in response.get_json()['stock']],
                         ['Vanilla', 'Chocolate'])

    def test_seed_keeps_owned_records(self):
        """Seeding does not take a record away from the user who added it."""
        response = self.client.post('/stock', headers=bearer(IT1),
                                    json={'IceCreamID': 1, 'Name': 'Pistachio',
                                          'Allergens': ['nuts'], 'Price': 5.0,
                                          'IsStock': True})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        result = self.app.test_cli_runner().invoke(args=['seed'])
        self.assertIn('Seeded 3 records', result.output)

        response = self.client.get('/stock/1')
        self.assertEqual(response.get_json()['Name'], 'Pistachio')

        response = self.client.put('/stock/1', headers=bearer(IT1),
                                   json={'Price': 5.5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.put('/stock/1', headers=bearer(IT2),
                                   json={'Price': 0.5})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_store_down(self):
        """A store failure is reported as a server error."""
        with mock.patch(f'{catalog.__name__}.customers') as mock_customers:
            mock_customers.return_value.list.side_effect = \
                datastore.StoreUnavailable('down')
            response = self.client.get('/customer')
        self.assertEqual(response.status_code,
                         status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn('reason', response.get_json())

    def test_owned_customer(self):
        """A customer belongs to whoever added it."""
        response = self.client.post('/customer', headers=bearer(IT1),
                                    json={'CustomerID': 3, 'Name': 'Cara',
                                          'Allergies': ['nuts'],
                                          'FavouriteIcecreams': [1]})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        jsonschema.validate(response.get_json()['data'],
                            load_schema('customer'))

        response = self.client.put('/customer/3/Cara', headers=bearer(IT1),
                                   json={'Allergies': []})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.get_json()['data']['Allergies'], [])

        response = self.client.delete('/customer/3/Cara',
                                      headers=bearer(IT2))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.delete('/customer/3/Cara',
                                      headers=bearer(IT1))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/customer/3/Cara').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_bad_payload(self):
        """A customer without a name is a bad request."""
        response = self.client.post('/customer', headers=bearer(IT1),
                                    json={'CustomerID': 3})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('reason', response.get_json())


class TestOtherEndpoints(ApplicationTestCase):
    """Registration, the protected greeting, and the health check."""

    def test_status(self):
        """The service reports that it is up."""
        response = self.client.get('/status')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_register(self):
        """Registration is forwarded to the authority."""
        response = self.client.post('/auth/register',
                                    json={'username': 'alice',
                                          'password': 'pw',
                                          'email': 'alice@example.com'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.authority.register.assert_called_once_with(
            'alice', 'pw', 'alice@example.com'
        )

    def test_protected(self):
        """Signed-in users are greeted; signed-out users are not."""
        self.sign_in('owner')
        response = self.client.get('/auth/protected', headers=bearer(IT1))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Hello, owner.', response.get_json()['message'])

        self.sign_out('AT1')
        response = self.client.get('/auth/protected', headers=bearer(IT1))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get('/auth/protected')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_route(self):
        """Errors are rendered as JSON."""
        response = self.client.get('/nothing-here')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('reason', response.get_json())


class TestLogging(TestCase):
    """Structured logging can be switched on."""

    def test_json_logging(self):
        """The root logger gets a JSON formatter."""
        root = logging.getLogger()
        handlers = list(root.handlers)
        level = root.level
        self.addCleanup(setattr, root, 'handlers', handlers)
        self.addCleanup(root.setLevel, level)

        setup_logger(logging.DEBUG)
        added = [h for h in root.handlers if h not in handlers]
        self.assertEqual(len(added), 1)
        self.assertIsInstance(added[0].formatter, jsonlogger.JsonFormatter)
        self.assertEqual(root.level, logging.DEBUG)
