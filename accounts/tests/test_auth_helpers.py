from unittest.mock import patch

from django.test import RequestFactory, TestCase, override_settings

from accounts.auth import get_bearer_token, is_admin_claims
from utils.drf_auth import optional_firebase_identity


class AdminClaimsTests(TestCase):
    @override_settings(ADMIN_EMAIL='Admin@School.org')
    def test_email_comparison_ignores_case_and_spaces(self):
        self.assertTrue(is_admin_claims({'email': ' admin@school.org '}))
        self.assertFalse(is_admin_claims({'email': 'someone@school.org'}))
        self.assertFalse(is_admin_claims({}))
        self.assertFalse(is_admin_claims(None))

    @override_settings(ADMIN_EMAIL='')
    def test_no_admin_configured_denies_everyone(self):
        self.assertFalse(is_admin_claims({'email': 'admin@school.org'}))


class BearerTokenTests(TestCase):
    def setUp(self):
        self.rf = RequestFactory()

    def test_header_token(self):
        req = self.rf.get('/api/auth/me/', HTTP_AUTHORIZATION='Bearer abc.def')
        self.assertEqual(get_bearer_token(req), 'abc.def')

    @override_settings(DEBUG=False)
    def test_query_token_ignored_outside_debug(self):
        req = self.rf.get('/api/auth/me/?token=abc')
        self.assertEqual(get_bearer_token(req), '')

    def test_optional_identity(self):
        self.assertIsNone(optional_firebase_identity(self.rf.get('/')))
        req = self.rf.get('/', HTTP_AUTHORIZATION='Bearer bad')
        with patch('utils.drf_auth.verify_firebase_id_token') as mock_verify:
            mock_verify.return_value = (None, 'Invalid token', 401)
            self.assertIsNone(optional_firebase_identity(req))
        identity = optional_firebase_identity(self.rf.get('/', HTTP_AUTHORIZATION='Bearer t'))
        self.assertEqual(identity.uid, 'test-user')
        self.assertEqual(identity.email, 'test@example.com')


class MeEndpointTests(TestCase):
    def test_missing_token_returns_401(self):
        res = self.client.get('/api/auth/me/')
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()['code'], 'not_authenticated')

    def test_invalid_token_returns_401(self):
        with patch('utils.drf_auth.verify_firebase_id_token') as mock_verify:
            mock_verify.return_value = (None, 'Invalid token', 401)
            res = self.client.get('/api/auth/me/', HTTP_AUTHORIZATION='Bearer bad')
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()['detail'], 'Invalid token')

    def test_firebase_unavailable_returns_503(self):
        with patch('utils.drf_auth.verify_firebase_id_token') as mock_verify:
            mock_verify.return_value = (None, 'Firebase admin not initialized', 503)
            res = self.client.get('/api/auth/me/', HTTP_AUTHORIZATION='Bearer t')
        self.assertEqual(res.status_code, 503)
        self.assertEqual(res.json()['code'], 'firebase_unavailable')

    @override_settings(ADMIN_EMAIL='test@example.com')
    def test_admin_identity(self):
        res = self.client.get('/api/auth/me/', HTTP_AUTHORIZATION='Bearer t')
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {
            'uid': 'test-user',
            'email': 'test@example.com',
            'name': 'Test User',
            'is_admin': True,
        })

    @override_settings(ADMIN_EMAIL='owner@example.com')
    def test_non_admin_identity(self):
        with self.assertLogs('accounts.views', level='INFO'):
            res = self.client.get('/api/auth/me/', HTTP_AUTHORIZATION='Bearer t')
        self.assertFalse(res.json()['is_admin'])
