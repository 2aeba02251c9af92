from django.test import TestCase, override_settings

from documents.store import COUPONS, PROGRAMS, REGISTRATIONS, InMemoryDocumentStore, set_document_store


AUTH = {'HTTP_AUTHORIZATION': 'Bearer test-token'}

PROGRAM = {
    'id': 'quran_kids',
    'price': 150,
    'category': 'quran_kids',
    'is_child_program': True,
    'translations': {
        'en': {'label': 'Quran for Kids', 'description': 'Weekend classes'},
        'ar': {'label': 'القرآن للأطفال'},
    },
}


@override_settings(ADMIN_EMAIL='test@example.com')
class AdminApiTests(TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        set_document_store(self.store)

    def tearDown(self):
        set_document_store(None)

    def _send(self, method, url, data=None, **extra):
        fn = getattr(self.client, method)
        return fn(url, data or {}, content_type='application/json', **{**AUTH, **extra})

    def test_requires_token(self):
        res = self.client.get('/api/admin/dashboard')
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()['code'], 'not_authenticated')

    @override_settings(ADMIN_EMAIL='owner@example.com')
    def test_other_identity_is_denied(self):
        res = self.client.get('/api/admin/dashboard', **AUTH)
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()['code'], 'access_denied')

    def test_dashboard_payload(self):
        self.store.set(REGISTRATIONS, 'r1', {
            'registrationDate': '2024-05-01T08:00:00Z',
            'paymentVerified': True,
            'studentInfo': {'fullName': 'Amina Ali', 'gender': 'female'},
            'programSelection': {'schoolLevel': 'high_school', 'program': 'grade_9'},
            'calculatedPrice': 1220,
        })
        res = self.client.get('/api/admin/dashboard', **AUTH)
        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertEqual([r['id'] for r in data['registrations']], ['r1'])
        self.assertEqual(data['stats']['total_registrations'], 1)
        self.assertEqual(data['stats']['gender']['female'], 1)
        self.assertEqual(data['stats']['program_counts'][0]['label'], 'Grade 9')

    def test_create_program_returns_full_payload(self):
        res = self._send('post', '/api/admin/programs', PROGRAM)
        self.assertEqual(res.status_code, 201)
        data = res.json()
        self.assertEqual([p['id'] for p in data['programs']], ['quran_kids'])
        self.assertIn('stats', data)
        stored = self.store.get(PROGRAMS, 'quran_kids')
        self.assertEqual(stored['translations']['en']['termsAndConditions'], '')
        self.assertEqual(stored['translations']['ar']['label'], 'القرآن للأطفال')

        res = self._send('post', '/api/admin/programs', PROGRAM)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.json()['code'], 'already_exists')

    def test_program_validation(self):
        bad = {**PROGRAM, 'id': 'has space', 'translations': {'ar': {'label': 'x'}}}
        res = self._send('post', '/api/admin/programs', bad)
        self.assertEqual(res.status_code, 400)
        fields = res.json()['fields']
        self.assertIn('id', fields)
        self.assertIn('translations', fields)

    def test_update_and_delete_program(self):
        self._send('post', '/api/admin/programs', PROGRAM)
        res = self._send('put', '/api/admin/programs/quran_kids', {**PROGRAM, 'price': 175})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()['programs'][0]['price'], 175)
        res = self._send('delete', '/api/admin/programs/quran_kids')
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()['programs'], [])
        res = self._send('delete', '/api/admin/programs/quran_kids')
        self.assertEqual(res.status_code, 404)

    def test_payment_method_lifecycle(self):
        payload = {
            'value': 'cbe',
            'account_number': '1000123',
            'translations': {'en': {'label': 'CBE', 'account_name': 'Al-Noor School'}},
        }
        res = self._send('post', '/api/admin/payment-methods', payload)
        self.assertEqual(res.status_code, 201)
        method = res.json()['payment_methods'][0]
        self.assertEqual(method['account_name'], 'Al-Noor School')
        self.assertEqual(method['account_number'], '1000123')
        res = self._send('delete', '/api/admin/payment-methods/cbe')
        self.assertEqual(res.json()['payment_methods'], [])

    def test_coupon_rules(self):
        res = self._send('post', '/api/admin/coupons', {
            'id': 'welcome_10', 'coupon_code': 'WELCOME10', 'discount_type': 'percentage', 'discount_value': 10,
        })
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()['coupons'][0]['coupon_code'], 'WELCOME10')
        self.assertEqual(self.store.get(COUPONS, 'welcome_10')['discountValue'], 10)

        res = self._send('post', '/api/admin/coupons', {
            'id': 'too_much', 'coupon_code': 'X', 'discount_type': 'percentage', 'discount_value': 150,
        })
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['code'], 'validation_error')
        self.assertIn('discount_value', res.json()['fields'])

        res = self._send('post', '/api/admin/coupons', {
            'id': 'flat_off', 'coupon_code': 'FLAT', 'discount_type': 'fixed_amount', 'discount_value': 150,
        })
        self.assertEqual(res.status_code, 201)

    def test_registration_verification_override(self):
        self.store.set(REGISTRATIONS, 'r1', {
            'registrationDate': '2024-05-01T08:00:00Z',
            'paymentVerified': False,
            'paymentVerificationDetails': {'isValid': False, 'reason': 'Amount mismatch'},
        })
        res = self._send('patch', '/api/admin/registrations/r1', {
            'payment_verified': True,
            'payment_verification_details': {'isValid': True, 'message': 'Checked by hand'},
        })
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()['stats']['verified_registrations'], 1)
        doc = self.store.get(REGISTRATIONS, 'r1')
        self.assertEqual(doc['paymentVerificationDetails'], {'isValid': True, 'message': 'Checked by hand'})

        res = self._send('patch', '/api/admin/registrations/r1', {})
        self.assertEqual(res.status_code, 400)

        res = self._send('delete', '/api/admin/registrations/r1')
        self.assertEqual(res.json()['registrations'], [])
        self.assertEqual(self._send('delete', '/api/admin/registrations/r1').status_code, 404)
