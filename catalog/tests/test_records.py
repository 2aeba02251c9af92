from datetime import datetime, timezone

from django.test import SimpleTestCase

from catalog.records import (
    Coupon,
    PaymentMethod,
    Program,
    coerce_datetime,
    registration_participants,
    serialize_registration,
)


class RecordTests(SimpleTestCase):
    def test_program_public_view_is_localized(self):
        program = Program.from_document({
            'id': 'quran_kids',
            'price': '150',
            'category': 'quran_kids',
            'isChildProgram': True,
            'translations': {
                'en': {'label': 'Quran for Kids', 'description': 'Weekend classes', 'termsAndConditions': 'Terms'},
                'ar': {'label': 'القرآن للأطفال'},
            },
        })
        self.assertEqual(program.price, 150.0)
        self.assertTrue(program.is_child_program)
        public = program.to_public('ar')
        self.assertEqual(public['label'], 'القرآن للأطفال')
        self.assertEqual(public['description'], 'Weekend classes')
        self.assertEqual(program.label('am'), 'Quran for Kids')

    def test_payment_method_account_details(self):
        method = PaymentMethod.from_document(
            {'accountNumber': '1000123', 'translations': {'en': {'label': 'CBE', 'accountName': 'Al-Noor School'}}},
            doc_id='cbe',
        )
        self.assertEqual(method.value, 'cbe')
        self.assertEqual(method.account_name(), 'Al-Noor School')
        self.assertEqual(method.account_number, '1000123')

    def test_coupon_from_document(self):
        coupon = Coupon.from_document({
            'couponCode': 'WELCOME10',
            'discountType': 'percentage',
            'discountValue': 10,
            'expiryDate': '2020-01-01T00:00:00Z',
        }, doc_id='welcome_10')
        self.assertEqual(coupon.id, 'welcome_10')
        self.assertTrue(coupon.is_active)
        self.assertTrue(coupon.is_expired())
        self.assertEqual(coupon.to_document()['couponCode'], 'WELCOME10')

    def test_coerce_datetime_variants(self):
        aware = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)
        self.assertEqual(coerce_datetime(aware), aware)
        self.assertEqual(coerce_datetime('2024-05-01'), datetime(2024, 5, 1, tzinfo=timezone.utc))
        self.assertIsNone(coerce_datetime('not a date'))
        self.assertIsNone(coerce_datetime(None))


class RegistrationShapeTests(SimpleTestCase):
    def test_participants_from_legacy_list(self):
        raw = {
            'participants': [
                {'programId': 'daycare', 'participantInfo': {'gender': 'Female'}},
                {'programId': 'quran_kids', 'participantInfo': {'gender': 'male'}},
                'garbage',
            ],
        }
        participants = registration_participants(raw)
        self.assertEqual([(p.program_id, p.gender) for p in participants],
                         [('daycare', 'female'), ('quran_kids', 'male')])

    def test_participant_from_student_and_selection(self):
        raw = {
            'studentInfo': {'fullName': 'Amina Ali', 'gender': 'female'},
            'programSelection': {'schoolLevel': 'high_school', 'program': 'grade_9'},
        }
        participants = registration_participants(raw)
        self.assertEqual(len(participants), 1)
        self.assertEqual(participants[0].program_id, 'grade_9')

    def test_serialize_registration_falls_back_to_now_for_bad_date(self):
        with self.assertLogs('catalog.records', level='WARNING'):
            row = serialize_registration('r1', {'registrationDate': 'yesterday', 'calculatedPrice': '1220'})
        self.assertEqual(row['id'], 'r1')
        self.assertEqual(row['calculated_price'], 1220.0)
        self.assertTrue(row['registration_date'])
