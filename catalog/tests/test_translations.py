from django.test import SimpleTestCase

from catalog.translations import (
    PAYMENT_METHOD_FIELDS,
    PROGRAM_FIELDS,
    CanonicalShape,
    LegacyShape,
    classify,
    normalize,
)


class ClassifyTests(SimpleTestCase):
    def test_flat_document_is_legacy(self):
        shape = classify({'id': 'p1', 'label': 'Quran'}, 'id', PROGRAM_FIELDS)
        self.assertIsInstance(shape, LegacyShape)
        self.assertEqual(shape.flat, {'label': 'Quran'})

    def test_translations_map_is_canonical(self):
        shape = classify({'id': 'p1', 'translations': {'am': {'label': 'ቁርአን'}}}, 'id', PROGRAM_FIELDS)
        self.assertIsInstance(shape, CanonicalShape)
        self.assertIn('am', shape.translations)


class NormalizeTests(SimpleTestCase):
    def test_flat_label_becomes_default_label(self):
        with self.assertLogs('catalog.translations', level='WARNING') as logs:
            rec = normalize({'id': 'p1', 'label': 'Flat Label', 'price': 10}, 'id')
        self.assertEqual(rec.translations['en']['label'], 'Flat Label')
        self.assertEqual(rec.translations['en']['description'], '')
        self.assertEqual(rec.translations['en']['termsAndConditions'], '')
        self.assertEqual(rec.attributes, {'price': 10})
        self.assertTrue(any('p1' in line for line in logs.output))

    def test_missing_label_falls_back_to_id(self):
        with self.assertLogs('catalog.translations', level='WARNING'):
            rec = normalize({'id': 'quran_kids_1'}, 'id')
        self.assertEqual(rec.translations['en']['label'], 'quran_kids_1')

    def test_doc_id_used_when_body_has_no_id(self):
        with self.assertLogs('catalog.translations', level='WARNING'):
            rec = normalize({'label': 'Daycare'}, 'id', doc_id='daycare_a')
        self.assertEqual(rec.record_id, 'daycare_a')
        self.assertEqual(rec.to_document()['id'], 'daycare_a')

    def test_partial_default_locale_is_completed(self):
        raw = {
            'id': 'p2',
            'description': 'Flat description',
            'translations': {'en': {'label': 'Arabic for Women'}},
        }
        with self.assertLogs('catalog.translations', level='WARNING'):
            rec = normalize(raw, 'id')
        self.assertEqual(rec.translations['en']['label'], 'Arabic for Women')
        self.assertEqual(rec.translations['en']['description'], 'Flat description')
        self.assertEqual(rec.translations['en']['termsAndConditions'], '')

    def test_secondary_locales_are_copied_not_synthesized(self):
        raw = {
            'id': 'p3',
            'translations': {
                'en': {'label': 'Daycare', 'description': 'd', 'termsAndConditions': 't'},
                'ar': {'label': 'حضانة'},
            },
        }
        with self.assertNoLogs('catalog.translations', level='WARNING'):
            rec = normalize(raw, 'id')
        self.assertEqual(rec.translations['ar'], {'label': 'حضانة'})
        self.assertNotIn('am', rec.translations)
        self.assertEqual(rec.localized('am')['label'], 'Daycare')
        self.assertEqual(rec.text('description', 'ar'), 'd')

    def test_payment_method_optional_fields_default_to_none(self):
        with self.assertLogs('catalog.translations', level='WARNING'):
            rec = normalize({'value': 'cbe', 'label': 'CBE'}, 'value', spec=PAYMENT_METHOD_FIELDS)
        content = rec.translations['en']
        self.assertEqual(content['label'], 'CBE')
        self.assertIsNone(content['accountName'])
        self.assertIsNone(content['additionalInstructions'])

    def test_normalizing_a_canonical_record_is_idempotent(self):
        raws = [
            ({'id': 'p1', 'label': 'Flat', 'price': 5, 'category': 'daycare'}, 'id', PROGRAM_FIELDS),
            ({'id': 'p2'}, 'id', PROGRAM_FIELDS),
            ({'value': 'telebirr', 'label': 'Telebirr', 'accountNumber': '0911'}, 'value', PAYMENT_METHOD_FIELDS),
            ({'value': 'cbe', 'translations': {'en': {'label': 'CBE', 'accountName': 'School'}, 'am': {'label': 'ንግድ ባንክ'}}},
             'value', PAYMENT_METHOD_FIELDS),
        ]
        for raw, id_field, spec in raws:
            with self.subTest(raw=raw):
                first = normalize(raw, id_field, spec=spec)
                with self.assertNoLogs('catalog.translations', level='WARNING'):
                    second = normalize(first.to_document(), id_field, spec=spec)
                self.assertEqual(first, second)
