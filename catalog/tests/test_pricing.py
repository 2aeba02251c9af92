from django.test import Client, SimpleTestCase, TestCase

from catalog.pricing import compute_price
from catalog.reference import get_catalog


class ComputePriceTests(SimpleTestCase):
    def setUp(self):
        self.catalog = get_catalog()

    def test_base_price_plus_selected_courses(self):
        price = compute_price(self.catalog, 'high_school', 'grade_9', ['math_9', 'science_9'])
        self.assertEqual(price, 1220)

    def test_program_without_courses_is_base_price(self):
        self.assertEqual(compute_price(self.catalog, 'university', 'computer_science', []), 5000)

    def test_unset_or_unknown_program_is_zero(self):
        self.assertEqual(compute_price(self.catalog, None, None, []), 0)
        self.assertEqual(compute_price(self.catalog, 'high_school', None, ['math_9']), 0)
        self.assertEqual(compute_price(self.catalog, 'high_school', 'computer_science', []), 0)
        self.assertEqual(compute_price(self.catalog, 'kindergarten', 'grade_9', ['math_9']), 0)

    def test_unresolved_courses_add_nothing(self):
        price = compute_price(self.catalog, 'high_school', 'grade_9', ['math_9', 'art_101'])
        self.assertEqual(price, 1100)

    def test_duplicate_course_ids_count_once(self):
        price = compute_price(self.catalog, 'high_school', 'grade_9', ['english_9', 'english_9'])
        self.assertEqual(price, 1090)


class CatalogApiTests(TestCase):
    def setUp(self):
        self.client = Client()

    def test_levels_endpoint(self):
        resp = self.client.get('/api/catalog/levels')
        self.assertEqual(resp.status_code, 200)
        levels = {lvl['value']: lvl for lvl in resp.json()['levels']}
        self.assertIn('high_school', levels)
        courses = levels['high_school']['programs'][0]['courses']
        self.assertEqual([c['value'] for c in courses], ['math_9', 'science_9', 'english_9'])

    def test_quote_endpoint(self):
        resp = self.client.post(
            '/api/catalog/quote',
            data={'school_level': 'high_school', 'program': 'grade_9', 'selected_courses': ['math_9', 'science_9']},
            content_type='application/json',
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['calculated_price'], 1220)

    def test_quote_rejects_non_list_courses(self):
        resp = self.client.post(
            '/api/catalog/quote',
            data={'school_level': 'high_school', 'program': 'grade_9', 'selected_courses': 'math_9'},
            content_type='application/json',
        )
        self.assertEqual(resp.status_code, 400)
        data = resp.json()
        self.assertEqual(data.get('code'), 'validation_error')
        self.assertIn('selected_courses', data.get('fields') or {})
