import json
from unittest.mock import patch

from django.test import SimpleTestCase
from django.urls import reverse

from .services.base import EngineOverloaded
from .services.execute.service import SERVICE_OVERBURDEN_MESSAGE
from .services.rendering import TemplateEngine


class HomeViewTest(SimpleTestCase):
    def test_home_returns_200(self):
        """Test that the form page loads."""
        response = self.client.get(reverse('onlinetester:home'))
        self.assertEqual(response.status_code, 200)

    def test_home_uses_correct_template(self):
        """Test that the form page uses its template."""
        response = self.client.get(reverse('onlinetester:home'))
        self.assertTemplateUsed(response, 'onlinetester/home.html')

    def test_home_context_contains_setting_values(self):
        """Test that the allowed values and defaults are in the context."""
        response = self.client.get(reverse('onlinetester:home'))
        self.assertIn('output_formats', response.context)
        self.assertIn('locales', response.context)
        self.assertIn('time_zones', response.context)
        self.assertEqual(response.context['default_time_zone'], 'America/Los_Angeles')

    def test_home_points_form_at_api(self):
        """Test that the form posts to the execute API."""
        response = self.client.get(reverse('onlinetester:home'))
        self.assertContains(response, reverse('onlinetester:api-execute'))


class ExecuteApiTest(SimpleTestCase):
    def post(self, payload):
        return self.client.post(
            reverse('onlinetester:api-execute'),
            data=json.dumps(payload),
            content_type='application/json',
        )

    def test_hello_world(self):
        """Test a successful render with default settings."""
        response = self.post({'template': 'Hello ${name}', 'dataModel': 'name: "World"'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {'result': 'Hello World', 'truncatedResult': False, 'problems': []},
        )

    def test_explicit_settings(self):
        """Test a render with explicit format, locale and time zone."""
        response = self.post({
            'template': '<p>${n}</p>',
            'dataModel': 'n = 1234567',
            'outputFormat': 'HTML',
            'locale': 'de',
            'timeZone': 'Europe/Berlin',
        })
        self.assertEqual(response.json()['result'], '<p>1.234.567</p>')

    def test_blank_settings_use_defaults(self):
        """Test that empty, blank and null settings use the defaults."""
        response = self.post({
            'template': 'x',
            'dataModel': '',
            'outputFormat': '',
            'locale': ' ',
            'timeZone': None,
        })
        self.assertEqual(response.json(), {'result': 'x', 'truncatedResult': False, 'problems': []})

    def test_unknown_output_format(self):
        """Test the problem list for an unknown output format."""
        response = self.post({
            'template': 'Hello ${name}',
            'dataModel': 'name: "World"',
            'outputFormat': 'bogus',
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {'problems': [{'field': 'OUTPUT_FORMAT', 'message': 'Unknown output format: bogus'}]},
        )

    def test_several_problems_in_field_order(self):
        """Test that several problems come back in field order."""
        response = self.post({
            'template': 'x' * 10_001,
            'dataModel': 'a = 1',
            'locale': 'xx_YY',
            'timeZone': 'Mars/Base',
        })
        fields = [problem['field'] for problem in response.json()['problems']]
        self.assertEqual(fields, ['TEMPLATE', 'LOCALE', 'TIME_ZONE'])

    def test_data_model_problem(self):
        """Test that a data model syntax error is a DATA_MODEL problem."""
        response = self.post({'template': 'x', 'dataModel': 'no assignment here'})
        problem = response.json()['problems'][0]
        self.assertEqual(problem['field'], 'DATA_MODEL')
        self.assertTrue(problem['message'].startswith('Failed to parse data model:'))

    def test_impossible_date_is_data_model_problem(self):
        """Test that an impossible date gives a problem list, not a server error."""
        response = self.post({'template': '${d}', 'dataModel': 'd = 2024-02-30'})
        self.assertEqual(response.status_code, 200)
        problems = response.json()['problems']
        self.assertEqual([problem['field'] for problem in problems], ['DATA_MODEL'])
        self.assertIn('Invalid value for "d"', problems[0]['message'])

    def test_undefined_variable_is_template_problem(self):
        """Test that an undefined variable is a TEMPLATE problem."""
        response = self.post({'template': 'Hello ${missing}', 'dataModel': 'name: "World"'})
        self.assertEqual(response.status_code, 200)
        problems = response.json()['problems']
        self.assertEqual(len(problems), 1)
        self.assertEqual(problems[0]['field'], 'TEMPLATE')
        self.assertIn("'missing' is undefined", problems[0]['message'])
        self.assertNotIn('result', response.json())

    def test_empty_request(self):
        """Test that blank template and data model give a plain-text 400."""
        response = self.post({'template': '', 'dataModel': '   '})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Empty Template & data')
        self.assertTrue(response['Content-Type'].startswith('text/plain'))

    def test_missing_fields_are_empty_request(self):
        """Test that an empty JSON object is an empty request."""
        response = self.post({})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Empty Template & data')

    def test_engine_overloaded(self):
        """Test that an overloaded engine gives a 500 with the error code."""
        with patch.object(TemplateEngine, 'render', side_effect=EngineOverloaded('All rendering slots are in use.')):
            response = self.post({'template': 'Hello ${name}', 'dataModel': 'name: "World"'})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {'errorCode': 'RENDER_SERVICE_OVERBURDEN', 'message': SERVICE_OVERBURDEN_MESSAGE},
        )

    def test_invalid_json(self):
        """Test that a malformed body is a 400."""
        response = self.client.post(
            reverse('onlinetester:api-execute'), data='{not json', content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Invalid JSON request body')

    def test_non_object_body(self):
        """Test that a JSON body that is not an object is a 400."""
        response = self.post(['template'])
        self.assertEqual(response.status_code, 400)

    def test_non_string_field(self):
        """Test that a non-string field is a 400 naming the field."""
        response = self.post({'template': 42})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Field "template" must be a string')

    def test_get_not_allowed(self):
        """Test that the API only accepts POST."""
        response = self.client.get(reverse('onlinetester:api-execute'))
        self.assertEqual(response.status_code, 405)
