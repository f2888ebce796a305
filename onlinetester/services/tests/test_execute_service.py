"""
Unit tests for the execute pipeline (engine mocked).
"""

from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase

from onlinetester.services.base import EngineOverloaded
from onlinetester.services.execute.schemas import (
    EmptyRequestResponse,
    ErrorCode,
    Field,
    Problem,
    ProblemResponse,
    RawRequest,
    ResultResponse,
    SystemErrorResponse,
)
from onlinetester.services.execute.service import SERVICE_OVERBURDEN_MESSAGE, ExecuteService
from onlinetester.services.rendering import output_formats
from onlinetester.services.rendering.schemas import CauseLink, RenderFailure, RenderSuccess
from onlinetester.services.setting_values import build_setting_values


class ExecuteServiceTestCase(SimpleTestCase):
    def setUp(self):
        self.engine = MagicMock()
        self.engine.render.return_value = RenderSuccess(text='Hello World', truncated=False)
        self.values = build_setting_values()
        self.service = ExecuteService(
            engine=self.engine,
            setting_values=self.values,
            max_template_length=10_000,
            max_data_model_length=10_000,
        )

    def execute(self, **fields):
        return self.service.execute(RawRequest(**fields))


# ---------------------------------------------------------------------------
# Empty request
# ---------------------------------------------------------------------------

class EmptyRequestTest(ExecuteServiceTestCase):
    """Tests for the empty request short circuit."""

    def test_missing_template_and_data_model(self):
        """Test that a request without template and data model is empty."""
        self.assertEqual(self.execute(), EmptyRequestResponse())
        self.engine.render.assert_not_called()

    def test_whitespace_only_template_and_data_model(self):
        """Test that whitespace-only fields count as empty, whatever the settings."""
        response = self.execute(template='  \n', data_model='\t', output_format='bogus')
        self.assertIsInstance(response, EmptyRequestResponse)
        self.engine.render.assert_not_called()

    def test_no_validator_runs(self):
        """Test that validators are skipped for an empty request."""
        with patch('onlinetester.services.execute.service.validate_template') as validate_template, \
                patch('onlinetester.services.execute.service.validate_locale') as validate_locale:
            self.execute(template='', data_model='', locale='bogus')
        validate_template.assert_not_called()
        validate_locale.assert_not_called()

    def test_template_alone_is_not_empty(self):
        """Test that a template without data model is rendered."""
        response = self.execute(template='static text')
        self.assertIsInstance(response, ResultResponse)
        self.engine.render.assert_called_once()
        self.assertEqual(self.engine.render.call_args.args[1], {})

    def test_data_model_alone_is_not_empty(self):
        """Test that a data model without template is rendered."""
        self.execute(data_model='a = 1')
        self.assertEqual(self.engine.render.call_args.args[0], '')


# ---------------------------------------------------------------------------
# Validation problems
# ---------------------------------------------------------------------------

class ValidationProblemTest(ExecuteServiceTestCase):
    """Tests for requests with invalid fields."""

    def test_template_too_long(self):
        """Test that an over-long template is reported and not rendered."""
        response = self.execute(template='x' * 10_001, data_model='a = 1')
        self.assertEqual(len(response.problems), 1)
        self.assertEqual(response.problems[0].field, Field.TEMPLATE)
        self.assertIn('10,000', response.problems[0].message)
        self.engine.render.assert_not_called()

    def test_data_model_too_long(self):
        """Test that an over-long data model is reported and not rendered."""
        response = self.execute(template='x', data_model='a' * 10_001)
        self.assertEqual([p.field for p in response.problems], [Field.DATA_MODEL])
        self.assertIn('10,000', response.problems[0].message)
        self.engine.render.assert_not_called()

    def test_impossible_date_in_data_model(self):
        """Test that an impossible date is a DATA_MODEL problem."""
        response = self.execute(template='${d}', data_model='d = 2024-02-30')
        self.assertEqual([p.field for p in response.problems], [Field.DATA_MODEL])
        self.engine.render.assert_not_called()

    def test_unknown_output_format(self):
        """Test the problem list for an unknown output format."""
        response = self.execute(template='Hello ${name}', data_model='name: "World"', output_format='bogus')
        self.assertEqual(
            response.as_dict(),
            {'problems': [{'field': 'OUTPUT_FORMAT', 'message': 'Unknown output format: bogus'}]},
        )
        self.engine.render.assert_not_called()

    def test_unknown_locale(self):
        """Test the problem for an unknown locale."""
        response = self.execute(template='x', locale='xx_YY')
        self.assertEqual(response.problems, (Problem(Field.LOCALE, 'Unknown locale: xx_YY'),))

    def test_unknown_time_zone(self):
        """Test the problem for an unknown time zone."""
        response = self.execute(template='x', time_zone='Mars/Base')
        self.assertEqual(response.problems, (Problem(Field.TIME_ZONE, 'Unknown time zone: Mars/Base'),))

    def test_all_problems_reported_in_field_order(self):
        """Test that every invalid field is reported, in field order."""
        response = self.execute(
            template='x' * 10_001,
            data_model='not valid',
            output_format='bogus',
            locale='xx_YY',
            time_zone='Mars/Base',
        )
        self.assertEqual(
            [p.field for p in response.problems],
            [Field.TEMPLATE, Field.DATA_MODEL, Field.OUTPUT_FORMAT, Field.LOCALE, Field.TIME_ZONE],
        )
        self.engine.render.assert_not_called()

    def test_problem_response_requires_problems(self):
        """Test that a problem response cannot be empty."""
        with self.assertRaises(ValueError):
            ProblemResponse(())


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class DispatchTest(ExecuteServiceTestCase):
    """Tests for rendering valid requests."""

    def test_success_with_defaults(self):
        """Test that blank settings render with the defaults."""
        response = self.execute(template='Hello ${name}', data_model='name: "World"')
        self.assertEqual(response, ResultResponse(result='Hello World', truncated=False))
        self.assertEqual(
            response.as_dict(),
            {'result': 'Hello World', 'truncatedResult': False, 'problems': []},
        )
        self.engine.render.assert_called_once_with(
            'Hello ${name}',
            {'name': 'World'},
            output_formats.UNDEFINED,
            self.values.default_locale,
            self.values.default_time_zone,
        )

    def test_resolved_settings_are_passed_to_engine(self):
        """Test that explicit settings reach the engine resolved."""
        self.execute(template='x', output_format='HTML', locale='de', time_zone='Europe/Berlin')
        args = self.engine.render.call_args.args
        self.assertIs(args[2], output_formats.HTML)
        self.assertEqual(args[3].name, 'de')
        self.assertEqual(args[4].key, 'Europe/Berlin')

    def test_truncated_flag_is_carried(self):
        """Test that the truncation flag reaches the response."""
        self.engine.render.return_value = RenderSuccess(text='abc', truncated=True)
        response = self.execute(template='x')
        self.assertEqual(response.as_dict(), {'result': 'abc', 'truncatedResult': True, 'problems': []})

    def test_content_failure_becomes_template_problem(self):
        """Test that a render failure is one TEMPLATE problem with the flattened chain."""
        self.engine.render.return_value = RenderFailure(causes=(
            CauseLink('UndefinedError', "'name' is undefined (line 1)"),
            CauseLink('KeyError', "'name'"),
        ))
        response = self.execute(template='Hello ${name}')
        self.assertEqual(
            response,
            ProblemResponse((
                Problem(Field.TEMPLATE, "'name' is undefined (line 1)\n\nCaused by KeyError: 'name'"),
            )),
        )

    def test_capacity_rejection(self):
        """Test that an overloaded engine gives the system error response."""
        self.engine.render.side_effect = EngineOverloaded('All rendering slots are in use.')
        response = self.execute(template='Hello ${name}', data_model='name: "World"')
        self.assertEqual(
            response,
            SystemErrorResponse(ErrorCode.RENDER_SERVICE_OVERBURDEN, SERVICE_OVERBURDEN_MESSAGE),
        )
        self.assertEqual(
            response.as_dict(),
            {'errorCode': 'RENDER_SERVICE_OVERBURDEN', 'message': SERVICE_OVERBURDEN_MESSAGE},
        )

    def test_repeated_requests_give_equal_responses(self):
        """Test that the same request gives the same response."""
        first = self.execute(template='Hello ${name}', data_model='name: "World"')
        second = self.execute(template='Hello ${name}', data_model='name: "World"')
        self.assertEqual(first, second)
