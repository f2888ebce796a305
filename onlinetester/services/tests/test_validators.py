"""
Unit tests for the per-field validators and problem aggregation.
"""

from zoneinfo import ZoneInfo

from django.test import SimpleTestCase

from onlinetester.services.execute.schemas import Field, Problem
from onlinetester.services.execute.validators import (
    DATA_MODEL_ERROR_FOOTER,
    DATA_MODEL_ERROR_HEADING,
    collect_problems,
    is_blank,
    validate_data_model,
    validate_locale,
    validate_output_format,
    validate_template,
    validate_time_zone,
)
from onlinetester.services.rendering import output_formats
from onlinetester.services.setting_values import build_setting_values

BERLIN = ZoneInfo('Europe/Berlin')


class BlankTest(SimpleTestCase):
    """Tests for is_blank."""

    def test_blank_values(self):
        """Test that None, empty and whitespace-only text are blank."""
        for value in (None, '', '   ', '\n\t'):
            self.assertTrue(is_blank(value), repr(value))
        self.assertFalse(is_blank(' x '))


class TemplateValidatorTest(SimpleTestCase):
    """Tests for validate_template."""

    def test_passes_text_through_unchanged(self):
        """Test that the template is not trimmed."""
        self.assertEqual(validate_template('  Hello ${name}  ', 10_000), ('  Hello ${name}  ', None))

    def test_limit_is_inclusive(self):
        """Test that a template of exactly the limit passes."""
        value, problem = validate_template('x' * 10_000, 10_000)
        self.assertIsNone(problem)
        self.assertEqual(len(value), 10_000)

    def test_too_long(self):
        """Test that one character over the limit is a TEMPLATE problem."""
        value, problem = validate_template('x' * 10_001, 10_000)
        self.assertIsNone(value)
        self.assertEqual(
            problem,
            Problem(
                Field.TEMPLATE,
                'The template length has exceeded the 10,000 character limit set for this service.',
            ),
        )

    def test_missing_template_is_empty(self):
        """Test that a missing template becomes an empty one."""
        self.assertEqual(validate_template(None, 10_000), ('', None))


class DataModelValidatorTest(SimpleTestCase):
    """Tests for validate_data_model."""

    def test_parses_data_model(self):
        """Test that a valid data model is parsed."""
        self.assertEqual(validate_data_model('name: "World"', 10_000, BERLIN), ({'name': 'World'}, None))

    def test_missing_data_model_is_empty(self):
        """Test that a missing data model yields no variables."""
        self.assertEqual(validate_data_model(None, 10_000, BERLIN), ({}, None))

    def test_too_long(self):
        """Test that an over-long data model is a DATA_MODEL problem."""
        value, problem = validate_data_model('x' * 10_001, 10_000, BERLIN)
        self.assertIsNone(value)
        self.assertEqual(problem.field, Field.DATA_MODEL)
        self.assertEqual(
            problem.message,
            'The data model length has exceeded the 10,000 character limit set for this service.',
        )

    def test_parse_error_is_decorated(self):
        """Test that parse errors get the heading and footer."""
        value, problem = validate_data_model('not an assignment', 10_000, BERLIN)
        self.assertIsNone(value)
        self.assertEqual(problem.field, Field.DATA_MODEL)
        self.assertTrue(problem.message.startswith(DATA_MODEL_ERROR_HEADING + '\n\nLine 1:'))
        self.assertTrue(problem.message.endswith('\n\n' + DATA_MODEL_ERROR_FOOTER))

    def test_impossible_date_is_problem(self):
        """Test that an impossible date becomes a DATA_MODEL problem, not an exception."""
        value, problem = validate_data_model('d = 2024-13-45', 10_000, ZoneInfo('UTC'))
        self.assertIsNone(value)
        self.assertEqual(problem.field, Field.DATA_MODEL)
        self.assertTrue(
            problem.message.startswith(DATA_MODEL_ERROR_HEADING + '\n\nLine 1: Invalid value for "d":')
        )
        self.assertTrue(problem.message.endswith(DATA_MODEL_ERROR_FOOTER))


class SettingValidatorsTest(SimpleTestCase):
    """Tests for the output format, locale and time zone validators."""

    def setUp(self):
        self.values = build_setting_values()

    def test_blank_settings_use_defaults(self):
        """Test that blank settings resolve to the defaults."""
        for raw in (None, '', '  '):
            self.assertEqual(validate_output_format(raw, self.values), (self.values.default_output_format, None))
            self.assertEqual(validate_locale(raw, self.values), (self.values.default_locale, None))
            self.assertEqual(validate_time_zone(raw, self.values), (self.values.default_time_zone, None))

    def test_known_tokens_resolve(self):
        """Test that known tokens resolve to their values."""
        self.assertEqual(validate_output_format('HTML', self.values), (output_formats.HTML, None))
        self.assertEqual(validate_locale('de', self.values)[0].name, 'de')
        self.assertEqual(validate_time_zone('Europe/Berlin', self.values), (BERLIN, None))

    def test_unknown_output_format(self):
        """Test the unknown output format message."""
        self.assertEqual(
            validate_output_format('bogus', self.values),
            (None, Problem(Field.OUTPUT_FORMAT, 'Unknown output format: bogus')),
        )

    def test_unknown_locale(self):
        """Test the unknown locale message."""
        self.assertEqual(
            validate_locale('xx_YY', self.values),
            (None, Problem(Field.LOCALE, 'Unknown locale: xx_YY')),
        )

    def test_unknown_time_zone_keeps_token_verbatim(self):
        """Test that the unknown token is echoed back unchanged."""
        value, problem = validate_time_zone(' Europe/Nowhere {0}', self.values)
        self.assertIsNone(value)
        self.assertEqual(problem, Problem(Field.TIME_ZONE, 'Unknown time zone:  Europe/Nowhere {0}'))


class CollectProblemsTest(SimpleTestCase):
    """Tests for collect_problems."""

    def test_keeps_given_order_and_skips_passes(self):
        """Test that problems keep the order of the results."""
        template = Problem(Field.TEMPLATE, 't')
        time_zone = Problem(Field.TIME_ZONE, 'z')
        problems = collect_problems((None, template), ('ok', None), (None, time_zone))
        self.assertEqual(problems, (template, time_zone))

    def test_no_problems(self):
        """Test that passing results yield no problems."""
        self.assertEqual(collect_problems(('a', None), ('b', None)), ())
