"""Views of the template online tester.

Routes (namespace ``onlinetester``):
  GET   /              form page
  POST  /api/execute   JSON API: {template, dataModel, outputFormat, locale, timeZone}
"""

import json
import logging

from django.http import HttpResponseBadRequest, JsonResponse
from django.shortcuts import render
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .services.execute import RawRequest, execute
from .services.execute.schemas import EmptyRequestResponse, ExecuteResponse, SystemErrorResponse
from .services.setting_values import get_setting_values

logger = logging.getLogger(__name__)

# JSON field name -> RawRequest attribute
_REQUEST_FIELDS = (
    ('template', 'template'),
    ('dataModel', 'data_model'),
    ('outputFormat', 'output_format'),
    ('locale', 'locale'),
    ('timeZone', 'time_zone'),
)


def _bad_request(message):
    return HttpResponseBadRequest(message, content_type='text/plain; charset=utf-8')


def to_http_response(response: ExecuteResponse):
    """Map a pipeline response onto its HTTP status and body."""
    if isinstance(response, EmptyRequestResponse):
        return _bad_request(response.message)
    if isinstance(response, SystemErrorResponse):
        return JsonResponse(response.as_dict(), status=500)
    return JsonResponse(response.as_dict())


class HomeView(View):
    template_name = 'onlinetester/home.html'

    def get(self, request):
        values = get_setting_values()
        context = {
            'output_formats': list(values.output_formats.values()),
            'locales': list(values.locales.values()),
            'time_zones': list(values.time_zones.keys()),
            'default_output_format': values.default_output_format,
            'default_locale': values.default_locale,
            'default_time_zone': values.default_time_zone.key,
        }
        return render(request, self.template_name, context)


@method_decorator(csrf_exempt, name='dispatch')
class ExecuteApiView(View):
    http_method_names = ['post']

    def post(self, request):
        try:
            payload = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            return _bad_request('Invalid JSON request body')
        if not isinstance(payload, dict):
            return _bad_request('Invalid JSON request body')

        fields = {}
        for json_name, attr in _REQUEST_FIELDS:
            value = payload.get(json_name)
            if value is not None and not isinstance(value, str):
                return _bad_request(f'Field "{json_name}" must be a string')
            fields[attr] = value

        logger.debug(f"Execute request from {request.META.get('REMOTE_ADDR')}")
        return to_http_response(execute(RawRequest(**fields)))
