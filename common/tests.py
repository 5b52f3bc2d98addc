"""
Tests for the shared permission, confirmation and error-envelope helpers.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Group
from django.test import SimpleTestCase, TestCase
from rest_framework.request import Request
from rest_framework.parsers import JSONParser
from rest_framework.test import APIRequestFactory

from common.exceptions import ClinicError, ConfirmationRequiredError
from common.permissions import IsAdministrator, require_confirmation
from common.responses import error_response, success_response


class IsAdministratorTest(TestCase):
    """Administrator group membership or superuser status is required."""

    def setUp(self):
        self.factory = APIRequestFactory()
        self.permission = IsAdministrator()
        self.User = get_user_model()

    def check(self, user):
        request = self.factory.get('/')
        request.user = user
        return self.permission.has_permission(request, None)

    def test_anonymous_denied(self):
        self.assertFalse(self.check(AnonymousUser()))

    def test_plain_user_denied(self):
        user = self.User.objects.create_user(username='clerk', password='secret-pass-1')
        self.assertFalse(self.check(user))

    def test_group_member_allowed(self):
        user = self.User.objects.create_user(username='boss', password='secret-pass-1')
        user.groups.add(Group.objects.create(name='Administrator'))
        self.assertTrue(self.check(user))

    def test_superuser_allowed(self):
        user = self.User.objects.create_superuser(username='root', password='secret-pass-1')
        self.assertTrue(self.check(user))


class RequireConfirmationTest(SimpleTestCase):

    def setUp(self):
        self.factory = APIRequestFactory()

    def wrap(self, django_request):
        return Request(django_request, parsers=[JSONParser()])

    def test_body_flag(self):
        request = self.wrap(self.factory.post('/', {'confirm': True}, format='json'))
        require_confirmation(request)

    def test_query_flag(self):
        request = self.wrap(self.factory.delete('/?confirm=true'))
        require_confirmation(request)

    def test_missing_or_false_flag(self):
        for django_request in (
            self.factory.delete('/'),
            self.factory.delete('/?confirm=no'),
            self.factory.post('/', {'confirm': False}, format='json'),
        ):
            with self.assertRaises(ConfirmationRequiredError):
                require_confirmation(self.wrap(django_request))


class ResponseEnvelopeTest(SimpleTestCase):

    def test_success_envelope(self):
        response = success_response({'id': 'INV-1'}, message='Saved', status_code=201)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data, {'success': True, 'message': 'Saved', 'data': {'id': 'INV-1'}})

    def test_error_envelope(self):
        response = error_response(ClinicError('Bill INV-9 not found', code='bill_not_found', status_code=404))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.data,
            {'success': False, 'error': 'Bill INV-9 not found', 'code': 'bill_not_found'},
        )
