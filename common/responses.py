from rest_framework import status
from rest_framework.response import Response


def success_response(data=None, message=None, status_code=status.HTTP_200_OK):
    """Standard success envelope used by every MedCore endpoint"""
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return Response(body, status=status_code)


def error_response(exc):
    """Render a ClinicError as the standard failure envelope"""
    return Response({
        'success': False,
        'error': exc.message,
        'code': exc.code,
    }, status=exc.status_code)
