from django.db import connection, DatabaseError
from django.http import JsonResponse


def health_check(request):
    """Liveness check used by the hosting platform."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError:
        return JsonResponse({'status': 'unhealthy', 'database': 'unreachable'}, status=503)
    return JsonResponse({'status': 'ok'})


def error_404(request, exception):
    """JSON body for unknown URLs, so API clients never receive HTML."""
    return JsonResponse(
        {'error': f'No billing resource at {request.path}', 'code': 'not_found'},
        status=404,
    )


def error_500(request):
    return JsonResponse(
        {'error': 'The billing service failed to handle this request', 'code': 'server_error'},
        status=500,
    )
