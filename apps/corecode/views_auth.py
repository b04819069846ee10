import json
import logging

from django.contrib.auth import authenticate, get_user_model, login
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from .roles import AccountNotApproved, resolve_login

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Incorrect ID/email or password."


def _credentials(request):
    if request.content_type == 'application/json':
        try:
            return json.loads(request.body or b'{}')
        except ValueError:
            return {}
    return request.POST


@require_POST
def login_view(request):
    """Sign in with email or phone and send the user to their dashboard"""
    data = _credentials(request)
    target = None
    try:
        target = resolve_login(data.get('username'), data.get('role'))
    except AccountNotApproved as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=403)

    if target is None:
        return JsonResponse({'success': False, 'error': INVALID_LOGIN}, status=401)
    if not target.email:
        return JsonResponse({'success': False, 'error': "No email is registered for this account."}, status=401)

    account = get_user_model().objects.filter(email__iexact=target.email).first()
    user = authenticate(request, username=account.get_username(), password=data.get('password')) if account else None
    if user is None:
        return JsonResponse({'success': False, 'error': INVALID_LOGIN}, status=401)

    login(request, user)
    logger.info(f"🔑 {target.email} signed in as {target.role}")
    return JsonResponse({'success': True, 'role': target.role, 'redirect': target.redirect_to})
