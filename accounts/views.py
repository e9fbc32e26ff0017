import json
import logging

from django.contrib.auth import authenticate, get_user_model, login as auth_login, logout as auth_logout
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET

from .models import Resident, display_label, is_society_admin

logger = logging.getLogger(__name__)

User = get_user_model()


def _user_payload(user):
    resident = getattr(user, "resident", None)
    is_admin = is_society_admin(user)
    return {
        "id": user.pk,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "display_name": display_label(user),
        "unit_number": resident.unit_number if resident else "",
        "role": "admin" if is_admin else (resident.role if resident else "resident"),
        "is_admin": is_admin,
    }


def _invalid_method():
    return JsonResponse(
        {
            "status": False,
            "message": "Invalid request method.",
        },
        status=400,
    )


@csrf_exempt
def login(request):
    if request.method != 'POST':
        return _invalid_method()

    username = request.POST.get('username')
    password = request.POST.get('password')

    if not username or not password:
        return JsonResponse(
            {
                "status": False,
                "message": "Username and password are required.",
            },
            status=400,
        )

    user = authenticate(request, username=username, password=password)
    if user is None:
        logger.warning("Failed login attempt for '%s'.", username)
        return JsonResponse(
            {
                "status": False,
                "message": "Login failed, please check your username or password.",
            },
            status=401,
        )

    auth_login(request, user)
    return JsonResponse(
        {
            "status": True,
            "message": "Login successful!",
            **_user_payload(user),
        },
        status=200,
    )


@csrf_exempt
def logout(request):
    if request.method != 'POST':
        return _invalid_method()

    auth_logout(request)
    return JsonResponse(
        {
            "status": True,
            "message": "Logout successful!",
        },
        status=200,
    )


@csrf_exempt
def register(request):
    if request.method != 'POST':
        return _invalid_method()

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return JsonResponse(
            {
                "status": False,
                "message": "Invalid JSON payload.",
            },
            status=400,
        )

    username = (data.get('username') or "").strip()
    password1 = data.get('password1')
    password2 = data.get('password2')
    unit_number = (data.get('unit_number') or "").strip()

    if not username or not password1 or not password2 or not unit_number:
        return JsonResponse(
            {
                "status": False,
                "message": "Username, unit number and both passwords are required.",
            },
            status=400,
        )

    if password1 != password2:
        return JsonResponse(
            {
                "status": False,
                "message": "Passwords do not match.",
            },
            status=400,
        )

    if User.objects.filter(username=username).exists():
        return JsonResponse(
            {
                "status": False,
                "message": "Username already exists.",
            },
            status=400,
        )

    with transaction.atomic():
        user = User.objects.create_user(
            username=username,
            password=password1,
            first_name=(data.get('first_name') or "").strip(),
            last_name=(data.get('last_name') or "").strip(),
        )
        Resident.objects.update_or_create(
            user=user,
            defaults={"unit_number": unit_number, "phone": (data.get('phone') or "").strip()},
        )
    logger.info("Registered resident '%s' for unit %s.", username, unit_number)

    return JsonResponse(
        {
            "status": True,
            "message": "User created successfully!",
            **_user_payload(user),
        },
        status=201,
    )


@require_GET
def me(request):
    if not request.user.is_authenticated:
        return JsonResponse(
            {
                "status": False,
                "message": "Not logged in.",
            },
            status=401,
        )
    return JsonResponse({"status": True, **_user_payload(request.user)}, status=200)
