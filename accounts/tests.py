import json

from django.apps import apps
from django.contrib.auth.models import User
from django.test import TestCase, override_settings
from django.urls import reverse

from .models import Resident, ResidentRole, display_label, is_society_admin
from .signals import create_default_society_admin


class ResidentModelTests(TestCase):
    def test_profile_created_with_user(self):
        user = User.objects.create_user(username="meera", password="12345")
        self.assertTrue(Resident.objects.filter(user=user).exists())
        self.assertEqual(user.resident.role, ResidentRole.RESIDENT)

    def test_display_label_fallbacks(self):
        user = User.objects.create_user(username="meera", password="12345")
        self.assertEqual(display_label(user), "meera")
        user.resident.unit_number = "C-303"
        user.resident.save()
        self.assertEqual(display_label(user), "C-303")
        user.first_name = "Meera"
        self.assertEqual(display_label(user), "Meera")

    def test_is_society_admin(self):
        resident = User.objects.create_user(username="meera", password="12345")
        staff = User.objects.create_user(username="office", password="12345", is_staff=True)
        self.assertFalse(is_society_admin(resident))
        self.assertTrue(is_society_admin(staff))
        self.assertFalse(is_society_admin(None))

        resident.resident.role = ResidentRole.ADMIN
        resident.resident.save()
        self.assertTrue(is_society_admin(resident))


class DefaultAdminTests(TestCase):
    @override_settings(SOCIETY_ADMIN_USERNAME="society", SOCIETY_ADMIN_PASSWORD="s3cret-pass")
    def test_default_admin_created_once(self):
        config = apps.get_app_config("accounts")
        create_default_society_admin(sender=config)
        create_default_society_admin(sender=config)
        admin = User.objects.get(username="society")
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.check_password("s3cret-pass"))
        self.assertEqual(Resident.objects.get(user=admin).role, ResidentRole.ADMIN)

    @override_settings(SOCIETY_ADMIN_USERNAME="", SOCIETY_ADMIN_PASSWORD="")
    def test_no_default_admin_without_credentials(self):
        create_default_society_admin(sender=apps.get_app_config("accounts"))
        self.assertFalse(User.objects.filter(is_staff=True).exists())


class AuthViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="meera", password="12345", first_name="Meera")
        self.user.resident.unit_number = "C-303"
        self.user.resident.save()

    def test_login_success(self):
        res = self.client.post(reverse("accounts:login"), {"username": "meera", "password": "12345"})
        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertTrue(data["status"])
        self.assertEqual(data["unit_number"], "C-303")
        self.assertFalse(data["is_admin"])

    def test_login_wrong_password(self):
        res = self.client.post(reverse("accounts:login"), {"username": "meera", "password": "nope"})
        self.assertEqual(res.status_code, 401)
        self.assertFalse(res.json()["status"])

    def test_login_requires_post(self):
        res = self.client.get(reverse("accounts:login"))
        self.assertEqual(res.status_code, 400)

    def test_register(self):
        payload = {"username": "kiran", "password1": "pass-12345", "password2": "pass-12345", "unit_number": "D-404"}
        res = self.client.post(reverse("accounts:register"), json.dumps(payload), content_type="application/json")
        self.assertEqual(res.status_code, 201)
        user = User.objects.get(username="kiran")
        self.assertEqual(user.resident.unit_number, "D-404")

    def test_register_rejects_mismatch_and_duplicates(self):
        payload = {"username": "kiran", "password1": "a", "password2": "b", "unit_number": "D-404"}
        res = self.client.post(reverse("accounts:register"), json.dumps(payload), content_type="application/json")
        self.assertEqual(res.status_code, 400)

        payload.update(username="meera", password2="a")
        res = self.client.post(reverse("accounts:register"), json.dumps(payload), content_type="application/json")
        self.assertEqual(res.json()["message"], "Username already exists.")

    def test_register_requires_unit(self):
        payload = {"username": "kiran", "password1": "a", "password2": "a"}
        res = self.client.post(reverse("accounts:register"), json.dumps(payload), content_type="application/json")
        self.assertEqual(res.status_code, 400)

    def test_me_and_logout(self):
        res = self.client.get(reverse("accounts:me"))
        self.assertEqual(res.status_code, 401)

        self.client.login(username="meera", password="12345")
        res = self.client.get(reverse("accounts:me"))
        self.assertEqual(res.json()["display_name"], "Meera")

        res = self.client.post(reverse("accounts:logout"))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(self.client.get(reverse("accounts:me")).status_code, 401)
