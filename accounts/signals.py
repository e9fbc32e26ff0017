import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models.signals import post_migrate, post_save
from django.dispatch import receiver

from .models import Resident, ResidentRole

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_resident_profile(sender, instance, created, **kwargs):
    if created:
        Resident.objects.get_or_create(user=instance)


@receiver(post_migrate)
def create_default_society_admin(sender, **kwargs):
    if sender.name != "accounts":
        return
    username = settings.SOCIETY_ADMIN_USERNAME
    password = settings.SOCIETY_ADMIN_PASSWORD
    if not username or not password:
        return

    User = get_user_model()
    if User.objects.filter(username=username).exists():
        return
    user = User.objects.create_user(username=username, password=password, is_staff=True)
    Resident.objects.filter(user=user).update(role=ResidentRole.ADMIN)
    logger.info("Default society admin '%s' created.", username)
