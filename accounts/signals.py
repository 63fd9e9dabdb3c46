"""Signals for automatic profile management.

On user creation, create a default `UserProfile` with the student role.
Superusers created from the command line get the admin role so the
console is usable straight away.
"""
from django.contrib.auth.models import User
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import AccountStatus, Role, UserProfile


@receiver(post_save, sender=User)
def create_user_profile(sender, instance: User, created: bool, **kwargs):  # noqa: D401
    """Create a profile for new users (default role: student)."""
    if created:
        role = Role.ADMIN if instance.is_superuser else Role.STUDENT
        UserProfile.objects.create(user=instance, role=role)


@receiver(pre_save, sender=UserProfile)
def sync_account_status(sender, instance: UserProfile, **kwargs):  # noqa: D401
    """Keep `User.is_active` in step with the moderation status."""
    user = getattr(instance, "user", None)
    if user is None:
        return
    should_be_active = instance.status == AccountStatus.ACTIVE
    if user.is_active != should_be_active:
        user.is_active = should_be_active
        user.save(update_fields=["is_active"])
