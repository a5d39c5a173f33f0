"""
User and staff profile models for course_tracker.

CRITICAL: This file must be created and AUTH_USER_MODEL set before running
any migrations. Changing the User model after migrations is very complex.

Models:
- User: Email-authenticated account with a role
- Facilitator: Teaching profile, owns weekly activity logs
- Manager: Oversight profile, receives compliance alerts
"""

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.conf import settings
from django.db import models


class UserManager(BaseUserManager):
    """
    Custom user manager where email is the unique identifier
    for authentication instead of username.
    """

    def create_user(self, email, password=None, **extra_fields):
        """Create and save a regular user with the given email and password."""
        if not email:
            raise ValueError('The Email field must be set')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and save a SuperUser with the given email and password."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.Role.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Custom User model with email authentication and role-based access.

    Roles:
    - Admin: Full access, system config
    - Manager: Allocates courses, views all activity logs, receives alerts
    - Facilitator: Logs and submits weekly activity for own allocations
    - Student: Read-only access to enrolled offerings
    """

    class Role(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        MANAGER = 'manager', 'Manager'
        FACILITATOR = 'facilitator', 'Facilitator'
        STUDENT = 'student', 'Student'

    # Remove username field, use email instead
    username = None
    email = models.EmailField(
        'email address',
        unique=True,
        error_messages={
            'unique': 'A user with that email already exists.',
        },
    )

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.STUDENT,
        db_index=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = 'user'
        verbose_name_plural = 'users'
        ordering = ['first_name', 'last_name']
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['role']),
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.email})"

    def get_full_name(self):
        """Return the first_name plus the last_name, with a space in between."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        """Return the short name for the user."""
        return self.first_name or self.email.split('@')[0]

    # ==========================================================================
    # Role Methods
    # ==========================================================================

    def is_admin(self):
        """Check if user is an Admin."""
        return self.role == self.Role.ADMIN

    def is_manager(self):
        """Check if user is a Manager."""
        return self.role == self.Role.MANAGER

    def is_facilitator(self):
        """Check if user is a Facilitator."""
        return self.role == self.Role.FACILITATOR

    def can_view_all_activities(self):
        """Check if user can view every facilitator's activity logs."""
        return self.role in [self.Role.ADMIN, self.Role.MANAGER]


class Facilitator(models.Model):
    """
    Facilitator profile.

    Course load is counted over active course offerings; the dashboard
    reports it against max_course_load.
    """

    class Availability(models.TextChoices):
        AVAILABLE = 'available', 'Available'
        MODERATE = 'moderate', 'Moderate'
        BUSY = 'busy', 'Busy'
        OVERLOADED = 'overloaded', 'Overloaded'

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='facilitator_profile',
    )
    employee_id = models.CharField(max_length=30, unique=True)
    qualification = models.CharField(max_length=100, blank=True)
    location = models.CharField(max_length=100, blank=True)
    max_course_load = models.PositiveSmallIntegerField(default=5)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'facilitator'
        verbose_name_plural = 'facilitators'
        ordering = ['user__first_name', 'user__last_name']

    def __str__(self):
        return self.user.get_full_name()

    def get_current_course_load(self):
        """Number of active course offerings assigned to this facilitator."""
        return self.course_offerings.filter(is_active=True).count()

    def can_take_more_courses(self):
        return self.get_current_course_load() < self.max_course_load

    def get_availability_status(self):
        """Bucket the current load as a share of max_course_load."""
        if not self.max_course_load:
            return self.Availability.OVERLOADED
        ratio = self.get_current_course_load() / self.max_course_load
        if ratio >= 1:
            return self.Availability.OVERLOADED
        if ratio >= 0.8:
            return self.Availability.BUSY
        if ratio >= 0.5:
            return self.Availability.MODERATE
        return self.Availability.AVAILABLE


class ManagerQuerySet(models.QuerySet):

    def active(self):
        """Managers whose user account is active (alert recipients)."""
        return self.filter(user__is_active=True).select_related('user')


class Manager(models.Model):
    """Manager profile. Active managers receive every compliance alert."""

    class AccessLevel(models.TextChoices):
        STANDARD = 'standard', 'Standard'
        ADMIN = 'admin', 'Admin'

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='manager_profile',
    )
    department = models.CharField(max_length=100)
    employee_id = models.CharField(max_length=30, unique=True)
    access_level = models.CharField(
        max_length=10,
        choices=AccessLevel.choices,
        default=AccessLevel.STANDARD,
    )
    phone_number = models.CharField(max_length=30, blank=True)
    office = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ManagerQuerySet.as_manager()

    class Meta:
        verbose_name = 'manager'
        verbose_name_plural = 'managers'
        ordering = ['user__first_name', 'user__last_name']

    def __str__(self):
        return f"{self.user.get_full_name()} ({self.department})"
