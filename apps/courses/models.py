"""
Course structure models.

A CourseOffering (the "allocation") is one scheduled run of a Module for a
Cohort, in a class term, under a delivery Mode. Weekly activity logs hang off
offerings.
"""

from django.db import models
from django.core.exceptions import ValidationError


class Module(models.Model):
    """A course module, e.g. "SE101 - Software Engineering"."""

    code = models.CharField(
        max_length=20,
        unique=True,
        help_text='Short module code (e.g., SE101)'
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    credits = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'module'
        verbose_name_plural = 'modules'
        ordering = ['code']

    def __str__(self):
        return self.get_full_name()

    def save(self, *args, **kwargs):
        # Ensure code is uppercase
        if self.code:
            self.code = self.code.upper()
        super().save(*args, **kwargs)

    def get_full_name(self):
        return f"{self.code} - {self.name}"


class Cohort(models.Model):
    """An intake of students that progresses through offerings together."""

    class Status(models.TextChoices):
        PLANNED = 'planned', 'Planned'
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'

    name = models.CharField(max_length=100, unique=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PLANNED,
    )

    class Meta:
        verbose_name = 'cohort'
        verbose_name_plural = 'cohorts'
        ordering = ['name']

    def __str__(self):
        return self.name


class CourseClass(models.Model):
    """A class term, e.g. "2025J"."""

    name = models.CharField(max_length=50, unique=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    class Meta:
        db_table = 'courses_class'
        verbose_name = 'class'
        verbose_name_plural = 'classes'
        ordering = ['name']

    def __str__(self):
        return self.name


class Mode(models.Model):
    """Delivery mode (online, in-person, hybrid)."""

    name = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = 'mode'
        verbose_name_plural = 'modes'
        ordering = ['name']

    def __str__(self):
        return self.name


class CourseOffering(models.Model):
    """
    Scheduled instance of a module for a cohort, class term and mode.

    start_date anchors the weekly submission deadlines of its activity logs.
    Offerings without a start date fall back to calendar-week deadlines.
    """

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        SCHEDULED = 'scheduled', 'Scheduled'
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    module = models.ForeignKey(
        Module,
        on_delete=models.CASCADE,
        related_name='offerings',
    )
    cohort = models.ForeignKey(
        Cohort,
        on_delete=models.CASCADE,
        related_name='offerings',
    )
    course_class = models.ForeignKey(
        CourseClass,
        on_delete=models.CASCADE,
        related_name='offerings',
    )
    mode = models.ForeignKey(
        Mode,
        on_delete=models.PROTECT,
        related_name='offerings',
    )
    facilitator = models.ForeignKey(
        'accounts.Facilitator',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='course_offerings',
    )
    manager = models.ForeignKey(
        'accounts.Manager',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='course_offerings',
    )

    start_date = models.DateField(
        null=True,
        blank=True,
        help_text='First day of week 1'
    )
    end_date = models.DateField(null=True, blank=True)
    max_enrollment = models.PositiveIntegerField(null=True, blank=True)
    current_enrollment = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    is_active = models.BooleanField(default=True, db_index=True)
    location = models.CharField(max_length=200, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'course offering'
        verbose_name_plural = 'course offerings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['facilitator', 'is_active']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.module.code} / {self.cohort} / {self.course_class}"

    def clean(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({'end_date': 'End date must be after start date.'})
