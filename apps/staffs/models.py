from django.db import models
from django.utils.translation import gettext_lazy as _


class Teacher(models.Model):
    """Teaching staff; teachers also collect fees"""

    class Status(models.TextChoices):
        PENDING = 'pending', _('Pending Approval')
        APPROVED = 'approved', _('Approved')

    name = models.CharField(max_length=200, verbose_name=_("Name"))
    email = models.EmailField(unique=True, verbose_name=_("Email"))
    phone = models.CharField(max_length=20, blank=True, verbose_name=_("Phone"))
    subject = models.CharField(max_length=100, blank=True, verbose_name=_("Subject"))
    designation = models.CharField(max_length=100, blank=True, verbose_name=_("Designation"))
    avatar = models.URLField(blank=True, verbose_name=_("Avatar"))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        verbose_name=_("Status")
    )
    user = models.OneToOneField(
        'auth.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='teacher_profile'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name = _('Teacher')
        verbose_name_plural = _('Teachers')

    def __str__(self):
        return self.name


class Admin(models.Model):
    """School administrator account; role comes from this record"""

    name = models.CharField(max_length=200)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=50, default='super-admin')
    user = models.OneToOneField(
        'auth.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='admin_profile'
    )

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.role})"
