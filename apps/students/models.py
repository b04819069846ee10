from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class Student(models.Model):
    """Student identity record, owned by the admin side of the school"""

    class Gender(models.TextChoices):
        MALE = 'male', _('Male')
        FEMALE = 'female', _('Female')

    class Status(models.TextChoices):
        PENDING = 'pending', _('Pending Approval')
        APPROVED = 'approved', _('Approved')

    # Student Information
    admission_no = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_("Admission Number")
    )
    roll = models.PositiveIntegerField(default=0, verbose_name=_("Roll"))
    name = models.CharField(max_length=200, verbose_name=_("Name"))
    gender = models.CharField(
        max_length=10,
        blank=True,
        choices=Gender.choices,
        verbose_name=_("Gender")
    )
    date_of_birth = models.DateField(null=True, blank=True, verbose_name=_("Date of Birth"))

    # Academic Information
    current_class = models.ForeignKey(
        'corecode.StudentClass',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
        verbose_name=_("Class")
    )
    section = models.CharField(max_length=20, blank=True, verbose_name=_("Section"))

    # Contact Information
    email = models.EmailField(blank=True, verbose_name=_("Email"))
    phone = models.CharField(max_length=20, blank=True, verbose_name=_("Phone"))

    # Guardian Information
    father_name = models.CharField(max_length=200, blank=True, verbose_name=_("Father's Name"))
    father_phone = models.CharField(max_length=20, blank=True, verbose_name=_("Father's Phone"))
    father_email = models.EmailField(blank=True, verbose_name=_("Father's Email"))
    mother_name = models.CharField(max_length=200, blank=True, verbose_name=_("Mother's Name"))
    mother_phone = models.CharField(max_length=20, blank=True, verbose_name=_("Mother's Phone"))
    mother_email = models.EmailField(blank=True, verbose_name=_("Mother's Email"))

    # Photo reference (uploaded to external object storage)
    avatar = models.URLField(blank=True, verbose_name=_("Avatar"))

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.APPROVED,
        verbose_name=_("Status")
    )

    # System fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['current_class__numeric_name', 'roll', 'name']
        verbose_name = _('Student')
        verbose_name_plural = _('Students')

    def __str__(self):
        return f"{self.admission_no} - {self.name}"

    @property
    def class_name(self):
        return self.current_class.name if self.current_class_id else ""

    @property
    def pays_session_fee(self):
        """Returning students (admission number prefix) pay the session fee"""
        prefix = getattr(settings, 'FEE_SESSION_ADMISSION_PREFIX', 'ADMT')
        return bool(self.admission_no) and self.admission_no.startswith(prefix)

    @property
    def guardian_phones(self):
        return [p for p in (self.phone, self.father_phone, self.mother_phone) if p]

    @classmethod
    def for_guardian(cls, email=None, phone=None):
        """All students whose own or parents' contact details match"""
        query = Q()
        if email:
            query |= Q(email__iexact=email) | Q(father_email__iexact=email) | Q(mother_email__iexact=email)
        if phone:
            query |= Q(phone=phone) | Q(father_phone=phone) | Q(mother_phone=phone)
        if not query:
            return cls.objects.none()
        return cls.objects.filter(query).distinct()
