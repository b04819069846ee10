from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.corecode.utils import ZERO

# Canonical month names, as stored in existing fee records
MONTHS = [
    "জানুয়ারি", "ফেব্রুয়ারি", "মার্চ", "এপ্রিল", "মে", "জুন",
    "জুলাই", "আগস্ট", "সেপ্টেম্বর", "অক্টোবর", "নভেম্বর", "ডিসেম্বর",
]
MONTH_CHOICES = [(m, m) for m in MONTHS]


def _amount(verbose_name, **kwargs):
    kwargs.setdefault('default', 0)
    return models.DecimalField(max_digits=12, decimal_places=2, verbose_name=verbose_name, **kwargs)


def _optional_amount(verbose_name):
    return models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, verbose_name=verbose_name
    )


class FeeSettings(models.Model):
    """Fee schedule for one class in one year. Blank fields mean 'not configured'."""

    student_class = models.ForeignKey(
        'corecode.StudentClass',
        on_delete=models.CASCADE,
        related_name='fee_settings',
        verbose_name=_("Class")
    )
    year = models.PositiveIntegerField(verbose_name=_("Year"))

    monthly_fee = _optional_amount(_("Monthly Fee"))
    admission_fee = _optional_amount(_("Admission Fee"))
    session_fee = _optional_amount(_("Session Fee"))
    first_term_fee = _optional_amount(_("1st Term Exam Fee"))
    second_term_fee = _optional_amount(_("2nd Term Exam Fee"))
    final_term_fee = _optional_amount(_("Final Exam Fee"))
    stock = _optional_amount(_("Stock (Books/Materials)"))

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', 'student_class']
        unique_together = ['student_class', 'year']
        verbose_name = _('Fee Settings')
        verbose_name_plural = _('Fee Settings')

    def __str__(self):
        return self.settings_key

    @property
    def settings_key(self):
        return f"{self.student_class.name}-{self.year}"


class StockItem(models.Model):
    """Book/material inventory sold to students with their admission"""

    name = models.CharField(max_length=200)
    author = models.CharField(max_length=200, blank=True)
    student_class = models.ForeignKey(
        'corecode.StudentClass',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_items'
    )
    publisher = models.CharField(max_length=200, blank=True)
    quantity = models.PositiveIntegerField(default=0)
    purchase_price = _amount(_("Purchase Price"))
    selling_price = _amount(_("Selling Price"))
    purchase_date = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['student_class', 'name']

    def __str__(self):
        return f"{self.name} ({self.selling_price})"


class MonthlyFeeRecord(models.Model):
    """
    One student's monthly fees for one year.

    ``total_paid``/``total_donation`` are running totals over the
    MonthlyFeePayment rows and are only written by MonthlyFeeLedger.collect.
    """

    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='monthly_fee_records'
    )
    year = models.PositiveIntegerField()
    total_paid = _amount(_("Total Paid"))
    total_donation = _amount(_("Total Donation"))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', 'student']
        unique_together = ['student', 'year']

    def __str__(self):
        return f"{self.student} - {self.year}"


class MonthlyFeePayment(models.Model):
    """Collection detail for one month of a MonthlyFeeRecord"""

    class Status(models.TextChoices):
        PAID = 'paid', _('Paid')
        DUE = 'due', _('Due')

    record = models.ForeignKey(MonthlyFeeRecord, on_delete=models.CASCADE, related_name='payments')
    month = models.CharField(max_length=20, choices=MONTH_CHOICES)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PAID)
    paid_amount = _amount(_("Paid Amount"))
    donation_amount = _amount(_("Donation Amount"))
    collection_date = models.DateField(null=True, blank=True)
    collected_by = models.CharField(max_length=200, blank=True, verbose_name=_("Collected By"))
    voucher_no = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        unique_together = ['record', 'month']

    def __str__(self):
        return f"{self.record} - {self.month}: {self.status}"


class AdmissionFeeRecord(models.Model):
    """Admission or session fee plus stock charge for one student in one year"""

    class FeeType(models.TextChoices):
        ADMISSION = 'Admission', _('Admission')
        SESSION = 'Session', _('Session')

    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='admission_fee_records'
    )
    year = models.PositiveIntegerField()
    fee_type = models.CharField(max_length=20, choices=FeeType.choices, default=FeeType.ADMISSION)
    total_fee = _amount(_("Total Fee"))
    total_stock = _amount(_("Total Stock"))
    fee_deposited = _amount(_("Fee Deposited"))
    stock_deposited = _amount(_("Stock Deposited"))
    discount = _amount(_("Discount"))
    selected_stock_items = models.ManyToManyField(StockItem, blank=True, related_name='admission_records')
    collected_by = models.CharField(max_length=200, blank=True, verbose_name=_("Collected By"))
    collection_date = models.DateField(null=True, blank=True)
    voucher_no = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', 'student']
        unique_together = ['student', 'year']

    def __str__(self):
        return f"{self.year}-{self.student_id} ({self.fee_type})"

    @property
    def fee_due(self):
        return (self.total_fee or ZERO) - (self.fee_deposited or ZERO) - (self.discount or ZERO)

    @property
    def stock_due(self):
        return (self.total_stock or ZERO) - (self.stock_deposited or ZERO)

    @property
    def total_due(self):
        return self.fee_due + self.stock_due

    @property
    def total_deposited(self):
        return (self.fee_deposited or ZERO) + (self.stock_deposited or ZERO)


class ExamFeeRecord(models.Model):
    """Exam fee collection for one student and one exam"""

    exam = models.ForeignKey('result.Exam', on_delete=models.CASCADE, related_name='fee_records')
    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='exam_fee_records'
    )
    paid_amount = _amount(_("Paid Amount"))
    discount = _amount(_("Discount"))
    collected_by = models.CharField(max_length=200, blank=True, verbose_name=_("Collected By"))
    collection_date = models.DateField(null=True, blank=True)
    voucher_no = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['exam', 'student']

    def __str__(self):
        return f"{self.exam} - {self.student}"

    def due_for(self, exam_fee):
        return exam_fee - (self.paid_amount or ZERO) - (self.discount or ZERO)


class VoucherCounter(models.Model):
    """Last voucher number issued in a scope, e.g. ``monthly_fees_2025``"""

    scope_key = models.CharField(max_length=100, unique=True)
    last_voucher = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.scope_key}: {self.last_voucher}"


class Voucher(models.Model):
    """Every voucher number ever issued; one row per committed collection"""

    class Category(models.TextChoices):
        MONTHLY = 'monthly', _('Monthly Fee')
        ADMISSION = 'admission', _('Admission/Session Fee')
        EXAM = 'exam', _('Exam Fee')

    scope_key = models.CharField(max_length=100)
    number = models.PositiveIntegerField()
    category = models.CharField(max_length=20, choices=Category.choices)
    student = models.ForeignKey(
        'students.Student',
        on_delete=models.SET_NULL,
        null=True,
        related_name='vouchers'
    )
    description = models.CharField(max_length=200, blank=True)
    amount = _amount(_("Amount"))
    collected_by = models.CharField(max_length=200, blank=True, verbose_name=_("Collected By"))
    idempotency_key = models.CharField(max_length=64, null=True, blank=True)
    issued_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['scope_key', 'number']
        constraints = [
            models.UniqueConstraint(fields=['scope_key', 'number'], name='uq_voucher_scope_number'),
            models.UniqueConstraint(
                fields=['idempotency_key'],
                condition=Q(idempotency_key__isnull=False),
                name='uq_voucher_idempotency_key',
            ),
        ]

    def __str__(self):
        return f"{self.scope_key} #{self.number}"


class Expense(models.Model):
    description = models.CharField(max_length=200)
    amount = _amount(_("Amount"))
    expense_date = models.DateField(default=timezone.localdate)

    class Meta:
        ordering = ['-expense_date']

    def __str__(self):
        return f"{self.expense_date} - {self.description}"


class Donation(models.Model):
    donor_name = models.CharField(max_length=200)
    amount = _amount(_("Amount"))
    donation_date = models.DateField(default=timezone.localdate)

    class Meta:
        ordering = ['-donation_date']

    def __str__(self):
        return f"{self.donor_name} - {self.amount}"


class StudentFeeSummary(models.Model):
    """
    Cached dashboard figures for one student and year.

    Refreshed whenever one of the student's ledger rows changes.
    ``total_due`` is not floored; dashboards floor the aggregate.
    """

    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='fee_summaries'
    )
    year = models.PositiveIntegerField()
    total_due = _amount(_("Total Due"))
    total_paid = _amount(_("Total Paid"))
    refreshed_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['student', 'year']
        verbose_name_plural = _('Student fee summaries')

    def __str__(self):
        return f"{self.student} - {self.year}: due {self.total_due}"
