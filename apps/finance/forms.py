from django import forms
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.result.models import Exam
from apps.students.models import Student
from .models import MONTH_CHOICES, FeeSettings, StockItem


def _money(required=True, **kwargs):
    return forms.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=required, **kwargs)


class CollectionForm(forms.Form):
    """Fields shared by every fee collection"""

    student = forms.ModelChoiceField(queryset=Student.objects.all())
    collected_by = forms.CharField(max_length=200, label=_("Collected By"))
    collection_date = forms.DateField(label=_("Collection Date"))
    idempotency_key = forms.CharField(max_length=64, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['collection_date'].initial = timezone.localdate()


class MonthlyCollectionForm(CollectionForm):
    year = forms.IntegerField(min_value=2000, max_value=2100)
    month = forms.ChoiceField(choices=MONTH_CHOICES)
    paid_amount = _money(label=_("Paid Amount"))


class AdmissionCollectionForm(CollectionForm):
    year = forms.IntegerField(min_value=2000, max_value=2100)
    total_fee = _money(required=False, label=_("Total Fee"),
                       help_text=_("Leave blank to keep the stored or configured fee"))
    fee_deposited = _money(required=False, label=_("Fee Deposited"))
    stock_deposited = _money(required=False, label=_("Stock Deposited"))
    discount = _money(required=False, label=_("Discount"))
    selected_stock_items = forms.ModelMultipleChoiceField(queryset=StockItem.objects.all(), required=False)

    def ledger_data(self):
        data = dict(self.cleaned_data)
        data['selected_stock_items'] = [item.pk for item in data.get('selected_stock_items') or []]
        return data


class ExamCollectionForm(CollectionForm):
    exam = forms.ModelChoiceField(queryset=Exam.objects.all())
    paid_amount = _money(label=_("Paid Amount"))
    discount = _money(required=False, label=_("Discount"))


class FeeSettingsForm(forms.ModelForm):
    """Fee schedule of one class for one year"""

    class Meta:
        model = FeeSettings
        fields = [
            'student_class', 'year', 'monthly_fee', 'admission_fee', 'session_fee',
            'first_term_fee', 'second_term_fee', 'final_term_fee', 'stock',
        ]

    def clean(self):
        cleaned_data = super().clean()
        for name, value in cleaned_data.items():
            if name not in ('student_class', 'year') and value is not None and value < 0:
                self.add_error(name, _("Fees cannot be negative"))
        return cleaned_data
