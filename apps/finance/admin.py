from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import (
    AdmissionFeeRecord,
    Donation,
    ExamFeeRecord,
    Expense,
    FeeSettings,
    MonthlyFeePayment,
    MonthlyFeeRecord,
    StockItem,
    StudentFeeSummary,
    Voucher,
    VoucherCounter,
)


@admin.register(FeeSettings)
class FeeSettingsAdmin(admin.ModelAdmin):
    list_display = ['student_class', 'year', 'monthly_fee', 'admission_fee', 'session_fee', 'stock']
    list_filter = ['year', 'student_class']
    fieldsets = (
        (None, {'fields': ('student_class', 'year')}),
        (_('Regular Fees'), {'fields': ('monthly_fee', 'admission_fee', 'session_fee', 'stock')}),
        (_('Exam Fees'), {'fields': ('first_term_fee', 'second_term_fee', 'final_term_fee')}),
    )


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'student_class', 'quantity', 'purchase_price', 'selling_price']
    list_filter = ['student_class']
    search_fields = ['name', 'author', 'publisher']


class MonthlyFeePaymentInline(admin.TabularInline):
    model = MonthlyFeePayment
    extra = 0
    readonly_fields = ['month', 'status', 'paid_amount', 'donation_amount',
                       'collection_date', 'collected_by', 'voucher_no']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(MonthlyFeeRecord)
class MonthlyFeeRecordAdmin(admin.ModelAdmin):
    """Totals are maintained by the ledger; collections go through the fee endpoints"""
    list_display = ['student', 'year', 'total_paid', 'total_donation', 'updated_at']
    list_filter = ['year', 'student__current_class']
    search_fields = ['student__name', 'student__admission_no']
    readonly_fields = ['total_paid', 'total_donation']
    inlines = [MonthlyFeePaymentInline]


@admin.register(AdmissionFeeRecord)
class AdmissionFeeRecordAdmin(admin.ModelAdmin):
    list_display = ['student', 'year', 'fee_type', 'total_fee', 'total_stock',
                    'fee_deposited', 'stock_deposited', 'discount', 'voucher_no']
    list_filter = ['year', 'fee_type']
    search_fields = ['student__name', 'student__admission_no']
    filter_horizontal = ['selected_stock_items']


@admin.register(ExamFeeRecord)
class ExamFeeRecordAdmin(admin.ModelAdmin):
    list_display = ['student', 'exam', 'paid_amount', 'discount', 'collection_date', 'voucher_no']
    list_filter = ['exam']
    search_fields = ['student__name', 'student__admission_no']


@admin.register(VoucherCounter)
class VoucherCounterAdmin(admin.ModelAdmin):
    list_display = ['scope_key', 'last_voucher']
    readonly_fields = ['scope_key', 'last_voucher']


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display = ['scope_key', 'number', 'category', 'student', 'amount', 'collected_by', 'issued_at']
    list_filter = ['category', 'scope_key']
    search_fields = ['student__name', 'student__admission_no', 'idempotency_key']

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['expense_date', 'description', 'amount']
    date_hierarchy = 'expense_date'


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ['donation_date', 'donor_name', 'amount']
    date_hierarchy = 'donation_date'


@admin.register(StudentFeeSummary)
class StudentFeeSummaryAdmin(admin.ModelAdmin):
    list_display = ['student', 'year', 'total_due', 'total_paid', 'refreshed_at']
    list_filter = ['year']
    search_fields = ['student__name', 'student__admission_no']
