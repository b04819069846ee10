import csv
import json
import logging

from django.contrib.auth.decorators import login_required, permission_required
from django.core.exceptions import ValidationError
from django.http import HttpResponse, JsonResponse, QueryDict
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from apps.corecode.models import StudentClass
from apps.corecode.utils import current_year
from apps.result.models import Exam
from apps.students.models import Student
from .aggregation import admin_dashboard_stats, dues_by_class
from .forms import AdmissionCollectionForm, ExamCollectionForm, FeeSettingsForm, MonthlyCollectionForm
from .ledgers import AdmissionFeeLedger, ExamFeeLedger, FeeCollectionError, MonthlyFeeLedger
from .models import FeeSettings
from .settings_resolver import resolve_fee_settings
from .vouchers import admission_scope, exam_scope, monthly_scope, peek_next_voucher

logger = logging.getLogger(__name__)


def _request_data(request):
    """Form-encoded POST data or a JSON body"""
    if request.content_type == 'application/json':
        try:
            payload = json.loads(request.body or b'{}')
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        data = QueryDict(mutable=True)
        for key, value in payload.items():
            if isinstance(value, list):
                data.setlist(key, value)
            else:
                data[key] = value
        return data
    return request.POST


def _year_param(request):
    try:
        return int(request.GET.get('year') or current_year())
    except ValueError:
        return current_year()


def _error_response(errors, status=400):
    return JsonResponse({'success': False, 'errors': errors}, status=status)


def _form_errors(form):
    return {
        field: [error['message'] for error in errors]
        for field, errors in form.errors.get_json_data().items()
    }


def _run_collection(collect):
    """Call a ledger collection and map its failures to HTTP responses"""
    try:
        receipt = collect()
    except ValidationError as e:
        errors = e.message_dict if hasattr(e, 'error_dict') else {'__all__': e.messages}
        return _error_response(errors)
    except FeeCollectionError as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=409 if e.conflict else 500)

    return JsonResponse({
        'success': True,
        'scope': receipt.scope_key,
        'voucher_no': receipt.voucher_no,
        'replayed': receipt.replayed,
    }, status=200 if receipt.replayed else 201)


def _bound_form(form_class, request):
    data = _request_data(request)
    if data is None:
        return None
    return form_class(data)


@login_required
@permission_required('finance.add_monthlyfeerecord', raise_exception=True)
@require_POST
def collect_monthly_fee(request):
    form = _bound_form(MonthlyCollectionForm, request)
    if form is None:
        return _error_response({'__all__': ['Send a JSON object.']})
    if not form.is_valid():
        return _error_response(_form_errors(form))

    data = form.cleaned_data
    return _run_collection(lambda: MonthlyFeeLedger().collect(
        data['student'], data['year'], data['month'], data['paid_amount'],
        data['collected_by'], data['collection_date'], idempotency_key=data.get('idempotency_key') or None,
    ))


@login_required
@permission_required('finance.add_admissionfeerecord', raise_exception=True)
@require_POST
def collect_admission_fee(request):
    form = _bound_form(AdmissionCollectionForm, request)
    if form is None:
        return _error_response({'__all__': ['Send a JSON object.']})
    if not form.is_valid():
        return _error_response(_form_errors(form))

    data = form.ledger_data()
    return _run_collection(lambda: AdmissionFeeLedger().collect(
        data['student'], data['year'], data, idempotency_key=data.get('idempotency_key') or None,
    ))


@login_required
@permission_required('finance.add_examfeerecord', raise_exception=True)
@require_POST
def collect_exam_fee(request):
    form = _bound_form(ExamCollectionForm, request)
    if form is None:
        return _error_response({'__all__': ['Send a JSON object.']})
    if not form.is_valid():
        return _error_response(_form_errors(form))

    data = form.cleaned_data
    return _run_collection(lambda: ExamFeeLedger().collect(
        data['exam'], data['student'], data['paid_amount'], data.get('discount'),
        data['collected_by'], data['collection_date'], idempotency_key=data.get('idempotency_key') or None,
    ))


@login_required
@permission_required('finance.view_monthlyfeerecord', raise_exception=True)
@require_GET
def monthly_fee_state(request, student_id):
    """Month detail shown in the collection dialog, with the likely next voucher"""
    student = get_object_or_404(Student.objects.select_related('current_class'), pk=student_id)
    year = _year_param(request)
    try:
        state = MonthlyFeeLedger().load_month(student, year, request.GET.get('month', ''))
    except ValidationError as e:
        return _error_response(e.message_dict)

    return JsonResponse({
        'student_id': student.pk,
        'year': year,
        'month': state.month,
        'status': state.status,
        'paid_amount': state.paid_amount,
        'donation_amount': state.donation_amount,
        'collection_date': state.collection_date,
        'collected_by': state.collected_by,
        'voucher_no': state.voucher_no,
        'next_voucher': peek_next_voucher(monthly_scope(year)),
    })


@login_required
@permission_required('finance.view_admissionfeerecord', raise_exception=True)
@require_GET
def admission_fee_state(request, student_id):
    student = get_object_or_404(Student.objects.select_related('current_class'), pk=student_id)
    year = _year_param(request)
    record = AdmissionFeeLedger().load_or_init(student, year)

    return JsonResponse({
        'student_id': student.pk,
        'year': year,
        'fee_type': record.fee_type,
        'total_fee': record.total_fee,
        'total_stock': record.total_stock,
        'fee_deposited': record.fee_deposited,
        'stock_deposited': record.stock_deposited,
        'discount': record.discount,
        'fee_due': record.fee_due,
        'stock_due': record.stock_due,
        'total_due': record.total_due,
        'selected_stock_items': list(record.selected_stock_items.values_list('pk', flat=True)) if record.pk else [],
        'voucher_no': record.voucher_no,
        'next_voucher': peek_next_voucher(admission_scope(year)),
    })


@login_required
@permission_required('finance.view_examfeerecord', raise_exception=True)
@require_GET
def exam_fee_state(request, exam_id, student_id):
    exam = get_object_or_404(Exam, pk=exam_id)
    student = get_object_or_404(Student.objects.select_related('current_class'), pk=student_id)
    ledger = ExamFeeLedger()
    record = ledger.load(exam, student)
    fee = ledger.exam_fee(exam, student)

    return JsonResponse({
        'exam_id': exam.pk,
        'student_id': student.pk,
        'exam_fee': fee,
        'paid_amount': record.paid_amount,
        'discount': record.discount,
        'due': record.due_for(fee),
        'voucher_no': record.voucher_no,
        'next_voucher': peek_next_voucher(exam_scope(exam.pk)),
    })


@login_required
@permission_required('finance.view_monthlyfeerecord', raise_exception=True)
@require_GET
def monthly_fee_grid(request, class_id):
    student_class = get_object_or_404(StudentClass, pk=class_id)
    year = _year_param(request)
    return JsonResponse({
        'class': student_class.name,
        'year': year,
        'students': MonthlyFeeLedger().month_grid(student_class, year),
    })


@login_required
@permission_required('finance.view_feesettings', raise_exception=True)
@require_GET
def fee_schedule(request, class_id):
    student_class = get_object_or_404(StudentClass, pk=class_id)
    schedule = resolve_fee_settings(student_class, _year_param(request))
    return JsonResponse({
        'key': schedule.settings_key,
        'monthly_fee': schedule.monthly_fee,
        'admission_fee': schedule.admission_fee,
        'session_fee': schedule.session_fee,
        'first_term_fee': schedule.first_term_fee,
        'second_term_fee': schedule.second_term_fee,
        'final_term_fee': schedule.final_term_fee,
        'stock': schedule.stock,
    })


@login_required
@permission_required('finance.change_feesettings', raise_exception=True)
@require_POST
def save_fee_settings(request):
    """Create or update the fee settings of a class and year"""
    data = _request_data(request)
    if data is None:
        return _error_response({'__all__': ['Send a JSON object.']})

    try:
        instance = FeeSettings.objects.filter(
            student_class_id=data.get('student_class'), year=data.get('year')
        ).first() if data.get('student_class') and data.get('year') else None
    except (TypeError, ValueError):
        # Malformed ids are reported by the form below
        instance = None
    form = FeeSettingsForm(data, instance=instance)
    if not form.is_valid():
        return _error_response(_form_errors(form))

    settings_row = form.save()
    logger.info(f"⚙️ {request.user} saved fee settings {settings_row.settings_key}")
    return JsonResponse({'success': True, 'key': settings_row.settings_key}, status=200 if instance else 201)


@login_required
@permission_required('finance.view_monthlyfeerecord', raise_exception=True)
@require_GET
def admin_dashboard(request):
    return JsonResponse(admin_dashboard_stats(_year_param(request)))


@login_required
@permission_required('finance.view_monthlyfeerecord', raise_exception=True)
@require_GET
def export_due_report(request):
    """Per-student due report as CSV"""
    year = _year_param(request)
    students = Student.objects.all()
    class_id = request.GET.get('class')
    if class_id:
        students = students.filter(current_class_id=class_id)

    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="fee_due_{year}.csv"'

    writer = csv.writer(response)
    writer.writerow(['Class', 'Admission No', 'Roll', 'Name', 'Total Paid', 'Total Due'])
    for class_name, rows in sorted(dues_by_class(students, year).items()):
        for student, totals in rows:
            writer.writerow([
                class_name, student.admission_no, student.roll, student.name,
                totals.total_paid, max(0, totals.total_due),
            ])

    return response
