import logging

from django.contrib.auth.decorators import login_required, permission_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from apps.corecode.models import StudentClass
from .models import Exam, ResultSheet
from .utils import process_results

logger = logging.getLogger(__name__)


def _sheet_payload(sheet):
    return {
        'exam': sheet.exam.name,
        'class': sheet.student_class.name,
        'processed_at': sheet.processed_at.isoformat(),
        'results': [
            {
                'student_id': entry.student_id,
                'roll': entry.roll,
                'name': entry.name,
                'grade': entry.grade,
                'total_marks': float(entry.total_marks),
                'subject_marks': entry.subject_marks,
                'gpa': float(entry.gpa),
                'position': entry.position,
                'comment': entry.comment,
            }
            for entry in sheet.entries.all()
        ],
    }


@login_required
@permission_required('result.add_resultsheet', raise_exception=True)
@require_POST
def process_results_view(request, exam_id, class_id):
    """Generate the result sheet once mark entry is complete"""
    exam = get_object_or_404(Exam, pk=exam_id)
    student_class = get_object_or_404(StudentClass, pk=class_id)

    try:
        sheet = process_results(exam, student_class)
    except ValidationError as e:
        return JsonResponse({'success': False, 'error': ' '.join(e.messages)}, status=400)

    return JsonResponse({'success': True, **_sheet_payload(sheet)})


@login_required
@require_GET
def result_sheet_view(request, exam_id, class_id):
    """Staff see any sheet; everyone else only sheets of published exams"""
    sheet = get_object_or_404(
        ResultSheet.objects.select_related('exam', 'student_class'),
        exam_id=exam_id, student_class_id=class_id,
    )
    if not sheet.exam.is_published and not request.user.is_staff:
        return JsonResponse({'success': False, 'error': 'Results are not published yet.'}, status=403)
    return JsonResponse({'success': True, **_sheet_payload(sheet)})
