"""
Result processing: totals, GPA, final grade and class position
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils.translation import gettext_lazy as _

from apps.students.models import Student
from .grading import FAIL, grade, grade_point
from .models import ExamMark, ExamSubject, ResultEntry, ResultSheet

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def compute_student_result(subjects, marks):
    """
    Build one student's result row.

    ``subjects`` is a list of ExamSubject, ``marks`` maps subject id to mark.
    Failing any subject fails the exam: GPA 0 and grade F.
    """
    total = Decimal("0")
    points = Decimal("0")
    failed = False
    subject_marks = {}

    for subject in subjects:
        mark = Decimal(str(marks.get(subject.id) or 0))
        subject_marks[str(subject.id)] = float(mark)
        total += mark
        letter = grade(mark, subject.max_marks)
        if letter == FAIL:
            failed = True
        points += grade_point(letter)

    if failed or not subjects:
        gpa = Decimal("0")
        final_grade = FAIL
    else:
        gpa = (points / len(subjects)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        final_grade = grade(total, sum(s.max_marks for s in subjects))

    return {
        'total_marks': total,
        'subject_marks': subject_marks,
        'gpa': gpa,
        'grade': final_grade,
    }


def assign_positions(rows):
    """
    Rank rows by total marks, highest first.

    Ties share a rank and the next rank skips (1, 1, 3). Failed rows keep
    their place in the ordering but show "N/A".
    """
    rows.sort(key=lambda r: r['total_marks'], reverse=True)
    rank = 1
    for index, row in enumerate(rows):
        if index > 0 and row['total_marks'] < rows[index - 1]['total_marks']:
            rank = index + 1
        row['position'] = 'N/A' if row['grade'] == FAIL else str(rank)
    return rows


def process_results(exam, student_class, using=DEFAULT_DB_ALIAS):
    """
    Process and save the result sheet of ``student_class`` for ``exam``.

    Returns: ResultSheet
    Raises: ValidationError if no subjects were assigned
    """
    subjects = list(
        ExamSubject.objects.using(using).filter(exam=exam, student_class=student_class)
    )
    if not subjects:
        raise ValidationError(_("No subjects have been assigned for this exam."))

    students = list(
        Student.objects.using(using).filter(current_class=student_class).order_by('roll')
    )

    marks_by_student = {}
    for student_id, subject_id, mark in ExamMark.objects.using(using).filter(
        exam=exam, subject__in=subjects
    ).values_list('student_id', 'subject_id', 'mark'):
        marks_by_student.setdefault(student_id, {})[subject_id] = mark

    rows = []
    for student in students:
        row = compute_student_result(subjects, marks_by_student.get(student.id, {}))
        row.update({'student': student, 'roll': student.roll, 'name': student.name})
        rows.append(row)
    assign_positions(rows)

    with transaction.atomic(using=using):
        sheet, _created = ResultSheet.objects.using(using).get_or_create(
            exam=exam, student_class=student_class
        )
        comments = dict(
            ResultEntry.objects.using(using).filter(sheet=sheet).values_list('student_id', 'comment')
        )
        ResultEntry.objects.using(using).filter(sheet=sheet).delete()
        ResultEntry.objects.using(using).bulk_create([
            ResultEntry(
                sheet=sheet,
                student=row['student'],
                roll=row['roll'],
                name=row['name'],
                grade=row['grade'],
                total_marks=row['total_marks'],
                subject_marks=row['subject_marks'],
                gpa=row['gpa'],
                position=row['position'],
                comment=comments.get(row['student'].id, ''),
            )
            for row in rows
        ])
        sheet.save(using=using)

    logger.info(f"Processed results for {exam} / {student_class}: {len(rows)} students")
    return sheet


def published_results_for(students, using=DEFAULT_DB_ALIAS):
    """Result entries of the given students, limited to published exams"""
    return (
        ResultEntry.objects.using(using)
        .filter(student__in=students, sheet__exam__status='published')
        .select_related('sheet__exam', 'student')
        .order_by('-sheet__exam__start_date', 'roll')
    )
