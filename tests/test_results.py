from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.urls import reverse

from apps.result.models import Exam, ExamMark, ExamSubject, ResultEntry, ResultSheet
from apps.result.utils import assign_positions, process_results, published_results_for


@pytest.fixture
def exam(make_exam):
    return make_exam("1st Term Examination", status=Exam.Status.PUBLISHED)


@pytest.fixture
def subjects(exam, class_six):
    return [
        ExamSubject.objects.create(exam=exam, student_class=class_six, name="Bangla", max_marks=100),
        ExamSubject.objects.create(exam=exam, student_class=class_six, name="Math", max_marks=100),
    ]


@pytest.fixture
def marked_class(make_student, exam, subjects):
    marks = {
        "Ayesha": (90, 85),
        "Badal": (85, 90),
        "Chandni": (60, 50),
        "Dipu": (20, 80),
    }
    students = {}
    for name, scores in marks.items():
        student = make_student(name=name)
        students[name] = student
        for subject, mark in zip(subjects, scores):
            ExamMark.objects.create(exam=exam, subject=subject, student=student, mark=mark)
    return students


def test_positions_use_competition_ranking():
    rows = [
        {'total_marks': 150, 'grade': 'A'},
        {'total_marks': 175, 'grade': 'A+'},
        {'total_marks': 175, 'grade': 'A+'},
        {'total_marks': 90, 'grade': 'F'},
        {'total_marks': 120, 'grade': 'B'},
    ]

    ranked = assign_positions(rows)

    assert [r['position'] for r in ranked] == ['1', '1', '3', '4', 'N/A']


def test_process_results(marked_class, exam, class_six):
    sheet = process_results(exam, class_six)

    entries = {e.name: e for e in sheet.entries.all()}
    assert entries["Ayesha"].total_marks == Decimal("175")
    assert entries["Ayesha"].gpa == Decimal("5.00")
    assert entries["Ayesha"].grade == "A+"
    assert entries["Ayesha"].position == "1"
    assert entries["Badal"].position == "1"

    # A- and B average to 3.25; 110/200 is a B overall
    assert entries["Chandni"].gpa == Decimal("3.25")
    assert entries["Chandni"].grade == "B"
    assert entries["Chandni"].position == "3"

    # one failed subject fails the exam
    assert entries["Dipu"].gpa == 0
    assert entries["Dipu"].grade == "F"
    assert entries["Dipu"].position == "N/A"


def test_missing_marks_count_as_zero(make_student, marked_class, exam, class_six):
    make_student(name="Absent")

    sheet = process_results(exam, class_six)

    absent = sheet.entries.get(name="Absent")
    assert absent.total_marks == 0
    assert absent.grade == "F"


def test_reprocessing_keeps_comments(marked_class, exam, class_six, subjects):
    sheet = process_results(exam, class_six)
    ResultEntry.objects.filter(sheet=sheet, name="Ayesha").update(comment="Excellent")
    ExamMark.objects.filter(student=marked_class["Ayesha"], subject=subjects[0]).update(mark=40)

    sheet = process_results(exam, class_six)

    ayesha = sheet.entries.get(name="Ayesha")
    assert ayesha.comment == "Excellent"
    assert ayesha.total_marks == Decimal("125")
    assert ResultSheet.objects.count() == 1
    assert sheet.entries.count() == 4


def test_no_subjects_is_a_validation_error(make_exam, class_six):
    with pytest.raises(ValidationError):
        process_results(make_exam("Final"), class_six)


def test_only_published_results_are_shown(marked_class, exam, class_six, make_exam, subjects):
    process_results(exam, class_six)
    draft = make_exam("2nd Term")
    ExamSubject.objects.create(exam=draft, student_class=class_six, name="Bangla", max_marks=100)
    process_results(draft, class_six)

    entries = published_results_for([marked_class["Ayesha"]])

    assert [e.sheet.exam for e in entries] == [exam]


def test_process_results_endpoint(admin_client, marked_class, exam, class_six):
    response = admin_client.post(reverse("result:process_results", args=[exam.pk, class_six.pk]))

    assert response.status_code == 200
    assert len(response.json()['results']) == 4


def test_process_results_endpoint_without_subjects(admin_client, make_exam, class_six):
    exam = make_exam("Final")

    response = admin_client.post(reverse("result:process_results", args=[exam.pk, class_six.pk]))

    assert response.status_code == 400


def test_unpublished_sheet_is_hidden_from_families(client, make_exam, class_six, student):
    draft = make_exam("2nd Term")
    ExamSubject.objects.create(exam=draft, student_class=class_six, name="Bangla", max_marks=100)
    process_results(draft, class_six)
    client.force_login(get_user_model().objects.create_user("family", student.email, "pw-123456"))

    response = client.get(reverse("result:result_sheet", args=[draft.pk, class_six.pk]))

    assert response.status_code == 403
