import json
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse

from apps.finance.models import FeeSettings, MONTHS, MonthlyFeeRecord
from apps.result.models import Exam
from apps.staffs.models import Admin


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


@pytest.fixture
def monthly_payload(student, fee_settings, year):
    return {
        'student': student.pk,
        'year': year,
        'month': MONTHS[0],
        'paid_amount': "300",
        'collected_by': "Office",
        'collection_date': f"{year}-01-10",
    }


def test_collection_requires_login(client, monthly_payload):
    response = post_json(client, reverse("finance:collect_monthly_fee"), monthly_payload)

    assert response.status_code == 302


def test_collect_monthly_fee(admin_client, monthly_payload, student, year):
    response = post_json(admin_client, reverse("finance:collect_monthly_fee"), monthly_payload)

    assert response.status_code == 201
    assert response.json()['voucher_no'] == 1
    assert MonthlyFeeRecord.objects.get(student=student, year=year).total_donation == Decimal("200")


def test_resubmitted_collection_is_replayed(admin_client, monthly_payload):
    payload = {**monthly_payload, 'idempotency_key': "form-7f3a"}
    url = reverse("finance:collect_monthly_fee")

    first = post_json(admin_client, url, payload)
    second = post_json(admin_client, url, payload)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()['replayed'] is True
    assert second.json()['voucher_no'] == first.json()['voucher_no']


def test_invalid_month_is_rejected(admin_client, monthly_payload):
    response = post_json(admin_client, reverse("finance:collect_monthly_fee"), {**monthly_payload, 'month': "January"})

    assert response.status_code == 400
    assert 'month' in response.json()['errors']
    assert not MonthlyFeeRecord.objects.exists()


def test_missing_collector_is_rejected(admin_client, monthly_payload):
    payload = dict(monthly_payload)
    del payload['collected_by']

    response = post_json(admin_client, reverse("finance:collect_monthly_fee"), payload)

    assert response.status_code == 400
    assert 'collected_by' in response.json()['errors']


def test_json_body_must_be_an_object(admin_client, monthly_payload):
    response = post_json(admin_client, reverse("finance:collect_monthly_fee"), [monthly_payload])

    assert response.status_code == 400
    assert response.json()['errors'] == {'__all__': ["Send a JSON object."]}
    assert not MonthlyFeeRecord.objects.exists()


def test_monthly_state_shows_next_voucher(admin_client, monthly_payload, student, year):
    post_json(admin_client, reverse("finance:collect_monthly_fee"), monthly_payload)

    response = admin_client.get(
        reverse("finance:monthly_fee_state", args=[student.pk]), {'year': year, 'month': MONTHS[1]}
    )

    data = response.json()
    assert data['status'] == "due"
    assert Decimal(data['paid_amount']) == Decimal("500")
    assert data['next_voucher'] == 2


def test_collect_admission_fee_form_data(admin_client, student, fee_settings, year):
    response = admin_client.post(reverse("finance:collect_admission_fee"), {
        'student': student.pk,
        'year': year,
        'fee_deposited': "1000",
        'collected_by': "Office",
        'collection_date': f"{year}-01-10",
    })

    assert response.status_code == 201
    state = admin_client.get(reverse("finance:admission_fee_state", args=[student.pk]), {'year': year}).json()
    assert state['fee_type'] == "Admission"
    assert Decimal(state['total_due']) == 0
    assert state['next_voucher'] == 2


def test_collect_exam_fee(admin_client, student, fee_settings, make_exam, year):
    exam = make_exam("Final Exam")

    response = post_json(admin_client, reverse("finance:collect_exam_fee"), {
        'exam': exam.pk,
        'student': student.pk,
        'paid_amount': 250,
        'discount': 0,
        'collected_by': "Office",
        'collection_date': f"{year}-04-01",
    })

    assert response.status_code == 201
    state = admin_client.get(reverse("finance:exam_fee_state", args=[exam.pk, student.pk])).json()
    assert Decimal(state['due']) == Decimal("50")


def test_save_fee_settings_updates_existing_row(admin_client, fee_settings, class_six, year):
    response = post_json(admin_client, reverse("finance:save_fee_settings"), {
        'student_class': class_six.pk,
        'year': year,
        'monthly_fee': "650",
    })

    assert response.status_code == 200
    fee_settings.refresh_from_db()
    assert fee_settings.monthly_fee == Decimal("650")
    assert FeeSettings.objects.count() == 1


def test_negative_fee_settings_are_rejected(admin_client, class_six, year):
    response = post_json(admin_client, reverse("finance:save_fee_settings"), {
        'student_class': class_six.pk, 'year': year, 'monthly_fee': "-1",
    })

    assert response.status_code == 400


def test_fee_settings_with_non_numeric_year_are_rejected(admin_client, class_six):
    response = post_json(admin_client, reverse("finance:save_fee_settings"), {
        'student_class': class_six.pk, 'year': "next", 'monthly_fee': "500",
    })

    assert response.status_code == 400
    assert 'year' in response.json()['errors']
    assert not FeeSettings.objects.exists()


def test_admin_dashboard(admin_client, student, fee_settings, year):
    response = admin_client.get(reverse("finance:admin_dashboard"), {'year': year})

    data = response.json()
    assert data['students'] == 1
    assert len(data['chart']) == 12
    assert Decimal(data['total_due']) == Decimal("7400")


def test_due_report_csv(admin_client, student, fee_settings, year):
    response = admin_client.get(reverse("finance:export_due_report"), {'year': year})

    lines = response.content.decode().splitlines()
    assert lines[0] == "Class,Admission No,Roll,Name,Total Paid,Total Due"
    assert lines[1].startswith(f"Six,{student.admission_no},")
    assert lines[1].endswith(",7400.00") or lines[1].endswith(",7400")


def test_login_redirects_admin(client, db):
    get_user_model().objects.create_user("principal", "principal@example.com", "s3cret-pass")
    Admin.objects.create(name="Principal", email="principal@example.com")

    response = post_json(client, reverse("login"), {
        'username': "principal@example.com", 'password': "s3cret-pass", 'role': "teacher",
    })

    assert response.status_code == 200
    assert response.json()['redirect'] == "/super-admin/dashboard"


def test_login_with_wrong_password(client, db):
    get_user_model().objects.create_user("principal", "principal@example.com", "s3cret-pass")
    Admin.objects.create(name="Principal", email="principal@example.com")

    response = post_json(client, reverse("login"), {
        'username': "principal@example.com", 'password': "wrong", 'role': "parent",
    })

    assert response.status_code == 401


def test_parent_dashboard(client, student, fee_settings, make_exam, year):
    user = get_user_model().objects.create_user("family", student.email, "pw-123456")
    make_exam("Final Exam", status=Exam.Status.PUBLISHED)
    client.force_login(user)

    data = client.get(reverse("parent:dashboard"), {'year': year}).json()

    assert [c['id'] for c in data['children']] == [student.pk]
    assert Decimal(data['due_fee']) == Decimal("7700")
    assert data['results_published'] == 1


def test_parent_cannot_see_other_children(client, make_student, student, year):
    other = make_student()
    user = get_user_model().objects.create_user("family", student.email, "pw-123456")
    client.force_login(user)

    assert client.get(reverse("parent:child_fees", args=[student.pk])).status_code == 200
    assert client.get(reverse("parent:child_fees", args=[other.pk])).status_code == 404
