from django.urls import path
from . import views

app_name = "finance"

urlpatterns = [
    # Collections
    path("monthly/collect/", views.collect_monthly_fee, name="collect_monthly_fee"),
    path("admission/collect/", views.collect_admission_fee, name="collect_admission_fee"),
    path("exam/collect/", views.collect_exam_fee, name="collect_exam_fee"),

    # Ledger state for the collection dialogs
    path("monthly/students/<int:student_id>/", views.monthly_fee_state, name="monthly_fee_state"),
    path("monthly/classes/<int:class_id>/", views.monthly_fee_grid, name="monthly_fee_grid"),
    path("admission/students/<int:student_id>/", views.admission_fee_state, name="admission_fee_state"),
    path("exam/<int:exam_id>/students/<int:student_id>/", views.exam_fee_state, name="exam_fee_state"),

    # Fee settings
    path("settings/classes/<int:class_id>/", views.fee_schedule, name="fee_schedule"),
    path("settings/", views.save_fee_settings, name="save_fee_settings"),

    # Reports
    path("dashboard/", views.admin_dashboard, name="admin_dashboard"),
    path("reports/dues/export/", views.export_due_report, name="export_due_report"),
]
