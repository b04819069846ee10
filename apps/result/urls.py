from django.urls import path
from . import views

app_name = "result"

urlpatterns = [
    path("exams/<int:exam_id>/classes/<int:class_id>/process/", views.process_results_view, name="process_results"),
    path("exams/<int:exam_id>/classes/<int:class_id>/", views.result_sheet_view, name="result_sheet"),
]
