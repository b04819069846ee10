from django.urls import path
from . import views

app_name = 'parent'

urlpatterns = [
    path('dashboard/', views.ParentDashboardView.as_view(), name='dashboard'),
    path('children/<int:student_id>/fees/', views.ChildFeesView.as_view(), name='child_fees'),
    path('results/', views.ChildResultsView.as_view(), name='results'),
]
