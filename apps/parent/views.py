from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.views import View

from apps.corecode.utils import current_year
from apps.result.utils import published_results_for
from .utils import child_fee_detail, find_children, parent_dashboard_stats


def _year(request):
    try:
        return int(request.GET.get('year') or current_year())
    except ValueError:
        return current_year()


class ParentLoginRequiredMixin(LoginRequiredMixin):
    """Signed-in family accounts see only the children linked to their email"""

    def children(self):
        return find_children(email=self.request.user.email)

    def child(self, student_id):
        return next((c for c in self.children() if c.pk == student_id), None)


class ParentDashboardView(ParentLoginRequiredMixin, View):
    def get(self, request):
        return JsonResponse(parent_dashboard_stats(email=request.user.email, year=_year(request)))


class ChildFeesView(ParentLoginRequiredMixin, View):
    def get(self, request, student_id):
        child = self.child(student_id)
        if child is None:
            return JsonResponse({'success': False, 'error': 'Student not found.'}, status=404)
        return JsonResponse(child_fee_detail(child, _year(request)))


class ChildResultsView(ParentLoginRequiredMixin, View):
    """Published results of every child"""

    def get(self, request):
        entries = published_results_for(self.children())
        return JsonResponse({
            'results': [
                {
                    'student_id': entry.student_id,
                    'exam': entry.sheet.exam.name,
                    'grade': entry.grade,
                    'gpa': entry.gpa,
                    'total_marks': entry.total_marks,
                    'position': entry.position,
                    'subject_marks': entry.subject_marks,
                    'comment': entry.comment,
                }
                for entry in entries
            ]
        })
