from django.contrib import admin

from .models import Exam, ExamMark, ExamSubject, ResultEntry, ResultSheet


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('name', 'term', 'start_date', 'end_date', 'status')
    list_filter = ('status', 'term')
    search_fields = ('name',)


@admin.register(ExamSubject)
class ExamSubjectAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student_class', 'name', 'code', 'max_marks')
    list_filter = ('exam', 'student_class')


@admin.register(ExamMark)
class ExamMarkAdmin(admin.ModelAdmin):
    list_display = ('exam', 'subject', 'student', 'mark')
    list_filter = ('exam',)


class ResultEntryInline(admin.TabularInline):
    model = ResultEntry
    extra = 0
    readonly_fields = ('student', 'roll', 'name', 'grade', 'total_marks', 'gpa', 'position')
    fields = readonly_fields + ('comment',)


@admin.register(ResultSheet)
class ResultSheetAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student_class', 'processed_at')
    inlines = [ResultEntryInline]
