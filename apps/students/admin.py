from django.contrib import admin

from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('admission_no', 'name', 'current_class', 'section', 'roll',
                    'father_phone', 'status')
    list_filter = ('current_class', 'section', 'gender', 'status')
    search_fields = ('admission_no', 'name', 'phone', 'father_phone', 'mother_phone',
                     'email', 'father_email', 'mother_email')
    fieldsets = (
        ('Student Information', {
            'fields': ('admission_no', 'name', 'gender', 'date_of_birth', 'avatar', 'status')
        }),
        ('Academic', {
            'fields': ('current_class', 'section', 'roll')
        }),
        ('Contact', {
            'fields': ('email', 'phone')
        }),
        ('Guardians', {
            'fields': ('father_name', 'father_phone', 'father_email',
                       'mother_name', 'mother_phone', 'mother_email')
        }),
    )
