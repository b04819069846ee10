from django.contrib import admin

from .models import Admin, Teacher


@admin.register(Teacher)
class TeacherAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'phone', 'designation', 'status')
    list_filter = ('status',)
    search_fields = ('name', 'email', 'phone')


@admin.register(Admin)
class SchoolAdminAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'role')
    search_fields = ('name', 'email')
