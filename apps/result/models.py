from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .grading import grade as grade_for_mark


class Exam(models.Model):
    """An exam sitting; its status gates what parents can see"""

    class Term(models.TextChoices):
        FIRST = '1st-term', _('First Term')
        SECOND = '2nd-term', _('Second Term')
        FINAL = 'final-term', _('Final Term')

    class Status(models.TextChoices):
        PUBLISHED = 'published', _('Published')
        UNPUBLISHED = 'unpublished', _('Unpublished')

    name = models.CharField(max_length=200, verbose_name=_("Exam Name"))
    term = models.CharField(
        max_length=20,
        blank=True,
        choices=Term.choices,
        help_text=_("Leave blank to infer the term from the exam name"),
        verbose_name=_("Term")
    )
    start_date = models.DateTimeField(default=timezone.now, verbose_name=_("Start Date"))
    end_date = models.DateTimeField(null=True, blank=True, verbose_name=_("End Date"))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.UNPUBLISHED,
        verbose_name=_("Status")
    )

    class Meta:
        ordering = ['-start_date']

    def __str__(self):
        return self.name

    @property
    def is_published(self):
        return self.status == self.Status.PUBLISHED

    @property
    def year(self):
        return timezone.localtime(self.start_date).year if self.start_date else timezone.localdate().year


class ExamSubject(models.Model):
    """Subject assigned to a class for an exam, with its maximum mark"""
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='subjects')
    student_class = models.ForeignKey('corecode.StudentClass', on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=20, blank=True)
    max_marks = models.PositiveIntegerField(default=100)

    class Meta:
        ordering = ['exam', 'student_class', 'code', 'name']
        unique_together = ['exam', 'student_class', 'name']

    def __str__(self):
        return f"{self.exam} - {self.student_class} - {self.name}"


class ExamMark(models.Model):
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='marks')
    subject = models.ForeignKey(ExamSubject, on_delete=models.CASCADE, related_name='marks')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='exam_marks')
    mark = models.DecimalField(max_digits=6, decimal_places=2, default=0)

    class Meta:
        unique_together = ['subject', 'student']

    def __str__(self):
        return f"{self.student} - {self.subject.name}: {self.mark}"

    @property
    def grade(self):
        return grade_for_mark(self.mark, self.subject.max_marks)


class ResultSheet(models.Model):
    """Processed results of one class for one exam"""
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='result_sheets')
    student_class = models.ForeignKey('corecode.StudentClass', on_delete=models.CASCADE)
    processed_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['exam', 'student_class']

    def __str__(self):
        return f"{self.exam} - {self.student_class}"


class ResultEntry(models.Model):
    sheet = models.ForeignKey(ResultSheet, on_delete=models.CASCADE, related_name='entries')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='results')
    roll = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=200)
    grade = models.CharField(max_length=3)
    total_marks = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    subject_marks = models.JSONField(default=dict)
    gpa = models.DecimalField(max_digits=4, decimal_places=2, default=0)
    position = models.CharField(max_length=10)
    comment = models.TextField(blank=True)

    class Meta:
        ordering = ['sheet', 'roll']
        unique_together = ['sheet', 'student']
        verbose_name_plural = _('Result entries')

    def __str__(self):
        return f"{self.name} - {self.grade} ({self.gpa})"
