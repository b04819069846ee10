from django.db import models


class StudentClass(models.Model):
    name = models.CharField(max_length=200, unique=True)
    numeric_name = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Class"
        verbose_name_plural = "Classes"
        ordering = ["numeric_name", "name"]

    def __str__(self):
        return self.name
