from django.db import models
from django.utils import timezone


class AppLog(models.Model):
    level = models.CharField(max_length=16)
    channel = models.CharField(max_length=64, db_index=True)
    message = models.TextField()
    context = models.JSONField(default=dict, blank=True)
    extra = models.JSONField(default=dict, blank=True)
    environment = models.CharField(max_length=32, default="local")
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "logs"
        ordering = ["-created_at"]

    def __str__(self):
        return f"[{self.level}] {self.channel}: {self.message[:60]}"
