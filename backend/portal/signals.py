from __future__ import annotations

from django.db.models.signals import post_save
from django.dispatch import receiver

from .metrics import record_feedback_metric, record_rating_metric
from .models import Feedback, Rating


@receiver(post_save, sender=Feedback)
def count_feedback(sender, instance: Feedback, created: bool, **kwargs):
  if created:
    record_feedback_metric(instance.priority)


@receiver(post_save, sender=Rating)
def count_rating(sender, instance: Rating, created: bool, **kwargs):
  if created:
    record_rating_metric(instance.rating)
