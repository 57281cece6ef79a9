from django.db import models
from django.db.models.functions import Lower
import uuid


class Guest(models.Model):
    """A person who has booked, or is booking, with a business."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey('users.Business', on_delete=models.CASCADE, related_name='guests')

    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    zip_code = models.CharField(max_length=10, blank=True)

    marketing_opt_in = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'guests'
        constraints = [
            models.UniqueConstraint(Lower('email'), 'business', name='guests_business_email_ci_uniq'),
        ]
        verbose_name = 'Guest'
        verbose_name_plural = 'Guests'
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.email})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()
