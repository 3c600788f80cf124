import uuid
from django.db import models


class Product(models.Model):
    # UUID PK used by the storefront when it writes products itself
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Secondary ``id`` carried by catalog entries seeded from sample data
    external_id = models.CharField(max_length=64, unique=True, null=True, blank=True)

    name = models.CharField(max_length=100)
    image = models.URLField(max_length=500, blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2)
    stock_count = models.PositiveIntegerField(default=0)
    # Kept equal to ``stock_count > 0`` by apps.catalog.inventory
    in_stock = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]

    def __str__(self):
        return self.name
