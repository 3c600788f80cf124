"""Move addresses written with the legacy ``street`` key to ``address1``.

Runs once over historical orders so the writer no longer needs to emit both
keys. Orders that already carry ``address1`` keep it; ``street`` is dropped.
"""

from django.db import migrations

ADDRESS_FIELDS = ("shipping_address", "billing_address")


def _migrate_address(address):
    if not isinstance(address, dict) or "street" not in address:
        return address, False
    migrated = dict(address)
    street = migrated.pop("street")
    if not migrated.get("address1"):
        migrated["address1"] = street
    return migrated, True


def street_to_address1(apps, schema_editor):
    OrderModel = apps.get_model("orders", "OrderModel")
    for order in OrderModel.objects.all().iterator():
        changed_fields = []
        for name in ADDRESS_FIELDS:
            migrated, changed = _migrate_address(getattr(order, name))
            if changed:
                setattr(order, name, migrated)
                changed_fields.append(name)
        if changed_fields:
            order.save(update_fields=changed_fields)


class Migration(migrations.Migration):

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(street_to_address1, migrations.RunPython.noop),
    ]
