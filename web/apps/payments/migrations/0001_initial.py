from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.CharField(max_length=255, unique=True)),
                ("type", models.CharField(max_length=100)),
                ("payment_intent_id", models.CharField(blank=True, db_index=True, default="", max_length=255)),
                ("event_created_at", models.DateTimeField()),
                ("outcome", models.CharField(choices=[("applied", "Applied"), ("stale", "Stale"), ("no_order", "No Order"), ("ignored", "Ignored")], max_length=16)),
                ("received_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "payment_webhook_events",
                "ordering": ["-received_at"],
            },
        ),
    ]
