"""
Remember the tier a subscriber paid for, so a renewal that arrives after
the expiry sweep can restore it.
"""

from django.db import migrations, models


def copy_paid_tiers(apps, schema_editor):
    """Seed paid_tier from rows that still carry a paid tier."""
    Subscription = apps.get_model("payments", "Subscription")
    for tier in ("messages", "pro"):
        Subscription.objects.filter(tier=tier).update(paid_tier=tier)


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0002_add_subscription_schedules"),
    ]

    operations = [
        migrations.AddField(
            model_name="subscription",
            name="paid_tier",
            field=models.CharField(
                choices=[("free", "Free"), ("messages", "Messages"), ("pro", "Pro")],
                default="pro",
                help_text="Tier bought at checkout; restored when an expired subscription renews",
                max_length=20,
            ),
        ),
        migrations.RunPython(copy_paid_tiers, migrations.RunPython.noop),
    ]
