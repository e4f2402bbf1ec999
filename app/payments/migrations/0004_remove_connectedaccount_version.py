"""
Drop ConnectedAccount.version. Account mirrors are last-writer-wins from
Stripe, so nothing ever compared the counter.
"""

from django.db import migrations


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0003_subscription_paid_tier"),
    ]

    operations = [
        migrations.RemoveField(
            model_name="connectedaccount",
            name="version",
        ),
    ]
