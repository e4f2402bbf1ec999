import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("title", models.CharField(help_text="Short job title", max_length=200)),
                (
                    "description",
                    models.TextField(blank=True, default="", help_text="Job description"),
                ),
                (
                    "budget",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Client budget in major currency units",
                        max_digits=12,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="open",
                        help_text="Work lifecycle status",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("escrow", "In Escrow"),
                            ("released", "Released"),
                        ],
                        db_index=True,
                        default="unpaid",
                        help_text="Escrow status of the client's payment",
                        max_length=20,
                    ),
                ),
                (
                    "completed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When funds for this job were released",
                        null=True,
                    ),
                ),
                (
                    "assigned_freelancer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Freelancer whose proposal was paid for",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assigned_jobs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        help_text="Client who posted and pays for this job",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="posted_jobs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Proposal",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Offered price in major currency units",
                        max_digits=12,
                    ),
                ),
                (
                    "cover_letter",
                    models.TextField(blank=True, default="", help_text="Freelancer's pitch"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("accepted", "Accepted"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Proposal status",
                        max_length=20,
                    ),
                ),
                (
                    "accepted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the proposal was accepted",
                        null=True,
                    ),
                ),
                (
                    "freelancer",
                    models.ForeignKey(
                        help_text="Freelancer offering to do the job",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="proposals",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "job",
                    models.ForeignKey(
                        help_text="Job this proposal is for",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="proposals",
                        to="marketplace.job",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("job", "freelancer"),
                        name="proposal_one_per_freelancer_per_job",
                    )
                ],
            },
        ),
        migrations.AddField(
            model_name="job",
            name="assigned_proposal",
            field=models.ForeignKey(
                blank=True,
                help_text="Proposal that was accepted when payment was held",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="marketplace.proposal",
            ),
        ),
        migrations.AddIndex(
            model_name="job",
            index=models.Index(
                fields=["client", "status"],
                name="job_client_status_idx",
            ),
        ),
    ]
