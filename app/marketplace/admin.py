"""
Django admin configuration for marketplace models.
"""

from django.contrib import admin

from marketplace.models import Job, Proposal


class ProposalInline(admin.TabularInline):
    model = Proposal
    extra = 0
    fields = ("freelancer", "amount", "status", "accepted_at")
    readonly_fields = ("accepted_at",)


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    """Admin for jobs; payment fields are written by the payments app."""

    list_display = ("title", "client", "budget", "status", "payment_status", "created_at")
    list_filter = ("status", "payment_status")
    search_fields = ("title", "client__email")
    readonly_fields = (
        "payment_status",
        "assigned_freelancer",
        "assigned_proposal",
        "completed_at",
        "created_at",
        "updated_at",
    )
    inlines = [ProposalInline]


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ("job", "freelancer", "amount", "status", "accepted_at")
    list_filter = ("status",)
    search_fields = ("job__title", "freelancer__email")
