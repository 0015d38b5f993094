from django.contrib import admin

from registrations.models import Event, Registration, RegistrationTransition, Variant


class VariantInline(admin.TabularInline):
    model = Variant
    extra = 1


class RegistrationTransitionInline(admin.TabularInline):
    model = RegistrationTransition
    extra = 0
    can_delete = False
    readonly_fields = [
        "action",
        "from_status",
        "to_status",
        "from_payment_status",
        "to_payment_status",
        "actor_id",
        "note",
        "occurred_at",
    ]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "kind", "status", "registration_deadline", "starts_at"]
    list_filter = ["kind", "status", "eligibility"]
    search_fields = ["name"]
    inlines = [VariantInline]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = [
        "participant_name",
        "event",
        "status",
        "payment_status",
        "ticket_id",
        "attended",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "kind", "event"]
    search_fields = ["participant_name", "participant_email", "ticket_id"]
    readonly_fields = ["ticket_id", "ticket_payload", "ticket_issued_at", "stock_released"]
    inlines = [RegistrationTransitionInline]
