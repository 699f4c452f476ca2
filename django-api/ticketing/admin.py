from django.contrib import admin

from ticketing.models import ConsentRequest, Event, Ticket, User, VerificationToken


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    fields = ["id", "student", "status", "issue_date", "used_at"]
    readonly_fields = fields


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ["name", "email", "role", "department", "verified"]
    list_filter = ["role"]
    search_fields = ["name", "email"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "date", "location", "category", "status", "capacity"]
    list_filter = ["status", "category"]
    search_fields = ["name", "location"]
    inlines = [TicketInline]


@admin.register(ConsentRequest)
class ConsentRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "event", "student", "status", "email_verified", "blockchain_verified", "request_date"]
    list_filter = ["status", "event"]
    exclude = ["verification_token"]


@admin.register(VerificationToken)
class VerificationTokenAdmin(admin.ModelAdmin):
    list_display = ["consent_request", "expires_at", "consumed_at", "revoked_at"]
    readonly_fields = ["token_digest"]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["id", "event", "student", "status", "simulated_issuance", "issue_date"]
    list_filter = ["status", "event"]
    search_fields = ["id", "transaction_reference"]
