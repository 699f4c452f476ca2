import functools

import django.db.models.deletion
from django.db import migrations, models

import ticketing.domain.value_objects


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=functools.partial(ticketing.domain.value_objects.new_id, "user"),
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("name", models.CharField(max_length=255)),
                (
                    "role",
                    models.CharField(
                        choices=[("student", "Student"), ("club_admin", "Club admin")],
                        max_length=20,
                    ),
                ),
                ("wallet_address", models.CharField(blank=True, max_length=42, null=True)),
                ("department", models.CharField(blank=True, max_length=255, null=True)),
                ("verified", models.BooleanField(default=False)),
            ],
        ),
        migrations.CreateModel(
            name="Event",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=functools.partial(ticketing.domain.value_objects.new_id, "event"),
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("date", models.DateField()),
                ("time", models.TimeField(blank=True, null=True)),
                ("location", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("organizer", models.CharField(max_length=255)),
                ("capacity", models.PositiveIntegerField()),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("general", "General"),
                            ("tech", "Technology"),
                            ("cultural", "Cultural"),
                            ("sports", "Sports"),
                            ("academic", "Academic"),
                            ("workshop", "Workshop"),
                        ],
                        default="general",
                        max_length=20,
                    ),
                ),
                ("image", models.URLField(blank=True, max_length=500, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("upcoming", "Upcoming"), ("past", "Past"), ("cancelled", "Cancelled")],
                        default="upcoming",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organizer_user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="organized_events",
                        to="ticketing.user",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "time"],
                "indexes": [models.Index(fields=["status", "date"], name="event_status_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="ConsentRequest",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=functools.partial(ticketing.domain.value_objects.new_id, "consent"),
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("request_date", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("email_verified", models.BooleanField(default=False)),
                ("blockchain_verified", models.BooleanField(default=False)),
                ("verification_token", models.TextField(blank=True, null=True)),
                ("verification_expiry", models.DateTimeField(blank=True, null=True)),
                ("issuance_ticket_id", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consent_requests",
                        to="ticketing.event",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consent_requests",
                        to="ticketing.user",
                    ),
                ),
            ],
            options={
                "ordering": ["-request_date"],
                "indexes": [models.Index(fields=["event", "student"], name="consent_event_student_idx")],
            },
        ),
        migrations.CreateModel(
            name="VerificationToken",
            fields=[
                ("token_digest", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("expires_at", models.DateTimeField()),
                ("consumed_at", models.DateTimeField(blank=True, null=True)),
                ("revoked_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "consent_request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tokens",
                        to="ticketing.consentrequest",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("issue_date", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("used", "Used"), ("expired", "Expired")],
                        default="active",
                        max_length=20,
                    ),
                ),
                ("qr_code", models.URLField(max_length=500)),
                ("transaction_reference", models.CharField(max_length=66)),
                ("simulated_issuance", models.BooleanField(default=False)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                (
                    "consent_request",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ticket",
                        to="ticketing.consentrequest",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="ticketing.event",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="ticketing.user",
                    ),
                ),
            ],
            options={
                "ordering": ["-issue_date"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "active")),
                        fields=("event", "student"),
                        name="one_active_ticket_per_student_event",
                    )
                ],
            },
        ),
    ]
