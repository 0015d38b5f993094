import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("organizer_id", models.UUIDField()),
                (
                    "kind",
                    models.CharField(
                        choices=[("NORMAL", "NORMAL"), ("MERCHANDISE", "MERCHANDISE")],
                        max_length=20,
                    ),
                ),
                (
                    "eligibility",
                    models.CharField(
                        choices=[
                            ("ALL", "ALL"),
                            ("IIIT_ONLY", "IIIT_ONLY"),
                            ("NON_IIIT_ONLY", "NON_IIIT_ONLY"),
                        ],
                        default="ALL",
                        max_length=20,
                    ),
                ),
                ("registration_deadline", models.DateTimeField()),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("capacity", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "registration_fee",
                    models.DecimalField(decimal_places=2, default=0, max_digits=10),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "DRAFT"),
                            ("PUBLISHED", "PUBLISHED"),
                            ("ONGOING", "ONGOING"),
                            ("CLOSED", "CLOSED"),
                        ],
                        default="DRAFT",
                        max_length=20,
                    ),
                ),
                ("allow_late_registration", models.BooleanField(default=False)),
                ("custom_form", models.JSONField(blank=True, default=list)),
                ("total_stock", models.PositiveIntegerField(blank=True, null=True)),
                ("stock_backfilled", models.BooleanField(default=False)),
                ("purchase_limit", models.PositiveIntegerField(default=1)),
                (
                    "total_revenue",
                    models.DecimalField(decimal_places=2, default=0, max_digits=12),
                ),
                ("total_attendance", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["organizer_id", "status"],
                        name="registratio_organiz_4c1d2e_idx",
                    ),
                    models.Index(
                        fields=["registration_deadline"],
                        name="registratio_registr_8a7f31_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Variant",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=100)),
                ("size", models.CharField(max_length=20)),
                ("color", models.CharField(max_length=50)),
                (
                    "price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                ("stock", models.PositiveIntegerField(default=0)),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variants",
                        to="registrations.event",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("stock__gte", 0)),
                        name="variant_stock_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("participant_id", models.UUIDField()),
                ("participant_name", models.CharField(blank=True, max_length=255)),
                ("participant_email", models.EmailField(blank=True, max_length=254)),
                (
                    "kind",
                    models.CharField(
                        choices=[("STANDARD", "STANDARD"), ("MERCHANDISE", "MERCHANDISE")],
                        max_length=20,
                    ),
                ),
                ("form_answers", models.JSONField(blank=True, default=dict)),
                ("quantity", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "PENDING"),
                            ("CONFIRMED", "CONFIRMED"),
                            ("CANCELLED", "CANCELLED"),
                            ("REJECTED", "REJECTED"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("UNPAID", "UNPAID"),
                            ("PENDING_APPROVAL", "PENDING_APPROVAL"),
                            ("PAID", "PAID"),
                            ("REJECTED", "REJECTED"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "amount_due",
                    models.DecimalField(decimal_places=2, default=0, max_digits=10),
                ),
                (
                    "amount_paid",
                    models.DecimalField(decimal_places=2, default=0, max_digits=10),
                ),
                (
                    "payment_proof",
                    models.CharField(blank=True, max_length=500, null=True),
                ),
                ("proof_submitted_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("approved_by", models.UUIDField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("hold_expires_at", models.DateTimeField(blank=True, null=True)),
                ("stock_released", models.BooleanField(default=False)),
                (
                    "ticket_id",
                    models.CharField(blank=True, max_length=64, null=True, unique=True),
                ),
                ("ticket_payload", models.TextField(blank=True, null=True)),
                ("ticket_issued_at", models.DateTimeField(blank=True, null=True)),
                ("attended", models.BooleanField(default=False)),
                ("attended_at", models.DateTimeField(blank=True, null=True)),
                ("attendance_marked_by", models.UUIDField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to="registrations.event",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to="registrations.variant",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["event", "status"], name="registratio_event_i_5b9e0c_idx"
                    ),
                    models.Index(
                        fields=["event", "payment_status"],
                        name="registratio_event_i_d23a64_idx",
                    ),
                    models.Index(
                        fields=["hold_expires_at"], name="registratio_hold_ex_71f0a9_idx"
                    ),
                    models.Index(
                        fields=["participant_id", "created_at"],
                        name="registratio_partici_3e92b7_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "CANCELLED"), _negated=True),
                        fields=("event", "participant_id"),
                        name="one_active_registration_per_participant",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RegistrationTransition",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("CREATED", "CREATED"),
                            ("PROOF_SUBMITTED", "PROOF_SUBMITTED"),
                            ("APPROVED", "APPROVED"),
                            ("REJECTED", "REJECTED"),
                            ("CANCELLED", "CANCELLED"),
                            ("EXPIRED", "EXPIRED"),
                            ("TICKET_ISSUED", "TICKET_ISSUED"),
                            ("CHECKED_IN", "CHECKED_IN"),
                            ("CHECK_IN_OVERRIDE", "CHECK_IN_OVERRIDE"),
                        ],
                        max_length=30,
                    ),
                ),
                ("from_status", models.CharField(blank=True, max_length=20, null=True)),
                ("to_status", models.CharField(max_length=20)),
                (
                    "from_payment_status",
                    models.CharField(blank=True, max_length=20, null=True),
                ),
                ("to_payment_status", models.CharField(max_length=20)),
                ("actor_id", models.UUIDField(blank=True, null=True)),
                ("note", models.TextField(blank=True, default="")),
                ("occurred_at", models.DateTimeField()),
                (
                    "registration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transitions",
                        to="registrations.registration",
                    ),
                ),
            ],
            options={
                "ordering": ["occurred_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["registration", "occurred_at"],
                        name="registratio_registr_0e6c55_idx",
                    )
                ],
            },
        ),
    ]
