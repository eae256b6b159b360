"""Initial schema for the ``apps.certificates`` application."""

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Certificate",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("credential_id", models.CharField(max_length=96, unique=True)),
                ("track_id", models.CharField(max_length=64)),
                ("title", models.CharField(max_length=255)),
                ("recipient_name", models.CharField(max_length=255)),
                ("issuer_name", models.CharField(max_length=255)),
                (
                    "issued_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, editable=False
                    ),
                ),
                (
                    "score",
                    models.FloatField(
                        default=100,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                    ),
                ),
                ("pdf_path", models.CharField(max_length=255)),
                ("pdf_hash", models.CharField(max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("revoked", "Revoked"),
                            ("reissued", "Reissued"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=16,
                    ),
                ),
                ("revoked_at", models.DateTimeField(blank=True, null=True)),
                ("revoked_reason", models.TextField(blank=True)),
                (
                    "reissued_from",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Credential id of the certificate this one superseded.",
                        max_length=96,
                    ),
                ),
                ("anchor_tx_hash", models.CharField(blank=True, max_length=80)),
                ("anchor_block_number", models.BigIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="certificates",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-issued_at", "-created_at"),
            },
        ),
        migrations.CreateModel(
            name="AnchorBlock",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("sequence", models.PositiveBigIntegerField(unique=True)),
                (
                    "kind",
                    models.CharField(
                        choices=[("issue", "Issue"), ("revoke", "Revoke")],
                        max_length=16,
                    ),
                ),
                ("credential_id", models.CharField(db_index=True, max_length=96)),
                ("title", models.CharField(blank=True, max_length=255)),
                ("track_id", models.CharField(blank=True, max_length=64)),
                ("owner_address", models.CharField(blank=True, max_length=64)),
                ("previous_hash", models.CharField(max_length=64)),
                ("block_hash", models.CharField(max_length=64, unique=True)),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "ordering": ("sequence",),
            },
        ),
        migrations.AddConstraint(
            model_name="anchorblock",
            constraint=models.UniqueConstraint(
                fields=("credential_id", "kind"),
                name="unique_anchor_per_credential_kind",
            ),
        ),
    ]
