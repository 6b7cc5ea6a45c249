import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RoleGrant",
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
                ("actor_id", models.CharField(max_length=255)),
                ("capability", models.CharField(max_length=32)),
                (
                    "granted_by",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "granted_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
            ],
            options={
                "db_table": "custody_role_grants",
                "ordering": ["actor_id", "capability", "id"],
                "indexes": [
                    models.Index(
                        fields=["capability"], name="idx_role_grant_capability"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("actor_id", "capability"),
                        name="uq_role_grant_actor_capability",
                    ),
                ],
            },
        ),
    ]
