from django.db import migrations, models


STATUS_CHOICES = [
    ("UNKNOWN", "Unknown"),
    ("MANUFACTURED", "Manufactured"),
    ("IN_TRANSIT", "In transit"),
    ("IN_WAREHOUSE", "In warehouse"),
    ("DELIVERED", "Delivered"),
    ("RECALLED", "Recalled"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LedgerSequence",
            fields=[
                (
                    "name",
                    models.CharField(max_length=64, primary_key=True, serialize=False),
                ),
                ("last_value", models.PositiveBigIntegerField(default=0)),
            ],
            options={
                "db_table": "custody_sequences",
            },
        ),
        migrations.CreateModel(
            name="ProductRecord",
            fields=[
                (
                    "product_id",
                    models.PositiveBigIntegerField(primary_key=True, serialize=False),
                ),
                ("sku", models.TextField()),
                ("description", models.TextField(blank=True, default="")),
                ("owner_id", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(choices=STATUS_CHOICES, max_length=20),
                ),
                ("created_at", models.DateTimeField()),
                ("history_length", models.PositiveIntegerField(default=0)),
            ],
            options={
                "db_table": "custody_products",
                "ordering": ["product_id"],
                "indexes": [
                    models.Index(fields=["owner_id"], name="idx_product_owner"),
                    models.Index(fields=["status"], name="idx_product_status"),
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoryEntry",
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
                ("index", models.PositiveIntegerField()),
                ("recorded_at", models.DateTimeField()),
                ("actor_id", models.CharField(max_length=255)),
                ("role_label", models.CharField(max_length=64)),
                ("location", models.TextField(blank=True, default="")),
                ("note", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(choices=STATUS_CHOICES, max_length=20),
                ),
                (
                    "product",
                    models.ForeignKey(
                        db_column="product_id",
                        on_delete=models.deletion.PROTECT,
                        related_name="history",
                        to="core_ledger_store.productrecord",
                    ),
                ),
            ],
            options={
                "db_table": "custody_history",
                "ordering": ["product_id", "index"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "index"),
                        name="uq_history_product_index",
                    ),
                ],
            },
        ),
    ]
