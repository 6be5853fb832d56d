# Generated manually - link Business to the payment that settled its fee

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("businesses", "0001_initial"),
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="business",
            name="payment",
            field=models.ForeignKey(
                blank=True,
                help_text="Payment that settled the listing fee",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="payments.payment",
            ),
        ),
    ]
