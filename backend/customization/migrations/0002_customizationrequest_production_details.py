from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("customization", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="customizationrequest",
            name="production_details",
            field=models.JSONField(blank=True, null=True),
        ),
    ]
