# Generated manually.
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("scheduling", "0001_initial"),
    ]

    operations = [
        migrations.RemoveConstraint(
            model_name="timeslotinstance",
            name="unique_instance_template_date",
        ),
        migrations.AddConstraint(
            model_name="timeslotinstance",
            constraint=models.UniqueConstraint(
                condition=models.Q(template__isnull=False),
                fields=("template", "date", "start_time", "end_time"),
                name="unique_instance_template_date_times",
            ),
        ),
    ]
