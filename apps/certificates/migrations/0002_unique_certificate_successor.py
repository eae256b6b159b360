from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("certificates", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="certificate",
            constraint=models.UniqueConstraint(
                condition=models.Q(("reissued_from", ""), _negated=True),
                fields=("reissued_from",),
                name="unique_certificate_successor",
            ),
        ),
    ]
