from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="streak_counted_on",
            field=models.DateField(blank=True, null=True),
        ),
    ]
