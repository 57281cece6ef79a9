from django.db import migrations, models
import django.db.models.functions.text


class Migration(migrations.Migration):

    dependencies = [
        ('guests', '0001_initial'),
    ]

    operations = [
        migrations.AlterUniqueTogether(
            name='guest',
            unique_together=set(),
        ),
        migrations.AddConstraint(
            model_name='guest',
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower('email'), 'business',
                name='guests_business_email_ci_uniq'
            ),
        ),
    ]
