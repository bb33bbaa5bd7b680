import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('accounts', '0001_initial'),
        ('farms', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='user',
            name='farm',
            field=models.ForeignKey(blank=True, help_text='Farm this account is scoped to (empty for super administrators)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='members', to='farms.farm'),
        ),
    ]
