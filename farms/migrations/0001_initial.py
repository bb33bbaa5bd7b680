import django.core.validators
import django.db.models.deletion
import phonenumber_field.modelfields
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Farm',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('admins', models.ManyToManyField(blank=True, help_text='Administrators responsible for this farm', related_name='administered_farms', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'farms',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('number', models.CharField(help_text='Room number as written on the door', max_length=20)),
                ('gender_restriction', models.CharField(choices=[('male', 'Male'), ('female', 'Female')], help_text='Only workers of this sex may be housed here', max_length=10)),
                ('total_capacity', models.PositiveIntegerField(help_text='Number of beds', validators=[django.core.validators.MinValueValidator(1)])),
                ('current_occupancy', models.PositiveIntegerField(default=0)),
                ('occupant_ids', models.JSONField(blank=True, default=list, help_text='Ids of the active workers housed here at the last recompute')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('farm', models.ForeignKey(help_text='Farm this room belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='rooms', to='farms.farm')),
            ],
            options={
                'db_table': 'rooms',
                'ordering': ['farm__name', 'number', 'gender_restriction'],
            },
        ),
        migrations.AddConstraint(
            model_name='room',
            constraint=models.UniqueConstraint(fields=('farm', 'number', 'gender_restriction'), name='unique_room_per_farm_and_gender'),
        ),
        migrations.CreateModel(
            name='Worker',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Family name', max_length=150)),
                ('first_name', models.CharField(blank=True, max_length=150)),
                ('national_id', models.CharField(help_text='National identity card number', max_length=30)),
                ('phone', phonenumber_field.modelfields.PhoneNumberField(blank=True, max_length=128, region='MA')),
                ('sex', models.CharField(choices=[('male', 'Male'), ('female', 'Female')], max_length=10)),
                ('age', models.PositiveSmallIntegerField(blank=True, help_text='Derived from year_of_birth when left empty', null=True, validators=[django.core.validators.MinValueValidator(14), django.core.validators.MaxValueValidator(100)])),
                ('year_of_birth', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1900), django.core.validators.MaxValueValidator(2100)])),
                ('room_number', models.CharField(blank=True, help_text="Number of the room the worker sleeps in (matched with the worker's sex)", max_length=20)),
                ('sector', models.CharField(blank=True, help_text='Work sector / team', max_length=100)),
                ('entry_date', models.DateField(db_index=True)),
                ('exit_date', models.DateField(blank=True, db_index=True, null=True)),
                ('exit_reason', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], db_index=True, default='active', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('farm', models.ForeignKey(help_text='Farm employing this worker', on_delete=django.db.models.deletion.PROTECT, related_name='workers', to='farms.farm')),
            ],
            options={
                'db_table': 'workers',
                'ordering': ['name', 'first_name'],
            },
        ),
        migrations.AddConstraint(
            model_name='worker',
            constraint=models.UniqueConstraint(fields=('farm', 'national_id'), name='unique_worker_national_id_per_farm'),
        ),
        migrations.AddIndex(
            model_name='worker',
            index=models.Index(fields=['farm', 'status'], name='workers_farm_status_idx'),
        ),
        migrations.AddIndex(
            model_name='worker',
            index=models.Index(fields=['farm', 'room_number', 'sex'], name='workers_farm_room_sex_idx'),
        ),
    ]
