import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('users', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Experience',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('slug', models.SlugField(max_length=120)),
                ('description', models.TextField(blank=True)),
                ('base_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('duration', models.PositiveIntegerField(help_text='Session length (minutes)', validators=[django.core.validators.MinValueValidator(1)])),
                ('max_capacity', models.PositiveIntegerField(help_text='Default number of guests per session', validators=[django.core.validators.MinValueValidator(1)])),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='experiences', to='users.business')),
            ],
            options={
                'verbose_name': 'Experience',
                'verbose_name_plural': 'Experiences',
                'db_table': 'experiences',
                'ordering': ['sort_order', 'name'],
                'indexes': [models.Index(fields=['business', 'is_active'], name='experiences_busines_6d0c1e_idx')],
                'unique_together': {('business', 'slug')},
            },
        ),
        migrations.CreateModel(
            name='AddOn',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True)),
                ('price', models.DecimalField(decimal_places=2, max_digits=6, validators=[django.core.validators.MinValueValidator(Decimal('0.01')), django.core.validators.MaxValueValidator(Decimal('9999.99'))])),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='add_ons', to='users.business')),
            ],
            options={
                'verbose_name': 'Add-on',
                'verbose_name_plural': 'Add-ons',
                'db_table': 'add_ons',
                'ordering': ['sort_order', 'name'],
                'unique_together': {('business', 'name')},
            },
        ),
        migrations.CreateModel(
            name='Event',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('slug', models.SlugField(blank=True, max_length=120)),
                ('description', models.TextField(blank=True)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('is_active', models.BooleanField(default=True)),
                ('base_price', models.DecimalField(blank=True, decimal_places=2, help_text='Ticket price. Falls back to the experience base price.', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('max_capacity', models.PositiveIntegerField(blank=True, help_text='Guests per session. Falls back to the experience capacity.', null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('experience', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='events', to='experiences.experience')),
            ],
            options={
                'verbose_name': 'Event',
                'verbose_name_plural': 'Events',
                'db_table': 'events',
                'ordering': ['start_date'],
                'indexes': [models.Index(fields=['experience', 'is_active', 'start_date'], name='events_experie_3f9a2b_idx')],
                'unique_together': {('experience', 'slug')},
            },
        ),
        migrations.CreateModel(
            name='EventAddOn',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('add_on', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='event_links', to='experiences.addon')),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='add_on_links', to='experiences.event')),
            ],
            options={
                'verbose_name': 'Event Add-on',
                'verbose_name_plural': 'Event Add-ons',
                'db_table': 'event_add_ons',
                'unique_together': {('event', 'add_on')},
            },
        ),
        migrations.AddField(
            model_name='event',
            name='add_ons',
            field=models.ManyToManyField(blank=True, related_name='events', through='experiences.EventAddOn', to='experiences.addon'),
        ),
        migrations.CreateModel(
            name='Session',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('start_time', models.DateTimeField()),
                ('end_time', models.DateTimeField()),
                ('max_capacity', models.PositiveIntegerField(blank=True, help_text='Overrides event and experience capacity', null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ('current_count', models.PositiveIntegerField(default=0, help_text='Tickets held by active bookings')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='experiences.event')),
            ],
            options={
                'verbose_name': 'Session',
                'verbose_name_plural': 'Sessions',
                'db_table': 'sessions',
                'ordering': ['start_time'],
                'indexes': [
                    models.Index(fields=['event', 'start_time'], name='sessions_event_i_8c2d4e_idx'),
                    models.Index(fields=['start_time'], name='sessions_start_t_1a7b9f_idx'),
                ],
            },
        ),
    ]
