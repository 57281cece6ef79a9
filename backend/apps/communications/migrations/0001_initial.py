import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('bookings', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BookingCommunication',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('CONFIRMATION', 'Confirmation'), ('REMINDER', 'Reminder'), ('MARKETING', 'Marketing'), ('CUSTOMER_REPLY', 'Customer Reply'), ('BUSINESS_REPLY', 'Business Reply')], max_length=20)),
                ('channel', models.CharField(choices=[('EMAIL', 'Email')], default='EMAIL', max_length=10)),
                ('direction', models.CharField(choices=[('INBOUND', 'Inbound'), ('OUTBOUND', 'Outbound')], max_length=10)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SENT', 'Sent'), ('DELIVERED', 'Delivered'), ('FAILED', 'Failed'), ('RECEIVED', 'Received')], default='PENDING', max_length=10)),
                ('subject', models.CharField(blank=True, max_length=255)),
                ('content', models.TextField()),
                ('from_address', models.CharField(blank=True, max_length=255)),
                ('to_address', models.CharField(blank=True, max_length=255)),
                ('message_id', models.CharField(blank=True, help_text='Message-ID header of the email', max_length=255)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('error_message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='communications', to='bookings.booking')),
            ],
            options={
                'verbose_name': 'Booking Communication',
                'verbose_name_plural': 'Booking Communications',
                'db_table': 'booking_communications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['booking', '-created_at'], name='booking_com_booking_2c9d4e_idx'),
                    models.Index(fields=['type', 'status'], name='booking_com_type_6f1a3b_idx'),
                ],
            },
        ),
    ]
