import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='EnrollmentSession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('step', models.PositiveSmallIntegerField(choices=[(0, 'program_selection'), (1, 'student_info'), (2, 'course_selection'), (3, 'payment_proof'), (4, 'confirmation')], default=0)),
                ('form_data_encrypted', models.TextField(blank=True, default='')),
                ('calculated_price', models.FloatField(default=0.0)),
                ('is_submitting', models.BooleanField(default=False)),
                ('registration_id', models.CharField(blank=True, default='', max_length=128)),
                ('registration', models.JSONField(blank=True, default=dict)),
                ('last_message', models.TextField(blank=True, default='')),
                ('last_verdict', models.JSONField(blank=True, default=dict)),
                ('firebase_uid', models.CharField(blank=True, default='', max_length=128)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'indexes': [models.Index(fields=['expires_at'], name='enrollment_expires_idx')],
            },
        ),
    ]
