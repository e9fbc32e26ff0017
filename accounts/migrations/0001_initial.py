import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Resident',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unit_number', models.CharField(blank=True, db_index=True, help_text="Flat / unit number, e.g. 'A-104'", max_length=20)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('role', models.CharField(choices=[('resident', 'Resident'), ('admin', 'Admin'), ('watchman', 'Watchman')], default='resident', max_length=10)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='resident', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['unit_number', 'user__username'],
            },
        ),
    ]
