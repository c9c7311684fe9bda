# Seed the default runtime configuration keys

from django.db import migrations

from backend.core.system_config import DEFAULT_CONFIGS


def seed_configs(apps, schema_editor):
    SystemConfig = apps.get_model('core', 'SystemConfig')
    for config in DEFAULT_CONFIGS:
        SystemConfig.objects.get_or_create(
            key=config['key'],
            defaults={
                'value': config['value'],
                'default_value': config['value'],
                'description': config['description'],
                'category': config['category'],
            },
        )


def remove_configs(apps, schema_editor):
    SystemConfig = apps.get_model('core', 'SystemConfig')
    SystemConfig.objects.filter(key__in=[config['key'] for config in DEFAULT_CONFIGS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_configs, remove_configs),
    ]
