"""
Management command to set up Django-Q2 schedules for notification jobs.

This command creates/updates the scheduled tasks required for:
- Daily overdue activity log check (9:00 AM)
- Weekly deadline-approaching reminder (Monday 10:00 AM)
- Daily notification queue cleanup (3:00 AM)
- Stalled notification job sweep (every 5 minutes)

Usage:
    python manage.py setup_schedules

The command is idempotent - safe to run multiple times.
Existing schedules will be updated if their configuration changes.
"""
from django.core.management.base import BaseCommand
from django_q.models import Schedule


SCHEDULES = [
    {
        'name': 'Daily Overdue Check',
        'func': 'apps.notifications.tasks.daily_overdue_check',
        'cron': '0 9 * * *',
        'summary': 'Runs daily at 9:00 AM',
    },
    {
        'name': 'Weekly Deadline Reminder',
        'func': 'apps.notifications.tasks.weekly_deadline_reminder',
        'cron': '0 10 * * 1',
        'summary': 'Runs Mondays at 10:00 AM',
    },
    {
        'name': 'Notification Queue Cleanup',
        'func': 'apps.notifications.tasks.cleanup_notification_jobs',
        'cron': '0 3 * * *',
        'summary': 'Runs daily at 3:00 AM',
    },
    {
        'name': 'Stalled Notification Job Sweep',
        'func': 'apps.notifications.tasks.recover_stalled_jobs',
        'cron': '*/5 * * * *',
        'summary': 'Runs every 5 minutes',
    },
]


class Command(BaseCommand):
    help = 'Set up Django-Q2 schedules for notification jobs'

    def handle(self, *args, **options):
        self.stdout.write('\nSetting up Django-Q2 schedules...\n')

        schedules_created = 0
        schedules_updated = 0

        for spec in SCHEDULES:
            _, created = Schedule.objects.update_or_create(
                name=spec['name'],
                defaults={
                    'func': spec['func'],
                    'schedule_type': Schedule.CRON,
                    'cron': spec['cron'],
                    'repeats': -1,  # Run forever
                }
            )
            if created:
                schedules_created += 1
                self.stdout.write(
                    self.style.SUCCESS(f"✓ Created schedule: {spec['name']} ({spec['cron']})")
                )
            else:
                schedules_updated += 1
                self.stdout.write(
                    self.style.WARNING(f"↻ Updated schedule: {spec['name']} ({spec['cron']})")
                )

        total = schedules_created + schedules_updated
        self.stdout.write('')
        self.stdout.write(
            self.style.SUCCESS(
                f'Done! {schedules_created} schedule(s) created, '
                f'{schedules_updated} schedule(s) updated. '
                f'Total: {total} schedules configured.'
            )
        )

        self.stdout.write('')
        self.stdout.write('Schedule Summary:')
        for spec in SCHEDULES:
            self.stdout.write(f"  • {spec['name']:<28} → {spec['summary']}")
        self.stdout.write('')
        self.stdout.write(
            self.style.NOTICE(
                'Note: Ensure Django-Q cluster is running: python manage.py qcluster'
            )
        )
        self.stdout.write('')
