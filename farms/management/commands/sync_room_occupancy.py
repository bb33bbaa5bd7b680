"""
Sync Room Occupancy Management Command

Recompute room occupancy counters from worker assignments. Run it by hand
after bulk imports or when the daily drift report flags rooms:

    python manage.py sync_room_occupancy
    python manage.py sync_room_occupancy --farm <farm-id> --dry-run
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from farms.models import Farm, Room, Worker
from farms.services import RoomOccupancySyncService, get_occupancy_summary


class Command(BaseCommand):
    help = 'Recompute room occupancy counters from worker assignments'

    def add_arguments(self, parser):
        parser.add_argument(
            '--farm',
            help='Only reconcile this farm (id)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without writing anything',
        )

    def handle(self, *args, **options):
        farm_id = options['farm']
        if farm_id and not Farm.objects.filter(pk=farm_id).exists():
            raise CommandError(f'Farm {farm_id} does not exist')

        self.stdout.write(f'\n[{timezone.now().strftime("%Y-%m-%d %H:%M:%S")}] '
                          f'Checking room occupancy (farm={farm_id or "all"})...\n')

        if options['dry_run']:
            workers = Worker.objects.only('id', 'farm_id', 'room_number', 'sex', 'status')
            rooms = Room.objects.all()
            if farm_id:
                workers = workers.filter(farm_id=farm_id)
                rooms = rooms.filter(farm_id=farm_id)
            summary = get_occupancy_summary(workers, rooms)

            for item in summary['discrepancies']:
                self.stdout.write(
                    f"  Room {item['number']} ({item['gender_restriction']}) on farm {item['farm_id']}: "
                    f"stored {item['stored_occupancy']}, actual {item['actual_occupancy']}"
                )
            for item in summary['orphaned_assignments']:
                self.stdout.write(self.style.WARNING(
                    f"  {len(item['worker_ids'])} worker(s) assigned to missing room "
                    f"{item['room_number']} ({item['sex']}) on farm {item['farm_id']}"
                ))
            self.stdout.write(
                f"{summary['rooms_out_of_sync']} of {summary['total_rooms']} room(s) out of sync"
            )
            return

        result = RoomOccupancySyncService(farm_id).sync()

        if result['rooms_updated']:
            for change in result['changes']:
                self.stdout.write(
                    f"  Room {change['number']} ({change['gender_restriction']}): "
                    f"{change['previous_occupancy']} -> {change['current_occupancy']}"
                )
            self.stdout.write(self.style.SUCCESS(
                f"Updated {result['rooms_updated']} of {result['rooms_checked']} room(s)"
            ))
        else:
            self.stdout.write(self.style.SUCCESS(
                f"All {result['rooms_checked']} room(s) already in sync"
            ))
